"""
Dendrogram Analysis
Builds distance matrices, neighbor-joining trees and unrooted dendrograms per sample file
"""

import logging
import os
import threading
from dataclasses import dataclass
from typing import Optional

import pandas as pd

from ..data_processing.feature_matrix import load_feature_matrix
from ..phylogeny.artifacts import ArtifactStore
from ..phylogeny.distance import compute_distance_matrix
from ..phylogeny.neighbor_joining import PhyloTree, neighbor_joining
from ..utils.batch import BatchResult, run_batch
from ..utils.shared_functions import get_config, read_list_file, save_plot
from .plotting import plot_unrooted_tree

logger = logging.getLogger(__name__)

# pyplot keeps global state; figures are drawn one at a time
_PLOT_LOCK = threading.Lock()


@dataclass
class DendrogramResult:
    name: str
    layer: str
    distance_matrix: pd.DataFrame
    tree: PhyloTree
    matrix_path: str
    tree_path: str
    plot_path: Optional[str] = None


def resolve_sample_paths(list_file):
    """
    Read a sample list file; relative entries that do not exist from the working
    directory are looked up next to the list file.
    """
    base_dir = os.path.dirname(os.path.abspath(list_file))
    paths = []
    for entry in read_list_file(list_file):
        if not os.path.isabs(entry) and not os.path.exists(entry):
            candidate = os.path.join(base_dir, entry)
            if os.path.exists(candidate):
                entry = candidate
        paths.append(entry)
    return paths


class DendrogramAnalysis:
    """Distance matrix, tree and dendrogram for every sample file of one omic layer"""

    def __init__(self, layer, output_dir=None, config=None, store=None, render=True,
                 exclude_columns=()):
        self.config = config or get_config()
        if layer not in self.config['layers']:
            raise ValueError(f"Unknown layer '{layer}', expected one of {self.config['layers']}")
        self.layer = layer
        self.output_dir = output_dir or self.config['output_dir']
        self.store = store or ArtifactStore(self.output_dir, self.config)
        self.render = render
        self.exclude_columns = tuple(exclude_columns)

    def build_tree(self, features, name=None):
        """Distance matrix and neighbor-joining tree of one feature matrix"""
        distances = compute_distance_matrix(features, source=name)
        tree = neighbor_joining(distances,
                                clamp_negative=self.config['clamp_negative_branches'],
                                source=name)
        return distances, tree

    def process_sample_file(self, path) -> DendrogramResult:
        """Load one sample file, build its tree and persist matrix, tree and plot"""
        name = os.path.basename(str(path))
        features = load_feature_matrix(path, exclude_columns=self.exclude_columns)
        distances, tree = self.build_tree(features, name=name)

        matrix_path = self.store.write_matrix(name, self.layer, distances)
        tree_path = self.store.write_tree(name, self.layer, tree)

        plot_path = None
        if self.render:
            dendrogram_path = self.store.dendrogram_path(name, self.layer)
            with _PLOT_LOCK:
                fig = plot_unrooted_tree(tree, title=name,
                                         normal_label=self.config['normal_label'])
                plot_path = save_plot(fig, os.path.basename(dendrogram_path),
                                      os.path.dirname(dendrogram_path),
                                      dpi=self.config['plot_dpi'])

        logger.info(f"{self.layer} dendrogram for {name}: {tree.n_tips} samples, "
                    f"total branch length {tree.total_length:.4g}")
        return DendrogramResult(name, self.layer, distances, tree, matrix_path, tree_path,
                                plot_path)

    def run(self, sample_files, n_workers=None) -> BatchResult:
        """Process every sample file; a failing file is recorded and skipped"""
        return run_batch(sample_files, self.process_sample_file,
                         n_workers=n_workers or self.config['n_workers'],
                         label=f"{self.layer} dendrogram")

    def run_from_list(self, list_file, n_workers=None) -> BatchResult:
        return self.run(resolve_sample_paths(list_file), n_workers=n_workers)


def dna_dendrograms(list_file, output_dir=None, **kwargs):
    return DendrogramAnalysis('DNA', output_dir=output_dir, **kwargs).run_from_list(list_file)


def rna_dendrograms(list_file, output_dir=None, **kwargs):
    return DendrogramAnalysis('RNA', output_dir=output_dir, **kwargs).run_from_list(list_file)


def immune_dendrograms(list_file, output_dir=None, **kwargs):
    return DendrogramAnalysis('Immune', output_dir=output_dir, **kwargs).run_from_list(list_file)
