"""
Divergence / Diversity Analysis
Splits neighbor-joining tree length into divergence from the normal and diversity among
tumor regions, per omic layer, and compares the layers across a cohort
"""

import itertools
import logging
import os
from dataclasses import dataclass, field
from typing import Dict, List

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns

from ..errors import NormalTipNotFoundError
from ..phylogeny.artifacts import ArtifactStore
from ..phylogeny.neighbor_joining import PhyloTree, neighbor_joining
from ..phylogeny.tree_compare import tree_distance
from ..utils.batch import BatchFailure, run_batch
from ..utils.shared_functions import get_config, read_list_file, save_plot, save_results

logger = logging.getLogger(__name__)


@dataclass
class LayerDecomposition:
    layer: str
    total_length: float
    divergence: float
    diversity: float
    normal_distances: pd.Series

    @property
    def diversity_fraction(self):
        return self.diversity / self.total_length if self.total_length else float('nan')


@dataclass
class SampleDecomposition:
    sample: str
    layers: Dict[str, LayerDecomposition]
    trees: Dict[str, PhyloTree]
    dendro_distance: float = float('nan')


@dataclass
class CohortSummary:
    """Per-sample results of a cohort, rows in sample-list order"""
    samples: List[str]
    table: pd.DataFrame
    normal_distances: pd.DataFrame
    failures: List[BatchFailure] = field(default_factory=list)
    interrupted: bool = False

    def values(self, layer, quantity):
        """Array of one per-layer quantity (e.g. 'divergence') across samples"""
        return self.table[f"{layer}_{quantity}"].to_numpy(dtype=float)


def decompose_tree(tree: PhyloTree, normal_label='N', source=None):
    """
    Divergence and diversity of a tree.

    Divergence is the summed length of the edge(s) ending at the normal tip,
    diversity is the rest of the total length.

    Returns:
    --------
    tuple
        (total_length, divergence, diversity)
    """
    if normal_label not in tree.tip_labels:
        raise NormalTipNotFoundError(
            f"Normal tip '{normal_label}' not among {tree.tip_labels}", source=source)
    total = tree.total_length
    divergence = float(tree.tip_edge_lengths(normal_label).sum())
    return total, divergence, total - divergence


def normal_distances(matrix: pd.DataFrame, normal_label='N', source=None) -> pd.Series:
    """Distances from the normal to every other sample, in matrix order"""
    if normal_label not in matrix.index:
        raise NormalTipNotFoundError(
            f"Normal sample '{normal_label}' not in distance matrix", source=source)
    return matrix.loc[normal_label].drop(labels=normal_label).astype(float)


class DivergenceAnalysis:
    """Multi-level divergence and diversity analysis of previously built distance matrices"""

    def __init__(self, output_dir=None, config=None, store=None, layers=None,
                 compare_layers=('DNA', 'RNA'), tree_distance_method='score'):
        self.config = config or get_config()
        self.output_dir = output_dir or self.config['output_dir']
        self.store = store or ArtifactStore(self.output_dir, self.config)
        self.layers = list(layers or self.config['layers'])
        self.compare_layers = tuple(compare_layers)
        self.tree_distance_method = tree_distance_method
        self.normal_label = self.config['normal_label']
        os.makedirs(self.output_dir, exist_ok=True)

    def analyze_sample(self, sample) -> SampleDecomposition:
        """Rebuild the trees of one sample from its stored matrices and decompose them"""
        layers = {}
        trees = {}
        for layer in self.layers:
            name = self.store.sample_file_name(sample, layer)
            matrix = self.store.read_matrix(name, layer)
            tree = neighbor_joining(matrix,
                                    clamp_negative=self.config['clamp_negative_branches'],
                                    source=name)
            total, divergence, diversity = decompose_tree(tree, self.normal_label, source=name)
            layers[layer] = LayerDecomposition(
                layer, total, divergence, diversity,
                normal_distances(matrix, self.normal_label, source=name))
            trees[layer] = tree
            logger.debug(f"{sample} {layer}: total {total:.4g}, divergence {divergence:.4g}, "
                         f"diversity {diversity:.4g}")

        first, second = self.compare_layers
        dendro = float('nan')
        if first in trees and second in trees:
            dendro = tree_distance(trees[first], trees[second], method=self.tree_distance_method)
        return SampleDecomposition(sample, layers, trees, dendro)

    def summarize(self, decompositions, failures=(), interrupted=False) -> CohortSummary:
        """Collect per-sample decompositions into cohort tables"""
        rows = []
        distance_rows = []
        for dec in decompositions:
            row = {'sample': dec.sample}
            for layer, parts in dec.layers.items():
                row[f"{layer}_total_length"] = parts.total_length
                row[f"{layer}_divergence"] = parts.divergence
                row[f"{layer}_diversity"] = parts.diversity
                row[f"{layer}_diversity_fraction"] = parts.diversity_fraction
                for region, distance in parts.normal_distances.items():
                    distance_rows.append({'sample': dec.sample, 'layer': layer,
                                          'region': region, 'distance': distance})
            row['dendro_distance'] = dec.dendro_distance
            rows.append(row)

        table = pd.DataFrame(rows)
        if not table.empty:
            table = table.set_index('sample')
        distances = pd.DataFrame(distance_rows, columns=['sample', 'layer', 'region', 'distance'])
        return CohortSummary([d.sample for d in decompositions], table, distances,
                             list(failures), interrupted)

    def run(self, samples, n_workers=None) -> CohortSummary:
        batch = run_batch(samples, self.analyze_sample,
                          n_workers=n_workers or self.config['n_workers'],
                          label='Divergence/diversity')
        return self.summarize(batch.results.values(), batch.failures, batch.interrupted)

    def run_from_file(self, sample_names_file, n_workers=None) -> CohortSummary:
        return self.run(read_list_file(sample_names_file), n_workers=n_workers)

    def save(self, summary: CohortSummary):
        """Write the cohort table and the normal-distance table"""
        paths = [
            save_results(summary.table, self.output_dir, 'multiomics_ITH_summary.txt', index=True),
            save_results(summary.normal_distances, self.output_dir,
                         'multiomics_normal_distances.txt'),
        ]
        return paths

    def plot_comparison(self, summary: CohortSummary):
        """
        Six-panel comparison figure.

        Left column: diversity / total length of one layer against another, one
        point per sample. Right column: normal-to-region distances of one layer
        against another, coloured by sample.
        """
        pairs = list(itertools.combinations(self.layers, 2))
        if not pairs:
            logger.warning("Layer comparison needs at least two layers; no figure drawn")
            return None
        fig, axes = plt.subplots(len(pairs), 2, figsize=(7.6, 4 * len(pairs)), squeeze=False)
        palette = dict(zip(summary.samples, sns.color_palette('husl', max(len(summary.samples), 1))))

        by_region = summary.normal_distances.pivot_table(
            index=['sample', 'region'], columns='layer', values='distance', aggfunc='first')

        for row, (x_layer, y_layer) in enumerate(pairs):
            ax = axes[row][0]
            if not summary.table.empty:
                x = summary.values(x_layer, 'diversity_fraction')
                y = summary.values(y_layer, 'diversity_fraction')
                ax.scatter(x, y, c=[palette[s] for s in summary.samples], s=80)
                for sample, xi, yi in zip(summary.samples, x, y):
                    ax.annotate(sample, (xi, yi), textcoords='offset points', xytext=(5, 5))
            ax.plot([0, 1], [0, 1], color='grey', linestyle='--', linewidth=1.5)
            ax.set_xlim(0, 1)
            ax.set_ylim(0, 1)
            ax.set_title(f"{x_layer}:{y_layer} diversity / total")
            ax.set_xlabel(x_layer)

            ax = axes[row][1]
            if x_layer in by_region.columns and y_layer in by_region.columns:
                pair = by_region[[x_layer, y_layer]].dropna().reset_index()
                ax.scatter(pair[x_layer], pair[y_layer],
                           c=[palette[s] for s in pair['sample']], s=80)
            ax.set_title(f"dN_{x_layer}:dN_{y_layer}")
            ax.set_xlabel(x_layer)

        plt.tight_layout()
        return save_plot(fig, 'multiomics_ITH_comparison.png', self.output_dir,
                         dpi=self.config['plot_dpi'])


def multi_level_divergence_diversity(sample_names_file, output_dir=None, plot=True, **kwargs):
    """Run the cohort analysis from a sample-name file, save tables and the comparison figure"""
    analysis = DivergenceAnalysis(output_dir=output_dir, **kwargs)
    summary = analysis.run_from_file(sample_names_file)
    if summary.samples:
        analysis.save(summary)
        if plot:
            analysis.plot_comparison(summary)
    else:
        logger.warning("No sample could be analyzed; nothing saved")
    return summary
