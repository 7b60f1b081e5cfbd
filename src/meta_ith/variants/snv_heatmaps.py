"""
SNV Heatmaps
Variant allele frequency heatmaps across tumor regions
"""

import logging
import os
import threading

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns
from matplotlib.colors import LinearSegmentedColormap

from ..errors import MalformedInputError
from ..data_processing.feature_matrix import load_feature_matrix
from ..dendrograms.dendrogram_analysis import resolve_sample_paths
from ..utils.batch import run_batch
from ..utils.shared_functions import get_config, save_plot

logger = logging.getLogger(__name__)

_PLOT_LOCK = threading.Lock()

VAF_CMAP = LinearSegmentedColormap.from_list('vaf', ['beige', 'red'])


def order_variants(features: pd.DataFrame) -> pd.DataFrame:
    """
    Long table of the non-zero VAFs, sorted for display.

    Variants are ordered by the number of regions carrying them (private first),
    then by VAF, then by region name.

    Returns:
    --------
    pd.DataFrame
        Columns: variant, region, vaf, n_regions
    """
    id_name = features.index.name or 'variant'
    long = (
        features
        .rename_axis('variant')
        .reset_index()
        .melt(id_vars='variant', var_name='region', value_name='vaf')
    )
    long = long[long['vaf'].notna() & (long['vaf'] != 0)].copy()
    long['n_regions'] = long.groupby('variant')['vaf'].transform('size')
    long = long.sort_values(['n_regions', 'vaf', 'region'], kind='mergesort').reset_index(drop=True)
    logger.debug(f"{len(long)} non-zero VAFs over {long['variant'].nunique()} {id_name} entries")
    return long


def plot_snv_heatmap(ordered: pd.DataFrame, regions=None, title=None):
    """Heatmap of VAFs, variants as rows in the given order, zero VAFs left blank"""
    variant_order = list(dict.fromkeys(ordered['variant']))
    grid = ordered.pivot(index='variant', columns='region', values='vaf').reindex(variant_order)
    if regions is not None:
        grid = grid.reindex(columns=list(regions))

    fig, ax = plt.subplots(figsize=(8, 8))
    sns.heatmap(grid, cmap=VAF_CMAP, vmin=0, ax=ax, yticklabels=False,
                cbar_kws={'label': 'VAF'})
    ax.set_xlabel('')
    ax.set_ylabel('')
    if title:
        ax.set_title(title)
    plt.tight_layout()
    return fig


class SNVHeatmaps:
    """VAF heatmap per DNA sample file, normal column excluded"""

    def __init__(self, output_dir=None, config=None):
        self.config = config or get_config()
        self.output_dir = output_dir or self.config['output_dir']
        os.makedirs(self.output_dir, exist_ok=True)

    def process_sample_file(self, path):
        name = os.path.basename(str(path))
        features = load_feature_matrix(path, exclude_columns=[self.config['normal_label']])
        ordered = order_variants(features)
        if ordered.empty:
            raise MalformedInputError('No non-zero VAFs outside the normal column', source=name)
        with _PLOT_LOCK:
            fig = plot_snv_heatmap(ordered, regions=features.columns, title=name)
            return save_plot(fig, f"SNV_heatmap_{name}.png", self.output_dir,
                             dpi=self.config['plot_dpi'])

    def run(self, sample_files, n_workers=None):
        return run_batch(sample_files, self.process_sample_file,
                         n_workers=n_workers or self.config['n_workers'], label='SNV heatmap')

    def run_from_list(self, list_file, n_workers=None):
        return self.run(resolve_sample_paths(list_file), n_workers=n_workers)


def snv_heatmaps(list_file, output_dir=None, **kwargs):
    return SNVHeatmaps(output_dir=output_dir, **kwargs).run_from_list(list_file)
