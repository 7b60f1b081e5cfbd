"""
Shared Functions Module
Common utility functions used across multiple modules
"""

import copy
import logging
import os

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import pandas as pd

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Configuration dictionary for file naming, column names and run options
CONFIG = {
    'output_dir': '.',
    'normal_label': 'N',
    'feature_id_columns': ['coords', 'Gene', 'gene', 'gene_id', 'Feature'],
    'layers': ['DNA', 'RNA', 'Immune'],
    # Input matrices the divergence analysis expects per sample, relative to the sample name
    'layer_inputs': {
        'DNA': 'DNA_{sample}_frequency_matrix.txt',
        'RNA': '{sample}_RNA_expression_matrix.txt',
        'Immune': '{sample}_Immune_CIBERSORT_matrix.txt',
    },
    'artifacts': {
        'matrix': '{layer}_distance_matrix_{name}',
        'tree': '{layer}_tree_{name}',
        'dendrogram': '{layer}_unrooted_dendrogram_{name}.png',
    },
    'tree_format': 'newick',
    'clamp_negative_branches': False,
    'normal_suffix': '.nr',
    'gene_column': 'Gene',
    # Signature means skip genes without a z-score; False propagates NaN
    'skip_missing_z_scores': True,
    'plot_dpi': 300,
    'n_workers': 1,
}


def get_config(**overrides):
    """
    Return a copy of CONFIG with the given top-level keys replaced.

    Raises:
        KeyError: If an override names an unknown key.
    """
    config = copy.deepcopy(CONFIG)
    for key, value in overrides.items():
        if key not in config:
            raise KeyError(f"Unknown configuration key: {key}")
        if value is not None:
            config[key] = value
    return config


def setup_logging(level='INFO', log_file=None):
    """Configure root logging for a command-line run"""
    handlers = [logging.StreamHandler()]
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(level=getattr(logging, str(level).upper(), logging.INFO),
                        format=LOG_FORMAT, handlers=handlers, force=True)


def load_table(path, **kwargs):
    """Read a tab-delimited file, handling UTF-8 BOM if present."""
    kwargs.setdefault('sep', '\t')
    return pd.read_csv(path, encoding='utf-8-sig', **kwargs)


def read_list_file(path):
    """
    Read a newline-delimited list of file paths or sample names.

    Blank lines and lines starting with '#' are skipped.
    """
    with open(path, 'r', encoding='utf-8-sig') as f:
        entries = [line.strip() for line in f]
    entries = [e for e in entries if e and not e.startswith('#')]
    logger.info(f"Read {len(entries)} entries from {path}")
    return entries


def save_results(df, output_dir, filename, index=False):
    """Save a table as a tab-delimited text file and return its path"""
    os.makedirs(output_dir, exist_ok=True)
    output_file = os.path.join(output_dir, filename)
    df.to_csv(output_file, sep='\t', index=index)
    logger.info(f"Saved results to {output_file}")
    return output_file


def save_plot(fig, filename, output_dir, dpi=None):
    """
    Save a matplotlib figure to the specified output directory

    Parameters:
    -----------
    fig : matplotlib.figure.Figure
        Figure to save
    filename : str
        Name of the file, including its extension
    output_dir : str
        Directory to save the plot
    dpi : int, optional
        Resolution, defaults to CONFIG['plot_dpi']
    """
    os.makedirs(output_dir, exist_ok=True)
    plot_path = os.path.join(output_dir, filename)
    try:
        fig.savefig(plot_path, dpi=dpi or CONFIG['plot_dpi'], bbox_inches='tight')
    finally:
        plt.close(fig)
    logger.info(f"Saved plot: {plot_path}")
    return plot_path
