"""
Gene Sets
Bundled reference gene sets and user gene-set files
"""

import logging
import os

import pandas as pd

from ..errors import MalformedInputError
from ..utils.shared_functions import CONFIG, load_table

logger = logging.getLogger(__name__)

GENE_SET_DIR = os.path.join(os.path.dirname(__file__), 'gene_sets')

# name -> (score label, output file prefix, heatmap colour)
BUILTIN_GENE_SETS = {
    'hypoxia': ('Hypoxia score', 'Hypoxia', 'darkorchid'),
    'proliferation': ('Proliferation score', 'Proliferation', 'deeppink'),
    'apoptosis': ('Apoptosis score', 'Apoptosis', 'deeppink'),
    'drug_resistance': ('Pemetrexed resistance score', 'Pemetrexed_resistance', 'darkcyan'),
    'epithelial': ('Epithelial score', 'Epithelial', 'goldenrod'),
    'mesenchymal': ('Mesenchymal score', 'Mesenchymal', 'goldenrod'),
    'anti_pd1_favor': ('anti-PD1 favor score', 'anti-PD1_favor', 'darkgreen'),
}


def read_gene_set(path, gene_column=None) -> pd.DataFrame:
    """Read a single-column gene-set table with a `Gene` header"""
    gene_column = gene_column or CONFIG['gene_column']
    gene_set = load_table(path, dtype=str)
    if gene_column not in gene_set.columns:
        raise MalformedInputError(f"Gene set has no '{gene_column}' column",
                                  source=os.path.basename(str(path)))
    genes = gene_set[[gene_column]].dropna().copy()
    genes[gene_column] = genes[gene_column].str.strip()
    genes = genes[genes[gene_column] != ''].drop_duplicates().reset_index(drop=True)
    logger.info(f"Loaded {len(genes)} genes from {path}")
    return genes


def load_gene_set(name, gene_column=None) -> pd.DataFrame:
    """
    Load a bundled gene set by name, or a user file by path.

    Bundled names: hypoxia, proliferation, apoptosis, drug_resistance,
    epithelial, mesenchymal, anti_pd1_favor.
    """
    key = str(name).lower().replace('-', '_')
    if key in BUILTIN_GENE_SETS:
        return read_gene_set(os.path.join(GENE_SET_DIR, f"{key}.txt"), gene_column)
    if os.path.exists(str(name)):
        return read_gene_set(name, gene_column)
    raise ValueError(f"Unknown gene set '{name}'; expected a file or one of "
                     f"{sorted(BUILTIN_GENE_SETS)}")
