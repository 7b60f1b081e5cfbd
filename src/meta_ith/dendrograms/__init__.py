"""
Dendrograms package initialization
"""

from .dendrogram_analysis import (
    DendrogramAnalysis,
    DendrogramResult,
    dna_dendrograms,
    rna_dendrograms,
    immune_dendrograms,
    resolve_sample_paths
)
from .plotting import plot_unrooted_tree, unrooted_layout
