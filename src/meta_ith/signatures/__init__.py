"""
Signatures package initialization
"""

from .gene_sets import BUILTIN_GENE_SETS, load_gene_set, read_gene_set
from .signature_analysis import SignatureAnalysis, plot_score_heatmap, score_gene_set
