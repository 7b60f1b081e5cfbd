"""
Multi-region tumor heterogeneity analysis.

This package builds distance matrices and neighbor-joining dendrograms from
DNA, RNA and immune profiles of tumor regions and a matched normal, decomposes
the trees into divergence and diversity, and scores gene signatures.
"""

__version__ = "1.0.0"
