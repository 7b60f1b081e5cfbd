"""
Divergence package initialization
"""

from .divergence_analysis import (
    CohortSummary,
    DivergenceAnalysis,
    LayerDecomposition,
    SampleDecomposition,
    decompose_tree,
    normal_distances,
    multi_level_divergence_diversity
)
