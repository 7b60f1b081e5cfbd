"""
Variants package: VAF heatmaps of multi-region DNA samples
"""

from .snv_heatmaps import SNVHeatmaps, order_variants, plot_snv_heatmap, snv_heatmaps
