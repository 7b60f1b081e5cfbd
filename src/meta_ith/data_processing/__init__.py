"""
Data Processing module for per-sample input matrices.

This package provides utilities for:
- Loading tab-delimited feature matrices with named-column validation
- Z-score normalization of tumor expression against matched normals
"""

from .feature_matrix import find_feature_column, load_feature_matrix
from .zscores import compute_z_scores
