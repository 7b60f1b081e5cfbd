"""
Distance Matrix
Pairwise dissimilarity between the sample columns of a feature matrix
"""

import logging

import numpy as np
import pandas as pd
from scipy.spatial.distance import pdist, squareform

from ..errors import MalformedInputError

logger = logging.getLogger(__name__)


def compute_distance_matrix(features: pd.DataFrame, source: str = None) -> pd.DataFrame:
    """
    Mean absolute per-feature difference between every pair of sample columns, halved.

    d(i, j) = sum_r |x[r, i] - x[r, j]| / (2 * n_rows)

    For frequencies or proportions in [0, 1] the result lies in [0, 1]; for
    expression values it is a scaled Manhattan distance.

    Parameters:
    -----------
    features : pd.DataFrame
        Features x samples; numeric values only
    source : str, optional
        Sample file name used in error messages

    Returns:
    --------
    pd.DataFrame
        Symmetric samples x samples matrix with a zero diagonal, labels in input order

    Raises:
    -------
    MalformedInputError
        On an empty matrix, non-numeric columns or missing values
    """
    n_rows, n_cols = features.shape
    if n_rows == 0 or n_cols == 0:
        raise MalformedInputError(f"Cannot compute distances on a {n_rows}x{n_cols} matrix",
                                  source=source)

    non_numeric = [c for c in features.columns if not pd.api.types.is_numeric_dtype(features[c])]
    if non_numeric:
        raise MalformedInputError(f"Non-numeric sample columns: {non_numeric}", source=source)

    values = features.to_numpy(dtype=float)
    # cityblock on the sample columns; NaNs propagate into the affected pairs
    condensed = pdist(values.T, metric='cityblock') / (2 * n_rows)
    dist = squareform(condensed, checks=False) if n_cols > 1 else np.zeros((1, 1))

    if np.isnan(dist).any():
        bad_samples = [c for c, has_nan in zip(features.columns, np.isnan(values).any(axis=0))
                       if has_nan]
        raise MalformedInputError(f"Missing feature values in samples {bad_samples}",
                                  source=source)

    np.fill_diagonal(dist, 0.0)
    labels = list(features.columns)
    matrix = pd.DataFrame(dist, index=labels, columns=labels)
    logger.debug(f"Distance matrix for {source or 'input'}: {n_cols} samples over {n_rows} features")
    return matrix
