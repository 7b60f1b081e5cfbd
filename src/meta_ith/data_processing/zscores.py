import logging

import numpy as np
import pandas as pd

from ..errors import MalformedInputError
from ..utils.shared_functions import CONFIG

logger = logging.getLogger(__name__)


def compute_z_scores(expression: pd.DataFrame, gene_column: str = None,
                     normal_suffix: str = None) -> pd.DataFrame:
    """
    Z-score every tumor column against the matched normal baseline.

    Normal columns are those whose name ends with `normal_suffix`. For each gene
    the tumor values are centred on the normal mean and divided by the normal
    sample standard deviation. Genes with zero normal variance get NaN.

    Parameters:
    -----------
    expression : pd.DataFrame
        Genes x samples, gene identifiers in `gene_column`
    gene_column : str, optional
        Defaults to CONFIG['gene_column']
    normal_suffix : str, optional
        Defaults to CONFIG['normal_suffix']

    Returns:
    --------
    pd.DataFrame
        `gene_column` followed by one z-score column per tumor sample
    """
    gene_column = gene_column or CONFIG['gene_column']
    normal_suffix = normal_suffix or CONFIG['normal_suffix']

    if gene_column not in expression.columns:
        raise MalformedInputError(f"Expression matrix has no '{gene_column}' column")

    sample_cols = [c for c in expression.columns if c != gene_column]
    normal_cols = [c for c in sample_cols if str(c).endswith(normal_suffix)]
    tumor_cols = [c for c in sample_cols if c not in normal_cols]
    if len(normal_cols) < 2:
        raise MalformedInputError(
            f"Need at least 2 normal columns ending in '{normal_suffix}', found {normal_cols}")
    if not tumor_cols:
        raise MalformedInputError("Expression matrix has no tumor columns")

    try:
        normal = expression[normal_cols].astype(float)
        tumor = expression[tumor_cols].astype(float)
    except (TypeError, ValueError) as e:
        raise MalformedInputError(f"Non-numeric expression values: {e}") from e

    mean = normal.mean(axis=1)
    sd = normal.std(axis=1).replace(0, np.nan)
    z = tumor.sub(mean, axis=0).div(sd, axis=0)

    n_flat = int(sd.isna().sum())
    if n_flat:
        logger.warning(f"{n_flat} genes have zero variance across normals; z-scores set to NaN")
    logger.info(f"Computed z-scores for {len(z)} genes in {len(tumor_cols)} tumor samples "
                f"against {len(normal_cols)} normals")

    z.insert(0, gene_column, expression[gene_column].values)
    return z
