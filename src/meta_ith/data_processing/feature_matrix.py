import logging
import os

import pandas as pd

from ..errors import MalformedInputError
from ..utils.shared_functions import CONFIG, load_table

logger = logging.getLogger(__name__)


def find_feature_column(columns, feature_column=None, candidates=None):
    """
    Locate the feature-identifier column by name.

    An explicit `feature_column` must exist; otherwise the first of `candidates`
    present is used, falling back to the first column.
    """
    cols = list(columns)
    if feature_column is not None:
        if feature_column not in cols:
            raise MalformedInputError(f"Feature column '{feature_column}' not found in {cols}")
        return feature_column
    if candidates is None:
        candidates = CONFIG['feature_id_columns']
    return next((c for c in candidates if c in cols), cols[0])


def check_field_counts(path, n_fields, source=None):
    """
    Compare the number of tab-separated fields on every data line with the header.

    Short rows come back padded from read_csv, so the raw lines are counted.
    Empty lines are skipped, as read_csv skips them.
    """
    with open(path, 'r', encoding='utf-8-sig') as f:
        next(f, None)
        for line_no, line in enumerate(f, start=2):
            line = line.rstrip('\r\n')
            if not line:
                continue
            n = len(line.split('\t'))
            if n != n_fields:
                relation = 'fewer' if n < n_fields else 'more'
                raise MalformedInputError(
                    f"Line {line_no} has {relation} fields than the header ({n} vs {n_fields})",
                    source=source)


def load_feature_matrix(path: str, feature_column: str = None, exclude_columns=(),
                        require_columns=()) -> pd.DataFrame:
    """
    Load a per-sample feature matrix (variants, genes or immune cell types x regions).

    Parameters:
    -----------
    path : str
        Tab-delimited file with a header row; one column holds the feature identifier
    feature_column : str, optional
        Name of the identifier column, auto-detected when omitted
    exclude_columns : iterable of str
        Sample columns to drop, e.g. the normal for the SNV heatmap
    require_columns : iterable of str
        Sample columns that must be present, e.g. the normal label

    Returns:
    --------
    pd.DataFrame
        Float matrix indexed by feature id, one column per sample, input order kept
    """
    source = os.path.basename(str(path))
    try:
        header = load_table(path, header=None, nrows=1, dtype=str).iloc[0].tolist()
        raw = load_table(path, dtype=str, keep_default_na=False)
    except (pd.errors.EmptyDataError, pd.errors.ParserError, UnicodeDecodeError) as e:
        raise MalformedInputError(f"Cannot parse table: {e}", source=source) from e

    # pandas renames repeated headers, so check the raw header line
    if len(set(header)) != len(header):
        raise MalformedInputError(f"Duplicate columns in header: {header}", source=source)

    id_col = find_feature_column(raw.columns, feature_column)
    sample_cols = [c for c in raw.columns if c != id_col]

    missing = [c for c in require_columns if c not in sample_cols]
    if missing:
        raise MalformedInputError(f"Missing required columns: {missing}", source=source)

    sample_cols = [c for c in sample_cols if c not in set(exclude_columns)]
    if not sample_cols:
        raise MalformedInputError("No sample columns left after parsing", source=source)
    if raw.empty:
        raise MalformedInputError("Matrix has no feature rows", source=source)

    check_field_counts(path, len(header), source=source)

    values = raw[sample_cols].apply(lambda col: col.str.strip())
    numeric = values.apply(pd.to_numeric, errors='coerce')
    # Empty cells are missing values; anything else that fails to parse is an error
    bad = numeric.isna() & values.ne('') & ~values.isin(['NA', 'NaN', 'nan'])
    if bad.any().any():
        col = bad.any()[bad.any()].index[0]
        row = bad[col].idxmax()
        raise MalformedInputError(
            f"Non-numeric value {values.at[row, col]!r} in column '{col}' (row {row + 2})",
            source=source)

    matrix = numeric.astype(float)
    matrix.index = raw[id_col].values
    matrix.index.name = id_col
    logger.info(f"Loaded {source} with {matrix.shape[0]} features x {matrix.shape[1]} samples")
    return matrix
