"""
Artifact Store
Persisted distance matrices and trees keyed by (sample file name, layer)
"""

import logging
import os

import pandas as pd

from ..errors import MalformedInputError, MissingArtifactError
from ..utils.shared_functions import CONFIG
from .tree_io import read_tree, write_tree

logger = logging.getLogger(__name__)


def write_matrix_file(matrix: pd.DataFrame, path):
    """
    Write a labelled square matrix as tab-delimited text.

    The header line carries only the sample names (no corner cell) and each row
    starts with its label. Values are written with repr() so a reload is exact.
    """
    labels = [str(label) for label in matrix.index]
    if any('\t' in label or '\n' in label for label in labels):
        raise MalformedInputError(f"Sample names cannot contain tabs or newlines: {labels}")
    out_dir = os.path.dirname(str(path))
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)
    with open(path, 'w', encoding='utf-8', newline='') as f:
        f.write('\t'.join(labels) + '\n')
        for label, row in zip(labels, matrix.to_numpy(dtype=float)):
            f.write(label + '\t' + '\t'.join(repr(float(v)) for v in row) + '\n')
    return path


def read_matrix_file(path) -> pd.DataFrame:
    """
    Read a matrix written by write_matrix_file.

    A header with a leading empty corner cell is accepted as well. Raises
    MissingArtifactError if the file is absent and MalformedInputError if the
    matrix is not square or its row and column labels disagree.
    """
    source = os.path.basename(str(path))
    if not os.path.exists(path):
        raise MissingArtifactError(f"Distance matrix file not found: {path}", source=source)

    with open(path, 'r', encoding='utf-8-sig') as f:
        header = f.readline().rstrip('\r\n').split('\t')
    if header and header[0] == '':
        header = header[1:]

    try:
        body = pd.read_csv(path, sep='\t', header=None, skiprows=1, index_col=0,
                           dtype={0: str}, float_precision='round_trip', encoding='utf-8-sig')
    except (pd.errors.EmptyDataError, pd.errors.ParserError) as e:
        raise MalformedInputError(f"Cannot parse distance matrix: {e}", source=source) from e

    labels = [str(label) for label in body.index]
    if labels != header or body.shape[1] != len(labels):
        raise MalformedInputError(
            f"Distance matrix is not square with matching labels "
            f"(header {header}, rows {labels})", source=source)
    try:
        values = body.astype(float)
    except ValueError as e:
        raise MalformedInputError(f"Non-numeric distance: {e}", source=source) from e

    values.index = labels
    values.columns = labels
    return values


class ArtifactStore:
    """
    Location of the intermediate files shared by the dendrogram and divergence steps.

    File names follow the fixed convention `{layer}_distance_matrix_{name}` and
    `{layer}_tree_{name}`, where `name` is the sample file name, so artifacts
    written by earlier runs stay readable.
    """

    def __init__(self, root=None, config=None):
        self.config = config or CONFIG
        self.root = root if root is not None else self.config['output_dir']
        os.makedirs(self.root, exist_ok=True)

    def _path(self, kind, name, layer):
        template = self.config['artifacts'][kind]
        return os.path.join(self.root, template.format(layer=layer, name=os.path.basename(str(name))))

    def matrix_path(self, name, layer):
        return self._path('matrix', name, layer)

    def tree_path(self, name, layer):
        return self._path('tree', name, layer)

    def dendrogram_path(self, name, layer):
        return self._path('dendrogram', name, layer)

    def sample_file_name(self, sample, layer):
        """Input file name of a layer's matrix for a sample, e.g. DNA_P1_frequency_matrix.txt"""
        try:
            template = self.config['layer_inputs'][layer]
        except KeyError:
            raise ValueError(f"Unknown layer '{layer}'") from None
        return template.format(sample=sample)

    def has_matrix(self, name, layer):
        return os.path.exists(self.matrix_path(name, layer))

    def write_matrix(self, name, layer, matrix):
        path = write_matrix_file(matrix, self.matrix_path(name, layer))
        logger.info(f"Saved {layer} distance matrix to {path}")
        return path

    def read_matrix(self, name, layer):
        return read_matrix_file(self.matrix_path(name, layer))

    def write_tree(self, name, layer, tree):
        return write_tree(tree, self.tree_path(name, layer), fmt=self.config['tree_format'],
                          name=f"{layer}_{os.path.basename(str(name))}")

    def read_tree(self, name, layer):
        path = self.tree_path(name, layer)
        if not os.path.exists(path):
            raise MissingArtifactError(f"Tree file not found: {path}", source=os.path.basename(path))
        return read_tree(path, fmt=self.config['tree_format'])
