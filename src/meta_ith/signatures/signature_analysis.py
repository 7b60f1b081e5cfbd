"""
Signature Analysis
Gene-set composite scores from z-score matrices
"""

import logging
import os

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns
from matplotlib.colors import LinearSegmentedColormap

from ..data_processing.zscores import compute_z_scores
from ..errors import EmptyIntersectionError, MalformedInputError
from ..utils.shared_functions import get_config, load_table, save_plot, save_results
from .gene_sets import BUILTIN_GENE_SETS, load_gene_set

logger = logging.getLogger(__name__)


def score_gene_set(z_scores: pd.DataFrame, gene_set, score_name='Geneset score',
                   gene_column='Gene', skipna=True) -> pd.DataFrame:
    """
    Mean z-score of the genes of a set, per sample.

    Parameters:
    -----------
    z_scores : pd.DataFrame
        `gene_column` plus one numeric column per sample
    gene_set : pd.DataFrame or iterable of str
        Table with a `gene_column` column, or plain gene identifiers
    score_name : str
        Label placed in the `gene_column` cell of the output row
    skipna : bool
        Average over the genes with a z-score in each sample. When False a missing
        z-score (e.g. a gene with zero variance across normals) makes the score NaN.

    Returns:
    --------
    pd.DataFrame
        Single row: `gene_column` = score_name, then one score per sample

    Raises:
    -------
    EmptyIntersectionError
        If none of the genes occurs in the z-score matrix
    """
    if gene_column not in z_scores.columns:
        raise MalformedInputError(f"Z-score matrix has no '{gene_column}' column")
    if isinstance(gene_set, pd.DataFrame):
        genes = gene_set[gene_column]
    else:
        genes = pd.Series(list(gene_set), dtype=str)
    genes = pd.DataFrame({gene_column: genes.drop_duplicates()})

    matched = z_scores.merge(genes, on=gene_column, how='inner')
    if matched.empty:
        raise EmptyIntersectionError(
            f"None of the {len(genes)} genes for '{score_name}' is in the z-score matrix")

    sample_cols = [c for c in z_scores.columns if c != gene_column]
    values = matched[sample_cols].astype(float)
    n_missing = int(values.isna().any(axis=1).sum())
    if n_missing:
        action = 'left out of the mean' if skipna else 'making affected scores NaN'
        logger.warning(f"{score_name}: {n_missing} matched genes have missing z-scores, {action}")
    scores = values.mean(axis=0, skipna=skipna)
    logger.info(f"{score_name}: {len(matched)} of {len(genes)} genes matched")
    return pd.DataFrame([[score_name] + scores.tolist()], columns=[gene_column] + sample_cols)


def plot_score_heatmap(scores: pd.DataFrame, color='darkorchid', gene_column='Gene'):
    """One heatmap row per score, samples along the x axis"""
    grid = scores.set_index(gene_column).astype(float)
    cmap = LinearSegmentedColormap.from_list('score', ['white', color])
    fig, ax = plt.subplots(figsize=(8, 8))
    sns.heatmap(grid, cmap=cmap, square=True, ax=ax,
                cbar_kws={'orientation': 'horizontal', 'shrink': 0.6})
    ax.set_xticklabels(ax.get_xticklabels(), rotation=45, ha='right', fontsize=10)
    ax.set_yticklabels(ax.get_yticklabels(), rotation=0, fontsize=10, color='black')
    ax.set_xlabel('')
    ax.set_ylabel('')
    plt.tight_layout()
    return fig


class SignatureAnalysis:
    """Writes gene-set score tables and heatmaps for a z-score matrix"""

    def __init__(self, output_dir=None, config=None):
        self.config = config or get_config()
        self.output_dir = output_dir or self.config['output_dir']
        self.gene_column = self.config['gene_column']
        self.skipna = self.config['skip_missing_z_scores']
        os.makedirs(self.output_dir, exist_ok=True)

    def z_score_calculations(self, expression_file):
        """Z-scores of tumor samples against the '.nr' normals; saved as z-scores_matrix.txt"""
        expression = load_table(expression_file)
        # first column holds the gene identifiers whatever its header
        expression = expression.rename(columns={expression.columns[0]: self.gene_column})
        z_scores = compute_z_scores(expression, gene_column=self.gene_column,
                                    normal_suffix=self.config['normal_suffix'])
        save_results(z_scores, self.output_dir, 'z-scores_matrix.txt')
        return z_scores

    def load_z_scores(self, path):
        z_scores = load_table(path)
        if self.gene_column not in z_scores.columns:
            raise MalformedInputError(f"Z-score matrix has no '{self.gene_column}' column",
                                      source=os.path.basename(str(path)))
        return z_scores

    def _write(self, scores, prefix, color):
        save_results(scores, self.output_dir, f"{prefix}_score.txt")
        fig = plot_score_heatmap(scores, color=color, gene_column=self.gene_column)
        save_plot(fig, f"{prefix}_scores_heatmap.png", self.output_dir, dpi=self.config['plot_dpi'])

    def signature(self, z_scores, name):
        """Score one bundled gene set by name"""
        try:
            score_name, prefix, color = BUILTIN_GENE_SETS[name]
        except KeyError:
            raise ValueError(f"Unknown gene set '{name}', expected one of "
                             f"{sorted(BUILTIN_GENE_SETS)}") from None
        gene_set = load_gene_set(name, self.gene_column)
        scores = score_gene_set(z_scores, gene_set, score_name, self.gene_column, self.skipna)
        self._write(scores, prefix, color)
        return scores

    def specified_geneset_signature(self, z_scores, gene_set_file):
        """Score a user-supplied gene-set file"""
        gene_set = load_gene_set(gene_set_file, self.gene_column)
        scores = score_gene_set(z_scores, gene_set, 'Geneset score', self.gene_column,
                                self.skipna)
        self._write(scores, 'Geneset', 'darkorchid')
        return scores

    def emt_scores(self, z_scores):
        """
        Epithelial and mesenchymal scores plus their difference.

        Writes Epithelial_Mesenchymal_scores.txt (both rows) and
        Mesenchymal-Epithelial_score.txt (mesenchymal minus epithelial) with its heatmap.
        """
        col = self.gene_column
        epithelial = score_gene_set(z_scores, load_gene_set('epithelial', col),
                                    BUILTIN_GENE_SETS['epithelial'][0], col, self.skipna)
        mesenchymal = score_gene_set(z_scores, load_gene_set('mesenchymal', col),
                                     BUILTIN_GENE_SETS['mesenchymal'][0], col, self.skipna)
        both = pd.concat([epithelial, mesenchymal], ignore_index=True)

        difference = mesenchymal.drop(columns=col) - epithelial.drop(columns=col)
        difference.insert(0, col, 'M-E score')

        save_results(both, self.output_dir, 'Epithelial_Mesenchymal_scores.txt')
        save_results(difference, self.output_dir, 'Mesenchymal-Epithelial_score.txt')
        fig = plot_score_heatmap(difference, color='gold', gene_column=col)
        save_plot(fig, 'Mesenchymal-Epithelial_score_heatmap.png', self.output_dir,
                  dpi=self.config['plot_dpi'])
        return both, difference
