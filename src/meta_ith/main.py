"""
meta-ITH Main Script
Command-line entry point for the dendrogram, divergence and signature analyses
"""

import argparse
import logging
import os
import sys

from .dendrograms.dendrogram_analysis import DendrogramAnalysis
from .divergence.divergence_analysis import multi_level_divergence_diversity
from .errors import MetaITHError
from .signatures.gene_sets import BUILTIN_GENE_SETS
from .signatures.signature_analysis import SignatureAnalysis
from .utils.shared_functions import CONFIG, get_config, setup_logging
from .variants.snv_heatmaps import SNVHeatmaps

logger = logging.getLogger('meta_ith')


def parse_args(argv=None):
    """Parse command line arguments."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument('--output-dir', type=str, default=None,
                        help='Directory for all outputs (default: current directory)')
    common.add_argument('--normal-label', type=str, default=None,
                        help=f"Column name of the normal sample (default: {CONFIG['normal_label']})")
    common.add_argument('--log-level', type=str, default='INFO',
                        help='Logging level (default: INFO)')
    common.add_argument('--log-file', type=str, default=None,
                        help='Also write the log to this file')

    batch = argparse.ArgumentParser(add_help=False)
    batch.add_argument('--workers', type=int, default=None,
                       help='Number of samples processed in parallel (default: 1)')

    trees = argparse.ArgumentParser(add_help=False)
    trees.add_argument('--tree-format', choices=['newick', 'nexus'], default=None,
                       help=f"Tree file format (default: {CONFIG['tree_format']})")
    trees.add_argument('--clamp-negative', action='store_true',
                       help='Set negative neighbor-joining branch lengths to zero')

    parser = argparse.ArgumentParser(description='Multi-region tumor heterogeneity analysis')
    subparsers = parser.add_subparsers(dest='command', required=True)

    dendro = subparsers.add_parser('dendrograms', parents=[common, batch, trees],
                                   help='Distance matrices, trees and dendrograms per sample file')
    dendro.add_argument('list_file', help='Text file with one sample matrix file per line')
    dendro.add_argument('--layer', choices=CONFIG['layers'], required=True,
                        help='Omic layer of the listed matrices')
    dendro.add_argument('--no-plot', action='store_true', help='Skip the dendrogram images')

    divergence = subparsers.add_parser('divergence', parents=[common, batch, trees],
                                       help='Multi-level divergence and diversity analysis')
    divergence.add_argument('samples_file', help='Text file with one sample name per line')
    divergence.add_argument('--tree-distance', choices=['score', 'PH85'], default='score',
                            help='DNA/RNA tree comparison method (default: score)')
    divergence.add_argument('--no-plot', action='store_true', help='Skip the comparison figure')

    snv = subparsers.add_parser('snv-heatmaps', parents=[common, batch],
                                help='VAF heatmap per DNA sample file')
    snv.add_argument('list_file', help='Text file with one DNA matrix file per line')

    missing = argparse.ArgumentParser(add_help=False)
    missing.add_argument('--propagate-missing', action='store_true',
                         help='Score is NaN when any matched gene lacks a z-score')

    zscores = subparsers.add_parser('zscores', parents=[common],
                                    help='Z-scores of tumor samples against normals')
    zscores.add_argument('expression_file', help='Genes x samples expression matrix')
    zscores.add_argument('--normal-suffix', type=str, default=None,
                         help=f"Suffix marking normal columns (default: {CONFIG['normal_suffix']})")

    signature = subparsers.add_parser('signature', parents=[common, missing],
                                      help='Gene-set score table and heatmap')
    signature.add_argument('z_score_file', help='Z-score matrix with a Gene column')
    source = signature.add_mutually_exclusive_group(required=True)
    source.add_argument('--name', choices=sorted(BUILTIN_GENE_SETS), help='Bundled gene set')
    source.add_argument('--gene-set', type=str, help='Gene-set file with a Gene header')

    emt = subparsers.add_parser('emt', parents=[common, missing],
                                help='Epithelial, mesenchymal and M-E scores')
    emt.add_argument('z_score_file', help='Z-score matrix with a Gene column')

    return parser.parse_args(argv)


def _report(batch):
    print(batch.summary())
    for failure in batch.failures:
        print(f"  FAILED {failure}")
    return 1 if batch.failures else 0


def main(argv=None):
    args = parse_args(argv)
    config = get_config(
        output_dir=args.output_dir,
        normal_label=args.normal_label,
        tree_format=getattr(args, 'tree_format', None),
        n_workers=getattr(args, 'workers', None),
        normal_suffix=getattr(args, 'normal_suffix', None),
        clamp_negative_branches=getattr(args, 'clamp_negative', False) or None,
        skip_missing_z_scores=False if getattr(args, 'propagate_missing', False) else None,
    )
    log_file = args.log_file
    if log_file and not os.path.isabs(log_file):
        log_file = os.path.join(config['output_dir'], log_file)
    setup_logging(args.log_level, log_file)
    logger.info(f"Running '{args.command}' with output directory {config['output_dir']}")

    try:
        if args.command == 'dendrograms':
            analysis = DendrogramAnalysis(args.layer, config=config, render=not args.no_plot)
            return _report(analysis.run_from_list(args.list_file))

        if args.command == 'divergence':
            summary = multi_level_divergence_diversity(
                args.samples_file, config=config, plot=not args.no_plot,
                tree_distance_method=args.tree_distance)
            if not summary.table.empty:
                print(summary.table.to_string())
            for failure in summary.failures:
                print(f"  FAILED {failure}")
            return 1 if summary.failures or not summary.samples else 0

        if args.command == 'snv-heatmaps':
            return _report(SNVHeatmaps(config=config).run_from_list(args.list_file))

        analysis = SignatureAnalysis(config=config)
        if args.command == 'zscores':
            z_scores = analysis.z_score_calculations(args.expression_file)
            print(f"Z-scores for {len(z_scores)} genes written to {config['output_dir']}")
            return 0

        z_scores = analysis.load_z_scores(args.z_score_file)
        if args.command == 'signature':
            if args.name:
                scores = analysis.signature(z_scores, args.name)
            else:
                scores = analysis.specified_geneset_signature(z_scores, args.gene_set)
            print(scores.to_string(index=False))
        elif args.command == 'emt':
            both, difference = analysis.emt_scores(z_scores)
            print(both.to_string(index=False))
            print(difference.to_string(index=False))
        return 0

    except (MetaITHError, ValueError, OSError) as e:
        logger.error(f"{args.command} failed [{type(e).__name__}]: {e}")
        return 1


def run():
    sys.exit(main())


if __name__ == "__main__":
    run()
