"""
Tree I/O
Conversion between PhyloTree and Bio.Phylo trees, Newick / NEXUS files
"""

import io
import logging
import os

from Bio import Phylo
from Bio.Phylo.BaseTree import Clade, Tree
from Bio.Phylo.NewickIO import NewickError

from ..errors import MalformedInputError
from .neighbor_joining import PhyloTree

logger = logging.getLogger(__name__)

TREE_FORMATS = ('newick', 'nexus')

# 17 significant digits reproduce any double exactly
BRANCH_LENGTH_FORMAT = '%.17g'


def to_biopython(tree: PhyloTree, name=None) -> Tree:
    """Convert to an unrooted Bio.Phylo tree hanging from the central node"""

    def build(node, length):
        if node < tree.n_tips:
            return Clade(branch_length=length, name=tree.tip_labels[node])
        clade = Clade(branch_length=length)
        for child, idx in tree.children(node):
            clade.clades.append(build(child, float(tree.edge_lengths[idx])))
        return clade

    return Tree(root=build(tree.root, 0.0), rooted=False, name=name)


def from_biopython(bio_tree) -> PhyloTree:
    """Convert a Bio.Phylo tree back into a PhyloTree, tips in terminal order"""
    terminals = bio_tree.get_terminals()
    labels = [t.name for t in terminals]
    if any(label is None for label in labels):
        raise MalformedInputError("Tree has unlabelled tips")
    tip_ids = {id(t): i for i, t in enumerate(terminals)}
    edges = []
    lengths = []
    next_node = len(terminals)

    def visit(clade):
        nonlocal next_node
        if clade.is_terminal():
            return tip_ids[id(clade)]
        node = next_node
        next_node += 1
        for child in clade.clades:
            edges.append((node, visit(child)))
            lengths.append(child.branch_length if child.branch_length is not None else 0.0)
        return node

    visit(bio_tree.root)
    return PhyloTree(labels, edges, lengths)


def tree_to_newick(tree: PhyloTree) -> str:
    handle = io.StringIO()
    Phylo.write(to_biopython(tree), handle, 'newick', format_branch_length=BRANCH_LENGTH_FORMAT)
    return handle.getvalue().strip()


def write_tree(tree: PhyloTree, path, fmt='newick', name=None):
    """Write a tree to `path` in Newick or NEXUS format"""
    if fmt not in TREE_FORMATS:
        raise ValueError(f"Unsupported tree format '{fmt}', expected one of {TREE_FORMATS}")
    out_dir = os.path.dirname(str(path))
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)
    Phylo.write(to_biopython(tree, name=name), str(path), fmt,
                format_branch_length=BRANCH_LENGTH_FORMAT)
    logger.info(f"Saved {fmt} tree to {path}")
    return path


def read_tree(path, fmt='newick') -> PhyloTree:
    """Read the single tree stored in a Newick or NEXUS file"""
    if fmt not in TREE_FORMATS:
        raise ValueError(f"Unsupported tree format '{fmt}', expected one of {TREE_FORMATS}")
    try:
        bio_tree = Phylo.read(str(path), fmt)
    except (NewickError, ValueError) as e:
        raise MalformedInputError(f"Cannot parse {fmt} tree: {e}",
                                  source=os.path.basename(str(path))) from e
    return from_biopython(bio_tree)
