"""
Phylogeny package: distance matrices, neighbor-joining trees and their storage
"""

from .distance import compute_distance_matrix
from .neighbor_joining import PhyloTree, neighbor_joining
from .tree_compare import branch_score, topological_distance, tree_distance
from .tree_io import from_biopython, read_tree, to_biopython, tree_to_newick, write_tree
from .artifacts import ArtifactStore, read_matrix_file, write_matrix_file
