"""
Dendrogram Plotting
Unrooted (equal-angle) drawing of neighbor-joining trees
"""

import math

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt


def unrooted_layout(tree):
    """
    Equal-angle coordinates for every node.

    Each subtree gets a wedge proportional to its number of tips; an edge is drawn
    along the bisector of its child's wedge, with length |branch length|.

    Returns:
    --------
    dict
        node id -> (x, y)
    """
    n_leaves = {}

    def count(node):
        if node < tree.n_tips:
            n_leaves[node] = 1
        else:
            n_leaves[node] = sum(count(child) for child, _ in tree.children(node))
        return n_leaves[node]

    root = tree.root
    count(root)
    positions = {root: (0.0, 0.0)}

    def place(node, start, wedge):
        angle = start
        x0, y0 = positions[node]
        for child, idx in tree.children(node):
            share = wedge * n_leaves[child] / n_leaves[node]
            mid = angle + share / 2
            length = abs(float(tree.edge_lengths[idx]))
            positions[child] = (x0 + length * math.cos(mid), y0 + length * math.sin(mid))
            place(child, angle, share)
            angle += share

    place(root, 0.0, 2 * math.pi)
    return positions


def plot_unrooted_tree(tree, title=None, normal_label=None, edge_width=6, font_size=14):
    """Draw an unrooted tree; the normal tip, if given, is labelled in bold"""
    positions = unrooted_layout(tree)
    fig, ax = plt.subplots(figsize=(8, 8))

    for parent, child in tree.edges:
        (x0, y0), (x1, y1) = positions[int(parent)], positions[int(child)]
        ax.plot([x0, x1], [y0, y1], color='black', linewidth=edge_width,
                solid_capstyle='round', zorder=1)

    xs = [p[0] for p in positions.values()]
    ys = [p[1] for p in positions.values()]
    span = max(max(xs) - min(xs), max(ys) - min(ys)) or 1.0
    offset = 0.06 * span

    for tip, label in enumerate(tree.tip_labels):
        x, y = positions[tip]
        angle = math.atan2(y, x)
        ax.text(x + offset * math.cos(angle), y + offset * math.sin(angle), label,
                ha='center', va='center', fontsize=font_size,
                fontweight='bold' if label == normal_label else 'normal')

    pad = 0.15 * span
    ax.set_xlim(min(xs) - pad, max(xs) + pad)
    ax.set_ylim(min(ys) - pad, max(ys) + pad)
    ax.set_aspect('equal')
    ax.axis('off')
    if title:
        ax.set_title(title, fontsize=font_size)
    return fig
