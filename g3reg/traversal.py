"""Traversable-ground graph search and terrain refinement over a tri-grid field."""

from __future__ import annotations

from collections import deque

import numpy as np

from g3reg.terrain import find_dominant_node, local_convexity_concavity, neighbor_nodes
from g3reg.trigrid import NodeType, TriGridCorner, TriGridField, TriGridIdx, TriGridNode


def traversable_graph_search(field: TriGridField) -> None:
    """Breadth-first search from the dominant node, labelling connected ground.

    Ground nodes whose plane disagrees with the node they are reached from are
    rejected as non-ground. When the search runs dry, every unvisited ground
    node is taken as a new seed.
    """
    params = field.params
    dominant = find_dominant_node(field)
    start = field[dominant]
    start.is_visited = True
    start.depth = 0
    start.node_type = NodeType.GROUND

    queue: deque[TriGridIdx] = deque([dominant])
    while queue:
        current_idx = queue.popleft()
        current = field[current_idx]
        for n_idx in neighbor_nodes(current_idx, field.rows, field.cols):
            neighbor = field[n_idx]
            if neighbor.depth >= 0 or neighbor.is_visited:
                continue
            if neighbor.node_type != NodeType.GROUND:
                continue
            neighbor.is_visited = True
            if not local_convexity_concavity(
                current,
                neighbor,
                params.th_lcc_normal_similarity,
                params.th_lcc_planar_model_dist,
            ):
                neighbor.is_rejection = True
                neighbor.node_type = NodeType.NONGROUND
                if neighbor.check_life > 0:
                    neighbor.check_life -= 1
                    neighbor.need_recheck = True
                else:
                    neighbor.need_recheck = False
                continue
            neighbor.node_type = NodeType.GROUND
            neighbor.is_rejection = False
            neighbor.depth = current.depth + 1
            queue.append(n_idx)

        if not queue:
            for r, row in enumerate(field.nodes):
                for c, cell in enumerate(row):
                    for s, node in enumerate(cell):
                        if node.is_visited or node.node_type != NodeType.GROUND or node.depth >= 0:
                            continue
                        node.depth = 0
                        node.is_visited = True
                        queue.append(TriGridIdx(r, c, s))


def corner_weight(node: TriGridNode, corner_x: float, corner_y: float) -> float:
    """Node weight divided by the planar distance from its mean point to the corner."""
    dist = np.hypot(float(node.mean_pt[0]) - corner_x, float(node.mean_pt[1]) - corner_y)
    with np.errstate(divide="ignore", invalid="ignore"):
        return float(np.float64(node.weight) / np.float64(dist))


def _plane_height(node: TriGridNode, x: float, y: float) -> float:
    n = node.normal
    with np.errstate(divide="ignore", invalid="ignore"):
        return float(np.float64(-n[0] * x - n[1] * y - node.d) / np.float64(n[2]))


def _triangle_corners(field: TriGridField, r: int, c: int, tri: int) -> list[TriGridCorner]:
    """The two grid corners and the cell centre spanning a triangle."""
    top_left = field.corners[r + 1][c + 1]
    bottom_left = field.corners[r][c + 1]
    bottom_right = field.corners[r][c]
    top_right = field.corners[r + 1][c]
    center = field.centers[r][c]
    pairs = {
        0: (top_right, top_left),
        1: (top_left, bottom_left),
        2: (bottom_left, bottom_right),
        3: (bottom_right, top_right),
    }
    first, second = pairs[tri]
    return [first, second, center]


def set_corners_centers(field: TriGridField) -> None:
    """Let every accepted ground node vote a height at its triangle's corners and centre."""
    for r in range(field.rows):
        for c in range(field.cols):
            for s, node in enumerate(field.nodes[r][c]):
                if node.node_type != NodeType.GROUND or node.is_rejection or node.depth == -1:
                    continue
                for corner in _triangle_corners(field, r, c, s):
                    corner.zs.append(_plane_height(node, corner.x, corner.y))
                    corner.weights.append(corner_weight(node, corner.x, corner.y))


def mean_corner(corner: TriGridCorner) -> TriGridCorner:
    """A corner holding the weighted mean height and the total weight."""
    zs = np.asarray(corner.zs, dtype=float)
    weights = np.asarray(corner.weights, dtype=float)
    sum_w = float(weights.sum())
    with np.errstate(divide="ignore", invalid="ignore"):
        mean_z = float(np.float64((zs * weights).sum()) / np.float64(sum_w))
    return TriGridCorner(corner.x, corner.y, [mean_z], [sum_w])


def _collapse(grid: list[list[TriGridCorner]]) -> None:
    for row in grid:
        for c, corner in enumerate(row):
            if corner.zs and corner.weights:
                row[c] = mean_corner(corner)
            else:
                corner.zs.clear()
                corner.weights.clear()


def update_corners_centers(field: TriGridField) -> None:
    """Replace the votes at every corner and centre by their weighted mean."""
    _collapse(field.corners)
    _collapse(field.centers)


def _corner_vector(corner: TriGridCorner) -> np.ndarray:
    return np.array([corner.x, corner.y, corner.zs[0]], dtype=float)


def revert_traversable_nodes(field: TriGridField) -> None:
    """Refit each node's plane through its refined corners and centre and relabel it."""
    params = field.params
    for r in range(field.rows):
        for c in range(field.cols):
            for s, node in enumerate(field.nodes[r][c]):
                corners = _triangle_corners(field, r, c, s)
                if any(not corner.zs for corner in corners):
                    if node.node_type != NodeType.NONGROUND:
                        node.node_type = NodeType.UNKNOWN
                    continue
                first, second, center = (_corner_vector(corner) for corner in corners)
                normal = np.cross(first - center, second - center)
                with np.errstate(divide="ignore", invalid="ignore"):
                    normal = normal / np.linalg.norm(normal)
                node.normal = normal
                if normal[2] < params.th_normal:
                    node.node_type = NodeType.NONGROUND
                    continue
                mean = (first + second + center) / 3
                node.mean_pt = mean
                node.d = -float(normal @ mean)
                node.th_dist_d = params.th_dist - node.d
                node.th_outlier_d = -params.th_outlier - node.d
                node.node_type = NodeType.GROUND


def fit_terrain_model(field: TriGridField) -> None:
    """Average the corner votes, then refit and relabel every node."""
    update_corners_centers(field)
    revert_traversable_nodes(field)