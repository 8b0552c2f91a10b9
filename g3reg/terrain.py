"""Node-wise terrain modelling on a tri-grid field: seeds, planar fits and neighbourhoods."""

from __future__ import annotations

import math

import numpy as np

from g3reg.trigrid import NodeType, TriGridField, TriGridIdx, TriGridNode, TriGridParams


def extract_initial_seeds(sorted_points, num_lpr: int, th_seeds: float, th_outlier: float) -> np.ndarray:
    """Select ground seeds from points sorted by ascending z.

    The reference height is the mean z of the lowest ``num_lpr`` points. A point
    is kept when it lies below that height plus ``th_seeds``. Points lower than
    the height minus ``th_outlier`` are dropped.
    """
    pts = np.asarray(sorted_points, dtype=float).reshape(-1, 3)
    if len(pts) == 0:
        return pts.copy()
    lowest = pts[: max(num_lpr, 0), 2]
    lpr_height = float(lowest.mean()) if len(lowest) else 0.0
    z = pts[:, 2]
    keep = (z < lpr_height + th_seeds) & ~(z < lpr_height - th_outlier)
    return pts[keep]


def estimate_planar_model(points, node: TriGridNode, th_dist: float, th_outlier: float) -> None:
    """Fit a plane to points and store normal, mean, offset and thresholds on node."""
    pts = np.asarray(points, dtype=float).reshape(-1, 3)
    if len(pts) == 0:
        raise ValueError("at least one point is required to fit a plane")
    mean = pts.mean(axis=0)
    centered = pts - mean
    cov = centered.T @ centered / len(pts)
    u, singular_values, _ = np.linalg.svd(cov)
    vectors = u.copy()
    if vectors[2, 2] < 0:
        vectors[:, 0] *= -1
        vectors[:, 2] *= -1
    node.eigen_vectors = vectors
    node.normal = vectors[:, 2].copy()
    node.singular_values = singular_values
    node.mean_pt = mean
    node.d = -float(node.normal @ mean)
    node.th_dist_d = th_dist - node.d
    node.th_outlier_d = -node.d - th_outlier


def model_pca_terrain(node: TriGridNode, params: TriGridParams) -> None:
    """Iteratively fit the node's ground plane and label it ground or non-ground."""
    pts = np.asarray(node.points, dtype=float).reshape(-1, 3)
    sorted_pts = pts[np.argsort(pts[:, 2], kind="stable")]
    seeds = extract_initial_seeds(sorted_pts, params.num_lpr, params.th_seeds, params.th_outlier)
    for i in range(params.num_iter):
        if len(seeds):
            estimate_planar_model(seeds, node, params.th_dist, params.th_outlier)
        if len(seeds) < 3:
            node.node_type = NodeType.NONGROUND
            break
        if i < params.num_iter - 1:
            seeds = sorted_pts[sorted_pts @ node.normal < node.th_dist_d]
        elif len(sorted_pts):
            node.node_type = NodeType.NONGROUND if node.normal[2] < params.th_normal else NodeType.GROUND


def node_weight(node: TriGridNode) -> float:
    """Planarity weight of a node from its singular values."""
    s = node.singular_values
    return float((s[0] + s[1]) * s[1] / (s[0] * s[2] + 0.001))


def model_terrain(field: TriGridField) -> None:
    """Model every node that received points in the current scan."""
    params = field.params
    for row in field.nodes:
        for cell in row:
            for node in cell:
                if not node.is_curr_data:
                    continue
                if len(node.points) < params.num_min_points:
                    node.node_type = NodeType.UNKNOWN
                    continue
                model_pca_terrain(node, params)
                if node.node_type == NodeType.GROUND:
                    node.weight = node_weight(node)


def find_dominant_node(field: TriGridField) -> TriGridIdx:
    """Heaviest ground node in the 4x4 cells around the sensor origin."""
    ego_row = int((0 - field.min_x) / field.resolution)
    ego_col = int((0 - field.min_y) / field.resolution)
    best = TriGridIdx(ego_row, ego_col, 0)
    for r in range(ego_row - 2, ego_row + 2):
        if not 0 <= r < field.rows:
            continue
        for c in range(ego_col - 2, ego_col + 2):
            if not 0 <= c < field.cols:
                continue
            for s in range(4):
                node = field.nodes[r][c][s]
                if not node.is_curr_data or node.node_type != NodeType.GROUND:
                    continue
                # the reference weight is read at (row, row, tri) of the current best
                ref_row, ref_col = best.row, best.row
                if 0 <= ref_row < field.rows and 0 <= ref_col < field.cols:
                    ref_weight = field.nodes[ref_row][ref_col][best.tri].weight
                else:
                    ref_weight = -math.inf
                if node.weight > ref_weight:
                    best = TriGridIdx(r, c, s)
    return best


_NEIGHBOR_OFFSETS = {
    0: [(1, 1, 2), (1, 1, 3), (1, 0, 1), (1, 0, 2), (1, 0, 3), (1, -1, 1), (1, -1, 2),
        (0, 1, 0), (0, 1, 3), (0, -1, 0), (0, -1, 1)],
    1: [(1, 1, 2), (1, 1, 3), (1, 0, 1), (1, 0, 2), (0, 1, 0), (0, 1, 2), (0, 1, 3),
        (-1, 1, 0), (-1, 1, 3), (-1, 1, 0), (-1, 0, 1)],
    2: [(0, 1, 2), (0, 1, 3), (0, -1, 1), (0, -1, 2), (-1, 1, 0), (-1, 1, 3), (-1, 0, 0),
        (-1, 0, 1), (-1, 0, 3), (-1, -1, 0), (-1, -1, 1)],
    3: [(1, 0, 2), (1, 0, 3), (1, -1, 1), (1, -1, 2), (0, -1, 0), (0, -1, 1), (0, -1, 2),
        (-1, 0, 0), (-1, 0, 3), (-1, -1, 0), (-1, -1, 1)],
}

_ADJACENT_OFFSETS = {
    0: [(1, 0, 2), (0, 0, 3), (0, 0, 1)],
    1: [(0, 1, 3), (0, 0, 0), (0, 0, 2)],
    2: [(-1, 0, 0), (0, 0, 1), (0, 0, 3)],
    3: [(0, -1, 1), (0, 0, 2), (0, 0, 0)],
}


def _in_bounds(candidates, rows: int, cols: int) -> list[TriGridIdx]:
    return [idx for idx in candidates if 0 <= idx.row < rows and 0 <= idx.col < cols]


def neighbor_nodes(idx, rows: int, cols: int) -> list[TriGridIdx]:
    """Triangles sharing a cell or a vertex region with idx, inside the grid."""
    r, c, t = idx
    candidates = [TriGridIdx(r, c, s) for s in range(4) if s != t]
    candidates += [TriGridIdx(r + dr, c + dc, s) for dr, dc, s in _NEIGHBOR_OFFSETS.get(t, [])]
    return _in_bounds(candidates, rows, cols)


def adjacent_nodes(idx, rows: int, cols: int) -> list[TriGridIdx]:
    """The up to three triangles sharing an edge with idx, inside the grid."""
    r, c, t = idx
    candidates = [TriGridIdx(r + dr, c + dc, s) for dr, dc, s in _ADJACENT_OFFSETS.get(t, [])]
    return _in_bounds(candidates, rows, cols)


def local_convexity_concavity(current: TriGridNode, neighbor: TriGridNode,
                              thr_normal: float, thr_dist: float) -> bool:
    """True when two nodes' planes agree in orientation and height."""
    normal_src = np.asarray(current.normal, dtype=float)
    normal_tgt = np.asarray(neighbor.normal, dtype=float)
    diff = np.asarray(neighbor.mean_pt, dtype=float) - np.asarray(current.mean_pt, dtype=float)
    diff_norm = float(np.linalg.norm(diff))
    dist_s2t = float(normal_src @ diff)
    dist_t2s = float(normal_tgt @ -diff)
    similarity = float(normal_src @ normal_tgt)
    if similarity < 1 - math.sin(diff_norm * thr_normal):
        return False
    th_planar = diff_norm * math.sin(thr_dist)
    return not (abs(dist_s2t) > th_planar or abs(dist_t2s) > th_planar)