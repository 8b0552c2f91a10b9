import math

import numpy as np
import pytest

from g3reg.trigrid import NodeType, TriGridCorner, TriGridField, TriGridNode, TriGridParams
from g3reg.traversal import (
    corner_weight,
    fit_terrain_model,
    mean_corner,
    revert_traversable_nodes,
    set_corners_centers,
    traversable_graph_search,
    update_corners_centers,
)

_OFFSETS = {0: (2.0, 0.0), 1: (0.0, 2.0), 2: (-2.0, 0.0), 3: (0.0, -2.0)}


def _field(normal=(0.0, 0.0, 1.0), z0=1.0, ground=True):
    field = TriGridField(TriGridParams(max_range=16.0, min_range=0.0))
    n = np.asarray(normal, dtype=float)
    n = n / np.linalg.norm(n)
    for r in range(field.rows):
        for c in range(field.cols):
            center = field.centers[r][c]
            for s, node in enumerate(field.nodes[r][c]):
                dx, dy = _OFFSETS[s]
                x, y = center.x + dx, center.y + dy
                z = z0 + (-n[0] * x - n[1] * y) / n[2] if n[2] != 0 else z0
                node.node_type = NodeType.GROUND if ground else NodeType.UNKNOWN
                node.is_curr_data = True
                node.normal = n.copy()
                node.mean_pt = np.array([x, y, z])
                node.d = -float(n @ node.mean_pt)
                node.weight = 1.0
    return field


def test_grid_shape():
    field = _field()
    assert field.rows == 4 and field.cols == 4


def test_search_labels_connected_ground():
    field = _field()
    traversable_graph_search(field)
    assert field[(2, 2, 0)].depth == 0
    assert field[(2, 2, 1)].depth == 1
    for row in field.nodes:
        for cell in row:
            for node in cell:
                assert node.is_visited
                assert node.depth >= 0
                assert node.node_type == NodeType.GROUND


def test_search_rejects_tilted_node():
    field = _field()
    odd = field[(0, 0, 2)]
    odd.normal = np.array([1.0, 0.0, 1.0]) / math.sqrt(2)
    traversable_graph_search(field)
    assert odd.node_type == NodeType.NONGROUND
    assert odd.is_rejection
    assert odd.need_recheck
    assert odd.check_life == 9
    assert odd.depth == -1


def test_search_leaves_nonground_untouched():
    field = _field()
    other = field[(3, 3, 1)]
    other.node_type = NodeType.NONGROUND
    traversable_graph_search(field)
    assert other.depth == -1
    assert not other.is_visited
    assert other.node_type == NodeType.NONGROUND


def test_corner_weight_unit_distance_equals_weight():
    node = TriGridNode(mean_pt=np.array([1.0, 0.0, 5.0]), weight=7.5)
    assert corner_weight(node, 0.0, 0.0) == pytest.approx(7.5)


def test_corner_weight_scales_with_weight():
    a = TriGridNode(mean_pt=np.array([3.0, -2.0, 0.0]), weight=2.0)
    b = TriGridNode(mean_pt=np.array([3.0, -2.0, 0.0]), weight=4.0)
    assert corner_weight(b, 1.0, 1.0) == pytest.approx(2 * corner_weight(a, 1.0, 1.0))


def test_mean_corner_of_equal_heights():
    corner = TriGridCorner(3.0, 4.0, [2.5, 2.5, 2.5], [1.0, 2.0, 3.0])
    result = mean_corner(corner)
    assert result.x == 3.0 and result.y == 4.0
    assert result.zs == [pytest.approx(2.5)]
    assert result.weights == [pytest.approx(6.0)]


def test_mean_corner_lies_between_heights():
    corner = TriGridCorner(0.0, 0.0, [1.0, 5.0], [0.3, 0.7])
    z = mean_corner(corner).zs[0]
    assert 1.0 < z < 5.0


def test_set_corners_centers_single_node():
    field = TriGridField(TriGridParams(max_range=16.0, min_range=0.0))
    node = field[(1, 1, 0)]
    node.node_type = NodeType.GROUND
    node.depth = 0
    node.normal = np.array([0.0, 0.0, 1.0])
    node.d = -2.0
    node.weight = 1.0
    node.mean_pt = np.array([field.centers[1][1].x + 2, field.centers[1][1].y, 2.0])
    set_corners_centers(field)
    assert field.corners[2][1].zs == [pytest.approx(2.0)]
    assert field.corners[2][2].zs == [pytest.approx(2.0)]
    assert field.centers[1][1].zs == [pytest.approx(2.0)]
    assert field.corners[1][1].zs == []
    assert field.corners[1][2].zs == []


def test_set_corners_centers_skips_rejected_and_unsearched():
    field = _field()
    for row in field.nodes:
        for cell in row:
            for node in cell:
                node.is_rejection = True
                node.depth = 0
    set_corners_centers(field)
    assert all(not corner.zs for row in field.corners for corner in row)
    assert all(not center.zs for row in field.centers for center in row)


def test_update_corners_collapses_votes():
    field = _field(z0=3.0)
    traversable_graph_search(field)
    set_corners_centers(field)
    update_corners_centers(field)
    for row in field.corners:
        for corner in row:
            assert len(corner.zs) == 1
            assert corner.zs[0] == pytest.approx(3.0)
            assert len(corner.weights) == 1


def test_fit_flat_terrain_stays_ground():
    field = _field(z0=1.0)
    traversable_graph_search(field)
    set_corners_centers(field)
    fit_terrain_model(field)
    for row in field.nodes:
        for cell in row:
            for node in cell:
                assert node.node_type == NodeType.GROUND
                assert np.allclose(node.normal, [0.0, 0.0, 1.0])
                assert node.d == pytest.approx(-1.0)
                assert node.th_dist_d == pytest.approx(field.params.th_dist + 1.0)
                assert node.th_outlier_d == pytest.approx(1.0 - field.params.th_outlier)


def test_fit_steep_terrain_becomes_nonground():
    normal = np.array([-1.0, 0.0, 1.0]) / math.sqrt(2)
    field = _field(normal=normal, z0=0.0)
    traversable_graph_search(field)
    set_corners_centers(field)
    fit_terrain_model(field)
    for row in field.nodes:
        for cell in row:
            for node in cell:
                assert node.node_type == NodeType.NONGROUND
                assert np.allclose(node.normal, normal)


def test_revert_marks_nodes_without_corners_unknown():
    field = TriGridField(TriGridParams(max_range=16.0, min_range=0.0))
    kept = field[(0, 0, 3)]
    kept.node_type = NodeType.NONGROUND
    other = field[(0, 0, 1)]
    other.node_type = NodeType.GROUND
    revert_traversable_nodes(field)
    assert kept.node_type == NodeType.NONGROUND
    assert other.node_type == NodeType.UNKNOWN