import numpy as np
import pytest

from g3reg.trigrid import NodeType, TriGridField, TriGridIdx, TriGridParams


@pytest.fixture
def field():
    return TriGridField(TriGridParams(max_range=20.0, min_range=1.0))


def _cell_center(field, row, col):
    res = field.resolution
    return field.min_x + (row + 0.5) * res, field.min_y + (col + 0.5) * res


def test_grid_shape_matches_corners_and_centers(field):
    assert len(field.nodes) == field.rows
    assert all(len(row) == field.cols for row in field.nodes)
    assert len(field.corners) == field.rows + 1
    assert len(field.corners[0]) == field.cols + 1
    assert len(field.centers) == field.rows
    assert field.rows == field.cols


def test_corner_and_center_positions(field):
    assert field.corners[0][0].x == pytest.approx(-20.0)
    assert field.corners[0][0].y == pytest.approx(-20.0)
    cx, cy = _cell_center(field, 1, 2)
    assert field.centers[1][2].x == pytest.approx(cx)
    assert field.centers[1][2].y == pytest.approx(cy)


@pytest.mark.parametrize(
    "offset, tri",
    [((1.0, 0.0), 0), ((0.0, 1.0), 1), ((-1.0, 0.0), 2), ((0.0, -1.0), 3)],
)
def test_index_of_triangles(field, offset, tri):
    cx, cy = _cell_center(field, 1, 3)
    idx = field.index_of(cx + offset[0], cy + offset[1])
    assert idx == TriGridIdx(1, 3, tri)


def test_partial_last_row_is_part_of_field():
    field = TriGridField(TriGridParams(max_range=10.0, min_range=0.5))
    idx = field.index_of(9.5, 0.0)
    assert idx.row == field.rows - 1
    field.embed([[9.5, 0.0, 0.0]])
    assert len(field.outliers) == 0
    assert field[idx].is_curr_data


def test_embed_conserves_points_and_marks_nodes(field):
    cx, cy = _cell_center(field, 2, 1)
    pts = np.array(
        [
            [cx + 1.0, cy, 0.0],
            [cx + 2.0, cy, 0.5],
            [cx, cy + 1.0, 0.1],
            [0.2, 0.1, 0.0],
            [30.0, 0.0, 0.0],
        ]
    )
    field.embed(pts)
    total = sum(len(node.points) for row in field.nodes for cell in row for node in cell)
    assert total + len(field.outliers) == len(pts)
    assert len(field.outliers) == 2
    upper = field[TriGridIdx(2, 1, 0)]
    assert upper.is_curr_data
    np.testing.assert_allclose(upper.points, pts[:2])
    assert field.node_at(cx, cy + 1.0).is_curr_data


def test_embed_twice_accumulates(field):
    cx, cy = _cell_center(field, 2, 2)
    field.embed([[cx + 1.0, cy, 0.0]])
    field.embed([[cx + 2.0, cy, 0.0]])
    assert len(field.node_at(cx + 1.0, cy).points) == 2


def test_clear_resets_nodes_and_outliers(field):
    cx, cy = _cell_center(field, 0, 0)
    field.embed([[cx + 1.0, cy, 0.0], [50.0, 50.0, 0.0]])
    node = field.node_at(cx + 1.0, cy)
    node.node_type = NodeType.GROUND
    field.corners[0][0].zs.append(1.0)
    field.clear()
    fresh = field.node_at(cx + 1.0, cy)
    assert not fresh.is_curr_data
    assert fresh.node_type is NodeType.UNKNOWN
    assert fresh.depth == -1
    assert len(fresh.points) == 0
    assert len(field.outliers) == 0
    assert field.corners[0][0].zs == []


def test_node_at_outside_field_raises(field):
    with pytest.raises(IndexError):
        field.node_at(100.0, 0.0)


def test_invalid_resolution_raises():
    with pytest.raises(ValueError):
        TriGridField(TriGridParams(max_range=10.0, min_range=1.0, resolution=0.0))