"""Tri-grid field: a square grid of cells, each split into four triangles, holding points."""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field
from typing import NamedTuple

import numpy as np


class NodeType(enum.IntEnum):
    """Terrain label of a tri-grid node."""

    UNKNOWN = 1
    NONGROUND = 2
    GROUND = 3


class TriGridIdx(NamedTuple):
    """Grid row, grid column and triangle (0 upper, 1 left, 2 lower, 3 right)."""

    row: int
    col: int
    tri: int


def _empty_cloud() -> np.ndarray:
    return np.empty((0, 3), dtype=float)


@dataclass(eq=False)
class TriGridNode:
    """One triangle of a cell: its points, planar model and search state."""

    node_type: NodeType = NodeType.UNKNOWN
    points: np.ndarray = field(default_factory=_empty_cloud)
    is_curr_data: bool = False
    normal: np.ndarray = field(default_factory=lambda: np.zeros(3))
    mean_pt: np.ndarray = field(default_factory=lambda: np.zeros(3))
    d: float = 0.0
    singular_values: np.ndarray = field(default_factory=lambda: np.zeros(3))
    eigen_vectors: np.ndarray = field(default_factory=lambda: np.zeros((3, 3)))
    weight: float = 0.0
    th_dist_d: float = 0.0
    th_outlier_d: float = 0.0
    need_recheck: bool = False
    is_visited: bool = False
    is_rejection: bool = False
    check_life: int = 10
    depth: int = -1


@dataclass
class TriGridCorner:
    """A grid corner or cell centre collecting candidate heights and their weights."""

    x: float = 0.0
    y: float = 0.0
    zs: list[float] = field(default_factory=list)
    weights: list[float] = field(default_factory=list)


@dataclass
class TriGridParams:
    """Ranges, grid resolution and thresholds of the ground segmentation."""

    max_range: float
    min_range: float
    resolution: float = 8.0
    num_iter: int = 3
    num_lpr: int = 5
    num_min_points: int = 10
    th_seeds: float = 0.5
    th_dist: float = 0.125
    th_outlier: float = 0.3
    th_normal: float = 0.940
    th_weight: float = 200.0
    th_lcc_normal_similarity: float = 0.03
    th_lcc_planar_model_dist: float = 0.1
    th_obstacle_height: float = 1.0
    refine_mode: bool = True


_QUARTER = math.pi / 4


def _triangles(angle: np.ndarray) -> np.ndarray:
    return np.select(
        [
            (angle >= _QUARTER) & (angle < 3 * _QUARTER),
            (angle >= -_QUARTER) & (angle < _QUARTER),
            (angle >= -3 * _QUARTER) & (angle < -_QUARTER),
        ],
        [1, 0, 3],
        default=2,
    )


class TriGridField:
    """The tri-grid over [-max_range, max_range]^2 with its corners and centres."""

    def __init__(self, params: TriGridParams) -> None:
        if params.resolution <= 0:
            raise ValueError("resolution must be positive")
        if params.max_range <= 0:
            raise ValueError("max_range must be positive")
        self.params = params
        self.resolution = float(params.resolution)
        self.max_x = self.max_y = float(params.max_range)
        self.min_x = self.min_y = -float(params.max_range)
        self.rows = math.ceil(int(self.max_x - self.min_x) / self.resolution)
        self.cols = math.ceil(int(self.max_y - self.min_y) / self.resolution)
        self.clear()

    def clear(self) -> None:
        """Reset every node, corner and centre, and drop the outliers."""
        res = self.resolution
        self.nodes: list[list[list[TriGridNode]]] = [
            [[TriGridNode() for _ in range(4)] for _ in range(self.cols)]
            for _ in range(self.rows)
        ]
        self.corners: list[list[TriGridCorner]] = [
            [TriGridCorner(r * res + self.min_x, c * res + self.min_y) for c in range(self.cols + 1)]
            for r in range(self.rows + 1)
        ]
        self.centers: list[list[TriGridCorner]] = [
            [
                TriGridCorner((r + 0.5) * res + self.min_x, (c + 0.5) * res + self.min_y)
                for c in range(self.cols)
            ]
            for r in range(self.rows)
        ]
        self.outliers = _empty_cloud()

    def __getitem__(self, idx) -> TriGridNode:
        row, col, tri = idx
        if not (0 <= row < self.rows and 0 <= col < self.cols and 0 <= tri < 4):
            raise IndexError(f"tri-grid index {tuple(idx)} is outside the field")
        return self.nodes[row][col][tri]

    def index_of(self, x: float, y: float) -> TriGridIdx:
        """Index of the triangle containing (x, y); not checked against the field bounds."""
        res = self.resolution
        row = int((x - self.min_x) / res)
        col = int((y - self.min_y) / res)
        angle = math.atan2(
            y - (col * res + res / 2 + self.min_y),
            x - (row * res + res / 2 + self.min_x),
        )
        tri = int(_triangles(np.array([angle]))[0])
        return TriGridIdx(row, col, tri)

    def node_at(self, x: float, y: float) -> TriGridNode:
        return self[self.index_of(x, y)]

    def embed(self, points) -> None:
        """Sort (N, 3) points into their triangles; the rest go to the outliers."""
        pts = np.asarray(points, dtype=float).reshape(-1, 3)
        if len(pts) == 0:
            return
        res = self.resolution
        xy_range = np.hypot(pts[:, 0], pts[:, 1])
        in_range = (xy_range < self.params.max_range) & (xy_range > self.params.min_range)
        with np.errstate(invalid="ignore"):
            rows = np.trunc((pts[:, 0] - self.min_x) / res)
            cols = np.trunc((pts[:, 1] - self.min_y) / res)
        inside = in_range & (rows >= 0) & (rows < self.rows) & (cols >= 0) & (cols < self.cols)
        if not inside.all():
            self.outliers = np.vstack([self.outliers, pts[~inside]])
        selected = pts[inside]
        if len(selected) == 0:
            return
        rows = rows[inside].astype(int)
        cols = cols[inside].astype(int)
        angle = np.arctan2(
            selected[:, 1] - (cols * res + res / 2 + self.min_y),
            selected[:, 0] - (rows * res + res / 2 + self.min_x),
        )
        keys = (rows * self.cols + cols) * 4 + _triangles(angle)
        order = np.argsort(keys, kind="stable")
        unique_keys, starts = np.unique(keys[order], return_index=True)
        for key, members in zip(unique_keys, np.split(order, starts[1:])):
            cell, tri = divmod(int(key), 4)
            row, col = divmod(cell, self.cols)
            node = self.nodes[row][col][tri]
            node.points = np.vstack([node.points, selected[members]])
            node.is_curr_data = True