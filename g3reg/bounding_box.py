"""Minimum-area oriented bounding rectangles for roughly planar point sets."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field

import numpy as np


def _normalized(v: np.ndarray) -> np.ndarray:
    norm = np.linalg.norm(v)
    return v / norm if norm > 0 else v


def orthogonal_basis(normal) -> np.ndarray:
    """Return a 3x3 matrix whose columns are two vectors orthogonal to normal, then normal."""
    n = np.asarray(normal, dtype=float).reshape(3)
    v2 = _normalized(np.array([n[1] - n[2], -n[0], n[0]]))
    v3 = _normalized(np.cross(n, v2))
    return np.column_stack([v2, v3, n])


def _rotation_z(degrees: float) -> np.ndarray:
    rad = degrees * 3.14159 / 180.0
    c, s = np.cos(rad), np.sin(rad)
    return np.array([[c, -s, 0.0], [s, c, 0.0], [0.0, 0.0, 1.0]])


def convex_hull(points) -> list[int]:
    """Indices of the 2D convex hull in counter-clockwise order (monotone chain)."""
    pts = np.asarray(points, dtype=float).reshape(-1, 2)
    n = len(pts)
    if n < 3:
        return list(range(n))
    order = sorted(range(n), key=lambda i: (pts[i, 0], pts[i, 1]))

    def cross(o: int, a: int, b: int) -> float:
        return float(
            (pts[a, 0] - pts[o, 0]) * (pts[b, 1] - pts[o, 1])
            - (pts[a, 1] - pts[o, 1]) * (pts[b, 0] - pts[o, 0])
        )

    hull: list[int] = []
    for i in order:
        while len(hull) >= 2 and cross(hull[-2], hull[-1], i) <= 0:
            hull.pop()
        hull.append(i)
    lower_size = len(hull) + 1
    for i in reversed(order[:-1]):
        while len(hull) >= lower_size and cross(hull[-2], hull[-1], i) <= 0:
            hull.pop()
        hull.append(i)
    return hull[:-1]


@dataclass
class RotatedRect:
    """An oriented box: basis columns are its axes, size its extent along them."""

    basis: np.ndarray = field(default_factory=lambda: np.eye(3))
    size: np.ndarray = field(default_factory=lambda: np.zeros(3))
    area: float = sys.float_info.max
    score: float = sys.float_info.max
    bottom_left: np.ndarray = field(default_factory=lambda: np.zeros(3))
    top_right: np.ndarray = field(default_factory=lambda: np.zeros(3))

    @classmethod
    def from_points(cls, matrix, basis, degrees: float) -> "RotatedRect":
        """Box around the columns of a 3xN matrix, in basis turned by degrees about its z axis."""
        pts = np.asarray(matrix, dtype=float)
        if pts.ndim != 2 or pts.shape[0] != 3 or pts.shape[1] == 0:
            raise ValueError("matrix must have shape (3, N) with N > 0")
        rotated = np.asarray(basis, dtype=float) @ _rotation_z(degrees)
        local = rotated.T @ pts
        top_right = local.max(axis=1)
        bottom_left = local.min(axis=1)
        size = top_right - bottom_left
        area = float(size[0] * size[1])
        planar = local[:2].T
        d_lb = np.abs(planar - bottom_left[:2])
        d_rt = np.abs(planar - top_right[:2])
        dist = np.minimum(d_lb.min(axis=1), d_rt.min(axis=1))
        outside = (d_lb[:, 0] > size[0]) | (d_lb[:, 1] > size[1])
        score = area + float(np.sum(np.where(outside, dist * 1.414, dist)))
        return cls(rotated, size, area, score, bottom_left, top_right)

    def recalc(self, min_z: float, max_z: float) -> None:
        self.size[2] = max_z - min_z
        self.top_right[2] = max_z
        self.bottom_left[2] = min_z


def fitting_boundary(points, normal) -> RotatedRect:
    """Fit a tight oriented rectangle to (N, 3) points lying roughly in the plane of normal."""
    pts = np.asarray(points, dtype=float).reshape(-1, 3)
    if len(pts) == 0:
        raise ValueError("at least one point is required")
    basis = orthogonal_basis(normal)
    body = pts @ basis
    hull = convex_hull(body[:, :2])
    matrix = pts[hull].T

    lo, hi = 0.0, 90.0
    while hi - lo > 1:
        mid = (lo + hi) / 2
        left = RotatedRect.from_points(matrix, basis, (lo + mid) / 2)
        right = RotatedRect.from_points(matrix, basis, (hi + mid) / 2)
        if left.score < right.score:
            hi = mid
        else:
            lo = mid

    rect = RotatedRect.from_points(matrix, basis, (lo + hi) / 2)
    rect.recalc(float(body[:, 2].min()), float(body[:, 2].max()))
    return rect