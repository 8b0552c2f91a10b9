"""Vertices of a consistency graph built from matched geometric primitives."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

import numpy as np


class VertexType(enum.Enum):
    """Kind of primitive a graph vertex stands for."""

    DEFAULT = -1
    GAUSSIAN = 0
    POINT = 1
    POINT_RATIO = 2
    ELLIPSE = 3


@dataclass
class VertexInfo:
    """Type and noise bounds shared by the vertices of one association."""

    type: VertexType = VertexType.DEFAULT
    prior_bound: float = -1.0
    noise_bound_vec: list[float] = field(default_factory=list)


@dataclass(eq=False)
class GraphVertex:
    """A vertex carrying a centroid, its covariance and the vertex description."""

    centroid: np.ndarray = field(default_factory=lambda: np.zeros(3))
    covariance: np.ndarray = field(default_factory=lambda: np.eye(3))
    vertex_info: VertexInfo = field(default_factory=VertexInfo)

    def __post_init__(self) -> None:
        self.centroid = np.asarray(self.centroid, dtype=float).reshape(3)
        self.covariance = np.asarray(self.covariance, dtype=float).reshape(3, 3)

    def norm(self) -> float:
        """Euclidean length of the centroid."""
        return float(np.linalg.norm(self.centroid))

    def m_dist(self) -> float:
        """Squared Mahalanobis length of the centroid under its covariance."""
        return float(self.centroid @ np.linalg.inv(self.covariance) @ self.centroid)

    def num_graphs(self) -> int:
        """Number of noise bounds, one per consistency graph."""
        return len(self.vertex_info.noise_bound_vec)

    def vertex_type(self) -> int:
        return self.vertex_info.type.value

    def __sub__(self, other: "GraphVertex") -> "GraphVertex":
        """The generic vertex carries no geometry to subtract; yields a blank vertex."""
        if not isinstance(other, GraphVertex):
            return NotImplemented
        return GraphVertex()

    def consistent(self, other: "GraphVertex") -> np.ndarray:
        """The generic vertex is never consistent: a single zero score."""
        return np.zeros(1)