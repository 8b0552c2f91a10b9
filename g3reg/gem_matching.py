"""Descriptors of geometric primitives and their pairwise dissimilarity."""

from __future__ import annotations

from dataclasses import dataclass, field
from itertools import product

import numpy as np

DescMap = dict[tuple[int, int, int], int]


@dataclass
class GEM:
    """A descriptor compared with others under a named metric (smaller is more similar)."""

    desc: np.ndarray | None = None
    metric: str = "2-norm"
    desc_map: DescMap = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.desc is not None:
            self.desc = np.asarray(self.desc, dtype=float).reshape(-1)

    def _require_desc(self, other: "GEM") -> None:
        if self.desc is None or other.desc is None:
            raise ValueError(f"metric {self.metric!r} needs a descriptor vector on both sides")

    def similarity(self, other: "GEM") -> float:
        if self.metric == "2-norm":
            self._require_desc(other)
            return float(np.linalg.norm(self.desc - other.desc))
        if self.metric == "iou3d":
            self._require_desc(other)
            w1, h1, l1 = (float(v) for v in self.desc[:3])
            w2, h2, l2 = (float(v) for v in other.desc[:3])
            intersect = abs(w1 - w2) * abs(h1 - h2) * abs(l1 - l2)
            union = w1 * h1 * l1 + w2 * h2 * l2 - intersect
            return 1.0 - intersect / union
        if self.metric == "hash_desc":
            score = 0
            for x, y, z in self.desc_map:
                for dx, dy, dz in product((-1, 0, 1), repeat=3):
                    if (x + dx, y + dy, z + dz) in other.desc_map:
                        score += 1
            # integer ratio: 1 only when no neighbouring voxels are shared
            return float(1 // (1 + score))
        raise ValueError("Unknown metric")