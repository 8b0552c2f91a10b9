"""Dynamic curved-voxel clustering of point clouds in polar coordinates."""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np
import yaml


@dataclass
class DCVCParams:
    """Voxel sizes and range limits of the curved-voxel clustering."""

    start_r: float = 0.35
    delta_r: float = 0.0004
    delta_p: float = 1.2
    delta_a: float = 1.2
    min_seg: int = 80
    max_range: float = 120.0
    min_range: float = 0.5


def load_dcvc_params(config_path) -> DCVCParams:
    """Read the ``dcvc`` section of a YAML file; missing keys take defaults."""
    with open(config_path, encoding="utf-8") as handle:
        node = yaml.safe_load(handle) or {}
    section = node.get("dcvc") or {}

    def get(key: str, default, kind):
        value = section.get(key)
        return default if value is None else kind(value)

    return DCVCParams(
        start_r=get("startR", 0.35, float),
        delta_r=get("deltaR", 0.0004, float),
        delta_p=get("deltaP", 1.2, float),
        delta_a=get("deltaA", 1.2, float),
        max_range=get("max_range", 120.0, float),
        min_range=get("min_range", 0.5, float),
        min_seg=get("min_cluster_size", 20, int),
    )


def _round(x: float) -> int:
    """Round half away from zero."""
    return int(math.floor(x + 0.5)) if x >= 0 else -int(math.floor(-x + 0.5))


class DCVCCluster:
    """Segments a cloud by connecting points that share neighbouring curved voxels."""

    def __init__(self, params: DCVCParams | None = None) -> None:
        self.params = params if params is not None else DCVCParams()

    @classmethod
    def from_yaml(cls, config_path) -> "DCVCCluster":
        return cls(load_dcvc_params(config_path))

    def segment(self, points) -> list[np.ndarray]:
        """Return the clusters of an (N, 3) cloud holding at least min_seg points each."""
        cloud = np.asarray(points, dtype=float).reshape(-1, 3)
        if len(cloud) == 0:
            raise ValueError("point cloud is empty")
        p = self.params

        ranges = np.linalg.norm(cloud, axis=1)
        valid = (ranges < p.max_range) & (ranges > p.min_range)
        valid_idx = np.flatnonzero(valid)
        if len(valid_idx) == 0:
            return []

        rad2deg = 180.0 / math.pi
        r = ranges[valid_idx]
        pitch = np.arcsin(cloud[valid_idx, 2] / r) * rad2deg
        angle = np.arctan2(cloud[valid_idx, 1], cloud[valid_idx, 0])
        azimuth = np.where(angle > 0.0, angle, angle + 2 * math.pi) * rad2deg

        min_pitch = min(0.0, float(pitch.min()))
        max_pitch = max(0.0, float(pitch.max()))
        min_polar = min(5.0, float(r.min()))
        max_polar = max(5.0, float(r.max()))

        width = _round(360.0 / p.delta_a) + 1
        height = int((max_pitch - min_pitch) / p.delta_p)
        bounds: list[float] = []
        current = min_polar
        step = 1
        while current <= max_polar:
            increment = p.start_r - step * p.delta_r
            if increment <= 0:
                raise ValueError("radial voxel size shrinks to zero before covering the cloud")
            current += increment
            bounds.append(current)
            step += 1
        polar_num = len(bounds)

        def polar_index(radius: float) -> int:
            for i, bound in enumerate(bounds):
                if radius < bound:
                    return i
            return polar_num - 1

        def voxel_id(az: int, pol: int, pit: int) -> int:
            return (az * (polar_num + 1) + pol) + pit * (polar_num + 1) * (width + 1)

        cells: list[tuple[int, int, int]] = []
        voxel_map: dict[int, list[int]] = {}
        for k in range(len(valid_idx)):
            cell = (
                polar_index(float(r[k])),
                _round((float(pitch[k]) - min_pitch) / p.delta_p),
                _round(float(azimuth[k]) / p.delta_a),
            )
            cells.append(cell)
            voxel_map.setdefault(voxel_id(cell[2], cell[0], cell[1]), []).append(k)

        def neighbour_ids(pol: int, pit: int, az: int):
            for z in range(pit - 1, pit + 2):
                if z < 0 or z > height:
                    continue
                for y in range(pol - 1, pol + 2):
                    if y < 0 or y > polar_num:
                        continue
                    for x in range(az - 1, az + 2):
                        ax = width - 1 if x < 0 else x
                        if ax >= width:
                            ax = width
                        yield voxel_id(ax, y, z)

        labels = np.full(len(valid_idx), -1, dtype=int)
        label_count = 0
        for i, (pol, pit, az) in enumerate(cells):
            if labels[i] != -1:
                continue
            neighbours: list[int] = []
            if voxel_id(az, pol, pit) in voxel_map:
                for vid in neighbour_ids(pol, pit, az):
                    neighbours.extend(voxel_map.get(vid, ()))
            for j in neighbours:
                cur, nb = labels[i], labels[j]
                if cur != -1 and nb != -1 and cur != nb:
                    labels[labels == cur] = nb
                elif nb != -1:
                    labels[i] = nb
                elif cur != -1:
                    labels[j] = cur
            if labels[i] == -1:
                label_count += 1
                labels[i] = label_count
                labels[neighbours] = label_count

        groups: dict[int, list[int]] = {}
        for k, label in enumerate(labels):
            groups.setdefault(int(label), []).append(k)
        return [
            cloud[valid_idx[members]]
            for members in groups.values()
            if len(members) >= p.min_seg
        ]