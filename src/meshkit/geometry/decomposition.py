"""
Approximate convex decomposition for collision geometry.

Strategy:

1. Build the convex hull of the input vertices (qhull via trimesh). If the
   input is already convex (its volume matches the hull volume within
   ``concavity_threshold``), return that single hull.
2. Otherwise voxelize the input (``resolution`` ≈ number of voxels in the
   bounding box), fill the interior, and split voxel clusters recursively.
   Each step takes the cluster with the largest concavity cost
   (hull volume minus voxel volume) and cuts it with the axis-aligned plane
   that minimizes the children's summed cost.
3. Every cluster becomes one convex hull over its voxel corners, clipped to
   the input bounds.

There is no randomness anywhere: a given (input, max_convex_hulls,
resolution) always produces the same hulls.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

import numpy as np
import trimesh
from scipy.spatial import ConvexHull, QhullError

from meshkit.core.exceptions import InvalidInputError
from meshkit.core.logging import get_logger
from meshkit.core.mesh import SubMesh

logger = get_logger(__name__)

# unit-cube corner offsets, scaled by half the voxel pitch
_CORNERS = np.array(
    [[sx, sy, sz] for sx in (-1, 1) for sy in (-1, 1) for sz in (-1, 1)],
    dtype=np.float64,
)


def convex_decomposition(
    submesh: SubMesh,
    max_convex_hulls: int = 8,
    resolution: int = 20000,
    concavity_threshold: float = 0.02,
    max_split_candidates: int = 16,
) -> List[SubMesh]:
    """
    Approximate *submesh* by at most ``max_convex_hulls`` convex pieces.

    Args:
        submesh: Source triangle mesh.
        max_convex_hulls: Upper bound on the number of hulls returned.
        resolution: Approximate voxel count used for concave inputs. Higher
            values follow the shape more closely and cost more.
        concavity_threshold: Relative concavity (0..1) below which a shape or
            cluster is considered convex.
        max_split_candidates: Cutting planes evaluated per axis per split.

    Returns:
        Convex hull SubMeshes; empty if the input has no volume to hull

    Raises:
        InvalidInputError: If a numeric parameter is out of range
    """
    if int(max_convex_hulls) < 1:
        raise InvalidInputError(
            "max_convex_hulls must be >= 1", details={"max_convex_hulls": max_convex_hulls}
        )
    if int(resolution) < 1:
        raise InvalidInputError("resolution must be >= 1", details={"resolution": resolution})
    if not 0.0 <= concavity_threshold <= 1.0:
        raise InvalidInputError(
            "concavity_threshold must be within [0, 1]",
            details={"concavity_threshold": concavity_threshold},
        )
    if int(max_split_candidates) < 1:
        raise InvalidInputError("max_split_candidates must be >= 1")

    base_name = submesh.name or "submesh"

    if submesh.vertex_count == 0 or submesh.index_count == 0:
        logger.warning("convex_decomposition_empty_input", submesh=base_name)
        return []

    points = np.unique(np.asarray(submesh.vertices), axis=0)
    hull = _convex_hull(points)
    if hull is None:
        logger.warning(
            "convex_decomposition_degenerate_input",
            submesh=base_name,
            unique_vertices=len(points),
        )
        return []

    single = [_hull_to_submesh(hull, f"{base_name}_hull_0", submesh.material)]
    if max_convex_hulls == 1:
        return single

    solid = trimesh.Trimesh(
        vertices=np.array(submesh.vertices), faces=np.array(submesh.faces), process=True
    )
    hull_volume = float(hull.volume)
    if solid.is_volume:
        concavity = max(hull_volume - abs(float(solid.volume)), 0.0) / hull_volume
        if concavity <= concavity_threshold:
            logger.info("convex_decomposition_convex_input", submesh=base_name, hulls=1)
            return single

    bounds = np.array(solid.bounds)
    extents = np.maximum(bounds[1] - bounds[0], 1e-12)
    pitch = float(np.cbrt(np.prod(extents) / int(resolution)))
    pitch = max(pitch, float(extents.max()) / 512.0)
    centers = _filled_voxel_centers(solid, pitch)
    if len(centers) == 0:
        return single

    voxel_volume = pitch ** 3
    total_volume = len(centers) * voxel_volume

    clusters: list[np.ndarray] = [centers]
    costs: list[float] = [_concavity_cost(centers, pitch)]
    if not solid.is_volume and costs[0] / total_volume <= concavity_threshold:
        logger.info("convex_decomposition_convex_input", submesh=base_name, hulls=1)
        return single

    frozen: set[int] = set()
    while len(clusters) < max_convex_hulls:
        open_ids = [i for i in range(len(clusters)) if i not in frozen]
        if not open_ids:
            break
        worst = max(open_ids, key=lambda i: (costs[i], -i))
        if costs[worst] / total_volume <= concavity_threshold:
            break

        split = _best_split(clusters[worst], pitch, max_split_candidates)
        if split is None or split[2] >= costs[worst]:
            frozen.add(worst)
            continue

        left, right, _ = split
        clusters[worst] = left
        costs[worst] = _concavity_cost(left, pitch)
        clusters.append(right)
        costs.append(_concavity_cost(right, pitch))

    lower, upper = bounds
    hulls: list[SubMesh] = []
    for cluster in clusters:
        piece = _cluster_hull(cluster, pitch, lower, upper)
        if piece is not None:
            hulls.append(
                _hull_to_submesh(piece, f"{base_name}_hull_{len(hulls)}", submesh.material)
            )

    logger.info(
        "convex_decomposition_complete",
        submesh=base_name,
        hulls=len(hulls),
        voxels=len(centers),
        pitch=pitch,
    )
    return hulls if hulls else single


def _convex_hull(points: np.ndarray) -> Optional[trimesh.Trimesh]:
    """Convex hull of *points*, or None when they span no volume."""
    if len(points) < 4:
        return None
    try:
        hull = trimesh.convex.convex_hull(points)
    except (QhullError, ValueError, IndexError):
        return None
    extent = float(np.ptp(points, axis=0).max())
    if len(hull.faces) == 0 or hull.volume <= 1e-12 * extent ** 3:
        return None
    return hull


def _filled_voxel_centers(solid: trimesh.Trimesh, pitch: float) -> np.ndarray:
    grid = solid.voxelized(pitch).fill()
    return np.asarray(grid.points, dtype=np.float64)


def _hull_volume(points: np.ndarray) -> float:
    if len(points) < 4:
        return 0.0
    try:
        return float(ConvexHull(points).volume)
    except (QhullError, ValueError):
        return 0.0


def _voxel_corners(points: np.ndarray, pitch: float) -> np.ndarray:
    """Corner points of the voxels centered at *points* that can lie on their hull."""
    support = points
    if len(points) >= 4:
        try:
            support = points[ConvexHull(points).vertices]
        except (QhullError, ValueError):
            support = points
    corners = (support[:, None, :] + _CORNERS[None, :, :] * (pitch / 2.0)).reshape(-1, 3)
    return np.unique(corners, axis=0)


def _concavity_cost(points: np.ndarray, pitch: float) -> float:
    """Volume the hull of a voxel cluster adds beyond the voxels themselves."""
    return max(_hull_volume(_voxel_corners(points, pitch)) - len(points) * pitch ** 3, 0.0)


def _best_split(
    points: np.ndarray,
    pitch: float,
    max_candidates: int,
) -> Optional[Tuple[np.ndarray, np.ndarray, float]]:
    """Axis-aligned cut minimizing the children's summed concavity cost."""
    best: Optional[Tuple[np.ndarray, np.ndarray, float]] = None
    for axis in range(3):
        levels = np.unique(points[:, axis])
        if len(levels) < 2:
            continue
        cuts = (levels[:-1] + levels[1:]) / 2.0
        if len(cuts) > max_candidates:
            picks = np.linspace(0, len(cuts) - 1, max_candidates).round().astype(int)
            cuts = cuts[np.unique(picks)]
        for cut in cuts:
            mask = points[:, axis] < cut
            left, right = points[mask], points[~mask]
            if len(left) == 0 or len(right) == 0:
                continue
            score = _concavity_cost(left, pitch) + _concavity_cost(right, pitch)
            if best is None or score < best[2]:
                best = (left, right, score)
    return best


def _cluster_hull(
    points: np.ndarray,
    pitch: float,
    lower: np.ndarray,
    upper: np.ndarray,
) -> Optional[trimesh.Trimesh]:
    """Hull over the voxel corners of a cluster, clipped to the input bounds."""
    corners = np.clip(_voxel_corners(points, pitch), lower, upper)
    return _convex_hull(np.unique(corners, axis=0))


def _hull_to_submesh(hull: trimesh.Trimesh, name: str, material: object) -> SubMesh:
    return SubMesh(
        vertices=np.asarray(hull.vertices, dtype=np.float64),
        normals=np.asarray(hull.vertex_normals, dtype=np.float64),
        indices=np.asarray(hull.faces, dtype=np.int64).reshape(-1),
        name=name,
        material=material,
    )
