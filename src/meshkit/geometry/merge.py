"""
Merge all submeshes of a mesh into a single submesh.

Buffers are concatenated in submesh order and indices re-based by the running
vertex count. The merged submesh exposes as many texcoord sets as the richest
source; sources with fewer sets contribute (0, 0) for each set they lack.
Coincident vertices are kept as-is.
"""

from __future__ import annotations

from typing import Collection

import numpy as np

from meshkit.core.logging import get_logger
from meshkit.core.mesh import Mesh, SubMesh

logger = get_logger(__name__)


def unique_name(base: str, existing_names: Collection[str]) -> str:
    """Return *base*, or *base* with the smallest ``_<n>`` suffix not in *existing_names*."""
    if base not in existing_names:
        return base
    counter = 1
    while f"{base}_{counter}" in existing_names:
        counter += 1
    return f"{base}_{counter}"


def merge_submeshes(
    mesh: Mesh,
    name: str | None = None,
    existing_names: Collection[str] = (),
) -> Mesh:
    """
    Flatten every submesh of *mesh* into one submesh.

    Args:
        mesh: Source mesh (left untouched).
        name: Base name for the merged mesh. Defaults to ``<mesh name>_merged``.
        existing_names: Names already taken (e.g. registry contents); the
            generated name is made distinct from all of them.

    Returns:
        New Mesh holding exactly one SubMesh
    """
    base = name or (f"{mesh.name}_merged" if mesh.name else "merged_mesh")
    merged_name = unique_name(base, set(existing_names) | {mesh.name})

    sources = list(mesh)
    set_count = max((s.texcoord_set_count for s in sources), default=0)

    vertices = [s.vertices for s in sources]
    normals = [s.normals for s in sources]
    indices = []
    offset = 0
    for s in sources:
        indices.append(s.indices.astype(np.int64) + offset)
        offset += s.vertex_count

    texcoord_sets = []
    for set_index in range(set_count):
        channel = []
        for s in sources:
            if set_index < s.texcoord_set_count:
                channel.append(s.texcoord_sets[set_index])
            else:
                channel.append(np.zeros((s.vertex_count, 2)))
        texcoord_sets.append(np.concatenate(channel) if channel else np.zeros((0, 2)))

    material = next((s.material for s in sources if s.material is not None), None)

    submesh = SubMesh(
        vertices=np.concatenate(vertices) if vertices else None,
        normals=np.concatenate(normals) if normals else None,
        indices=np.concatenate(indices) if indices else None,
        texcoord_sets=texcoord_sets,
        name=f"{merged_name}_submesh",
        material=material,
    )

    logger.info(
        "submeshes_merged",
        source=mesh.name,
        merged=merged_name,
        submeshes=len(sources),
        vertices=submesh.vertex_count,
        texcoord_sets=set_count,
    )
    return Mesh(name=merged_name, submeshes=[submesh])
