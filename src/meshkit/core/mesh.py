"""
Mesh data model for MeshKit.

A ``Mesh`` is a named, ordered collection of ``SubMesh`` objects. Each SubMesh
holds its own triangle-list buffers (positions, normals, indices and zero or
more texture-coordinate sets) and caches its axis-aligned bounds.

SubMeshes are owned by their Mesh. Callers receive ``SubMeshHandle`` objects
from lookups; a handle must be locked before use and yields ``None`` once the
Mesh has been invalidated by the registry or had a submesh removed.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Iterator, Sequence

import numpy as np
import numpy.typing as npt

from meshkit.core.exceptions import InvalidInputError

ArrayLike = npt.ArrayLike


def _as_float_array(data: ArrayLike | None, columns: int, label: str) -> np.ndarray:
    """Coerce *data* into a read-only ``(N, columns)`` float64 array."""
    if data is None:
        array = np.zeros((0, columns), dtype=np.float64)
    else:
        array = np.array(data, dtype=np.float64)
        if array.size == 0:
            array = np.zeros((0, columns), dtype=np.float64)
    if array.ndim != 2 or array.shape[1] != columns:
        raise InvalidInputError(
            f"{label} must have shape (N, {columns})",
            details={"shape": list(array.shape)},
        )
    if not np.all(np.isfinite(array)):
        raise InvalidInputError(f"{label} contain non-finite values")
    array.flags.writeable = False
    return array


def _as_index_array(data: ArrayLike | None) -> np.ndarray:
    """Coerce *data* into a flat, read-only uint32 index array."""
    if data is None:
        array = np.zeros(0, dtype=np.uint32)
    else:
        raw = np.asarray(data)
        if raw.size == 0:
            array = np.zeros(0, dtype=np.uint32)
        else:
            if not np.issubdtype(raw.dtype, np.integer):
                raise InvalidInputError(
                    "Indices must be integers", details={"dtype": str(raw.dtype)}
                )
            if raw.min() < 0:
                raise InvalidInputError("Indices must be non-negative")
            array = raw.reshape(-1).astype(np.uint32)
    array.flags.writeable = False
    return array


@dataclass(eq=False)
class BoundingBox:
    """Axis-aligned bounding box given by its min and max corners."""

    min: np.ndarray
    max: np.ndarray

    @property
    def size(self) -> np.ndarray:
        return self.max - self.min

    @property
    def center(self) -> np.ndarray:
        return (self.min + self.max) / 2.0

    def as_tuple(self) -> tuple[list[float], list[float]]:
        """Return ``([xmin, ymin, zmin], [xmax, ymax, zmax])`` as plain lists."""
        return self.min.tolist(), self.max.tolist()


class SubMesh:
    """
    A self-contained triangle surface.

    Buffers are stored as read-only numpy arrays; use the mutator methods to
    change geometry so that invariants and cached bounds stay consistent.

    Args:
        vertices: ``(N, 3)`` positions.
        normals: ``(N, 3)`` normals. When omitted they are computed from the
            triangles (area weighted); vertices with no triangle get a zero normal.
        indices: flat or ``(T, 3)`` triangle indices into ``vertices``.
        texcoord_sets: sequence of ``(N, 2)`` texture-coordinate arrays.
        name: optional submesh name.
        material: opaque material reference.

    Raises:
        InvalidInputError: If the buffers violate the triangle-list invariants.
    """

    def __init__(
        self,
        vertices: ArrayLike | None = None,
        normals: ArrayLike | None = None,
        indices: ArrayLike | None = None,
        texcoord_sets: Sequence[ArrayLike] | None = None,
        name: str = "",
        material: Any = None,
    ) -> None:
        self.name = name
        self.material = material
        self._vertices = _as_float_array(vertices, 3, "Vertices")
        self._indices = _as_index_array(indices)
        self._validate_indices(self._indices, len(self._vertices))

        if normals is None:
            self._normals = self._compute_normals(self._vertices, self._indices)
        else:
            self._normals = _as_float_array(normals, 3, "Normals")
            if len(self._normals) != len(self._vertices):
                raise InvalidInputError(
                    "Normal count must equal vertex count",
                    details={"vertices": len(self._vertices), "normals": len(self._normals)},
                )

        self._texcoord_sets: list[np.ndarray] = []
        for coords in texcoord_sets or ():
            self.add_texcoord_set(coords)

        self._min = np.zeros(3)
        self._max = np.zeros(3)
        self._update_bounds()

    # ------------------------------------------------------------------
    # Counts and element access
    # ------------------------------------------------------------------

    @property
    def vertices(self) -> np.ndarray:
        return self._vertices

    @property
    def normals(self) -> np.ndarray:
        return self._normals

    @property
    def indices(self) -> np.ndarray:
        return self._indices

    @property
    def faces(self) -> np.ndarray:
        """Indices as a ``(T, 3)`` array of triangles."""
        return self._indices.reshape(-1, 3)

    @property
    def texcoord_sets(self) -> tuple[np.ndarray, ...]:
        return tuple(self._texcoord_sets)

    @property
    def vertex_count(self) -> int:
        return len(self._vertices)

    @property
    def normal_count(self) -> int:
        return len(self._normals)

    @property
    def index_count(self) -> int:
        return len(self._indices)

    @property
    def triangle_count(self) -> int:
        return len(self._indices) // 3

    @property
    def texcoord_set_count(self) -> int:
        return len(self._texcoord_sets)

    def texcoord_count_by_set(self, set_index: int) -> int:
        """Number of coordinates in a texcoord set, 0 if the set does not exist."""
        if 0 <= set_index < len(self._texcoord_sets):
            return len(self._texcoord_sets[set_index])
        return 0

    def vertex(self, index: int) -> np.ndarray:
        return self._vertices[index].copy()

    def normal(self, index: int) -> np.ndarray:
        return self._normals[index].copy()

    def index(self, index: int) -> int:
        return int(self._indices[index])

    def texcoord_by_set(self, vertex_index: int, set_index: int) -> np.ndarray:
        """Texture coordinate of *vertex_index* in texcoord set *set_index*."""
        return self._texcoord_sets[set_index][vertex_index].copy()

    # ------------------------------------------------------------------
    # Bounds
    # ------------------------------------------------------------------

    @property
    def min(self) -> np.ndarray:
        return self._min.copy()

    @property
    def max(self) -> np.ndarray:
        return self._max.copy()

    @property
    def bounds(self) -> BoundingBox:
        return BoundingBox(self.min, self.max)

    def _update_bounds(self) -> None:
        if len(self._vertices) == 0:
            self._min = np.zeros(3)
            self._max = np.zeros(3)
        else:
            self._min = self._vertices.min(axis=0)
            self._max = self._vertices.max(axis=0)

    # ------------------------------------------------------------------
    # Mutators
    # ------------------------------------------------------------------

    def set_vertices(self, vertices: ArrayLike, normals: ArrayLike | None = None) -> None:
        """
        Replace vertex positions (and optionally normals) keeping the vertex count.

        Raises:
            InvalidInputError: If the count changes or the arrays are malformed
        """
        new_vertices = _as_float_array(vertices, 3, "Vertices")
        if len(new_vertices) != len(self._vertices):
            raise InvalidInputError(
                "set_vertices cannot change the vertex count",
                details={"current": len(self._vertices), "new": len(new_vertices)},
            )
        if normals is not None:
            new_normals = _as_float_array(normals, 3, "Normals")
            if len(new_normals) != len(new_vertices):
                raise InvalidInputError("Normal count must equal vertex count")
            self._normals = new_normals
        self._vertices = new_vertices
        self._update_bounds()

    def add_texcoord_set(self, coords: ArrayLike) -> int:
        """
        Append a texture-coordinate set parallel to the vertex list.

        Returns:
            Index of the new set
        """
        array = _as_float_array(coords, 2, "Texture coordinates")
        if len(array) != len(self._vertices):
            raise InvalidInputError(
                "Texture coordinate count must equal vertex count",
                details={"vertices": len(self._vertices), "texcoords": len(array)},
            )
        self._texcoord_sets.append(array)
        return len(self._texcoord_sets) - 1

    def translate(self, offset: ArrayLike) -> None:
        offset_arr = np.asarray(offset, dtype=np.float64).reshape(3)
        self.set_vertices(self._vertices + offset_arr)

    def scale(self, factor: float | ArrayLike) -> None:
        factors = np.broadcast_to(np.asarray(factor, dtype=np.float64), (3,))
        if np.any(factors == 0):
            raise InvalidInputError("Scale factors must be non-zero")
        # normals transform with the inverse transpose of the scale matrix
        normals = self._normals / factors
        lengths = np.linalg.norm(normals, axis=1)
        nonzero = lengths > 0
        normals[nonzero] /= lengths[nonzero, None]
        self.set_vertices(self._vertices * factors, normals)

    def recalculate_normals(self) -> None:
        """Recompute area-weighted vertex normals from the triangles."""
        self._normals = self._compute_normals(self._vertices, self._indices)

    def copy(self, name: str | None = None) -> "SubMesh":
        return SubMesh(
            vertices=self._vertices,
            normals=self._normals,
            indices=self._indices,
            texcoord_sets=self._texcoord_sets,
            name=self.name if name is None else name,
            material=self.material,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _validate_indices(indices: np.ndarray, vertex_count: int) -> None:
        if len(indices) % 3 != 0:
            raise InvalidInputError(
                "Index count must be a multiple of 3",
                details={"index_count": len(indices)},
            )
        if len(indices) and int(indices.max()) >= vertex_count:
            raise InvalidInputError(
                "Index out of range",
                details={"max_index": int(indices.max()), "vertex_count": vertex_count},
            )

    @staticmethod
    def _compute_normals(vertices: np.ndarray, indices: np.ndarray) -> np.ndarray:
        normals = np.zeros_like(vertices)
        if len(indices):
            faces = indices.reshape(-1, 3).astype(np.int64)
            tri = vertices[faces]
            face_normals = np.cross(tri[:, 1] - tri[:, 0], tri[:, 2] - tri[:, 0])
            for corner in range(3):
                np.add.at(normals, faces[:, corner], face_normals)
            lengths = np.linalg.norm(normals, axis=1)
            nonzero = lengths > 0
            normals[nonzero] /= lengths[nonzero, None]
        normals.flags.writeable = False
        return normals

    def __repr__(self) -> str:
        return (
            f"SubMesh(name={self.name!r}, vertices={self.vertex_count}, "
            f"indices={self.index_count}, texcoord_sets={self.texcoord_set_count})"
        )


class _MeshState:
    """Liveness shared by a Mesh and every handle it has issued."""

    __slots__ = ("valid", "generation", "lock")

    def __init__(self) -> None:
        self.valid = True
        self.generation = 0
        self.lock = threading.Lock()


class SubMeshHandle:
    """
    Non-owning, liveness-checked reference to a SubMesh inside a Mesh.

    The handle remembers the Mesh generation it was issued at. ``lock()``
    returns the SubMesh only while the Mesh is still valid and no submesh has
    been removed from it since. Dropping the last reference to the Mesh does
    not expire its handles.
    """

    __slots__ = ("_state", "_submesh", "_index", "_generation")

    def __init__(self, state: _MeshState, submesh: SubMesh, index: int, generation: int) -> None:
        self._state = state
        self._submesh = submesh
        self._index = index
        self._generation = generation

    @property
    def index(self) -> int:
        return self._index

    def lock(self) -> SubMesh | None:
        with self._state.lock:
            if not self._state.valid or self._state.generation != self._generation:
                return None
            return self._submesh

    @property
    def expired(self) -> bool:
        return self.lock() is None

    def __repr__(self) -> str:
        state = "expired" if self.expired else "live"
        return f"SubMeshHandle(index={self._index}, {state})"


class Mesh:
    """
    A named, ordered collection of SubMeshes.

    Appending a submesh leaves existing handles live; removing one or
    invalidating the mesh expires all of them.

    Example:
        >>> mesh = Mesh("triangle")
        >>> handle = mesh.add_submesh(SubMesh([[0, 0, 0], [1, 0, 0], [0, 1, 0]],
        ...                                   indices=[0, 1, 2]))
        >>> handle.lock().vertex_count
        3
    """

    def __init__(self, name: str = "", submeshes: Sequence[SubMesh] | None = None) -> None:
        self._name = name
        self._submeshes: list[SubMesh] = []
        self._state = _MeshState()
        for submesh in submeshes or ():
            self.add_submesh(submesh)

    @property
    def name(self) -> str:
        return self._name

    @property
    def generation(self) -> int:
        return self._state.generation

    @property
    def is_valid(self) -> bool:
        return self._state.valid

    @property
    def submesh_count(self) -> int:
        return len(self._submeshes)

    @property
    def submeshes(self) -> tuple[SubMesh, ...]:
        return tuple(self._submeshes)

    def __iter__(self) -> Iterator[SubMesh]:
        return iter(tuple(self._submeshes))

    def __len__(self) -> int:
        return len(self._submeshes)

    def _handle(self, index: int) -> SubMeshHandle:
        return SubMeshHandle(self._state, self._submeshes[index], index, self._state.generation)

    def add_submesh(self, submesh: SubMesh) -> SubMeshHandle:
        """Take ownership of *submesh* and return a handle to it."""
        if not isinstance(submesh, SubMesh):
            raise InvalidInputError(
                "Expected a SubMesh", details={"type": type(submesh).__name__}
            )
        with self._state.lock:
            self._submeshes.append(submesh)
            return self._handle(len(self._submeshes) - 1)

    def submesh_by_index(self, index: int) -> SubMeshHandle:
        """
        Get a handle to the submesh at *index*.

        Raises:
            IndexError: If index is out of range
        """
        with self._state.lock:
            if not 0 <= index < len(self._submeshes):
                raise IndexError(
                    f"Submesh index {index} out of range for mesh {self._name!r} "
                    f"with {len(self._submeshes)} submeshes"
                )
            return self._handle(index)

    def submesh_by_name(self, name: str) -> SubMeshHandle | None:
        with self._state.lock:
            for i, submesh in enumerate(self._submeshes):
                if submesh.name == name:
                    return self._handle(i)
        return None

    def remove_submesh(self, index: int) -> SubMesh:
        """Remove and return the submesh at *index*; outstanding handles expire."""
        with self._state.lock:
            submesh = self._submeshes.pop(index)
            self._state.generation += 1
            return submesh

    def invalidate(self) -> None:
        """Expire every handle issued for this mesh. Called on registry removal."""
        with self._state.lock:
            self._state.valid = False
            self._state.generation += 1

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------

    @property
    def vertex_count(self) -> int:
        return sum(s.vertex_count for s in self._submeshes)

    @property
    def index_count(self) -> int:
        return sum(s.index_count for s in self._submeshes)

    @property
    def bounds(self) -> BoundingBox:
        """Bounds over every non-empty submesh (zero box if there are none)."""
        populated = [s for s in self._submeshes if s.vertex_count]
        if not populated:
            return BoundingBox(np.zeros(3), np.zeros(3))
        return BoundingBox(
            np.min([s.min for s in populated], axis=0),
            np.max([s.max for s in populated], axis=0),
        )

    @property
    def min(self) -> np.ndarray:
        return self.bounds.min

    @property
    def max(self) -> np.ndarray:
        return self.bounds.max

    def copy(self, name: str | None = None) -> "Mesh":
        """Deep copy with fresh handles; the copy is always valid."""
        return Mesh(
            name=self._name if name is None else name,
            submeshes=[s.copy() for s in self._submeshes],
        )

    def __repr__(self) -> str:
        return f"Mesh(name={self._name!r}, submeshes={len(self._submeshes)})"
