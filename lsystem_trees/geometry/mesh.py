# lsystem_trees/geometry/mesh.py
"""
MESH DATA MODEL: LOD Table, Builder Settings, and Output Buffers
================================================================

PURPOSE:
--------
Records produced and consumed by the geometry builder.

BUFFER LAYOUT:
--------------
MeshData holds flat numpy buffers for one LOD:

    vertices   (N, 3) float64   positions
    normals    (N, 3) float64   unit normals
    tangents   (N, 3) float64   reference-axis tangents
    uvs        (N, 2) float64   texture coordinates
    colors     (N, 4) float64   linear RGBA
    triangles  (3T,)  int32     vertex indices, three per triangle

Branch geometry always comes first. The leading branch_vertex_count
vertices and branch_triangle_count triangles form the "branch" section,
the rest form the "leaf" section:

    vertices:   [ branch ............ | leaf .... ]
                0                     ^ branch_vertex_count
    triangles:  [ branch ...... | leaf .. ]
                0               ^ branch_triangle_count * 3

split_sections() cuts the buffers at those marks and rebases the leaf
indices so each section can be uploaded as its own render section.
"""

import numpy as np
from dataclasses import dataclass, field
from typing import Dict, Tuple


MIN_RADIAL_SEGMENTS = 3
MAX_RADIAL_SEGMENTS = 32


@dataclass
class LODLevel:
    """
    One level of detail.

    radial_segments : int
        Vertices per ring, clamped to [3, 32]
    screen_size : float
        Selection threshold for the consumer; not used by the builder
    include_leaves : bool
        Append leaf quads after the branches
    """
    radial_segments: int = 8
    screen_size: float = 1.0
    include_leaves: bool = True

    def __post_init__(self):
        self.radial_segments = int(min(max(self.radial_segments, MIN_RADIAL_SEGMENTS), MAX_RADIAL_SEGMENTS))


@dataclass
class GeometryConfig:
    """
    bark_uv_tiling : float
        V advances by length * tiling / 100 per segment
    default_leaf_size : (width, height)
        Used for leaves whose own size is (nearly) zero
    bark_color, leaf_color : RGBA
    """
    bark_uv_tiling: float = 1.0
    default_leaf_size: Tuple[float, float] = (10.0, 15.0)
    bark_color: Tuple[float, float, float, float] = (1.0, 1.0, 1.0, 1.0)
    leaf_color: Tuple[float, float, float, float] = (0.2, 0.6, 0.2, 1.0)


def _empty(columns: int) -> np.ndarray:
    return np.zeros((0, columns), dtype=float)


@dataclass
class MeshSection:
    """A contiguous slice of a MeshData with indices starting at 0."""
    vertices: np.ndarray = field(default_factory=lambda: _empty(3))
    triangles: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.int32))
    normals: np.ndarray = field(default_factory=lambda: _empty(3))
    uvs: np.ndarray = field(default_factory=lambda: _empty(2))
    colors: np.ndarray = field(default_factory=lambda: _empty(4))
    tangents: np.ndarray = field(default_factory=lambda: _empty(3))

    @property
    def vertex_count(self) -> int:
        return len(self.vertices)

    @property
    def triangle_count(self) -> int:
        return len(self.triangles) // 3


@dataclass
class MeshData:
    """
    Mesh buffers for one LOD.

    segment_rings maps a segment index to (start ring, end ring), each
    given as the index of the ring's first vertex. A welded segment's
    start ring is its parent's end ring.

    An empty mesh is valid; check vertex_count before use.
    """
    vertices: np.ndarray = field(default_factory=lambda: _empty(3))
    triangles: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.int32))
    normals: np.ndarray = field(default_factory=lambda: _empty(3))
    uvs: np.ndarray = field(default_factory=lambda: _empty(2))
    colors: np.ndarray = field(default_factory=lambda: _empty(4))
    tangents: np.ndarray = field(default_factory=lambda: _empty(3))
    branch_vertex_count: int = 0
    branch_triangle_count: int = 0
    radial_segments: int = 8
    segment_rings: Dict[int, Tuple[int, int]] = field(default_factory=dict)

    @property
    def vertex_count(self) -> int:
        return len(self.vertices)

    @property
    def triangle_count(self) -> int:
        return len(self.triangles) // 3

    @property
    def leaf_vertex_count(self) -> int:
        return self.vertex_count - self.branch_vertex_count

    @property
    def leaf_triangle_count(self) -> int:
        return self.triangle_count - self.branch_triangle_count

    @property
    def is_empty(self) -> bool:
        return self.vertex_count == 0

    def ring_positions(self, first_vertex: int) -> np.ndarray:
        """Positions of the ring starting at first_vertex, shape (radial_segments, 3)."""
        return self.vertices[first_vertex:first_vertex + self.radial_segments]

    def split_sections(self) -> Tuple[MeshSection, MeshSection]:
        """
        Split into (branch, leaf) sections.

        Leaf triangle indices are shifted down by branch_vertex_count so
        both sections index their own vertex buffer from 0.
        """
        nv = self.branch_vertex_count
        ni = self.branch_triangle_count * 3

        branch = MeshSection(
            vertices=self.vertices[:nv],
            triangles=self.triangles[:ni],
            normals=self.normals[:nv],
            uvs=self.uvs[:nv],
            colors=self.colors[:nv],
            tangents=self.tangents[:nv],
        )
        leaf = MeshSection(
            vertices=self.vertices[nv:],
            triangles=(self.triangles[ni:] - nv).astype(np.int32),
            normals=self.normals[nv:],
            uvs=self.uvs[nv:],
            colors=self.colors[nv:],
            tangents=self.tangents[nv:],
        )
        return branch, leaf
