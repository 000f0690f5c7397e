# lsystem_trees/geometry/builder.py
"""
TREE GEOMETRY BUILDER: Segments + Leaves -> Welded LOD Meshes
=============================================================

PURPOSE:
--------
Third pipeline stage. Sweeps a ring of vertices along every branch
segment, stitches consecutive rings with triangles, then appends one
double-sided quad per leaf.

    segments + leaves  ->  [TreeGeometryBuilder]  ->  MeshData per LOD

RINGS:
------
A ring of n vertices lies in the plane perpendicular to the segment:

    angle_i  = i * 2π / n
    offset_i = (right cos(angle_i) + up sin(angle_i)) * radius
    normal_i = offset_i / |offset_i|           (outward)
    uv_i     = (i / n, v)

v accumulates along the emission order: v += length * tiling / 100.

WELDING:
--------
Each segment's end ring is cached under the segment's index. A segment
with a parent reuses the parent's cached end ring as its own start ring
(the same vertex indices, not a copy), so joints have no gap. If the
parent has no cached ring (it was zero-length and skipped) a fresh start
ring is generated and a warning logged.

STRIP WINDING:
--------------
For ring step i with next = (i + 1) mod n:

    A = start + i     B = start + next
    C = end + i       D = end + next

    triangles (A, C, B) and (B, C, D)

LEAVES:
-------
Corners BL, BR, TR, TL around the leaf position; front faces (0,1,2),
(0,2,3) and back faces (2,1,0), (3,2,0).
"""

import logging
import numpy as np
from typing import Dict, List, Optional, Sequence

from ..kernel.vecmath import (
    KINDA_SMALL_NUMBER,
    as_vec3,
    is_nearly_zero,
    perpendicular_vectors,
    reference_tangents,
    safe_normal,
)
from ..turtle.state import BranchSegment, LeafPlacement
from .mesh import GeometryConfig, LODLevel, MeshData


logger = logging.getLogger(__name__)


DEFAULT_RADIAL_SEGMENTS = 8

# Leaf corner UVs: BL, BR, TR, TL
LEAF_UVS = np.array([[0.0, 1.0], [1.0, 1.0], [1.0, 0.0], [0.0, 0.0]])
# Front face then back face
LEAF_TRIANGLES = np.array([0, 1, 2, 0, 2, 3, 2, 1, 0, 3, 2, 0], dtype=np.int32)


class _MeshBuffers:
    """Growable per-vertex buffers, stored as lists of numpy blocks."""

    def __init__(self):
        self.vertex_count = 0
        self.positions: List[np.ndarray] = []
        self.normals: List[np.ndarray] = []
        self.uvs: List[np.ndarray] = []
        self.colors: List[np.ndarray] = []
        self.triangles: List[np.ndarray] = []
        self.index_count = 0

    def add_vertices(self, positions, normals, uvs, color) -> int:
        """Append a block of vertices; returns the index of the first one."""
        first = self.vertex_count
        count = len(positions)
        self.positions.append(positions)
        self.normals.append(normals)
        self.uvs.append(uvs)
        self.colors.append(np.tile(np.asarray(color, dtype=float), (count, 1)))
        self.vertex_count += count
        return first

    def add_triangles(self, indices: np.ndarray) -> None:
        self.triangles.append(indices.astype(np.int32))
        self.index_count += len(indices)

    @staticmethod
    def stack(columns: int, blocks: List[np.ndarray]) -> np.ndarray:
        if not blocks:
            return np.zeros((0, columns), dtype=float)
        return np.vstack(blocks)

    def indices(self) -> np.ndarray:
        if not self.triangles:
            return np.zeros(0, dtype=np.int32)
        return np.concatenate(self.triangles).astype(np.int32)


class TreeGeometryBuilder:
    """
    Builds MeshData from branch segments and leaf placements.

    Each generate_mesh() call starts from empty buffers; nothing is
    shared between calls or LODs.
    """

    def __init__(self, config: Optional[GeometryConfig] = None):
        self.config = config if config is not None else GeometryConfig()

    def generate_mesh_lods(
        self,
        segments: Sequence[BranchSegment],
        leaves: Sequence[LeafPlacement],
        lod_levels: Sequence[LODLevel],
    ) -> List[MeshData]:
        """
        One MeshData per LOD level, in the given order.

        An empty LOD table yields a single 8-segment mesh with leaves.
        """
        if not lod_levels:
            logger.warning("No LOD levels specified, using default")
            return [self.generate_mesh(segments, leaves, DEFAULT_RADIAL_SEGMENTS, True)]

        meshes = []
        for i, lod in enumerate(lod_levels):
            logger.info(
                "Generating LOD %d: %d radial segments, leaves=%s",
                i, lod.radial_segments, lod.include_leaves,
            )
            mesh = self.generate_mesh(segments, leaves, lod.radial_segments, lod.include_leaves)
            logger.info("LOD %d: %d vertices, %d triangles", i, mesh.vertex_count, mesh.triangle_count)
            meshes.append(mesh)
        return meshes

    def generate_mesh(
        self,
        segments: Sequence[BranchSegment],
        leaves: Sequence[LeafPlacement],
        radial_segments: int = DEFAULT_RADIAL_SEGMENTS,
        include_leaves: bool = True,
    ) -> MeshData:
        """
        Build one mesh.

        Parameters:
        -----------
        segments : sequence of BranchSegment
            In emission order (parents before children)
        leaves : sequence of LeafPlacement
        radial_segments : int
            Clamped to [3, 32]
        include_leaves : bool

        Returns:
        --------
        MeshData
        """
        n = LODLevel(radial_segments=radial_segments).radial_segments
        buffers = _MeshBuffers()
        end_rings: Dict[int, int] = {}
        segment_rings = {}
        v_coord = 0.0

        for index, segment in enumerate(segments):
            length = segment.length
            if length < KINDA_SMALL_NUMBER:
                continue

            start_v = v_coord
            end_v = start_v + length * self.config.bark_uv_tiling / 100.0
            v_coord = end_v

            start_ring = None
            if segment.parent_index is not None:
                start_ring = end_rings.get(segment.parent_index)
                if start_ring is None:
                    logger.warning(
                        "Segment %d: parent %d has no end ring, generating a new start ring",
                        index, segment.parent_index,
                    )
            if start_ring is None:
                start_ring = self._add_ring(
                    buffers, segment.start_position, segment.direction,
                    segment.start_radius, n, start_v,
                )

            end_ring = self._add_ring(
                buffers, segment.end_position, segment.direction,
                segment.end_radius, n, end_v,
            )
            end_rings[index] = end_ring
            segment_rings[index] = (start_ring, end_ring)
            buffers.add_triangles(self._connect_rings(start_ring, end_ring, n))

        branch_vertex_count = buffers.vertex_count
        branch_triangle_count = buffers.index_count // 3

        if include_leaves:
            for leaf in leaves:
                self._add_leaf(buffers, leaf)

        normals = buffers.stack(3, buffers.normals)
        mesh = MeshData(
            vertices=buffers.stack(3, buffers.positions),
            triangles=buffers.indices(),
            normals=normals,
            uvs=buffers.stack(2, buffers.uvs),
            colors=buffers.stack(4, buffers.colors),
            tangents=reference_tangents(normals),
            branch_vertex_count=branch_vertex_count,
            branch_triangle_count=branch_triangle_count,
            radial_segments=n,
            segment_rings=segment_rings,
        )
        logger.debug(
            "Generated mesh: %d branch verts, %d leaf verts, %d total triangles",
            mesh.branch_vertex_count, mesh.leaf_vertex_count, mesh.triangle_count,
        )
        return mesh

    # -------------------------------------------------------------------------
    # Branches
    # -------------------------------------------------------------------------

    def _add_ring(
        self,
        buffers: _MeshBuffers,
        center: np.ndarray,
        direction: np.ndarray,
        radius: float,
        n: int,
        v: float,
    ) -> int:
        right, up = perpendicular_vectors(direction)
        angles = np.arange(n) * (2.0 * np.pi / n)

        offsets = (np.outer(np.cos(angles), right) + np.outer(np.sin(angles), up)) * radius
        positions = as_vec3(center) + offsets

        lengths = np.linalg.norm(offsets, axis=1)
        normals = np.zeros_like(offsets)
        nonzero = lengths > 0.0
        normals[nonzero] = offsets[nonzero] / lengths[nonzero][:, None]

        uvs = np.column_stack([np.arange(n) / n, np.full(n, v)])
        return buffers.add_vertices(positions, normals, uvs, self.config.bark_color)

    @staticmethod
    def _connect_rings(start_ring: int, end_ring: int, n: int) -> np.ndarray:
        i = np.arange(n)
        nxt = (i + 1) % n
        a = start_ring + i
        b = start_ring + nxt
        c = end_ring + i
        d = end_ring + nxt
        return np.column_stack([a, c, b, b, c, d]).ravel()

    # -------------------------------------------------------------------------
    # Leaves
    # -------------------------------------------------------------------------

    def _add_leaf(self, buffers: _MeshBuffers, leaf: LeafPlacement) -> None:
        normal = as_vec3(leaf.normal)
        up = as_vec3(leaf.up)
        up = up - normal * np.dot(up, normal)

        if is_nearly_zero(up):
            right, up = perpendicular_vectors(normal)
        else:
            up = safe_normal(up)
            right = safe_normal(np.cross(normal, up))

        if abs(leaf.rotation) > 1e-8:
            theta = np.radians(leaf.rotation)
            cos_r, sin_r = np.cos(theta), np.sin(theta)
            right, up = right * cos_r + up * sin_r, -right * sin_r + up * cos_r

        size = np.asarray(leaf.size, dtype=float)
        if is_nearly_zero(size):
            size = np.asarray(self.config.default_leaf_size, dtype=float)
        half_w, half_h = size * 0.5

        center = as_vec3(leaf.position)
        corners = np.array([
            center - right * half_w - up * half_h,  # bottom-left
            center + right * half_w - up * half_h,  # bottom-right
            center + right * half_w + up * half_h,  # top-right
            center - right * half_w + up * half_h,  # top-left
        ])
        normals = np.tile(normal, (4, 1))

        first = buffers.add_vertices(corners, normals, LEAF_UVS.copy(), self.config.leaf_color)
        buffers.add_triangles(LEAF_TRIANGLES + first)
