# tests/test_geometry.py
"""
GEOMETRY TESTS: Ring Counts, Welding, Leaves, LODs, Section Split
=================================================================

Vertex and triangle counts follow directly from the construction:

    first segment of a chain : 2 rings  = 2n vertices, 2n triangles
    each welded segment      : 1 ring   = n vertices,  2n triangles
    each leaf                : 4 vertices, 4 triangles (front + back)

so for n = 8:
    'F'   -> 16 vertices, 16 triangles (48 indices)
    'FFF' -> 32 vertices, 48 triangles
"""

import logging

import numpy as np
import pytest

from lsystem_trees.geometry.builder import TreeGeometryBuilder
from lsystem_trees.geometry.mesh import GeometryConfig, LODLevel
from lsystem_trees.pipeline import REFERENCE_RULE
from lsystem_trees.grammar.generator import GenerationConfig, LSystemGenerator
from lsystem_trees.turtle.interpreter import TurtleInterpreter
from lsystem_trees.turtle.state import BranchSegment, LeafPlacement, TurtleConfig


def build(text, radial_segments=8, include_leaves=True, config=None, **turtle):
    result = TurtleInterpreter().interpret(text, TurtleConfig(**turtle))
    builder = TreeGeometryBuilder(config)
    return builder.generate_mesh(result.segments, result.leaves, radial_segments, include_leaves)


def reference_segments(iterations=3, seed=42):
    gen = LSystemGenerator('F', GenerationConfig(random_seed=seed))
    gen.add_rule_string(REFERENCE_RULE)
    text = gen.generate(iterations).generated_string
    return TurtleInterpreter().interpret(text, TurtleConfig(random_seed=seed))


class TestBranchMesh:
    """Ring construction and strip connectivity."""

    def test_single_segment_counts(self):
        mesh = build('F')
        assert mesh.vertex_count == 16
        assert len(mesh.triangles) == 48
        assert mesh.triangles.dtype == np.int32
        assert mesh.branch_vertex_count == 16
        assert mesh.branch_triangle_count == 16

    def test_buffer_shapes(self):
        mesh = build('FF')
        n = mesh.vertex_count
        assert mesh.vertices.shape == (n, 3)
        assert mesh.normals.shape == (n, 3)
        assert mesh.tangents.shape == (n, 3)
        assert mesh.uvs.shape == (n, 2)
        assert mesh.colors.shape == (n, 4)

    def test_chain_counts(self):
        mesh = build('FFF')
        assert mesh.vertex_count == 32
        assert mesh.triangle_count == 48
        assert mesh.segment_rings == {0: (0, 8), 1: (8, 16), 2: (16, 24)}

    def test_ring_radius_and_normals(self):
        mesh = build('F')
        start = mesh.ring_positions(0)
        end = mesh.ring_positions(8)

        radii = np.linalg.norm(start[:, :2], axis=1)
        np.testing.assert_allclose(radii, 5.0)
        np.testing.assert_allclose(start[:, 2], 0.0, atol=1e-12)
        np.testing.assert_allclose(np.linalg.norm(end[:, :2], axis=1), 4.75)
        np.testing.assert_allclose(end[:, 2], 10.0)

        # Outward normals: unit, horizontal, parallel to the offset
        normals = mesh.normals[:8]
        np.testing.assert_allclose(np.linalg.norm(normals, axis=1), 1.0)
        np.testing.assert_allclose(normals, start / 5.0, atol=1e-12)

    def test_uvs(self):
        mesh = build('FF')
        np.testing.assert_allclose(mesh.uvs[:8, 0], np.arange(8) / 8)
        np.testing.assert_allclose(mesh.uvs[:8, 1], 0.0)
        np.testing.assert_allclose(mesh.uvs[8:16, 1], 0.1)
        np.testing.assert_allclose(mesh.uvs[16:24, 1], 0.2)

    def test_uv_tiling(self):
        mesh = build('F', config=GeometryConfig(bark_uv_tiling=3.0))
        np.testing.assert_allclose(mesh.uvs[8:, 1], 0.3)

    def test_strip_winding(self):
        mesh = build('F', radial_segments=4)
        tris = mesh.triangles.reshape(-1, 3)
        # Step 0: A=0, B=1, C=4, D=5
        np.testing.assert_array_equal(tris[0], [0, 4, 1])
        np.testing.assert_array_equal(tris[1], [1, 4, 5])
        # Last step wraps around the ring
        np.testing.assert_array_equal(tris[6], [3, 7, 0])
        np.testing.assert_array_equal(tris[7], [0, 7, 4])

    def test_indices_in_range(self):
        mesh = build('F[+F]F[-FL]F')
        assert mesh.triangles.min() >= 0
        assert mesh.triangles.max() < mesh.vertex_count

    def test_tangents_perpendicular(self):
        mesh = build('F[+F]&FL')
        dots = np.sum(mesh.tangents * mesh.normals, axis=1)
        np.testing.assert_allclose(dots, 0.0, atol=1e-9)
        np.testing.assert_allclose(np.linalg.norm(mesh.tangents, axis=1), 1.0)

    @pytest.mark.parametrize('requested, expected', [(1, 3), (3, 3), (16, 16), (100, 32)])
    def test_radial_segments_clamped(self, requested, expected):
        mesh = build('F', radial_segments=requested)
        assert mesh.radial_segments == expected
        assert mesh.vertex_count == 2 * expected

    def test_colors(self):
        mesh = build('F', config=GeometryConfig(bark_color=(0.4, 0.3, 0.2, 1.0)))
        np.testing.assert_allclose(mesh.colors, np.tile([0.4, 0.3, 0.2, 1.0], (16, 1)))


class TestJointWelding:
    """A child's start ring IS its parent's end ring."""

    def test_child_start_ring_is_parent_end_ring(self):
        interp = reference_segments()
        mesh = TreeGeometryBuilder().generate_mesh(interp.segments, interp.leaves, 8)

        checked = 0
        for index, seg in enumerate(interp.segments):
            if seg.parent_index is None:
                continue
            start_ring, _ = mesh.segment_rings[index]
            _, parent_end = mesh.segment_rings[seg.parent_index]
            assert start_ring == parent_end
            np.testing.assert_array_equal(
                mesh.ring_positions(start_ring), mesh.ring_positions(parent_end)
            )
            checked += 1
        assert checked == len(interp.segments) - 1

    def test_zero_length_parent_falls_back_to_new_ring(self, caplog):
        origin = np.zeros(3)
        up = np.array([0.0, 0.0, 1.0])
        segments = [
            BranchSegment(origin, origin.copy(), 1.0, 1.0, up, parent_index=None),
            BranchSegment(origin, up * 10.0, 1.0, 0.9, up, parent_index=0),
        ]
        with caplog.at_level(logging.WARNING):
            mesh = TreeGeometryBuilder().generate_mesh(segments, [], 8)

        assert 0 not in mesh.segment_rings
        assert mesh.segment_rings[1] == (0, 8)
        assert mesh.vertex_count == 16
        assert any('no end ring' in r.getMessage() for r in caplog.records)


class TestLeafMesh:
    """Double-sided quads appended after all branch geometry."""

    def test_leaf_counts(self):
        mesh = build('FL')
        assert mesh.vertex_count == 20
        assert mesh.triangle_count == 16 + 4
        assert mesh.branch_vertex_count == 16
        assert mesh.branch_triangle_count == 16
        assert mesh.leaf_vertex_count == 4
        assert mesh.leaf_triangle_count == 4

    def test_leaf_triangles_front_and_back(self):
        mesh = build('FL')
        leaf = mesh.triangles[48:]
        np.testing.assert_array_equal(leaf - 16, [0, 1, 2, 0, 2, 3, 2, 1, 0, 3, 2, 0])

    def test_leaf_quad_shape(self):
        mesh = build('FL', leaf_size=(4.0, 6.0), random_seed=3)
        corners = mesh.vertices[16:]
        center = np.array([0.0, 0.0, 10.0])

        # In the plane perpendicular to the leaf normal (+Z)
        np.testing.assert_allclose(corners[:, 2], 10.0, atol=1e-9)
        np.testing.assert_allclose(np.linalg.norm(corners - center, axis=1), np.hypot(2.0, 3.0))
        # Opposite corners are symmetric about the center
        np.testing.assert_allclose(corners[0] + corners[2], 2 * center, atol=1e-9)
        # BL -> BR is the width, BR -> TR the height
        assert np.isclose(np.linalg.norm(corners[1] - corners[0]), 4.0)
        assert np.isclose(np.linalg.norm(corners[2] - corners[1]), 6.0)

    def test_leaf_uvs_normals_colors(self):
        mesh = build('FL')
        np.testing.assert_allclose(mesh.uvs[16:], [[0, 1], [1, 1], [1, 0], [0, 0]])
        np.testing.assert_allclose(mesh.normals[16:], np.tile([0.0, 0.0, 1.0], (4, 1)), atol=1e-12)
        np.testing.assert_allclose(mesh.colors[16:], np.tile([0.2, 0.6, 0.2, 1.0], (4, 1)))

    def test_zero_size_leaf_uses_default(self):
        leaf = LeafPlacement(
            position=np.zeros(3),
            normal=np.array([1.0, 0.0, 0.0]),
            up=np.array([0.0, 0.0, 1.0]),
            size=(0.0, 0.0),
        )
        mesh = TreeGeometryBuilder(GeometryConfig(default_leaf_size=(2.0, 8.0))).generate_mesh([], [leaf])
        corners = mesh.vertices
        assert np.isclose(np.linalg.norm(corners[1] - corners[0]), 2.0)
        assert np.isclose(np.linalg.norm(corners[2] - corners[1]), 8.0)
        # Unrotated: height runs along the leaf's up vector
        np.testing.assert_allclose(corners[2] - corners[1], [0.0, 0.0, 8.0], atol=1e-12)

    def test_up_parallel_to_normal_still_builds(self):
        leaf = LeafPlacement(
            position=np.zeros(3),
            normal=np.array([0.0, 0.0, 1.0]),
            up=np.array([0.0, 0.0, 1.0]),
        )
        mesh = TreeGeometryBuilder().generate_mesh([], [leaf])
        assert mesh.vertex_count == 4
        assert np.all(np.isfinite(mesh.vertices))

    def test_leaves_excluded(self):
        mesh = build('FL', include_leaves=False)
        assert mesh.vertex_count == 16
        assert mesh.leaf_vertex_count == 0


class TestLODs:

    def test_lod_monotonicity(self):
        interp = reference_segments()
        lods = TreeGeometryBuilder().generate_mesh_lods(
            interp.segments, interp.leaves,
            [LODLevel(4, include_leaves=False), LODLevel(8, include_leaves=False), LODLevel(12, include_leaves=False)],
        )
        counts = [m.vertex_count for m in lods]
        assert counts[0] < counts[1] < counts[2]

    def test_empty_lod_table_uses_default(self, caplog):
        interp = reference_segments(iterations=1)
        with caplog.at_level(logging.WARNING):
            lods = TreeGeometryBuilder().generate_mesh_lods(interp.segments, interp.leaves, [])
        assert len(lods) == 1
        assert lods[0].radial_segments == 8
        assert lods[0].leaf_vertex_count == 4 * len(interp.leaves)

    def test_lod_level_clamps(self):
        assert LODLevel(radial_segments=0).radial_segments == 3
        assert LODLevel(radial_segments=64).radial_segments == 32


class TestEmptyAndSplit:

    def test_empty_input(self):
        mesh = TreeGeometryBuilder().generate_mesh([], [])
        assert mesh.is_empty
        assert mesh.vertices.shape == (0, 3)
        assert mesh.triangles.shape == (0,)
        assert mesh.branch_vertex_count == 0

        branch, leaf = mesh.split_sections()
        assert branch.vertex_count == 0
        assert leaf.triangle_count == 0

    def test_split_sections(self):
        mesh = build('F[+FL]FL')
        branch, leaf = mesh.split_sections()

        assert branch.vertex_count == mesh.branch_vertex_count
        assert branch.triangle_count == mesh.branch_triangle_count
        assert leaf.vertex_count == 8
        assert leaf.triangle_count == 8
        assert leaf.triangles.min() == 0
        assert leaf.triangles.max() == 7
        assert branch.triangles.max() < branch.vertex_count
        np.testing.assert_array_equal(leaf.vertices, mesh.vertices[mesh.branch_vertex_count:])
