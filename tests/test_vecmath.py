# tests/test_vecmath.py
"""
Vector helper tests: rotation, basis construction, drift repair.
"""

import numpy as np

from lsystem_trees.kernel.random_stream import RandomStream
from lsystem_trees.kernel.vecmath import (
    initial_basis,
    perpendicular_vectors,
    reference_tangents,
    reorthogonalize_basis,
    rotate_vector,
    safe_normal,
)


def assert_orthonormal(f, l, u):
    for v in (f, l, u):
        assert np.isclose(np.linalg.norm(v), 1.0, atol=1e-9)
    assert np.isclose(np.dot(f, l), 0.0, atol=1e-9)
    assert np.isclose(np.dot(f, u), 0.0, atol=1e-9)
    assert np.isclose(np.dot(l, u), 0.0, atol=1e-9)
    np.testing.assert_allclose(np.cross(f, l), u, atol=1e-9)


class TestRotation:

    def test_quarter_turn_about_z(self):
        v = rotate_vector(np.array([1.0, 0.0, 0.0]), np.array([0.0, 0.0, 1.0]), 90.0)
        np.testing.assert_allclose(v, [0.0, 1.0, 0.0], atol=1e-12)

    def test_axis_is_normalized(self):
        v = rotate_vector(np.array([1.0, 0.0, 0.0]), np.array([0.0, 0.0, 5.0]), 90.0)
        np.testing.assert_allclose(v, [0.0, 1.0, 0.0], atol=1e-12)

    def test_zero_axis_is_identity(self):
        v = np.array([1.0, 2.0, 3.0])
        np.testing.assert_allclose(rotate_vector(v, np.zeros(3), 45.0), v)

    def test_rotation_preserves_length(self):
        v = np.array([3.0, -1.0, 2.0])
        r = rotate_vector(v, np.array([1.0, 1.0, 0.0]), 37.0)
        assert np.isclose(np.linalg.norm(r), np.linalg.norm(v))


class TestBasis:

    def test_safe_normal_of_zero(self):
        np.testing.assert_array_equal(safe_normal(np.zeros(3)), np.zeros(3))

    def test_initial_basis_vertical_forward(self):
        f, l, u = initial_basis(np.array([0.0, 0.0, 1.0]))
        np.testing.assert_allclose(f, [0.0, 0.0, 1.0])
        assert_orthonormal(f, l, u)

    def test_initial_basis_horizontal_forward(self):
        f, l, u = initial_basis(np.array([1.0, 0.0, 0.0]))
        np.testing.assert_allclose(l, [0.0, 1.0, 0.0], atol=1e-12)
        np.testing.assert_allclose(u, [0.0, 0.0, 1.0], atol=1e-12)
        assert_orthonormal(f, l, u)

    def test_reorthogonalize_repairs_drift(self):
        f = np.array([0.0, 0.0, 1.0]) + np.array([1e-3, 0.0, 0.0])
        l = np.array([0.0, -1.0, 0.0]) + np.array([2e-3, 0.0, 1e-3])
        u = np.array([1.0, 0.0, 0.0])
        assert_orthonormal(*reorthogonalize_basis(f, l, u))

    def test_reorthogonalize_collapsed_left_uses_reference(self):
        f = np.array([1.0, 0.0, 0.0])
        out = reorthogonalize_basis(f, f.copy(), np.zeros(3))
        assert_orthonormal(*out)

    def test_long_random_rotation_sequence_stays_orthonormal(self):
        rng = RandomStream(2024)
        f, l, u = initial_basis(np.array([0.0, 0.0, 1.0]))
        for _ in range(5000):
            angle = rng.frand_range(-45.0, 45.0)
            axis = (f, l, u)[rng.rand_range(0, 2)]
            f, l, u = (rotate_vector(v, axis, angle) for v in (f, l, u))
            f, l, u = reorthogonalize_basis(f, l, u)
        assert_orthonormal(f, l, u)


class TestPerpendicularVectors:

    def test_perpendicular_for_various_directions(self):
        for d in ([0, 0, 1], [1, 0, 0], [0.3, -0.2, 0.9], [0, 0, -1]):
            d = safe_normal(np.array(d, dtype=float))
            right, up = perpendicular_vectors(d)
            assert np.isclose(np.dot(right, d), 0.0, atol=1e-9)
            assert np.isclose(np.dot(up, d), 0.0, atol=1e-9)
            assert np.isclose(np.dot(right, up), 0.0, atol=1e-9)
            assert np.isclose(np.linalg.norm(right), 1.0)

    def test_reference_tangents_perpendicular_to_normals(self):
        normals = np.array([[1.0, 0.0, 0.0], [0.0, 0.0, 1.0], [0.0, 0.6, 0.8]])
        tangents = reference_tangents(normals)
        assert tangents.shape == (3, 3)
        np.testing.assert_allclose(np.sum(tangents * normals, axis=1), 0.0, atol=1e-12)
        np.testing.assert_allclose(np.linalg.norm(tangents, axis=1), 1.0)


class TestRandomStream:

    def test_seeded_sequences_repeat(self):
        a = RandomStream(42)
        b = RandomStream(42)
        assert [a.frand() for _ in range(10)] == [b.frand() for _ in range(10)]

    def test_rand_range_is_inclusive(self):
        rng = RandomStream(1)
        values = {rng.rand_range(0, 2) for _ in range(200)}
        assert values == {0, 1, 2}

    def test_frand_range_bounds(self):
        rng = RandomStream(3)
        for _ in range(100):
            assert -30.0 <= rng.frand_range(-30.0, 30.0) < 30.0
