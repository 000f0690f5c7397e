# lsystem_trees/kernel/vecmath.py
"""
VECMATH: Small 3D Vector Helpers Shared by Turtle and Geometry
==============================================================

PURPOSE:
--------
Both the turtle interpreter and the geometry builder work with the same
handful of vector operations:

    - safe normalization (zero vector instead of NaN)
    - axis-angle rotation (Rodrigues' formula)
    - Gram-Schmidt re-orthogonalization of a Forward/Left/Up basis
    - a pair of vectors perpendicular to a direction (ring planes, leaves)

Vectors are plain numpy float64 arrays of shape (3,). Coordinate system is
right-handed with Z up:

    UP_AXIS      = (0, 0, 1)
    FORWARD_AXIS = (1, 0, 0)   (fallback reference when a vector is near-vertical)

ROTATION:
---------
Rodrigues' rotation of v about unit axis k by angle θ:

    v' = v cosθ + (k × v) sinθ + k (k · v)(1 - cosθ)

Repeated rotations accumulate floating-point drift, so every turtle
rotation is followed by reorthogonalize_basis().
"""

import numpy as np
from typing import Tuple


UP_AXIS = np.array([0.0, 0.0, 1.0])
FORWARD_AXIS = np.array([1.0, 0.0, 0.0])

# Tolerances
SMALL_NUMBER = 1e-8        # squared-length threshold for safe normalization
KINDA_SMALL_NUMBER = 1e-4  # per-component "nearly zero" threshold


def as_vec3(value) -> np.ndarray:
    """Coerce a tuple/list/array to a fresh float64 3-vector."""
    arr = np.array(value, dtype=float).reshape(3)
    return arr


def safe_normal(v: np.ndarray, tolerance: float = SMALL_NUMBER) -> np.ndarray:
    """
    Return v normalized, or the zero vector if v is too short to normalize.
    """
    square_sum = float(np.dot(v, v))
    if square_sum < tolerance:
        return np.zeros(3)
    return v / np.sqrt(square_sum)


def is_nearly_zero(v: np.ndarray, tolerance: float = KINDA_SMALL_NUMBER) -> bool:
    """True if every component of v is within tolerance of zero."""
    return bool(np.all(np.abs(v) <= tolerance))


def rotate_vector(v: np.ndarray, axis: np.ndarray, angle_deg: float) -> np.ndarray:
    """
    Rotate v about axis by angle_deg (degrees, right-hand rule).

    A degenerate (near-zero) axis leaves v unchanged.
    """
    if is_nearly_zero(axis):
        return np.array(v, dtype=float)

    k = safe_normal(axis)
    theta = np.radians(angle_deg)
    cos_t = np.cos(theta)
    sin_t = np.sin(theta)

    return v * cos_t + np.cross(k, v) * sin_t + k * np.dot(k, v) * (1.0 - cos_t)


def _reference_left(forward: np.ndarray, threshold: float) -> np.ndarray:
    """Left axis from a world reference that is not parallel to forward."""
    if abs(forward[2]) < threshold:
        return safe_normal(np.cross(UP_AXIS, forward))
    return safe_normal(np.cross(FORWARD_AXIS, forward))


def initial_basis(forward: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Build an orthonormal (forward, left, up) basis from a forward vector.

    The world up axis is used as the reference unless forward is within
    ~8 degrees of vertical, in which case the world X axis is used.
    """
    f = safe_normal(forward)
    if is_nearly_zero(f):
        f = UP_AXIS.copy()
    left = _reference_left(f, 0.99)
    up = safe_normal(np.cross(f, left))
    return f, left, up


def reorthogonalize_basis(
    forward: np.ndarray,
    left: np.ndarray,
    up: np.ndarray,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Restore an orthonormal basis with forward as the primary axis.

    Steps:
    1. Normalize forward
    2. Project forward out of left (Gram-Schmidt) and normalize
    3. If left collapsed, rebuild it from a world reference axis
    4. up = forward × left

    The incoming up vector is discarded; it is fully determined by the
    other two axes.
    """
    f = safe_normal(forward)
    l = safe_normal(left - f * np.dot(left, f))

    if is_nearly_zero(l):
        l = _reference_left(f, 0.9)

    u = safe_normal(np.cross(f, l))
    return f, l, u


def perpendicular_vectors(direction: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Two unit vectors (right, up) spanning the plane perpendicular to direction.

    Used for branch ring planes and as a fallback leaf orientation.
    """
    d = safe_normal(direction)
    if abs(d[2]) < 0.9:
        reference = UP_AXIS
    else:
        reference = FORWARD_AXIS
    right = safe_normal(np.cross(reference, d))
    up = safe_normal(np.cross(d, right))
    return right, up


def reference_tangents(normals: np.ndarray) -> np.ndarray:
    """
    Per-vertex tangents from a fixed reference axis (vectorized).

    tangent = normalize(UP × n) unless n is near-vertical, then
    normalize(X × n). These are not UV-derivative tangents; they only need
    to be perpendicular to the normal.
    """
    normals = np.asarray(normals, dtype=float).reshape(-1, 3)
    if len(normals) == 0:
        return np.zeros((0, 3))

    near_vertical = np.abs(normals[:, 2]) >= 0.9
    references = np.where(near_vertical[:, None], FORWARD_AXIS, UP_AXIS)
    tangents = np.cross(references, normals)

    lengths = np.linalg.norm(tangents, axis=1)
    safe = lengths * lengths >= SMALL_NUMBER
    tangents[safe] /= lengths[safe][:, None]
    tangents[~safe] = 0.0
    return tangents
