# lsystem_trees/kernel - Shared math and randomness
"""
KERNEL: STAGE-AGNOSTIC HELPERS
==============================

Vector math and the seedable random stream used by the grammar, turtle
and geometry stages. Nothing here knows about L-Systems.
"""

from .vecmath import (
    UP_AXIS,
    FORWARD_AXIS,
    as_vec3,
    safe_normal,
    is_nearly_zero,
    rotate_vector,
    initial_basis,
    reorthogonalize_basis,
    perpendicular_vectors,
    reference_tangents,
)
from .random_stream import RandomStream

__all__ = [
    'UP_AXIS', 'FORWARD_AXIS', 'as_vec3', 'safe_normal', 'is_nearly_zero',
    'rotate_vector', 'initial_basis', 'reorthogonalize_basis',
    'perpendicular_vectors', 'reference_tangents', 'RandomStream',
]
