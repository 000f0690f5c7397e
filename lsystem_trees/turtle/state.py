# lsystem_trees/turtle/state.py
"""
TURTLE DATA MODEL: Configuration, Cursor State, and Emitted Primitives
======================================================================

PURPOSE:
--------
Plain records shared by the turtle interpreter and the geometry builder.

    TurtleConfig   how symbols are interpreted (angles, step, widths, ...)
    TurtleState    the 3D cursor: position + orthonormal basis + width + depth
    BranchSegment  one tapered cylinder emitted by 'F'
    LeafPlacement  one leaf emitted by 'L'

COORDINATES:
------------
Right-handed, Z up. Angles in degrees, lengths in scene units.
The turtle basis is (forward, left, up) with up = forward × left:

          up
          ^
          |
          |
          +------> forward
         /
        v
      left

Default orientation: forward = +Z (growing straight up).
"""

import numpy as np
from dataclasses import dataclass, field
from typing import Optional, Tuple

from ..kernel.vecmath import as_vec3, initial_basis


@dataclass
class TurtleConfig:
    """
    Interpretation parameters.

    Rotation:
    ---------
    default_angle : float
        Yaw for '+' / '-' (degrees)
    pitch_angle : float
        Pitch for '^' / '&' (degrees)
    roll_angle : float
        Roll for '\\' / '/' (degrees)
    angle_variation : (min, max)
        Uniform jitter added to yaw and roll (no jitter when min >= max)
    pitch_variation : (min, max)
        Uniform jitter added to pitch
    pitch_flip_probability : float
        Chance that a pitch command turns the opposite way, [0, 1]

    Movement:
    ---------
    step_length : float
        Distance moved by 'F' / 'f'
    step_length_variation : float
        Multiplicative jitter fraction in [0, 1): step * (1 + U(-v, v))

    Width:
    ------
    initial_width : float
        Radius of the trunk base
    width_falloff : float
        Width multiplier on '[' in [0, 1]
    min_width : float
        Width floor; segments thinner than this are not emitted

    Tropism:
    --------
    tropism_strength : float
        0 = none, 1 = up to 5 degrees of bending per step
    tropism_direction : (x, y, z)
        Direction growth is pulled toward (default straight down)

    Other:
    ------
    leaf_size : (width, height)
    branch_probability : float
        Chance that a '[' branch is drawn; otherwise it is skipped whole
    initial_position, initial_forward : (x, y, z)
    initial_random_roll : float
        Random roll U(0, value) degrees applied once at the start
    random_seed : int
        0 = fresh OS entropy, anything else deterministic
    """
    default_angle: float = 25.0
    pitch_angle: float = 25.0
    roll_angle: float = 25.0
    step_length: float = 10.0
    step_length_variation: float = 0.0
    initial_width: float = 5.0
    width_falloff: float = 0.7
    min_width: float = 0.5
    tropism_strength: float = 0.0
    tropism_direction: Tuple[float, float, float] = (0.0, 0.0, -1.0)
    leaf_size: Tuple[float, float] = (10.0, 15.0)
    branch_probability: float = 1.0
    angle_variation: Tuple[float, float] = (0.0, 0.0)
    pitch_variation: Tuple[float, float] = (0.0, 0.0)
    pitch_flip_probability: float = 0.0
    initial_position: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    initial_forward: Tuple[float, float, float] = (0.0, 0.0, 1.0)
    initial_random_roll: float = 0.0
    random_seed: int = 0

    def __post_init__(self):
        self.step_length_variation = min(max(self.step_length_variation, 0.0), 0.99)
        self.width_falloff = min(max(self.width_falloff, 0.0), 1.0)
        self.min_width = max(self.min_width, 0.0)
        self.tropism_strength = min(max(self.tropism_strength, 0.0), 1.0)
        self.branch_probability = min(max(self.branch_probability, 0.0), 1.0)
        self.pitch_flip_probability = min(max(self.pitch_flip_probability, 0.0), 1.0)
        self.initial_random_roll = max(self.initial_random_roll, 0.0)


@dataclass
class TurtleState:
    """The cursor. Copied (not aliased) when pushed on the branch stack."""
    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    forward: np.ndarray = field(default_factory=lambda: np.array([0.0, 0.0, 1.0]))
    left: np.ndarray = field(default_factory=lambda: np.array([0.0, -1.0, 0.0]))
    up: np.ndarray = field(default_factory=lambda: np.array([1.0, 0.0, 0.0]))
    width: float = 5.0
    depth: int = 0

    def copy(self) -> 'TurtleState':
        return TurtleState(
            position=self.position.copy(),
            forward=self.forward.copy(),
            left=self.left.copy(),
            up=self.up.copy(),
            width=self.width,
            depth=self.depth,
        )


@dataclass(frozen=True)
class BranchSegment:
    """
    One tapered cylinder between two turtle positions.

    parent_index is the index of the segment emitted immediately before
    this one (None for the first), which the geometry builder uses to weld
    this segment's start ring onto the parent's end ring.
    """
    start_position: np.ndarray
    end_position: np.ndarray
    start_radius: float
    end_radius: float
    direction: np.ndarray
    depth: int = 0
    parent_index: Optional[int] = None

    @property
    def length(self) -> float:
        return float(np.linalg.norm(self.end_position - self.start_position))


@dataclass(frozen=True)
class LeafPlacement:
    position: np.ndarray
    normal: np.ndarray
    up: np.ndarray
    size: Tuple[float, float] = (10.0, 15.0)
    rotation: float = 0.0  # in-plane, degrees
    depth: int = 0


def initial_state(config: TurtleConfig) -> TurtleState:
    """Cursor at the configured origin with a basis built from initial_forward."""
    forward, left, up = initial_basis(as_vec3(config.initial_forward))
    return TurtleState(
        position=as_vec3(config.initial_position),
        forward=forward,
        left=left,
        up=up,
        width=float(config.initial_width),
        depth=0,
    )
