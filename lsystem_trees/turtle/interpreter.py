# lsystem_trees/turtle/interpreter.py
"""
TURTLE INTERPRETER: Symbol String -> Branch Segments + Leaves
=============================================================

PURPOSE:
--------
Walk an L-System string one symbol at a time, moving a 3D cursor (the
"turtle") and recording what it draws. Second stage of the pipeline:

    symbol string  ->  [TurtleInterpreter]  ->  segments + leaves  ->  geometry

SYMBOLS:
--------
    F     move forward, emit a branch segment
    f     move forward, emit nothing
    + -   yaw   +/- default_angle  about Up
    ^ &   pitch +/- pitch_angle    about Left
    \\ /   roll  +/- roll_angle     about Forward
    |     turn around (yaw 180 degrees, no jitter)
    [     push state (branch start), narrower width, depth + 1
    ]     pop state (branch end)
    L     place a leaf
    other ignored

SEGMENT CHAINING:
-----------------
Each segment's parent_index is the segment emitted just before it,
counted over the whole pass. Popping a branch does NOT restore the chain,
so the first segment after ']' points at the last segment drawn inside
the branch. The geometry builder welds rings along this chain.

BRANCH SKIPPING:
----------------
With branch_probability < 1, a '[' may instead start skip mode: every
symbol up to the matching ']' is ignored. Skip mode keeps its own nesting
counter and never touches the state stack.

TROPISM:
--------
After each move the forward vector is bent toward tropism_direction.
Elevation is measured from the plane perpendicular to that direction:

    u         = -normalize(tropism_direction)      ("away" axis)
    h         = forward - u (forward · u)          (in-plane part)
    elevation = atan2(forward · u, |h|)
    target    = max(elevation - strength * 5°, -80°)

The basis is rotated about u × h by (elevation - target). Near-parallel
forward vectors (|h| tiny) and zero strength skip the step.
"""

import logging
import numpy as np
from dataclasses import dataclass, field
from typing import List, Optional

from ..kernel.random_stream import RandomStream
from ..kernel.vecmath import (
    KINDA_SMALL_NUMBER,
    as_vec3,
    reorthogonalize_basis,
    rotate_vector,
    safe_normal,
)
from .state import BranchSegment, LeafPlacement, TurtleConfig, TurtleState, initial_state


logger = logging.getLogger(__name__)


MIN_STEP_LENGTH = 0.1
RADIUS_TAPER = 0.95
TROPISM_DEGREES_PER_STEP = 5.0
TROPISM_MIN_ELEVATION = -80.0
LEAF_ROTATION_RANGE = 30.0


@dataclass
class InterpretationResult:
    """
    Everything one interpretation pass produced.

    warnings holds structural problems (e.g. ']' on an empty stack) that
    were logged and skipped.
    """
    segments: List[BranchSegment] = field(default_factory=list)
    leaves: List[LeafPlacement] = field(default_factory=list)
    max_depth: int = 0
    symbols_processed: int = 0
    warnings: List[str] = field(default_factory=list)
    final_state: Optional[TurtleState] = None


class TurtleInterpreter:
    """
    3D turtle with a push/pop state stack.

    One instance can run many passes; every call to interpret() starts
    from a fresh cursor, stack and random stream.
    """

    def __init__(self):
        self._config = TurtleConfig()
        self._rng = RandomStream(0)
        self._state = TurtleState()
        self._stack: List[TurtleState] = []
        self._skip_depth = 0
        self._last_segment: Optional[int] = None
        self._result = InterpretationResult()

    def interpret(self, text: str, config: Optional[TurtleConfig] = None) -> InterpretationResult:
        """
        Interpret a symbol string.

        Parameters:
        -----------
        text : str
            L-System output
        config : TurtleConfig, optional
            Defaults to TurtleConfig()

        Returns:
        --------
        InterpretationResult
        """
        self._reset(config if config is not None else TurtleConfig())

        logger.debug("Interpreting L-System string of length %d", len(text))
        for symbol in text:
            self._process_symbol(symbol)
            self._result.symbols_processed += 1

        result = self._result
        result.final_state = self._state.copy()
        logger.info(
            "Interpretation complete: %d segments, %d leaves, max depth %d",
            len(result.segments), len(result.leaves), result.max_depth,
        )
        return result

    def interpret_to_segments(self, text: str, config: Optional[TurtleConfig] = None) -> List[BranchSegment]:
        return self.interpret(text, config).segments

    # -------------------------------------------------------------------------
    # Pass setup
    # -------------------------------------------------------------------------

    def _reset(self, config: TurtleConfig) -> None:
        self._config = config
        self._rng = RandomStream(config.random_seed)
        self._stack = []
        self._skip_depth = 0
        self._last_segment = None
        self._result = InterpretationResult()
        self._state = initial_state(config)

        if config.initial_random_roll > 0.0:
            roll = self._rng.frand_range(0.0, config.initial_random_roll)
            self._roll(roll)
            logger.debug("Applied initial random roll: %.1f degrees", roll)

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    def _process_symbol(self, symbol: str) -> None:
        if self._skip_depth > 0:
            if symbol == '[':
                self._skip_depth += 1
            elif symbol == ']':
                self._skip_depth -= 1
            return

        config = self._config
        if symbol == 'F':
            self._forward(draw=True)
        elif symbol == 'f':
            self._forward(draw=False)
        elif symbol == '+':
            self._yaw(config.default_angle + self._angle_jitter())
        elif symbol == '-':
            self._yaw(-config.default_angle + self._angle_jitter())
        elif symbol == '^':
            self._pitch(config.pitch_angle)
        elif symbol == '&':
            self._pitch(-config.pitch_angle)
        elif symbol == '\\':
            self._roll(config.roll_angle + self._angle_jitter())
        elif symbol == '/':
            self._roll(-config.roll_angle + self._angle_jitter())
        elif symbol == '|':
            self._yaw(180.0)
        elif symbol == '[':
            self._push()
        elif symbol == ']':
            self._pop()
        elif symbol == 'L':
            self._place_leaf()

    # -------------------------------------------------------------------------
    # Movement
    # -------------------------------------------------------------------------

    def _forward(self, draw: bool) -> None:
        config = self._config
        state = self._state

        start = state.position.copy()
        start_width = state.width
        end_width = max(start_width * RADIUS_TAPER, config.min_width)

        step = config.step_length
        if config.step_length_variation > 0.0:
            variation = self._rng.frand_range(-config.step_length_variation, config.step_length_variation)
            step = max(step * (1.0 + variation), MIN_STEP_LENGTH)

        direction = state.forward.copy()
        state.position = start + direction * step

        if draw and start_width >= config.min_width:
            self._result.segments.append(BranchSegment(
                start_position=start,
                end_position=state.position.copy(),
                start_radius=start_width,
                end_radius=end_width,
                direction=direction,
                depth=state.depth,
                parent_index=self._last_segment,
            ))
            self._last_segment = len(self._result.segments) - 1

        self._apply_tropism()
        state.width = end_width

    def _apply_tropism(self) -> None:
        strength = self._config.tropism_strength
        if strength <= 0.0:
            return

        state = self._state
        away = -safe_normal(as_vec3(self._config.tropism_direction))
        if not np.any(away):
            return

        along = float(np.dot(state.forward, away))
        in_plane = state.forward - away * along
        in_plane_len = float(np.linalg.norm(in_plane))
        if in_plane_len < KINDA_SMALL_NUMBER:
            return

        axis = np.cross(away, in_plane / in_plane_len)
        elevation = np.degrees(np.arctan2(along, in_plane_len))
        target = max(elevation - strength * TROPISM_DEGREES_PER_STEP, TROPISM_MIN_ELEVATION)
        angle = elevation - target

        if angle > 0.01:
            state.forward = rotate_vector(state.forward, axis, angle)
            state.up = rotate_vector(state.up, axis, angle)
            state.left = rotate_vector(state.left, axis, angle)
            self._reorthogonalize()

    # -------------------------------------------------------------------------
    # Rotation
    # -------------------------------------------------------------------------

    def _angle_jitter(self) -> float:
        low, high = self._config.angle_variation
        if low >= high:
            return 0.0
        return self._rng.frand_range(low, high)

    def _pitch_jitter(self) -> float:
        low, high = self._config.pitch_variation
        if low >= high:
            return 0.0
        return self._rng.frand_range(low, high)

    def _yaw(self, angle: float) -> None:
        state = self._state
        state.forward = rotate_vector(state.forward, state.up, angle)
        state.left = rotate_vector(state.left, state.up, angle)
        self._reorthogonalize()

    def _pitch(self, angle: float) -> None:
        flip = self._config.pitch_flip_probability
        if flip > 0.0 and self._rng.frand() < flip:
            angle = -angle
        angle += self._pitch_jitter()

        state = self._state
        state.forward = rotate_vector(state.forward, state.left, angle)
        state.up = rotate_vector(state.up, state.left, angle)
        self._reorthogonalize()

    def _roll(self, angle: float) -> None:
        state = self._state
        state.left = rotate_vector(state.left, state.forward, angle)
        state.up = rotate_vector(state.up, state.forward, angle)
        self._reorthogonalize()

    def _reorthogonalize(self) -> None:
        state = self._state
        state.forward, state.left, state.up = reorthogonalize_basis(
            state.forward, state.left, state.up
        )

    # -------------------------------------------------------------------------
    # Branching
    # -------------------------------------------------------------------------

    def _push(self) -> None:
        config = self._config
        if config.branch_probability < 1.0:
            roll = self._rng.frand()
            if roll > config.branch_probability:
                self._skip_depth = 1
                logger.debug(
                    "Skipping branch (rolled %.2f, probability %.2f)",
                    roll, config.branch_probability,
                )
                return

        self._stack.append(self._state.copy())
        state = self._state
        state.depth += 1
        state.width = max(state.width * config.width_falloff, config.min_width)
        self._result.max_depth = max(self._result.max_depth, state.depth)

    def _pop(self) -> None:
        if not self._stack:
            message = f"Attempted to pop empty state stack at symbol {self._result.symbols_processed}"
            logger.warning(message)
            self._result.warnings.append(message)
            return
        self._state = self._stack.pop()

    def _place_leaf(self) -> None:
        state = self._state
        width, height = self._config.leaf_size
        self._result.leaves.append(LeafPlacement(
            position=state.position.copy(),
            normal=state.forward.copy(),
            up=state.up.copy(),
            size=(float(width), float(height)),
            rotation=self._rng.frand_range(-LEAF_ROTATION_RANGE, LEAF_ROTATION_RANGE),
            depth=state.depth,
        ))
