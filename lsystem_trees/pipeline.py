# lsystem_trees/pipeline.py
"""
TREE PIPELINE: Grammar -> Turtle -> Geometry in One Call
========================================================

PURPOSE:
--------
Run the three stages once, in order, and hand back every intermediate
product along with the per-LOD meshes:

    TreeParams
        |
        v
    LSystemGenerator.generate      -> symbol string
        |
        v
    TurtleInterpreter.interpret    -> segments + leaves
        |
        v
    TreeGeometryBuilder.generate_mesh_lods -> [MeshData, ...]

The seed in TreeParams drives both the grammar and the turtle, so one
integer reproduces the whole tree.

ERRORS:
-------
Nothing is raised. A rejected rule, an empty axiom or a cancelled
generation comes back as TreeResult(success=False, error_message=...).
"""

import logging
import threading
from dataclasses import dataclass, field, replace
from typing import Callable, List, Optional, Union

from .grammar.generator import GenerationConfig, GenerationResult, LSystemGenerator
from .grammar.rules import Rule
from .turtle.interpreter import InterpretationResult, TurtleInterpreter
from .turtle.state import TurtleConfig
from .geometry.builder import TreeGeometryBuilder
from .geometry.mesh import GeometryConfig, LODLevel, MeshData


logger = logging.getLogger(__name__)


REFERENCE_AXIOM = 'F'
REFERENCE_RULE = 'F -> FF&[-/F+F+FL]^[+\\F-F-FL]'

PIPELINE_STEPS = 4


def default_lod_levels() -> List[LODLevel]:
    """High / medium / low detail; leaves only on the first two."""
    return [
        LODLevel(radial_segments=12, screen_size=1.0, include_leaves=True),
        LODLevel(radial_segments=8, screen_size=0.5, include_leaves=True),
        LODLevel(radial_segments=4, screen_size=0.25, include_leaves=False),
    ]


@dataclass
class TreeParams:
    """
    Everything needed to build one tree.

    Grammar:
    --------
    axiom : str
    rules : list of Rule or rule-text strings
    iterations : int

    Reproducibility:
    ----------------
    random_seed : int
        Copied into the generation and turtle configs (0 = fresh entropy)

    Stages:
    -------
    generation : GenerationConfig
    turtle : TurtleConfig
    geometry : GeometryConfig
    lod_levels : list of LODLevel
    """
    axiom: str = REFERENCE_AXIOM
    rules: List[Union[Rule, str]] = field(default_factory=lambda: [REFERENCE_RULE])
    iterations: int = 4
    random_seed: int = 0
    generation: GenerationConfig = field(default_factory=GenerationConfig)
    turtle: TurtleConfig = field(default_factory=TurtleConfig)
    geometry: GeometryConfig = field(default_factory=GeometryConfig)
    lod_levels: List[LODLevel] = field(default_factory=default_lod_levels)


@dataclass
class TreeResult:
    success: bool = False
    error_message: str = ''
    lsystem_string: str = ''
    generation: Optional[GenerationResult] = None
    interpretation: Optional[InterpretationResult] = None
    lods: List[MeshData] = field(default_factory=list)

    def lod(self, index: int) -> Optional[MeshData]:
        """Mesh for a LOD index, clamped to the available range."""
        if not self.lods:
            return None
        return self.lods[min(max(index, 0), len(self.lods) - 1)]

    @property
    def segment_count(self) -> int:
        return len(self.interpretation.segments) if self.interpretation else 0

    @property
    def leaf_count(self) -> int:
        return len(self.interpretation.leaves) if self.interpretation else 0


def generate_tree(
    params: TreeParams,
    cancel_event: Optional[threading.Event] = None,
    on_progress: Optional[Callable[[int, int], None]] = None,
) -> TreeResult:
    """
    Build a tree from parameters.

    Parameters:
    -----------
    params : TreeParams
    cancel_event : threading.Event, optional
        Checked by the grammar stage between passes
    on_progress : callable(step, total), optional
        Called after each of the 4 steps (setup, grammar, turtle, geometry)

    Returns:
    --------
    TreeResult
    """
    def report(step: int) -> None:
        if on_progress is not None:
            on_progress(step, PIPELINE_STEPS)

    # Step 1: grammar setup
    generation_config = replace(params.generation, random_seed=params.random_seed)
    generator = LSystemGenerator(params.axiom, generation_config)
    for rule in params.rules:
        added = generator.add_rule_string(rule) if isinstance(rule, str) else generator.add_rule(rule)
        if not added:
            return TreeResult(error_message=f"Invalid rule: {rule}")
    report(1)

    # Step 2: rewrite
    generation = generator.generate(params.iterations, cancel_event=cancel_event)
    if not generation.success:
        message = generation.error_message or f"Generation {generation.status.value}"
        logger.warning("Tree generation stopped: %s", message)
        return TreeResult(
            error_message=message,
            lsystem_string=generation.generated_string,
            generation=generation,
        )
    report(2)

    # Step 3: interpret
    turtle_config = replace(
        params.turtle,
        random_seed=params.random_seed,
        leaf_size=tuple(params.geometry.default_leaf_size),
    )
    interpretation = TurtleInterpreter().interpret(generation.generated_string, turtle_config)
    report(3)

    # Step 4: mesh
    builder = TreeGeometryBuilder(params.geometry)
    lods = builder.generate_mesh_lods(
        interpretation.segments, interpretation.leaves, params.lod_levels
    )
    report(4)

    logger.info(
        "Tree built: %d symbols, %d segments, %d leaves, %d LODs",
        len(generation.generated_string),
        len(interpretation.segments),
        len(interpretation.leaves),
        len(lods),
    )
    return TreeResult(
        success=True,
        lsystem_string=generation.generated_string,
        generation=generation,
        interpretation=interpretation,
        lods=lods,
    )
