# lsystem_trees - Procedural L-System Tree Meshes
"""
LSYSTEM-TREES: Seed-Reproducible Procedural Tree Geometry
=========================================================

This package provides:
- A context-sensitive, stochastic L-System grammar engine
- A 3D turtle interpreter (branch segments + leaf placements)
- A geometry builder producing welded, per-LOD mesh buffers
- A one-call pipeline tying the three together

ARCHITECTURE:
-------------
    kernel/           Vector math and the seedable random stream
    grammar/          Rules, LSystemGenerator, background GenerationTask
    turtle/           TurtleConfig/State, TurtleInterpreter
    geometry/         LODLevel, MeshData, TreeGeometryBuilder
    pipeline.py       TreeParams -> generate_tree() -> TreeResult
    logging_config.py setup_logging() for applications and demos
"""

from .grammar import GenerationConfig, LSystemGenerator, Rule, parse_rule
from .turtle import TurtleConfig, TurtleInterpreter
from .geometry import GeometryConfig, LODLevel, MeshData, TreeGeometryBuilder
from .pipeline import REFERENCE_AXIOM, REFERENCE_RULE, TreeParams, TreeResult, generate_tree

__version__ = "0.1.0"
