# lsystem_trees/turtle - Turtle Interpreter
"""Turns a symbol string into branch segments and leaf placements."""

from .state import BranchSegment, LeafPlacement, TurtleConfig, TurtleState, initial_state
from .interpreter import InterpretationResult, TurtleInterpreter

__all__ = [
    'BranchSegment', 'LeafPlacement', 'TurtleConfig', 'TurtleState', 'initial_state',
    'InterpretationResult', 'TurtleInterpreter',
]
