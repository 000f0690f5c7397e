# lsystem_trees/grammar - Grammar Engine
"""
GRAMMAR ENGINE
==============

    rules.py       Rule, rule text parser, rule-set helpers
    generator.py   LSystemGenerator and its config/result/statistics records
    background.py  GenerationTask (cancellable background run)
"""

from .rules import (
    Rule,
    RuleValidationError,
    parse_rule,
    validate_rules,
    normalize_probabilities,
    rules_for_predecessor,
    context_sensitive_rules,
    context_free_rules,
    sort_by_specificity,
    unique_predecessors,
    growth_factor,
    has_stochastic_rules,
    has_context_sensitive_rules,
    describe_rule,
)
from .generator import (
    GenerationConfig,
    GenerationResult,
    GenerationState,
    GenerationStatistics,
    GenerationStatus,
    LSystemGenerator,
    TerminationReason,
)
from .background import GenerationEvent, GenerationTask

__all__ = [
    'Rule', 'RuleValidationError', 'parse_rule', 'validate_rules',
    'normalize_probabilities', 'rules_for_predecessor', 'context_sensitive_rules',
    'context_free_rules', 'sort_by_specificity', 'unique_predecessors',
    'growth_factor', 'has_stochastic_rules', 'has_context_sensitive_rules',
    'describe_rule',
    'GenerationConfig', 'GenerationResult', 'GenerationState', 'GenerationStatistics',
    'GenerationStatus', 'LSystemGenerator', 'TerminationReason',
    'GenerationEvent', 'GenerationTask',
]
