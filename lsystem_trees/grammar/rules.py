# lsystem_trees/grammar/rules.py
"""
PRODUCTION RULES: Representation, Parsing, and Rule-Set Helpers
===============================================================

PURPOSE:
--------
A production rule rewrites one symbol (the predecessor) into a string
(the successor). Rules can be restricted by the immediate neighbors of
the symbol (context) and weighted against equally specific alternatives
(probability).

RULE TEXT NOTATION:
-------------------
    [Left <] Predecessor [> Right] -> Successor [(probability)]

Examples:
    F -> FF[+F][-F]         context-free, deterministic
    F -> F[+F] (0.5)        context-free, stochastic
    A < B -> C              left context
    B > C -> D              right context
    A < B > C -> X (0.5)    full context, stochastic

The unicode arrow "→" is accepted in place of "->".

SPECIFICITY:
------------
One point per defined context side (0, 1 or 2). When several rules match
the same symbol, only those with the highest specificity are eligible;
the grammar engine then draws among them by probability.

VALIDATION:
-----------
A valid rule has:
- predecessor of exactly one symbol
- non-empty successor
- contexts of at most one symbol
- a finite probability in [0, 1] (finite values are clamped on construction)
"""

import math
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple


# Trailing "(0.5)" probability annotation
_PROBABILITY_SUFFIX = re.compile(r'\(([^()]*)\)\s*$')

_ARROWS = ('->', '→')


class RuleValidationError(ValueError):
    """
    Raised when a rule is malformed (bad predecessor, empty successor,
    oversized context, non-finite probability) or rule text cannot be parsed.
    """
    pass


@dataclass(frozen=True)
class Rule:
    """
    A single L-System production rule.

    Attributes:
    -----------
    predecessor : str
        The symbol this rule rewrites (exactly one character)
    successor : str
        Replacement string (at least one character)
    probability : float
        Selection weight among equally specific matching rules, in [0, 1]
    left_context : str
        Required left neighbor ('' = any)
    right_context : str
        Required right neighbor ('' = any)
    """
    predecessor: str
    successor: str
    probability: float = 1.0
    left_context: str = ''
    right_context: str = ''

    def __post_init__(self):
        p = float(self.probability)
        if math.isfinite(p):
            p = min(max(p, 0.0), 1.0)
        object.__setattr__(self, 'probability', p)

    def validate(self) -> None:
        """Raise RuleValidationError describing the first problem found."""
        if len(self.predecessor) != 1:
            raise RuleValidationError(
                f"Predecessor must be exactly 1 character, got '{self.predecessor}'"
            )
        if len(self.successor) == 0:
            raise RuleValidationError("Successor cannot be empty")
        if len(self.left_context) > 1:
            raise RuleValidationError(
                f"Left context must be 0 or 1 character, got '{self.left_context}'"
            )
        if len(self.right_context) > 1:
            raise RuleValidationError(
                f"Right context must be 0 or 1 character, got '{self.right_context}'"
            )
        if not math.isfinite(self.probability):
            raise RuleValidationError(f"Probability must be finite, got {self.probability}")

    @property
    def is_valid(self) -> bool:
        try:
            self.validate()
        except RuleValidationError:
            return False
        return True

    @property
    def is_context_sensitive(self) -> bool:
        return bool(self.left_context or self.right_context)

    @property
    def specificity(self) -> int:
        """Number of defined context sides (0-2)."""
        return int(bool(self.left_context)) + int(bool(self.right_context))

    def matches_context(self, left: Optional[str], right: Optional[str]) -> bool:
        """
        Check the rule's contexts against the neighbors of a symbol.

        A neighbor of None means the symbol sits at a string end; a defined
        context never matches a missing neighbor.
        """
        if self.left_context and left != self.left_context:
            return False
        if self.right_context and right != self.right_context:
            return False
        return True

    def __str__(self) -> str:
        text = ''
        if self.left_context:
            text += f'{self.left_context} < '
        text += self.predecessor
        if self.right_context:
            text += f' > {self.right_context}'
        text += f' -> {self.successor}'
        if self.probability < 1.0:
            text += f' ({self.probability:.2f})'
        return text


# =============================================================================
# PARSING
# =============================================================================

def parse_rule(text: str) -> Rule:
    """
    Parse rule text notation into a Rule.

    Raises:
    -------
    RuleValidationError
        If the text is empty, lacks an arrow, or yields an invalid rule.
    """
    source = text.strip()
    if not source:
        raise RuleValidationError("Rule string is empty")

    probability = 1.0
    match = _PROBABILITY_SUFFIX.search(source)
    if match:
        try:
            probability = float(match.group(1).strip())
        except ValueError:
            # Parenthesized text that is not a number stays in the successor
            pass
        else:
            source = source[:match.start()].rstrip()

    arrow_pos, arrow = -1, ''
    for candidate in _ARROWS:
        arrow_pos = source.find(candidate)
        if arrow_pos >= 0:
            arrow = candidate
            break
    if arrow_pos < 0:
        raise RuleValidationError("Rule must contain '->' or '→' separator")

    left_side = source[:arrow_pos].strip()
    successor = source[arrow_pos + len(arrow):].strip()
    if not successor:
        raise RuleValidationError("Successor (right side of ->) cannot be empty")

    left_context, right_context = '', ''
    predecessor = left_side
    if '<' in predecessor:
        left_context, predecessor = (s.strip() for s in predecessor.split('<', 1))
    if '>' in predecessor:
        predecessor, right_context = (s.strip() for s in predecessor.split('>', 1))

    rule = Rule(
        predecessor=predecessor,
        successor=successor,
        probability=probability,
        left_context=left_context,
        right_context=right_context,
    )
    rule.validate()
    return rule


# =============================================================================
# RULE-SET HELPERS
# =============================================================================

def validate_rules(rules: List[Rule]) -> Tuple[bool, List[str]]:
    """
    Validate every rule in a list.

    Returns:
    --------
    all_valid : bool
    errors : list of str
        One entry per rule, '' for valid rules, "Rule i: ..." otherwise
    """
    errors = []
    for i, rule in enumerate(rules):
        try:
            rule.validate()
            errors.append('')
        except RuleValidationError as exc:
            errors.append(f'Rule {i}: {exc}')
    return all(not e for e in errors), errors


def normalize_probabilities(rules: List[Rule]) -> List[Rule]:
    """
    Rescale probabilities so each predecessor's group sums to 1.

    Groups are keyed by predecessor only; contexts do not split groups.
    Single-rule groups and groups summing to 0 are left untouched.
    Returns a new list; Rule objects are immutable.
    """
    totals: Dict[str, float] = {}
    counts: Dict[str, int] = {}
    for rule in rules:
        totals[rule.predecessor] = totals.get(rule.predecessor, 0.0) + rule.probability
        counts[rule.predecessor] = counts.get(rule.predecessor, 0) + 1

    normalized = []
    for rule in rules:
        total = totals[rule.predecessor]
        if counts[rule.predecessor] > 1 and total > 0.0 and not math.isclose(total, 1.0):
            rule = Rule(
                predecessor=rule.predecessor,
                successor=rule.successor,
                probability=rule.probability / total,
                left_context=rule.left_context,
                right_context=rule.right_context,
            )
        normalized.append(rule)
    return normalized


def rules_for_predecessor(rules: List[Rule], predecessor: str) -> List[Rule]:
    return [r for r in rules if r.predecessor == predecessor]


def context_sensitive_rules(rules: List[Rule]) -> List[Rule]:
    return [r for r in rules if r.is_context_sensitive]


def context_free_rules(rules: List[Rule]) -> List[Rule]:
    return [r for r in rules if not r.is_context_sensitive]


def sort_by_specificity(rules: List[Rule]) -> List[Rule]:
    """Most specific first; stable within equal specificity."""
    return sorted(rules, key=lambda r: r.specificity, reverse=True)


def unique_predecessors(rules: List[Rule]) -> List[str]:
    """Predecessor symbols in first-seen order."""
    return list(dict.fromkeys(r.predecessor for r in rules))


def growth_factor(rules: List[Rule]) -> float:
    """
    Probability-weighted mean successor length.

    Approximates how many symbols one rewritten symbol becomes per pass.
    Returns 1.0 for an empty list or all-zero weights.
    """
    total_weight = sum(r.probability for r in rules)
    if not rules or total_weight <= 0.0:
        return 1.0
    return sum(len(r.successor) * r.probability for r in rules) / total_weight


def has_stochastic_rules(rules: List[Rule]) -> bool:
    return any(not math.isclose(r.probability, 1.0) for r in rules)


def has_context_sensitive_rules(rules: List[Rule]) -> bool:
    return any(r.is_context_sensitive for r in rules)


def describe_rule(rule: Rule) -> str:
    """Human-readable rule category, e.g. 'Left Context-Sensitive, Stochastic'."""
    if rule.left_context and rule.right_context:
        kind = 'Full Context-Sensitive'
    elif rule.left_context:
        kind = 'Left Context-Sensitive'
    elif rule.right_context:
        kind = 'Right Context-Sensitive'
    else:
        kind = 'Context-Free'

    if math.isclose(rule.probability, 1.0):
        return f'{kind}, Deterministic'
    return f'{kind}, Stochastic'
