# lsystem_trees/grammar/generator.py
"""
L-SYSTEM GENERATOR: Bounded, Seeded String Rewriting
====================================================

PURPOSE:
--------
Expand an axiom string by applying production rules in parallel, one pass
per iteration. This is the first stage of the tree pipeline:

    axiom + rules  ->  [LSystemGenerator]  ->  symbol string  ->  turtle

ALGORITHM (one pass):
---------------------
For each symbol s at position i, with neighbors left = text[i-1] and
right = text[i+1] (None at the string ends):

1. Candidates = rules whose predecessor is s
2. Keep only candidates whose contexts match the neighbors
3. Keep only those with the highest specificity (defined context sides)
4. One left -> it fires.
   Several left -> weighted draw renormalized over those rules only
   (uniform draw if every weight is 0).
   None left -> s is copied unchanged (identity).

If the output grows past max_string_length mid-pass, the scan stops and
the output is truncated to exactly max_string_length.

TERMINATION:
------------
The loop stops at the first of:
- the requested (clamped) number of passes
- the string reaching max_string_length
- cancellation (checked only between passes)
- a fixed point (a pass that leaves the string unchanged)

The reason is recorded in GenerationStatistics.termination_reason.

Only rewritten output is truncated. An axiom already at or over
max_string_length runs no pass and is returned unchanged, longer than the
cap, with reason MAX_STRING_LENGTH.

DETERMINISM:
------------
Each generate() call draws from its own numpy PCG64 stream seeded with
config.random_seed, so the same axiom, rules and non-zero seed always give
the same string. Seed 0 draws fresh OS entropy.

THREADING:
----------
One RLock guards the rule list, statistics and progress state. generate()
snapshots the rules when it starts; rule edits made while a generation is
running take effect on the next call.
"""

import logging
import threading
import time
from collections import Counter
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Tuple

from ..kernel.random_stream import RandomStream
from .rules import Rule, RuleValidationError, growth_factor, parse_rule, validate_rules

if TYPE_CHECKING:
    from .background import GenerationTask


logger = logging.getLogger(__name__)


MAX_ITERATIONS_LIMIT = 100
MAX_STRING_LENGTH_LIMIT = 10_000_000


class GenerationStatus(Enum):
    SUCCESS = 'success'
    FAILURE = 'failure'
    CANCELLED = 'cancelled'


class TerminationReason(Enum):
    """Why the rewrite loop stopped."""
    COMPLETED = 'completed'
    MAX_ITERATIONS = 'max_iterations'
    MAX_STRING_LENGTH = 'max_string_length'
    CANCELLED = 'cancelled'
    FIXED_POINT = 'fixed_point'


@dataclass
class GenerationConfig:
    """
    Resource limits and reproducibility settings for one generator.

    Parameters:
    -----------
    max_iterations : int
        Hard cap on rewrite passes, clamped to [1, 100]
    max_string_length : int
        Hard cap on string length, clamped to [1, 10_000_000]
    random_seed : int
        0 = fresh OS entropy per run, anything else = deterministic
    store_history : bool
        Keep the string produced by every pass in the result
    verbose_logging : bool
        Log per-pass details at INFO instead of DEBUG
    """
    max_iterations: int = 10
    max_string_length: int = 100_000
    random_seed: int = 0
    store_history: bool = True
    verbose_logging: bool = False

    def __post_init__(self):
        self.max_iterations = int(min(max(self.max_iterations, 1), MAX_ITERATIONS_LIMIT))
        self.max_string_length = int(min(max(self.max_string_length, 1), MAX_STRING_LENGTH_LIMIT))


@dataclass
class GenerationStatistics:
    total_iterations: int = 0
    final_string_length: int = 0
    generation_time_ms: float = 0.0
    rules_applied: int = 0
    context_rules_applied: int = 0
    stochastic_choices: int = 0
    symbol_counts: Dict[str, int] = field(default_factory=dict)
    termination_reason: TerminationReason = TerminationReason.COMPLETED


@dataclass
class GenerationResult:
    """
    Outcome of one generate() call.

    A CANCELLED result still carries the string reached at the last
    completed pass.
    """
    generated_string: str = ''
    status: GenerationStatus = GenerationStatus.SUCCESS
    error_message: str = ''
    history: List[str] = field(default_factory=list)
    stats: GenerationStatistics = field(default_factory=GenerationStatistics)

    @property
    def success(self) -> bool:
        return self.status == GenerationStatus.SUCCESS

    @property
    def cancelled(self) -> bool:
        return self.status == GenerationStatus.CANCELLED


@dataclass
class GenerationState:
    """Progress snapshot, readable from other threads during generation."""
    current_iteration: int = 0
    progress: float = 0.0
    is_generating: bool = False
    current_string: str = ''


def _failure(message: str) -> GenerationResult:
    return GenerationResult(status=GenerationStatus.FAILURE, error_message=message)


class LSystemGenerator:
    """
    Context-sensitive stochastic L-System engine.

    Usage:
    ------
        gen = LSystemGenerator('A', GenerationConfig(random_seed=42))
        gen.add_simple_rule('A', 'AB')
        gen.add_simple_rule('B', 'A')
        result = gen.generate(5)
        result.generated_string   # 'ABAABABAABAAB'
    """

    def __init__(self, axiom: str = '', config: Optional[GenerationConfig] = None):
        self.config = config if config is not None else GenerationConfig()
        self._lock = threading.RLock()
        self._axiom = axiom
        self._rules: List[Rule] = []
        self._stats = GenerationStatistics()
        self._state = GenerationState(current_string=axiom)
        self._rng = RandomStream(self.config.random_seed)

    # -------------------------------------------------------------------------
    # Setup
    # -------------------------------------------------------------------------

    @property
    def axiom(self) -> str:
        return self._axiom

    def initialize(self, axiom: str, config: Optional[GenerationConfig] = None) -> None:
        """Set the axiom (and optionally the config); rules are kept."""
        with self._lock:
            self._axiom = axiom
            if config is not None:
                self.config = config
                self._rng.initialize(config.random_seed)
            self._state = GenerationState(current_string=axiom)
            self._stats = GenerationStatistics()
        logger.debug("Initialized with axiom: %s", axiom)

    def reset(self) -> None:
        """Clear axiom, rules, statistics and progress state."""
        with self._lock:
            self._axiom = ''
            self._rules = []
            self._state = GenerationState()
            self._stats = GenerationStatistics()

    def set_random_seed(self, seed: int) -> None:
        with self._lock:
            self.config.random_seed = int(seed)
            self._rng.initialize(self.config.random_seed)

    # -------------------------------------------------------------------------
    # Rule management
    # -------------------------------------------------------------------------

    def add_rule(self, rule: Rule) -> bool:
        """
        Add a rule after validating it.

        Invalid rules are logged and dropped; returns False in that case.
        """
        try:
            rule.validate()
        except RuleValidationError as exc:
            logger.warning("Rejected invalid rule %r: %s", str(rule), exc)
            return False

        with self._lock:
            self._rules.append(rule)
        logger.debug("Added rule: %s", rule)
        return True

    def add_rule_string(self, text: str) -> bool:
        """Parse rule text notation and add the result."""
        try:
            rule = parse_rule(text)
        except RuleValidationError as exc:
            logger.warning("Could not parse rule %r: %s", text, exc)
            return False
        return self.add_rule(rule)

    def add_simple_rule(self, predecessor: str, successor: str) -> bool:
        return self.add_rule(Rule(predecessor, successor))

    def add_stochastic_rule(self, predecessor: str, successor: str, probability: float) -> bool:
        return self.add_rule(Rule(predecessor, successor, probability))

    def add_context_rule(
        self,
        left_context: str,
        predecessor: str,
        right_context: str,
        successor: str,
        probability: float = 1.0,
    ) -> bool:
        return self.add_rule(Rule(
            predecessor=predecessor,
            successor=successor,
            probability=probability,
            left_context=left_context,
            right_context=right_context,
        ))

    def remove_rule(self, predecessor: str) -> int:
        """Remove every rule for a predecessor. Returns how many were removed."""
        with self._lock:
            before = len(self._rules)
            self._rules = [r for r in self._rules if r.predecessor != predecessor]
            return before - len(self._rules)

    def remove_specific_rule(self, rule: Rule) -> bool:
        """Remove the first rule equal to `rule`."""
        with self._lock:
            if rule in self._rules:
                self._rules.remove(rule)
                return True
            return False

    def clear_rules(self) -> None:
        with self._lock:
            self._rules = []

    @property
    def rules(self) -> Tuple[Rule, ...]:
        with self._lock:
            return tuple(self._rules)

    @property
    def rule_count(self) -> int:
        with self._lock:
            return len(self._rules)

    def has_rule_for_symbol(self, symbol: str) -> bool:
        with self._lock:
            return any(r.predecessor == symbol for r in self._rules)

    def validate(self) -> Tuple[bool, List[str]]:
        """
        Check that the generator is ready to run.

        Returns:
        --------
        ok : bool
        errors : list of str
            Empty when ok
        """
        with self._lock:
            axiom = self._axiom
            rules = list(self._rules)

        errors = []
        if not axiom:
            errors.append("Axiom cannot be empty")
        if not rules:
            errors.append("No rules defined")
        _, rule_errors = validate_rules(rules)
        errors.extend(e for e in rule_errors if e)
        return not errors, errors

    @property
    def is_valid(self) -> bool:
        ok, _ = self.validate()
        return ok

    # -------------------------------------------------------------------------
    # Generation
    # -------------------------------------------------------------------------

    def generate(
        self,
        iterations: int,
        cancel_event: Optional[threading.Event] = None,
        on_iteration: Optional[Callable[[int, str], None]] = None,
        on_progress: Optional[Callable[[float], None]] = None,
    ) -> GenerationResult:
        """
        Run up to min(iterations, config.max_iterations) rewrite passes.

        Parameters:
        -----------
        iterations : int
            Requested passes (negative values mean 0)
        cancel_event : threading.Event, optional
            Checked before each pass; a pass in progress always completes
        on_iteration : callable(iteration, string), optional
            Called after every completed pass
        on_progress : callable(fraction), optional
            Called after every completed pass with a value in (0, 1]

        Returns:
        --------
        GenerationResult
            FAILURE (nothing run) for an empty axiom or no rules
        """
        with self._lock:
            axiom = self._axiom
            rules = tuple(self._rules)
            config = replace(self.config)

        if not axiom:
            logger.warning("Generation failed: axiom is empty")
            return _failure("Axiom cannot be empty")
        if not rules:
            logger.warning("Generation failed: no rules defined")
            return _failure("No rules defined")

        lookup = self._build_lookup(rules)
        rng = RandomStream(config.random_seed)
        log_level = logging.INFO if config.verbose_logging else logging.DEBUG

        passes = max(0, min(int(iterations), config.max_iterations))
        stats = GenerationStatistics()
        history = [axiom] if config.store_history else []
        current = axiom
        reason = None
        completed = 0

        with self._lock:
            self._state = GenerationState(is_generating=True, current_string=axiom)

        start = time.perf_counter()
        logger.log(log_level, "Iteration 0: length=%d", len(current))

        for i in range(passes):
            if cancel_event is not None and cancel_event.is_set():
                reason = TerminationReason.CANCELLED
                break
            if len(current) >= config.max_string_length:
                reason = TerminationReason.MAX_STRING_LENGTH
                break

            previous = current
            current, truncated = self._apply_rules(
                current, lookup, rng, config.max_string_length, stats
            )
            completed = i + 1

            with self._lock:
                self._state.current_iteration = completed
                self._state.progress = completed / passes
                self._state.current_string = current

            if config.store_history:
                history.append(current)

            logger.log(log_level, "Iteration %d: length=%d", completed, len(current))

            if on_iteration is not None:
                on_iteration(completed, current)
            if on_progress is not None:
                on_progress(completed / passes)

            if truncated:
                logger.warning(
                    "String length exceeded maximum (%d) during iteration %d, truncated",
                    config.max_string_length, completed,
                )
                reason = TerminationReason.MAX_STRING_LENGTH
                break
            if current == previous:
                logger.log(log_level, "String unchanged at iteration %d, stopping", completed)
                reason = TerminationReason.FIXED_POINT
                break

        if reason is None:
            if int(iterations) > config.max_iterations:
                reason = TerminationReason.MAX_ITERATIONS
            else:
                reason = TerminationReason.COMPLETED
        elif reason != TerminationReason.FIXED_POINT:
            logger.info("Generation terminated early: %s", reason.value)

        stats.total_iterations = completed
        stats.final_string_length = len(current)
        stats.generation_time_ms = (time.perf_counter() - start) * 1000.0
        stats.symbol_counts = self.count_symbols(current)
        stats.termination_reason = reason

        with self._lock:
            self._state.is_generating = False
            self._state.progress = 1.0
            self._stats = stats

        status = GenerationStatus.SUCCESS
        if reason == TerminationReason.CANCELLED:
            status = GenerationStatus.CANCELLED

        return GenerationResult(
            generated_string=current,
            status=status,
            history=history,
            stats=replace(stats, symbol_counts=dict(stats.symbol_counts)),
        )

    def generate_string(self, iterations: int) -> str:
        """Convenience wrapper: the generated string, or '' on failure."""
        result = self.generate(iterations)
        return result.generated_string if result.success else ''

    def generate_async(self, iterations: int) -> 'GenerationTask':
        """Start generate(iterations) on a background thread."""
        from .background import GenerationTask

        task = GenerationTask(self, iterations)
        task.start()
        return task

    def perform_single_iteration(self, text: str) -> str:
        """
        Apply one rewrite pass to an arbitrary string.

        Draws from the generator's own stream, so repeated calls continue
        one seeded sequence. Statistics are not updated.
        """
        with self._lock:
            lookup = self._build_lookup(tuple(self._rules))
            max_length = self.config.max_string_length
            result, _ = self._apply_rules(text, lookup, self._rng, max_length, GenerationStatistics())
        return result

    def estimate_string_length(self, iterations: int) -> int:
        """
        Rough length after `iterations` passes: len(axiom) * growth^iterations.

        Growth is the probability-weighted mean successor length, floored
        at 1. Returns 0 when the axiom or rule set is empty.
        """
        with self._lock:
            axiom = self._axiom
            rules = list(self._rules)
        if not axiom or not rules:
            return 0

        estimate = len(axiom) * max(growth_factor(rules), 1.0) ** max(int(iterations), 0)
        return int(min(estimate, MAX_STRING_LENGTH_LIMIT))

    @staticmethod
    def count_symbols(text: str) -> Dict[str, int]:
        return dict(Counter(text))

    def get_statistics(self) -> GenerationStatistics:
        with self._lock:
            return replace(self._stats, symbol_counts=dict(self._stats.symbol_counts))

    def get_current_state(self) -> GenerationState:
        with self._lock:
            return replace(self._state)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    @staticmethod
    def _build_lookup(rules: Tuple[Rule, ...]) -> Dict[str, List[Rule]]:
        lookup: Dict[str, List[Rule]] = {}
        for rule in rules:
            lookup.setdefault(rule.predecessor, []).append(rule)
        return lookup

    @staticmethod
    def _select_rule(
        candidates: List[Rule],
        left: Optional[str],
        right: Optional[str],
        rng: RandomStream,
    ) -> Tuple[Optional[Rule], bool]:
        """
        Pick the rule that fires for one symbol.

        Returns:
        --------
        rule : Rule or None
            None means identity
        stochastic : bool
            True if a random draw decided between several rules
        """
        best = -1
        eligible: List[Rule] = []
        for rule in candidates:
            if not rule.matches_context(left, right):
                continue
            if rule.specificity > best:
                best = rule.specificity
                eligible = [rule]
            elif rule.specificity == best:
                eligible.append(rule)

        if not eligible:
            return None, False
        if len(eligible) == 1:
            return eligible[0], False

        total = sum(r.probability for r in eligible)
        if total <= 0.0:
            return eligible[rng.rand_range(0, len(eligible) - 1)], True

        draw = rng.frand_range(0.0, total)
        cumulative = 0.0
        for rule in eligible:
            cumulative += rule.probability
            if draw < cumulative:
                return rule, True
        return eligible[-1], True

    def _apply_rules(
        self,
        text: str,
        lookup: Dict[str, List[Rule]],
        rng: RandomStream,
        max_length: int,
        stats: GenerationStatistics,
    ) -> Tuple[str, bool]:
        """One parallel rewrite pass. Returns (new string, truncated)."""
        pieces = []
        length = 0
        last = len(text) - 1
        truncated = False

        for i, symbol in enumerate(text):
            candidates = lookup.get(symbol)
            rule = None
            if candidates:
                left = text[i - 1] if i > 0 else None
                right = text[i + 1] if i < last else None
                rule, stochastic = self._select_rule(candidates, left, right, rng)
                if stochastic:
                    stats.stochastic_choices += 1

            if rule is None:
                piece = symbol
            else:
                piece = rule.successor
                stats.rules_applied += 1
                if rule.is_context_sensitive:
                    stats.context_rules_applied += 1

            pieces.append(piece)
            length += len(piece)
            if length > max_length:
                truncated = True
                break

        result = ''.join(pieces)
        if truncated:
            result = result[:max_length]
        return result, truncated
