# lsystem_trees/grammar/background.py
"""
Background generation with cooperative cancellation.

A GenerationTask runs one LSystemGenerator.generate() call on a daemon
thread. Cancellation sets a threading.Event that the generator checks
between passes, so the pass in progress always finishes. Progress,
per-pass and completion notifications are posted to a queue.Queue that a
single consumer drains (poll with drain_events() or block on result()).
"""

import logging
import queue
import threading
from dataclasses import dataclass
from typing import List, Optional

from .generator import GenerationResult, GenerationStatus, LSystemGenerator


logger = logging.getLogger(__name__)


@dataclass
class GenerationEvent:
    """
    One notification from a background generation.

    kind is 'progress' (progress set), 'iteration' (iteration and text
    set) or 'complete' (result set, always the last event).
    """
    kind: str
    progress: float = 0.0
    iteration: int = 0
    text: str = ''
    result: Optional[GenerationResult] = None


class GenerationTask:
    """
    Handle for a generation running off the calling thread.

    Usage:
    ------
        task = generator.generate_async(6)
        ...
        task.cancel()                 # optional
        result = task.result(timeout=5.0)
    """

    def __init__(self, generator: LSystemGenerator, iterations: int):
        self._generator = generator
        self._iterations = iterations
        self._cancel_flag = threading.Event()
        self._done = threading.Event()
        self._result: Optional[GenerationResult] = None
        self.events: 'queue.Queue[GenerationEvent]' = queue.Queue()
        self._thread = threading.Thread(
            target=self._run, name='lsystem-generation', daemon=True
        )

    def start(self) -> None:
        self._thread.start()

    def cancel(self) -> None:
        """Request cancellation; honored at the next pass boundary."""
        self._cancel_flag.set()
        logger.info("Generation cancel requested")

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_flag.is_set()

    @property
    def done(self) -> bool:
        return self._done.is_set()

    def result(self, timeout: Optional[float] = None) -> Optional[GenerationResult]:
        """Wait for completion. Returns None if the timeout expires first."""
        if not self._done.wait(timeout):
            return None
        return self._result

    def drain_events(self) -> List[GenerationEvent]:
        """Return every event posted so far, oldest first, without blocking."""
        drained = []
        while True:
            try:
                drained.append(self.events.get_nowait())
            except queue.Empty:
                return drained

    def _run(self) -> None:
        try:
            result = self._generator.generate(
                self._iterations,
                cancel_event=self._cancel_flag,
                on_iteration=self._post_iteration,
                on_progress=self._post_progress,
            )
        except Exception as exc:
            logger.error("Background generation failed: %s", exc)
            result = GenerationResult(
                status=GenerationStatus.FAILURE,
                error_message=str(exc),
            )

        self._result = result
        self.events.put(GenerationEvent(kind='complete', progress=1.0, result=result))
        self._done.set()
        logger.info("Background generation complete (status=%s)", result.status.value)

    def _post_iteration(self, iteration: int, text: str) -> None:
        self.events.put(GenerationEvent(kind='iteration', iteration=iteration, text=text))

    def _post_progress(self, fraction: float) -> None:
        self.events.put(GenerationEvent(kind='progress', progress=fraction))
