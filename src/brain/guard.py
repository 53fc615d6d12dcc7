# src/brain/guard.py
import time
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Tuple

from src.brain.diagnostics import DiagnosticSampler
from src.brain.directives import Directive, validate_directives
from src.brain.errors import BrainError, EvaluationFailure, TimeoutExceeded
from src.brain.handle import ActiveStrategySlot, SourceIdentity
from src.brain.snapshot import SwarmSnapshot
from src.config import EVALUATION_TIMEOUT


class TickStatus(Enum):
    APPLIED = "applied"
    NO_STRATEGY = "no_strategy"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class TickResult:
    """What happened during one tick."""
    tick: int
    status: TickStatus
    directives: Tuple[Directive, ...] = ()
    rejected: Tuple[Tuple[Any, str], ...] = ()
    source: Optional[SourceIdentity] = None
    error: Optional[BrainError] = None
    elapsed: float = 0.0


class InvocationGuard:
    """
    Runs the active strategy once per tick under a time budget.

    Nothing raised by the strategy, its directives or the sink leaves run_tick;
    every failure degrades to fewer (or no) directives for that tick.
    """

    def __init__(self, slot: ActiveStrategySlot, sink=None,
                 timeout: float=EVALUATION_TIMEOUT,
                 sampler: Optional[DiagnosticSampler]=None):
        self.slot = slot
        self.sink = sink
        self.timeout = timeout
        self.sampler = sampler

        self.executor = None # created on first use, dropped by shutdown()
        self.inflight = None # future of the last submitted evaluation
        self.tick_lock = threading.Lock()

    def run_tick(self, snapshot: SwarmSnapshot) -> TickResult:
        """
        Evaluate the active strategy against a snapshot and apply its directives.

        Args:
            snapshot(SwarmSnapshot): immutable swarm state for this tick

        Returns:
            TickResult: outcome of the tick
        """
        if not self.tick_lock.acquire(blocking=False):
            logging.warning(f"Tick {snapshot.tick} skipped: another tick is being evaluated")
            return TickResult(snapshot.tick, TickStatus.SKIPPED)
        try:
            return self._run_tick(snapshot)
        finally:
            self.tick_lock.release()

    def _run_tick(self, snapshot: SwarmSnapshot) -> TickResult:
        if self.inflight is not None and not self.inflight.done():
            logging.warning(f"Tick {snapshot.tick} skipped: previous evaluation still running")
            return TickResult(snapshot.tick, TickStatus.SKIPPED)

        # One read per tick; a concurrent reload only affects the next tick.
        handle = self.slot.current()
        if handle is None:
            logging.debug(f"Tick {snapshot.tick}: no strategy loaded")
            return TickResult(snapshot.tick, TickStatus.NO_STRATEGY)

        source = handle.source
        if self.sampler is not None:
            self.sampler.maybe_log(snapshot)

        start = time.monotonic()
        try:
            if self.executor is None:
                self.executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="strategy-eval")
            future = self.executor.submit(_evaluate, handle.strategy, snapshot)
        except RuntimeError as e:
            error = EvaluationFailure(source, e)
            logging.error(f"Tick {snapshot.tick}: cannot schedule evaluation: {e}")
            return TickResult(snapshot.tick, TickStatus.FAILED, source=source, error=error)
        self.inflight = future

        try:
            raw = future.result(timeout=self.timeout)
        except FutureTimeoutError as e:
            if future.done() and not future.cancelled() and future.exception() is e:
                # the strategy itself raised TimeoutError
                error = EvaluationFailure(source, e)
                logging.error(f"Tick {snapshot.tick}: {error}", exc_info=e)
                return TickResult(snapshot.tick, TickStatus.FAILED, source=source, error=error,
                                  elapsed=time.monotonic() - start)
            future.cancel()
            error = TimeoutExceeded(source, self.timeout)
            logging.warning(f"Tick {snapshot.tick}: {error}, discarding its result")
            return TickResult(snapshot.tick, TickStatus.TIMED_OUT, source=source, error=error,
                              elapsed=time.monotonic() - start)
        except Exception as e:
            error = EvaluationFailure(source, e)
            logging.error(f"Tick {snapshot.tick}: {error}", exc_info=e)
            return TickResult(snapshot.tick, TickStatus.FAILED, source=source, error=error,
                              elapsed=time.monotonic() - start)
        elapsed = time.monotonic() - start

        if raw is None:
            raw = []
        if isinstance(raw, (str, bytes, dict)) or not hasattr(raw, '__iter__'):
            error = EvaluationFailure(source, message=f"evaluate() returned {type(raw).__name__}, "
                                                      f"expected a sequence of directives")
            logging.error(f"Tick {snapshot.tick}: {error}")
            return TickResult(snapshot.tick, TickStatus.FAILED, source=source, error=error,
                              elapsed=elapsed)

        try:
            valid, rejected = validate_directives(raw, snapshot)
        except Exception as e:
            error = EvaluationFailure(source, e)
            logging.error(f"Tick {snapshot.tick}: {error}", exc_info=e)
            return TickResult(snapshot.tick, TickStatus.FAILED, source=source, error=error,
                              elapsed=elapsed)

        for directive, reason in rejected:
            logging.warning(f"Tick {snapshot.tick}: dropped directive {directive!r} from {source}: {reason}")

        if valid and self.sink is not None:
            try:
                self.sink.apply(valid)
            except Exception as e:
                error = EvaluationFailure(source, e, message=f"directive sink failed: {e}")
                logging.error(f"Tick {snapshot.tick}: {error}", exc_info=e)
                return TickResult(snapshot.tick, TickStatus.FAILED, rejected=tuple(rejected),
                                  source=source, error=error, elapsed=elapsed)

        return TickResult(snapshot.tick, TickStatus.APPLIED, directives=tuple(valid),
                          rejected=tuple(rejected), source=source, elapsed=elapsed)

    def shutdown(self) -> None:
        """
        Stop accepting evaluations; an overrunning one is left to finish on its own.
        The next run_tick starts a fresh worker.
        """
        if self.executor is not None:
            self.executor.shutdown(wait=False, cancel_futures=True)
            self.executor = None


def _evaluate(strategy, snapshot: SwarmSnapshot) -> Any:
    """Run evaluate() and drain an iterable result on the worker, inside the time budget."""
    raw = strategy.evaluate(snapshot)
    if raw is None or isinstance(raw, (str, bytes, dict)) or not hasattr(raw, '__iter__'):
        return raw
    return list(raw)
