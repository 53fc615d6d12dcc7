# src/brain/engine.py
import logging
import threading
from typing import Callable, Iterable, Optional

from src.brain.diagnostics import DiagnosticSampler
from src.brain.guard import InvocationGuard, TickResult
from src.brain.handle import ActiveStrategySlot, SourceIdentity
from src.brain.loader import StrategyLoader
from src.brain.snapshot import PeerView, SwarmSnapshot
from src.brain.watcher import ReloadEvent, StrategyWatcher
from src.config import (DEFAULT_STRATEGY_PATH, EVALUATION_TIMEOUT, RELOAD_POLL_INTERVAL,
                        TICK_INTERVAL)


class SwarmBrain:
    """
    Hot-reloadable decision layer for a transfer.

    Wires the loader, the watcher and the invocation guard around one
    ActiveStrategySlot. The transport engine feeds snapshots through on_tick()
    (or optimize()) and receives directives through the sink.
    """

    def __init__(self, strategy_path: str=DEFAULT_STRATEGY_PATH, sink=None,
                 timeout: float=EVALUATION_TIMEOUT,
                 poll_interval: float=RELOAD_POLL_INTERVAL,
                 sampler: Optional[DiagnosticSampler]=None,
                 watch: bool=True):
        self.slot = ActiveStrategySlot()
        self.loader = StrategyLoader(strategy_path)
        self.watcher = StrategyWatcher(self.loader, self.slot, poll_interval)
        self.guard = InvocationGuard(self.slot, sink, timeout,
                                     sampler if sampler is not None else DiagnosticSampler())
        self.watch = watch

        self.tick_count = 0
        self.tick_thread = None
        self._tick_stop = threading.Event()
        self.lock = threading.Lock()

    @property
    def active_source(self) -> Optional[SourceIdentity]:
        handle = self.slot.current()
        return handle.source if handle else None

    def add_reload_listener(self, listener: Callable[[ReloadEvent], None]) -> None:
        self.watcher.attach(listener)

    def start(self) -> Optional[ReloadEvent]:
        """Load the strategy and, if watching, start polling it for changes."""
        event = self.watcher.reload()
        if self.watch:
            self.watcher.start()
        return event

    def stop(self) -> None:
        """Stop the tick loop, the watcher and the evaluation worker."""
        self.stop_ticking()
        self.watcher.stop()
        self.guard.shutdown()
        logging.info("Swarm brain stopped")

    def reload(self, force: bool=False) -> Optional[ReloadEvent]:
        return self.watcher.reload(force=force)

    def on_tick(self, snapshot: SwarmSnapshot) -> TickResult:
        """Evaluate one snapshot and apply the resulting directives."""
        return self.guard.run_tick(snapshot)

    def optimize(self, peers: Iterable[PeerView], progress: float, download_rate: int) -> TickResult:
        """
        Build a snapshot from raw values and run a tick

        Args:
            peers(Iterable[PeerView]): currently connected peers
            progress(float): download progress, 0.0-100.0
            download_rate(int): bytes/sec

        Returns:
            TickResult: outcome of the tick
        """
        with self.lock:
            self.tick_count += 1
            tick = self.tick_count
        snapshot = SwarmSnapshot(
            peers=tuple(peers),
            progress_percent=progress,
            download_rate=download_rate,
            tick=tick
        )
        return self.on_tick(snapshot)

    def start_ticking(self, producer: Callable[[], SwarmSnapshot],
                      interval: float=TICK_INTERVAL,
                      on_result: Optional[Callable[[TickResult], None]]=None) -> None:
        """
        Drive ticks from a snapshot producer in a background thread.

        Args:
            producer(Callable[[], SwarmSnapshot]): returns the current snapshot
            interval(float): seconds between ticks
            on_result(Callable[[TickResult], None]): optional hook for each tick outcome
        """
        if self.tick_thread and self.tick_thread.is_alive():
            return
        self._tick_stop.clear()
        self.tick_thread = threading.Thread(
            target=self._tick_loop, args=(producer, interval, on_result),
            name="swarm-brain-ticks", daemon=True
        )
        self.tick_thread.start()

    def stop_ticking(self) -> None:
        self._tick_stop.set()
        if self.tick_thread and self.tick_thread.is_alive():
            self.tick_thread.join(timeout=1.0)
        self.tick_thread = None

    def _tick_loop(self, producer, interval, on_result) -> None:
        while not self._tick_stop.is_set():
            try:
                result = self.on_tick(producer())
                if on_result:
                    on_result(result)
            except Exception as e:
                logging.error(f"Error in tick loop: {e}", exc_info=True)
            self._tick_stop.wait(interval)

    def __enter__(self) -> 'SwarmBrain':
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
