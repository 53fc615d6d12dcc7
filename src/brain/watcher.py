# src/brain/watcher.py
import time
import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Optional, Tuple

from src.brain.errors import CompileError
from src.brain.handle import ActiveStrategySlot, SourceIdentity
from src.brain.loader import StrategyLoader
from src.config import RELOAD_POLL_INTERVAL


@dataclass(frozen=True)
class ReloadEvent:
    """Outcome of one reload attempt, delivered to watcher listeners."""
    path: str
    success: bool
    source: Optional[SourceIdentity] = None
    error: Optional[CompileError] = None
    timestamp: float = field(default_factory=time.time)


class Subject:
    """
    Manages a list of observers and notifies them about reload events.

    Methods:
        attach(observer): Adds an observer callable to the list.
        detach(observer): Removes it again.
        notify(event): Notifies all observers of an event.
    """
    def __init__(self):
        self._observers = []

    def attach(self, observer: Callable[[ReloadEvent], None]):
        if observer not in self._observers:
            self._observers.append(observer)

    def detach(self, observer: Callable[[ReloadEvent], None]):
        if observer in self._observers:
            self._observers.remove(observer)

    def notify(self, event: ReloadEvent):
        for observer in self._observers.copy():
            try:
                observer(event)
            except Exception as e:
                logging.error(f"Reload listener {observer!r} failed: {e}", exc_info=True)


class StrategyWatcher(Subject):
    """
    Polls the strategy script and installs a fresh handle when its content changes.

    A broken script never replaces the active handle; the failure is reported
    once per distinct content so a polling loop does not spam the log.
    """

    def __init__(self, loader: StrategyLoader, slot: ActiveStrategySlot,
                 poll_interval: float=RELOAD_POLL_INTERVAL):
        super().__init__()
        self.loader = loader
        self.slot = slot
        self.poll_interval = poll_interval

        self.last_stat = None # (mtime, size) of the last content looked at
        self.failed_hash = None # content hash of the last failed load
        self.missing_reported = False

        self.lock = threading.RLock()
        self.thread = None
        self._stop_event = threading.Event()

    @property
    def path(self) -> str:
        return self.loader.path

    def check(self) -> Optional[ReloadEvent]:
        """
        Poll once

        Returns:
            Optional[ReloadEvent]: the reload outcome, or None when nothing changed
        """
        with self.lock:
            try:
                current_stat = self.loader.stat()
            except OSError as e:
                if self.missing_reported:
                    return None
                self.missing_reported = True
                self.last_stat = None
                logging.warning(f"Strategy script not found at {self.path}")
                return self._report(ReloadEvent(self.path, False, error=CompileError(self.path, e)))

            self.missing_reported = False
            if current_stat == self.last_stat:
                return None

            logging.info(f"Change detected in {self.path}, hot-reloading strategy...")
            return self._reload(current_stat, force=False, polled=True)

    def reload(self, force: bool=False) -> Optional[ReloadEvent]:
        """
        Load the script now, regardless of its modification time.

        Args:
            force(bool): reinstall even if the content matches the active handle

        Returns:
            Optional[ReloadEvent]: the reload outcome, or None if the content is
            already active and force is off
        """
        with self.lock:
            try:
                current_stat = self.loader.stat()
                self.missing_reported = False
            except OSError:
                current_stat = None
                self.missing_reported = True
            return self._reload(current_stat, force=force, polled=False)

    def _reload(self, current_stat: Optional[Tuple[float, int]], force: bool,
                polled: bool) -> Optional[ReloadEvent]:
        try:
            source, identity = self.loader.read_source()
        except CompileError as e:
            logging.error(f"Failed to read strategy script: {e}")
            return self._report(ReloadEvent(self.path, False, error=e))

        self.last_stat = current_stat

        active = self.slot.current()
        if not force and active is not None and active.source.content_hash == identity.content_hash:
            logging.debug(f"Strategy {identity} unchanged, keeping active handle")
            return None

        if polled and identity.content_hash == self.failed_hash:
            return None

        try:
            handle = self.loader.compile(source, identity)
        except CompileError as e:
            self.failed_hash = identity.content_hash
            logging.error(f"Strategy reload failed, keeping "
                          f"{active.source if active else 'no strategy'} active: {e}",
                          exc_info=e.cause is not None)
            return self._report(ReloadEvent(self.path, False, source=identity, error=e))

        self.failed_hash = None
        previous = self.slot.install(handle)
        if previous is None:
            logging.info(f"Strategy loaded successfully from {identity}")
        else:
            logging.info(f"Strategy hot-reloaded: {previous.source} -> {identity}")
        return self._report(ReloadEvent(self.path, True, source=identity))

    def _report(self, event: ReloadEvent) -> ReloadEvent:
        self.notify(event)
        return event

    def start(self) -> None:
        """Start polling in a background thread."""
        if self.thread and self.thread.is_alive():
            return
        self._stop_event.clear()
        self.thread = threading.Thread(target=self._poll_loop, name="strategy-watcher", daemon=True)
        self.thread.start()
        logging.info(f"Watching {self.path} every {self.poll_interval}s")

    def stop(self) -> None:
        """Stop polling and wait briefly for the thread to exit."""
        self._stop_event.set()
        if self.thread and self.thread.is_alive():
            self.thread.join(timeout=max(1.0, self.poll_interval * 2))
        self.thread = None

    def _poll_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.check()
            except Exception as e:
                logging.error(f"Error while watching strategy script: {e}", exc_info=True)
            self._stop_event.wait(self.poll_interval)
