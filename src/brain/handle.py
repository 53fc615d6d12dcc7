# src/brain/handle.py
import time
import threading
from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(frozen=True)
class SourceIdentity:
    """Where a strategy came from: script path plus SHA-256 of the exact bytes executed."""
    path: str
    content_hash: str

    def __str__(self) -> str:
        return f"{self.path}@{self.content_hash[:12]}"


@dataclass(frozen=True)
class StrategyModuleHandle:
    """The decision logic instance that is (or was) active, with its provenance."""
    strategy: Any
    source: SourceIdentity
    loaded_at: float = field(default_factory=time.time)


class ActiveStrategySlot:
    """
    Holds the single active StrategyModuleHandle.

    Readers take one reference per tick and keep using it; the writer replaces
    the reference as a whole, so a reader sees either the old or the new handle.
    """

    def __init__(self, handle: Optional[StrategyModuleHandle] = None):
        self._handle = handle
        self._lock = threading.Lock()

    def current(self) -> Optional[StrategyModuleHandle]:
        return self._handle

    def install(self, handle: StrategyModuleHandle) -> Optional[StrategyModuleHandle]:
        """
        Make a handle active

        Args:
            handle(StrategyModuleHandle): the freshly loaded handle

        Returns:
            Optional[StrategyModuleHandle]: the handle it replaced
        """
        with self._lock:
            previous = self._handle
            self._handle = handle
        return previous
