# src/brain/errors.py
from typing import Any, Optional


class BrainError(Exception):
    """Base class for every failure raised inside the strategy bridge."""


class CompileError(BrainError):
    """The strategy script could not be read, executed or instantiated."""

    def __init__(self, path: str, cause: Optional[BaseException] = None, message: Optional[str] = None):
        self.path = path
        self.cause = cause
        if message is None:
            message = f"{type(cause).__name__}: {cause}" if cause else "unknown error"
        super().__init__(f"Failed to load strategy from {path}: {message}")


class EvaluationFailure(BrainError):
    """evaluate() raised, or returned something that is not a directive sequence."""

    def __init__(self, source: Any, cause: Optional[BaseException] = None, message: Optional[str] = None):
        self.source = source
        self.cause = cause
        if message is None:
            message = f"{type(cause).__name__}: {cause}" if cause else "unknown error"
        super().__init__(f"Strategy {source} failed: {message}")


class TimeoutExceeded(BrainError):
    """evaluate() ran past the per-tick budget."""

    def __init__(self, source: Any, timeout: float):
        self.source = source
        self.timeout = timeout
        super().__init__(f"Strategy {source} exceeded {timeout:.3f}s evaluation budget")


class InvalidDirective(BrainError):
    """A single returned directive references unknown state or an out-of-range value."""

    def __init__(self, directive: Any, reason: str):
        self.directive = directive
        self.reason = reason
        super().__init__(f"Invalid directive {directive!r}: {reason}")
