# src/brain/loader.py
import os
import sys
import hashlib
import logging
import importlib.util
from typing import Any, Callable, List, Tuple

from src.brain.errors import CompileError
from src.brain.handle import SourceIdentity, StrategyModuleHandle
from src.config import STRATEGY_FACTORY_NAME, STRATEGY_FUNCTION_NAME, STRATEGY_MODULE_PREFIX


class FunctionStrategy:
    """Adapts a script's module-level evaluate(snapshot) function to the strategy contract."""

    def __init__(self, evaluate: Callable[[Any], List[Any]]):
        self._evaluate = evaluate

    def evaluate(self, snapshot):
        return self._evaluate(snapshot)


class StrategyLoader:
    """
    Turns a strategy script on disk into a StrategyModuleHandle.

    Each load executes the script in a brand new module object, so state kept
    by a previous instance is never shared with the next one.
    """

    def __init__(self, path: str, factory_name: str=STRATEGY_FACTORY_NAME,
                 function_name: str=STRATEGY_FUNCTION_NAME):
        self.path = os.path.abspath(path)
        self.factory_name = factory_name
        self.function_name = function_name
        self.module_name = (f"{STRATEGY_MODULE_PREFIX}_"
                            f"{hashlib.sha256(self.path.encode('utf-8')).hexdigest()[:8]}")

    def stat(self) -> Tuple[float, int]:
        """
        Return (mtime, size) of the script, used by the watcher for cheap change detection.

        Raises:
            FileNotFoundError: if the script does not exist
        """
        st = os.stat(self.path)
        return st.st_mtime, st.st_size

    def read_source(self) -> Tuple[bytes, SourceIdentity]:
        """
        Read the script and compute its identity

        Returns:
            Tuple[bytes, SourceIdentity]: raw source and its identity

        Raises:
            CompileError: if the script cannot be read
        """
        try:
            with open(self.path, 'rb') as f:
                source = f.read()
        except OSError as e:
            raise CompileError(self.path, e)

        identity = SourceIdentity(self.path, hashlib.sha256(source).hexdigest())
        return source, identity

    def load(self) -> StrategyModuleHandle:
        """Read, compile and instantiate the script as a new handle."""
        source, identity = self.read_source()
        return self.compile(source, identity)

    def compile(self, source: bytes, identity: SourceIdentity) -> StrategyModuleHandle:
        """
        Execute the given source in a fresh module and instantiate its strategy

        Args:
            source(bytes): the exact bytes the identity was computed from
            identity(SourceIdentity): identity of those bytes

        Returns:
            StrategyModuleHandle: a new, not yet active handle

        Raises:
            CompileError: if compiling, executing or instantiating fails
        """
        spec = importlib.util.spec_from_file_location(self.module_name, self.path)
        if spec is None:
            raise CompileError(self.path, message="unable to build a module spec")
        module = importlib.util.module_from_spec(spec)

        # The script sees itself in sys.modules while it executes (dataclasses,
        # pickling and relative lookups rely on it); a failed load restores the
        # previous entry.
        previous = sys.modules.get(self.module_name)
        sys.modules[self.module_name] = module
        try:
            code = compile(source, self.path, 'exec')
            exec(code, module.__dict__)
            strategy = self._instantiate(module)
        except CompileError:
            self._restore(previous)
            raise
        except Exception as e:
            self._restore(previous)
            raise CompileError(self.path, e)

        logging.debug(f"Compiled strategy {identity} as {type(strategy).__name__}")
        return StrategyModuleHandle(strategy=strategy, source=identity)

    def _instantiate(self, module) -> Any:
        factory = getattr(module, self.factory_name, None)
        if callable(factory):
            strategy = factory()
            if not callable(getattr(strategy, 'evaluate', None)):
                raise CompileError(
                    self.path,
                    message=f"{self.factory_name}() returned {type(strategy).__name__} "
                            f"without a callable evaluate()"
                )
            return strategy

        function = getattr(module, self.function_name, None)
        if callable(function):
            return FunctionStrategy(function)

        raise CompileError(
            self.path,
            message=f"script defines neither {self.factory_name}() nor {self.function_name}()"
        )

    def _restore(self, previous) -> None:
        if previous is None:
            sys.modules.pop(self.module_name, None)
        else:
            sys.modules[self.module_name] = previous
