import os
import sys
import shutil
import hashlib
import tempfile
import textwrap
import unittest

from src.brain.errors import CompileError
from src.brain.loader import FunctionStrategy, StrategyLoader
from src.brain.snapshot import SwarmSnapshot

FACTORY_SCRIPT = textwrap.dedent("""
    from src.brain.directives import BiasMode, DirectiveFactory

    class CountingStrategy:
        def __init__(self):
            self.calls = 0

        def evaluate(self, snapshot):
            self.calls += 1
            return [DirectiveFactory.set_bias(BiasMode.NORMAL)]

    def create_strategy():
        return CountingStrategy()
""")

FUNCTION_SCRIPT = textwrap.dedent("""
    def evaluate(snapshot):
        return [{"type": "set_bias", "mode": "endgame"}]
""")

DATACLASS_SCRIPT = textwrap.dedent("""
    from dataclasses import dataclass

    @dataclass
    class Thresholds:
        endgame: float = 98.0

    class Strategy:
        def __init__(self):
            self.thresholds = Thresholds()

        def evaluate(self, snapshot):
            return []

    def create_strategy():
        return Strategy()
""")

class TestStrategyLoader(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.path = os.path.join(self.temp_dir, 'brain.py')
        self.loader = StrategyLoader(self.path)

    def tearDown(self):
        sys.modules.pop(self.loader.module_name, None)
        shutil.rmtree(self.temp_dir)

    def write(self, content: str):
        with open(self.path, 'w') as f:
            f.write(content)

    def test_load_factory_script(self):
        self.write(FACTORY_SCRIPT)
        handle = self.loader.load()

        self.assertEqual(type(handle.strategy).__name__, 'CountingStrategy')
        self.assertEqual(handle.source.path, os.path.abspath(self.path))
        self.assertEqual(handle.source.content_hash,
                         hashlib.sha256(FACTORY_SCRIPT.encode('utf-8')).hexdigest())
        self.assertGreater(handle.loaded_at, 0)

        handle.strategy.evaluate(SwarmSnapshot())
        self.assertEqual(handle.strategy.calls, 1)

    def test_load_function_script(self):
        self.write(FUNCTION_SCRIPT)
        handle = self.loader.load()

        self.assertIsInstance(handle.strategy, FunctionStrategy)
        self.assertEqual(handle.strategy.evaluate(SwarmSnapshot()),
                         [{"type": "set_bias", "mode": "endgame"}])

    def test_dataclasses_in_script(self):
        self.write(DATACLASS_SCRIPT)
        handle = self.loader.load()
        self.assertEqual(handle.strategy.thresholds.endgame, 98.0)

    def test_each_load_is_a_fresh_instance(self):
        self.write(FACTORY_SCRIPT)
        first = self.loader.load()
        second = self.loader.load()

        first.strategy.evaluate(SwarmSnapshot())
        self.assertIsNot(first.strategy, second.strategy)
        self.assertEqual(second.strategy.calls, 0)
        self.assertEqual(first.source, second.source)

    def test_missing_file(self):
        with self.assertRaises(CompileError) as ctx:
            self.loader.load()
        self.assertIsInstance(ctx.exception.cause, FileNotFoundError)

    def test_syntax_error(self):
        self.write("def create_strategy(:\n    pass\n")
        with self.assertRaises(CompileError) as ctx:
            self.loader.load()
        self.assertIsInstance(ctx.exception.cause, SyntaxError)
        self.assertNotIn(self.loader.module_name, sys.modules)

    def test_error_at_import_time(self):
        self.write("raise RuntimeError('boom')\n")
        with self.assertRaises(CompileError) as ctx:
            self.loader.load()
        self.assertIn('boom', str(ctx.exception))

    def test_factory_error(self):
        self.write("def create_strategy():\n    return 1 / 0\n")
        with self.assertRaises(CompileError) as ctx:
            self.loader.load()
        self.assertIsInstance(ctx.exception.cause, ZeroDivisionError)

    def test_no_entry_point(self):
        self.write("X = 1\n")
        with self.assertRaises(CompileError) as ctx:
            self.loader.load()
        self.assertIn('neither', str(ctx.exception))

    def test_factory_returns_object_without_evaluate(self):
        self.write("def create_strategy():\n    return object()\n")
        with self.assertRaises(CompileError):
            self.loader.load()

    def test_failed_load_keeps_previous_module(self):
        self.write(FACTORY_SCRIPT)
        self.loader.load()
        previous = sys.modules[self.loader.module_name]

        self.write("raise ImportError('broken edit')\n")
        with self.assertRaises(CompileError):
            self.loader.load()
        self.assertIs(sys.modules[self.loader.module_name], previous)

    def test_compile_uses_given_bytes(self):
        self.write(FACTORY_SCRIPT)
        source, identity = self.loader.read_source()

        # file changes after it was read; the hashed bytes are what runs
        self.write(FUNCTION_SCRIPT)
        handle = self.loader.compile(source, identity)
        self.assertEqual(type(handle.strategy).__name__, 'CountingStrategy')
        self.assertEqual(handle.source, identity)

if __name__ == '__main__':
    unittest.main()
