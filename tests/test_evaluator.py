"""
String Evaluator Tests

Tests for plugging string evaluators into the factory
"""

import sys
import os
import unittest

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from conftest import args
from fixtures import Connection
from beangraph import BeanFactory, CallableEvaluator, Definition, PlaceholderEvaluator
from beangraph.evaluator import as_evaluator


class TestAsEvaluator(unittest.TestCase):
    """Normalizing the string_evaluator setting."""

    def test_none(self):
        """No evaluator stays None."""
        self.assertIsNone(as_evaluator(None))

    def test_evaluator_instance(self):
        """Evaluator instances are used as-is."""
        evaluator = PlaceholderEvaluator({})
        self.assertIs(as_evaluator(evaluator), evaluator)

    def test_callable_wrapped(self):
        """Plain callables are adapted."""
        evaluator = as_evaluator(lambda value, definition: value.upper())

        self.assertIsInstance(evaluator, CallableEvaluator)
        self.assertEqual(evaluator.evaluate("abc"), "ABC")

    def test_invalid(self):
        """Anything else is rejected."""
        with self.assertRaises(TypeError):
            as_evaluator(42)


class TestFactoryEvaluation(unittest.TestCase):
    """String literals in definitions pass through the evaluator."""

    def test_callable_receives_definition(self):
        """The evaluator is called with the literal and the merged definition."""
        seen = []

        def evaluate(value, definition):
            seen.append(definition.bean_type)
            return value.replace("{env}", "prod")

        factory = BeanFactory(string_evaluator=evaluate)
        factory.register_definition("connection", Definition(
            bean_type=Connection, constructor_args=args("db://{env}")))

        self.assertEqual(factory.get("connection").url, "db://prod")
        self.assertEqual(set(seen), {Connection})

    def test_without_evaluator(self):
        """Without an evaluator literals are injected verbatim."""
        factory = BeanFactory()
        factory.register_definition("connection", Definition(
            bean_type=Connection, constructor_args=args("db://${env}")))

        self.assertEqual(factory.get("connection").url, "db://${env}")


if __name__ == '__main__':
    unittest.main()
