"""
Test Configuration and Utilities

Common base classes and helper functions for BeanGraph tests
"""

import unittest
from typing import Any, Optional, Type

from beangraph import BeanFactory, ConstructorArguments, Definition


class BeanGraphTestCase(unittest.TestCase):
    """
    Base test case class for BeanGraph tests.

    Creates a fresh BeanFactory before each test and destroys its
    singletons afterwards.
    """

    def setUp(self):
        """Create an isolated factory before each test"""
        self.factory = BeanFactory()

    def tearDown(self):
        """Destroy singletons after each test"""
        self.factory.destroy_all()

    def define(self, name: str, bean_type: Optional[Type] = None, **attributes: Any) -> Definition:
        """Register a definition on the test factory and return it."""
        definition = Definition(bean_type=bean_type, **attributes)
        self.factory.register_definition(name, definition)
        return definition


def args(*indexed: Any, **named: Any) -> ConstructorArguments:
    """
    Build constructor arguments: positional values by index, keyword values by name.

    Example:
        >>> args("eu-west-1", retries=3)
    """
    result = ConstructorArguments()
    for index, value in enumerate(indexed):
        result.add_indexed(index, value)
    for name, value in named.items():
        result.add_generic(value, name=name)
    return result


def generic(*values: Any) -> ConstructorArguments:
    """Build constructor arguments from untyped, unindexed values."""
    result = ConstructorArguments()
    for value in values:
        result.add_generic(value)
    return result


def register_classes(factory: BeanFactory, **classes: Type) -> BeanFactory:
    """
    Register one singleton definition per keyword argument.

    Example:
        >>> register_classes(factory, database=Database, cache=CacheService)
    """
    for name, cls in classes.items():
        factory.register_definition(name, Definition(bean_type=cls))
    return factory
