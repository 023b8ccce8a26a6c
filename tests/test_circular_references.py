"""
Circular Reference Tests

Tests for early references that break field-level cycles, and for the
errors raised when a cycle cannot be broken.
"""

import sys
import os
import unittest

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from conftest import BeanGraphTestCase
from fixtures import Left, OrderService, PaymentService, Database, CacheService, Right
from beangraph import (
    BeanFactory,
    BeanPostProcessor,
    BeanRef,
    Definition,
    PROTOTYPE,
    SmartInstantiationAwarePostProcessor,
)
from beangraph.exceptions import BeanCreationError, CurrentlyInCreationError


class Proxy(OrderService):
    """Stand-in for a wrapping proxy around an OrderService"""

    def __init__(self, target):
        self.target = target


class WrappingPostProcessor(BeanPostProcessor):
    """Wraps 'orders' after initialization without knowing about early references"""

    def post_process_after_initialization(self, bean, name):
        if name == "orders":
            return Proxy(bean)
        return bean


class EarlyProxyingPostProcessor(SmartInstantiationAwarePostProcessor):
    """Wraps 'orders' consistently, whether it is requested early or not"""

    def __init__(self):
        self.early = {}

    def get_early_bean_reference(self, bean, name):
        if name == "orders":
            self.early[name] = Proxy(bean)
            return self.early[name]
        return bean

    def post_process_after_initialization(self, bean, name):
        if name == "orders" and name not in self.early:
            return Proxy(bean)
        return bean


class TestFieldLevelCycle(BeanGraphTestCase):
    """orders -> payments (property) and payments -> orders (constructor)."""

    def setUp(self):
        super().setUp()
        self.define("orders", OrderService, property_values={"payments": BeanRef("payments")})
        self.define("payments", PaymentService)

    def test_cycle_resolves_to_identical_instances(self):
        """Each side of the cycle holds the finished instance of the other."""
        orders = self.factory.get("orders")
        payments = self.factory.get("payments")

        self.assertIs(orders.payments, payments)
        self.assertIs(payments.orders, orders)

    def test_dependency_edges_recorded_both_ways(self):
        """Both directions of the cycle are recorded for destruction ordering."""
        self.factory.get("orders")

        self.assertIn("payments", self.factory.registry.get_dependent_beans("orders"))
        self.assertIn("orders", self.factory.registry.get_dependent_beans("payments"))

    def test_entering_through_constructor_side_fails(self):
        """Starting at the constructor side leaves nothing to expose early."""
        with self.assertRaises(CurrentlyInCreationError) as cm:
            self.factory.get("payments")

        self.assertIn("payments -> orders -> payments", str(cm.exception))
        self.assertFalse(self.factory.contains_singleton("orders"))
        self.assertFalse(self.factory.contains_singleton("payments"))

    def test_circular_references_disabled(self):
        """Without early exposure the field-level cycle is an error too."""
        factory = BeanFactory(allow_circular_references=False)
        factory.register_definition(
            "orders", Definition(bean_type=OrderService, property_values={"payments": BeanRef("payments")}))
        factory.register_definition("payments", Definition(bean_type=PaymentService))

        with self.assertRaises(CurrentlyInCreationError):
            factory.get("orders")


class TestWrappedEarlyReference(BeanGraphTestCase):
    """Post-processors that replace a bean taking part in a cycle."""

    def _define_cycle(self, factory):
        factory.register_definition(
            "orders", Definition(bean_type=OrderService, property_values={"payments": BeanRef("payments")}))
        factory.register_definition("payments", Definition(bean_type=PaymentService))

    def test_raw_injection_despite_wrapping_is_rejected(self):
        """A dependent holding the raw object of a later wrapped bean is an error."""
        self._define_cycle(self.factory)
        self.factory.add_post_processor(WrappingPostProcessor())

        with self.assertRaises(CurrentlyInCreationError) as cm:
            self.factory.get("orders")

        self.assertIn("raw version", str(cm.exception))
        self.assertIn("payments", str(cm.exception))

    def test_raw_injection_despite_wrapping_can_be_allowed(self):
        """With the flag set, the wrapper is exposed and the dependent keeps the raw bean."""
        factory = BeanFactory(allow_raw_injection_despite_wrapping=True)
        self._define_cycle(factory)
        factory.add_post_processor(WrappingPostProcessor())

        orders = factory.get("orders")
        payments = factory.get("payments")

        self.assertIsInstance(orders, Proxy)
        self.assertIs(payments.orders, orders.target)
        factory.destroy_all()

    def test_early_reference_wrapper_becomes_final_bean(self):
        """The object handed out early is the one finally registered."""
        self._define_cycle(self.factory)
        processor = EarlyProxyingPostProcessor()
        self.factory.add_post_processor(processor)

        orders = self.factory.get("orders")
        payments = self.factory.get("payments")

        self.assertIsInstance(orders, Proxy)
        self.assertIs(payments.orders, orders)
        self.assertIs(processor.early["orders"], orders)


class TestConstructorCycle(BeanGraphTestCase):
    """left(right) and right(left) through constructors."""

    def test_singleton_constructor_cycle(self):
        """A pure constructor cycle raises CurrentlyInCreationError naming the chain."""
        self.define("left", Left)
        self.define("right", Right)

        with self.assertRaises(CurrentlyInCreationError) as cm:
            self.factory.get("left")

        self.assertIn("left -> right -> left", str(cm.exception))
        self.assertEqual(cm.exception.bean_name, "left")
        self.assertFalse(self.factory.contains_singleton("left"))
        self.assertFalse(self.factory.contains_singleton("right"))

    def test_prototype_constructor_cycle(self):
        """Prototype cycles are detected through the per-thread prototype set."""
        self.define("left", Left, scope=PROTOTYPE)
        self.define("right", Right, scope=PROTOTYPE)

        with self.assertRaises(CurrentlyInCreationError) as cm:
            self.factory.get("left")

        self.assertIn("left -> right -> left", str(cm.exception))

    def test_factory_usable_after_cycle_error(self):
        """A failed cycle does not leave names stuck in creation."""
        self.define("left", Left)
        self.define("right", Right)
        self.define("database", Database)

        with self.assertRaises(CurrentlyInCreationError):
            self.factory.get("left")

        self.assertFalse(self.factory.is_in_creation("left"))
        self.assertFalse(self.factory.is_in_creation("right"))
        self.assertIsInstance(self.factory.get("database"), Database)


class TestDependsOnCycle(BeanGraphTestCase):
    """Cycles declared through depends_on."""

    def test_depends_on_cycle_raises(self):
        """a depends on b and b depends on a."""
        self.define("a", Database, depends_on=["b"])
        self.define("b", CacheService, depends_on=["a"])

        with self.assertRaisesRegex(BeanCreationError, "Circular depends-on"):
            self.factory.get("a")

    def test_depends_on_missing_bean(self):
        """Depending on an unknown bean names both beans."""
        self.define("a", Database, depends_on=["ghost"])

        with self.assertRaises(BeanCreationError) as cm:
            self.factory.get("a")

        self.assertIn("'a' depends on missing bean 'ghost'", str(cm.exception))

    def test_depends_on_creates_dependee_first(self):
        """The dependee exists before the dependent is built."""
        created = []

        class First:
            def __init__(self):
                created.append("first")

        class Second:
            def __init__(self):
                created.append("second")

        self.define("second", Second, depends_on=["first"])
        self.define("first", First)

        self.factory.get("second")

        self.assertEqual(created, ["first", "second"])
        self.assertEqual(self.factory.registry.get_dependent_beans("first"), ["second"])


if __name__ == '__main__':
    unittest.main()
