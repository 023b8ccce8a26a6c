"""
BeanGraphCore Tests

Tests for the container facade: loading definitions, refresh, close and
isolation between containers
"""

import sys
import os
import unittest

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from conftest import args
from fixtures import CacheService, CounterService, Database, Resource, UserRepository
from beangraph import BeanFactory, BeanGraphCore, Definition, PROTOTYPE
from beangraph.exceptions import (
    BeanCreationError,
    ContainerClosedError,
    DefinitionStoreError,
    DuplicateDefinitionError,
)


class Broken:
    def __init__(self):
        raise RuntimeError("cannot start")


def definitions():
    return {
        "db": Definition(bean_type=Database),
        "cache": Definition(bean_type=CacheService),
        "repository": Definition(bean_type=UserRepository),
    }


class TestLifecycle(unittest.TestCase):
    """Load, refresh and close."""

    def setUp(self):
        CounterService.instances = 0

    def test_definitions_loaded_on_creation(self):
        """Definitions passed to the constructor are registered."""
        app = BeanGraphCore(definitions())

        self.assertEqual(app.store.names(), ["db", "cache", "repository"])
        self.assertIsInstance(app.get, BeanFactory)
        self.assertIs(app.get, app.factory)

    def test_refresh_creates_eager_singletons(self):
        """refresh() creates every non-lazy singleton."""
        app = BeanGraphCore({
            "counter": Definition(bean_type=CounterService),
            "lazy": Definition(bean_type=Database, lazy_init=True),
        })

        app.refresh()

        self.assertTrue(app.is_refreshed)
        self.assertEqual(CounterService.instances, 1)
        self.assertTrue(app.factory.contains_singleton("counter"))
        self.assertFalse(app.factory.contains_singleton("lazy"))
        app.close()

    def test_refresh_freezes_store(self):
        """No definitions can be loaded after refresh()."""
        app = BeanGraphCore(definitions())
        app.refresh()

        with self.assertRaises(DefinitionStoreError):
            app.load_definitions({"other": Definition(bean_type=CounterService)})
        app.close()

    def test_failed_refresh_destroys_created_singletons(self):
        """A failing singleton destroys the ones built before it."""
        events = []
        app = BeanGraphCore({
            "first": Definition(bean_type=Resource, constructor_args=args(events, "first")),
            "broken": Definition(bean_type=Broken),
        })

        with self.assertRaises(BeanCreationError):
            app.refresh()

        self.assertEqual(events, ["first"])
        self.assertFalse(app.is_refreshed)
        self.assertEqual(app.factory.registry.singleton_count, 0)

    def test_factory_and_get_share_beans(self):
        """app.factory.get() and app.get.get() return the same singleton."""
        with BeanGraphCore(definitions()) as app:
            app.refresh()
            self.assertIs(app.factory.get("repository"), app.get.get("repository"))

    def test_load_definitions(self):
        """Definitions can be added before refresh."""
        app = BeanGraphCore()
        app.load_definitions(definitions())

        self.assertIsInstance(app.get.get("repository"), UserRepository)
        app.close()

    def test_definition_overriding_disabled(self):
        """allow_definition_overriding=False rejects re-registration."""
        app = BeanGraphCore(definitions(), allow_definition_overriding=False)

        with self.assertRaises(DuplicateDefinitionError):
            app.load_definitions({"db": Definition(bean_type=Database)})

    def test_settings_passed_to_factory(self):
        """Keyword settings configure the factory."""
        app = BeanGraphCore(allow_circular_references=False)

        self.assertFalse(app.factory.allow_circular_references)

    def test_close_destroys_singletons(self):
        """close() runs destroy callbacks."""
        events = []
        app = BeanGraphCore({"res": Definition(bean_type=Resource, constructor_args=args(events, "res"))})
        app.refresh()

        app.close()

        self.assertEqual(events, ["res"])
        self.assertTrue(app.is_closed)

    def test_close_is_idempotent(self):
        """Closing twice destroys once."""
        events = []
        app = BeanGraphCore({"res": Definition(bean_type=Resource, constructor_args=args(events, "res"))})
        app.refresh()

        app.close()
        app.close()

        self.assertEqual(events, ["res"])

    def test_closed_container_rejects_use(self):
        """get and load_definitions fail after close()."""
        app = BeanGraphCore(definitions())
        app.close()

        with self.assertRaises(ContainerClosedError):
            app.get.get("db")
        with self.assertRaises(ContainerClosedError):
            app.load_definitions({"other": Definition(bean_type=Database)})
        with self.assertRaises(ContainerClosedError):
            app.refresh()

    def test_context_manager(self):
        """Leaving the with-block closes the container."""
        events = []
        with BeanGraphCore({"res": Definition(bean_type=Resource,
                                              constructor_args=args(events, "res"))}) as app:
            app.refresh()
            self.assertFalse(app.is_closed)

        self.assertTrue(app.is_closed)
        self.assertEqual(events, ["res"])

    def test_context_manager_does_not_swallow_errors(self):
        """Exceptions propagate out of the with-block."""
        with self.assertRaises(KeyError):
            with BeanGraphCore() as app:
                raise KeyError("boom")
        self.assertTrue(app.is_closed)

    def test_repr(self):
        """The repr shows the state and definition count."""
        app = BeanGraphCore(definitions())
        self.assertEqual(repr(app), "<BeanGraphCore open, 3 definitions>")

        app.refresh()
        self.assertEqual(repr(app), "<BeanGraphCore refreshed, 3 definitions>")

        app.close()
        self.assertEqual(repr(app), "<BeanGraphCore closed, 3 definitions>")


class TestIsolation(unittest.TestCase):
    """Containers do not share state."""

    def test_separate_singletons(self):
        """Each container builds its own singletons."""
        first = BeanGraphCore(definitions())
        second = BeanGraphCore(definitions())

        self.assertIsNot(first.get.get("db"), second.get.get("db"))
        first.close()
        second.close()

    def test_closing_one_leaves_other(self):
        """Closing one container does not affect another."""
        first = BeanGraphCore(definitions())
        second = BeanGraphCore(definitions())
        db = second.get.get("db")

        first.close()

        self.assertIs(second.get.get("db"), db)
        second.close()

    def test_parent_container(self):
        """A child container resolves names from its parent container."""
        parent = BeanGraphCore(definitions())
        child = BeanGraphCore({"local": Definition(bean_type=CounterService, scope=PROTOTYPE)},
                              parent=parent)

        self.assertIs(child.get.get("db"), parent.get.get("db"))
        self.assertIs(child.factory.parent, parent.factory)
        self.assertFalse(parent.factory.contains("local"))
        child.close()
        parent.close()


if __name__ == '__main__':
    unittest.main()
