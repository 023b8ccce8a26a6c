"""
Definition Store Tests

Tests for DefaultDefinitionStore (registration, overriding, aliases,
freezing, type queries) and for the Definition data classes.
"""

import sys
import os
import unittest

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from fixtures import CacheService, Database, EmailNotifier, Notifier, SmsNotifier
from beangraph import (
    ConstructorArguments,
    DefaultDefinitionStore,
    Definition,
    PROTOTYPE,
    ValueHolder,
)
from beangraph.definition import merge
from beangraph.exceptions import DefinitionStoreError, DuplicateDefinitionError, NoSuchDefinitionError


class TestRegistration(unittest.TestCase):
    """Registering, replacing and removing definitions."""

    def setUp(self):
        self.store = DefaultDefinitionStore()

    def test_register_and_get(self):
        """A registered definition is returned as-is."""
        definition = Definition(bean_type=Database)
        self.store.register("database", definition)

        self.assertIs(self.store.get("database"), definition)
        self.assertTrue(self.store.has("database"))
        self.assertIn("database", self.store)
        self.assertEqual(len(self.store), 1)

    def test_names_in_registration_order(self):
        """names() preserves registration order."""
        self.store.register("cache", Definition(bean_type=CacheService))
        self.store.register("database", Definition(bean_type=Database))

        self.assertEqual(self.store.names(), ["cache", "database"])

    def test_empty_name(self):
        """An empty name is rejected."""
        with self.assertRaises(DefinitionStoreError):
            self.store.register("", Definition(bean_type=Database))

    def test_not_a_definition(self):
        """Only Definition instances can be registered."""
        with self.assertRaises(DefinitionStoreError) as cm:
            self.store.register("database", Database)

        self.assertIn("expected Definition", str(cm.exception))

    def test_definition_without_target(self):
        """A concrete definition needs a type, a factory method or a parent."""
        with self.assertRaises(DefinitionStoreError) as cm:
            self.store.register("database", Definition())

        self.assertIn("neither bean_type, factory_method_name nor parent_name", str(cm.exception))

    def test_abstract_definition_without_target(self):
        """Abstract templates may omit the target."""
        self.store.register("template", Definition(is_abstract=True, scope=PROTOTYPE))

        self.assertTrue(self.store.has("template"))

    def test_overriding_replaces(self):
        """With overriding enabled the new definition wins."""
        replacement = Definition(bean_type=CacheService)
        self.store.register("service", Definition(bean_type=Database))
        self.store.register("service", replacement)

        self.assertIs(self.store.get("service"), replacement)
        self.assertEqual(self.store.names(), ["service"])

    def test_overriding_disabled(self):
        """With overriding disabled a second registration fails."""
        store = DefaultDefinitionStore(allow_overriding=False)
        store.register("service", Definition(bean_type=Database))

        with self.assertRaises(DuplicateDefinitionError) as cm:
            store.register("service", Definition(bean_type=CacheService))

        self.assertIn("Cannot register bean definition for bean 'service'", str(cm.exception))

    def test_remove(self):
        """remove() returns the definition and forgets the name."""
        definition = Definition(bean_type=Database)
        self.store.register("database", definition)

        self.assertIs(self.store.remove("database"), definition)
        self.assertFalse(self.store.has("database"))

    def test_remove_missing(self):
        """Removing an unknown name fails."""
        with self.assertRaises(NoSuchDefinitionError):
            self.store.remove("ghost")

    def test_get_missing_lists_registered_names(self):
        """The error for an unknown name lists what is registered."""
        self.store.register("cache", Definition(bean_type=CacheService))
        self.store.register("database", Definition(bean_type=Database))

        with self.assertRaises(NoSuchDefinitionError) as cm:
            self.store.get("ghost")

        self.assertEqual(cm.exception.bean_name, "ghost")
        self.assertIn("Registered names: cache, database", str(cm.exception))

    def test_get_missing_from_empty_store(self):
        """An empty store says so."""
        with self.assertRaises(NoSuchDefinitionError) as cm:
            self.store.get("ghost")

        self.assertIn("Registered names: None", str(cm.exception))

    def test_listeners_notified(self):
        """Listeners hear about registrations and removals."""
        changed = []
        self.store.add_listener(changed.append)

        self.store.register("database", Definition(bean_type=Database))
        self.store.register("database", Definition(bean_type=Database))
        self.store.remove("database")

        self.assertEqual(changed, ["database", "database", "database"])


class TestAliases(unittest.TestCase):
    """Alias chains and their validation."""

    def setUp(self):
        self.store = DefaultDefinitionStore()
        self.store.register("dataSource", Definition(bean_type=Database))

    def test_alias_chain(self):
        """canonical_name() follows chains of aliases."""
        self.store.register_alias("dataSource", "db")
        self.store.register_alias("db", "primaryDb")

        self.assertEqual(self.store.canonical_name("primaryDb"), "dataSource")
        self.assertEqual(self.store.canonical_name("dataSource"), "dataSource")
        self.assertEqual(sorted(self.store.aliases("dataSource")), ["db", "primaryDb"])
        self.assertTrue(self.store.is_alias("db"))

    def test_alias_equal_to_name(self):
        """An alias equal to its name is dropped."""
        self.store.register_alias("dataSource", "dataSource")

        self.assertEqual(self.store.aliases("dataSource"), [])

    def test_alias_cycle(self):
        """An alias that would loop back is rejected."""
        self.store.register_alias("dataSource", "db")

        with self.assertRaises(DefinitionStoreError) as cm:
            self.store.register_alias("db", "dataSource")

        self.assertIn("circular reference", str(cm.exception))

    def test_alias_reassigned_when_overriding(self):
        """With overriding enabled an alias can move to another name."""
        self.store.register("cache", Definition(bean_type=CacheService))
        self.store.register_alias("dataSource", "shared")
        self.store.register_alias("cache", "shared")

        self.assertEqual(self.store.canonical_name("shared"), "cache")

    def test_alias_clash_without_overriding(self):
        """With overriding disabled an alias cannot move."""
        store = DefaultDefinitionStore(allow_overriding=False)
        store.register("dataSource", Definition(bean_type=Database))
        store.register("cache", Definition(bean_type=CacheService))
        store.register_alias("dataSource", "shared")
        store.register_alias("dataSource", "shared")

        with self.assertRaises(DefinitionStoreError):
            store.register_alias("cache", "shared")

    def test_registering_a_definition_replaces_alias(self):
        """A definition registered under an alias name takes the name over."""
        self.store.register_alias("dataSource", "db")
        self.store.register("db", Definition(bean_type=CacheService))

        self.assertEqual(self.store.canonical_name("db"), "db")
        self.assertFalse(self.store.is_alias("db"))

    def test_remove_alias(self):
        """remove_alias() forgets the alias; unknown aliases fail."""
        self.store.register_alias("dataSource", "db")
        self.store.remove_alias("db")

        self.assertEqual(self.store.canonical_name("db"), "db")
        with self.assertRaises(DefinitionStoreError):
            self.store.remove_alias("db")


class TestFreezing(unittest.TestCase):
    """A frozen store rejects modifications."""

    def setUp(self):
        self.store = DefaultDefinitionStore()
        self.store.register("database", Definition(bean_type=Database))
        self.store.freeze()

    def test_frozen_flag(self):
        """is_frozen reports the state."""
        self.assertTrue(self.store.is_frozen)

    def test_register_rejected(self):
        """Registration fails once frozen."""
        with self.assertRaises(DefinitionStoreError) as cm:
            self.store.register("cache", Definition(bean_type=CacheService))

        self.assertIn("frozen", str(cm.exception))

    def test_remove_rejected(self):
        """Removal fails once frozen."""
        with self.assertRaises(DefinitionStoreError):
            self.store.remove("database")

    def test_alias_rejected(self):
        """Aliases cannot be added once frozen."""
        with self.assertRaises(DefinitionStoreError):
            self.store.register_alias("database", "db")

    def test_reads_still_work(self):
        """Lookups are unaffected."""
        self.assertTrue(self.store.has("database"))


class TestTypeQueries(unittest.TestCase):
    """names_of_type() with the declared-type matcher."""

    def setUp(self):
        self.store = DefaultDefinitionStore()
        self.store.register("email", Definition(bean_type=EmailNotifier))
        self.store.register("sms", Definition(bean_type=SmsNotifier, scope=PROTOTYPE))
        self.store.register("template", Definition(bean_type=EmailNotifier, is_abstract=True))
        self.store.register("database", Definition(bean_type=Database))

    def test_subclasses_match(self):
        """Definitions whose declared type is a subclass match."""
        self.assertEqual(self.store.names_of_type(Notifier), ["email", "sms"])

    def test_singletons_only(self):
        """Non-singletons can be excluded."""
        self.assertEqual(self.store.names_of_type(Notifier, include_non_singletons=False), ["email"])

    def test_custom_matcher(self):
        """A matcher decides the returned name."""
        def matcher(name, definition, required, include_non_singletons, allow_eager_init):
            return f"&{name}" if definition.bean_type is Database else None

        self.assertEqual(self.store.names_of_type(object, matcher=matcher), ["&database"])


class TestDefinition(unittest.TestCase):
    """Definition defaults, copies and merging."""

    def test_defaults(self):
        """A bare definition is an eager singleton autowired through its constructor."""
        definition = Definition(bean_type=Database)

        self.assertTrue(definition.is_singleton)
        self.assertFalse(definition.is_prototype)
        self.assertFalse(definition.is_lazy)
        self.assertEqual(definition.effective_autowire_mode, "constructor")
        self.assertFalse(definition.is_factory_method)

    def test_copy_is_independent(self):
        """Copies share no mutable state and no resolution cache."""
        definition = Definition(bean_type=Database, depends_on=["cache"], property_values={"name": "a"})
        definition.resolved_arguments = ["cached"]
        definition.arguments_resolved = True

        copied = definition.copy()
        copied.depends_on.append("other")
        copied.property_values["name"] = "b"

        self.assertEqual(definition.depends_on, ["cache"])
        self.assertEqual(definition.property_values, {"name": "a"})
        self.assertIsNone(copied.resolved_arguments)
        self.assertFalse(copied.arguments_resolved)

    def test_clear_resolution_cache(self):
        """clear_resolution_cache() forgets the chosen executable and arguments."""
        definition = Definition(bean_type=Database)
        definition.resolved_executable = object()
        definition.prepared_arguments = []
        definition.arguments_resolved = True

        definition.clear_resolution_cache()

        self.assertIsNone(definition.resolved_executable)
        self.assertIsNone(definition.prepared_arguments)
        self.assertFalse(definition.arguments_resolved)

    def test_merge(self):
        """Unset child attributes come from the parent; collections are combined."""
        parent_args = ConstructorArguments().add_indexed(0, "parent").add_indexed(1, "shared")
        parent = Definition(bean_type=Database, scope=PROTOTYPE, constructor_args=parent_args,
                            property_values={"a": 1, "b": 2}, depends_on=["x"], primary=True,
                            init_method_name="start", is_abstract=True)
        child = Definition(parent_name="base", constructor_args=ConstructorArguments().add_indexed(1, "child"),
                           property_values={"b": 3}, priority=5)

        merged = merge(parent, child)

        self.assertIs(merged.bean_type, Database)
        self.assertEqual(merged.scope, PROTOTYPE)
        self.assertEqual(merged.init_method_name, "start")
        self.assertEqual(merged.priority, 5)
        self.assertEqual(merged.constructor_args.indexed[0].value, "parent")
        self.assertEqual(merged.constructor_args.indexed[1].value, "child")
        self.assertEqual(merged.property_values, {"a": 1, "b": 3})
        self.assertEqual(merged.depends_on, [])
        self.assertFalse(merged.primary)
        self.assertFalse(merged.is_abstract)
        self.assertIsNone(merged.parent_name)
        self.assertEqual(parent.constructor_args.indexed[1].value, "shared")


class TestConstructorArguments(unittest.TestCase):
    """Indexed and generic argument lookup."""

    def test_negative_index(self):
        """Indexes must not be negative."""
        with self.assertRaises(ValueError):
            ConstructorArguments().add_indexed(-1, "x")

    def test_indexed_type_and_name_filters(self):
        """Typed or named indexed values only match compatible parameters."""
        arguments = ConstructorArguments().add_indexed(0, "8", type=int).add_indexed(1, "x", name="label")

        self.assertIsNone(arguments.get_indexed(0, str))
        self.assertIsNotNone(arguments.get_indexed(0, int))
        self.assertIsNone(arguments.get_indexed(1, None, "other"))
        self.assertIsNotNone(arguments.get_indexed(1, None, "label"))

    def test_generic_lookup_skips_used_and_incompatible(self):
        """Generic lookup honours names, declared types, runtime types and used holders."""
        arguments = ConstructorArguments()
        arguments.add_generic("text")
        arguments.add_generic(3)
        arguments.add_generic("eu-west-1", name="region")

        first = arguments.get_generic(int)
        self.assertEqual(first.value, 3)
        self.assertIsNone(arguments.get_generic(int, used={id(first)}))
        text = arguments.get_generic(str)
        self.assertEqual(text.value, "text")
        self.assertEqual(arguments.get_generic(str, "region", used={id(text)}).value, "eu-west-1")
        self.assertIsNone(arguments.get_generic(str, "zone", used={id(text)}))

    def test_add_generic_ignores_same_holder(self):
        """The same holder is only added once."""
        holder = ValueHolder("x")
        arguments = ConstructorArguments().add_generic(holder).add_generic(holder)

        self.assertEqual(arguments.get_arg_count(), 1)
        self.assertEqual(len(arguments), 1)


if __name__ == '__main__':
    unittest.main()
