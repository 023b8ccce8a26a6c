"""
Dependency Resolution Tests

Tests for autowiring by type: candidate lookup, primary and priority
tie-breaks, collection and mapping injection, optional dependencies,
providers and parameterized generic types.
"""

import sys
import os
import unittest
from typing import Dict, Generic, List, Optional, Set, Tuple, TypeVar

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from conftest import BeanGraphTestCase
from fixtures import Database, EmailNotifier, Notifier, PushNotifier, SmsNotifier
from beangraph import (
    BeanRef,
    DependencyDescriptor,
    ObjectProvider,
    PROTOTYPE,
    current_injection_point,
)
from beangraph.exceptions import (
    NoMatchingExecutableError,
    NoSuchDefinitionError,
    NoUniqueCandidateError,
    find_cause,
)

E = TypeVar('E')


class Alerting:
    def __init__(self, notifier: Notifier):
        self.notifier = notifier


class OptionalAlerting:
    def __init__(self, notifier: Optional[Notifier]):
        self.notifier = notifier


class Broadcaster:
    def __init__(self, notifiers: List[Notifier]):
        self.notifiers = notifiers


class OptionalBroadcaster:
    def __init__(self, notifiers: Optional[List[Notifier]] = None):
        self.notifiers = notifiers


class Directory:
    def __init__(self, notifiers: Dict[str, Notifier]):
        self.notifiers = notifiers


class TupleBroadcaster:
    def __init__(self, notifiers: Tuple[Notifier, ...]):
        self.notifiers = notifiers


class SetBroadcaster:
    def __init__(self, notifiers: Set[Notifier]):
        self.notifiers = notifiers


class Decorator(Notifier):
    """Notifier wrapping another notifier"""

    def __init__(self, delegate: Notifier):
        self.delegate = delegate

    def send(self, message: str) -> str:
        return self.delegate.send(message.upper())


class LazyClient:
    def __init__(self, notifiers: ObjectProvider[Notifier]):
        self.notifiers = notifiers


class NeedsDatabase:
    def __init__(self, db: Database):
        self.db = db


class Repository(Generic[E]):
    """Generic repository base"""


class User:
    pass


class Order:
    pass


class UserRepository(Repository[User]):
    pass


class OrderRepository(Repository[Order]):
    pass


class UntypedRepository(Repository):
    pass


class UserService:
    def __init__(self, repository: Repository[User]):
        self.repository = repository


class AuditLog:
    """Records which injection point asked for it"""

    def __init__(self, requested_by: Optional[str]):
        self.requested_by = requested_by

    @staticmethod
    def create() -> 'AuditLog':
        point = current_injection_point()
        return AuditLog(point.name if point else None)


class Auditor:
    def __init__(self, audit_log: AuditLog):
        self.audit_log = audit_log


class NotifierHolder:
    notifier: Optional[Notifier] = None


class TestSingleCandidate(BeanGraphTestCase):
    """Tie-breaking between several candidates of one type."""

    def test_single_candidate(self):
        """With one candidate no tie-break is needed."""
        self.define("email", EmailNotifier)
        self.define("alerting", Alerting)

        self.assertIsInstance(self.factory.get("alerting").notifier, EmailNotifier)

    def test_primary_wins(self):
        """The primary candidate is chosen."""
        self.define("email", EmailNotifier)
        self.define("sms", SmsNotifier, primary=True)
        self.define("alerting", Alerting)

        self.assertIs(self.factory.get("alerting").notifier, self.factory.get("sms"))

    def test_lowest_priority_wins(self):
        """Without a primary, the lowest priority value is chosen."""
        self.define("email", EmailNotifier, priority=2)
        self.define("sms", SmsNotifier, priority=1)
        self.define("alerting", Alerting)

        self.assertIsInstance(self.factory.get("alerting").notifier, SmsNotifier)

    def test_primary_beats_priority(self):
        """The primary flag is consulted before priorities."""
        self.define("email", EmailNotifier, primary=True, priority=10)
        self.define("sms", SmsNotifier, priority=1)
        self.define("alerting", Alerting)

        self.assertIsInstance(self.factory.get("alerting").notifier, EmailNotifier)

    def test_two_primaries(self):
        """Two local primaries are an error."""
        self.define("email", EmailNotifier, primary=True)
        self.define("sms", SmsNotifier, primary=True)
        self.define("alerting", Alerting)

        with self.assertRaises(NoMatchingExecutableError) as cm:
            self.factory.get("alerting")

        cause = find_cause(cm.exception, NoUniqueCandidateError)
        self.assertIsNotNone(cause)
        self.assertIn("more than one 'primary' bean", str(cause))

    def test_equal_priorities(self):
        """Two candidates sharing the lowest priority are an error."""
        self.define("email", EmailNotifier, priority=1)
        self.define("sms", SmsNotifier, priority=1)
        self.define("alerting", Alerting)

        with self.assertRaises(NoMatchingExecutableError) as cm:
            self.factory.get("alerting")

        cause = find_cause(cm.exception, NoUniqueCandidateError)
        self.assertIsNotNone(cause)
        self.assertIn("same priority ('1')", str(cause))

    def test_parameter_name_matches_bean_name(self):
        """The injection point name picks the candidate of the same name."""
        self.define("email", EmailNotifier)
        self.define("notifier", SmsNotifier)
        self.define("alerting", Alerting)

        self.assertIs(self.factory.get("alerting").notifier, self.factory.get("notifier"))

    def test_parameter_name_matches_alias(self):
        """Aliases count as names for the name tie-break."""
        self.define("email", EmailNotifier)
        self.define("sms", SmsNotifier)
        self.factory.register_alias("sms", "notifier")
        self.define("alerting", Alerting)

        self.assertIsInstance(self.factory.get("alerting").notifier, SmsNotifier)

    def test_no_tie_break(self):
        """Indistinguishable candidates raise NoUniqueCandidateError listing them."""
        self.define("email", EmailNotifier)
        self.define("sms", SmsNotifier)
        self.define("alerting", Alerting)

        with self.assertRaises(NoMatchingExecutableError) as cm:
            self.factory.get("alerting")

        cause = find_cause(cm.exception, NoUniqueCandidateError)
        self.assertIsNotNone(cause)
        self.assertEqual(cause.candidates, ["email", "sms"])
        self.assertIn("expected single matching bean but found 2: email, sms", str(cause))

    def test_no_candidate(self):
        """A required dependency without candidates names the missing type."""
        self.define("alerting", Alerting)

        with self.assertRaises(NoMatchingExecutableError) as cm:
            self.factory.get("alerting")

        cause = find_cause(cm.exception, NoSuchDefinitionError)
        self.assertIsNotNone(cause)
        self.assertIn("No qualifying bean of type 'Notifier'", str(cause))

    def test_optional_dependency_without_candidate(self):
        """Optional[...] resolves to None when nothing qualifies."""
        self.define("alerting", OptionalAlerting)

        self.assertIsNone(self.factory.get("alerting").notifier)

    def test_optional_dependency_with_ambiguous_candidates(self):
        """Optional[...] resolves to None when the tie-breaks leave several candidates."""
        self.define("email", EmailNotifier)
        self.define("sms", SmsNotifier)
        self.define("alerting", OptionalAlerting)

        self.assertIsNone(self.factory.get("alerting").notifier)

    def test_ambiguous_descriptor(self):
        """resolve_dependency() fails only for required descriptors."""
        self.define("email", EmailNotifier)
        self.define("sms", SmsNotifier)

        self.assertIsNone(self.factory.resolve_dependency(
            DependencyDescriptor(Notifier, required=False)))
        with self.assertRaises(NoUniqueCandidateError):
            self.factory.resolve_dependency(DependencyDescriptor(Notifier))

    def test_non_autowire_candidate_is_skipped(self):
        """autowire_candidate=False hides a bean from autowiring."""
        self.define("email", EmailNotifier, autowire_candidate=False)
        self.define("sms", SmsNotifier)
        self.define("alerting", Alerting)

        self.assertIsInstance(self.factory.get("alerting").notifier, SmsNotifier)
        self.assertIsInstance(self.factory.get("email"), EmailNotifier)

    def test_self_reference_is_excluded(self):
        """A bean is not injected into itself when another candidate exists."""
        self.define("email", EmailNotifier)
        self.define("decorator", Decorator)

        decorator = self.factory.get("decorator")

        self.assertIs(decorator.delegate, self.factory.get("email"))
        self.assertEqual(decorator.send("hi"), "email:HI")

    def test_resolvable_dependency(self):
        """A registered resolvable dependency is injected without a definition."""
        db = Database()
        self.factory.register_resolvable_dependency(Database, db)
        self.define("service", NeedsDatabase)

        self.assertIs(self.factory.get("service").db, db)
        self.assertFalse(self.factory.contains("database"))

    def test_resolvable_dependency_must_match_type(self):
        """The value must be an instance of the dependency type."""
        with self.assertRaises(ValueError):
            self.factory.register_resolvable_dependency(Database, "not a database")

    def test_dependency_edge_recorded(self):
        """The autowired bean records the dependent for destruction ordering."""
        self.define("email", EmailNotifier)
        self.define("alerting", Alerting)

        self.factory.get("alerting")

        self.assertEqual(self.factory.registry.get_dependent_beans("email"), ["alerting"])


class TestMultipleCandidates(BeanGraphTestCase):
    """Collections and mappings collect every candidate."""

    def setUp(self):
        super().setUp()
        self.define("email", EmailNotifier)
        self.define("sms", SmsNotifier)
        self.define("push", PushNotifier)

    def test_list_injection(self):
        """List[Notifier] receives all notifiers in registration order."""
        self.define("broadcaster", Broadcaster)

        notifiers = self.factory.get("broadcaster").notifiers

        self.assertEqual([type(n) for n in notifiers], [EmailNotifier, SmsNotifier, PushNotifier])

    def test_list_injection_sorted_by_priority(self):
        """Priorities order the collection, unprioritized beans last."""
        self.define("sms", SmsNotifier, priority=2)
        self.define("push", PushNotifier, priority=1)
        self.define("broadcaster", Broadcaster)

        notifiers = self.factory.get("broadcaster").notifiers

        self.assertEqual([type(n) for n in notifiers], [PushNotifier, SmsNotifier, EmailNotifier])

    def test_dict_injection(self):
        """Dict[str, Notifier] maps bean names to beans."""
        self.define("directory", Directory)

        notifiers = self.factory.get("directory").notifiers

        self.assertEqual(list(notifiers), ["email", "sms", "push"])
        self.assertIs(notifiers["sms"], self.factory.get("sms"))

    def test_tuple_injection(self):
        """Tuple[Notifier, ...] receives a tuple."""
        self.define("broadcaster", TupleBroadcaster)

        notifiers = self.factory.get("broadcaster").notifiers

        self.assertIsInstance(notifiers, tuple)
        self.assertEqual(len(notifiers), 3)

    def test_set_injection(self):
        """Set[Notifier] receives a set."""
        self.define("broadcaster", SetBroadcaster)

        notifiers = self.factory.get("broadcaster").notifiers

        self.assertIsInstance(notifiers, set)
        self.assertIn(self.factory.get("push"), notifiers)

    def test_collection_includes_non_primary_beans(self):
        """Primary flags do not filter collections."""
        self.define("email", EmailNotifier, primary=True)
        self.define("broadcaster", Broadcaster)

        self.assertEqual(len(self.factory.get("broadcaster").notifiers), 3)

    def test_resolve_dependency_directly(self):
        """resolve_dependency() accepts a descriptor for ad-hoc lookups."""
        names = []
        result = self.factory.resolve_dependency(
            DependencyDescriptor(List[Notifier], name="notifiers"), autowired_names=names)

        self.assertEqual(len(result), 3)
        self.assertEqual(names, ["email", "sms", "push"])


class TestEmptyCollections(BeanGraphTestCase):
    """Collections with no candidates."""

    def test_required_empty_collection(self):
        """A required collection without candidates is an error."""
        self.define("broadcaster", Broadcaster)

        with self.assertRaises(NoMatchingExecutableError) as cm:
            self.factory.get("broadcaster")

        self.assertIsNotNone(find_cause(cm.exception, NoSuchDefinitionError))

    def test_optional_empty_collection(self):
        """An optional collection without candidates falls back to its default."""
        self.define("broadcaster", OptionalBroadcaster)

        self.assertIsNone(self.factory.get("broadcaster").notifiers)


class TestObjectProvider(BeanGraphTestCase):
    """Lazy and optional access through ObjectProvider."""

    def test_provider_injection(self):
        """An ObjectProvider is injected without resolving the target."""
        self.define("client", LazyClient)

        provider = self.factory.get("client").notifiers

        self.assertIsInstance(provider, ObjectProvider)
        self.assertIs(provider.required_type, Notifier)
        self.assertIsNone(provider.get_if_available())

    def test_provider_resolves_late_definitions(self):
        """Beans defined after injection are visible to the provider."""
        self.define("client", LazyClient)
        provider = self.factory.get("client").notifiers

        self.define("email", EmailNotifier)

        self.assertIsInstance(provider.get(), EmailNotifier)

    def test_provider_if_unique(self):
        """get_if_unique() returns None when several candidates remain."""
        self.define("email", EmailNotifier)
        self.define("sms", SmsNotifier)
        provider = self.factory.get_provider(Notifier)

        self.assertIsNone(provider.get_if_unique())
        with self.assertRaises(NoUniqueCandidateError):
            provider.get_if_available()
        with self.assertRaises(NoUniqueCandidateError):
            provider.get()

    def test_provider_iteration(self):
        """Iterating a provider yields every matching bean."""
        self.define("email", EmailNotifier)
        self.define("sms", SmsNotifier)

        notifiers = list(self.factory.get_provider(Notifier))

        self.assertEqual([type(n) for n in notifiers], [EmailNotifier, SmsNotifier])


class TestGenericTypes(BeanGraphTestCase):
    """Parameterized generic injection points."""

    def test_type_argument_selects_candidate(self):
        """Repository[User] only matches the Repository[User] subclass."""
        self.define("orders", OrderRepository)
        self.define("users", UserRepository)
        self.define("service", UserService)

        self.assertIsInstance(self.factory.get("service").repository, UserRepository)

    def test_unparameterized_candidate_used_as_fallback(self):
        """A raw subclass qualifies when no parameterized match exists."""
        self.define("orders", OrderRepository)
        self.define("untyped", UntypedRepository)
        self.define("service", UserService)

        self.assertIsInstance(self.factory.get("service").repository, UntypedRepository)

    def test_no_generic_match(self):
        """A mismatched type argument is not a candidate."""
        self.define("orders", OrderRepository)
        self.define("service", UserService)

        with self.assertRaises(NoMatchingExecutableError):
            self.factory.get("service")


class TestReferences(BeanGraphTestCase):
    """BeanRef by type and the current injection point."""

    def test_bean_ref_by_type(self):
        """BeanRef(bean_type=...) resolves the unique bean of that type."""
        self.define("email", EmailNotifier)
        self.define("holder", NotifierHolder, property_values={"notifier": BeanRef(bean_type=Notifier)})

        self.assertIs(self.factory.get("holder").notifier, self.factory.get("email"))

    def test_bean_ref_by_type_uses_primary(self):
        """Resolving by type applies the primary tie-break."""
        self.define("email", EmailNotifier)
        self.define("sms", SmsNotifier, primary=True)
        self.define("holder", NotifierHolder, property_values={"notifier": BeanRef(bean_type=Notifier)})

        self.assertIsInstance(self.factory.get("holder").notifier, SmsNotifier)

    def test_current_injection_point(self):
        """A prototype factory method sees the injection point it is built for."""
        self.define("audit_log_factory", AuditLog, scope=PROTOTYPE, factory_method_name="create")
        self.define("auditor", Auditor)

        self.assertEqual(self.factory.get("auditor").audit_log.requested_by, "audit_log")
        self.assertIsNone(self.factory.get("audit_log_factory").requested_by)
        self.assertIsNone(current_injection_point())


if __name__ == '__main__':
    unittest.main()
