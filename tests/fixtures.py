"""
Test Fixtures

Common test classes used across test modules
"""

import threading
from typing import List, Optional

from beangraph import DisposableBean, FactoryBean, InitializingBean


class Database:
    """Test database class"""

    def __init__(self):
        self.name = "TestDB"


class CacheService:
    """Test cache service"""

    def __init__(self):
        self.cache = {}


class UserRepository:
    """Test repository with dependencies"""

    def __init__(self, db: Database, cache: CacheService):
        self.db = db
        self.cache = cache


class CounterService:
    """Service counting its instantiations, for singleton behavior"""

    instances = 0
    lock = threading.Lock()

    def __init__(self):
        with CounterService.lock:
            CounterService.instances += 1
        self.counter = 0

    def increment(self):
        self.counter += 1
        return self.counter


class ServiceWithoutHint:
    """Service with missing type hint - for error testing"""

    def __init__(self, dependency):  # No type hint!
        self.dependency = dependency


class Level1:
    """First level of nested dependencies"""
    pass


class Level2:
    """Second level of nested dependencies"""

    def __init__(self, l1: Level1):
        self.l1 = l1


class Level3:
    """Third level of nested dependencies"""

    def __init__(self, l2: Level2):
        self.l2 = l2


# Cycles

class OrderService:
    """Receives PaymentService after construction (property value)"""

    payments: Optional['PaymentService'] = None


class PaymentService:
    """Requires OrderService through its constructor"""

    def __init__(self, orders: OrderService):
        self.orders = orders


class Left:
    """Constructor cycle with Right"""

    def __init__(self, right: 'Right'):
        self.right = right


class Right:
    """Constructor cycle with Left"""

    def __init__(self, left: Left):
        self.left = left


# Lifecycle

class Resource(DisposableBean):
    """Records its destruction in a shared event list"""

    def __init__(self, events: List[str], label: str):
        self.events = events
        self.label = label

    def destroy(self) -> None:
        self.events.append(self.label)


class Closeable:
    """Has a close() method, picked up by the inferred destroy method"""

    def __init__(self):
        self.closed = False

    def close(self):
        self.closed = True


class InitTracking(InitializingBean):
    """Records the order of initialization callbacks"""

    def __init__(self):
        self.calls: List[str] = []

    def after_properties_set(self) -> None:
        self.calls.append("after_properties_set")

    def start(self):
        self.calls.append("start")


# Tie-breaks

class Notifier:
    """Base type with several implementations"""

    def send(self, message: str) -> str:
        raise NotImplementedError


class EmailNotifier(Notifier):
    def send(self, message: str) -> str:
        return f"email:{message}"


class SmsNotifier(Notifier):
    def send(self, message: str) -> str:
        return f"sms:{message}"


class PushNotifier(Notifier):
    def send(self, message: str) -> str:
        return f"push:{message}"


class Connection:
    """Product of ConnectionFactoryBean"""

    def __init__(self, url: str):
        self.url = url


class ConnectionFactoryBean(FactoryBean):
    """FactoryBean creating Connection objects"""

    created = 0

    def __init__(self, url: str = "memory://"):
        self.url = url

    def get_object(self) -> Connection:
        ConnectionFactoryBean.created += 1
        return Connection(self.url)

    @property
    def object_type(self) -> type:
        return Connection
