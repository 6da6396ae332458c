import itertools

import pytest

from simchat.services.account_directory import AccountDirectory, AccountRepository
from simchat.services.conversation_ledger import ConversationLedger
from simchat.services.delivery import DeliveryOrchestrator
from simchat.services.session_manager import SessionManager
from simchat.services.story_feed import StoryFeed, StoryRepository
from simchat.utils.partition_store import MemoryPartitionStore
from simchat.utils.timestamp_utils import HOUR_MS


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start_ms: int = 1_700_000_000_000):
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, hours: float = 0, ms: int = 0) -> None:
        self.now += int(hours * HOUR_MS) + ms


def sequential_uids(start: int = 10_000_001):
    counter = itertools.count(start)
    return lambda: str(next(counter))


@pytest.fixture
def store():
    return MemoryPartitionStore()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def directory(store):
    return AccountDirectory(AccountRepository(store), stories=StoryRepository(store), uid_factory=sequential_uids())


@pytest.fixture
def ledger(store):
    return ConversationLedger(store)


@pytest.fixture
def delivery(ledger):
    return DeliveryOrchestrator(ledger)


@pytest.fixture
def feed(store, clock):
    return StoryFeed(StoryRepository(store), ttl_hours=14, max_active_per_owner=15, clock=clock)


@pytest.fixture
def session(store, directory, ledger, delivery, feed):
    manager = SessionManager(store=store, directory=directory, ledger=ledger, delivery=delivery, feed=feed)
    manager.start()
    return manager
