"""
Pytest configuration and fixtures
Every test gets its own SQLite database file with the lottery schema
"""

import asyncio
import random

import pytest
from sqlalchemy import create_engine

from lottery_system.database import setup_lottery_database
from lottery_system.errors import PresentationError
from lottery_system.ledger import SkullLedger
from lottery_system.manager import LotteryManager
from lottery_system.models import Lottery
from lottery_system.presentation import LotteryPresenter
from lottery_system.store import LotteryStore

START_MS = 1_700_000_000_000
MINUTE_MS = 60 * 1000


class FakeClock:
    """Clock returning a settable epoch-ms time"""

    def __init__(self, now=START_MS):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms


class FakePresenter(LotteryPresenter):
    """Records every presentation call; each call can be made to fail"""

    def __init__(self):
        self.posted = []
        self.refreshed = []
        self.announced = []
        self.insufficient = []
        self.fail_post = False
        self.fail_refresh = False
        self.fail_announce = False
        self._message_id = 9000

    async def post_lottery(self, lottery):
        if self.fail_post:
            raise PresentationError("channel unreachable")
        self._message_id += 1
        self.posted.append(lottery.id)
        return str(self._message_id)

    async def refresh_lottery(self, lottery):
        self.refreshed.append(lottery.id)
        if self.fail_refresh:
            raise PresentationError("message deleted")

    async def announce_winners(self, lottery, winners):
        if self.fail_announce:
            raise PresentationError("channel unreachable")
        self.announced.append((lottery.id, list(winners)))

    async def announce_insufficient(self, lottery):
        self.insufficient.append(lottery.id)


async def wait_until(predicate, timeout=2.0):
    """Yield to the event loop until ``predicate()`` holds"""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


def make_lottery(lottery_id="1", **overrides):
    """Build a stored-shape lottery with sensible defaults"""
    values = dict(
        id=lottery_id,
        prize="Steam Gift Card",
        winner_count=1,
        min_participants=1,
        start_time=START_MS - 10 * MINUTE_MS,
        end_time=START_MS + 10 * MINUTE_MS,
        channel_id="111",
        message_id="222",
        guild_id="333",
    )
    values.update(overrides)
    lottery = Lottery(**values)
    lottery.total_tickets = sum(lottery.participants.values())
    return lottery


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False, "timeout": 30}
    )
    assert setup_lottery_database(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def store(engine):
    return LotteryStore(engine)


@pytest.fixture
def ledger(engine):
    return SkullLedger(engine)


@pytest.fixture
def presenter():
    return FakePresenter()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
async def make_manager(store, presenter, ledger, clock):
    """Factory for managers; all of them are shut down after the test"""
    managers = []

    def factory(**overrides):
        kwargs = dict(store=store, presenter=presenter, ledger=ledger, clock=clock,
                      rng=random.Random(1234))
        kwargs.update(overrides)
        manager = LotteryManager(**kwargs)
        managers.append(manager)
        return manager

    yield factory

    for manager in managers:
        manager.shutdown()
        if manager._background:
            await asyncio.gather(*manager._background, return_exceptions=True)
    await asyncio.sleep(0.01)


@pytest.fixture
async def manager(make_manager):
    return make_manager()
