"""
Test Discord Commands for Lottery System
Validates duration parsing and the replies of the lottery and skull commands
"""

from types import SimpleNamespace

import pytest

from lottery_system.commands import LotteryCommands, parse_duration
from lottery_system.errors import ValidationError

from conftest import MINUTE_MS


class FakeContext:
    def __init__(self, user_id=42, guild_id=333, channel_id=111):
        self.author = member(user_id)
        self.guild = SimpleNamespace(id=guild_id)
        self.channel = SimpleNamespace(id=channel_id)
        self.sent = []

    async def send(self, content=None, **kwargs):
        self.sent.append(content)

    @property
    def last(self):
        return self.sent[-1]


def member(user_id):
    return SimpleNamespace(id=user_id, mention=f"<@{user_id}>", display_name=f"user{user_id}")


async def invoke(cog, command_name, ctx, *args, **kwargs):
    """Run a command's callback directly, skipping permission checks"""
    command = getattr(cog, command_name)
    await command.callback(cog, ctx, *args, **kwargs)


@pytest.fixture
async def cog(manager, ledger):
    return LotteryCommands(None, manager, ledger)


@pytest.mark.parametrize("value, expected", [
    ("30m", 30 * MINUTE_MS),
    ("2h", 120 * MINUTE_MS),
    ("1d12h", 36 * 60 * MINUTE_MS),
    ("90s", 90 * 1000),
    ("45", 45 * MINUTE_MS),
    (" 1H 30M ", 90 * MINUTE_MS),
])
def test_parse_duration(value, expected):
    assert parse_duration(value) == expected


@pytest.mark.parametrize("value", ["", "abc", "0m", "5x", "10m later", "0"])
def test_parse_duration_rejects(value):
    with pytest.raises(ValidationError):
        parse_duration(value)


async def test_create_command_starts_lottery(cog, manager, presenter):
    ctx = FakeContext()

    await invoke(cog, "create", ctx, "10m", 2, prize="Steam Gift Card")

    [lottery] = manager.active_lotteries()
    assert lottery.prize == "Steam Gift Card"
    assert lottery.winner_count == 2
    assert lottery.channel_id == "111"
    assert lottery.created_by == "42"
    assert presenter.posted == [lottery.id]
    assert ctx.sent == []


async def test_create_command_reports_bad_input(cog, manager):
    ctx = FakeContext()

    await invoke(cog, "create", ctx, "soon", 2, prize="Nitro")
    await invoke(cog, "create", ctx, "10m", 0, prize="Nitro")

    assert len(ctx.sent) == 2
    assert all(message.startswith("❌") for message in ctx.sent)
    assert manager.active_lotteries() == []


async def test_manual_and_paid_create(cog, manager):
    ctx = FakeContext()

    await invoke(cog, "create_manual", ctx, "1h", 1, prize="Nitro")
    await invoke(cog, "create_paid", ctx, "1h", 1, 25, 4, prize="Skins")

    manual, paid = manager.active_lotteries()
    assert manual.is_manual_draw
    assert (paid.ticket_price, paid.max_tickets_per_user) == (25, 4)


async def test_buy_and_info(cog, manager):
    lottery = await manager.create_lottery(prize="Nitro", winners=1, duration_ms=MINUTE_MS,
                                           guild_id=333, max_tickets_per_user=0)
    await manager.register_tickets(lottery.id, "7", 1)
    ctx = FakeContext(user_id=42)

    await invoke(cog, "buy", ctx, lottery.id, 3)
    assert "**3**" in ctx.last

    await invoke(cog, "info", ctx, lottery.id)
    assert "75.00%" in ctx.last

    await invoke(cog, "lottery", ctx)
    assert lottery.id in ctx.last


async def test_buy_reports_errors(cog, manager, ledger):
    lottery = await manager.create_lottery(prize="Nitro", winners=1, duration_ms=MINUTE_MS,
                                           ticket_price=10)
    ctx = FakeContext()

    await invoke(cog, "buy", ctx, "nope")
    assert "not found" in ctx.last

    await invoke(cog, "buy", ctx, lottery.id)
    assert "10 skulls" in ctx.last


async def test_draw_command(cog, manager):
    ctx = FakeContext()

    await invoke(cog, "draw", ctx, "nope")
    assert ctx.last.startswith("❌")

    lottery = await manager.create_lottery(prize="Nitro", winners=1, duration_ms=MINUTE_MS,
                                           is_manual_draw=True)
    await invoke(cog, "draw", ctx, lottery.id)

    assert not lottery.is_active
    assert "without winners" in ctx.last


async def test_skull_commands(cog, ledger):
    ctx = FakeContext(user_id=42)
    friend = member(7)

    await invoke(cog, "give", ctx, member(42), 100)
    assert ledger.get_balance(42) == 100

    await invoke(cog, "send", ctx, friend, 30)
    assert ledger.get_balance(42) == 70
    assert ledger.get_balance(7) == 30

    await invoke(cog, "send", ctx, friend, 500)
    assert "Transfer failed" in ctx.last
    assert ledger.get_balance(42) == 70

    await invoke(cog, "give", ctx, friend, -5)
    assert ctx.last.startswith("❌")

    await invoke(cog, "skulls", ctx)
    assert "**70**" in ctx.last
