"""
Test Lottery Presentation
Validates embeds and the Discord presenter's error mapping
"""

from types import SimpleNamespace

import discord
import pytest

from lottery_system.errors import PresentationError
from lottery_system.models import LotteryStatus
from lottery_system.presentation import (
    DiscordPresenter,
    create_lottery_embed,
    create_winner_embed,
)

from conftest import make_lottery


class FakeChannel:
    def __init__(self, fail=False):
        self.fail = fail
        self.sent = []
        self.message = FakeMessage()

    async def send(self, content=None, **kwargs):
        if self.fail:
            raise discord.DiscordException("Missing Permissions")
        self.sent.append((content, kwargs))
        return SimpleNamespace(id=555)

    async def fetch_message(self, message_id):
        return self.message


class FakeMessage:
    def __init__(self):
        self.edits = []

    async def edit(self, **kwargs):
        self.edits.append(kwargs)


class FakeBot:
    def __init__(self, channel=None):
        self.channel = channel

    def get_channel(self, channel_id):
        return None

    async def fetch_channel(self, channel_id):
        if self.channel is None:
            raise discord.DiscordException("Unknown Channel")
        return self.channel


def _field(embed, name):
    return next(f.value for f in embed.fields if f.name == name)


def test_active_embed():
    lottery = make_lottery("1", participants={"A": 3, "B": 1}, ticket_price=10, max_tickets_per_user=5)
    lottery.total_tickets = 4

    embed = create_lottery_embed(lottery)

    assert embed.title == "🎰 Lottery: Steam Gift Card"
    assert _field(embed, "👥 Participants") == "2 / 1 min"
    assert _field(embed, "🎟️ Tickets") == "4"
    assert "10 skulls" in _field(embed, "💀 Ticket Price")
    assert "<t:" in _field(embed, "⏰ Ends")
    assert embed.footer.text == "Lottery ID: 1"


def test_ended_embed_lists_winners():
    lottery = make_lottery("1", status=LotteryStatus.ENDED, winner_list=["42", "7"])

    embed = create_lottery_embed(lottery)

    assert _field(embed, "⏰ Status") == "Ended"
    assert _field(embed, "🎉 Winners") == "<@42>\n<@7>"


def test_winner_embed_without_winners():
    embed = create_winner_embed(make_lottery("1"), [])
    assert _field(embed, "Winners") == "No winners"


async def test_post_lottery_returns_message_id():
    channel = FakeChannel()
    presenter = DiscordPresenter(FakeBot(channel))

    assert await presenter.post_lottery(make_lottery("1")) == "555"
    assert "embed" in channel.sent[0][1]


async def test_refresh_edits_the_lottery_message():
    channel = FakeChannel()
    presenter = DiscordPresenter(FakeBot(channel))

    await presenter.refresh_lottery(make_lottery("1"))

    assert len(channel.message.edits) == 1


async def test_announce_winners_updates_and_posts():
    channel = FakeChannel()
    presenter = DiscordPresenter(FakeBot(channel))
    lottery = make_lottery("1", status=LotteryStatus.ENDED, winner_list=["42"])

    await presenter.announce_winners(lottery, ["42"])

    assert len(channel.message.edits) == 1
    assert len(channel.sent[0][1]['embeds']) == 2


async def test_insufficient_message():
    channel = FakeChannel()
    presenter = DiscordPresenter(FakeBot(channel))
    lottery = make_lottery("1", min_participants=3, participants={"A": 1})

    await presenter.announce_insufficient(lottery)

    assert channel.sent[0][0] == (
        "⚠️ Lottery 1 for Steam Gift Card has ended without winners due to "
        "insufficient participants (1/3 required)."
    )


async def test_discord_failures_become_presentation_errors():
    lottery = make_lottery("1")

    with pytest.raises(PresentationError):
        await DiscordPresenter(FakeBot(None)).post_lottery(lottery)
    with pytest.raises(PresentationError):
        await DiscordPresenter(FakeBot(FakeChannel(fail=True))).post_lottery(lottery)
    with pytest.raises(PresentationError):
        await DiscordPresenter(FakeBot(FakeChannel())).refresh_lottery(make_lottery("1", message_id=None))
    with pytest.raises(PresentationError):
        await DiscordPresenter(FakeBot(FakeChannel())).post_lottery(make_lottery("1", channel_id=None))
