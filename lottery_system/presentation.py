"""
Lottery Presentation
Posts and updates lottery messages in Discord
"""

import logging
from datetime import datetime, timezone

import discord

from .errors import PresentationError

logger = logging.getLogger(__name__)


class LotteryPresenter:
    """
    What the lottery engine needs from a presentation layer

    Implementations raise PresentationError when a channel or message
    cannot be reached.
    """

    async def post_lottery(self, lottery):
        """Post the announcement message; returns its message id"""
        raise NotImplementedError

    async def refresh_lottery(self, lottery):
        """Update the displayed lottery state"""
        raise NotImplementedError

    async def announce_winners(self, lottery, winners):
        """Show the final state and announce the winners"""
        raise NotImplementedError

    async def announce_insufficient(self, lottery):
        """Tell the channel the lottery ended without enough participants"""
        raise NotImplementedError


class DiscordPresenter(LotteryPresenter):
    """Presentation layer backed by a discord.py client"""

    def __init__(self, bot):
        self.bot = bot

    async def post_lottery(self, lottery):
        channel = await self._fetch_channel(lottery.channel_id)
        try:
            message = await channel.send(embed=create_lottery_embed(lottery))
        except discord.DiscordException as e:
            raise PresentationError(f"Could not post lottery {lottery.id}: {e}") from e
        return str(message.id)

    async def refresh_lottery(self, lottery):
        message = await self._fetch_message(lottery)
        try:
            await message.edit(embed=create_lottery_embed(lottery))
        except discord.DiscordException as e:
            raise PresentationError(f"Could not update lottery {lottery.id}: {e}") from e

    async def announce_winners(self, lottery, winners):
        channel = await self._fetch_channel(lottery.channel_id)
        try:
            if lottery.message_id:
                message = await channel.fetch_message(int(lottery.message_id))
                await message.edit(embed=create_lottery_embed(lottery))

            await channel.send(embeds=[
                create_winner_embed(lottery, winners),
                create_congratulations_embed(lottery.prize, winners),
            ])
        except discord.DiscordException as e:
            raise PresentationError(f"Could not announce winners for {lottery.id}: {e}") from e

        logger.info(f"📢 Winners announced for lottery {lottery.id}")

    async def announce_insufficient(self, lottery):
        channel = await self._fetch_channel(lottery.channel_id)
        try:
            await channel.send(
                f"⚠️ Lottery {lottery.id} for {lottery.prize} has ended without winners due to "
                f"insufficient participants ({lottery.participant_count}/{lottery.min_participants} required)."
            )
        except discord.DiscordException as e:
            raise PresentationError(f"Could not post result for {lottery.id}: {e}") from e

    async def _fetch_channel(self, channel_id):
        if not channel_id:
            raise PresentationError("Lottery has no channel")

        try:
            channel = self.bot.get_channel(int(channel_id))
            if channel is None:
                channel = await self.bot.fetch_channel(int(channel_id))
        except (discord.DiscordException, ValueError) as e:
            raise PresentationError(f"Channel {channel_id} unreachable: {e}") from e
        return channel

    async def _fetch_message(self, lottery):
        if not lottery.message_id:
            raise PresentationError(f"Lottery {lottery.id} has no message")

        channel = await self._fetch_channel(lottery.channel_id)
        try:
            return await channel.fetch_message(int(lottery.message_id))
        except (discord.DiscordException, ValueError) as e:
            raise PresentationError(f"Message {lottery.message_id} unreachable: {e}") from e


# ========================================
# EMBEDS
# ========================================

def create_lottery_embed(lottery):
    """Embed shown on the lottery's own message"""
    ended = not lottery.is_active
    end_ts = lottery.end_time // 1000

    embed = discord.Embed(
        title=f"🎰 Lottery: {lottery.prize}",
        description=lottery.terms or None,
        color=discord.Color.dark_grey() if ended else discord.Color.gold(),
        timestamp=datetime.now(timezone.utc)
    )

    embed.add_field(name="🏆 Winners", value=str(lottery.winner_count), inline=True)
    embed.add_field(name="👥 Participants", value=f"{lottery.participant_count} / {lottery.min_participants} min", inline=True)
    embed.add_field(name="🎟️ Tickets", value=f"{lottery.total_tickets:,}", inline=True)

    if lottery.ticket_price:
        limit = f"max {lottery.max_tickets_per_user} per user" if lottery.max_tickets_per_user else "no limit"
        embed.add_field(
            name="💀 Ticket Price",
            value=f"{lottery.ticket_price:,} skulls ({limit})",
            inline=True
        )

    if ended:
        embed.add_field(name="⏰ Status", value="Ended", inline=False)
        if lottery.winner_list:
            embed.add_field(name="🎉 Winners", value=_mentions(lottery.winner_list), inline=False)
    elif lottery.is_manual_draw:
        embed.add_field(name="⏰ Draw", value="Drawn manually by the host", inline=False)
    else:
        embed.add_field(name="⏰ Ends", value=f"<t:{end_ts}:R> (<t:{end_ts}:f>)", inline=False)

    embed.set_footer(text=f"Lottery ID: {lottery.id}")
    return embed


def create_winner_embed(lottery, winners):
    embed = discord.Embed(
        title="🎉 Lottery Results",
        description=f"**Prize:** {lottery.prize}",
        color=discord.Color.green()
    )
    embed.add_field(name="Winners", value=_mentions(winners) or "No winners", inline=False)
    embed.add_field(
        name="Stats",
        value=f"{lottery.participant_count} participants • {lottery.total_tickets:,} tickets",
        inline=False
    )
    embed.set_footer(text=f"Lottery ID: {lottery.id}")
    return embed


def create_congratulations_embed(prize, winners):
    return discord.Embed(
        title="🎊 Congratulations!",
        description=f"{_mentions(winners)}\nYou won **{prize}**! Please contact an admin to claim your prize.",
        color=discord.Color.purple()
    )


def _mentions(user_ids):
    return "\n".join(f"<@{user_id}>" for user_id in user_ids)
