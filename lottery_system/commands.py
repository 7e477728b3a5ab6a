"""
Discord Commands for Lottery System
Thin command layer over the lottery manager and skull ledger
"""

import asyncio
import logging
import re

import discord
from discord.ext import commands

from .draw import ticket_odds
from .errors import LotteryError, LotteryNotActive, LotteryNotFound, ValidationError

logger = logging.getLogger(__name__)

DURATION_UNITS_MS = {
    's': 1000,
    'm': 60 * 1000,
    'h': 60 * 60 * 1000,
    'd': 24 * 60 * 60 * 1000,
}

GENERIC_ERROR = "❌ An error occurred. Please try again."


def parse_duration(value):
    """
    Parse a duration like ``30m``, ``2h``, ``1d12h`` into milliseconds

    A bare number is read as minutes.

    Raises:
        ValidationError: Unparseable or zero duration
    """
    value = str(value).strip().lower()
    if value.isdigit():
        total = int(value) * DURATION_UNITS_MS['m']
    else:
        parts = re.findall(r'(\d+)\s*([smhd])', value)
        if not parts or re.sub(r'(\d+)\s*([smhd])', '', value).strip():
            raise ValidationError(f"Invalid duration '{value}' (use e.g. 30m, 2h, 1d)")
        total = sum(int(amount) * DURATION_UNITS_MS[unit] for amount, unit in parts)

    if total <= 0:
        raise ValidationError("Duration must be greater than zero")
    return total


class LotteryCommands(commands.Cog):
    """Lottery and skull commands"""

    def __init__(self, bot, manager, ledger):
        self.bot = bot
        self.manager = manager
        self.ledger = ledger

    # ========================================
    # LOTTERY COMMANDS
    # ========================================

    @commands.group(name='lottery', aliases=['lotto'], invoke_without_command=True)
    async def lottery(self, ctx):
        """
        List running lotteries
        Usage: !lottery
        """
        guild_id = str(ctx.guild.id) if ctx.guild else None
        running = [l for l in self.manager.active_lotteries() if l.guild_id == guild_id]

        if not running:
            await ctx.send("🎰 No lotteries are running right now.")
            return

        lines = [f"🎰 **Running Lotteries** ({len(running)})", ""]
        for lottery in running:
            ends = "manual draw" if lottery.is_manual_draw else f"ends <t:{lottery.end_time // 1000}:R>"
            lines.append(f"• `{lottery.id}` **{lottery.prize}** - {lottery.participant_count} participants, {ends}")
        await ctx.send("\n".join(lines))

    @lottery.command(name='create', aliases=['start'])
    @commands.has_permissions(manage_guild=True)
    async def create(self, ctx, duration: str, winners: int, *, prize: str):
        """
        [ADMIN] Start a timed lottery
        Usage: !lottery create <duration> <winners> <prize>
        Example: !lottery create 2h 3 Steam Gift Card
        """
        await self._create(ctx, duration, winners, prize)

    @lottery.command(name='paid')
    @commands.has_permissions(manage_guild=True)
    async def create_paid(self, ctx, duration: str, winners: int, ticket_price: int, max_tickets: int, *, prize: str):
        """
        [ADMIN] Start a lottery where tickets cost skulls
        Usage: !lottery paid <duration> <winners> <price> <max tickets per user> <prize>
        Example: !lottery paid 1d 1 50 10 Nitro
        """
        await self._create(ctx, duration, winners, prize, ticket_price=ticket_price,
                           max_tickets_per_user=max_tickets)

    @lottery.command(name='manual')
    @commands.has_permissions(manage_guild=True)
    async def create_manual(self, ctx, duration: str, winners: int, *, prize: str):
        """
        [ADMIN] Start a lottery that is only drawn with !lottery draw
        Usage: !lottery manual <entry window> <winners> <prize>
        """
        await self._create(ctx, duration, winners, prize, is_manual_draw=True)

    async def _create(self, ctx, duration, winners, prize, **options):
        try:
            lottery = await self.manager.create_lottery(
                prize=prize,
                winners=winners,
                duration_ms=parse_duration(duration),
                created_by=ctx.author.id,
                channel_id=ctx.channel.id,
                guild_id=ctx.guild.id if ctx.guild else None,
                **options
            )
        except ValidationError as e:
            await ctx.send(f"❌ {e}")
            return
        except Exception as e:
            logger.error(f"Error creating lottery: {e}", exc_info=True)
            await ctx.send(GENERIC_ERROR)
            return

        if not lottery.message_id:
            await ctx.send(f"⚠️ Lottery `{lottery.id}` created, but its message could not be posted.")

    @lottery.command(name='buy', aliases=['join', 'enter'])
    async def buy(self, ctx, lottery_id: str, count: int = 1):
        """
        Buy tickets for a lottery
        Usage: !lottery buy <lottery id> [count]
        """
        try:
            result = await self.manager.purchase_tickets(lottery_id, ctx.author.id, count)
        except Exception as e:
            logger.error(f"Error buying tickets: {e}", exc_info=True)
            await ctx.send(GENERIC_ERROR)
            return

        if result['status'] == 'success':
            lottery = result['lottery']
            paid = f" for {result['cost']:,} skulls" if result['cost'] else ""
            await ctx.send(f"🎟️ {ctx.author.mention} You now hold **{result['tickets']}** ticket(s) "
                           f"in **{lottery.prize}**{paid}.")
        else:
            await ctx.send(f"❌ {ctx.author.mention} {result['message']}")

    @lottery.command(name='draw')
    @commands.has_permissions(manage_guild=True)
    async def draw(self, ctx, lottery_id: str):
        """
        [ADMIN] Draw a lottery now
        Usage: !lottery draw <lottery id>
        """
        try:
            winners = await self.manager.draw_now(lottery_id)
        except (LotteryNotFound, LotteryNotActive) as e:
            await ctx.send(f"❌ {e}")
            return
        except Exception as e:
            logger.error(f"Error drawing lottery {lottery_id}: {e}", exc_info=True)
            await ctx.send(GENERIC_ERROR)
            return

        if not winners:
            await ctx.send(f"Lottery `{lottery_id}` ended without winners.")

    @lottery.command(name='info')
    async def info(self, ctx, lottery_id: str):
        """
        Show a lottery and your tickets in it
        Usage: !lottery info <lottery id>
        """
        lottery = self.manager.get_lottery(lottery_id)
        if lottery is None:
            await ctx.send(f"❌ Lottery `{lottery_id}` not found.")
            return

        status = "running" if lottery.is_active else "ended"
        odds = ticket_odds(lottery.participants, str(ctx.author.id))
        yours = (f"{odds['user_tickets']} ({odds['probability_percent']:.2f}% per draw)"
                 if odds else "0")
        await ctx.send(
            f"🎰 **{lottery.prize}** (`{lottery.id}`, {status})\n"
            f"Participants: {lottery.participant_count} (min {lottery.min_participants}) • "
            f"Tickets: {lottery.total_tickets:,}\n"
            f"Your tickets: {yours}"
        )

    # ========================================
    # SKULL COMMANDS
    # ========================================

    @commands.group(name='skulls', aliases=['balance', 'bal'], invoke_without_command=True)
    async def skulls(self, ctx, member: discord.Member = None):
        """
        Check a skull balance
        Usage: !skulls [@user]
        """
        member = member or ctx.author
        try:
            balance = await asyncio.to_thread(self.ledger.get_balance, member.id)
        except LotteryError as e:
            logger.error(f"Error reading balance for {member.id}: {e}")
            await ctx.send(GENERIC_ERROR)
            return
        await ctx.send(f"💀 {member.display_name} has **{balance:,}** skulls.")

    @skulls.command(name='give')
    @commands.has_permissions(administrator=True)
    async def give(self, ctx, member: discord.Member, amount: int):
        """
        [ADMIN] Give skulls to a user
        Usage: !skulls give @user <amount>
        """
        try:
            balance = await asyncio.to_thread(self.ledger.credit, member.id, amount)
        except ValidationError as e:
            await ctx.send(f"❌ {e}")
            return
        except LotteryError as e:
            logger.error(f"Error giving skulls to {member.id}: {e}")
            await ctx.send(GENERIC_ERROR)
            return
        await ctx.send(f"💀 Gave {amount:,} skulls to {member.mention} (now {balance:,}).")

    @skulls.command(name='send', aliases=['pay', 'transfer'])
    async def send(self, ctx, member: discord.Member, amount: int):
        """
        Send skulls to another user
        Usage: !skulls send @user <amount>
        """
        try:
            sent = await asyncio.to_thread(self.ledger.transfer, ctx.author.id, member.id, amount)
        except ValidationError as e:
            await ctx.send(f"❌ {e}")
            return

        if sent:
            await ctx.send(f"💀 {ctx.author.mention} sent {amount:,} skulls to {member.mention}.")
        else:
            await ctx.send(f"❌ {ctx.author.mention} Transfer failed - check your balance.")


async def setup(bot, manager, ledger):
    """Add lottery commands to bot"""
    await bot.add_cog(LotteryCommands(bot, manager, ledger))
    logger.info("✅ Lottery commands loaded")
