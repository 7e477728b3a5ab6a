import os
import logging

from dotenv import load_dotenv

import discord
from discord.ext import commands

from utils.logging_config import setup_logging, log_error
from utils.db_context import create_db_engine

# Lottery system imports
from lottery_system.database import setup_lottery_database, verify_lottery_schema
from lottery_system.commands import setup as setup_lottery_commands
from lottery_system.ledger import SkullLedger
from lottery_system.manager import LotteryManager
from lottery_system.presentation import DiscordPresenter
from lottery_system.store import LotteryStore

# -------------------------
# Load config
# -------------------------
load_dotenv()
setup_logging()

logger = logging.getLogger("bot")

DISCORD_TOKEN = os.getenv("DISCORD_TOKEN")
DATABASE_URL = os.getenv("DATABASE_URL", "")
COMMAND_PREFIX = os.getenv("COMMAND_PREFIX", "!")


class LotteryBot(commands.Bot):
    """Discord bot hosting the lottery engine and skull ledger"""

    def __init__(self, engine, **kwargs):
        super().__init__(**kwargs)
        self.engine = engine
        self.ledger = SkullLedger(engine)
        self.lottery_manager = LotteryManager(
            store=LotteryStore(engine),
            presenter=DiscordPresenter(self),
            ledger=self.ledger
        )

    async def setup_hook(self):
        await setup_lottery_commands(self, self.lottery_manager, self.ledger)

    async def on_ready(self):
        logger.info(f"✅ Logged in as {self.user} (ID: {self.user.id})")

        # Only the first on_ready restores lotteries; reconnects are no-ops
        restored = await self.lottery_manager.on_ready()
        if restored:
            logger.info(f"🎰 {len(restored)} lotteries running after restart")

    async def on_command_error(self, ctx, error):
        """Handle command errors gracefully."""
        if isinstance(error, commands.CommandNotFound):
            return
        if isinstance(error, commands.MissingRequiredArgument):
            await ctx.send(f"❌ Missing argument: `{error.param.name}`")
        elif isinstance(error, commands.BadArgument):
            await ctx.send(f"❌ {error}")
        elif isinstance(error, commands.CheckFailure):
            await ctx.send("❌ You don't have permission to use this command.")
        else:
            log_error(logger, error, context=f"Command {ctx.command} failed")
            await ctx.send("❌ An error occurred. Please try again.")

    async def close(self):
        self.lottery_manager.shutdown()
        await super().close()


def create_bot():
    engine = create_db_engine(DATABASE_URL)

    if not setup_lottery_database(engine):
        raise SystemExit("❌ Database initialization failed")

    missing = [table for table, ok in verify_lottery_schema(engine).items() if not ok]
    if missing:
        raise SystemExit(f"❌ Missing tables: {', '.join(missing)}")

    intents = discord.Intents.default()
    intents.message_content = True
    intents.members = True

    return LotteryBot(engine, command_prefix=COMMAND_PREFIX, intents=intents)


# -------------------------
# Run bot
# -------------------------
if __name__ == "__main__":
    if not DISCORD_TOKEN:
        raise SystemExit("❌ DISCORD_TOKEN environment variable is required")

    bot = create_bot()
    bot.run(DISCORD_TOKEN, log_handler=None)
