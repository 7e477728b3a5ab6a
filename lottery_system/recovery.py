"""
Lottery Recovery
Rebuilds in-memory lottery state from the database on startup
"""

import asyncio
import logging

from utils.error_helpers import log_exceptions
from . import config
from .models import LotteryStatus

logger = logging.getLogger(__name__)


class RecoveryCoordinator:
    """
    Reconciles stored lotteries with the manager after a restart

    Lotteries still running get their timer and refresh loop back, lotteries
    that expired while the bot was offline are finished immediately, and a
    winner announcement that never went out is sent once.
    """

    def __init__(self, manager, store, buffer_ms=config.RECOVERY_BUFFER_MS):
        self.manager = manager
        self.store = store
        self.buffer_ms = buffer_ms

    async def recover(self, now=None):
        """
        Restore all active and recently ended lotteries

        Args:
            now: Current time in epoch ms (defaults to the manager's clock)

        Returns:
            list: Lotteries restored to active
        """
        if now is None:
            now = self.manager.clock()

        try:
            lotteries = await asyncio.to_thread(self.store.query_active_or_recently_ended, now, self.buffer_ms)
        except Exception as e:
            logger.error(f"[Restoration] Error fetching lotteries: {e}")
            return []

        restored = []
        for lottery in lotteries:
            logger.info(f"[Restoration] Processing lottery {lottery.id}")
            with log_exceptions("[Restoration] restoring lottery", suppress=True, lottery_id=lottery.id):
                if await self._recover_lottery(lottery, now):
                    restored.append(lottery)

        logger.info(f"[Restoration] Successfully restored {len(restored)} lotteries")
        return restored

    async def _recover_lottery(self, lottery, now):
        """Returns True if the lottery is running again"""
        if not lottery.has_message:
            # Without its message the lottery can never be shown or finished properly
            if lottery.is_active:
                logger.error(f"[Restoration] Ending lottery {lottery.id} - missing channel/message ID")
                await asyncio.to_thread(self.store.update_status, lottery.id, LotteryStatus.ENDED)
                lottery.status = LotteryStatus.ENDED
            return False

        if lottery.is_active and not lottery.is_expired(now):
            logger.info(f"[Restoration] Reinitializing active lottery {lottery.id} "
                        f"({lottery.remaining_ms(now) // 1000}s left)")
            self.manager.restore_lottery(lottery, now)
            return True

        if lottery.is_active:
            logger.info(f"[Restoration] Handling expired active lottery {lottery.id}")
            self.manager.load_lottery(lottery)
            await self.manager.end_lottery(lottery.id)
            return False

        if lottery.winner_list and not lottery.winner_announced:
            logger.info(f"[Restoration] Re-sending winner announcement for lottery {lottery.id}")
            self.manager.load_lottery(lottery)
            await self.manager.announce_pending(lottery.id)
        return False
