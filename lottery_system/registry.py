"""
Lottery Registry
Owns each loaded lottery together with its expiry timer and refresh loop
"""

import asyncio
import logging
from typing import Dict, Iterator, Optional

from .models import Lottery

logger = logging.getLogger(__name__)


class LotteryEntry:
    """
    One loaded lottery and the background handles that belong to it

    Arming a new timer or refresh loop always cancels the previous one, so
    there is never more than one of each pending per lottery.
    """

    def __init__(self, lottery: Lottery):
        self.lottery = lottery
        self.timer: Optional[asyncio.TimerHandle] = None
        self.refresh = None  # discord.ext.tasks.Loop
        self.lock = asyncio.Lock()

    @property
    def id(self) -> str:
        return self.lottery.id

    def arm_timer(self, delay_seconds: float, callback) -> asyncio.TimerHandle:
        """Schedule ``callback()`` after ``delay_seconds``, replacing any pending timer"""
        self.cancel_timer()
        loop = asyncio.get_running_loop()
        self.timer = loop.call_later(max(0.0, delay_seconds), callback)
        return self.timer

    def cancel_timer(self):
        if self.timer is not None:
            self.timer.cancel()
            self.timer = None

    def set_refresh(self, refresh_loop):
        self.cancel_refresh()
        self.refresh = refresh_loop

    def cancel_refresh(self):
        if self.refresh is not None:
            self.refresh.cancel()
            self.refresh = None

    def cancel_all(self):
        self.cancel_timer()
        self.cancel_refresh()

    @property
    def has_pending_timer(self) -> bool:
        return self.timer is not None and not self.timer.cancelled()


class LotteryRegistry:
    """In-memory lotteries keyed by id"""

    def __init__(self):
        self._entries: Dict[str, LotteryEntry] = {}

    def add(self, lottery: Lottery) -> LotteryEntry:
        """
        Register a lottery, replacing the record of an already-loaded id

        The existing entry (and its lock) is kept so that a transition in
        progress is not bypassed.
        """
        entry = self._entries.get(lottery.id)
        if entry is None:
            entry = LotteryEntry(lottery)
            self._entries[lottery.id] = entry
        else:
            entry.lottery = lottery
        return entry

    def get(self, lottery_id) -> Optional[LotteryEntry]:
        return self._entries.get(str(lottery_id))

    def lottery(self, lottery_id) -> Optional[Lottery]:
        entry = self.get(lottery_id)
        return entry.lottery if entry else None

    def active(self):
        return [e.lottery for e in self._entries.values() if e.lottery.is_active]

    def shutdown(self):
        """Cancel every timer and refresh loop"""
        for entry in self._entries.values():
            entry.cancel_all()
        logger.info(f"Cancelled background work for {len(self._entries)} lotteries")

    def __contains__(self, lottery_id) -> bool:
        return str(lottery_id) in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[LotteryEntry]:
        return iter(list(self._entries.values()))
