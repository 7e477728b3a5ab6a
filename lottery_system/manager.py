"""
Lottery Lifecycle Manager
Creates lotteries, takes ticket registrations, runs expiry timers and
message refresh loops, and moves each lottery from active to ended
"""

import asyncio
import logging
import time

from discord.ext import tasks

from . import config
from .draw import select_winners
from .errors import (
    LotteryError,
    LotteryNotActive,
    LotteryNotFound,
    TicketLimitExceeded,
    ValidationError,
)
from .models import Lottery, LotteryStatus
from .recovery import RecoveryCoordinator
from .registry import LotteryRegistry

logger = logging.getLogger(__name__)


def _now_ms():
    return int(time.time() * 1000)


class LotteryManager:
    """
    Owns every loaded lottery and drives it through active -> ended

    All dependencies are passed in already constructed: the lottery store,
    the presentation layer, and optionally the skull ledger used to pay for
    tickets. Only one manager may run against a database at a time; two
    instances would each draw the same lottery.
    """

    def __init__(self, store, presenter, ledger=None, clock=None, rng=None,
                 recovery_buffer_ms=config.RECOVERY_BUFFER_MS):
        """
        Args:
            store: LotteryStore
            presenter: LotteryPresenter implementation
            ledger: SkullLedger (required for lotteries with a ticket price)
            clock: Callable returning the current time in epoch ms
            rng: Random source with ``randrange`` for the draw
            recovery_buffer_ms: How far back startup recovery looks for ended lotteries
        """
        self.store = store
        self.presenter = presenter
        self.ledger = ledger
        self.clock = clock or _now_ms
        self.rng = rng
        self.registry = LotteryRegistry()
        self.recovery = RecoveryCoordinator(self, store, buffer_ms=recovery_buffer_ms)
        self._last_id = 0
        self._ready = False
        self._background = set()

    # ========================================
    # LOOKUPS
    # ========================================

    def get_lottery(self, lottery_id):
        """Get a loaded lottery by id (None if unknown)"""
        return self.registry.lottery(lottery_id)

    def active_lotteries(self):
        return self.registry.active()

    # ========================================
    # CREATION
    # ========================================

    async def create_lottery(self, prize, winners, duration_ms, created_by=None, channel_id=None,
                             guild_id=None, min_participants=None, is_manual_draw=False,
                             ticket_price=config.DEFAULT_TICKET_PRICE,
                             max_tickets_per_user=config.DEFAULT_MAX_TICKETS_PER_USER,
                             terms=config.DEFAULT_TERMS):
        """
        Create, persist and start a lottery

        Args:
            prize: Prize description
            winners: Number of distinct winners to draw
            duration_ms: Time until the draw
            created_by: User id of the host
            channel_id: Channel the lottery message is posted in
            guild_id: Discord server id
            min_participants: Participants needed for a draw (defaults to ``winners``)
            is_manual_draw: If True no timer is armed; the host triggers the draw
            ticket_price: Skulls per ticket (0 = free)
            max_tickets_per_user: Ticket cap per user (0 = no cap)
            terms: Terms shown on the lottery message

        Returns:
            Lottery: The created lottery

        Raises:
            ValidationError: Bad parameters (nothing is persisted)
            StoreError: The lottery could not be saved
        """
        if min_participants is None:
            min_participants = winners

        _validate_creation(prize, winners, min_participants, duration_ms, ticket_price, max_tickets_per_user)

        start_time = self.clock()
        lottery = Lottery(
            id=self._next_id(start_time),
            prize=prize.strip(),
            winner_count=winners,
            min_participants=min_participants,
            start_time=start_time,
            end_time=start_time + duration_ms,
            created_by=str(created_by) if created_by is not None else None,
            channel_id=str(channel_id) if channel_id is not None else None,
            guild_id=str(guild_id) if guild_id is not None else None,
            terms=terms,
            ticket_price=ticket_price,
            max_tickets_per_user=max_tickets_per_user,
            is_manual_draw=is_manual_draw,
        )

        await asyncio.to_thread(self.store.insert, lottery)
        self.registry.add(lottery)
        logger.info(f"🎰 Created lottery {lottery.id}: {lottery.prize} "
                    f"({winners} winner(s), ends in {duration_ms // 1000}s, manual={is_manual_draw})")

        if lottery.channel_id:
            await self._post_message(lottery)

        if not is_manual_draw:
            self.arm_timer(lottery.id, duration_ms)

        if lottery.has_message:
            self.start_refresh_loop(lottery)

        return lottery

    async def _post_message(self, lottery):
        try:
            message_id = await self.presenter.post_lottery(lottery)
        except Exception as e:
            logger.error(f"Failed to post message for lottery {lottery.id}: {e}")
            return

        lottery.message_id = str(message_id)
        try:
            await asyncio.to_thread(self.store.update_message, lottery.id, lottery.channel_id, lottery.message_id)
        except LotteryError as e:
            logger.error(f"Failed to save message handles for lottery {lottery.id}: {e}")

    def _next_id(self, now):
        # Time-derived and strictly increasing, even within one millisecond
        candidate = max(now, self._last_id + 1)
        self._last_id = candidate
        return str(candidate)

    # ========================================
    # TICKETS
    # ========================================

    async def register_tickets(self, lottery_id, user_id, count=1):
        """
        Add tickets for a user

        The new participant map is persisted before it is applied in memory.

        Returns:
            Lottery: The updated lottery

        Raises:
            ValidationError: ``count`` is not a positive integer
            LotteryNotFound: Unknown lottery
            LotteryNotActive: Lottery ended or its end time has passed
            TicketLimitExceeded: User would go over ``max_tickets_per_user``
            StoreError: Registration could not be saved
        """
        if not isinstance(count, int) or isinstance(count, bool) or count <= 0:
            raise ValidationError(f"Ticket count must be a positive integer (got {count!r})")

        entry = self.registry.get(lottery_id)
        if entry is None:
            raise LotteryNotFound(f"Lottery {lottery_id} not found")

        async with entry.lock:
            lottery = entry.lottery
            self._check_open(lottery)

            user_id = str(user_id)
            current = lottery.tickets_for(user_id)
            self._check_limit(lottery, user_id, current, count)

            participants = dict(lottery.participants)
            participants[user_id] = current + count
            total_tickets = lottery.total_tickets + count

            saved = await asyncio.to_thread(self.store.update_participants, lottery.id, participants, total_tickets)
            if not saved:
                raise LotteryNotActive(f"Lottery {lottery.id} is no longer active")

            lottery.participants = participants
            lottery.total_tickets = total_tickets

        logger.info(f"🎟️ {user_id} now holds {participants[user_id]} ticket(s) in lottery {lottery.id} "
                    f"({total_tickets} total)")
        return lottery

    async def purchase_tickets(self, lottery_id, user_id, count=1):
        """
        Buy tickets with skulls

        The cost (``ticket_price * count``) is debited first and refunded if
        the registration fails.

        Returns:
            dict: {'status': 'success', 'lottery': ..., 'tickets': ..., 'cost': ...}
                  or {'status': 'error', 'reason': ..., 'message': ...}
        """
        if not isinstance(count, int) or isinstance(count, bool) or count <= 0:
            return _error('invalid', f"Ticket count must be a positive integer (got {count!r})")

        lottery = self.get_lottery(lottery_id)
        if lottery is None:
            return _error('not_found', f"Lottery {lottery_id} not found")

        try:
            self._check_open(lottery)
            self._check_limit(lottery, str(user_id), lottery.tickets_for(user_id), count)
        except LotteryNotActive as e:
            return _error('not_active', str(e))
        except TicketLimitExceeded as e:
            return _error('ticket_limit', str(e))

        cost = lottery.ticket_price * count
        if cost > 0:
            if self.ledger is None:
                logger.error(f"Lottery {lottery.id} has a ticket price but no ledger is configured")
                return _error('error', "Ticket payments are not available")

            try:
                paid = await asyncio.to_thread(self.ledger.debit, user_id, cost)
            except LotteryError as e:
                logger.error(f"Payment failed for {user_id} in lottery {lottery.id}: {e}")
                return _error('error', "Payment failed")

            if not paid:
                return _error('insufficient_funds', f"You need {cost:,} skulls for {count} ticket(s)")

        try:
            lottery = await self.register_tickets(lottery_id, user_id, count)
        except LotteryError as e:
            if cost > 0:
                await self._refund(user_id, cost, lottery_id)
            if isinstance(e, TicketLimitExceeded):
                return _error('ticket_limit', str(e))
            if isinstance(e, LotteryNotActive):
                return _error('not_active', str(e))
            logger.error(f"Ticket registration failed for {user_id} in lottery {lottery_id}: {e}")
            return _error('error', "Ticket registration failed")

        return {'status': 'success', 'lottery': lottery, 'tickets': lottery.tickets_for(user_id), 'cost': cost}

    async def _refund(self, user_id, amount, lottery_id):
        try:
            await asyncio.to_thread(self.ledger.credit, user_id, amount)
            logger.info(f"💀 Refunded {amount} skulls to {user_id} (lottery {lottery_id})")
        except LotteryError as e:
            logger.critical(f"REFUND FAILED: {user_id} is owed {amount} skulls for lottery {lottery_id}: {e}")

    def _check_open(self, lottery):
        if not lottery.is_active:
            raise LotteryNotActive(f"Lottery {lottery.id} has ended")
        if lottery.is_expired(self.clock()):
            raise LotteryNotActive(f"Lottery {lottery.id} is closed for entries")

    @staticmethod
    def _check_limit(lottery, user_id, current, count):
        limit = lottery.max_tickets_per_user
        if limit and current + count > limit:
            raise TicketLimitExceeded(user_id, current, count, limit)

    # ========================================
    # TIMERS
    # ========================================

    def arm_timer(self, lottery_id, delay_ms):
        """
        Schedule the end of a lottery

        Re-arming the same lottery replaces the pending timer.
        """
        entry = self.registry.get(lottery_id)
        if entry is None:
            raise LotteryNotFound(f"Lottery {lottery_id} not found")

        lottery_id = entry.id

        def on_expiry():
            entry.timer = None
            self._spawn(self.end_lottery(lottery_id))

        entry.arm_timer(delay_ms / 1000, on_expiry)
        logger.debug(f"⏰ Timer armed for lottery {lottery_id} ({delay_ms}ms)")

    def _spawn(self, coro):
        task = asyncio.ensure_future(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    def calculate_update_frequency(self, end_time, now=None):
        """
        Seconds between message refreshes, shorter as the end approaches

        Returns:
            int: 5 in the last minute, 15 in the last 5 minutes, otherwise 30
        """
        if now is None:
            now = self.clock()
        remaining = end_time - now
        if remaining <= config.LAST_MINUTE_MS:
            return config.REFRESH_INTERVAL_LAST_MINUTE
        if remaining <= config.LAST_5_MIN_MS:
            return config.REFRESH_INTERVAL_LAST_5_MIN
        return config.REFRESH_INTERVAL_DEFAULT

    def start_refresh_loop(self, lottery):
        """
        Keep the lottery message up to date until the lottery ends

        Refreshes immediately, then on a cadence recomputed after every
        refresh. The loop stops itself on the first failed refresh.
        """
        entry = self.registry.get(lottery.id)
        if entry is None:
            raise LotteryNotFound(f"Lottery {lottery.id} not found")

        lottery_id = entry.id

        @tasks.loop(seconds=self.calculate_update_frequency(lottery.end_time))
        async def refresh_loop():
            current = self.registry.lottery(lottery_id)
            if current is None or not current.is_active:
                refresh_loop.stop()
                return

            try:
                await self.presenter.refresh_lottery(current)
            except Exception as e:
                logger.error(f"Failed to update message for lottery {lottery_id}: {e}")
                refresh_loop.stop()
                return

            interval = self.calculate_update_frequency(current.end_time)
            if interval != refresh_loop.seconds:
                refresh_loop.change_interval(seconds=interval)

        entry.set_refresh(refresh_loop)
        refresh_loop.start()
        return refresh_loop

    # ========================================
    # ENDING
    # ========================================

    async def draw_now(self, lottery_id):
        """
        Draw a lottery immediately (manual draw trigger)

        Returns:
            list: The winners (empty if there were too few participants)

        Raises:
            LotteryNotFound / LotteryNotActive
        """
        lottery = self.get_lottery(lottery_id)
        if lottery is None:
            raise LotteryNotFound(f"Lottery {lottery_id} not found")
        if not lottery.is_active:
            raise LotteryNotActive(f"Lottery {lottery_id} has already ended")

        await self.end_lottery(lottery_id)
        return list(lottery.winner_list)

    async def end_lottery(self, lottery_id):
        """
        Move a lottery from active to ended

        Cancels its timer and refresh loop, draws and announces winners if
        enough people joined (or reports that too few did), and always
        persists status=ended, even if an earlier step failed. Winners that
        were already stored are kept and only announced. Never raises.
        """
        entry = self.registry.get(lottery_id)
        if entry is None:
            logger.warning(f"Cannot end lottery {lottery_id}: not loaded")
            return

        async with entry.lock:
            lottery = entry.lottery
            if not lottery.is_active:
                return

            lottery.status = LotteryStatus.ENDED
            entry.cancel_all()

            try:
                if lottery.winner_list:
                    # Drawn before a restart; those winners stand
                    logger.info(f"Lottery {lottery.id} already has winners, skipping the draw")
                    await self._announce_winners(lottery)
                elif lottery.participant_count >= lottery.min_participants:
                    await self._draw_winners(lottery)
                    await self._announce_winners(lottery)
                else:
                    logger.info(f"Lottery {lottery.id} ended with too few participants "
                                f"({lottery.participant_count}/{lottery.min_participants})")
                    await self._handle_failed_lottery(lottery)
            except Exception as e:
                logger.error(f"Error ending lottery {lottery.id}: {e}", exc_info=True)
            finally:
                await self._finalize(lottery)

    async def _draw_winners(self, lottery):
        winners = select_winners(lottery.participants, lottery.winner_count, self.rng)
        await asyncio.to_thread(self.store.update_winners, lottery.id, winners)
        lottery.winner_list = winners
        logger.info(f"🎉 Lottery {lottery.id} winners: {', '.join(winners)}")
        return winners

    async def _announce_winners(self, lottery):
        if lottery.winner_announced:
            logger.debug(f"Winners for lottery {lottery.id} already announced")
            return True

        try:
            await self.presenter.announce_winners(lottery, list(lottery.winner_list))
        except Exception as e:
            logger.error(f"Error announcing winners for {lottery.id}: {e}")
            return False

        lottery.winner_announced = True
        try:
            await asyncio.to_thread(self.store.mark_winner_announced, lottery.id)
        except LotteryError as e:
            logger.error(f"Failed to record announcement for lottery {lottery.id}: {e}")
        return True

    async def _handle_failed_lottery(self, lottery):
        try:
            await self.presenter.announce_insufficient(lottery)
        except Exception as e:
            logger.error(f"Error handling failed lottery {lottery.id}: {e}")

    async def _finalize(self, lottery):
        for attempt in range(1, config.STATUS_UPDATE_ATTEMPTS + 1):
            try:
                await asyncio.to_thread(self.store.update_status, lottery.id, LotteryStatus.ENDED)
                logger.info(f"✅ Lottery {lottery.id} ended")
                return True
            except Exception as e:
                logger.error(f"Error updating status for lottery {lottery.id} "
                             f"(attempt {attempt}/{config.STATUS_UPDATE_ATTEMPTS}): {e}")
        return False

    async def announce_pending(self, lottery_id):
        """Re-send a winner announcement that never went out"""
        entry = self.registry.get(lottery_id)
        if entry is None:
            return False
        async with entry.lock:
            return await self._announce_winners(entry.lottery)

    # ========================================
    # PROCESS BOUNDARY
    # ========================================

    def load_lottery(self, lottery):
        """Put a stored lottery into memory without starting anything"""
        entry = self.registry.add(lottery)
        if lottery.id.isdigit():
            self._last_id = max(self._last_id, int(lottery.id))
        return entry

    def restore_lottery(self, lottery, now=None):
        """Load a still-running lottery and restart its timer and refresh loop"""
        if now is None:
            now = self.clock()
        self.load_lottery(lottery)

        if not lottery.is_manual_draw:
            self.arm_timer(lottery.id, lottery.remaining_ms(now))
        self.start_refresh_loop(lottery)

    async def on_ready(self):
        """
        Startup hook: call once the database and Discord are reachable

        Runs recovery the first time; later calls (e.g. gateway reconnects)
        do nothing.

        Returns:
            list: Lotteries restored to active
        """
        if self._ready:
            return []
        self._ready = True
        return await self.recovery.recover()

    def shutdown(self):
        """Cancel all timers and refresh loops (the database stays authoritative)"""
        self.registry.shutdown()


def _validate_creation(prize, winners, min_participants, duration_ms, ticket_price, max_tickets_per_user):
    if not isinstance(prize, str) or not prize.strip():
        raise ValidationError("Prize must not be empty")
    for name, value in (('winners', winners), ('min_participants', min_participants)):
        if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
            raise ValidationError(f"{name} must be a positive integer (got {value!r})")
    if winners > config.MAX_WINNERS:
        raise ValidationError(f"winners cannot exceed {config.MAX_WINNERS}")
    if not isinstance(duration_ms, int) or duration_ms <= 0:
        raise ValidationError(f"duration must be positive (got {duration_ms!r})")
    if duration_ms > config.MAX_DURATION_MS:
        raise ValidationError("duration cannot exceed 30 days")
    if not isinstance(ticket_price, int) or ticket_price < 0:
        raise ValidationError(f"ticket_price must be a non-negative integer (got {ticket_price!r})")
    if not isinstance(max_tickets_per_user, int) or max_tickets_per_user < 0:
        raise ValidationError(f"max_tickets_per_user must be a non-negative integer (got {max_tickets_per_user!r})")


def _error(reason, message):
    return {'status': 'error', 'reason': reason, 'message': message}
