"""
Lottery Store
The only component that reads or writes lottery records
"""

import json
import logging

from sqlalchemy import text

from utils.error_helpers import db_error_handler
from .errors import StoreError
from .models import Lottery, LotteryStatus

logger = logging.getLogger(__name__)

LOTTERY_COLUMNS = [
    'id', 'prize', 'winner_count', 'min_participants', 'ticket_price',
    'max_tickets_per_user', 'start_time', 'end_time', 'participants',
    'total_tickets', 'status', 'winner_list', 'winner_announced',
    'is_manual_draw', 'channel_id', 'message_id', 'guild_id', 'created_by',
    'terms',
]


class LotteryStore:
    """
    Persists lottery records keyed by id

    Every write is safe to repeat: inserting an existing id is a no-op and
    updates overwrite with the same values. Store failures surface as
    StoreError.
    """

    def __init__(self, engine):
        self.engine = engine

    @db_error_handler(StoreError)
    def insert(self, lottery):
        """Insert a new lottery record (no-op if the id already exists)"""
        columns = ', '.join(LOTTERY_COLUMNS)
        values = ', '.join(f":{c}" for c in LOTTERY_COLUMNS)

        with self.engine.begin() as conn:
            result = conn.execute(text(f"""
                INSERT INTO lotteries ({columns})
                VALUES ({values})
                ON CONFLICT (id) DO NOTHING
            """), lottery.to_row())

        if result.rowcount == 0:
            logger.debug(f"Lottery {lottery.id} already stored")
        else:
            logger.info(f"💾 Stored lottery {lottery.id} ({lottery.prize})")

    @db_error_handler(StoreError)
    def update_status(self, lottery_id, status):
        """
        Set a lottery's status

        An ended lottery never goes back to active.
        """
        status = LotteryStatus(status)

        with self.engine.begin() as conn:
            conn.execute(text("""
                UPDATE lotteries
                SET status = :status
                WHERE id = :id
                  AND (status <> 'ended' OR :status = 'ended')
            """), {'id': str(lottery_id), 'status': status.value})

    @db_error_handler(StoreError)
    def update_winners(self, lottery_id, winner_list):
        """Record the drawn winners"""
        with self.engine.begin() as conn:
            conn.execute(text("""
                UPDATE lotteries
                SET winner_list = :winner_list
                WHERE id = :id
            """), {'id': str(lottery_id), 'winner_list': json.dumps(list(winner_list))})

    @db_error_handler(StoreError)
    def update_participants(self, lottery_id, participants, total_tickets):
        """
        Record the participant map of an active lottery

        Returns:
            bool: False if the lottery is unknown or already ended
        """
        with self.engine.begin() as conn:
            result = conn.execute(text("""
                UPDATE lotteries
                SET participants = :participants,
                    total_tickets = :total_tickets
                WHERE id = :id AND status = 'active'
            """), {
                'id': str(lottery_id),
                'participants': json.dumps(participants),
                'total_tickets': total_tickets
            })
            return result.rowcount == 1

    @db_error_handler(StoreError)
    def update_message(self, lottery_id, channel_id, message_id):
        """Record where the lottery's announcement message lives"""
        with self.engine.begin() as conn:
            conn.execute(text("""
                UPDATE lotteries
                SET channel_id = :channel_id,
                    message_id = :message_id
                WHERE id = :id
            """), {
                'id': str(lottery_id),
                'channel_id': str(channel_id) if channel_id is not None else None,
                'message_id': str(message_id) if message_id is not None else None
            })

    @db_error_handler(StoreError)
    def mark_winner_announced(self, lottery_id):
        """Flag that the winner announcement went out"""
        with self.engine.begin() as conn:
            conn.execute(text("""
                UPDATE lotteries
                SET winner_announced = :announced
                WHERE id = :id
            """), {'id': str(lottery_id), 'announced': True})

    @db_error_handler(StoreError)
    def get(self, lottery_id):
        """
        Load one lottery

        Returns:
            Lottery or None
        """
        with self.engine.begin() as conn:
            row = conn.execute(text(f"""
                SELECT {', '.join(LOTTERY_COLUMNS)}
                FROM lotteries
                WHERE id = :id
            """), {'id': str(lottery_id)}).fetchone()

        return Lottery.from_row(row._mapping) if row else None

    @db_error_handler(StoreError)
    def query_active_or_recently_ended(self, now, buffer_ms):
        """
        Load every active lottery plus any whose end time is within the buffer

        Args:
            now: Current time (epoch ms)
            buffer_ms: How far back to look for recently ended lotteries

        Returns:
            list: Lottery records, oldest first
        """
        with self.engine.begin() as conn:
            result = conn.execute(text(f"""
                SELECT {', '.join(LOTTERY_COLUMNS)}
                FROM lotteries
                WHERE status = 'active' OR end_time > :cutoff
                ORDER BY end_time
            """), {'cutoff': now - buffer_ms})

            rows = [dict(row._mapping) for row in result]

        lotteries = []
        for row in rows:
            try:
                lotteries.append(Lottery.from_row(row))
            except (KeyError, ValueError, TypeError) as e:
                logger.error(f"Skipping unreadable lottery record {row.get('id')}: {e}")
        return lotteries
