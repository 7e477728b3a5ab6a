"""
Lottery Data Model
In-memory representation of a lottery and its database row mapping
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


class LotteryStatus(str, Enum):
    ACTIVE = "active"
    ENDED = "ended"


@dataclass
class Lottery:
    """One timed drawing event. Times are epoch milliseconds."""
    id: str
    prize: str
    winner_count: int
    min_participants: int
    start_time: int
    end_time: int
    created_by: Optional[str] = None
    channel_id: Optional[str] = None
    message_id: Optional[str] = None
    guild_id: Optional[str] = None
    terms: str = ""
    ticket_price: int = 0
    max_tickets_per_user: int = 1
    is_manual_draw: bool = False
    participants: Dict[str, int] = field(default_factory=dict)
    total_tickets: int = 0
    status: LotteryStatus = LotteryStatus.ACTIVE
    winner_list: List[str] = field(default_factory=list)
    winner_announced: bool = False

    @property
    def is_active(self) -> bool:
        return self.status == LotteryStatus.ACTIVE

    @property
    def participant_count(self) -> int:
        return len(self.participants)

    @property
    def has_message(self) -> bool:
        return bool(self.channel_id and self.message_id)

    def remaining_ms(self, now: int) -> int:
        return max(0, self.end_time - now)

    def is_expired(self, now: int) -> bool:
        return self.end_time <= now

    def tickets_for(self, user_id) -> int:
        return self.participants.get(str(user_id), 0)

    def to_row(self) -> dict:
        """Flatten into bind parameters for the lotteries table"""
        return {
            'id': self.id,
            'prize': self.prize,
            'winner_count': self.winner_count,
            'min_participants': self.min_participants,
            'ticket_price': self.ticket_price,
            'max_tickets_per_user': self.max_tickets_per_user,
            'start_time': self.start_time,
            'end_time': self.end_time,
            'participants': json.dumps(self.participants),
            'total_tickets': self.total_tickets,
            'status': self.status.value,
            'winner_list': json.dumps(self.winner_list),
            'winner_announced': self.winner_announced,
            'is_manual_draw': self.is_manual_draw,
            'channel_id': self.channel_id,
            'message_id': self.message_id,
            'guild_id': self.guild_id,
            'created_by': self.created_by,
            'terms': self.terms,
        }

    @classmethod
    def from_row(cls, row) -> "Lottery":
        """Build from a row mapping (``row._mapping``) or plain dict"""
        data = dict(row)
        participants = _load_json(data.get('participants'), {})
        winner_list = _load_json(data.get('winner_list'), [])

        # Older rows stored winners as [{"id": ..., "username": ...}]
        winner_list = [w['id'] if isinstance(w, dict) else w for w in winner_list]

        participants = {str(k): int(v) for k, v in participants.items() if int(v) > 0}

        return cls(
            id=str(data['id']),
            prize=data['prize'],
            winner_count=int(data['winner_count']),
            min_participants=int(data['min_participants']),
            start_time=int(data['start_time']),
            end_time=int(data['end_time']),
            created_by=data.get('created_by'),
            channel_id=_str_or_none(data.get('channel_id')),
            message_id=_str_or_none(data.get('message_id')),
            guild_id=_str_or_none(data.get('guild_id')),
            terms=data.get('terms') or "",
            ticket_price=int(data.get('ticket_price') or 0),
            max_tickets_per_user=int(_default(data.get('max_tickets_per_user'), 1)),
            is_manual_draw=bool(data.get('is_manual_draw')),
            participants=participants,
            total_tickets=sum(participants.values()),
            status=LotteryStatus(data.get('status') or LotteryStatus.ACTIVE.value),
            winner_list=[str(w) for w in winner_list],
            winner_announced=bool(data.get('winner_announced')),
        )


def _load_json(value, default):
    if value is None or value == "":
        return default
    if isinstance(value, (dict, list)):
        return value
    return json.loads(value)


def _str_or_none(value):
    return str(value) if value not in (None, "") else None


def _default(value, default):
    return default if value is None else value
