"""
Lottery Draw Logic
Weighted winner selection over a ticket pool, drawn without replacement
"""

import logging
import secrets

logger = logging.getLogger(__name__)

_system_random = secrets.SystemRandom()


def build_ticket_pool(participants):
    """
    Expand {user_id: ticket_count} into one pool entry per ticket

    Example: {A: 3, B: 1} -> [A, A, A, B]
    """
    pool = []
    for user_id, tickets in participants.items():
        if tickets > 0:
            pool.extend([user_id] * tickets)
    return pool


def select_winners(participants, winner_count, rng=None):
    """
    Draw up to ``winner_count`` distinct winners

    Every ticket is one equally likely entry, so a user holding N tickets has
    N chances per draw. Tickets are drawn without replacement; a drawn ticket
    whose owner has already won is discarded and the draw is repeated. That
    is the same as saying a winner's remaining tickets stop counting once
    they win: discarding and redrawing leaves every other ticket exactly as
    likely as if the winner's tickets had been removed up front.

    Drawing stops at ``winner_count`` winners or when the pool runs out, so
    fewer winners than requested is a normal result, not an error.

    Args:
        participants: Mapping of user_id -> ticket count
        winner_count: Number of distinct winners wanted
        rng: Object with ``randrange`` (defaults to a CSPRNG)

    Returns:
        list: Winner user ids in draw order
    """
    if rng is None:
        rng = _system_random

    if winner_count <= 0 or not participants:
        return []

    pool = build_ticket_pool(participants)
    winners = []
    selected = set()

    while len(winners) < winner_count and pool:
        index = rng.randrange(len(pool))

        # Swap-remove: order of the remaining pool is irrelevant
        user_id = pool[index]
        pool[index] = pool[-1]
        pool.pop()

        if user_id in selected:
            continue

        selected.add(user_id)
        winners.append(user_id)

    if len(winners) < winner_count:
        logger.info(f"Ticket pool exhausted: drew {len(winners)} of {winner_count} winners")

    return winners


def ticket_odds(participants, user_id):
    """
    Calculate a user's chance of winning a single draw

    Args:
        participants: Mapping of user_id -> ticket count
        user_id: User to check

    Returns:
        dict: Odds info or None if the user holds no tickets
    """
    user_tickets = participants.get(user_id, 0)
    total_tickets = sum(t for t in participants.values() if t > 0)

    if user_tickets <= 0 or total_tickets == 0:
        return None

    return {
        'user_tickets': user_tickets,
        'total_tickets': total_tickets,
        'probability_percent': user_tickets / total_tickets * 100,
        'odds': f"{user_tickets}/{total_tickets}",
    }
