"""
Skull Ledger
Virtual-currency balances used to pay for lottery tickets
"""

import logging

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from utils.error_helpers import db_error_handler
from .errors import StoreError, ValidationError

logger = logging.getLogger(__name__)


class SkullLedger:
    """Per-user skull balances; an account is created on first credit"""

    def __init__(self, engine):
        self.engine = engine

    @db_error_handler(StoreError)
    def get_balance(self, user_id):
        """
        Get a user's skull balance

        Args:
            user_id: Discord user ID

        Returns:
            int: Balance, 0 if the user has no account
        """
        with self.engine.begin() as conn:
            result = conn.execute(text("""
                SELECT balance FROM skulls WHERE user_id = :user_id
            """), {'user_id': str(user_id)})
            row = result.fetchone()
            return int(row[0]) if row else 0

    def has_enough(self, user_id, amount):
        """Check whether a user can afford ``amount`` skulls"""
        return self.get_balance(user_id) >= amount

    @db_error_handler(StoreError)
    def credit(self, user_id, amount):
        """
        Add skulls to a user's balance

        Args:
            user_id: Discord user ID
            amount: Positive number of skulls

        Returns:
            int: New balance
        """
        _check_amount(amount)

        with self.engine.begin() as conn:
            new_balance = self._credit(conn, user_id, amount)

        logger.info(f"💀 Credited {amount} skulls to {user_id} (balance: {new_balance})")
        return new_balance

    @db_error_handler(StoreError)
    def debit(self, user_id, amount):
        """
        Remove skulls from a user's balance

        Args:
            user_id: Discord user ID
            amount: Positive number of skulls

        Returns:
            bool: True if debited, False if the balance was too low
        """
        _check_amount(amount)

        with self.engine.begin() as conn:
            debited = self._debit(conn, user_id, amount)

        if debited:
            logger.info(f"💀 Debited {amount} skulls from {user_id}")
        else:
            logger.info(f"Insufficient skulls: {user_id} cannot pay {amount}")
        return debited

    def transfer(self, from_user_id, to_user_id, amount):
        """
        Move skulls between two users in one transaction

        Either both the debit and the credit are committed or neither is.

        Args:
            from_user_id: Paying user
            to_user_id: Receiving user
            amount: Positive number of skulls

        Returns:
            bool: True if transferred, False on insufficient funds or store failure
        """
        _check_amount(amount)

        if str(from_user_id) == str(to_user_id):
            logger.warning(f"Rejected self-transfer of {amount} skulls by {from_user_id}")
            return False

        try:
            with self.engine.begin() as conn:
                if not self._debit(conn, from_user_id, amount):
                    logger.info(f"Transfer refused: {from_user_id} has fewer than {amount} skulls")
                    return False
                self._credit(conn, to_user_id, amount)

        except SQLAlchemyError as e:
            logger.error(f"Transfer error ({from_user_id} -> {to_user_id}, {amount}): {e}")
            return False

        logger.info(f"💀 Transferred {amount} skulls: {from_user_id} -> {to_user_id}")
        return True

    def _debit(self, conn, user_id, amount):
        # The balance check and the update are one statement, so concurrent
        # debits of the same account are serialized by the row lock.
        result = conn.execute(text("""
            UPDATE skulls
            SET balance = balance - :amount,
                updated_at = CURRENT_TIMESTAMP
            WHERE user_id = :user_id AND balance >= :amount
        """), {'user_id': str(user_id), 'amount': amount})
        return result.rowcount == 1

    def _credit(self, conn, user_id, amount):
        result = conn.execute(text("""
            INSERT INTO skulls (user_id, balance, updated_at)
            VALUES (:user_id, :amount, CURRENT_TIMESTAMP)
            ON CONFLICT (user_id)
            DO UPDATE SET
                balance = skulls.balance + excluded.balance,
                updated_at = CURRENT_TIMESTAMP
            RETURNING balance
        """), {'user_id': str(user_id), 'amount': amount})
        return int(result.scalar())


def _check_amount(amount):
    if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
        raise ValidationError(f"Amount must be a positive integer (got {amount!r})")
