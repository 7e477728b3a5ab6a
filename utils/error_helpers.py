"""
Error handling helpers and decorators
Reduces repetitive try/except patterns around store calls and background jobs
"""

from functools import wraps
import logging

from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


def db_error_handler(error_class):
    """
    Decorator factory for database operations
    Logs SQLAlchemy failures and re-raises them as ``error_class``

    Usage:
        @db_error_handler(StoreError)
        def insert(self, lottery):
            # Database operations here
            ...
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except SQLAlchemyError as e:
                logger.error(f"Database error in {func.__name__}: {e}", exc_info=True)
                raise error_class(f"{func.__name__} failed: {e}") from e
        return wrapper
    return decorator


class log_exceptions:
    """
    Context manager that logs exceptions with custom context

    Background jobs pass suppress=True so one failing lottery never takes
    down the scheduler.

    Usage:
        with log_exceptions("refreshing lottery", suppress=True, lottery_id=lottery.id):
            ...
    """
    def __init__(self, operation, suppress=False, **context):
        self.operation = operation
        self.suppress = suppress
        self.context = context
        self.error = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            return False
        if not issubclass(exc_type, Exception):
            # CancelledError / KeyboardInterrupt always propagate
            return False
        self.error = exc_val
        context_str = ', '.join(f"{k}={v}" for k, v in self.context.items())
        logger.error(f"Error during {self.operation} [{context_str}]: {exc_val}", exc_info=True)
        return self.suppress
