"""
Database Schema Setup for Lottery System
Creates the lottery and skull ledger tables and indices
"""

from sqlalchemy import inspect, text
import logging

logger = logging.getLogger(__name__)

# SQL schema for lottery system (runs on PostgreSQL and SQLite)
LOTTERY_SCHEMA_SQL = """
-- ============================================
-- LOTTERY SYSTEM DATABASE SCHEMA
-- ============================================

-- Lotteries (records are never deleted, only marked ended)
CREATE TABLE IF NOT EXISTS lotteries (
    id TEXT PRIMARY KEY,
    prize TEXT NOT NULL,
    winner_count INTEGER NOT NULL,
    min_participants INTEGER NOT NULL,
    ticket_price INTEGER DEFAULT 0,
    max_tickets_per_user INTEGER DEFAULT 1,
    start_time BIGINT NOT NULL,
    end_time BIGINT NOT NULL,
    participants TEXT DEFAULT '{}',  -- JSON {user_id: ticket_count}
    total_tickets INTEGER DEFAULT 0,
    status VARCHAR(20) DEFAULT 'active',  -- active, ended
    winner_list TEXT DEFAULT '[]',  -- JSON [user_id, ...]
    winner_announced BOOLEAN DEFAULT FALSE,
    is_manual_draw BOOLEAN DEFAULT FALSE,
    channel_id TEXT,
    message_id TEXT,
    guild_id TEXT,
    created_by TEXT,
    terms TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

-- Skull balances (virtual currency used to buy tickets)
CREATE TABLE IF NOT EXISTS skulls (
    user_id TEXT PRIMARY KEY,
    balance BIGINT NOT NULL DEFAULT 0 CHECK (balance >= 0),
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

-- ============================================
-- INDICES FOR PERFORMANCE
-- ============================================

CREATE INDEX IF NOT EXISTS idx_lotteries_status ON lotteries(status);
CREATE INDEX IF NOT EXISTS idx_lotteries_end_time ON lotteries(end_time);
CREATE INDEX IF NOT EXISTS idx_lotteries_guild ON lotteries(guild_id);
"""

REQUIRED_TABLES = ['lotteries', 'skulls']


def setup_lottery_database(engine):
    """
    Create all lottery system tables and indices

    Args:
        engine: SQLAlchemy engine instance

    Returns:
        bool: True if successful, False otherwise
    """
    try:
        logger.info("Setting up lottery system database schema...")

        with engine.begin() as conn:
            # SQLite can only execute one statement at a time
            statements = []
            current_statement = []

            for line in LOTTERY_SCHEMA_SQL.split('\n'):
                stripped = line.strip()
                if not stripped or stripped.startswith('--'):
                    continue

                current_statement.append(line)

                if stripped.endswith(';'):
                    statements.append('\n'.join(current_statement))
                    current_statement = []

            for statement in statements:
                conn.execute(text(statement))

        logger.info("✅ Lottery database schema created successfully")
        return True

    except Exception as e:
        logger.error(f"❌ Failed to setup lottery database: {e}")
        return False


def verify_lottery_schema(engine):
    """
    Verify that all required tables exist

    Args:
        engine: SQLAlchemy engine instance

    Returns:
        dict: Status of each table (True/False)
    """
    status = {table: False for table in REQUIRED_TABLES}

    try:
        existing = set(inspect(engine).get_table_names())
        for table in REQUIRED_TABLES:
            status[table] = table in existing
    except Exception as e:
        logger.error(f"Failed to verify schema: {e}")

    return status
