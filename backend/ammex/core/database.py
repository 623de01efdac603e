"""
PostgreSQL access

This module centralizes all the ways the application talks to the database:
- SQLAlchemy declarative Base (schema declaration, see ammex.models)
- psycopg2 direct connections (raw SQL in repositories)
- transaction() for multi-statement units of work

Author: Ammex Dev Team
Date: 2025-03-02
"""
import logging
import time
from contextlib import contextmanager

import psycopg2
from psycopg2.extras import RealDictCursor
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base

from ammex.core.config import settings

logger = logging.getLogger(__name__)

CONNECTION_TIMEOUT = settings.CONNECTION_TIMEOUT


# ============================================================================
# SQLAlchemy Configuration (schema only)
# ============================================================================

engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    pool_size=5,
    max_overflow=10,
)

Base = declarative_base()


# ============================================================================
# psycopg2 Direct Connections (for raw SQL queries)
# ============================================================================

def _database_url() -> str:
    database_url = settings.DATABASE_URL
    if not database_url:
        raise RuntimeError("DATABASE_URL not configured")
    return database_url


def get_db_connection():
    """
    Plain psycopg2 connection, rows come back as tuples. Caller closes it.
    """
    return psycopg2.connect(_database_url(), connect_timeout=CONNECTION_TIMEOUT)


def get_db_connection_dict():
    """
    Get a database connection with RealDictCursor (returns dictionaries)

    Use this for repository queries, rows map directly onto domain models.
    """
    return psycopg2.connect(
        _database_url(),
        cursor_factory=RealDictCursor,
        connect_timeout=CONNECTION_TIMEOUT,
    )


def get_db_connection_with_retry(max_retries=3, retry_delay=1.0, dict_cursor=False):
    """
    Open a connection, backing off exponentially on OperationalError

    The health check calls this with a single attempt so a dead database
    reports "degraded" quickly instead of hanging the probe.

    Raises the last OperationalError once max_retries attempts have failed.
    """
    database_url = _database_url()
    last_error = None

    for attempt in range(1, max_retries + 1):
        try:
            logger.debug(f"Database connection attempt {attempt}/{max_retries}")
            if dict_cursor:
                conn = psycopg2.connect(database_url, cursor_factory=RealDictCursor,
                                        connect_timeout=CONNECTION_TIMEOUT)
            else:
                conn = psycopg2.connect(database_url, connect_timeout=CONNECTION_TIMEOUT)

            cursor = conn.cursor()
            cursor.execute("SELECT 1")
            cursor.close()
            return conn

        except psycopg2.OperationalError as e:
            last_error = e
            logger.warning(f"Connection error on attempt {attempt}/{max_retries}: {e}")

            if attempt < max_retries:
                delay = retry_delay * (2 ** (attempt - 1))
                logger.info(f"Retrying in {delay:.2f} seconds...")
                time.sleep(delay)
            else:
                logger.error(f"All {max_retries} connection attempts failed")
                raise

    raise last_error if last_error else RuntimeError("Connection failed after all retries")


@contextmanager
def transaction():
    """
    Unit of work over a single dict-cursor connection

    Commits when the block finishes, rolls back and re-raises on any error.

    Usage:
        with transaction() as conn:
            order = order_repo.create(data, conn=conn)
            cart_repo.remove_items(cart_id, ids, conn=conn)
    """
    conn = get_db_connection_with_retry(dict_cursor=True)
    try:
        yield conn
        conn.commit()
    except Exception:
        logger.warning("Transaction rolled back", exc_info=True)
        conn.rollback()
        raise
    finally:
        conn.close()
