"""Price cache for dividend_reinvest.

Provides a thin wrapper around SQLite that remembers the last quote fetched
for each symbol so repeated runs over the same report do not hit Yahoo
Finance again until the quote is older than the caller's ``max_age``.
"""

import logging
import os
import sqlite3
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

from .models import PriceQuote

logger = logging.getLogger(__name__)

DB_ENV = "DIVIDEND_REINVEST_DB"
DB_PATH = Path(os.environ.get(DB_ENV, Path.home() / ".dividend_reinvest.db"))

SCHEMA = """
CREATE TABLE IF NOT EXISTS quotes (
    symbol TEXT PRIMARY KEY,
    price REAL NOT NULL,
    exchange TEXT,
    fetched_at TEXT NOT NULL
);
"""


def get_connection() -> sqlite3.Connection:
    """Return a connection to the cache database, creating the schema if needed."""
    try:
        conn = sqlite3.connect(str(DB_PATH))
    except sqlite3.OperationalError as e:
        logger.error("Error opening price cache at %s: %s", DB_PATH, e)
        raise
    conn.row_factory = sqlite3.Row
    conn.executescript(SCHEMA)
    return conn


def get_cached_quote(symbol: str, max_age: timedelta,
                     now: Optional[datetime] = None) -> Optional[PriceQuote]:
    """Return the cached quote for ``symbol`` if it is younger than ``max_age``."""
    now = now or datetime.now(timezone.utc)
    conn = get_connection()
    try:
        row = conn.execute(
            "SELECT price, exchange, fetched_at FROM quotes WHERE symbol = ?",
            (symbol,),
        ).fetchone()
        if row is None:
            return None
        if datetime.fromisoformat(row["fetched_at"]) < now - max_age:
            conn.execute("DELETE FROM quotes WHERE symbol = ?", (symbol,))
            conn.commit()
            return None
        return PriceQuote(symbol=symbol, price=row["price"], exchange=row["exchange"])
    finally:
        conn.close()


def store_quote(quote: PriceQuote, fetched_at: Optional[datetime] = None) -> None:
    """Insert or replace the cached quote for ``quote.symbol``."""
    fetched_at = fetched_at or datetime.now(timezone.utc)
    conn = get_connection()
    try:
        conn.execute(
            "INSERT OR REPLACE INTO quotes (symbol, price, exchange, fetched_at) VALUES (?,?,?,?)",
            (quote.symbol, quote.price, quote.exchange, fetched_at.isoformat()),
        )
        conn.commit()
    finally:
        conn.close()


def clear_cache() -> int:
    """Delete every cached quote and return how many were removed."""
    conn = get_connection()
    try:
        cur = conn.execute("DELETE FROM quotes")
        conn.commit()
        return cur.rowcount
    finally:
        conn.close()
