"""Database operations for the arbitrage alert bot."""

import sqlite3
from typing import Any, Dict, Iterable, List, Optional
from pathlib import Path
from loguru import logger

from ..core.types import TopCoin
from .models import UserProfile

# Columns of the users table that may be written by a single-field update
USER_FIELDS = ("min_profit", "min_volume", "target_currency", "use_top_n", "paused")
SET_TABLES = {"watchlist": "user_watchlist", "blacklist": "user_blacklist"}


class StorageError(Exception):
    """Raised when a store operation fails."""


class Database:
    """SQLite database interface."""

    def __init__(self, db_path: str):
        self.db_path = Path(db_path)
        self.connection: Optional[sqlite3.Connection] = None

    async def connect(self):
        """Connect to database."""
        try:
            self.connection = sqlite3.connect(self.db_path)
            self.connection.row_factory = sqlite3.Row
            await self._create_tables()
            logger.info(f"Connected to database: {self.db_path}")
        except sqlite3.Error as e:
            logger.error(f"Failed to connect to database: {e}")
            raise StorageError(f"Cannot open database {self.db_path}: {e}") from e

    async def disconnect(self):
        """Disconnect from database."""
        if self.connection:
            self.connection.close()
            self.connection = None
            logger.info("Disconnected from database")

    async def _create_tables(self):
        """Create database tables if they don't exist."""
        with self.connection:
            self.connection.execute("""
                CREATE TABLE IF NOT EXISTS users (
                    user_id INTEGER PRIMARY KEY,
                    min_profit REAL,
                    min_volume REAL,
                    target_currency TEXT NOT NULL DEFAULT 'USDT',
                    use_top_n INTEGER NOT NULL DEFAULT 0,
                    paused INTEGER NOT NULL DEFAULT 0
                )
            """)

            for table in SET_TABLES.values():
                self.connection.execute(f"""
                    CREATE TABLE IF NOT EXISTS {table} (
                        user_id INTEGER NOT NULL,
                        coin_id TEXT NOT NULL,
                        UNIQUE (user_id, coin_id)
                    )
                """)

            self.connection.execute("""
                CREATE TABLE IF NOT EXISTS top_coins (
                    rank INTEGER PRIMARY KEY,
                    id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    symbol TEXT NOT NULL,
                    market_cap REAL,
                    last_updated TEXT
                )
            """)

        logger.info("Database tables created/verified")

    def _require_connection(self) -> sqlite3.Connection:
        if not self.connection:
            raise StorageError("Database not connected")
        return self.connection

    async def insert_user(self, profile: UserProfile) -> bool:
        """Insert a user row; returns False when the user already exists."""
        conn = self._require_connection()
        try:
            with conn:
                cursor = conn.execute(
                    """
                    INSERT OR IGNORE INTO users (user_id, min_profit, min_volume, target_currency, use_top_n, paused)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        profile.user_id,
                        profile.min_profit,
                        profile.min_volume,
                        profile.target_currency,
                        int(profile.use_top_n),
                        int(profile.paused),
                    ),
                )
            return cursor.rowcount > 0
        except sqlite3.Error as e:
            logger.error(f"Failed to insert user {profile.user_id}: {e}")
            raise StorageError(str(e)) from e

    async def fetch_user(self, user_id: int) -> Optional[UserProfile]:
        """Fetch a single user profile."""
        conn = self._require_connection()
        try:
            row = conn.execute("SELECT * FROM users WHERE user_id = ?", (user_id,)).fetchone()
            if row is None:
                return None
            return self._row_to_profile(row)
        except sqlite3.Error as e:
            logger.error(f"Failed to fetch user {user_id}: {e}")
            raise StorageError(str(e)) from e

    async def fetch_users(self) -> List[UserProfile]:
        """Fetch all user profiles."""
        conn = self._require_connection()
        try:
            rows = conn.execute("SELECT * FROM users ORDER BY user_id").fetchall()
            return [self._row_to_profile(row) for row in rows]
        except sqlite3.Error as e:
            logger.error(f"Failed to fetch users: {e}")
            raise StorageError(str(e)) from e

    async def fetch_paused(self, user_id: int) -> Optional[bool]:
        """Fetch only the pause flag of a user."""
        conn = self._require_connection()
        try:
            row = conn.execute("SELECT paused FROM users WHERE user_id = ?", (user_id,)).fetchone()
            return None if row is None else bool(row["paused"])
        except sqlite3.Error as e:
            raise StorageError(str(e)) from e

    async def update_user_field(self, user_id: int, field: str, value: Any):
        """Upsert a single column of a user row."""
        if field not in USER_FIELDS:
            raise ValueError(f"Unknown user field: {field}")
        if isinstance(value, bool):
            value = int(value)

        conn = self._require_connection()
        try:
            with conn:
                conn.execute(
                    f"""
                    INSERT INTO users (user_id, {field}) VALUES (?, ?)
                    ON CONFLICT(user_id) DO UPDATE SET {field} = excluded.{field}
                    """,
                    (user_id, value),
                )
        except sqlite3.Error as e:
            logger.error(f"Failed to update {field} for user {user_id}: {e}")
            raise StorageError(str(e)) from e

    async def add_to_set(self, name: str, user_id: int, coin_id: str) -> bool:
        """Add coin_id to a user set; returns False when it was already present."""
        table = SET_TABLES[name]
        conn = self._require_connection()
        try:
            with conn:
                conn.execute("INSERT OR IGNORE INTO users (user_id) VALUES (?)", (user_id,))
                cursor = conn.execute(
                    f"INSERT OR IGNORE INTO {table} (user_id, coin_id) VALUES (?, ?)",
                    (user_id, coin_id),
                )
            return cursor.rowcount > 0
        except sqlite3.Error as e:
            logger.error(f"Failed to add {coin_id} to {name} of user {user_id}: {e}")
            raise StorageError(str(e)) from e

    async def remove_from_set(self, name: str, user_id: int, coin_id: str) -> bool:
        """Remove coin_id from a user set; returns False when it was not present."""
        table = SET_TABLES[name]
        conn = self._require_connection()
        try:
            with conn:
                cursor = conn.execute(
                    f"DELETE FROM {table} WHERE user_id = ? AND coin_id = ?",
                    (user_id, coin_id),
                )
            return cursor.rowcount > 0
        except sqlite3.Error as e:
            logger.error(f"Failed to remove {coin_id} from {name} of user {user_id}: {e}")
            raise StorageError(str(e)) from e

    async def fetch_top_coins(self) -> List[TopCoin]:
        """Fetch the ranked top coin snapshot."""
        conn = self._require_connection()
        try:
            rows = conn.execute("SELECT * FROM top_coins ORDER BY rank").fetchall()
            return [
                TopCoin(
                    id=row["id"],
                    name=row["name"],
                    symbol=row["symbol"],
                    market_cap=row["market_cap"],
                    last_updated=row["last_updated"],
                )
                for row in rows
            ]
        except sqlite3.Error as e:
            logger.error(f"Failed to fetch top coins: {e}")
            raise StorageError(str(e)) from e

    async def replace_top_coins(self, coins: Iterable[TopCoin]) -> int:
        """Swap the top coin snapshot for a new one in a single transaction."""
        rows = [
            (rank, coin.id, coin.name, coin.symbol, coin.market_cap, coin.last_updated)
            for rank, coin in enumerate(coins, start=1)
        ]
        conn = self._require_connection()
        try:
            # No await inside the transaction: readers see the old or the new snapshot
            with conn:
                conn.execute("DELETE FROM top_coins")
                conn.executemany(
                    """
                    INSERT INTO top_coins (rank, id, name, symbol, market_cap, last_updated)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    rows,
                )
            return len(rows)
        except sqlite3.Error as e:
            logger.error(f"Failed to replace top coins: {e}")
            raise StorageError(str(e)) from e

    def _fetch_set(self, name: str, user_id: int) -> List[str]:
        rows = self.connection.execute(
            f"SELECT coin_id FROM {SET_TABLES[name]} WHERE user_id = ? ORDER BY rowid",
            (user_id,),
        ).fetchall()
        return [row["coin_id"] for row in rows]

    def _row_to_profile(self, row: sqlite3.Row) -> UserProfile:
        user_id = row["user_id"]
        return UserProfile(
            user_id=user_id,
            watchlist=self._fetch_set("watchlist", user_id),
            blacklist=self._fetch_set("blacklist", user_id),
            min_profit=row["min_profit"],
            min_volume=row["min_volume"],
            target_currency=row["target_currency"],
            use_top_n=bool(row["use_top_n"]),
            paused=bool(row["paused"]),
        )

    async def get_stats(self) -> Dict[str, int]:
        """Row counts used by the CLI summary."""
        conn = self._require_connection()
        try:
            return {
                "users": conn.execute("SELECT COUNT(*) FROM users").fetchone()[0],
                "paused": conn.execute("SELECT COUNT(*) FROM users WHERE paused = 1").fetchone()[0],
                "top_n": conn.execute("SELECT COUNT(*) FROM users WHERE use_top_n = 1").fetchone()[0],
                "top_coins": conn.execute("SELECT COUNT(*) FROM top_coins").fetchone()[0],
            }
        except sqlite3.Error as e:
            raise StorageError(str(e)) from e
