from __future__ import annotations
import asyncio
import sqlite3
from contextlib import asynccontextmanager
from datetime import date, tzinfo
from functools import wraps

import aiosqlite

from .errors import StoreError
from .models import DailySmokingSummary, SmokingLog, SmokingType, User
from .utility import day_bounds, now_ts

DEFAULT_SMOKING_TYPES = (
    ("traditional", "紙タバコ"),
    ("iqos", "IQOS"),
)


def _serialized(fn):
    """Run a public gateway operation under the database lock.

    Any sqlite failure is rolled back and re-raised as StoreError.
    """
    @wraps(fn)
    async def wrapper(self: "Database", *args, **kwargs):
        async with self._lock:
            try:
                return await fn(self, *args, **kwargs)
            except sqlite3.Error as e:
                if self.conn is not None and self.conn.in_transaction:
                    await self.conn.rollback()
                raise StoreError(f"{fn.__name__} failed: {e}") from e
    return wrapper


class Database:
    """Owns the single aiosqlite connection. Nothing else runs queries.

    A single connection cannot interleave transactions, so every public
    operation holds one asyncio.Lock for its whole duration.
    """

    def __init__(self, path: str, tz: tzinfo | None = None):
        self.path = path
        self.tz = tz
        self.conn: aiosqlite.Connection | None = None
        self._in_tx: bool = False
        self._lock = asyncio.Lock()

    async def connect(self):
        try:
            self.conn = await aiosqlite.connect(self.path)
            self.conn.row_factory = aiosqlite.Row
            if self.path != ":memory:":
                await self.conn.execute("PRAGMA journal_mode=WAL;")
            await self.conn.execute("PRAGMA foreign_keys=ON;")
            await self.conn.execute("PRAGMA synchronous=NORMAL;")
            await self.conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Could not open database {self.path!r}: {e}") from e

    async def close(self):
        if self.conn:
            await self.conn.close()
            self.conn = None

    # ------------------ low level ------------------

    async def execute(self, sql: str, params=(), commit: bool = True):
        """Execute SQL statement. If commit=False, don't commit (for use in transactions)."""
        assert self.conn
        cur = await self.conn.execute(sql, params)
        # Only commit if explicitly requested AND not inside a transaction
        if commit and not self._in_tx:
            await self.conn.commit()
        return cur

    async def fetchone(self, sql: str, params=()):
        assert self.conn
        cur = await self.conn.execute(sql, params)
        row = await cur.fetchone()
        await cur.close()
        return row

    async def fetchall(self, sql: str, params=()):
        assert self.conn
        cur = await self.conn.execute(sql, params)
        rows = await cur.fetchall()
        await cur.close()
        return rows

    @asynccontextmanager
    async def transaction(self):
        """Transaction context manager: BEGIN on enter, COMMIT on success, ROLLBACK on exception."""
        assert self.conn
        self._in_tx = True
        try:
            await self.conn.execute("BEGIN")
            yield self
            await self.conn.commit()
        except BaseException:
            await self.conn.rollback()
            raise
        finally:
            self._in_tx = False

    # ------------------ schema ------------------

    @_serialized
    async def migrate(self):
        """Create the schema if missing and seed the catalog when it is empty."""
        async with self.transaction():
            await self._migrate_tables()
            row = await self.fetchone("SELECT COUNT(*) AS n FROM smoking_types")
            if int(row["n"]) == 0:
                ts = now_ts()
                for type_name, description in DEFAULT_SMOKING_TYPES:
                    await self.execute(
                        "INSERT INTO smoking_types(type_name, description, created_at) VALUES(?,?,?)",
                        (type_name, description, ts),
                    )

    async def _migrate_tables(self):
        await self.execute("""
        CREATE TABLE IF NOT EXISTS users (
          discord_id TEXT PRIMARY KEY,
          username   TEXT NOT NULL,
          created_at INTEGER NOT NULL DEFAULT (CAST(strftime('%s','now') AS INTEGER)),
          updated_at INTEGER NOT NULL DEFAULT (CAST(strftime('%s','now') AS INTEGER))
        );
        """)

        await self.execute("""
        CREATE TABLE IF NOT EXISTS smoking_types (
          id          INTEGER PRIMARY KEY AUTOINCREMENT,
          type_name   TEXT NOT NULL,
          description TEXT,
          created_at  INTEGER NOT NULL DEFAULT (CAST(strftime('%s','now') AS INTEGER))
        );
        """)

        await self.execute("""
        CREATE TABLE IF NOT EXISTS smoking_logs (
          id              INTEGER PRIMARY KEY AUTOINCREMENT,
          discord_id      TEXT NOT NULL REFERENCES users(discord_id),
          smoking_type_id INTEGER NOT NULL REFERENCES smoking_types(id),
          quantity        INTEGER NOT NULL CHECK (quantity > 0),
          smoked_at       INTEGER NOT NULL DEFAULT (CAST(strftime('%s','now') AS INTEGER)),
          created_at      INTEGER NOT NULL DEFAULT (CAST(strftime('%s','now') AS INTEGER)),
          updated_at      INTEGER NOT NULL DEFAULT (CAST(strftime('%s','now') AS INTEGER))
        );
        """)

        await self.execute("CREATE INDEX IF NOT EXISTS idx_smoking_logs_discord_id ON smoking_logs(discord_id);")
        await self.execute("CREATE INDEX IF NOT EXISTS idx_smoking_logs_smoked_at ON smoking_logs(smoked_at);")

        # UTC days; the bot itself summarises by local day through get_daily_summary.
        await self.execute("""
        CREATE VIEW IF NOT EXISTS daily_smoking_summary AS
        SELECT
          sl.discord_id,
          u.username,
          DATE(sl.smoked_at, 'unixepoch') AS smoke_date,
          st.type_name,
          SUM(sl.quantity) AS total_quantity
        FROM smoking_logs sl
        JOIN users u ON sl.discord_id = u.discord_id
        JOIN smoking_types st ON sl.smoking_type_id = st.id
        GROUP BY sl.discord_id, u.username, DATE(sl.smoked_at, 'unixepoch'), st.type_name;
        """)

    # ------------------ users ------------------

    @_serialized
    async def create_user(self, discord_id: str, username: str) -> User:
        ts = now_ts()
        await self.execute(
            "INSERT INTO users(discord_id, username, created_at, updated_at) VALUES(?,?,?,?)",
            (discord_id, username, ts, ts),
        )
        return User(discord_id, username, ts, ts)

    @_serialized
    async def get_or_create_user(self, discord_id: str, username: str) -> User:
        """Look up a user, creating it or refreshing its name in one transaction.

        At most one write happens: an INSERT for a new user, an UPDATE when
        the stored name differs, nothing otherwise.
        """
        async with self.transaction():
            row = await self.fetchone(
                "SELECT discord_id, username, created_at, updated_at FROM users WHERE discord_id=?",
                (discord_id,),
            )
            ts = now_ts()
            if row is None:
                await self.execute(
                    "INSERT INTO users(discord_id, username, created_at, updated_at) VALUES(?,?,?,?)",
                    (discord_id, username, ts, ts),
                )
                return User(discord_id, username, ts, ts)

            user = User.from_row(row)
            if user.username != username:
                await self.execute(
                    "UPDATE users SET username=?, updated_at=? WHERE discord_id=?",
                    (username, ts, discord_id),
                )
                user.username = username
                user.updated_at = ts
            return user

    @_serialized
    async def user_exists(self, discord_id: str) -> bool:
        row = await self.fetchone(
            "SELECT EXISTS(SELECT 1 FROM users WHERE discord_id=?) AS found", (discord_id,)
        )
        return bool(row["found"])

    # ------------------ logs ------------------

    @_serialized
    async def log_smoking(
        self,
        discord_id: str,
        smoking_type_id: int,
        quantity: int,
        smoked_at: int | None = None,
    ) -> SmokingLog:
        """Insert one immutable log row. smoked_at defaults to now."""
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValueError(f"quantity must be a positive integer, got {quantity!r}")
        ts = now_ts()
        if smoked_at is None:
            smoked_at = ts
        cur = await self.execute(
            """INSERT INTO smoking_logs(discord_id, smoking_type_id, quantity, smoked_at, created_at, updated_at)
               VALUES(?,?,?,?,?,?)""",
            (discord_id, smoking_type_id, quantity, smoked_at, ts, ts),
        )
        return SmokingLog(cur.lastrowid, discord_id, smoking_type_id, quantity, smoked_at, ts, ts)

    @_serialized
    async def get_daily_summary(self, discord_id: str, day: date) -> list[DailySmokingSummary]:
        """Per-type totals for `day` in this database's time zone.

        Types with no logs that day are absent. Ordered by type id.
        """
        start, end = day_bounds(day, self.tz)
        rows = await self.fetchall(
            """
            SELECT
              sl.discord_id,
              u.username,
              st.id AS smoking_type_id,
              st.type_name,
              COALESCE(st.description, st.type_name) AS description,
              SUM(sl.quantity) AS total_quantity
            FROM smoking_logs sl
            JOIN users u ON sl.discord_id = u.discord_id
            JOIN smoking_types st ON sl.smoking_type_id = st.id
            WHERE sl.discord_id=? AND sl.smoked_at >= ? AND sl.smoked_at < ?
            GROUP BY sl.discord_id, u.username, st.id, st.type_name, st.description
            HAVING SUM(sl.quantity) > 0
            ORDER BY st.id
            """,
            (discord_id, start, end),
        )
        return [
            DailySmokingSummary(
                discord_id=str(r["discord_id"]),
                username=r["username"],
                smoke_date=day,
                smoking_type_id=int(r["smoking_type_id"]),
                type_name=r["type_name"],
                description=r["description"],
                total_quantity=int(r["total_quantity"]),
            )
            for r in rows
        ]

    # ------------------ catalog ------------------

    @_serialized
    async def get_smoking_types(self) -> list[SmokingType]:
        rows = await self.fetchall(
            "SELECT id, type_name, description, created_at FROM smoking_types ORDER BY id"
        )
        return [SmokingType.from_row(r) for r in rows]

    @_serialized
    async def get_smoking_type(self, type_id: int) -> SmokingType:
        row = await self.fetchone(
            "SELECT id, type_name, description, created_at FROM smoking_types WHERE id=?",
            (type_id,),
        )
        if row is None:
            raise StoreError(f"No smoking type with id {type_id}")
        return SmokingType.from_row(row)

    @_serialized
    async def smoking_type_exists(self, type_id: int) -> bool:
        row = await self.fetchone(
            "SELECT EXISTS(SELECT 1 FROM smoking_types WHERE id=?) AS found", (type_id,)
        )
        return bool(row["found"])
