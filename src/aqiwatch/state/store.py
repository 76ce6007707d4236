"""SQLite-backed store for sessions, readings and subscriptions.

This is the only component allowed to read or mutate the three relations.
All methods are blocking; async callers run them through ``asyncio.to_thread``.
"""

from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
import threading
from collections.abc import Iterable, Iterator
from datetime import datetime

from aqiwatch.exceptions import PersistenceError
from aqiwatch.models.reading import AirQualityIndex, Location, Reading
from aqiwatch.models.subscription import ChatSession, Subscription

_logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS chat_session (
    chat_id     INTEGER PRIMARY KEY,
    user_id     INTEGER NOT NULL,
    language    VARCHAR(64),
    latitude    REAL NOT NULL,
    longitude   REAL NOT NULL,
    updated_at  REAL NOT NULL
);

CREATE TABLE IF NOT EXISTS reading (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    chat_id     INTEGER NOT NULL REFERENCES chat_session(chat_id),
    observed_at REAL NOT NULL,
    aqi         INTEGER NOT NULL CHECK (aqi BETWEEN 1 AND 5),
    components  JSON NOT NULL
);
CREATE INDEX IF NOT EXISTS reading_chat_observed ON reading (chat_id, observed_at);

CREATE TABLE IF NOT EXISTS subscription (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    chat_id     INTEGER NOT NULL,
    language    VARCHAR(64),
    latitude    REAL NOT NULL,
    longitude   REAL NOT NULL,
    aqi         INTEGER NOT NULL CHECK (aqi BETWEEN 1 AND 5),
    enabled     INTEGER NOT NULL DEFAULT 1,
    created_at  REAL NOT NULL
);
CREATE INDEX IF NOT EXISTS subscription_chat_enabled ON subscription (chat_id, enabled);
"""

_SUBSCRIPTION_COLUMNS = "id, chat_id, language, latitude, longitude, aqi, enabled, created_at"


def _row_to_reading(row: sqlite3.Row) -> Reading:
    return Reading(
        id=row["id"],
        chat_id=row["chat_id"],
        observed_at=row["observed_at"],
        aqi=row["aqi"],
        components=json.loads(row["components"]),
    )


def _row_to_subscription(row: sqlite3.Row) -> Subscription:
    return Subscription(
        id=row["id"],
        chat_id=row["chat_id"],
        language_code=row["language"] or "",
        location=Location(latitude=row["latitude"], longitude=row["longitude"]),
        last_known_aqi=row["aqi"],
        enabled=bool(row["enabled"]),
        created_at=row["created_at"],
    )


class Store:
    """Persistent store.

    One connection is shared between threads. Writes are serialized by a
    lock and each one runs in its own transaction; with WAL enabled other
    processes can keep reading while a write is in flight.

    Usage::

        store = Store("./aqiwatch.db")
        store.init_schema()
    """

    def __init__(self, db_path: str, *, busy_timeout_ms: int = 5000) -> None:
        self._db_path = db_path
        self._lock = threading.RLock()
        try:
            self._conn = sqlite3.connect(db_path, check_same_thread=False, timeout=busy_timeout_ms / 1000)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
            self._conn.execute(f"PRAGMA busy_timeout = {int(busy_timeout_ms)}")
            try:
                self._conn.execute("PRAGMA journal_mode = WAL")
            except sqlite3.OperationalError:
                # Not every filesystem supports WAL; keep the default journal.
                _logger.debug("WAL unavailable for %s", db_path)
        except sqlite3.Error as exc:
            raise PersistenceError(f"cannot open database {db_path}: {exc}") from exc

    @contextlib.contextmanager
    def _tx(self, op: str) -> Iterator[sqlite3.Connection]:
        """Serialize, run in a transaction, and map driver errors."""
        with self._lock:
            try:
                with self._conn:
                    yield self._conn
            except sqlite3.Error as exc:
                raise PersistenceError(f"{op}: {exc}") from exc

    def init_schema(self) -> None:
        """Create tables if missing. Raises :class:`PersistenceError` on failure."""
        with self._lock:
            try:
                self._conn.executescript(_SCHEMA)
            except sqlite3.Error as exc:
                raise PersistenceError(f"init_schema: {exc}") from exc
        _logger.debug("Schema ready at %s", self._db_path)

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def upsert_session(self, session: ChatSession) -> None:
        """Replace the chat's session row as a whole."""
        with self._tx("upsert_session") as conn:
            conn.execute(
                "INSERT INTO chat_session (chat_id, user_id, language, latitude, longitude, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?) "
                "ON CONFLICT(chat_id) DO UPDATE SET "
                "user_id=excluded.user_id, language=excluded.language, latitude=excluded.latitude, "
                "longitude=excluded.longitude, updated_at=excluded.updated_at",
                (
                    session.chat_id,
                    session.user_id,
                    session.language_code,
                    session.location.latitude,
                    session.location.longitude,
                    session.updated_at.timestamp(),
                ),
            )

    def get_session(self, chat_id: int) -> ChatSession | None:
        with self._tx("get_session") as conn:
            row = conn.execute(
                "SELECT chat_id, user_id, language, latitude, longitude, updated_at FROM chat_session WHERE chat_id=?",
                (chat_id,),
            ).fetchone()
        if row is None:
            return None
        return ChatSession(
            chat_id=row["chat_id"],
            user_id=row["user_id"],
            language_code=row["language"] or "",
            location=Location(latitude=row["latitude"], longitude=row["longitude"]),
            updated_at=row["updated_at"],
        )

    # ------------------------------------------------------------------
    # Readings
    # ------------------------------------------------------------------

    def add_readings(self, chat_id: int, readings: Iterable[Reading]) -> int:
        """Append readings for *chat_id* in one transaction. Returns rows written."""
        rows = [
            (chat_id, reading.observed_at.timestamp(), int(reading.aqi), json.dumps(reading.components))
            for reading in readings
        ]
        if not rows:
            return 0
        with self._tx("add_readings") as conn:
            conn.executemany(
                "INSERT INTO reading (chat_id, observed_at, aqi, components) VALUES (?, ?, ?, ?)",
                rows,
            )
        return len(rows)

    def latest_reading(self, chat_id: int) -> Reading | None:
        """Most recent reading by observation time; newest row wins ties."""
        with self._tx("latest_reading") as conn:
            row = conn.execute(
                "SELECT id, chat_id, observed_at, aqi, components FROM reading "
                "WHERE chat_id=? ORDER BY observed_at DESC, id DESC LIMIT 1",
                (chat_id,),
            ).fetchone()
        return _row_to_reading(row) if row is not None else None

    def list_readings(self, chat_id: int) -> list[Reading]:
        """All retained readings for *chat_id*, oldest first."""
        with self._tx("list_readings") as conn:
            rows = conn.execute(
                "SELECT id, chat_id, observed_at, aqi, components FROM reading "
                "WHERE chat_id=? ORDER BY observed_at, id",
                (chat_id,),
            ).fetchall()
        return [_row_to_reading(row) for row in rows]

    def delete_readings_before(self, cutoff: datetime) -> int:
        """Delete readings observed before *cutoff*, keeping each chat's latest."""
        with self._tx("delete_readings_before") as conn:
            cursor = conn.execute(
                "DELETE FROM reading WHERE observed_at < ? AND id NOT IN ("
                "  SELECT (SELECT r.id FROM reading r WHERE r.chat_id = c.chat_id "
                "          ORDER BY r.observed_at DESC, r.id DESC LIMIT 1) "
                "  FROM (SELECT DISTINCT chat_id FROM reading) c"
                ")",
                (cutoff.timestamp(),),
            )
        return cursor.rowcount

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def insert_subscription(
        self,
        *,
        chat_id: int,
        language_code: str,
        location: Location,
        aqi: AirQualityIndex,
        created_at: datetime,
    ) -> int:
        """Insert an enabled subscription and return its id."""
        with self._tx("insert_subscription") as conn:
            cursor = conn.execute(
                "INSERT INTO subscription (chat_id, language, latitude, longitude, aqi, enabled, created_at) "
                "VALUES (?, ?, ?, ?, ?, 1, ?)",
                (chat_id, language_code, location.latitude, location.longitude, int(aqi), created_at.timestamp()),
            )
        subscription_id = cursor.lastrowid
        if subscription_id is None:
            raise PersistenceError("insert_subscription: no row id returned")
        return subscription_id

    def list_enabled_subscriptions(self, chat_id: int | None = None) -> list[Subscription]:
        """Enabled subscriptions, for one chat or for all chats."""
        query = f"SELECT {_SUBSCRIPTION_COLUMNS} FROM subscription WHERE enabled=1"
        params: tuple[int, ...] = ()
        if chat_id is not None:
            query += " AND chat_id=?"
            params = (chat_id,)
        with self._tx("list_enabled_subscriptions") as conn:
            rows = conn.execute(query + " ORDER BY id", params).fetchall()
        return [_row_to_subscription(row) for row in rows]

    def list_all_subscriptions(self) -> list[Subscription]:
        """Every subscription row, enabled or not."""
        with self._tx("list_all_subscriptions") as conn:
            rows = conn.execute(f"SELECT {_SUBSCRIPTION_COLUMNS} FROM subscription ORDER BY id").fetchall()
        return [_row_to_subscription(row) for row in rows]

    def disable_subscriptions(self, chat_id: int) -> int:
        """Soft-delete every subscription of *chat_id*. Returns rows changed."""
        with self._tx("disable_subscriptions") as conn:
            cursor = conn.execute("UPDATE subscription SET enabled=0 WHERE chat_id=? AND enabled=1", (chat_id,))
        return cursor.rowcount

    def update_subscription_aqi(self, subscription_id: int, aqi: AirQualityIndex) -> None:
        with self._tx("update_subscription_aqi") as conn:
            conn.execute("UPDATE subscription SET aqi=? WHERE id=?", (int(aqi), subscription_id))

    def delete_disabled_subscriptions(self) -> int:
        """Hard-delete soft-deleted subscriptions. Returns rows removed."""
        with self._tx("delete_disabled_subscriptions") as conn:
            cursor = conn.execute("DELETE FROM subscription WHERE enabled=0")
        return cursor.rowcount
