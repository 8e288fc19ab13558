"""
SQLite store for bookings and OTP challenges.

Records are kept as JSON documents next to the few columns used for lookups.
``commit`` writes any mix of bookings and challenges in a single transaction,
so a challenge is never consumed without the booking change it authorised.
"""

import asyncio
import logging
import sqlite3
from datetime import datetime
from typing import Callable, Iterable, List, Optional, TypeVar

from ...config import DatabaseConfig, get_settings
from ...core.enums import BookingStatus, ChallengeStatus, OtpPurpose
from ...core.exceptions import StorageError
from ...core.models import Booking, OtpChallenge

logger = logging.getLogger(__name__)

T = TypeVar("T")

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS bookings (
        id TEXT PRIMARY KEY,
        booking_number TEXT NOT NULL UNIQUE,
        booking_status TEXT NOT NULL,
        facility_id TEXT NOT NULL,
        created_at TEXT NOT NULL,
        doc TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS challenges (
        session_id TEXT PRIMARY KEY,
        booking_id TEXT NOT NULL,
        subject_ref TEXT NOT NULL,
        purpose TEXT NOT NULL,
        status TEXT NOT NULL,
        issued_at TEXT NOT NULL,
        doc TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS ix_challenges_subject ON challenges (subject_ref, purpose, status)",
    "CREATE INDEX IF NOT EXISTS ix_challenges_booking ON challenges (booking_id, status)",
    """
    CREATE TABLE IF NOT EXISTS sequences (
        name TEXT PRIMARY KEY,
        value INTEGER NOT NULL
    )
    """,
)


class SQLiteStore:
    """Persists bookings and challenges in a SQLite database."""

    def __init__(self, config: Optional[DatabaseConfig] = None):
        self.config = config or DatabaseConfig.from_settings(get_settings())
        self._ready = False
        self._init_lock = asyncio.Lock()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.config.path, timeout=self.config.timeout)

    async def _run(self, fn: Callable[[sqlite3.Connection], T]) -> T:
        """Run ``fn`` in a worker thread inside one transaction."""
        await self.initialize()

        def _call() -> T:
            conn = self._connect()
            try:
                with conn:
                    return fn(conn)
            finally:
                conn.close()

        try:
            return await asyncio.to_thread(_call)
        except sqlite3.Error as e:
            logger.error("Storage operation failed: %s", e)
            raise StorageError(f"Storage operation failed: {e}") from e

    async def initialize(self) -> None:
        """Ensure the schema exists."""
        if self._ready:
            return

        async with self._init_lock:
            if self._ready:
                return

            def _create() -> None:
                conn = self._connect()
                try:
                    with conn:
                        for statement in _SCHEMA:
                            conn.execute(statement)
                finally:
                    conn.close()

            try:
                await asyncio.to_thread(_create)
            except sqlite3.Error as e:
                raise StorageError(f"Could not initialise database: {e}") from e
            self._ready = True

    async def ping(self) -> None:
        """Round-trip a trivial query; raises StorageError when the database is unreachable."""
        await self._run(lambda conn: conn.execute("SELECT 1").fetchone())

    # -- bookings --------------------------------------------------------

    async def get_booking(self, booking_id: str) -> Optional[Booking]:
        def _fetch(conn: sqlite3.Connection) -> Optional[str]:
            row = conn.execute("SELECT doc FROM bookings WHERE id = ?", (booking_id,)).fetchone()
            return row[0] if row else None

        doc = await self._run(_fetch)
        return Booking.model_validate_json(doc) if doc else None

    async def get_booking_by_number(self, booking_number: str) -> Optional[Booking]:
        def _fetch(conn: sqlite3.Connection) -> Optional[str]:
            row = conn.execute(
                "SELECT doc FROM bookings WHERE booking_number = ?", (booking_number,)
            ).fetchone()
            return row[0] if row else None

        doc = await self._run(_fetch)
        return Booking.model_validate_json(doc) if doc else None

    async def list_bookings(
        self,
        status: Optional[BookingStatus] = None,
        facility_id: Optional[str] = None,
    ) -> List[Booking]:
        """All bookings, newest first, optionally narrowed by status and facility."""
        clauses, params = [], []
        if status is not None:
            clauses.append("booking_status = ?")
            params.append(status.value)
        if facility_id is not None:
            clauses.append("facility_id = ?")
            params.append(facility_id)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        def _fetch(conn: sqlite3.Connection) -> List[str]:
            rows = conn.execute(
                f"SELECT doc FROM bookings {where} ORDER BY created_at DESC, booking_number DESC",
                params,
            ).fetchall()
            return [r[0] for r in rows]

        return [Booking.model_validate_json(doc) for doc in await self._run(_fetch)]

    # -- challenges ------------------------------------------------------

    async def get_challenge(self, session_id: str) -> Optional[OtpChallenge]:
        def _fetch(conn: sqlite3.Connection) -> Optional[str]:
            row = conn.execute(
                "SELECT doc FROM challenges WHERE session_id = ?", (session_id,)
            ).fetchone()
            return row[0] if row else None

        doc = await self._run(_fetch)
        return OtpChallenge.model_validate_json(doc) if doc else None

    async def find_challenges(
        self,
        *,
        booking_id: Optional[str] = None,
        subject_ref: Optional[str] = None,
        purpose: Optional[OtpPurpose] = None,
        status: Optional[ChallengeStatus] = None,
    ) -> List[OtpChallenge]:
        clauses, params = [], []
        for column, value in (
            ("booking_id", booking_id),
            ("subject_ref", subject_ref),
            ("purpose", purpose.value if purpose else None),
            ("status", status.value if status else None),
        ):
            if value is not None:
                clauses.append(f"{column} = ?")
                params.append(value)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        def _fetch(conn: sqlite3.Connection) -> List[str]:
            rows = conn.execute(
                f"SELECT doc FROM challenges {where} ORDER BY issued_at, rowid", params
            ).fetchall()
            return [r[0] for r in rows]

        return [OtpChallenge.model_validate_json(doc) for doc in await self._run(_fetch)]

    async def delete_challenges(self, *, terminal_before: datetime) -> int:
        """Delete non-pending challenges issued before the cutoff."""

        def _delete(conn: sqlite3.Connection) -> int:
            cur = conn.execute(
                "DELETE FROM challenges WHERE status != ? AND issued_at < ?",
                (ChallengeStatus.PENDING.value, terminal_before.isoformat(timespec="microseconds")),
            )
            return cur.rowcount

        return await self._run(_delete)

    # -- writes ----------------------------------------------------------

    async def commit(
        self,
        bookings: Iterable[Booking] = (),
        challenges: Iterable[OtpChallenge] = (),
    ) -> None:
        """Upsert bookings and challenges atomically."""
        booking_rows = [
            (
                b.id,
                b.booking_number,
                b.booking_status.value,
                b.facility.id,
                b.created_at.isoformat(timespec="microseconds"),
                b.model_dump_json(),
            )
            for b in bookings
        ]
        challenge_rows = [
            (
                c.session_id,
                c.booking_id,
                c.subject_ref,
                c.purpose.value,
                c.status.value,
                c.issued_at.isoformat(timespec="microseconds"),
                c.model_dump_json(),
            )
            for c in challenges
        ]

        def _write(conn: sqlite3.Connection) -> None:
            conn.executemany(
                """
                INSERT INTO bookings (id, booking_number, booking_status, facility_id, created_at, doc)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    booking_status = excluded.booking_status,
                    facility_id = excluded.facility_id,
                    doc = excluded.doc
                """,
                booking_rows,
            )
            conn.executemany(
                """
                INSERT INTO challenges (session_id, booking_id, subject_ref, purpose, status, issued_at, doc)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(session_id) DO UPDATE SET
                    status = excluded.status,
                    doc = excluded.doc
                """,
                challenge_rows,
            )

        await self._run(_write)

    async def next_sequence(self, name: str) -> int:
        """Increment and return a named counter."""

        def _next(conn: sqlite3.Connection) -> int:
            conn.execute(
                """
                INSERT INTO sequences (name, value) VALUES (?, 1)
                ON CONFLICT(name) DO UPDATE SET value = value + 1
                """,
                (name,),
            )
            return conn.execute("SELECT value FROM sequences WHERE name = ?", (name,)).fetchone()[0]

        return await self._run(_next)
