"""
PostgreSQL repository adapter - Implements EventRepository protocol.

This module provides the PostgreSQL implementation of the domain's
repository port using psycopg3 with raw SQL.

Concurrency Design - Capacity Ledger:
-------------------------------------
Participants live in a child table keyed by event id. Every
capacity-affecting operation runs in a single transaction that:

1. **Locks the event row** with SELECT ... FOR UPDATE. All ledger
   operations on one event are serialized; different events never
   contend.

2. **Re-checks every precondition in the WHERE clause** of the write
   (available_slots > 0, status = 'pending', confirmed count below
   total_slots, no live duplicate). A write that matches zero rows is
   a lost race, reported as None/False rather than an exception.

3. **Commits the counter and the participant row together**. A failed
   second write rolls back the first, so available_slots always equals
   total_slots minus the confirmed count.

Expiry of pending records is evaluated with database time (NOW()).
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any

from psycopg import sql
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from src.domain.event import Event, Registration
from src.domain.ports import RegistrationStatus

logger = logging.getLogger(__name__)

_EVENT_COLUMNS = """
    id, title, description, date_time, total_slots, available_slots,
    owner_id, local, is_active, event_code, created_at
"""

_PARTICIPANT_COLUMNS = """
    id, event_id, name, email, phone, status, verification_code,
    verification_code_expires_at, registered_at, confirmed_at, verified_at
"""

# Confirmed, or pending with an unexpired code
_LIVE_PARTICIPANT = """
    (status = 'confirmed'
     OR (status = 'pending' AND verification_code_expires_at > NOW()))
"""

_DETAIL_COLUMNS = frozenset({"title", "description", "date_time", "local", "is_active"})


class PostgresEventRepository:
    """
    Implements EventRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize repository with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    def create(self, event: Event) -> Event:
        insert_sql = f"""
            INSERT INTO events (title, description, date_time, total_slots,
                                available_slots, owner_id, local, is_active, event_code)
            VALUES (%(title)s, %(description)s, %(date_time)s, %(total_slots)s,
                    %(available_slots)s, %(owner_id)s, %(local)s, %(is_active)s, %(event_code)s)
            RETURNING {_EVENT_COLUMNS}
        """
        params = {
            "title": event.title,
            "description": event.description,
            "date_time": event.date_time,
            "total_slots": event.total_slots,
            "available_slots": event.available_slots,
            "owner_id": event.owner_id,
            "local": event.local,
            "is_active": event.is_active,
            "event_code": event.event_code,
        }
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(insert_sql, params)
            row = cursor.fetchone()
            conn.commit()
        return self._to_event(row, [])

    def find_by_id(self, event_id: str) -> Event | None:
        events = self._select_events("WHERE id = %s", (event_id,))
        return events[0] if events else None

    def find_by_event_code(self, event_code: str) -> Event | None:
        events = self._select_events("WHERE event_code = %s", (event_code,))
        return events[0] if events else None

    def list_events(self, *, owner_id: str | None = None, active_only: bool = False) -> list[Event]:
        conditions = []
        params: list[Any] = []
        if owner_id is not None:
            conditions.append("owner_id = %s")
            params.append(owner_id)
        if active_only:
            conditions.append("is_active")
        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
        return self._select_events(where, tuple(params))

    def find_upcoming(self, start: datetime, end: datetime) -> list[Event]:
        return self._select_events(
            "WHERE is_active AND date_time >= %s AND date_time < %s", (start, end)
        )

    def update_details(self, event_id: str, changes: dict[str, Any]) -> Event | None:
        columns = [key for key in changes if key in _DETAIL_COLUMNS]
        if not columns:
            return self.find_by_id(event_id)

        update_sql = sql.SQL("UPDATE events SET {assignments} WHERE id = {event_id}").format(
            assignments=sql.SQL(", ").join(
                sql.SQL("{} = {}").format(sql.Identifier(column), sql.Placeholder(column))
                for column in columns
            ),
            event_id=sql.Placeholder("event_id"),
        )
        params = {column: changes[column] for column in columns}
        params["event_id"] = event_id

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(update_sql, params)
            updated = cursor.rowcount == 1
            conn.commit()
        return self.find_by_id(event_id) if updated else None

    def resize(self, event_id: str, total_slots: int) -> Event | None:
        """
        Change total_slots and recompute available_slots from the
        confirmed count, refusing to go below that count.
        """
        resize_sql = """
            UPDATE events
            SET total_slots = %(total)s,
                available_slots = %(total)s - confirmed.n
            FROM (
                SELECT COUNT(*) AS n FROM participants
                WHERE event_id = %(event_id)s AND status = 'confirmed'
            ) AS confirmed
            WHERE events.id = %(event_id)s AND confirmed.n <= %(total)s
        """
        with self._pool.connection() as conn, conn.cursor() as cursor:
            if not self._lock_event(cursor, event_id):
                conn.rollback()
                return None
            cursor.execute(resize_sql, {"total": total_slots, "event_id": event_id})
            resized = cursor.rowcount == 1
            conn.commit()

        if not resized:
            logger.info("Resize of event %s to %d rejected", event_id, total_slots)
            return None
        return self.find_by_id(event_id)

    def delete(self, event_id: str) -> bool:
        delete_sql = """
            DELETE FROM events
            WHERE id = %(event_id)s
              AND NOT EXISTS (
                  SELECT 1 FROM participants
                  WHERE event_id = %(event_id)s AND status = 'confirmed'
              )
        """
        with self._pool.connection() as conn, conn.cursor() as cursor:
            if not self._lock_event(cursor, event_id):
                conn.rollback()
                return False
            cursor.execute(delete_sql, {"event_id": event_id})
            deleted = cursor.rowcount == 1
            conn.commit()
            return deleted

    def add_participant(self, event_id: str, registration: Registration) -> Registration | None:
        """
        Atomically append a registration, consuming a slot only if CONFIRMED.

        Returns None (not an exception) when the event is missing, full,
        or already has a live registration with the same email or phone.
        """
        insert_sql = f"""
            INSERT INTO participants (event_id, name, email, phone, status,
                                      verification_code, verification_code_expires_at,
                                      registered_at, confirmed_at)
            SELECT %(event_id)s, %(name)s, %(email)s, %(phone)s, %(status)s,
                   %(code)s, %(expires_at)s, %(registered_at)s, %(confirmed_at)s
            WHERE NOT EXISTS (
                SELECT 1 FROM participants
                WHERE event_id = %(event_id)s
                  AND (LOWER(email) = %(email)s OR phone = %(phone)s)
                  AND {_LIVE_PARTICIPANT}
            )
            RETURNING {_PARTICIPANT_COLUMNS}
        """
        consume_sql = """
            UPDATE events
            SET available_slots = available_slots - 1
            WHERE id = %s AND available_slots > 0
        """
        params = {
            "event_id": event_id,
            "name": registration.name,
            "email": registration.email.lower(),
            "phone": registration.phone,
            "status": registration.status.value,
            "code": registration.verification_code,
            "expires_at": registration.verification_code_expires_at,
            "registered_at": registration.registered_at,
            "confirmed_at": registration.confirmed_at,
        }

        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            if not self._lock_event(cursor, event_id):
                conn.rollback()
                return None

            cursor.execute(insert_sql, params)
            row = cursor.fetchone()
            if row is None:
                conn.rollback()
                logger.info("Duplicate registration rejected for event %s", event_id)
                return None

            if registration.status is RegistrationStatus.CONFIRMED:
                cursor.execute(consume_sql, (event_id,))
                if cursor.rowcount != 1:
                    # Undo the insert: no slot was available
                    conn.rollback()
                    logger.info("Registration rejected for full event %s", event_id)
                    return None

            conn.commit()
        return self._to_registration(row)

    def confirm_participant(self, event_id: str, participant_id: str) -> bool:
        """
        Flip PENDING -> CONFIRMED and consume a slot in one transaction.

        The slot is consumed only while the confirmed count is still
        below total_slots; the event may have filled while this
        registration was pending.
        """
        consume_sql = """
            UPDATE events
            SET available_slots = available_slots - 1
            WHERE id = %(event_id)s
              AND available_slots > 0
              AND (SELECT COUNT(*) FROM participants
                   WHERE event_id = %(event_id)s AND status = 'confirmed') < total_slots
        """
        confirm_sql = """
            UPDATE participants
            SET status = 'confirmed', confirmed_at = NOW(), verified_at = NOW()
            WHERE id = %(participant_id)s
              AND event_id = %(event_id)s
              AND status = 'pending'
        """
        params = {"event_id": event_id, "participant_id": participant_id}

        with self._pool.connection() as conn, conn.cursor() as cursor:
            if not self._lock_event(cursor, event_id):
                conn.rollback()
                return False

            # Consume before flipping so the count excludes this record
            cursor.execute(consume_sql, params)
            if cursor.rowcount != 1:
                conn.rollback()
                logger.info(
                    "Confirmation of participant %s rejected for full event %s",
                    participant_id,
                    event_id,
                )
                return False

            cursor.execute(confirm_sql, params)
            if cursor.rowcount != 1:
                conn.rollback()
                return False

            conn.commit()
            return True

    def cancel_participant(self, event_id: str, participant_id: str) -> bool:
        """
        Flip PENDING/CONFIRMED -> CANCELLED, releasing a slot only if the
        record was CONFIRMED and never beyond total_slots.
        """
        current_sql = """
            SELECT status FROM participants
            WHERE id = %s AND event_id = %s AND status IN ('pending', 'confirmed')
        """
        cancel_sql = """
            UPDATE participants
            SET status = 'cancelled'
            WHERE id = %s AND event_id = %s AND status IN ('pending', 'confirmed')
        """
        release_sql = """
            UPDATE events
            SET available_slots = available_slots + 1
            WHERE id = %s AND available_slots < total_slots
        """

        with self._pool.connection() as conn, conn.cursor() as cursor:
            if not self._lock_event(cursor, event_id):
                conn.rollback()
                return False

            cursor.execute(current_sql, (participant_id, event_id))
            row = cursor.fetchone()
            if row is None:
                conn.rollback()
                return False

            cursor.execute(cancel_sql, (participant_id, event_id))
            if RegistrationStatus.normalize(row[0]) is RegistrationStatus.CONFIRMED:
                cursor.execute(release_sql, (event_id,))
            conn.commit()
            return True

    def find_participant_by_email(self, event_id: str, email: str) -> Registration | None:
        return self._find_live_participant("LOWER(email) = %s", event_id, email.strip().lower())

    def find_participant_by_phone(self, event_id: str, phone: str) -> Registration | None:
        return self._find_live_participant("phone = %s", event_id, phone.strip())

    def _find_live_participant(self, condition: str, event_id: str, value: str) -> Registration | None:
        select_sql = f"""
            SELECT {_PARTICIPANT_COLUMNS} FROM participants
            WHERE event_id = %s AND {condition} AND {_LIVE_PARTICIPANT}
            ORDER BY seq
            LIMIT 1
        """
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(select_sql, (event_id, value))
            row = cursor.fetchone()
        return self._to_registration(row) if row is not None else None

    @staticmethod
    def _lock_event(cursor, event_id: str) -> bool:
        """Take the row lock that serializes ledger operations on one event."""
        cursor.execute("SELECT 1 FROM events WHERE id = %s FOR UPDATE", (event_id,))
        return cursor.fetchone() is not None

    def _select_events(self, where: str, params: tuple) -> list[Event]:
        events_sql = f"SELECT {_EVENT_COLUMNS} FROM events {where} ORDER BY date_time"
        participants_sql = f"""
            SELECT {_PARTICIPANT_COLUMNS} FROM participants
            WHERE event_id = ANY(%s)
            ORDER BY seq
        """
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(events_sql, params)
            event_rows = cursor.fetchall()
            if not event_rows:
                return []
            cursor.execute(participants_sql, ([row["id"] for row in event_rows],))
            participant_rows = cursor.fetchall()

        by_event: dict[str, list[Registration]] = {row["id"]: [] for row in event_rows}
        for row in participant_rows:
            by_event[row["event_id"]].append(self._to_registration(row))
        return [self._to_event(row, by_event[row["id"]]) for row in event_rows]

    @staticmethod
    def _to_event(row: dict[str, Any], participants: list[Registration]) -> Event:
        return Event(
            id=row["id"],
            title=row["title"],
            description=row["description"],
            date_time=row["date_time"],
            total_slots=row["total_slots"],
            available_slots=row["available_slots"],
            owner_id=row["owner_id"],
            local=row["local"],
            is_active=row["is_active"],
            event_code=row["event_code"],
            created_at=row["created_at"],
            participants=participants,
        )

    @staticmethod
    def _to_registration(row: dict[str, Any]) -> Registration:
        return Registration(
            id=row["id"],
            event_id=row["event_id"],
            name=row["name"],
            email=row["email"],
            phone=row["phone"],
            status=RegistrationStatus.normalize(row["status"]),
            verification_code=row["verification_code"],
            verification_code_expires_at=row["verification_code_expires_at"],
            registered_at=row["registered_at"],
            confirmed_at=row["confirmed_at"],
            verified_at=row["verified_at"],
        )


# src/adapters/repository/postgres.py -> <repo root>/migrations
MIGRATIONS_DIR = Path(__file__).resolve().parents[3] / "migrations"


def run_migrations(pool: ConnectionPool, migrations_dir: Path = MIGRATIONS_DIR) -> list[str]:
    """
    Apply the schema files (organizers, events, participants) in filename order.

    All files run in one transaction, so a failing file leaves no
    partially created schema behind. Files must be idempotent
    (IF NOT EXISTS) because they run on every startup.

    Args:
        pool: psycopg3 ConnectionPool instance
        migrations_dir: Directory holding NNN_description.sql files

    Returns:
        Names of the files that were applied
    """
    if not migrations_dir.is_dir():
        logger.warning("Migrations directory not found: %s", migrations_dir)
        return []

    sql_files = sorted(migrations_dir.glob("*.sql"))
    if not sql_files:
        logger.info("No migration files found in %s", migrations_dir)
        return []

    applied: list[str] = []
    with pool.connection() as conn:
        for sql_file in sql_files:
            try:
                conn.execute(sql_file.read_text())
            except Exception as e:
                logger.error("Migration failed: %s - %s", sql_file.name, e)
                raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
            applied.append(sql_file.name)

    logger.info("Applied %d migration(s): %s", len(applied), ", ".join(applied))
    return applied
