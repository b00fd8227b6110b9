"""
PostgreSQL organizer directory - Implements OrganizerDirectory protocol.

Organizer passwords are stored as bcrypt hashes; see hashing.py for the
timing-safe comparison.
"""

import logging

from psycopg_pool import ConnectionPool

from .hashing import check_password, hash_password

logger = logging.getLogger(__name__)


class PostgresOrganizerDirectory:
    """
    Implements OrganizerDirectory protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, pool: ConnectionPool, bcrypt_cost: int = 10) -> None:
        self._pool = pool
        self._bcrypt_cost = bcrypt_cost

    def authenticate(self, email: str, password: str) -> str | None:
        """
        Check organizer credentials.

        Returns:
            Organizer id on success, None otherwise
        """
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(
                "SELECT id, password_hash FROM organizers WHERE email = %s",
                (email.strip().lower(),),
            )
            row = cursor.fetchone()

        stored_hash = row[1] if row is not None else None
        if not check_password(password, stored_hash):
            return None
        return row[0]

    def create_organizer(self, email: str, name: str, password: str) -> str | None:
        """
        Create an organizer account.

        Returns:
            The new organizer id, or None if the email is already taken
        """
        insert_sql = """
            INSERT INTO organizers (email, name, password_hash)
            VALUES (%s, %s, %s)
            ON CONFLICT (email) DO NOTHING
            RETURNING id
        """
        password_hash = hash_password(password, self._bcrypt_cost)
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(insert_sql, (email.strip().lower(), name, password_hash))
            row = cursor.fetchone()
            conn.commit()

        if row is None:
            return None
        logger.info("Organizer %s created", row[0])
        return row[0]
