"""
In-memory organizer directory - Implements OrganizerDirectory protocol.

Same bcrypt handling as the PostgreSQL directory, for development and
tests running with storage_backend=memory.
"""

import logging
import threading
import uuid

from .hashing import check_password, hash_password

logger = logging.getLogger(__name__)


class InMemoryOrganizerDirectory:
    """Implements OrganizerDirectory protocol with a dict of bcrypt hashes."""

    def __init__(self, bcrypt_cost: int = 10) -> None:
        self._organizers: dict[str, tuple[str, str]] = {}
        self._lock = threading.Lock()
        self._bcrypt_cost = bcrypt_cost

    def authenticate(self, email: str, password: str) -> str | None:
        with self._lock:
            entry = self._organizers.get(email.strip().lower())

        stored_hash = entry[1] if entry is not None else None
        if not check_password(password, stored_hash):
            return None
        return entry[0]

    def create_organizer(self, email: str, name: str, password: str) -> str | None:
        password_hash = hash_password(password, self._bcrypt_cost)
        email = email.strip().lower()
        with self._lock:
            if email in self._organizers:
                return None
            organizer_id = uuid.uuid4().hex
            self._organizers[email] = (organizer_id, password_hash)

        logger.info("Organizer %s (%s) created", organizer_id, name)
        return organizer_id
