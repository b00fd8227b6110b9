"""Identity adapters - Organizer credential checks."""

from .memory import InMemoryOrganizerDirectory
from .postgres import PostgresOrganizerDirectory

__all__ = ["InMemoryOrganizerDirectory", "PostgresOrganizerDirectory"]
