"""Repository adapters - Database and in-memory implementations."""

from .memory import InMemoryEventRepository
from .postgres import PostgresEventRepository, run_migrations

__all__ = ["InMemoryEventRepository", "PostgresEventRepository", "run_migrations"]
