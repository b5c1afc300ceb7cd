"""Repository adapters - Registry state implementations."""

from .memory import InMemoryRegistryStore
from .postgres import PostgresRegistryStore, run_migrations

__all__ = ["InMemoryRegistryStore", "PostgresRegistryStore", "run_migrations"]
