"""Treasury adapters - Value transfer implementations."""

from .ledger import InMemoryTreasury, PostgresTreasury

__all__ = ["InMemoryTreasury", "PostgresTreasury"]
