"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- In-memory registry stores and treasuries
- Registry service factories with configurable policies
"""

from collections.abc import Callable

import pytest

from src.adapters.auth.static import StaticOwnerAuthorizer
from src.adapters.repository.memory import InMemoryRegistryStore
from src.adapters.treasury.ledger import InMemoryTreasury
from src.domain.ports import PaymentPolicy
from src.domain.registry import RegistryService
from src.domain.rewards import FlatReward

OWNER = "owner"
REGISTRATION_FEE = 10_000
REWARD = 1_000


class RefusingTreasury(InMemoryTreasury):
    """InMemoryTreasury that refuses transfers to selected recipients."""

    def __init__(self, *args, refuse: set[str] | None = None, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.refuse = refuse if refuse is not None else set()

    def transfer(self, recipient: str, amount: int) -> bool:
        if recipient in self.refuse:
            return False
        return super().transfer(recipient, amount)


@pytest.fixture
def store() -> InMemoryRegistryStore:
    """Initialized in-memory store."""
    store = InMemoryRegistryStore()
    store.initialize(REGISTRATION_FEE)
    return store


@pytest.fixture
def treasury(store: InMemoryRegistryStore) -> RefusingTreasury:
    """Treasury sharing the store's lock; refuses nobody until told to."""
    return RefusingTreasury(lock=store.lock)


@pytest.fixture
def make_service(
    store: InMemoryRegistryStore, treasury: RefusingTreasury
) -> Callable[..., RegistryService]:
    """Factory for services over the shared store and treasury."""

    def _make(**overrides) -> RegistryService:
        options = {
            "reward_policy": FlatReward(REWARD),
            "payment_policy": PaymentPolicy.EXACT,
        }
        options.update(overrides)
        return RegistryService(
            store=store,
            treasury=treasury,
            authorizer=StaticOwnerAuthorizer(OWNER),
            **options,
        )

    return _make


@pytest.fixture
def service(make_service: Callable[..., RegistryService]) -> RegistryService:
    """Service with default policies: exact payment, flat reward."""
    return make_service()
