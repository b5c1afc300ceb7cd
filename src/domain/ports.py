"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure, plus the value types that cross those ports.
Adapters implement these protocols structurally.
"""

from collections.abc import Iterator
from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Protocol

# Null identity: never a valid controller.
NULL_IDENTITY = "0x0000000000000000000000000000000000000000"


class EventKind(str, Enum):
    """
    Kinds of events appended to the registry event log.

    - DOMAIN_REGISTERED: name and controller of a new registration
    - FEE_CHANGED: amount holds the new fee
    - REWARD_DISTRIBUTED: name of the credited ancestor and the amount
    """

    DOMAIN_REGISTERED = "DomainRegistered"
    FEE_CHANGED = "FeeChanged"
    REWARD_DISTRIBUTED = "RewardDistributed"


class PaymentPolicy(str, Enum):
    """
    How a registration payment is matched against the fee.

    - EXACT: paid amount must equal the fee
    - REFUND_EXCESS: paid amount must cover the fee, the excess is refunded
    """

    EXACT = "exact"
    REFUND_EXCESS = "refund_excess"


@dataclass(frozen=True)
class DomainRecord:
    """A registered name and the identity controlling it."""

    name: str
    controller: str
    registered: bool = True


@dataclass(frozen=True)
class RegistryEvent:
    """
    One entry of the append-only event log.

    sequence and occurred_at are assigned by the store on append;
    unset values are placeholders until then.
    """

    kind: EventKind
    name: str | None = None
    controller: str | None = None
    amount: int | None = None
    sequence: int = 0
    occurred_at: datetime | None = None


@dataclass(frozen=True)
class RegistrationReceipt:
    """Outcome of a successful registration."""

    name: str
    controller: str
    fee: int
    reward_per_ancestor: int
    total_distributed: int
    owner_payout: int
    refund: int
    rewarded_ancestors: list[str] = field(default_factory=list)


class RegistrySession(Protocol):
    """
    Transactional view over registry state.

    Obtained from RegistryStore.transaction(); every write made through a
    session is discarded if the transaction block raises.
    """

    def get_fee(self) -> int: ...

    def set_fee(self, fee: int) -> None: ...

    def get_domain(self, name: str) -> DomainRecord | None: ...

    def insert_domain(self, record: DomainRecord) -> None:
        """
        Store a new record, append its name to the controller index and
        increment the total domain counter.
        """
        ...

    def credit_reward(self, name: str, amount: int) -> None:
        """Add amount to the cumulative reward ledger entry of name."""
        ...

    def append_event(self, event: RegistryEvent) -> RegistryEvent:
        """Append an event, returning it with sequence and timestamp set."""
        ...


class RegistryStore(Protocol):
    """Port interface for registry persistence and the event log."""

    def initialize(self, fee: int) -> None:
        """Set the initial fee if the registry has never been initialized."""
        ...

    def transaction(self) -> AbstractContextManager[RegistrySession]:
        """
        Open a mutually exclusive, all-or-nothing unit of work.

        Implementations hold a global lock for the lifetime of the block.
        """
        ...

    def get_fee(self) -> int: ...

    def get_total_domains(self) -> int: ...

    def get_domain(self, name: str) -> DomainRecord | None: ...

    def get_controller_domains(self, controller: str, offset: int, limit: int) -> list[str]: ...

    def count_controller_domains(self, controller: str) -> int: ...

    def get_reward(self, name: str) -> int: ...

    def iter_events(
        self,
        kind: EventKind | None = None,
        controller: str | None = None,
        name: str | None = None,
    ) -> Iterator[RegistryEvent]:
        """Yield matching events in emission order."""
        ...


class Treasury(Protocol):
    """Port interface for value transfers."""

    def transaction(self) -> AbstractContextManager[None]:
        """Scope in which transfers are undone if the block raises."""
        ...

    def transfer(self, recipient: str, amount: int) -> bool:
        """
        Move amount to recipient.

        Returns:
            True on success, False if the transfer was refused
        """
        ...

    def balance_of(self, account: str) -> int: ...


class Authorizer(Protocol):
    """Port interface for owner authorization."""

    @property
    def owner(self) -> str:
        """Identity receiving the registry's share of each fee."""
        ...

    def is_owner(self, caller: str) -> bool: ...
