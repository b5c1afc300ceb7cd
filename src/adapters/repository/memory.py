"""
In-memory repository adapter - Implements RegistryStore protocol.

Keeps registry state in plain dictionaries guarded by a single global
re-entrant lock. Every transaction holds the lock for its whole block and
replays the undo journal of its writes if the block raises, so a failed call
leaves no trace. Reads take the same lock and never observe a
partially-applied registration.
"""

import threading
from collections.abc import Callable, Iterator
from contextlib import AbstractContextManager, contextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone

from src.domain.ports import DomainRecord, EventKind, RegistryEvent


@dataclass
class _RegistryTables:
    """Logical state layout of the registry."""

    fee: int = 0
    initialized: bool = False
    total_domains: int = 0
    domains: dict[str, DomainRecord] = field(default_factory=dict)
    controller_domains: dict[str, list[str]] = field(default_factory=dict)
    rewards: dict[str, int] = field(default_factory=dict)
    events: list[RegistryEvent] = field(default_factory=list)


class InMemoryRegistrySession:
    """
    Implements RegistrySession over the tables of one store.

    Every write records how to undo itself, so a failed transaction
    reverts only what it changed.
    """

    def __init__(self, tables: _RegistryTables) -> None:
        self._tables = tables
        self._undo: list[Callable[[], None]] = []

    def get_fee(self) -> int:
        return self._tables.fee

    def set_fee(self, fee: int) -> None:
        previous = self._tables.fee
        self._tables.fee = fee
        self._undo.append(lambda: setattr(self._tables, "fee", previous))

    def get_domain(self, name: str) -> DomainRecord | None:
        return self._tables.domains.get(name)

    def insert_domain(self, record: DomainRecord) -> None:
        tables = self._tables
        existing = tables.domains.get(record.name)
        if existing is not None and existing.registered:
            raise ValueError(f"Record already exists for {record.name}")
        tables.domains[record.name] = record
        tables.controller_domains.setdefault(record.controller, []).append(record.name)
        tables.total_domains += 1

        def undo() -> None:
            if existing is None:
                del tables.domains[record.name]
            else:
                tables.domains[record.name] = existing
            names = tables.controller_domains[record.controller]
            names.pop()
            if not names:
                del tables.controller_domains[record.controller]
            tables.total_domains -= 1

        self._undo.append(undo)

    def credit_reward(self, name: str, amount: int) -> None:
        rewards = self._tables.rewards
        previous = rewards.get(name)
        rewards[name] = (previous or 0) + amount

        def undo() -> None:
            if previous is None:
                del rewards[name]
            else:
                rewards[name] = previous

        self._undo.append(undo)

    def append_event(self, event: RegistryEvent) -> RegistryEvent:
        events = self._tables.events
        stored = replace(
            event,
            sequence=len(events) + 1,
            occurred_at=datetime.now(timezone.utc),
        )
        events.append(stored)
        self._undo.append(events.pop)
        return stored

    def adopt(self, child: "InMemoryRegistrySession") -> None:
        """Take over a committed nested session's writes."""
        self._undo.extend(child._undo)
        child._undo = []

    def rollback(self) -> None:
        """Revert this session's writes, newest first."""
        while self._undo:
            self._undo.pop()()


class InMemoryRegistryStore:
    """
    Implements RegistryStore protocol with process-local state.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self) -> None:
        self._tables = _RegistryTables()
        self._lock = threading.RLock()
        self._sessions: list[InMemoryRegistrySession] = []

    @property
    def lock(self) -> AbstractContextManager:
        """Global lock shared with adapters that join this store's transactions."""
        return self._lock

    def initialize(self, fee: int) -> None:
        with self._lock:
            if not self._tables.initialized:
                self._tables.fee = fee
                self._tables.initialized = True

    @contextmanager
    def transaction(self) -> Iterator[InMemoryRegistrySession]:
        with self._lock:
            session = InMemoryRegistrySession(self._tables)
            self._sessions.append(session)
            try:
                yield session
            except Exception:
                session.rollback()
                raise
            else:
                # An enclosing transaction must be able to revert these too
                if len(self._sessions) > 1:
                    self._sessions[-2].adopt(session)
            finally:
                self._sessions.pop()

    def get_fee(self) -> int:
        with self._lock:
            return self._tables.fee

    def get_total_domains(self) -> int:
        with self._lock:
            return self._tables.total_domains

    def get_domain(self, name: str) -> DomainRecord | None:
        with self._lock:
            return self._tables.domains.get(name)

    def get_controller_domains(self, controller: str, offset: int, limit: int) -> list[str]:
        with self._lock:
            names = self._tables.controller_domains.get(controller, [])
            if offset >= len(names):
                return []
            return names[offset : offset + limit]

    def count_controller_domains(self, controller: str) -> int:
        with self._lock:
            return len(self._tables.controller_domains.get(controller, []))

    def get_reward(self, name: str) -> int:
        with self._lock:
            return self._tables.rewards.get(name, 0)

    def iter_events(
        self,
        kind: EventKind | None = None,
        controller: str | None = None,
        name: str | None = None,
    ) -> Iterator[RegistryEvent]:
        with self._lock:
            events = list(self._tables.events)
        for event in events:
            if kind is not None and event.kind != kind:
                continue
            if controller is not None and event.controller != controller:
                continue
            if name is not None and event.name != name:
                continue
            yield event
