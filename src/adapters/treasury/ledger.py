"""
Treasury adapters - Implement the Treasury protocol as balance books.

Each outgoing transfer credits the recipient's account balance. Both
adapters take part in the enclosing registry transaction: the in-memory
book restores its balances when the block raises, and the PostgreSQL
book writes on the registry transaction's connection inside a savepoint.
"""

import logging
import threading
from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager

from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import PostgresRegistryStore

logger = logging.getLogger(__name__)


class InMemoryTreasury:
    """
    Implements Treasury protocol with process-local balances.

    Uses structural subtyping - no explicit inheritance from Protocol.
    Pass the registry store's lock so transfers share its critical section.
    Transfers inside a transaction are journaled and reverted if it raises.
    """

    def __init__(self, lock: AbstractContextManager | None = None) -> None:
        self._balances: dict[str, int] = {}
        self._lock = lock if lock is not None else threading.RLock()
        self._journals: list[list[tuple[str, int | None]]] = []

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._lock:
            journal: list[tuple[str, int | None]] = []
            self._journals.append(journal)
            try:
                yield
            except Exception:
                for account, previous in reversed(journal):
                    if previous is None:
                        del self._balances[account]
                    else:
                        self._balances[account] = previous
                raise
            else:
                # An enclosing transaction must be able to revert these too
                if len(self._journals) > 1:
                    self._journals[-2].extend(journal)
            finally:
                self._journals.pop()

    def transfer(self, recipient: str, amount: int) -> bool:
        if amount < 0:
            return False
        with self._lock:
            previous = self._balances.get(recipient)
            self._balances[recipient] = (previous or 0) + amount
            if self._journals:
                self._journals[-1].append((recipient, previous))
        logger.debug("Transferred %s to %s", amount, recipient)
        return True

    def balance_of(self, account: str) -> int:
        with self._lock:
            return self._balances.get(account, 0)


class PostgresTreasury:
    """
    Implements Treasury protocol via the account_balances table.

    Transfers must happen inside a PostgresRegistryStore transaction;
    they run on that transaction's connection so that balances commit
    or roll back together with registry state.
    """

    def __init__(self, store: PostgresRegistryStore, pool: ConnectionPool) -> None:
        self._store = store
        self._pool = pool

    @contextmanager
    def transaction(self) -> Iterator[None]:
        conn = self._store.active_connection()
        with conn.transaction():
            yield

    def transfer(self, recipient: str, amount: int) -> bool:
        if amount < 0:
            return False
        sql = """
            INSERT INTO account_balances (account, balance)
            VALUES (%s, %s)
            ON CONFLICT (account) DO UPDATE
            SET balance = account_balances.balance + EXCLUDED.balance
        """
        conn = self._store.active_connection()
        with conn.cursor() as cursor:
            cursor.execute(sql, (recipient, amount))
            transferred = cursor.rowcount == 1
        logger.debug("Transferred %s to %s", amount, recipient)
        return transferred

    def balance_of(self, account: str) -> int:
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute("SELECT balance FROM account_balances WHERE account = %s", (account,))
            row = cursor.fetchone()
        return int(row[0]) if row is not None else 0
