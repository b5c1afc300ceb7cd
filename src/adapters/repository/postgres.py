"""
PostgreSQL repository adapter - Implements RegistryStore protocol.

This module provides the PostgreSQL implementation of the domain's
store port using psycopg3 with raw SQL.

Concurrency Design - Serialized Mutations:
-----------------------------------------
Every mutating call runs in a single database transaction that first takes
a transaction-scoped advisory lock (pg_advisory_xact_lock). All registry
mutations are therefore globally serialized, exactly one of two racing
registrations for the same name can succeed, and the lock is released on
commit or rollback.

1. **Atomic unit**: records, controller index, reward ledger, events and
   treasury balances are written on the same connection, so a refused
   transfer or failed precondition rolls all of them back.

2. **Primary key on domains.name**: a second line of defense against
   duplicate registrations, independent of the advisory lock.

3. **Snapshot reads**: read-only queries run in their own short
   transactions and only ever see committed registrations.
"""

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from psycopg import Connection
from psycopg_pool import ConnectionPool

from src.domain.ports import DomainRecord, EventKind, RegistryEvent

logger = logging.getLogger(__name__)

# Advisory lock key shared by every mutating registry transaction.
_REGISTRY_LOCK_KEY = 0x6E616D65


class PostgresRegistrySession:
    """Implements RegistrySession on one open transaction."""

    def __init__(self, conn: Connection) -> None:
        self._conn = conn

    def get_fee(self) -> int:
        with self._conn.cursor() as cursor:
            cursor.execute("SELECT fee FROM registry_state WHERE id = 1")
            row = cursor.fetchone()
        if row is None:
            raise RuntimeError("Registry state not initialized")
        return int(row[0])

    def set_fee(self, fee: int) -> None:
        with self._conn.cursor() as cursor:
            cursor.execute("UPDATE registry_state SET fee = %s WHERE id = 1", (fee,))

    def get_domain(self, name: str) -> DomainRecord | None:
        with self._conn.cursor() as cursor:
            cursor.execute(
                "SELECT name, controller, registered FROM domains WHERE name = %s",
                (name,),
            )
            row = cursor.fetchone()
        if row is None:
            return None
        return DomainRecord(name=row[0], controller=row[1], registered=row[2])

    def insert_domain(self, record: DomainRecord) -> None:
        """
        Insert the record, index it under its controller and bump the counter.

        The controller position is the current count of that controller's
        names, which is stable because the advisory lock is held.
        """
        with self._conn.cursor() as cursor:
            cursor.execute(
                """
                INSERT INTO domains (name, controller, registered, registered_at)
                VALUES (%s, %s, %s, NOW())
                """,
                (record.name, record.controller, record.registered),
            )
            cursor.execute(
                """
                INSERT INTO controller_domains (controller, position, name)
                SELECT %s, COUNT(*), %s FROM controller_domains WHERE controller = %s
                """,
                (record.controller, record.name, record.controller),
            )
            cursor.execute(
                "UPDATE registry_state SET total_domains = total_domains + 1 WHERE id = 1"
            )

    def credit_reward(self, name: str, amount: int) -> None:
        with self._conn.cursor() as cursor:
            cursor.execute(
                """
                INSERT INTO domain_rewards (name, total)
                VALUES (%s, %s)
                ON CONFLICT (name) DO UPDATE
                SET total = domain_rewards.total + EXCLUDED.total
                """,
                (name, amount),
            )

    def append_event(self, event: RegistryEvent) -> RegistryEvent:
        with self._conn.cursor() as cursor:
            cursor.execute(
                """
                INSERT INTO registry_events (kind, name, controller, amount, occurred_at)
                VALUES (%s, %s, %s, %s, NOW())
                RETURNING sequence, occurred_at
                """,
                (event.kind.value, event.name, event.controller, event.amount),
            )
            sequence, occurred_at = cursor.fetchone()
        return RegistryEvent(
            kind=event.kind,
            name=event.name,
            controller=event.controller,
            amount=event.amount,
            sequence=sequence,
            occurred_at=occurred_at,
        )


class PostgresRegistryStore:
    """
    Implements RegistryStore protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize store with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool
        self._local = threading.local()

    def initialize(self, fee: int) -> None:
        with self._pool.connection() as conn:
            conn.execute(
                """
                INSERT INTO registry_state (id, fee, total_domains)
                VALUES (1, %s, 0)
                ON CONFLICT (id) DO NOTHING
                """,
                (fee,),
            )
            conn.commit()

    @contextmanager
    def transaction(self) -> Iterator[PostgresRegistrySession]:
        with self._pool.connection() as conn, conn.transaction():
            conn.execute("SELECT pg_advisory_xact_lock(%s)", (_REGISTRY_LOCK_KEY,))
            self._local.conn = conn
            try:
                yield PostgresRegistrySession(conn)
            finally:
                self._local.conn = None

    def active_connection(self) -> Connection:
        """
        Connection of the transaction open on the current thread.

        Raises:
            RuntimeError: If no registry transaction is open
        """
        conn = getattr(self._local, "conn", None)
        if conn is None:
            raise RuntimeError("No registry transaction is open on this thread")
        return conn

    def get_fee(self) -> int:
        row = self._fetch_one("SELECT fee FROM registry_state WHERE id = 1")
        return int(row[0]) if row is not None else 0

    def get_total_domains(self) -> int:
        row = self._fetch_one("SELECT total_domains FROM registry_state WHERE id = 1")
        return int(row[0]) if row is not None else 0

    def get_domain(self, name: str) -> DomainRecord | None:
        row = self._fetch_one(
            "SELECT name, controller, registered FROM domains WHERE name = %s", (name,)
        )
        if row is None:
            return None
        return DomainRecord(name=row[0], controller=row[1], registered=row[2])

    def get_controller_domains(self, controller: str, offset: int, limit: int) -> list[str]:
        sql = """
            SELECT name FROM controller_domains
            WHERE controller = %s
            ORDER BY position
            OFFSET %s LIMIT %s
        """
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (controller, offset, limit))
            return [row[0] for row in cursor.fetchall()]

    def count_controller_domains(self, controller: str) -> int:
        row = self._fetch_one(
            "SELECT COUNT(*) FROM controller_domains WHERE controller = %s", (controller,)
        )
        return int(row[0])

    def get_reward(self, name: str) -> int:
        row = self._fetch_one("SELECT total FROM domain_rewards WHERE name = %s", (name,))
        return int(row[0]) if row is not None else 0

    def iter_events(
        self,
        kind: EventKind | None = None,
        controller: str | None = None,
        name: str | None = None,
    ) -> Iterator[RegistryEvent]:
        clauses = []
        params: list[str] = []
        if kind is not None:
            clauses.append("kind = %s")
            params.append(kind.value)
        if controller is not None:
            clauses.append("controller = %s")
            params.append(controller)
        if name is not None:
            clauses.append("name = %s")
            params.append(name)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        sql = f"""
            SELECT sequence, kind, name, controller, amount, occurred_at
            FROM registry_events
            {where}
            ORDER BY sequence
        """

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, params)
            rows = cursor.fetchall()

        for sequence, kind_value, event_name, event_controller, amount, occurred_at in rows:
            yield RegistryEvent(
                kind=EventKind(kind_value),
                name=event_name,
                controller=event_controller,
                amount=int(amount) if amount is not None else None,
                sequence=sequence,
                occurred_at=occurred_at,
            )

    def _fetch_one(self, sql: str, params: tuple = ()) -> tuple | None:
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, params)
            return cursor.fetchone()


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: src/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning(f"Migrations directory not found: {migrations_dir}")
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info(f"Running {len(sql_files)} migration(s)")

    for sql_file in sql_files:
        logger.info(f"Executing migration: {sql_file.name}")
        try:
            sql_content = sql_file.read_text()

            with pool.connection() as conn:
                conn.execute(sql_content)

            logger.info(f"Migration complete: {sql_file.name}")
        except Exception as e:
            logger.error(f"Migration failed: {sql_file.name} - {e}")
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
