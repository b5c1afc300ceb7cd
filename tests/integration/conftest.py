"""
Shared fixtures for PostgreSQL integration tests.

Tests using these fixtures are skipped when the configured database
cannot be reached.
"""

from collections.abc import Generator

import psycopg
import pytest
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import PostgresRegistryStore, run_migrations
from src.adapters.treasury.ledger import PostgresTreasury
from src.config.settings import get_settings

POSTGRES_FEE = 10_000


@pytest.fixture(scope="module")
def pool() -> Generator[ConnectionPool, None, None]:
    """Create connection pool and migrate the schema."""
    settings = get_settings()
    try:
        with psycopg.connect(settings.database_url, connect_timeout=2):
            pass
    except psycopg.OperationalError:
        pytest.skip("PostgreSQL is not available")

    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=1,
        max_size=10,
        open=True,
    )
    run_migrations(pool)
    yield pool
    pool.close()


@pytest.fixture
def pg_store(pool: ConnectionPool) -> PostgresRegistryStore:
    """Store over freshly emptied tables."""
    with pool.connection() as conn:
        conn.execute(
            "TRUNCATE registry_events, domain_rewards, controller_domains, domains, "
            "account_balances, registry_state RESTART IDENTITY"
        )
        conn.commit()
    store = PostgresRegistryStore(pool)
    store.initialize(POSTGRES_FEE)
    return store


@pytest.fixture
def pg_treasury(pg_store: PostgresRegistryStore, pool: ConnectionPool) -> PostgresTreasury:
    return PostgresTreasury(pg_store, pool)
