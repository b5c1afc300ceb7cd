"""
FastAPI dependencies - Dependency injection factories.

This module wires the registry service from settings and provides
Depends() factories for injecting it and the authenticated caller
into routes.
"""

import logging

import bcrypt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from psycopg_pool import ConnectionPool

from src.adapters.auth.static import StaticOwnerAuthorizer
from src.adapters.repository.memory import InMemoryRegistryStore
from src.adapters.repository.postgres import PostgresRegistryStore
from src.adapters.treasury.ledger import InMemoryTreasury, PostgresTreasury
from src.config.settings import Settings
from src.domain.ports import PaymentPolicy
from src.domain.registry import RegistryService
from src.domain.rewards import build_reward_policy

logger = logging.getLogger(__name__)

# Pre-computed bcrypt hash compared against when no owner hash is configured,
# so failed logins cost the same bcrypt time either way.
_DUMMY_BCRYPT_HASH = bcrypt.hashpw(b"dummy_password_for_timing_safety", bcrypt.gensalt(10))


def hash_owner_password(password: str, settings: Settings) -> str:
    """
    Hash an owner password for the owner_password_hash setting.

    Uses bcrypt with the configured work factor (settings.bcrypt_cost).
    """
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=settings.bcrypt_cost)).decode()


def create_registry_service(settings: Settings, pool: ConnectionPool | None = None) -> RegistryService:
    """
    Build the registry service and its adapters from settings.

    Args:
        settings: Application settings
        pool: Connection pool, required when storage_backend is "postgres"

    Returns:
        RegistryService with an initialized store
    """
    if settings.storage_backend == "postgres":
        if pool is None:
            raise ValueError("A connection pool is required for the postgres backend")
        store = PostgresRegistryStore(pool)
        treasury = PostgresTreasury(store, pool)
    else:
        store = InMemoryRegistryStore()
        treasury = InMemoryTreasury(lock=store.lock)

    store.initialize(settings.registration_fee)
    logger.info(
        "Registry ready (backend=%s, payment=%s, reward=%s)",
        settings.storage_backend,
        settings.payment_policy,
        settings.reward_mode,
    )

    return RegistryService(
        store=store,
        treasury=treasury,
        authorizer=StaticOwnerAuthorizer(settings.owner_account),
        reward_policy=build_reward_policy(
            settings.reward_mode,
            amount=settings.reward_amount,
            rate_bps=settings.reward_rate_bps,
        ),
        payment_policy=PaymentPolicy(settings.payment_policy),
        second_level_only=settings.second_level_only,
        reject_unchanged_fee=settings.reject_unchanged_fee,
    )


def get_registry_service(request: Request) -> RegistryService:
    """
    Get the registry service from app state.

    The service is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.registry


def get_settings_from_state(request: Request) -> Settings:
    """Get the settings the application was started with."""
    return request.app.state.settings


# HTTP BASIC AUTH security scheme for OpenAPI documentation
http_basic = HTTPBasic()


def get_authenticated_caller(
    request: Request,
    credentials: HTTPBasicCredentials = Depends(http_basic),
) -> str:
    """
    Authenticate the caller from the HTTP BASIC AUTH header.

    FastAPI's HTTPBasic automatically:
    - Returns 401 for missing Authorization header
    - Returns 401 for malformed base64 encoding
    - Parses base64(identity:password) format

    The password is checked with bcrypt against the configured owner
    password hash. Whether the authenticated identity may act as owner
    is decided by the domain's Authorizer.

    Returns:
        Caller identity (stripped username)
    """
    settings = get_settings_from_state(request)
    stored_hash = (
        settings.owner_password_hash.encode() if settings.owner_password_hash else _DUMMY_BCRYPT_HASH
    )

    # Always run bcrypt, even without a configured hash, for uniform timing
    password_valid = bcrypt.checkpw(credentials.password.encode(), stored_hash)
    if not settings.owner_password_hash or not password_valid:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Basic"},
        )
    return credentials.username.strip()
