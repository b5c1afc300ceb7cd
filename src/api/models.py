"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from src.domain.ports import EventKind


class RegisterDomainRequest(BaseModel):
    """Request model for domain registration."""

    name: str = Field(..., min_length=1, max_length=253, description="Dotted domain name")
    controller: str = Field(..., min_length=1, description="Identity that will control the name")
    paid_amount: int = Field(..., ge=0, description="Value sent with the registration")
    payer: str | None = Field(
        default=None, description="Identity receiving any refund (defaults to controller)"
    )


class RegisterDomainResponse(BaseModel):
    """Response model for successful registration."""

    name: str
    controller: str
    fee: int
    reward_per_ancestor: int
    total_distributed: int
    owner_payout: int
    refund: int
    rewarded_ancestors: list[str]


class DomainResponse(BaseModel):
    """Response model for a registered domain."""

    name: str
    controller: str
    registered: bool


class AncestorsResponse(BaseModel):
    """Response model for a domain's ancestor chain."""

    name: str
    ancestors: list[str]


class RewardResponse(BaseModel):
    """Response model for a domain's cumulative reward."""

    name: str
    total_reward: int


class ControllerDomainsResponse(BaseModel):
    """Response model for a page of a controller's domains."""

    controller: str
    offset: int
    limit: int
    total: int
    domains: list[str]


class ChangeFeeRequest(BaseModel):
    """Request model for changing the registration fee."""

    fee: int = Field(..., description="New registration fee, must be positive")


class FeeResponse(BaseModel):
    """Response model for the current registration fee."""

    fee: int


class StatsResponse(BaseModel):
    """Response model for registry counters."""

    fee: int
    total_domains: int


class EventResponse(BaseModel):
    """Response model for one event log entry."""

    sequence: int
    kind: EventKind
    name: str | None = None
    controller: str | None = None
    amount: int | None = None
    occurred_at: datetime | None = None


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str
