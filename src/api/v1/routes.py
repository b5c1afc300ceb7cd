"""
API v1 routes.

Defines REST endpoints for the hierarchical name registry API.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from src.api.dependencies import get_authenticated_caller, get_registry_service
from src.api.models import (
    AncestorsResponse,
    ChangeFeeRequest,
    ControllerDomainsResponse,
    DomainResponse,
    ErrorResponse,
    EventResponse,
    FeeResponse,
    RegisterDomainRequest,
    RegisterDomainResponse,
    RewardResponse,
    StatsResponse,
)
from src.domain.exceptions import (
    DomainAlreadyRegistered,
    FeeMustBePositive,
    FeeUnchanged,
    InsufficientPayment,
    InvalidController,
    InvalidDomainName,
    NotSecondLevelDomain,
    RewardBudgetExceeded,
    TransferFailed,
    Unauthorized,
)
from src.domain.hierarchy import ancestors, normalize_name
from src.domain.ports import EventKind
from src.domain.registry import RegistryService

router = APIRouter(tags=["v1"])


@router.post(
    "/domains",
    response_model=RegisterDomainResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        402: {"model": ErrorResponse, "description": "Payment does not match the fee"},
        409: {"model": ErrorResponse, "description": "Domain already registered"},
        422: {"description": "Invalid name, controller or request body"},
        502: {"model": ErrorResponse, "description": "Payout transfer failed"},
    },
    summary="Register a domain",
    description="Claim an unregistered dotted name for a controller. "
    "Controllers of every registered ancestor receive a reward from the fee.",
)
async def register_domain(
    request_data: RegisterDomainRequest,
    service: RegistryService = Depends(get_registry_service),
) -> RegisterDomainResponse:
    """
    Register a domain and distribute ancestor rewards.

    - **name**: Dotted domain name to claim
    - **controller**: Identity that will control the name
    - **paid_amount**: Value sent, checked against the fee
    - **payer**: Identity receiving any refund
    """
    try:
        receipt = service.register_domain(
            request_data.name,
            request_data.controller,
            request_data.paid_amount,
            payer=request_data.payer,
        )
    except DomainAlreadyRegistered as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Domain already registered: {e.name}",
        ) from None
    except InsufficientPayment as e:
        raise HTTPException(
            status_code=status.HTTP_402_PAYMENT_REQUIRED,
            detail=f"Incorrect payment, required fee is {e.required_fee}",
        ) from None
    except (InvalidDomainName, InvalidController, NotSecondLevelDomain) as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(e),
        ) from None
    except RewardBudgetExceeded as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e),
        ) from None
    except TransferFailed:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Registration aborted: payout transfer failed",
        ) from None

    return RegisterDomainResponse(
        name=receipt.name,
        controller=receipt.controller,
        fee=receipt.fee,
        reward_per_ancestor=receipt.reward_per_ancestor,
        total_distributed=receipt.total_distributed,
        owner_payout=receipt.owner_payout,
        refund=receipt.refund,
        rewarded_ancestors=receipt.rewarded_ancestors,
    )


@router.get(
    "/domains/{name}",
    response_model=DomainResponse,
    responses={404: {"model": ErrorResponse, "description": "Domain not registered"}},
    summary="Look up a domain",
)
async def get_domain(
    name: str,
    service: RegistryService = Depends(get_registry_service),
) -> DomainResponse:
    """Return the record of a registered domain."""
    record = service.get_domain(name)
    if record is None or not record.registered:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Domain not registered",
        )
    return DomainResponse(name=record.name, controller=record.controller, registered=record.registered)


@router.get(
    "/domains/{name}/ancestors",
    response_model=AncestorsResponse,
    summary="List a domain's ancestors",
)
async def get_ancestors(name: str) -> AncestorsResponse:
    """Ancestor suffixes of a name, root first. The name need not be registered."""
    normalized = normalize_name(name)
    return AncestorsResponse(name=normalized, ancestors=ancestors(normalized))


@router.get(
    "/domains/{name}/rewards",
    response_model=RewardResponse,
    summary="Cumulative reward credited to a domain",
)
async def get_domain_rewards(
    name: str,
    service: RegistryService = Depends(get_registry_service),
) -> RewardResponse:
    return RewardResponse(
        name=normalize_name(name), total_reward=service.get_reward_for_domain(name)
    )


@router.get(
    "/controllers/{controller}/domains",
    response_model=ControllerDomainsResponse,
    summary="List a controller's domains",
    description="Page through a controller's domains in registration order. "
    "Offsets past the end return an empty page.",
)
async def get_controller_domains(
    controller: str,
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=10, ge=0, le=100),
    service: RegistryService = Depends(get_registry_service),
) -> ControllerDomainsResponse:
    domains = service.get_controller_domains(controller, offset, limit)
    return ControllerDomainsResponse(
        controller=controller,
        offset=offset,
        limit=limit,
        total=service.count_controller_domains(controller),
        domains=domains,
    )


@router.get("/fee", response_model=FeeResponse, summary="Current registration fee")
async def get_fee(service: RegistryService = Depends(get_registry_service)) -> FeeResponse:
    return FeeResponse(fee=service.get_fee())


@router.put(
    "/fee",
    response_model=FeeResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Invalid credentials"},
        403: {"model": ErrorResponse, "description": "Caller is not the registry owner"},
        409: {"model": ErrorResponse, "description": "Fee unchanged"},
        422: {"description": "Fee must be positive"},
    },
    summary="Change the registration fee",
    description="Owner only. Credentials (identity:password) are provided via HTTP BASIC AUTH.",
)
async def change_fee(
    request_data: ChangeFeeRequest,
    caller: str = Depends(get_authenticated_caller),
    service: RegistryService = Depends(get_registry_service),
) -> FeeResponse:
    try:
        new_fee = service.change_fee(caller, request_data.fee)
    except Unauthorized:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Caller is not the registry owner",
        ) from None
    except FeeMustBePositive as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(e),
        ) from None
    except FeeUnchanged as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e),
        ) from None
    return FeeResponse(fee=new_fee)


@router.get("/stats", response_model=StatsResponse, summary="Registry counters")
async def get_stats(service: RegistryService = Depends(get_registry_service)) -> StatsResponse:
    return StatsResponse(fee=service.get_fee(), total_domains=service.get_total_domains())


@router.get(
    "/events",
    response_model=list[EventResponse],
    summary="Query the event log",
    description="Events matching every given filter, in emission order.",
)
async def get_events(
    kind: EventKind | None = None,
    controller: str | None = None,
    name: str | None = None,
    service: RegistryService = Depends(get_registry_service),
) -> list[EventResponse]:
    return [
        EventResponse(
            sequence=event.sequence,
            kind=event.kind,
            name=event.name,
            controller=event.controller,
            amount=event.amount,
            occurred_at=event.occurred_at,
        )
        for event in service.get_events(kind=kind, controller=controller, name=name)
    ]
