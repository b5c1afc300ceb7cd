"""
Domain layer - Pure business logic with zero framework imports.

This package contains the core business logic for the hierarchical name
registry. It defines its own port interfaces for infrastructure
abstraction, ensuring true hexagonal architecture decoupling.
"""

from .exceptions import (
    DomainAlreadyRegistered,
    FeeMustBePositive,
    FeeUnchanged,
    InsufficientPayment,
    InvalidController,
    InvalidDomainName,
    NotSecondLevelDomain,
    RegistryError,
    RewardBudgetExceeded,
    TransferFailed,
    Unauthorized,
)
from .hierarchy import ancestors, normalize_name
from .ports import (
    NULL_IDENTITY,
    Authorizer,
    DomainRecord,
    EventKind,
    PaymentPolicy,
    RegistrationReceipt,
    RegistryEvent,
    RegistrySession,
    RegistryStore,
    Treasury,
)
from .registry import RegistryService
from .rewards import FlatReward, PercentageReward, build_reward_policy, distribute_rewards

__all__ = [
    "NULL_IDENTITY",
    "Authorizer",
    "DomainAlreadyRegistered",
    "DomainRecord",
    "EventKind",
    "FeeMustBePositive",
    "FeeUnchanged",
    "FlatReward",
    "InsufficientPayment",
    "InvalidController",
    "InvalidDomainName",
    "NotSecondLevelDomain",
    "PaymentPolicy",
    "PercentageReward",
    "RegistrationReceipt",
    "RegistryError",
    "RegistryEvent",
    "RegistryService",
    "RegistrySession",
    "RegistryStore",
    "RewardBudgetExceeded",
    "TransferFailed",
    "Treasury",
    "Unauthorized",
    "ancestors",
    "build_reward_policy",
    "distribute_rewards",
    "normalize_name",
]
