"""
Reward policies and the reward distributor.

Registering a name pays a flat reward to the controller of every
already-registered ancestor. There is no decay: each qualifying
ancestor receives the same amount, in decomposer order (root first).
"""

import logging
from dataclasses import dataclass, field
from typing import Protocol

from .exceptions import TransferFailed
from .hierarchy import ancestors
from .ports import EventKind, RegistryEvent, RegistrySession, Treasury

logger = logging.getLogger(__name__)

BASIS_POINTS = 10_000


class RewardPolicy(Protocol):
    """Maps the registration fee to the reward paid per ancestor."""

    def __call__(self, fee: int) -> int: ...


@dataclass(frozen=True)
class FlatReward:
    """Constant reward per ancestor, independent of the fee."""

    amount: int

    def __call__(self, fee: int) -> int:
        return self.amount


@dataclass(frozen=True)
class PercentageReward:
    """Reward as a share of the fee in basis points, rounded down."""

    rate_bps: int

    def __call__(self, fee: int) -> int:
        return fee * self.rate_bps // BASIS_POINTS


def build_reward_policy(mode: str, amount: int = 0, rate_bps: int = 0) -> RewardPolicy:
    """
    Create a reward policy from configuration values.

    Args:
        mode: "flat" or "percentage"
        amount: Reward per ancestor for flat mode
        rate_bps: Basis points of the fee for percentage mode

    Raises:
        ValueError: If mode is unknown or a value is out of range
    """
    if mode == "flat":
        if amount < 0:
            raise ValueError(f"Flat reward must not be negative, got {amount}")
        return FlatReward(amount)
    if mode == "percentage":
        if not 0 <= rate_bps <= BASIS_POINTS:
            raise ValueError(f"Reward rate must be within 0..{BASIS_POINTS} bps, got {rate_bps}")
        return PercentageReward(rate_bps)
    raise ValueError(f"Unknown reward mode: {mode}")


@dataclass
class Distribution:
    """Result of one reward distribution pass."""

    total_distributed: int = 0
    credited_ancestors: list[str] = field(default_factory=list)


def distribute_rewards(
    session: RegistrySession,
    treasury: Treasury,
    name: str,
    reward_per_ancestor: int,
) -> Distribution:
    """
    Pay reward_per_ancestor to the controller of each registered ancestor.

    Unregistered ancestors are skipped, so sparse hierarchies still reward
    the registered levels. Each credit updates the reward ledger, transfers
    the value and appends a RewardDistributed event, in decomposer order.

    Must run inside the caller's store and treasury transactions.

    Raises:
        TransferFailed: If the treasury refuses a payout
    """
    distribution = Distribution()
    if not name or reward_per_ancestor == 0:
        return distribution

    for ancestor in ancestors(name):
        record = session.get_domain(ancestor)
        if record is None or not record.registered:
            continue

        session.credit_reward(ancestor, reward_per_ancestor)
        if not treasury.transfer(record.controller, reward_per_ancestor):
            raise TransferFailed(record.controller, reward_per_ancestor)
        session.append_event(
            RegistryEvent(
                kind=EventKind.REWARD_DISTRIBUTED,
                name=ancestor,
                amount=reward_per_ancestor,
            )
        )
        logger.debug("Rewarded %s (%s) with %s", ancestor, record.controller, reward_per_ancestor)

        distribution.total_distributed += reward_per_ancestor
        distribution.credited_ancestors.append(ancestor)

    return distribution
