"""
Registry domain service - Hierarchical name registry engine.

This module contains the core business logic of the registry: claiming
names for a fee, rewarding the controllers of registered ancestors, and
changing the fee.

Registry State Invariants
=========================

- A registered name is never removed, overwritten or re-registered.
- A registered name's controller is never the null identity.
- Each controller's name list is append-only, in registration order,
  and every entry matches exactly one record controlled by that key.
- The total domain counter equals the number of registered records.
- For every registration: fee == total distributed + owner payout.

Atomicity
=========

register_domain and change_fee run inside one store transaction and one
treasury transaction. The store holds a global lock for the whole call,
and any exception (failed precondition, refused transfer) rolls back
every record, ledger entry, event and balance change made by the call.
"""

import logging
from dataclasses import dataclass

from .exceptions import (
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
from .hierarchy import is_second_level, normalize_name
from .ports import (
    NULL_IDENTITY,
    Authorizer,
    DomainRecord,
    EventKind,
    PaymentPolicy,
    RegistrationReceipt,
    RegistryEvent,
    RegistryStore,
    Treasury,
)
from .rewards import FlatReward, RewardPolicy, distribute_rewards

logger = logging.getLogger(__name__)


@dataclass
class RegistryService:
    """
    Domain service for the hierarchical name registry.

    Orchestrates registration: name normalization, precondition checks,
    record persistence, reward distribution and payouts.
    """

    store: RegistryStore
    treasury: Treasury
    authorizer: Authorizer
    reward_policy: RewardPolicy = FlatReward(0)
    payment_policy: PaymentPolicy = PaymentPolicy.EXACT
    second_level_only: bool = False
    reject_unchanged_fee: bool = True

    def register_domain(
        self,
        name: str,
        controller: str,
        paid_amount: int,
        payer: str | None = None,
    ) -> RegistrationReceipt:
        """
        Register a name for a controller.

        Preconditions are checked in order, first failure wins: name not
        empty, name not registered, payment matches the policy, controller
        and payer not null, second-level restriction (when enabled).

        Args:
            name: Dotted name (will be normalized)
            controller: Identity that will control the name
            paid_amount: Value sent with the registration
            payer: Identity receiving any refund (defaults to controller)

        Returns:
            RegistrationReceipt describing fee split and payouts

        Raises:
            InvalidDomainName: If the name is empty
            DomainAlreadyRegistered: If the name is already registered
            InsufficientPayment: If the payment violates the policy
            InvalidController: If controller or payer is the null identity
            NotSecondLevelDomain: If second-level mode rejects the name
            TransferFailed: If any payout is refused
            RewardBudgetExceeded: If rewards would exceed the fee
        """
        normalized_name = self._normalize_name(name)
        controller = controller.strip()
        refund_to = payer.strip() if payer is not None else controller

        try:
            with self.store.transaction() as session, self.treasury.transaction():
                if not normalized_name:
                    raise InvalidDomainName(name)

                existing = session.get_domain(normalized_name)
                if existing is not None and existing.registered:
                    raise DomainAlreadyRegistered(normalized_name)

                fee = session.get_fee()
                if not self._payment_accepted(paid_amount, fee):
                    raise InsufficientPayment(fee, paid_amount)

                if self._is_null_identity(controller):
                    raise InvalidController(controller)
                if self._is_null_identity(refund_to):
                    raise InvalidController(refund_to)

                if self.second_level_only and not is_second_level(normalized_name):
                    raise NotSecondLevelDomain(normalized_name)

                session.insert_domain(DomainRecord(name=normalized_name, controller=controller))
                session.append_event(
                    RegistryEvent(
                        kind=EventKind.DOMAIN_REGISTERED,
                        name=normalized_name,
                        controller=controller,
                    )
                )

                reward = self.reward_policy(fee)
                distribution = distribute_rewards(session, self.treasury, normalized_name, reward)
                if distribution.total_distributed > fee:
                    raise RewardBudgetExceeded(fee, distribution.total_distributed)

                owner_payout = fee - distribution.total_distributed
                self._pay(self.authorizer.owner, owner_payout)

                refund = paid_amount - fee
                self._pay(refund_to, refund)
        except (TransferFailed, RewardBudgetExceeded) as e:
            logger.warning("Registration of %s aborted: %s", normalized_name, e)
            raise

        logger.info(
            "Registered %s for %s (distributed %s to %d ancestor(s))",
            normalized_name,
            controller,
            distribution.total_distributed,
            len(distribution.credited_ancestors),
        )
        return RegistrationReceipt(
            name=normalized_name,
            controller=controller,
            fee=fee,
            reward_per_ancestor=reward,
            total_distributed=distribution.total_distributed,
            owner_payout=owner_payout,
            refund=refund,
            rewarded_ancestors=distribution.credited_ancestors,
        )

    def change_fee(self, caller: str, new_fee: int) -> int:
        """
        Change the registration fee.

        Args:
            caller: Identity requesting the change
            new_fee: New fee, must be positive

        Returns:
            The new fee

        Raises:
            Unauthorized: If caller is not the registry owner
            FeeMustBePositive: If new_fee <= 0
            FeeUnchanged: If strict mode is on and new_fee equals the current fee
        """
        if not self.authorizer.is_owner(caller):
            raise Unauthorized(caller)
        if new_fee <= 0:
            raise FeeMustBePositive(new_fee)

        with self.store.transaction() as session:
            if self.reject_unchanged_fee and session.get_fee() == new_fee:
                raise FeeUnchanged(new_fee)
            session.set_fee(new_fee)
            session.append_event(RegistryEvent(kind=EventKind.FEE_CHANGED, amount=new_fee))

        logger.info("Registration fee changed to %s by %s", new_fee, caller)
        return new_fee

    def get_controller_domains(self, controller: str, offset: int, limit: int) -> list[str]:
        """
        Page through the names a controller registered, in registration order.

        Out-of-range offsets and a zero limit yield an empty list.

        Raises:
            ValueError: If offset or limit is negative
        """
        if offset < 0 or limit < 0:
            raise ValueError("offset and limit must not be negative")
        if limit == 0:
            return []
        return self.store.get_controller_domains(controller, offset, limit)

    def count_controller_domains(self, controller: str) -> int:
        return self.store.count_controller_domains(controller)

    def get_fee(self) -> int:
        return self.store.get_fee()

    def get_total_domains(self) -> int:
        return self.store.get_total_domains()

    def get_domain(self, name: str) -> DomainRecord | None:
        return self.store.get_domain(self._normalize_name(name))

    def is_registered(self, name: str) -> bool:
        record = self.get_domain(name)
        return record is not None and record.registered

    def get_reward_for_domain(self, name: str) -> int:
        """Cumulative reward credited to a name, zero if never credited."""
        return self.store.get_reward(self._normalize_name(name))

    def get_events(
        self,
        kind: EventKind | None = None,
        controller: str | None = None,
        name: str | None = None,
    ) -> list[RegistryEvent]:
        """Events matching all given filters, in emission order."""
        normalized_name = self._normalize_name(name) if name is not None else None
        return list(self.store.iter_events(kind=kind, controller=controller, name=normalized_name))

    def _payment_accepted(self, paid_amount: int, fee: int) -> bool:
        if self.payment_policy == PaymentPolicy.REFUND_EXCESS:
            return paid_amount >= fee
        return paid_amount == fee

    def _pay(self, recipient: str, amount: int) -> None:
        """Transfer a positive amount, raising TransferFailed on refusal."""
        if amount <= 0:
            return
        if not self.treasury.transfer(recipient, amount):
            raise TransferFailed(recipient, amount)

    def _normalize_name(self, name: str) -> str:
        """
        Normalize a domain name for consistent storage and lookup.

        Applies: strip whitespace + lowercase
        """
        return normalize_name(name)

    def _is_null_identity(self, identity: str) -> bool:
        identity = identity.strip()
        return not identity or identity.lower() == NULL_IDENTITY
