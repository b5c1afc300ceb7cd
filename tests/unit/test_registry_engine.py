"""
Behavioural tests for the registry engine over in-memory adapters.

Tests verify:
- Registration uniqueness and state invariants
- Reward fan-out and ledger accumulation
- Fee conservation between ancestors and the owner
- Pagination over a controller's domains
- Atomicity when a payout transfer is refused
"""

import pytest

from src.adapters.repository.memory import InMemoryRegistryStore
from src.domain.exceptions import (
    DomainAlreadyRegistered,
    InsufficientPayment,
    RewardBudgetExceeded,
    TransferFailed,
)
from src.domain.ports import EventKind, PaymentPolicy
from src.domain.registry import RegistryService
from src.domain.rewards import FlatReward, PercentageReward

FEE = 10_000
REWARD = 1_000
OWNER = "owner"


class TestRegistrationUniqueness:
    """A name can be registered exactly once."""

    def test_second_registration_fails_regardless_of_controller(
        self, service: RegistryService
    ) -> None:
        service.register_domain("example.com", "alice", FEE)
        with pytest.raises(DomainAlreadyRegistered):
            service.register_domain("example.com", "alice", FEE)
        with pytest.raises(DomainAlreadyRegistered):
            service.register_domain("example.com", "bob", FEE)

    def test_normalized_duplicates_rejected(self, service: RegistryService) -> None:
        service.register_domain("example.com", "alice", FEE)
        with pytest.raises(DomainAlreadyRegistered):
            service.register_domain(" EXAMPLE.com", "bob", FEE)

    def test_original_controller_kept(self, service: RegistryService) -> None:
        service.register_domain("example.com", "alice", FEE)
        with pytest.raises(DomainAlreadyRegistered):
            service.register_domain("example.com", "bob", FEE)
        record = service.get_domain("example.com")
        assert record is not None
        assert record.controller == "alice"

    def test_total_domains_tracks_registrations(self, service: RegistryService) -> None:
        assert service.get_total_domains() == 0
        service.register_domain("example03.com", "alice", FEE)
        assert service.get_total_domains() == 1
        service.register_domain("example04.com", "bob", FEE)
        assert service.get_total_domains() == 2

    def test_failed_registration_does_not_count(self, service: RegistryService) -> None:
        with pytest.raises(InsufficientPayment):
            service.register_domain("example.com", "alice", FEE - 1)
        assert service.get_total_domains() == 0
        assert not service.is_registered("example.com")


class TestRewardFanOut:
    """Registrations reward every registered ancestor with the same amount."""

    def test_each_registered_ancestor_rewarded(
        self, service: RegistryService, treasury
    ) -> None:
        service.register_domain("org", "user2", FEE)
        service.register_domain("test.org", "user3", FEE)
        assert treasury.balance_of("user2") == REWARD

        receipt = service.register_domain("new.test.org", "user4", FEE)

        assert receipt.rewarded_ancestors == ["org", "test.org"]
        assert receipt.total_distributed == 2 * REWARD
        assert treasury.balance_of("user2") == 2 * REWARD
        assert treasury.balance_of("user3") == REWARD

    def test_owner_receives_fee_minus_rewards(self, service: RegistryService, treasury) -> None:
        service.register_domain("org", "user2", FEE)
        service.register_domain("test.org", "user3", FEE)
        service.register_domain("example.test.org", "user4", FEE)

        assert treasury.balance_of(OWNER) == FEE + (FEE - REWARD) + (FEE - 2 * REWARD)

    def test_ledger_accumulates_additively(self, service: RegistryService) -> None:
        service.register_domain("org", "user2", FEE)
        service.register_domain("test.org", "user3", FEE)
        service.register_domain("new.test.org", "user4", FEE)
        assert service.get_reward_for_domain("org") == 2 * REWARD
        assert service.get_reward_for_domain("test.org") == REWARD

        service.register_domain("other.org", "user5", FEE)
        assert service.get_reward_for_domain("org") == 3 * REWARD
        assert service.get_reward_for_domain("test.org") == REWARD

    def test_unrewarded_name_has_zero_ledger(self, service: RegistryService) -> None:
        assert service.get_reward_for_domain("never.registered") == 0

    def test_sparse_hierarchy(self, service: RegistryService, treasury) -> None:
        service.register_domain("c", "carol", FEE)
        receipt = service.register_domain("a.b.c", "alice", FEE)
        assert receipt.rewarded_ancestors == ["c"]
        assert treasury.balance_of("carol") == REWARD

    def test_percentage_policy(self, make_service, treasury) -> None:
        service = make_service(reward_policy=PercentageReward(2_500))
        service.register_domain("org", "alice", FEE)
        receipt = service.register_domain("test.org", "bob", FEE)
        assert receipt.reward_per_ancestor == FEE // 4
        assert treasury.balance_of("alice") == FEE // 4

    def test_reward_distributed_events_in_decomposer_order(
        self, service: RegistryService
    ) -> None:
        service.register_domain("com", "a", FEE)
        service.register_domain("example.com", "b", FEE)
        service.register_domain("sub.example.com", "c", FEE)
        service.register_domain("x.sub.example.com", "d", FEE)

        events = service.get_events(kind=EventKind.REWARD_DISTRIBUTED)
        last_three = [(e.name, e.amount) for e in events[-3:]]
        assert last_three == [("com", REWARD), ("example.com", REWARD), ("sub.example.com", REWARD)]


class TestFeeConservation:
    """fee == total distributed to ancestors + owner payout."""

    @pytest.mark.parametrize(
        "names",
        [
            ["com"],
            ["com", "example.com"],
            ["com", "example.com", "a.example.com", "b.a.example.com"],
            ["c", "a.b.c", "z.a.b.c"],
        ],
    )
    def test_every_receipt_conserves_fee(self, service: RegistryService, names: list[str]) -> None:
        for name in names:
            receipt = service.register_domain(name, "someone", FEE)
            assert receipt.fee == receipt.total_distributed + receipt.owner_payout

    def test_balances_sum_to_fees_paid(self, service: RegistryService, treasury) -> None:
        names = ["com", "example.com", "a.example.com", "b.a.example.com"]
        controllers = ["w", "x", "y", "z"]
        for name, controller in zip(names, controllers):
            service.register_domain(name, controller, FEE)

        paid_out = sum(treasury.balance_of(account) for account in controllers + [OWNER])
        assert paid_out == FEE * len(names)

    def test_refund_returns_excess(self, make_service, treasury) -> None:
        service = make_service(payment_policy=PaymentPolicy.REFUND_EXCESS)
        receipt = service.register_domain("com", "alice", FEE + 250, payer="payer")
        assert receipt.refund == 250
        assert treasury.balance_of("payer") == 250
        assert treasury.balance_of(OWNER) == FEE

    def test_rewards_above_fee_abort(self, make_service) -> None:
        service = make_service(reward_policy=FlatReward(FEE // 2 + 1))
        service.register_domain("com", "a", FEE)
        service.register_domain("example.com", "b", FEE)

        with pytest.raises(RewardBudgetExceeded):
            service.register_domain("sub.example.com", "c", FEE)
        assert not service.is_registered("sub.example.com")


class TestChangeFeeEffects:
    """Fee changes apply to subsequent registrations."""

    def test_new_fee_required_after_change(self, service: RegistryService) -> None:
        service.change_fee(OWNER, 20_000)
        assert service.get_fee() == 20_000
        with pytest.raises(InsufficientPayment) as exc_info:
            service.register_domain("example.com", "alice", FEE)
        assert exc_info.value.required_fee == 20_000
        service.register_domain("example.com", "alice", 20_000)

    def test_fee_changed_event(self, service: RegistryService) -> None:
        service.change_fee(OWNER, 20_000)
        events = service.get_events(kind=EventKind.FEE_CHANGED)
        assert [e.amount for e in events] == [20_000]


class TestControllerDomains:
    """Pagination over a controller's registration-ordered names."""

    @pytest.fixture
    def names(self, service: RegistryService) -> list[str]:
        names = [f"name{i}.com" for i in range(5)]
        for name in names:
            service.register_domain(name, "alice", FEE)
        service.register_domain("other.com", "bob", FEE)
        return names

    def test_full_page(self, service: RegistryService, names: list[str]) -> None:
        assert service.get_controller_domains("alice", 0, 10) == names

    @pytest.mark.parametrize(("offset", "limit"), [(0, 2), (1, 3), (3, 5), (4, 1)])
    def test_window(self, service: RegistryService, names: list[str], offset: int, limit: int) -> None:
        page = service.get_controller_domains("alice", offset, limit)
        assert len(page) == min(limit, len(names) - offset)
        assert page == names[offset : offset + limit]

    @pytest.mark.parametrize("offset", [5, 6, 100])
    def test_offset_past_end_is_empty(
        self, service: RegistryService, names: list[str], offset: int
    ) -> None:
        assert service.get_controller_domains("alice", offset, 10) == []

    def test_zero_limit_is_empty(self, service: RegistryService, names: list[str]) -> None:
        assert service.get_controller_domains("alice", 0, 0) == []

    def test_unknown_controller_is_empty(self, service: RegistryService, names: list[str]) -> None:
        assert service.get_controller_domains("nobody", 0, 10) == []

    def test_count(self, service: RegistryService, names: list[str]) -> None:
        assert service.count_controller_domains("alice") == 5
        assert service.count_controller_domains("bob") == 1


class TestEventLog:
    """Event queries filter by kind, controller and name in emission order."""

    def test_filter_by_controller(self, service: RegistryService) -> None:
        service.register_domain("first.com", "alice", FEE)
        service.register_domain("other.com", "bob", FEE)
        service.register_domain("second.com", "alice", FEE)

        events = service.get_events(kind=EventKind.DOMAIN_REGISTERED, controller="alice")
        assert [e.name for e in events] == ["first.com", "second.com"]

    def test_sequences_increase(self, service: RegistryService) -> None:
        service.register_domain("first.com", "alice", FEE)
        service.register_domain("second.com", "alice", FEE)
        sequences = [e.sequence for e in service.get_events()]
        assert sequences == sorted(sequences)
        assert len(set(sequences)) == len(sequences)

    def test_events_timestamped(self, service: RegistryService) -> None:
        service.register_domain("first.com", "alice", FEE)
        (event,) = service.get_events(name="first.com")
        assert event.occurred_at is not None


class TestAtomicity:
    """A refused transfer leaves no trace of the registration."""

    def test_refused_ancestor_payout_rolls_back_everything(
        self, service: RegistryService, store: InMemoryRegistryStore, treasury
    ) -> None:
        service.register_domain("org", "user2", FEE)
        service.register_domain("test.org", "user3", FEE)
        owner_balance = treasury.balance_of(OWNER)
        events_before = len(service.get_events())
        treasury.refuse.add("user3")

        with pytest.raises(TransferFailed):
            service.register_domain("new.test.org", "user4", FEE)

        assert not service.is_registered("new.test.org")
        assert service.get_controller_domains("user4", 0, 10) == []
        assert service.get_reward_for_domain("org") == REWARD
        assert service.get_reward_for_domain("test.org") == 0
        assert service.get_total_domains() == 2
        assert len(service.get_events()) == events_before
        # org's payout preceded the refused one and is undone too
        assert treasury.balance_of("user2") == REWARD
        assert treasury.balance_of(OWNER) == owner_balance

    def test_refused_owner_payout_rolls_back(self, service: RegistryService, treasury) -> None:
        treasury.refuse.add(OWNER)
        with pytest.raises(TransferFailed) as exc_info:
            service.register_domain("com", "alice", FEE)
        assert exc_info.value.recipient == OWNER
        assert service.get_total_domains() == 0

    def test_refused_refund_rolls_back(self, make_service, treasury) -> None:
        service = make_service(payment_policy=PaymentPolicy.REFUND_EXCESS)
        treasury.refuse.add("payer")
        with pytest.raises(TransferFailed):
            service.register_domain("com", "alice", FEE + 1, payer="payer")
        assert not service.is_registered("com")
        assert treasury.balance_of(OWNER) == 0

    def test_registry_usable_after_rollback(self, service: RegistryService, treasury) -> None:
        treasury.refuse.add(OWNER)
        with pytest.raises(TransferFailed):
            service.register_domain("com", "alice", FEE)
        treasury.refuse.clear()

        receipt = service.register_domain("com", "alice", FEE)
        assert receipt.owner_payout == FEE
        assert service.get_controller_domains("alice", 0, 10) == ["com"]
