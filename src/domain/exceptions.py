"""
Domain exceptions - Semantic error types for the name registry.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.
Every exception carries the context a caller needs to act on it.
"""


class RegistryError(Exception):
    """Base class for registry domain errors."""

    pass


class InvalidDomainName(RegistryError):
    """Domain name is empty after normalization."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Invalid domain name: {name!r}")
        self.name = name


class DomainAlreadyRegistered(RegistryError):
    """Domain name is already registered and can never be claimed again."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Domain already registered: {name}")
        self.name = name


class InsufficientPayment(RegistryError):
    """Paid amount does not satisfy the active payment policy."""

    def __init__(self, required_fee: int, paid_amount: int) -> None:
        super().__init__(
            f"Incorrect payment: required fee is {required_fee}, paid {paid_amount}"
        )
        self.required_fee = required_fee
        self.paid_amount = paid_amount


class InvalidController(RegistryError):
    """Controller is the null identity."""

    def __init__(self, controller: str) -> None:
        super().__init__(f"Invalid controller identity: {controller!r}")
        self.controller = controller


class NotSecondLevelDomain(RegistryError):
    """Name does not contain exactly one dot while second-level mode is on."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Only second-level domains may be registered: {name}")
        self.name = name


class Unauthorized(RegistryError):
    """Caller is not the registry owner."""

    def __init__(self, caller: str) -> None:
        super().__init__(f"Caller is not the registry owner: {caller}")
        self.caller = caller


class FeeMustBePositive(RegistryError):
    """New registration fee is zero or negative."""

    def __init__(self, fee: int) -> None:
        super().__init__(f"Registration fee must be positive, got {fee}")
        self.fee = fee


class FeeUnchanged(RegistryError):
    """New registration fee equals the current one (strict mode)."""

    def __init__(self, fee: int) -> None:
        super().__init__(f"Registration fee is already {fee}")
        self.fee = fee


class TransferFailed(RegistryError):
    """Value transfer collaborator refused a payout."""

    def __init__(self, recipient: str, amount: int) -> None:
        super().__init__(f"Transfer of {amount} to {recipient} failed")
        self.recipient = recipient
        self.amount = amount


class RewardBudgetExceeded(RegistryError):
    """Ancestor rewards would exceed the registration fee."""

    def __init__(self, fee: int, total_rewards: int) -> None:
        super().__init__(
            f"Ancestor rewards ({total_rewards}) exceed the registration fee ({fee})"
        )
        self.fee = fee
        self.total_rewards = total_rewards
