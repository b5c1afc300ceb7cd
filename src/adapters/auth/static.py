"""
Static owner authorizer - Implements Authorizer protocol.

The registry has exactly one owner, fixed at startup from configuration.
"""

import secrets


class StaticOwnerAuthorizer:
    """
    Implements Authorizer protocol for a single configured owner.

    Uses structural subtyping - no explicit inheritance from Protocol.
    Identity comparison is constant-time.
    """

    def __init__(self, owner: str) -> None:
        if not owner:
            raise ValueError("Registry owner identity must not be empty")
        self._owner = owner

    @property
    def owner(self) -> str:
        return self._owner

    def is_owner(self, caller: str) -> bool:
        return secrets.compare_digest(caller.encode(), self._owner.encode())
