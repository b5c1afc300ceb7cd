"""Authorization adapters."""

from .static import StaticOwnerAuthorizer

__all__ = ["StaticOwnerAuthorizer"]
