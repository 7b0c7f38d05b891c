"""
Handler Registry

Endpoints declare a stable identity when they are registered, and the
middleware looks that identity up for the endpoint that served a request.

Usage:
    @router.get("/users/{user_id}")
    @handlers.register("GetUser")
    async def get_user(user_id: int): ...

The decorator returns the function unchanged, so it must sit below the
router decorator for the router to see the registered function.
"""

from typing import Any, Callable, Dict, Optional, TypeVar

__all__ = ["HandlerRegistry", "UNKNOWN_HANDLER", "handlers"]

UNKNOWN_HANDLER = "unknown"

F = TypeVar("F", bound=Callable[..., Any])


class HandlerRegistry:
    """Maps endpoint callables to the identity they were registered with."""

    def __init__(self):
        self._identities: Dict[Callable[..., Any], str] = {}

    def register(self, identity: str) -> Callable[[F], F]:
        """
        Decorator recording a stable identity for an endpoint.

        Args:
            identity: Name written to the "handler" field of exchange records

        Raises:
            ValueError: If identity is blank, or the endpoint is already
                registered under a different identity
        """
        if not identity or not identity.strip():
            raise ValueError("Handler identity must be a non-empty string")

        def decorator(endpoint: F) -> F:
            existing = self._identities.get(endpoint)
            if existing is not None and existing != identity:
                raise ValueError(
                    f"Endpoint {endpoint!r} already registered as '{existing}'"
                )
            self._identities[endpoint] = identity
            return endpoint

        return decorator

    def identity_for(self, endpoint: Optional[Callable[..., Any]]) -> str:
        """Return the registered identity, or UNKNOWN_HANDLER."""
        if endpoint is None:
            return UNKNOWN_HANDLER
        try:
            return self._identities.get(endpoint, UNKNOWN_HANDLER)
        except TypeError:
            # Unhashable endpoint objects cannot have been registered.
            return UNKNOWN_HANDLER

    def __contains__(self, endpoint: object) -> bool:
        try:
            return endpoint in self._identities
        except TypeError:
            return False

    def __len__(self) -> int:
        return len(self._identities)


# Default registry shared by the application's routers
handlers = HandlerRegistry()
