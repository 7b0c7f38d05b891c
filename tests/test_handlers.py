"""
Tests for explicit handler identity registration.
"""

import pytest

from exchangelog.core.handlers import UNKNOWN_HANDLER, HandlerRegistry


class TestHandlerRegistry:

    def test_register_returns_function_unchanged(self):
        registry = HandlerRegistry()

        async def get_user():
            return None

        decorated = registry.register("GetUser")(get_user)

        assert decorated is get_user
        assert registry.identity_for(get_user) == "GetUser"
        assert get_user in registry
        assert len(registry) == 1

    def test_unregistered_is_unknown(self):
        registry = HandlerRegistry()

        def other():
            return None

        assert registry.identity_for(other) == UNKNOWN_HANDLER
        assert registry.identity_for(None) == UNKNOWN_HANDLER

    def test_unhashable_endpoint_is_unknown(self):
        registry = HandlerRegistry()
        assert registry.identity_for([]) == UNKNOWN_HANDLER
        assert [] not in registry

    def test_blank_identity_rejected(self):
        registry = HandlerRegistry()
        with pytest.raises(ValueError):
            registry.register("")
        with pytest.raises(ValueError):
            registry.register("   ")

    def test_conflicting_identity_rejected(self):
        registry = HandlerRegistry()

        def handler():
            return None

        registry.register("First")(handler)
        # Same identity again is harmless
        registry.register("First")(handler)

        with pytest.raises(ValueError):
            registry.register("Second")(handler)
        assert registry.identity_for(handler) == "First"
