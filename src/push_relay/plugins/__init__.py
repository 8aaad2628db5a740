"""Push service plugins and the registry that resolves them."""

from push_relay.plugins.registry import PushServiceRegistry

__all__ = ["PushServiceRegistry"]
