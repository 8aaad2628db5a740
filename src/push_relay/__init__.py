"""push-relay - push notification delivery through device messaging gateways.

This package authenticates against a push gateway, translates a
notification into the gateway wire format, and delivers it concurrently to
a batch of destinations, streaming back one result per destination.
"""

from push_relay.__main__ import main

__all__ = ["main"]
