"""Push transports for the log and metrics backends."""

from observapush.adapters.transport.http import HttpPushTransport, PushDispatcher
from observapush.adapters.transport.in_memory import InMemoryPushTransport

__all__ = ["HttpPushTransport", "InMemoryPushTransport", "PushDispatcher"]
