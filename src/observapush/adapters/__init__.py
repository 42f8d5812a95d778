"""Adapters for hosts, transports, frameworks and logging."""
