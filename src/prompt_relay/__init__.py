"""Reliable message delivery to chat-style web surfaces."""

__version__ = "0.1.0"
