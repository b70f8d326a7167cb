"""Asyncio event base, a TCP server with per-connection hooks, and an HTTP/2 request-reading session."""

__version__ = "0.1.0"
__all__ = ["events", "app_interface", "streams", "session", "service"]