"""Status service for a chat cluster: least-loaded server assignment and login tokens in Redis."""

__version__ = "0.1.0"