"""Proxy panel building blocks: configuration, logging, SQLite storage and migrations, traffic and connection tracking, and web helpers."""

__version__ = "1.3.0"