"""Asyncio TCP server and client with packet framing and protocol-routed handler contexts."""

__version__ = "0.1.0"