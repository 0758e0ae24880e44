"""Asynchronous shop order statistics."""

__version__ = "0.1.0"
