"""Check whether a TCP service accepts connections within a bounded time."""

__version__ = "1.0.0"
