"""RevSnap competitor price tracking and pricing optimization service."""

__version__ = "0.1.0"
