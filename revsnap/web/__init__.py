"""HTTP API for RevSnap."""

from .server import create_app

__all__ = ["create_app"]
