"""Utility modules for RevSnap."""

from .export import Exporter

__all__ = [
    "Exporter",
]
