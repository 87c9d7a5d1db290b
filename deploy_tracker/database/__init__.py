"""Database infrastructure module."""

from .connection import DatabaseConnectionManager

__all__ = ["DatabaseConnectionManager"]
