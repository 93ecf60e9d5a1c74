"""Nested-set trees for SQLAlchemy asyncio models."""

__version__ = "0.1.0"
