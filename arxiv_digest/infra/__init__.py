"""Infra layer utilities (tag and digest storage)."""

from .storage import DigestStore, SQLiteManager, TagStore

__all__ = ["DigestStore", "SQLiteManager", "TagStore"]
