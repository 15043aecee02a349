"""Scholarly-paper acquisition and tag reconciliation pipeline."""

__version__ = "0.1.0"
