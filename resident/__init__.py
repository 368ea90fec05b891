"""Resident society client core: request executor and notification sync."""

__version__ = "0.3.0"
