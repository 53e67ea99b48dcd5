"""
Data layer for the time tracker.

Contains the key/value storage, typed records and the built-in tables.
"""

# Storage functions and records are imported as needed
# from .database import read_blob, write_blob, etc.

__all__ = []
