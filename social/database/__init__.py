"""
Social database helpers - collection names and index bootstrap.
"""

from social.database.indexes import INDEXES, ensure_indexes

__all__ = ["INDEXES", "ensure_indexes"]
