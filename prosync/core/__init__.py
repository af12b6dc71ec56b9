"""Core functionality"""
from .models import (Category, CategoryReport, ComparisonResult, ConflictEntry,
                     DirectoryEntry, Side, SyncDirection)

__all__ = [
    "Category", "CategoryReport", "ComparisonResult", "ConflictEntry",
    "DirectoryEntry", "Side", "SyncDirection",
]
