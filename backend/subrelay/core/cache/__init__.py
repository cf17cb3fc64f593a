"""Translation cache package.

This package provides:
- TranslationCache: exact and fuzzy lookup over a SQL-backed store
- Similarity helpers used for fuzzy matching
"""

from .similarity import content_hash, edit_distance, similarity
from .translation_cache import (
    CacheRecord,
    CacheStats,
    FuzzyMatch,
    TranslationCache,
)

__all__ = [
    "TranslationCache",
    "CacheRecord",
    "CacheStats",
    "FuzzyMatch",
    "content_hash",
    "edit_distance",
    "similarity",
]
