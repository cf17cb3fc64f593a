"""Translation cache database model."""

from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from subrelay.models.database.base import Base


class CacheEntry(Base):
    """A previously produced translation, keyed by source content."""

    __tablename__ = "translation_cache"
    __table_args__ = (
        UniqueConstraint("content_hash", "language_pair", name="uq_cache_hash_pair"),
        Index("idx_cache_pair_length", "language_pair", "source_length"),
        Index("idx_cache_last_used", "last_used"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # SHA-256 of the raw source text
    content_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    language_pair: Mapped[str] = mapped_column(String(32), nullable=False)

    source_text: Mapped[str] = mapped_column(Text, nullable=False)
    translated_text: Mapped[str] = mapped_column(Text, nullable=False)
    # Character length of source_text, used by the fuzzy prefilter
    source_length: Mapped[int] = mapped_column(Integer, nullable=False)

    # Usage statistics
    use_count: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    last_used: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
