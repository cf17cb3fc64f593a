"""Persistent translation cache with exact and fuzzy lookup.

Entries are keyed by (content hash, language pair). Lookups never take the
write lock, so any number of readers proceed concurrently; every mutation
(save, batch save, usage refresh, purge) is serialized through a single
``asyncio.Lock`` per handle. Several processes may share one SQLite file:
WAL mode keeps readers unblocked and lock contention on writes is retried.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, AsyncIterator, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from subrelay.core.cache.similarity import content_hash, similarity
from subrelay.core.errors import CacheError
from subrelay.models.database import CacheEntry, create_engine_and_sessions, init_db

logger = logging.getLogger(__name__)

# Rows per INSERT statement, well below SQLite's bound-parameter limit
_UPSERT_CHUNK = 100


@dataclass
class CacheRecord:
    """A translation to be written into the cache."""

    source_text: str
    translated_text: str
    language_pair: str


@dataclass
class FuzzyMatch:
    """Result of a fuzzy lookup."""

    content_hash: str
    source_text: str
    translated_text: str
    language_pair: str
    similarity: float


@dataclass
class CacheStats:
    """Cache usage statistics."""

    total_entries: int = 0
    hit_rate: float = 0.0  # approximation from average use count, 0..1
    estimated_savings_usd: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_entries": self.total_entries,
            "hit_rate": self.hit_rate,
            "estimated_savings_usd": self.estimated_savings_usd,
        }


def _is_lock_contention(exc: BaseException) -> bool:
    return isinstance(exc, OperationalError) and "locked" in str(exc).lower()


_retry_on_lock = retry(
    retry=retry_if_exception(_is_lock_contention),
    stop=stop_after_attempt(5),
    wait=wait_exponential(multiplier=0.05, min=0.05, max=1),
    reraise=True,
)


class TranslationCache:
    """Durable store for reusing prior translations.

    Construct one handle at startup and pass it to every pipeline that
    should share it:

        cache = TranslationCache("sqlite+aiosqlite:///./cache.db")
        await cache.initialize()
        ...
        await cache.close()
    """

    def __init__(
        self,
        database_url: str,
        *,
        busy_timeout_ms: int = 5000,
        candidate_limit: int = 500,
        tokens_per_entry: int = 300,
        usd_per_million_tokens: float = 0.15,
    ):
        """Initialize the cache handle.

        Args:
            database_url: SQLAlchemy async database URL
            busy_timeout_ms: SQLite lock wait for cross-process writers
            candidate_limit: Maximum rows scored per fuzzy lookup
            tokens_per_entry: Assumed tokens per entry for savings estimate
            usd_per_million_tokens: Assumed price for savings estimate
        """
        self.database_url = database_url
        self.candidate_limit = candidate_limit
        self.tokens_per_entry = tokens_per_entry
        self.usd_per_million_tokens = usd_per_million_tokens

        self._engine, self._session_maker = create_engine_and_sessions(
            database_url, busy_timeout_ms=busy_timeout_ms
        )
        self._write_lock = asyncio.Lock()
        self._pending_refreshes: Set[asyncio.Task] = set()

    async def initialize(self) -> None:
        """Create the cache table if needed."""
        async with self._storage_errors("initialize"):
            await init_db(self._engine)
        logger.info(f"[Cache] Ready: {self._engine.url.render_as_string(hide_password=True)}")

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def exact_lookup(self, text: str, language_pair: str) -> Optional[str]:
        """Look up a translation of exactly this text.

        Returns:
            Cached translation, or None when absent
        """
        digest = content_hash(text)
        async with self._storage_errors("exact lookup"):
            async with self._session_maker() as session:
                result = await session.execute(
                    select(CacheEntry.translated_text)
                    .where(
                        CacheEntry.content_hash == digest,
                        CacheEntry.language_pair == language_pair,
                    )
                    .limit(1)
                )
                translated = result.scalar_one_or_none()

        if translated is None:
            return None

        self._schedule_usage_refresh(digest, language_pair)
        return translated

    async def fuzzy_lookup(
        self,
        text: str,
        language_pair: str,
        threshold: float,
    ) -> Optional[FuzzyMatch]:
        """Find the most similar cached source text for this language pair.

        An exact match is tried first. Otherwise candidates whose stored
        length lies in ``[threshold * len, len / threshold]`` are fetched,
        most recently used first, and the best one scoring at least
        ``threshold`` wins.

        Args:
            text: Source text
            language_pair: Active language pair
            threshold: Minimum similarity in (0, 1]

        Returns:
            Best match, or None
        """
        if not 0.0 < threshold <= 1.0:
            raise ValueError(f"threshold must be in (0, 1], got {threshold}")

        digest = content_hash(text)
        async with self._storage_errors("fuzzy lookup"):
            async with self._session_maker() as session:
                result = await session.execute(
                    select(CacheEntry.source_text, CacheEntry.translated_text)
                    .where(
                        CacheEntry.content_hash == digest,
                        CacheEntry.language_pair == language_pair,
                    )
                    .limit(1)
                )
                exact = result.first()
                if exact is not None:
                    self._schedule_usage_refresh(digest, language_pair)
                    return FuzzyMatch(
                        content_hash=digest,
                        source_text=exact.source_text,
                        translated_text=exact.translated_text,
                        language_pair=language_pair,
                        similarity=1.0,
                    )

                text_len = len(text)
                min_len = int(text_len * threshold)
                max_len = int(text_len / threshold)
                result = await session.execute(
                    select(
                        CacheEntry.content_hash,
                        CacheEntry.source_text,
                        CacheEntry.translated_text,
                    )
                    .where(
                        CacheEntry.language_pair == language_pair,
                        CacheEntry.source_length.between(min_len, max_len),
                    )
                    .order_by(CacheEntry.last_used.desc())
                    .limit(self.candidate_limit)
                )
                candidates = [tuple(row) for row in result.all()]

        if not candidates:
            return None

        best = await asyncio.to_thread(_best_candidate, text, candidates, threshold)
        if best is None:
            return None

        best_hash, best_source, best_translation, best_score = best
        self._schedule_usage_refresh(best_hash, language_pair)
        return FuzzyMatch(
            content_hash=best_hash,
            source_text=best_source,
            translated_text=best_translation,
            language_pair=language_pair,
            similarity=best_score,
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def save(self, text: str, translation: str, language_pair: str) -> None:
        """Insert or update a single translation."""
        await self.save_batch([CacheRecord(text, translation, language_pair)])

    async def save_batch(self, records: Iterable[CacheRecord]) -> int:
        """Upsert many translations in one transaction (all or nothing).

        On conflict the stored translation is overwritten, ``use_count`` is
        incremented and ``last_used`` refreshed.

        Returns:
            Number of distinct entries written
        """
        now = datetime.utcnow()
        rows: Dict[Tuple[str, str], Dict[str, Any]] = {}
        for record in records:
            digest = content_hash(record.source_text)
            rows[(digest, record.language_pair)] = {
                "content_hash": digest,
                "language_pair": record.language_pair,
                "source_text": record.source_text,
                "translated_text": record.translated_text,
                "source_length": len(record.source_text),
                "use_count": 1,
                "created_at": now,
                "last_used": now,
            }

        if not rows:
            return 0

        async with self._storage_errors("save"):
            async with self._write_lock:
                await self._upsert(list(rows.values()))
        return len(rows)

    @_retry_on_lock
    async def _upsert(self, rows: List[Dict[str, Any]]) -> None:
        async with self._session_maker() as session:
            async with session.begin():
                for start in range(0, len(rows), _UPSERT_CHUNK):
                    await session.execute(self._upsert_statement(rows[start:start + _UPSERT_CHUNK]))

    def _upsert_statement(self, rows: Sequence[Dict[str, Any]]):
        if self._engine.dialect.name == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        else:
            from sqlalchemy.dialects.sqlite import insert

        stmt = insert(CacheEntry).values(list(rows))
        return stmt.on_conflict_do_update(
            index_elements=[CacheEntry.content_hash, CacheEntry.language_pair],
            set_={
                "translated_text": stmt.excluded.translated_text,
                "last_used": stmt.excluded.last_used,
                "use_count": CacheEntry.use_count + 1,
            },
        )

    # ------------------------------------------------------------------
    # Usage statistics (best effort, off the read path)
    # ------------------------------------------------------------------

    def _schedule_usage_refresh(self, digest: str, language_pair: str) -> None:
        task = asyncio.get_running_loop().create_task(
            self._refresh_usage(digest, language_pair)
        )
        self._pending_refreshes.add(task)
        task.add_done_callback(self._on_refresh_done)

    def _on_refresh_done(self, task: asyncio.Task) -> None:
        self._pending_refreshes.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning(f"[Cache] Usage refresh failed: {exc}")

    async def _refresh_usage(self, digest: str, language_pair: str) -> None:
        async with self._write_lock:
            await self._touch(digest, language_pair)

    @_retry_on_lock
    async def _touch(self, digest: str, language_pair: str) -> None:
        # A row removed by a concurrent purge simply matches nothing
        async with self._session_maker() as session:
            async with session.begin():
                await session.execute(
                    update(CacheEntry)
                    .where(
                        CacheEntry.content_hash == digest,
                        CacheEntry.language_pair == language_pair,
                    )
                    .values(
                        last_used=datetime.utcnow(),
                        use_count=CacheEntry.use_count + 1,
                    )
                )

    async def drain(self) -> None:
        """Wait for all outstanding usage refreshes to finish."""
        while self._pending_refreshes:
            await asyncio.gather(*list(self._pending_refreshes), return_exceptions=True)

    # ------------------------------------------------------------------
    # Statistics and maintenance
    # ------------------------------------------------------------------

    async def stats(self) -> CacheStats:
        """Get entry count, approximate hit rate and estimated savings."""
        async with self._storage_errors("stats"):
            async with self._session_maker() as session:
                result = await session.execute(
                    select(func.count(CacheEntry.id), func.avg(CacheEntry.use_count))
                )
                total, avg_use_count = result.one()

        stats = CacheStats(total_entries=int(total or 0))
        avg = float(avg_use_count) if avg_use_count is not None else 0.0
        if avg > 0:
            stats.hit_rate = (avg - 1.0) / avg

        total_tokens = stats.total_entries * self.tokens_per_entry
        stats.estimated_savings_usd = (
            total_tokens / 1_000_000 * self.usd_per_million_tokens * stats.hit_rate
        )
        return stats

    async def purge(self) -> int:
        """Delete every entry and compact storage.

        Returns:
            Number of deleted entries
        """
        return await self._delete_where(None)

    async def purge_older_than(self, age: timedelta) -> int:
        """Delete entries not used within ``age`` and compact storage.

        Returns:
            Number of deleted entries
        """
        return await self._delete_where(datetime.utcnow() - age)

    async def _delete_where(self, cutoff: Optional[datetime]) -> int:
        stmt = delete(CacheEntry)
        if cutoff is not None:
            stmt = stmt.where(CacheEntry.last_used < cutoff)

        async with self._storage_errors("purge"):
            async with self._write_lock:
                async with self._session_maker() as session:
                    async with session.begin():
                        result = await session.execute(stmt)
                        deleted = result.rowcount or 0
                await self._vacuum()

        logger.info(f"[Cache] Purged {deleted} entries (cutoff={cutoff})")
        return deleted

    async def compact(self) -> None:
        """Reclaim storage space."""
        async with self._storage_errors("compact"):
            async with self._write_lock:
                await self._vacuum()

    async def _vacuum(self) -> None:
        if self._engine.dialect.name not in ("sqlite", "postgresql"):
            return
        async with self._engine.connect() as conn:
            conn = await conn.execution_options(isolation_level="AUTOCOMMIT")
            await conn.exec_driver_sql("VACUUM")

    async def close(self) -> None:
        """Finish background work and release connections."""
        await self.drain()
        await self._engine.dispose()

    @asynccontextmanager
    async def _storage_errors(self, operation: str) -> AsyncIterator[None]:
        try:
            yield
        except SQLAlchemyError as e:
            logger.error(f"[Cache] {operation} failed: {e}")
            raise CacheError(f"cache {operation} failed: {e}") from e


def _best_candidate(
    text: str,
    candidates: List[Tuple[str, str, str]],
    threshold: float,
) -> Optional[Tuple[str, str, str, float]]:
    """Score candidates and keep the best one meeting the threshold."""
    best = None
    best_score = 0.0
    for digest, source_text, translated_text in candidates:
        score = similarity(text, source_text, threshold)
        if score >= threshold and score > best_score:
            best_score = score
            best = (digest, source_text, translated_text, score)
    return best
