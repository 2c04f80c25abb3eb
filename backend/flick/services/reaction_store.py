"""
Per-player reaction toggle history.

Answers "has this player marked reaction K on photo P?" for optimistic
UI, and flips that mark on toggle. The in-memory cache is the source of
truth once loaded; every toggle writes the full cache blob back to
durable storage in the background. A failed write is logged and not
retried, so cache and storage may diverge until the next successful
write. Aggregate counts are authoritative in Supabase, not here.

Stored value: JSON object {photo_id: {"heart"?: bool, "fire"?: bool, "hundred"?: bool}}.
A missing photo key means all three kinds are unset.
"""

import asyncio
import json
import logging
from typing import Optional, Union

from flick.core.storage import KeyValueStorage
from flick.models.reaction import ReactionKind

logger = logging.getLogger(__name__)

ReactionMarks = dict[str, dict[str, bool]]


class ReactionToggleStore:
    """Reaction marks for one player, loaded once and persisted eagerly."""

    def __init__(self, storage: KeyValueStorage, storage_key: str) -> None:
        self._storage = storage
        self._storage_key = storage_key
        self._cache: ReactionMarks = {}
        self._loaded = False
        self._load_lock: Optional[asyncio.Lock] = None
        self._pending_writes: set[asyncio.Task] = set()

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def has_pending_writes(self) -> bool:
        return bool(self._pending_writes)

    async def load(self) -> None:
        """
        Populate the cache from storage once. Read or parse errors yield an empty cache.

        Concurrent callers share one storage read; later callers wait for it
        instead of replacing a cache that may already hold their toggles.
        """
        if self._loaded:
            return

        if self._load_lock is None:
            self._load_lock = asyncio.Lock()

        async with self._load_lock:
            if not self._loaded:
                await self._read_storage()

    async def _read_storage(self) -> None:
        try:
            raw = await self._storage.get_item(self._storage_key)
            data = json.loads(raw) if raw else {}
            if not isinstance(data, dict):
                raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
            self._cache = data
        except Exception:
            logger.error(
                "Failed to load reactions cache for key=%s", self._storage_key, exc_info=True
            )
            self._cache = {}

        self._loaded = True

    def has_reacted(self, photo_id: str, kind: Union[ReactionKind, str]) -> bool:
        """Read the cache only; callers must have awaited load()."""
        return self._cache.get(photo_id, {}).get(ReactionKind(kind).value) is True

    def toggle(self, photo_id: str, kind: Union[ReactionKind, str]) -> bool:
        """Flip the mark and return the new state (True means the reaction was added)."""
        key = ReactionKind(kind).value
        marks = self._cache.setdefault(photo_id, {})
        new_state = not marks.get(key, False)
        marks[key] = new_state

        self._schedule_persist()
        return new_state

    async def get_user_reactions(self) -> ReactionMarks:
        await self.load()
        return {photo_id: dict(marks) for photo_id, marks in self._cache.items()}

    async def clear_reactions(self, photo_id: str) -> None:
        """Forget every mark on a photo and persist immediately."""
        await self.load()
        self._cache.pop(photo_id, None)
        await self._storage.set_item(self._storage_key, json.dumps(self._cache))

    async def flush(self) -> None:
        """Wait for background writes started so far."""
        if self._pending_writes:
            await asyncio.gather(*list(self._pending_writes))

    def _schedule_persist(self) -> None:
        task = asyncio.get_running_loop().create_task(self._persist())
        self._pending_writes.add(task)
        task.add_done_callback(self._pending_writes.discard)

    async def _persist(self) -> None:
        # Serialize at write time so the latest full cache is what lands.
        try:
            await self._storage.set_item(self._storage_key, json.dumps(self._cache))
        except Exception:
            logger.error(
                "Failed to persist reactions cache for key=%s", self._storage_key, exc_info=True
            )
