"""
Hybrid push batching for reaction notifications.

Policy, per (photo, recipient) pair:
- The first reaction ever seen for the pair is pushed immediately and
  also opens a batch counting it. The pair is then recorded for the
  lifetime of the process and never gets another immediate push,
  however many batch cycles follow.
- Later reactions join the open batch (or open a new one after a
  flush). Each one restarts the window (sliding expiry); when the window
  elapses without new reactions, one aggregated push goes out and the
  batch is dropped once that send settles.

State is in-memory and process-local: pending batches and the
first-notification registry are lost on restart.

queue_reaction() never awaits, so the registry check and the batch
update for one pair run as a single step on the event loop. Dispatch
callbacks run as background tasks; their failures are logged and never
reach the caller (at-most-once, best effort).
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from flick.core.constants import REACTION_BATCH_WINDOW_SECONDS
from flick.core.timers import LoopTimers, TimerHandle, Timers

logger = logging.getLogger(__name__)

SendImmediate = Callable[[], Awaitable[None]]
SendBatched = Callable[[int, list[str]], Awaitable[None]]
BatchKey = tuple[str, str]  # (photo_id, recipient_id)


@dataclass
class PendingBatch:
    """An open aggregation window for one (photo, recipient) pair."""

    recipient_id: str
    photo_id: str
    reactor_names: set[str]
    reaction_count: int
    timer: TimerHandle


def format_batched_message(count: int, names: list[str]) -> tuple[str, str]:
    """
    Build (title, body) for an aggregated reaction push.

    The title counts reaction events; the body names unique reactors.
    """
    title = f"{count} New Reactions! 🔥"

    if len(names) == 1:
        body = f"{names[0]} reacted to your photo"
    elif len(names) == 2:
        body = f"{names[0]} and {names[1]} reacted to your photos"
    else:
        body = f"{names[0]}, {names[1]} and {len(names) - 2} others reacted to your photos"

    return title, body


class ReactionBatchingScheduler:
    """Decides immediate vs batched push for each reaction and owns the batch windows."""

    def __init__(
        self,
        timers: Optional[Timers] = None,
        window_seconds: float = REACTION_BATCH_WINDOW_SECONDS,
    ) -> None:
        self._timers = timers or LoopTimers()
        self.window_seconds = window_seconds
        self._pending: dict[BatchKey, PendingBatch] = {}
        self._first_sent: dict[str, set[str]] = {}  # photo_id -> recipient IDs
        self._in_flight: set[asyncio.Task] = set()

    # =========================================================================
    # Public API
    # =========================================================================

    def queue_reaction(
        self,
        photo_id: str,
        recipient_id: str,
        reactor_name: str,
        send_immediate: SendImmediate,
        send_batched: SendBatched,
    ) -> None:
        """
        Route one reaction on recipient's photo.

        The pair's first reaction calls send_immediate() and also opens a
        batch holding that reaction. Every reaction restarts the window, and
        send_batched(count, names) fires once it stays quiet for
        window_seconds. Self-reactions must be filtered by the caller.
        """
        key = (photo_id, recipient_id)
        sent_to = self._first_sent.setdefault(photo_id, set())

        if recipient_id not in sent_to:
            # Recorded before the send resolves: a failed send is not retried.
            sent_to.add(recipient_id)
            self._spawn(self._dispatch_immediate(photo_id, recipient_id, send_immediate))
            self._open_batch(key, reactor_name, send_batched)
            return

        batch = self._pending.get(key)
        if batch is None:
            # Previous window already flushed or was cancelled
            self._open_batch(key, reactor_name, send_batched)
            return

        batch.timer.cancel()
        batch.reactor_names.add(reactor_name)
        batch.reaction_count += 1
        batch.timer = self._start_timer(key, send_batched)
        logger.debug(
            "Added to batch: %d reactions from %d people",
            batch.reaction_count,
            len(batch.reactor_names),
        )

    def cancel_pending(self, photo_id: str, recipient_id: str) -> None:
        """Drop the open window for a pair without sending. The registry is untouched."""
        batch = self._pending.pop((photo_id, recipient_id), None)
        if batch is not None:
            batch.timer.cancel()
            logger.info(
                "Cancelled pending batch for photo %s, recipient %s", photo_id, recipient_id
            )

    def clear_all(self) -> None:
        """Cancel every window and forget which pairs already had their immediate push."""
        for batch in self._pending.values():
            batch.timer.cancel()
        self._pending.clear()
        self._first_sent.clear()
        logger.info("Cleared all pending reaction batches")

    def reset_first_notification(self, photo_id: str) -> None:
        self._first_sent.pop(photo_id, None)

    def has_sent_first(self, photo_id: str, recipient_id: str) -> bool:
        return recipient_id in self._first_sent.get(photo_id, ())

    def get_pending_info(self, photo_id: str, recipient_id: str) -> Optional[PendingBatch]:
        return self._pending.get((photo_id, recipient_id))

    def get_pending_count(self) -> int:
        """Total reactions waiting in open windows."""
        return sum(batch.reaction_count for batch in self._pending.values())

    async def drain(self) -> None:
        """Wait for dispatches already started (including ones they trigger)."""
        while self._in_flight:
            await asyncio.gather(*list(self._in_flight))

    # =========================================================================
    # Private Helpers
    # =========================================================================

    def _open_batch(self, key: BatchKey, reactor_name: str, send_batched: SendBatched) -> None:
        photo_id, recipient_id = key
        previous = self._pending.get(key)
        if previous is not None:
            # Only reachable after reset_first_notification()
            previous.timer.cancel()
        self._pending[key] = PendingBatch(
            recipient_id=recipient_id,
            photo_id=photo_id,
            reactor_names={reactor_name},
            reaction_count=1,
            timer=self._start_timer(key, send_batched),
        )
        logger.debug("Batch window opened for photo %s, recipient %s", photo_id, recipient_id)

    def _start_timer(self, key: BatchKey, send_batched: SendBatched) -> TimerHandle:
        return self._timers.call_later(self.window_seconds, lambda: self._flush(key, send_batched))

    def _flush(self, key: BatchKey, send_batched: SendBatched) -> None:
        batch = self._pending.get(key)
        if batch is None:
            return
        self._spawn(self._dispatch_batched(key, batch, send_batched))

    def _spawn(self, coro: Awaitable[None]) -> None:
        task = asyncio.ensure_future(coro)
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def _dispatch_immediate(
        self, photo_id: str, recipient_id: str, send_immediate: SendImmediate
    ) -> None:
        try:
            await send_immediate()
            logger.info(
                "First reaction notification sent immediately for photo %s",
                photo_id,
                extra={"photo_id": photo_id, "recipient_id": recipient_id},
            )
        except Exception:
            logger.error(
                "Failed to send immediate reaction notification for photo %s",
                photo_id,
                exc_info=True,
            )

    async def _dispatch_batched(
        self, key: BatchKey, batch: PendingBatch, send_batched: SendBatched
    ) -> None:
        names = list(batch.reactor_names)
        try:
            await send_batched(batch.reaction_count, names)
            logger.info(
                "Batched notification sent: %d reactions from %d people",
                batch.reaction_count,
                len(names),
                extra={
                    "photo_id": batch.photo_id,
                    "recipient_id": batch.recipient_id,
                    "batch_size": batch.reaction_count,
                },
            )
        except Exception:
            logger.error(
                "Failed to send batched reaction notification for photo %s",
                batch.photo_id,
                exc_info=True,
            )
        finally:
            # Reactions folded in while the send was in flight go with it.
            # A batch opened after a cancel is a different object and stays.
            if self._pending.get(key) is batch:
                del self._pending[key]
                batch.timer.cancel()
