"""
Server-side product analytics.

Events are keyed by player (distinct_id) and grouped by the game event the
photo belongs to, so funnels can be cut per event. Nothing here may raise
into a request: a broken analytics pipe only costs a warning.
"""

import logging
from typing import Any, Optional

import posthog as _posthog

from flick.core.config import get_settings

logger = logging.getLogger(__name__)

EVENT_GROUP = "event"

_initialized = False


def init_posthog() -> None:
    global _initialized
    settings = get_settings()

    if not (settings.posthog_enabled and settings.posthog_api_key):
        logger.info("PostHog off: no API key or posthog_enabled=False")
        return

    _posthog.api_key = settings.posthog_api_key
    _posthog.host = settings.posthog_host
    _posthog.debug = settings.debug
    _initialized = True
    logger.info("PostHog sending to %s", settings.posthog_host)


def shutdown_posthog() -> None:
    """Send queued events before the process exits."""
    if not _initialized:
        return
    _posthog.flush()
    _posthog.shutdown()
    logger.info("PostHog queue flushed")


def capture(
    player_id: str,
    event: str,
    properties: Optional[dict[str, Any]] = None,
    event_id: Optional[str] = None,
) -> None:
    """
    Record one analytics event for a player.

    event_id, when known, is copied into the properties and used as the
    PostHog group key so reactions roll up per game event.
    """
    if not _initialized:
        return

    props = {**(properties or {})}
    groups = None
    if event_id:
        props["event_id"] = event_id
        groups = {EVENT_GROUP: event_id}

    try:
        _posthog.capture(distinct_id=player_id, event=event, properties=props, groups=groups)
    except Exception as e:
        logger.warning("Dropped analytics event %s: %s", event, e, extra={"player_id": player_id})
