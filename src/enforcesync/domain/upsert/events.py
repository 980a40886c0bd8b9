"""Outcome notifications, split into channels by triggering workflow."""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from enforcesync.domain.model import UpsertOutcome

if TYPE_CHECKING:
    from collections.abc import Callable

    from enforcesync.domain.model import EnforcementRecord, RecordKind

log = logging.getLogger(__name__)

ALL_CHANNELS = "*"


class Workflow(StrEnum):
    INGESTION = "ingestion"
    CORRECTION = "correction"


@dataclass(frozen=True, slots=True, kw_only=True)
class OutcomeEvent:
    channel: str
    outcome: UpsertOutcome
    workflow: Workflow
    record: EnforcementRecord
    changed_fields: tuple[str, ...] = ()


type EventHandler = Callable[[OutcomeEvent], None]


def channel_for(kind: RecordKind, outcome: UpsertOutcome, workflow: Workflow) -> str:
    """Channel name such as ``case:created``, ``case:scraped:updated`` or ``notice:synced``."""

    if outcome is UpsertOutcome.CREATED:
        return f"{kind}:created"
    if workflow is Workflow.CORRECTION:
        return f"{kind}:synced"
    return f"{kind}:scraped:{outcome}"


class EventBus:
    """In-process publish/subscribe; a failing handler never affects the publisher."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._handlers: defaultdict[str, list[EventHandler]] = defaultdict(list)

    def subscribe(self, channel: str, handler: EventHandler) -> None:
        with self._lock:
            self._handlers[channel].append(handler)

    def publish(self, event: OutcomeEvent) -> None:
        with self._lock:
            handlers = [
                *self._handlers.get(event.channel, ()),
                *self._handlers.get(ALL_CHANNELS, ()),
            ]
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                log.exception("Event handler failed for %s", event.channel)

