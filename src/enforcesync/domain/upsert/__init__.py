"""Duplicate-safe upsert of enforcement records."""

from __future__ import annotations

from .engine import UpsertEngine, UpsertResult, to_entity
from .events import ALL_CHANNELS, EventBus, OutcomeEvent, Workflow, channel_for
from .fields import CASE_SYNC_FIELDS, NOTICE_SYNC_FIELDS, diff_sync_fields, sync_fields_for

__all__ = [
    "ALL_CHANNELS",
    "CASE_SYNC_FIELDS",
    "NOTICE_SYNC_FIELDS",
    "EventBus",
    "OutcomeEvent",
    "UpsertEngine",
    "UpsertResult",
    "Workflow",
    "channel_for",
    "diff_sync_fields",
    "sync_fields_for",
    "to_entity",
]
