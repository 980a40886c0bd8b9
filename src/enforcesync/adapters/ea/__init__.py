"""Public interface for the Environment Agency adapter."""

from __future__ import annotations

from .schema import EaActionType, EaRecordPayload
from .translator import EA_REGISTER_URL, fallback_record_id, parse_ea_case

__all__ = [
    "EA_REGISTER_URL",
    "EaActionType",
    "EaRecordPayload",
    "fallback_record_id",
    "parse_ea_case",
]
