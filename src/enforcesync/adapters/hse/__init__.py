"""Public interface for the HSE adapter."""

from __future__ import annotations

from .schema import HseCasePayload, HseNoticePayload
from .translator import HSE_NOTICE_URL, normalize_action_type, parse_hse_case, parse_hse_notice

__all__ = [
    "HSE_NOTICE_URL",
    "HseCasePayload",
    "HseNoticePayload",
    "normalize_action_type",
    "parse_hse_case",
    "parse_hse_notice",
]
