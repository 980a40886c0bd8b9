"""Raw agency records to canonical cases and notices."""

from __future__ import annotations

from .registry import NormalizerRegistry, RecordNormalizer
from .text import (
    clean_name,
    detect_business_type,
    extract_postcode,
    join_breaches,
    name_trigrams,
    normalize_address,
    normalize_company_name,
    normalize_postcode,
    normalize_registration_number,
    normalize_text_field,
    parse_amount,
    parse_date,
)

__all__ = [
    "NormalizerRegistry",
    "RecordNormalizer",
    "clean_name",
    "detect_business_type",
    "extract_postcode",
    "join_breaches",
    "name_trigrams",
    "normalize_address",
    "normalize_company_name",
    "normalize_postcode",
    "normalize_registration_number",
    "normalize_text_field",
    "parse_amount",
    "parse_date",
]
