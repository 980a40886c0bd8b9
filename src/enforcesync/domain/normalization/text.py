"""Deterministic text, date and amount helpers shared by the agency normalizers."""

from __future__ import annotations

import re
import unicodedata
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from enforcesync.domain.model import BusinessType

_LEGAL_SUFFIXES: dict[str, str] = {
    "limited": "ltd",
    "ltd": "ltd",
    "plc": "plc",
    "llp": "llp",
    "company": "co",
    "co": "co",
}
_DOTTED_SUFFIXES = (
    (re.compile(r"\bp\.\s*l\.\s*c\.?"), "plc"),
    (re.compile(r"\bl\.\s*l\.\s*p\.?"), "llp"),
)
_POSTCODE = re.compile(r"([A-Z]{1,2}\d[A-Z\d]?\s*\d[A-Z]{2})$", re.IGNORECASE)
_UK_POSTCODE = re.compile(r"[A-Z]{1,2}\d[A-Z\d]?\d[A-Z]{2}")
_BUSINESS_TYPES: tuple[tuple[re.Pattern[str], BusinessType], ...] = (
    (re.compile(r"\bLimited\b|\bLtd\b\.?", re.IGNORECASE), BusinessType.LIMITED_COMPANY),
    (re.compile(r"\bPLC\b", re.IGNORECASE), BusinessType.PLC),
    (re.compile(r"\bLLP\b", re.IGNORECASE), BusinessType.PARTNERSHIP),
    (re.compile(r"\bLLC\b", re.IGNORECASE), BusinessType.LIMITED_COMPANY),
    (re.compile(r"\bInc\b\.?|\bIncorporated\b", re.IGNORECASE), BusinessType.LIMITED_COMPANY),
    (re.compile(r"\bCorp\b\.?|\bCorporation\b", re.IGNORECASE), BusinessType.LIMITED_COMPANY),
)
_DATE_FORMATS = ("%d/%m/%Y", "%d-%m-%Y")
_AMOUNT_NOISE = re.compile(r"[£$,\s]")
_REGISTRATION_NUMBER = re.compile(r"[A-Z]{2}\d{6}")


def normalize_company_name(value: str | None) -> str:
    """Comparison form of an offender name.

    Case-folded, punctuation-free, single-spaced, with legal suffix variants collapsed so
    "ACME Limited", "Acme Ltd." and "acme  ltd" compare equal.
    """

    if not value:
        return ""
    text = unicodedata.normalize("NFKC", value).casefold()
    for pattern, replacement in _DOTTED_SUFFIXES:
        text = pattern.sub(replacement, text)
    text = "".join(
        " " if unicodedata.category(ch)[0] in {"P", "S"} else ch for ch in text
    )
    return " ".join(_LEGAL_SUFFIXES.get(token, token) for token in text.split())


def name_trigrams(name: str) -> frozenset[str]:
    """Three-character windows of a normalized name, skipping windows that are all space."""

    return frozenset(
        gram for gram in (name[i : i + 3] for i in range(len(name) - 2)) if gram.strip()
    )


def clean_name(value: str | None) -> str | None:
    if value is None:
        return None
    cleaned = " ".join(value.split())
    return cleaned or None


def normalize_address(value: str | None) -> str | None:
    cleaned = clean_name(value)
    if cleaned is None:
        return None
    return re.sub(r",\s*,", ",", cleaned)


def extract_postcode(address: str | None) -> str | None:
    """Trailing UK postcode of an address, upper-cased."""

    if not address:
        return None
    match = _POSTCODE.search(address.strip())
    if match is None:
        return None
    return normalize_postcode(match.group(1))


def normalize_postcode(value: str | None) -> str | None:
    """Upper-cased postcode; UK postcodes become outward code, one space, inward code."""

    if not value or not value.strip():
        return None
    compact = "".join(value.upper().split())
    if _UK_POSTCODE.fullmatch(compact):
        return f"{compact[:-3]} {compact[-3:]}"
    return " ".join(value.upper().split())


def detect_business_type(name: str | None) -> BusinessType:
    if not name:
        return BusinessType.OTHER
    for pattern, business_type in _BUSINESS_TYPES:
        if pattern.search(name):
            return business_type
    return BusinessType.OTHER


def parse_date(value: object) -> date | None:
    """Parse ISO, DD/MM/YYYY or DD-MM-YYYY dates; anything unparseable becomes ``None``."""

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()  # noqa: DTZ007
        except ValueError:
            continue
    return None


def parse_amount(value: object) -> Decimal:
    """Monetary amount from "£1,234.50"-style text or a number; unparseable is zero."""

    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool) or value is None:
        return Decimal(0)
    if isinstance(value, int | float):
        return Decimal(str(value))
    if not isinstance(value, str):
        return Decimal(0)
    cleaned = _AMOUNT_NOISE.sub("", value)
    if not cleaned:
        return Decimal(0)
    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        return Decimal(0)
    return amount if amount.is_finite() else Decimal(0)


def join_breaches(breaches: object) -> str | None:
    """Flatten a breach list into "a; b" text; blank entries are dropped."""

    if isinstance(breaches, str):
        return breaches.strip() or None
    if not isinstance(breaches, list | tuple):
        return None
    parts = [str(item).strip() for item in breaches if str(item).strip()]
    return "; ".join(parts) or None


def normalize_text_field(value: object) -> object:
    """Comparison form for a synchronisable field value: strings stripped, blanks are None."""

    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


def normalize_registration_number(value: str | None) -> str | None:
    """Well-formed company registration number, or ``None``.

    Accepts eight digits (shorter numeric forms are zero-padded) or a two-letter prefix
    followed by six digits.
    """

    if not value:
        return None
    text = "".join(value.split()).upper()
    if text.isdigit() and len(text) <= 8:
        return text.zfill(8)
    if _REGISTRATION_NUMBER.fullmatch(text):
        return text
    return None
