"""Port for company-register lookups used as the strong-identifier source."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True, slots=True, kw_only=True)
class CompanyRecord:
    """One company-register search hit."""

    company_number: str
    company_name: str
    company_status: str | None = None
    company_type: str | None = None
    address: str | None = None

    @property
    def is_active(self) -> bool:
        return (self.company_status or "").casefold() == "active"


@runtime_checkable
class CompanyLookup(Protocol):
    """Search the company register by name.

    Implementations raise ``RateLimitedError`` when throttled and ``ExternalLookupError``
    for any other failure.
    """

    def search_companies(self, name: str, *, limit: int = 10) -> list[CompanyRecord]: ...
