"""Companies House adapter."""

from __future__ import annotations

from .client import CompaniesHouseClient
from .schema import CompanySearchItem, CompanySearchResponse

__all__ = ["CompaniesHouseClient", "CompanySearchItem", "CompanySearchResponse"]
