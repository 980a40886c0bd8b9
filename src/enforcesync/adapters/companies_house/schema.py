"""Companies House search response schemas."""

from __future__ import annotations

import logging
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field

from enforcesync.domain.ports import CompanyRecord

log = logging.getLogger(__name__)


class CompaniesHouseBaseModel(BaseModel):
    model_config = ConfigDict(extra="allow")
    _logged_extra_keys: ClassVar[set[str]] = set()

    def model_post_init(self, _context: object, /) -> None:
        extras = self.__pydantic_extra__
        if not extras:
            return
        new_keys = set(extras).difference(self._logged_extra_keys)
        if not new_keys:
            return
        self._logged_extra_keys.update(new_keys)
        log.debug(
            "Companies House %s: unmodeled keys: %s",
            type(self).__name__,
            ", ".join(sorted(new_keys)),
        )


class CompanySearchItem(CompaniesHouseBaseModel):
    company_number: str
    title: str
    company_status: str | None = None
    company_type: str | None = None
    address_snippet: str | None = None

    def to_record(self) -> CompanyRecord:
        return CompanyRecord(
            company_number=self.company_number,
            company_name=self.title,
            company_status=self.company_status,
            company_type=self.company_type,
            address=self.address_snippet,
        )


class CompanySearchResponse(CompaniesHouseBaseModel):
    items: list[CompanySearchItem] = Field(default_factory=list)
    total_results: int | None = None
    items_per_page: int | None = None
    start_index: int | None = None
