"""Companies House search payloads and a recording mock-transport handler."""

from __future__ import annotations

from collections.abc import Callable

import httpx

type Handler = Callable[[httpx.Request], httpx.Response]

BASE_URL = "https://api.company-information.service.gov.uk/"


class RecordingHandler:
    """``httpx.MockTransport`` handler that remembers every request it answers."""

    def __init__(self, respond: Handler) -> None:
        self._respond = respond
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._respond(request)


def search_payload(*items: dict[str, object]) -> dict[str, object]:
    return {"items": list(items), "total_results": len(items), "start_index": 0}


def search_item(
    company_number: str = "01234567",
    title: str = "ACME WASTE LIMITED",
    **fields: object,
) -> dict[str, object]:
    item: dict[str, object] = {
        "company_number": company_number,
        "title": title,
        "company_status": "active",
        "company_type": "ltd",
        "address_snippet": "1 Dock Road, Hull, HU1 2AB",
        "kind": "searchresults#company",
    }
    item.update(fields)
    return item
