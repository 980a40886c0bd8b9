"""Shared fixtures for Companies House adapter tests."""

from __future__ import annotations

from collections.abc import Callable

import httpx
import pytest

from enforcesync.adapters.companies_house import CompaniesHouseClient
from enforcesync.adapters.http_resilience import ResilientClient
from enforcesync.config import CompaniesHouseConfig, HttpRetryPolicy, ResilienceConfig
from tests.helpers.companies_house import BASE_URL, Handler, RecordingHandler

type ClientFactory = Callable[[Handler], tuple[CompaniesHouseClient, RecordingHandler]]


@pytest.fixture
def make_client() -> ClientFactory:
    def factory(respond: Handler) -> tuple[CompaniesHouseClient, RecordingHandler]:
        handler = RecordingHandler(respond)
        resilience = ResilienceConfig(
            name="companies_house",
            base_url=BASE_URL,
            retry=HttpRetryPolicy(total=0),
            cache=None,
        )

        def client_factory(config: ResilienceConfig) -> ResilientClient:
            return ResilientClient(config, transport=httpx.MockTransport(handler))

        client = CompaniesHouseClient(
            config=CompaniesHouseConfig(api_key="key", resilience=resilience),
            client_factory=client_factory,
        )
        return client, handler

    return factory
