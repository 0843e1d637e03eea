"""Shared fixtures."""

import pytest

from biblio_sync.config.settings import Settings

from tests.payloads import BASE_URL


@pytest.fixture
def config() -> Settings:
    return Settings(
        api_base_url=BASE_URL,
        page_size=20,
        request_timeout=5.0,
        search_debounce_seconds=0.05,
        log_format="text",
    )
