from __future__ import annotations

from typing import Any

import pytest

from analytics_sync.bootstrap.container import AppContainer, build_container
from analytics_sync.domain.errors import UpstreamError
from analytics_sync.domain.models import Group, ProfileMeta, SyncSettings
from tests.fakes import FakeAnalyticsSource, FakeClock, FakeDirectory, InMemorySpreadsheetStore


@pytest.fixture
def make_sync():
    def _factory(
        *,
        groups: list[Group],
        profiles: list[ProfileMeta],
        source: FakeAnalyticsSource | None = None,
        store: InMemorySpreadsheetStore | None = None,
        directory_failure: UpstreamError | None = None,
        **settings_overrides: Any,
    ) -> tuple[AppContainer, InMemorySpreadsheetStore, FakeClock]:
        settings_values: dict[str, Any] = {"max_attempts": 1, "write_spacing_ms": 0, "credentials_path": "unused.json"}
        settings_values.update(settings_overrides)
        settings = SyncSettings("customer-1", "token", **settings_values)
        clock = FakeClock()
        fake_store = store or InMemorySpreadsheetStore()
        container = build_container(
            settings,
            clock=clock,
            source=source or FakeAnalyticsSource(),
            directory=FakeDirectory(groups, profiles, failure=directory_failure),
            store=fake_store,
        )
        return container, fake_store, clock

    return _factory
