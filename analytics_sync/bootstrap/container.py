from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from analytics_sync.application.batch_writer import BatchWriter
from analytics_sync.application.orchestrator import SyncOrchestrator
from analytics_sync.application.rate_limiter import WriteRateLimiter
from analytics_sync.application.reconciler import OverlapReconciler
from analytics_sync.application.resilient_fetch import ResilientFetchClient
from analytics_sync.application.retry_policy import BackoffSettings, RetryPolicy
from analytics_sync.domain.models import SyncSettings
from analytics_sync.domain.ports import AnalyticsSource, Clock, ProfileDirectory, SpreadsheetStore
from analytics_sync.infrastructure.clock import SystemClock
from analytics_sync.infrastructure.sheets_store import GspreadSpreadsheetStore
from analytics_sync.infrastructure.sprout_client import SproutAnalyticsClient


@dataclass
class AppContainer:
    settings: SyncSettings
    clock: Clock
    store: SpreadsheetStore
    fetcher: ResilientFetchClient
    limiter: WriteRateLimiter
    orchestrator: SyncOrchestrator


def build_container(
    settings: SyncSettings,
    *,
    clock: Clock | None = None,
    source: AnalyticsSource | None = None,
    directory: ProfileDirectory | None = None,
    store: SpreadsheetStore | None = None,
) -> AppContainer:
    clock = clock or SystemClock()
    if source is None or directory is None:
        sprout = SproutAnalyticsClient(
            customer_id=settings.customer_id,
            api_token=settings.api_token,
            base_url=settings.api_base_url,
            timezone=settings.posts_timezone,
            timeout_seconds=settings.request_timeout_seconds,
        )
        source = source or sprout
        directory = directory or sprout
    store = store or GspreadSpreadsheetStore(
        Path(settings.credentials_path),
        folder_id=settings.drive_folder_id,
    )

    fetch_policy = RetryPolicy(
        BackoffSettings(
            base_ms=settings.fetch_backoff_base_ms,
            max_attempts=settings.max_attempts,
            auth_max_attempts=settings.auth_max_attempts,
        ),
        clock,
    )
    write_policy = RetryPolicy(
        BackoffSettings(
            base_ms=settings.write_backoff_base_ms,
            max_attempts=settings.max_attempts,
            auth_max_attempts=settings.auth_max_attempts,
        ),
        clock,
    )
    limiter = WriteRateLimiter(clock, settings.write_spacing_ms / 1000)
    fetcher = ResilientFetchClient(source, fetch_policy)
    reconciler = OverlapReconciler(store, write_policy, limiter=limiter)
    writer = BatchWriter(
        store,
        write_policy,
        limiter,
        safety_margin_rows=settings.capacity_safety_margin_rows,
        min_columns=settings.min_columns,
    )
    orchestrator = SyncOrchestrator(
        settings=settings,
        directory=directory,
        fetcher=fetcher,
        store=store,
        policy=write_policy,
        reconciler=reconciler,
        writer=writer,
        clock=clock,
    )
    return AppContainer(
        settings=settings,
        clock=clock,
        store=store,
        fetcher=fetcher,
        limiter=limiter,
        orchestrator=orchestrator,
    )
