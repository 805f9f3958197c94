from __future__ import annotations

from dataclasses import dataclass
import logging
import random
import time
from typing import Callable, Iterable, Sequence

from analytics_sync.application.batch_writer import BatchWriter
from analytics_sync.application.formatters.base import NetworkFormatter, Row
from analytics_sync.application.formatters.posts import PostFormatter
from analytics_sync.application.formatters.registry import FORMATTERS, POST_FORMATTERS
from analytics_sync.application.group_assembly import assemble_groups
from analytics_sync.application.normalizer import normalize, normalize_posts
from analytics_sync.application.reconciler import OverlapReconciler
from analytics_sync.application.resilient_fetch import ResilientFetchClient
from analytics_sync.application.retry_policy import RetryPolicy
from analytics_sync.core.errors import describe_error
from analytics_sync.core.metrics import MetricsRegistry, metrics_registry
from analytics_sync.core.observability import OperationContext, group_scope, log_event
from analytics_sync.core.operational_logging import log_operational_error
from analytics_sync.core.watchdog import RunWatchdog
from analytics_sync.domain.errors import DestinationResolutionError, UpstreamError
from analytics_sync.domain.models import (
    Destination,
    GroupProfiles,
    NetworkKind,
    ProfileMeta,
    SyncSettings,
    WriteWindow,
)
from analytics_sync.domain.ports import Clock, ProfileDirectory, SpreadsheetStore
from analytics_sync.domain.sync_models import (
    STATUS_COMPLETED,
    STATUS_NO_DATA,
    GroupResult,
    NetworkOutcome,
    RunSummary,
    error_status,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Target:
    label: str
    kind: NetworkKind
    profiles: tuple[ProfileMeta, ...]
    destination: Destination
    posts: bool = False


class SyncOrchestrator:
    """Drives groups -> profiles -> networks through fetch, reconcile and write.

    Groups run strictly one after another with a pause between them. A group's
    failure is recorded on its result and never interrupts the remaining groups.
    """

    def __init__(
        self,
        *,
        settings: SyncSettings,
        directory: ProfileDirectory,
        fetcher: ResilientFetchClient,
        store: SpreadsheetStore,
        policy: RetryPolicy,
        reconciler: OverlapReconciler,
        writer: BatchWriter,
        clock: Clock,
        rng: Callable[[], float] = random.random,
        formatters: dict[NetworkKind, NetworkFormatter] | None = None,
        post_formatters: dict[NetworkKind, PostFormatter] | None = None,
        metrics: MetricsRegistry = metrics_registry,
        watchdog_factory: Callable[..., RunWatchdog] = RunWatchdog,
    ) -> None:
        self._settings = settings
        self._directory = directory
        self._fetcher = fetcher
        self._store = store
        self._policy = policy
        self._reconciler = reconciler
        self._writer = writer
        self._clock = clock
        self._rng = rng
        self._formatters = formatters if formatters is not None else FORMATTERS
        self._post_formatters = post_formatters if post_formatters is not None else POST_FORMATTERS
        self._metrics = metrics
        self._watchdog_factory = watchdog_factory

    def run(
        self,
        window: WriteWindow,
        *,
        include_posts: bool = False,
        group_filter: Sequence[str] | None = None,
    ) -> RunSummary:
        summary = RunSummary(window_label=window.label())
        with OperationContext("analytics_sync") as operation, self._watchdog_factory(
            self._settings.watchdog_threshold_seconds, label=window.label()
        ) as watchdog:
            logger.info("Starting sync for %s (posts=%s)", window.label(), include_posts)
            try:
                groups = self._load_groups()
            except UpstreamError as exc:
                summary.fatal_error = f"Could not load groups/profiles: {describe_error(exc)}"
                log_operational_error(logger, "Profile directory unavailable", exc=exc)
                groups = []
            groups = _filter_groups(groups, group_filter)

            for index, group in enumerate(groups):
                summary.groups.append(self._run_group_safely(group, window, include_posts, operation.correlation_id))
                if index < len(groups) - 1:
                    logger.info("Waiting %.0fs before next group", self._settings.inter_group_delay_seconds)
                    self._clock.sleep(self._settings.inter_group_delay_seconds)
            summary.watchdog_fired = watchdog.fired
        summary.metrics = self._metrics.snapshot()
        return summary

    def _load_groups(self) -> list[GroupProfiles]:
        groups = self._fetcher.fetch("metadata.groups", self._directory.list_groups).unwrap()
        profiles = self._fetcher.fetch("metadata.profiles", self._directory.list_profiles).unwrap()
        assembled = assemble_groups(groups, profiles)
        logger.info("Loaded %s profile(s) across %s group(s)", len(profiles), len(assembled))
        return assembled

    def _run_group_safely(
        self,
        group: GroupProfiles,
        window: WriteWindow,
        include_posts: bool,
        correlation_id: str,
    ) -> GroupResult:
        result = GroupResult(group_id=group.group_id, group_name=group.group_name)
        started = time.perf_counter()
        with group_scope(group.group_name):
            try:
                self._run_group(group, window, include_posts, result)
            except DestinationResolutionError as exc:
                result.status = error_status(describe_error(exc))
                log_operational_error(logger, "Destination resolution failed", exc=exc)
            except Exception as exc:  # noqa: BLE001
                result.status = error_status(describe_error(exc))
                log_operational_error(logger, "Group sync failed", exc=exc)
            else:
                result.settle_status()
            result.duration_ms = (time.perf_counter() - started) * 1000
            self._metrics.record_timing("sync.group", result.duration_ms)
            log_event(
                logger,
                "group_synced",
                {
                    "group_id": group.group_id,
                    "status": result.status,
                    "profiles": len(group.profiles),
                    "rows_written": sum(item.rows_written for item in result.networks),
                    "rows_removed": sum(item.rows_removed for item in result.networks),
                    "duration_ms": round(result.duration_ms, 1),
                },
                correlation_id,
            )
        return result

    def _run_group(
        self,
        group: GroupProfiles,
        window: WriteWindow,
        include_posts: bool,
        result: GroupResult,
    ) -> None:
        by_network = _partition(group.profiles)
        if not by_network:
            logger.info("Group %s has no profiles on supported networks", group.group_name)
            return

        targets = self._resolve_targets(group, by_network, include_posts)
        if targets:
            result.spreadsheet_url = targets[0].destination.url
        for target in targets:
            outcome = NetworkOutcome(
                network=target.label,
                tab_name=target.destination.tab_name,
                spreadsheet_url=target.destination.url,
            )
            try:
                if target.posts:
                    self._sync_posts(target, window, outcome)
                else:
                    self._sync_profiles(target, window, outcome)
            except UpstreamError as exc:
                outcome.status = error_status(describe_error(exc))
                log_operational_error(logger, f"Network {target.label} failed", exc=exc)
            except Exception as exc:  # noqa: BLE001
                outcome.status = error_status(describe_error(exc))
                log_operational_error(
                    logger,
                    f"Network {target.label} failed unexpectedly",
                    exc=exc,
                    extra={"tab": target.destination.tab_name},
                )
            result.networks.append(outcome)

    def _resolve_targets(
        self,
        group: GroupProfiles,
        by_network: dict[NetworkKind, list[ProfileMeta]],
        include_posts: bool,
    ) -> list[_Target]:
        targets: list[_Target] = []
        for kind, profiles in by_network.items():
            targets.append(_Target(kind.value, kind, tuple(profiles), self._resolve(group, kind.tab_name)))
        if include_posts:
            for kind, profiles in by_network.items():
                if kind not in self._post_formatters:
                    continue
                destination = self._resolve(group, kind.post_tab_name)
                targets.append(_Target(kind.post_tab_name, kind, tuple(profiles), destination, posts=True))
        return targets

    def _resolve(self, group: GroupProfiles, tab_name: str) -> Destination:
        group_key = self._settings.spreadsheet_title(group.group_name)
        result = self._policy.run(
            f"resolve_destination({group_key}/{tab_name})",
            lambda: self._store.resolve_or_create_destination(group_key, tab_name),
        )
        if not result.ok:
            message = result.error.message if result.error else "unknown error"
            raise DestinationResolutionError(
                f"Cannot resolve {group_key}/{tab_name}: {message}"
            ) from result.exception
        return result.value  # type: ignore[return-value]

    def _sync_profiles(self, target: _Target, window: WriteWindow, outcome: NetworkOutcome) -> None:
        formatter = self._formatters[target.kind]
        headers = formatter.headers
        self._writer.ensure_header(target.destination, headers)

        raw_points: list[dict] = []
        failures: list[str] = []
        for index, profile in enumerate(target.profiles):
            fetched = self._fetcher.fetch_profile_analytics([profile.profile_id], window, formatter.metric_keys)
            if fetched.ok:
                raw_points.extend(fetched.value or [])
            else:
                failures.append(f"{profile.name or profile.profile_id}: {fetched.error.message if fetched.error else 'failed'}")
            self._pause_between_profiles(index, len(target.profiles))
        if failures:
            # Reconciling with partial data would delete rows we cannot replace.
            outcome.status = error_status(f"fetch failed for {len(failures)} profile(s) ({failures[0]})")
            log_operational_error(
                logger,
                f"Skipping {target.label} write after fetch failures",
                extra={"failures": failures},
            )
            return

        by_id = {profile.profile_id: profile for profile in target.profiles}
        rows: list[Row] = []
        for record in normalize(raw_points):
            profile = by_id.get(record.profile_id)
            if profile is None:
                logger.warning("Data point for unknown profile %s in %s", record.profile_id, target.label)
                outcome.records_dropped += 1
                continue
            row = formatter.format(record, profile, headers)
            if row is None:
                outcome.records_dropped += 1
                continue
            rows.append(row)
        self._land(target, window, rows, outcome)

    def _sync_posts(self, target: _Target, window: WriteWindow, outcome: NetworkOutcome) -> None:
        formatter = self._post_formatters[target.kind]
        headers = formatter.headers
        self._writer.ensure_header(target.destination, headers)

        rows: list[Row] = []
        failures: list[str] = []
        for index, profile in enumerate(target.profiles):
            fetched = self._fetcher.fetch_posts(profile.profile_id, window, formatter.metric_keys)
            self._pause_between_profiles(index, len(target.profiles))
            if not fetched.ok:
                failures.append(f"{profile.name or profile.profile_id}: {fetched.error.message if fetched.error else 'failed'}")
                continue
            for record in normalize_posts(fetched.value or [], profile.profile_id, self._settings.posts_timezone):
                if not window.contains(record.iso_date):
                    logger.info("Dropping %s post from %s outside %s", target.label, record.iso_date, window.label())
                    outcome.records_dropped += 1
                    continue
                row = formatter.format(record, profile, headers)
                if row is None:
                    outcome.records_dropped += 1
                    continue
                rows.append(row)
        if failures:
            outcome.status = error_status(f"fetch failed for {len(failures)} profile(s) ({failures[0]})")
            log_operational_error(
                logger,
                f"Skipping {target.label} write after fetch failures",
                extra={"failures": failures},
            )
            return
        self._land(target, window, rows, outcome)

    def _land(self, target: _Target, window: WriteWindow, rows: list[Row], outcome: NetworkOutcome) -> None:
        if not rows:
            logger.info("No rows for %s in %s; existing rows kept", target.label, window.label())
            outcome.status = STATUS_NO_DATA
            return
        reconciled = self._reconciler.reconcile(target.destination, window)
        outcome.rows_removed = reconciled.rows_removed
        written = self._writer.write_result(target.destination, rows)
        if not written.ok:
            outcome.status = error_status(f"write failed: {written.error.message if written.error else 'unknown'}")
            log_operational_error(
                logger,
                f"Write to {target.destination.tab_name} failed",
                exc=written.exception,
                extra={"rows": len(rows), "rows_removed": reconciled.rows_removed},
            )
            return
        outcome.rows_written = written.value or 0
        outcome.status = STATUS_COMPLETED

    def _pause_between_profiles(self, index: int, total: int) -> None:
        if index >= total - 1:
            return
        delay_ms = self._settings.profile_delay_ms + self._rng() * self._settings.profile_delay_jitter_ms
        self._clock.sleep(delay_ms / 1000)


def _partition(profiles: Iterable[ProfileMeta]) -> dict[NetworkKind, list[ProfileMeta]]:
    by_network: dict[NetworkKind, list[ProfileMeta]] = {}
    for profile in profiles:
        kind = profile.kind
        if kind is None:
            logger.info("Skipping profile %s with unsupported network type %r", profile.profile_id, profile.network_type)
            continue
        by_network.setdefault(kind, []).append(profile)
    return {kind: by_network[kind] for kind in NetworkKind if kind in by_network}


def _filter_groups(groups: list[GroupProfiles], names: Sequence[str] | None) -> list[GroupProfiles]:
    if not names:
        return groups
    wanted = {name.strip().casefold() for name in names if name.strip()}
    selected = [group for group in groups if group.group_name.casefold() in wanted]
    if not selected:
        logger.warning("No group matched %s", ", ".join(sorted(wanted)))
    return selected
