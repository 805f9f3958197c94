from __future__ import annotations

import sys
from datetime import date
from types import SimpleNamespace

import pytest

from analytics_sync.bootstrap.container import build_container
from analytics_sync.domain.errors import SyncConfigError
from analytics_sync.domain.models import Group, ProfileMeta, SyncSettings
from analytics_sync.domain.sync_models import GroupResult, NetworkOutcome, RunSummary
from analytics_sync.entrypoints import cli
from tests.fakes import FakeAnalyticsSource, FakeClock, FakeDirectory, InMemorySpreadsheetStore, data_point

TODAY = date(2025, 4, 3)


@pytest.fixture(autouse=True)
def _quiet_process_hooks(monkeypatch, isolated_logging) -> None:
    monkeypatch.setattr(sys, "excepthook", sys.excepthook)
    monkeypatch.setattr(cli, "faulthandler", SimpleNamespace(enable=lambda: None))


class _ConfigStoreFake:
    def __init__(self, settings: SyncSettings | None = None, error: str | None = None) -> None:
        self._settings = settings
        self._error = error

    def load(self) -> SyncSettings:
        if self._error:
            raise SyncConfigError(self._error)
        assert self._settings is not None
        return self._settings


class _OrchestratorFake:
    def __init__(self, summary: RunSummary) -> None:
        self.summary = summary
        self.calls: list[tuple[str, bool, list[str] | None]] = []

    def run(self, window, *, include_posts=False, group_filter=None):  # noqa: ANN001
        self.calls.append((window.label(), include_posts, group_filter))
        return self.summary


def _settings() -> SyncSettings:
    return SyncSettings("customer-1", "token", credentials_path="unused.json")


def test_resolve_window_defaults_to_two_days_ago() -> None:
    args = cli.build_parser().parse_args([])

    assert cli.resolve_window(args, TODAY).label() == "2025-04-01..2025-04-01"


def test_resolve_window_accepts_explicit_range() -> None:
    args = cli.build_parser().parse_args(["--start", "2025-03-01", "--end", "2025-03-31"])

    assert cli.resolve_window(args, TODAY).label() == "2025-03-01..2025-03-31"


def test_days_ago_and_start_are_mutually_exclusive(capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.build_parser().parse_args(["--days-ago", "1", "--start", "2025-03-01"])

    assert excinfo.value.code == 2
    assert "not allowed with argument" in capsys.readouterr().err


@pytest.mark.parametrize(
    "argv",
    [["--end", "2025-03-01"], ["--days-ago", "-1"], ["--start", "2025-03-05", "--end", "2025-03-01"]],
)
def test_invalid_window_exits_with_usage_error(argv, tmp_path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main([*argv, "--log-dir", str(tmp_path)], today=TODAY, config_store=_ConfigStoreFake(_settings()))

    assert excinfo.value.code == 2


def test_config_error_returns_exit_code_two(tmp_path, capsys) -> None:
    exit_code = cli.main(
        ["--log-dir", str(tmp_path)],
        today=TODAY,
        config_store=_ConfigStoreFake(error="Missing configuration: SPROUT_API_TOKEN"),
        container_factory=lambda settings: pytest.fail("container must not be built"),
    )

    assert exit_code == 2
    assert "Configuration error: Missing configuration: SPROUT_API_TOKEN" in capsys.readouterr().err


def test_main_runs_orchestrator_and_prints_summary(tmp_path, capsys) -> None:
    group = GroupResult("g1", "Acme", status="Completed")
    group.networks.append(NetworkOutcome("facebook", "facebook", status="Completed", rows_written=3))
    orchestrator = _OrchestratorFake(RunSummary("2025-04-01..2025-04-01", groups=[group]))

    exit_code = cli.main(
        ["--posts", "--group", "Acme", "--log-dir", str(tmp_path)],
        today=TODAY,
        config_store=_ConfigStoreFake(_settings()),
        container_factory=lambda settings: SimpleNamespace(orchestrator=orchestrator),
    )

    out = capsys.readouterr().out
    assert exit_code == 0
    assert orchestrator.calls == [("2025-04-01..2025-04-01", True, ["Acme"])]
    assert "- Acme: Completed" in out
    assert "Rows written: 3, rows removed: 0." in out


def test_main_returns_one_when_a_group_failed(tmp_path) -> None:
    summary = RunSummary("2025-04-01..2025-04-01", groups=[GroupResult("g1", "Acme", status="Error: boom")])

    exit_code = cli.main(
        ["--log-dir", str(tmp_path)],
        today=TODAY,
        config_store=_ConfigStoreFake(_settings()),
        container_factory=lambda settings: SimpleNamespace(orchestrator=_OrchestratorFake(summary)),
    )

    assert exit_code == 1


def test_main_end_to_end_with_in_memory_adapters(tmp_path, capsys) -> None:
    store = InMemorySpreadsheetStore()
    source = FakeAnalyticsSource({"42": [data_point("42", "2025-04-01", likes=10, comments_count=2, shares_count=1)]})
    page = ProfileMeta("42", "Acme Page", "fb_page", network_id="9001", group_ids=("g1",))
    directory = FakeDirectory([Group("g1", "Acme")], [page])

    def _factory(settings: SyncSettings):
        return build_container(settings, clock=FakeClock(), source=source, directory=directory, store=store)

    exit_code = cli.main(
        ["--log-dir", str(tmp_path)],
        today=TODAY,
        config_store=_ConfigStoreFake(SyncSettings("customer-1", "token", write_spacing_ms=0)),
        container_factory=_factory,
    )

    assert exit_code == 0
    assert store.rows("Acme", "Facebook")[1][0] == "2025-04-01"
    assert "- Acme: Completed" in capsys.readouterr().out
