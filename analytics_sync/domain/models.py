from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Any, Mapping
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from analytics_sync.core.errors import ValidationError
from analytics_sync.domain.dates import add_months


class NetworkKind(str, Enum):
    INSTAGRAM = "instagram"
    FACEBOOK = "facebook"
    LINKEDIN = "linkedin"
    TWITTER = "twitter"
    YOUTUBE = "youtube"

    @property
    def tab_name(self) -> str:
        return self.value.capitalize()

    @property
    def post_tab_name(self) -> str:
        return f"{self.value}_post"

    @classmethod
    def from_network_type(cls, network_type: str | None) -> "NetworkKind | None":
        if not network_type:
            return None
        return NETWORK_TYPE_ALIASES.get(str(network_type).strip().lower())


NETWORK_TYPE_ALIASES: dict[str, NetworkKind] = {
    "instagram": NetworkKind.INSTAGRAM,
    "fb_instagram_account": NetworkKind.INSTAGRAM,
    "facebook": NetworkKind.FACEBOOK,
    "fb_page": NetworkKind.FACEBOOK,
    "linkedin": NetworkKind.LINKEDIN,
    "linkedin_company": NetworkKind.LINKEDIN,
    "twitter": NetworkKind.TWITTER,
    "twitter_profile": NetworkKind.TWITTER,
    "youtube": NetworkKind.YOUTUBE,
    "youtube_channel": NetworkKind.YOUTUBE,
}


@dataclass(frozen=True)
class WriteWindow:
    """Inclusive date range rewritten by one reconcile + write cycle."""

    start_date: str
    end_date: str

    def __post_init__(self) -> None:
        start = _coerce_iso(self.start_date, "start_date")
        end = _coerce_iso(self.end_date, "end_date")
        if start > end:
            raise ValidationError(f"Window start {start} is after end {end}")
        object.__setattr__(self, "start_date", start.isoformat())
        object.__setattr__(self, "end_date", end.isoformat())

    @classmethod
    def single_day(cls, day: date) -> "WriteWindow":
        return cls(day.isoformat(), day.isoformat())

    @classmethod
    def days_ago(cls, today: date, days: int) -> "WriteWindow":
        return cls.single_day(today - timedelta(days=days))

    @property
    def start(self) -> date:
        return date.fromisoformat(self.start_date)

    @property
    def end(self) -> date:
        return date.fromisoformat(self.end_date)

    def contains(self, iso_date: str | None) -> bool:
        if not iso_date:
            return False
        return self.start_date <= iso_date <= self.end_date

    def split(self, months: int = 3) -> list["WriteWindow"]:
        chunks: list[WriteWindow] = []
        chunk_start = self.start
        while chunk_start <= self.end:
            chunk_end = min(add_months(chunk_start, months) - timedelta(days=1), self.end)
            chunks.append(WriteWindow(chunk_start.isoformat(), chunk_end.isoformat()))
            chunk_start = chunk_end + timedelta(days=1)
        return chunks

    def label(self) -> str:
        return f"{self.start_date}..{self.end_date}"


def _coerce_iso(value: Any, field_name: str) -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError as exc:
        raise ValidationError(f"Invalid {field_name}: {value!r}") from exc


@dataclass(frozen=True)
class Destination:
    spreadsheet_id: str
    spreadsheet_title: str
    tab_name: str
    sheet_id: int | None = None

    @property
    def url(self) -> str:
        return f"https://docs.google.com/spreadsheets/d/{self.spreadsheet_id}/edit"


@dataclass(frozen=True)
class Group:
    group_id: str
    name: str


@dataclass(frozen=True)
class ProfileMeta:
    profile_id: str
    name: str
    network_type: str
    network_id: str = ""
    native_name: str = ""
    link: str = ""
    group_ids: tuple[str, ...] = ()

    @property
    def kind(self) -> NetworkKind | None:
        return NetworkKind.from_network_type(self.network_type)


@dataclass
class GroupProfiles:
    group_id: str
    group_name: str
    profiles: list[ProfileMeta] = field(default_factory=list)


@dataclass(frozen=True)
class CanonicalRecord:
    profile_id: str
    iso_date: str
    raw_metrics: Mapping[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> str:
        return f"{self.profile_id}_{self.iso_date}"


@dataclass(frozen=True)
class PostRecord:
    profile_id: str
    created_time: str
    iso_date: str
    perma_link: str = ""
    text: str = ""
    raw_metrics: Mapping[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> str:
        return f"{self.profile_id}_{self.perma_link or self.created_time}"


@dataclass
class RetryState:
    attempt: int = 0
    backoff_ms: float = 0.0


@dataclass(frozen=True)
class SyncSettings:
    customer_id: str
    api_token: str
    api_base_url: str = "https://api.sproutsocial.com/v1"
    credentials_path: str = ""
    drive_folder_id: str | None = None
    spreadsheet_title_template: str = "{group_name}"
    inter_group_delay_seconds: float = 30.0
    profile_delay_ms: float = 800.0
    profile_delay_jitter_ms: float = 400.0
    write_spacing_ms: float = 2000.0
    max_attempts: int = 8
    auth_max_attempts: int = 3
    fetch_backoff_base_ms: float = 8000.0
    write_backoff_base_ms: float = 30000.0
    capacity_safety_margin_rows: int = 2000
    min_columns: int = 30
    watchdog_threshold_seconds: float = 45 * 60
    request_timeout_seconds: float = 60.0
    posts_timezone: str = "America/Chicago"

    def __post_init__(self) -> None:
        if self.max_attempts < 1 or self.auth_max_attempts < 1:
            raise ValidationError("Retry ceilings must be at least 1")
        try:
            ZoneInfo(self.posts_timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValidationError(f"Unknown posts timezone {self.posts_timezone!r}") from exc

    def spreadsheet_title(self, group_name: str) -> str:
        return self.spreadsheet_title_template.format(group_name=group_name)
