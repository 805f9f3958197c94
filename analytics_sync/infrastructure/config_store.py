from __future__ import annotations

from dataclasses import fields, replace
import json
import logging
import os
from pathlib import Path
from typing import Any, Mapping

from analytics_sync.core.errors import ValidationError
from analytics_sync.domain.errors import SyncConfigError
from analytics_sync.domain.models import SyncSettings

logger = logging.getLogger(__name__)

HOME_ENV = "ANALYTICS_SYNC_HOME"
ENV_OVERRIDES = {
    "SPROUT_CUSTOMER_ID": "customer_id",
    "SPROUT_API_TOKEN": "api_token",
    "SPROUT_API_BASE_URL": "api_base_url",
    "GOOGLE_CREDENTIALS_PATH": "credentials_path",
    "DRIVE_FOLDER_ID": "drive_folder_id",
}
NUMERIC_ENV_OVERRIDES = {
    "ANALYTICS_SYNC_GROUP_DELAY_SECONDS": "inter_group_delay_seconds",
    "ANALYTICS_SYNC_MAX_ATTEMPTS": "max_attempts",
    "ANALYTICS_SYNC_WRITE_SPACING_MS": "write_spacing_ms",
    "ANALYTICS_SYNC_WATCHDOG_SECONDS": "watchdog_threshold_seconds",
}


def resolve_appdata_dir() -> Path:
    env_dir = os.environ.get(HOME_ENV)
    if env_dir:
        return Path(env_dir)
    return Path.home() / ".local" / "share" / "analytics_sync"


class SyncConfigStore:
    """Loads ``config.json`` from the app-data dir and layers env vars on top."""

    def __init__(self, base_dir: Path | None = None, environ: Mapping[str, str] | None = None) -> None:
        self._base_dir = base_dir or resolve_appdata_dir()
        self._config_path = self._base_dir / "config.json"
        self._environ = environ if environ is not None else os.environ

    def default_credentials_path(self) -> Path:
        return self._base_dir / "secrets" / "credentials.json"

    def load(self) -> SyncSettings:
        payload = self._read_payload()
        known = {item.name for item in fields(SyncSettings)}
        values: dict[str, Any] = {key: value for key, value in payload.items() if key in known}
        for env_name, field_name in ENV_OVERRIDES.items():
            raw = self._environ.get(env_name)
            if raw is not None and raw.strip():
                values[field_name] = raw.strip()

        customer_id = str(values.get("customer_id", "")).strip()
        api_token = str(values.get("api_token", "")).strip()
        missing = [name for name, value in (("SPROUT_CUSTOMER_ID", customer_id), ("SPROUT_API_TOKEN", api_token)) if not value]
        if missing:
            raise SyncConfigError(f"Missing configuration: {', '.join(missing)}")
        values["customer_id"] = customer_id
        values["api_token"] = api_token
        if not values.get("credentials_path"):
            values["credentials_path"] = str(self.default_credentials_path())

        try:
            settings = self._apply_numeric_env(SyncSettings(**values))
        except (TypeError, ValueError, ValidationError) as exc:
            raise SyncConfigError(f"Invalid configuration in {self._config_path}: {exc}") from exc
        if not Path(settings.credentials_path).is_file():
            raise SyncConfigError(f"Service-account credentials not found at {settings.credentials_path}")
        return settings

    def _apply_numeric_env(self, settings: SyncSettings) -> SyncSettings:
        overrides: dict[str, Any] = {}
        for env_name, field_name in NUMERIC_ENV_OVERRIDES.items():
            if env_name in self._environ:
                current = getattr(settings, field_name)
                raw = self._environ.get(env_name, "")
                try:
                    overrides[field_name] = float(raw) if isinstance(current, float) else int(raw)
                except ValueError:
                    logger.warning("Ignoring non-numeric %s=%r", env_name, raw)
        return replace(settings, **overrides) if overrides else settings

    def _read_payload(self) -> dict[str, Any]:
        if not self._config_path.exists():
            return {}
        try:
            payload = json.loads(self._config_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.exception("Could not read config.json: %s", exc)
            return {}
        if not isinstance(payload, dict):
            logger.warning("Ignoring %s: expected a JSON object", self._config_path)
            return {}
        return payload
