from __future__ import annotations

import os
import tempfile
from pathlib import Path

LOG_DIR_ENV = "ANALYTICS_SYNC_LOG_DIR"


def project_root() -> Path:
    return Path(__file__).resolve().parents[2]


def resolve_log_dir(preferred: Path | None = None) -> Path:
    candidates: list[Path] = []
    if preferred is not None:
        candidates.append(preferred)
    env_dir = os.environ.get(LOG_DIR_ENV)
    if env_dir:
        candidates.append(Path(env_dir))
    candidates.append(project_root() / "logs")
    candidates.append(Path(tempfile.gettempdir()) / "analytics_sync" / "logs")

    for candidate in candidates:
        try:
            candidate.mkdir(parents=True, exist_ok=True)
            test_file = candidate / "_write_test.tmp"
            test_file.write_text("ok", encoding="utf-8")
            test_file.unlink(missing_ok=True)
            return candidate
        except OSError:
            continue

    fallback = project_root()
    fallback.mkdir(parents=True, exist_ok=True)
    return fallback
