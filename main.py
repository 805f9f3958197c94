from __future__ import annotations

import sys

from analytics_sync.bootstrap.exception_handler import handle_global_exception
from analytics_sync.entrypoints.cli import main


if __name__ == "__main__":
    try:
        raise SystemExit(main(sys.argv[1:]))
    except SystemExit:
        raise
    except Exception as exc:  # noqa: BLE001
        incident_id = handle_global_exception(type(exc), exc, exc.__traceback__)
        sys.stderr.write(f"Unexpected error. Incident id: {incident_id}\n")
        raise SystemExit(2)
