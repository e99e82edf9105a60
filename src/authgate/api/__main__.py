"""
authgate.api.__main__

Entrypoint for running the service via `python -m authgate.api`.

Responsibilities:
- Load settings and create the app (configuration errors abort here).
- Start uvicorn with structlog-compatible logging config.
"""

from __future__ import annotations

import sys

import uvicorn

from authgate.api.app import create_app
from authgate.auth.errors import ConfigError
from authgate.settings import get_settings


def main() -> None:
    settings = get_settings()
    try:
        app = create_app(settings=settings)
    except ConfigError as e:
        print(f"authgate: configuration error: {e.message}", file=sys.stderr)
        raise SystemExit(2) from e

    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_config=None,  # structlog
    )


if __name__ == "__main__":
    main()
