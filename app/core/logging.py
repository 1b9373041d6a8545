from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    root.setLevel(level.upper())

    # uvicorn --reload re-imports main; only install our handler once
    for h in root.handlers:
        if getattr(h, "_app_handler", False):
            return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._app_handler = True  # type: ignore[attr-defined]
    root.addHandler(handler)
