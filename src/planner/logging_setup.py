from __future__ import annotations

import logging
import sys

_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"


class _ThirdPartyFilter(logging.Filter):
    """
    Keep the console readable:
    - planner logs pass at the configured level
    - everything else (uvicorn access, httpx, ...) only from WARNING up
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name.startswith("planner"):
            return True
        return record.levelno >= logging.WARNING


# PUBLIC_INTERFACE
def setup_logging(level: str = "INFO") -> None:
    """
    Configure a single stderr handler on the root logger.

    Call this once from the app factory. Calling it again replaces the
    handler instead of stacking duplicates.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for h in list(root.handlers):
        if getattr(h, "_planner_handler", False):
            root.removeHandler(h)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(fmt=_FORMAT, datefmt=_DATEFMT))
    handler.addFilter(_ThirdPartyFilter())
    handler._planner_handler = True  # type: ignore[attr-defined]
    root.addHandler(handler)

    logging.captureWarnings(True)
