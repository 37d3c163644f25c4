"""Logging for scaffold runs.

Records go to stderr so stdout only carries the final "Repository ready" line.
Every record is tagged with the provisioning stage active when it was emitted
(set by the stage tracker), so a failure can be read back to the stage that
produced it. Two renderings: JSON lines (default) and plain text.
"""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any, Literal

LogFormat = Literal["json", "text"]

_active_stage: ContextVar[str | None] = ContextVar("scaffold_stage", default=None)

# Attributes every LogRecord carries; anything else on a record came from `extra=`.
_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime", "stage"}


def set_active_stage(stage: str | None) -> None:
    _active_stage.set(stage)


def active_stage() -> str | None:
    return _active_stage.get()


class StageFilter(logging.Filter):
    """Stamps `record.stage` unless the caller passed one in `extra`."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "stage", None) is None:
            record.stage = active_stage()
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per record; `stage` is a top-level field."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003 (record)
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "stage": getattr(record, "stage", None),
            "message": record.getMessage(),
        }

        context = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        }
        if context:
            payload["context"] = context
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


class TextFormatter(logging.Formatter):
    """`LEVEL [stage] logger: message key=value ...` for interactive use."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003 (record)
        stage = getattr(record, "stage", None) or "-"
        line = f"{record.levelname} [{stage}] {record.name}: {record.getMessage()}"
        context = " ".join(
            f"{key}={value}"
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        )
        if context:
            line = f"{line} {context}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def configure_logging(level: str, *, fmt: LogFormat = "json") -> None:
    """Route root logging to stderr with stage tagging."""

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(stream=sys.stderr)
    handler.addFilter(StageFilter())
    handler.setFormatter(TextFormatter() if fmt == "text" else JsonFormatter())

    root.addHandler(handler)
    root.setLevel(level.upper())

    # PyGithub and urllib3 log every request at DEBUG.
    for noisy in ("github", "urllib3"):
        logging.getLogger(noisy).setLevel(max(root.level, logging.INFO))
