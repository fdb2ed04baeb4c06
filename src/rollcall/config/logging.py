"""Logging setup for the CLI and front-desk services.

Records carry the operator and event being served so interleaved desks can be
told apart in one log stream. Code running inside :func:`desk_context` gets a
``[operator=... event=...]`` prefix; everything else logs without one.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from collections.abc import Iterator

LOG_FORMAT: Final[str] = "%(asctime)s %(levelname)s [%(name)s] %(desk)s%(message)s"
DATE_FORMAT: Final[str] = "%H:%M:%S"

_desk: ContextVar[str] = ContextVar("rollcall_desk", default="")


class DeskContextFilter(logging.Filter):
    """Attach the current desk prefix to every record as ``record.desk``."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.desk = _desk.get()
        return True


@contextmanager
def desk_context(*, operator: str | None = None, event: object | None = None) -> Iterator[None]:
    fields = [
        f"{key}={value}" for key, value in (("operator", operator), ("event", event)) if value
    ]
    token = _desk.set(f"[{' '.join(fields)}] " if fields else "")
    try:
        yield
    finally:
        _desk.reset(token)


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Initialise the root logger once; ``force=True`` reconfigures it."""

    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=DATE_FORMAT, force=force)
    for handler in logging.getLogger().handlers:
        if not any(isinstance(existing, DeskContextFilter) for existing in handler.filters):
            handler.addFilter(DeskContextFilter())
