"""Opt-in loguru logging for the filter tree modules.

The tree modules log build progress at DEBUG (one line per tree) and TRACE
(one line per node). Their output is disabled on import; call
``enable_logging()`` to route it to stderr.

    >>> with enable_logging(level="TRACE"):  # doctest: +SKIP
    ...     build_tree(X, y)
"""

from __future__ import annotations

import contextlib
import sys
from typing import TYPE_CHECKING, Final, Literal

from loguru import logger

if TYPE_CHECKING:
    from types import TracebackType

    from loguru import Record

LOGGED_MODULES: Final[tuple[str, ...]] = (
    "filter_transform",
    "filter_tree",
    "tree_builder",
)

for _module in LOGGED_MODULES:
    logger.disable(_module)

LogLevel = Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
LogFormat = Literal["short", "full"]

_FORMATS: Final[dict[str, str]] = {
    "short": "<green>{time:HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | {function} - {message}",
    "full": (
        "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - {message}"
    ),
}


def _is_tree_record(record: Record) -> bool:
    return record["name"] in LOGGED_MODULES


class LoggingHandle:
    """The one stderr handler installed by enable_logging().

    disable() removes it and silences the tree modules again. Leaving a
    ``with`` block does the same.
    """

    def __init__(self, handler_id: int) -> None:
        self.handler_id: int | None = handler_id

    @property
    def active(self) -> bool:
        return self.handler_id is not None

    def disable(self) -> None:
        global _active_handle
        if self.handler_id is None:
            return
        with contextlib.suppress(ValueError):
            logger.remove(self.handler_id)
        self.handler_id = None
        if _active_handle is self:
            _active_handle = None
            for module in LOGGED_MODULES:
                logger.disable(module)

    def __enter__(self) -> LoggingHandle:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.disable()


_active_handle: LoggingHandle | None = None


def enable_logging(*, level: LogLevel = "DEBUG", log_format: LogFormat = "short") -> LoggingHandle:
    """Send filter tree log records at ``level`` or above to stderr.

    Calling it again replaces the previous handler, so records are never
    written twice.

    Args:
        level (LogLevel): Minimum level. "DEBUG" reports one summary per built
            tree; "TRACE" adds a line for every split, leaf and fitted transform.
        log_format (LogFormat): "short" shows only the function name, "full"
            adds module and line number.

    Returns:
        LoggingHandle: Handle that removes the handler when disabled.
    """
    if log_format not in _FORMATS:
        raise ValueError(f"log_format must be one of {sorted(_FORMATS)}, got {log_format!r}")

    global _active_handle
    if _active_handle is not None:
        _active_handle.disable()

    for module in LOGGED_MODULES:
        logger.enable(module)
    handler_id = logger.add(
        sys.stderr,
        level=level,
        format=_FORMATS[log_format],
        filter=_is_tree_record,
    )
    _active_handle = LoggingHandle(handler_id)
    return _active_handle
