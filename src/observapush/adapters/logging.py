"""Python logging handler adapter for observapush.

This adapter bridges Python's standard library logging module to the
LogShipper, so application log records reach the log backend as ``app``
events alongside access and exception logs.
"""

import logging
import traceback
from typing import Any

from observapush.core.logs import LogShipper

# Standard LogRecord attributes that should not be treated as extra fields
_STANDARD_LOGRECORD_ATTRS = frozenset(
    {
        "args",
        "asctime",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "message",
        "module",
        "msecs",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "taskName",
        "thread",
        "threadName",
    }
)

# Records from this package describe the pipeline itself; shipping them
# through the pipeline would loop.
_OWN_LOGGER_PREFIX = "observapush"


def level_label(levelno: int) -> str:
    """Map a logging level number to a backend level label."""
    if levelno >= logging.ERROR:
        return "error"
    if levelno >= logging.WARNING:
        return "warn"
    if levelno >= logging.INFO:
        return "info"
    return "debug"


class LogShipperHandler(logging.Handler):
    """Logging handler that ships log records through a LogShipper.

    Example:
        ```python
        handler = LogShipperHandler(context.shipper)
        logging.getLogger("myapp").addHandler(handler)
        ```
    """

    def __init__(
        self, shipper: LogShipper, type_: str = "app", level: int = logging.NOTSET
    ) -> None:
        """Initialize the handler.

        Args:
            shipper: Destination of the records.
            type_: Value of the ``type`` label.
            level: Minimum record level.
        """
        super().__init__(level)
        self._shipper = shipper
        self._type = type_

    def emit(self, record: logging.LogRecord) -> None:
        """Ship a log record.

        Args:
            record: The log record to emit.
        """
        if record.name == _OWN_LOGGER_PREFIX or record.name.startswith(
            _OWN_LOGGER_PREFIX + "."
        ):
            return
        try:
            data: dict[str, Any] = {
                "message": record.getMessage(),
                "logger": record.name,
                "module": record.module,
                "funcName": record.funcName or "",
                "lineno": record.lineno,
            }

            # Add any extra attributes passed via logging call
            for key, value in record.__dict__.items():
                if key not in _STANDARD_LOGRECORD_ATTRS and key not in data:
                    data[key] = value

            # Extract exception info if present
            if record.exc_info:
                exc_type, exc_value, exc_tb = record.exc_info
                if exc_type is not None:
                    data["exc_type"] = exc_type.__name__
                if exc_value is not None:
                    data["exc_message"] = str(exc_value)
                data["exc_traceback"] = "".join(
                    traceback.format_exception(exc_type, exc_value, exc_tb)
                )

            self._shipper.log(level_label(record.levelno), self._type, data)
        except Exception:
            self.handleError(record)
