import logging
import sys

import structlog
from structlog.typing import EventDict

from wdsession._version import __version__
from wdsession.config import settings
from wdsession.core import worker_context

LOGGING_LEVEL_MAP: dict[str, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# transport failures a caller may reasonably retry at a higher level
TRANSIENT_EXCEPTIONS = (
    ConnectionError,
    TimeoutError,
    OSError,
)
TRANSIENT_PATTERNS = (
    "MaxRetryError",
    "NewConnectionError",
    "ProtocolError",
    "ReadTimeout",
    "Timeout",
)


def add_worker_context(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    """
    A custom processor to add the current worker context to every log line.
    """
    context = worker_context.current()
    if context:
        if context.worker_id:
            event_dict["worker_id"] = context.worker_id
        if context.session_id:
            event_dict["session_id"] = context.session_id
        if context.module_key:
            event_dict["module_key"] = context.module_key

    event_dict["env"] = settings.ENV
    event_dict["version"] = __version__
    return event_dict


def add_error_processor(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    """
    A custom processor extending error logs with the exception type and a coarse category
    """
    exc_info = event_dict.get("exc_info")
    if not exc_info:
        return event_dict

    if exc_info is True:
        exc_info = sys.exc_info()
    elif isinstance(exc_info, BaseException):
        exc_info = (type(exc_info), exc_info, exc_info.__traceback__)

    if isinstance(exc_info, tuple) and exc_info[0] is not None:
        exc_type = exc_info[0]
        event_dict["error_type"] = f"{exc_type.__module__}.{exc_type.__name__}"
        event_dict["error_category"] = categorize_exception(exc_type)

    return event_dict


def categorize_exception(exc_type: type) -> str:
    """
    TRANSIENT: network and IO failures that might succeed on a fresh connect
    ERROR: everything else
    """
    if issubclass(exc_type, TRANSIENT_EXCEPTIONS):
        return "TRANSIENT"
    if any(pattern in exc_type.__name__ for pattern in TRANSIENT_PATTERNS):
        return "TRANSIENT"
    return "ERROR"


def add_callsite_name(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Fold the module and line number into `logger_name`, which the console renderer shows in brackets
    next to the event.
    """
    module = event_dict.pop("module", None)
    lineno = event_dict.pop("lineno", None)
    if module:
        event_dict["logger_name"] = f"{module}:{lineno}" if lineno else module
    return event_dict


def setup_logger() -> None:
    """
    Setup the logger with the specified format
    """
    renderer = (
        structlog.processors.JSONRenderer()
        if settings.JSON_LOGGING
        else structlog.dev.ConsoleRenderer(sort_keys=False)
    )
    additional_processors = (
        [
            structlog.processors.EventRenamer("msg"),
            structlog.processors.CallsiteParameterAdder(
                {
                    structlog.processors.CallsiteParameter.MODULE,
                    structlog.processors.CallsiteParameter.FUNC_NAME,
                    structlog.processors.CallsiteParameter.LINENO,
                }
            ),
        ]
        if settings.JSON_LOGGING
        else [
            structlog.processors.CallsiteParameterAdder(
                {
                    structlog.processors.CallsiteParameter.MODULE,
                    structlog.processors.CallsiteParameter.LINENO,
                }
            ),
            add_callsite_name,
        ]
    )
    log_level = LOGGING_LEVEL_MAP.get(settings.LOG_LEVEL, logging.INFO)

    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            add_worker_context,
            add_error_processor,
            structlog.processors.format_exc_info,
        ]
        + additional_processors
        + [renderer],
    )
    # selenium's remote connection is chatty at INFO
    logging.getLogger("selenium.webdriver.remote.remote_connection").setLevel(logging.WARNING)
