"""
Classification of transport and protocol failures.

Connect failures are decorated for the user and marked as already reported. Element failures are
reduced to a closed set of kinds so that an outer retry loop can tell transient conditions from
real ones; nothing here retries by itself.
"""

from __future__ import annotations

import errno
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Iterator

import structlog
from selenium.common.exceptions import (
    ElementClickInterceptedException,
    ElementNotInteractableException,
    InvalidElementStateException,
    InvalidSessionIdException,
    NoSuchWindowException,
    StaleElementReferenceException,
    WebDriverException,
)
from selenium.webdriver.remote.errorhandler import ErrorHandler

from wdsession.config import TransportSettings
from wdsession.constants import ANDROID_BRIDGE_ERROR_MESSAGES, IOS_SESSION_ERROR_NAMES
from wdsession.exceptions import AndroidConnectionError, IosSessionNotCreatedError, SessionConnectError

if TYPE_CHECKING:
    from wdsession.transport.driver_service import DriverService

LOG = structlog.get_logger()

# selenium appends a documentation link to the message of typed exceptions
SELENIUM_DOCS_SUFFIX = "; For documentation on this error"


class ElementErrorKind(StrEnum):
    STALE_ELEMENT_REFERENCE = "stale element reference"
    ELEMENT_CLICK_INTERCEPTED = "element click intercepted"
    INVALID_ELEMENT_STATE = "invalid element state"
    ELEMENT_NOT_INTERACTABLE = "element not interactable"
    NO_SUCH_WINDOW = "no such window"
    INVALID_SESSION_ID = "invalid session id"
    # a plain protocol error; only its message tells what happened
    GENERIC = "generic"
    OTHER = "other"


RETRYABLE_ELEMENT_ERROR_KINDS = frozenset(
    {
        ElementErrorKind.STALE_ELEMENT_REFERENCE,
        ElementErrorKind.ELEMENT_CLICK_INTERCEPTED,
        ElementErrorKind.INVALID_ELEMENT_STATE,
        ElementErrorKind.ELEMENT_NOT_INTERACTABLE,
    }
)


def element_error_kind(error: Any) -> ElementErrorKind:
    match error:
        case StaleElementReferenceException():
            return ElementErrorKind.STALE_ELEMENT_REFERENCE
        case ElementClickInterceptedException():
            return ElementErrorKind.ELEMENT_CLICK_INTERCEPTED
        # not interactable is a subclass of invalid element state, so it is matched first
        case ElementNotInteractableException():
            return ElementErrorKind.ELEMENT_NOT_INTERACTABLE
        case InvalidElementStateException():
            return ElementErrorKind.INVALID_ELEMENT_STATE
        case NoSuchWindowException():
            return ElementErrorKind.NO_SUCH_WINDOW
        case InvalidSessionIdException():
            return ElementErrorKind.INVALID_SESSION_ID
        case WebDriverException() if type(error) is WebDriverException:
            return ElementErrorKind.GENERIC
        case _:
            return ElementErrorKind.OTHER


def is_error_response(result: Any) -> bool:
    if not isinstance(result, dict):
        return False
    value = result.get("value")
    if isinstance(value, dict) and value.get("error"):
        return True
    status = result.get("status")
    return isinstance(status, int) and status not in (0, -1)


def handle_error_response(result: dict[str, Any]) -> None:
    """Raise the selenium exception matching a W3C or legacy error response."""
    if not is_error_response(result):
        return

    value = result.get("value")
    if isinstance(value, dict) and value.get("error"):
        ErrorHandler().check_response({"status": value["error"], "value": value})
    else:
        ErrorHandler().check_response(result)


def is_result_success(result: Any = None) -> bool:
    if result is None:
        result = {}
    if isinstance(result, BaseException):
        return False
    if isinstance(result, dict):
        return not (isinstance(result.get("error"), BaseException) or result.get("status") == -1)
    return True


def get_error_response(result: Any) -> Any:
    if isinstance(result, BaseException):
        return result
    if isinstance(result, dict):
        return result.get("error")
    return None


def get_error_message(result: Any) -> str | None:
    if isinstance(result, WebDriverException):
        if result.msg is None:
            return None
        return result.msg.split(SELENIUM_DOCS_SUFFIX, 1)[0]
    if isinstance(result, BaseException):
        return str(result)
    value = result.get("value") if isinstance(result, dict) else None
    if isinstance(value, dict):
        return value.get("message")
    return None


def _error_chain(error: BaseException) -> Iterator[BaseException]:
    seen: set[int] = set()
    pending: list[BaseException | None] = [error]
    while pending:
        current = pending.pop()
        if current is None or id(current) in seen:
            continue
        seen.add(id(current))
        yield current
        reason = getattr(current, "reason", None)
        pending.extend(
            [
                current.__cause__,
                current.__context__,
                reason if isinstance(reason, BaseException) else None,
            ]
        )


def is_connection_refused(error: BaseException) -> bool:
    for current in _error_chain(error):
        if isinstance(current, ConnectionRefusedError):
            return True
        if getattr(current, "errno", None) == errno.ECONNREFUSED:
            return True
        if getattr(current, "code", None) == "ECONNREFUSED":
            return True
    return False


class ErrorClassifier:
    def __init__(
        self,
        settings: TransportSettings,
        service_name: str,
        driver_service: DriverService | None = None,
    ) -> None:
        self.settings = settings
        self.service_name = service_name
        self.driver_service = driver_service

    def classify_connect_error(self, err: BaseException, host: str | None, port: int | None) -> SessionConnectError:
        if isinstance(err, SessionConnectError):
            return err

        prefix = f"An error occurred while creating a new {self.service_name} session:"
        if is_connection_refused(err):
            error = SessionConnectError(
                f"{prefix} Connection refused to {host}:{port}. If the driver service is managed locally, "
                f'check that "WEBDRIVER_START_PROCESS" is set to true.',
                host=host,
                port=port,
                service_name=self.service_name,
                session_create=True,
            )
        else:
            message = err.msg if isinstance(err, WebDriverException) else str(err)
            error = SessionConnectError(
                f"{prefix} [{type(err).__name__}] {message}",
                host=host,
                port=port,
                service_name=self.service_name,
            )
        error.__cause__ = err

        if self.driver_service is not None:
            log_path = self.driver_service.get_output_file_path()
            error.detailed_err = (
                f" Verify if {self.service_name} is configured correctly; using:\n"
                f"  {self.driver_service.get_settings_formatted()}\n"
            )
            error.extra_detail = (
                f"\n  More info might be available in the log file: {log_path}"
                if log_path
                else f"\n  Set WEBDRIVER_LOG_PATH to retrieve more logs from {self.service_name}."
            )

            if any(pattern in (error.message or "") for pattern in ANDROID_BRIDGE_ERROR_MESSAGES):
                error = self._rewrap(AndroidConnectionError(error), err)
            elif type(err).__name__ in IOS_SESSION_ERROR_NAMES and self.settings.is_safari() and self.settings.is_ios():
                error = self._rewrap(IosSessionNotCreatedError(error, self.settings.desired_capabilities), err)

        LOG.warning(
            "Failed to connect to the remote end",
            service_name=self.service_name,
            host=host,
            port=port,
            error_type=type(error).__name__,
        )
        return error

    @staticmethod
    def _rewrap(error: SessionConnectError, cause: BaseException) -> SessionConnectError:
        error.__cause__ = cause
        return error

    def is_retryable_element_error(self, result: Any) -> bool:
        error = get_error_response(result)
        kind = element_error_kind(error)

        if kind == ElementErrorKind.GENERIC:
            message = error.msg or ""
            return any(item in message for item in self.settings.retryable_error_messages)

        return kind in RETRYABLE_ELEMENT_ERROR_KINDS

    @staticmethod
    def invalid_window_reference(result: Any) -> bool:
        return element_error_kind(result) == ElementErrorKind.NO_SUCH_WINDOW

    @staticmethod
    def invalid_session_error(result: Any) -> bool:
        return element_error_kind(result) == ElementErrorKind.INVALID_SESSION_ID
