from __future__ import annotations

import errno

import pytest
from selenium.common.exceptions import (
    ElementClickInterceptedException,
    ElementNotInteractableException,
    InvalidElementStateException,
    InvalidSessionIdException,
    NoSuchElementException,
    NoSuchWindowException,
    SessionNotCreatedException,
    StaleElementReferenceException,
    WebDriverException,
)

from tests.unit.helpers import make_driver_service, make_settings
from wdsession.exceptions import AndroidConnectionError, IosSessionNotCreatedError, SessionConnectError
from wdsession.transport import errors
from wdsession.transport.errors import ElementErrorKind, ErrorClassifier, element_error_kind


class RefusedWithCode(Exception):
    code = "ECONNREFUSED"


def _classifier(**kwargs) -> ErrorClassifier:
    desired = kwargs.pop("desired_capabilities", None)
    return ErrorClassifier(make_settings(desired), "ChromeDriver", **kwargs)


@pytest.mark.parametrize(
    "error",
    [
        ConnectionRefusedError(errno.ECONNREFUSED, "Connection refused"),
        OSError(errno.ECONNREFUSED, "Connection refused"),
        RefusedWithCode("connect failed"),
    ],
)
def test_connection_refused_mentions_host_port_and_process_setting(error: Exception) -> None:
    classified = _classifier().classify_connect_error(error, "localhost", 9515)

    assert isinstance(classified, SessionConnectError)
    assert "localhost:9515" in classified.message
    assert "WEBDRIVER_START_PROCESS" in classified.message
    assert classified.session_create is True
    assert classified.__cause__ is error


def test_connection_refused_is_found_through_the_cause_chain() -> None:
    try:
        try:
            raise ConnectionRefusedError(errno.ECONNREFUSED, "Connection refused")
        except ConnectionRefusedError as e:
            raise RuntimeError("Max retries exceeded") from e
    except RuntimeError as wrapped:
        classified = _classifier().classify_connect_error(wrapped, "grid", 4444)

    assert "grid:4444" in classified.message
    assert "WEBDRIVER_START_PROCESS" in classified.message


@pytest.mark.parametrize(
    "error",
    [
        WebDriverException("session not created: Chrome failed to start"),
        TimeoutError("timed out"),
        OSError(errno.EHOSTUNREACH, "No route to host"),
    ],
)
def test_other_connect_errors_get_a_generic_prefix(error: Exception) -> None:
    classified = _classifier().classify_connect_error(error, "localhost", 9515)

    assert classified.message.startswith("An error occurred while creating a new ChromeDriver session:")
    assert f"[{type(error).__name__}]" in classified.message
    assert "WEBDRIVER_START_PROCESS" not in classified.message


def test_classified_errors_are_marked_as_reported() -> None:
    classified = _classifier().classify_connect_error(WebDriverException("boom"), "localhost", 9515)

    assert classified.show_trace is False
    assert classified.report_shown is True
    assert classified.detailed_err is None


def test_already_classified_errors_pass_through() -> None:
    error = SessionConnectError("already decorated")

    assert _classifier().classify_connect_error(error, "localhost", 9515) is error


def test_driver_service_details_are_attached() -> None:
    service = make_driver_service()
    service.get_output_file_path.return_value = "/tmp/logs/test_chromedriver.log"

    classified = _classifier(driver_service=service).classify_connect_error(
        WebDriverException("boom"), "localhost", 9515
    )

    assert "{ service: ChromeDriver }" in classified.detailed_err
    assert "/tmp/logs/test_chromedriver.log" in classified.extra_detail


def test_missing_log_file_suggests_configuring_one() -> None:
    classified = _classifier(driver_service=make_driver_service()).classify_connect_error(
        WebDriverException("boom"), "localhost", 9515
    )

    assert "WEBDRIVER_LOG_PATH" in classified.extra_detail


def test_adb_failures_map_to_android_connection_error() -> None:
    error = WebDriverException("Failed to run adb command: no devices online")

    classified = _classifier(
        driver_service=make_driver_service(4723),
        desired_capabilities={"platformName": "Android"},
    ).classify_connect_error(error, "localhost", 4723)

    assert isinstance(classified, AndroidConnectionError)
    assert "adb devices" in classified.message
    assert classified.detailed_err is not None
    assert classified.__cause__ is error


def test_android_mapping_needs_an_active_driver_service() -> None:
    classified = _classifier(desired_capabilities={"platformName": "Android"}).classify_connect_error(
        WebDriverException("Failed to run adb command"), "localhost", 4723
    )

    assert not isinstance(classified, AndroidConnectionError)


def test_safari_on_ios_session_errors_carry_desired_capabilities() -> None:
    desired = {"platformName": "iOS", "browserName": "Safari", "safari:deviceUDID": "UDID-1"}

    classified = _classifier(
        driver_service=make_driver_service(4445),
        desired_capabilities=desired,
    ).classify_connect_error(SessionNotCreatedException("Could not create a session"), "localhost", 4445)

    assert isinstance(classified, IosSessionNotCreatedError)
    assert classified.desired_capabilities == desired
    assert classified.report_shown is True


def test_ios_mapping_requires_safari() -> None:
    classified = _classifier(
        driver_service=make_driver_service(4723),
        desired_capabilities={"platformName": "iOS", "appium:bundleId": "com.example"},
    ).classify_connect_error(SessionNotCreatedException("nope"), "localhost", 4723)

    assert type(classified) is SessionConnectError


@pytest.mark.parametrize(
    "error",
    [
        StaleElementReferenceException("stale"),
        ElementClickInterceptedException("intercepted"),
        InvalidElementStateException("invalid state"),
        ElementNotInteractableException("not interactable"),
        WebDriverException("unknown error: Element is not clickable at point (10, 20)"),
        WebDriverException("Other element would receive the click: <div>"),
    ],
)
def test_retryable_element_errors(error: WebDriverException) -> None:
    assert _classifier().is_retryable_element_error({"status": -1, "value": None, "error": error}) is True
    assert _classifier().is_retryable_element_error(error) is True


@pytest.mark.parametrize(
    "error",
    [
        NoSuchElementException("no such element"),
        WebDriverException("unknown error: something else"),
        InvalidSessionIdException("invalid session id"),
        ValueError("Element is not clickable at point"),
    ],
)
def test_non_retryable_element_errors(error: Exception) -> None:
    assert _classifier().is_retryable_element_error({"status": -1, "value": None, "error": error}) is False


def test_successful_results_are_not_retryable() -> None:
    assert _classifier().is_retryable_element_error({"status": 0, "value": "ok"}) is False


def test_element_error_kinds() -> None:
    assert element_error_kind(ElementNotInteractableException("x")) == ElementErrorKind.ELEMENT_NOT_INTERACTABLE
    assert element_error_kind(InvalidElementStateException("x")) == ElementErrorKind.INVALID_ELEMENT_STATE
    assert element_error_kind(WebDriverException("x")) == ElementErrorKind.GENERIC
    assert element_error_kind(NoSuchElementException("x")) == ElementErrorKind.OTHER
    assert element_error_kind(None) == ElementErrorKind.OTHER


def test_window_and_session_errors() -> None:
    assert ErrorClassifier.invalid_window_reference(NoSuchWindowException("gone"))
    assert not ErrorClassifier.invalid_window_reference(WebDriverException("x"))
    assert ErrorClassifier.invalid_session_error(InvalidSessionIdException("gone"))


def test_result_helpers() -> None:
    error = WebDriverException("boom")

    assert errors.is_result_success({"status": 0, "value": 1})
    assert errors.is_result_success(None)
    assert not errors.is_result_success({"status": -1, "value": None, "error": error})
    assert not errors.is_result_success(error)

    assert errors.get_error_response({"status": -1, "value": None, "error": error}) is error
    assert errors.get_error_response(error) is error
    assert errors.get_error_response({"status": 0, "value": 1}) is None

    assert errors.get_error_message(error) == "boom"
    assert errors.get_error_message({"value": {"error": "no such element", "message": "not found"}}) == "not found"
    assert errors.get_error_message({"status": 0, "value": 1}) is None


def test_handle_error_response_raises_matching_exception() -> None:
    with pytest.raises(NoSuchElementException):
        errors.handle_error_response({"value": {"error": "no such element", "message": "Unable to locate element"}})

    # successes and already decoded failures are left alone
    errors.handle_error_response({"status": 0, "value": "ok"})
    errors.handle_error_response({"status": -1, "value": None, "error": WebDriverException("x")})


def test_error_message_drops_selenium_documentation_link() -> None:
    error = WebDriverException(
        "Unable to locate element; For documentation on this error, please visit: "
        "https://www.selenium.dev/documentation/webdriver/troubleshooting/errors#no-such-element-exception"
    )

    assert errors.get_error_message(error) == "Unable to locate element"
    assert errors.get_error_message(NoSuchElementException("Unable to locate element")) == "Unable to locate element"
    assert errors.get_error_message(WebDriverException()) is None
