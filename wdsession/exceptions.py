from typing import Any


class WdSessionException(Exception):
    def __init__(self, message: str | None = None):
        self.message = message
        super().__init__(message)


class SessionConnectError(WdSessionException):
    """
    A failure to reach or negotiate with the remote end, decorated for the user.

    The negotiator has already reported the failure by the time this error crosses the package
    boundary, so callers should neither print its stack trace nor report it again.
    """

    def __init__(
        self,
        message: str,
        host: str | None = None,
        port: int | None = None,
        service_name: str | None = None,
        session_create: bool = False,
    ) -> None:
        self.host = host
        self.port = port
        self.service_name = service_name
        self.session_create = session_create
        self.detailed_err: str | None = None
        self.extra_detail: str | None = None
        self.show_trace = False
        self.report_shown = True
        super().__init__(message)

    def copy_details_from(self, other: "SessionConnectError") -> None:
        self.detailed_err = other.detailed_err
        self.extra_detail = other.extra_detail


class AndroidConnectionError(SessionConnectError):
    def __init__(self, error: SessionConnectError) -> None:
        super().__init__(
            f"{error.message} Make sure the Android device or emulator is connected and visible to adb "
            f"(run `adb devices`).",
            host=error.host,
            port=error.port,
            service_name=error.service_name,
            session_create=error.session_create,
        )
        self.copy_details_from(error)


class IosSessionNotCreatedError(SessionConnectError):
    def __init__(self, error: SessionConnectError, desired_capabilities: dict[str, Any]) -> None:
        self.desired_capabilities = dict(desired_capabilities)
        super().__init__(
            f"{error.message} Verify that the iOS device or simulator is available and that Safari remote "
            f"automation is enabled. Desired capabilities: {self.desired_capabilities}",
            host=error.host,
            port=error.port,
            service_name=error.service_name,
            session_create=error.session_create,
        )
        self.copy_details_from(error)


class DriverServiceNotFound(WdSessionException):
    def __init__(self, service_name: str, executable: str) -> None:
        super().__init__(
            f"Could not find the {service_name} executable '{executable}'. "
            f"Install it or set WEBDRIVER_SERVER_PATH to its location."
        )


class DriverServiceStartError(WdSessionException):
    def __init__(self, service_name: str, reason: str | None = None) -> None:
        msg = f"Failed to start {service_name}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class UnsupportedBrowser(WdSessionException):
    def __init__(self, browser_name: str | None) -> None:
        super().__init__(f"Browser {browser_name} is not supported")


class NoActiveSession(WdSessionException):
    def __init__(self, action_name: str | None = None) -> None:
        action_str = f" action={action_name}" if action_name else ""
        super().__init__(f"No active session to run the protocol action on.{action_str}")


class UnknownProtocolAction(WdSessionException):
    def __init__(self, action_name: str) -> None:
        super().__init__(f"Unknown protocol action {action_name}")


class SessionCacheInconsistent(WdSessionException):
    def __init__(self) -> None:
        super().__init__("Cannot cache session info without an active driver")
