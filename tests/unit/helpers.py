from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, MagicMock

from wdsession.config import TransportSettings, WebdriverSettings


class FakeSession:
    def __init__(self, session_id: str = "session-1", capabilities: dict[str, Any] | None = None) -> None:
        self.session_id = session_id
        self.capabilities = capabilities if capabilities is not None else {"browserName": "chrome"}

    async def get_id(self) -> str:
        return self.session_id

    async def get_capabilities(self) -> dict[str, Any]:
        return dict(self.capabilities)


class FakeDriver:
    """Remote driver double; counts `get_session` calls, the only call that reaches the remote end."""

    def __init__(self, session: FakeSession | None = None, error: BaseException | None = None) -> None:
        self.session = session or FakeSession()
        self.error = error
        self.get_session_calls = 0
        self.execute = AsyncMock(return_value={"value": None})
        self.quit = AsyncMock()

    async def get_session(self) -> FakeSession:
        self.get_session_calls += 1
        if self.error is not None:
            raise self.error
        return self.session


def make_settings(
    desired_capabilities: dict[str, Any] | None = None,
    start_process: bool = False,
    **overrides: Any,
) -> TransportSettings:
    values: dict[str, Any] = {
        "desired_capabilities": desired_capabilities if desired_capabilities is not None else {"browserName": "chrome"},
        "webdriver": WebdriverSettings(start_process=start_process, host="localhost", port=4444),
        "output": False,
        "retryable_error_messages": [
            "Element is not clickable at point",
            "Other element would receive the click",
            "Node with given id does not belong to the document",
        ],
    }
    values.update(overrides)
    return TransportSettings(**values)


def make_driver_service(port: int = 9515, stop_error: BaseException | None = None) -> MagicMock:
    service = MagicMock()
    service.stopped = False
    service.port = port
    service.service_url = f"http://localhost:{port}"
    service.get_output_file_path.return_value = None
    service.get_settings_formatted.return_value = "{ service: ChromeDriver }"
    service.stop = AsyncMock(side_effect=stop_error)
    return service
