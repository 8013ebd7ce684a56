from __future__ import annotations

import asyncio
from typing import Any, Callable, Protocol

import structlog
from selenium.webdriver.remote.command import Command
from selenium.webdriver.remote.webdriver import WebDriver

LOG = structlog.get_logger()


class RemoteSession(Protocol):
    async def get_id(self) -> str: ...

    async def get_capabilities(self) -> Any: ...


class RemoteDriver(Protocol):
    async def get_session(self) -> RemoteSession: ...

    async def execute(self, command: str, params: dict[str, Any] | None = None) -> dict[str, Any]: ...

    async def quit(self) -> None: ...


class SeleniumSession:
    def __init__(self, webdriver: WebDriver) -> None:
        self._webdriver = webdriver

    async def get_id(self) -> str:
        return self._webdriver.session_id

    async def get_capabilities(self) -> dict[str, Any]:
        return dict(self._webdriver.capabilities)


class SeleniumDriver:
    """
    Async handle over a selenium remote WebDriver.

    The remote session is requested lazily, on the first `get_session()`. Later calls verify that
    the session still answers with a cheap W3C command. All blocking selenium calls run in a worker
    thread, so a caller bounding `get_session()` with a timeout simply discards the late result.
    """

    def __init__(self, factory: Callable[[], WebDriver]) -> None:
        self._factory = factory
        self._webdriver: WebDriver | None = None
        self._lock = asyncio.Lock()

    @property
    def webdriver(self) -> WebDriver | None:
        return self._webdriver

    async def get_session(self) -> SeleniumSession:
        async with self._lock:
            if self._webdriver is None:
                LOG.info("Requesting new remote session")
                self._webdriver = await asyncio.to_thread(self._factory)
                return SeleniumSession(self._webdriver)

        await asyncio.to_thread(self._webdriver.execute, Command.GET_TIMEOUTS)
        return SeleniumSession(self._webdriver)

    async def execute(self, command: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        if self._webdriver is None:
            await self.get_session()
        assert self._webdriver is not None
        return await asyncio.to_thread(self._webdriver.execute, command, params)

    async def quit(self) -> None:
        if self._webdriver is None:
            return
        webdriver, self._webdriver = self._webdriver, None
        await asyncio.to_thread(webdriver.quit)
