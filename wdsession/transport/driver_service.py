from __future__ import annotations

import asyncio
import os
import shutil
from pathlib import Path
from typing import Any, ClassVar

import structlog
from selenium.webdriver.chrome.service import Service as ChromeService
from selenium.webdriver.common.options import BaseOptions
from selenium.webdriver.common.service import Service
from selenium.webdriver.edge.service import Service as EdgeService
from selenium.webdriver.firefox.service import Service as FirefoxService
from selenium.webdriver.safari.service import Service as SafariService

from wdsession.config import WebdriverSettings
from wdsession.constants import DRIVER_SERVICE_STOP_TIMEOUT, Browser
from wdsession.exceptions import DriverServiceNotFound, DriverServiceStartError, UnsupportedBrowser

LOG = structlog.get_logger()


class AppiumServerService(Service):
    """Runs the `appium` server binary; readiness is detected on its listening port."""

    def __init__(self, executable_path: str, port: int = 0, service_args: list[str] | None = None, **kwargs: Any):
        self.service_args = list(service_args or [])
        super().__init__(executable_path=executable_path, port=port, **kwargs)

    def command_line_args(self) -> list[str]:
        return ["--port", str(self.port)] + self.service_args


class DriverService:
    """
    A locally managed driver process speaking the remote automation protocol.

    Subclasses bind a selenium `Service` implementation, a display name, the default binary and
    the driver's well-known port.
    """

    service_name: ClassVar[str] = "WebDriver"
    executable: ClassVar[str] = ""
    default_port: ClassVar[int] = 4444
    service_class: ClassVar[type[Service]] = ChromeService

    def __init__(self, webdriver_settings: WebdriverSettings) -> None:
        self.settings = webdriver_settings
        self.stopped = False
        self.output_file_name: str | None = None
        self._service: Service | None = None

    @property
    def port(self) -> int:
        if self._service is not None:
            return self._service.port
        return self.settings.port or self.default_port

    @property
    def service_url(self) -> str:
        if self._service is None:
            return f"http://localhost:{self.port}"
        return self._service.service_url

    def set_output_file(self, name: str) -> DriverService:
        slug = self.service_name.lower().replace(" ", "_")
        self.output_file_name = f"{name}_{slug}.log" if name else f"{slug}.log"
        return self

    def get_output_file_path(self) -> str | None:
        if not self.settings.log_path or not self.output_file_name:
            return None
        return str(Path(self.settings.log_path) / self.output_file_name)

    def resolve_executable(self) -> str:
        executable = self.settings.server_path or self.executable
        resolved = executable if os.path.isfile(executable) else shutil.which(executable)
        if not resolved:
            raise DriverServiceNotFound(self.service_name, executable)
        return resolved

    def get_settings_formatted(self) -> str:
        return (
            f"{{ service: {self.service_name}, executable: {self.settings.server_path or self.executable}, "
            f"port: {self.port}, cli_args: {self.settings.cli_args}, "
            f"log_file: {self.get_output_file_path() or 'none'} }}"
        )

    def create_service(self, executable_path: str) -> Service:
        log_output = self.get_output_file_path()
        if log_output:
            Path(log_output).parent.mkdir(parents=True, exist_ok=True)
        return self.service_class(
            executable_path=executable_path,
            port=self.settings.port or 0,
            service_args=list(self.settings.cli_args),
            log_output=log_output,
        )

    async def init(self, options: BaseOptions | None = None) -> None:
        executable_path = self.resolve_executable()
        self._service = self.create_service(executable_path)
        LOG.info(
            "Starting driver service",
            service_name=self.service_name,
            executable=executable_path,
            port=self._service.port,
        )
        try:
            await asyncio.to_thread(self._service.start)
        except Exception as e:
            raise DriverServiceStartError(self.service_name, str(e)) from e
        self.stopped = False

    async def stop(self) -> None:
        if self._service is None or self.stopped:
            return
        LOG.info("Stopping driver service", service_name=self.service_name)
        async with asyncio.timeout(DRIVER_SERVICE_STOP_TIMEOUT):
            await asyncio.to_thread(self._service.stop)
        self.stopped = True


class ChromeDriverService(DriverService):
    service_name = "ChromeDriver"
    executable = "chromedriver"
    default_port = 9515
    service_class = ChromeService


class GeckoDriverService(DriverService):
    service_name = "GeckoDriver"
    executable = "geckodriver"
    default_port = 4444
    service_class = FirefoxService


class EdgeDriverService(DriverService):
    service_name = "EdgeDriver"
    executable = "msedgedriver"
    default_port = 9515
    service_class = EdgeService


class SafariDriverService(DriverService):
    service_name = "SafariDriver"
    executable = "/usr/bin/safaridriver"
    default_port = 4445
    service_class = SafariService


class AppiumService(DriverService):
    service_name = "Appium Server"
    executable = "appium"
    default_port = 4723
    service_class = AppiumServerService

    def create_service(self, executable_path: str) -> Service:
        log_output = self.get_output_file_path()
        if log_output:
            Path(log_output).parent.mkdir(parents=True, exist_ok=True)
        return AppiumServerService(
            executable_path=executable_path,
            port=self.settings.port or self.default_port,
            service_args=list(self.settings.cli_args),
            log_output=log_output,
        )


DRIVER_SERVICES: dict[str, type[DriverService]] = {
    Browser.CHROME: ChromeDriverService,
    Browser.FIREFOX: GeckoDriverService,
    Browser.EDGE: EdgeDriverService,
    Browser.SAFARI: SafariDriverService,
}


def driver_service_class(browser_name: str | None, mobile: bool = False) -> type[DriverService]:
    if mobile:
        return AppiumService
    service_class = DRIVER_SERVICES.get(browser_name or "")
    if service_class is None:
        raise UnsupportedBrowser(browser_name)
    return service_class
