from __future__ import annotations

from typing import Any

import structlog
from selenium import webdriver
from selenium.webdriver.common.options import BaseOptions
from selenium.webdriver.remote.webdriver import WebDriver

from wdsession.constants import Browser
from wdsession.exceptions import UnsupportedBrowser
from wdsession.transport.driver import SeleniumDriver
from wdsession.transport.options import BROWSER_OPTIONS, AppiumOptions

LOG = structlog.get_logger()

APPIUM_TARGET = "appium"


class SessionBuilder:
    """Builds a driver handle for one family of targets. The session itself is requested lazily."""

    target: str = ""

    def __init__(self, server_url: str) -> None:
        self.server_url = server_url

    def check_options(self, options: BaseOptions) -> None:
        expected = BROWSER_OPTIONS.get(self.target)
        if expected is not None and not isinstance(options, expected):
            raise TypeError(f"{type(self).__name__} expects {expected.__name__}, got {type(options).__name__}")

    def create_webdriver(self, options: BaseOptions) -> WebDriver:
        return webdriver.Remote(command_executor=self.server_url, options=options)

    def build(self, options: BaseOptions) -> SeleniumDriver:
        self.check_options(options)
        LOG.debug("Building driver", target=self.target, server_url=self.server_url)
        return SeleniumDriver(lambda: self.create_webdriver(options))


class ChromeSessionBuilder(SessionBuilder):
    target = Browser.CHROME


class FirefoxSessionBuilder(SessionBuilder):
    target = Browser.FIREFOX


class SafariSessionBuilder(SessionBuilder):
    target = Browser.SAFARI


class EdgeSessionBuilder(SessionBuilder):
    target = Browser.EDGE


class InternetExplorerSessionBuilder(SessionBuilder):
    target = Browser.INTERNET_EXPLORER


class AppiumSessionBuilder(SessionBuilder):
    target = APPIUM_TARGET

    def check_options(self, options: BaseOptions) -> None:
        if not isinstance(options, AppiumOptions):
            raise TypeError(f"{type(self).__name__} expects AppiumOptions, got {type(options).__name__}")


SESSION_BUILDERS: dict[str, type[SessionBuilder]] = {
    Browser.CHROME: ChromeSessionBuilder,
    Browser.FIREFOX: FirefoxSessionBuilder,
    Browser.SAFARI: SafariSessionBuilder,
    Browser.EDGE: EdgeSessionBuilder,
    Browser.INTERNET_EXPLORER: InternetExplorerSessionBuilder,
    APPIUM_TARGET: AppiumSessionBuilder,
}


def target_for(options: BaseOptions) -> str:
    if isinstance(options, AppiumOptions):
        return APPIUM_TARGET
    capabilities: dict[str, Any] = options.to_capabilities()
    return str(capabilities.get("browserName") or "")


def create_session_builder(options: BaseOptions, server_url: str) -> SessionBuilder:
    target = target_for(options)
    builder_class = SESSION_BUILDERS.get(target)
    if builder_class is None:
        raise UnsupportedBrowser(target or None)
    return builder_class(server_url)
