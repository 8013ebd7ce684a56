from __future__ import annotations

from typing import Any, Mapping

import structlog
from selenium.webdriver import ChromeOptions, EdgeOptions, FirefoxOptions, IeOptions
from selenium.webdriver.common.options import ArgOptions, BaseOptions
from selenium.webdriver.safari.options import Options as SafariOptions

from wdsession.config import TransportSettings
from wdsession.constants import Browser
from wdsession.exceptions import UnsupportedBrowser
from wdsession.transport.capabilities import flatten_vendor_options

LOG = structlog.get_logger()


class AppiumOptions(ArgOptions):
    """Plain W3C capabilities for an Appium remote end; no browser defaults are injected."""

    def __init__(self) -> None:
        super().__init__()
        # BaseOptions presets pageLoadStrategy, which Appium drivers do not expect
        self._caps = self.default_capabilities

    @property
    def default_capabilities(self) -> dict[str, Any]:
        return {}

    def to_capabilities(self) -> dict[str, Any]:
        return dict(self._caps)


BROWSER_OPTIONS: dict[str, type[BaseOptions]] = {
    Browser.CHROME: ChromeOptions,
    Browser.FIREFOX: FirefoxOptions,
    Browser.SAFARI: SafariOptions,
    Browser.EDGE: EdgeOptions,
    Browser.INTERNET_EXPLORER: IeOptions,
}

# browsers which take a --headless style argument
HEADLESS_ARGUMENTS: dict[str, str] = {
    Browser.CHROME: "--headless=new",
    Browser.EDGE: "--headless=new",
    Browser.FIREFOX: "-headless",
}


def normalize_browser_name(browser_name: str | None) -> str | None:
    if not browser_name:
        return None
    lowered = browser_name.lower()
    for browser in Browser:
        if browser.value.lower() == lowered:
            return browser.value
    if lowered in ("edge", "msedge"):
        return Browser.EDGE.value
    if lowered in ("ie", "internetexplorer"):
        return Browser.INTERNET_EXPLORER.value
    return browser_name


class SessionOptions:
    """
    Builds selenium options objects from the desired capabilities of the run and its arguments.
    """

    def __init__(self, settings: TransportSettings, browser_name: str | None = None) -> None:
        self.settings = settings
        self.browser_name = normalize_browser_name(
            browser_name or settings.desired_capabilities.get("browserName")
        )

    def create(self, argv: Mapping[str, Any] | None = None) -> BaseOptions:
        argv = argv or {}
        capabilities = flatten_vendor_options(self.settings.desired_capabilities)

        if self.settings.is_mobile():
            options: BaseOptions = AppiumOptions()
        else:
            options_class = BROWSER_OPTIONS.get(self.browser_name or "")
            if options_class is None:
                raise UnsupportedBrowser(self.browser_name)
            options = options_class()

        vendor_key = getattr(options, "KEY", None)
        for name, value in capabilities.items():
            if name == vendor_key and isinstance(value, Mapping):
                self._apply_vendor_options(options, value)
            else:
                options.set_capability(name, value)

        self._apply_arguments(options, argv)

        LOG.debug(
            "Created session options",
            browser_name=self.browser_name,
            options_type=type(options).__name__,
        )
        return options

    @staticmethod
    def _apply_vendor_options(options: BaseOptions, vendor_options: Mapping[str, Any]) -> None:
        for name, value in vendor_options.items():
            if name == "args" and isinstance(options, ArgOptions):
                for argument in value:
                    options.add_argument(argument)
            elif name == "binary" and hasattr(options, "binary_location"):
                options.binary_location = value
            elif hasattr(options, "add_experimental_option"):
                options.add_experimental_option(name, value)
            elif hasattr(options, "set_preference") and name == "prefs":
                for pref_name, pref_value in value.items():
                    options.set_preference(pref_name, pref_value)

    def _apply_arguments(self, options: BaseOptions, argv: Mapping[str, Any]) -> None:
        if argv.get("headless") and self.browser_name in HEADLESS_ARGUMENTS and isinstance(options, ArgOptions):
            options.add_argument(HEADLESS_ARGUMENTS[self.browser_name])
        window_size = argv.get("window_size")
        if window_size and self.browser_name in (Browser.CHROME, Browser.EDGE) and isinstance(options, ArgOptions):
            options.add_argument(f"--window-size={window_size}")
