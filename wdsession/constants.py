from enum import StrEnum
from pathlib import Path

WDSESSION_DIR = Path(__file__).parent
REPO_ROOT_DIR = WDSESSION_DIR.parent

# W3C web element identifier and the legacy JSON wire protocol one
WEB_ELEMENT_ID = "element-6066-11e4-a52e-4f735466cecf"
LEGACY_ELEMENT_ID = "ELEMENT"

DEFAULT_REMOTE_PORT = 4444
DRIVER_SERVICE_STOP_TIMEOUT = 30  # seconds

APPIUM_PREFIX = "appium:"
APPIUM_OPTIONS_KEY = "appium:options"

# capability keys consulted when comparing a desired capability set against a live session
PLATFORM_NAME_KEYS = ("platformName", "platform")
IOS_UDID_KEYS = ("appium:udid", "safari:deviceUDID")
IOS_BUNDLE_ID_KEYS = ("appium:bundleId", "bundleId")
ANDROID_UDID_KEYS = ("appium:udid", "deviceId")
ANDROID_APP_PACKAGE_KEYS = ("appium:appPackage", "appPackage")
PLATFORM_VERSION_KEYS = ("platformVersion", "appium:platformVersion")
APP_ID_KEYS = ("appium:bundleId", "bundleId", "appium:appPackage", "appPackage")

ANDROID_BRIDGE_ERROR_MESSAGES = ("Failed to run adb command", "no devices online")
IOS_SESSION_ERROR_NAMES = frozenset({"SessionNotCreatedException", "WebDriverException"})


class Browser(StrEnum):
    CHROME = "chrome"
    FIREFOX = "firefox"
    SAFARI = "safari"
    EDGE = "MicrosoftEdge"
    OPERA = "opera"
    INTERNET_EXPLORER = "internet explorer"


class TargetPlatform(StrEnum):
    WEB = "web"
    IOS = "ios"
    ANDROID = "android"


class NegotiationState(StrEnum):
    IDLE = "idle"
    OPTIONS_RESOLVED = "optionsResolved"
    SERVICE_STARTING = "serviceStarting"
    REUSE_CHECKED = "reuseChecked"
    DRIVER_READY = "driverReady"
    SESSION_EXPORTED = "sessionExported"
    CONNECTED = "connected"
    FAILED = "failed"
