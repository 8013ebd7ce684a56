from typing import Any

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from wdsession.constants import DEFAULT_REMOTE_PORT
from wdsession.utils.platform import is_android, is_ios, is_mobile, is_safari


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "local"
    LOG_LEVEL: str = "INFO"
    JSON_LOGGING: bool = False

    # remote end / driver service
    WEBDRIVER_START_PROCESS: bool = False
    WEBDRIVER_HOST: str = "localhost"
    WEBDRIVER_PORT: int | None = None
    WEBDRIVER_DEFAULT_PATH_PREFIX: str = ""
    WEBDRIVER_SERVER_PATH: str | None = None
    WEBDRIVER_CLI_ARGS: list[str] = []
    WEBDRIVER_LOG_PATH: str | None = None
    WEBDRIVER_LOG_FILE_NAME: str | None = None
    WEBDRIVER_DEBUG_TIMING: bool = False

    # session reuse
    REUSE_BROWSER: bool = False
    REUSE_PROBE_TIMEOUT_MS: int = 1000
    # Appium backends answer slower than desktop drivers even when healthy
    REUSE_PROBE_TIMEOUT_MOBILE_MS: int = 2000

    # substrings of generic protocol errors which are safe to retry on an element
    RETRYABLE_ERROR_MESSAGES: list[str] = [
        "Element is not clickable at point",
        "Other element would receive the click",
        "Node with given id does not belong to the document",
    ]

    OUTPUT: bool = True
    TEST_WORKERS_ENABLED: bool = False


class WebdriverSettings(BaseModel):
    start_process: bool = False
    host: str = "localhost"
    port: int | None = None
    default_path_prefix: str = ""
    server_path: str | None = None
    cli_args: list[str] = Field(default_factory=list)
    log_path: str | None = None
    log_file_name: str | None = None
    debug_timing: bool = False

    @property
    def url(self) -> str:
        port = self.port or DEFAULT_REMOTE_PORT
        return f"http://{self.host}:{port}{self.default_path_prefix}"


class TransportSettings(BaseModel):
    """
    Read-only settings surface for a single test run.

    Combines the process-wide Settings with the desired capabilities of the run. Platform
    helpers are evaluated against the desired capabilities on every call.
    """

    desired_capabilities: dict[str, Any] = Field(default_factory=dict)
    webdriver: WebdriverSettings = Field(default_factory=WebdriverSettings)
    reuse_browser: bool = False
    probe_timeout_ms: int = 1000
    probe_timeout_mobile_ms: int = 2000
    retryable_error_messages: list[str] = Field(default_factory=list)
    output: bool = True
    test_workers_enabled: bool = False

    @classmethod
    def from_settings(
        cls,
        desired_capabilities: dict[str, Any] | None = None,
        base: Settings | None = None,
        **overrides: Any,
    ) -> "TransportSettings":
        base = base or settings
        values: dict[str, Any] = {
            "desired_capabilities": dict(desired_capabilities or {}),
            "webdriver": WebdriverSettings(
                start_process=base.WEBDRIVER_START_PROCESS,
                host=base.WEBDRIVER_HOST,
                port=base.WEBDRIVER_PORT,
                default_path_prefix=base.WEBDRIVER_DEFAULT_PATH_PREFIX,
                server_path=base.WEBDRIVER_SERVER_PATH,
                cli_args=list(base.WEBDRIVER_CLI_ARGS),
                log_path=base.WEBDRIVER_LOG_PATH,
                log_file_name=base.WEBDRIVER_LOG_FILE_NAME,
                debug_timing=base.WEBDRIVER_DEBUG_TIMING,
            ),
            "reuse_browser": base.REUSE_BROWSER,
            "probe_timeout_ms": base.REUSE_PROBE_TIMEOUT_MS,
            "probe_timeout_mobile_ms": base.REUSE_PROBE_TIMEOUT_MOBILE_MS,
            "retryable_error_messages": list(base.RETRYABLE_ERROR_MESSAGES),
            "output": base.OUTPUT,
            "test_workers_enabled": base.TEST_WORKERS_ENABLED,
        }
        values.update(overrides)
        return cls(**values)

    @property
    def debug_timing(self) -> bool:
        return self.webdriver.debug_timing

    @property
    def parallel_mode(self) -> bool:
        return self.test_workers_enabled

    def is_mobile(self) -> bool:
        return is_mobile(self.desired_capabilities)

    def is_ios(self) -> bool:
        return is_ios(self.desired_capabilities)

    def is_android(self) -> bool:
        return is_android(self.desired_capabilities)

    def is_safari(self) -> bool:
        return is_safari(self.desired_capabilities)

    def probe_timeout(self) -> float:
        """
        :return: the liveness probe allowance in seconds for the current target platform
        """
        timeout_ms = self.probe_timeout_mobile_ms if self.is_mobile() else self.probe_timeout_ms
        return timeout_ms / 1000


settings = Settings()
