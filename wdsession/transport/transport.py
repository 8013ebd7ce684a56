from __future__ import annotations

from typing import Any, Mapping

import structlog
from pydantic import BaseModel, Field
from selenium.webdriver.common.options import BaseOptions

from wdsession.config import TransportSettings
from wdsession.constants import DEFAULT_REMOTE_PORT, WEB_ELEMENT_ID, NegotiationState
from wdsession.core import worker_context
from wdsession.core.timing import ConnectTiming, Stopwatch, record_stage
from wdsession.exceptions import SessionConnectError
from wdsession.transport import errors
from wdsession.transport.actions import Actions
from wdsession.transport.builder import SessionBuilder, create_session_builder
from wdsession.transport.driver import RemoteDriver
from wdsession.transport.driver_service import DriverService, driver_service_class
from wdsession.transport.errors import ErrorClassifier
from wdsession.transport.options import SessionOptions
from wdsession.transport.reporter import ConnectReporter
from wdsession.transport.reuse import ReuseDecider
from wdsession.transport.session import Session, SessionInfo
from wdsession.transport.session_cache import SessionCache

LOG = structlog.get_logger()


class CreatedSession(BaseModel):
    session_id: str
    capabilities: dict[str, Any]
    host: str
    port: int | None = None
    reused: bool = False
    timing: dict[str, int | None] = Field(default_factory=dict)


class SeleniumTransport:
    """
    Connects a test run to a remote WebDriver or Appium end.

    The transport either adopts the driver held by its SessionCache, after a reuse check, or builds
    a new one and requests a fresh remote session. The cache is owned by the worker running the
    tests and is never shared across workers.
    """

    def __init__(
        self,
        settings: TransportSettings,
        session_cache: SessionCache | None = None,
        reporter: ConnectReporter | None = None,
        browser_name: str | None = None,
    ) -> None:
        self.settings = settings
        if session_cache is None:
            session_cache = worker_context.ensure_context().session_cache
        self.cache = session_cache
        self.reporter = reporter or ConnectReporter(
            output_enabled=settings.output,
            parallel_mode=settings.parallel_mode,
        )
        self.session_options = SessionOptions(settings, browser_name=browser_name)
        self.reuse_decider = ReuseDecider(settings, session_cache)
        self.actions = Actions(lambda: self.driver)

        self.state = NegotiationState.IDLE
        self.timing = ConnectTiming()
        self.driver: RemoteDriver | None = None
        self.driver_service: DriverService | None = None
        self.builder: SessionBuilder | None = None
        self.session_id: str | None = None
        self.stopped = False
        self.last_error: BaseException | None = None
        self.retries_count = 0
        self._element_key: str | None = None

    ####################################################################
    # Properties
    ####################################################################
    @property
    def desired_capabilities(self) -> dict[str, Any]:
        return self.settings.desired_capabilities

    @property
    def should_start_driver_service(self) -> bool:
        return self.settings.webdriver.start_process

    @property
    def service_class(self) -> type[DriverService]:
        return driver_service_class(self.session_options.browser_name, mobile=self.settings.is_mobile())

    @property
    def service_name(self) -> str:
        if self.should_start_driver_service:
            return self.service_class.service_name
        return "remote WebDriver"

    @property
    def default_port(self) -> int:
        if self.should_start_driver_service:
            return self.service_class.default_port
        return DEFAULT_REMOTE_PORT

    @property
    def element_key(self) -> str:
        return self._element_key or WEB_ELEMENT_ID

    def get_server_url(self) -> str:
        if self.should_start_driver_service and self.driver_service is not None:
            return self.driver_service.service_url
        return self.settings.webdriver.url

    def _transition(self, state: NegotiationState) -> None:
        LOG.debug("Negotiation state changed", previous=self.state, current=state)
        self.state = state

    ####################################################################
    # Session related
    ####################################################################
    async def close_driver(self) -> None:
        service = self.driver_service or self.cache.driver_service
        if service is None:
            return
        try:
            await service.stop()
        except Exception as e:
            LOG.exception("Failed to stop the driver service", service_name=self.service_name)
            e.displayed = True  # type: ignore[attr-defined]
            raise
        finally:
            # a service that failed to stop must not be reattached either
            self.driver_service = None
            self.cache.clear_driver_service()
        self.stopped = True

    async def session_finished(self, reason: str | None = None) -> None:
        LOG.info("Session finished", reason=reason, session_id=self.session_id)
        self.cache.forget_session_info()
        await self.close_driver()

    def should_reuse_driver_service(self, reuse_browser: bool) -> bool:
        service = self.cache.driver_service
        return bool(service is not None and not service.stopped and reuse_browser)

    async def create_driver_service(
        self,
        options: BaseOptions,
        module_key: str | None = None,
        reuse_browser: bool = False,
    ) -> None:
        if not self.should_reuse_driver_service(reuse_browser):
            output_name = "test" if reuse_browser else (self.settings.webdriver.log_file_name or module_key or "")
            self.driver_service = self.service_class(self.settings.webdriver)
            await self.driver_service.set_output_file(output_name).init(options)
            # only a running service is cached for reuse
            self.cache.driver_service = self.driver_service
        else:
            LOG.info("Reusing running driver service", service_name=self.service_name)
            self.driver_service = self.cache.driver_service

    def create_session_options(self, argv: Mapping[str, Any] | None = None) -> BaseOptions:
        return self.session_options.create(argv)

    def create_driver(self, options: BaseOptions) -> RemoteDriver:
        self.builder = create_session_builder(options, self.get_server_url())
        return self.builder.build(options)

    async def should_reuse_driver(self, reuse_browser: bool) -> bool:
        return await self.reuse_decider.should_reuse_driver(reuse_browser)

    async def create_session(
        self,
        argv: Mapping[str, Any] | None = None,
        module_key: str | None = None,
        reuse_browser: bool | None = None,
    ) -> CreatedSession:
        if reuse_browser is None:
            reuse_browser = self.settings.reuse_browser

        total = Stopwatch()
        self.timing = ConnectTiming()
        debug_timing = self.settings.debug_timing
        webdriver_settings = self.settings.webdriver
        host = webdriver_settings.host
        port = webdriver_settings.port
        port_str = f"port {port}" if port else "auto-generated port"

        self._transition(NegotiationState.IDLE)
        try:
            stopwatch = Stopwatch()
            options = self.create_session_options(argv)
            record_stage(self.timing, "create_options", stopwatch, debug_timing)
            self._transition(NegotiationState.OPTIONS_RESOLVED)

            if webdriver_settings.start_process:
                self._transition(NegotiationState.SERVICE_STARTING)
                self.reporter.show(f"Starting {self.service_name} on {port_str}...")
                stopwatch = Stopwatch()
                try:
                    await self.create_driver_service(options, module_key=module_key, reuse_browser=reuse_browser)
                except Exception:
                    self.reporter.show(f"Failed to start {self.service_name}.", "warn")
                    raise
                record_stage(self.timing, "driver_service", stopwatch, debug_timing)
                port = self.driver_service.port if self.driver_service else port
            else:
                self.reporter.show(f"Connecting to {host} on {port_str}...")

            stopwatch = Stopwatch()
            reused = await self.should_reuse_driver(reuse_browser)
            self._transition(NegotiationState.REUSE_CHECKED)

            if reused:
                self.driver = self.cache.driver
            else:
                self.cache.driver = self.create_driver(options)
                self.driver = self.cache.driver
            self._transition(NegotiationState.DRIVER_READY)

            assert self.driver is not None
            export_stopwatch = Stopwatch()
            exports = await Session(self.driver).exported()
            self.cache.remember_session(exports.session_id, exports.capabilities)
            record_stage(self.timing, "driver_creation", stopwatch, debug_timing)
            record_stage(self.timing, "session_export", export_stopwatch, debug_timing)
            self._transition(NegotiationState.SESSION_EXPORTED)
        except Exception as e:
            self._transition(NegotiationState.FAILED)
            error = self.handle_connect_error(e, host, port)
            self.reporter.show(f"Failed to connect to {self.service_name} on {host} with {port_str}.", "warn")
            stop_error = await self._teardown_after_failure()
            if stop_error is not None:
                raise ExceptionGroup(
                    f"Failed to connect to {self.service_name} and to stop it", [error, stop_error]
                ) from e
            raise error from e

        self.session_id = exports.session_id
        self._element_key = exports.element_key
        context = worker_context.current()
        if context is not None:
            context.session_id = exports.session_id

        self.timing.total = total.elapsed_ms()
        breakdown = self.timing.breakdown()
        LOG.info(
            "Connection breakdown",
            breakdown=breakdown,
            reused=reused,
            session_id=exports.session_id,
        )
        if debug_timing:
            LOG.info("Total connection time", total_ms=self.timing.total)

        self.show_connect_info(
            host=host,
            port=port,
            start_process=webdriver_settings.start_process,
            session_info=exports.session_info,
            breakdown=breakdown,
        )
        self._transition(NegotiationState.CONNECTED)

        return CreatedSession(
            session_id=exports.session_id,
            capabilities=exports.capabilities,
            host=host,
            port=port,
            reused=reused,
            timing=self.timing.to_dict(),
        )

    async def _teardown_after_failure(self) -> Exception | None:
        self.cache.clear_session()
        self.driver = None
        try:
            await self.close_driver()
        except Exception as stop_error:
            return stop_error
        return None

    ####################################################################
    # Output related
    ####################################################################
    def show_connect_info(
        self,
        host: str,
        port: int | None,
        start_process: bool,
        session_info: SessionInfo,
        breakdown: str,
    ) -> None:
        if not self.settings.parallel_mode:
            target = self.service_name if start_process else host
            self.reporter.show(
                f"Connected to [bold]{target}[/bold] on port {port} ({self.timing.total}ms). {breakdown}",
                "succeed",
            )

        if self.settings.output:
            app_version = f" ({session_info.browser_version})" if session_info.browser_version else ""
            platform_version = f" ({session_info.platform_version})" if session_info.platform_version else ""
            self.reporter.print(
                f"  Using: [cyan]{session_info.app_name}[/cyan]{app_version} on "
                f"[cyan]{session_info.platform.upper()}{platform_version}[/cyan].\n"
            )

    ####################################################################
    # Elements related
    ####################################################################
    def get_element_id(self, result_value: Mapping[str, Any]) -> Any:
        return result_value[self.element_key]

    def to_element(self, element_id: str) -> dict[str, str]:
        return {self.element_key: element_id}

    def map_web_element_ids(self, value: Any) -> Any:
        if isinstance(value, list):
            return [self.get_element_id(item) for item in value]
        return value

    async def execute_protocol_action(
        self,
        protocol_action: str | Mapping[str, Any],
        execute_args: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        if isinstance(protocol_action, Mapping) and protocol_action.get("action_name"):
            return await self.actions.run(
                protocol_action["action_name"],
                args=protocol_action.get("args"),
                session_id=protocol_action.get("session_id") or self.session_id,
                session_required=True,
            )

        return await self.actions.run(
            str(protocol_action),
            args=execute_args,
            session_id=self.session_id,
            session_required=True,
        )

    ####################################################################
    # Error handling
    ####################################################################
    @property
    def error_classifier(self) -> ErrorClassifier:
        return ErrorClassifier(self.settings, self.service_name, self.driver_service)

    def handle_connect_error(self, err: BaseException, host: str | None, port: int | None) -> SessionConnectError:
        return self.error_classifier.classify_connect_error(err, host, port)

    def handle_error_response(self, result: dict[str, Any]) -> None:
        errors.handle_error_response(result)

    def register_last_error(self, err: BaseException, retry_count: int = 0) -> None:
        self.last_error = err
        self.retries_count = retry_count

    def get_error_message(self, result: Any) -> str | None:
        return errors.get_error_message(result)

    def is_result_success(self, result: Any = None) -> bool:
        return errors.is_result_success(result)

    def get_error_response(self, result: Any) -> Any:
        return errors.get_error_response(result)

    def get_output_file_path(self) -> str | None:
        if self.driver_service is None:
            return None
        return self.driver_service.get_output_file_path()

    def is_retryable_element_error(self, result: Any) -> bool:
        return self.error_classifier.is_retryable_element_error(result)

    def invalid_window_reference(self, result: Any) -> bool:
        return ErrorClassifier.invalid_window_reference(self.get_error_response(result))

    def invalid_session_error(self, result: Any) -> bool:
        return ErrorClassifier.invalid_session_error(self.get_error_response(result))
