from __future__ import annotations

from typing import Any, Mapping

from pydantic import BaseModel

from wdsession.constants import APP_ID_KEYS, LEGACY_ELEMENT_ID, PLATFORM_NAME_KEYS, PLATFORM_VERSION_KEYS, WEB_ELEMENT_ID
from wdsession.transport.capabilities import as_capability_lookup
from wdsession.transport.driver import RemoteDriver


class SessionInfo(BaseModel):
    platform: str = ""
    platform_version: str = ""
    browser_name: str = ""
    browser_version: str = ""
    app_id: str = ""

    @property
    def app_name(self) -> str:
        return self.app_id.split(".")[-1] or self.browser_name


class SessionExports(BaseModel):
    session_id: str
    capabilities: dict[str, Any]
    element_key: str
    session_info: SessionInfo


def serialize_capabilities(capabilities: Any) -> dict[str, Any]:
    """Turn a capabilities object into a plain, comparison-friendly dict."""
    if capabilities is None:
        return {}
    if isinstance(capabilities, Mapping):
        items = capabilities.items()
    elif callable(getattr(capabilities, "items", None)):
        items = capabilities.items()
    else:
        items = vars(capabilities).items()
    return {str(key): _serialize_value(value) for key, value in items}


def _serialize_value(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {str(key): _serialize_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_serialize_value(item) for item in value]
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


def element_key_for(capabilities: Mapping[str, Any]) -> str:
    # sessions created over the legacy JSON wire protocol report `version` instead of `browserVersion`
    if "browserVersion" not in capabilities and "platformName" not in capabilities and "version" in capabilities:
        return LEGACY_ELEMENT_ID
    return WEB_ELEMENT_ID


def session_info_for(capabilities: Mapping[str, Any]) -> SessionInfo:
    lookup = as_capability_lookup(capabilities)
    assert lookup is not None

    def first(keys: tuple[str, ...]) -> str:
        for key in keys:
            value = lookup.get(key)
            if value:
                return str(value)
        return ""

    return SessionInfo(
        platform=first(PLATFORM_NAME_KEYS),
        platform_version=first(PLATFORM_VERSION_KEYS),
        browser_name=str(lookup.browser_name() or ""),
        browser_version=first(("browserVersion", "version")),
        app_id=first(APP_ID_KEYS),
    )


class Session:
    def __init__(self, driver: RemoteDriver) -> None:
        self.driver = driver

    async def exported(self) -> SessionExports:
        """
        Resolve the remote session and export its id, capabilities and element key convention.

        For a driver that has not talked to the remote end yet, this is where the new session
        request is sent.
        """
        session = await self.driver.get_session()
        session_id = await session.get_id()
        capabilities = serialize_capabilities(await session.get_capabilities())

        return SessionExports(
            session_id=session_id,
            capabilities=capabilities,
            element_key=element_key_for(capabilities),
            session_info=session_info_for(capabilities),
        )
