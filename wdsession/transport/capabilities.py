"""
Capability comparison between a desired capability set and a live (or cached) session.

Two capability shapes reach this module: plain mappings (desired capabilities, cached session
snapshots) and typed capability objects exposing getters. Both are wrapped once, at the
boundary, behind `CapabilityLookup`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Protocol, runtime_checkable

import structlog

from wdsession.constants import (
    ANDROID_APP_PACKAGE_KEYS,
    ANDROID_UDID_KEYS,
    APPIUM_OPTIONS_KEY,
    APPIUM_PREFIX,
    IOS_BUNDLE_ID_KEYS,
    IOS_UDID_KEYS,
    PLATFORM_NAME_KEYS,
)
from wdsession.utils.platform import is_android, is_ios, is_mobile

LOG = structlog.get_logger()


@runtime_checkable
class CapabilityLookup(Protocol):
    def get(self, key: str) -> Any: ...

    def browser_name(self) -> Any: ...


@dataclass(frozen=True)
class MappingCapabilities:
    values: Mapping[str, Any]

    def get(self, key: str) -> Any:
        return self.values.get(key)

    def browser_name(self) -> Any:
        return self.values.get("browserName")


@dataclass(frozen=True)
class GetterCapabilities:
    """A typed capability object exposing `get(key)` and, optionally, `get_browser_name()`."""

    source: Any

    def get(self, key: str) -> Any:
        return self.source.get(key)

    def browser_name(self) -> Any:
        getter = getattr(self.source, "get_browser_name", None)
        if callable(getter):
            return getter()
        return self.source.get("browserName")


def as_capability_lookup(capabilities: Any) -> CapabilityLookup | None:
    if capabilities is None:
        return None
    if isinstance(capabilities, (MappingCapabilities, GetterCapabilities)):
        return capabilities
    if isinstance(capabilities, Mapping):
        return MappingCapabilities(capabilities)
    if callable(getattr(capabilities, "get", None)):
        return GetterCapabilities(capabilities)
    raise TypeError(f"Unsupported capabilities type: {type(capabilities).__name__}")


def flatten_vendor_options(
    capabilities: Mapping[str, Any],
    options_key: str = APPIUM_OPTIONS_KEY,
    prefix: str = APPIUM_PREFIX,
) -> dict[str, Any]:
    """
    Expand a nested vendor options bag (e.g. `appium:options`) into top-level prefixed keys.

    Keys already carrying the prefix are kept as is, and the nested bag is removed. Flattening an
    already flattened mapping returns an equal mapping.
    """
    flattened = dict(capabilities)
    vendor_options = flattened.get(options_key)
    if not isinstance(vendor_options, Mapping):
        return flattened

    for key, value in vendor_options.items():
        if not key.startswith(prefix):
            key = f"{prefix}{key}"
        flattened[key] = value
    del flattened[options_key]

    return flattened


def _first_present(capabilities: CapabilityLookup, keys: tuple[str, ...]) -> Any:
    for key in keys:
        value = capabilities.get(key)
        if value:
            return value
    return None


def _lower(value: Any) -> str | None:
    return str(value).lower() if value else None


def _differs(desired: Any, existing: Any) -> bool:
    # a field missing on either side does not count as a mismatch
    return bool(desired) and bool(existing) and desired != existing


def capabilities_match(desired_capabilities: Mapping[str, Any], existing_capabilities: Any) -> bool:
    """
    Decide whether a session reporting `existing_capabilities` can serve `desired_capabilities`.

    Mobile targets must agree on platform, device and app identity. All targets must agree on
    the browser name, compared case-insensitively. A nested vendor options bag on the desired side is
    flattened before comparing.
    """
    existing = as_capability_lookup(existing_capabilities)
    if existing is None:
        return False

    desired_capabilities = flatten_vendor_options(desired_capabilities)
    desired = MappingCapabilities(desired_capabilities)

    if is_mobile(desired_capabilities):
        desired_platform = _lower(desired.get("platformName"))
        existing_platform = _lower(_first_present(existing, PLATFORM_NAME_KEYS))
        if _differs(desired_platform, existing_platform):
            LOG.debug("Platform mismatch", desired=desired_platform, existing=existing_platform)
            return False

        if is_ios(desired_capabilities):
            identifying_keys = (IOS_UDID_KEYS, IOS_BUNDLE_ID_KEYS)
        elif is_android(desired_capabilities):
            identifying_keys = (ANDROID_UDID_KEYS, ANDROID_APP_PACKAGE_KEYS)
        else:
            identifying_keys = ()

        for keys in identifying_keys:
            desired_value = _first_present(desired, keys)
            existing_value = _first_present(existing, keys)
            if _differs(desired_value, existing_value):
                LOG.debug("Capability mismatch", keys=keys, desired=desired_value, existing=existing_value)
                return False

    desired_browser = _lower(desired.browser_name())
    existing_browser = _lower(existing.browser_name())
    if _differs(desired_browser, existing_browser):
        LOG.debug("Browser mismatch", desired=desired_browser, existing=existing_browser)
        return False

    return True
