"""
Platform classification for desired capability sets.

The platform is always derived from the capabilities of the current run and never stored,
since desired capabilities change from one test to the next.
"""

from typing import Any, Mapping

from wdsession.constants import Browser, TargetPlatform


def _platform_name(desired_capabilities: Mapping[str, Any] | None) -> str:
    if not desired_capabilities:
        return ""
    value = desired_capabilities.get("platformName")
    return str(value).lower() if value else ""


def classify_platform(desired_capabilities: Mapping[str, Any] | None) -> TargetPlatform:
    platform_name = _platform_name(desired_capabilities)
    if platform_name == TargetPlatform.IOS:
        return TargetPlatform.IOS
    if platform_name == TargetPlatform.ANDROID:
        return TargetPlatform.ANDROID
    return TargetPlatform.WEB


def is_ios(desired_capabilities: Mapping[str, Any] | None) -> bool:
    return classify_platform(desired_capabilities) == TargetPlatform.IOS


def is_android(desired_capabilities: Mapping[str, Any] | None) -> bool:
    return classify_platform(desired_capabilities) == TargetPlatform.ANDROID


def is_mobile(desired_capabilities: Mapping[str, Any] | None) -> bool:
    return classify_platform(desired_capabilities) != TargetPlatform.WEB


def is_safari(desired_capabilities: Mapping[str, Any] | None) -> bool:
    if not desired_capabilities:
        return False
    browser_name = desired_capabilities.get("browserName")
    return bool(browser_name) and str(browser_name).lower() == Browser.SAFARI
