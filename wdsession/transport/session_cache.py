from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import structlog

from wdsession.exceptions import SessionCacheInconsistent

if TYPE_CHECKING:
    from wdsession.transport.driver import RemoteDriver
    from wdsession.transport.driver_service import DriverService

LOG = structlog.get_logger()


@dataclass
class CachedSessionInfo:
    """Serialized snapshot of the active session, compared without touching the network."""

    session_id: str
    capabilities: dict[str, Any] = field(default_factory=dict)


@dataclass
class SessionCache:
    """
    Slots for the active driver, its driver service and the snapshot of its session.

    There is no expiry: mutation is the only way to invalidate an entry. The session snapshot is
    only ever present while a driver is cached, and both are cleared together.
    """

    driver: RemoteDriver | None = None
    driver_service: DriverService | None = None
    session_info: CachedSessionInfo | None = None

    def has_driver(self) -> bool:
        return self.driver is not None

    def remember_session(self, session_id: str, capabilities: dict[str, Any]) -> CachedSessionInfo:
        if self.driver is None:
            raise SessionCacheInconsistent()
        self.session_info = CachedSessionInfo(session_id=session_id, capabilities=capabilities)
        return self.session_info

    def forget_session_info(self) -> None:
        self.session_info = None

    def clear_session(self) -> None:
        if self.driver is not None:
            LOG.debug("Clearing cached driver and session info")
        self.driver = None
        self.session_info = None

    def clear_driver_service(self) -> None:
        self.driver_service = None
