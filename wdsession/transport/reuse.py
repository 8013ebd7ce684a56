from __future__ import annotations

import asyncio

import structlog

from wdsession.config import TransportSettings
from wdsession.transport.capabilities import capabilities_match
from wdsession.transport.session import serialize_capabilities
from wdsession.transport.session_cache import SessionCache

LOG = structlog.get_logger()


class ReuseDecider:
    """
    Decides whether the driver held by a SessionCache can serve the current run.

    A cached session snapshot is compared first, since switching test targets is the common
    reason to refuse reuse and it costs no round trip. A capability match says nothing about the
    remote end still being alive, so a time-bounded liveness probe follows.
    """

    def __init__(self, settings: TransportSettings, cache: SessionCache) -> None:
        self.settings = settings
        self.cache = cache

    async def should_reuse_driver(self, reuse_requested: bool) -> bool:
        if not reuse_requested or self.cache.driver is None:
            return False

        cached = self.cache.session_info
        if cached is not None and cached.capabilities:
            if not capabilities_match(self.settings.desired_capabilities, cached.capabilities):
                LOG.info(
                    "Cached session does not match the desired capabilities, not reusing it",
                    session_id=cached.session_id,
                )
                self.cache.clear_session()
                return False

        driver = self.cache.driver
        timeout = self.settings.probe_timeout()
        try:
            async with asyncio.timeout(timeout):
                session = await driver.get_session()
        except TimeoutError:
            LOG.info("Cached driver did not answer in time, not reusing it", timeout=timeout)
            self.cache.clear_session()
            return False
        except Exception:
            LOG.info("Cached driver is no longer usable, not reusing it", exc_info=True)
            self.cache.clear_session()
            return False

        if self.cache.session_info is None:
            try:
                session_id = await session.get_id()
                capabilities = serialize_capabilities(await session.get_capabilities())
                self.cache.remember_session(session_id, capabilities)
            except Exception:
                # the snapshot is an optimisation; the next reuse check simply probes again
                LOG.debug("Could not snapshot the reused session", exc_info=True)

        LOG.info("Reusing cached driver")
        return True
