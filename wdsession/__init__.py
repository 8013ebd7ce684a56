from wdsession._version import __version__
from wdsession.config import Settings, TransportSettings, settings
from wdsession.core.worker_context import WorkerContext
from wdsession.exceptions import SessionConnectError, WdSessionException
from wdsession.log import setup_logger
from wdsession.transport.session_cache import CachedSessionInfo, SessionCache
from wdsession.transport.transport import CreatedSession, SeleniumTransport

setup_logger()

__all__ = [
    "__version__",
    "CachedSessionInfo",
    "CreatedSession",
    "SeleniumTransport",
    "SessionCache",
    "SessionConnectError",
    "Settings",
    "TransportSettings",
    "WdSessionException",
    "WorkerContext",
    "settings",
]
