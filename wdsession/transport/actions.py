from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

import structlog
from selenium.common.exceptions import WebDriverException
from selenium.webdriver.remote.command import Command

from wdsession.exceptions import NoActiveSession, UnknownProtocolAction
from wdsession.transport.driver import RemoteDriver

LOG = structlog.get_logger()

ParamsBuilder = Callable[[dict[str, Any]], dict[str, Any]]


@dataclass(frozen=True)
class ProtocolAction:
    command: str
    params: ParamsBuilder = lambda args: {}


def _element_params(args: dict[str, Any]) -> dict[str, Any]:
    return {"id": args["id"]}


def _send_keys_params(args: dict[str, Any]) -> dict[str, Any]:
    text = str(args["text"])
    return {"id": args["id"], "text": text, "value": list(text)}


PROTOCOL_ACTIONS: dict[str, ProtocolAction] = {
    "navigateTo": ProtocolAction(Command.GET, lambda args: {"url": args["url"]}),
    "getCurrentUrl": ProtocolAction(Command.GET_CURRENT_URL),
    "getTitle": ProtocolAction(Command.GET_TITLE),
    "getPageSource": ProtocolAction(Command.GET_PAGE_SOURCE),
    "findElement": ProtocolAction(
        Command.FIND_ELEMENT, lambda args: {"using": args["using"], "value": args["value"]}
    ),
    "findElements": ProtocolAction(
        Command.FIND_ELEMENTS, lambda args: {"using": args["using"], "value": args["value"]}
    ),
    "clickElement": ProtocolAction(Command.CLICK_ELEMENT, _element_params),
    "sendKeysToElement": ProtocolAction(Command.SEND_KEYS_TO_ELEMENT, _send_keys_params),
    "getElementText": ProtocolAction(Command.GET_ELEMENT_TEXT, _element_params),
    "executeScript": ProtocolAction(
        Command.W3C_EXECUTE_SCRIPT, lambda args: {"script": args["script"], "args": list(args.get("args", []))}
    ),
    "deleteSession": ProtocolAction(Command.QUIT),
}


class Actions:
    """Runs named protocol actions against the current driver and wraps their outcome in a result."""

    def __init__(self, driver_getter: Callable[[], RemoteDriver | None]) -> None:
        self._driver_getter = driver_getter
        self.actions = dict(PROTOCOL_ACTIONS)

    def register(self, name: str, action: ProtocolAction) -> None:
        self.actions[name] = action

    async def run(
        self,
        action_name: str,
        args: dict[str, Any] | None = None,
        session_id: str | None = None,
        session_required: bool = True,
    ) -> dict[str, Any]:
        action = self.actions.get(action_name)
        if action is None:
            raise UnknownProtocolAction(action_name)

        driver = self._driver_getter()
        if driver is None or (session_required and not session_id):
            raise NoActiveSession(action_name)

        params = action.params(args or {})
        try:
            response = await driver.execute(action.command, params)
        except WebDriverException as e:
            LOG.debug("Protocol action failed", action_name=action_name, error=e.msg)
            return {"status": -1, "value": None, "error": e}

        return {"status": 0, "value": (response or {}).get("value")}
