from __future__ import annotations

from rich.console import Console
from rich.status import Status

LEVEL_STYLES: dict[str, str] = {
    "info": "[blue]i[/blue]",
    "succeed": "[green]✔[/green]",
    "warn": "[yellow]⚠[/yellow]",
    "fail": "[red]✖[/red]",
}


class ConnectReporter:
    """
    Spinner-style console output for the connect sequence.

    The first message starts a spinner; later messages settle it with a level symbol. Output is a
    side channel only: nothing here is awaited and nothing here affects the connect result.
    """

    def __init__(self, output_enabled: bool = True, parallel_mode: bool = False, console: Console | None = None):
        self.output_enabled = output_enabled
        self.parallel_mode = parallel_mode
        self.console = console or Console(stderr=True)
        self._status: Status | None = None

    @property
    def enabled(self) -> bool:
        return self.output_enabled and not self.parallel_mode

    def show(self, message: str, level: str = "info") -> None:
        if not self.enabled:
            return

        if self._status is None:
            self._status = self.console.status(message)
            self._status.start()
            return

        self._status.stop()
        self.console.print(f"{LEVEL_STYLES.get(level, LEVEL_STYLES['info'])} {message}")

    def print(self, message: str) -> None:
        if self.output_enabled:
            self.console.print(message)

    def stop(self) -> None:
        if self._status is not None:
            self._status.stop()
            self._status = None
