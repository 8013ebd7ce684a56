import time
from dataclasses import dataclass, fields

import structlog

LOG = structlog.get_logger()


@dataclass
class ConnectTiming:
    """Elapsed milliseconds per connect stage. Observability only."""

    create_options: int | None = None
    driver_service: int | None = None
    driver_creation: int | None = None
    session_export: int | None = None
    total: int | None = None

    def breakdown(self) -> str:
        service_time = self.driver_service or 0
        service_str = f", service:{service_time}ms" if service_time > 0 else ""
        return (
            f"[options:{self.create_options}ms{service_str}, "
            f"driver:{self.driver_creation}ms, export:{self.session_export}ms]"
        )

    def to_dict(self) -> dict[str, int | None]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


class Stopwatch:
    def __init__(self) -> None:
        self.started_at = time.monotonic()

    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self.started_at) * 1000)


def record_stage(timing: ConnectTiming, stage: str, stopwatch: Stopwatch, debug_timing: bool = False) -> int:
    elapsed = stopwatch.elapsed_ms()
    setattr(timing, stage, elapsed)
    if debug_timing:
        LOG.info("Connect stage finished", stage=stage, elapsed_ms=elapsed)
    return elapsed
