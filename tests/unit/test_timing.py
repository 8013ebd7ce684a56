from unittest.mock import patch

from wdsession.core.timing import ConnectTiming, Stopwatch, record_stage


def test_breakdown_includes_service_only_when_it_ran() -> None:
    timing = ConnectTiming(create_options=3, driver_service=0, driver_creation=120, session_export=4)

    assert timing.breakdown() == "[options:3ms, driver:120ms, export:4ms]"

    timing.driver_service = 250
    assert timing.breakdown() == "[options:3ms, service:250ms, driver:120ms, export:4ms]"


def test_record_stage() -> None:
    timing = ConnectTiming()
    with patch("wdsession.core.timing.time.monotonic", side_effect=[10.0, 10.25]):
        stopwatch = Stopwatch()
        elapsed = record_stage(timing, "driver_creation", stopwatch)

    assert elapsed == 250
    assert timing.driver_creation == 250
    assert timing.to_dict()["driver_creation"] == 250
