from __future__ import annotations

import math
import threading
import time
from typing import Callable, List

import pytest

from quakestream.config import QuakeStreamConfig
from quakestream.core.pipeline import PipelineScheduler
from quakestream.data.history import HistoryStore
from quakestream.errors import TransportError


class ScriptedSource:
    """Byte source that hands out pre-recorded chunks, then idles."""

    def __init__(self, chunks: List[bytes], fail_after: bool = False) -> None:
        self._chunks = list(chunks)
        self._fail_after = fail_after
        self._lock = threading.Lock()
        self.open_calls = 0
        self.close_calls = 0

    def open(self) -> None:
        self.open_calls += 1

    def close(self) -> None:
        self.close_calls += 1

    def read(self, timeout: float) -> bytes:
        with self._lock:
            if self._chunks:
                return self._chunks.pop(0)
        if self._fail_after:
            raise TransportError("device unplugged")
        return b""


class UnopenableSource(ScriptedSource):
    def open(self) -> None:
        raise TransportError("no such port")


def _wait_until(predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def _latest_x(scheduler: PipelineScheduler) -> float | None:
    latest = scheduler.display_snapshot().latest
    return latest.x if latest is not None else None


@pytest.fixture
def history(tmp_path):
    store = HistoryStore(tmp_path / "history.json")
    yield store
    store.close()


def test_display_window_keeps_most_recent_samples(history) -> None:
    scheduler = PipelineScheduler(ScriptedSource([]), history=history)
    for i in range(300):
        scheduler.process_line(f"$XSACC,{i / 1000:.3f},0.0,1.0*00")

    assert scheduler.samples_processed == 300
    assert scheduler.publish_tick() == 300
    snapshot = scheduler.display_snapshot()
    assert len(snapshot) == 50
    assert snapshot.samples[-1].x == pytest.approx(0.299)
    assert snapshot.samples[0].x == pytest.approx(0.250)
    assert snapshot.latest is snapshot.samples[-1]
    assert scheduler.publish_tick() == 0


def test_display_arrays_match_window(history) -> None:
    scheduler = PipelineScheduler(ScriptedSource([]), history=history)
    for _ in range(10):
        scheduler.process_line("$XSACC,0.0,0.0,1.0")
    scheduler.publish_tick()

    arrays = scheduler.display_snapshot().as_arrays()
    assert set(arrays) == {"t", "x", "y", "z", "gal", "sva"}
    assert all(len(column) == 10 for column in arrays.values())
    assert arrays["gal"][0] == pytest.approx(980.665)


def test_intensity_crossing_records_event(history) -> None:
    scheduler = PipelineScheduler(ScriptedSource([]), history=history)
    scheduler.process_line("$XSACC,0.1,0.0,1.0")
    assert scheduler.process_line("$XSINT,0.3") is None
    assert scheduler.process_line("$XSINT,0.8") is None
    scheduler.process_line("$XSACC,0.5,0.0,1.0")
    assert scheduler.status_tick().is_recording
    assert scheduler.process_line("$XSINT,1.6") is None
    event = scheduler.process_line("$XSINT,0.2")

    assert event is not None
    assert event.max_intensity == 1.6
    assert event.max_gal == pytest.approx(abs(complex(0.5, 1.0)) * 980.665)
    assert history.snapshot() == (event,)
    assert scheduler.events_recorded == 1
    assert not scheduler.status_tick().is_recording


def test_status_reflects_latest_values(history) -> None:
    scheduler = PipelineScheduler(ScriptedSource([]), history=history)
    scheduler.process_line("$XSINT,0.25")
    scheduler.process_line("$XSACC,0.0,0.0,1.0")
    status = scheduler.status_tick()

    assert status.intensity == 0.25
    assert status.sva >= 0.0
    assert scheduler.status() is status


def test_bad_lines_are_counted_not_raised(history) -> None:
    scheduler = PipelineScheduler(ScriptedSource([]), history=history)
    for line in ("garbage", "$XSACC,1,2", "$XSFOO,1", "$XSACC,a,b,c"):
        assert scheduler.process_line(line) is None

    failures = scheduler.diagnostics.parse_failures()
    assert sum(failures.values()) == 4
    assert scheduler.samples_processed == 0


def test_raw_sentences_are_counted(history) -> None:
    scheduler = PipelineScheduler(ScriptedSource([]), history=history)
    scheduler.process_line("$XSRAW,1,2,3,4")
    assert scheduler.raw_sentences == 1


def test_strong_intensity_triggers_alert_once(history) -> None:
    played: List[float] = []
    scheduler = PipelineScheduler(ScriptedSource([]), history=history, alert_player=played.append)
    for value in (1.0, 3.5, 4.0, 2.0):
        scheduler.process_line(f"$XSINT,{value}")
    assert played == [3.5]


def test_drain_processes_submitted_lines_in_order(history) -> None:
    scheduler = PipelineScheduler(ScriptedSource([]), history=history)
    for i in range(5):
        scheduler.submit_line(f"$XSACC,{i},0,0")
    assert scheduler.pending_lines == 5
    assert scheduler.drain() == 5
    scheduler.publish_tick()
    assert [s.x for s in scheduler.display_snapshot().samples] == [0.0, 1.0, 2.0, 3.0, 4.0]


def test_threaded_run_processes_every_line(history) -> None:
    payload = b"".join(f"$XSACC,{i},0,1*00\r\n".encode() for i in range(120))
    chunks = [payload[i : i + 37] for i in range(0, len(payload), 37)]
    chunks.append(b"$XSINT,0.9\n$XSINT,0.1\n")
    source = ScriptedSource(chunks)
    config = QuakeStreamConfig(publish_hz=100.0, status_hz=50.0)
    scheduler = PipelineScheduler(source, config, history=history)

    scheduler.start()
    try:
        assert scheduler.connected
        assert _wait_until(lambda: scheduler.lines_processed == 122)
        assert _wait_until(lambda: _latest_x(scheduler) == 119.0)
    finally:
        scheduler.stop()

    assert not scheduler.is_running
    assert source.open_calls == 1
    assert source.close_calls == 1
    assert scheduler.samples_processed == 120
    assert len(scheduler.display_snapshot()) == 50
    assert scheduler.display_snapshot().latest.x == 119.0
    assert len(history) == 1


def test_transport_failure_is_reported_and_source_released(history) -> None:
    source = ScriptedSource([b"$XSACC,1,2,3\n"], fail_after=True)
    scheduler = PipelineScheduler(source, history=history)

    scheduler.start()
    try:
        assert _wait_until(lambda: not scheduler.connected)
        assert _wait_until(lambda: scheduler.samples_processed == 1)
    finally:
        scheduler.stop()

    notices = scheduler.diagnostics.drain_errors()
    assert [n.source for n in notices] == ["transport"]
    assert "unplugged" in notices[0].message
    assert source.close_calls == 1


def test_open_failure_is_reported_and_raised(history) -> None:
    scheduler = PipelineScheduler(UnopenableSource([]), history=history)
    with pytest.raises(TransportError):
        scheduler.start()
    assert not scheduler.is_running
    assert scheduler.diagnostics.latest_error().source == "transport"


def test_restart_resets_stage_state(history) -> None:
    source = ScriptedSource([])
    scheduler = PipelineScheduler(source, history=history)
    scheduler.process_line("$XSACC,1,0,0")
    scheduler.process_line("$XSINT,0.9")
    scheduler.publish_tick()

    scheduler.start()
    scheduler.stop()

    assert len(scheduler.display_snapshot()) == 0
    assert not scheduler.detector.is_recording
    assert source.close_calls == 1


def test_start_twice_is_rejected(history) -> None:
    scheduler = PipelineScheduler(ScriptedSource([]), history=history)
    scheduler.start()
    try:
        with pytest.raises(RuntimeError):
            scheduler.start()
    finally:
        scheduler.stop()


def test_non_finite_acceleration_does_not_poison_filter_state(history) -> None:
    scheduler = PipelineScheduler(ScriptedSource([]), history=history)
    scheduler.process_line("$XSACC,nan,0,1*00")
    scheduler.process_line("$XSACC,0,inf,1*00")
    for _ in range(500):
        scheduler.process_line("$XSACC,0.0,0.0,1.0*00")
    scheduler.publish_tick()

    last = scheduler.display_snapshot().latest
    assert math.isfinite(last.filtered_gal)
    assert math.isfinite(last.sva)
    assert scheduler.samples_processed == 500
    assert scheduler.diagnostics.parse_failures() == {"not_numeric": 2}


def test_non_finite_intensity_does_not_close_event(history) -> None:
    scheduler = PipelineScheduler(ScriptedSource([]), history=history)
    scheduler.process_line("$XSINT,1.0")
    assert scheduler.process_line("$XSINT,nan") is None
    assert scheduler.detector.is_recording
    assert len(history) == 0


def test_stop_processes_lines_still_queued(history) -> None:
    scheduler = PipelineScheduler(ScriptedSource([]), history=history)
    for i in range(5):
        scheduler.submit_line(f"$XSACC,{i},0,1")
    scheduler.submit_line("$XSINT,0.7")

    scheduler.stop()

    assert scheduler.pending_lines == 0
    assert scheduler.samples_processed == 5
    assert [s.x for s in scheduler.display_snapshot().samples] == [0.0, 1.0, 2.0, 3.0, 4.0]
    assert scheduler.status().intensity == 0.7


def test_drain_honours_limit(history) -> None:
    scheduler = PipelineScheduler(ScriptedSource([]), history=history)
    for i in range(4):
        scheduler.submit_line(f"$XSACC,{i},0,1")
    assert scheduler.drain(limit=3) == 3
    assert scheduler.pending_lines == 1


class SlowHistoryStore(HistoryStore):
    """History store whose background writes block until released."""

    def __init__(self, *args, **kwargs) -> None:
        self.release = threading.Event()
        super().__init__(*args, **kwargs)

    def _save(self, snapshot) -> None:
        self.release.wait(5.0)
        super()._save(snapshot)


def test_slow_history_flush_does_not_escape_stop(tmp_path, caplog) -> None:
    slow = SlowHistoryStore(tmp_path / "history.json")
    try:
        scheduler = PipelineScheduler(ScriptedSource([]), history=slow)
        scheduler.process_line("$XSINT,0.9")
        scheduler.process_line("$XSINT,0.1")
        assert scheduler.events_recorded == 1

        scheduler.stop(timeout=0.05)

        assert "History writes still pending" in caplog.text
    finally:
        slow.release.set()
        slow.close()
    with HistoryStore(tmp_path / "history.json") as reloaded:
        assert len(reloaded) == 1
