"""Producer/consumer wiring: ingestion, processing and publish threads."""

from __future__ import annotations

import logging
import queue
import threading
import time
from concurrent.futures import TimeoutError as FuturesTimeoutError
from typing import List, Optional

from ..analysis.lpgm import LpgmProcessor
from ..analysis.rate import RateMonitor
from ..config import QuakeStreamConfig
from ..data.history import HistoryStore
from ..errors import TransportError
from ..sensors.sentences import AccelerationSample, IntensitySample, SentenceParser
from ..sources.base import ByteSource
from .alerts import AlertGate, AlertPlayer
from .detector import EventDetector
from .diagnostics import Diagnostics
from .framer import LineFramer
from .models import DisplaySnapshot, EventRecord, ProcessedSample, StatusSnapshot
from .ringbuffer import RingBuffer

logger = logging.getLogger(__name__)

__all__ = ["PipelineScheduler"]


class PipelineScheduler:
    """
    Run a :class:`ByteSource` through the parse, process and detect stages.

    Three daemon threads share the work:

    - *ingestion* polls the source, frames bytes into lines and pushes them
      onto an unbounded FIFO queue;
    - *processing* pops lines in arrival order and runs parser, signal
      processor and event detector synchronously; processed samples land in
      a lock-guarded staging list, closed events go to the history store;
    - *ticker* drains the staging list into the bounded display window at
      ``publish_hz`` and refreshes the scalar status at ``status_hz``.

    Every sample is processed; only what consumers observe is throttled.
    Consumers read :meth:`display_snapshot`, :meth:`status`,
    ``history.snapshot()`` and ``diagnostics.drain_errors()``.

    :meth:`process_line`, :meth:`publish_tick` and :meth:`status_tick` are
    the per-thread steps, exposed so the stages can be driven without
    starting threads.
    """

    def __init__(
        self,
        source: ByteSource,
        config: Optional[QuakeStreamConfig] = None,
        *,
        history: Optional[HistoryStore] = None,
        diagnostics: Optional[Diagnostics] = None,
        alert_player: Optional[AlertPlayer] = None,
        processor: Optional[LpgmProcessor] = None,
        detector: Optional[EventDetector] = None,
    ) -> None:
        cfg = (config or QuakeStreamConfig()).sanitized()
        self.config = cfg
        self.source = source
        self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()
        self.parser = SentenceParser(self.diagnostics, talker_id=cfg.talker_id)
        self.processor = processor if processor is not None else LpgmProcessor.from_config(cfg)
        self.detector = detector if detector is not None else EventDetector(cfg.event_threshold)
        self._owns_history = history is None
        self.history = history if history is not None else HistoryStore(
            cfg.history_path, cfg.history_capacity
        )
        self.alerts = AlertGate(
            alert_player,
            threshold=cfg.alert_threshold,
            cooldown_s=cfg.alert_cooldown_s,
        )
        self.framer = LineFramer()
        self.rate_monitor = RateMonitor(cfg.sample_rate_hz, window_size=cfg.rate_window)

        self._lines: queue.SimpleQueue[str] = queue.SimpleQueue()
        self._staging: List[ProcessedSample] = []
        self._staging_lock = threading.Lock()
        self._window: RingBuffer[ProcessedSample] = RingBuffer(cfg.display_capacity)
        self._display = DisplaySnapshot()
        self._status = StatusSnapshot()

        # Written by the processing thread only, read by the ticker.
        self._latest_intensity = 0.0
        self._latest_processed: Optional[ProcessedSample] = None
        self._input_rate_hz = 0.0
        self._rate_warned = False

        self._stop_event = threading.Event()
        self._source_lock = threading.Lock()
        self._source_open = False
        self._connected = False
        self._ingest_thread: Optional[threading.Thread] = None
        self._worker_thread: Optional[threading.Thread] = None
        self._ticker_thread: Optional[threading.Thread] = None

        self.lines_processed = 0
        self.samples_processed = 0
        self.raw_sentences = 0
        self.events_recorded = 0

    # ------------------------------------------------------------- lifecycle
    @property
    def is_running(self) -> bool:
        threads = (self._ingest_thread, self._worker_thread, self._ticker_thread)
        return any(t is not None and t.is_alive() for t in threads)

    @property
    def connected(self) -> bool:
        return self._connected

    def start(self) -> None:
        """
        Reset all stage state, open the source and start the three threads.

        A source that cannot be opened is reported on the error channel and
        the :class:`TransportError` is re-raised to the caller.
        """
        if self.is_running:
            raise RuntimeError("pipeline is already running")

        self._stop_event.clear()
        self._reset_state()

        try:
            self.source.open()
        except TransportError as exc:
            self.diagnostics.report_error("transport", str(exc))
            raise
        with self._source_lock:
            self._source_open = True
        self._connected = True
        logger.info("Pipeline started")

        self._ingest_thread = threading.Thread(
            target=self._ingest_loop, name="QuakeStreamIngest", daemon=True
        )
        self._worker_thread = threading.Thread(
            target=self._worker_loop, name="QuakeStreamWorker", daemon=True
        )
        self._ticker_thread = threading.Thread(
            target=self._ticker_loop, name="QuakeStreamTicker", daemon=True
        )
        self._ingest_thread.start()
        self._worker_thread.start()
        self._ticker_thread.start()

    def stop(self, timeout: float = 2.0) -> None:
        """
        Signal every loop to stop, wait for them, then release the source.

        The source is only closed once the ingestion loop has exited; if it
        is still inside a read when ``timeout`` expires, the loop closes the
        source itself on the way out. Lines still queued when the worker
        exits are processed here, and the display and status snapshots are
        refreshed. A history flush that outlasts ``timeout`` is logged, not
        raised.
        """
        self._stop_event.set()
        for thread in (self._ingest_thread, self._worker_thread, self._ticker_thread):
            if thread is None:
                continue
            thread.join(timeout)
            if thread.is_alive():
                logger.warning("%s did not stop within %.1f s", thread.name, timeout)

        ingest = self._ingest_thread
        if ingest is None or not ingest.is_alive():
            self._release_source()
        self._connected = False

        worker = self._worker_thread
        if worker is None or not worker.is_alive():
            leftover = self.drain(limit=self.pending_lines)
            if leftover:
                logger.debug("Processed %d queued lines after stop", leftover)
                self.publish_tick()
                self.status_tick()

        if self.history is not None:
            try:
                self.history.flush(timeout)
            except FuturesTimeoutError:
                logger.warning("History writes still pending after %.1f s", timeout)
        logger.info(
            "Pipeline stopped after %d lines, %d samples, %d events",
            self.lines_processed,
            self.samples_processed,
            self.events_recorded,
        )

    def close(self) -> None:
        """Stop the pipeline and close the history store if this scheduler created it."""
        self.stop()
        if self._owns_history:
            self.history.close()

    def __enter__(self) -> "PipelineScheduler":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # --------------------------------------------------------------- produce
    def submit_line(self, line: str) -> None:
        """Queue one framed line for processing; safe from any thread."""
        self._lines.put(line)

    @property
    def pending_lines(self) -> int:
        return self._lines.qsize()

    # --------------------------------------------------------------- process
    def process_line(self, line: str) -> Optional[EventRecord]:
        """Parse and process one line; return the event it closed, if any."""
        self.lines_processed += 1
        sample = self.parser.parse(line)
        if sample is None:
            return None

        if isinstance(sample, AccelerationSample):
            processed = self.processor.process(sample)
            self.samples_processed += 1
            self.detector.observe_motion(processed.gal, processed.lpgm_class, processed.sva)
            self._latest_processed = processed
            self._observe_rate(sample)
            with self._staging_lock:
                self._staging.append(processed)
            return None

        if isinstance(sample, IntensitySample):
            self._latest_intensity = sample.value
            self.alerts.check(sample.value)
            event = self.detector.observe_intensity(sample.value, sample.timestamp)
            if event is not None:
                self.history.record(event)
                self.events_recorded += 1
            return event

        self.raw_sentences += 1
        logger.debug("Raw sentence with %d fields", len(sample.fields))
        return None

    def drain(self, limit: Optional[int] = None) -> int:
        """Process queued lines on the calling thread (at most ``limit``); return how many were handled."""
        handled = 0
        while limit is None or handled < limit:
            try:
                line = self._lines.get_nowait()
            except queue.Empty:
                return handled
            self._process_guarded(line)
            handled += 1
        return handled

    # --------------------------------------------------------------- publish
    def publish_tick(self) -> int:
        """Move staged samples into the display window; return how many moved."""
        with self._staging_lock:
            pending, self._staging = self._staging, []
        if pending:
            self._window.extend(pending)
            self._display = DisplaySnapshot(
                samples=self._window.snapshot(),
                latest=self._window.latest(),
            )
        return len(pending)

    def status_tick(self) -> StatusSnapshot:
        """Republish the latest intensity, recording flag and motion scalars."""
        processed = self._latest_processed
        self._status = StatusSnapshot(
            intensity=self._latest_intensity,
            is_recording=self.detector.is_recording,
            sva=processed.sva if processed is not None else 0.0,
            lpgm_class=processed.lpgm_class if processed is not None else 0,
            input_rate_hz=self._input_rate_hz,
            connected=self._connected,
        )
        return self._status

    def display_snapshot(self) -> DisplaySnapshot:
        return self._display

    def status(self) -> StatusSnapshot:
        return self._status

    # ----------------------------------------------------------------- loops
    def _ingest_loop(self) -> None:
        poll = self.config.ingest_poll_s
        try:
            while not self._stop_event.is_set():
                try:
                    data = self.source.read(poll)
                except TransportError as exc:
                    self.diagnostics.report_error("transport", str(exc))
                    break
                except Exception as exc:
                    logger.exception("Byte source read failed")
                    self.diagnostics.report_error("transport", f"Read failed: {exc}")
                    break

                if not data:
                    self._stop_event.wait(poll)
                    continue
                for line in self.framer.feed(data):
                    self._lines.put(line)
        finally:
            self._connected = False
            self._release_source()

    def _worker_loop(self) -> None:
        poll = self.config.worker_poll_s
        while not self._stop_event.is_set():
            try:
                line = self._lines.get(timeout=poll)
            except queue.Empty:
                continue
            self._process_guarded(line)

    def _ticker_loop(self) -> None:
        publish_every = self.config.publish_interval_s
        status_every = self.config.status_interval_s
        next_publish = next_status = time.monotonic()
        while not self._stop_event.is_set():
            now = time.monotonic()
            try:
                if now >= next_publish:
                    self.publish_tick()
                    next_publish = max(next_publish + publish_every, now)
                if now >= next_status:
                    self.status_tick()
                    next_status = max(next_status + status_every, now)
            except Exception:
                logger.exception("Publish tick failed")
            wait = min(next_publish, next_status) - time.monotonic()
            if wait > 0:
                self._stop_event.wait(wait)

    # --------------------------------------------------------------- helpers
    def _process_guarded(self, line: str) -> None:
        try:
            self.process_line(line)
        except Exception as exc:
            logger.exception("Failed to process line %r", line)
            self.diagnostics.report_error("processing", f"{type(exc).__name__}: {exc}")

    def _observe_rate(self, sample: AccelerationSample) -> None:
        self.rate_monitor.add_sample_time(sample.timestamp.timestamp())
        self._input_rate_hz = self.rate_monitor.estimated_hz
        if not self._rate_warned and self.rate_monitor.is_off_nominal():
            self._rate_warned = True
            logger.warning(
                "Input rate %.1f Hz differs from the assumed %.1f Hz; filter and SVA will be scaled wrongly",
                self._input_rate_hz,
                self.config.sample_rate_hz,
            )

    def _release_source(self) -> None:
        with self._source_lock:
            if not self._source_open:
                return
            self._source_open = False
        try:
            self.source.close()
        except Exception:
            logger.exception("Error while closing byte source")

    def _reset_state(self) -> None:
        self.processor.reset()
        self.detector.reset()
        self.framer.reset()
        self.rate_monitor.reset()
        self.alerts.reset()
        self._lines = queue.SimpleQueue()
        with self._staging_lock:
            self._staging = []
        self._window.clear()
        self._display = DisplaySnapshot()
        self._status = StatusSnapshot()
        self._latest_intensity = 0.0
        self._latest_processed = None
        self._input_rate_hz = 0.0
        self._rate_warned = False
