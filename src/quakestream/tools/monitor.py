"""Headless seismometer monitor.

Runs the full pipeline against a serial port, the mock generator or a
replayed capture, logs status and events, and optionally exports the event
history as CSV when it stops::

    python -m quakestream.tools.monitor --port /dev/ttyUSB0
    python -m quakestream.tools.monitor --mock --duration 60 --export events.csv
"""

from __future__ import annotations

import argparse
import logging
import time
from pathlib import Path
from typing import Optional, Sequence

from ..config import load_config
from ..core.models import EventRecord
from ..core.pipeline import PipelineScheduler
from ..data.history import HistoryStore
from ..dataio.file_paths import default_history_path, export_filename
from ..errors import QuakeStreamError
from ..sources import MockByteSource, ReplayByteSource, SerialByteSource, SerialConfig
from ..sources.base import ByteSource

logger = logging.getLogger("quakestream.monitor")

STATUS_LOG_INTERVAL_S = 5.0


def _build_source(args: argparse.Namespace, read_timeout_s: float) -> ByteSource:
    if args.replay:
        return ReplayByteSource(Path(args.replay).expanduser())
    if args.mock is not None:
        playback = Path(args.mock).expanduser() if args.mock else None
        return MockByteSource(playback)
    return SerialByteSource(
        SerialConfig(port=args.port, baudrate=args.baud, read_timeout_s=read_timeout_s)
    )


def _log_new_events(history: HistoryStore, last_seen: Optional[EventRecord]) -> Optional[EventRecord]:
    """Log events recorded since ``last_seen``; return the newest one."""
    events = history.snapshot()
    fresh = []
    for event in events:
        if event is last_seen:
            break
        fresh.append(event)
    for event in reversed(fresh):
        logger.info(
            "EVENT %s intensity=%.3f gal=%.2f lpgm=%d sva=%.2f",
            event.formatted_timestamp,
            event.max_intensity,
            event.max_gal,
            event.max_lpgm_class,
            event.max_sva,
        )
    return events[0] if events else last_seen


def run(args: argparse.Namespace) -> int:
    cfg = load_config(args.config)
    history_path = Path(args.history).expanduser() if args.history else (
        Path(cfg.history_path) if cfg.history_path else default_history_path()
    )
    history = HistoryStore(history_path, cfg.history_capacity)
    source = _build_source(args, cfg.read_timeout_s)
    scheduler = PipelineScheduler(source, cfg, history=history)

    try:
        scheduler.start()
    except QuakeStreamError as exc:
        logger.error("Could not start: %s", exc)
        history.close()
        return 1

    deadline = time.monotonic() + args.duration if args.duration else None
    seen = history.latest()
    next_status = time.monotonic()
    try:
        while scheduler.connected or scheduler.pending_lines:
            now = time.monotonic()
            if deadline is not None and now >= deadline:
                break
            if isinstance(source, ReplayByteSource) and source.exhausted and not scheduler.pending_lines:
                break
            for notice in scheduler.diagnostics.drain_errors():
                logger.error("%s: %s", notice.source, notice.message)
            seen = _log_new_events(history, seen)
            if now >= next_status:
                status = scheduler.status()
                logger.info(
                    "intensity=%.2f gal=%.2f sva=%.2f lpgm=%d rate=%.1f Hz%s",
                    status.intensity,
                    scheduler.display_snapshot().latest_gal,
                    status.sva,
                    status.lpgm_class,
                    status.input_rate_hz,
                    " [RECORDING]" if status.is_recording else "",
                )
                next_status = now + STATUS_LOG_INTERVAL_S
            time.sleep(0.1)
    except KeyboardInterrupt:
        pass
    finally:
        scheduler.stop()
        for notice in scheduler.diagnostics.drain_errors():
            logger.error("%s: %s", notice.source, notice.message)
        _log_new_events(history, seen)

    failures = scheduler.diagnostics.parse_failures()
    if failures:
        logger.info("Dropped lines by reason: %s", failures)

    status = 0
    if args.export:
        destination = Path(args.export).expanduser()
        if destination.is_dir():
            destination = destination / export_filename()
        try:
            history.export_current(destination).result()
        except OSError as exc:
            logger.error("Export failed: %s", exc)
            status = 1
    history.close()
    return status


# --------------------------------------------------------------------------- # CLI
def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Headless QuakeStream monitor: ingest sentences, detect and log events."
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("-p", "--port", type=str, help="Serial port of the sensor.")
    source.add_argument(
        "--mock",
        nargs="?",
        const="",
        default=None,
        metavar="CSV",
        help="Use the synthetic source, optionally playing back an x,y,z[,intensity] CSV.",
    )
    source.add_argument("--replay", type=str, help="Replay a captured sentence log.")
    parser.add_argument("-b", "--baud", type=int, default=115200, help="Baud rate (default: 115200).")
    parser.add_argument("-c", "--config", type=str, help="YAML configuration file.")
    parser.add_argument("--history", type=str, help="History JSON file (overrides config).")
    parser.add_argument(
        "-e",
        "--export",
        type=str,
        help="Export the event history as CSV on exit (file or directory).",
    )
    parser.add_argument(
        "-d",
        "--duration",
        type=float,
        default=0.0,
        help="Stop after this many seconds (default: run until interrupted).",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return run(args)


if __name__ == "__main__":
    raise SystemExit(main())
