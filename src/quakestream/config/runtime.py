"""Runtime configuration for the ingestion and processing pipeline."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping, MutableMapping, Optional, Tuple

import yaml

from ..analysis.lpgm import (
    DEFAULT_CALIBRATION_FACTOR,
    DEFAULT_HIGHPASS_CUTOFF_HZ,
    DEFAULT_LPGM_BREAKPOINTS,
    DEFAULT_SAMPLE_RATE_HZ,
    validate_breakpoints,
)
from ..core.alerts import DEFAULT_ALERT_COOLDOWN_S, DEFAULT_ALERT_THRESHOLD
from ..core.detector import DEFAULT_EVENT_THRESHOLD
from ..errors import ConfigError
from ..sensors.sentences import DEFAULT_TALKER_ID


@dataclass(slots=True)
class QuakeStreamConfig:
    """
    Tuning knobs for how sentences are processed, detected, and published.

    The defaults assume a 100 Hz sensor reporting acceleration in g, a
    30 Hz chart refresh and a 10 Hz status readout.
    """

    # Signal chain
    sample_rate_hz: float = DEFAULT_SAMPLE_RATE_HZ
    calibration_factor: float = DEFAULT_CALIBRATION_FACTOR
    highpass_cutoff_hz: float = DEFAULT_HIGHPASS_CUTOFF_HZ
    lpgm_breakpoints: Tuple[float, ...] = field(default=DEFAULT_LPGM_BREAKPOINTS)

    # Detection / history
    event_threshold: float = DEFAULT_EVENT_THRESHOLD
    history_capacity: int = 200
    history_path: Optional[str] = None

    # Publishing
    display_capacity: int = 50
    publish_hz: float = 30.0
    status_hz: float = 10.0

    # Thread loop timing
    ingest_poll_s: float = 0.01
    worker_poll_s: float = 0.005
    read_timeout_s: float = 0.5

    # Alerts
    alert_threshold: float = DEFAULT_ALERT_THRESHOLD
    alert_cooldown_s: float = DEFAULT_ALERT_COOLDOWN_S

    talker_id: str = DEFAULT_TALKER_ID
    rate_window: int = 200

    def sanitized(self) -> QuakeStreamConfig:
        """Return a copy with limits applied; raise :class:`ConfigError` on unusable values."""
        sample_rate = float(self.sample_rate_hz)
        cutoff = float(self.highpass_cutoff_hz)
        if not math.isfinite(sample_rate) or sample_rate <= 0:
            raise ConfigError(f"sample_rate_hz must be > 0, got {self.sample_rate_hz!r}")
        if not 0 < cutoff < sample_rate / 2:
            raise ConfigError(
                f"highpass_cutoff_hz must be between 0 and {sample_rate / 2:g} Hz, got {cutoff:g}"
            )
        try:
            breakpoints = validate_breakpoints(self.lpgm_breakpoints)
        except (TypeError, ValueError) as exc:
            raise ConfigError(str(exc)) from exc

        history_path = self.history_path
        if history_path is not None:
            history_path = str(Path(history_path).expanduser())

        return QuakeStreamConfig(
            sample_rate_hz=sample_rate,
            calibration_factor=float(self.calibration_factor),
            highpass_cutoff_hz=cutoff,
            lpgm_breakpoints=breakpoints,
            event_threshold=float(self.event_threshold),
            history_capacity=max(1, int(self.history_capacity)),
            history_path=history_path,
            display_capacity=max(1, int(self.display_capacity)),
            publish_hz=max(1.0, float(self.publish_hz)),
            status_hz=max(0.5, float(self.status_hz)),
            ingest_poll_s=min(1.0, max(0.001, float(self.ingest_poll_s))),
            worker_poll_s=min(1.0, max(0.001, float(self.worker_poll_s))),
            read_timeout_s=min(5.0, max(0.01, float(self.read_timeout_s))),
            alert_threshold=float(self.alert_threshold),
            alert_cooldown_s=max(0.0, float(self.alert_cooldown_s)),
            talker_id=str(self.talker_id or DEFAULT_TALKER_ID),
            rate_window=max(2, int(self.rate_window)),
        )

    @property
    def publish_interval_s(self) -> float:
        return 1.0 / self.publish_hz

    @property
    def status_interval_s(self) -> float:
        return 1.0 / self.status_hz


def _recognized_fields() -> set[str]:
    """Return the dataclass field names accepted by :class:`QuakeStreamConfig`."""
    return {f.name for f in fields(QuakeStreamConfig)}


def _normalize_mapping(data: Mapping[str, Any]) -> MutableMapping[str, Any]:
    """Flatten a top-level ``quakestream`` block into the root mapping."""
    if "quakestream" in data and isinstance(data["quakestream"], Mapping):
        merged: MutableMapping[str, Any] = {}
        for key, value in data.items():
            if key == "quakestream":
                merged.update(value)
            else:
                merged[key] = value
        return merged
    return dict(data)


def config_from_mapping(data: Mapping[str, Any] | None) -> QuakeStreamConfig:
    """Build :class:`QuakeStreamConfig` from ``data`` (ignoring unknown keys)."""
    if not data:
        return QuakeStreamConfig()
    normalized = _normalize_mapping(data)
    known = _recognized_fields()
    payload = {key: normalized[key] for key in normalized.keys() & known}
    if "lpgm_breakpoints" in payload:
        raw = payload["lpgm_breakpoints"]
        if not isinstance(raw, (list, tuple)):
            raise ConfigError(f"lpgm_breakpoints must be a list, got {type(raw).__name__}")
        payload["lpgm_breakpoints"] = tuple(raw)
    try:
        return QuakeStreamConfig(**payload).sanitized()
    except (TypeError, ValueError) as exc:
        if isinstance(exc, ConfigError):
            raise
        raise ConfigError(f"Invalid configuration value: {exc}") from exc


def load_config(path: str | Path | None) -> QuakeStreamConfig:
    """
    Load configuration from ``path``.

    Missing files fall back to default :class:`QuakeStreamConfig`.
    """
    if path is None:
        return QuakeStreamConfig()
    cfg_path = Path(path)
    if not cfg_path.exists():
        return QuakeStreamConfig()
    with cfg_path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh) or {}
    if not isinstance(raw, Mapping):
        raise ConfigError(f"Expected mapping in {cfg_path}, got {type(raw).__name__}")
    return config_from_mapping(raw)


__all__ = ["QuakeStreamConfig", "config_from_mapping", "load_config"]
