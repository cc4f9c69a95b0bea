"""QuakeStream: seismometer sentence ingestion, LPGM processing and event history."""

from .config import QuakeStreamConfig, load_config
from .core.pipeline import PipelineScheduler
from .data.history import HistoryStore
from .errors import ConfigError, QuakeStreamError, TransportError

__version__ = "0.1.0"

__all__ = [
    "ConfigError",
    "HistoryStore",
    "PipelineScheduler",
    "QuakeStreamConfig",
    "QuakeStreamError",
    "TransportError",
    "load_config",
]
