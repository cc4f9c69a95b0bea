"""Configuration objects and helpers for QuakeStream.

A YAML file (optionally wrapped in a top-level ``quakestream:`` block) maps
onto the typed :class:`~quakestream.config.runtime.QuakeStreamConfig`
dataclass, which the pipeline, history store and sources all read from.
Sensor calibration, filter cutoff and LPGM breakpoints are deployment
constants and belong here rather than in code.
"""

from .runtime import QuakeStreamConfig, config_from_mapping, load_config

__all__ = ["QuakeStreamConfig", "config_from_mapping", "load_config"]
