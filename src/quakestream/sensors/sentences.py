"""
The seismometer streams one ASCII sentence per line::

  $XSACC,<x>,<y>,<z>*<checksum>     acceleration per axis (g)
  $XSINT,...,<intensity>*<checksum> instrumental intensity, last field
  $XSRAW,<field>,...*<checksum>     opaque diagnostic payload

``XS`` is the talker id. The checksum after ``*`` is stripped but not
verified. ``parse_sentence()`` returns a typed sample or a
:class:`ParseFailure`; :class:`SentenceParser` wraps it for the pipeline,
turning failures into ``None`` after counting them.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Tuple, Union

from ..core.diagnostics import Diagnostics
from ..tools.debug import debug_enabled

logger = logging.getLogger(__name__)

SENTENCE_MARKER = "$"
CHECKSUM_SEPARATOR = "*"
DEFAULT_TALKER_ID = "XS"

TYPE_ACCELERATION = "ACC"
TYPE_INTENSITY = "INT"
TYPE_RAW = "RAW"


@dataclass(frozen=True, slots=True)
class AccelerationSample:
    timestamp: datetime
    x: float
    y: float
    z: float


@dataclass(frozen=True, slots=True)
class IntensitySample:
    timestamp: datetime
    value: float


@dataclass(frozen=True, slots=True)
class RawSample:
    timestamp: datetime
    fields: Tuple[str, ...]


Sample = Union[AccelerationSample, IntensitySample, RawSample]


@dataclass(frozen=True, slots=True)
class ParseFailure:
    """Why a line did not produce a sample."""

    line: str
    reason: str
    detail: str = ""


def _to_float(text: str) -> Optional[float]:
    """Parse a finite float; ``nan`` and ``inf`` count as non-numeric."""
    try:
        value = float(text)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def parse_sentence(
    line: str,
    *,
    timestamp: Optional[datetime] = None,
    talker_id: str = DEFAULT_TALKER_ID,
) -> Sample | ParseFailure:
    """
    Parse a single sentence into a typed sample.

    Parameters
    ----------
    line:
        One framed line, with or without surrounding whitespace.
    timestamp:
        Capture time stamped onto the sample. Defaults to ``datetime.now()``.
    talker_id:
        Prefix expected between ``$`` and the three-letter sentence type.
    """
    text = line.strip()
    if not text:
        return ParseFailure(line, "empty")
    if not text.startswith(SENTENCE_MARKER):
        return ParseFailure(line, "no_marker")

    content = text.split(CHECKSUM_SEPARATOR, 1)[0]
    fields = content.split(",")
    tag = fields[0][len(SENTENCE_MARKER):]
    if not tag.startswith(talker_id):
        return ParseFailure(line, "unknown_tag", tag)
    kind = tag[len(talker_id):]

    stamp = timestamp if timestamp is not None else datetime.now()

    if kind == TYPE_ACCELERATION:
        if len(fields) < 4:
            return ParseFailure(line, "too_few_fields", f"expected 4, got {len(fields)}")
        axes = [_to_float(field) for field in fields[1:4]]
        if any(value is None for value in axes):
            return ParseFailure(line, "not_numeric", ",".join(fields[1:4]))
        x, y, z = axes
        return AccelerationSample(timestamp=stamp, x=x, y=y, z=z)

    if kind == TYPE_INTENSITY:
        if len(fields) < 2:
            return ParseFailure(line, "too_few_fields", f"expected 2, got {len(fields)}")
        value = _to_float(fields[-1])
        if value is None:
            return ParseFailure(line, "not_numeric", fields[-1])
        return IntensitySample(timestamp=stamp, value=value)

    if kind == TYPE_RAW:
        return RawSample(timestamp=stamp, fields=tuple(fields[1:]))

    return ParseFailure(line, "unknown_tag", tag)


class SentenceParser:
    """
    Pipeline-facing parser: returns a sample or ``None``.

    Failures are counted on ``diagnostics`` and logged at debug level; they
    never raise. With ``QUAKESTREAM_DEBUG`` set, the average parse time is
    logged every 1000 lines.
    """

    def __init__(
        self,
        diagnostics: Optional[Diagnostics] = None,
        *,
        talker_id: str = DEFAULT_TALKER_ID,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()
        self.talker_id = talker_id
        self._clock = clock
        self._parse_time_acc = 0.0
        self._parse_count = 0

    def parse(self, line: str) -> Optional[Sample]:
        debug_on = debug_enabled()
        start = time.perf_counter() if debug_on else 0.0

        result = parse_sentence(line, timestamp=self._clock(), talker_id=self.talker_id)

        if debug_on:
            self._parse_time_acc += time.perf_counter() - start
            self._parse_count += 1
            if self._parse_count % 1000 == 0:
                avg_us = (self._parse_time_acc / self._parse_count) * 1e6
                logger.info(
                    "parse_sentence avg %.1f µs over %d lines", avg_us, self._parse_count
                )

        if isinstance(result, ParseFailure):
            self.diagnostics.count_parse_failure(result.reason)
            logger.debug("Dropping line %r (%s %s)", result.line, result.reason, result.detail)
            return None
        return result
