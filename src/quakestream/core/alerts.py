"""Rate-limited hand-off of strong intensity readings to an external alert player."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_ALERT_THRESHOLD = 3.0
DEFAULT_ALERT_COOLDOWN_S = 6.0

AlertPlayer = Callable[[float], None]


class AlertGate:
    """
    Call ``player(intensity)`` when intensity reaches ``threshold``.

    After a call the gate stays closed for ``cooldown_s`` seconds so a
    sustained shake triggers one alert, not one per sentence. The player is
    an external collaborator (audio, notification, GPIO); its errors are
    logged and do not propagate into the processing loop.
    """

    def __init__(
        self,
        player: Optional[AlertPlayer] = None,
        *,
        threshold: float = DEFAULT_ALERT_THRESHOLD,
        cooldown_s: float = DEFAULT_ALERT_COOLDOWN_S,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.player = player
        self.threshold = float(threshold)
        self.cooldown_s = max(0.0, float(cooldown_s))
        self._clock = clock
        self._last_fired: Optional[float] = None
        self.fired_count = 0

    def check(self, intensity: float) -> bool:
        """Offer one intensity reading; return True if the player was invoked."""
        if self.player is None or intensity < self.threshold:
            return False
        now = self._clock()
        if self._last_fired is not None and now - self._last_fired < self.cooldown_s:
            return False
        self._last_fired = now
        self.fired_count += 1
        try:
            self.player(intensity)
        except Exception:
            logger.exception("Alert player failed for intensity %.2f", intensity)
        return True

    def reset(self) -> None:
        self._last_fired = None
