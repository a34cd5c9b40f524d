"""
Aftershock schedule after a main shock.

Inter-event times follow the modified Omori law, ``n(t) = k / t^p`` with
``k = 10^(M-5)`` and ``p = 1.1`` (t in hours), with at least 5 minutes
between events. Aftershock magnitudes sit about 1.2 units below the main
shock (Båth's law) with random scatter and a floor of M4.0.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List

from ..core.engine import SimulationConstants
from ..core.ground_motion import RngLike, make_rng

logger = logging.getLogger(__name__)

OMORI_P = 1.1
FIRST_EVENT_S = 60.0
MIN_INTERVAL_S = 300.0
MAX_EVENTS = 20
BATH_OFFSET = 1.2
MIN_AFTERSHOCK_MAGNITUDE = 4.0


@dataclass(frozen=True)
class AftershockEvent:
    time_s: float      # seconds after the main shock
    magnitude: float
    duration_s: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_params(self, base_params: Dict[str, Any], previous_time_s: float = 0.0) -> Dict[str, Any]:
        """Simulation parameters for this event on the building in ``base_params``.

        ``hours_since_last_quake`` is the gap to ``previous_time_s`` so that the
        memory update heals over the quiet period.
        """
        params = dict(base_params)
        params["magnitude"] = self.magnitude
        params["duration"] = self.duration_s
        params["hours_since_last_quake"] = max(0.0, self.time_s - previous_time_s) / 3600.0
        return params

    @property
    def simulatable(self) -> bool:
        """True when the magnitude is inside the engine's accepted range."""
        return self.magnitude >= SimulationConstants.MIN_MAGNITUDE


def generate_aftershock_sequence(
    main_magnitude: float,
    hours: float = 24.0,
    rng: RngLike = None,
) -> List[AftershockEvent]:
    """
    Parameters
    ----------
    main_magnitude : float
        Magnitude of the main shock.
    hours : float
        Length of the window to fill [h].
    rng : int, numpy.random.Generator or None
        Source of the interval, magnitude and duration scatter.

    Returns
    -------
    list of AftershockEvent
        At most 20 events, in increasing time order.
    """
    if hours <= 0.0:
        raise ValueError("hours must be > 0")
    generator = make_rng(rng)

    k = 10.0 ** (main_magnitude - 5.0)
    end_s = hours * 3600.0
    t = FIRST_EVENT_S
    events: List[AftershockEvent] = []

    while t < end_s and len(events) < MAX_EVENTS:
        rate = k / (t / 3600.0) ** OMORI_P
        interval = max(MIN_INTERVAL_S, 3600.0 / rate)

        largest = main_magnitude - BATH_OFFSET - generator.random() * 0.5
        mag = max(MIN_AFTERSHOCK_MAGNITUDE, largest - generator.random() * 2.0)
        events.append(
            AftershockEvent(
                time_s=t,
                magnitude=round(mag, 1),
                duration_s=5.0 + generator.random() * 10.0,
            )
        )
        t += interval * (0.5 + generator.random())

    logger.debug("Generated %d aftershocks for M%.1f over %.1f h.", len(events), main_magnitude, hours)
    return events
