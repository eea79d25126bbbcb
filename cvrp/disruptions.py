from dataclasses import dataclass, field
from typing import Tuple, Union

from cvrp.config import (ROAD_EVENT_DELAYS, TRAFFIC_DELAY_STEPS, TRAFFIC_SEVERE_DELAY,
                         WEATHER_DELAYS)

TRAFFIC = "traffic"
ROAD_EVENT = "road_event"
WEATHER = "weather"

CATEGORIES = (TRAFFIC, ROAD_EVENT, WEATHER)


def traffic_delay(traffic_speed: float) -> float:
    for speed_above, delay in TRAFFIC_DELAY_STEPS:
        if traffic_speed > speed_above:
            return delay
    return TRAFFIC_SEVERE_DELAY


def road_event_delay(event_type: str) -> float:
    return ROAD_EVENT_DELAYS.get(str(event_type).strip().lower(), 0.0)


def weather_delay(weather_type: str) -> float:
    return WEATHER_DELAYS.get(str(weather_type).strip().lower(), 0.0)


def compute_delay(category: str, severity: Union[float, str]) -> float:
    """Delay in minutes for a segment; unknown categories or labels give 0."""
    if category == TRAFFIC:
        try:
            return traffic_delay(float(severity))
        except (TypeError, ValueError):
            return 0.0
    if category == ROAD_EVENT:
        return road_event_delay(severity)
    if category == WEATHER:
        return weather_delay(severity)
    return 0.0


def boxes_overlap(ax: float, ay: float, bx: float, by: float,
                  x1: float, y1: float, x2: float, y2: float) -> bool:
    """Inclusive axis-aligned bounding-box overlap between edge a-b and segment (x1,y1)-(x2,y2)."""
    return (min(ax, bx) <= max(x1, x2) and max(ax, bx) >= min(x1, x2) and
            min(ay, by) <= max(y1, y2) and max(ay, by) >= min(y1, y2))


@dataclass(frozen=True)
class DisruptionSegment:
    """
    Edge-like region carrying a delay penalty.

    severity is the traffic speed (km/h) for traffic segments and a condition
    label for road events and weather. The delay is fixed at construction.
    """
    x_begin: float
    y_begin: float
    x_end: float
    y_end: float
    category: str
    severity: Union[float, str]
    delay_minutes: float = field(init=False)

    def __post_init__(self):
        object.__setattr__(self, "delay_minutes", compute_delay(self.category, self.severity))

    @classmethod
    def traffic(cls, begin: Tuple[float, float], end: Tuple[float, float], speed: float) -> "DisruptionSegment":
        return cls(begin[0], begin[1], end[0], end[1], TRAFFIC, speed)

    @classmethod
    def road_event(cls, begin: Tuple[float, float], end: Tuple[float, float], event_type: str) -> "DisruptionSegment":
        return cls(begin[0], begin[1], end[0], end[1], ROAD_EVENT, event_type)

    @classmethod
    def weather(cls, begin: Tuple[float, float], end: Tuple[float, float], weather_type: str) -> "DisruptionSegment":
        return cls(begin[0], begin[1], end[0], end[1], WEATHER, weather_type)

    def overlaps_edge(self, ax: float, ay: float, bx: float, by: float) -> bool:
        return boxes_overlap(ax, ay, bx, by, self.x_begin, self.y_begin, self.x_end, self.y_end)
