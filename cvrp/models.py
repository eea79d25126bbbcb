import math
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence, Tuple

from cvrp.config import CUSTOMER, DEPOT, REFUELING_STATION
from cvrp.disruptions import CATEGORIES, DisruptionSegment
from cvrp.errors import ConfigurationError

_STATION_ALIASES = {"refueling_station", "refueling station", "charging_station", "charging station"}


def parse_category(raw: str) -> str:
    """Map an input category label onto depot / customer / refueling_station."""
    label = str(raw or "").strip().lower()
    if label == DEPOT:
        return DEPOT
    if label in _STATION_ALIASES:
        return REFUELING_STATION
    return CUSTOMER


@dataclass(frozen=True)
class Location:
    id: int
    x: float
    y: float
    demand: float = 0.0
    earliest: float = 0.0
    latest: float = math.inf
    service_time: float = 0.0
    category: str = CUSTOMER

    @property
    def is_depot(self) -> bool:
        return self.category == DEPOT

    @property
    def is_station(self) -> bool:
        return self.category == REFUELING_STATION

    @property
    def is_customer(self) -> bool:
        return self.category == CUSTOMER


@dataclass(frozen=True)
class Vehicle:
    id: int
    speed: float
    max_fuel: float
    min_fuel: float
    capacity: float
    base_consumption: float = 0.0
    payload_coefficient: float = 0.0
    refueling_time: float = 0.0
    refueling_cost: float = 0.0


def euclidean(a: Location, b: Location) -> float:
    return math.hypot(a.x - b.x, a.y - b.y)


class Problem:
    """
    Read-only problem catalogue.

    Locations are stored in an arena: routes refer to them by index into
    ``locations`` and never hold copies.
    """

    def __init__(self,
                 locations: Sequence[Location],
                 vehicles: Sequence[Vehicle],
                 disruptions: Sequence[DisruptionSegment] = ()):
        self.locations: Tuple[Location, ...] = tuple(locations)
        self.vehicles: Tuple[Vehicle, ...] = tuple(vehicles)
        self.disruptions: Tuple[DisruptionSegment, ...] = tuple(disruptions)

        ids = [loc.id for loc in self.locations]
        if len(set(ids)) != len(ids):
            raise ConfigurationError("Location ids must be unique")

        depots = [i for i, loc in enumerate(self.locations) if loc.is_depot]
        if not depots:
            raise ConfigurationError("No depot found")
        if len(depots) > 1:
            raise ConfigurationError(f"Expected exactly one depot, found {len(depots)}")

        self.depot_index: int = depots[0]
        self.customer_indices: Tuple[int, ...] = tuple(
            i for i, loc in enumerate(self.locations) if loc.is_customer)
        self.station_indices: Tuple[int, ...] = tuple(
            i for i, loc in enumerate(self.locations) if loc.is_station)
        self._index_by_id = {loc.id: i for i, loc in enumerate(self.locations)}

    @property
    def depot(self) -> Location:
        return self.locations[self.depot_index]

    def index_of(self, location_id: int) -> int:
        return self._index_by_id[location_id]

    def distance(self, a: int, b: int) -> float:
        return euclidean(self.locations[a], self.locations[b])

    def summary(self) -> Dict[str, int]:
        return {
            "locations": len(self.locations),
            "customers": len(self.customer_indices),
            "refueling_stations": len(self.station_indices),
            "vehicles": len(self.vehicles),
            "disruptions": len(self.disruptions),
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Problem":
        """
        Build a problem from a JSON-compatible mapping::

            {"locations": [{"id", "x", "y", "demand", "time_window": [et, lt],
                            "service_time", "type"}, ...],
             "vehicles": [{"id", "speed", "max_fuel", "min_fuel", "capacity",
                           "base_consumption", "payload_coefficient",
                           "refueling_time", "refueling_cost"}, ...],
             "disruptions": [{"category", "begin": [x, y], "end": [x, y],
                              "severity"}, ...]}
        """
        if not isinstance(payload, dict):
            raise ConfigurationError("Problem payload must be a mapping")
        try:
            locations = [_location_from_dict(item) for item in payload.get("locations", [])]
            vehicles = [_vehicle_from_dict(item) for item in payload.get("vehicles", [])]
            disruptions = [_disruption_from_dict(item) for item in payload.get("disruptions", [])]
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigurationError(f"Malformed problem payload: {e}") from e
        return cls(locations, vehicles, disruptions)


def _location_from_dict(item: Dict[str, Any]) -> Location:
    window: List[float] = item.get("time_window") or [0.0, math.inf]
    return Location(
        id=int(item["id"]),
        x=float(item["x"]),
        y=float(item["y"]),
        demand=float(item.get("demand", 0.0)),
        earliest=float(window[0]),
        latest=float(window[1]),
        service_time=float(item.get("service_time", 0.0)),
        category=parse_category(item.get("type", item.get("category", CUSTOMER))),
    )


def _vehicle_from_dict(item: Dict[str, Any]) -> Vehicle:
    return Vehicle(
        id=int(item["id"]),
        speed=float(item["speed"]),
        max_fuel=float(item["max_fuel"]),
        min_fuel=float(item.get("min_fuel", 0.0)),
        capacity=float(item["capacity"]),
        base_consumption=float(item.get("base_consumption", 0.0)),
        payload_coefficient=float(item.get("payload_coefficient", 0.0)),
        refueling_time=float(item.get("refueling_time", 0.0)),
        refueling_cost=float(item.get("refueling_cost", 0.0)),
    )


def _disruption_from_dict(item: Dict[str, Any]) -> DisruptionSegment:
    category = str(item["category"]).strip().lower()
    if category not in CATEGORIES:
        raise ValueError(f"unknown disruption category '{item['category']}'")
    begin, end = item["begin"], item["end"]
    return DisruptionSegment(float(begin[0]), float(begin[1]), float(end[0]), float(end[1]),
                             category, item.get("severity", ""))
