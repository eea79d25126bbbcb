from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from cvrp.config import (CAPACITY_PENALTY, FUEL_PENALTY, FUEL_VIOLATION_TIME_PENALTY,
                         LATENESS_MULTIPLIER, TIME_WINDOW_PENALTY)
from cvrp.models import Problem, Vehicle


@dataclass(frozen=True)
class RouteEvaluation:
    distance: float = 0.0
    travel_time: float = 0.0
    total_cost: float = 0.0
    total_demand: float = 0.0
    fuel_levels: Tuple[float, ...] = ()
    time_window_violations: int = 0
    capacity_violations: int = 0
    fuel_violations: int = 0
    stations_used: Tuple[int, ...] = ()


class CostCalculator:
    """
    Route evaluator: simulates one vehicle driving a sequence of catalogue indices.

    Disruption delays are looked up per edge and cached, since the problem
    data never changes after load.
    """

    def __init__(self, problem: Problem):
        self.problem = problem
        self._edge_delay_cache: Dict[Tuple[int, int], float] = {}

    def edge_delay(self, a: int, b: int) -> float:
        """Sum of delay minutes of every disruption whose box overlaps edge a-b."""
        key = (a, b)
        delay = self._edge_delay_cache.get(key)
        if delay is None:
            loc_a = self.problem.locations[a]
            loc_b = self.problem.locations[b]
            delay = sum(segment.delay_minutes for segment in self.problem.disruptions
                        if segment.overlaps_edge(loc_a.x, loc_a.y, loc_b.x, loc_b.y))
            self._edge_delay_cache[key] = delay
        return delay

    def total_demand(self, sequence: Sequence[int]) -> float:
        locations = self.problem.locations
        return sum(locations[i].demand for i in sequence if locations[i].is_customer)

    def route_distance(self, vehicle: Vehicle, sequence: Sequence[int]) -> float:
        distance = 0.0
        for a, b in zip(sequence, sequence[1:]):
            distance += self.problem.distance(a, b)
            distance += self.edge_delay(a, b) * (vehicle.speed / 60.0)
        return distance

    def evaluate(self, vehicle: Vehicle, sequence: Sequence[int]) -> RouteEvaluation:
        if not sequence:
            return RouteEvaluation()

        locations = self.problem.locations
        distance = self.route_distance(vehicle, sequence)
        demand = self.total_demand(sequence)
        capacity_violations = 1 if demand > vehicle.capacity else 0

        travel_time = 0.0
        current_time = 0.0
        fuel = vehicle.max_fuel
        fuel_levels: List[float] = [fuel]
        time_window_violations = 0
        fuel_violations = 0
        stations_used: List[int] = []

        for a, b in zip(sequence, sequence[1:]):
            current, nxt = locations[a], locations[b]
            edge = self.problem.distance(a, b)
            edge_time = edge / vehicle.speed if vehicle.speed > 0 else 0.0
            edge_time += self.edge_delay(a, b) / 60.0

            # payload is the whole route demand on every edge
            fuel -= edge * (vehicle.base_consumption + demand * vehicle.payload_coefficient)
            if fuel < vehicle.min_fuel:
                fuel_violations += 1
                if current.is_station:
                    fuel = vehicle.max_fuel
                    travel_time += vehicle.refueling_time
                    stations_used.append(a)
                else:
                    travel_time += FUEL_VIOLATION_TIME_PENALTY

            current_time += edge_time
            travel_time += edge_time
            fuel_levels.append(fuel)

            if nxt.is_customer:
                if current_time < nxt.earliest:
                    travel_time += nxt.earliest - current_time
                    current_time = nxt.earliest
                if current_time > nxt.latest:
                    time_window_violations += 1
                    travel_time += (current_time - nxt.latest) * LATENESS_MULTIPLIER
                current_time += nxt.service_time
                travel_time += nxt.service_time

            if nxt.is_station:
                travel_time += vehicle.refueling_time
                fuel = vehicle.max_fuel
                stations_used.append(b)

        total_cost = (distance + travel_time
                      + len(stations_used) * vehicle.refueling_cost
                      + time_window_violations * TIME_WINDOW_PENALTY
                      + capacity_violations * CAPACITY_PENALTY
                      + fuel_violations * FUEL_PENALTY)

        return RouteEvaluation(
            distance=distance,
            travel_time=travel_time,
            total_cost=total_cost,
            total_demand=demand,
            fuel_levels=tuple(fuel_levels),
            time_window_violations=time_window_violations,
            capacity_violations=capacity_violations,
            fuel_violations=fuel_violations,
            stations_used=tuple(stations_used),
        )
