import logging
import random
from typing import Iterable, List, Optional, Sequence, Tuple

from cvrp.cost_calculator import CostCalculator
from cvrp.models import Problem, Vehicle
from cvrp.solution import Route, Solution

logger = logging.getLogger(__name__)


class PopulationGenerator:
    def __init__(self, problem: Problem, calculator: CostCalculator, rng: random.Random):
        self.problem = problem
        self.calculator = calculator
        self.rng = rng

    def greedy_fill(self, customers: Iterable[int],
                    vehicles: Sequence[Vehicle]) -> Tuple[List[Route], List[int]]:
        """
        Fill each vehicle up to capacity taking customers in the given order.

        Returns the non-empty routes and the customers that did not fit anywhere.
        """
        depot = self.problem.depot_index
        locations = self.problem.locations
        unassigned = list(customers)
        routes = []

        for vehicle in vehicles:
            if not unassigned:
                break
            remaining_capacity = vehicle.capacity
            stops = []
            leftover = []
            for customer in unassigned:
                demand = locations[customer].demand
                if demand <= remaining_capacity:
                    stops.append(customer)
                    remaining_capacity -= demand
                else:
                    leftover.append(customer)
            unassigned = leftover
            if stops:
                routes.append(Route(vehicle, [depot] + stops + [depot], self.calculator))

        return routes, unassigned

    def create_random_solution(self) -> Solution:
        customers = list(self.problem.customer_indices)
        self.rng.shuffle(customers)
        routes, dropped = self.greedy_fill(customers, self.problem.vehicles)
        if dropped:
            logger.debug(f"Initial solution dropped {len(dropped)} customers (capacity exhausted)")
        return Solution(routes)

    def create_initial_population(self, population_size: int) -> List[Solution]:
        return [self.create_random_solution() for _ in range(population_size)]

    def fallback_solution(self) -> Solution:
        routes, dropped = self.greedy_fill(self.problem.customer_indices, self.problem.vehicles)
        if dropped:
            logger.warning(f"Fallback solution could not place {len(dropped)} customers")
        return Solution(routes)


class GeneticOperators:
    def __init__(self, problem: Problem, calculator: CostCalculator,
                 generator: PopulationGenerator, rng: random.Random):
        self.problem = problem
        self.calculator = calculator
        self.generator = generator
        self.rng = rng

    # -------------------- PERTURBATION --------------------

    def perturb(self, solution: Solution) -> Solution:
        """Swap one random customer between two random routes if both capacities allow it."""
        perturbed = solution.copy()
        if len(perturbed.routes) < 2:
            return perturbed

        idx1, idx2 = self.rng.sample(range(len(perturbed.routes)), 2)
        route1, route2 = perturbed.routes[idx1], perturbed.routes[idx2]
        positions1, positions2 = route1.customer_positions(), route2.customer_positions()
        if not positions1 or not positions2:
            return perturbed

        pos1 = self.rng.choice(positions1)
        pos2 = self.rng.choice(positions2)
        customer1, customer2 = route1.sequence[pos1], route2.sequence[pos2]
        if self._swap_fits(route1, route2, customer1, customer2):
            route1.replace(pos1, customer2)
            route2.replace(pos2, customer1)
        return perturbed

    def _swap_fits(self, route1: Route, route2: Route, customer1: int, customer2: int) -> bool:
        locations = self.problem.locations
        d1, d2 = locations[customer1].demand, locations[customer2].demand
        return (route1.total_demand - d1 + d2 <= route1.vehicle.capacity and
                route2.total_demand - d2 + d1 <= route2.vehicle.capacity)

    # -------------------- MUTATION --------------------

    def reverse_segment_mutation(self, solution: Solution) -> Solution:
        mutated = solution.copy()
        if not mutated.routes:
            return mutated

        route = self.rng.choice(mutated.routes)
        positions = route.customer_positions()
        if len(positions) < 2:
            return mutated

        start = self.rng.randrange(len(positions) - 1)
        end = self.rng.randrange(start + 1, len(positions))
        route.reverse_segment(positions[start], positions[end])
        return mutated

    # -------------------- CROSSOVER --------------------

    def crossover(self, parent_a: Solution, parent_b: Solution) -> Solution:
        depot = self.problem.depot_index
        locations = self.problem.locations
        assigned = set()
        child_stops: List[List[int]] = []
        child_vehicles: List[Vehicle] = []
        remaining: List[float] = []

        for parent_route in parent_a.routes:
            vehicle = parent_route.vehicle
            capacity = vehicle.capacity
            stops = []
            for customer in parent_route.customers:
                if customer in assigned:
                    continue
                demand = locations[customer].demand
                if demand <= capacity:
                    stops.append(customer)
                    assigned.add(customer)
                    capacity -= demand
            if stops:
                child_stops.append(stops)
                child_vehicles.append(vehicle)
                remaining.append(capacity)

        for parent_route in parent_b.routes:
            for customer in parent_route.customers:
                if customer in assigned:
                    continue
                demand = locations[customer].demand
                for k in range(len(child_stops)):
                    if demand <= remaining[k]:
                        child_stops[k].append(customer)
                        remaining[k] -= demand
                        assigned.add(customer)
                        break

        routes = [Route(vehicle, [depot] + stops + [depot], self.calculator)
                  for vehicle, stops in zip(child_vehicles, child_stops)]

        unassigned = [c for c in self.problem.customer_indices if c not in assigned]
        if unassigned:
            used = {vehicle.id for vehicle in child_vehicles}
            spare = [v for v in self.problem.vehicles if v.id not in used]
            extra, dropped = self.generator.greedy_fill(unassigned, spare)
            routes.extend(extra)
            if dropped:
                logger.debug(f"Crossover dropped {len(dropped)} customers (capacity exhausted)")

        return Solution(routes)

    # -------------------- SELECTION --------------------

    def select(self, solution: Solution) -> Solution:
        # every offspring survives to the tabu stage
        return solution

    # -------------------- REFUEL REPAIR --------------------

    def nearest_station(self, index: int) -> Optional[int]:
        stations = self.problem.station_indices
        if not stations:
            return None
        return min(stations, key=lambda s: self.problem.distance(index, s))

    def insert_refueling_stops(self, solution: Solution) -> Solution:
        """
        Insert the nearest refueling station before every edge that would drop
        fuel below the vehicle minimum; a repaired route is kept only if cheaper.
        """
        repaired = solution.copy()
        if not self.problem.station_indices:
            return repaired

        for k, route in enumerate(repaired.routes):
            candidate = self._repair_sequence(route)
            if candidate is None:
                continue
            new_route = Route(route.vehicle, candidate, self.calculator)
            if new_route.total_cost < route.total_cost:
                logger.debug(f"Refuel repair improved vehicle {route.vehicle.id}: "
                             f"{route.total_cost:.4f} -> {new_route.total_cost:.4f}")
                repaired.routes[k] = new_route
        return repaired

    def _repair_sequence(self, route: Route) -> Optional[List[int]]:
        vehicle = route.vehicle
        sequence = route.sequence
        locations = self.problem.locations
        demand = route.total_demand
        rate = vehicle.base_consumption + demand * vehicle.payload_coefficient

        fuel = vehicle.max_fuel
        repaired = [sequence[0]] if sequence else []
        changed = False
        for a, b in zip(sequence, sequence[1:]):
            energy = self.problem.distance(a, b) * rate
            if fuel - energy < vehicle.min_fuel and not locations[a].is_station:
                station = self.nearest_station(a)
                if station is not None and station not in (a, b):
                    repaired.append(station)
                    changed = True
                    fuel = vehicle.max_fuel
                    energy = self.problem.distance(station, b) * rate
            fuel -= energy
            if locations[b].is_station:
                fuel = vehicle.max_fuel
            repaired.append(b)

        return repaired if changed else None

