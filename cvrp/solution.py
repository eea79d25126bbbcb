import hashlib
from collections import Counter
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from cvrp.cost_calculator import CostCalculator, RouteEvaluation
from cvrp.models import Vehicle


class Route:
    """
    One vehicle's visiting sequence, as indices into the problem catalogue.

    The evaluation is computed on first access and dropped on every mutation.
    """

    def __init__(self, vehicle: Vehicle, sequence: Iterable[int], calculator: CostCalculator):
        self.vehicle = vehicle
        self.calculator = calculator
        self._sequence: List[int] = list(sequence)
        self._evaluation: Optional[RouteEvaluation] = None

    @property
    def sequence(self) -> Tuple[int, ...]:
        return tuple(self._sequence)

    @sequence.setter
    def sequence(self, sequence: Iterable[int]):
        self._sequence = list(sequence)
        self._evaluation = None

    def __len__(self) -> int:
        return len(self._sequence)

    def __repr__(self) -> str:
        return f"Route(vehicle={self.vehicle.id}, sequence={self._sequence})"

    @property
    def evaluation(self) -> RouteEvaluation:
        if self._evaluation is None:
            self._evaluation = self.calculator.evaluate(self.vehicle, self._sequence)
        return self._evaluation

    @property
    def total_cost(self) -> float:
        return self.evaluation.total_cost

    @property
    def total_distance(self) -> float:
        return self.evaluation.distance

    @property
    def total_demand(self) -> float:
        return self.evaluation.total_demand

    @property
    def customers(self) -> List[int]:
        locations = self.calculator.problem.locations
        return [i for i in self._sequence if locations[i].is_customer]

    def customer_positions(self) -> List[int]:
        locations = self.calculator.problem.locations
        return [pos for pos, i in enumerate(self._sequence) if locations[i].is_customer]

    def starts_and_ends_at_depot(self) -> bool:
        depot = self.calculator.problem.depot_index
        return len(self._sequence) >= 2 and self._sequence[0] == depot and self._sequence[-1] == depot

    def replace(self, position: int, index: int):
        self._sequence[position] = index
        self._evaluation = None

    def reverse_segment(self, start: int, end: int):
        """Reverse positions start..end (inclusive) in place."""
        self._sequence[start:end + 1] = self._sequence[start:end + 1][::-1]
        self._evaluation = None

    def copy(self) -> "Route":
        clone = Route(self.vehicle, self._sequence, self.calculator)
        clone._evaluation = self._evaluation
        return clone


@dataclass(frozen=True)
class CoverageReport:
    assigned: Tuple[int, ...]
    unassigned: Tuple[int, ...]
    duplicated: Tuple[int, ...]

    @property
    def is_complete(self) -> bool:
        return not self.unassigned and not self.duplicated


class Solution:
    def __init__(self, routes: Sequence[Route] = ()):
        self.routes: List[Route] = list(routes)

    def __len__(self) -> int:
        return len(self.routes)

    def __repr__(self) -> str:
        return f"Solution(routes={self.routes}, cost={self.total_cost:.4f})"

    @property
    def total_cost(self) -> float:
        return sum(route.total_cost for route in self.routes)

    @property
    def total_distance(self) -> float:
        return sum(route.total_distance for route in self.routes)

    def copy(self) -> "Solution":
        return Solution([route.copy() for route in self.routes])

    def assigned_customers(self) -> List[int]:
        return [c for route in self.routes for c in route.customers]

    def assignment_integrity(self) -> List[int]:
        """Customer indices claimed by more than one stop; empty when the assignment is valid."""
        counts = Counter(self.assigned_customers())
        return sorted(c for c, n in counts.items() if n > 1)

    def vehicles_used(self) -> List[int]:
        return [route.vehicle.id for route in self.routes]

    def coverage(self, customer_indices: Iterable[int]) -> CoverageReport:
        assigned = set(self.assigned_customers())
        return CoverageReport(
            assigned=tuple(sorted(assigned)),
            unassigned=tuple(sorted(set(customer_indices) - assigned)),
            duplicated=tuple(self.assignment_integrity()),
        )

    def signature(self) -> str:
        """Order-independent hash of which customers share a route."""
        groups = sorted(tuple(sorted(route.customers)) for route in self.routes if route.customers)
        return hashlib.md5(str(groups).encode('utf-8')).hexdigest()
