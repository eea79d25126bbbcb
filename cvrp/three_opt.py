import logging
from typing import Callable, List, Optional, Sequence

from cvrp.config import THREE_OPT_MIN_ROUTE_LENGTH
from cvrp.cost_calculator import CostCalculator
from cvrp.models import Vehicle
from cvrp.solution import Solution

logger = logging.getLogger(__name__)


def three_opt_candidates(sequence: Sequence[int], i: int, j: int, k: int) -> List[List[int]]:
    """
    Reconnections of segments s1=[:i], s2=[i:j], s3=[j:k], s4=[k:].

    Only five of the seven non-trivial 3-opt moves are generated:
    1-2-3-4, 1-3-2-4, 1-3-2r-4, 1-2r-3-4 and 1-2-3r-4.
    """
    s1, s2, s3, s4 = list(sequence[:i]), list(sequence[i:j]), list(sequence[j:k]), list(sequence[k:])
    s2r, s3r = s2[::-1], s3[::-1]
    return [
        s1 + s2 + s3 + s4,
        s1 + s3 + s2 + s4,
        s1 + s3 + s2r + s4,
        s1 + s2r + s3 + s4,
        s1 + s2 + s3r + s4,
    ]


class ThreeOptLocalSearch:
    def __init__(self, calculator: CostCalculator,
                 min_route_length: int = THREE_OPT_MIN_ROUTE_LENGTH,
                 checkpoint: Optional[Callable[[], None]] = None):
        self.calculator = calculator
        self.min_route_length = min_route_length
        self.checkpoint = checkpoint

    def refine(self, solution: Solution) -> Solution:
        improved = solution.copy()
        for route in improved.routes:
            if len(route) < self.min_route_length:
                continue
            optimized = self.optimize_sequence(route.vehicle, route.sequence)
            if list(optimized) != list(route.sequence):
                route.sequence = optimized
        return improved

    def optimize_sequence(self, vehicle: Vehicle, sequence: Sequence[int]) -> List[int]:
        """Repeat full (i, j, k) scans until a pass finds no shorter reconnection."""
        best = list(sequence)
        best_distance = self.calculator.route_distance(vehicle, best)
        n = len(best)

        improved = True
        while improved:
            improved = False
            for i in range(1, n - 3):
                if self.checkpoint:
                    self.checkpoint()
                for j in range(i + 1, n - 2):
                    for k in range(j + 1, n - 1):
                        for candidate in three_opt_candidates(best, i, j, k):
                            distance = self.calculator.route_distance(vehicle, candidate)
                            if distance < best_distance - 1e-9:
                                best = candidate
                                best_distance = distance
                                improved = True

        logger.debug(f"3-opt settled vehicle {vehicle.id} route at distance {best_distance:.4f}")
        return best

