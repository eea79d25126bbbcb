import logging
from collections import deque
from typing import Callable, Iterator, Optional

from cvrp.config import TABU_ITERATIONS, TABU_MEMORY_SIZE
from cvrp.errors import ConfigurationError
from cvrp.models import Problem
from cvrp.solution import Solution

logger = logging.getLogger(__name__)


class TabuMemory:
    """Bounded FIFO of recently accepted solution signatures; oldest evicted first."""

    def __init__(self, size: int = TABU_MEMORY_SIZE):
        if size < 1:
            raise ConfigurationError("Tabu memory size must be at least 1")
        self.size = size
        self._entries = deque(maxlen=size)

    def __contains__(self, signature: str) -> bool:
        return signature in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def push(self, signature: str):
        self._entries.append(signature)

    def entries(self) -> list:
        return list(self._entries)

    def clear(self):
        self._entries.clear()


class TabuSearch:
    """
    First-improvement tabu search over inter-route customer swaps.

    The memory belongs to this engine instance and persists across calls.
    """

    def __init__(self, problem: Problem,
                 iterations: int = TABU_ITERATIONS,
                 memory_size: int = TABU_MEMORY_SIZE,
                 checkpoint: Optional[Callable[[], None]] = None):
        if iterations < 0:
            raise ConfigurationError("Tabu iteration budget cannot be negative")
        self.problem = problem
        self.iterations = iterations
        self.memory = TabuMemory(memory_size)
        self.checkpoint = checkpoint

    def neighbors(self, solution: Solution) -> Iterator[Solution]:
        """Capacity-feasible pairwise swaps, generated route pair by route pair."""
        locations = self.problem.locations
        routes = solution.routes
        for i in range(len(routes)):
            for j in range(i + 1, len(routes)):
                route1, route2 = routes[i], routes[j]
                positions1, positions2 = route1.customer_positions(), route2.customer_positions()
                if not positions1 or not positions2:
                    continue
                demand1, demand2 = route1.total_demand, route2.total_demand
                for pos1 in positions1:
                    customer1 = route1.sequence[pos1]
                    for pos2 in positions2:
                        customer2 = route2.sequence[pos2]
                        d1, d2 = locations[customer1].demand, locations[customer2].demand
                        if (demand1 - d1 + d2 > route1.vehicle.capacity or
                                demand2 - d2 + d1 > route2.vehicle.capacity):
                            continue
                        neighbor = solution.copy()
                        neighbor.routes[i].replace(pos1, customer2)
                        neighbor.routes[j].replace(pos2, customer1)
                        yield neighbor

    def improve(self, solution: Solution, memory: Optional[TabuMemory] = None) -> Solution:
        """Signatures are checked against and pushed into ``memory``, the engine's own by default."""
        memory = self.memory if memory is None else memory
        current = solution.copy()
        best = solution.copy()
        best_cost = best.total_cost

        for iteration in range(self.iterations):
            if self.checkpoint:
                self.checkpoint()
            accepted = None
            for neighbor in self.neighbors(current):
                signature = neighbor.signature()
                if signature in memory:
                    continue
                cost = neighbor.total_cost
                if cost < best_cost:
                    accepted = neighbor
                    best_cost = cost
                    memory.push(signature)
                    break
            if accepted is None:
                logger.debug(f"Tabu search stopped after {iteration} iterations at {best_cost:.4f}")
                break
            current = accepted
            best = accepted

        return best
