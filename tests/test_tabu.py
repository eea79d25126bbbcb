import random

import pytest

from cvrp.cost_calculator import CostCalculator
from cvrp.errors import ConfigurationError, OptimizationAborted
from cvrp.models import Location, Problem, Vehicle
from cvrp.operators import PopulationGenerator
from cvrp.solution import Route, Solution
from cvrp.tabu import TabuMemory, TabuSearch


def _crossed_problem():
    locations = [
        Location(0, 0.0, 0.0, category="depot"),
        Location(1, 10.0, 0.0, demand=1),   # east
        Location(2, -10.0, 1.0, demand=1),  # west
        Location(3, -10.0, 0.0, demand=1),  # west
        Location(4, 10.0, 1.0, demand=1),   # east
    ]
    vehicles = [Vehicle(1, speed=1e6, max_fuel=100.0, min_fuel=0.0, capacity=10.0),
                Vehicle(2, speed=1e6, max_fuel=100.0, min_fuel=0.0, capacity=10.0)]
    return Problem(locations, vehicles)


def _crossed_solution(problem):
    calculator = CostCalculator(problem)
    return Solution([Route(problem.vehicles[0], [0, 1, 2, 0], calculator),
                     Route(problem.vehicles[1], [0, 3, 4, 0], calculator)])


def test_memory_evicts_oldest_first():
    memory = TabuMemory(2)
    for signature in ("a", "b", "c"):
        memory.push(signature)

    assert len(memory) == 2
    assert memory.entries() == ["b", "c"]
    assert "a" not in memory
    assert "c" in memory

    memory.clear()
    assert len(memory) == 0


def test_memory_size_must_be_positive():
    with pytest.raises(ConfigurationError):
        TabuMemory(0)


def test_neighbors_respect_capacity():
    problem = _crossed_problem()
    solution = _crossed_solution(problem)
    neighbors = list(TabuSearch(problem).neighbors(solution))
    assert len(neighbors) == 4

    tight = Problem(problem.locations[:3] + (Location(3, -10.0, 0.0, demand=5),),
                    [Vehicle(1, 1e6, 100.0, 0.0, 5.0), Vehicle(2, 1e6, 100.0, 0.0, 5.0)])
    calculator = CostCalculator(tight)
    solution = Solution([Route(tight.vehicles[0], [0, 1, 2, 0], calculator),
                         Route(tight.vehicles[1], [0, 3, 0], calculator)])
    assert list(TabuSearch(tight).neighbors(solution)) == []


def test_improve_untangles_crossed_routes():
    problem = _crossed_problem()
    solution = _crossed_solution(problem)
    search = TabuSearch(problem, iterations=5, memory_size=3)

    improved = search.improve(solution)

    groups = sorted(sorted(route.customers) for route in improved.routes)
    assert groups == [[1, 4], [2, 3]]
    assert improved.total_cost < solution.total_cost
    assert improved.assignment_integrity() == []
    assert improved.signature() in search.memory
    # input is left untouched
    assert [route.sequence for route in solution.routes] == [(0, 1, 2, 0), (0, 3, 4, 0)]


def test_improve_never_worsens():
    problem = _crossed_problem()
    generator = PopulationGenerator(problem, CostCalculator(problem), random.Random(3))
    search = TabuSearch(problem)
    for solution in generator.create_initial_population(5):
        assert search.improve(solution).total_cost <= solution.total_cost


def test_improve_honours_checkpoint():
    problem = _crossed_problem()

    def abort():
        raise OptimizationAborted("stop")

    search = TabuSearch(problem, iterations=3, checkpoint=abort)
    with pytest.raises(OptimizationAborted):
        search.improve(_crossed_solution(problem))


def test_signature_ignores_route_order():
    problem = _crossed_problem()
    solution = _crossed_solution(problem)
    swapped = Solution(list(reversed(solution.copy().routes)))
    assert swapped.signature() == solution.signature()


def test_improve_uses_supplied_memory():
    problem = _crossed_problem()
    search = TabuSearch(problem, iterations=5)
    memory = TabuMemory(3)

    improved = search.improve(_crossed_solution(problem), memory)

    assert improved.signature() in memory
    assert len(search.memory) == 0


def test_improve_skips_tabu_assignments():
    problem = _crossed_problem()
    calculator = CostCalculator(problem)
    untangled = Solution([Route(problem.vehicles[0], [0, 1, 4, 0], calculator),
                          Route(problem.vehicles[1], [0, 3, 2, 0], calculator)])
    memory = TabuMemory(3)
    memory.push(untangled.signature())
    solution = _crossed_solution(problem)

    improved = TabuSearch(problem, iterations=5).improve(solution, memory)

    assert improved.signature() != untangled.signature()
    assert improved.total_cost <= solution.total_cost
