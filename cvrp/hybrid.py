import logging
import random
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from cvrp.cancellation import CancellationToken
from cvrp.config import (CROSSOVER_PROBABILITY, EXECUTION_BUDGET_SECONDS, MAX_GENERATIONS,
                         MUTATION_PROBABILITY, POPULATION_SIZE, STAGNATION_THRESHOLD,
                         TABU_ITERATIONS, TABU_MEMORY_SIZE)
from cvrp.cost_calculator import CostCalculator
from cvrp.errors import ConfigurationError
from cvrp.models import Problem
from cvrp.operators import GeneticOperators, PopulationGenerator
from cvrp.solution import CoverageReport, Solution
from cvrp.tabu import TabuSearch
from cvrp.three_opt import ThreeOptLocalSearch

logger = logging.getLogger(__name__)


class OptimizerState(Enum):
    INIT = "init"
    ITERATING = "iterating"
    CONVERGED = "converged"
    TIMED_OUT = "timed_out"
    TERMINATED = "terminated"
    DONE = "done"


class TerminationReason(Enum):
    GENERATION_LIMIT = "generation_limit"
    STAGNATION = "stagnation"
    CANCELLED = "cancelled"
    TIME_BUDGET = "time_budget"
    FALLBACK = "fallback"


_FINAL_STATE = {
    TerminationReason.GENERATION_LIMIT: OptimizerState.CONVERGED,
    TerminationReason.STAGNATION: OptimizerState.CONVERGED,
    TerminationReason.TIME_BUDGET: OptimizerState.TIMED_OUT,
    TerminationReason.CANCELLED: OptimizerState.TERMINATED,
    TerminationReason.FALLBACK: OptimizerState.TERMINATED,
}


@dataclass
class OptimizationResult:
    solution: Solution
    best_cost: float
    generations: int
    reason: TerminationReason
    coverage: CoverageReport
    elapsed: float
    history: List[float] = field(default_factory=list)

    @property
    def final_state(self) -> OptimizerState:
        return _FINAL_STATE[self.reason]


class HybridOptimizer:
    """
    Population loop combining genetic operators, tabu search and 3-opt.

    Per individual: perturb -> mutate -> crossover -> selection -> tabu.
    Per generation: 3-opt on the population best, then best/stagnation bookkeeping.
    """

    def __init__(self,
                 problem: Problem,
                 population_size: int = POPULATION_SIZE,
                 max_generations: int = MAX_GENERATIONS,
                 stagnation_threshold: int = STAGNATION_THRESHOLD,
                 mutation_probability: float = MUTATION_PROBABILITY,
                 crossover_probability: float = CROSSOVER_PROBABILITY,
                 tabu_memory_size: int = TABU_MEMORY_SIZE,
                 tabu_iterations: int = TABU_ITERATIONS,
                 execution_budget: float = EXECUTION_BUDGET_SECONDS,
                 seed: Optional[int] = None,
                 repair_fuel: bool = True):
        if population_size < 1:
            raise ConfigurationError("Population size must be at least 1")
        if max_generations < 0 or stagnation_threshold < 1:
            raise ConfigurationError("Generation ceiling and stagnation threshold must be positive")
        if not 0.0 <= mutation_probability <= 1.0 or not 0.0 <= crossover_probability <= 1.0:
            raise ConfigurationError("Mutation and crossover probabilities must lie in [0, 1]")
        if execution_budget <= 0:
            raise ConfigurationError("Execution budget must be positive")

        self.problem = problem
        self.population_size = population_size
        self.max_generations = max_generations
        self.stagnation_threshold = stagnation_threshold
        self.mutation_probability = mutation_probability
        self.crossover_probability = crossover_probability
        self.tabu_memory_size = tabu_memory_size
        self.tabu_iterations = tabu_iterations
        self.execution_budget = execution_budget
        self.seed = seed
        self.repair_fuel = repair_fuel

        self.state = OptimizerState.INIT
        self._initialize_components()

    def _initialize_components(self):
        self.rng = random.Random(self.seed)
        self.calculator = CostCalculator(self.problem)
        self.population_generator = PopulationGenerator(self.problem, self.calculator, self.rng)
        self.operators = GeneticOperators(self.problem, self.calculator,
                                          self.population_generator, self.rng)
        self.tabu_search = TabuSearch(self.problem, self.tabu_iterations, self.tabu_memory_size)
        self.three_opt = ThreeOptLocalSearch(self.calculator)

    def calculate_fitness(self, solution: Solution) -> float:
        return solution.total_cost

    def best_individual(self, population: List[Solution]) -> Solution:
        return min(population, key=self.calculate_fitness)

    def fallback_solution(self) -> Solution:
        return self.population_generator.fallback_solution()

    def run(self, token: Optional[CancellationToken] = None,
            epoch_callback: Optional[Callable] = None) -> OptimizationResult:
        token = token or CancellationToken()
        self.tabu_search.checkpoint = token.raise_if_aborted
        self.three_opt.checkpoint = token.raise_if_aborted
        start = time.time()

        self.state = OptimizerState.INIT
        logger.info(f"Starting hybrid optimization: {len(self.problem.vehicles)} vehicles, "
                    f"{len(self.problem.customer_indices)} customers, "
                    f"{len(self.problem.station_indices)} refueling stations")
        logger.info(f"Population size: {self.population_size}, max generations: {self.max_generations}, "
                    f"stagnation threshold: {self.stagnation_threshold}, "
                    f"execution budget: {self.execution_budget}s")

        population = self.population_generator.create_initial_population(self.population_size)
        if self._population_collapsed(population):
            logger.warning("Population initialization produced no routes; using fallback solution")
            return self._finish(self.fallback_solution(), 0, TerminationReason.FALLBACK, start, [])

        best_solution = self.best_individual(population)
        best_cost = self.calculate_fitness(best_solution)
        logger.info(f"Initial best solution fitness: {best_cost:.4f}")

        self.state = OptimizerState.ITERATING
        history = [best_cost]
        generation = 0
        stagnation = 0

        while True:
            reason = self._check_termination(generation, stagnation, start, token)
            if reason is not None:
                break

            start_gen = time.time()
            for i in range(len(population)):
                token.raise_if_aborted()
                population[i] = self._evolve_individual(i, population)

            current_best = self.best_individual(population)
            refined = self.three_opt.refine(current_best)
            refined_cost = self.calculate_fitness(refined)

            if refined_cost < best_cost:
                best_solution = refined
                best_cost = refined_cost
                stagnation = 0
                logger.info(f"Generation {generation + 1}: new best solution {best_cost:.4f}")
            else:
                stagnation += 1

            generation += 1
            history.append(best_cost)
            logger.debug(f"Generation {generation} - Global best: {best_cost:.4f} "
                         f"(time: {time.time() - start_gen:.2f}s)")

            if epoch_callback:
                self._call_progress_callback(epoch_callback, generation, best_solution, best_cost)

        if self.repair_fuel and self.problem.station_indices:
            repaired = self.operators.insert_refueling_stops(best_solution)
            if self.calculate_fitness(repaired) < best_cost:
                best_solution = repaired
                logger.info(f"Refuel repair improved best solution to {self.calculate_fitness(repaired):.4f}")

        return self._finish(best_solution, generation, reason, start, history)

    def _population_collapsed(self, population: List[Solution]) -> bool:
        if not population:
            return True
        return bool(self.problem.customer_indices) and all(not individual.routes for individual in population)

    def _evolve_individual(self, index: int, population: List[Solution]) -> Solution:
        individual = population[index]
        individual_cost = self.calculate_fitness(individual)

        candidate = self.operators.perturb(individual)
        if self.rng.random() < self.mutation_probability:
            candidate = self.operators.reverse_segment_mutation(candidate)
        if len(population) > 1 and self.rng.random() < self.crossover_probability:
            peer = population[self._random_peer(index, len(population))]
            candidate = self.operators.crossover(candidate, peer)
        candidate = self.operators.select(candidate)
        candidate = self.tabu_search.improve(candidate)

        duplicated = candidate.assignment_integrity()
        if duplicated:
            logger.warning(f"Discarding offspring assigning customers {duplicated} more than once")
            return individual

        if self.calculate_fitness(candidate) < individual_cost:
            return candidate
        return individual

    def _random_peer(self, index: int, size: int) -> int:
        peer = self.rng.randrange(size - 1)
        return peer + 1 if peer >= index else peer

    def _check_termination(self, generation: int, stagnation: int, start: float,
                           token: CancellationToken) -> Optional[TerminationReason]:
        if generation >= self.max_generations:
            logger.info(f"Generation ceiling of {self.max_generations} reached")
            return TerminationReason.GENERATION_LIMIT
        if stagnation >= self.stagnation_threshold:
            logger.info(f"No improvement for {stagnation} generations; stopping")
            return TerminationReason.STAGNATION
        if token.cancelled:
            logger.info("Termination signal received; stopping at generation boundary")
            return TerminationReason.CANCELLED
        if time.time() - start > self.execution_budget:
            logger.info("Time limit reached. Terminating optimization.")
            return TerminationReason.TIME_BUDGET
        return None

    def _finish(self, solution: Solution, generations: int, reason: TerminationReason,
                start: float, history: List[float]) -> OptimizationResult:
        self.state = _FINAL_STATE[reason]
        coverage = solution.coverage(self.problem.customer_indices)
        if coverage.unassigned:
            logger.warning(f"{len(coverage.unassigned)} customers could not be assigned to any vehicle")

        elapsed = time.time() - start
        best_cost = self.calculate_fitness(solution)
        logger.info(f"Optimization finished ({reason.value}) after {generations} generations "
                    f"and {elapsed:.2f}s. Best solution fitness: {best_cost:.4f}")
        result = OptimizationResult(
            solution=solution,
            best_cost=best_cost,
            generations=generations,
            reason=reason,
            coverage=coverage,
            elapsed=elapsed,
            history=history,
        )
        self.state = OptimizerState.DONE
        return result

    def _call_progress_callback(self, callback: Callable, generation: int,
                                best_solution: Solution, best_cost: float):
        try:
            routes = []
            for route in best_solution.routes:
                routes.append({
                    'vehicle_id': route.vehicle.id,
                    'stops': [self.problem.locations[i].id for i in route.sequence],
                    'distance': round(route.total_distance, 4),
                    'cost': round(route.total_cost, 4),
                })
            callback(generation=generation, best_cost=best_cost, routes=routes)
        except Exception as e:
            logger.warning(f"Progress callback failed: {e}")
