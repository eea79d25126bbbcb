import logging
from typing import Any, Dict, Optional, Union

from cvrp.config import (CALLER_TIMEOUT_MARGIN_SECONDS, EXECUTION_BUDGET_SECONDS, REPORT_PATH,
                         WATCHDOG_GRACE_SECONDS)
from cvrp.guard import ExecutionGuard
from cvrp.hybrid import HybridOptimizer
from cvrp.models import Problem
from cvrp.report import build_solution_output, generate_pdf_report

logging.basicConfig(level=logging.INFO,
                    format='%(asctime)s %(levelname)s: %(message)s')

logger = logging.getLogger(__name__)


def run_cvrp(problem: Union[Problem, Dict[str, Any]],
             population_size: Optional[int] = None,
             max_generations: Optional[int] = None,
             stagnation_threshold: Optional[int] = None,
             mutation_probability: Optional[float] = None,
             crossover_probability: Optional[float] = None,
             tabu_memory_size: Optional[int] = None,
             tabu_iterations: Optional[int] = None,
             execution_budget: float = EXECUTION_BUDGET_SECONDS,
             grace_period: float = WATCHDOG_GRACE_SECONDS,
             caller_margin: float = CALLER_TIMEOUT_MARGIN_SECONDS,
             seed: Optional[int] = None,
             epoch_callback: callable = None,
             generate_pdf: bool = False,
             report_path: str = REPORT_PATH) -> Dict[str, Any]:
    """
    Run the guarded hybrid optimizer on a problem (or its dict form) and
    return the JSON-compatible solution output.
    """
    if not isinstance(problem, Problem):
        problem = Problem.from_dict(problem)

    logger.info(f"Loaded problem: {problem.summary()}")

    overrides = {
        "population_size": population_size,
        "max_generations": max_generations,
        "stagnation_threshold": stagnation_threshold,
        "mutation_probability": mutation_probability,
        "crossover_probability": crossover_probability,
        "tabu_memory_size": tabu_memory_size,
        "tabu_iterations": tabu_iterations,
    }
    optimizer = HybridOptimizer(
        problem,
        execution_budget=execution_budget,
        seed=seed,
        **{name: value for name, value in overrides.items() if value is not None},
    )
    guard = ExecutionGuard(optimizer, deadline=execution_budget,
                           grace_period=grace_period, caller_margin=caller_margin)
    outcome = guard.run(epoch_callback)

    if outcome.truncated:
        logger.warning(f"Optimization did not finish normally ({outcome.status.value}); "
                       f"returned solution is the best available")

    optimization = outcome.optimization
    output = build_solution_output(
        problem,
        outcome.solution,
        status=outcome.status.value,
        reason=optimization.reason.value if optimization else None,
        generations=optimization.generations if optimization else None,
        elapsed=outcome.elapsed,
    )

    for route in output["routes"]:
        logger.info(f"Vehicle {route['vehicle_id']}: {route['stops']} "
                    f"(distance {route['distance']}, cost {route['cost']}, "
                    f"violations tw={route['time_window_violations']} "
                    f"cap={route['capacity_violations']} fuel={route['fuel_violations']})")
    logger.info(f"Total cost: {output['total_cost']}, vehicles used: {output['number_of_vehicles_used']}")

    if generate_pdf:
        generate_pdf_report(output, report_path)

    return output
