"""
Configuration constants and parameters for the CVRP hybrid optimizer.
This module centralizes all configuration parameters and constants used throughout the system.
Run-level defaults can be overridden from the environment (or a .env file).
"""
import os

from dotenv import load_dotenv

load_dotenv()


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value else default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value else default


# Algorithm parameters
POPULATION_SIZE = _env_int("CVRP_POPULATION_SIZE", 50)
MAX_GENERATIONS = _env_int("CVRP_MAX_GENERATIONS", 100)
STAGNATION_THRESHOLD = _env_int("CVRP_STAGNATION_THRESHOLD", 30)
MUTATION_PROBABILITY = 1.0
CROSSOVER_PROBABILITY = 1.0

# Tabu search parameters
TABU_MEMORY_SIZE = 10
TABU_ITERATIONS = 20

# Local search parameters
THREE_OPT_MIN_ROUTE_LENGTH = 5  # depot + 3 customers + depot

# Execution guard (seconds)
EXECUTION_BUDGET_SECONDS = _env_float("CVRP_EXECUTION_BUDGET_SECONDS", 180.0)
WATCHDOG_GRACE_SECONDS = _env_float("CVRP_WATCHDOG_GRACE_SECONDS", 5.0)
CALLER_TIMEOUT_MARGIN_SECONDS = 10.0

# Location categories
DEPOT = "depot"
CUSTOMER = "customer"
REFUELING_STATION = "refueling_station"

# Penalty factors
TIME_WINDOW_PENALTY = 500.0
CAPACITY_PENALTY = 1000.0
FUEL_PENALTY = 2000.0
FUEL_VIOLATION_TIME_PENALTY = 1000.0
LATENESS_MULTIPLIER = 2.0

# Disruption delay tables (minutes)
TRAFFIC_DELAY_STEPS = ((60.0, 0.0), (40.0, 5.0), (20.0, 10.0))  # (speed above, delay)
TRAFFIC_SEVERE_DELAY = 15.0
ROAD_EVENT_DELAYS = {
    "clear": 0.0,
    "accident": 5.0,
    "construction": 10.0,
    "roadblock": 15.0,
}
WEATHER_DELAYS = {
    "clear": 0.0,
    "light rain": 3.0,
    "heavy rain": 8.0,
    "fog": 8.0,
    "snow": 15.0,
    "storm": 15.0,
}

# Reporting
REPORT_PATH = os.getenv("CVRP_REPORT_PATH", "report.pdf")
