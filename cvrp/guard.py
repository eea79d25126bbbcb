import logging
import random
import threading
import time
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from cvrp.cancellation import CancellationToken
from cvrp.config import (CALLER_TIMEOUT_MARGIN_SECONDS, EXECUTION_BUDGET_SECONDS,
                         WATCHDOG_GRACE_SECONDS)
from cvrp.cost_calculator import CostCalculator
from cvrp.errors import ConfigurationError, OptimizationAborted
from cvrp.hybrid import HybridOptimizer, OptimizationResult, TerminationReason
from cvrp.operators import PopulationGenerator
from cvrp.solution import Solution

logger = logging.getLogger(__name__)


class GuardStatus(Enum):
    FINISHED = "finished"
    CUT_OFF = "cut_off"
    ABORTED = "aborted"


@dataclass
class GuardResult:
    status: GuardStatus
    solution: Solution
    optimization: Optional[OptimizationResult]
    elapsed: float

    @property
    def truncated(self) -> bool:
        return self.status is not GuardStatus.FINISHED


class ExecutionGuard:
    """
    Runs an optimizer on a dedicated worker under a hard deadline.

    A watchdog sets the cooperative cancel flag at the deadline and escalates
    to a hard abort after the grace period. The caller waits at most
    deadline + grace + caller_margin and discards the worker's result past that.
    """

    def __init__(self, optimizer: HybridOptimizer,
                 deadline: float = EXECUTION_BUDGET_SECONDS,
                 grace_period: float = WATCHDOG_GRACE_SECONDS,
                 caller_margin: float = CALLER_TIMEOUT_MARGIN_SECONDS):
        if deadline <= 0 or grace_period < 0 or caller_margin < 0:
            raise ConfigurationError("Deadline must be positive and grace periods non-negative")
        self.optimizer = optimizer
        self.deadline = deadline
        self.grace_period = grace_period
        self.caller_margin = caller_margin

    def run(self, epoch_callback: Optional[Callable] = None) -> GuardResult:
        token = CancellationToken()
        done = threading.Event()
        start = time.time()

        future = Future()
        # daemon, so an abandoned worker never holds up interpreter exit
        worker = threading.Thread(target=self._run_worker, args=(token, done, future, epoch_callback),
                                  name="cvrp-optimizer", daemon=True)
        worker.start()
        watchdog = threading.Thread(target=self._watchdog, args=(token, done),
                                    name="cvrp-watchdog", daemon=True)
        watchdog.start()

        try:
            result = future.result(timeout=self.deadline + self.grace_period + self.caller_margin)
        except FutureTimeoutError:
            logger.error(f"Optimizer did not return within {self.deadline + self.grace_period + self.caller_margin:.1f}s; "
                         f"discarding its result")
            token.abort()
            return self._aborted(start)
        except OptimizationAborted:
            logger.error("Optimizer was forcibly aborted; partial progress discarded")
            return self._aborted(start)
        finally:
            done.set()

        cut_off = result.reason in (TerminationReason.TIME_BUDGET, TerminationReason.CANCELLED)
        status = GuardStatus.CUT_OFF if cut_off else GuardStatus.FINISHED
        if cut_off:
            logger.warning(f"Optimizer was cut off after {result.generations} generations; "
                           f"returning best-so-far solution ({result.best_cost:.4f})")
        return GuardResult(status=status, solution=result.solution,
                           optimization=result, elapsed=time.time() - start)

    def _run_worker(self, token: CancellationToken, done: threading.Event, future: Future,
                    epoch_callback: Optional[Callable]):
        if not future.set_running_or_notify_cancel():
            return
        try:
            future.set_result(self.optimizer.run(token, epoch_callback))
        except Exception as e:
            future.set_exception(e)
        finally:
            done.set()

    def _watchdog(self, token: CancellationToken, done: threading.Event):
        if done.wait(self.deadline):
            return
        logger.warning("Watchdog timeout reached. Attempting to terminate optimizer.")
        token.cancel()
        if done.wait(self.grace_period):
            return
        logger.error("Optimizer didn't terminate gracefully. Forcing abort.")
        token.abort()

    def _aborted(self, start: float) -> GuardResult:
        # built with a fresh calculator; nothing is read back from the worker
        problem = self.optimizer.problem
        generator = PopulationGenerator(problem, CostCalculator(problem), random.Random())
        return GuardResult(status=GuardStatus.ABORTED, solution=generator.fallback_solution(),
                           optimization=None, elapsed=time.time() - start)
