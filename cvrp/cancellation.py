import threading

from cvrp.errors import OptimizationAborted


class CancellationToken:
    """
    Cooperative cancel flag plus a hard abort flag.

    ``cancelled`` is polled by the optimizer at generation boundaries;
    ``aborted`` is polled inside the inner loops and raises OptimizationAborted.
    """

    def __init__(self):
        self._cancelled = threading.Event()
        self._aborted = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def aborted(self) -> bool:
        return self._aborted.is_set()

    def cancel(self):
        self._cancelled.set()

    def abort(self):
        self._cancelled.set()
        self._aborted.set()

    def raise_if_aborted(self):
        if self._aborted.is_set():
            raise OptimizationAborted("Optimization aborted by watchdog")
