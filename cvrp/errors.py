class CVRPError(Exception):
    """Base class for errors raised by the optimizer."""


class ConfigurationError(CVRPError):
    """The problem instance or optimizer parameters are unusable."""


class OptimizationAborted(CVRPError):
    """Raised inside the worker once a hard abort has been requested."""
