"""
Error types raised by decision and value-of-information calculations.

None of these are recovered internally: each aborts the current call.
"""


class VoIError(Exception):
    """Base class for all bayesvoi errors."""
    pass


class InvalidParameterError(VoIError, ValueError):
    """Out-of-range probability, negative cost, bad sample count, etc."""
    pass


class SolverError(VoIError, RuntimeError):
    """The optimisation backend did not return an optimal decision."""
    pass


class SamplerConvergenceError(VoIError, RuntimeError):
    """MCMC chains did not converge (R-hat above threshold)."""

    def __init__(self, message: str, rhat: dict = None):
        super().__init__(message)
        self.rhat = rhat or {}
