"""
Action selection backends.

The action sets here are small, so enumeration is exact and cheap. The
'milp' backend states the same choice as a binary program

    min  sum_a x_a * E[cost | a]
    s.t. sum_a x_a = 1,  x_a in {0, 1}

and hands it to scipy's HiGHS interface. Both backends break ties in favour
of the first-listed action.
"""

import numpy as np
from scipy.optimize import milp, LinearConstraint, Bounds

from .exceptions import InvalidParameterError, SolverError


SOLVERS = ('enumerate', 'milp')


def _first_within_tolerance(costs: np.ndarray, value: float) -> int:
    tol = 1e-9 * max(1.0, abs(value))
    return int(np.flatnonzero(costs <= value + tol)[0])


def enumerate_actions(costs: np.ndarray) -> int:
    """Index of the cheapest action by exhaustive comparison."""
    return int(np.argmin(costs))


def solve_milp(costs: np.ndarray) -> int:
    """Index of the cheapest action from the binary program."""
    n = len(costs)
    result = milp(
        c=costs,
        constraints=LinearConstraint(np.ones((1, n)), lb=1, ub=1),
        integrality=np.ones(n),
        bounds=Bounds(0, 1)
    )
    if not result.success or result.x is None:
        raise SolverError(
            f"MILP solver failed (status={result.status}): {result.message}"
        )

    chosen = int(np.argmax(result.x))
    return _first_within_tolerance(costs, costs[chosen])


def select_action(costs, solver: str = 'enumerate') -> int:
    """
    Pick the index of the minimum expected-cost action.

    Args:
        costs: Expected total cost per action, in action order
        solver: 'enumerate' (default) or 'milp'

    Returns:
        Index into the action list
    """
    costs = np.asarray(costs, dtype=float)
    if costs.ndim != 1 or costs.size == 0:
        raise InvalidParameterError("costs must be a non-empty 1D array")
    if not np.all(np.isfinite(costs)):
        raise InvalidParameterError("Expected costs must be finite")

    if solver == 'enumerate':
        return enumerate_actions(costs)
    if solver == 'milp':
        return solve_milp(costs)
    raise InvalidParameterError(f"solver must be one of {SOLVERS}, got '{solver}'")
