"""
Single-stage decisions under uncertainty.

A decision problem pairs a finite, ordered action set (each action with a
fixed cost) with a chance-dependent outcome cost. The evaluator computes

    E[cost | a] = cost(a) + sum_i w_i * outcome_cost(a, s_i)

over weighted chance-variable realisations s_i and selects the minimiser.
Problems are separate from the chance distribution, so the same problem is
solved once under the prior and again per realisation for VoI analysis.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .exceptions import InvalidParameterError
from .optimisation import select_action


@dataclass(frozen=True)
class Action:
    """A decision alternative with a fixed (certain) cost."""
    name: str
    cost: float

    def __post_init__(self):
        if self.cost < 0:
            raise InvalidParameterError(
                f"Action '{self.name}' cost must be >= 0, got {self.cost}"
            )


class DecisionProblem(ABC):
    """
    Abstract base for single-stage decision problems.

    Subclasses define the chance-dependent part of the cost. Ties in
    expected cost are broken by action order.
    """

    def __init__(self, actions: Sequence[Action]):
        actions = list(actions)
        if not actions:
            raise InvalidParameterError("At least one action is required")
        names = [a.name for a in actions]
        if len(set(names)) != len(names):
            raise InvalidParameterError(f"Action names must be unique, got {names}")
        self.actions: List[Action] = actions

    @abstractmethod
    def outcome_cost(self, action: Action, state: Any) -> float:
        """Cost incurred by `action` when the chance variable equals `state`."""
        pass

    def outcome_costs(self, action: Action, states) -> np.ndarray:
        """Outcome cost for each state. Override for vectorised models."""
        return np.array([self.outcome_cost(action, s) for s in states], dtype=float)

    def total_cost(self, action: Action, state: Any) -> float:
        return action.cost + self.outcome_cost(action, state)

    def get_action(self, name: str) -> Action:
        for action in self.actions:
            if action.name == name:
                return action
        raise KeyError(f"Unknown action '{name}'")

    @property
    def action_names(self) -> List[str]:
        return [a.name for a in self.actions]


class ExpectedCostTable:
    """Ordered mapping from action name to expected total cost."""

    def __init__(self, costs: Dict[str, float]):
        self._costs = dict(costs)

    def __getitem__(self, name: str) -> float:
        return self._costs[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._costs)

    def __len__(self) -> int:
        return len(self._costs)

    def __repr__(self) -> str:
        inner = ", ".join(f"{k}={v:.2f}" for k, v in self._costs.items())
        return f"ExpectedCostTable({inner})"

    def items(self):
        return self._costs.items()

    def values(self) -> np.ndarray:
        return np.array(list(self._costs.values()))

    def best(self) -> Tuple[str, float]:
        """Minimising action (first listed on ties) and its cost."""
        idx = int(np.argmin(self.values()))
        name = list(self._costs)[idx]
        return name, self._costs[name]

    def to_series(self) -> pd.Series:
        return pd.Series(self._costs, name='expected_cost')


@dataclass
class DecisionResult:
    """Chosen action and its expected cost."""
    action: Action
    expected_cost: float
    table: ExpectedCostTable


def _normalise_weights(n_states: int, weights: Optional[Sequence[float]]) -> np.ndarray:
    if weights is None:
        return np.full(n_states, 1.0 / n_states)
    weights = np.asarray(weights, dtype=float)
    if weights.shape != (n_states,):
        raise InvalidParameterError(
            f"Expected {n_states} weights, got shape {weights.shape}"
        )
    if np.any(weights < 0):
        raise InvalidParameterError("Weights must be non-negative")
    total = weights.sum()
    if total <= 0:
        raise InvalidParameterError("Weights must not all be zero")
    return weights / total


def _as_states(states) -> np.ndarray:
    states = np.asarray(states)
    if states.ndim == 0:
        states = states.reshape(1)
    if states.shape[0] == 0:
        raise InvalidParameterError("At least one chance-variable state is required")
    return states


def cost_matrix(problem: DecisionProblem, states) -> np.ndarray:
    """
    Total cost of every action in every state.

    Returns:
        Array of shape (n_actions, n_states)
    """
    states = _as_states(states)
    rows = []
    for action in problem.actions:
        outcome = np.asarray(problem.outcome_costs(action, states), dtype=float)
        if np.any(outcome < 0):
            raise InvalidParameterError(
                f"Outcome costs for '{action.name}' must be non-negative"
            )
        rows.append(action.cost + outcome)
    return np.vstack(rows)


def expected_costs(
    problem: DecisionProblem,
    states,
    weights: Optional[Sequence[float]] = None
) -> ExpectedCostTable:
    """
    Expected total cost of every action.

    Args:
        problem: Decision problem
        states: Chance-variable realisations (1D values or 2D rows)
        weights: Probability of each realisation (default uniform)

    Returns:
        ExpectedCostTable in action order
    """
    states = _as_states(states)
    w = _normalise_weights(states.shape[0], weights)
    totals = cost_matrix(problem, states) @ w
    return ExpectedCostTable(
        {a.name: float(c) for a, c in zip(problem.actions, totals)}
    )


def solve_decision(
    problem: DecisionProblem,
    states,
    weights: Optional[Sequence[float]] = None,
    solver: str = 'enumerate'
) -> DecisionResult:
    """
    Choose the action with minimum expected cost.

    Args:
        problem: Decision problem
        states: Chance-variable realisations
        weights: Probability of each realisation (default uniform)
        solver: 'enumerate' or 'milp'

    Returns:
        DecisionResult (ties go to the first-listed action)
    """
    table = expected_costs(problem, states, weights)
    idx = select_action(table.values(), solver=solver)
    action = problem.actions[idx]
    return DecisionResult(
        action=action,
        expected_cost=table[action.name],
        table=table
    )
