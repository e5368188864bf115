"""
Expected value of perfect information (EVPI) by preposterior analysis.

    prior cost     = min_a E[cost | a]
    posterior cost = E_s[ min_a cost(a, s) ]
    EVPI           = prior cost - posterior cost  >= 0

Both terms are evaluated on the same sample of chance-variable states, so
EVPI is the weighted mean of the per-state regret of the prior decision and
is non-negative by construction.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from .decision import (
    DecisionProblem,
    DecisionResult,
    ExpectedCostTable,
    cost_matrix,
    _as_states,
    _normalise_weights,
)
from .exceptions import InvalidParameterError, VoIError
from .optimisation import select_action
from .sampling import empirical_weights


@dataclass
class VoIResult:
    """Prior decision, per-state posterior decisions and the resulting EVPI."""
    prior: DecisionResult
    states: np.ndarray
    weights: np.ndarray
    posterior_actions: List[str]
    posterior_costs: np.ndarray
    regret: np.ndarray
    posterior_expected_cost: float
    evpi: float
    std_error: float
    n_samples: int

    @property
    def prior_expected_cost(self) -> float:
        return self.prior.expected_cost

    def action_frequencies(self) -> Dict[str, float]:
        """Probability that each action is optimal once the state is known."""
        freq: Dict[str, float] = {}
        for name, w in zip(self.posterior_actions, self.weights):
            freq[name] = freq.get(name, 0.0) + float(w)
        return freq

    def to_dataframe(self) -> pd.DataFrame:
        """Per-state table of posterior decisions."""
        df = pd.DataFrame({
            'weight': self.weights,
            'posterior_action': self.posterior_actions,
            'posterior_cost': self.posterior_costs,
            'regret': self.regret,
        })
        if self.states.ndim == 1:
            df.insert(0, 'state', self.states)
        else:
            for j in range(self.states.shape[1]):
                df.insert(j, f'state_{j}', self.states[:, j])
        return df

    def summary(self) -> Dict[str, Any]:
        return {
            'prior_action': self.prior.action.name,
            'prior_expected_cost': self.prior_expected_cost,
            'posterior_expected_cost': self.posterior_expected_cost,
            'evpi': self.evpi,
            'std_error': self.std_error,
            'n_samples': self.n_samples,
        }


def expected_value_of_perfect_information(
    problem: DecisionProblem,
    samples,
    weights: Optional[Sequence[float]] = None,
    solver: str = 'enumerate'
) -> VoIResult:
    """
    Compare the prior decision against decisions made with the state known.

    Args:
        problem: Decision problem
        samples: Draws of the chance variable (1D values or 2D rows)
        weights: Optional probability per sample (default: equal weights,
            duplicate samples are collapsed)
        solver: Action selection backend ('enumerate' or 'milp')

    Returns:
        VoIResult with EVPI reported as a non-negative cost reduction
    """
    samples = _as_states(samples)
    n_samples = samples.shape[0]

    if weights is None:
        states, w = empirical_weights(samples)
    else:
        states = samples
        w = _normalise_weights(n_samples, weights)

    totals = cost_matrix(problem, states)
    names = problem.action_names

    prior_table = ExpectedCostTable(dict(zip(names, (totals @ w).tolist())))
    prior_idx = select_action(prior_table.values(), solver=solver)
    prior = DecisionResult(
        action=problem.actions[prior_idx],
        expected_cost=prior_table[names[prior_idx]],
        table=prior_table
    )

    posterior_idx = np.array([
        select_action(totals[:, i], solver=solver) for i in range(totals.shape[1])
    ])
    posterior_costs = totals[posterior_idx, np.arange(totals.shape[1])]
    regret = totals[prior_idx] - posterior_costs

    posterior_expected_cost = float(np.dot(w, posterior_costs))
    evpi = prior.expected_cost - posterior_expected_cost

    scale = max(1.0, abs(prior.expected_cost))
    if evpi < -1e-9 * scale:
        raise VoIError(
            f"Negative value of information ({evpi:.6g}); "
            f"prior and posterior costs are inconsistent"
        )
    evpi = max(evpi, 0.0)

    variance = float(np.dot(w, (regret - np.dot(w, regret)) ** 2))
    std_error = float(np.sqrt(variance / n_samples))

    return VoIResult(
        prior=prior,
        states=states,
        weights=w,
        posterior_actions=[names[i] for i in posterior_idx],
        posterior_costs=posterior_costs,
        regret=regret,
        posterior_expected_cost=posterior_expected_cost,
        evpi=evpi,
        std_error=std_error,
        n_samples=n_samples
    )


def voi_sensitivity(
    problem_factory: Callable[[float], DecisionProblem],
    samples,
    multipliers: Sequence[float] = np.linspace(0.5, 1.5, 11),
    weights: Optional[Sequence[float]] = None,
    solver: str = 'enumerate',
    verbose: bool = False
) -> pd.DataFrame:
    """
    EVPI as action costs are scaled.

    Args:
        problem_factory: Builds the problem with action costs scaled by a multiplier
        samples: Chance-variable draws, shared across multipliers
        multipliers: Cost multipliers to evaluate
        weights: Optional sample weights
        solver: Action selection backend
        verbose: Print one line per multiplier

    Returns:
        DataFrame with one row per multiplier
    """
    rows = []
    for mult in multipliers:
        if mult < 0:
            raise InvalidParameterError(f"Multipliers must be >= 0, got {mult}")
        result = expected_value_of_perfect_information(
            problem_factory(mult), samples, weights, solver
        )
        rows.append({
            'multiplier': float(mult),
            'prior_action': result.prior.action.name,
            'prior_expected_cost': result.prior_expected_cost,
            'posterior_expected_cost': result.posterior_expected_cost,
            'evpi': result.evpi,
        })
        if verbose:
            print(f"  x{mult:.2f}: prior={result.prior.action.name:16s} "
                  f"cost={result.prior_expected_cost:8.2f} evpi={result.evpi:6.2f}")

    return pd.DataFrame(rows)


def compare_information_sources(
    problem: DecisionProblem,
    samples,
    sources: Dict[str, float],
    weights: Optional[Sequence[float]] = None,
    solver: str = 'enumerate'
) -> pd.DataFrame:
    """
    Net value of candidate information sources against EVPI.

    EVPI bounds what any observation of the chance variable can be worth, so
    a source costing more than EVPI is never worth buying.

    Args:
        problem: Decision problem
        samples: Chance-variable draws
        sources: {source name: cost of acquiring the information}
        weights: Optional sample weights
        solver: Action selection backend

    Returns:
        DataFrame (source, cost, evpi, net_value, worthwhile)
    """
    for name, cost in sources.items():
        if cost < 0:
            raise InvalidParameterError(f"Cost of '{name}' must be >= 0, got {cost}")

    evpi = expected_value_of_perfect_information(problem, samples, weights, solver).evpi
    rows = [
        {
            'source': name,
            'cost': float(cost),
            'evpi': evpi,
            'net_value': evpi - cost,
            'worthwhile': evpi > cost,
        }
        for name, cost in sources.items()
    ]
    return pd.DataFrame(rows, columns=['source', 'cost', 'evpi', 'net_value', 'worthwhile'])
