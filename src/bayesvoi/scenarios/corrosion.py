"""
Corrosion Scenario - deciding whether to repair corroding anomalies.

An asset owner holds in-line inspection records of corrosion anomalies
(depth measurements with known measurement error, some missing). A
hierarchical growth model gives posterior growth rates per anomaly; for each
anomaly the owner decides to repair now or leave it until the next planned
outage. A perfect inspection would reveal the true growth rate first; its
value per anomaly is the EVPI of the growth rate.

Trade-off:
- Repair has a certain cost
- Leaving an anomaly that reaches the critical depth within the horizon
  incurs the (much larger) failure cost
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

import numpy as np
import pandas as pd

from ..decision import Action, DecisionProblem
from ..exceptions import InvalidParameterError
from ..inference import (
    INSPECTION_COLUMNS,
    CorrosionPosterior,
    fit_corrosion_model,
    validate_inspection_data,
)
from ..voi import expected_value_of_perfect_information
from .base import Scenario


VOI_COLUMNS = (
    'anomaly_id',
    'p_failure',
    'prior_action',
    'prior_expected_cost',
    'posterior_expected_cost',
    'evpi',
    'std_error',
)

DEFAULT_FIT_PARAMS = dict(
    draws=1000,
    tune=1000,
    chains=2,
)


# =============================================================================
# Inspection Data
# =============================================================================

def read_inspection_data(path) -> pd.DataFrame:
    """Load an inspection table from CSV and validate it."""
    return validate_inspection_data(pd.read_csv(path))


def generate_inspection_data(
    n_anomalies: int = 10,
    inspection_times=(2.0, 5.0, 8.0),
    rate_mean: float = 0.3,
    rate_std: float = 0.1,
    depth_sd: float = 0.2,
    missing_fraction: float = 0.1,
    seed: Optional[int] = None
) -> pd.DataFrame:
    """
    Generate synthetic inspection records.

    Growth rates are log-normal with the requested mean and standard
    deviation; measured depths add Gaussian measurement error.

    Args:
        n_anomalies: Number of anomalies
        inspection_times: Years at which every anomaly is inspected
        rate_mean: Mean growth rate (mm/yr)
        rate_std: Standard deviation of growth rate
        depth_sd: Measurement error standard deviation (mm)
        missing_fraction: Share of records whose depth is lost
        seed: Random seed for reproducibility

    Returns:
        DataFrame with columns anomaly_id, time, depth, depth_sd, missing,
        true_rate
    """
    if n_anomalies < 1:
        raise InvalidParameterError(f"n_anomalies must be >= 1, got {n_anomalies}")
    if not 0.0 <= missing_fraction < 1.0:
        raise InvalidParameterError(f"missing_fraction must be in [0, 1), got {missing_fraction}")
    if seed is not None:
        np.random.seed(seed)

    # Log-normal parameters from mean and std
    variance = rate_std ** 2
    mu = np.log(rate_mean ** 2 / np.sqrt(variance + rate_mean ** 2))
    sigma = np.sqrt(np.log(1 + variance / rate_mean ** 2))
    rates = np.random.lognormal(mu, sigma, n_anomalies)

    records = []
    for i, rate in enumerate(rates):
        for t in inspection_times:
            measured = max(0.0, rate * t + np.random.normal(0.0, depth_sd))
            records.append({
                'anomaly_id': f'A{i:03d}',
                'time': float(t),
                'depth': measured,
                'depth_sd': depth_sd,
                'true_rate': float(rate),
            })

    df = pd.DataFrame(records)
    df['missing'] = np.random.random(len(df)) < missing_fraction
    df.loc[df['missing'], 'depth'] = np.nan
    return df[list(INSPECTION_COLUMNS) + ['true_rate']]


# =============================================================================
# Decision Problem
# =============================================================================

@dataclass
class CorrosionCosts:
    """Costs and failure criterion for the repair decision."""
    repair_cost: float = 2000.0
    failure_cost: float = 50000.0
    critical_depth: float = 6.0   # mm
    horizon: float = 10.0         # years until the next opportunity to repair

    def __post_init__(self):
        if self.repair_cost < 0 or self.failure_cost < 0:
            raise InvalidParameterError("Costs must be >= 0")
        if self.critical_depth <= 0 or self.horizon <= 0:
            raise InvalidParameterError("critical_depth and horizon must be > 0")


class CorrosionRepairProblem(DecisionProblem):
    """
    Repair now or leave until the next outage.

    State rows are (current depth, growth rate). Leaving the anomaly fails
    if depth + rate * horizon reaches the critical depth.
    """

    def __init__(self, costs: Optional[CorrosionCosts] = None):
        self.costs = costs or CorrosionCosts()
        super().__init__([
            Action('no_repair', 0.0),
            Action('repair', self.costs.repair_cost),
        ])

    def fails(self, states) -> np.ndarray:
        states = np.atleast_2d(np.asarray(states, dtype=float))
        depth, rate = states[:, 0], states[:, 1]
        return depth + rate * self.costs.horizon >= self.costs.critical_depth

    def outcome_cost(self, action: Action, state: Any) -> float:
        return float(self.outcome_costs(action, [state])[0])

    def outcome_costs(self, action: Action, states) -> np.ndarray:
        failed = self.fails(states)
        if action.name == 'repair':
            return np.zeros(len(failed))
        return np.where(failed, self.costs.failure_cost, 0.0)


def anomaly_states(
    posterior: CorrosionPosterior,
    anomaly_id,
    current_time: float
) -> np.ndarray:
    """Posterior (current depth, growth rate) draws for one anomaly."""
    rate = posterior.rate_draws(anomaly_id)
    return np.column_stack([rate * current_time, rate])


def inspection_voi_table(
    posterior: CorrosionPosterior,
    problem: CorrosionRepairProblem,
    current_time: float
) -> pd.DataFrame:
    """
    EVPI of a perfect inspection, per anomaly.

    Args:
        posterior: Fitted corrosion posterior
        problem: Repair decision problem
        current_time: Time of the decision (years since t = 0)

    Returns:
        DataFrame with VOI_COLUMNS, one row per anomaly
    """
    if current_time <= 0:
        raise InvalidParameterError(f"current_time must be > 0, got {current_time}")

    rows = []
    for anomaly_id in posterior.anomaly_ids:
        states = anomaly_states(posterior, anomaly_id, current_time)
        result = expected_value_of_perfect_information(problem, states)
        rows.append({
            'anomaly_id': anomaly_id,
            'p_failure': float(problem.fails(states).mean()),
            'prior_action': result.prior.action.name,
            'prior_expected_cost': result.prior_expected_cost,
            'posterior_expected_cost': result.posterior_expected_cost,
            'evpi': result.evpi,
            'std_error': result.std_error,
        })
    return pd.DataFrame(rows, columns=list(VOI_COLUMNS))


def read_voi_results(path) -> pd.DataFrame:
    """Load a precomputed inspection VoI table from CSV."""
    df = pd.read_csv(path)
    absent = [c for c in VOI_COLUMNS if c not in df.columns]
    if absent:
        raise InvalidParameterError(f"VoI results are missing columns: {absent}")
    if (df['evpi'] < 0).any():
        raise InvalidParameterError("VoI results contain negative EVPI")
    return df


# =============================================================================
# Scenario Class
# =============================================================================

class CorrosionScenario(Scenario):
    """
    Corrosion repair planning with a fitted growth-rate posterior.

    The posterior is fitted lazily on first use and cached.
    """

    def __init__(
        self,
        data: Optional[pd.DataFrame] = None,
        costs: Optional[CorrosionCosts] = None,
        anomaly_id=None,
        current_time: Optional[float] = None,
        fit_params: Optional[Dict[str, Any]] = None,
        posterior: Optional[CorrosionPosterior] = None
    ):
        self.data = validate_inspection_data(
            generate_inspection_data(seed=42) if data is None else data
        )
        self.costs = costs or CorrosionCosts()
        self.current_time = (
            float(self.data['time'].max()) if current_time is None else current_time
        )
        self.fit_params = dict(DEFAULT_FIT_PARAMS, **(fit_params or {}))
        self._posterior = posterior
        self.anomaly_id = (
            sorted(self.data['anomaly_id'].unique())[0] if anomaly_id is None else anomaly_id
        )

    @property
    def posterior(self) -> CorrosionPosterior:
        if self._posterior is None:
            self._posterior = fit_corrosion_model(self.data, **self.fit_params)
        return self._posterior

    def build_problem(self) -> CorrosionRepairProblem:
        return CorrosionRepairProblem(self.costs)

    def prior_samples(self, n_samples: int, seed: Optional[int] = None) -> np.ndarray:
        """
        Posterior draws for the scenario's anomaly.

        The growth-rate posterior is the prior of the inspection decision.
        Without a seed the draws are thinned evenly (deterministic); with a
        seed a random subset is taken without replacement.
        """
        if n_samples < 1:
            raise InvalidParameterError(f"n_samples must be >= 1, got {n_samples}")
        states = anomaly_states(self.posterior, self.anomaly_id, self.current_time)
        if n_samples >= len(states):
            return states
        if seed is None:
            idx = np.linspace(0, len(states) - 1, n_samples).round().astype(int)
        else:
            np.random.seed(seed)
            idx = np.sort(np.random.choice(len(states), size=n_samples, replace=False))
        return states[idx]

    def voi_table(self) -> pd.DataFrame:
        """Inspection EVPI for every anomaly."""
        return inspection_voi_table(self.posterior, self.build_problem(), self.current_time)
