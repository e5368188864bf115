"""
Ventilation Scenario - choosing a ventilation rate under uncertain occupancy.

An office manager picks one of a few ventilation settings for the day. Higher
ventilation costs more to run but removes airborne infectious quanta faster.
Occupancy is unknown when the setting is chosen; a monitoring system would
reveal it. The value of that information is the EVPI of occupancy.

Trade-off:
- Ventilation has a fixed running cost per day
- Each infection costs one sick day
- Sick-day cost grows roughly with occupancy squared (more emitters, more
  people exposed)
"""

from dataclasses import dataclass, replace
from typing import Dict, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from ..decision import Action, DecisionProblem
from ..exceptions import InvalidParameterError
from ..infection import AirborneInfectionModel, expected_infections, loss_rate
from ..priors import CountPrior, Poisson
from ..sampling import stratified_sample
from ..voi import VoIResult, compare_information_sources, voi_sensitivity
from .base import Scenario


# =============================================================================
# Actions
# =============================================================================

@dataclass(frozen=True)
class VentilationAction(Action):
    """Ventilation setting: daily running cost and air changes per hour."""
    ventilation_rate: float = 0.0

    def __post_init__(self):
        super().__post_init__()
        if self.ventilation_rate < 0:
            raise InvalidParameterError(
                f"ventilation_rate must be >= 0, got {self.ventilation_rate}"
            )


DEFAULT_VENTILATION_ACTIONS: Tuple[VentilationAction, ...] = (
    VentilationAction('Poor', cost=5.0, ventilation_rate=0.5),
    VentilationAction('Standard', cost=30.0, ventilation_rate=2.0),
    VentilationAction('Well_Ventilated', cost=45.0, ventilation_rate=4.0),
    VentilationAction('Maximum', cost=90.0, ventilation_rate=10.0),
)

# Cost of candidate ways to learn occupancy before choosing a setting
DEFAULT_INFORMATION_SOURCES: Dict[str, float] = {
    'occupancy_sensor': 0.5,
    'building_monitoring_system': 5.0,
    'smart_control_system': 25.0,
}


# =============================================================================
# Parameters
# =============================================================================

@dataclass
class VentilationParams:
    """
    Room, pathogen and cost constants for the ventilation scenario.

    Rates are per hour; costs are per day.
    """
    volume: float = 1000.0          # m^3
    duration: float = 8.0           # occupied hours
    n_steps: int = 100
    emission_rate: float = 0.075    # quanta/h per occupant (prevalence-weighted)
    inhalation_rate: float = 0.5    # m^3/h
    infectious_dose: float = 1.0    # quanta
    deposition_rate: float = 0.3    # 1/h
    decay_rate: float = 0.6         # 1/h
    cost_per_infection: float = 345.0  # one sick day
    occupancy_mean: float = 30.0

    def __post_init__(self):
        if self.cost_per_infection < 0:
            raise InvalidParameterError(
                f"cost_per_infection must be >= 0, got {self.cost_per_infection}"
            )

    def infection_model(self) -> AirborneInfectionModel:
        return AirborneInfectionModel(
            volume=self.volume,
            duration=self.duration,
            n_steps=self.n_steps,
            emission_rate=self.emission_rate,
            inhalation_rate=self.inhalation_rate,
            infectious_dose=self.infectious_dose
        )


# =============================================================================
# Decision Problem
# =============================================================================

class VentilationProblem(DecisionProblem):
    """
    Pick a ventilation setting; the chance variable is the occupancy count.

    Outcome cost = E[infections] * cost_per_infection, where the number of
    infections among the occupants is binomial with the per-person infection
    probability of the chosen setting.
    """

    def __init__(
        self,
        actions: Optional[Sequence[VentilationAction]] = None,
        params: Optional[VentilationParams] = None
    ):
        super().__init__(DEFAULT_VENTILATION_ACTIONS if actions is None else actions)
        self.params = params or VentilationParams()
        self.model = self.params.infection_model()
        self._cache: Dict[Tuple[str, int], float] = {}

    def loss_rate(self, action: VentilationAction) -> float:
        return loss_rate(
            action.ventilation_rate,
            self.params.deposition_rate,
            self.params.decay_rate
        )

    def infection_probability(self, action: VentilationAction, occupancy) -> float:
        return self.model.probability(occupancy, self.loss_rate(action))

    def outcome_cost(self, action: VentilationAction, state) -> float:
        occupancy = int(state)
        if occupancy < 0 or occupancy != state:
            raise InvalidParameterError(
                f"Occupancy must be a non-negative integer, got {state}"
            )
        key = (action.name, occupancy)
        if key not in self._cache:
            p = self.infection_probability(action, occupancy)
            self._cache[key] = (
                expected_infections(p, occupancy) * self.params.cost_per_infection
            )
        return self._cache[key]

    def outcome_costs(self, action: VentilationAction, states) -> np.ndarray:
        values, inverse = np.unique(np.asarray(states).ravel(), return_inverse=True)
        costs = np.array([self.outcome_cost(action, v) for v in values])
        return costs[inverse]

    def scaled(self, multiplier: float) -> 'VentilationProblem':
        """Same problem with every ventilation running cost multiplied."""
        actions = [replace(a, cost=a.cost * multiplier) for a in self.actions]
        return VentilationProblem(actions, self.params)


# =============================================================================
# Scenario Class
# =============================================================================

class VentilationScenario(Scenario):
    """
    Ventilation control under occupancy uncertainty.

    Implements the Scenario interface; the prior defaults to a Poisson with
    the configured mean occupancy.
    """

    def __init__(
        self,
        params: Optional[VentilationParams] = None,
        actions: Optional[Sequence[VentilationAction]] = None,
        prior: Optional[CountPrior] = None,
        sampling_method: str = 'midpoint'
    ):
        self.params = params or VentilationParams()
        self.actions = list(DEFAULT_VENTILATION_ACTIONS if actions is None else actions)
        self.prior = prior or Poisson(self.params.occupancy_mean)
        self.sampling_method = sampling_method

    def build_problem(self) -> VentilationProblem:
        return VentilationProblem(self.actions, self.params)

    def prior_samples(self, n_samples: int, seed: Optional[int] = None) -> np.ndarray:
        return stratified_sample(
            self.prior, n_samples, method=self.sampling_method, seed=seed
        )

    def cost_sensitivity(
        self,
        n_samples: int = 1000,
        multipliers: Sequence[float] = np.linspace(0.5, 1.5, 11),
        verbose: bool = False
    ) -> pd.DataFrame:
        """EVPI as ventilation running costs are scaled."""
        problem = self.build_problem()
        return voi_sensitivity(
            problem.scaled,
            self.prior_samples(n_samples),
            multipliers,
            verbose=verbose
        )

    def information_sources(
        self,
        sources: Optional[Dict[str, float]] = None,
        n_samples: int = 1000
    ) -> pd.DataFrame:
        """Net value of each candidate occupancy information source."""
        return compare_information_sources(
            self.build_problem(),
            self.prior_samples(n_samples),
            DEFAULT_INFORMATION_SOURCES if sources is None else sources
        )


def print_ventilation_summary(result: VoIResult) -> None:
    """Print the prior decision table and EVPI for reference."""
    print("Prior expected cost per action:")
    for name, cost in result.prior.table.items():
        marker = " <-" if name == result.prior.action.name else ""
        print(f"  {name:16s} {cost:8.2f}{marker}")
    print(f"Posterior expected cost: {result.posterior_expected_cost:.2f}")
    print(f"EVPI of occupancy: {result.evpi:.2f} (s.e. {result.std_error:.2f})")
    for name, freq in result.action_frequencies().items():
        print(f"  optimal with known occupancy: {name:16s} {freq:6.1%}")


def run_ventilation_example(
    n_samples: int = 1000,
    params: Optional[VentilationParams] = None,
    verbose: bool = True
) -> VoIResult:
    """Poisson occupancy prior, stratified samples, four ventilation settings."""
    result = VentilationScenario(params=params).run(n_samples)
    if verbose:
        print_ventilation_summary(result)
    return result
