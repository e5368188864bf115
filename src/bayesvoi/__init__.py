"""
bayesvoi - Bayesian decision analysis and value of information.
"""

from .exceptions import (
    VoIError,
    InvalidParameterError,
    SolverError,
    SamplerConvergenceError,
)

from .priors import (
    CountPrior,
    Poisson,
    NegativeBinomial,
    DeltaMass,
    PointMasses,
    Mixture,
)

from .sampling import (
    stratified_sample,
    empirical_weights,
)

from .infection import (
    loss_rate,
    infection_probability,
    population_infection_pmf,
    expected_infections,
    AirborneInfectionModel,
)

from .decision import (
    Action,
    DecisionProblem,
    ExpectedCostTable,
    DecisionResult,
    cost_matrix,
    expected_costs,
    solve_decision,
)

from .voi import (
    VoIResult,
    expected_value_of_perfect_information,
    voi_sensitivity,
    compare_information_sources,
)

__all__ = [
    # Errors
    "VoIError",
    "InvalidParameterError",
    "SolverError",
    "SamplerConvergenceError",
    # Priors
    "CountPrior",
    "Poisson",
    "NegativeBinomial",
    "DeltaMass",
    "PointMasses",
    "Mixture",
    # Sampling
    "stratified_sample",
    "empirical_weights",
    # Infection model
    "loss_rate",
    "infection_probability",
    "population_infection_pmf",
    "expected_infections",
    "AirborneInfectionModel",
    # Decisions
    "Action",
    "DecisionProblem",
    "ExpectedCostTable",
    "DecisionResult",
    "cost_matrix",
    "expected_costs",
    "solve_decision",
    # Value of information
    "VoIResult",
    "expected_value_of_perfect_information",
    "voi_sensitivity",
    "compare_information_sources",
]
