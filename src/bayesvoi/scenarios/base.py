"""
Base classes and utilities for decision-analysis case studies.

Each scenario defines a decision problem and a prior over its chance
variable; VoI analysis is generic and plugs into any scenario.
"""

from abc import ABC, abstractmethod
from typing import Dict, Optional, TYPE_CHECKING

import pandas as pd

if TYPE_CHECKING:
    from ..decision import DecisionProblem
    from ..voi import VoIResult


class Scenario(ABC):
    """
    Abstract base for case studies.

    A scenario defines:
    - The decision problem (actions, costs, outcome model)
    - Prior draws of the chance variable
    """

    @abstractmethod
    def build_problem(self) -> 'DecisionProblem':
        """Create the decision problem."""
        pass

    @abstractmethod
    def prior_samples(self, n_samples: int, seed: Optional[int] = None):
        """Draw n_samples states of the chance variable from the prior."""
        pass

    def run(
        self,
        n_samples: int = 1000,
        seed: Optional[int] = None,
        solver: str = 'enumerate'
    ) -> 'VoIResult':
        """Prior decision and EVPI for this scenario."""
        from ..voi import expected_value_of_perfect_information

        problem = self.build_problem()
        samples = self.prior_samples(n_samples, seed=seed)
        return expected_value_of_perfect_information(problem, samples, solver=solver)


def summarise_voi(results: Dict[str, 'VoIResult']) -> pd.DataFrame:
    """
    Summarise VoI results across scenarios or configurations.

    Args:
        results: {label: VoIResult}

    Returns:
        DataFrame indexed by label with prior action, costs and EVPI
    """
    if not results:
        return pd.DataFrame(columns=[
            'prior_action', 'prior_expected_cost',
            'posterior_expected_cost', 'evpi', 'std_error', 'n_samples'
        ])
    rows = {label: r.summary() for label, r in results.items()}
    return pd.DataFrame.from_dict(rows, orient='index')
