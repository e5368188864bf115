"""
Tests for the single-stage decision evaluator.

Tests cover:
- Expected cost tables
- Tie breaking by action order
- Enumeration and MILP backends
- Invariance and monotonicity of the chosen action
- Validation errors
"""

from types import SimpleNamespace

import pytest
import numpy as np

import bayesvoi.optimisation
from bayesvoi import (
    Action,
    DecisionProblem,
    expected_costs,
    ExpectedCostTable,
    solve_decision,
    cost_matrix,
    InvalidParameterError,
    SolverError,
)
from bayesvoi.scenarios import VentilationProblem


class LinearProblem(DecisionProblem):
    """Outcome cost = slope[action] * state."""

    def __init__(self, actions, slopes):
        super().__init__(actions)
        self.slopes = slopes

    def outcome_cost(self, action, state):
        return self.slopes[action.name] * state


def make_problem(order=('A', 'B')):
    actions = {'A': Action('A', 0.0), 'B': Action('B', 10.0)}
    return LinearProblem([actions[n] for n in order], {'A': 2.0, 'B': 0.0})


class TestAction:
    """Tests for Action."""

    def test_rejects_negative_cost(self):
        """Fixed costs are non-negative."""
        with pytest.raises(InvalidParameterError):
            Action('bad', -1.0)

    def test_problem_requires_actions(self):
        """Empty action set is invalid."""
        with pytest.raises(InvalidParameterError):
            LinearProblem([], {})

    def test_problem_requires_unique_names(self):
        """Duplicate action names are invalid."""
        with pytest.raises(InvalidParameterError):
            LinearProblem([Action('A', 0.0), Action('A', 1.0)], {'A': 1.0})

    def test_get_action(self):
        """Actions can be looked up by name."""
        problem = make_problem()
        assert problem.get_action('B').cost == 10.0
        with pytest.raises(KeyError):
            problem.get_action('C')


class TestExpectedCosts:
    """Tests for expected_costs."""

    def test_uniform_weights(self):
        """Default weights are uniform over states."""
        table = expected_costs(make_problem(), [1, 2, 3])

        assert table['A'] == pytest.approx(4.0)
        assert table['B'] == pytest.approx(10.0)
        assert list(table) == ['A', 'B']

    def test_explicit_weights(self):
        """Weights are normalised."""
        table = expected_costs(make_problem(), [0, 10], weights=[3, 1])
        assert table['A'] == pytest.approx(5.0)

    def test_single_state(self):
        """A scalar state is accepted."""
        table = expected_costs(make_problem(), 7)
        assert table['A'] == pytest.approx(14.0)

    def test_cost_matrix_shape(self):
        """One row per action, one column per state."""
        totals = cost_matrix(make_problem(), [0, 1, 2, 3])
        assert totals.shape == (2, 4)
        assert totals[1] == pytest.approx([10.0] * 4)

    def test_to_series(self):
        """Table converts to a pandas Series."""
        series = expected_costs(make_problem(), [1]).to_series()
        assert list(series.index) == ['A', 'B']

    def test_best(self):
        """best() returns the cheapest action and its cost."""
        table = expected_costs(make_problem(), [2, 3])
        name, cost = table.best()
        assert name == 'A'
        assert cost == pytest.approx(5.0)

    def test_best_on_tie(self):
        """Equal expected costs go to the first-listed action."""
        table = ExpectedCostTable({'B': 10.0, 'A': 10.0, 'C': 12.0})
        assert table.best() == ('B', 10.0)

    def test_weight_mismatch(self):
        """Weights must match states."""
        with pytest.raises(InvalidParameterError):
            expected_costs(make_problem(), [1, 2], weights=[1.0])

    def test_negative_weight(self):
        """Weights must be non-negative."""
        with pytest.raises(InvalidParameterError):
            expected_costs(make_problem(), [1, 2], weights=[1.5, -0.5])

    def test_empty_states(self):
        """At least one state is required."""
        with pytest.raises(InvalidParameterError):
            expected_costs(make_problem(), [])

    def test_negative_outcome_cost(self):
        """Outcome costs must be non-negative."""
        with pytest.raises(InvalidParameterError):
            expected_costs(make_problem(), [-5])


class TestSolveDecision:
    """Tests for solve_decision."""

    def test_picks_minimum(self):
        """The cheapest action in expectation is chosen."""
        result = solve_decision(make_problem(), [1, 2, 3])

        assert result.action.name == 'A'
        assert result.expected_cost == pytest.approx(4.0)

    def test_ties_go_to_first_listed(self):
        """Equal expected costs resolve by action order."""
        # A: 2 * 5 = 10, B: 10
        assert solve_decision(make_problem(('A', 'B')), [0, 10]).action.name == 'A'
        assert solve_decision(make_problem(('B', 'A')), [0, 10]).action.name == 'B'

    @pytest.mark.parametrize('states', [[0], [1, 2, 3], [0, 10], [8, 9], [100]])
    def test_milp_agrees_with_enumeration(self, states):
        """Both backends choose the same action."""
        problem = make_problem()
        a = solve_decision(problem, states, solver='enumerate')
        b = solve_decision(problem, states, solver='milp')

        assert a.action == b.action
        assert a.expected_cost == pytest.approx(b.expected_cost)

    def test_milp_tie_breaking(self):
        """MILP backend also prefers the first-listed action on ties."""
        assert solve_decision(make_problem(('B', 'A')), [0, 10], solver='milp').action.name == 'B'

    def test_solver_failure_is_reported(self, monkeypatch):
        """A failed solve raises instead of returning a cost."""
        def failing_milp(**kwargs):
            return SimpleNamespace(success=False, status=2, message='infeasible', x=None)

        monkeypatch.setattr(bayesvoi.optimisation, 'milp', failing_milp)
        with pytest.raises(SolverError):
            solve_decision(make_problem(), [1, 2], solver='milp')

    def test_unknown_solver(self):
        """Only known backends are accepted."""
        with pytest.raises(InvalidParameterError):
            solve_decision(make_problem(), [1], solver='gurobi')


class TestDecisionProperties:
    """Structural properties on the ventilation problem."""

    @pytest.mark.parametrize('occupancy', [0, 5, 20, 30, 45, 80])
    def test_invariant_to_constant_shift(self, occupancy):
        """Adding a constant to every action cost does not change the choice."""
        base = VentilationProblem()
        shifted = VentilationProblem([
            type(a)(a.name, a.cost + 100.0, a.ventilation_rate) for a in base.actions
        ])

        r_base = solve_decision(base, [occupancy])
        r_shift = solve_decision(shifted, [occupancy])

        assert r_base.action.name == r_shift.action.name
        assert r_shift.expected_cost == pytest.approx(r_base.expected_cost + 100.0)

    @pytest.mark.parametrize('occupancy', [10, 30, 50])
    def test_costlier_ventilation_lowers_choice(self, occupancy):
        """Scaling running costs up moves the optimum to cheaper settings."""
        base = VentilationProblem()
        chosen_costs = []
        for mult in [0.1, 0.25, 0.5, 1.0, 2.0, 4.0, 10.0]:
            result = solve_decision(base.scaled(mult), [occupancy])
            chosen_costs.append(base.get_action(result.action.name).cost)

        assert all(a >= b for a, b in zip(chosen_costs, chosen_costs[1:]))
