"""
Tests for expected value of perfect information.

Tests cover:
- Analytic EVPI on a two-state problem
- Non-negativity across priors and action sets
- Sensitivity analysis and information-source comparison
- Detection of inconsistent (negative) VoI
"""

import pytest
import numpy as np

import bayesvoi.voi
from bayesvoi import (
    Action,
    DecisionProblem,
    Poisson,
    NegativeBinomial,
    DeltaMass,
    Mixture,
    PointMasses,
    stratified_sample,
    expected_value_of_perfect_information,
    voi_sensitivity,
    compare_information_sources,
    InvalidParameterError,
    VoIError,
)
from bayesvoi.scenarios import VentilationProblem, VentilationAction


class TwoActionProblem(DecisionProblem):
    """A costs 2 * state, B costs a fixed 15."""

    def __init__(self):
        super().__init__([Action('A', 0.0), Action('B', 15.0)])

    def outcome_cost(self, action, state):
        return 2.0 * state if action.name == 'A' else 0.0


class TestAnalyticEVPI:
    """EVPI on a problem small enough to solve by hand."""

    def test_equal_weights(self):
        """Prior picks A (10 < 15); knowing the state saves 2.5."""
        result = expected_value_of_perfect_information(TwoActionProblem(), [0, 10])

        assert result.prior.action.name == 'A'
        assert result.prior_expected_cost == pytest.approx(10.0)
        assert result.posterior_expected_cost == pytest.approx(7.5)
        assert result.evpi == pytest.approx(2.5)
        assert result.posterior_actions == ['A', 'B']

    def test_explicit_weights(self):
        """Weights change both prior and posterior costs."""
        result = expected_value_of_perfect_information(
            TwoActionProblem(), [0, 10], weights=[0.9, 0.1]
        )

        assert result.prior_expected_cost == pytest.approx(2.0)
        assert result.posterior_expected_cost == pytest.approx(1.5)
        assert result.evpi == pytest.approx(0.5)

    def test_duplicates_collapse(self):
        """Repeated samples act as weights."""
        result = expected_value_of_perfect_information(TwoActionProblem(), [0, 0, 0, 10])

        assert len(result.states) == 2
        assert result.weights == pytest.approx([0.75, 0.25])
        assert result.n_samples == 4
        assert result.evpi == pytest.approx(0.25 * (20.0 - 15.0))

    def test_regret_averages_to_evpi(self):
        """EVPI is the weighted mean regret of the prior decision."""
        result = expected_value_of_perfect_information(TwoActionProblem(), [0, 3, 7, 10, 12])

        assert np.dot(result.weights, result.regret) == pytest.approx(result.evpi)
        assert np.all(result.regret >= 0)
        assert result.std_error >= 0

    def test_milp_backend(self):
        """MILP backend gives the same EVPI."""
        a = expected_value_of_perfect_information(TwoActionProblem(), [0, 4, 10], solver='enumerate')
        b = expected_value_of_perfect_information(TwoActionProblem(), [0, 4, 10], solver='milp')
        assert a.evpi == pytest.approx(b.evpi)

    def test_outputs(self):
        """Frequencies sum to one; table has one row per state."""
        result = expected_value_of_perfect_information(TwoActionProblem(), [0, 10, 10])

        freq = result.action_frequencies()
        assert sum(freq.values()) == pytest.approx(1.0)
        assert freq['B'] == pytest.approx(2 / 3)

        df = result.to_dataframe()
        assert list(df.columns) == ['state', 'weight', 'posterior_action', 'posterior_cost', 'regret']
        assert len(df) == 2

        summary = result.summary()
        assert summary['prior_action'] == result.prior.action.name

    def test_negative_voi_is_a_defect(self, monkeypatch):
        """A selector that maximises cost produces negative VoI, which is reported."""
        monkeypatch.setattr(
            bayesvoi.voi, 'select_action', lambda costs, solver='enumerate': int(np.argmax(costs))
        )
        with pytest.raises(VoIError):
            expected_value_of_perfect_information(TwoActionProblem(), [0, 10])


class TestNonNegativity:
    """EVPI >= 0 for any prior and action set."""

    @pytest.mark.parametrize('prior', [
        Poisson(5.0),
        Poisson(30.0),
        Poisson(70.0),
        NegativeBinomial(mean=30.0, dispersion=3.0),
        Mixture([Poisson(5.0), Poisson(45.0)], [0.4, 0.6]),
        PointMasses({0: 0.3, 25: 0.4, 60: 0.3}),
    ])
    def test_ventilation_priors(self, prior):
        """Non-negative for every prior on the ventilation problem."""
        samples = stratified_sample(prior, 300)
        result = expected_value_of_perfect_information(VentilationProblem(), samples)
        assert result.evpi >= 0.0
        assert result.posterior_expected_cost <= result.prior_expected_cost + 1e-9

    @pytest.mark.parametrize('seed', range(5))
    def test_random_action_sets(self, seed):
        """Non-negative for random action costs and ventilation rates."""
        rng = np.random.RandomState(seed)
        n_actions = rng.randint(1, 6)
        actions = [
            VentilationAction(f'a{i}', cost=float(rng.uniform(0, 100)),
                              ventilation_rate=float(rng.uniform(0, 12)))
            for i in range(n_actions)
        ]
        samples = stratified_sample(Poisson(float(rng.uniform(5, 60))), 200)
        result = expected_value_of_perfect_information(VentilationProblem(actions), samples)
        assert result.evpi >= 0.0

    def test_known_state_has_no_value(self):
        """With no uncertainty, information is worthless."""
        samples = stratified_sample(DeltaMass(30), 50)
        result = expected_value_of_perfect_information(VentilationProblem(), samples)
        assert result.evpi == pytest.approx(0.0, abs=1e-12)

    def test_single_action_has_no_value(self):
        """With nothing to choose, information is worthless."""
        problem = VentilationProblem([VentilationAction('only', 10.0, 2.0)])
        samples = stratified_sample(Poisson(30.0), 100)
        assert expected_value_of_perfect_information(problem, samples).evpi == pytest.approx(0.0)


class TestSensitivity:
    """Tests for voi_sensitivity."""

    def test_one_row_per_multiplier(self):
        """Rows follow the multipliers."""
        samples = stratified_sample(Poisson(30.0), 200)
        df = voi_sensitivity(VentilationProblem().scaled, samples, [0.5, 1.0, 2.0])

        assert list(df['multiplier']) == [0.5, 1.0, 2.0]
        assert (df['evpi'] >= 0).all()

    def test_expensive_ventilation(self):
        """At very high running costs the cheapest setting always wins."""
        samples = stratified_sample(Poisson(30.0), 200)
        df = voi_sensitivity(VentilationProblem().scaled, samples, [100.0])

        assert df.loc[0, 'prior_action'] == 'Poor'
        assert df.loc[0, 'evpi'] == pytest.approx(0.0, abs=1e-9)

    def test_rejects_negative_multiplier(self):
        """Costs cannot be scaled negative."""
        with pytest.raises(InvalidParameterError):
            voi_sensitivity(VentilationProblem().scaled, [30], [-1.0])

    def test_verbose_prints(self, capsys):
        """Verbose mode prints one line per multiplier."""
        voi_sensitivity(VentilationProblem().scaled, [20, 30, 40], [1.0, 2.0], verbose=True)
        out = capsys.readouterr().out
        assert out.count('evpi=') == 2


class TestInformationSources:
    """Tests for compare_information_sources."""

    def test_net_value(self):
        """Net value is EVPI minus source cost."""
        df = compare_information_sources(
            TwoActionProblem(), [0, 10], {'cheap': 1.0, 'dear': 5.0}
        )

        assert list(df['source']) == ['cheap', 'dear']
        assert df['evpi'].tolist() == pytest.approx([2.5, 2.5])
        assert df['net_value'].tolist() == pytest.approx([1.5, -2.5])
        assert df['worthwhile'].tolist() == [True, False]

    def test_rejects_negative_cost(self):
        """Source costs are non-negative."""
        with pytest.raises(InvalidParameterError):
            compare_information_sources(TwoActionProblem(), [0, 10], {'free_money': -1.0})
