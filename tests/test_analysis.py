"""
Unit tests for simulation, reshaping and the grouped aggregation helpers.
"""
import numpy as np
import pandas as pd
import pytest

from realchange import (InsufficientTrials, MissingTimepoint, Modeler, SimulationConfig,
                        athlete_summary, baseline, group_mean, group_sd, load_example,
                        simulate_trials, to_long, to_wide)

from conftest import make_long


class TestSimulation:
    """Synthetic dataset shape and determinism."""

    def test_default_shape(self):
        wide = simulate_trials()
        assert list(wide.columns) == ["Athlete", "TimePoint", "Trial_1", "Trial_2", "Trial_3"]
        assert len(wide) == 15 * 2
        assert set(wide["TimePoint"]) == {1, 2}
        assert wide["Athlete"].nunique() == 15

    def test_same_seed_same_data(self):
        a = simulate_trials(SimulationConfig(random_seed=7))
        b = simulate_trials(SimulationConfig(random_seed=7))
        pd.testing.assert_frame_equal(a, b)

    def test_different_seed_different_data(self):
        a = simulate_trials(SimulationConfig(random_seed=7))
        b = simulate_trials(SimulationConfig(random_seed=8))
        assert not np.allclose(a["Trial_1"], b["Trial_1"])

    def test_values_centred_near_1500(self):
        wide = simulate_trials(SimulationConfig(n_athletes=400, random_seed=1))
        assert wide["Trial_2"].mean() == pytest.approx(1535, abs=30)
        assert wide["Trial_1"].std() > wide["Trial_2"].std()

    def test_invalid_config(self):
        with pytest.raises(ValueError):
            simulate_trials(SimulationConfig(trial_sds=(1.0, 2.0)))
        with pytest.raises(ValueError):
            simulate_trials(SimulationConfig(n_athletes=0))

    def test_load_example(self):
        long = load_example()
        assert list(long.columns) == ["Athlete", "TimePoint", "Trial", "Value"]
        assert len(long) == 15 * 2 * 3


class TestReshape:
    """Wide <-> long conversion and the per-athlete summary."""

    def test_to_long_records(self, simulated_wide):
        long = to_long(simulated_wide)
        assert len(long) == len(simulated_wide) * 3
        assert sorted(long["Trial"].unique()) == [1, 2, 3]
        first = simulated_wide.iloc[0]
        rec = long[(long["Athlete"] == first["Athlete"])
                   & (long["TimePoint"] == first["TimePoint"])
                   & (long["Trial"] == 2)]
        assert rec["Value"].iloc[0] == first["Trial_2"]

    def test_round_trip_reproduces_wide(self, simulated_wide):
        back = to_wide(to_long(simulated_wide))
        pd.testing.assert_frame_equal(back, simulated_wide, check_dtype=False)

    def test_round_trip_change_score(self, simulated_wide):
        cols = ["Trial_1", "Trial_2", "Trial_3"]
        expected = (simulated_wide[simulated_wide["TimePoint"] == 2].set_index("Athlete")[cols].mean(axis=1)
                    - simulated_wide[simulated_wide["TimePoint"] == 1].set_index("Athlete")[cols].mean(axis=1))
        long = to_long(simulated_wide)
        original = athlete_summary(long)
        round_tripped = athlete_summary(to_long(to_wide(long)))
        pd.testing.assert_frame_equal(round_tripped, original, check_exact=True)
        np.testing.assert_allclose(original.set_index("Athlete")["Change_Score"].to_numpy(),
                                   expected.to_numpy(), rtol=1e-12)

    def test_missing_trial_columns(self):
        with pytest.raises(ValueError):
            to_long(pd.DataFrame({"Athlete": [1], "TimePoint": [1], "Value": [1.0]}))

    def test_missing_id_column(self):
        with pytest.raises(KeyError):
            to_long(pd.DataFrame({"Athlete": [1], "Trial_1": [1.0]}))

    def test_baseline_subset(self, simulated_long):
        base = baseline(simulated_long)
        assert set(base["TimePoint"]) == {1}
        assert len(base) == 15 * 3

    def test_change_score_is_exact_difference(self, simulated_long):
        s = athlete_summary(simulated_long)
        assert (s["Change_Score"] == s["TimePoint_2_Mean"] - s["TimePoint_1_Mean"]).all()

    def test_percent_change(self, two_athletes):
        s = athlete_summary(two_athletes).set_index("Athlete")
        assert s.loc[1, "Change_Score"] == pytest.approx(100.0)
        assert s.loc[1, "Percent_Change"] == pytest.approx(100.0 / 1500.0 * 100)

    def test_missing_timepoint(self):
        long = make_long({1: {1: [1, 2, 3], 2: [2, 3, 4]}, 2: {1: [1, 2, 3]}})
        with pytest.raises(MissingTimepoint, match="2"):
            athlete_summary(long)


class TestAggregation:
    """group_mean / group_sd with defined behaviour on degenerate groups."""

    def test_group_mean(self, two_athletes):
        means = group_mean(baseline(two_athletes))
        assert means.loc[1] == pytest.approx(1500.0)
        assert means.loc[2] == pytest.approx(1500.0)

    def test_group_sd_sample(self, two_athletes):
        sds = group_sd(baseline(two_athletes))
        assert sds.loc[1] == pytest.approx(20.0)
        assert sds.loc[2] == pytest.approx(200.0)

    def test_empty_raises(self):
        empty = make_long({})
        with pytest.raises(InsufficientTrials):
            group_mean(empty)
        with pytest.raises(InsufficientTrials):
            group_sd(empty)

    def test_singleton_group_raises(self):
        long = make_long({1: {1: [10.0]}, 2: {1: [10.0, 12.0]}})
        with pytest.raises(InsufficientTrials):
            group_sd(long)


class TestModeler:
    """statsmodels one-way ANOVA wrapper."""

    def test_residual_mean_square(self, two_athletes):
        table = Modeler(baseline(two_athletes)).fit_oneway_anova("Value", "Athlete")
        assert table.loc["Residual", "df"] == pytest.approx(4)
        assert table.loc["Residual", "mean_sq"] == pytest.approx(20200.0)

    def test_fit_ols_is_plain_least_squares(self, two_athletes):
        fit = Modeler(baseline(two_athletes)).fit_ols("Value ~ C(Athlete)")
        assert fit.df_resid == pytest.approx(4)
        assert fit.ssr == pytest.approx(80800.0)
        assert fit.cov_type == "nonrobust"
