"""
Pytest configuration and fixtures.

Charts render off-screen; datasets are built from literal trial values so the
expected statistics can be checked by hand.
"""
import matplotlib
matplotlib.use("Agg")

import matplotlib.pyplot as plt
import pandas as pd
import pytest

from realchange import SimulationConfig, simulate_trials, to_long


def make_long(trials):
    """
    {athlete: {timepoint: [values...]}} -> long trial records.
    """
    rows = [
        {"Athlete": ath, "TimePoint": tp, "Trial": i, "Value": float(v)}
        for ath, sessions in trials.items()
        for tp, values in sessions.items()
        for i, v in enumerate(values, start=1)
    ]
    return pd.DataFrame(rows, columns=["Athlete", "TimePoint", "Trial", "Value"])


@pytest.fixture
def simulated_wide():
    return simulate_trials(SimulationConfig(random_seed=2024))


@pytest.fixture
def simulated_long(simulated_wide):
    return to_long(simulated_wide)


@pytest.fixture
def two_athletes():
    """
    Athlete 1: steady baseline (1500, 1520, 1480), follow-up mean 1600.
    Athlete 2: noisy baseline (1300, 1500, 1700), follow-up mean 1500.
    Pooled baseline residual MS = (800 + 80000) / 4 = 20200 -> SEM ~= 142.1.
    """
    return make_long({
        1: {1: [1500, 1520, 1480], 2: [1620, 1580, 1600]},
        2: {1: [1300, 1500, 1700], 2: [1450, 1500, 1550]},
    })


@pytest.fixture(autouse=True)
def _close_figures():
    yield
    plt.close("all")
