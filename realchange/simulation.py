from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Optional, Tuple
import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)


@dataclass
class SimulationConfig:
    """
    Configuration of the synthetic repeated-trials dataset.

    Every athlete is tested at each timepoint with `n_trials` trials; each
    trial value is drawn independently from
    N(trial_means[timepoint][trial], trial_sds[trial]).
    """
    n_athletes: int = 15
    timepoints: Tuple[int, ...] = (1, 2)
    n_trials: int = 3

    # one row per timepoint, one column per trial
    trial_means: Tuple[Tuple[float, ...], ...] = (
        (1500.0, 1510.0, 1490.0),
        (1550.0, 1560.0, 1540.0),
    )
    trial_sds: Tuple[float, ...] = (200.0, 125.0, 130.0)

    random_seed: Optional[int] = 42

    def validate(self) -> "SimulationConfig":
        if self.n_athletes < 1:
            raise ValueError(f"n_athletes must be positive, got {self.n_athletes}")
        if len(self.trial_means) != len(self.timepoints):
            raise ValueError("trial_means needs one row per timepoint")
        for row in self.trial_means:
            if len(row) != self.n_trials:
                raise ValueError("each trial_means row needs one mean per trial")
        if len(self.trial_sds) != self.n_trials:
            raise ValueError("trial_sds needs one standard deviation per trial")
        return self


def trial_columns(n_trials: int) -> list:
    return [f"Trial_{i}" for i in range(1, n_trials + 1)]


def simulate_trials(config: Optional[SimulationConfig] = None) -> pd.DataFrame:
    """
    Draw the wide dataset: one row per (Athlete, TimePoint), one column per trial.
    The same seed always produces the same frame.
    """
    config = (config or SimulationConfig()).validate()
    rng = np.random.default_rng(config.random_seed)
    cols = trial_columns(config.n_trials)

    rows = []
    for athlete in range(1, config.n_athletes + 1):
        for tp, means in zip(config.timepoints, config.trial_means):
            values = rng.normal(loc=means, scale=config.trial_sds)
            rows.append({"Athlete": athlete, "TimePoint": tp, **dict(zip(cols, values))})

    df = pd.DataFrame(rows, columns=["Athlete", "TimePoint", *cols])
    logger.debug("simulated %d athletes x %d timepoints x %d trials (seed=%s)",
                 config.n_athletes, len(config.timepoints), config.n_trials,
                 config.random_seed)
    return df
