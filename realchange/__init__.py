# SPDX-FileCopyrightText: 2025-present realchange contributors
#
# SPDX-License-Identifier: MIT
"""
Project package for deciding whether a change between two testing sessions is real.
Provides simulation, reshaping, the SEM/MDC, CV%, SWC and model-statistic
methods, and plotting utilities.
"""

from .analysis import (Modeler, athlete_summary, baseline, group_mean, group_sd,
                       to_long, to_wide)
from .errors import (DegenerateModel, InsufficientTrials, MissingTimepoint,
                     ReliabilityError, UndefinedRatio)
from .methods import (ChangeDirection, CVClass, CVResult, ModelClass, ModelStatisticResult,
                      SEMClass, SEMResult, SWCClass, SWCResult, SWCZone,
                      coefficient_of_variation, minimal_detectable_change, model_statistic,
                      sem_mdc, smallest_worthwhile_change, typical_error)
from .plotting import Plotter
from .report import ReportResult, run_report
from .simulation import SimulationConfig, simulate_trials

__all__ = [
    "SimulationConfig", "simulate_trials",
    "to_long", "to_wide", "baseline", "athlete_summary", "group_mean", "group_sd",
    "Modeler",
    "sem_mdc", "coefficient_of_variation", "smallest_worthwhile_change",
    "typical_error", "model_statistic", "minimal_detectable_change",
    "SEMClass", "CVClass", "SWCClass", "SWCZone", "ModelClass", "ChangeDirection",
    "SEMResult", "CVResult", "SWCResult", "ModelStatisticResult",
    "ReliabilityError", "DegenerateModel", "UndefinedRatio",
    "InsufficientTrials", "MissingTimepoint",
    "Plotter",
    "run_report", "ReportResult",
    "load_example",
]


def load_example(seed: int = 42):
    """Simulated example dataset in long format."""
    return to_long(simulate_trials(SimulationConfig(random_seed=seed)))
