"""
End-to-end run: simulate -> reshape -> four independent methods -> tables and charts.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union
import matplotlib.pyplot as plt
import pandas as pd

from .analysis import athlete_summary, to_long
from .errors import ReliabilityError
from .methods import (coefficient_of_variation, model_statistic, sem_mdc,
                      smallest_worthwhile_change)
from .plotting import Plotter
from .simulation import SimulationConfig, simulate_trials

logger = logging.getLogger(__name__)


@dataclass
class Method:
    name: str
    compute: Callable
    plot: Callable


METHODS: List[Method] = [
    Method("sem_mdc", sem_mdc, Plotter.plot_sem_mdc),
    Method("cv", coefficient_of_variation, Plotter.plot_cv),
    Method("swc", smallest_worthwhile_change, Plotter.plot_swc),
    Method("model_statistic", model_statistic, Plotter.plot_model_statistic),
]


@dataclass
class MethodOutput:
    name: str
    result: object
    table: pd.DataFrame
    figures: Dict[str, plt.Figure] = field(default_factory=dict)


@dataclass
class ReportResult:
    """everything one run produced; methods that failed appear in `errors` only."""
    wide: pd.DataFrame
    long: pd.DataFrame
    summary: pd.DataFrame
    outputs: Dict[str, MethodOutput] = field(default_factory=dict)
    errors: Dict[str, ReliabilityError] = field(default_factory=dict)

    def table(self, name: str) -> pd.DataFrame:
        return self.outputs[name].table


def _run_method(method: Method, long: pd.DataFrame, summary: pd.DataFrame) -> MethodOutput:
    result = method.compute(long, summary)
    ax = method.plot(result)
    figures = {method.name: ax.figure}
    if method.name == "sem_mdc":
        hist_ax, qq_ax = Plotter.plot_residual_hist_and_qq(result.residuals)
        figures["sem_mdc_residual_hist"] = hist_ax.figure
        figures["sem_mdc_residual_qq"] = qq_ax.figure
    return MethodOutput(name=method.name, result=result, table=result.to_frame(),
                        figures=figures)


def _write(output: MethodOutput, output_dir: Path) -> None:
    output.table.to_csv(output_dir / f"{output.name}.csv", index=False)
    for fig_name, fig in output.figures.items():
        fig.savefig(output_dir / f"{fig_name}.png", dpi=120, bbox_inches="tight")
    logger.debug("wrote %s outputs to %s", output.name, output_dir)


def run_report(config: Optional[SimulationConfig] = None,
               output_dir: Optional[Union[str, Path]] = None,
               data: Optional[pd.DataFrame] = None,
               close_figures: bool = False) -> ReportResult:
    """
    Run the whole pipeline once.
      data: optional wide frame (Athlete, TimePoint, Trial_1..Trial_k) used
            instead of simulating from `config`.
      output_dir: when given, each method writes <name>.csv and <name>.png.
    A ReliabilityError in one method is logged and recorded; the others still run.
    """
    wide = simulate_trials(config) if data is None else data.copy()
    long = to_long(wide)
    summary = athlete_summary(long)

    out_path = None
    if output_dir is not None:
        out_path = Path(output_dir)
        out_path.mkdir(parents=True, exist_ok=True)

    report = ReportResult(wide=wide, long=long, summary=summary)
    for method in METHODS:
        try:
            output = _run_method(method, long, summary)
        except ReliabilityError as exc:
            logger.warning("%s failed: %s: %s", method.name, type(exc).__name__, exc)
            report.errors[method.name] = exc
            continue
        report.outputs[method.name] = output
        if out_path is not None:
            _write(output, out_path)
        if close_figures:
            for fig in output.figures.values():
                plt.close(fig)
    return report
