from __future__ import annotations
from typing import Optional
import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import matplotlib.patches as mpatches
import statsmodels.api as sm

from .methods import (ChangeDirection, CVClass, CVResult, ModelStatisticResult, SEMClass,
                      SEMResult, SWCResult, SWCZone)

SEM_COLORS = {
    SEMClass.SIGNIFICANT_INCREASE: "green",
    SEMClass.SIGNIFICANT_DECREASE: "red",
    SEMClass.WITHIN_NORMAL_VARIABILITY: "grey",
}
CV_COLORS = {
    CVClass.BEYOND_NORMAL_VARIABILITY: "green",
    CVClass.WITHIN_NORMAL_VARIABILITY: "grey",
}
SWC_COLORS = {
    SWCZone.CLEAR: "green",
    SWCZone.UNCLEAR: "orange",
    SWCZone.TRIVIAL: "grey",
}
DIRECTION_COLORS = {
    ChangeDirection.POSITIVE_CHANGE: "green",
    ChangeDirection.NEGATIVE_CHANGE: "red",
    ChangeDirection.TRIVIAL: "grey",
}


def _athlete_axis(ax: plt.Axes, table: pd.DataFrame, ylabel: str,
                  title: Optional[str]) -> None:
    x = np.arange(len(table))
    ax.set_xticks(x)
    ax.set_xticklabels([str(a) for a in table.index])
    ax.axhline(0, color="black", linewidth=0.8)
    ax.set_xlabel("Athlete")
    ax.set_ylabel(ylabel)
    if title:
        ax.set_title(title)
    ax.grid(axis="y", alpha=0.3)


def _legend_from(ax: plt.Axes, colors: dict, present) -> None:
    """one legend entry per category actually drawn, in enum order."""
    present = set(present)
    handles = [mpatches.Patch(color=c) for k, c in colors.items() if k in present]
    labels = [k.value for k in colors if k in present]
    extra_h, extra_l = ax.get_legend_handles_labels()
    ax.legend(extra_h + handles, extra_l + labels, fontsize="small")


class Plotter:
    @staticmethod
    def plot_sem_mdc(result: SEMResult,
                     title: Optional[str] = "Change score vs SEM / MDC",
                     ax: Optional[plt.Axes] = None,
                     ylabel: str = "Change score"):
        """
        bar per athlete change score, coloured by classification; dashed lines
        at +/- SEM (the classification threshold), dotted lines at +/- MDC.
        """
        t = result.table
        if ax is None:
            fig, ax = plt.subplots(figsize=(10, 5))

        x = np.arange(len(t))
        ax.bar(x, t["Change_Score"], color=[SEM_COLORS[c] for c in t["Classification"]])
        ax.axhline(result.sem, color="blue", linestyle="--", linewidth=1.2,
                   label=f"+/- SEM = {result.sem:.1f}")
        ax.axhline(-result.sem, color="blue", linestyle="--", linewidth=1.2)
        ax.axhline(result.mdc, color="purple", linestyle=":", linewidth=1.5,
                   label=f"+/- MDC90 = {result.mdc:.1f}")
        ax.axhline(-result.mdc, color="purple", linestyle=":", linewidth=1.5)

        _athlete_axis(ax, t, ylabel, title)
        _legend_from(ax, SEM_COLORS, t["Classification"])
        return ax

    @staticmethod
    def plot_cv(result: CVResult,
                title: Optional[str] = "Percent change vs individual CV%",
                ax: Optional[plt.Axes] = None):
        """paired bars: |percent change| (coloured by classification) next to the athlete's own CV%."""
        t = result.table
        if ax is None:
            fig, ax = plt.subplots(figsize=(10, 5))

        x = np.arange(len(t))
        width = 0.4
        ax.bar(x - width / 2, t["Percent_Change"].abs(), width,
               color=[CV_COLORS[c] for c in t["Classification"]])
        ax.bar(x + width / 2, t["CV_Percent"], width, color="steelblue", alpha=0.6,
               label="Baseline CV%")
        if not np.isnan(result.typical_cv):
            ax.axhline(result.typical_cv, color="steelblue", linestyle="--", linewidth=1,
                       label=f"Typical CV = {result.typical_cv:.1f}%")

        _athlete_axis(ax, t, "Percent (%)", title)
        _legend_from(ax, CV_COLORS, t["Classification"])
        return ax

    @staticmethod
    def plot_swc(result: SWCResult,
                 title: Optional[str] = "Change score vs smallest worthwhile change",
                 ax: Optional[plt.Axes] = None,
                 ylabel: str = "Change score"):
        """
        change score +/- typical error per athlete over that athlete's SWC band.
        Points whose error bar touches the band are drawn orange (Unclear).
        """
        t = result.table
        if ax is None:
            fig, ax = plt.subplots(figsize=(10, 5))

        x = np.arange(len(t))
        # individual SWC band
        ax.bar(x, 2 * t["SWC"], bottom=-t["SWC"], width=0.6, color="lightgrey",
               alpha=0.7, label="+/- SWC")
        for xi, (_, row) in zip(x, t.iterrows()):
            ax.errorbar(xi, row["Change_Score"], yerr=result.typical_error, fmt="o",
                        color=SWC_COLORS[row["Zone"]], capsize=4)

        _athlete_axis(ax, t, ylabel, title)
        ax.text(0.01, 0.97, f"Typical error = {result.typical_error:.1f}",
                transform=ax.transAxes, va="top", fontsize="small")
        _legend_from(ax, SWC_COLORS, t["Zone"])
        return ax

    @staticmethod
    def plot_model_statistic(result: ModelStatisticResult,
                             title: Optional[str] = "Mean difference vs individual SEM",
                             ax: Optional[plt.Axes] = None,
                             ylabel: str = "Mean difference"):
        """bar per athlete mean difference, coloured by direction; whiskers at zero show +/- SEM_athlete."""
        t = result.table
        if ax is None:
            fig, ax = plt.subplots(figsize=(10, 5))

        x = np.arange(len(t))
        ax.bar(x, t["Mean_Diff"], color=[DIRECTION_COLORS[d] for d in t["Direction"]])
        ax.errorbar(x, np.zeros(len(t)), yerr=t["SEM_Athlete"], fmt="none",
                    ecolor="black", capsize=5, label="+/- individual SEM")

        _athlete_axis(ax, t, ylabel, title)
        _legend_from(ax, DIRECTION_COLORS, t["Direction"])
        return ax

    @staticmethod
    def plot_residual_hist_and_qq(residuals: np.ndarray,
                                  bins: int = 15,
                                  title_prefix: str = "Baseline ANOVA"):
        """
        histogram and QQ plot of the baseline ANOVA residuals; SEM assumes the
        within-athlete error is roughly normal.
        """
        fig1, ax1 = plt.subplots(figsize=(6, 4))
        ax1.hist(residuals, bins=bins, edgecolor="white")
        ax1.set_title(f"{title_prefix}: Residual histogram")
        ax1.set_xlabel("Residual")
        ax1.set_ylabel("Frequency")
        ax1.grid(True)

        fig2, ax2 = plt.subplots(figsize=(6, 4))
        sm.ProbPlot(residuals, fit=True).qqplot(ax=ax2, line="45")
        ax2.set_title(f"{title_prefix}: QQ plot")
        ax2.grid(True)
        return (ax1, ax2)
