"""
Four ways of deciding whether a change between two testing sessions is real.

Every function takes the long trial records (Athlete, TimePoint, Trial, Value)
and, optionally, a precomputed `athlete_summary`; thresholds are returned on
the result object rather than kept around between calls.

MDC convention: the 1.645 multiplier is the two-sided 90% critical value of
the standard normal, so MDC here is MDC90.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional
import numpy as np
import pandas as pd

from .analysis import (ATHLETE, TRIAL, VALUE, Modeler, athlete_summary, baseline,
                       group_mean, group_sd)
from .errors import DegenerateModel, InsufficientTrials, UndefinedRatio

logger = logging.getLogger(__name__)

Z_CRITICAL = 1.645   # two-sided 90%
SWC_FACTOR = 0.2


def minimal_detectable_change(sem, z: float = Z_CRITICAL):
    """MDC = SEM * z * sqrt(2); sqrt(2) accounts for the difference of two measurements."""
    return sem * z * np.sqrt(2)


def _summary_or_compute(long: pd.DataFrame, summary: Optional[pd.DataFrame]) -> pd.DataFrame:
    if summary is None:
        summary = athlete_summary(long)
    return summary.set_index(ATHLETE)


def _labelled(table: pd.DataFrame, *enum_cols: str) -> pd.DataFrame:
    """copy of `table` with enum columns replaced by their text labels."""
    out = table.rename_axis(ATHLETE).reset_index()
    for c in enum_cols:
        out[c] = out[c].map(lambda member: member.value)
    return out


class SEMClass(Enum):
    WITHIN_NORMAL_VARIABILITY = "Within Normal Variability"
    SIGNIFICANT_INCREASE = "Significant Increase"
    SIGNIFICANT_DECREASE = "Significant Decrease"


def classify_against_sem(change: float, sem: float) -> SEMClass:
    if change > sem:
        return SEMClass.SIGNIFICANT_INCREASE
    if change < -sem:
        return SEMClass.SIGNIFICANT_DECREASE
    return SEMClass.WITHIN_NORMAL_VARIABILITY


@dataclass
class SEMResult:
    """group-level SEM/MDC from the baseline ANOVA, plus per-athlete classification."""
    sem: float
    mdc: float
    mse_resid: float
    df_resid: float
    anova_table: pd.DataFrame
    residuals: np.ndarray
    table: pd.DataFrame

    def to_frame(self) -> pd.DataFrame:
        return _labelled(self.table, "Classification")


def sem_mdc(long: pd.DataFrame,
            summary: Optional[pd.DataFrame] = None,
            z: float = Z_CRITICAL) -> SEMResult:
    """
    Standard Error of Measurement from the residual mean square of a one-way
    ANOVA (athlete as fixed factor) on the baseline trials.
      SEM = sqrt(MSE_resid)
      MDC = SEM * z * sqrt(2)
    Change scores are classified against +/- SEM; MDC is reported alongside
    (MDC_Exceeded) without changing the classification.
    """
    base = baseline(long)
    counts = base.groupby(ATHLETE)[VALUE].count()
    if len(counts) < 2:
        raise DegenerateModel(f"ANOVA needs at least 2 athletes, got {len(counts)}")
    if (counts < 2).any():
        raise DegenerateModel(
            f"ANOVA needs at least 2 baseline trials per athlete, got {counts[counts < 2].to_dict()}")
    summary = _summary_or_compute(long, summary)

    mod = Modeler(base)
    anova = mod.fit_oneway_anova(VALUE, ATHLETE)
    df_resid = float(anova.loc["Residual", "df"])
    if df_resid <= 0:
        raise DegenerateModel("ANOVA residual has zero degrees of freedom")
    mse_resid = float(anova.loc["Residual", "mean_sq"])

    sem = float(np.sqrt(mse_resid))
    mdc = float(minimal_detectable_change(sem, z))
    logger.info("SEM = %.3f, MDC90 = %.3f (residual df = %g)", sem, mdc, df_resid)

    table = summary[["Change_Score"]].copy()
    table["SEM"] = sem
    table["MDC"] = mdc
    table["MDC_Exceeded"] = table["Change_Score"].abs() > mdc
    table["Classification"] = table["Change_Score"].map(lambda c: classify_against_sem(c, sem))

    return SEMResult(sem=sem, mdc=mdc, mse_resid=mse_resid, df_resid=df_resid,
                     anova_table=anova, residuals=np.asarray(mod.model_.resid),
                     table=table)


class CVClass(Enum):
    WITHIN_NORMAL_VARIABILITY = "Within Normal Variability"
    BEYOND_NORMAL_VARIABILITY = "Beyond Normal Variability"


def classify_against_cv(percent_change: float, cv_percent: float) -> CVClass:
    # strict: a 0% CV is exceeded by any non-zero change
    if abs(percent_change) > cv_percent:
        return CVClass.BEYOND_NORMAL_VARIABILITY
    return CVClass.WITHIN_NORMAL_VARIABILITY


@dataclass
class CVResult:
    table: pd.DataFrame
    typical_cv: float = field(default=float("nan"))

    def to_frame(self) -> pd.DataFrame:
        return _labelled(self.table, "Classification")


def coefficient_of_variation(long: pd.DataFrame,
                             summary: Optional[pd.DataFrame] = None) -> CVResult:
    """
    CV% = sd(baseline trials, ddof=1) / mean(baseline trials) * 100, per athlete,
    compared with that athlete's |Percent_Change|.
    """
    base = baseline(long)
    means = group_mean(base)
    sds = group_sd(base)
    bad = means[means <= 0]
    if not bad.empty:
        raise UndefinedRatio(f"CV% is undefined for non-positive baseline means: {bad.to_dict()}")
    summary = _summary_or_compute(long, summary)

    cv = sds / means * 100
    table = pd.DataFrame({
        "Baseline_Mean": means,
        "Baseline_SD": sds,
        "CV_Percent": cv,
    })
    table = table.join(summary[["Change_Score", "Percent_Change"]], how="inner")
    table["Classification"] = [
        classify_against_cv(pc, c) for pc, c in zip(table["Percent_Change"], table["CV_Percent"])
    ]
    typical = float(cv.mean())
    logger.info("typical CV = %.2f%% across %d athletes", typical, len(cv))
    return CVResult(table=table, typical_cv=typical)


class SWCClass(Enum):
    MEANINGFUL_CHANGE = "Meaningful Change"
    TRIVIAL_CHANGE = "Trivial Change"


class SWCZone(Enum):
    """chart category once the typical-error bar is taken into account."""
    CLEAR = "Clear"
    UNCLEAR = "Unclear"
    TRIVIAL = "Trivial"


def typical_error(long: pd.DataFrame) -> float:
    """
    Group typical error from consecutive baseline trials:
    sd across athletes of each adjacent trial difference (1->2, 2->3, ...),
    averaged, divided by sqrt(2).
    Every athlete must have every baseline trial.
    """
    base = baseline(long)
    trials = base.pivot_table(index=ATHLETE, columns=TRIAL, values=VALUE).sort_index(axis=1)
    if trials.shape[1] < 2:
        raise InsufficientTrials("Typical error needs at least 2 baseline trials")
    if trials.shape[0] < 2:
        raise InsufficientTrials("Typical error needs at least 2 athletes")
    gaps = trials[trials.isna().any(axis=1)]
    if not gaps.empty:
        missing = {ath: [int(t) for t in row.index[row.isna()]] for ath, row in gaps.iterrows()}
        raise InsufficientTrials(f"Athletes missing baseline trials: {missing}")
    diffs = trials.diff(axis=1).iloc[:, 1:]
    pair_sds = diffs.std(ddof=1)
    if pair_sds.isna().any():
        raise InsufficientTrials("Not enough trial-to-trial differences to estimate typical error")
    return float(pair_sds.mean() / np.sqrt(2))


def _contacts_band(lower: float, upper: float, swc: float) -> bool:
    return lower <= swc and upper >= -swc


@dataclass
class SWCResult:
    typical_error: float
    table: pd.DataFrame

    def to_frame(self) -> pd.DataFrame:
        return _labelled(self.table, "Classification", "Zone")


def smallest_worthwhile_change(long: pd.DataFrame,
                               summary: Optional[pd.DataFrame] = None,
                               factor: float = SWC_FACTOR) -> SWCResult:
    """
    SWC_athlete = factor * sd(all of the athlete's trials, both sessions).
    |Change_Score| > SWC -> Meaningful. The typical error bar
    (Change_Score +/- TE) only moves athletes whose bar touches the SWC band
    into the Unclear zone; it does not alter SWC itself.
    """
    sds = group_sd(long)
    te = typical_error(long)
    summary = _summary_or_compute(long, summary)

    table = summary[["Change_Score"]].join(sds.rename("SD_All"), how="inner")
    table["SWC"] = factor * table["SD_All"]
    table["Upper_Range"] = table["Change_Score"] + te
    table["Lower_Range"] = table["Change_Score"] - te
    table["Line_Contacts_SWC"] = [
        _contacts_band(lo, hi, s)
        for lo, hi, s in zip(table["Lower_Range"], table["Upper_Range"], table["SWC"])
    ]
    table["Classification"] = [
        SWCClass.MEANINGFUL_CHANGE if abs(c) > s else SWCClass.TRIVIAL_CHANGE
        for c, s in zip(table["Change_Score"], table["SWC"])
    ]

    def zone(row) -> SWCZone:
        if row["Classification"] is SWCClass.TRIVIAL_CHANGE:
            return SWCZone.TRIVIAL
        return SWCZone.UNCLEAR if row["Line_Contacts_SWC"] else SWCZone.CLEAR

    table["Zone"] = table.apply(zone, axis=1)
    logger.info("typical error = %.3f; %d of %d athletes show a meaningful change",
                te, int((table["Classification"] == SWCClass.MEANINGFUL_CHANGE).sum()), len(table))
    return SWCResult(typical_error=te, table=table)


class ModelClass(Enum):
    TRUE_DIFFERENCE = "True Difference"
    TRIVIAL_DIFFERENCE = "Trivial Difference"


class ChangeDirection(Enum):
    POSITIVE_CHANGE = "Positive Change"
    NEGATIVE_CHANGE = "Negative Change"
    TRIVIAL = "Trivial"


@dataclass
class ModelStatisticResult:
    table: pd.DataFrame

    def to_frame(self) -> pd.DataFrame:
        return _labelled(self.table, "Classification", "Direction")


def model_statistic(long: pd.DataFrame,
                    summary: Optional[pd.DataFrame] = None,
                    z: float = Z_CRITICAL) -> ModelStatisticResult:
    """
    Per-athlete error term: all of the athlete's trials (both sessions) are
    treated as one sample,
      SS = sum((x - mean)^2), df = n - 1, SEM_athlete = sqrt(SS / df)
    and |Mean_Diff| is compared with SEM_athlete.
    """
    grouped = long.groupby(ATHLETE)[VALUE]
    n = grouped.count()
    short = n[n < 2]
    if not short.empty:
        raise InsufficientTrials(f"Need at least 2 measurements per athlete, got {short.to_dict()}")
    summary = _summary_or_compute(long, summary)

    ss = grouped.apply(lambda s: float(((s - s.mean()) ** 2).sum()))
    table = pd.DataFrame({"N": n, "SS": ss, "DF": n - 1})
    table["MSE"] = table["SS"] / table["DF"]
    table["SEM_Athlete"] = np.sqrt(table["MSE"])
    table["MDC_Athlete"] = minimal_detectable_change(table["SEM_Athlete"], z)
    table = table.join(summary["Change_Score"].rename("Mean_Diff"), how="inner")

    table["Classification"] = [
        ModelClass.TRUE_DIFFERENCE if abs(d) > s else ModelClass.TRIVIAL_DIFFERENCE
        for d, s in zip(table["Mean_Diff"], table["SEM_Athlete"])
    ]
    table["Direction"] = [
        ChangeDirection.TRIVIAL if cls is ModelClass.TRIVIAL_DIFFERENCE
        else (ChangeDirection.POSITIVE_CHANGE if d > 0 else ChangeDirection.NEGATIVE_CHANGE)
        for cls, d in zip(table["Classification"], table["Mean_Diff"])
    ]
    logger.info("model statistic: %d of %d athletes show a true difference",
                int((table["Classification"] == ModelClass.TRUE_DIFFERENCE).sum()), len(table))
    return ModelStatisticResult(table=table)
