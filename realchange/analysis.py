from __future__ import annotations
import logging
from typing import Iterable, List, Sequence, Union
import pandas as pd
import statsmodels.api as sm
import statsmodels.formula.api as smf

from .errors import InsufficientTrials, MissingTimepoint

logger = logging.getLogger(__name__)

ATHLETE = "Athlete"
TIMEPOINT = "TimePoint"
TRIAL = "Trial"
VALUE = "Value"
TRIAL_PREFIX = "Trial_"

BASELINE_TIMEPOINT = 1
FOLLOWUP_TIMEPOINT = 2


def _require_columns(df: pd.DataFrame, cols: Iterable[str]) -> None:
    missing = [c for c in cols if c not in df.columns]
    if missing:
        raise KeyError(f"Missing required columns: {missing}")


def _trial_cols(df: pd.DataFrame, prefix: str = TRIAL_PREFIX) -> List[str]:
    """Returns the wide trial columns (Trial_1, Trial_2, ...) ordered by trial number."""
    cols = [c for c in df.columns if str(c).startswith(prefix)]
    if not cols:
        raise ValueError(f"No trial columns with prefix {prefix!r}")
    return sorted(cols, key=lambda c: int(str(c)[len(prefix):]))


def to_long(wide: pd.DataFrame,
            athlete_col: str = ATHLETE,
            timepoint_col: str = TIMEPOINT,
            prefix: str = TRIAL_PREFIX) -> pd.DataFrame:
    """
    wide trial columns -> long trial records (Athlete, TimePoint, Trial, Value).
    Trial is the integer suffix of the wide column name.
    """
    _require_columns(wide, [athlete_col, timepoint_col])
    cols = _trial_cols(wide, prefix)
    long = wide.melt(id_vars=[athlete_col, timepoint_col], value_vars=cols,
                     var_name=TRIAL, value_name=VALUE)
    long[TRIAL] = long[TRIAL].str[len(prefix):].astype(int)
    long = long.dropna(subset=[VALUE])
    return long.sort_values([athlete_col, timepoint_col, TRIAL]).reset_index(drop=True)


def to_wide(long: pd.DataFrame,
            athlete_col: str = ATHLETE,
            timepoint_col: str = TIMEPOINT,
            prefix: str = TRIAL_PREFIX) -> pd.DataFrame:
    """inverse of `to_long`: one row per (athlete, timepoint), one column per trial."""
    _require_columns(long, [athlete_col, timepoint_col, TRIAL, VALUE])
    wide = long.pivot(index=[athlete_col, timepoint_col], columns=TRIAL, values=VALUE)
    wide = wide.sort_index(axis=1)
    wide.columns = [f"{prefix}{int(t)}" for t in wide.columns]
    return wide.reset_index()


def baseline(long: pd.DataFrame,
             timepoint_col: str = TIMEPOINT,
             timepoint: int = BASELINE_TIMEPOINT) -> pd.DataFrame:
    """the baseline subset: trial records of the first testing session."""
    _require_columns(long, [timepoint_col])
    return long[long[timepoint_col] == timepoint].copy()


def group_mean(long: pd.DataFrame,
               by: Union[str, Sequence[str]] = ATHLETE,
               value_col: str = VALUE) -> pd.Series:
    """mean of `value_col` per group; an empty frame has no groups to summarize."""
    if long.empty:
        raise InsufficientTrials("Cannot average an empty set of trials")
    return long.groupby(by)[value_col].mean()


def group_sd(long: pd.DataFrame,
             by: Union[str, Sequence[str]] = ATHLETE,
             value_col: str = VALUE,
             ddof: int = 1) -> pd.Series:
    """
    sample standard deviation of `value_col` per group.
    Groups holding fewer than ddof + 1 values raise InsufficientTrials
    instead of silently producing NaN.
    """
    if long.empty:
        raise InsufficientTrials("Cannot compute a standard deviation of an empty set of trials")
    grouped = long.groupby(by)[value_col]
    counts = grouped.count()
    short = counts[counts <= ddof]
    if not short.empty:
        raise InsufficientTrials(
            f"Need at least {ddof + 1} trials per group, got {short.to_dict()}")
    return grouped.std(ddof=ddof)


def athlete_summary(long: pd.DataFrame,
                    athlete_col: str = ATHLETE,
                    timepoint_col: str = TIMEPOINT,
                    value_col: str = VALUE,
                    pre: int = BASELINE_TIMEPOINT,
                    post: int = FOLLOWUP_TIMEPOINT) -> pd.DataFrame:
    """
    per-athlete session means and change scores:
      - TimePoint_1_Mean / TimePoint_2_Mean
      - Change_Score = post mean - pre mean
      - Percent_Change = Change_Score / pre mean * 100
    Every athlete must have trials at both sessions.
    """
    _require_columns(long, [athlete_col, timepoint_col, value_col])
    means = group_mean(long, [athlete_col, timepoint_col], value_col).unstack(timepoint_col)
    means = means.reindex(columns=[pre, post])

    incomplete = means[means.isna().any(axis=1)]
    if not incomplete.empty:
        lacking = {
            ath: [tp for tp in (pre, post) if pd.isna(row[tp])]
            for ath, row in incomplete.iterrows()
        }
        raise MissingTimepoint(f"Athletes missing a timepoint: {lacking}")

    out = pd.DataFrame({
        athlete_col: means.index,
        f"TimePoint_{pre}_Mean": means[pre].to_numpy(),
        f"TimePoint_{post}_Mean": means[post].to_numpy(),
    })
    out["Change_Score"] = out[f"TimePoint_{post}_Mean"] - out[f"TimePoint_{pre}_Mean"]
    out["Percent_Change"] = out["Change_Score"] / out[f"TimePoint_{pre}_Mean"] * 100
    return out.reset_index(drop=True)


class Modeler:
    """
    OLS / one-way ANOVA fitting (based on statsmodels).
    Example:
        mod = Modeler(baseline(long))
        table = mod.fit_oneway_anova("Value", "Athlete")
        mse_resid = table.loc["Residual", "mean_sq"]
    """

    def __init__(self, df: pd.DataFrame):
        self.df = df

    def fit_ols(self, formula: str):
        """OLS regression on the formula."""
        return smf.ols(formula=formula, data=self.df).fit()

    def fit_oneway_anova(self, value_col: str = VALUE, group_col: str = ATHLETE) -> pd.DataFrame:
        """
        one-way ANOVA with `group_col` as a fixed factor.
        Returns the statsmodels anova table (rows: factor, Residual; columns:
        df, sum_sq, mean_sq, F, PR(>F)). The fitted model is kept on
        `self.model_` for residual diagnostics.
        """
        self.model_ = self.fit_ols(f"{value_col} ~ C({group_col})")
        table = sm.stats.anova_lm(self.model_, typ=1)
        logger.debug("one-way ANOVA of %s by %s:\n%s", value_col, group_col, table)
        return table
