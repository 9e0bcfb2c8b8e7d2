"""
Covariate balance between treatment arms.

Each covariate is summarised on its own non-missing rows, so a covariate
with missing values does not shrink the sample used for any other.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd
from scipy import stats

from ._exceptions import EstimationError
from .estimators.ols import ols_model
from .variables import VariableSpec

logger = logging.getLogger(__name__)

WELCH_T_TEST = "Welch t-test"
CHI_SQUARE_TEST = "Pearson chi-square"


@dataclass(frozen=True)
class LevelCount:
    """Count and percentage of one categorical level within each arm."""

    level: object
    n_control: int
    pct_control: float
    n_treated: int
    pct_treated: float


@dataclass(frozen=True)
class BalanceRow:
    """
    Balance summary for a single covariate.

    Numeric covariates carry group means and standard deviations;
    categorical covariates carry one ``LevelCount`` per observed level.
    The unused fields are ``None`` / empty.
    """

    covariate: str
    kind: str
    """``"numeric"`` or ``"categorical"``."""

    n_control: int
    n_treated: int
    test: str
    pvalue: float
    """Two-sample comparison p-value; NaN when the test is undefined."""

    mean_control: float | None = None
    sd_control: float | None = None
    mean_treated: float | None = None
    sd_treated: float | None = None
    levels: tuple[LevelCount, ...] = ()

    @property
    def n_obs(self) -> int:
        return self.n_control + self.n_treated


class BalanceTable:
    """
    Ordered balance rows, one per covariate in specification order.

    Obtain via ``check_balance(data, spec)``.
    """

    def __init__(
        self,
        rows: list[BalanceRow],
        treatment: str,
        joint_pvalue: float | None = None,
    ) -> None:
        self._rows = rows
        self._treatment = treatment
        self._joint_pvalue = joint_pvalue

    @property
    def rows(self) -> list[BalanceRow]:
        return list(self._rows)

    @property
    def joint_pvalue(self) -> float | None:
        """
        p-value of the overall F-test from regressing treatment on all
        covariates. Small values suggest the arms differ systematically.
        ``None`` when the regression could not be estimated.
        """
        return self._joint_pvalue

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self):
        return iter(self._rows)

    def __getitem__(self, covariate: str) -> BalanceRow:
        for row in self._rows:
            if row.covariate == covariate:
                return row
        raise KeyError(covariate)

    def to_frame(self) -> pd.DataFrame:
        """One row per covariate with counts, numeric summaries and p-values."""
        records = [
            {
                "covariate": r.covariate,
                "kind": r.kind,
                "n_control": r.n_control,
                "n_treated": r.n_treated,
                "mean_control": r.mean_control,
                "sd_control": r.sd_control,
                "mean_treated": r.mean_treated,
                "sd_treated": r.sd_treated,
                "test": r.test,
                "pvalue": r.pvalue,
            }
            for r in self._rows
        ]
        return pd.DataFrame.from_records(records)

    def summary(self) -> str:
        lines = [
            "",
            f"Covariate Balance by {self._treatment}",
            "─" * 50,
        ]
        for r in self._rows:
            lines.append(
                f"  {r.covariate:<16} {r.kind:<12} n = {r.n_obs:>6}   p = {r.pvalue:>7.4f}"
            )
        if self._joint_pvalue is not None:
            lines += ["", f"  Joint orthogonality F-test   p = {self._joint_pvalue:.4f}"]
        lines.append("")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return self.summary()


def _numeric_row(covariate: str, control: pd.Series, treated: pd.Series) -> BalanceRow:
    if len(control) >= 2 and len(treated) >= 2:
        pvalue = float(stats.ttest_ind(treated, control, equal_var=False).pvalue)
    else:
        pvalue = float("nan")

    return BalanceRow(
        covariate=covariate,
        kind="numeric",
        n_control=len(control),
        n_treated=len(treated),
        test=WELCH_T_TEST,
        pvalue=pvalue,
        mean_control=float(control.mean()) if len(control) else None,
        sd_control=float(control.std()) if len(control) else None,
        mean_treated=float(treated.mean()) if len(treated) else None,
        sd_treated=float(treated.std()) if len(treated) else None,
    )


def _categorical_row(covariate: str, values: pd.Series, group: pd.Series) -> BalanceRow:
    if isinstance(values.dtype, pd.CategoricalDtype):
        values = values.cat.remove_unused_categories()
    counts = pd.crosstab(values, group).reindex(columns=[0, 1], fill_value=0)
    totals = counts.sum(axis=0)
    n_control, n_treated = int(totals[0]), int(totals[1])

    levels = tuple(
        LevelCount(
            level=level,
            n_control=int(row[0]),
            pct_control=100.0 * row[0] / n_control if n_control else float("nan"),
            n_treated=int(row[1]),
            pct_treated=100.0 * row[1] / n_treated if n_treated else float("nan"),
        )
        for level, row in counts.iterrows()
    )

    if len(levels) >= 2 and n_control and n_treated:
        pvalue = float(stats.chi2_contingency(counts.to_numpy()).pvalue)
    else:
        pvalue = float("nan")

    return BalanceRow(
        covariate=covariate,
        kind="categorical",
        n_control=n_control,
        n_treated=n_treated,
        test=CHI_SQUARE_TEST,
        pvalue=pvalue,
        levels=levels,
    )


def _joint_orthogonality(data: pd.DataFrame, spec: VariableSpec) -> float | None:
    """Overall F-test p-value of ``treatment ~ covariates``."""
    if not spec.covariates:
        return None
    try:
        model = ols_model(
            data, spec.treatment, list(spec.covariates), spec, "Joint orthogonality test"
        )
    except EstimationError as exc:
        logger.warning("Skipping joint orthogonality test: %s", exc)
        return None
    pvalue = float(model.fit().f_pvalue)
    return pvalue if np.isfinite(pvalue) else None


def check_balance(data: pd.DataFrame, spec: VariableSpec) -> BalanceTable:
    """
    Compare every covariate between treated and control units.

    Numeric covariates get group means, standard deviations and a Welch
    t-test; categorical covariates get per-level counts and percentages
    and a chi-square test of independence. Rows missing the covariate (or
    the treatment) are dropped for that covariate only.

    Parameters
    ----------
    data : pd.DataFrame
        Table holding the treatment and every covariate in ``spec``,
        typically ``select_variables(...).data``.
    spec : VariableSpec
        Variable roles; row order of the result follows ``spec.covariates``.
    """
    T = spec.treatment
    rows = []
    for covariate in spec.covariates:
        sub = data[[T, covariate]].dropna()
        group = sub[T].astype(int)
        values = sub[covariate]

        if spec.is_categorical(covariate, data[covariate]):
            row = _categorical_row(covariate, values, group)
        else:
            row = _numeric_row(covariate, values[group == 0], values[group == 1])

        logger.debug(
            "Balance %s: n_control=%d n_treated=%d p=%.4f",
            covariate, row.n_control, row.n_treated, row.pvalue,
        )
        rows.append(row)

    return BalanceTable(rows, T, _joint_orthogonality(data, spec))
