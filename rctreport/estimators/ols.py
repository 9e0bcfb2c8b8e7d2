from __future__ import annotations

import logging

import numpy as np
import pandas as pd
import statsmodels.formula.api as smf

from .._exceptions import EstimationError
from ..variables import VariableSpec

logger = logging.getLogger(__name__)


def quote(column: str) -> str:
    """Patsy-quoted reference to ``column``; also the name of its fitted parameter."""
    return f"Q({column!r})"


def _is_factor(spec: VariableSpec, data: pd.DataFrame, column: str) -> bool:
    return column in spec.covariates and spec.is_categorical(column, data[column])


def formula_term(spec: VariableSpec, data: pd.DataFrame, column: str) -> str:
    """Right-hand-side term for ``column``: categoricals enter as indicator sets."""
    if _is_factor(spec, data, column):
        return f"C({quote(column)})"
    return quote(column)


def _prepare(complete: pd.DataFrame, spec: VariableSpec, columns: list[str]) -> pd.DataFrame:
    """Booleans outside the categorical covariates become 0/1; unused categories are dropped."""
    for col in columns:
        values = complete[col]
        if isinstance(values.dtype, pd.CategoricalDtype):
            complete[col] = values.cat.remove_unused_categories()
        elif pd.api.types.is_bool_dtype(values) and not _is_factor(spec, complete, col):
            complete[col] = values.astype(int)
    return complete


def ols_model(
    data: pd.DataFrame,
    outcome: str,
    regressors: list[str],
    spec: VariableSpec,
    label: str,
):
    """
    Build an unfitted statsmodels OLS model on the complete cases of
    ``[outcome, *regressors]`` after checking the design can be estimated.

    Raises
    ------
    EstimationError
        If there are no more complete observations than regressors
        (intercept included), or the design matrix is rank deficient.
    """
    columns = [outcome, *regressors]
    complete = data.dropna(subset=columns)
    if complete.empty:
        raise EstimationError(f"{label}: no complete observations of {columns}.")
    complete = _prepare(complete.loc[:, columns].copy(), spec, columns)

    rhs = " + ".join(formula_term(spec, complete, c) for c in regressors)
    model = smf.ols(f"{quote(outcome)} ~ {rhs}", data=complete)

    n, p = model.exog.shape
    if n <= p:
        raise EstimationError(
            f"{label}: {n} complete observations for {p} regressors "
            f"(intercept included). Need more observations than regressors."
        )
    rank = int(np.linalg.matrix_rank(model.exog))
    if rank < p:
        raise EstimationError(
            f"{label}: design matrix is rank deficient (rank {rank} < {p} regressors). "
            f"A regressor is constant or collinear with others after dropping "
            f"incomplete rows."
        )

    logger.debug("%s: %s (n=%d, p=%d)", label, model.formula, n, p)
    return model


def check_finite_se(result, column: str, label: str) -> None:
    se = float(result.bse[quote(column)])
    if not np.isfinite(se) or se <= 0:
        raise EstimationError(
            f"{label}: standard error of '{column}' is {se}. "
            f"The fit is degenerate (perfect fit or observations with leverage 1)."
        )
