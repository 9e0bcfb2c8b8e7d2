from __future__ import annotations

import logging
from dataclasses import dataclass

import pandas as pd

from .._assumptions import RCT_ASSUMPTIONS, Assumption
from .._exceptions import EstimationError, SchemaError
from ..variables import VariableSpec
from .ols import check_finite_se, ols_model, quote

logger = logging.getLogger(__name__)

# Normal-approximation critical value used for every confidence interval.
Z_95 = 1.96

DIFF_MEANS = "diff_means"
OLS = "ols"
OLS_ROBUST = "ols_robust"
OLS_ADJUSTED = "ols_adjusted"

MODEL_LABELS: dict[str, str] = {
    DIFF_MEANS: "Difference in means",
    OLS: "OLS",
    OLS_ROBUST: "OLS (HC2)",
    OLS_ADJUSTED: "OLS + covariates (HC2)",
}

ROBUST_COV_TYPE = "HC2"


@dataclass(frozen=True)
class EffectEstimate:
    """
    One treatment effect estimate.

    The difference in means is descriptive: its ``std_err``, ``pvalue``,
    ``conf_int`` and ``df_resid`` are ``None``.
    """

    key: str
    label: str
    estimate: float
    std_err: float | None = None
    pvalue: float | None = None
    conf_int: tuple[float, float] | None = None
    n_obs: int = 0
    df_resid: float | None = None

    @property
    def is_regression(self) -> bool:
        return self.std_err is not None


def _from_result(key: str, result, treatment: str) -> EffectEstimate:
    term = quote(treatment)
    estimate = float(result.params[term])
    se = float(result.bse[term])
    return EffectEstimate(
        key=key,
        label=MODEL_LABELS[key],
        estimate=estimate,
        std_err=se,
        pvalue=float(result.pvalues[term]),
        conf_int=(estimate - Z_95 * se, estimate + Z_95 * se),
        n_obs=int(result.nobs),
        df_resid=float(result.df_resid),
    )


class EffectsResult:
    """
    The four treatment effect estimates of an RCT analysis, in fixed order:
    difference in means, OLS, OLS with HC2 standard errors, and OLS with
    covariates and HC2 standard errors.

    The two unadjusted OLS estimates come from the same fit, so their point
    estimates are identical and only the standard errors differ.
    """

    def __init__(
        self,
        estimates: list[EffectEstimate],
        results: dict,
        errors: dict[str, str],
        spec: VariableSpec,
    ) -> None:
        self._estimates = estimates
        self._results = results
        self._errors = errors
        self._spec = spec

    @property
    def estimates(self) -> list[EffectEstimate]:
        """All successfully computed estimates, in model order."""
        return list(self._estimates)

    @property
    def spec(self) -> VariableSpec:
        return self._spec

    def __getitem__(self, key: str) -> EffectEstimate:
        for est in self._estimates:
            if est.key == key:
                return est
        if key in self._errors:
            raise KeyError(f"{key} could not be estimated: {self._errors[key]}")
        raise KeyError(key)

    def __contains__(self, key: str) -> bool:
        return any(est.key == key for est in self._estimates)

    @property
    def difference_in_means(self) -> EffectEstimate:
        """Mean outcome among treated minus mean outcome among controls."""
        return self[DIFF_MEANS]

    @property
    def regression_estimates(self) -> list[EffectEstimate]:
        """The OLS-based estimates, which carry standard errors and p-values."""
        return [est for est in self._estimates if est.is_regression]

    @property
    def errors(self) -> dict[str, str]:
        """Models that could not be estimated, mapped to the reason."""
        return dict(self._errors)

    def statsmodels_result(self, key: str):
        """The underlying statsmodels result for an OLS-based model, for full diagnostics."""
        if key not in self._results:
            raise KeyError(key)
        return self._results[key]

    @property
    def assumptions(self) -> list[Assumption]:
        """Modelling assumptions required for a causal interpretation."""
        return list(RCT_ASSUMPTIONS)

    def executive_summary(self) -> str:
        """Narrative explanation of the method, assumptions, and results."""
        from .._explain import explain_effects
        return explain_effects(self)

    def summary(self) -> str:
        """Concise tabular summary of all estimates and the assumptions they rest on."""
        T, Y = self._spec.treatment, self._spec.outcome
        lines = [
            "",
            f"RCT Treatment Effects: {T} → {Y}",
            f"  Estimand: ATE (average treatment effect)",
            "─" * 66,
            f"  {'Model':<24}{'Estimate':>10}{'Std. err':>10}{'p-value':>10}{'N':>8}",
        ]
        for est in self._estimates:
            se = f"{est.std_err:>10.4f}" if est.std_err is not None else f"{'—':>10}"
            p = f"{est.pvalue:>10.4f}" if est.pvalue is not None else f"{'—':>10}"
            lines.append(f"  {est.label:<24}{est.estimate:>10.4f}{se}{p}{est.n_obs:>8}")
        for key, reason in self._errors.items():
            lines.append(f"  {MODEL_LABELS[key]:<24}  not estimated: {reason}")
        lines += [
            "",
            f"  95% CI = estimate ± {Z_95} × SE",
            "",
            "  Assumptions",
            "  " + "┄" * 64,
        ]
        for a in RCT_ASSUMPTIONS:
            lines.append(f"  {a.fmt_tag()}  {a.name}")
        lines.append("")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return self.summary()


class RCTEstimator:
    """
    Treatment effect estimator for a randomized controlled trial.

    Produces four estimates of the Average Treatment Effect (ATE):

    1. the difference in mean outcomes between treated and control units;
    2. OLS of outcome on treatment with classical standard errors;
    3. the same fit with HC2 heteroskedasticity-robust standard errors;
    4. OLS of outcome on treatment and all covariates, HC2 standard errors.

    Example::

        spec = VariableSpec(treatment="w", outcome="y", covariates=("age",))
        effects = RCTEstimator(spec).fit(df)
        print(effects.summary())
    """

    def __init__(self, spec: VariableSpec) -> None:
        self._spec = spec

    def _validate(self, data: pd.DataFrame) -> pd.DataFrame:
        """Return the rows with treatment and outcome observed, after sanity checks."""
        T, Y = self._spec.treatment, self._spec.outcome
        absent = [c for c in self._spec.columns if c not in data.columns]
        if absent:
            raise SchemaError(f"Columns {absent} not found in dataframe.")

        observed = data.dropna(subset=[T, Y])
        n_treated = int((observed[T] == 1).sum())
        n_control = int((observed[T] == 0).sum())
        if n_treated == 0 or n_control == 0:
            raise EstimationError(
                f"\nTreatment '{T}' has no variance: {n_treated} treated and "
                f"{n_control} control units with an observed outcome.\n"
                f"A treatment effect needs units in both arms."
            )
        return observed

    def _difference_in_means(self, observed: pd.DataFrame) -> EffectEstimate:
        T, Y = self._spec.treatment, self._spec.outcome
        means = observed.groupby(observed[T].astype(int))[Y].mean()
        return EffectEstimate(
            key=DIFF_MEANS,
            label=MODEL_LABELS[DIFF_MEANS],
            estimate=float(means.loc[1] - means.loc[0]),
            n_obs=len(observed),
        )

    def _unadjusted(self, observed: pd.DataFrame) -> dict:
        T, Y = self._spec.treatment, self._spec.outcome
        model = ols_model(observed, Y, [T], self._spec, MODEL_LABELS[OLS])
        naive = model.fit()
        robust = model.fit(cov_type=ROBUST_COV_TYPE, use_t=True)
        check_finite_se(naive, T, MODEL_LABELS[OLS])
        check_finite_se(robust, T, MODEL_LABELS[OLS_ROBUST])
        return {OLS: naive, OLS_ROBUST: robust}

    def _adjusted(self, observed: pd.DataFrame) -> dict:
        T, Y = self._spec.treatment, self._spec.outcome
        label = MODEL_LABELS[OLS_ADJUSTED]
        model = ols_model(observed, Y, [T, *self._spec.covariates], self._spec, label)
        robust = model.fit(cov_type=ROBUST_COV_TYPE, use_t=True)
        check_finite_se(robust, T, label)
        return {OLS_ADJUSTED: robust}

    def fit(self, data: pd.DataFrame, strict: bool = True) -> EffectsResult:
        """
        Estimate the ATE four ways.

        Parameters
        ----------
        data : pd.DataFrame
            Must contain the treatment, outcome and covariate columns of the
            spec. Rows missing the treatment or outcome are ignored; the
            covariate-adjusted model additionally drops rows missing any
            covariate.
        strict : bool
            If ``True`` (default), any model failure raises. If ``False``, a
            regression that cannot be estimated is recorded in
            ``EffectsResult.errors`` and the remaining estimates are kept.

        Raises
        ------
        EstimationError
            If there are no treated or no control units (always), or if a
            regression design is degenerate (strict mode).
        SchemaError
            If an analysis column is missing from the dataframe.
        """
        observed = self._validate(data)
        T = self._spec.treatment

        estimates = [self._difference_in_means(observed)]
        results: dict = {}
        errors: dict[str, str] = {}

        for keys, fit_models in [
            ((OLS, OLS_ROBUST), self._unadjusted),
            ((OLS_ADJUSTED,), self._adjusted),
        ]:
            try:
                fitted = fit_models(observed)
            except EstimationError as exc:
                if strict:
                    raise
                logger.warning("Skipping %s: %s", ", ".join(MODEL_LABELS[k] for k in keys), exc)
                errors.update({k: str(exc) for k in keys})
                continue
            for key, result in fitted.items():
                results[key] = result
                estimates.append(_from_result(key, result, T))

        for est in estimates:
            logger.info("%s: estimate=%.4f se=%s", est.label, est.estimate, est.std_err)
        return EffectsResult(estimates, results, errors, self._spec)
