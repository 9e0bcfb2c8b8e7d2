import math

import numpy as np
import pandas as pd
import pytest

from rctreport import DEFAULT_SPEC, RCTEstimator, VariableSpec, check_balance
from rctreport._exceptions import EstimationError, SchemaError


BARE_SPEC = VariableSpec(treatment="w", outcome="y")


def make_six():
    return pd.DataFrame({"w": [1, 1, 1, 0, 0, 0], "y": [1, 1, 0, 0, 0, 1]})


def make_heteroskedastic(n=2_000, seed=7):
    """Continuous outcome whose noise is four times larger among treated units."""
    rng = np.random.default_rng(seed)
    w = rng.integers(0, 2, size=n)
    x = rng.normal(size=n)
    y = 1.0 * w + 0.5 * x + rng.normal(size=n) * (1 + 3 * w)
    return pd.DataFrame({"w": w, "y": y, "x": x})


class TestSixRowExample:
    def test_group_mean_difference(self):
        effects = RCTEstimator(BARE_SPEC).fit(make_six())
        assert effects.difference_in_means.estimate == pytest.approx(2 / 3 - 1 / 3, abs=1e-9)

    def test_ols_coefficient_matches(self):
        effects = RCTEstimator(BARE_SPEC).fit(make_six())
        assert abs(effects["ols"].estimate - 1 / 3) < 1e-9
        assert effects["ols"].n_obs == 6
        assert effects["ols"].df_resid == 4


class TestRCTEstimator:
    def test_produces_four_estimates_in_order(self, trial):
        effects = RCTEstimator(DEFAULT_SPEC).fit(trial)
        assert [e.key for e in effects.estimates] == ["diff_means", "ols", "ols_robust", "ols_adjusted"]
        assert effects.errors == {}

    def test_naive_and_robust_point_estimates_identical(self, trial):
        effects = RCTEstimator(DEFAULT_SPEC).fit(trial)
        assert effects["ols"].estimate == effects["ols_robust"].estimate

    def test_difference_in_means_equals_ols(self, trial):
        effects = RCTEstimator(DEFAULT_SPEC).fit(trial)
        assert effects.difference_in_means.estimate == pytest.approx(effects["ols"].estimate, abs=1e-9)

    def test_standard_errors_positive_and_finite(self, trial):
        effects = RCTEstimator(DEFAULT_SPEC).fit(trial)
        for est in effects.regression_estimates:
            assert est.std_err > 0
            assert math.isfinite(est.std_err)
            assert 0 <= est.pvalue <= 1

    def test_robust_se_differs_under_heteroskedasticity(self):
        spec = VariableSpec(treatment="w", outcome="y", covariates=("x",))
        effects = RCTEstimator(spec).fit(make_heteroskedastic())
        assert effects["ols_robust"].std_err != effects["ols"].std_err
        assert effects["ols_robust"].pvalue != effects["ols"].pvalue

    def test_recovers_true_effect(self):
        spec = VariableSpec(treatment="w", outcome="y", covariates=("x",))
        effects = RCTEstimator(spec).fit(make_heteroskedastic())
        assert abs(effects["ols_adjusted"].estimate - 1.0) < 0.3

    def test_adjusted_estimate_differs_from_unadjusted(self, trial):
        effects = RCTEstimator(DEFAULT_SPEC).fit(trial)
        assert effects["ols_adjusted"].estimate != effects["ols"].estimate

    def test_confidence_interval_uses_normal_approximation(self, trial):
        effects = RCTEstimator(DEFAULT_SPEC).fit(trial)
        for est in effects.regression_estimates:
            lo, hi = est.conf_int
            assert lo == pytest.approx(est.estimate - 1.96 * est.std_err)
            assert hi == pytest.approx(est.estimate + 1.96 * est.std_err)

    def test_degrees_of_freedom(self):
        spec = VariableSpec(treatment="w", outcome="y", covariates=("x",))
        df = make_heteroskedastic(n=500)
        effects = RCTEstimator(spec).fit(df)
        assert effects["ols"].df_resid == 500 - 2
        assert effects["ols_adjusted"].df_resid == 500 - 3

    def test_adjusted_model_uses_complete_cases(self, trial):
        effects = RCTEstimator(DEFAULT_SPEC).fit(trial)
        complete = trial.dropna(subset=DEFAULT_SPEC.columns)
        assert effects["ols_adjusted"].n_obs == len(complete)
        assert effects["ols"].n_obs == len(trial)

    def test_difference_in_means_is_descriptive(self, trial):
        dm = RCTEstimator(DEFAULT_SPEC).fit(trial).difference_in_means
        assert dm.std_err is None and dm.pvalue is None and dm.conf_int is None
        assert not dm.is_regression

    def test_statsmodels_result_exposed(self, trial):
        effects = RCTEstimator(DEFAULT_SPEC).fit(trial)
        assert effects.statsmodels_result("ols_robust").cov_type == "HC2"
        assert effects.statsmodels_result("ols").cov_type == "nonrobust"
        with pytest.raises(KeyError):
            effects.statsmodels_result("diff_means")

    def test_summary_and_executive_summary_run(self, trial):
        effects = RCTEstimator(DEFAULT_SPEC).fit(trial)
        assert "RCT Treatment Effects" in effects.summary()
        assert "Executive Summary" in effects.executive_summary()

    def test_assumptions_present(self, trial):
        names = [a.name for a in RCTEstimator(DEFAULT_SPEC).fit(trial).assumptions]
        assert any("Random assignment" in n for n in names)
        assert any("SUTVA" in n for n in names)


class TestColumnHandling:
    def test_non_identifier_column_names(self, trial):
        df = trial.rename(columns={"w": "got welfare", "y": "too much", "age": "age-group"})
        spec = VariableSpec(
            treatment="got welfare", outcome="too much",
            covariates=("age-group", "income", "sex"), categorical=("sex",),
        )

        effects = RCTEstimator(spec).fit(df)
        plain = RCTEstimator(
            VariableSpec(treatment="w", outcome="y", covariates=("age", "income", "sex"),
                         categorical=("sex",))
        ).fit(trial)

        assert effects.errors == {}
        assert effects["ols"].estimate == pytest.approx(plain["ols"].estimate)
        assert effects["ols_adjusted"].estimate == pytest.approx(plain["ols_adjusted"].estimate)

    def test_non_identifier_names_in_balance(self, trial):
        df = trial.rename(columns={"w": "got welfare", "marital": "marital status"})
        spec = VariableSpec(
            treatment="got welfare", outcome="y", covariates=("age", "marital status"),
        )
        balance = check_balance(df, spec)

        assert balance["marital status"].kind == "categorical"
        assert balance.joint_pvalue is not None

    def test_unused_categories_dropped(self, trial):
        trial["grp"] = pd.Categorical(
            np.where(trial["educ"] > 14, "a", "b"), categories=["a", "b", "c"]
        )
        spec = VariableSpec(treatment="w", outcome="y", covariates=("age", "grp"))

        effects = RCTEstimator(spec).fit(trial)

        assert effects.errors == {}
        assert "ols_adjusted" in effects
        assert [lvl.level for lvl in check_balance(trial, spec)["grp"].levels] == ["a", "b"]

    def test_boolean_treatment_and_outcome(self):
        df = make_six().astype(bool)
        effects = RCTEstimator(BARE_SPEC).fit(df)

        assert effects.difference_in_means.estimate == pytest.approx(1 / 3, abs=1e-9)
        assert effects["ols_robust"].estimate == pytest.approx(1 / 3, abs=1e-9)


class TestEstimationErrors:
    def test_no_treated_units_raises(self):
        df = pd.DataFrame({"w": [0, 0, 0, 0], "y": [1, 0, 1, 0]})
        with pytest.raises(EstimationError, match="no variance"):
            RCTEstimator(BARE_SPEC).fit(df)

    def test_constant_treatment_raises_even_when_lenient(self):
        df = pd.DataFrame({"w": [1] * 6, "y": [1, 0, 1, 0, 1, 1]})
        with pytest.raises(EstimationError):
            RCTEstimator(BARE_SPEC).fit(df, strict=False)

    def test_treated_only_missing_outcome_raises(self):
        df = pd.DataFrame({"w": [1, 1, 0, 0], "y": [np.nan, np.nan, 1, 0]})
        with pytest.raises(EstimationError):
            RCTEstimator(BARE_SPEC).fit(df)

    def test_too_few_observations_raises(self):
        df = pd.DataFrame({"w": [1, 0], "y": [1, 0]})
        with pytest.raises(EstimationError, match="regressors"):
            RCTEstimator(BARE_SPEC).fit(df)

    def test_rank_deficient_adjusted_model_strict(self, trial):
        trial["const"] = 5.0
        spec = VariableSpec(treatment="w", outcome="y", covariates=("age", "const"))
        with pytest.raises(EstimationError, match="rank deficient"):
            RCTEstimator(spec).fit(trial)

    def test_rank_deficient_adjusted_model_lenient(self, trial):
        trial["const"] = 5.0
        spec = VariableSpec(treatment="w", outcome="y", covariates=("age", "const"))
        effects = RCTEstimator(spec).fit(trial, strict=False)

        assert "ols_adjusted" in effects.errors
        assert "ols_adjusted" not in effects
        assert [e.key for e in effects.estimates] == ["diff_means", "ols", "ols_robust"]
        with pytest.raises(KeyError, match="could not be estimated"):
            effects["ols_adjusted"]

    def test_missing_column_raises(self, trial):
        with pytest.raises(SchemaError):
            RCTEstimator(DEFAULT_SPEC).fit(trial.drop(columns=["age"]))
