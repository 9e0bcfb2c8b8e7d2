import matplotlib
import numpy as np
import pandas as pd
import pytest

matplotlib.use("Agg")


def make_trial(n=1_000, true_ate=0.15, seed=42):
    """
    Simulated welfare-wording experiment:
      w ~ Bernoulli(0.5)                      [randomised]
      y ~ Bernoulli(0.3 + true_ate * w + small covariate effects)
    Covariates mimic a general social survey extract, with a few missing values.
    """
    rng = np.random.default_rng(seed)
    w = rng.integers(0, 2, size=n)
    age = rng.integers(18, 90, size=n).astype(float)
    polviews = rng.integers(1, 8, size=n).astype(float)
    income = rng.integers(1, 13, size=n).astype(float)
    educ = rng.integers(8, 21, size=n).astype(float)
    marital = rng.choice(["married", "never married", "divorced", "widowed"], size=n)
    sex = rng.integers(1, 3, size=n)

    p = 0.3 + true_ate * w + 0.02 * (polviews - 4) + 0.005 * (income - 6)
    y = (rng.uniform(size=n) < np.clip(p, 0, 1)).astype(int)

    df = pd.DataFrame({
        "w": w, "y": y, "age": age, "polviews": polviews,
        "income": income, "educ": educ, "marital": marital, "sex": sex,
    })
    df.loc[rng.choice(n, size=20, replace=False), "age"] = np.nan
    df.loc[rng.choice(n, size=35, replace=False), "income"] = np.nan
    return df


@pytest.fixture
def trial():
    return make_trial()

