"""
Basic RCT example: effect of question wording on support for spending.

Half of respondents are asked about spending on "welfare" (w = 1), half
about "assistance to the poor" (w = 0). The outcome y is 1 if the
respondent says too much is being spent.

Treatment is randomly assigned, so the difference in means estimates the
ATE directly. Adding covariates should leave the estimate roughly where it
is while tightening the standard error.

The true causal effect is 0.3.
"""

import numpy as np
import pandas as pd

from rctreport import RCTEstimator, VariableSpec, check_balance

RNG = np.random.default_rng(0)
N = 3_000
TRUE_ATE = 0.3

w        = RNG.integers(0, 2, size=N)
polviews = RNG.integers(1, 8, size=N).astype(float)
age      = RNG.integers(18, 90, size=N).astype(float)
sex      = RNG.choice(["female", "male"], size=N)
p        = 0.1 + TRUE_ATE * w + 0.05 * (polviews - 1)
y        = (RNG.uniform(size=N) < p).astype(int)

df = pd.DataFrame({"w": w, "y": y, "polviews": polviews, "age": age, "sex": sex})

spec = VariableSpec(treatment="w", outcome="y", covariates=("polviews", "age", "sex"))

print(check_balance(df, spec))

effects = RCTEstimator(spec).fit(df)
print(effects.summary())
print(effects.executive_summary())
