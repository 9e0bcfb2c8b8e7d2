"""
End-to-end run: write a simulated survey extract to CSV, then load it,
check balance, estimate effects and write the report artifacts to
``results/``.

Equivalent command line::

    python -m rctreport welfare.csv --output-dir results
"""

import logging

import numpy as np
import pandas as pd

from rctreport import DEFAULT_SPEC, run_analysis

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

RNG = np.random.default_rng(1)
N = 2_000

w = RNG.integers(0, 2, size=N)
df = pd.DataFrame({
    "w":        w,
    "y":        (RNG.uniform(size=N) < 0.2 + 0.35 * w).astype(int),
    "age":      RNG.integers(18, 90, size=N).astype(float),
    "polviews": RNG.integers(1, 8, size=N).astype(float),
    "income":   RNG.integers(1, 13, size=N).astype(float),
    "educ":     RNG.integers(8, 21, size=N).astype(float),
    "marital":  RNG.integers(1, 6, size=N),
    "sex":      RNG.integers(1, 3, size=N),
})
df.loc[RNG.choice(N, size=50, replace=False), "income"] = np.nan
df.to_csv("welfare.csv", index=False)

print(DEFAULT_SPEC)

result = run_analysis("welfare.csv", output_dir="results")
print(result.summary())
print(result.artifacts)
