"""
Presentation of balance and effect results: tables, a coefficient plot,
and the artifact files written to the results directory.

Nothing here computes statistics; it only formats what the balance
checker and the estimator produced.
"""
from __future__ import annotations

import logging
from pathlib import Path

import matplotlib.pyplot as plt
import pandas as pd

from ._exceptions import OutputError
from .balance import BalanceTable
from .estimators.rct import Z_95, EffectsResult

logger = logging.getLogger(__name__)

BALANCE_TABLE_FILE = "balance_table.csv"
COMPARISON_TABLE_FILE = "model_comparison.csv"
COEFFICIENT_PLOT_FILE = "coefficient_plot.png"
SUMMARY_FILE = "summary.txt"


def _fmt(value: float | None, precision: int) -> str:
    if value is None or pd.isna(value):
        return "—"
    return f"{value:.{precision}f}"


def _fmt_p(p: float, precision: int) -> str:
    if pd.isna(p):
        return "—"
    floor = 10 ** -precision
    if p < floor:
        return f"<{floor:.{precision}f}"
    return f"{p:.{precision}f}"


def format_balance_table(balance: BalanceTable, precision: int = 3) -> pd.DataFrame:
    """
    Render the balance rows as a display table.

    Numeric covariates show ``mean (sd)`` per arm. Categorical covariates
    show a header row carrying the p-value, then one indented row per
    level showing ``n (pct%)`` per arm.
    """
    records = []
    for row in balance:
        if row.kind == "numeric":
            records.append({
                "Characteristic": row.covariate,
                "Control": f"{_fmt(row.mean_control, precision)} ({_fmt(row.sd_control, precision)})",
                "Treatment": f"{_fmt(row.mean_treated, precision)} ({_fmt(row.sd_treated, precision)})",
                "p-value": _fmt_p(row.pvalue, precision),
            })
            continue

        records.append({
            "Characteristic": row.covariate,
            "Control": "",
            "Treatment": "",
            "p-value": _fmt_p(row.pvalue, precision),
        })
        for lvl in row.levels:
            records.append({
                "Characteristic": f"    {lvl.level}",
                "Control": f"{lvl.n_control} ({_fmt(lvl.pct_control, 1)}%)",
                "Treatment": f"{lvl.n_treated} ({_fmt(lvl.pct_treated, 1)}%)",
                "p-value": "",
            })

    return pd.DataFrame.from_records(
        records, columns=["Characteristic", "Control", "Treatment", "p-value"]
    )


def format_comparison_table(effects: EffectsResult, precision: int = 3) -> pd.DataFrame:
    """
    One row per regression model with estimate, standard error and p-value,
    rounded to ``precision`` decimals. The plain difference in means is not
    included; it is reported separately.
    """
    records = [
        {
            "Model": est.label,
            "Estimate": round(est.estimate, precision),
            "Std. Error": round(est.std_err, precision),
            "p-value": round(est.pvalue, precision),
        }
        for est in effects.regression_estimates
    ]
    return pd.DataFrame.from_records(
        records, columns=["Model", "Estimate", "Std. Error", "p-value"]
    )


def plot_coefficients(effects: EffectsResult, title: str | None = None):
    """
    Plot each regression estimate with its 95% confidence interval.

    Models are ordered by point estimate, smallest at the bottom.

    Returns
    -------
    matplotlib.figure.Figure
    """
    ests = sorted(effects.regression_estimates, key=lambda e: e.estimate)
    spec = effects.spec

    fig, ax = plt.subplots(1, 1, figsize=(8, 1.2 + 0.8 * max(len(ests), 1)))
    positions = list(range(len(ests)))
    ax.errorbar(
        [e.estimate for e in ests],
        positions,
        xerr=[Z_95 * e.std_err for e in ests],
        fmt="o",
        color="black",
        ecolor="steelblue",
        elinewidth=2,
        capsize=4,
    )
    ax.axvline(0, color="gray", linestyle="--", linewidth=1)
    ax.set_yticks(positions)
    ax.set_yticklabels([e.label for e in ests])
    ax.set_ylim(-0.5, len(ests) - 0.5)
    ax.set_xlabel(f"Effect of {spec.treatment} on {spec.outcome} (95% CI)")
    ax.set_title(title or "Treatment effect estimates", fontweight="bold")
    ax.grid(True, axis="x", alpha=0.3)
    fig.tight_layout()
    return fig


class ArtifactReport:
    """Which report files were written and which failed."""

    def __init__(self, output_dir: Path, written: list[Path], failed: dict[str, str]) -> None:
        self.output_dir = output_dir
        self.written = written
        self.failed = failed

    @property
    def ok(self) -> bool:
        return not self.failed

    def __repr__(self) -> str:
        return (
            f"ArtifactReport(output_dir={str(self.output_dir)!r}, "
            f"written={len(self.written)}, failed={sorted(self.failed)})"
        )


def _write_csv(frame: pd.DataFrame, path: Path) -> None:
    try:
        frame.to_csv(path, index=False)
    except OSError as exc:
        raise OutputError(f"Could not write {path}: {exc}") from exc


def _write_text(text: str, path: Path) -> None:
    try:
        path.write_text(text, encoding="utf-8")
    except OSError as exc:
        raise OutputError(f"Could not write {path}: {exc}") from exc


def _write_plot(effects: EffectsResult, path: Path) -> None:
    if not effects.regression_estimates:
        raise OutputError(f"No regression estimates to plot for {path}.")
    fig = plot_coefficients(effects)
    try:
        fig.savefig(path, dpi=150)
    except OSError as exc:
        raise OutputError(f"Could not write {path}: {exc}") from exc
    finally:
        plt.close(fig)


def write_artifacts(
    balance: BalanceTable,
    effects: EffectsResult,
    output_dir: str | Path,
    precision: int = 3,
) -> ArtifactReport:
    """
    Write the balance table, model comparison table, coefficient plot and a
    text summary into ``output_dir``.

    A file that cannot be written is logged and listed in
    ``ArtifactReport.failed``; it never raises, so the in-memory results
    remain usable.
    """
    output_dir = Path(output_dir)
    written: list[Path] = []
    failed: dict[str, str] = {}

    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logger.error("Could not create results directory %s: %s", output_dir, exc)

    summary = "\n".join([balance.summary(), effects.summary(), effects.executive_summary(), ""])
    jobs = [
        (BALANCE_TABLE_FILE, lambda p: _write_csv(format_balance_table(balance, precision), p)),
        (COMPARISON_TABLE_FILE, lambda p: _write_csv(format_comparison_table(effects, precision), p)),
        (COEFFICIENT_PLOT_FILE, lambda p: _write_plot(effects, p)),
        (SUMMARY_FILE, lambda p: _write_text(summary, p)),
    ]
    for name, write in jobs:
        path = output_dir / name
        try:
            write(path)
        except OutputError as exc:
            logger.error("%s", exc)
            failed[name] = str(exc)
            continue
        logger.info("Wrote %s", path)
        written.append(path)

    return ArtifactReport(output_dir, written, failed)
