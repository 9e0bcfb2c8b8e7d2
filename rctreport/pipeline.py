from __future__ import annotations

import logging
from pathlib import Path

from .balance import BalanceTable, check_balance
from .config import AnalysisConfig
from .data import Selection, load_data, select_variables
from .estimators.rct import EffectsResult, RCTEstimator
from .reporting import ArtifactReport, write_artifacts
from .variables import DEFAULT_SPEC, VariableSpec

logger = logging.getLogger(__name__)


class AnalysisResult:
    """Everything one pipeline run produced."""

    def __init__(
        self,
        selection: Selection,
        balance: BalanceTable,
        effects: EffectsResult,
        artifacts: ArtifactReport,
    ) -> None:
        self.selection = selection
        self.balance = balance
        self.effects = effects
        self.artifacts = artifacts

    def summary(self) -> str:
        return "\n".join([
            self.selection.summary(),
            self.balance.summary(),
            self.effects.summary(),
        ])

    def executive_summary(self) -> str:
        return self.effects.executive_summary()

    def __repr__(self) -> str:
        return self.summary()


def run_analysis(
    source: str | Path,
    spec: VariableSpec = DEFAULT_SPEC,
    output_dir: str | Path = "results",
    timeout: float = 30.0,
    precision: int = 3,
) -> AnalysisResult:
    """
    Run the full analysis: load, select, check balance, estimate, report.

    Loading, schema and treatment-degeneracy errors abort the run. A
    regression that cannot be estimated is skipped and reported in
    ``result.effects.errors``; artifact write failures are reported in
    ``result.artifacts.failed``.

    Example::

        result = run_analysis("data/welfare.csv", output_dir="results")
        print(result.summary())
    """
    data = load_data(source, timeout=timeout)
    selection = select_variables(data, spec)
    balance = check_balance(selection.data, spec)
    effects = RCTEstimator(spec).fit(selection.data, strict=False)
    artifacts = write_artifacts(balance, effects, output_dir, precision=precision)

    if not artifacts.ok:
        logger.error("%d artifact(s) could not be written to %s", len(artifacts.failed), output_dir)
    return AnalysisResult(selection, balance, effects, artifacts)


def run_config(config: AnalysisConfig) -> AnalysisResult:
    """``run_analysis`` driven by an ``AnalysisConfig``."""
    return run_analysis(
        config.source,
        spec=config.spec,
        output_dir=config.output_dir,
        timeout=config.timeout,
        precision=config.precision,
    )
