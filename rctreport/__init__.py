from .variables import VariableSpec, DEFAULT_SPEC
from .config import AnalysisConfig
from .data import load_data, select_variables, Selection
from .balance import check_balance, BalanceTable, BalanceRow, LevelCount
from .estimators.rct import RCTEstimator, EffectsResult, EffectEstimate
from .reporting import format_balance_table, format_comparison_table, plot_coefficients, write_artifacts, ArtifactReport
from .pipeline import run_analysis, run_config, AnalysisResult
from ._assumptions import Assumption
from ._exceptions import DataSourceError, SchemaError, EstimationError, OutputError

__all__ = [
    "VariableSpec", "DEFAULT_SPEC", "AnalysisConfig",
    "load_data", "select_variables", "Selection",
    "check_balance", "BalanceTable", "BalanceRow", "LevelCount",
    "RCTEstimator", "EffectsResult", "EffectEstimate",
    "format_balance_table", "format_comparison_table", "plot_coefficients", "write_artifacts", "ArtifactReport",
    "run_analysis", "run_config", "AnalysisResult",
    "Assumption",
    "DataSourceError", "SchemaError", "EstimationError", "OutputError",
]
