"""
Loading the trial dataset and restricting it to the analysis variables.
"""
from __future__ import annotations

import io
import logging
from pathlib import Path

import pandas as pd
import requests

from ._exceptions import DataSourceError, SchemaError
from .variables import VariableSpec

logger = logging.getLogger(__name__)

_REMOTE_SCHEMES = ("http://", "https://")


def _is_remote(source: str) -> bool:
    return str(source).lower().startswith(_REMOTE_SCHEMES)


def _fetch_text(url: str, timeout: float) -> str:
    logger.info("Fetching %s (timeout %.1fs)", url, timeout)
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.Timeout as exc:
        raise DataSourceError(f"Timed out after {timeout}s fetching '{url}'.") from exc
    except requests.RequestException as exc:
        raise DataSourceError(f"Could not fetch '{url}': {exc}") from exc
    return response.text


def load_data(source: str | Path, timeout: float = 30.0) -> pd.DataFrame:
    """
    Read a comma-separated table with a header row from a URL or local path.

    Parameters
    ----------
    source : str or Path
        ``http(s)://`` URL or path to a local CSV file.
    timeout : float
        Seconds to wait for a remote fetch before giving up.

    Raises
    ------
    DataSourceError
        If the source is unreachable, the fetch times out, or the content
        cannot be parsed as delimited tabular text.
    """
    source = str(source)
    try:
        if _is_remote(source):
            data = pd.read_csv(io.StringIO(_fetch_text(source, timeout)))
        else:
            logger.info("Reading %s", source)
            data = pd.read_csv(source)
    except FileNotFoundError as exc:
        raise DataSourceError(f"Data file '{source}' does not exist.") from exc
    except pd.errors.EmptyDataError as exc:
        raise DataSourceError(f"Data source '{source}' is empty.") from exc
    except (pd.errors.ParserError, UnicodeDecodeError) as exc:
        raise DataSourceError(
            f"Data source '{source}' is not parseable as comma-separated text: {exc}"
        ) from exc
    except OSError as exc:
        raise DataSourceError(f"Could not read '{source}': {exc}") from exc

    if data.shape[1] == 0:
        raise DataSourceError(f"Data source '{source}' has no columns.")

    logger.info("Loaded %d rows x %d columns", data.shape[0], data.shape[1])
    return data


class Selection:
    """
    The dataset restricted to the analysis variables, plus missing-value counts.

    Obtain via ``select_variables(data, spec)``. The counts are informational
    only; no rows are dropped here.
    """

    def __init__(self, data: pd.DataFrame, spec: VariableSpec, missing: pd.Series) -> None:
        self._data = data
        self._spec = spec
        self._missing = missing

    @property
    def data(self) -> pd.DataFrame:
        """Treatment, outcome and covariate columns, in that order."""
        return self._data

    @property
    def spec(self) -> VariableSpec:
        return self._spec

    @property
    def missing(self) -> pd.Series:
        """Number of missing values per selected column."""
        return self._missing.copy()

    @property
    def n_rows(self) -> int:
        return len(self._data)

    def summary(self) -> str:
        lines = [
            "",
            f"Analysis variables ({self.n_rows} rows)",
            "─" * 50,
        ]
        roles = {self._spec.treatment: "treatment", self._spec.outcome: "outcome"}
        for col, n_missing in self._missing.items():
            role = roles.get(col, "covariate")
            lines.append(f"  {col:<20} {role:<10} missing: {int(n_missing):>6}")
        lines.append("")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return self.summary()


def _check_binary(data: pd.DataFrame, label: str, col: str) -> None:
    observed = data[col].dropna()
    if observed.empty:
        return
    if not pd.api.types.is_numeric_dtype(observed) or not observed.isin([0, 1]).all():
        bad = sorted(map(str, pd.unique(observed[~observed.isin([0, 1])])))[:5]
        raise SchemaError(
            f"{label} column '{col}' must only contain 0/1 values. "
            f"Found other values, e.g. {bad}."
        )


def select_variables(data: pd.DataFrame, spec: VariableSpec) -> Selection:
    """
    Restrict ``data`` to the columns named in ``spec`` and count missing values.

    Raises
    ------
    SchemaError
        If any named column is absent, or the treatment or outcome holds
        values other than 0 and 1.
    """
    absent = [c for c in spec.columns if c not in data.columns]
    if absent:
        raise SchemaError(
            f"Columns {absent} not found in dataframe. "
            f"Available columns: {sorted(map(str, data.columns))}"
        )

    for label, col in [("Treatment", spec.treatment), ("Outcome", spec.outcome)]:
        _check_binary(data, label, col)

    subset = data.loc[:, spec.columns].copy()
    # True/False columns read from CSV enter the models as 0/1 indicators.
    for col in (spec.treatment, spec.outcome):
        if pd.api.types.is_bool_dtype(subset[col]):
            subset[col] = subset[col].astype(int)
    missing = subset.isna().sum()
    for col, n_missing in missing.items():
        logger.info("Missing values in %s: %d", col, n_missing)
    return Selection(subset, spec, missing)
