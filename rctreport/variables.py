from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

import pandas as pd


@dataclass(frozen=True)
class VariableSpec:
    """
    Which columns play which role in the analysis.

    The specification is fixed at pipeline start and passed explicitly to
    every component; nothing downstream refers to column names directly.

    Example::

        spec = VariableSpec(
            treatment="w",
            outcome="y",
            covariates=("age", "income", "sex"),
            categorical=("sex",),
        )
    """

    treatment: str
    """Binary (0/1) treatment indicator column."""

    outcome: str
    """Binary (0/1) outcome column."""

    covariates: tuple[str, ...] = ()
    """Pre-treatment covariates, in the order they are reported."""

    categorical: tuple[str, ...] = ()
    """Covariates summarised by level even when stored as numeric codes."""

    def __post_init__(self) -> None:
        # Accept any iterable of names but store tuples so the spec stays hashable.
        object.__setattr__(self, "covariates", tuple(self.covariates))
        object.__setattr__(self, "categorical", tuple(self.categorical))

        if self.treatment == self.outcome:
            raise ValueError("Treatment and outcome must be different variables.")
        for role, var in [("Treatment", self.treatment), ("Outcome", self.outcome)]:
            if var in self.covariates:
                raise ValueError(f"{role} '{var}' cannot also be listed as a covariate.")
        if len(set(self.covariates)) != len(self.covariates):
            raise ValueError(f"Duplicate covariates in {list(self.covariates)}.")
        unknown = [c for c in self.categorical if c not in self.covariates]
        if unknown:
            raise ValueError(
                f"Categorical variables {unknown} are not listed as covariates. "
                f"Known covariates: {list(self.covariates)}"
            )

    @classmethod
    def from_mapping(cls, mapping: Mapping) -> VariableSpec:
        """
        Build a spec from a static mapping such as a parsed config file::

            VariableSpec.from_mapping({"treatment": "w", "outcome": "y",
                                       "covariates": ["age", "sex"]})
        """
        missing = [k for k in ("treatment", "outcome") if k not in mapping]
        if missing:
            raise ValueError(f"Variable mapping is missing required keys: {missing}")
        return cls(
            treatment=mapping["treatment"],
            outcome=mapping["outcome"],
            covariates=tuple(mapping.get("covariates", ())),
            categorical=tuple(mapping.get("categorical", ())),
        )

    @property
    def columns(self) -> list[str]:
        """All analysis columns: treatment, outcome, then covariates."""
        return [self.treatment, self.outcome, *self.covariates]

    def is_categorical(self, column: str, values: pd.Series) -> bool:
        """
        ``True`` if ``column`` is summarised by level: either declared in
        ``categorical`` or stored with a non-numeric (or boolean) dtype.
        """
        if column in self.categorical:
            return True
        return pd.api.types.is_bool_dtype(values) or not pd.api.types.is_numeric_dtype(values)


DEFAULT_SPEC = VariableSpec(
    treatment="w",
    outcome="y",
    covariates=("age", "polviews", "income", "educ", "marital", "sex"),
    categorical=("marital", "sex"),
)
