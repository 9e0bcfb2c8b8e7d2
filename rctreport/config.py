from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Mapping

from .variables import DEFAULT_SPEC, VariableSpec


@dataclass
class AnalysisConfig:
    """Static configuration for one pipeline run."""

    source: str
    output_dir: str = "results"
    timeout: float = 30.0
    precision: int = 3
    spec: VariableSpec = DEFAULT_SPEC

    @classmethod
    def from_dict(cls, raw: Mapping) -> AnalysisConfig:
        """
        Build a config from a plain mapping. Unknown keys are ignored; a
        ``variables`` entry is parsed with ``VariableSpec.from_mapping``.
        """
        if "source" not in raw:
            raise ValueError("Analysis config requires a 'source' entry.")
        valid = {f.name for f in fields(cls)} - {"spec"}
        kwargs = {k: v for k, v in raw.items() if k in valid}
        if raw.get("variables"):
            kwargs["spec"] = VariableSpec.from_mapping(raw["variables"])
        return cls(**kwargs)
