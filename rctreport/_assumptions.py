from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Assumption:
    """
    A single modelling assumption required for a causal reading of an estimate.

    Each assumption has a human-readable name and a ``testable`` flag
    indicating whether it can be checked in the data (for example through
    the balance table) or must be justified by the study design.
    """

    name: str
    """Human-readable description of the assumption."""

    testable: bool
    """``True`` if the data can speak to the assumption; ``False`` if it rests on design."""

    def fmt_tag(self) -> str:
        """Return a fixed-width bracketed testability label for use in summary output."""
        return "[  testable  ]" if self.testable else "[ untestable ]"


RCT_ASSUMPTIONS: list[Assumption] = [
    Assumption("Random assignment of treatment", testable=False),
    Assumption("Covariate balance between arms", testable=True),
    Assumption("Stable Unit Treatment Value Assumption (SUTVA)", testable=False),
    Assumption("No differential attrition or missingness by arm", testable=False),
]
