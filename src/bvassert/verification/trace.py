"""Witness representation for violated assertions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass(frozen=True)
class Witness:
    """Concrete inputs that drive execution into a failing assertion.

    Attributes:
        site: Violated site id
        inputs: Value of every unconstrained input, in declaration order
        state: Variable values in scope when the assertion failed
        source: How the witness was found ("domain" or "smt")
    """

    site: str
    inputs: Dict[str, int]
    state: Dict[str, int] = field(default_factory=dict)
    source: str = "domain"

    def __hash__(self):
        return hash((self.site, tuple(self.inputs.items()), self.source))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "site": self.site,
            "inputs": dict(self.inputs),
            "state": dict(self.state),
            "source": self.source,
        }

    def format_trace(self) -> str:
        lines: List[str] = []
        lines.append(f"Counterexample for site '{self.site}' (found by {self.source}):")
        lines.append("")
        lines.append("Inputs:")
        for name, val in self.inputs.items():
            lines.append(f"  {name} = {val}")
        if self.state:
            lines.append("")
            lines.append("State at assertion:")
            for name, val in self.state.items():
                lines.append(f"  {name} = {val}")
        lines.append("")
        lines.append(f"Assertion '{self.site}' violated")
        return "\n".join(lines)
