"""
Verdict types for assertion obligations.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .trace import Witness


class VerdictKind(Enum):
    """Outcome of checking one obligation."""
    PROVEN = "proven"
    VIOLATED = "violated"
    UNKNOWN = "unknown"

    @property
    def precedence(self) -> int:
        return _PRECEDENCE[self]


_PRECEDENCE = {
    VerdictKind.PROVEN: 0,
    VerdictKind.UNKNOWN: 1,
    VerdictKind.VIOLATED: 2,
}


@dataclass(frozen=True)
class Verdict:
    """Proven, Violated with a witness, or Unknown with a reason.

    Attributes:
        kind: Verdict kind
        witness: Witness for a violation
        reason: Why the obligation could not be decided
    """
    kind: VerdictKind
    witness: Optional[Witness] = None
    reason: Optional[str] = None

    @classmethod
    def proven(cls) -> "Verdict":
        return cls(VerdictKind.PROVEN)

    @classmethod
    def violated(cls, witness: Witness) -> "Verdict":
        return cls(VerdictKind.VIOLATED, witness=witness)

    @classmethod
    def unknown(cls, reason: str) -> "Verdict":
        return cls(VerdictKind.UNKNOWN, reason=reason)

    @property
    def is_proven(self) -> bool:
        return self.kind is VerdictKind.PROVEN

    @property
    def is_violated(self) -> bool:
        return self.kind is VerdictKind.VIOLATED

    @property
    def is_unknown(self) -> bool:
        return self.kind is VerdictKind.UNKNOWN

    def combine(self, other: "Verdict") -> "Verdict":
        """Merge two results for the same site; the first of equal rank is kept."""
        if other.kind.precedence > self.kind.precedence:
            return other
        return self

    def __str__(self) -> str:
        if self.is_violated and self.witness is not None:
            inputs = ", ".join(f"{k}={v}" for k, v in self.witness.inputs.items())
            return f"violated ({inputs})"
        if self.is_unknown:
            return f"unknown ({self.reason})"
        return self.kind.value
