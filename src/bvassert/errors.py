"""
Error types raised by the verifier.

Precision loss and infeasible paths are handled inside the engine and never
surface here. Only conditions that stop analysis of a program are exceptions.
"""
from typing import Any, Optional


class VerifierError(Exception):
    """Base class for verifier errors."""


class MalformedInputError(VerifierError, ValueError):
    """The input tree contains a construct the verifier cannot analyze.

    Attributes:
        node: Offending IR node (if known)
    """

    def __init__(self, message: str, node: Optional[Any] = None):
        super().__init__(message)
        self.node = node


class PathBudgetExceeded(VerifierError):
    """Raised by the path explorer when the configured path budget runs out."""

    def __init__(self, budget: int):
        super().__init__(f"Path budget of {budget} explored paths exhausted")
        self.budget = budget
