"""
Abstract base interface for SMT solver backends.
"""
from typing import Protocol, Any
from .result import SolverOutcome


class SolverBackend(Protocol):
    """Protocol defining the interface for SMT solver backends.

    The assertion checker keeps one backend per program, registers the
    program's inputs once and decides each site inside its own scope.
    """

    def add_constraint(self, constraint: Any) -> None:
        """Add a constraint to the solver.

        Args:
            constraint: Solver-specific constraint object
        """
        ...

    def check_sat(self) -> SolverOutcome:
        """Check satisfiability of added constraints.

        Returns:
            SolverOutcome with sat/unsat status and, when sat, a model
            covering every registered variable
        """
        ...

    def register_variable(self, name: str, var: Any) -> None:
        """Make ``var`` part of every model under ``name``."""
        ...

    def push(self) -> None:
        """Push a new assertion scope."""
        ...

    def pop(self) -> None:
        """Pop the most recent assertion scope."""
        ...
