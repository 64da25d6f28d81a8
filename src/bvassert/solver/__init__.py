"""Guard decisions and the exact SMT backend used for refinement."""

from .base import SolverBackend
from .result import SolverOutcome, SolverResult
from .z3_solver import Z3Solver
from .condition import ConditionSolver, GuardDecision, GuardOutcome

__all__ = [
    "SolverBackend",
    "SolverOutcome",
    "SolverResult",
    "Z3Solver",
    "ConditionSolver",
    "GuardDecision",
    "GuardOutcome",
]
