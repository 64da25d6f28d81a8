"""
SMT query result types.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Dict


class SolverResult(Enum):
    """Result from SMT solver check."""
    SAT = "sat"
    UNSAT = "unsat"
    UNKNOWN = "unknown"


@dataclass
class SolverOutcome:
    """Outcome of one satisfiability query.

    Attributes:
        result: Raw solver result (SAT/UNSAT/UNKNOWN)
        model: Variable assignments when the query is satisfiable
        solver_time_ms: Time taken by solver in milliseconds
        solver_name: Name of the solver backend used
        reason: Solver-provided explanation when the result is UNKNOWN
    """
    result: SolverResult = SolverResult.UNKNOWN
    model: Optional[Dict[str, int]] = None
    solver_time_ms: float = 0.0
    solver_name: str = "unknown"
    reason: Optional[str] = None

    @property
    def is_sat(self) -> bool:
        return self.result is SolverResult.SAT

    @property
    def is_unsat(self) -> bool:
        return self.result is SolverResult.UNSAT

    def __str__(self) -> str:
        if self.result is SolverResult.UNSAT:
            return f"unsat ({self.solver_name}, {self.solver_time_ms:.2f}ms)"
        if self.result is SolverResult.SAT:
            model_str = ", ".join(f"{k}={v}" for k, v in (self.model or {}).items())
            return f"sat: {model_str} ({self.solver_name}, {self.solver_time_ms:.2f}ms)"
        return f"unknown: {self.reason} ({self.solver_name}, {self.solver_time_ms:.2f}ms)"
