"""
Z3 SMT solver backend implementation.
"""
import time
from typing import Any, Optional, Dict
import logging
import z3

from .result import SolverOutcome, SolverResult

logger = logging.getLogger(__name__)


class Z3Solver:
    """Z3 solver backend wrapper.

    Args:
        timeout_ms: Per-check timeout in milliseconds; None or 0 disables it
    """

    def __init__(self, timeout_ms: Optional[int] = None):
        self.solver = z3.Solver()
        self.timeout_ms = timeout_ms
        if timeout_ms:
            self.solver.set("timeout", int(timeout_ms))
        self._variables: Dict[str, Any] = {}
        self._last: Optional[z3.CheckSatResult] = None

    def add_constraint(self, constraint: Any) -> None:
        """Add a Z3 constraint to the solver.

        Args:
            constraint: Z3 boolean expression
        """
        self.solver.add(constraint)

    def check_sat(self) -> SolverOutcome:
        """Check satisfiability of constraints.

        Returns:
            SolverOutcome with status and, when satisfiable, a model
        """
        start_time = time.time()
        result = self.solver.check()
        elapsed_ms = (time.time() - start_time) * 1000
        self._last = result

        if result == z3.sat:
            return SolverOutcome(
                result=SolverResult.SAT,
                model=self.get_model(),
                solver_time_ms=elapsed_ms,
                solver_name="z3",
            )
        elif result == z3.unsat:
            return SolverOutcome(
                result=SolverResult.UNSAT,
                solver_time_ms=elapsed_ms,
                solver_name="z3",
            )
        else:
            reason = self.solver.reason_unknown()
            logger.debug("z3 returned unknown after %.2fms: %s", elapsed_ms, reason)
            return SolverOutcome(
                result=SolverResult.UNKNOWN,
                solver_time_ms=elapsed_ms,
                solver_name="z3",
                reason=reason or "unknown",
            )

    def get_model(self) -> Optional[Dict[str, int]]:
        """Extract the model of the last satisfiable check.

        Registered variables are always present in the result, completed
        with an arbitrary value when the model leaves them unconstrained.

        Returns:
            Dictionary mapping variable names to their values
        """
        if self._last != z3.sat:
            return None

        model = self.solver.model()
        result: Dict[str, Any] = {}

        for decl in model:
            value = model[decl]
            if z3.is_bv_value(value) or z3.is_int_value(value):
                result[decl.name()] = value.as_long()

        for name, var in self._variables.items():
            value = model.eval(var, model_completion=True)
            if z3.is_bv_value(value):
                result[name] = value.as_long()

        return result

    def push(self) -> None:
        """Push a new assertion scope."""
        self.solver.push()

    def pop(self) -> None:
        """Pop the most recent assertion scope."""
        self.solver.pop()
        self._last = None

    def register_variable(self, name: str, var: Any) -> None:
        """Register a Z3 variable so models always report it.

        Args:
            name: Variable name
            var: Z3 variable object
        """
        self._variables[name] = var

