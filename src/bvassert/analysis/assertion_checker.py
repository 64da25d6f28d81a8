"""
Assertion checking at a single site.

An assertion P under path constraint C is decided in three stages:

1. Narrow C by "P is false" in the abstract domain. No valuation left means
   P holds on every input reaching the site.
2. Otherwise pick candidate inputs from the violating region (minimum values
   first) and from the leaves of any branch join P depends on, and replay
   the program on each. A replay that fails at the site is a witness.
3. Otherwise the domain over-approximated; decide ``reach and not P``
   exactly with the bit-vector encoding of the whole program.
"""
from typing import Dict, Iterator, List, Optional, Set
import logging

from ..config import VerifierConfig
from ..domain.environment import Environment, Narrower
from ..ir.nodes import ArithmeticOp, Assert, BoolOp, Compare, Not, Program, Ref, expr_refs
from ..solver.base import SolverBackend
from ..solver.z3_solver import Z3Solver
from ..translator.program_to_smt import ProgramTranslator, SMTProblem
from ..verification.trace import Witness
from ..verification.verdict import Verdict
from .concrete import ConcreteInterpreter

logger = logging.getLogger(__name__)

# Nested joins followed when collecting witness candidates.
_ORIGIN_DEPTH = 4


class AssertionChecker:
    """Decides assertion obligations for one program.

    Args:
        program: Validated program with unique declaration names
        narrower: Narrowing engine shared with the explorer
        config: Verifier configuration
        solver: Backend for exact refinement; a Z3Solver with the
            configured timeout when omitted
    """

    def __init__(self, program: Program, narrower: Narrower,
                 config: Optional[VerifierConfig] = None,
                 solver: Optional[SolverBackend] = None):
        self.program = program
        self.narrower = narrower
        self.config = config or VerifierConfig()
        self.interpreter = ConcreteInterpreter()
        self.translator = ProgramTranslator()
        self._problem: Optional[SMTProblem] = None
        self._solver = solver
        self._registered = False

    @property
    def problem(self) -> SMTProblem:
        """Bit-vector encoding of the program, built on first use."""
        if self._problem is None:
            self._problem = self.translator.translate(self.program)
        return self._problem

    @property
    def solver(self) -> SolverBackend:
        """Refinement backend with every program input registered."""
        if self._solver is None:
            self._solver = Z3Solver(timeout_ms=self.config.smt_timeout_ms)
        if not self._registered:
            for name, var in self.problem.variables.items():
                self._solver.register_variable(name, var)
            self._registered = True
        return self._solver

    def check(self, assertion: Assert, pc) -> Verdict:
        """Check ``assertion`` under the path constraint ``pc``."""
        violating = self.narrower.narrow(assertion.predicate, False, pc.env)
        if violating is None:
            logger.debug("site %s: violating region empty", assertion.site)
            return Verdict.proven()

        witness = self._search_witness(assertion, violating)
        if witness is not None:
            return Verdict.violated(witness)

        if not self.config.refine_with_smt:
            return Verdict.unknown("abstract domain could not decide and SMT refinement is disabled")
        return self._refine(assertion, violating)

    # --- witness search -----------------------------------------------------

    def _search_witness(self, assertion: Assert, violating: Environment) -> Optional[Witness]:
        seen: Set[tuple] = set()
        for candidate in self.candidates(assertion, violating):
            key = tuple(sorted(candidate.items()))
            if key in seen:
                continue
            seen.add(key)
            run = self.interpreter.run(self.program, candidate)
            if run.violates(assertion.site):
                logger.debug("site %s: candidate %s confirmed", assertion.site, candidate)
                return Witness(assertion.site, run.inputs, run.snapshots[assertion.site], "domain")
        logger.debug("site %s: %d candidates, none confirmed", assertion.site, len(seen))
        return None

    def candidates(self, assertion: Assert, violating: Environment) -> Iterator[Dict[str, int]]:
        """Yield input assignments that may violate ``assertion``."""
        yield self._extreme(violating, use_max=False)
        yield self._extreme(violating, use_max=True)
        base = self._extreme(violating, use_max=False)
        yield from self._origin_candidates(assertion.predicate, violating, base, _ORIGIN_DEPTH)

    def _origin_candidates(self, predicate, env: Environment, base: Dict[str, int],
                           depth: int) -> Iterator[Dict[str, int]]:
        if depth == 0:
            return
        for name in self._dependencies(predicate, env):
            binding = env.get(name)
            if binding is None:
                continue
            for origin in binding.origins:
                local = self._inline(predicate, env, origin)
                if local is None:
                    continue
                leaf = self.narrower.narrow(local, False, origin)
                if leaf is None:
                    continue
                for use_max in (False, True):
                    candidate = dict(base)
                    candidate.update(self._extreme(leaf, use_max))
                    yield candidate
                yield from self._origin_candidates(local, leaf, self._extreme(leaf, False), depth - 1)

    def _inline(self, expr, env: Environment, origin: Environment):
        """Rewrite ``expr`` over the names bound in ``origin``.

        Names bound after the join are replaced by their definitions. Returns
        None when a name has neither a binding in ``origin`` nor a definition.
        """
        if isinstance(expr, Ref):
            if expr.name in origin:
                return expr
            binding = env.get(expr.name)
            if binding is None or binding.definition is None:
                return None
            return self._inline(binding.definition, env, origin)
        if isinstance(expr, (ArithmeticOp, Compare)):
            lhs = self._inline(expr.lhs, env, origin)
            rhs = self._inline(expr.rhs, env, origin)
            if lhs is None or rhs is None:
                return None
            return type(expr)(expr.op, lhs, rhs)
        if isinstance(expr, BoolOp):
            values = tuple(self._inline(v, env, origin) for v in expr.values)
            if any(v is None for v in values):
                return None
            return BoolOp(expr.op, values)
        if isinstance(expr, Not):
            operand = self._inline(expr.operand, env, origin)
            return None if operand is None else Not(operand)
        return expr

    def _dependencies(self, predicate, env: Environment) -> List[str]:
        """Names ``predicate`` reads, directly or through definitions."""
        pending = list(expr_refs(predicate))
        found: List[str] = []
        while pending:
            name = pending.pop()
            if name in found:
                continue
            found.append(name)
            binding = env.get(name)
            if binding is not None and binding.definition is not None:
                pending.extend(expr_refs(binding.definition))
        return found

    @staticmethod
    def _extreme(env: Environment, use_max: bool) -> Dict[str, int]:
        out = {}
        for name in env.free_variables():
            value = env[name].value
            out[name] = value.max() if use_max else value.min()
        return out

    # --- exact refinement ---------------------------------------------------

    def _refine(self, assertion: Assert, violating: Environment) -> Verdict:
        problem = self.problem
        solver = self.solver
        solver.push()
        try:
            for name, var in problem.variables.items():
                if name in violating:
                    value = violating[name].value
                    solver.add_constraint(
                        self.translator.type_translator.create_bounds_constraint(var, value.min(), value.max()))
            solver.add_constraint(problem.violation_query(assertion.site))
            outcome = solver.check_sat()
        finally:
            solver.pop()

        logger.debug("site %s: refinement %s", assertion.site, outcome)
        if outcome.is_unsat:
            return Verdict.proven()
        if outcome.is_sat:
            run = self.interpreter.run(self.program, outcome.model)
            if run.violates(assertion.site):
                return Verdict.violated(Witness(assertion.site, run.inputs, run.snapshots[assertion.site], "smt"))
            return Verdict.unknown("solver model did not reproduce the violation")
        return Verdict.unknown(f"solver returned unknown: {outcome.reason}")
