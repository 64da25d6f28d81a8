"""
Depth-first exploration of branch chains.

The explorer walks the program once, carrying an immutable PathConstraint.
At every guard it asks the ConditionSolver which truth values are feasible
and descends only into those arms. A chain bound by ``let`` collects the
value of every feasible leaf and binds the union at the join; statements
after the join see that union under the constraint that held before the
chain, never a narrowing made inside one of its arms.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple
import logging

from ..config import VerifierConfig
from ..domain.environment import Binding, Environment, Narrower
from ..domain.symbolic_value import SymbolicValue
from ..errors import MalformedInputError, PathBudgetExceeded
from ..ir.nodes import Assert, Block, Branch, Declare, Let, Program, iter_asserts
from ..solver.condition import ConditionSolver, GuardOutcome
from ..verification.aggregator import VerdictAggregator

logger = logging.getLogger(__name__)

_BUDGET_REASON = "path budget exhausted"
_FAIL_FAST_REASON = "not explored: stopped after first violation"


@dataclass(frozen=True)
class PathConstraint:
    """Guard facts along the current path plus the matching environment.

    Attributes:
        env: Variable environment narrowed by every fact
        facts: (guard, truth) pairs in the order they were assumed
    """
    env: Environment
    facts: Tuple[Tuple[object, bool], ...] = ()

    def extend(self, guard, truth: bool, env: Environment) -> "PathConstraint":
        return PathConstraint(env, self.facts + ((guard, truth),))

    def with_env(self, env: Environment) -> "PathConstraint":
        return PathConstraint(env, self.facts)

    @property
    def depth(self) -> int:
        return len(self.facts)


class _StopExploration(Exception):

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class PathExplorer:
    """Walks a program and hands every reachable assertion to the checker.

    Args:
        narrower: Forward evaluation and narrowing
        checker: AssertionChecker for the same program
        aggregator: Receives one verdict per visited site
        config: Verifier configuration
    """

    def __init__(self, narrower: Narrower, checker, aggregator: VerdictAggregator,
                 config: Optional[VerifierConfig] = None):
        self.narrower = narrower
        self.domain = narrower.domain
        self.conditions = ConditionSolver(narrower)
        self.checker = checker
        self.aggregator = aggregator
        self.config = config or VerifierConfig()
        self.paths = 0
        self.final: Optional[PathConstraint] = None

    def explore(self, program: Program) -> Optional[str]:
        """Explore ``program``.

        Returns:
            None when exploration finished, else the reason it stopped early
        """
        self.paths = 0
        self.final = None
        try:
            self.final = self._stmts(program.body, PathConstraint(Environment()))
        except PathBudgetExceeded as e:
            logger.info("%s: %s", program.name, e)
            return _BUDGET_REASON
        except _StopExploration as e:
            logger.info("%s: %s", program.name, e.reason)
            return e.reason
        logger.debug("%s: explored %d arm paths", program.name, self.paths)
        return None

    # --- statements ---------------------------------------------------------

    def _stmts(self, stmts, pc: PathConstraint) -> PathConstraint:
        for stmt in stmts:
            if isinstance(stmt, Declare):
                top = self.domain.top(stmt.var.width)
                pc = pc.with_env(pc.env.bind(Binding(stmt.var, top)))
            elif isinstance(stmt, Let):
                pc = pc.with_env(self._bind(stmt, pc))
            elif isinstance(stmt, Assert):
                self._check(stmt, pc)
            elif isinstance(stmt, Branch):
                # Value discarded and arm narrowings end at the join.
                self._branch(stmt, pc, None)
            else:
                raise MalformedInputError(f"Unsupported statement kind: {type(stmt).__name__}", stmt)
        return pc

    def _bind(self, stmt: Let, pc: PathConstraint) -> Environment:
        var = stmt.var
        if not isinstance(stmt.value, Branch):
            value = self.narrower.evaluate(stmt.value, pc.env, var.width)
            return pc.env.bind(Binding(var, value, definition=stmt.value))

        leaves = self._branch(stmt.value, pc, var.width)
        value: SymbolicValue = self.domain.empty(var.width)
        origins = []
        for leaf_value, leaf_env in leaves:
            value = self.domain.union(value, leaf_value)
            origins.append(leaf_env.bind(Binding(var, leaf_value)))
        logger.debug("join %s over %d leaves: %s", var.name, len(leaves), value)
        return pc.env.bind(Binding(var, value, origins=tuple(origins)))

    def _check(self, stmt: Assert, pc: PathConstraint) -> None:
        verdict = self.checker.check(stmt, pc)
        self.aggregator.record(stmt.site, verdict)
        if verdict.is_violated and self.config.fail_fast:
            raise _StopExploration(_FAIL_FAST_REASON)

    # --- branch chains ------------------------------------------------------

    def _branch(self, branch: Branch, pc: PathConstraint,
                width: Optional[int]) -> List[Tuple[SymbolicValue, Environment]]:
        """Explore a chain and return its feasible (value, leaf env) pairs."""
        leaves: List[Tuple[SymbolicValue, Environment]] = []
        current = pc
        for i, arm in enumerate(branch.arms):
            decision = self.conditions.decide(arm.guard, current.env)
            if decision.outcome in (GuardOutcome.ALWAYS_TRUE, GuardOutcome.MAYBE_BOTH):
                leaves.extend(self._arm(arm.body, current.extend(arm.guard, True, decision.when_true), width))
            else:
                logger.debug("pruned arm %d at depth %d", i, current.depth)
                self._unreachable(arm.body)
            if decision.outcome in (GuardOutcome.ALWAYS_FALSE, GuardOutcome.MAYBE_BOTH):
                current = current.extend(arm.guard, False, decision.when_false)
            else:
                logger.debug("remaining %d arms unreachable at depth %d",
                             len(branch.arms) - i - 1, current.depth)
                for later in branch.arms[i + 1:]:
                    self._unreachable(later.body)
                self._unreachable(branch.orelse)
                return leaves
        leaves.extend(self._arm(branch.orelse, current, width))
        return leaves

    def _arm(self, block: Block, pc: PathConstraint,
             width: Optional[int]) -> List[Tuple[SymbolicValue, Environment]]:
        self.paths += 1
        if self.config.max_paths is not None and self.paths > self.config.max_paths:
            raise PathBudgetExceeded(self.config.max_paths)
        inner = self._stmts(block.stmts, pc)
        if isinstance(block.result, Branch):
            return self._branch(block.result, inner, width)
        if width is None or block.result is None:
            return []
        value = self.narrower.evaluate(block.result, inner.env, width)
        return [(value, inner.env)]

    def _unreachable(self, block: Block) -> None:
        for a in iter_asserts(block.stmts):
            self.aggregator.mark_unreachable(a.site)
        if isinstance(block.result, Branch):
            for a in iter_asserts((block.result,)):
                self.aggregator.mark_unreachable(a.site)
