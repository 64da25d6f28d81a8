"""
Concrete replay of a program on one input assignment.

Used to confirm candidate witnesses before a violation is reported. Replay
follows the same wrap-around semantics as the abstract domain and the SMT
encoding, including ``x / 0 == 2^w - 1`` and ``x % 0 == x``.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional
import logging

from ..errors import MalformedInputError
from ..ir.nodes import (
    ArithOp, ArithmeticOp, Assert, Block, BoolOp, BoolOpKind, Branch, Compare,
    Const, Declare, Let, Not, Program, Ref, infer_width,
)

logger = logging.getLogger(__name__)


@dataclass
class ConcreteRun:
    """Record of one concrete execution.

    Attributes:
        inputs: Value used for every declaration executed
        outcomes: For each assertion site reached, whether it held
        snapshots: Variable values in scope when each failing site ran
    """
    inputs: Dict[str, int] = field(default_factory=dict)
    outcomes: Dict[str, bool] = field(default_factory=dict)
    snapshots: Dict[str, Dict[str, int]] = field(default_factory=dict)

    def violates(self, site: str) -> bool:
        return self.outcomes.get(site) is False

    def failed_sites(self) -> List[str]:
        return [s for s, ok in self.outcomes.items() if not ok]


class ConcreteInterpreter:
    """Executes a program on concrete inputs.

    Args:
        default: Value used for a declared input missing from the assignment
    """

    def __init__(self, default: int = 0):
        self.default = default

    def run(self, program: Program, inputs: Optional[Mapping[str, int]] = None) -> ConcreteRun:
        run = ConcreteRun()
        self._inputs = dict(inputs or {})
        self._widths: Dict[str, int] = {}
        self._stmts(program.body, {}, run)
        return run

    def _stmts(self, stmts, env: Dict[str, int], run: ConcreteRun) -> None:
        for stmt in stmts:
            if isinstance(stmt, Declare):
                name = stmt.var.name
                value = self._inputs.get(name, self.default) & stmt.var.type.max_value
                env[name] = value
                self._widths[name] = stmt.var.width
                run.inputs[name] = value
            elif isinstance(stmt, Let):
                env[stmt.name] = self._value(stmt.value, env, run, stmt.type.width)
                self._widths[stmt.name] = stmt.type.width
            elif isinstance(stmt, Assert):
                held = self.evaluate_predicate(stmt.predicate, env)
                run.outcomes[stmt.site] = held
                if not held:
                    run.snapshots[stmt.site] = dict(env)
            elif isinstance(stmt, Branch):
                self._branch(stmt, env, run, None)
            else:
                raise MalformedInputError(f"Unsupported statement kind: {type(stmt).__name__}", stmt)

    def _value(self, expr, env, run, width: Optional[int]) -> Optional[int]:
        if isinstance(expr, Branch):
            return self._branch(expr, env, run, width)
        return self.evaluate(expr, env, width or 32)

    def _branch(self, branch: Branch, env, run, width: Optional[int]) -> Optional[int]:
        for arm in branch.arms:
            if self.evaluate_predicate(arm.guard, env):
                return self._block(arm.body, env, run, width)
        return self._block(branch.orelse, env, run, width)

    def _block(self, block: Block, env, run, width: Optional[int]) -> Optional[int]:
        local = dict(env)
        self._stmts(block.stmts, local, run)
        if block.result is None:
            return None
        if width is None and not isinstance(block.result, Branch):
            return None
        return self._value(block.result, local, run, width)

    def evaluate(self, expr, env: Dict[str, int], width: int) -> int:
        if isinstance(expr, Const):
            w = expr.type.width if expr.type is not None else width
            return expr.value & ((1 << w) - 1)
        if isinstance(expr, Ref):
            return env[expr.name]
        if isinstance(expr, ArithmeticOp):
            w = infer_width(expr, self._widths) or width
            mask = (1 << w) - 1
            lhs = self.evaluate(expr.lhs, env, w)
            rhs = self.evaluate(expr.rhs, env, w)
            if expr.op is ArithOp.ADD:
                return (lhs + rhs) & mask
            if expr.op is ArithOp.SUB:
                return (lhs - rhs) & mask
            if expr.op is ArithOp.MUL:
                return (lhs * rhs) & mask
            if expr.op is ArithOp.DIV:
                return lhs // rhs if rhs else mask
            return lhs % rhs if rhs else lhs
        raise MalformedInputError(f"Unsupported expression kind: {type(expr).__name__}", expr)

    def evaluate_predicate(self, pred, env: Dict[str, int]) -> bool:
        if isinstance(pred, Compare):
            width = infer_width(pred.lhs, self._widths) or infer_width(pred.rhs, self._widths) or 32
            return pred.op.evaluate(self.evaluate(pred.lhs, env, width), self.evaluate(pred.rhs, env, width))
        if isinstance(pred, BoolOp):
            if pred.op is BoolOpKind.AND:
                return all(self.evaluate_predicate(v, env) for v in pred.values)
            return any(self.evaluate_predicate(v, env) for v in pred.values)
        if isinstance(pred, Not):
            return not self.evaluate_predicate(pred.operand, env)
        raise MalformedInputError(f"Unsupported predicate kind: {type(pred).__name__}", pred)


def replay(program: Program, inputs: Optional[Mapping[str, int]] = None) -> ConcreteRun:
    """Run ``program`` once on ``inputs`` (missing inputs default to 0)."""
    return ConcreteInterpreter().run(program, inputs)
