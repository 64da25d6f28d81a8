"""
Program to SMT translation.

Encodes a whole program as quantifier-free bit-vector terms, one SSA term per
binding:

- Declare introduces a fresh BitVec constant (an input of the program)
- Let binds its name to the term of its value; no new constant is created
- A branch chain used as a value becomes nested ``If`` terms, with the first
  arm whose guard holds selecting the value
- Each assertion site records its reach condition, the conjunction of the
  arm-selection conditions enclosing it, and the term of its predicate

Assertions do not constrain later code: a site is violated exactly when
``reach and not predicate`` is satisfiable.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
import logging
import z3

from ..errors import MalformedInputError
from ..ir.nodes import (
    ArithOp, ArithmeticOp, Assert, Block, BoolOp, BoolOpKind, Branch, CmpOp,
    Compare, Const, Declare, Let, Not, Program, Ref, infer_width,
)
from .type_translator import TypeTranslator

logger = logging.getLogger(__name__)


@dataclass
class Obligation:
    """SMT view of one assertion site.

    Attributes:
        site: Site id
        reach: Condition under which the site executes
        predicate: Asserted predicate
    """
    site: str
    reach: Any
    predicate: Any

    def violation(self) -> Any:
        return z3.And(self.reach, z3.Not(self.predicate))


class SMTProblem:
    """Represents a program encoded as SMT terms.

    Attributes:
        variables: Dictionary mapping input names to Z3 constants
        field_info: Width of each input
        obligations: Per-site obligations in program order
    """

    def __init__(self):
        self.variables: Dict[str, Any] = {}
        self.field_info: Dict[str, Dict[str, Any]] = {}
        self.obligations: Dict[str, Obligation] = {}

    def add_variable(self, name: str, var: Any, info: Optional[Dict[str, Any]] = None):
        """Add an input variable to the problem."""
        self.variables[name] = var
        if info:
            self.field_info[name] = info

    def add_obligation(self, obligation: Obligation):
        self.obligations[obligation.site] = obligation

    def violation_query(self, site: str) -> Any:
        """Formula satisfiable exactly by inputs that violate ``site``."""
        return self.obligations[site].violation()


_CMP = {
    CmpOp.EQ: lambda l, r: l == r,
    CmpOp.NE: lambda l, r: l != r,
    CmpOp.LT: z3.ULT,
    CmpOp.LE: z3.ULE,
    CmpOp.GT: z3.UGT,
    CmpOp.GE: z3.UGE,
}


class ProgramTranslator:
    """Translates a Program into an SMTProblem.

    The program must be validated and renamed so that declared names are
    unique; every input then maps to exactly one Z3 constant.
    """

    def __init__(self):
        self.type_translator = TypeTranslator()

    def translate(self, program: Program) -> SMTProblem:
        problem = SMTProblem()
        self._stmts(program.body, {}, z3.BoolVal(True), problem)
        logger.debug("encoded %s: %d inputs, %d obligations",
                     program.name, len(problem.variables), len(problem.obligations))
        return problem

    # --- statements ---------------------------------------------------------

    def _stmts(self, stmts, env: Dict[str, Any], reach: Any, problem: SMTProblem) -> None:
        for stmt in stmts:
            if isinstance(stmt, Declare):
                var = self.type_translator.translate_variable_type(stmt.var.name, stmt.var.type)
                env[stmt.var.name] = var
                problem.add_variable(stmt.var.name, var, {"width": stmt.var.width})
            elif isinstance(stmt, Let):
                env[stmt.name] = self._value(stmt.value, env, reach, problem, stmt.type.width)
            elif isinstance(stmt, Assert):
                problem.add_obligation(Obligation(stmt.site, reach, self.translate_predicate(stmt.predicate, env)))
            elif isinstance(stmt, Branch):
                self._branch(stmt, env, reach, problem, None)
            else:
                raise MalformedInputError(f"Unsupported statement kind: {type(stmt).__name__}", stmt)

    def _value(self, expr, env, reach, problem, width: Optional[int]) -> Any:
        if isinstance(expr, Branch):
            return self._branch(expr, env, reach, problem, width)
        return self.translate_expr(expr, env, width or 32)

    def _branch(self, branch: Branch, env, reach, problem, width: Optional[int]) -> Optional[Any]:
        """Encode a chain; returns its value term when ``width`` is given."""
        not_taken: List[Any] = []
        choices: List[Tuple[Any, Any]] = []
        for arm in branch.arms:
            guard = self.translate_predicate(arm.guard, env)
            selected = z3.And(reach, *not_taken, guard)
            choices.append((guard, self._block(arm.body, env, selected, problem, width)))
            not_taken.append(z3.Not(guard))
        value = self._block(branch.orelse, env, z3.And(reach, *not_taken), problem, width)
        if width is None:
            return None
        for guard, arm_value in reversed(choices):
            value = z3.If(guard, arm_value, value)
        return value

    def _block(self, block: Block, env, reach, problem, width: Optional[int]) -> Optional[Any]:
        local = dict(env)
        self._stmts(block.stmts, local, reach, problem)
        if block.result is None:
            return None
        if width is None:
            # Value discarded; asserts nested in a result chain still count.
            if isinstance(block.result, Branch):
                self._branch(block.result, local, reach, problem, None)
            return None
        return self._value(block.result, local, reach, problem, width)

    # --- expressions --------------------------------------------------------

    def translate_expr(self, expr, env: Dict[str, Any], width: int) -> Any:
        """Translate an arithmetic expression to a bit-vector term."""
        if isinstance(expr, Const):
            w = expr.type.width if expr.type is not None else width
            return self.type_translator.translate_literal(expr.value, w)
        if isinstance(expr, Ref):
            if expr.name not in env:
                raise MalformedInputError(f"Variable '{expr.name}' used before declaration", expr)
            return env[expr.name]
        if isinstance(expr, ArithmeticOp):
            w = infer_width(expr, self._widths(env)) or width
            lhs = self.translate_expr(expr.lhs, env, w)
            rhs = self.translate_expr(expr.rhs, env, w)
            if expr.op is ArithOp.ADD:
                return lhs + rhs
            if expr.op is ArithOp.SUB:
                return lhs - rhs
            if expr.op is ArithOp.MUL:
                return lhs * rhs
            if expr.op is ArithOp.DIV:
                return z3.UDiv(lhs, rhs)
            return z3.URem(lhs, rhs)
        raise MalformedInputError(f"Unsupported expression kind: {type(expr).__name__}", expr)

    def translate_predicate(self, pred, env: Dict[str, Any]) -> Any:
        """Translate a guard or assertion predicate to a Z3 boolean."""
        if isinstance(pred, Compare):
            widths = self._widths(env)
            width = infer_width(pred.lhs, widths) or infer_width(pred.rhs, widths) or 32
            lhs = self.translate_expr(pred.lhs, env, width)
            rhs = self.translate_expr(pred.rhs, env, width)
            return _CMP[pred.op](lhs, rhs)
        if isinstance(pred, BoolOp):
            values = [self.translate_predicate(v, env) for v in pred.values]
            return z3.And(*values) if pred.op is BoolOpKind.AND else z3.Or(*values)
        if isinstance(pred, Not):
            return z3.Not(self.translate_predicate(pred.operand, env))
        raise MalformedInputError(f"Unsupported predicate kind: {type(pred).__name__}", pred)

    @staticmethod
    def _widths(env: Dict[str, Any]) -> Dict[str, int]:
        return {name: term.size() for name, term in env.items()}
