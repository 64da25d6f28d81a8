"""
Structural and type checks on the input tree.

Anything the engine cannot analyze is rejected here with a
MalformedInputError, before exploration starts, so that "the program is
wrong" is never confused with "the verifier cannot handle this construct".
"""
from typing import Dict, List, Optional, Set
import re

from ..errors import MalformedInputError
from .nodes import (
    Arm, ArithmeticOp, Assert, Block, BoolOp, Branch, Compare, Const, Declare,
    IntType, Let, Not, Program, Ref, infer_width,
)

MAX_WIDTH = 64

# Renaming appends "#k", so user names may not contain "#".
_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class ProgramValidator:
    """Validates a Program and reports the first problem found.

    Checks performed:
    - only known node kinds appear in each position
    - widths are in range and all operands are unsigned
    - literals fit their width
    - operand widths agree for arithmetic, comparisons and bindings
    - names are identifiers, declared before use and never redeclared while in scope
    - site ids are unique
    - a branch chain used as a value yields a value on every arm
    """

    def __init__(self):
        self._sites: Set[str] = set()

    def validate(self, program: Program) -> None:
        if not isinstance(program, Program):
            raise MalformedInputError(f"Expected Program, got {type(program).__name__}", program)
        self._sites = set()
        self._check_stmts(program.body, {})

    def _check_type(self, t: IntType, node) -> None:
        if not isinstance(t, IntType):
            raise MalformedInputError(f"Expected IntType, got {type(t).__name__}", node)
        if t.width < 1 or t.width > MAX_WIDTH:
            raise MalformedInputError(f"Unsupported bit width {t.width}", node)
        if t.signed:
            raise MalformedInputError(f"Signed type {t} is not supported; only unsigned arithmetic is analyzed", node)

    def _declare(self, name: str, width: int, scope: Dict[str, int], node) -> None:
        if not isinstance(name, str) or not _NAME_RE.match(name):
            raise MalformedInputError(f"Invalid variable name {name!r}", node)
        if name in scope:
            raise MalformedInputError(f"Variable '{name}' is already declared", node)
        scope[name] = width

    def _check_stmts(self, stmts, scope: Dict[str, int]) -> None:
        for stmt in stmts:
            if isinstance(stmt, Declare):
                self._check_type(stmt.var.type, stmt)
                self._declare(stmt.var.name, stmt.var.width, scope, stmt)
            elif isinstance(stmt, Let):
                self._check_type(stmt.type, stmt)
                self._check_value(stmt.value, stmt.type.width, scope, stmt)
                self._declare(stmt.name, stmt.type.width, scope, stmt)
            elif isinstance(stmt, Assert):
                if not stmt.site:
                    raise MalformedInputError("Assertion site id must not be empty", stmt)
                if stmt.site in self._sites:
                    raise MalformedInputError(f"Duplicate assertion site id '{stmt.site}'", stmt)
                self._sites.add(stmt.site)
                self._check_predicate(stmt.predicate, scope)
            elif isinstance(stmt, Branch):
                self._check_branch(stmt, None, scope)
            else:
                raise MalformedInputError(f"Unsupported statement kind: {type(stmt).__name__}", stmt)

    def _check_value(self, expr, width: int, scope: Dict[str, int], node) -> None:
        """Check an expression that must produce a value of ``width`` bits."""
        if isinstance(expr, Branch):
            self._check_branch(expr, width, scope)
            return
        actual = self._check_expr(expr, scope, width)
        if actual != width:
            raise MalformedInputError(f"Width mismatch: expected u{width}, got u{actual}", node)

    def _check_branch(self, branch: Branch, width: Optional[int], scope: Dict[str, int]) -> None:
        if not isinstance(branch.arms, tuple) or len(branch.arms) == 0:
            raise MalformedInputError("Branch chain needs at least one guarded arm", branch)
        for arm in branch.arms:
            if not isinstance(arm, Arm):
                raise MalformedInputError(f"Unsupported arm kind: {type(arm).__name__}", arm)
            self._check_predicate(arm.guard, scope)
            self._check_block(arm.body, width, scope, branch)
        self._check_block(branch.orelse, width, scope, branch)

    def _check_block(self, block: Block, width: Optional[int], scope: Dict[str, int], branch) -> None:
        if not isinstance(block, Block):
            raise MalformedInputError(f"Unsupported block kind: {type(block).__name__}", block)
        # Arm-local names go out of scope at the join.
        local = dict(scope)
        self._check_stmts(block.stmts, local)
        if width is None:
            # Statement branch: results are discarded but still checked.
            if isinstance(block.result, Branch):
                self._check_branch(block.result, None, local)
            elif block.result is not None:
                self._check_expr(block.result, local, infer_width(block.result, local) or 32)
            return
        if block.result is None:
            raise MalformedInputError("Every arm of a value-producing branch must yield a value", branch)
        self._check_value(block.result, width, local, block)

    def _check_predicate(self, pred, scope: Dict[str, int]) -> None:
        if isinstance(pred, Compare):
            widths: List[Optional[int]] = [infer_width(pred.lhs, scope), infer_width(pred.rhs, scope)]
            known = [w for w in widths if w is not None]
            width = known[0] if known else 32
            lw = self._check_expr(pred.lhs, scope, width)
            rw = self._check_expr(pred.rhs, scope, width)
            if lw != rw:
                raise MalformedInputError(f"Width mismatch in comparison: u{lw} vs u{rw}", pred)
        elif isinstance(pred, BoolOp):
            if len(pred.values) < 2:
                raise MalformedInputError("Boolean operator needs at least two operands", pred)
            for v in pred.values:
                self._check_predicate(v, scope)
        elif isinstance(pred, Not):
            self._check_predicate(pred.operand, scope)
        else:
            raise MalformedInputError(f"Unsupported predicate kind: {type(pred).__name__}", pred)

    def _check_expr(self, expr, scope: Dict[str, int], width: int) -> int:
        """Check an arithmetic expression and return its width."""
        if isinstance(expr, Const):
            if isinstance(expr.value, bool) or not isinstance(expr.value, int):
                raise MalformedInputError(f"Literal must be an integer, got {expr.value!r}", expr)
            if expr.type is not None:
                self._check_type(expr.type, expr)
                width = expr.type.width
            if expr.value < 0 or expr.value >= (1 << width):
                raise MalformedInputError(f"Literal {expr.value} does not fit in u{width}", expr)
            return width
        if isinstance(expr, Ref):
            if expr.name not in scope:
                raise MalformedInputError(f"Variable '{expr.name}' used before declaration", expr)
            return scope[expr.name]
        if isinstance(expr, ArithmeticOp):
            inner = infer_width(expr, scope) or width
            lw = self._check_expr(expr.lhs, scope, inner)
            rw = self._check_expr(expr.rhs, scope, inner)
            if lw != rw:
                raise MalformedInputError(f"Width mismatch in '{expr.op.value}': u{lw} vs u{rw}", expr)
            return lw
        if isinstance(expr, Branch):
            raise MalformedInputError("Branch chains may only initialize a binding or yield an arm value", expr)
        raise MalformedInputError(f"Unsupported expression kind: {type(expr).__name__}", expr)


def validate_program(program: Program) -> None:
    """Raise MalformedInputError if ``program`` cannot be analyzed."""
    ProgramValidator().validate(program)
