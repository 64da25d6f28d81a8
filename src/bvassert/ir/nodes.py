"""
IR node definitions for the verifier input tree.

The tree is produced by an external front-end. Every integer-typed operand
carries its declared bit width and signedness; statements and expressions are
immutable so they can be shared freely between exploration paths.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple, Union


class InitState(Enum):
    """Initialization state of a variable."""
    UNCONSTRAINED = "unconstrained"
    DERIVED = "derived"


class ArithOp(Enum):
    """Unsigned wrap-around arithmetic operators."""
    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"
    MOD = "%"


class CmpOp(Enum):
    """Unsigned comparison operators."""
    EQ = "=="
    NE = "!="
    LT = "<"
    LE = "<="
    GT = ">"
    GE = ">="

    def negate(self) -> "CmpOp":
        return _CMP_NEGATION[self]

    def swap(self) -> "CmpOp":
        """Operator with operands exchanged (``a < b`` is ``b > a``)."""
        return _CMP_SWAP[self]

    def evaluate(self, lhs: int, rhs: int) -> bool:
        if self is CmpOp.EQ:
            return lhs == rhs
        if self is CmpOp.NE:
            return lhs != rhs
        if self is CmpOp.LT:
            return lhs < rhs
        if self is CmpOp.LE:
            return lhs <= rhs
        if self is CmpOp.GT:
            return lhs > rhs
        return lhs >= rhs


_CMP_NEGATION = {
    CmpOp.EQ: CmpOp.NE,
    CmpOp.NE: CmpOp.EQ,
    CmpOp.LT: CmpOp.GE,
    CmpOp.LE: CmpOp.GT,
    CmpOp.GT: CmpOp.LE,
    CmpOp.GE: CmpOp.LT,
}

_CMP_SWAP = {
    CmpOp.EQ: CmpOp.EQ,
    CmpOp.NE: CmpOp.NE,
    CmpOp.LT: CmpOp.GT,
    CmpOp.LE: CmpOp.GE,
    CmpOp.GT: CmpOp.LT,
    CmpOp.GE: CmpOp.LE,
}


class BoolOpKind(Enum):
    AND = "and"
    OR = "or"


@dataclass(frozen=True)
class IntType:
    """Fixed-width integer type.

    Attributes:
        width: Bit width (1..64)
        signed: Declared signedness (only unsigned is analyzable)
    """
    width: int = 32
    signed: bool = False

    @property
    def modulus(self) -> int:
        return 1 << self.width

    @property
    def max_value(self) -> int:
        return (1 << self.width) - 1

    def __str__(self) -> str:
        return f"{'i' if self.signed else 'u'}{self.width}"


U32 = IntType(32, False)


@dataclass(frozen=True)
class Variable:
    """A declared program variable."""
    name: str
    type: IntType = U32
    init: InitState = InitState.UNCONSTRAINED

    @property
    def width(self) -> int:
        return self.type.width

    @property
    def signed(self) -> bool:
        return self.type.signed


# --- Expressions ------------------------------------------------------------

@dataclass(frozen=True)
class Const:
    """Integer literal.

    A literal without a type takes the width of the operand it is combined
    with (or of the binding it initializes).
    """
    value: int
    type: Optional[IntType] = None


@dataclass(frozen=True)
class Ref:
    """Reference to a declared variable."""
    name: str


@dataclass(frozen=True)
class ArithmeticOp:
    op: ArithOp
    lhs: "Expr"
    rhs: "Expr"


@dataclass(frozen=True)
class Block:
    """Statements followed by an optional result expression."""
    stmts: Tuple["Stmt", ...] = ()
    result: Optional["Expr"] = None


@dataclass(frozen=True)
class Arm:
    guard: "Predicate"
    body: Block


@dataclass(frozen=True)
class Branch:
    """An if / else-if / else chain.

    Used as an expression, each arm's block yields the arm's value. Used as a
    statement, block results are ignored.
    """
    arms: Tuple[Arm, ...]
    orelse: Block = field(default_factory=Block)


Expr = Union[Const, Ref, ArithmeticOp, Branch]


# --- Predicates -------------------------------------------------------------

@dataclass(frozen=True)
class Compare:
    op: CmpOp
    lhs: Expr
    rhs: Expr


@dataclass(frozen=True)
class BoolOp:
    op: BoolOpKind
    values: Tuple["Predicate", ...]


@dataclass(frozen=True)
class Not:
    operand: "Predicate"


Predicate = Union[Compare, BoolOp, Not]


# --- Statements -------------------------------------------------------------

@dataclass(frozen=True)
class Declare:
    """Declaration without initializer, e.g. ``let a: u32;``."""
    var: Variable


@dataclass(frozen=True)
class Let:
    """Binding of a derived variable to an expression or branch chain."""
    name: str
    value: Expr
    type: IntType = U32

    @property
    def var(self) -> Variable:
        return Variable(self.name, self.type, InitState.DERIVED)


@dataclass(frozen=True)
class Assert:
    predicate: Predicate
    site: str


Stmt = Union[Declare, Let, Assert, Branch]


@dataclass(frozen=True)
class Program:
    """Root of the input tree."""
    body: Tuple[Stmt, ...]
    name: str = "program"

    def assertion_sites(self) -> Tuple[str, ...]:
        """Site ids in program order."""
        return tuple(a.site for a in iter_asserts(self.body))


def iter_asserts(stmts):
    """Yield every Assert node under ``stmts`` in program order."""
    for stmt in stmts:
        if isinstance(stmt, Assert):
            yield stmt
        elif isinstance(stmt, Let):
            yield from _iter_expr_asserts(stmt.value)
        elif isinstance(stmt, Branch):
            yield from _iter_expr_asserts(stmt)


def _iter_expr_asserts(expr):
    if isinstance(expr, Branch):
        for arm in expr.arms:
            yield from _iter_block_asserts(arm.body)
        yield from _iter_block_asserts(expr.orelse)


def _iter_block_asserts(block: Block):
    yield from iter_asserts(block.stmts)
    if block.result is not None:
        yield from _iter_expr_asserts(block.result)


def expr_refs(expr) -> frozenset:
    """Names of variables referenced by an expression or predicate."""
    if isinstance(expr, Ref):
        return frozenset((expr.name,))
    if isinstance(expr, Const):
        return frozenset()
    if isinstance(expr, ArithmeticOp):
        return expr_refs(expr.lhs) | expr_refs(expr.rhs)
    if isinstance(expr, Compare):
        return expr_refs(expr.lhs) | expr_refs(expr.rhs)
    if isinstance(expr, BoolOp):
        out = frozenset()
        for v in expr.values:
            out |= expr_refs(v)
        return out
    if isinstance(expr, Not):
        return expr_refs(expr.operand)
    return frozenset()


def infer_width(expr, widths) -> Optional[int]:
    """Width of an arithmetic expression, or None for untyped literals.

    Args:
        expr: Arithmetic expression
        widths: Mapping from variable name to declared width
    """
    if isinstance(expr, Const):
        return expr.type.width if expr.type is not None else None
    if isinstance(expr, Ref):
        return widths.get(expr.name)
    if isinstance(expr, ArithmeticOp):
        lw = infer_width(expr.lhs, widths)
        return lw if lw is not None else infer_width(expr.rhs, widths)
    return None
