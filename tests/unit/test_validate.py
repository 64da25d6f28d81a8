"""
Tests for program validation.
"""
import pytest

from conftest import binop, cmp
from bvassert.errors import MalformedInputError
from bvassert.ir import (
    Arm, Assert, Block, Branch, Compare, CmpOp, Const, Declare, IntType, Let,
    Program, Ref, Variable, validate_program,
)


def _program(*stmts):
    return Program(tuple(stmts))


def test_fixture_programs_are_valid(if_elseif_else_program, violated_program):
    """Test that the shared fixtures pass validation."""
    validate_program(if_elseif_else_program)
    validate_program(violated_program)


def test_sibling_arms_may_reuse_names():
    """Test that arm-local names go out of scope at the join."""
    chain = Branch(
        (Arm(cmp("<", "a", 5), Block((Declare(Variable("t")),), Ref("t"))),),
        Block((Declare(Variable("t")),), Ref("t")),
    )
    validate_program(_program(Declare(Variable("a")), Let("b", chain)))


@pytest.mark.parametrize("program", [
    _program(Declare(Variable("a", IntType(32, signed=True)))),
    _program(Declare(Variable("a", IntType(0)))),
    _program(Declare(Variable("a", IntType(128)))),
    _program(Declare(Variable("a")), Declare(Variable("a"))),
    _program(Declare(Variable(""))),
    _program(Declare(Variable("t#1"))),
    _program(Declare(Variable("1t"))),
    _program(Let("b", Ref("a"))),
    _program(Declare(Variable("a")), Assert(cmp("<", "a", 1), "s"), Assert(cmp("<", "a", 2), "s")),
    _program(Declare(Variable("a")), Assert(cmp("<", "a", 1), "")),
    _program(Declare(Variable("a")), Let("b", Branch((), Block((), Const(0))))),
    _program(Declare(Variable("a")), Let("b", Branch((Arm(cmp("<", "a", 1), Block()),), Block((), Const(0))))),
    _program(Declare(Variable("a", IntType(8))), Let("b", Ref("a"))),
    _program(Declare(Variable("a", IntType(8))), Declare(Variable("c")), Assert(cmp("<", "a", "c"), "s")),
    _program(Declare(Variable("a", IntType(8))), Assert(cmp("<", "a", 256), "s")),
    _program(Declare(Variable("a")), Assert(cmp("<", "a", -1), "s")),
    _program(Declare(Variable("a")), Assert(Compare(CmpOp.LT, Ref("a"), Const(1.5)), "s")),
    _program(Declare(Variable("a")), Let("b", binop("+", "a", Branch((), Block())))),
    _program("not a statement"),
    "not a program",
])
def test_malformed_programs(program):
    """Test that unsupported constructs raise MalformedInputError."""
    with pytest.raises(MalformedInputError):
        validate_program(program)


def test_use_after_scope_is_rejected():
    """Test that an arm-local name is not visible after the chain."""
    chain = Branch(
        (Arm(cmp("<", "a", 5), Block((Declare(Variable("t")),), Const(0))),),
        Block((), Const(1)),
    )
    program = _program(Declare(Variable("a")), Let("b", chain), Assert(cmp("<", "t", 1), "s"))
    with pytest.raises(MalformedInputError):
        validate_program(program)


def test_error_carries_node():
    """Test that the offending node is attached to the error."""
    stmt = Let("b", Ref("missing"))
    with pytest.raises(MalformedInputError) as exc_info:
        validate_program(_program(stmt))
    assert exc_info.value.node == Ref("missing")
    assert isinstance(exc_info.value, ValueError)
