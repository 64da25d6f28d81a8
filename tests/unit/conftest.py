"""
Pytest configuration and fixtures for bvassert tests.
"""
import sys
from pathlib import Path

import pytest

# Add src to path for imports
src_path = Path(__file__).parent.parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from bvassert.ir import (  # noqa: E402
    Arm, ArithOp, ArithmeticOp, Assert, Block, Branch, CmpOp, Compare, Const,
    Declare, Let, Program, Ref, Variable,
)


def cmp(op, lhs, rhs):
    """Shorthand for a comparison; ints become literals and strs references."""
    return Compare(CmpOp(op), _operand(lhs), _operand(rhs))


def binop(op, lhs, rhs):
    return ArithmeticOp(ArithOp(op), _operand(lhs), _operand(rhs))


def _operand(x):
    if isinstance(x, int):
        return Const(x)
    if isinstance(x, str):
        return Ref(x)
    return x


def modulo_chain(tail_assert=("b_lt_3", "<", 3)):
    """``b`` bound to a chain over ``a % 3`` with an assertion in every arm."""
    site, op, bound = tail_assert
    return (
        Declare(Variable("a")),
        Let("b", Branch(
            arms=(
                Arm(cmp("==", binop("%", "a", 3), 0),
                    Block((Assert(cmp("!=", "a", 5), "a_ne_5"),), Const(0))),
                Arm(cmp("==", binop("%", "a", 3), 1),
                    Block((Assert(cmp(">", "a", 0), "a_gt_0"),), Const(1))),
            ),
            orelse=Block((Assert(cmp(">", "a", 1), "a_gt_1"),), Const(2)),
        )),
        Assert(cmp(op, "b", bound), site),
    )


def range_chain():
    """``d`` bound to a chain over ranges of ``c``; every arm yields d > 100."""
    return (
        Declare(Variable("c")),
        Let("d", Branch(
            arms=(
                Arm(cmp(">", "c", 100), Block((), Ref("c"))),
                Arm(cmp("<", "c", 10), Block((), binop("+", "c", 101))),
            ),
            orelse=Block((), binop("*", "c", 11)),
        )),
        Assert(cmp(">", "d", 100), "d_gt_100"),
    )


@pytest.fixture
def if_elseif_else_program():
    """Both chains of the if / else-if / else returning-value regression."""
    return Program(modulo_chain() + range_chain(), name="if_elseif_else_returning")


@pytest.fixture
def modulo_program():
    return Program(modulo_chain(), name="modulo")


@pytest.fixture
def violated_program():
    """Same as the modulo chain but asserting ``b < 2`` after the join."""
    return Program(modulo_chain(("b_lt_2", "<", 2)), name="modulo_violated")


@pytest.fixture
def range_program():
    return Program(range_chain(), name="range")


@pytest.fixture
def fixture_json():
    """JSON rendering of the modulo chain."""
    def arm(rem, site, pred, result):
        return {
            "guard": {"kind": "cmp", "op": "==",
                      "lhs": {"kind": "binop", "op": "%", "lhs": "a", "rhs": 3}, "rhs": rem},
            "body": [{"kind": "assert", "site": site, "predicate": pred}],
            "result": result,
        }
    return {
        "name": "modulo_json",
        "body": [
            {"kind": "declare", "name": "a", "type": "u32"},
            {"kind": "let", "name": "b", "type": "u32", "value": {
                "kind": "if",
                "arms": [
                    arm(0, "a_ne_5", {"kind": "cmp", "op": "!=", "lhs": "a", "rhs": 5}, 0),
                    arm(1, "a_gt_0", {"kind": "cmp", "op": ">", "lhs": "a", "rhs": 0}, 1),
                ],
                "else": {"body": [{"kind": "assert", "site": "a_gt_1",
                                   "predicate": {"kind": "cmp", "op": ">", "lhs": "a", "rhs": 1}}],
                         "result": 2},
            }},
            {"kind": "assert", "site": "b_lt_3",
             "predicate": {"kind": "cmp", "op": "<", "lhs": "b", "rhs": 3}},
        ],
    }
