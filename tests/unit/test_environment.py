"""
Tests for environments and guard narrowing.
"""
import pytest

from conftest import binop, cmp
from bvassert.domain import Binding, Environment, Narrower, ValueDomain
from bvassert.errors import MalformedInputError
from bvassert.ir import BoolOp, BoolOpKind, Branch, Arm, Block, Const, InitState, Not, Ref, Variable

MAX32 = 0xFFFFFFFF


def _env(narrower, **derived):
    """Environment with a free ``a`` plus derived bindings name=expr."""
    env = Environment().bind(Binding(Variable("a"), narrower.domain.top(32)))
    for name, expr in derived.items():
        value = narrower.evaluate(expr, env, 32)
        env = env.bind(Binding(Variable(name, init=InitState.DERIVED), value, definition=expr))
    return env


def test_modulo_guard_refines_residues():
    """Test that a % 3 == 0 leaves a in its residue class."""
    n = Narrower()
    env = n.narrow(cmp("==", binop("%", "a", 3), 0), True, _env(n))
    a = env.value("a")
    assert a.contains(0)
    assert a.contains(3)
    assert not a.contains(4)
    assert a.max() == MAX32 - (MAX32 % 3)


def test_failed_guards_accumulate():
    """Test that two failed modulo guards leave only the third class."""
    n = Narrower()
    env = _env(n)
    env = n.narrow(cmp("==", binop("%", "a", 3), 0), False, env)
    env = n.narrow(cmp("==", binop("%", "a", 3), 1), False, env)
    a = env.value("a")
    assert a.min() == 2
    assert a.contains(5)
    assert not a.contains(3)
    assert not a.contains(4)


def test_outer_and_inner_guards_combine():
    """Test that a % 3 == 1 together with a <= 0 is infeasible."""
    n = Narrower()
    env = n.narrow(cmp("==", binop("%", "a", 3), 1), True, _env(n))
    assert n.narrow(cmp(">", "a", 0), False, env) is None


def test_backward_through_definition_with_wrap():
    """Test x = a + 5 with x < 10 gives a in {0..4} or the top five values."""
    n = Narrower()
    env = _env(n, x=binop("+", "a", 5))
    env = n.narrow(cmp("<", "x", 10), True, env)
    a = env.value("a")
    assert a.count() == 10
    assert a.contains(0) and a.contains(4)
    assert a.contains(MAX32) and a.contains(MAX32 - 4)
    assert not a.contains(5)


def test_backward_through_scaled_definition():
    """Test y = a * 3 with a <= 100 and y < 30 gives a in [0, 9]."""
    n = Narrower()
    env = n.narrow(cmp("<=", "a", 100), True, _env(n))
    expr = binop("*", "a", 3)
    env = env.bind(Binding(Variable("y", init=InitState.DERIVED), n.evaluate(expr, env, 32), definition=expr))
    env = n.narrow(cmp("<", "y", 30), True, env)
    assert env.value("a") == n.domain.interval(32, 0, 9)


def test_dependents_are_rederived():
    """Test that narrowing an input tightens a derived variable."""
    n = Narrower()
    env = _env(n, y=binop("*", "a", 2))
    assert env.value("y").is_top()
    env = n.narrow(cmp("<", "a", 4), True, env)
    assert env.value("y") == n.domain.from_values([0, 2, 4, 6], 32)


def test_boolean_combinations():
    """Test and / or / not narrowing."""
    n = Narrower()
    base = _env(n)

    either = BoolOp(BoolOpKind.OR, (cmp("==", "a", 1), cmp("==", "a", 3)))
    assert n.narrow(either, True, base).value("a") == n.domain.from_values([1, 3], 32)

    both = BoolOp(BoolOpKind.AND, (cmp("<", "a", 5), cmp(">", "a", 10)))
    assert n.narrow(both, True, base) is None
    # not (a < 5 and a > 10) always holds
    assert n.narrow(both, False, base) is not None

    negated = n.narrow(Not(cmp("<", "a", 5)), True, base)
    assert negated.value("a").min() == 5


def test_narrowing_does_not_modify_input():
    """Test that environments are immutable."""
    n = Narrower()
    base = _env(n)
    narrowed = n.narrow(cmp("<", "a", 5), True, base)
    assert base.value("a").is_top()
    assert narrowed.value("a").max() == 4
    assert narrowed != base


def test_join_is_pointwise_union():
    """Test joining two narrowed environments."""
    n = Narrower()
    base = _env(n)
    low = n.narrow(cmp("==", "a", 1), True, base)
    high = n.narrow(cmp("==", "a", 7), True, base)
    joined = n.join(low, high)
    assert joined.value("a") == n.domain.from_values([1, 7], 32)


def test_free_variables():
    """Test that only unconstrained variables count as free."""
    n = Narrower()
    env = _env(n, y=binop("+", "a", 1))
    assert env.free_variables() == ["a"]
    assert env.widths() == {"a": 32, "y": 32}


def test_evaluate_rejects_branch_and_unknown_names():
    """Test that only plain arithmetic can be evaluated."""
    n = Narrower()
    env = _env(n)
    chain = Branch((Arm(cmp("<", "a", 1), Block((), Const(0))),), Block((), Const(1)))
    with pytest.raises(MalformedInputError):
        n.evaluate(chain, env, 32)
    with pytest.raises(MalformedInputError):
        n.evaluate(Ref("missing"), env, 32)


def test_value_domain_limits_are_honoured():
    """Test that a small value_set_limit keeps sets as intervals."""
    n = Narrower(ValueDomain(value_set_limit=4))
    env = n.narrow(cmp("<", "a", 100), True, _env(n))
    assert env.value("a").count() == 100
    assert env.value("a").max() == 99
