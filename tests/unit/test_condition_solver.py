"""
Tests for guard decisions.
"""
from conftest import binop, cmp
from bvassert.domain import Binding, Environment, Narrower
from bvassert.ir import Variable
from bvassert.solver import ConditionSolver, GuardOutcome


def _setup():
    narrower = Narrower()
    env = Environment().bind(Binding(Variable("a"), narrower.domain.top(32)))
    return ConditionSolver(narrower), narrower, env


def test_unconstrained_guard_forks():
    """Test that a guard over a free variable can go both ways."""
    solver, _, env = _setup()
    decision = solver.decide(cmp(">", "a", 100), env)
    assert decision.outcome is GuardOutcome.MAYBE_BOTH
    assert decision.when_true.value("a").min() == 101
    assert decision.when_false.value("a").max() == 100


def test_guard_implied_by_path_is_always_true():
    """Test that a % 3 == 1 makes a > 0 always true."""
    solver, narrower, env = _setup()
    env = narrower.narrow(cmp("==", binop("%", "a", 3), 1), True, env)
    decision = solver.decide(cmp(">", "a", 0), env)
    assert decision.outcome is GuardOutcome.ALWAYS_TRUE
    assert decision.when_false is None


def test_guard_contradicting_path_is_always_false():
    """Test that a < 10 makes a > 100 always false."""
    solver, narrower, env = _setup()
    env = narrower.narrow(cmp("<", "a", 10), True, env)
    decision = solver.decide(cmp(">", "a", 100), env)
    assert decision.outcome is GuardOutcome.ALWAYS_FALSE
    assert decision.when_true is None
    assert decision.when_false == env


def test_exhausted_modulo_chain_is_always_true():
    """Test that the last residue class is forced after the other two fail."""
    solver, narrower, env = _setup()
    rem = binop("%", "a", 3)
    env = narrower.narrow(cmp("==", rem, 0), False, env)
    env = narrower.narrow(cmp("==", rem, 1), False, env)
    decision = solver.decide(cmp("==", rem, 2), env)
    assert decision.outcome is GuardOutcome.ALWAYS_TRUE
