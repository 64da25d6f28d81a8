"""
Tests for the symbolic value domain.
"""
import random

import pytest

from bvassert.domain import Empty, Interval, ValueDomain, ValueSet
from bvassert.ir import CmpOp

MAX32 = 0xFFFFFFFF


def test_top_and_constant():
    """Test the basic constructors."""
    d = ValueDomain()

    top = d.top(32)
    assert top.is_top()
    assert top.min() == 0
    assert top.max() == MAX32

    c = d.constant(7, 32)
    assert isinstance(c, ValueSet)
    assert c.is_singleton()
    assert 7 in c

    assert d.constant(2 ** 32 + 3, 32).contains(3)


def test_empty_has_no_bounds():
    """Test that Empty is the explicit infeasibility marker."""
    e = ValueDomain().empty(32)
    assert e.is_empty()
    assert e.count() == 0
    assert not e.contains(0)
    with pytest.raises(ValueError):
        e.min()


def test_modulo_of_unconstrained_is_exact():
    """Test that top % m is exactly [0, m-1]."""
    d = ValueDomain()
    result = d.apply_modulo(d.top(32), d.constant(3, 32))
    assert result == ValueSet(32, frozenset({0, 1, 2}))


def test_modulo_keeps_residue_classes():
    """Test that residue classes mod a multiple of m survive the remainder."""
    d = ValueDomain()
    a = d.restrict_residues(d.top(32), 3, [2])
    assert isinstance(a, Interval)
    assert not a.contains(3)
    assert a.contains(5)
    assert d.apply_modulo(a, d.constant(3, 32)) == ValueSet(32, frozenset({2}))


def test_modulo_and_division_by_zero():
    """Test bvurem / bvudiv semantics for a zero divisor."""
    d = ValueDomain()
    zero = d.constant(0, 32)
    x = d.from_values([5, 9], 32)
    assert d.apply_modulo(x, zero) == x
    assert d.div(d.constant(10, 32), zero) == d.constant(MAX32, 32)


def test_add_sub_wrap():
    """Test that arithmetic wraps at the width."""
    d = ValueDomain()
    assert d.add(d.constant(MAX32, 32), d.constant(1, 32)) == d.constant(0, 32)
    assert d.sub(d.constant(0, 32), d.constant(1, 32)) == d.constant(MAX32, 32)


def test_add_interval_constant():
    """Test shifting an interval by a constant."""
    d = ValueDomain()
    a = d.interval(32, 0, 1000)
    result = d.add(a, d.constant(101, 32))
    assert result.min() == 101
    assert result.max() == 1101


def test_add_overflowing_interval_widens():
    """Test that a sum straddling 2^32 widens to the full range."""
    d = ValueDomain()
    result = d.add(d.top(32), d.constant(1, 32))
    assert result.is_top()


def test_mul_small_set_is_exact():
    """Test that products of small sets are computed element-wise."""
    d = ValueDomain()
    c = d.interval(32, 10, 100)
    result = d.mul(c, d.constant(11, 32))
    assert result.count() == 91
    assert result.min() == 110
    assert result.max() == 1100
    assert not result.contains(111)


def test_mul_possible_overflow_is_top():
    """Test that a product that may overflow widens instead of truncating."""
    d = ValueDomain()
    assert d.mul(d.top(32), d.constant(2, 32)).is_top()


def test_union_and_intersect():
    """Test lattice operations."""
    d = ValueDomain()
    u = d.union(d.union(d.constant(0, 32), d.constant(1, 32)), d.constant(2, 32))
    assert u == ValueSet(32, frozenset({0, 1, 2}))

    hi = d.interval(32, 101, MAX32)
    joined = d.union(hi, d.from_values(range(101, 111), 32))
    assert joined.min() == 101
    assert joined.max() == MAX32

    assert d.intersect(d.interval(32, 0, 10), d.interval(32, 20, 30)).is_empty()
    assert d.is_subset(d.constant(5, 32), d.interval(32, 0, 10))
    assert not d.is_subset(d.constant(50, 32), d.interval(32, 0, 10))


def test_from_values_keeps_stride():
    """Test that a large arithmetic progression keeps its congruence."""
    d = ValueDomain()
    v = d.from_values(range(0, 3000, 3), 32)
    assert isinstance(v, Interval)
    assert v.contains(3)
    assert not v.contains(4)
    assert v.max() == 2997


def test_compare_narrow():
    """Test restriction of both operands by a comparison."""
    d = ValueDomain()
    lhs, rhs = d.compare_narrow(CmpOp.LT, d.top(32), d.constant(10, 32))
    assert lhs == d.interval(32, 0, 9)
    assert rhs == d.constant(10, 32)

    lhs, _ = d.compare_narrow(CmpOp.GT, d.top(32), d.constant(100, 32))
    assert lhs.min() == 101
    assert lhs.max() == MAX32

    lhs, rhs = d.compare_narrow(CmpOp.NE, d.constant(4, 32), d.constant(4, 32))
    assert lhs.is_empty() and rhs.is_empty()

    lhs, _ = d.compare_narrow(CmpOp.LT, d.top(32), d.constant(0, 32))
    assert lhs.is_empty()


def _random_value(rng, d, width):
    lo = rng.randrange(0, 1 << width)
    hi = rng.randrange(lo, 1 << width)
    m = rng.choice([1, 2, 3, 4, 6])
    residues = frozenset(rng.sample(range(m), rng.randint(1, m)))
    return d.interval(width, lo, hi, m, residues)


def _members(v, width):
    return [x for x in range(1 << width) if v.contains(x)]


_CONCRETE = {
    "add": lambda x, y, mask: (x + y) & mask,
    "sub": lambda x, y, mask: (x - y) & mask,
    "mul": lambda x, y, mask: (x * y) & mask,
    "div": lambda x, y, mask: x // y if y else mask,
    "apply_modulo": lambda x, y, mask: x % y if y else x,
}


@pytest.mark.parametrize("op", sorted(_CONCRETE))
def test_arithmetic_never_under_approximates(op):
    """Sample operands and check every concrete result is contained."""
    width = 8
    mask = (1 << width) - 1
    d = ValueDomain(value_set_limit=4, modulus_limit=64)
    rng = random.Random(1234)
    for _ in range(60):
        a = _random_value(rng, d, width)
        b = _random_value(rng, d, width)
        if a.is_empty() or b.is_empty():
            continue
        result = getattr(d, op)(a, b)
        xs, ys = _members(a, width), _members(b, width)
        for _ in range(40):
            x, y = rng.choice(xs), rng.choice(ys)
            assert result.contains(_CONCRETE[op](x, y, mask)), (op, a, b, x, y, result)


def test_lattice_never_under_approximates():
    """Check union contains both operands and intersect keeps common members."""
    width = 8
    d = ValueDomain(value_set_limit=4, modulus_limit=64)
    rng = random.Random(99)
    for _ in range(60):
        a = _random_value(rng, d, width)
        b = _random_value(rng, d, width)
        u = d.union(a, b)
        i = d.intersect(a, b)
        for x in range(1 << width):
            if a.contains(x) or b.contains(x):
                assert u.contains(x)
            if a.contains(x) and b.contains(x):
                assert i.contains(x)


@pytest.mark.parametrize("op", list(CmpOp))
def test_compare_narrow_keeps_satisfying_pairs(op):
    """Every pair satisfying the comparison survives narrowing."""
    width = 8
    d = ValueDomain(value_set_limit=4, modulus_limit=64)
    rng = random.Random(7)
    for _ in range(40):
        a = _random_value(rng, d, width)
        b = _random_value(rng, d, width)
        if a.is_empty() or b.is_empty():
            continue
        new_a, new_b = d.compare_narrow(op, a, b)
        xs, ys = _members(a, width), _members(b, width)
        for _ in range(60):
            x, y = rng.choice(xs), rng.choice(ys)
            if op.evaluate(x, y):
                assert new_a.contains(x) and new_b.contains(y), (op, a, b, x, y)
