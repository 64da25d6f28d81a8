"""
Symbolic value domain for fixed-width unsigned integers.

A SymbolicValue over-approximates the set of concrete values a variable may
hold at a program point. It is one of three variants:

- Empty: no value is possible (the path is infeasible)
- ValueSet: an exact, small set of values
- Interval: unsigned bounds [lo, hi] refined by residue classes, i.e. every
  member x satisfies ``x % modulus in residues``

All arithmetic wraps modulo 2^width. Whenever an operation cannot be computed
exactly in this representation the result is widened to a superset of the
true result, never narrowed.
"""
from __future__ import annotations

from dataclasses import dataclass
from math import gcd
from typing import FrozenSet, Iterable, Iterator, Optional, Tuple
import logging

from ..ir.nodes import CmpOp

logger = logging.getLogger(__name__)

# Operand pairs up to this many combinations are combined element-wise.
_PAIRWISE_LIMIT = 4096


@dataclass(frozen=True)
class SymbolicValue:
    """Base class for all domain values."""
    width: int

    @property
    def max_unsigned(self) -> int:
        return (1 << self.width) - 1

    def is_empty(self) -> bool:
        return False

    def is_top(self) -> bool:
        return False

    def is_singleton(self) -> bool:
        return self.count() == 1

    def count(self) -> int:
        raise NotImplementedError("count not implemented!")

    def contains(self, value: int) -> bool:
        raise NotImplementedError("contains not implemented!")

    def min(self) -> int:
        raise NotImplementedError("min not implemented!")

    def max(self) -> int:
        raise NotImplementedError("max not implemented!")

    def __contains__(self, value: int) -> bool:
        return self.contains(value)


@dataclass(frozen=True)
class Empty(SymbolicValue):
    """Explicit infeasibility marker."""

    def is_empty(self) -> bool:
        return True

    def count(self) -> int:
        return 0

    def contains(self, value: int) -> bool:
        return False

    def min(self) -> int:
        raise ValueError("Empty value has no minimum")

    def max(self) -> int:
        raise ValueError("Empty value has no maximum")

    def __str__(self) -> str:
        return "empty"


@dataclass(frozen=True)
class ValueSet(SymbolicValue):
    values: FrozenSet[int]

    def count(self) -> int:
        return len(self.values)

    def contains(self, value: int) -> bool:
        return value in self.values

    def min(self) -> int:
        return min(self.values)

    def max(self) -> int:
        return max(self.values)

    def __iter__(self) -> Iterator[int]:
        return iter(sorted(self.values))

    def __str__(self) -> str:
        items = sorted(self.values)
        if len(items) > 8:
            head = ", ".join(str(v) for v in items[:4])
            tail = ", ".join(str(v) for v in items[-2:])
            return f"{{{head}, ..., {tail}}} ({len(items)} values)"
        return "{" + ", ".join(str(v) for v in items) + "}"


@dataclass(frozen=True)
class Interval(SymbolicValue):
    """Bounds ``[lo, hi]`` restricted to ``x % modulus in residues``.

    Intervals are kept normalized: ``lo`` and ``hi`` are members, and
    ``modulus == 1`` means no residue information.
    """
    lo: int
    hi: int
    modulus: int = 1
    residues: FrozenSet[int] = frozenset({0})

    def is_top(self) -> bool:
        return self.lo == 0 and self.hi == self.max_unsigned and self.modulus == 1

    def count(self) -> int:
        return sum(_count_class(self.lo, self.hi, self.modulus, r) for r in self.residues)

    def contains(self, value: int) -> bool:
        return self.lo <= value <= self.hi and value % self.modulus in self.residues

    def min(self) -> int:
        return self.lo

    def max(self) -> int:
        return self.hi

    def __str__(self) -> str:
        text = f"[{self.lo}, {self.hi}]"
        if self.modulus > 1:
            res = ", ".join(str(r) for r in sorted(self.residues))
            text += f" mod {self.modulus} in {{{res}}}"
        return text


# --- residue helpers ----------------------------------------------------------

def _count_class(lo: int, hi: int, m: int, r: int) -> int:
    first = lo + ((r - lo) % m)
    if first > hi:
        return 0
    return (hi - first) // m + 1


def _first_at_or_above(x: int, m: int, residues: Iterable[int]) -> int:
    return min(x + ((r - x) % m) for r in residues)


def _last_at_or_below(x: int, m: int, residues: Iterable[int]) -> int:
    return max(x - ((x - r) % m) for r in residues)


def _divisors(n: int) -> Iterator[int]:
    small, large = [], []
    d = 1
    while d * d <= n:
        if n % d == 0:
            small.append(d)
            if d * d != n:
                large.append(n // d)
        d += 1
    yield from small
    yield from reversed(large)


def _reduce_residues(m: int, residues: FrozenSet[int]) -> Tuple[int, FrozenSet[int]]:
    """Rewrite residue classes with the smallest equivalent modulus."""
    if m == 1:
        return 1, frozenset({0})
    for d in _divisors(m):
        if d == m:
            break
        if all((r + d) % m in residues for r in residues):
            return d, frozenset(r % d for r in residues)
    return m, residues


def _expand_residues(m: int, residues: FrozenSet[int], target: int) -> FrozenSet[int]:
    """Express classes mod ``m`` as classes mod ``target`` (a multiple of m)."""
    return frozenset(x for x in range(target) if x % m in residues)


def _lcm(a: int, b: int) -> int:
    return a // gcd(a, b) * b


class ValueDomain:
    """Operations of the symbolic value domain.

    The domain object only carries precision limits; every operation is pure
    and returns a new value.

    Args:
        value_set_limit: Largest set kept exactly as a ValueSet
        modulus_limit: Largest modulus tracked for residue classes
    """

    def __init__(self, value_set_limit: int = 256, modulus_limit: int = 4096):
        self.value_set_limit = value_set_limit
        self.modulus_limit = modulus_limit

    # --- constructors -------------------------------------------------------

    def top(self, width: int) -> SymbolicValue:
        return Interval(width, 0, (1 << width) - 1)

    def empty(self, width: int) -> SymbolicValue:
        return Empty(width)

    def constant(self, value: int, width: int) -> SymbolicValue:
        return ValueSet(width, frozenset({value & ((1 << width) - 1)}))

    def from_values(self, values: Iterable[int], width: int) -> SymbolicValue:
        """Best abstraction of a finite collection of concrete values."""
        mask = (1 << width) - 1
        vals = frozenset(v & mask for v in values)
        if not vals:
            return Empty(width)
        if len(vals) <= self.value_set_limit:
            return ValueSet(width, vals)
        lo = min(vals)
        g = 0
        for v in vals:
            g = gcd(g, v - lo)
        if 1 < g <= self.modulus_limit:
            return self.interval(width, lo, max(vals), g, frozenset({lo % g}))
        logger.debug("precision loss: %d values widened to their hull", len(vals))
        return self.interval(width, lo, max(vals))

    def interval(self, width: int, lo: int, hi: int, modulus: int = 1,
                 residues: Optional[FrozenSet[int]] = None) -> SymbolicValue:
        """Build a normalized interval value.

        Bounds are clamped to the unsigned range, tightened to the nearest
        members of the residue classes, and small results become ValueSets.
        """
        maximum = (1 << width) - 1
        lo = max(lo, 0)
        hi = min(hi, maximum)
        if residues is None or modulus <= 1:
            modulus, residues = 1, frozenset({0})
        residues = frozenset(r % modulus for r in residues)
        if not residues or lo > hi:
            return Empty(width)
        modulus, residues = _reduce_residues(modulus, residues)
        lo = _first_at_or_above(lo, modulus, residues)
        hi = _last_at_or_below(hi, modulus, residues)
        if lo > hi:
            return Empty(width)
        value = Interval(width, lo, hi, modulus, residues)
        if value.count() <= self.value_set_limit:
            return ValueSet(width, frozenset(self._enumerate(value)))
        return value

    def _enumerate(self, value: Interval) -> Iterator[int]:
        for r in value.residues:
            x = value.lo + ((r - value.lo) % value.modulus)
            while x <= value.hi:
                yield x
                x += value.modulus

    def _congruence(self, value: SymbolicValue, hint: int = 1) -> Tuple[int, FrozenSet[int]]:
        """Residue classes describing ``value``.

        For a ValueSet the classes are taken modulo ``hint`` (the modulus of
        the value it is being combined with) when that is useful.
        """
        if isinstance(value, Interval):
            return value.modulus, value.residues
        if isinstance(value, ValueSet):
            if hint > 1:
                return hint, frozenset(v % hint for v in value.values)
            if len(value.values) == 1:
                return 1, frozenset({0})
            lo = min(value.values)
            g = 0
            for v in value.values:
                g = gcd(g, v - lo)
            if 1 < g <= self.modulus_limit:
                return g, frozenset({lo % g})
        return 1, frozenset({0})

    def _common_modulus(self, ma: int, ra: FrozenSet[int], mb: int,
                        rb: FrozenSet[int]) -> Tuple[int, FrozenSet[int], FrozenSet[int]]:
        """Express two congruences over one modulus, coarsening if needed."""
        m = _lcm(ma, mb)
        if m <= self.modulus_limit:
            return m, _expand_residues(ma, ra, m), _expand_residues(mb, rb, m)
        g = gcd(ma, mb)
        logger.debug("precision loss: moduli %d and %d coarsened to %d", ma, mb, g)
        return g, frozenset(r % g for r in ra), frozenset(r % g for r in rb)

    # --- lattice ------------------------------------------------------------

    def union(self, a: SymbolicValue, b: SymbolicValue) -> SymbolicValue:
        """Join: a value containing every member of ``a`` and of ``b``."""
        if a.is_empty():
            return b
        if b.is_empty():
            return a
        if isinstance(a, ValueSet) and isinstance(b, ValueSet):
            return self.from_values(a.values | b.values, a.width)
        ma, ra = self._congruence(a, self._congruence(b)[0])
        mb, rb = self._congruence(b, ma)
        m, ra, rb = self._common_modulus(ma, ra, mb, rb)
        return self.interval(a.width, min(a.min(), b.min()), max(a.max(), b.max()), m, ra | rb)

    def intersect(self, a: SymbolicValue, b: SymbolicValue) -> SymbolicValue:
        if a.is_empty() or b.is_empty():
            return Empty(a.width)
        if isinstance(a, ValueSet):
            return self.from_values((v for v in a.values if b.contains(v)), a.width)
        if isinstance(b, ValueSet):
            return self.from_values((v for v in b.values if a.contains(v)), a.width)
        lo = max(a.lo, b.lo)
        hi = min(a.hi, b.hi)
        m = _lcm(a.modulus, b.modulus)
        if m <= self.modulus_limit:
            residues = frozenset(x for x in range(m)
                                 if x % a.modulus in a.residues and x % b.modulus in b.residues)
            return self.interval(a.width, lo, hi, m, residues)
        # Keep the finer of the two congruences; the other is dropped.
        logger.debug("precision loss: modulus %d exceeds limit on intersection", m)
        keep = a if a.modulus >= b.modulus else b
        return self.interval(a.width, lo, hi, keep.modulus, keep.residues)

    def is_subset(self, a: SymbolicValue, b: SymbolicValue) -> bool:
        """True when every member of ``a`` is known to be in ``b``."""
        if a.is_empty():
            return True
        return self.intersect(a, b) == a

    # --- narrowing ----------------------------------------------------------

    def restrict_range(self, a: SymbolicValue, lo: int, hi: int) -> SymbolicValue:
        if a.is_empty() or lo > hi or hi < 0 or lo > a.max_unsigned:
            return Empty(a.width)
        if isinstance(a, ValueSet):
            return self.from_values((v for v in a.values if lo <= v <= hi), a.width)
        return self.interval(a.width, max(a.lo, lo), min(a.hi, hi), a.modulus, a.residues)

    def restrict_residues(self, a: SymbolicValue, modulus: int, residues: Iterable[int]) -> SymbolicValue:
        """Keep only members ``x`` with ``x % modulus in residues``."""
        residues = frozenset(r for r in residues if 0 <= r < modulus)
        if a.is_empty() or not residues:
            return Empty(a.width)
        if isinstance(a, ValueSet):
            return self.from_values((v for v in a.values if v % modulus in residues), a.width)
        if modulus > self.modulus_limit:
            logger.debug("precision loss: residue constraint mod %d not tracked", modulus)
            return a
        return self.intersect(a, Interval(a.width, 0, a.max_unsigned, modulus, residues))

    def remove(self, a: SymbolicValue, value: int) -> SymbolicValue:
        """Drop a single value (exact for sets and interval endpoints)."""
        if isinstance(a, ValueSet):
            return self.from_values(a.values - {value}, a.width)
        if isinstance(a, Interval):
            if value == a.lo:
                return self.interval(a.width, a.lo + 1, a.hi, a.modulus, a.residues)
            if value == a.hi:
                return self.interval(a.width, a.lo, a.hi - 1, a.modulus, a.residues)
        return a

    # --- arithmetic ---------------------------------------------------------

    def _pairwise(self, a: SymbolicValue, b: SymbolicValue, fn) -> Optional[SymbolicValue]:
        if isinstance(a, ValueSet) and isinstance(b, ValueSet) \
                and len(a.values) * len(b.values) <= _PAIRWISE_LIMIT:
            return self.from_values((fn(x, y) for x in a.values for y in b.values), a.width)
        return None

    def add(self, a: SymbolicValue, b: SymbolicValue) -> SymbolicValue:
        if a.is_empty() or b.is_empty():
            return Empty(a.width)
        modulus = 1 << a.width
        exact = self._pairwise(a, b, lambda x, y: (x + y) % modulus)
        if exact is not None:
            return exact
        g, residues = self._combine_residues(a, b, lambda x, y: x + y)
        lo, hi = a.min() + b.min(), a.max() + b.max()
        return self._wrap(a.width, lo, hi, g, residues)

    def sub(self, a: SymbolicValue, b: SymbolicValue) -> SymbolicValue:
        if a.is_empty() or b.is_empty():
            return Empty(a.width)
        modulus = 1 << a.width
        exact = self._pairwise(a, b, lambda x, y: (x - y) % modulus)
        if exact is not None:
            return exact
        g, residues = self._combine_residues(a, b, lambda x, y: x - y)
        lo, hi = a.min() - b.max(), a.max() - b.min()
        return self._wrap(a.width, lo, hi, g, residues)

    def _combine_residues(self, a: SymbolicValue, b: SymbolicValue, fn) -> Tuple[int, FrozenSet[int]]:
        ma, ra = self._congruence(a)
        mb, rb = self._congruence(b, ma)
        if ma == 1:
            ma, ra = self._congruence(a, mb)
        g = gcd(ma, mb)
        return g, frozenset(fn(x, y) % g for x in ra for y in rb)

    def _wrap(self, width: int, lo: int, hi: int, g: int, residues: FrozenSet[int]) -> SymbolicValue:
        """Reduce the unbounded result range ``[lo, hi]`` modulo 2^width.

        ``residues`` are the classes (mod g) of the unreduced results.
        """
        modulus = 1 << width
        span_lo, span_hi = lo // modulus, hi // modulus
        if span_lo == span_hi:
            shift = span_lo * modulus
            return self.interval(width, lo - shift, hi - shift, g,
                                 frozenset((r - shift) % g for r in residues))
        # The range straddles a wrap boundary: keep only the congruence.
        logger.debug("precision loss: range [%d, %d] wraps at 2^%d", lo, hi, width)
        shifted = set()
        for k in range(span_lo, span_hi + 1):
            shifted.update((r - k * modulus) % g for r in residues)
            if len(shifted) == g:
                break
        return self.interval(width, 0, modulus - 1, g, frozenset(shifted))

    def mul(self, a: SymbolicValue, b: SymbolicValue) -> SymbolicValue:
        if a.is_empty() or b.is_empty():
            return Empty(a.width)
        modulus = 1 << a.width
        exact = self._pairwise(a, b, lambda x, y: (x * y) % modulus)
        if exact is not None:
            return exact
        if b.is_singleton() and not a.is_singleton():
            a, b = b, a
        hi = a.max() * b.max()
        if hi >= modulus:
            logger.debug("precision loss: product may overflow u%d", a.width)
            return self.top(a.width)
        lo = a.min() * b.min()
        if a.is_singleton():
            k = a.min()
            if k == 0:
                return self.constant(0, a.width)
            mb, rb = self._congruence(b)
            if mb * k <= self.modulus_limit:
                return self.interval(a.width, lo, hi, mb * k, frozenset(r * k for r in rb))
            if k <= self.modulus_limit:
                return self.interval(a.width, lo, hi, k, frozenset({0}))
        return self.interval(a.width, lo, hi)

    def div(self, a: SymbolicValue, b: SymbolicValue) -> SymbolicValue:
        """Unsigned division; division by zero yields all ones (bvudiv)."""
        if a.is_empty() or b.is_empty():
            return Empty(a.width)
        maximum = a.max_unsigned
        exact = self._pairwise(a, b, lambda x, y: x // y if y else maximum)
        if exact is not None:
            return exact
        nonzero = self.restrict_range(b, 1, maximum)
        result: SymbolicValue = Empty(a.width)
        if not nonzero.is_empty():
            result = self.interval(a.width, a.min() // nonzero.max(), a.max() // nonzero.min())
        if b.contains(0):
            result = self.union(result, self.constant(maximum, a.width))
        return result

    def apply_modulo(self, a: SymbolicValue, b: SymbolicValue) -> SymbolicValue:
        """Unsigned remainder; ``x % 0 == x`` (bvurem).

        An unconstrained dividend modulo a constant m yields exactly
        ``[0, m-1]``; residue classes of the dividend carry over whenever
        their modulus is a multiple of m.
        """
        if a.is_empty() or b.is_empty():
            return Empty(a.width)
        exact = self._pairwise(a, b, lambda x, y: x % y if y else x)
        if exact is not None:
            return exact
        nonzero = self.restrict_range(b, 1, a.max_unsigned)
        result: SymbolicValue = Empty(a.width)
        if not nonzero.is_empty():
            if nonzero.is_singleton():
                result = self._mod_constant(a, nonzero.min())
            else:
                result = self.interval(a.width, 0, min(nonzero.max() - 1, a.max()))
        if b.contains(0):
            result = self.union(result, a)
        return result

    def _mod_constant(self, a: SymbolicValue, m: int) -> SymbolicValue:
        if isinstance(a, ValueSet):
            return self.from_values((v % m for v in a.values), a.width)
        if a.hi < m:
            return a
        if a.lo // m == a.hi // m:
            shift = (a.lo // m) * m
            return self.interval(a.width, a.lo - shift, a.hi - shift, a.modulus,
                                 frozenset((r - shift) % a.modulus for r in a.residues))
        if a.modulus % m == 0:
            return self.from_values((r % m for r in a.residues), a.width)
        g = gcd(a.modulus, m)
        return self.interval(a.width, 0, m - 1, g, frozenset(r % g for r in a.residues))

    # --- comparisons --------------------------------------------------------

    def compare_narrow(self, op, lhs: SymbolicValue, rhs: SymbolicValue) -> Tuple[SymbolicValue, SymbolicValue]:
        """Restrict both operands to the values that can satisfy ``lhs op rhs``.

        Args:
            op: CmpOp
            lhs: Left operand value
            rhs: Right operand value

        Returns:
            Narrowed (lhs, rhs); either is Empty when the comparison cannot hold
        """
        if lhs.is_empty() or rhs.is_empty():
            return Empty(lhs.width), Empty(rhs.width)
        maximum = lhs.max_unsigned
        if op is CmpOp.EQ:
            both = self.intersect(lhs, rhs)
            return both, both
        if op is CmpOp.NE:
            if lhs.is_singleton() and rhs.is_singleton() and lhs.min() == rhs.min():
                return Empty(lhs.width), Empty(rhs.width)
            new_lhs = self.remove(lhs, rhs.min()) if rhs.is_singleton() else lhs
            new_rhs = self.remove(rhs, lhs.min()) if lhs.is_singleton() else rhs
            return new_lhs, new_rhs
        if op is CmpOp.GT or op is CmpOp.GE:
            new_rhs, new_lhs = self.compare_narrow(op.swap(), rhs, lhs)
            return new_lhs, new_rhs
        strict = 1 if op is CmpOp.LT else 0
        new_lhs = self.restrict_range(lhs, 0, rhs.max() - strict)
        if new_lhs.is_empty():
            return new_lhs, Empty(rhs.width)
        new_rhs = self.restrict_range(rhs, new_lhs.min() + strict, maximum)
        if new_rhs.is_empty():
            return Empty(lhs.width), new_rhs
        return new_lhs, new_rhs
