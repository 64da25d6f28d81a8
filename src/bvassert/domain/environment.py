"""
Variable environments and guard narrowing.

An Environment maps each variable in scope to its Binding: the declared
variable, its current SymbolicValue and, for derived variables, the
expression that defines it. Environments are immutable; narrowing returns a
new environment (or None when the guard cannot hold) and never modifies the
one it was given, so sibling exploration paths can share ancestors safely.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, Iterator, List, Mapping, Optional, Tuple
import logging

from ..errors import MalformedInputError
from ..ir.nodes import (
    ArithOp, ArithmeticOp, BoolOp, BoolOpKind, Branch, Compare, Const, InitState,
    Not, Ref, Variable, infer_width,
)
from .symbolic_value import SymbolicValue, ValueDomain

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Binding:
    """Current knowledge about one variable.

    Attributes:
        var: Declared variable
        value: Set of values the variable may hold
        definition: Arithmetic expression the variable was bound to, if any
        origins: Leaf environments of the branch chain that produced the
            value (join bindings only); used to build witnesses
    """
    var: Variable
    value: SymbolicValue
    definition: Optional[object] = None
    origins: Tuple["Environment", ...] = ()

    @property
    def is_free(self) -> bool:
        return self.var.init is InitState.UNCONSTRAINED


class Environment:
    """Immutable mapping from variable name to Binding, in declaration order."""

    __slots__ = ("_bindings",)

    def __init__(self, bindings: Optional[Mapping[str, Binding]] = None):
        self._bindings: Dict[str, Binding] = dict(bindings or {})

    def __contains__(self, name: str) -> bool:
        return name in self._bindings

    def __getitem__(self, name: str) -> Binding:
        return self._bindings[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._bindings)

    def __len__(self) -> int:
        return len(self._bindings)

    def __eq__(self, other) -> bool:
        return isinstance(other, Environment) and self._bindings == other._bindings

    def __hash__(self):
        return hash(tuple(self._bindings.items()))

    def __repr__(self) -> str:
        inner = ", ".join(f"{n}: {b.value}" for n, b in self._bindings.items())
        return f"Environment({inner})"

    def get(self, name: str) -> Optional[Binding]:
        return self._bindings.get(name)

    def value(self, name: str) -> SymbolicValue:
        if name not in self._bindings:
            raise MalformedInputError(f"Variable '{name}' used before declaration")
        return self._bindings[name].value

    def widths(self) -> Dict[str, int]:
        return {n: b.var.width for n, b in self._bindings.items()}

    def bind(self, binding: Binding) -> "Environment":
        bindings = dict(self._bindings)
        bindings[binding.var.name] = binding
        return Environment(bindings)

    def with_value(self, name: str, value: SymbolicValue) -> "Environment":
        bindings = dict(self._bindings)
        bindings[name] = replace(bindings[name], value=value)
        return Environment(bindings)

    def free_variables(self) -> List[str]:
        return [n for n, b in self._bindings.items() if b.is_free]

    def bindings(self) -> Tuple[Binding, ...]:
        return tuple(self._bindings.values())


class Narrower:
    """Forward evaluation and guard narrowing over environments.

    Args:
        domain: Value domain used for all set operations
    """

    def __init__(self, domain: Optional[ValueDomain] = None):
        self.domain = domain or ValueDomain()

    # --- forward evaluation -------------------------------------------------

    def evaluate(self, expr, env: Environment, width: int) -> SymbolicValue:
        """Compute the set of values ``expr`` may take in ``env``."""
        d = self.domain
        if isinstance(expr, Const):
            w = expr.type.width if expr.type is not None else width
            return d.constant(expr.value, w)
        if isinstance(expr, Ref):
            return env.value(expr.name)
        if isinstance(expr, ArithmeticOp):
            w = infer_width(expr, env.widths()) or width
            lhs = self.evaluate(expr.lhs, env, w)
            rhs = self.evaluate(expr.rhs, env, w)
            if expr.op is ArithOp.ADD:
                return d.add(lhs, rhs)
            if expr.op is ArithOp.SUB:
                return d.sub(lhs, rhs)
            if expr.op is ArithOp.MUL:
                return d.mul(lhs, rhs)
            if expr.op is ArithOp.DIV:
                return d.div(lhs, rhs)
            return d.apply_modulo(lhs, rhs)
        if isinstance(expr, Branch):
            raise MalformedInputError("Branch chain cannot be evaluated as a plain expression", expr)
        raise MalformedInputError(f"Unsupported expression kind: {type(expr).__name__}", expr)

    # --- narrowing ----------------------------------------------------------

    def narrow(self, pred, truth: bool, env: Environment) -> Optional[Environment]:
        """Restrict ``env`` to the valuations where ``pred`` evaluates to ``truth``.

        Returns:
            The narrowed environment, or None when no valuation qualifies
        """
        if isinstance(pred, Not):
            return self.narrow(pred.operand, not truth, env)
        if isinstance(pred, BoolOp):
            conjunctive = (pred.op is BoolOpKind.AND) == truth
            if conjunctive:
                for v in pred.values:
                    env = self.narrow(v, truth, env)
                    if env is None:
                        return None
                return env
            feasible = [e for e in (self.narrow(v, truth, env) for v in pred.values) if e is not None]
            if not feasible:
                return None
            result = feasible[0]
            for e in feasible[1:]:
                result = self.join(result, e)
            return result
        if isinstance(pred, Compare):
            return self._narrow_compare(pred, truth, env)
        raise MalformedInputError(f"Unsupported predicate kind: {type(pred).__name__}", pred)

    def _narrow_compare(self, pred: Compare, truth: bool, env: Environment) -> Optional[Environment]:
        op = pred.op if truth else pred.op.negate()
        widths = env.widths()
        width = infer_width(pred.lhs, widths) or infer_width(pred.rhs, widths) or 32
        lhs = self.evaluate(pred.lhs, env, width)
        rhs = self.evaluate(pred.rhs, env, width)
        new_lhs, new_rhs = self.domain.compare_narrow(op, lhs, rhs)
        if new_lhs.is_empty() or new_rhs.is_empty():
            return None
        env = self.refine(pred.lhs, new_lhs, env, width)
        if env is None:
            return None
        env = self.refine(pred.rhs, new_rhs, env, width)
        if env is None:
            return None
        return self.rederive(env)

    def refine(self, expr, target: SymbolicValue, env: Environment, width: int) -> Optional[Environment]:
        """Propagate "``expr`` takes a value in ``target``" back to variables."""
        d = self.domain
        if isinstance(expr, Const):
            w = expr.type.width if expr.type is not None else width
            return env if target.contains(expr.value & ((1 << w) - 1)) else None
        if isinstance(expr, Ref):
            binding = env[expr.name]
            new = d.intersect(binding.value, target)
            if new.is_empty():
                return None
            if new == binding.value:
                return env
            env = env.with_value(expr.name, new)
            if binding.definition is not None:
                env = self.refine(binding.definition, new, env, binding.var.width)
            return env
        if not isinstance(expr, ArithmeticOp):
            raise MalformedInputError(f"Unsupported expression kind: {type(expr).__name__}", expr)

        w = infer_width(expr, env.widths()) or width
        lhs = self.evaluate(expr.lhs, env, w)
        rhs = self.evaluate(expr.rhs, env, w)
        if expr.op is ArithOp.ADD:
            # x + y = t  =>  x = t - y, y = t - x
            env = self.refine(expr.lhs, d.sub(target, rhs), env, w)
            if env is None:
                return None
            return self.refine(expr.rhs, d.sub(target, self.evaluate(expr.lhs, env, w)), env, w)
        if expr.op is ArithOp.SUB:
            # x - y = t  =>  x = t + y, y = x - t
            env = self.refine(expr.lhs, d.add(target, rhs), env, w)
            if env is None:
                return None
            return self.refine(expr.rhs, d.sub(self.evaluate(expr.lhs, env, w), target), env, w)
        if expr.op is ArithOp.MUL:
            if rhs.is_singleton():
                return self._refine_scaled(expr.lhs, lhs, rhs.min(), target, env, w)
            if lhs.is_singleton():
                return self._refine_scaled(expr.rhs, rhs, lhs.min(), target, env, w)
            return env
        if expr.op is ArithOp.DIV:
            if rhs.is_singleton() and rhs.min() > 0:
                k = rhs.min()
                return self.refine(expr.lhs, d.interval(w, target.min() * k, target.max() * k + k - 1), env, w)
            return env
        # ArithOp.MOD
        if rhs.is_singleton() and rhs.min() > 0:
            m = rhs.min()
            if m <= d.modulus_limit:
                allowed = [r for r in range(m) if target.contains(r)]
                return self.refine(expr.lhs, d.restrict_residues(d.top(w), m, allowed), env, w)
            if lhs.max() < m:
                return self.refine(expr.lhs, target, env, w)
        return env

    def _refine_scaled(self, operand, value: SymbolicValue, k: int, target: SymbolicValue,
                       env: Environment, width: int) -> Optional[Environment]:
        """Refine ``operand`` from ``operand * k`` in ``target`` when no wrap is possible."""
        if k == 0:
            return env if target.contains(0) else None
        if value.max() * k >= (1 << width):
            return env
        lo = -(-target.min() // k)
        hi = target.max() // k
        if lo > hi:
            return None
        return self.refine(operand, self.domain.interval(width, lo, hi), env, width)

    def rederive(self, env: Environment) -> Optional[Environment]:
        """Tighten derived variables from their definitions after inputs shrank."""
        for binding in env.bindings():
            if binding.definition is None:
                continue
            current = env[binding.var.name].value
            new = self.domain.intersect(current, self.evaluate(binding.definition, env, binding.var.width))
            if new.is_empty():
                return None
            if new != current:
                env = env.with_value(binding.var.name, new)
        return env

    def join(self, a: Environment, b: Environment) -> Environment:
        """Pointwise union of two environments over their common names."""
        merged: Dict[str, Binding] = {}
        for name in a:
            if name not in b:
                continue
            ba, bb = a[name], b[name]
            merged[name] = Binding(
                var=ba.var,
                value=self.domain.union(ba.value, bb.value),
                definition=ba.definition if ba.definition == bb.definition else None,
                origins=ba.origins + tuple(o for o in bb.origins if o not in ba.origins),
            )
        return Environment(merged)
