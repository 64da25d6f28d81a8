"""
Type translator from IR integer types to SMT sorts.
"""
from typing import Any
import z3

from ..ir.nodes import IntType


class TypeTranslator:
    """Translates IR types and literals to Z3 bit-vector terms.

    Mapping:
        u<N> -> BitVec(N)
        literal of u<N> -> BitVecVal(value mod 2^N, N)
    """

    def __init__(self):
        self._sort_cache = {}

    def sort_for(self, width: int) -> Any:
        """Return (and cache) the BitVec sort of the given width."""
        if width not in self._sort_cache:
            self._sort_cache[width] = z3.BitVecSort(width)
        return self._sort_cache[width]

    def translate_int_type(self, name: str, width: int, signed: bool = False) -> Any:
        """Translate integer type to Z3 BitVec.

        Args:
            name: Variable name
            width: Bit width
            signed: Declared signedness (programs reaching the encoder are unsigned)

        Returns:
            Z3 BitVec variable
        """
        return z3.Const(name, self.sort_for(width))

    def translate_variable_type(self, name: str, t: IntType) -> Any:
        return self.translate_int_type(name, t.width, t.signed)

    def translate_literal(self, value: int, width: int) -> Any:
        """Translate an integer literal, wrapping it at ``width`` bits."""
        return z3.BitVecVal(value & ((1 << width) - 1), width)

    def create_bounds_constraint(self, var: Any, min_val: int, max_val: int) -> Any:
        """Create an unsigned bounds constraint for a bit-vector term.

        Args:
            var: Z3 bit-vector term
            min_val: Minimum value (inclusive)
            max_val: Maximum value (inclusive)

        Returns:
            Z3 constraint expression
        """
        return z3.And(z3.UGE(var, min_val), z3.ULE(var, max_val))
