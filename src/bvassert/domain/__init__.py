"""Symbolic value domain and variable environments."""

from .symbolic_value import Empty, Interval, SymbolicValue, ValueDomain, ValueSet
from .environment import Binding, Environment, Narrower

__all__ = [
    "Binding",
    "Empty",
    "Environment",
    "Interval",
    "Narrower",
    "SymbolicValue",
    "ValueDomain",
    "ValueSet",
]
