"""
Path exploration, assertion checking and concrete replay.
"""

from .concrete import ConcreteInterpreter, ConcreteRun, replay
from .assertion_checker import AssertionChecker
from .path_explorer import PathConstraint, PathExplorer

__all__ = [
    "AssertionChecker",
    "ConcreteInterpreter",
    "ConcreteRun",
    "PathConstraint",
    "PathExplorer",
    "replay",
]
