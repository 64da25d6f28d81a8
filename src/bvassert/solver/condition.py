"""
Guard decisions over the abstract domain.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional
import logging

from ..domain.environment import Environment, Narrower

logger = logging.getLogger(__name__)


class GuardOutcome(Enum):
    """Which truth values of a guard are feasible under the current path."""
    ALWAYS_TRUE = "always_true"
    ALWAYS_FALSE = "always_false"
    MAYBE_BOTH = "maybe_both"
    INFEASIBLE = "infeasible"


@dataclass(frozen=True)
class GuardDecision:
    """Outcome of a guard together with the environments it produces.

    Attributes:
        outcome: Feasible truth values
        when_true: Environment narrowed by the guard holding (None if infeasible)
        when_false: Environment narrowed by the guard failing (None if infeasible)
    """
    outcome: GuardOutcome
    when_true: Optional[Environment]
    when_false: Optional[Environment]


class ConditionSolver:
    """Decides guards by narrowing the environment both ways.

    A truth value is ruled out only when narrowing under it yields no
    valuation; otherwise both are kept. The solver never picks a side by
    default.
    """

    def __init__(self, narrower: Narrower):
        self.narrower = narrower

    def decide(self, guard, env: Environment) -> GuardDecision:
        when_true = self.narrower.narrow(guard, True, env)
        when_false = self.narrower.narrow(guard, False, env)
        if when_true is not None and when_false is not None:
            outcome = GuardOutcome.MAYBE_BOTH
        elif when_true is not None:
            outcome = GuardOutcome.ALWAYS_TRUE
        elif when_false is not None:
            outcome = GuardOutcome.ALWAYS_FALSE
        else:
            # Only reachable when env itself admits no valuation.
            outcome = GuardOutcome.INFEASIBLE
        logger.debug("guard %s: %s", guard, outcome.value)
        return GuardDecision(outcome, when_true, when_false)
