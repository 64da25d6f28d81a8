"""
Give every declaration in a program a unique name.

Names only have to be unique while in scope, so two sibling arms (or two
consecutive statement branches) may each declare their own ``t``. The exact
encoding and concrete replay key inputs by name, so later declarations of an
already used name are renamed ``t#1``, ``t#2`` and so on, in program order.
The first declaration of every name keeps it.
"""
from collections import Counter
from typing import Dict

from .nodes import (
    Arm, ArithmeticOp, Assert, Block, BoolOp, Branch, Compare, Const, Declare,
    Let, Not, Program, Ref, Variable,
)


class _Renamer:

    def __init__(self):
        self._used: Counter = Counter()

    def _fresh(self, name: str) -> str:
        n = self._used[name]
        self._used[name] += 1
        return name if n == 0 else f"{name}#{n}"

    def stmts(self, stmts, scope: Dict[str, str]) -> tuple:
        out = []
        for stmt in stmts:
            if isinstance(stmt, Declare):
                new = self._fresh(stmt.var.name)
                scope[stmt.var.name] = new
                out.append(Declare(Variable(new, stmt.var.type, stmt.var.init)))
            elif isinstance(stmt, Let):
                value = self.expr(stmt.value, scope)
                new = self._fresh(stmt.name)
                scope[stmt.name] = new
                out.append(Let(new, value, stmt.type))
            elif isinstance(stmt, Assert):
                out.append(Assert(self.pred(stmt.predicate, scope), stmt.site))
            else:
                out.append(self.branch(stmt, scope))
        return tuple(out)

    def block(self, block: Block, scope: Dict[str, str]) -> Block:
        local = dict(scope)
        stmts = self.stmts(block.stmts, local)
        result = self.expr(block.result, local) if block.result is not None else None
        return Block(stmts, result)

    def branch(self, branch: Branch, scope: Dict[str, str]) -> Branch:
        arms = tuple(Arm(self.pred(a.guard, scope), self.block(a.body, scope)) for a in branch.arms)
        return Branch(arms, self.block(branch.orelse, scope))

    def expr(self, expr, scope: Dict[str, str]):
        if isinstance(expr, Ref):
            return Ref(scope.get(expr.name, expr.name))
        if isinstance(expr, ArithmeticOp):
            return ArithmeticOp(expr.op, self.expr(expr.lhs, scope), self.expr(expr.rhs, scope))
        if isinstance(expr, Branch):
            return self.branch(expr, scope)
        return expr

    def pred(self, pred, scope: Dict[str, str]):
        if isinstance(pred, Compare):
            return Compare(pred.op, self.expr(pred.lhs, scope), self.expr(pred.rhs, scope))
        if isinstance(pred, BoolOp):
            return BoolOp(pred.op, tuple(self.pred(v, scope) for v in pred.values))
        if isinstance(pred, Not):
            return Not(self.pred(pred.operand, scope))
        return pred


def rename_program(program: Program) -> Program:
    """Return an equivalent program in which every declared name is unique.

    The program must already have passed validation.
    """
    return Program(_Renamer().stmts(program.body, {}), program.name)
