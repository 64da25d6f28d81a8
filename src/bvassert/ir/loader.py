"""
Load the JSON rendering of the input tree into IR nodes.

Shape::

    {"name": "fixture",
     "body": [
       {"kind": "declare", "name": "a", "type": "u32"},
       {"kind": "let", "name": "b", "type": "u32",
        "value": {"kind": "if",
                  "arms": [{"guard": {"kind": "cmp", "op": "==",
                                      "lhs": {"kind": "binop", "op": "%", "lhs": "a", "rhs": 3},
                                      "rhs": 0},
                            "body": [], "result": 0}],
                  "else": {"body": [], "result": 1}}},
       {"kind": "assert", "site": "b_lt_3",
        "predicate": {"kind": "cmp", "op": "<", "lhs": "b", "rhs": 3}}]}

A bare integer is shorthand for an untyped literal and a bare string for a
variable reference.
"""
from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Dict, List, Union

from ..errors import MalformedInputError
from .nodes import (
    Arm, ArithOp, ArithmeticOp, Assert, Block, BoolOp, BoolOpKind, Branch,
    CmpOp, Compare, Const, Declare, IntType, InitState, Let, Not, Program, Ref,
    Variable,
)

_TYPE_RE = re.compile(r"^(u|i)(\d+)$")


def parse_type(text: str) -> IntType:
    """Parse a type name such as ``u32`` or ``u8``."""
    if not isinstance(text, str):
        raise MalformedInputError(f"Type must be a string like 'u32', got {text!r}")
    m = _TYPE_RE.match(text.strip())
    if m is None:
        raise MalformedInputError(f"Unknown type '{text}'")
    return IntType(width=int(m.group(2)), signed=m.group(1) == "i")


def _require(node: Dict[str, Any], key: str) -> Any:
    if key not in node:
        raise MalformedInputError(f"Node of kind '{node.get('kind')}' is missing '{key}'", node)
    return node[key]


def _kind(node: Any) -> str:
    if not isinstance(node, dict):
        raise MalformedInputError(f"Expected an object, got {type(node).__name__}", node)
    kind = node.get("kind")
    if not isinstance(kind, str):
        raise MalformedInputError("Node has no 'kind'", node)
    return kind


def load_expr(node: Any):
    if isinstance(node, bool):
        raise MalformedInputError(f"Boolean literal {node!r} is not an integer expression", node)
    if isinstance(node, int):
        return Const(node)
    if isinstance(node, str):
        return Ref(node)
    kind = _kind(node)
    if kind == "const":
        t = node.get("type")
        return Const(_require(node, "value"), parse_type(t) if t is not None else None)
    if kind == "ref":
        return Ref(_require(node, "name"))
    if kind == "binop":
        op_text = _require(node, "op")
        try:
            op = ArithOp(op_text)
        except ValueError:
            raise MalformedInputError(f"Unsupported arithmetic operator '{op_text}'", node)
        return ArithmeticOp(op, load_expr(_require(node, "lhs")), load_expr(_require(node, "rhs")))
    if kind == "if":
        return load_branch(node)
    raise MalformedInputError(f"Unsupported expression kind '{kind}'", node)


def load_predicate(node: Any):
    kind = _kind(node)
    if kind == "cmp":
        op_text = _require(node, "op")
        try:
            op = CmpOp(op_text)
        except ValueError:
            raise MalformedInputError(f"Unsupported comparison operator '{op_text}'", node)
        return Compare(op, load_expr(_require(node, "lhs")), load_expr(_require(node, "rhs")))
    if kind in ("and", "or"):
        values = _require(node, "values")
        if not isinstance(values, list):
            raise MalformedInputError(f"'{kind}' values must be a list", node)
        return BoolOp(BoolOpKind(kind), tuple(load_predicate(v) for v in values))
    if kind == "not":
        return Not(load_predicate(_require(node, "operand")))
    raise MalformedInputError(f"Unsupported predicate kind '{kind}'", node)


def load_block(node: Any) -> Block:
    if node is None:
        return Block()
    if not isinstance(node, dict):
        raise MalformedInputError(f"Expected a block object, got {type(node).__name__}", node)
    result = node.get("result")
    return Block(
        stmts=load_stmts(node.get("body", [])),
        result=load_expr(result) if result is not None else None,
    )


def load_branch(node: Dict[str, Any]) -> Branch:
    arms = _require(node, "arms")
    if not isinstance(arms, list):
        raise MalformedInputError("'arms' must be a list", node)
    loaded = []
    for arm in arms:
        if not isinstance(arm, dict):
            raise MalformedInputError(f"Expected an arm object, got {type(arm).__name__}", arm)
        loaded.append(Arm(load_predicate(_require(arm, "guard")), load_block(arm)))
    return Branch(tuple(loaded), load_block(node.get("else")))


def load_stmt(node: Any):
    kind = _kind(node)
    if kind == "declare":
        return Declare(Variable(_require(node, "name"), parse_type(node.get("type", "u32")),
                                InitState.UNCONSTRAINED))
    if kind == "let":
        return Let(_require(node, "name"), load_expr(_require(node, "value")),
                   parse_type(node.get("type", "u32")))
    if kind == "assert":
        return Assert(load_predicate(_require(node, "predicate")), str(_require(node, "site")))
    if kind == "if":
        return load_branch(node)
    raise MalformedInputError(f"Unsupported statement kind '{kind}'", node)


def load_stmts(nodes: Any) -> tuple:
    if not isinstance(nodes, list):
        raise MalformedInputError(f"Expected a statement list, got {type(nodes).__name__}", nodes)
    return tuple(load_stmt(n) for n in nodes)


def load_program(data: Dict[str, Any]) -> Program:
    """Build a Program from its decoded JSON form."""
    if not isinstance(data, dict):
        raise MalformedInputError(f"Expected a program object, got {type(data).__name__}", data)
    return Program(body=load_stmts(_require(data, "body")), name=str(data.get("name", "program")))


def load_program_file(path: Union[str, Path]) -> Program:
    """Read and decode a program from a JSON file."""
    p = Path(path)
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except UnicodeDecodeError as e:
        raise MalformedInputError(f"{p}: not UTF-8 text: {e}")
    except json.JSONDecodeError as e:
        raise MalformedInputError(f"{p}: invalid JSON: {e}")
    program = load_program(data)
    if "name" not in data:
        program = Program(body=program.body, name=p.stem)
    return program
