"""
Input tree for the verifier.
"""

from .nodes import (
    Arm,
    ArithOp,
    ArithmeticOp,
    Assert,
    Block,
    BoolOp,
    BoolOpKind,
    Branch,
    CmpOp,
    Compare,
    Const,
    Declare,
    InitState,
    IntType,
    Let,
    Not,
    Program,
    Ref,
    U32,
    Variable,
    expr_refs,
    infer_width,
    iter_asserts,
)
from .validate import ProgramValidator, validate_program
from .loader import load_program, load_program_file, parse_type

__all__ = [
    "Arm",
    "ArithOp",
    "ArithmeticOp",
    "Assert",
    "Block",
    "BoolOp",
    "BoolOpKind",
    "Branch",
    "CmpOp",
    "Compare",
    "Const",
    "Declare",
    "InitState",
    "IntType",
    "Let",
    "Not",
    "Program",
    "Ref",
    "U32",
    "Variable",
    "expr_refs",
    "infer_width",
    "iter_asserts",
    "ProgramValidator",
    "validate_program",
    "load_program",
    "load_program_file",
    "parse_type",
]
