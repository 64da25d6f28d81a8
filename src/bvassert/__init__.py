"""
Bounded assertion verifier for branching programs over unsigned
wrap-around arithmetic.

This package decides, for every assertion of a program, whether it holds
for all values of the program's unconstrained inputs, using an abstract
value domain with exact bit-vector refinement through Z3.
"""

__version__ = "0.1.0"

from .config import VerifierConfig
from .errors import MalformedInputError, PathBudgetExceeded, VerifierError
from .ir import Program, load_program, load_program_file, validate_program
from .solver import SolverResult, Z3Solver
from .verification import SiteReport, Verdict, VerdictKind, VerificationReport, Witness
from .checker import find_violation, verify, verify_file

__all__ = [
    "VerifierConfig",
    "VerifierError",
    "MalformedInputError",
    "PathBudgetExceeded",
    "Program",
    "load_program",
    "load_program_file",
    "validate_program",
    "SolverResult",
    "Z3Solver",
    "SiteReport",
    "Verdict",
    "VerdictKind",
    "VerificationReport",
    "Witness",
    "verify",
    "verify_file",
    "find_violation",
]
