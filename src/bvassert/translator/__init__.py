"""
Translation from the program IR to SMT bit-vector terms.
"""

from .type_translator import TypeTranslator
from .program_to_smt import Obligation, ProgramTranslator, SMTProblem

__all__ = [
    "TypeTranslator",
    "ProgramTranslator",
    "SMTProblem",
    "Obligation",
]
