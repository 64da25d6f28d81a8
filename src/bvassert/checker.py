"""
Main verification API.

Provides high-level functions for checking every assertion of a program.
"""
from pathlib import Path
from typing import Optional, Union
import logging
import time

from .analysis.assertion_checker import AssertionChecker
from .analysis.path_explorer import PathExplorer
from .config import VerifierConfig
from .domain.environment import Narrower
from .domain.symbolic_value import ValueDomain
from .ir.loader import load_program_file
from .ir.nodes import Program
from .ir.rename import rename_program
from .ir.validate import validate_program
from .verification.aggregator import SiteReport, VerdictAggregator, VerificationReport

logger = logging.getLogger(__name__)


def verify(program: Program, config: Optional[VerifierConfig] = None) -> VerificationReport:
    """Check that every assertion holds for all values of the free inputs.

    Args:
        program: Program to verify
        config: Verifier configuration (defaults to VerifierConfig())

    Returns:
        VerificationReport with one SiteReport per assertion site, in
        program order

    Raises:
        MalformedInputError: The program contains a construct the verifier
            cannot analyze

    Example:
        >>> report = verify(program)
        >>> if not report.passed:
        ...     for r in report.violations():
        ...         print(r.witness.format_trace())
    """
    config = config or VerifierConfig()
    start_time = time.time()

    validate_program(program)
    renamed = rename_program(program)

    narrower = Narrower(ValueDomain(config.value_set_limit, config.modulus_limit))
    aggregator = VerdictAggregator(program.assertion_sites())
    checker = AssertionChecker(renamed, narrower, config)
    explorer = PathExplorer(narrower, checker, aggregator, config)

    stopped_reason = explorer.explore(renamed)
    report = aggregator.report(program.name, stopped_reason)

    elapsed_ms = (time.time() - start_time) * 1000
    logger.info("%s: %s (%d sites, %d arm paths, %.2fms)", program.name, report.verdict.value,
                len(report.results), explorer.paths, elapsed_ms)
    return report


def verify_file(path: Union[str, Path], config: Optional[VerifierConfig] = None) -> VerificationReport:
    """Load a program from its JSON rendering and verify it."""
    return verify(load_program_file(path), config)


def find_violation(program: Program, config: Optional[VerifierConfig] = None) -> Optional[SiteReport]:
    """Return the first violated site, or None if no violation was found.

    Stops exploring at the first confirmed violation.
    """
    config = (config or VerifierConfig()).with_overrides(fail_fast=True)
    report = verify(program, config)
    violations = report.violations()
    return violations[0] if violations else None
