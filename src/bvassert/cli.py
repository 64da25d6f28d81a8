"""
Command line front-end: verify a program stored as JSON.

    bvassert PROGRAM.json [--fail-fast] [--no-smt] [--max-paths N] [--json] [-v]
"""
import argparse
import json
import logging
import sys
from typing import List, Optional

from . import __version__
from .checker import verify_file
from .config import VerifierConfig
from .errors import MalformedInputError
from .verification.verdict import VerdictKind

_log = logging.getLogger("bvassert")

EXIT_OK: int = 0
EXIT_MALFORMED: int = 2
EXIT_VIOLATION: int = 3
EXIT_UNKNOWN: int = 4

_EXIT_FOR_VERDICT = {
    VerdictKind.PROVEN: EXIT_OK,
    VerdictKind.VIOLATED: EXIT_VIOLATION,
    VerdictKind.UNKNOWN: EXIT_UNKNOWN,
}


def _configure_logging(verbosity: int) -> None:
    """Set up the ``bvassert`` logger: 0 → WARNING, 1 → INFO, 2+ → DEBUG."""
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)-5.5s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    root = logging.getLogger("bvassert")
    root.setLevel(level)
    if not root.handlers:
        root.addHandler(handler)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="bvassert",
        description="Prove or refute the assertions of a branching program "
                    "over unsigned wrap-around arithmetic.",
        epilog="Exit codes: 0 all proven, 2 malformed input, 3 violation found, "
               "4 undecided sites remain.",
    )
    p.add_argument("program", help="Program in its JSON rendering")
    p.add_argument("--fail-fast", action="store_true",
                   help="Stop at the first confirmed violation")
    p.add_argument("--no-smt", action="store_true",
                   help="Report Unknown instead of refining with the SMT solver")
    p.add_argument("--max-paths", type=int, default=None, metavar="N",
                   help="Upper bound on explored arm paths")
    p.add_argument("--smt-timeout", type=int, default=None, metavar="MS",
                   help="Per-query solver timeout in milliseconds")
    p.add_argument("--json", action="store_true", dest="as_json",
                   help="Print the report as JSON")
    p.add_argument("-v", "--verbose", action="count", default=0,
                   help="Increase log verbosity (-v info, -vv debug)")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return p


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    _configure_logging(args.verbose)

    overrides = {}
    if args.fail_fast:
        overrides["fail_fast"] = True
    if args.no_smt:
        overrides["refine_with_smt"] = False
    if args.max_paths is not None:
        overrides["max_paths"] = args.max_paths
    if args.smt_timeout is not None:
        overrides["smt_timeout_ms"] = args.smt_timeout

    try:
        config = VerifierConfig.from_env(**overrides)
    except ValueError as e:
        _log.error("invalid configuration: %s", e)
        return EXIT_MALFORMED

    try:
        report = verify_file(args.program, config)
    except OSError as e:
        _log.error("cannot read %s: %s", args.program, e)
        return EXIT_MALFORMED
    except MalformedInputError as e:
        _log.error("malformed input: %s", e)
        return EXIT_MALFORMED

    if args.as_json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        print(report.format_report())
    return _EXIT_FOR_VERDICT[report.verdict]


if __name__ == "__main__":
    sys.exit(main())
