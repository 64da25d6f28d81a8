"""Verdicts, witnesses and per-site reporting."""

from .trace import Witness
from .verdict import Verdict, VerdictKind
from .aggregator import SiteReport, VerdictAggregator, VerificationReport

__all__ = [
    "Witness",
    "Verdict",
    "VerdictKind",
    "SiteReport",
    "VerdictAggregator",
    "VerificationReport",
]
