"""
Combines per-path obligation results into a per-site report.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence
import logging

from .trace import Witness
from .verdict import Verdict, VerdictKind

logger = logging.getLogger(__name__)


@dataclass
class SiteReport:
    """Final result for one assertion site.

    Attributes:
        site_id: Site id
        verdict: Combined verdict over every path reaching the site
        paths: Number of explored paths that reached the site
        reachable: False when no feasible path reaches the site
    """
    site_id: str
    verdict: Verdict
    paths: int = 0
    reachable: bool = True

    @property
    def kind(self) -> VerdictKind:
        return self.verdict.kind

    @property
    def witness(self) -> Optional[Witness]:
        return self.verdict.witness

    @property
    def reason(self) -> Optional[str]:
        return self.verdict.reason

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "site_id": self.site_id,
            "verdict": self.kind.value,
            "paths": self.paths,
            "reachable": self.reachable,
        }
        if self.witness is not None:
            out["witness"] = self.witness.to_dict()
        if self.reason is not None:
            out["reason"] = self.reason
        return out


@dataclass
class VerificationReport:
    """Ordered per-site results for one program.

    Attributes:
        program: Program name
        results: Site reports in program order
    """
    program: str
    results: List[SiteReport] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        """True iff every site is Proven."""
        return all(r.kind is VerdictKind.PROVEN for r in self.results)

    @property
    def verdict(self) -> VerdictKind:
        overall = VerdictKind.PROVEN
        for r in self.results:
            if r.kind.precedence > overall.precedence:
                overall = r.kind
        return overall

    def site(self, site_id: str) -> SiteReport:
        for r in self.results:
            if r.site_id == site_id:
                return r
        raise KeyError(site_id)

    def violations(self) -> List[SiteReport]:
        return [r for r in self.results if r.kind is VerdictKind.VIOLATED]

    def unknowns(self) -> List[SiteReport]:
        return [r for r in self.results if r.kind is VerdictKind.UNKNOWN]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "program": self.program,
            "passed": self.passed,
            "verdict": self.verdict.value,
            "results": [r.to_dict() for r in self.results],
        }

    def format_report(self) -> str:
        lines = [f"Program '{self.program}': {self.verdict.value.upper()}"]
        for r in self.results:
            note = "" if r.reachable else " (unreachable)"
            lines.append(f"  {r.site_id}: {r.verdict}{note}")
        for r in self.violations():
            lines.append("")
            lines.append(r.witness.format_trace())
        return "\n".join(lines)


class VerdictAggregator:
    """Collects verdicts per site while the explorer runs.

    Args:
        sites: Every site id of the program, in program order
    """

    def __init__(self, sites: Sequence[str]):
        self._sites = list(sites)
        self._verdicts: Dict[str, Verdict] = {}
        self._paths: Dict[str, int] = {}
        self._unreachable: set = set()

    def record(self, site: str, verdict: Verdict) -> None:
        previous = self._verdicts.get(site)
        self._verdicts[site] = verdict if previous is None else previous.combine(verdict)
        self._paths[site] = self._paths.get(site, 0) + 1
        logger.info("site %s: %s", site, verdict)

    def mark_unreachable(self, site: str) -> None:
        self._unreachable.add(site)

    def has_violation(self) -> bool:
        return any(v.is_violated for v in self._verdicts.values())

    def report(self, program: str, stopped_reason: Optional[str] = None) -> VerificationReport:
        """Build the final report.

        Args:
            program: Program name
            stopped_reason: Why exploration ended early, if it did; sites
                never visited then become Unknown with this reason
        """
        results = []
        for site in self._sites:
            if site in self._verdicts:
                results.append(SiteReport(site, self._verdicts[site], self._paths[site]))
            elif site in self._unreachable or stopped_reason is None:
                results.append(SiteReport(site, Verdict.proven(), 0, reachable=False))
            else:
                results.append(SiteReport(site, Verdict.unknown(stopped_reason), 0))
        return VerificationReport(program, results)
