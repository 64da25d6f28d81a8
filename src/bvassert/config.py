"""Verifier configuration."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Mapping, Optional
import os


_TRUE_STRINGS = ("1", "true", "yes", "on")


@dataclass(frozen=True)
class VerifierConfig:
    """Knobs controlling exploration and refinement.

    Attributes:
        fail_fast: Stop exploring after the first confirmed violation
        refine_with_smt: Decide obligations the abstract domain cannot settle
            with the exact bit-vector encoding
        smt_timeout_ms: Per-query solver timeout
        max_paths: Upper bound on explored leaf paths (None for no bound)
        value_set_limit: Largest set kept as an exact ValueSet
        modulus_limit: Largest modulus tracked for residue classes
    """

    fail_fast: bool = False
    refine_with_smt: bool = True
    smt_timeout_ms: int = 10000
    max_paths: Optional[int] = None
    value_set_limit: int = 256
    modulus_limit: int = 4096

    def __post_init__(self):
        if self.max_paths is not None and self.max_paths < 1:
            raise ValueError(f"max_paths must be positive, got {self.max_paths}")
        if self.value_set_limit < 1:
            raise ValueError(f"value_set_limit must be positive, got {self.value_set_limit}")
        if self.modulus_limit < 2:
            raise ValueError(f"modulus_limit must be at least 2, got {self.modulus_limit}")
        if self.smt_timeout_ms < 0:
            raise ValueError(f"smt_timeout_ms must be non-negative, got {self.smt_timeout_ms}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides) -> "VerifierConfig":
        """Build a config from ``BVASSERT_*`` environment variables.

        ``BVASSERT_FAIL_FAST=1`` sets ``fail_fast``, ``BVASSERT_MAX_PATHS=64``
        sets ``max_paths`` and so on. Explicit keyword overrides win.
        """
        env = os.environ if environ is None else environ
        values = {}
        for f in fields(cls):
            raw = env.get(f"BVASSERT_{f.name.upper()}")
            if raw is None or raw == "":
                continue
            if f.name in ("fail_fast", "refine_with_smt"):
                values[f.name] = raw.strip().lower() in _TRUE_STRINGS
            elif f.name == "max_paths" and raw.strip().lower() == "none":
                values[f.name] = None
            else:
                try:
                    values[f.name] = int(raw)
                except ValueError:
                    raise ValueError(f"BVASSERT_{f.name.upper()} must be an integer, got {raw!r}")
        values.update(overrides)
        return cls(**values)

    def with_overrides(self, **changes) -> "VerifierConfig":
        return replace(self, **changes)
