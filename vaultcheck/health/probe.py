"""Probe contract — one unit of diagnostic logic per report category.

A probe never raises past ``check()`` for runtime health conditions: its
internal outcome is collapsed into fail-closed facts before being merged.
"""

from __future__ import annotations

import copy
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from vaultcheck.config import ConfigurationError
from vaultcheck.health.report import Report

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProbeOutcome:
    """Success-with-value or failure-with-reason."""

    ok: bool
    value: Any = None
    reason: str = ""

    @classmethod
    def success(cls, value: Any) -> ProbeOutcome:
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, reason: str) -> ProbeOutcome:
        return cls(ok=False, reason=reason)

    def value_or(self, fallback: Any) -> Any:
        return self.value if self.ok else fallback


def attempt(
    fn: Callable[..., Any],
    *args: Any,
    errors: tuple[type[BaseException], ...] = (Exception,),
    label: str = "",
) -> ProbeOutcome:
    """Call ``fn`` and capture ``errors`` as a failed outcome.

    ConfigurationError always propagates.
    """
    try:
        return ProbeOutcome.success(fn(*args))
    except ConfigurationError:
        raise
    except errors as e:
        reason = f"{type(e).__name__}: {e}"
        logger.warning("Healthcheck %s failed: %s", label or getattr(fn, "__name__", "probe"), reason)
        return ProbeOutcome.failure(reason)


class Probe(ABC):
    """Base class for category probes."""

    category: str = ""

    @abstractmethod
    def defaults(self) -> dict[str, Any]:
        """Fail-closed facts, covering every key ``collect`` can produce."""

    @abstractmethod
    def collect(self) -> dict[str, Any]:
        """Inspect the subsystem and return this category's facts. May raise."""

    def run(self) -> ProbeOutcome:
        return attempt(self.collect, label=self.category)

    def check(self, checks: Report | Mapping[str, Any] | None = None) -> Report:
        """Merge this probe's facts into ``checks`` and return it."""
        report = Report.coerce(checks)
        t0 = time.perf_counter()
        outcome = self.run()
        facts = copy.deepcopy(self.defaults())
        if outcome.ok:
            facts.update(outcome.value)
        report.merge({self.category: facts}, owner=self.category)
        logger.debug(
            "Healthcheck %s: %s (%.1fms)",
            self.category, "ok" if outcome.ok else "failed", (time.perf_counter() - t0) * 1000,
        )
        return report
