"""Healthcheck report — nested category -> check -> value mapping.

Probes write into a single Report through ``merge``. Merge is a deep union:
a probe may overwrite keys inside the category it owns (re-running a probe is
idempotent), but keys already present in any other category are never replaced.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Iterator, Mapping
from typing import Any, Union

logger = logging.getLogger(__name__)

Value = Union[bool, str, int, None, dict[str, Any]]


class FrozenReportError(TypeError):
    """Raised when merging into a report snapshot."""


def deep_merge(
    target: dict[str, Any],
    fragment: Mapping[str, Any],
    overwrite: bool,
    path: str = "",
) -> dict[str, Any]:
    """Merge ``fragment`` into ``target`` in place.

    Nested mappings are merged key by key. Scalar collisions are replaced only
    when ``overwrite`` is set.
    """
    for key, value in fragment.items():
        dotted = f"{path}.{key}" if path else key
        current = target.get(key)
        if isinstance(value, Mapping) and isinstance(current, dict):
            deep_merge(current, value, overwrite, dotted)
        elif key not in target or overwrite:
            target[key] = copy.deepcopy(dict(value)) if isinstance(value, Mapping) else value
        elif current != value:
            logger.debug("Keeping existing value for %s", dotted)
    return target


class Report(Mapping[str, dict[str, Any]]):
    """Accumulator shared by all probes of one run."""

    def __init__(self, data: Mapping[str, Any] | None = None, frozen: bool = False) -> None:
        self._data: dict[str, dict[str, Any]] = copy.deepcopy(
            {k: dict(v) for k, v in (data or {}).items()}
        )
        self._frozen = frozen

    @classmethod
    def coerce(cls, checks: Report | Mapping[str, Any] | None) -> Report:
        """Reuse an accumulator, or wrap a plain mapping / None into a new one."""
        if isinstance(checks, Report) and not checks.frozen:
            return checks
        return cls(checks)

    # ── Mapping interface ────────────────────────────────────────────────

    def __getitem__(self, category: str) -> dict[str, Any]:
        if self._frozen:
            return copy.deepcopy(self._data[category])
        return self._data[category]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"Report({self._data!r}, frozen={self._frozen})"

    # ── Accumulation ─────────────────────────────────────────────────────

    @property
    def frozen(self) -> bool:
        return self._frozen

    def merge(self, fragment: Mapping[str, Mapping[str, Any]], owner: str | None = None) -> Report:
        """Deep-union ``fragment`` into the report.

        Keys of the ``owner`` category may be overwritten; every other
        category only gains keys it does not have yet.
        """
        if self._frozen:
            raise FrozenReportError("Cannot merge into a report snapshot")
        for category, facts in fragment.items():
            target = self._data.setdefault(category, {})
            deep_merge(target, facts, overwrite=(category == owner), path=category)
        return self

    def replace(self, category: str, facts: Mapping[str, Any]) -> Report:
        """Reset ``category`` to exactly ``facts``, dropping keys from earlier runs."""
        if self._frozen:
            raise FrozenReportError("Cannot replace a category of a report snapshot")
        self._data[category] = copy.deepcopy(dict(facts))
        return self

    def lookup(self, path: str, default: Any = None) -> Any:
        """Return the value at a dotted path such as ``database.connect``.

        On a snapshot, mapping values are returned as copies.
        """
        node: Any = self._data
        for part in path.split("."):
            if not isinstance(node, Mapping) or part not in node:
                return default
            node = node[part]
        return copy.deepcopy(node) if self._frozen else node

    def freeze(self) -> Report:
        """Return an immutable snapshot of the current state."""
        return Report(self._data, frozen=True)

    def to_dict(self) -> dict[str, dict[str, Any]]:
        return copy.deepcopy(self._data)

    def flatten(self) -> dict[str, dict[str, Value]]:
        """Category -> dotted check name -> scalar value (for rendering)."""
        flat: dict[str, dict[str, Value]] = {}
        for category, facts in self._data.items():
            rows: dict[str, Value] = {}
            _flatten_into(rows, facts, "")
            flat[category] = rows
        return flat


def _flatten_into(rows: dict[str, Value], facts: Mapping[str, Any], prefix: str) -> None:
    for key, value in facts.items():
        name = f"{prefix}{key}"
        if isinstance(value, Mapping):
            _flatten_into(rows, value, f"{name}.")
        else:
            rows[name] = value
