"""Deep merge for persisted network records.

Pure and deterministic: inputs are never mutated and the same pair always
produces the same result.

Policy:
  - dict + dict  -> recursive merge per key
  - list + list  -> index-wise merge; the result is at least as long as the
    base, so a shorter override never truncates (``legacyAddresses``
    stays append-only)
  - ``None`` in the override -> base value kept
  - anything else -> override replaces base
"""

from __future__ import annotations

from copy import deepcopy
from typing import Any


def merge_values(base: Any, override: Any) -> Any:
    """Merge a single pair of values under the policy above."""
    if override is None:
        return deepcopy(base)
    if isinstance(base, dict) and isinstance(override, dict):
        return deep_merge(base, override)
    if isinstance(base, list) and isinstance(override, list):
        merged = [
            merge_values(base[i], override[i]) if i < len(base) else deepcopy(override[i])
            for i in range(len(override))
        ]
        merged.extend(deepcopy(base[len(override) :]))
        return merged
    return deepcopy(override)


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict with *override* merged into *base*.

    Keys only present in *base* are preserved untouched.
    """
    result: dict[str, Any] = deepcopy(base)
    for key, value in override.items():
        if key in result:
            result[key] = merge_values(result[key], value)
        elif value is not None:
            result[key] = deepcopy(value)
    return result
