"""Deep merge for layered configuration documents.

Merge policy:
- mapping + mapping: merged recursively, key by key
- anything else: the override value replaces the base value wholesale
  (sequences are replaced, never concatenated or merged element-wise)

Type mismatches are not errors. Neither input is mutated.
"""

from copy import deepcopy
from typing import Any


def deep_merge(base: dict, override: dict) -> dict:
    """Merge override into base and return a new mapping.

    Base keys keep their order; override-only keys follow in override order.

    Args:
        base: Lower-precedence mapping
        override: Higher-precedence mapping

    Returns:
        Fresh merged mapping sharing no mutable state with the inputs
    """
    result: dict[str, Any] = deepcopy(base) if base else {}

    for key, value in (override or {}).items():
        current = result.get(key)
        if key in result and isinstance(current, dict) and isinstance(value, dict):
            result[key] = deep_merge(current, value)
        else:
            result[key] = deepcopy(value)

    return result
