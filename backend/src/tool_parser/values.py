"""Turn tag content into parameter values."""

from __future__ import annotations

import json
import re
from typing import Any

from .tags import Element

NUMBER_PATTERN = re.compile(r"-?(?:0|[1-9]\d*)(?:\.\d+)?(?:[eE][+-]?\d+)?")


def normalize_value(raw: str) -> Any:
    """Best-effort typing of leaf text.

    Empty text stays ``""``, ``true``/``false`` (any case) become booleans,
    numeric literals become numbers, JSON arrays and objects are decoded and
    everything else is returned trimmed.
    """
    value = raw.strip()
    if not value:
        return ""
    lowered = value.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    if NUMBER_PATTERN.fullmatch(value):
        if any(c in value for c in ".eE"):
            return float(value)
        return int(value)
    if (value[0], value[-1]) in (("[", "]"), ("{", "}")):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            pass
    return value


def element_value(element: Element) -> Any:
    """Schema-free value of an element: leaf text, an ``<item>`` list or a map."""
    if element.children is None:
        return normalize_value(element.inner)
    if all(child.name == "item" for child in element.children):
        return [element_value(child) for child in element.children]
    return collect_children(element.children, element_value)


def collect_children(children: list[Element], convert) -> dict[str, Any]:
    """Map child names to values; repeated names accumulate into a list."""
    result: dict[str, Any] = {}
    repeated: set[str] = set()
    for child in children:
        value = convert(child)
        if child.name not in result:
            result[child.name] = value
        elif child.name in repeated:
            result[child.name].append(value)
        else:
            result[child.name] = [result[child.name], value]
            repeated.add(child.name)
    return result
