"""Tolerant scanner for the tag markup found in model output.

Model output is prose with tag blocks mixed in, so this is not an XML parser:
unclosed or stray tags are skipped, and an element only has children when its
content is nothing but elements and whitespace.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator

TAG_PATTERN = re.compile(r"<(/?)([A-Za-z_][A-Za-z0-9_.:-]*)\s*>")
VALID_NAME = re.compile(r"[a-z][a-z0-9_]*")


@dataclass
class Element:
    name: str
    inner: str
    raw: str
    start: int
    end: int
    children: list[Element] | None = None

    @property
    def is_leaf(self) -> bool:
        return self.children is None


def is_valid_tag_name(name: str) -> bool:
    return VALID_NAME.fullmatch(name) is not None


def _match_close(text: str, name: str, pos: int) -> tuple[int, int] | None:
    depth = 1
    for match in TAG_PATTERN.finditer(text, pos):
        if match.group(2) != name:
            continue
        if match.group(1):
            depth -= 1
            if depth == 0:
                return match.start(), match.end()
        else:
            depth += 1
    return None


def _element(text: str, opening: re.Match, close: tuple[int, int]) -> Element:
    inner = text[opening.end() : close[0]]
    return Element(
        name=opening.group(2),
        inner=inner,
        raw=text[opening.start() : close[1]],
        start=opening.start(),
        end=close[1],
        children=parse_children(inner),
    )


def iter_elements(text: str) -> Iterator[Element]:
    """Yield closed top-level elements in document order."""
    pos = 0
    while True:
        opening = TAG_PATTERN.search(text, pos)
        if opening is None:
            return
        if opening.group(1):
            pos = opening.end()
            continue
        close = _match_close(text, opening.group(2), opening.end())
        if close is None:
            pos = opening.end()
            continue
        yield _element(text, opening, close)
        pos = close[1]


def parse_children(inner: str) -> list[Element] | None:
    """Child elements of ``inner``, or None when it holds any bare text."""
    children: list[Element] = []
    pos = 0
    while True:
        opening = TAG_PATTERN.search(inner, pos)
        if opening is None:
            if inner[pos:].strip():
                return None
            break
        if opening.group(1) or inner[pos : opening.start()].strip():
            return None
        close = _match_close(inner, opening.group(2), opening.end())
        if close is None:
            return None
        children.append(_element(inner, opening, close))
        pos = close[1]
    return children or None
