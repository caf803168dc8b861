"""Result formatter: turns the free-text analysis into display blocks.

Each line is classified on its own by the first matching rule in ``RULES``;
blank lines produce nothing and the output keeps the input line order.
"""

from __future__ import annotations

import re
from typing import Callable

from app.schemas.tree import BulletItem, DisplayBlock, Heading, LabeledField, Paragraph

_MARKDOWN_CHARS = re.compile(r"[*_#`]")
_NUMBERED = re.compile(r"^\d+\.")
_NUMBER_PREFIX = re.compile(r"^\d+\.\s*")


def clean_line(line: str) -> str:
    """Drop markdown emphasis/heading/code characters and surrounding whitespace."""
    return _MARKDOWN_CHARS.sub("", line).strip()


def _heading(line: str) -> Heading:
    return Heading(text=_NUMBER_PREFIX.sub("", line))


def _field(line: str) -> LabeledField:
    label, _, value = line[1:].partition(":")
    return LabeledField(label=label.strip(), value=value.strip())


def _bullet(line: str) -> BulletItem:
    return BulletItem(text=line[1:].strip())


def _paragraph(line: str) -> Paragraph:
    return Paragraph(text=line)


Rule = tuple[str, Callable[[str], bool], Callable[[str], DisplayBlock]]

# Order matters: the first predicate that accepts a line wins.
RULES: list[Rule] = [
    ("heading", lambda line: bool(_NUMBERED.match(line)), _heading),
    ("field", lambda line: line.startswith("-") and ":" in line, _field),
    ("bullet", lambda line: line.startswith("-"), _bullet),
    ("paragraph", lambda line: True, _paragraph),
]


def classify_line(line: str) -> DisplayBlock | None:
    """Format a single raw line; ``None`` when it is blank after cleaning."""
    cleaned = clean_line(line)
    if not cleaned:
        return None
    for _name, matches, build in RULES:
        if matches(cleaned):
            return build(cleaned)
    return None


def format_report(report: str) -> list[DisplayBlock]:
    blocks: list[DisplayBlock] = []
    for line in report.split("\n"):
        block = classify_line(line)
        if block is not None:
            blocks.append(block)
    return blocks
