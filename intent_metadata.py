#!/usr/bin/env python3
from __future__ import annotations

import re
from typing import Optional

from config_loader import DEFAULT_CONFIG, IntentParserConfig
from intent_inline import unescape
from intent_model import Diagnostic, DiagnosticCode, PropertyValue, Severity

PIPE_SEPARATOR = " | "
_WHITESPACE_SPLIT_RE = re.compile(r"(\s+)")


def _is_escaped(text: str, pos: int) -> bool:
    """True if text[pos] is preceded by an odd run of backslashes."""
    backslashes = 0
    j = pos - 1
    while j >= 0 and text[j] == "\\":
        backslashes += 1
        j -= 1
    return backslashes % 2 == 1


def split_pipe_metadata(remainder: str) -> list[str]:
    """
    Split a keyword remainder on unescaped " | ".

    Example:
        'Ship it | owner: Sam | due: Friday'
    ->  ['Ship it', 'owner: Sam', 'due: Friday']

    A separator whose leading space follows an odd run of backslashes is
    escaped and kept in the segment. Segments are returned raw.
    """
    parts: list[str] = []
    current: list[str] = []
    i = 0
    while i < len(remainder):
        if remainder.startswith(PIPE_SEPARATOR, i) and not _is_escaped(remainder, i):
            parts.append("".join(current))
            current = []
            i += len(PIPE_SEPARATOR)
            continue
        current.append(remainder[i])
        i += 1
    parts.append("".join(current))
    return parts


def parse_pipe_metadata(
    remainder: str,
    line_number: int,
    *,
    column: int = 1,
    cfg: IntentParserConfig = DEFAULT_CONFIG,
) -> tuple[str, dict[str, PropertyValue], list[Diagnostic]]:
    """
    Divide a keyword remainder into content and `key: value` properties.

    `column` is the 1-based source column where `remainder` starts; it is
    used to place INVALID_PROPERTY_SEGMENT diagnostics on the offending
    segment. Invalid segments are appended back onto the content as
    ' | <segment>' so nothing is lost.

    Returns (content, properties, diagnostics); content is unescaped.
    """
    parts = split_pipe_metadata(remainder)
    content = unescape(parts[0])
    properties: dict[str, PropertyValue] = {}
    diagnostics: list[Diagnostic] = []

    offset = len(parts[0]) + len(PIPE_SEPARATOR)
    for segment in parts[1:]:
        segment_column = column + offset
        offset += len(segment) + len(PIPE_SEPARATOR)

        match = cfg.property_re.match(segment)
        key = match.group(1).strip() if match else ""

        problem: Optional[str] = None
        if not match or not key:
            problem = f"Invalid property segment '{segment.strip()}'. Expected 'key: value'."
        elif "\\" in key or "|" in key:
            problem = f"Invalid property key '{key}'. Property keys must not contain escapes."

        if problem is not None:
            diagnostics.append(
                Diagnostic(
                    severity=Severity.WARNING,
                    code=DiagnosticCode.INVALID_PROPERTY_SEGMENT,
                    message=problem,
                    line=line_number,
                    column=segment_column,
                )
            )
            content += PIPE_SEPARATOR + unescape(segment)
            continue

        properties[key] = unescape(match.group(2).strip())

    return content, properties, diagnostics


def split_table_row(text: str) -> list[str]:
    """
    Split `headers:` / `row:` content into cells.

    Splits on every unescaped '|' (no surrounding spaces needed), trims and
    unescapes each cell, and drops cells that end up empty:

        'Name | Age |'  -> ['Name', 'Age']
        'a\\|b | c'      -> ['a|b', 'c']
    """
    cells: list[str] = []
    current: list[str] = []
    escaping = False

    for ch in text:
        if escaping:
            current.append(ch)
            escaping = False
            continue
        if ch == "\\":
            current.append(ch)
            escaping = True
            continue
        if ch == "|":
            cells.append(unescape("".join(current).strip()))
            current = []
            continue
        current.append(ch)

    cells.append(unescape("".join(current).strip()))
    return [c for c in cells if c != ""]


def extract_property_shortcuts(
    content: str,
    cfg: IntentParserConfig = DEFAULT_CONFIG,
) -> tuple[str, dict[str, PropertyValue]]:
    """
    Pull checkbox-task shortcuts out of raw content.

      '@sarah'  -> owner: sarah
      '!high'   -> priority: high

    Only whole whitespace-separated tokens count. A removed token takes the
    whitespace run after it with it; all other spacing is left as written.
    """
    properties: dict[str, PropertyValue] = {}
    kept: list[str] = []
    drop_gap = False

    for part in _WHITESPACE_SPLIT_RE.split(content):
        if not part:
            continue
        if part.isspace():
            if not drop_gap:
                kept.append(part)
            drop_gap = False
            continue
        owner = cfg.owner_shortcut_re.match(part)
        if owner:
            properties["owner"] = owner.group(1)
            drop_gap = True
            continue
        priority = cfg.priority_shortcut_re.match(part)
        if priority:
            properties["priority"] = priority.group(1)
            drop_gap = True
            continue
        drop_gap = False
        kept.append(part)

    if not properties:
        return content, properties
    return "".join(kept).strip(), properties
