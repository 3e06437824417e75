#!/usr/bin/env python3
"""
intent_markdown.py

Line-based Markdown -> IntentText source converter.

Scope (intentionally small):
- '#' -> title:, '##' -> section:, '###'.. -> sub:
- fenced code -> code: ... end:
- whole-line image / link -> image: ... | at: / link: ... | to:
- bullet and numbered lists are kept as IntentText lists
- any other paragraph line -> note:
"""
from __future__ import annotations

import re

HEADING_RE = re.compile(r"^(#{1,6})\s+(.+)$")
IMAGE_RE = re.compile(r"^!\[([^\]]*)\]\(([^)]+)\)$")
LINK_RE = re.compile(r"^\[([^\]]+)\]\(([^)]+)\)$")
UNORDERED_RE = re.compile(r"^[-*+]\s+(.+)$")
ORDERED_RE = re.compile(r"^(\d+)\.\s+(.+)$")

INLINE_CODE_RE = re.compile(r"`([^`]+)`")
BOLD_RE = re.compile(r"\*\*(.+?)\*\*")
ITALIC_RE = re.compile(r"(^|\s)\*([^*\s][^*]*?)\*(?=\s|$)")
STRIKE_RE = re.compile(r"~~([^~]+)~~")

# Placeholder for converted bold marks while single-star italics are rewritten.
_BOLD_MARK = "\x00"


def convert_inline(text: str) -> str:
    """
    Rewrite Markdown inline marks into IntentText ones.

      `code`    -> ```code```
      **bold**  -> *bold*
      *italic*  -> _italic_
      ~~gone~~  -> ~gone~
    """
    result = INLINE_CODE_RE.sub(r"```\1```", text)
    result = BOLD_RE.sub(lambda m: f"{_BOLD_MARK}{m.group(1)}{_BOLD_MARK}", result)
    result = ITALIC_RE.sub(r"\1_\2_", result)
    result = result.replace(_BOLD_MARK, "*")
    return STRIKE_RE.sub(r"~\1~", result)


def _heading_keyword(level: int) -> str:
    if level == 1:
        return "title"
    if level == 2:
        return "section"
    return "sub"


def convert_markdown_to_intent_text(markdown: str) -> str:
    out: list[str] = []
    in_code_block = False
    code_lines: list[str] = []

    def flush_code_block() -> None:
        out.append("code:")
        out.extend(code_lines)
        out.append("end:")
        code_lines.clear()

    for raw in re.split(r"\r?\n", markdown):
        stripped = raw.strip()

        # --- fenced code ---------------------------------------------------
        if stripped.startswith("```"):
            if in_code_block:
                flush_code_block()
            in_code_block = not in_code_block
            continue

        if in_code_block:
            code_lines.append(raw)
            continue

        if not stripped:
            out.append("")
            continue

        match = HEADING_RE.match(stripped)
        if match:
            keyword = _heading_keyword(len(match.group(1)))
            out.append(f"{keyword}: {convert_inline(match.group(2).strip())}")
            continue

        match = IMAGE_RE.match(stripped)
        if match:
            alt = convert_inline(match.group(1).strip())
            out.append(f"image: {alt} | at: {match.group(2).strip()}")
            continue

        match = LINK_RE.match(stripped)
        if match:
            label = convert_inline(match.group(1).strip())
            out.append(f"link: {label} | to: {match.group(2).strip()}")
            continue

        match = UNORDERED_RE.match(stripped)
        if match:
            out.append(f"- {convert_inline(match.group(1).strip())}")
            continue

        match = ORDERED_RE.match(stripped)
        if match:
            out.append(f"{match.group(1)}. {convert_inline(match.group(2).strip())}")
            continue

        out.append(f"note: {convert_inline(stripped)}")

    # Unterminated fence: keep what was captured.
    if in_code_block:
        flush_code_block()

    while out and out[-1] == "":
        out.pop()

    return "\n".join(out)
