#!/usr/bin/env python3
from __future__ import annotations

import re
from typing import Optional

from intent_model import InlineRun, RunKind

DELIMITER_TO_KIND: dict[str, RunKind] = {
    "*": RunKind.BOLD,
    "_": RunKind.ITALIC,
    "~": RunKind.STRIKE,
}

CODE_FENCE = "```"

DEFAULT_LINK_RE = re.compile(r"\[([^\]\n]+)\]\(([^)\s]+)\)")


def unescape(segment: str) -> str:
    """
    Resolve IntentText escapes in a raw segment.

      \\|  -> |
      \\\\  -> \\

    Any other backslash is kept literally. Apply exactly once per segment.
    """
    if "\\" not in segment:
        return segment

    out: list[str] = []
    i = 0
    while i < len(segment):
        ch = segment[i]
        if ch == "\\" and i + 1 < len(segment) and segment[i + 1] in "\\|":
            out.append(segment[i + 1])
            i += 2
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def tokenize_inline(
    text: str,
    link_re: Optional[re.Pattern] = None,
) -> tuple[str, list[InlineRun]]:
    """
    Tokenize an (already unescaped) span into inline runs.

    Supported:
      ```code```        -> CODE
      [label](target)   -> LINK (value=label, href=target)
      *bold*            -> BOLD
      _italic_          -> ITALIC
      ~strike~          -> STRIKE

    Everything else -> TEXT. Marks do not nest; an unmatched delimiter
    is kept as literal text. Returns (content, runs) where content is the
    concatenation of all run values.
    """
    link_re = link_re or DEFAULT_LINK_RE
    runs: list[InlineRun] = []
    buffer: list[str] = []

    def flush_plaintext() -> None:
        if buffer:
            runs.append(InlineRun(RunKind.TEXT, "".join(buffer)))
            buffer.clear()

    def push(kind: RunKind, value: str, href: Optional[str] = None) -> None:
        flush_plaintext()
        runs.append(InlineRun(kind, value, href))

    def is_candidate(pos: int) -> bool:
        ch = text[pos]
        return ch in DELIMITER_TO_KIND or ch == "[" or text.startswith(CODE_FENCE, pos)

    i = 0
    while i < len(text):
        # --- triple-backtick code span ------------------------------------
        if text.startswith(CODE_FENCE, i):
            end = text.find(CODE_FENCE, i + 3)
            if end == -1:
                buffer.append(CODE_FENCE)
                i += 3
                continue
            push(RunKind.CODE, text[i + 3 : end])
            i = end + 3
            continue

        ch = text[i]

        # --- [label](target) ----------------------------------------------
        if ch == "[":
            match = link_re.match(text, i)
            if match:
                push(RunKind.LINK, match.group(1), match.group(2))
                i = match.end()
                continue

        # --- single-character marks ---------------------------------------
        if ch in DELIMITER_TO_KIND:
            end = text.find(ch, i + 1)
            if end == -1:
                buffer.append(ch)
                i += 1
                continue
            push(DELIMITER_TO_KIND[ch], text[i + 1 : end])
            i = end + 1
            continue

        # --- plain run up to the next candidate -----------------------------
        j = i + 1
        while j < len(text) and not is_candidate(j):
            j += 1
        buffer.append(text[i:j])
        i = j

    flush_plaintext()
    content = "".join(run.value for run in runs)
    return content, runs
