from __future__ import annotations

from typing import Optional

from intent_model import Block, Diagnostic

GRAY = "\033[90m"
RESET = "\033[0m"


def print_event_gray(text: str) -> None:
    """
    Print event/debug output in gray using ANSI escape codes.
    """
    print(f"{GRAY}{text}{RESET}")


def format_diagnostic(diagnostic: Diagnostic, source: Optional[str] = None) -> str:
    """'notes.it:3:1: warning UNEXPECTED_END Unexpected ...'"""
    location = f"{diagnostic.line}:{diagnostic.column}"
    if source:
        location = f"{source}:{location}"
    return (
        f"{location}: {diagnostic.severity.value} "
        f"{diagnostic.code.value} {diagnostic.message}"
    )


def format_block_event(block: Block, depth: int = 0) -> str:
    """One-line trace of a block, e.g. '  task Ship it {owner: Sam}'."""
    parts = ["  " * depth + block.kind.value]
    if block.text:
        parts.append(block.text.replace("\n", "\\n"))
    if block.properties:
        props = ", ".join(f"{k}: {v}" for k, v in block.properties.items())
        parts.append("{" + props + "}")
    if block.table_payload is not None:
        parts.append(
            f"[{len(block.table_payload.rows)} row(s)"
            f", headers={block.table_payload.headers}]"
        )
    return " ".join(parts)
