from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Iterable, Optional

from config_loader import DEFAULT_CONFIG, IntentParserConfig, load_config
from helper import format_block_event, format_diagnostic, print_event_gray
from intent_extensions import IntentExtension
from intent_markdown import convert_markdown_to_intent_text
from intent_model import Block, Document
from intent_parser import parse_intent_text


INTENT_SUFFIXES = (".it", ".txt")
MARKDOWN_SUFFIXES = (".md", ".markdown")


def safe_input_path(
    raw: str,
    *,
    root: Path | None = None,
    suffixes: tuple[str, ...] | None = None,
) -> Path:
    """
    Turn a user-supplied document path into an absolute, existing file path.

    Rejects empty paths, NUL bytes and '..' components. With `root`, the
    resolved path must lie inside it. With `suffixes`, the file extension
    (case-insensitive) must be one of them.
    """
    if not raw or raw.strip() == "":
        raise ValueError("Empty input path.")

    if "\x00" in raw:
        raise ValueError("NUL byte in path is not allowed.")

    p = Path(raw).expanduser()
    if ".." in p.parts:
        raise ValueError("Path traversal ('..') is not allowed.")

    resolved = p.resolve(strict=False)

    if root is not None:
        root_resolved = root.resolve(strict=True)
        try:
            resolved.relative_to(root_resolved)
        except ValueError as e:
            raise ValueError(f"Input path must be within root: {root_resolved}") from e

    if not resolved.exists():
        raise FileNotFoundError(f"Document not found: {resolved}")
    if not resolved.is_file():
        raise IsADirectoryError(f"Not a document file: {resolved}")

    if suffixes is not None and resolved.suffix.lower() not in suffixes:
        expected = ", ".join(suffixes)
        raise ValueError(f"Unsupported file type '{resolved.suffix}' (expected {expected}).")

    return resolved


def read_intent_source(path: Path) -> str:
    """
    Read an IntentText (or Markdown) file as UTF-8.

    A leading BOM is dropped. Undecodable input raises ValueError; the
    parser itself only ever sees text.
    """
    path = Path(path)
    try:
        return path.read_bytes().decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise ValueError(f"{path} is not valid UTF-8: {e}") from e


def parse_intent_file(
    path: Path,
    extensions: Optional[Iterable[IntentExtension]] = None,
    cfg: IntentParserConfig = DEFAULT_CONFIG,
    *,
    markdown: bool = False,
) -> Document:
    text = read_intent_source(path)
    if markdown:
        text = convert_markdown_to_intent_text(text)
    return parse_intent_text(text, extensions, cfg)


def _print_outline(blocks: list[Block], depth: int = 0) -> None:
    for block in blocks:
        print(format_block_event(block, depth))
        _print_outline(block.children, depth + 1)


def _trace_events(blocks: list[Block], depth: int = 0) -> None:
    for block in blocks:
        print_event_gray(f"[block {block.identity[:8]}] {format_block_event(block, depth)}")
        _trace_events(block.children, depth + 1)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="intent_reader.py",
        description="Parse an IntentText (.it) file and show its blocks and diagnostics.",
    )
    parser.add_argument(
        "input",
        help="IntentText file to read",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Optional YAML parser config (default: built-in settings)",
    )
    parser.add_argument(
        "--root",
        default=None,
        help="Optional root directory: input file must be within this directory.",
    )
    parser.add_argument(
        "--markdown",
        action="store_true",
        help="Treat the input as Markdown and convert it before parsing.",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the parsed document as JSON.",
    )
    parser.add_argument(
        "--events",
        action="store_true",
        help="Trace every parsed block in gray.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)

    cfg = DEFAULT_CONFIG
    if args.config:
        try:
            cfg = load_config(Path(args.config))
        except Exception as e:
            print(f"[intent_reader] Failed to load config: {e}", file=sys.stderr)
            return 2

    root_dir: Path | None = None
    if args.root:
        try:
            root_dir = Path(args.root).expanduser().resolve(strict=True)
        except Exception as e:
            print(f"[intent_reader] Invalid --root: {e}", file=sys.stderr)
            return 2

    try:
        suffixes = MARKDOWN_SUFFIXES if args.markdown else INTENT_SUFFIXES
        input_path = safe_input_path(args.input, root=root_dir, suffixes=suffixes)
        text = read_intent_source(input_path)
    except (OSError, ValueError) as e:
        print(f"[intent_reader] Invalid input: {e}", file=sys.stderr)
        return 2

    try:
        if args.markdown:
            text = convert_markdown_to_intent_text(text)
        document = parse_intent_text(text, cfg=cfg)
    except Exception as e:
        print(f"[intent_reader] Error while parsing: {e}", file=sys.stderr)
        return 1

    if args.events:
        _trace_events(document.blocks)

    if args.json:
        print(json.dumps(document.to_dict(), ensure_ascii=False, indent=2))
    else:
        _print_outline(document.blocks)

    for diagnostic in document.diagnostics:
        print(format_diagnostic(diagnostic, input_path.name), file=sys.stderr)

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
