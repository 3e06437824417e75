#!/usr/bin/env python3
from __future__ import annotations

from dataclasses import dataclass, field
from functools import partial
from typing import Iterable, Optional, Union
import re

from config_loader import DEFAULT_CONFIG, IntentParserConfig
from intent_extensions import SUPPRESS, ExtensionSet, InlineFn, IntentExtension
from intent_inline import tokenize_inline, unescape
from intent_metadata import (
    extract_property_shortcuts,
    parse_pipe_metadata,
    split_table_row,
)
from intent_model import (
    Block,
    BlockKind,
    Diagnostic,
    DiagnosticCode,
    Document,
    DocumentMetadata,
    PropertyValue,
    Severity,
    TablePayload,
)

LINE_SPLIT_RE = re.compile(r"\r?\n")

LIST_MARKERS = ("- ", "* ")

KEYWORD_KINDS: dict[str, BlockKind] = {
    "title": BlockKind.TITLE,
    "summary": BlockKind.SUMMARY,
    "section": BlockKind.SECTION,
    "sub": BlockKind.SUB,
    "divider": BlockKind.DIVIDER,
    "note": BlockKind.NOTE,
    "headers": BlockKind.HEADERS,
    "row": BlockKind.ROW,
    "task": BlockKind.TASK,
    "done": BlockKind.DONE,
    "question": BlockKind.QUESTION,
    "image": BlockKind.IMAGE,
    "link": BlockKind.LINK,
    "ref": BlockKind.REFERENCE,
    "code": BlockKind.CODE,
}

# Inner kinds that a "- ..." list item does not adopt as its child.
NOT_EMBEDDABLE = frozenset({
    BlockKind.BODY_TEXT,
    BlockKind.LIST_ITEM,
    BlockKind.STEP_ITEM,
    BlockKind.HEADERS,
    BlockKind.ROW,
})


@dataclass
class ParseContext:
    """
    Read-only settings shared by every line of one parse call.
    """
    cfg: IntentParserConfig
    keywords: frozenset[str]
    extensions: ExtensionSet
    inline_fn: InlineFn


@dataclass
class PendingTable:
    headers: Optional[list[str]] = None
    rows: list[list[str]] = field(default_factory=list)
    source: str = ""
    line: int = 0


@dataclass
class AssemblerState:
    """
    Mutable state threaded through the line loop of one parse call.

    Tracks:
    - finished top-level blocks and collected diagnostics
    - the open section, as an index into `blocks`
    - code capture (empty `code:` ... `end:`)
    - the pending table (`headers:` followed by `row:` lines)
    """
    blocks: list[Block] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)

    current_section_index: Optional[int] = None

    is_capturing_code: bool = False
    code_lines: list[str] = field(default_factory=list)
    code_start_line: int = 0

    pending_table: Optional[PendingTable] = None

    @property
    def current_section(self) -> Optional[Block]:
        if self.current_section_index is None:
            return None
        return self.blocks[self.current_section_index]


# ---------------- Line classifier --------------------------------------------


def _inline_block(
    kind: BlockKind,
    content: str,
    ctx: ParseContext,
    properties: Optional[dict[str, PropertyValue]] = None,
) -> Block:
    """Build a block from already-unescaped content."""
    text, runs = ctx.inline_fn(content)
    return Block(
        kind=kind,
        text=text,
        source_text=content,
        inline_runs=runs,
        properties=properties or None,
    )


def _classify_keyword(
    match: re.Match,
    trimmed: str,
    line_number: int,
    column: int,
    ctx: ParseContext,
    diagnostics: list[Diagnostic],
) -> Optional[Block]:
    keyword = match.group(1).lower()
    rest = match.group(2)
    rest_column = column + len(trimmed) - len(rest)

    if keyword not in ctx.keywords or keyword == "end":
        if ctx.cfg.looks_like_extension(keyword):
            diagnostics.append(
                Diagnostic(
                    severity=Severity.WARNING,
                    code=DiagnosticCode.UNKNOWN_EXTENSION_KEYWORD,
                    message=f"Unknown extension keyword '{keyword}:'",
                    line=line_number,
                    column=column,
                )
            )
            return _inline_block(
                BlockKind.EXTENSION, unescape(trimmed), ctx, {"keyword": keyword}
            )
        return _inline_block(BlockKind.BODY_TEXT, unescape(trimmed), ctx)

    if keyword == "code":
        return Block(kind=BlockKind.CODE, text=rest)

    properties: dict[str, PropertyValue] = {}
    if keyword in ("headers", "row"):
        # '|' is the cell separator here; cells are split from the raw text later.
        content = rest
        text, runs = ctx.inline_fn(unescape(rest))
    else:
        content, properties, problems = parse_pipe_metadata(
            rest, line_number, column=rest_column, cfg=ctx.cfg
        )
        diagnostics.extend(problems)
        text, runs = ctx.inline_fn(content)

    outcome = ctx.extensions.construct_block(
        keyword, content, properties, line_number, column, ctx.inline_fn
    )
    if outcome is SUPPRESS:
        return None
    if isinstance(outcome, Block):
        return outcome

    kind = KEYWORD_KINDS.get(keyword)
    if kind is None:
        # Registered by an extension (or config) but nobody built a block for it.
        return Block(
            kind=BlockKind.EXTENSION,
            text=text,
            source_text=content,
            inline_runs=runs,
            properties={**properties, "keyword": keyword},
        )

    return Block(
        kind=kind,
        text=text,
        source_text=content,
        inline_runs=runs,
        properties=properties or None,
    )


def _classify_checkbox(
    match: re.Match,
    trimmed: str,
    line_number: int,
    column: int,
    ctx: ParseContext,
    diagnostics: list[Diagnostic],
) -> Block:
    """
    '[ ] Review draft @sam !high | due: Friday'
    ->  task 'Review draft' {owner: sam, priority: high, due: Friday}
    """
    kind = BlockKind.TASK if match.group(1) == " " else BlockKind.DONE
    rest = match.group(2)

    content, properties, problems = parse_pipe_metadata(
        rest, line_number, column=column + len(trimmed) - len(rest), cfg=ctx.cfg
    )
    diagnostics.extend(problems)

    content, shortcuts = extract_property_shortcuts(content, ctx.cfg)
    return _inline_block(kind, content, ctx, {**shortcuts, **properties})


def _classify_list_item(
    trimmed: str,
    line_number: int,
    column: int,
    ctx: ParseContext,
    diagnostics: list[Diagnostic],
) -> Block:
    payload = trimmed[2:]

    # '- task: ...' shorthand. The payload is classified with nested=True,
    # so the embedded block is never itself a list item (depth 1).
    inner = classify_line(
        payload, line_number, ctx, diagnostics, nested=True, column_offset=column + 1
    )
    if inner is not None and inner.kind not in NOT_EMBEDDABLE:
        return Block(
            kind=BlockKind.LIST_ITEM,
            text=inner.text,
            source_text=inner.source_text,
            inline_runs=list(inner.inline_runs),
            properties=dict(inner.properties) if inner.properties else None,
            children=[inner],
        )

    return _inline_block(BlockKind.LIST_ITEM, unescape(payload), ctx)


def classify_line(
    line: str,
    line_number: int,
    ctx: ParseContext,
    diagnostics: list[Diagnostic],
    *,
    nested: bool = False,
    column_offset: int = 0,
) -> Optional[Block]:
    """
    Turn one source line into a draft block (or None for blank/suppressed).

    Decision order: keyword line, checkbox task, list item, ordered step,
    body text. Diagnostics are appended to `diagnostics`.
    """
    trimmed = line.strip()
    if not trimmed:
        return None

    column = column_offset + len(line) - len(line.lstrip()) + 1
    cfg = ctx.cfg

    keyword_match = cfg.keyword_re.match(trimmed)
    if keyword_match:
        return _classify_keyword(
            keyword_match, trimmed, line_number, column, ctx, diagnostics
        )

    checkbox_match = cfg.checkbox_re.match(trimmed)
    if checkbox_match:
        return _classify_checkbox(
            checkbox_match, trimmed, line_number, column, ctx, diagnostics
        )

    if not nested and trimmed.startswith(LIST_MARKERS):
        return _classify_list_item(trimmed, line_number, column, ctx, diagnostics)

    ordered_match = cfg.ordered_list_re.match(trimmed)
    if ordered_match:
        return _inline_block(BlockKind.STEP_ITEM, unescape(ordered_match.group(2)), ctx)

    return _inline_block(BlockKind.BODY_TEXT, unescape(trimmed), ctx)


# ---------------- Document assembler -----------------------------------------


def _attach_to_scope(state: AssemblerState, block: Block) -> None:
    """Append to the open section if there is one, else at top level."""
    section = state.current_section
    if section is not None:
        section.children.append(block)
    else:
        state.blocks.append(block)


def _flush_pending_table(state: AssemblerState) -> None:
    table = state.pending_table
    if table is None:
        return
    state.pending_table = None

    if table.headers and not table.rows:
        state.diagnostics.append(
            Diagnostic(
                severity=Severity.WARNING,
                code=DiagnosticCode.HEADERS_WITHOUT_ROWS,
                message="Table headers found with no following rows.",
                line=table.line,
            )
        )

    _attach_to_scope(
        state,
        Block(
            kind=BlockKind.TABLE,
            text=table.source,
            table_payload=TablePayload(headers=table.headers, rows=table.rows),
        ),
    )


def _close_code_capture(state: AssemblerState) -> None:
    _attach_to_scope(
        state, Block(kind=BlockKind.CODE, text="\n".join(state.code_lines))
    )
    state.is_capturing_code = False
    state.code_lines = []
    state.code_start_line = 0


def _handle_table_block_if_present(
    block: Block,
    line_number: int,
    state: AssemblerState,
) -> bool:
    if block.kind not in (BlockKind.HEADERS, BlockKind.ROW):
        return False

    raw = block.source_text if block.source_text is not None else block.text
    cells = split_table_row(raw)

    if block.kind is BlockKind.HEADERS:
        _flush_pending_table(state)
        state.pending_table = PendingTable(
            headers=cells, source=unescape(raw), line=line_number
        )
        return True

    if state.pending_table is not None:
        state.pending_table.rows.append(cells)
        return True

    state.diagnostics.append(
        Diagnostic(
            severity=Severity.WARNING,
            code=DiagnosticCode.ROW_WITHOUT_HEADERS,
            message="Table row found without preceding headers.",
            line=line_number,
        )
    )
    state.pending_table = PendingTable(rows=[cells], line=line_number)
    _flush_pending_table(state)
    return True


def _place_block(block: Block, cfg: IntentParserConfig, state: AssemblerState) -> None:
    kind = block.kind.value

    if kind in cfg.section_kinds:
        block.children = []
        state.blocks.append(block)
        state.current_section_index = len(state.blocks) - 1
        return

    section = state.current_section
    if section is not None and kind in cfg.containable_kinds:
        section.children.append(block)
        return

    state.blocks.append(block)
    if kind not in cfg.scope_preserving_kinds:
        state.current_section_index = None


def feed_line(
    line: str,
    line_number: int,
    ctx: ParseContext,
    state: AssemblerState,
) -> AssemblerState:
    """
    Advance the assembler by one source line and return the state.
    """
    trimmed = line.strip()

    # ----- Code capture --------------------------------------------
    if state.is_capturing_code:
        if trimmed.lower() == "end:":
            _close_code_capture(state)
        else:
            state.code_lines.append(line)
        return state
    # ---------------------------------------------------------------

    keyword_match = ctx.cfg.keyword_re.match(trimmed)
    keyword = keyword_match.group(1).lower() if keyword_match else None

    if state.pending_table is not None and keyword != "row":
        _flush_pending_table(state)

    # 'end: <text>' is not a terminator; it degrades to body text below.
    if keyword == "end" and not keyword_match.group(2).strip():
        state.diagnostics.append(
            Diagnostic(
                severity=Severity.WARNING,
                code=DiagnosticCode.UNEXPECTED_END,
                message="Unexpected 'end:' outside of a code block.",
                line=line_number,
                column=len(line) - len(line.lstrip()) + 1,
            )
        )
        return state

    if keyword == "code":
        rest = keyword_match.group(2)
        if rest == "":
            state.is_capturing_code = True
            state.code_lines = []
            state.code_start_line = line_number
        else:
            _attach_to_scope(state, Block(kind=BlockKind.CODE, text=rest))
        return state

    block = classify_line(line, line_number, ctx, state.diagnostics)
    if block is None:
        return state

    if _handle_table_block_if_present(block, line_number, state):
        return state

    _place_block(block, ctx.cfg, state)
    return state


def finish_document(state: AssemblerState, ctx: ParseContext) -> Document:
    """
    Close open groupings, derive metadata and run extension validators.
    """
    _flush_pending_table(state)

    if state.is_capturing_code:
        state.diagnostics.append(
            Diagnostic(
                severity=Severity.ERROR,
                code=DiagnosticCode.UNTERMINATED_CODE_BLOCK,
                message="Unterminated code block. Expected 'end:' before end of file.",
                line=state.code_start_line,
            )
        )
        _close_code_capture(state)

    title = next((b.text for b in state.blocks if b.kind is BlockKind.TITLE), None)
    summary = next((b.text for b in state.blocks if b.kind is BlockKind.SUMMARY), None)

    document = Document(blocks=state.blocks, diagnostics=state.diagnostics)
    is_rtl = any(ctx.cfg.rtl_re.search(b.text) for b in document.walk())
    document.metadata = DocumentMetadata(
        title=title,
        summary=summary,
        direction="rtl" if is_rtl else "ltr",
    )

    document.diagnostics.extend(ctx.extensions.validate(document))
    return document


def make_parse_context(
    extensions: Union[ExtensionSet, Iterable[IntentExtension], None] = None,
    cfg: IntentParserConfig = DEFAULT_CONFIG,
) -> ParseContext:
    if not isinstance(extensions, ExtensionSet):
        extensions = ExtensionSet(extensions)
    default_fn = partial(tokenize_inline, link_re=cfg.inline_link_re)
    return ParseContext(
        cfg=cfg,
        keywords=cfg.keywords | extensions.keywords,
        extensions=extensions,
        inline_fn=extensions.inline_fn(default_fn),
    )


def parse_intent_text(
    text: str,
    extensions: Union[ExtensionSet, Iterable[IntentExtension], None] = None,
    cfg: IntentParserConfig = DEFAULT_CONFIG,
) -> Document:
    """
    Parse IntentText source into a Document.

    Never raises for malformed markup: problems are reported in
    `Document.diagnostics` and the best-effort block tree is returned.
    """
    ctx = make_parse_context(extensions, cfg)
    state = AssemblerState()

    for line_number, line in enumerate(LINE_SPLIT_RE.split(text), start=1):
        state = feed_line(line, line_number, ctx, state)

    return finish_document(state, ctx)
