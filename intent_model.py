"""
Data model for parsed IntentText documents.

A parse produces one `Document`: an ordered list of top-level `Block`s
(sections own their children), derived metadata, and the diagnostics
collected along the way.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union
import uuid


class BlockKind(str, Enum):
    """Semantic role of a block. Values match the source keywords."""
    TITLE = "title"
    SUMMARY = "summary"
    SECTION = "section"
    SUB = "sub"
    DIVIDER = "divider"
    NOTE = "note"
    TASK = "task"
    DONE = "done"
    QUESTION = "question"
    IMAGE = "image"
    LINK = "link"
    REFERENCE = "ref"
    CODE = "code"
    TABLE = "table"
    LIST_ITEM = "list-item"
    STEP_ITEM = "step-item"
    BODY_TEXT = "body-text"
    EXTENSION = "extension"
    # Draft kinds: produced by the line classifier, folded into TABLE
    # by the assembler and never present in a finished document.
    HEADERS = "headers"
    ROW = "row"

    @classmethod
    def for_keyword(cls, keyword: str) -> Optional["BlockKind"]:
        try:
            return cls(keyword.lower())
        except ValueError:
            return None


class RunKind(str, Enum):
    TEXT = "text"
    BOLD = "bold"
    ITALIC = "italic"
    STRIKE = "strike"
    CODE = "code"
    LINK = "link"


@dataclass
class InlineRun:
    """
    One delimiter-stripped fragment of inline text.

    `href` is only set on LINK runs; `value` is always the visible text.
    """
    kind: RunKind
    value: str
    href: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.kind.value, "value": self.value}
        if self.href is not None:
            data["href"] = self.href
        return data


@dataclass
class TablePayload:
    headers: Optional[list[str]] = None
    rows: list[list[str]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"rows": [list(r) for r in self.rows]}
        if self.headers is not None:
            data["headers"] = list(self.headers)
        return data


PropertyValue = Union[str, int, float]


def new_block_id() -> str:
    return str(uuid.uuid4())


@dataclass
class Block:
    """
    A parsed unit of document structure.

    kind:
      exactly one BlockKind
    text:
      content after escape resolution and inline-mark removal
    source_text:
      content as written, before inline processing (legacy renderers)
    inline_runs:
      runs whose values concatenate to `text`; may be empty
    properties:
      pipe metadata (`| key: value`), None when none was given
    children:
      nested blocks owned by this one (sections, list-item shorthand)
    table_payload:
      present if and only if kind is TABLE
    """
    kind: BlockKind
    text: str = ""
    source_text: Optional[str] = None
    inline_runs: list[InlineRun] = field(default_factory=list)
    properties: Optional[dict[str, PropertyValue]] = None
    children: list["Block"] = field(default_factory=list)
    table_payload: Optional[TablePayload] = None
    identity: str = field(default_factory=new_block_id)

    def __post_init__(self) -> None:
        if (self.kind is BlockKind.TABLE) != (self.table_payload is not None):
            raise ValueError(
                f"table_payload must be set exactly on table blocks (kind={self.kind.value})"
            )

    def walk(self):
        """Yield this block and all of its descendants, depth-first."""
        yield self
        for child in self.children:
            yield from child.walk()

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.identity,
            "type": self.kind.value,
            "content": self.text,
        }
        if self.source_text is not None:
            data["originalContent"] = self.source_text
        if self.inline_runs:
            data["inline"] = [run.to_dict() for run in self.inline_runs]
        if self.properties:
            data["properties"] = dict(self.properties)
        if self.children:
            data["children"] = [child.to_dict() for child in self.children]
        if self.table_payload is not None:
            data["table"] = self.table_payload.to_dict()
        return data


class Severity(str, Enum):
    WARNING = "warning"
    ERROR = "error"


class DiagnosticCode(str, Enum):
    UNTERMINATED_CODE_BLOCK = "UNTERMINATED_CODE_BLOCK"
    UNEXPECTED_END = "UNEXPECTED_END"
    INVALID_PROPERTY_SEGMENT = "INVALID_PROPERTY_SEGMENT"
    HEADERS_WITHOUT_ROWS = "HEADERS_WITHOUT_ROWS"
    ROW_WITHOUT_HEADERS = "ROW_WITHOUT_HEADERS"
    UNKNOWN_EXTENSION_KEYWORD = "UNKNOWN_EXTENSION_KEYWORD"
    EXTENSION_VALIDATION = "EXTENSION_VALIDATION"


@dataclass
class Diagnostic:
    """A non-fatal note about something the parser could not cleanly read."""
    severity: Severity
    code: DiagnosticCode
    message: str
    line: int
    column: int = 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "severity": self.severity.value,
            "code": self.code.value,
            "message": self.message,
            "line": self.line,
            "column": self.column,
        }


@dataclass
class DocumentMetadata:
    title: Optional[str] = None
    summary: Optional[str] = None
    direction: str = "ltr"  # "ltr" | "rtl"

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"language": self.direction}
        if self.title is not None:
            data["title"] = self.title
        if self.summary is not None:
            data["summary"] = self.summary
        return data


@dataclass
class Document:
    blocks: list[Block] = field(default_factory=list)
    metadata: DocumentMetadata = field(default_factory=DocumentMetadata)
    diagnostics: list[Diagnostic] = field(default_factory=list)

    def walk(self):
        """Yield every block of the document, depth-first."""
        for block in self.blocks:
            yield from block.walk()

    def to_dict(self) -> dict[str, Any]:
        return {
            "blocks": [block.to_dict() for block in self.blocks],
            "metadata": self.metadata.to_dict(),
            "diagnostics": [d.to_dict() for d in self.diagnostics],
        }
