#!/usr/bin/env python3
"""
Extension hooks for the IntentText parser.

An extension is an `IntentExtension` subclass passed to a single
`parse_intent_text()` call. It may:

  - add recognised keywords         (`keywords`)
  - replace or suppress the block   (`construct_block`)
    built for one of its keywords
  - replace inline tokenization     (`tokenize_inline`)
  - report extra diagnostics        (`validate`)

Hooks receive values, never parser state. Returning None from
`construct_block` / `tokenize_inline` declines and lets the parser carry on.
"""
from __future__ import annotations

import dataclasses
from typing import Callable, Iterable, Optional, Union

from intent_model import (
    Block,
    Diagnostic,
    DiagnosticCode,
    Document,
    InlineRun,
    PropertyValue,
    Severity,
)

InlineResult = tuple[str, list[InlineRun]]
InlineFn = Callable[[str], InlineResult]


class _Suppress:
    """Sentinel: the extension claims the keyword and wants no block."""

    def __repr__(self) -> str:
        return "SUPPRESS"


SUPPRESS = _Suppress()

BlockOutcome = Union[Block, _Suppress, None]


class IntentExtension:
    """Base class; override only the hooks you need."""

    keywords: frozenset[str] = frozenset()

    def construct_block(
        self,
        keyword: str,
        content: str,
        properties: Optional[dict[str, PropertyValue]],
        line: int,
        column: int,
        inline_fn: InlineFn,
    ) -> BlockOutcome:
        return None

    def tokenize_inline(self, text: str, default_fn: InlineFn) -> Optional[InlineResult]:
        return None

    def validate(self, document: Document) -> list[Diagnostic]:
        return []

    @staticmethod
    def diagnostic(
        message: str,
        line: int,
        column: int = 1,
        severity: Severity = Severity.WARNING,
    ) -> Diagnostic:
        """Build an EXTENSION_VALIDATION diagnostic."""
        return Diagnostic(
            severity=severity,
            code=DiagnosticCode.EXTENSION_VALIDATION,
            message=message,
            line=line,
            column=column,
        )


class ExtensionSet:
    """
    The extensions registered for one parse call, in registration order.
    """

    def __init__(self, extensions: Optional[Iterable[IntentExtension]] = None):
        self.extensions: tuple[IntentExtension, ...] = tuple(extensions or ())
        self.keywords: frozenset[str] = frozenset(
            k.lower() for ext in self.extensions for k in ext.keywords
        )

    def __bool__(self) -> bool:
        return bool(self.extensions)

    def claiming(self, keyword: str) -> list[IntentExtension]:
        keyword = keyword.lower()
        return [
            ext for ext in self.extensions
            if any(k.lower() == keyword for k in ext.keywords)
        ]

    def construct_block(
        self,
        keyword: str,
        content: str,
        properties: dict[str, PropertyValue],
        line: int,
        column: int,
        inline_fn: InlineFn,
    ) -> BlockOutcome:
        """
        First claiming extension that does not decline wins.

        Returns a Block, SUPPRESS, or None when every extension declined.
        """
        for ext in self.claiming(keyword):
            outcome = ext.construct_block(
                keyword,
                content,
                dict(properties) if properties else None,
                line,
                column,
                inline_fn,
            )
            if outcome is not None:
                return outcome
        return None

    def inline_fn(self, default_fn: InlineFn) -> InlineFn:
        """Compose extension tokenizers in front of `default_fn`."""
        if not self.extensions:
            return default_fn

        def tokenize(text: str) -> InlineResult:
            for ext in self.extensions:
                result = ext.tokenize_inline(text, default_fn)
                if result is not None:
                    return result
            return default_fn(text)

        return tokenize

    def validate(self, document: Document) -> list[Diagnostic]:
        found: list[Diagnostic] = []
        for ext in self.extensions:
            for diag in ext.validate(document) or []:
                if diag.code is not DiagnosticCode.EXTENSION_VALIDATION:
                    diag = dataclasses.replace(
                        diag, code=DiagnosticCode.EXTENSION_VALIDATION
                    )
                found.append(diag)
        return found
