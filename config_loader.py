# config_loader.py
from __future__ import annotations

from pathlib import Path
from typing import Any
import re

try:
    import yaml  # PyYAML
except ImportError as e:
    raise SystemExit(
        "Missing dependency: PyYAML\n"
        "Install with: python -m pip install pyyaml"
    ) from e


class IntentParserConfig:
    """
    Immutable-ish container for IntentText parser configuration.

    Keyword and kind names are stored lower-cased.
    """

    def __init__(
        self,
        *,
        keywords: frozenset[str],
        containable_kinds: frozenset[str],
        section_kinds: frozenset[str],
        scope_preserving_kinds: frozenset[str],
        extension_prefixes: tuple[str, ...],
        keyword_re: re.Pattern,
        property_re: re.Pattern,
        ordered_list_re: re.Pattern,
        checkbox_re: re.Pattern,
        inline_link_re: re.Pattern,
        rtl_re: re.Pattern,
        priority_shortcut_re: re.Pattern,
        owner_shortcut_re: re.Pattern,
    ):
        self.keywords = keywords
        self.containable_kinds = containable_kinds
        self.section_kinds = section_kinds
        self.scope_preserving_kinds = scope_preserving_kinds
        self.extension_prefixes = extension_prefixes
        self.keyword_re = keyword_re
        self.property_re = property_re
        self.ordered_list_re = ordered_list_re
        self.checkbox_re = checkbox_re
        self.inline_link_re = inline_link_re
        self.rtl_re = rtl_re
        self.priority_shortcut_re = priority_shortcut_re
        self.owner_shortcut_re = owner_shortcut_re

    def looks_like_extension(self, keyword: str) -> bool:
        return keyword.startswith(self.extension_prefixes)


# ---------------- Defaults ---------------------------------------------------

RESERVED_KEYWORDS = frozenset({
    "title", "summary", "section", "sub", "divider", "note", "headers", "row",
    "task", "done", "question", "image", "link", "ref", "code", "end",
})

DEFAULT_CONFIG = IntentParserConfig(
    keywords=RESERVED_KEYWORDS,
    containable_kinds=frozenset(
        {"list-item", "step-item", "task", "done", "question", "note"}
    ),
    section_kinds=frozenset({"section", "sub"}),
    scope_preserving_kinds=frozenset({"title", "summary"}),
    extension_prefixes=("x-", "ext-"),
    keyword_re=re.compile(r"^([a-zA-Z][a-zA-Z0-9-]*):\s*(.*)$", re.DOTALL),
    property_re=re.compile(r"^([^:]+):\s*(.*)$", re.DOTALL),
    ordered_list_re=re.compile(r"^(\d+)\.\s+(.+)$", re.DOTALL),
    checkbox_re=re.compile(r"^\[( |x|X)\]\s+(.*)$", re.DOTALL),
    inline_link_re=re.compile(r"\[([^\]\n]+)\]\(([^)\s]+)\)"),
    rtl_re=re.compile(r"[\u0600-\u06FF]"),
    priority_shortcut_re=re.compile(r"^!(\w+)$"),
    owner_shortcut_re=re.compile(r"^@([\w.-]+)$"),
)

# ---------------- Loader -----------------------------------------------------


def _as_lower_str_set(value: Any, name: str) -> frozenset[str]:
    if value is None:
        return frozenset()
    if not isinstance(value, list):
        raise TypeError(f"{name} must be a list of strings")
    return frozenset(str(v).lower() for v in value)


def _compile(regex: dict[str, Any], key: str, default: re.Pattern) -> re.Pattern:
    pattern = regex.get(key)
    if pattern is None:
        return default
    return re.compile(str(pattern), default.flags)


def load_config(path: Path) -> IntentParserConfig:
    """
    Load YAML config and return an IntentParserConfig instance.
    """
    raw = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise TypeError("Config root must be a mapping")

    regex = raw.get("regex", {}) or {}
    if not isinstance(regex, dict):
        raise TypeError("regex must be a mapping of name to pattern")

    prefixes = raw.get("extension_prefixes", list(DEFAULT_CONFIG.extension_prefixes))
    if not isinstance(prefixes, list):
        raise TypeError("extension_prefixes must be a list of strings")

    return IntentParserConfig(
        keywords=_as_lower_str_set(
            raw.get("keywords", sorted(DEFAULT_CONFIG.keywords)),
            "keywords",
        ),
        containable_kinds=_as_lower_str_set(
            raw.get("containable_kinds", sorted(DEFAULT_CONFIG.containable_kinds)),
            "containable_kinds",
        ),
        section_kinds=_as_lower_str_set(
            raw.get("section_kinds", sorted(DEFAULT_CONFIG.section_kinds)),
            "section_kinds",
        ),
        scope_preserving_kinds=_as_lower_str_set(
            raw.get(
                "scope_preserving_kinds",
                sorted(DEFAULT_CONFIG.scope_preserving_kinds),
            ),
            "scope_preserving_kinds",
        ),
        extension_prefixes=tuple(str(p).lower() for p in prefixes),
        keyword_re=_compile(regex, "keyword_re", DEFAULT_CONFIG.keyword_re),
        property_re=_compile(regex, "property_re", DEFAULT_CONFIG.property_re),
        ordered_list_re=_compile(
            regex, "ordered_list_re", DEFAULT_CONFIG.ordered_list_re
        ),
        checkbox_re=_compile(regex, "checkbox_re", DEFAULT_CONFIG.checkbox_re),
        inline_link_re=_compile(
            regex, "inline_link_re", DEFAULT_CONFIG.inline_link_re
        ),
        rtl_re=_compile(regex, "rtl_re", DEFAULT_CONFIG.rtl_re),
        priority_shortcut_re=_compile(
            regex, "priority_shortcut_re", DEFAULT_CONFIG.priority_shortcut_re
        ),
        owner_shortcut_re=_compile(
            regex, "owner_shortcut_re", DEFAULT_CONFIG.owner_shortcut_re
        ),
    )
