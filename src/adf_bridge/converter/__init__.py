"""Bidirectional markdown <-> ADF converters."""

from adf_bridge.converter.adf_to_markdown import (
    DIALECTS,
    JIRA,
    MARKDOWN,
    AdfToMarkdownConverter,
    Dialect,
    get_dialect,
)
from adf_bridge.converter.compat import (
    DEFAULT_UNSAFE,
    UnsupportedContentError,
    ensure_supported,
    find_unsupported,
)
from adf_bridge.converter.markdown_to_adf import MarkdownToAdfConverter
from adf_bridge.converter.marks import resolve_marks
from adf_bridge.converter.registry import IdentityRegistry, RegistryStore
from adf_bridge.converter.roundtrip import roundtrip, roundtrip_diff

__all__ = [
    "DEFAULT_UNSAFE",
    "DIALECTS",
    "JIRA",
    "MARKDOWN",
    "AdfToMarkdownConverter",
    "Dialect",
    "IdentityRegistry",
    "MarkdownToAdfConverter",
    "RegistryStore",
    "UnsupportedContentError",
    "ensure_supported",
    "find_unsupported",
    "get_dialect",
    "resolve_marks",
    "roundtrip",
    "roundtrip_diff",
]
