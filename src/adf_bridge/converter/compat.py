"""Compatibility check for ADF consumers that only accept a subset of kinds.

Some downstream editors reject panels, media, mentions and similar
constructs.  The check is read-only: it walks the tree and reports every
offending node or mark kind once, in first-seen order.
"""

from __future__ import annotations

from collections.abc import Iterable

from adf_bridge.adf.model import Document, Node
from adf_bridge.adf.node_types import MarkType, NodeType

DEFAULT_UNSAFE: frozenset[str] = frozenset(
    {
        NodeType.PANEL,
        NodeType.MEDIA,
        NodeType.MEDIA_GROUP,
        NodeType.MEDIA_SINGLE,
        NodeType.INLINE_CARD,
        NodeType.EMOJI,
        NodeType.MENTION,
        NodeType.HARD_BREAK,
        MarkType.UNDERLINE,
    }
)


class UnsupportedContentError(ValueError):
    """Raised when a document contains kinds the consumer cannot accept."""

    def __init__(self, kinds: list[str]) -> None:
        self.kinds = kinds
        super().__init__(f"unsupported node types found: {', '.join(kinds)}")


def find_unsupported(doc: Document, unsafe: Iterable[str] = DEFAULT_UNSAFE) -> list[str]:
    """Return the unsafe node and mark kinds used in *doc*, each listed once."""
    unsafe = frozenset(unsafe)
    found: list[str] = []
    for node in doc.content:
        _collect(node, unsafe, found)
    return found


def ensure_supported(doc: Document, unsafe: Iterable[str] = DEFAULT_UNSAFE) -> None:
    """Raise :class:`UnsupportedContentError` listing every unsafe kind in *doc*."""
    found = find_unsupported(doc, unsafe)
    if found:
        raise UnsupportedContentError(found)


def _collect(node: Node, unsafe: frozenset[str], found: list[str]) -> None:
    if node.type in unsafe and node.type not in found:
        found.append(str(node.type))
    for mark in node.marks:
        if mark.type in unsafe and mark.type not in found:
            found.append(str(mark.type))
    for child in node.content:
        _collect(child, unsafe, found)
