"""Kind vocabulary for Atlassian Document Format nodes and marks.

The string values are the ``type`` tags that appear in serialised ADF
(``{"type": "paragraph", ...}``).  Every node kind falls into exactly one
:class:`NodeCategory`; the markdown renderer dispatches on that category.
"""

from __future__ import annotations

from enum import StrEnum


class NodeCategory(StrEnum):
    """Structural role of a node kind."""

    PARENT = "parent"
    CHILD = "child"
    UNKNOWN = "unknown"


class NodeType(StrEnum):
    """ADF node type identifiers."""

    DOC = "doc"

    # Block containers
    BLOCKQUOTE = "blockquote"
    BULLET_LIST = "bulletList"
    ORDERED_LIST = "orderedList"
    CODE_BLOCK = "codeBlock"
    HEADING = "heading"
    PANEL = "panel"
    PARAGRAPH = "paragraph"
    TABLE = "table"
    MEDIA_GROUP = "mediaGroup"
    MEDIA_SINGLE = "mediaSingle"

    # Leaf-bearing children
    TEXT = "text"
    LIST_ITEM = "listItem"
    TABLE_ROW = "tableRow"
    TABLE_HEADER = "tableHeader"
    TABLE_CELL = "tableCell"

    # Self-contained inline leaves
    MEDIA = "media"
    INLINE_CARD = "inlineCard"
    EMOJI = "emoji"
    MENTION = "mention"
    HARD_BREAK = "hardBreak"

    # ------------------------------------------------------------------
    # Convenience helpers
    # ------------------------------------------------------------------

    @classmethod
    def parent_types(cls) -> frozenset[NodeType]:
        """Return the set of block container types."""
        return frozenset(
            {
                cls.BLOCKQUOTE,
                cls.BULLET_LIST,
                cls.ORDERED_LIST,
                cls.CODE_BLOCK,
                cls.HEADING,
                cls.PANEL,
                cls.PARAGRAPH,
                cls.TABLE,
                cls.MEDIA_GROUP,
                cls.MEDIA_SINGLE,
            }
        )

    @classmethod
    def child_types(cls) -> frozenset[NodeType]:
        """Return the set of leaf-bearing child types."""
        return frozenset(
            {
                cls.TEXT,
                cls.LIST_ITEM,
                cls.TABLE_ROW,
                cls.TABLE_HEADER,
                cls.TABLE_CELL,
            }
        )

    @classmethod
    def from_value(cls, value: str) -> NodeType | None:
        """Resolve a type tag to a ``NodeType``, or ``None`` if unrecognised."""
        try:
            return cls(value)
        except ValueError:
            return None


class MarkType(StrEnum):
    """ADF mark type identifiers."""

    STRONG = "strong"
    EM = "em"
    STRIKE = "strike"
    UNDERLINE = "underline"
    CODE = "code"
    LINK = "link"


def classify(kind: str) -> NodeCategory:
    """Return the :class:`NodeCategory` of a node type tag."""
    node_type = NodeType.from_value(kind)
    if node_type in NodeType.parent_types():
        return NodeCategory.PARENT
    if node_type in NodeType.child_types():
        return NodeCategory.CHILD
    return NodeCategory.UNKNOWN


def is_parent_kind(kind: str) -> bool:
    return classify(kind) is NodeCategory.PARENT


def is_child_kind(kind: str) -> bool:
    return classify(kind) is NodeCategory.CHILD
