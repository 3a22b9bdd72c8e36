"""Pydantic models for Atlassian Document Format (ADF) trees.

A document is a ``doc`` root carrying a format version and an ordered list
of nodes.  Each node has a ``type`` tag, optional children (``content``),
optional literal ``text``, optional ``marks`` and an open ``attrs`` map::

    {
        "version": 1,
        "type": "doc",
        "content": [
            {
                "type": "paragraph",
                "content": [
                    {"type": "text", "text": "hi", "marks": [{"type": "strong"}]}
                ]
            }
        ]
    }

Empty fields are omitted on serialisation, matching what the Atlassian
APIs send and accept.
"""

from __future__ import annotations

import json
from typing import Any, Literal

from pydantic import BaseModel, Field

from adf_bridge.adf.node_types import MarkType, NodeType

ADF_VERSION = 1


class Mark(BaseModel):
    """An inline formatting decorator attached to a text node."""

    type: str
    attrs: dict[str, Any] = Field(default_factory=dict)


class Node(BaseModel):
    """A single ADF node.

    The tree is single-owner and top-down: nodes never point back at their
    parent.
    """

    type: str
    content: list[Node] = Field(default_factory=list)
    text: str = ""
    marks: list[Mark] = Field(default_factory=list)
    attrs: dict[str, Any] = Field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Serialise to a plain dict, dropping empty fields."""
        return self.model_dump(exclude_defaults=True)

    def replace_all(self, old: str, new: str) -> None:
        """Replace *old* with *new* in the text of this node and every descendant."""
        if self.type == NodeType.TEXT and self.text:
            self.text = self.text.replace(old, new)
        for child in self.content:
            child.replace_all(old, new)


class Document(BaseModel):
    """Root of an ADF tree."""

    version: int = ADF_VERSION
    type: Literal["doc"] = "doc"
    content: list[Node] = Field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "type": self.type,
            "content": [node.to_dict() for node in self.content],
        }

    def to_json(self, indent: int | None = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    @classmethod
    def from_json(cls, raw: str | bytes) -> Document:
        return cls.model_validate_json(raw)

    def replace_all(self, old: str, new: str) -> None:
        """Replace *old* with *new* in every text node of the document.

        Structure and marks are left untouched, so a document can be
        perturbed without a round trip through markdown.
        """
        for node in self.content:
            node.replace_all(old, new)


# ---------------------------------------------------------------------------
# Typed attribute records
# ---------------------------------------------------------------------------


class MediaAttrs(BaseModel):
    """Attributes of a ``media`` node."""

    id: str = ""
    type: str = ""
    collection: str = ""
    alt: str = ""
    width: float | None = None
    height: float | None = None


class InlineCardAttrs(BaseModel):
    """Attributes of an ``inlineCard`` node."""

    url: str = ""
    data: Any = None


class MentionAttrs(BaseModel):
    """Attributes of a ``mention`` node."""

    id: str = ""
    text: str = ""


# ---------------------------------------------------------------------------
# Node constructors
# ---------------------------------------------------------------------------


def make_paragraph() -> Node:
    return Node(type=NodeType.PARAGRAPH)


def make_text(text: str, marks: list[Mark] | None = None) -> Node:
    return Node(type=NodeType.TEXT, text=text, marks=list(marks or []))


def make_heading(level: int) -> Node:
    return Node(type=NodeType.HEADING, attrs={"level": level})


def make_code_block(language: str = "") -> Node:
    """Create a code block; the ``language`` attr is set only when non-empty."""
    attrs: dict[str, Any] = {}
    if language:
        attrs["language"] = language
    return Node(type=NodeType.CODE_BLOCK, attrs=attrs)


def make_bullet_list() -> Node:
    return Node(type=NodeType.BULLET_LIST)


def make_ordered_list(order: int = 1) -> Node:
    """Create an ordered list; ``order`` is recorded only when it is above 1."""
    attrs: dict[str, Any] = {}
    if order > 1:
        attrs["order"] = order
    return Node(type=NodeType.ORDERED_LIST, attrs=attrs)


def make_list_item() -> Node:
    return Node(type=NodeType.LIST_ITEM)


def make_blockquote() -> Node:
    return Node(type=NodeType.BLOCKQUOTE)


def make_panel(panel_type: str = "info") -> Node:
    return Node(type=NodeType.PANEL, attrs={"panelType": panel_type})


def make_table() -> Node:
    return Node(
        type=NodeType.TABLE,
        attrs={"isNumberColumnEnabled": False, "layout": "align-start"},
    )


def make_table_row() -> Node:
    return Node(type=NodeType.TABLE_ROW)


def make_table_header() -> Node:
    return Node(type=NodeType.TABLE_HEADER)


def make_table_cell() -> Node:
    return Node(type=NodeType.TABLE_CELL)


def make_mention(user_id: str, display_text: str) -> Node:
    return Node(type=NodeType.MENTION, attrs={"id": user_id, "text": display_text})


def make_hard_break() -> Node:
    return Node(type=NodeType.HARD_BREAK)


# ---------------------------------------------------------------------------
# Mark constructors
# ---------------------------------------------------------------------------


def strong_mark() -> Mark:
    return Mark(type=MarkType.STRONG)


def em_mark() -> Mark:
    return Mark(type=MarkType.EM)


def strike_mark() -> Mark:
    return Mark(type=MarkType.STRIKE)


def underline_mark() -> Mark:
    return Mark(type=MarkType.UNDERLINE)


def code_mark() -> Mark:
    return Mark(type=MarkType.CODE)


def link_mark(href: str) -> Mark:
    return Mark(type=MarkType.LINK, attrs={"href": href})


Node.model_rebuild()
