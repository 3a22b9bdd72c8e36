"""Concrete syntax tree consumed by the markdown -> ADF builder.

A CST node is nothing more than a kind name, a byte range into a source
buffer and ordered children.  Block nodes that carry inline content own a
secondary :class:`InlineTree` whose offsets are relative to its own
buffer, not to the document.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(eq=False)
class CstNode:
    """A node of the concrete syntax tree.

    Nodes compare and hash by identity so they can key the inline tree
    lookup of :class:`CstTree`.
    """

    kind: str
    start_byte: int
    end_byte: int
    children: list[CstNode] = field(default_factory=list)

    def text(self, source: bytes) -> str:
        """Return the slice of *source* covered by this node."""
        return source[self.start_byte : self.end_byte].decode("utf-8", errors="replace")

    def child(self, kind: str) -> CstNode | None:
        """Return the first direct child of the given kind."""
        for child in self.children:
            if child.kind == kind:
                return child
        return None


@dataclass
class InlineTree:
    """Inline sub-tree of a block node with its own byte buffer."""

    root: CstNode
    source: bytes


@dataclass
class CstTree:
    """A parsed document: block tree, source buffer and inline sub-trees."""

    root: CstNode
    source: bytes
    inline_trees: dict[CstNode, InlineTree] = field(default_factory=dict)

    def inline_tree(self, node: CstNode) -> InlineTree | None:
        """Return the inline sub-tree registered for *node*, if any."""
        return self.inline_trees.get(node)
