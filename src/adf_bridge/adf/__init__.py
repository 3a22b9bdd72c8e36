"""ADF document model: kind vocabulary, nodes, marks and constructors."""

from adf_bridge.adf.model import (
    ADF_VERSION,
    Document,
    InlineCardAttrs,
    Mark,
    MediaAttrs,
    MentionAttrs,
    Node,
)
from adf_bridge.adf.node_types import (
    MarkType,
    NodeCategory,
    NodeType,
    classify,
    is_child_kind,
    is_parent_kind,
)

__all__ = [
    "ADF_VERSION",
    "Document",
    "InlineCardAttrs",
    "Mark",
    "MarkType",
    "MediaAttrs",
    "MentionAttrs",
    "Node",
    "NodeCategory",
    "NodeType",
    "classify",
    "is_child_kind",
    "is_parent_kind",
]
