"""Convert a flavored-markdown CST into an ADF document.

The builder walks the block CST once, in document order, appending one ADF
node per recognised block to the current output sequence (the document,
a panel, a blockquote or a list item).  Inline content is assembled from
each block's inline sub-tree with *gap filling*: bytes between recognised
inline nodes become plain text nodes, so punctuation and plain runs the
scanner does not name are never lost.

Constructs markdown cannot express are resolved through an
:class:`~adf_bridge.converter.registry.IdentityRegistry` filled by a prior
render: ``{attachment:ID}`` lines and links to known card URLs splice the
original ADF sub-trees back in by reference.

Malformed-but-parseable input never raises; ambiguities fall back to
defaults (heading level 1, list order 1, ``info`` panels) and empty
text, code or links are skipped.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from typing import Callable

from adf_bridge.adf.model import (
    Document,
    Node,
    code_mark,
    link_mark,
    make_blockquote,
    make_bullet_list,
    make_code_block,
    make_heading,
    make_list_item,
    make_mention,
    make_ordered_list,
    make_panel,
    make_paragraph,
    make_table,
    make_table_cell,
    make_table_header,
    make_table_row,
    make_text,
    strong_mark,
)
from adf_bridge.converter.compat import DEFAULT_UNSAFE, ensure_supported
from adf_bridge.converter.marks import is_emphasis, resolve_marks
from adf_bridge.converter.registry import IdentityRegistry
from adf_bridge.markup.cst import CstNode, CstTree
from adf_bridge.markup.parser import FlavoredMarkdownParser

logger = logging.getLogger(__name__)

_CONTAINER_KINDS = frozenset({"document", "section"})

_HEADING_MARKERS = {f"atx_h{level}_marker": level for level in range(1, 7)}
_HEADING_MARKERS.update({"setext_h1_underline": 1, "setext_h2_underline": 2})

_ORDERED_MARKERS = frozenset({"list_marker_dot", "list_marker_parenthesis"})
_UNORDERED_MARKERS = frozenset({"list_marker_minus", "list_marker_plus", "list_marker_star"})

_PANEL_CONTENT = frozenset(
    {"section", "paragraph", "atx_heading", "setext_heading", "fenced_code_block", "list"}
)

_LEADING_INT = re.compile(r"^[+-]?\d+")

BlockHandler = Callable[[CstNode, CstTree], "Node | None"]
InlineHandler = Callable[[CstNode, bytes, Node], None]


def _slice(source: bytes, start: int, end: int) -> str:
    return source[start:end].decode("utf-8", errors="replace")


class MarkdownToAdfConverter:
    """Flavored markdown -> ADF document.

    Args:
        user_mapping: ``@local@domain`` mention strings to opaque user ids.
        registry: Identity registry harvested by a previous render.  A fresh
            empty one is used when omitted.
        parser: CST supplier used by :meth:`convert`.
    """

    def __init__(
        self,
        user_mapping: dict[str, str] | None = None,
        registry: IdentityRegistry | None = None,
        parser: FlavoredMarkdownParser | None = None,
    ) -> None:
        self._user_mapping = dict(user_mapping or {})
        self._registry = registry if registry is not None else IdentityRegistry()
        self._parser = parser or FlavoredMarkdownParser()
        self._block_handlers: dict[str, BlockHandler] = {
            "atx_heading": self._convert_heading,
            "setext_heading": self._convert_heading,
            "paragraph": self._convert_paragraph,
            "fenced_code_block": self._convert_code_block,
            "list": self._convert_list,
            "panel": self._convert_panel,
            "pipe_table": self._convert_table,
            "block_quote": self._convert_blockquote,
            "attachment": self._convert_attachment,
        }
        self._inline_handlers: dict[str, InlineHandler] = {
            "people_mention": self._append_mention,
            "code_span": self._append_code_span,
            "inline_link": self._append_link,
        }

    @property
    def registry(self) -> IdentityRegistry:
        return self._registry

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def convert(self, markdown_text: str | bytes) -> Document:
        """Parse *markdown_text* and build its ADF document.

        Parser failures propagate unchanged.
        """
        return self.build(self._parser.parse(markdown_text))

    def build(self, tree: CstTree) -> Document:
        """Build an ADF document from an already parsed CST."""
        doc = Document()
        self._process_node(tree.root, tree, doc.content)
        return doc

    def check_compatibility(
        self, markdown_text: str | bytes, unsafe: Iterable[str] = DEFAULT_UNSAFE
    ) -> None:
        """Build *markdown_text* and raise if it uses any *unsafe* kind.

        Raises:
            UnsupportedContentError: listing every offending kind once.
        """
        ensure_supported(self.convert(markdown_text), unsafe)

    # ------------------------------------------------------------------
    # Block dispatch
    # ------------------------------------------------------------------

    def _process_node(self, node: CstNode, tree: CstTree, out: list[Node]) -> None:
        if node.kind in _CONTAINER_KINDS:
            for child in node.children:
                self._process_node(child, tree, out)
            return
        handler = self._block_handlers.get(node.kind)
        if handler is None:
            return
        converted = handler(node, tree)
        if converted is not None:
            out.append(converted)

    # -- Heading -----------------------------------------------------------

    def _convert_heading(self, node: CstNode, tree: CstTree) -> Node:
        level = 1
        inline: CstNode | None = None
        for child in node.children:
            if child.kind in _HEADING_MARKERS:
                level = _HEADING_MARKERS[child.kind]
            elif child.kind == "inline":
                inline = child
        heading = make_heading(level)
        if inline is not None:
            self._process_inline(inline, tree, heading)
        return heading

    # -- Paragraph ---------------------------------------------------------

    def _convert_paragraph(self, node: CstNode, tree: CstTree) -> Node:
        paragraph = make_paragraph()
        for child in node.children:
            if child.kind == "inline":
                self._process_inline(child, tree, paragraph)
        return paragraph

    # -- Code block --------------------------------------------------------

    def _convert_code_block(self, node: CstNode, tree: CstTree) -> Node:
        language = ""
        code = ""
        for child in node.children:
            if child.kind == "info_string":
                language = child.text(tree.source).strip()
            elif child.kind == "code_fence_content":
                code = child.text(tree.source)
        closed = sum(child.kind == "fenced_code_block_delimiter" for child in node.children) > 1
        if not closed:
            # Without a closing delimiter the content may still end in a fence.
            if code.endswith("\n```"):
                code = code[: -len("\n```")]
            elif code.endswith("```"):
                code = code[: -len("```")]
        code_block = make_code_block(language)
        if code:
            code_block.content.append(make_text(code))
        return code_block

    # -- List --------------------------------------------------------------

    def _convert_list(self, node: CstNode, tree: CstTree) -> Node:
        items = [child for child in node.children if child.kind == "list_item"]
        ordered = False
        order = 1
        for item in items:
            marker = _list_marker(item)
            if marker is None:
                continue
            if marker.kind in _ORDERED_MARKERS:
                ordered = True
                order = _list_start(marker, tree.source)
            break

        list_node = make_ordered_list(order) if ordered else make_bullet_list()
        for item in items:
            list_node.content.append(self._convert_list_item(item, tree))
        return list_node

    def _convert_list_item(self, node: CstNode, tree: CstTree) -> Node:
        item = make_list_item()
        for child in node.children:
            # Only paragraphs and nested lists survive inside list items.
            if child.kind == "paragraph":
                item.content.append(self._convert_paragraph(child, tree))
            elif child.kind == "list":
                item.content.append(self._convert_list(child, tree))
        return item

    # -- Block quote -------------------------------------------------------

    def _convert_blockquote(self, node: CstNode, tree: CstTree) -> Node:
        quote = make_blockquote()
        for child in node.children:
            self._process_node(child, tree, quote.content)
        return quote

    # -- Panel -------------------------------------------------------------

    def _convert_panel(self, node: CstNode, tree: CstTree) -> Node:
        panel = make_panel()
        for child in node.children:
            if child.kind == "panel_start":
                panel.attrs["panelType"] = _panel_type(child, tree.source)
            elif child.kind in _PANEL_CONTENT:
                self._process_node(child, tree, panel.content)
        return panel

    # -- Table -------------------------------------------------------------

    def _convert_table(self, node: CstNode, tree: CstTree) -> Node:
        table = make_table()
        for child in node.children:
            if child.kind == "pipe_table_header":
                table.content.append(self._convert_table_row(child, tree, header=True))
            elif child.kind == "pipe_table_row":
                table.content.append(self._convert_table_row(child, tree, header=False))
        return table

    def _convert_table_row(self, node: CstNode, tree: CstTree, *, header: bool) -> Node:
        row = make_table_row()
        for child in node.children:
            if child.kind != "pipe_table_cell":
                continue
            cell = make_table_header() if header else make_table_cell()
            paragraph = make_paragraph()
            text = child.text(tree.source).strip().replace("\\|", "|")
            if text:
                paragraph.content.append(_cell_text(text, header=header))
            cell.content.append(paragraph)
            row.content.append(cell)
        return row

    # -- Attachment --------------------------------------------------------

    def _convert_attachment(self, node: CstNode, tree: CstTree) -> Node | None:
        path = node.child("attachment_path")
        if path is None:
            return None
        attachment_id = path.text(tree.source)
        media = self._registry.media_for(attachment_id)
        if media is None:
            logger.debug("Attachment %s is not in the registry, skipping", attachment_id)
        return media

    # ------------------------------------------------------------------
    # Inline content
    # ------------------------------------------------------------------

    def _process_inline(self, inline: CstNode, tree: CstTree, parent: Node) -> None:
        inline_tree = tree.inline_tree(inline)
        if inline_tree is None:
            _append_plain(inline.text(tree.source), parent)
            return

        source = inline_tree.source
        cursor = 0
        for child in inline_tree.root.children:
            if child.start_byte > cursor:
                parent.content.append(make_text(_slice(source, cursor, child.start_byte)))

            handler = self._inline_handlers.get(child.kind)
            if handler is not None:
                handler(child, source, parent)
            elif is_emphasis(child):
                text, marks = resolve_marks(child, source)
                if text.strip():
                    parent.content.append(make_text(text, marks))
            else:
                _append_plain(child.text(source), parent)

            cursor = child.end_byte

        if cursor < len(source):
            _append_plain(_slice(source, cursor, len(source)), parent)

    def _append_mention(self, node: CstNode, source: bytes, parent: Node) -> None:
        email = node.text(source).strip()
        user_id = self._user_mapping.get(email)
        if user_id is None:
            logger.debug("No user id for %s, falling back to the address", email)
            user_id = email
        display = email.removeprefix("@").split("@", 1)[0]
        parent.content.append(make_mention(user_id, display))

    def _append_code_span(self, node: CstNode, source: bytes, parent: Node) -> None:
        text_node = node.child("text")
        code = text_node.text(source) if text_node is not None else ""
        if not code:
            code = node.text(source).strip("`")
        if code:
            parent.content.append(make_text(code, [code_mark()]))

    def _append_link(self, node: CstNode, source: bytes, parent: Node) -> None:
        label = url = ""
        for child in node.children:
            if child.kind == "link_text":
                label = _unwrap(child.text(source), "[", "]")
            elif child.kind == "link_destination":
                url = _unwrap(child.text(source), "(", ")")

        card = self._registry.card_for(url)
        if card is not None:
            parent.content.append(card)
            return
        if label and url:
            parent.content.append(make_text(label, [link_mark(url)]))
        else:
            logger.debug("Dropping link with an empty label or destination: %r", node.text(source))


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _append_plain(text: str, parent: Node) -> None:
    if text.strip():
        parent.content.append(make_text(text))


def _unwrap(text: str, opening: str, closing: str) -> str:
    if text.startswith(opening) and text.endswith(closing) and len(text) >= 2:
        return text[1:-1]
    return text


def _list_marker(item: CstNode) -> CstNode | None:
    for child in item.children:
        if child.kind in _ORDERED_MARKERS or child.kind in _UNORDERED_MARKERS:
            return child
    return None


def _list_start(marker: CstNode, source: bytes) -> int:
    """Starting number of an ordered list from its first marker, 1 if unparseable."""
    number = marker.text(source).strip()
    for suffix in (".", ")"):
        if number.endswith(suffix):
            number = number[: -len(suffix)]
            break
    match = _LEADING_INT.match(number)
    return int(match.group()) if match else 1


def _panel_type(panel_start: CstNode, source: bytes) -> str:
    panel_type = panel_start.child("panel_type")
    if panel_type is not None:
        type_node = panel_type.child("type")
        if type_node is not None:
            return type_node.text(source).removeprefix("#")
    return "info"


def _cell_text(text: str, *, header: bool) -> Node:
    """One text node for a table cell; headers are always bold."""
    if text.startswith("**") and text.endswith("**") and len(text) > 4:
        return make_text(text[2:-2], [strong_mark()])
    return make_text(text, [strong_mark()] if header else None)
