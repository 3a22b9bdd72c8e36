"""Flavored-markdown CST supplier built on markdown-it-py.

markdown-it-py tokenises the block structure (with the ``table`` rule
enabled and two extra block rules for ``{panel}`` containers and
``{attachment:ID}`` references).  The token stream is folded into a
:class:`~markdown_it.tree.SyntaxTreeNode` tree and then re-expressed as a
:class:`~adf_bridge.markup.cst.CstTree` whose nodes carry byte ranges over
the UTF-8 source.  Inline content is handed to
:func:`~adf_bridge.markup.inline.parse_inline`.

Supported block syntax on top of CommonMark::

    {panel:type=warning}
    Careful now.
    {/panel}

    {attachment:6f1c2a}
"""

from __future__ import annotations

import re
from typing import Callable

from markdown_it import MarkdownIt
from markdown_it.rules_block import StateBlock
from markdown_it.tree import SyntaxTreeNode

from adf_bridge.markup.cst import CstNode, CstTree, InlineTree
from adf_bridge.markup.inline import parse_inline

_NEWLINES = re.compile(r"\r\n?")

_PANEL_START = re.compile(r"^\{panel(?::(?P<params>[^}]*))?\}\s*$")
_PANEL_END = "{/panel}"
_PANEL_TYPE = re.compile(r"(?<=[:|])\s*(?:type\s*=\s*)?(?P<type>#?[\w-]+)\s*(?=[|}])")

_ATTACHMENT = re.compile(r"^\{attachment:(?P<path>[^}\s]+)\}\s*$")

_LIST_MARKERS = {
    ".": "list_marker_dot",
    ")": "list_marker_parenthesis",
    "-": "list_marker_minus",
    "+": "list_marker_plus",
    "*": "list_marker_star",
}

_INTERRUPTS = {"alt": ["paragraph", "blockquote", "list"]}


# ---------------------------------------------------------------------------
# Custom markdown-it block rules
# ---------------------------------------------------------------------------


def _line_text(state: StateBlock, line: int) -> str:
    start = state.bMarks[line] + state.tShift[line]
    return state.src[start : state.eMarks[line]]


def panel_rule(state: StateBlock, startLine: int, endLine: int, silent: bool) -> bool:
    """Block rule for ``{panel...}`` ... ``{/panel}`` containers."""
    if state.sCount[startLine] - state.blkIndent >= 4:
        return False
    match = _PANEL_START.match(_line_text(state, startLine))
    if match is None:
        return False
    if silent:
        return True

    next_line = startLine
    closed = False
    while True:
        next_line += 1
        if next_line >= endLine:
            break
        if _line_text(state, next_line).strip() == _PANEL_END:
            closed = True
            break

    old_parent = state.parentType
    old_line_max = state.lineMax
    state.parentType = "panel"  # type: ignore[assignment]
    state.lineMax = next_line

    token = state.push("panel_open", "div", 1)
    token.block = True
    token.markup = "{panel}"
    token.info = match.group("params") or ""
    token.map = [startLine, next_line]
    token.meta = {"closed": closed}

    state.md.block.tokenize(state, startLine + 1, next_line)

    token = state.push("panel_close", "div", -1)
    token.block = True
    token.markup = _PANEL_END if closed else ""

    state.parentType = old_parent
    state.lineMax = old_line_max
    state.line = next_line + 1 if closed else next_line
    return True


def attachment_rule(state: StateBlock, startLine: int, endLine: int, silent: bool) -> bool:
    """Block rule for a standalone ``{attachment:ID}`` line."""
    if state.sCount[startLine] - state.blkIndent >= 4:
        return False
    match = _ATTACHMENT.match(_line_text(state, startLine))
    if match is None:
        return False
    if silent:
        return True

    token = state.push("attachment", "", 0)
    token.block = True
    token.info = match.group("path")
    token.map = [startLine, startLine + 1]
    state.line = startLine + 1
    return True


def create_markdown_it() -> MarkdownIt:
    """Return the markdown-it instance used for block tokenisation."""
    md = MarkdownIt("commonmark", {"typographer": False})
    md.enable("table")
    md.block.ruler.before("fence", "panel", panel_rule, _INTERRUPTS)
    md.block.ruler.before("fence", "attachment", attachment_rule, _INTERRUPTS)
    md.disable(["html_block", "reference"])
    return md


# ---------------------------------------------------------------------------
# Source offsets
# ---------------------------------------------------------------------------


class _SourceMap:
    """Line/column to UTF-8 byte offset translation for one document."""

    def __init__(self, text: str) -> None:
        self.lines = text.split("\n")
        self._line_starts: list[int] = []
        total = 0
        for line in self.lines:
            self._line_starts.append(total)
            total += len(line.encode("utf-8")) + 1

    def _clamp(self, line: int) -> int:
        return max(0, min(line, len(self.lines) - 1))

    def line(self, line: int) -> str:
        return self.lines[self._clamp(line)]

    def offset(self, line: int, column: int = 0) -> int:
        line = self._clamp(line)
        return self._line_starts[line] + len(self.lines[line][:column].encode("utf-8"))

    def line_end(self, line: int) -> int:
        return self.offset(line, len(self.line(line)))

    def span(self, start_line: int, end_line: int) -> tuple[int, int]:
        """Byte range of lines ``[start_line, end_line)`` without the final newline."""
        return self.offset(start_line), self.line_end(max(start_line, end_line - 1))


def _content_column(line: str, depth: int) -> int:
    """Column just after the first *depth* blockquote markers of *line*."""
    column = 0
    for _ in range(depth):
        marker = line.find(">", column)
        if marker < 0 or line[column:marker].strip():
            break
        column = marker + 1
        if line.startswith(" ", column):
            column += 1
    return column


def _split_cells(line: str, column: int = 0) -> list[tuple[int, int]]:
    """Return the column ranges of the cells of a pipe-table line, starting at *column*."""
    pipes = [
        i
        for i in range(column, len(line))
        if line[i] == "|" and (i == 0 or line[i - 1] != "\\")
    ]
    first = len(line) - len(line[column:].lstrip())
    last = len(line.rstrip())
    start = first
    if pipes and pipes[0] == first:
        start = pipes.pop(0) + 1
    end = last
    if pipes and pipes[-1] == last - 1:
        end = pipes.pop()
    bounds: list[tuple[int, int]] = []
    for pipe in pipes:
        bounds.append((start, pipe))
        start = pipe + 1
    bounds.append((start, end))
    return bounds


# ---------------------------------------------------------------------------
# Syntax tree -> CST
# ---------------------------------------------------------------------------


class FlavoredMarkdownParser:
    """Parse flavored markdown text into a :class:`CstTree`."""

    def __init__(self) -> None:
        self._md = create_markdown_it()

    def parse(self, text: str | bytes) -> CstTree:
        if isinstance(text, bytes):
            text = text.decode("utf-8")
        text = _NEWLINES.sub("\n", text).replace("\0", "\ufffd")
        tokens = self._md.parse(text)
        return _TreeBuilder(text).build(SyntaxTreeNode(tokens))


class _TreeBuilder:
    def __init__(self, text: str) -> None:
        self._src = _SourceMap(text)
        self._source = text.encode("utf-8")
        self._inline_trees: dict[CstNode, InlineTree] = {}
        self._quote_depth = 0
        self._handlers: dict[str, Callable[[SyntaxTreeNode], CstNode]] = {
            "heading": self._heading,
            "paragraph": self._paragraph,
            "fence": self._fence,
            "code_block": self._indented_code,
            "bullet_list": self._list,
            "ordered_list": self._list,
            "blockquote": self._blockquote,
            "table": self._table,
            "hr": self._thematic_break,
            "panel": self._panel,
            "attachment": self._attachment,
        }

    def build(self, root: SyntaxTreeNode) -> CstTree:
        document = CstNode("document", 0, len(self._source), self._blocks(root.children))
        return CstTree(root=document, source=self._source, inline_trees=self._inline_trees)

    def _blocks(self, nodes: list[SyntaxTreeNode]) -> list[CstNode]:
        blocks: list[CstNode] = []
        for node in nodes:
            handler = self._handlers.get(node.type)
            if handler is not None and node.map is not None:
                blocks.append(handler(node))
        return blocks

    def _inline(self, node: SyntaxTreeNode, start: int, end: int) -> CstNode | None:
        for child in node.children:
            if child.type == "inline":
                inline = CstNode("inline", start, end)
                self._inline_trees[inline] = parse_inline(child.content)
                return inline
        return None

    # -- blocks ---------------------------------------------------------------

    def _heading(self, node: SyntaxTreeNode) -> CstNode:
        start_line, end_line = node.map
        level = int(node.tag[1:])
        start, end = self._src.span(start_line, end_line)
        if node.markup.startswith("#"):
            column = self._src.line(start_line).find(node.markup)
            marker = CstNode(
                f"atx_h{level}_marker",
                self._src.offset(start_line, column),
                self._src.offset(start_line, column + level),
            )
            kind = "atx_heading"
            inline_start, inline_end = marker.end_byte, self._src.line_end(start_line)
        else:
            marker = CstNode(
                f"setext_h{level}_underline",
                self._src.offset(end_line - 1),
                self._src.line_end(end_line - 1),
            )
            kind = "setext_heading"
            inline_start, inline_end = self._src.span(start_line, end_line - 1)
        children = [marker]
        inline = self._inline(node, inline_start, inline_end)
        if inline is not None:
            children.append(inline)
        return CstNode(kind, start, end, children)

    def _paragraph(self, node: SyntaxTreeNode) -> CstNode:
        start, end = self._src.span(*node.map)
        inline = self._inline(node, start, end)
        return CstNode("paragraph", start, end, [inline] if inline is not None else [])

    def _fence(self, node: SyntaxTreeNode) -> CstNode:
        start_line, end_line = node.map
        line = self._src.line(start_line)
        column = max(line.find(node.markup), 0)
        fence_end = column + len(node.markup)
        children = [
            CstNode(
                "fenced_code_block_delimiter",
                self._src.offset(start_line, column),
                self._src.offset(start_line, fence_end),
            )
        ]
        info = node.info.strip()
        if info:
            info_column = line.find(info, fence_end)
            children.append(
                CstNode(
                    "info_string",
                    self._src.offset(start_line, info_column),
                    self._src.offset(start_line, info_column + len(info)),
                )
            )
        closing = None
        if end_line - start_line > 1:
            closing = self._closing_fence(node, end_line - 1, column)
        content_end = end_line - 1 if closing is not None else end_line
        if content_end - start_line > 1:
            children.append(
                CstNode(
                    "code_fence_content",
                    self._src.offset(start_line + 1),
                    self._src.line_end(content_end - 1),
                )
            )
        if closing is not None:
            children.append(
                CstNode(
                    "fenced_code_block_delimiter",
                    self._src.offset(end_line - 1, closing[0]),
                    self._src.offset(end_line - 1, closing[1]),
                )
            )
        start, end = self._src.span(start_line, end_line)
        return CstNode("fenced_code_block", start, end, children)

    def _closing_fence(
        self, node: SyntaxTreeNode, line_no: int, opening: int
    ) -> tuple[int, int] | None:
        """Column range of the closing fence on *line_no*, if that line closes the block."""
        line = self._src.line(line_no)
        body = line[_content_column(line, self._quote_depth) :]
        fence = body.strip()
        begin = len(line) - len(body.lstrip())
        if begin > opening + 3 or len(fence) < len(node.markup):
            return None
        if fence != node.markup[0] * len(fence):
            return None
        return begin, begin + len(fence)

    def _indented_code(self, node: SyntaxTreeNode) -> CstNode:
        return CstNode("indented_code_block", *self._src.span(*node.map))

    def _thematic_break(self, node: SyntaxTreeNode) -> CstNode:
        return CstNode("thematic_break", *self._src.span(*node.map))

    def _list(self, node: SyntaxTreeNode) -> CstNode:
        start, end = self._src.span(*node.map)
        items = [self._list_item(child) for child in node.children if child.type == "list_item"]
        return CstNode("list", start, end, items)

    def _list_item(self, node: SyntaxTreeNode) -> CstNode:
        start_line, end_line = node.map
        marker_text = f"{node.info}{node.markup}"
        column = max(self._src.line(start_line).find(marker_text), 0)
        marker = CstNode(
            _LIST_MARKERS.get(node.markup, "list_marker_minus"),
            self._src.offset(start_line, column),
            self._src.offset(start_line, column + len(marker_text)),
        )
        start, end = self._src.span(start_line, end_line)
        return CstNode("list_item", start, end, [marker, *self._blocks(node.children)])

    def _blockquote(self, node: SyntaxTreeNode) -> CstNode:
        start, end = self._src.span(*node.map)
        self._quote_depth += 1
        try:
            children = self._blocks(node.children)
        finally:
            self._quote_depth -= 1
        return CstNode("block_quote", start, end, children)

    def _table(self, node: SyntaxTreeNode) -> CstNode:
        start_line, end_line = node.map
        rows: list[CstNode] = []
        for line_no in range(start_line, end_line):
            if line_no == start_line + 1:
                rows.append(CstNode("pipe_table_delimiter_row", *self._src.span(line_no, line_no + 1)))
                continue
            kind = "pipe_table_header" if line_no == start_line else "pipe_table_row"
            rows.append(self._table_row(kind, line_no))
        start, end = self._src.span(start_line, end_line)
        return CstNode("pipe_table", start, end, rows)

    def _table_row(self, kind: str, line_no: int) -> CstNode:
        line = self._src.line(line_no)
        cells = [
            CstNode(
                "pipe_table_cell",
                self._src.offset(line_no, cell_start),
                self._src.offset(line_no, cell_end),
            )
            for cell_start, cell_end in _split_cells(
                line, _content_column(line, self._quote_depth)
            )
        ]
        return CstNode(kind, *self._src.span(line_no, line_no + 1), cells)

    def _panel(self, node: SyntaxTreeNode) -> CstNode:
        start_line, end_line = node.map
        closed = bool(node.meta.get("closed"))
        line = self._src.line(start_line)
        column = len(line) - len(line.lstrip())

        start_children: list[CstNode] = []
        match = _PANEL_TYPE.search(line)
        if match is not None:
            type_node = CstNode(
                "type",
                self._src.offset(start_line, match.start("type")),
                self._src.offset(start_line, match.end("type")),
            )
            start_children.append(
                CstNode(
                    "panel_type",
                    self._src.offset(start_line, match.start()),
                    self._src.offset(start_line, match.end()),
                    [type_node],
                )
            )
        panel_start = CstNode(
            "panel_start",
            self._src.offset(start_line, column),
            self._src.line_end(start_line),
            start_children,
        )

        children = [panel_start, *self._blocks(node.children)]
        last_line = end_line if closed else end_line - 1
        if closed:
            children.append(CstNode("panel_end_mark", *self._src.span(end_line, end_line + 1)))
        return CstNode("panel", self._src.offset(start_line), self._src.line_end(last_line), children)

    def _attachment(self, node: SyntaxTreeNode) -> CstNode:
        start_line, end_line = node.map
        path = node.info
        column = self._src.line(start_line).find(path)
        path_node = CstNode(
            "attachment_path",
            self._src.offset(start_line, column),
            self._src.offset(start_line, column + len(path)),
        )
        return CstNode("attachment", *self._src.span(start_line, end_line), [path_node])
