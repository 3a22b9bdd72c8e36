"""Render an ADF document as flavored markdown.

The renderer is a depth-first open/close visitor.  Every node and mark kind
has an *open* and a *close* string; children are visited in between, and
for child-classified kinds (text, list items, table rows and cells) the
node's marks are opened outer-to-inner around its literal text and closed
inner-to-outer.

Two pieces of per-call state make this more than a lookup table:

* list frames -- nesting depth, the innermost list kind and per-list item
  counters drive indentation and ``N.`` / ``-`` markers;
* the table buffer -- while inside a table cell every fragment goes to the
  current ``(row, column)`` cell instead of the output, so that column
  widths can be computed before the first row is written.

A :class:`Dialect` overlays per-kind hooks on top of the default rules.
``JIRA`` only swaps panels for ``{panel:type=X}`` ... ``{/panel}`` blocks.

While rendering, media groups and inline cards are remembered in the
:class:`~adf_bridge.converter.registry.IdentityRegistry` so a later build
from the edited markdown can splice them back in.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import TypeVar, Union

from pydantic import BaseModel, ValidationError

from adf_bridge.adf.model import Document, InlineCardAttrs, Mark, MediaAttrs, MentionAttrs, Node
from adf_bridge.adf.node_types import MarkType, NodeCategory, NodeType, classify
from adf_bridge.converter.registry import IdentityRegistry

logger = logging.getLogger(__name__)

Renderable = Union[Node, Mark]
Hook = Callable[[Renderable], str]
EmailResolver = Callable[[str], "str | None"]
_AttrsT = TypeVar("_AttrsT", bound=BaseModel)

MIN_COLUMN_WIDTH = 5
LIST_INDENT = "    "
CARD_PLACEHOLDER = " \U0001f4cd "

_STATIC_OPEN: dict[str, str] = {
    NodeType.BLOCKQUOTE: "> ",
    NodeType.PANEL: "---\n",
    NodeType.HARD_BREAK: "\n\n",
    MarkType.UNDERLINE: "<u>",
    MarkType.STRONG: "**",
    MarkType.EM: "_",
    MarkType.CODE: "`",
    MarkType.STRIKE: "-",
    MarkType.LINK: "[",
}

_STATIC_CLOSE: dict[str, str] = {
    NodeType.BLOCKQUOTE: "\n",
    NodeType.PANEL: "---\n",
    NodeType.HEADING: "\n",
    NodeType.MENTION: " ",
    NodeType.EMOJI: " ",
    NodeType.MEDIA_GROUP: "\n\n",
    NodeType.MEDIA_SINGLE: "\n\n",
    MarkType.UNDERLINE: "</u>",
    MarkType.STRONG: "**",
    MarkType.EM: "_",
    MarkType.CODE: "`",
    MarkType.STRIKE: "-",
    MarkType.LINK: "]",
}


# ---------------------------------------------------------------------------
# Dialects
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Dialect:
    """Per-kind open/close overrides consulted before the default rules."""

    name: str
    open_hooks: Mapping[str, Hook] = field(default_factory=dict)
    close_hooks: Mapping[str, Hook] = field(default_factory=dict)

    def with_hooks(
        self,
        name: str,
        open_hooks: Mapping[str, Hook] | None = None,
        close_hooks: Mapping[str, Hook] | None = None,
    ) -> Dialect:
        """Return a copy named *name* with the given hooks replacing ours."""
        return Dialect(
            name=name,
            open_hooks={**self.open_hooks, **(open_hooks or {})},
            close_hooks={**self.close_hooks, **(close_hooks or {})},
        )


def _jira_panel_open(item: Renderable) -> str:
    params: list[str] = []
    panel_type = item.attrs.get("panelType")
    if panel_type:
        params.append(f"type={panel_type}")
    params.extend(f"{key}={value}" for key, value in item.attrs.items() if key != "panelType")
    if params:
        return "\n{panel:" + "|".join(params) + "}\n"
    return "\n{panel}\n"


def _jira_panel_close(item: Renderable) -> str:
    return "{/panel}\n"


MARKDOWN = Dialect(name="markdown")
JIRA = MARKDOWN.with_hooks(
    "jira",
    open_hooks={NodeType.PANEL: _jira_panel_open},
    close_hooks={NodeType.PANEL: _jira_panel_close},
)
DIALECTS: dict[str, Dialect] = {dialect.name: dialect for dialect in (MARKDOWN, JIRA)}


def get_dialect(name: str) -> Dialect:
    """Look up a dialect by name.

    Raises:
        ValueError: If *name* is not a known dialect.
    """
    try:
        return DIALECTS[name]
    except KeyError:
        raise ValueError(
            f"Unknown dialect {name!r}, expected one of: {', '.join(sorted(DIALECTS))}"
        ) from None


# ---------------------------------------------------------------------------
# Render state
# ---------------------------------------------------------------------------


@dataclass
class _ListFrame:
    ordered: bool
    counter: int = 0


@dataclass
class _RenderState:
    """Mutable traversal state for a single :meth:`convert` call."""

    parts: list[str] = field(default_factory=list)
    lists: list[_ListFrame] = field(default_factory=list)
    rows: list[list[str]] = field(default_factory=list)
    in_table: bool = False
    in_cell: bool = False
    column: int = 0
    code_depth: int = 0

    def write(self, text: str) -> None:
        if not text:
            return
        if self.in_cell and self.rows and self.column > 0:
            self.rows[-1][self.column - 1] += text
        else:
            self.parts.append(text)


def _parse_attrs(model: type[_AttrsT], attrs: dict) -> _AttrsT:
    try:
        return model.model_validate(attrs)
    except ValidationError as exc:
        logger.debug("Ignoring malformed %s: %s", model.__name__, exc)
        return model()


def _sanitize(text: str, *, code: bool) -> str:
    text = text.rstrip("\n")
    if code:
        return text
    return text.replace("<", "❬").replace(">", "❭")


def _render_table(rows: list[list[str]]) -> str:
    columns = max(len(row) for row in rows)
    cells = [
        [cell.replace("|", "\\|").replace("\n", " ") for cell in row] + [""] * (columns - len(row))
        for row in rows
    ]
    widths = [
        max(MIN_COLUMN_WIDTH, *(len(row[index]) for row in cells)) for index in range(columns)
    ]

    lines: list[str] = []
    for index, row in enumerate(cells):
        lines.append("|" + "".join(f" {cell:<{widths[col]}} |" for col, cell in enumerate(row)))
        if index == 0:
            lines.append("|" + "".join("-" * (width + 2) + "|" for width in widths))
    return "\n".join(lines) + "\n"


# ---------------------------------------------------------------------------
# Renderer
# ---------------------------------------------------------------------------


class AdfToMarkdownConverter:
    """ADF document -> flavored markdown.

    Args:
        dialect: A :class:`Dialect` or its name (``"markdown"`` or ``"jira"``).
        registry: Registry that receives media and card identities.  A fresh
            one is created when omitted; read it back via :attr:`registry`.
        email_resolver: Maps a mention's opaque user id to an email address.
    """

    def __init__(
        self,
        dialect: Dialect | str = MARKDOWN,
        registry: IdentityRegistry | None = None,
        email_resolver: EmailResolver | None = None,
    ) -> None:
        self._dialect = get_dialect(dialect) if isinstance(dialect, str) else dialect
        self._registry = registry if registry is not None else IdentityRegistry()
        self._email_resolver = email_resolver
        self._openers: dict[str, Callable[[Renderable, _RenderState], str]] = {
            NodeType.CODE_BLOCK: self._open_code_block,
            NodeType.TABLE: self._open_table,
            NodeType.TABLE_ROW: self._open_table_row,
            NodeType.TABLE_HEADER: self._open_table_cell,
            NodeType.TABLE_CELL: self._open_table_cell,
            NodeType.BULLET_LIST: self._open_list,
            NodeType.ORDERED_LIST: self._open_list,
            NodeType.LIST_ITEM: self._open_list_item,
            NodeType.MEDIA: self._open_media,
            NodeType.MENTION: self._open_mention,
            NodeType.INLINE_CARD: self._open_inline_card,
        }
        self._closers: dict[str, Callable[[Renderable, _RenderState], str]] = {
            NodeType.CODE_BLOCK: self._close_code_block,
            NodeType.TABLE: self._close_table,
            NodeType.TABLE_HEADER: self._close_table_cell,
            NodeType.TABLE_CELL: self._close_table_cell,
            NodeType.BULLET_LIST: self._close_list,
            NodeType.ORDERED_LIST: self._close_list,
            NodeType.PARAGRAPH: self._close_paragraph,
        }

    @property
    def dialect(self) -> Dialect:
        return self._dialect

    @property
    def registry(self) -> IdentityRegistry:
        return self._registry

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def convert(self, doc: Document | Node) -> str:
        """Render *doc* (a whole document or a single node) to markdown.

        Never raises for a well-formed tree; kinds without a rule render as
        empty strings.
        """
        state = _RenderState()
        nodes = doc.content if isinstance(doc, Document) else [doc]
        for node in nodes:
            self._visit(node, state)
        return "".join(state.parts)

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    def _visit(self, node: Node, state: _RenderState) -> None:
        self._remember(node)
        state.write(self._open(node, state))

        for child in node.content:
            self._visit(child, state)

        if classify(node.type) is NodeCategory.CHILD:
            self._write_inline(node, state)

        state.write(self._close(node, state))

    def _write_inline(self, node: Node, state: _RenderState) -> None:
        marks = node.marks if node.type == NodeType.TEXT else []
        code = state.code_depth > 0 or any(mark.type == MarkType.CODE for mark in marks)
        for mark in marks:
            state.write(self._open(mark, state))
        state.write(_sanitize(node.text, code=code))
        for mark in reversed(marks):
            state.write(self._close(mark, state))

    def _remember(self, node: Node) -> None:
        if node.type in (NodeType.MEDIA_GROUP, NodeType.MEDIA_SINGLE):
            if not node.content:
                return
            media = _parse_attrs(MediaAttrs, node.content[0].attrs)
            if media.id:
                self._registry.remember_media(media.id, node)
        elif node.type == NodeType.INLINE_CARD:
            card = _parse_attrs(InlineCardAttrs, node.attrs)
            if card.url:
                self._registry.remember_card(card.url, node)

    def _open(self, item: Renderable, state: _RenderState) -> str:
        hook = self._dialect.open_hooks.get(item.type)
        if hook is not None:
            tag = hook(item)
        else:
            opener = self._openers.get(item.type)
            tag = opener(item, state) if opener is not None else _STATIC_OPEN.get(item.type, "")
            if item.type == NodeType.MENTION:
                return tag
        return tag + _open_attributes(item.attrs)

    def _close(self, item: Renderable, state: _RenderState) -> str:
        hook = self._dialect.close_hooks.get(item.type)
        if hook is not None:
            tag = hook(item)
        else:
            closer = self._closers.get(item.type)
            tag = closer(item, state) if closer is not None else _STATIC_CLOSE.get(item.type, "")
        href = item.attrs.get("href")
        if href:
            tag += f"({href})"
        return tag

    # ------------------------------------------------------------------
    # Openers
    # ------------------------------------------------------------------

    def _open_code_block(self, item: Renderable, state: _RenderState) -> str:
        state.code_depth += 1
        return "```" if item.attrs.get("language") else "```\n"

    def _open_table(self, item: Renderable, state: _RenderState) -> str:
        state.in_table = True
        state.rows = []
        return "\n"

    def _open_table_row(self, item: Renderable, state: _RenderState) -> str:
        state.rows.append([])
        state.column = 0
        return ""

    def _open_table_cell(self, item: Renderable, state: _RenderState) -> str:
        state.column += 1
        state.in_cell = True
        if state.rows:
            row = state.rows[-1]
            row.extend([""] * (state.column - len(row)))
        return ""

    def _open_list(self, item: Renderable, state: _RenderState) -> str:
        if item.type == NodeType.ORDERED_LIST:
            state.lists.append(_ListFrame(ordered=True, counter=_start_order(item.attrs) - 1))
        else:
            state.lists.append(_ListFrame(ordered=False))
        return ""

    def _open_list_item(self, item: Renderable, state: _RenderState) -> str:
        if not state.lists:
            return "- "
        indent = LIST_INDENT * (len(state.lists) - 1)
        frame = state.lists[-1]
        if frame.ordered:
            frame.counter += 1
            return f"{indent}{frame.counter}. "
        return f"{indent}- "

    def _open_media(self, item: Renderable, state: _RenderState) -> str:
        media = _parse_attrs(MediaAttrs, item.attrs)
        if media.id:
            return f"\n{{attachment:{media.id}}}"
        return "\n[attachment]"

    def _open_mention(self, item: Renderable, state: _RenderState) -> str:
        mention = _parse_attrs(MentionAttrs, item.attrs)
        display = ""
        if mention.id and self._email_resolver is not None:
            display = self._email_resolver(mention.id) or ""
        if not display:
            if self._email_resolver is not None:
                logger.debug("No email for user %s, using display text", mention.id)
            display = mention.text
        return " @" + display.removeprefix("@")

    def _open_inline_card(self, item: Renderable, state: _RenderState) -> str:
        card = _parse_attrs(InlineCardAttrs, item.attrs)
        if card.url:
            return f"[{card.url}]({card.url})"
        return CARD_PLACEHOLDER

    # ------------------------------------------------------------------
    # Closers
    # ------------------------------------------------------------------

    def _close_code_block(self, item: Renderable, state: _RenderState) -> str:
        state.code_depth -= 1
        return "\n```\n"

    def _close_table(self, item: Renderable, state: _RenderState) -> str:
        grid = _render_table(state.rows) + "\n" if state.rows else ""
        state.rows = []
        state.in_table = False
        state.in_cell = False
        state.column = 0
        return grid

    def _close_table_cell(self, item: Renderable, state: _RenderState) -> str:
        state.in_cell = False
        return ""

    def _close_list(self, item: Renderable, state: _RenderState) -> str:
        if state.lists:
            state.lists.pop()
        return "" if state.lists else "\n"

    def _close_paragraph(self, item: Renderable, state: _RenderState) -> str:
        if state.lists:
            return "\n"
        if not state.in_table:
            return "\n\n"
        return ""


def _start_order(attrs: dict) -> int:
    try:
        return max(int(attrs.get("order", 1)), 1)
    except (TypeError, ValueError):
        return 1


def _open_attributes(attrs: dict) -> str:
    """Generic attribute rendering shared by every node and mark kind."""
    parts: list[str] = []
    for key, value in attrs.items():
        if key == "language":
            if value:
                parts.append(f"{value}\n")
        elif key == "level":
            try:
                parts.append("#" * int(value) + " ")
            except (TypeError, ValueError):
                continue
        elif key == "text":
            if value is not None:
                parts.append(str(value))
    return "".join(parts)
