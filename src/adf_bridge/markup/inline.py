"""Inline scanner producing the inline CST of a block's raw text.

markdown-it-py only hands us the normalised inline content of each block.
The builder needs byte ranges for the constructs it resolves itself, so
this module scans that content and produces a shallow tree of:

* ``people_mention``   -- ``@local@domain``
* ``code_span``        -- ``code_span_delimiter`` / ``text`` / ``code_span_delimiter``
* ``inline_link``      -- ``link_text`` (``[..]``) / ``link_destination`` (``(..)``)
* ``strong_emphasis``  -- ``**x**`` or ``__x__``, one ``emphasis_delimiter`` per char
* ``emphasis``         -- ``*x*`` or ``_x_``
* ``strikethrough``    -- ``~x~`` or ``~~x~~``, the run is a single delimiter
* ``underline``        -- ``underline_open`` / ``underline_content`` / ``underline_close``

Plain runs are emitted as ``text`` nodes inside emphasis nodes only; at the
root they are left for the builder's gap filling.
"""

from __future__ import annotations

import re

from adf_bridge.markup.cst import CstNode, InlineTree

INLINE_ROOT = "inline"

_MENTION = re.compile(r"@[\w.+-]+@[\w-]+(?:\.[\w-]+)+")

_UNDERLINE_OPEN = "<u>"
_UNDERLINE_CLOSE = "</u>"

_EMPHASIS_CHARS = "*_"
_STRIKE_CHAR = "~"


def parse_inline(text: str) -> InlineTree:
    """Scan *text* and return its inline tree over the UTF-8 encoded buffer."""
    scanner = _InlineScanner(text)
    root = CstNode(INLINE_ROOT, 0, len(text), scanner.scan_range(0, len(text), emit_text=False))
    source = text.encode("utf-8")
    return InlineTree(root=_to_bytes(root, _byte_offsets(text)), source=source)


def _byte_offsets(text: str) -> list[int]:
    """Map every character index (and the end) to its UTF-8 byte offset."""
    offsets = [0] * (len(text) + 1)
    total = 0
    for index, char in enumerate(text):
        offsets[index] = total
        total += len(char.encode("utf-8"))
    offsets[len(text)] = total
    return offsets


def _to_bytes(node: CstNode, offsets: list[int]) -> CstNode:
    return CstNode(
        node.kind,
        offsets[node.start_byte],
        offsets[node.end_byte],
        [_to_bytes(child, offsets) for child in node.children],
    )


class _InlineScanner:
    """Recursive-descent scanner working on character offsets.

    Results of :meth:`match` are memoised per ``(position, end)`` so runs of
    unmatched delimiters stay linear instead of re-scanning the tail.
    """

    def __init__(self, text: str) -> None:
        self._text = text
        self._memo: dict[tuple[int, int], CstNode | None] = {}

    def scan_range(self, start: int, end: int, *, emit_text: bool) -> list[CstNode]:
        text = self._text
        nodes: list[CstNode] = []
        pos = start
        plain_start = start
        while pos < end:
            char = text[pos]
            if char == "\\" and pos + 1 < end:
                pos += 2
                continue
            node = self.match(pos, end)
            if node is None:
                pos += self._run_length(pos, end) if char == "`" else 1
                continue
            if emit_text and plain_start < node.start_byte:
                nodes.append(CstNode("text", plain_start, node.start_byte))
            nodes.append(node)
            pos = node.end_byte
            plain_start = pos
        if emit_text and plain_start < end:
            nodes.append(CstNode("text", plain_start, end))
        return nodes

    def match(self, pos: int, end: int) -> CstNode | None:
        key = (pos, end)
        if key not in self._memo:
            self._memo[key] = self._match(pos, end)
        return self._memo[key]

    def _match(self, pos: int, end: int) -> CstNode | None:
        text = self._text
        char = text[pos]
        if char == "`":
            return self._code_span(pos, end)
        if char == "<" and text.startswith(_UNDERLINE_OPEN, pos):
            return self._underline(pos, end)
        if char == "[":
            return self._link(pos, end)
        if char == "@":
            return self._mention(pos, end)
        if char in _EMPHASIS_CHARS:
            if text.startswith(char * 2, pos, end):
                node = self._delimited(pos, end, char * 2, "strong_emphasis")
                if node is not None:
                    return node
            return self._delimited(pos, end, char, "emphasis")
        if char == _STRIKE_CHAR:
            if text.startswith(char * 2, pos, end):
                node = self._delimited(pos, end, char * 2, "strikethrough")
                if node is not None:
                    return node
            return self._delimited(pos, end, char, "strikethrough")
        return None

    # -- leaf constructs ------------------------------------------------------

    def _run_length(self, pos: int, end: int) -> int:
        char = self._text[pos]
        length = 0
        while pos + length < end and self._text[pos + length] == char:
            length += 1
        return length

    def _code_span(self, pos: int, end: int) -> CstNode | None:
        width = self._run_length(pos, end)
        cursor = pos + width
        while cursor < end:
            if self._text[cursor] != "`":
                cursor += 1
                continue
            run = self._run_length(cursor, end)
            if run == width:
                children = [CstNode("code_span_delimiter", pos, pos + width)]
                if cursor > pos + width:
                    children.append(CstNode("text", pos + width, cursor))
                children.append(CstNode("code_span_delimiter", cursor, cursor + width))
                return CstNode("code_span", pos, cursor + width, children)
            cursor += run
        return None

    def _underline(self, pos: int, end: int) -> CstNode | None:
        content_start = pos + len(_UNDERLINE_OPEN)
        close = self._text.find(_UNDERLINE_CLOSE, content_start, end)
        if close < 0:
            return None
        children = [CstNode("underline_open", pos, content_start)]
        if close > content_start:
            children.append(CstNode("underline_content", content_start, close))
        children.append(CstNode("underline_close", close, close + len(_UNDERLINE_CLOSE)))
        return CstNode("underline", pos, close + len(_UNDERLINE_CLOSE), children)

    def _link(self, pos: int, end: int) -> CstNode | None:
        text = self._text
        label_end = text.find("]", pos + 1, end)
        if label_end < 0 or label_end + 1 >= end or text[label_end + 1] != "(":
            return None
        dest_end = text.find(")", label_end + 2, end)
        if dest_end < 0:
            return None
        return CstNode(
            "inline_link",
            pos,
            dest_end + 1,
            [
                CstNode("link_text", pos, label_end + 1),
                CstNode("link_destination", label_end + 1, dest_end + 1),
            ],
        )

    def _mention(self, pos: int, end: int) -> CstNode | None:
        if pos > 0:
            before = self._text[pos - 1]
            if before.isalnum() or before in "_.":
                return None
        match = _MENTION.match(self._text, pos, end)
        if match is None:
            return None
        return CstNode("people_mention", pos, match.end())

    # -- emphasis family ------------------------------------------------------

    def _delimited(self, pos: int, end: int, delimiter: str, kind: str) -> CstNode | None:
        text = self._text
        width = len(delimiter)
        inner_start = pos + width
        if inner_start >= end or text[inner_start].isspace():
            return None
        intraword = delimiter[0] == "_"
        if intraword and pos > 0 and text[pos - 1].isalnum():
            return None

        cursor = inner_start
        while cursor < end:
            char = text[cursor]
            if char == "\\":
                cursor += 2
                continue
            if (
                text.startswith(delimiter, cursor, end)
                and cursor > inner_start
                and not text[cursor - 1].isspace()
                and not (intraword and cursor + width < end and text[cursor + width].isalnum())
            ):
                return self._delimited_node(pos, cursor, delimiter, kind)
            nested = self.match(cursor, end)
            if nested is not None:
                cursor = nested.end_byte
            elif char == "`":
                cursor += self._run_length(cursor, end)
            else:
                cursor += 1
        return None

    def _delimited_node(self, pos: int, close: int, delimiter: str, kind: str) -> CstNode:
        width = len(delimiter)
        if kind == "strikethrough":
            opening = [CstNode("emphasis_delimiter", pos, pos + width)]
            closing = [CstNode("emphasis_delimiter", close, close + width)]
        else:
            opening = [CstNode("emphasis_delimiter", pos + i, pos + i + 1) for i in range(width)]
            closing = [CstNode("emphasis_delimiter", close + i, close + i + 1) for i in range(width)]
        inner = self.scan_range(pos + width, close, emit_text=True)
        return CstNode(kind, pos, close + width, opening + inner + closing)
