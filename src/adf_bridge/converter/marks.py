"""Resolve nested emphasis in the inline CST into ADF marks.

Markdown nests emphasis syntactically (``~**<u>x</u>**~``) while ADF puts a
flat, ordered list of marks on a single text node.  :func:`resolve_marks`
walks one emphasis-family node and returns the innermost literal text plus
the marks from the outermost enclosing one to the innermost.
"""

from __future__ import annotations

from typing import Callable

from adf_bridge.adf.model import Mark, em_mark, strike_mark, strong_mark, underline_mark
from adf_bridge.markup.cst import CstNode

# Inline CST kinds that contribute a mark, and the mark they contribute.
EMPHASIS_KINDS: dict[str, Callable[[], Mark]] = {
    "strong_emphasis": strong_mark,
    "underline": underline_mark,
    "strikethrough": strike_mark,
    "emphasis": em_mark,
}

_DELIMITER = "emphasis_delimiter"

# (delimiter ending the opening run, delimiter starting the closing run)
_DELIMITER_PAIRS = {
    "strong_emphasis": (2, 3),
    "strikethrough": (1, 2),
    "emphasis": (1, 2),
}


def is_emphasis(node: CstNode) -> bool:
    return node.kind in EMPHASIS_KINDS


def resolve_marks(node: CstNode, source: bytes) -> tuple[str, list[Mark]]:
    """Return ``(text, marks)`` for an emphasis-family node.

    The node's own kind contributes the first mark.  Between its opening and
    closing delimiter runs, the first emphasis child of a *different* kind is
    resolved recursively and its marks are appended; a child of the same kind
    is skipped.  Underline content is taken literally, so ``<u>**x**</u>``
    yields ``**x**`` with only the underline mark.

    When no delimiter pair is found the non-delimiter children are
    concatenated, still collecting marks from nested emphasis.
    """
    marks = [EMPHASIS_KINDS[node.kind]()]

    if node.kind == "underline":
        content = node.child("underline_content")
        if content is not None:
            return content.text(source), marks
    else:
        bounds = _content_bounds(node)
        if bounds is not None:
            start, end = bounds
            for child in node.children:
                if is_emphasis(child) and child.kind != node.kind:
                    text, nested = resolve_marks(child, source)
                    return text, marks + nested
            return source[start:end].decode("utf-8", errors="replace"), marks

    parts: list[str] = []
    for child in node.children:
        if is_emphasis(child):
            text, nested = resolve_marks(child, source)
            marks.extend(nested)
            parts.append(text)
        elif not _is_delimiter(child.kind):
            parts.append(child.text(source))
    return "".join(parts), marks


def _content_bounds(node: CstNode) -> tuple[int, int] | None:
    """Byte range between the opening and closing delimiter runs."""
    opening, closing = _DELIMITER_PAIRS[node.kind]
    start = end = None
    count = 0
    for child in node.children:
        if child.kind != _DELIMITER:
            continue
        count += 1
        if count == opening:
            start = child.end_byte
        if count == closing:
            end = child.start_byte
    if count < 2 * opening or start is None or end is None or end <= start:
        return None
    return start, end


def _is_delimiter(kind: str) -> bool:
    return "delimiter" in kind or kind.endswith("_open") or kind.endswith("_close")
