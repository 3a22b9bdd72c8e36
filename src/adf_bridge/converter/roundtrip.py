"""Round-trip diff: markdown -> ADF -> markdown.

Shows what a document loses (or gains) when it travels through ADF, which
is the quickest way to see which constructs the flavored dialect cannot
carry.
"""

from __future__ import annotations

import difflib
import re

from adf_bridge.converter.adf_to_markdown import AdfToMarkdownConverter
from adf_bridge.converter.markdown_to_adf import MarkdownToAdfConverter

_BLANK_RUNS = re.compile(r"\n{3,}")


def normalize(text: str, *, collapse_blank_lines: bool = True) -> str:
    """Normalise line endings, trailing spaces and (optionally) blank-line runs."""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = "\n".join(line.rstrip() for line in text.split("\n"))
    if collapse_blank_lines:
        text = _BLANK_RUNS.sub("\n\n", text).strip("\n") + "\n"
    return text


def roundtrip(
    text: str,
    builder: MarkdownToAdfConverter | None = None,
    renderer: AdfToMarkdownConverter | None = None,
) -> str:
    """Build ADF from *text* and render it straight back to markdown.

    When neither side is given, both share one registry so media and cards
    survive the trip.
    """
    if renderer is None:
        renderer = AdfToMarkdownConverter(registry=builder.registry if builder else None)
    if builder is None:
        builder = MarkdownToAdfConverter(registry=renderer.registry)
    return renderer.convert(builder.convert(text))


def roundtrip_diff(
    text: str,
    builder: MarkdownToAdfConverter | None = None,
    renderer: AdfToMarkdownConverter | None = None,
    *,
    collapse_blank_lines: bool = True,
) -> str:
    """Unified diff between *text* and its round-tripped rendering.

    Returns:
        The diff, or an empty string when both sides are identical after
        normalisation.
    """
    original = normalize(text, collapse_blank_lines=collapse_blank_lines)
    regenerated = normalize(
        roundtrip(text, builder, renderer), collapse_blank_lines=collapse_blank_lines
    )
    diff = difflib.unified_diff(
        original.splitlines(),
        regenerated.splitlines(),
        fromfile="original (markdown)",
        tofile="round trip (markdown -> adf -> markdown)",
        lineterm="",
    )
    return "\n".join(diff)
