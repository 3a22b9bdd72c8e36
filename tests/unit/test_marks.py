"""
Unit tests for nested emphasis resolution.
"""

import pytest

from adf_bridge.converter.marks import is_emphasis, resolve_marks
from adf_bridge.markup import CstNode, parse_inline


def resolve(text: str) -> tuple[str, list[str]]:
    tree = parse_inline(text)
    node = tree.root.children[0]
    assert is_emphasis(node)
    resolved, marks = resolve_marks(node, tree.source)
    return resolved, [mark.type for mark in marks]


@pytest.mark.unit
class TestResolveMarks:
    """Marks are returned outermost first."""

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("**bold**", ("bold", ["strong"])),
            ("__bold__", ("bold", ["strong"])),
            ("*em*", ("em", ["em"])),
            ("_em_", ("em", ["em"])),
            ("~gone~", ("gone", ["strike"])),
            ("~~gone~~", ("gone", ["strike"])),
            ("<u>under</u>", ("under", ["underline"])),
        ],
    )
    def test_single_mark(self, text, expected):
        assert resolve(text) == expected

    def test_three_levels(self):
        assert resolve("~**<u>text</u>**~") == ("text", ["strike", "strong", "underline"])

    def test_em_inside_strong(self):
        assert resolve("**_both_**") == ("both", ["strong", "em"])

    def test_underline_content_is_literal(self):
        assert resolve("<u>**x**</u>") == ("**x**", ["underline"])

    def test_text_is_kept_between_delimiters(self):
        assert resolve("**two words**") == ("two words", ["strong"])

    def test_same_kind_child_is_skipped(self):
        # Hand-built: a strong node whose only emphasis child is also strong.
        source = b"**a**"
        inner = CstNode("strong_emphasis", 0, 5)
        node = CstNode(
            "strong_emphasis",
            0,
            5,
            [
                CstNode("emphasis_delimiter", 0, 1),
                CstNode("emphasis_delimiter", 1, 2),
                inner,
                CstNode("emphasis_delimiter", 3, 4),
                CstNode("emphasis_delimiter", 4, 5),
            ],
        )

        text, marks = resolve_marks(node, source)

        assert text == "a"
        assert [mark.type for mark in marks] == ["strong"]

    def test_fallback_without_delimiters(self):
        source = b"plain"
        node = CstNode("emphasis", 0, 5, [CstNode("text", 0, 5)])

        text, marks = resolve_marks(node, source)

        assert text == "plain"
        assert [mark.type for mark in marks] == ["em"]

    def test_underline_without_content(self):
        tree = parse_inline("<u></u>")
        text, marks = resolve_marks(tree.root.children[0], tree.source)

        assert text == ""
        assert [mark.type for mark in marks] == ["underline"]
