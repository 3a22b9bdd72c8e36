"""
Unit tests for the flavored-markdown CST supplier and inline scanner.
"""

import pytest

from adf_bridge.markup import CstNode, parse_inline


def kinds(node: CstNode) -> list[str]:
    return [child.kind for child in node.children]


@pytest.mark.unit
class TestBlockStructure:
    """Block kinds and byte ranges of the document CST."""

    def test_heading_and_paragraph(self, parser):
        tree = parser.parse("# Title\n\nSome text\n")

        assert kinds(tree.root) == ["atx_heading", "paragraph"]
        heading = tree.root.children[0]
        assert kinds(heading) == ["atx_h1_marker", "inline"]
        assert heading.child("atx_h1_marker").text(tree.source) == "#"
        assert tree.root.children[1].text(tree.source) == "Some text"

    def test_setext_heading(self, parser):
        tree = parser.parse("Title\n-----\n")
        heading = tree.root.children[0]

        assert heading.kind == "setext_heading"
        assert heading.children[0].kind == "setext_h2_underline"

    def test_inline_tree_is_registered(self, parser):
        tree = parser.parse("plain **bold**\n")
        inline = tree.root.children[0].child("inline")

        inline_tree = tree.inline_tree(inline)

        assert inline_tree is not None
        assert inline_tree.source == b"plain **bold**"
        assert kinds(inline_tree.root) == ["strong_emphasis"]

    def test_fenced_code_block(self, parser):
        tree = parser.parse("```python\nprint(1)\n```\n")
        block = tree.root.children[0]

        assert block.kind == "fenced_code_block"
        assert block.child("info_string").text(tree.source) == "python"
        assert block.child("code_fence_content").text(tree.source) == "print(1)"
        delimiters = [child for child in block.children if child.kind == "fenced_code_block_delimiter"]
        assert [child.text(tree.source) for child in delimiters] == ["```", "```"]

    def test_unclosed_fence_has_one_delimiter(self, parser):
        tree = parser.parse("~~~\nx\n")
        block = tree.root.children[0]

        assert block.child("code_fence_content").text(tree.source) == "x"
        assert [child.kind for child in block.children].count("fenced_code_block_delimiter") == 1

    def test_table_in_blockquote(self, parser):
        tree = parser.parse("> | a | b |\n> |---|---|\n> | c | d |\n")
        table = tree.root.children[0].children[0]
        header = table.children[0]

        assert table.kind == "pipe_table"
        assert [cell.text(tree.source).strip() for cell in header.children] == ["a", "b"]

    def test_list_markers(self, parser):
        tree = parser.parse("3) one\n4) two\n")
        items = tree.root.children[0].children

        assert [item.kind for item in items] == ["list_item", "list_item"]
        marker = items[0].children[0]
        assert marker.kind == "list_marker_parenthesis"
        assert marker.text(tree.source) == "3)"

    def test_nested_list(self, parser):
        tree = parser.parse("- outer\n    - inner\n")
        item = tree.root.children[0].children[0]

        assert kinds(item) == ["list_marker_minus", "paragraph", "list"]

    def test_pipe_table(self, parser):
        tree = parser.parse("| a | b |\n| --- | --- |\n| 1 | 2 \\| 3 |\n")
        table = tree.root.children[0]

        assert kinds(table) == ["pipe_table_header", "pipe_table_delimiter_row", "pipe_table_row"]
        cells = table.children[2].children
        assert [cell.text(tree.source).strip() for cell in cells] == ["1", "2 \\| 3"]

    def test_panel(self, parser):
        tree = parser.parse("{panel:type=warning}\nCareful.\n{/panel}\n\nAfter\n")
        panel = tree.root.children[0]

        assert panel.kind == "panel"
        assert kinds(panel) == ["panel_start", "paragraph", "panel_end_mark"]
        type_node = panel.children[0].child("panel_type").child("type")
        assert type_node.text(tree.source) == "warning"
        assert tree.root.children[1].kind == "paragraph"

    def test_unclosed_panel_runs_to_end(self, parser):
        tree = parser.parse("{panel}\nstill inside\n")
        panel = tree.root.children[0]

        assert kinds(panel) == ["panel_start", "paragraph"]
        assert panel.children[0].child("panel_type") is None

    def test_attachment(self, parser):
        tree = parser.parse("{attachment:6f1c2a}\n")
        attachment = tree.root.children[0]

        assert attachment.kind == "attachment"
        assert attachment.child("attachment_path").text(tree.source) == "6f1c2a"

    def test_byte_offsets_count_utf8(self, parser):
        tree = parser.parse("# Café\n\nnaïve text\n")
        paragraph = tree.root.children[1]

        # "# Café\n" is 8 bytes, plus the blank line.
        assert paragraph.start_byte == 9
        assert paragraph.text(tree.source) == "naïve text"

    def test_crlf_is_normalised(self, parser):
        tree = parser.parse(b"one\r\n\r\ntwo\r\n")
        assert kinds(tree.root) == ["paragraph", "paragraph"]
        assert tree.root.children[1].text(tree.source) == "two"


@pytest.mark.unit
class TestInlineScanner:
    """Inline constructs recognised by the scanner."""

    def test_plain_text_has_no_children(self):
        assert parse_inline("just words").root.children == []

    def test_nested_emphasis(self):
        tree = parse_inline("~**<u>text</u>**~")
        strike = tree.root.children[0]

        assert strike.kind == "strikethrough"
        assert kinds(strike) == ["emphasis_delimiter", "strong_emphasis", "emphasis_delimiter"]
        strong = strike.children[1]
        assert kinds(strong) == [
            "emphasis_delimiter",
            "emphasis_delimiter",
            "underline",
            "emphasis_delimiter",
            "emphasis_delimiter",
        ]
        assert kinds(strong.children[2]) == ["underline_open", "underline_content", "underline_close"]

    def test_code_span(self):
        tree = parse_inline("run `ls -l` now")
        span = tree.root.children[0]

        assert span.kind == "code_span"
        assert span.child("text").text(tree.source) == "ls -l"

    def test_empty_code_span(self):
        span = parse_inline("``").root.children
        # Two backticks form one unmatched run.
        assert span == []

    def test_link(self):
        tree = parse_inline("see [docs](https://example.com).")
        link = tree.root.children[0]

        assert link.kind == "inline_link"
        assert link.child("link_text").text(tree.source) == "[docs]"
        assert link.child("link_destination").text(tree.source) == "(https://example.com)"

    def test_mention(self):
        tree = parse_inline("ping @jane.doe@example.com please")
        mention = tree.root.children[0]

        assert mention.kind == "people_mention"
        assert mention.text(tree.source) == "@jane.doe@example.com"

    def test_plain_email_is_not_a_mention(self):
        assert parse_inline("mail jane@example.com").root.children == []

    def test_intraword_underscore_is_literal(self):
        assert parse_inline("snake_case_name").root.children == []

    def test_unclosed_delimiters_are_literal(self):
        assert parse_inline("2 * 3 and **open").root.children == []

    def test_offsets_are_bytes(self):
        tree = parse_inline("é **b**")
        strong = tree.root.children[0]

        assert strong.start_byte == 3
        assert strong.text(tree.source) == "**b**"
