"""
Pytest configuration and shared fixtures.
"""

import pytest

from adf_bridge.adf.model import Document, Node, make_paragraph, make_text
from adf_bridge.converter import AdfToMarkdownConverter, IdentityRegistry, MarkdownToAdfConverter
from adf_bridge.markup import FlavoredMarkdownParser


# ============================================================================
# Engines
# ============================================================================


@pytest.fixture
def parser():
    """Create a flavored-markdown parser."""
    return FlavoredMarkdownParser()


@pytest.fixture
def registry():
    """Create an empty identity registry."""
    return IdentityRegistry()


@pytest.fixture
def builder(registry):
    """Create a markdown -> ADF builder sharing the registry fixture."""
    return MarkdownToAdfConverter(registry=registry)


@pytest.fixture
def renderer(registry):
    """Create an ADF -> markdown renderer sharing the registry fixture."""
    return AdfToMarkdownConverter(registry=registry)


# ============================================================================
# Documents
# ============================================================================


@pytest.fixture
def paragraph_doc():
    """Factory for a document with one paragraph per text."""

    def make(*texts: str) -> Document:
        content: list[Node] = []
        for text in texts:
            paragraph = make_paragraph()
            paragraph.content.append(make_text(text))
            content.append(paragraph)
        return Document(content=content)

    return make


@pytest.fixture
def media_single():
    """A mediaSingle node wrapping one file attachment."""
    return Node.model_validate(
        {
            "type": "mediaSingle",
            "attrs": {"layout": "center"},
            "content": [
                {
                    "type": "media",
                    "attrs": {"id": "6f1c2a", "type": "file", "collection": "uploads"},
                }
            ],
        }
    )


@pytest.fixture
def inline_card():
    """An inlineCard node pointing at an issue URL."""
    return Node.model_validate(
        {"type": "inlineCard", "attrs": {"url": "https://example.atlassian.net/browse/ABC-1"}}
    )
