"""Flavored-markdown concrete syntax trees and their parser."""

from adf_bridge.markup.cst import CstNode, CstTree, InlineTree
from adf_bridge.markup.inline import parse_inline
from adf_bridge.markup.parser import FlavoredMarkdownParser

__all__ = [
    "CstNode",
    "CstTree",
    "FlavoredMarkdownParser",
    "InlineTree",
    "parse_inline",
]
