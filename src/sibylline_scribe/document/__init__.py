"""Rich-text document model with ProseMirror-style positions."""

from .html import parse_html, serialize_html
from .model import DEFAULT_BLOCK_SEPARATOR, Mark, Node, RichDocument

__all__ = [
    "RichDocument",
    "Node",
    "Mark",
    "DEFAULT_BLOCK_SEPARATOR",
    "parse_html",
    "serialize_html",
]
