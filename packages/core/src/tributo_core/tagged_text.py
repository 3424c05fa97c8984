"""Parser for the tagged free-text answer format.

Grammar::

    document := (TEXT | element)*
    element  := "<" NAME ">" content "</" NAME ">"
    content  := (TEXT | element)*
    NAME     := [A-Za-z_][A-Za-z0-9_]*

The parser is lenient in the ways a language model tends to be sloppy:
a closing tag that matches no open element is kept as text, a closing tag
of an outer element implicitly closes the inner ones, and elements left
open at the end of input are closed there.

Projection of an element into plain data:
- no child elements        -> its stripped text (entities unescaped)
- only <item> children     -> list of projected items
- other child elements     -> dict of child name to projected value
"""

import html
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from .exceptions import ParseError

TaggedValue = Union[str, list["TaggedValue"], dict[str, "TaggedValue"]]

ITEM_TAG = "item"

_TAG_RE = re.compile(r"<(/?)([A-Za-z_][A-Za-z0-9_]*)\s*>")


class TokenKind(str, Enum):
    TEXT = "text"
    OPEN = "open"
    CLOSE = "close"


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    value: str
    raw: str


@dataclass
class TaggedElement:
    """A parsed element: its tag name and its text/element children."""

    name: str
    children: list[Union[str, "TaggedElement"]] = field(default_factory=list)

    @property
    def elements(self) -> list["TaggedElement"]:
        return [child for child in self.children if isinstance(child, TaggedElement)]

    @property
    def text(self) -> str:
        return "".join(
            child if isinstance(child, str) else child.text for child in self.children
        )

    def project(self) -> TaggedValue:
        """Convert the element into plain str/list/dict data."""
        elements = self.elements
        if not elements:
            return html.unescape(self.text).strip()
        if all(element.name == ITEM_TAG for element in elements):
            return [element.project() for element in elements]
        projected: dict[str, TaggedValue] = {}
        for element in elements:
            projected.setdefault(element.name, element.project())
        return projected


def tokenize(text: str) -> list[Token]:
    """Split text into TEXT, OPEN and CLOSE tokens."""
    tokens: list[Token] = []
    position = 0
    for match in _TAG_RE.finditer(text):
        if match.start() > position:
            chunk = text[position:match.start()]
            tokens.append(Token(TokenKind.TEXT, chunk, chunk))
        kind = TokenKind.CLOSE if match.group(1) else TokenKind.OPEN
        tokens.append(Token(kind, match.group(2), match.group(0)))
        position = match.end()
    if position < len(text):
        chunk = text[position:]
        tokens.append(Token(TokenKind.TEXT, chunk, chunk))
    return tokens


class TaggedTextParser:
    """Recursive-descent parser over the token stream."""

    def __init__(self, text: str):
        self._tokens = tokenize(text)
        self._pos = 0

    def parse(self) -> list[Union[str, TaggedElement]]:
        """Parse the whole document into top-level nodes."""
        self._pos = 0
        return self._parse_content(())

    def _parse_content(self, open_names: tuple[str, ...]) -> list[Union[str, TaggedElement]]:
        nodes: list[Union[str, TaggedElement]] = []
        while self._pos < len(self._tokens):
            token = self._tokens[self._pos]

            if token.kind == TokenKind.TEXT:
                nodes.append(token.value)
                self._pos += 1

            elif token.kind == TokenKind.OPEN:
                self._pos += 1
                children = self._parse_content(open_names + (token.value,))
                nodes.append(TaggedElement(token.value, children))

            elif open_names and token.value == open_names[-1]:
                # Our own closing tag
                self._pos += 1
                return nodes

            elif token.value in open_names:
                # Closes an outer element; leave it for that level
                return nodes

            else:
                nodes.append(token.raw)
                self._pos += 1

        return nodes


def parse_tagged(text: str) -> dict[str, TaggedValue]:
    """
    Parse a tagged-text answer into a field mapping.

    A single root element wrapping all fields (e.g. ``<response>...``) is
    unwrapped. The first occurrence of a field wins.

    Raises:
        ParseError: If the text contains no elements at all.
    """
    roots = [node for node in TaggedTextParser(text).parse() if isinstance(node, TaggedElement)]
    if not roots:
        raise ParseError(
            "No tagged fields found in response",
            output_format="tagged",
            excerpt=text,
        )

    if len(roots) == 1:
        projected = roots[0].project()
        if isinstance(projected, dict):
            return projected

    fields: dict[str, TaggedValue] = {}
    for root in roots:
        fields.setdefault(root.name, root.project())
    return fields
