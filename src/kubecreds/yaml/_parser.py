"""Indentation-based parser for the subset of YAML used by kubeconfig files.

Supported: block mappings, block sequences (including the kubectl style where
the dash sits at the same indentation as the parent key), plain and quoted
scalars, plain scalars continued on more deeply indented lines (folded with
single spaces), and flow sequences or mappings of scalars. All scalars are
kept as strings.

Not supported: anchors and aliases, tags, multiple documents, multi-line
quoted scalars, and block scalars introduced with ``|`` or ``>``. Any line
the parser cannot interpret raises `YamlSyntaxError` rather than being
skipped.
"""

from __future__ import annotations

from dataclasses import dataclass

from ._nodes import MappingNode, Node, ScalarNode, SequenceNode
from ._tokenizer import TokenizedLine, tokenize

__all__ = ["YamlSyntaxError", "parse"]

_BLOCK_SCALAR_INDICATORS = frozenset(["|", "|-", "|+", ">", ">-", ">+"])

_DOUBLE_QUOTE_ESCAPES = {
    '"': '"',
    "\\": "\\",
    "/": "/",
    "0": "\0",
    "n": "\n",
    "r": "\r",
    "t": "\t",
}


class YamlSyntaxError(ValueError):
    """A line of YAML could not be parsed.

    Parameters
    ----------
    message
        Description of the problem.
    line_number
        Line on which the problem was found, starting from 1.
    """

    def __init__(self, message: str, line_number: int) -> None:
        super().__init__(f"Line {line_number}: {message}")
        self.line_number = line_number


@dataclass
class _Frame:
    """An open mapping or sequence whose entries sit at ``indent``."""

    node: MappingNode | SequenceNode
    indent: int


@dataclass
class _Pending:
    """A key or sequence item whose value is given on the following lines."""

    parent: MappingNode | SequenceNode
    slot: str | int
    indent: int


@dataclass
class _Plain:
    """A plain scalar that more deeply indented lines may continue."""

    parent: MappingNode | SequenceNode
    slot: str | int
    indent: int
    value: str


def parse(text: str) -> MappingNode:
    """Parse YAML text into a tree of nodes.

    Parameters
    ----------
    text
        YAML document.

    Returns
    -------
    MappingNode
        Root of the document. An empty document produces an empty mapping.

    Raises
    ------
    TypeError
        Raised if ``text`` is not a `str`.
    YamlSyntaxError
        Raised on the first line that cannot be parsed.
    """
    return _Parser().run(tokenize(text))


class _Parser:
    """State for a single parse.

    A new instance is used for every document, so nothing is shared between
    parses.
    """

    def __init__(self) -> None:
        self._root = MappingNode()
        self._stack: list[_Frame] = []
        self._pending: _Pending | None = None
        self._plain: _Plain | None = None

    def run(self, lines: list[TokenizedLine]) -> MappingNode:
        for line in lines:
            if line.has_content:
                self._parse_line(line)
        return self._root

    def _parse_line(self, line: TokenizedLine) -> None:
        indent = line.indent
        content = line.content
        is_item = content == "-" or content.startswith("- ")
        if not self._stack:
            self._stack.append(_Frame(self._root, indent))

        # A more deeply indented line with no key continues the preceding
        # plain scalar.
        plain = self._plain
        self._plain = None
        if plain and indent > plain.indent and _find_separator(content) < 0:
            plain.value = f"{plain.value} {content}"
            self._store(plain.parent, plain.slot, ScalarNode(plain.value))
            self._plain = plain
            return

        # A key or item with no inline value takes its value from the next
        # line if that line is nested under it. Otherwise the value stays the
        # empty mapping already stored.
        if self._pending:
            pending = self._pending
            self._pending = None
            nested = indent > pending.indent or (
                is_item
                and indent == pending.indent
                and isinstance(pending.parent, MappingNode)
            )
            if nested:
                node: MappingNode | SequenceNode
                node = SequenceNode() if is_item else MappingNode()
                self._store(pending.parent, pending.slot, node)
                self._stack.append(_Frame(node, indent))

        while self._stack:
            top = self._stack[-1]
            if indent < top.indent:
                self._stack.pop()
            elif (
                indent == top.indent
                and isinstance(top.node, SequenceNode)
                and not is_item
            ):
                self._stack.pop()
            else:
                break
        if not self._stack:
            msg = "Indentation is less than the top-level indentation"
            raise YamlSyntaxError(msg, line.line_number)

        top = self._stack[-1]
        if indent > top.indent:
            raise YamlSyntaxError(
                f"Unexpected indentation: {content}", line.line_number
            )
        if isinstance(top.node, SequenceNode):
            self._parse_item(top.node, content, indent, line.line_number)
        elif is_item:
            raise YamlSyntaxError(
                f"Sequence item where a key was expected: {content}",
                line.line_number,
            )
        else:
            self._parse_entry(top.node, content, indent, line.line_number)

    def _parse_entry(
        self, mapping: MappingNode, content: str, indent: int, number: int
    ) -> None:
        separator = _find_separator(content)
        if separator < 0:
            raise YamlSyntaxError(f"Expected 'key: value': {content}", number)
        key = _unquote(content[:separator].strip(), number)
        if not key:
            raise YamlSyntaxError(f"Missing key: {content}", number)
        value = content[separator + 1 :].strip()
        if value:
            mapping.items[key] = _parse_value(value, number)
            if _is_plain(value):
                self._plain = _Plain(mapping, key, indent, value)
        else:
            mapping.items[key] = MappingNode()
            self._pending = _Pending(mapping, key, indent)

    def _parse_item(
        self, sequence: SequenceNode, content: str, indent: int, number: int
    ) -> None:
        rest = content[1:]
        value = rest.lstrip()
        if not value:
            sequence.items.append(MappingNode())
            self._pending = _Pending(sequence, len(sequence.items) - 1, indent)
        elif value == "-" or value.startswith("- "):
            msg = "Nested inline sequences are not supported"
            raise YamlSyntaxError(msg, number)
        elif _find_separator(value) >= 0:
            # Further keys of this item must line up with the first one.
            item_indent = indent + 1 + len(rest) - len(value)
            item = MappingNode()
            sequence.items.append(item)
            self._stack.append(_Frame(item, item_indent))
            self._parse_entry(item, value, item_indent, number)
        else:
            sequence.items.append(_parse_value(value, number))
            if _is_plain(value):
                slot = len(sequence.items) - 1
                self._plain = _Plain(sequence, slot, indent, value)

    @staticmethod
    def _store(
        parent: MappingNode | SequenceNode, slot: str | int, node: Node
    ) -> None:
        if isinstance(parent, MappingNode) and isinstance(slot, str):
            parent.items[slot] = node
        elif isinstance(parent, SequenceNode) and isinstance(slot, int):
            parent.items[slot] = node


def _is_plain(value: str) -> bool:
    """Whether an inline value is a plain scalar that may continue."""
    return value[0] not in "\"'[{"


def _parse_value(value: str, number: int) -> Node:
    """Parse the inline value of a key or sequence item."""
    if value in _BLOCK_SCALAR_INDICATORS:
        raise YamlSyntaxError("Block scalars are not supported", number)
    if value.startswith("["):
        if not value.endswith("]"):
            msg = f"Unterminated flow sequence: {value}"
            raise YamlSyntaxError(msg, number)
        return SequenceNode(
            [_parse_value(v, number) for v in _split_flow(value[1:-1], number)]
        )
    if value.startswith("{"):
        if not value.endswith("}"):
            msg = f"Unterminated flow mapping: {value}"
            raise YamlSyntaxError(msg, number)
        mapping = MappingNode()
        for entry in _split_flow(value[1:-1], number):
            separator = _find_separator(entry)
            if separator < 0:
                msg = f"Expected 'key: value' in flow mapping: {entry}"
                raise YamlSyntaxError(msg, number)
            key = _unquote(entry[:separator].strip(), number)
            mapping.items[key] = _parse_value(
                entry[separator + 1 :].strip(), number
            )
        return mapping
    return ScalarNode(_unquote(value, number))


def _unquote(value: str, number: int) -> str:
    """Remove quotes from a scalar, processing escapes."""
    if not value or value[0] not in "'\"":
        return value
    quote = value[0]
    if len(value) < 2 or value[-1] != quote:
        raise YamlSyntaxError(f"Unterminated quoted string: {value}", number)
    inner = value[1:-1]
    if quote == "'":
        return inner.replace("''", "'")

    result = []
    chars = iter(inner)
    for char in chars:
        if char != "\\":
            result.append(char)
            continue
        escaped = next(chars, "")
        result.append(_DOUBLE_QUOTE_ESCAPES.get(escaped, "\\" + escaped))
    return "".join(result)


def _find_separator(text: str) -> int:
    """Find the ``:`` separating a key from its value.

    The separator must be outside quotes and flow brackets and must be
    followed by whitespace or the end of the text.

    Returns
    -------
    int
        Index of the separator, or -1 if there is none.
    """
    in_single = in_double = False
    depth = 0
    for i, char in enumerate(text):
        escaped = i > 0 and text[i - 1] == "\\"
        if char == "'" and not in_double and not escaped:
            in_single = not in_single
        elif char == '"' and not in_single and not escaped:
            in_double = not in_double
        elif in_single or in_double:
            continue
        elif char in "[{":
            depth += 1
        elif char in "]}":
            depth -= 1
        elif char == ":" and depth == 0:
            if i + 1 == len(text) or text[i + 1].isspace():
                return i
    return -1


def _split_flow(text: str, number: int) -> list[str]:
    """Split the inside of a flow collection on top-level commas."""
    items = []
    current: list[str] = []
    in_single = in_double = False
    depth = 0
    for i, char in enumerate(text):
        escaped = i > 0 and text[i - 1] == "\\"
        if char == "'" and not in_double and not escaped:
            in_single = not in_single
        elif char == '"' and not in_single and not escaped:
            in_double = not in_double
        elif not (in_single or in_double):
            if char in "[{":
                depth += 1
            elif char in "]}":
                depth -= 1
            elif char == "," and depth == 0:
                items.append("".join(current).strip())
                current = []
                continue
        current.append(char)
    if in_single or in_double or depth != 0:
        raise YamlSyntaxError(f"Unbalanced flow collection: {text}", number)
    last = "".join(current).strip()
    if last:
        items.append(last)
    return [item for item in items if item]
