"""Split YAML text into annotated lines."""

from __future__ import annotations

from dataclasses import dataclass

__all__ = ["TokenizedLine", "tokenize"]

_TAB_WIDTH = 2
"""Number of columns a tab counts for in indentation."""


@dataclass(frozen=True)
class TokenizedLine:
    """One line of YAML input with its structural classification."""

    line_number: int
    """Line number in the input, starting from 1."""

    original: str
    """Text of the line as given, without the line terminator."""

    content: str
    """Line with any inline comment removed and whitespace trimmed."""

    indent: int
    """Width of leading whitespace, with tabs counting as two columns."""

    is_blank: bool
    """Whether the line contains only whitespace."""

    is_comment: bool
    """Whether the first non-space character is ``#``."""

    is_directive: bool
    """Whether the line is a ``%`` directive."""

    is_document_marker: bool
    """Whether the line starts with ``---`` or ``...``."""

    @property
    def has_content(self) -> bool:
        """Whether the parser should interpret this line."""
        return not (
            self.is_blank
            or self.is_comment
            or self.is_directive
            or self.is_document_marker
            or not self.content
        )


def tokenize(text: str) -> list[TokenizedLine]:
    """Split YAML text into tokenized lines.

    All line-ending styles are normalized to ``\\n`` first.

    Parameters
    ----------
    text
        YAML document text.

    Returns
    -------
    list of TokenizedLine
        One entry per line, in order.

    Raises
    ------
    TypeError
        Raised if ``text`` is not a `str`.
    """
    if not isinstance(text, str):
        msg = f"YAML input must be str, not {type(text).__name__}"
        raise TypeError(msg)

    normalized = text.replace("\r\n", "\n").replace("\r", "\n")
    lines = []
    for number, original in enumerate(normalized.split("\n"), start=1):
        stripped = original.rstrip()
        trimmed = stripped.strip()
        is_blank = not trimmed
        is_comment = trimmed.startswith("#")
        if is_blank or is_comment:
            content = trimmed
        else:
            content = _strip_inline_comment(stripped).strip()
        lines.append(
            TokenizedLine(
                line_number=number,
                original=original,
                content=content,
                indent=_indent_width(original),
                is_blank=is_blank,
                is_comment=is_comment,
                is_directive=trimmed.startswith("%"),
                is_document_marker=trimmed.startswith(("---", "...")),
            )
        )
    return lines


def _strip_inline_comment(line: str) -> str:
    """Remove a ``#`` comment that is not inside quotes.

    As in YAML, ``#`` only starts a comment at the start of the line or after
    whitespace, so URL fragments such as ``docs#install`` are kept.
    """
    in_single = in_double = False
    for i, char in enumerate(line):
        escaped = i > 0 and line[i - 1] == "\\"
        if char == "'" and not in_double and not escaped:
            in_single = not in_single
        elif char == '"' and not in_single and not escaped:
            in_double = not in_double
        elif (
            char == "#"
            and not (in_single or in_double)
            and (i == 0 or line[i - 1].isspace())
        ):
            return line[:i]
    return line


def _indent_width(line: str) -> int:
    width = 0
    for char in line:
        if char == " ":
            width += 1
        elif char == "\t":
            width += _TAB_WIDTH
        else:
            break
    return width
