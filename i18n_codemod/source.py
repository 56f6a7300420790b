"""Parsing and offset bookkeeping on top of tree-sitter.

tree-sitter reports UTF-8 byte offsets; everything the codemod records is in
character offsets into the original ``str``. ``SourceText`` converts between
the two and computes 1-based lines and 0-based columns.
"""

from __future__ import annotations

import bisect
from collections.abc import Iterator
from functools import lru_cache
from pathlib import PurePath

import tree_sitter_javascript as ts_javascript
import tree_sitter_typescript as ts_typescript
from tree_sitter import Language, Node, Parser, Tree

from .errors import SourceParseError, UnsupportedFileTypeError

DIALECT_BY_SUFFIX = {
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "tsx",
}
DIALECT_BY_LANG = {
    "js": "javascript",
    "jsx": "javascript",
    "ts": "typescript",
    "tsx": "tsx",
}

FUNCTION_TYPES = {
    "function_declaration",
    "function_expression",
    "function",
    "generator_function_declaration",
    "generator_function",
    "arrow_function",
    "method_definition",
}
MARKUP_TYPES = {"jsx_element", "jsx_self_closing_element", "jsx_fragment"}

SIMPLE_ESCAPES = {
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "'": "'",
    '"': '"',
    "\\": "\\",
    "`": "`",
    "$": "$",
}
LINE_TERMINATORS = {"\n", "\u2028", "\u2029"}


@lru_cache(maxsize=None)
def get_language(dialect: str) -> Language:
    if dialect == "javascript":
        return Language(ts_javascript.language())
    if dialect == "typescript":
        return Language(ts_typescript.language_typescript())
    if dialect == "tsx":
        return Language(ts_typescript.language_tsx())
    raise UnsupportedFileTypeError(f"Unknown dialect: {dialect}")


def dialect_for_path(file_path: str) -> str:
    suffix = PurePath(file_path).suffix.lower()
    dialect = DIALECT_BY_SUFFIX.get(suffix)
    if dialect is None:
        raise UnsupportedFileTypeError(
            f"Unsupported file type: {suffix or '(none)'}", file_path=file_path
        )
    return dialect


class SourceText:
    def __init__(self, text: str) -> None:
        self.text = text
        self.data = text.encode("utf-8")
        self._char_at_byte: list[int] | None = None
        if len(self.data) != len(text):
            mapping: list[int] = []
            for index, char in enumerate(text):
                mapping.extend([index] * len(char.encode("utf-8")))
            mapping.append(len(text))
            self._char_at_byte = mapping
        self._line_starts = [0]
        for index, char in enumerate(text):
            if char == "\n":
                self._line_starts.append(index + 1)

    def char_offset(self, byte_offset: int) -> int:
        if self._char_at_byte is None:
            return byte_offset
        return self._char_at_byte[byte_offset]

    def byte_offset(self, char_offset: int) -> int:
        if self._char_at_byte is None:
            return char_offset
        return len(self.text[:char_offset].encode("utf-8"))

    def span(self, node: Node) -> tuple[int, int]:
        return self.char_offset(node.start_byte), self.char_offset(node.end_byte)

    def slice(self, node: Node) -> str:
        start, end = self.span(node)
        return self.text[start:end]

    def position(self, offset: int) -> tuple[int, int]:
        """Return (1-based line, 0-based column) of a character offset."""
        index = bisect.bisect_right(self._line_starts, offset) - 1
        return index + 1, offset - self._line_starts[index]

    def line_indent(self, offset: int) -> str:
        line_start = self.text.rfind("\n", 0, offset) + 1
        end = line_start
        while end < len(self.text) and self.text[end] in " \t":
            end += 1
        return self.text[line_start:end]


def parse_source(text: str, dialect: str, file_path: str = "<memory>") -> tuple[SourceText, Tree]:
    source = SourceText(text)
    parser = Parser(get_language(dialect))
    tree = parser.parse(source.data)
    if tree.root_node.has_error:
        bad = first_error_node(tree.root_node)
        line = column = None
        if bad is not None:
            line, column = source.position(source.char_offset(bad.start_byte))
        raise SourceParseError(
            "Source could not be parsed",
            file_path=file_path,
            line=line,
            column=column,
            details={"dialect": dialect},
        )
    return source, tree


def first_error_node(root: Node) -> Node | None:
    for node in walk(root):
        if node.type == "ERROR" or node.is_missing:
            return node
    return None


def walk(root: Node) -> Iterator[Node]:
    """Pre-order traversal."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def node_key(node: Node) -> tuple[int, int, str]:
    return node.start_byte, node.end_byte, node.type


def same_node(a: Node | None, b: Node | None) -> bool:
    if a is None or b is None:
        return False
    return node_key(a) == node_key(b)


def named_children(node: Node) -> list[Node]:
    return [child for child in node.named_children if child.type != "comment"]


def unwrap_parens(node: Node | None) -> Node | None:
    while node is not None and node.type == "parenthesized_expression":
        inner = named_children(node)
        node = inner[0] if inner else None
    return node


def decode_string(raw: str) -> tuple[str, list[int]]:
    """Cook the inside of a quoted JS string literal.

    Returns the cooked value and, for each cooked character, the raw offset
    where its spelling starts, plus a final entry equal to ``len(raw)``.
    """
    cooked: list[str] = []
    starts: list[int] = []
    i = 0
    n = len(raw)
    while i < n:
        char = raw[i]
        if char != "\\" or i + 1 >= n:
            cooked.append(char)
            starts.append(i)
            i += 1
            continue
        nxt = raw[i + 1]
        if nxt in SIMPLE_ESCAPES:
            cooked.append(SIMPLE_ESCAPES[nxt])
            starts.append(i)
            i += 2
        elif nxt == "\r":
            i += 3 if raw[i + 2 : i + 3] == "\n" else 2
        elif nxt in LINE_TERMINATORS:
            i += 2
        elif nxt == "x" and _is_hex(raw[i + 2 : i + 4], 2):
            cooked.append(chr(int(raw[i + 2 : i + 4], 16)))
            starts.append(i)
            i += 4
        elif nxt == "u" and raw[i + 2 : i + 3] == "{":
            close = raw.find("}", i + 3)
            digits = raw[i + 3 : close] if close != -1 else ""
            if digits and _is_hex(digits, len(digits)):
                _append_code_point(cooked, starts, int(digits, 16), i)
                i = close + 1
            else:
                cooked.append(nxt)
                starts.append(i)
                i += 2
        elif nxt == "u" and _is_hex(raw[i + 2 : i + 6], 4):
            _append_code_point(cooked, starts, int(raw[i + 2 : i + 6], 16), i)
            i += 6
        elif nxt == "0" and not raw[i + 2 : i + 3].isdigit():
            cooked.append("\0")
            starts.append(i)
            i += 2
        else:
            cooked.append(nxt)
            starts.append(i)
            i += 2
    starts.append(n)
    return "".join(cooked), starts


def _is_hex(text: str, width: int) -> bool:
    return len(text) == width and all(c in "0123456789abcdefABCDEF" for c in text)


def _append_code_point(cooked: list[str], starts: list[int], code: int, at: int) -> None:
    # Join a surrogate pair written as two \u escapes into one character.
    if 0xDC00 <= code <= 0xDFFF and cooked and 0xD800 <= ord(cooked[-1]) <= 0xDBFF:
        high = ord(cooked.pop())
        cooked.append(chr(0x10000 + ((high - 0xD800) << 10) + (code - 0xDC00)))
        return
    cooked.append(chr(code))
    starts.append(at)


def escape_template_text(raw: str, *, literal: bool = False) -> str:
    """Make raw literal text safe inside a template literal.

    With ``literal`` set, backslashes are content (JSX attribute text) and are
    escaped too; otherwise existing escape sequences are kept as written.
    """
    out: list[str] = []
    i = 0
    n = len(raw)
    while i < n:
        char = raw[i]
        if char == "\\":
            if literal:
                out.append("\\\\")
                i += 1
            else:
                out.append(raw[i : i + 2])
                i += 2
            continue
        if char == "`":
            out.append("\\`")
        elif char == "$" and raw[i + 1 : i + 2] == "{":
            out.append("\\$")
        else:
            out.append(char)
        i += 1
    return "".join(out)
