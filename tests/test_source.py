from __future__ import annotations

import pytest

from i18n_codemod.errors import SourceParseError, UnsupportedFileTypeError
from i18n_codemod.source import (
    SourceText,
    decode_string,
    dialect_for_path,
    escape_template_text,
    parse_source,
)


def test_decode_string_maps_cooked_to_raw() -> None:
    raw = r"a\n\"b\u0041"
    cooked, starts = decode_string(raw)
    assert cooked == 'a\n"bA'
    assert starts == [0, 1, 3, 5, 6, len(raw)]


def test_decode_string_joins_surrogate_pairs() -> None:
    cooked, starts = decode_string(r"\uD83D\uDE00!")
    assert cooked == "\U0001F600!"
    assert len(starts) == len(cooked) + 1


def test_source_text_offsets_are_characters() -> None:
    source = SourceText("é\nab")
    assert source.char_offset(2) == 1
    assert source.byte_offset(1) == 2
    assert source.position(3) == (2, 1)


def test_escape_template_text() -> None:
    assert escape_template_text("a `b` ${c}") == "a \\`b\\` \\${c}"
    assert escape_template_text(r"a\nb") == r"a\nb"
    assert escape_template_text(r"C:\dir", literal=True) == r"C:\\dir"


@pytest.mark.parametrize(
    ("path", "dialect"),
    [("a.js", "javascript"), ("a.JSX", "javascript"), ("a.ts", "typescript"), ("a.tsx", "tsx")],
)
def test_dialect_for_path(path: str, dialect: str) -> None:
    assert dialect_for_path(path) == dialect


def test_unknown_suffix_is_rejected() -> None:
    with pytest.raises(UnsupportedFileTypeError) as info:
        dialect_for_path("styles.css")
    assert info.value.code == "PARSING002"


def test_parse_error_carries_position() -> None:
    with pytest.raises(SourceParseError) as info:
        parse_source("const = ;\n", "javascript", "bad.js")
    assert info.value.code == "PARSING001"
    assert info.value.file_path == "bad.js"
    assert info.value.line == 1
