from __future__ import annotations

from collections.abc import Callable

import pytest
from tree_sitter import Node

from i18n_codemod.models import Change
from i18n_codemod.source import SourceText, parse_source, walk


@pytest.fixture()
def parse() -> Callable[[str, str], tuple[SourceText, Node]]:
    def _parse(code: str, dialect: str = "javascript") -> tuple[SourceText, Node]:
        source, tree = parse_source(code, dialect)
        return source, tree.root_node

    return _parse


@pytest.fixture()
def find_node() -> Callable[[SourceText, Node, str, str], Node]:
    def _find(source: SourceText, root: Node, node_type: str, text: str) -> Node:
        for node in walk(root):
            if node.type == node_type and text in source.slice(node):
                return node
        raise AssertionError(f"no {node_type} containing {text!r}")

    return _find


@pytest.fixture()
def change_at() -> Callable[[str, str, str], Change]:
    def _change(text: str, original: str, replacement: str) -> Change:
        start = text.index(original)
        end = start + len(original)
        source = SourceText(text)
        line, column = source.position(start)
        end_line, end_column = source.position(end)
        return Change(
            file_path="test.js",
            original=original,
            replacement=replacement,
            line=line,
            column=column,
            end_line=end_line,
            end_column=end_column,
            start=start,
            end=end,
        )

    return _change
