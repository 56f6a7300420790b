"""Offset splicing of collected Changes into the original text.

Edits are applied back to front so that the offsets of the edits still to
come stay valid. A replacement that ends in a ``//`` comment gets the
comment moved past any closing brackets that follow the replaced span;
otherwise those brackets would land inside the comment.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .errors import ReplacementPositionError
from .models import Change

logger = logging.getLogger(__name__)

CLOSERS = set(")]};")


@dataclass(frozen=True)
class Insertion:
    position: int
    text: str
    order: int = 0


@dataclass(frozen=True)
class _Edit:
    start: int
    end: int
    text: str


def detect_newline(text: str) -> str:
    if "\r\n" in text:
        return "\r\n"
    return "\n"


def line_offsets(text: str) -> list[int]:
    # Lines end at "\n" only, matching SourceText.position.
    offsets = [0]
    offsets.extend(index + 1 for index, char in enumerate(text) if char == "\n")
    if offsets[-1] != len(text):
        offsets.append(len(text))
    return offsets


def abs_pos(offsets: list[int], lineno: int, col: int) -> int:
    return offsets[min(lineno, len(offsets)) - 1] + col


def split_line_comment(replacement: str) -> tuple[str, str] | None:
    """Split ``code // comment`` into its code and comment parts.

    Slashes inside string, template and block-comment text are not comment
    starts. Returns None when the fragment does not end in a line comment.
    """
    i = 0
    n = len(replacement)
    quote = ""
    while i < n:
        char = replacement[i]
        if quote:
            if char == "\\":
                i += 2
                continue
            if char == quote:
                quote = ""
            i += 1
            continue
        if char in "'\"`":
            quote = char
        elif replacement.startswith("/*", i):
            close = replacement.find("*/", i + 2)
            if close == -1:
                return None
            i = close + 2
            continue
        elif replacement.startswith("//", i):
            comment = replacement[i:].rstrip()
            if "\n" in comment or "\r" in comment:
                return None
            return replacement[:i].rstrip(" \t"), comment
        i += 1
    return None


def find_line_comment_placement(text: str, index: int) -> tuple[int, bool] | None:
    """Where a line comment ending at ``index`` can go without eating code.

    Returns ``(position, needs_newline)``, or None when the next significant
    character is ordinary code and no safe spot exists.
    """
    i = index
    n = len(text)
    while i < n:
        char = text[i]
        if char in " \t" or char in CLOSERS:
            i += 1
            continue
        if char in "\r\n":
            return i, False
        if char == ",":
            j = i + 1
            while j < n and text[j] in " \t":
                j += 1
            return i + 1, j < n and text[j] not in "\r\n"
        return None
    return n, False


def _plan(text: str, start: int, end: int, replacement: str) -> list[_Edit]:
    split = split_line_comment(replacement)
    if split is None:
        return [_Edit(start, end, replacement)]
    code, comment = split
    placement = find_line_comment_placement(text, end)
    if placement is None:
        body = comment[2:].strip().replace("*/", "* /")
        return [_Edit(start, end, f"{code} /* {body} */")]
    position, needs_newline = placement
    if position == end:
        return [_Edit(start, end, f"{code} {comment}")]
    suffix = detect_newline(text) if needs_newline else ""
    # Later edit first so the earlier one's offsets stay put.
    return [
        _Edit(position, position, f" {comment}{suffix}"),
        _Edit(start, end, code),
    ]


def _locate(text: str, change: Change) -> tuple[int, int]:
    context = change.match_context
    if context is None:
        raise ReplacementPositionError(
            "Change has neither offsets nor match context",
            file_path=change.file_path,
            line=change.line,
            column=change.column,
        )
    # First occurrence wins when the context snippet is not unique.
    at = text.find(context.full_match)
    if at == -1:
        raise ReplacementPositionError(
            "Match context not found in text",
            file_path=change.file_path,
            line=change.line,
            column=change.column,
            details={"full_match": context.full_match},
        )
    inner = context.full_match.find(change.original, len(context.before))
    if inner == -1:
        inner = context.full_match.find(change.original)
    if inner == -1:
        raise ReplacementPositionError(
            "Original text not found in match context",
            file_path=change.file_path,
            line=change.line,
            column=change.column,
        )
    start = at + inner
    return start, start + len(change.original)


def _validate(text: str, changes: list[Change]) -> None:
    anchored = sorted(
        (c for c in changes if c.start is not None and c.end is not None),
        key=lambda c: (c.start, c.end),
    )
    previous: Change | None = None
    for change in anchored:
        if change.start < 0 or change.end > len(text) or change.start > change.end:
            raise ReplacementPositionError(
                f"Offsets [{change.start}, {change.end}) out of range",
                file_path=change.file_path,
                line=change.line,
                column=change.column,
            )
        if text[change.start : change.end] != change.original:
            raise ReplacementPositionError(
                "Offsets do not reference the original text",
                file_path=change.file_path,
                line=change.line,
                column=change.column,
                details={"expected": change.original},
            )
        if previous is not None and previous.end > change.start:
            raise ReplacementPositionError(
                "Overlapping changes",
                file_path=change.file_path,
                line=change.line,
                column=change.column,
                details={"previous": [previous.start, previous.end]},
            )
        previous = change


def apply_changes_mapped(
    text: str,
    changes: list[Change],
    anchors: list[int] | None = None,
) -> tuple[str, list[int]]:
    """Apply changes and report where each anchor offset ended up."""
    mapped = list(anchors or [])
    if not changes:
        return text, mapped
    _validate(text, changes)

    offsets = line_offsets(text)

    def order(change: Change) -> tuple[int, int, int]:
        if change.start is not None:
            return change.start, change.line, change.column
        return abs_pos(offsets, change.line, change.column), change.line, change.column

    out = text
    for change in sorted(changes, key=order, reverse=True):
        if change.start is not None and change.end is not None:
            start, end = change.start, change.end
        else:
            start, end = _locate(out, change)
        for edit in _plan(out, start, end, change.replacement):
            out = out[: edit.start] + edit.text + out[edit.end :]
            delta = len(edit.text) - (edit.end - edit.start)
            for index, anchor in enumerate(mapped):
                if anchor >= edit.end:
                    mapped[index] = anchor + delta
    return out, mapped


def apply_changes(text: str, changes: list[Change]) -> str:
    return apply_changes_mapped(text, changes)[0]


def apply_insertions(text: str, insertions: list[Insertion]) -> str:
    """Splice pure insertions back to front.

    At one position, lower ``order`` ends up first in the output.
    """
    out = text
    for item in sorted(insertions, key=lambda i: (i.position, i.order), reverse=True):
        if not 0 <= item.position <= len(out):
            raise ReplacementPositionError(f"Insertion offset {item.position} out of range")
        out = out[: item.position] + item.text + out[item.position :]
    return out
