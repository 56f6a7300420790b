"""Key resolution for extracted text.

A payload is canonicalized first: embedded ``${...}`` expressions become
``{arg1}``, ``{arg2}``, ... so that the key does not depend on the code that
computes the value. Literal braces the author wrote are left alone.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import Union

from .config import CodemodOptions
from .models import (
    ConflictContext,
    ExtractedString,
    Key,
    KeyGroup,
    Location,
    UsedExistingKey,
)
from .pattern import DelimiterPattern

logger = logging.getLogger(__name__)

# An odd run of backslashes before `${` makes it literal text.
EMBEDDED_EXPR_RE = re.compile(r"(?<!\\)((?:\\\\)*)\$\{[^}]+\}")

ExistingEntry = Union[Key, KeyGroup]
ExistingMap = Mapping[str, ExistingEntry]


def canonicalize(payload: str) -> str:
    counter = 0

    def _arg(match: re.Match[str]) -> str:
        nonlocal counter
        counter += 1
        return f"{match.group(1)}{{arg{counter}}}"

    return EMBEDDED_EXPR_RE.sub(_arg, payload)


def _as_group(entry: ExistingEntry) -> KeyGroup:
    if isinstance(entry, KeyGroup):
        return entry
    return KeyGroup(primary_key=entry, keys=(entry,))


def _record_extracted(
    extracted_out: list[ExtractedString],
    key: Key,
    value: str,
    location: Location,
) -> None:
    for item in extracted_out:
        if item.key == key and item.value == value:
            return
    extracted_out.append(
        ExtractedString(
            key=key,
            value=value,
            file_path=location.file_path,
            line=location.line,
            column=location.column,
        )
    )


def _record_used(
    used_out: list[UsedExistingKey],
    key: Key,
    value: str,
    location: Location,
) -> None:
    for item in used_out:
        if item.key == key and item.value == value and item.file_path == location.file_path:
            return
    used_out.append(
        UsedExistingKey(
            file_path=location.file_path,
            line=location.line,
            column=location.column,
            key=key,
            value=value,
        )
    )


def _is_key(value: object) -> bool:
    return isinstance(value, (str, int)) and not isinstance(value, bool)


def resolve_key(
    full_match: str,
    location: Location,
    existing: ExistingMap,
    generated: dict[str, Key],
    extracted_out: list[ExtractedString],
    used_out: list[UsedExistingKey],
    options: CodemodOptions,
    pattern: DelimiterPattern | None = None,
) -> Key | None:
    pattern = pattern or options.delimiter()
    match = pattern.match_one(full_match)
    if match is None:
        logger.debug(
            "%s:%d:%d: no delimited payload in %r",
            location.file_path,
            location.line,
            location.column,
            full_match,
        )
        return None

    value = canonicalize(match.payload)

    entry = existing.get(value)
    if entry is not None:
        group = _as_group(entry)
        resolver = options.key_conflict_resolver
        if resolver is None or resolver is False:
            _record_used(used_out, group.primary_key, value, location)
            return group.primary_key
        if resolver is True:
            key = _generate(value, location, options)
            _record_extracted(extracted_out, key, value, location)
            return key

        context = ConflictContext(
            file_path=location.file_path,
            line=location.line,
            column=location.column,
            same_value_keys=group.keys,
        )
        decided = resolver(group.primary_key, value, context)
        if decided is None:
            _record_used(used_out, group.primary_key, value, location)
            return group.primary_key
        if not _is_key(decided):
            logger.warning(
                "%s:%d: key conflict resolver returned %r; keeping %r",
                location.file_path,
                location.line,
                decided,
                group.primary_key,
            )
            _record_used(used_out, group.primary_key, value, location)
            return group.primary_key
        if decided in group.keys:
            _record_used(used_out, decided, value, location)
            return decided
        _record_extracted(extracted_out, decided, value, location)
        return decided

    if value in generated:
        key = generated[value]
        _record_extracted(extracted_out, key, value, location)
        return key

    key = _generate(value, location, options)
    generated[value] = key
    _record_extracted(extracted_out, key, value, location)
    return key


def _generate(value: str, location: Location, options: CodemodOptions) -> Key:
    if options.generate_key is None:
        return value
    return options.generate_key(value, location.file_path)


def flatten_translations(node: object, prefix: str = "") -> dict[str, str]:
    flat: dict[str, str] = {}
    if isinstance(node, dict):
        for k, v in node.items():
            if not isinstance(k, str) or not k:
                continue
            next_prefix = f"{prefix}.{k}" if prefix else k
            flat.update(flatten_translations(v, next_prefix))
    elif isinstance(node, str):
        if prefix:
            flat[prefix] = node
    return flat


def build_value_index(translations: Mapping[str, str]) -> dict[str, ExistingEntry]:
    """Invert a ``key -> value`` table into the canonical-value -> key map.

    The first key seen for a value is the primary one; later keys sharing the
    value are kept as alternates.
    """
    grouped: dict[str, list[Key]] = {}
    for key, value in translations.items():
        grouped.setdefault(value, []).append(key)
    index: dict[str, ExistingEntry] = {}
    for value, keys in grouped.items():
        if len(keys) == 1:
            index[value] = keys[0]
        else:
            index[value] = KeyGroup(primary_key=keys[0], keys=tuple(keys))
    return index

