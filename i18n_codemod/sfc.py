"""Single-file component (``.vue``) support.

Blocks are located by their tags and only their inner content is ever
replaced, so block tags, attribute lists and the text between blocks come
back byte for byte. ``<script>`` blocks go through the regular pipeline;
the ``<template>`` block has a small regex front end of its own.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, replace

from .collector import CONTEXT_CHARS, build_comment, format_args, informal_placeholders
from .config import CodemodOptions
from .context import AccessorScope, ContextInfo, convention_for
from .errors import CodemodError, SfcError, TransformError, UnsupportedFileTypeError
from .keys import ExistingEntry, canonicalize, resolve_key
from .models import Change, Key, Location, MatchContext, ProcessResult
from .processor import RunState, fallback, transform_script
from .source import DIALECT_BY_LANG, SourceText, decode_string, escape_template_text

logger = logging.getLogger(__name__)

BLOCK_OPEN_RE = re.compile(r"<(template|script|style)(\s[^>]*)?>", re.IGNORECASE)
TEMPLATE_TAG_RE = re.compile(r"<(/?)template\b[^>]*?(/?)>", re.IGNORECASE)
LANG_RE = re.compile(r"""\blang\s*=\s*["']([^"']+)["']""")
SETUP_RE = re.compile(r"(?:^|\s)setup(?:\s|=|$)")
ATTR_RE = re.compile(
    r"""(?P<name>[^\s=/>"']+)\s*=\s*(?:"(?P<dq>[^"]*)"|'(?P<sq>[^']*)')"""
)
MUSTACHE_RE = re.compile(r"\{\{([\s\S]*?)\}\}")
JS_STRING_RE = re.compile(r"""'(?:\\.|[^'\\\n])*'|"(?:\\.|[^"\\\n])*\"""")
TEMPLATE_GLOBAL_CALL = "$t"


@dataclass(frozen=True)
class SfcBlock:
    name: str
    attrs: str
    start: int
    end: int
    content: str

    @property
    def lang(self) -> str | None:
        match = LANG_RE.search(self.attrs)
        return match.group(1).lower() if match else None

    @property
    def setup(self) -> bool:
        return self.name == "script" and bool(SETUP_RE.search(self.attrs))


def _template_close(code: str, start: int) -> tuple[int, int] | None:
    depth = 1
    for match in TEMPLATE_TAG_RE.finditer(code, start):
        closing, self_closing = match.group(1), match.group(2)
        if closing:
            depth -= 1
            if depth == 0:
                return match.start(), match.end()
        elif not self_closing:
            depth += 1
    return None


def split_sfc(code: str) -> list[SfcBlock]:
    blocks: list[SfcBlock] = []
    pos = 0
    while True:
        match = BLOCK_OPEN_RE.search(code, pos)
        if match is None:
            break
        name = match.group(1).lower()
        attrs = match.group(2) or ""
        if attrs.rstrip().endswith("/"):
            pos = match.end()
            continue
        inner_start = match.end()
        if name == "template":
            span = _template_close(code, inner_start)
        else:
            close = re.compile(rf"</{name}\s*>", re.IGNORECASE).search(code, inner_start)
            span = (close.start(), close.end()) if close else None
        if span is None:
            raise SfcError(f"Unclosed <{name}> block", details={"offset": match.start()})
        blocks.append(
            SfcBlock(
                name=name,
                attrs=attrs,
                start=inner_start,
                end=span[0],
                content=code[inner_start : span[0]],
            )
        )
        pos = span[1]
    return blocks


def assemble_sfc(code: str, blocks: list[SfcBlock], contents: Mapping[int, str]) -> str:
    out = code
    for index in sorted(contents, key=lambda i: blocks[i].start, reverse=True):
        block = blocks[index]
        out = out[: block.start] + contents[index] + out[block.end :]
    return out


def _covers(matches: list, resolved: list, length: int) -> bool:
    if len(matches) != 1 or len(resolved) != 1:
        return False
    return matches[0].start == 0 and matches[0].end == length


def attribute_literal(key: Key, attr_quote: str | None) -> str:
    """A JS literal for ``key`` that cannot close the surrounding attribute."""
    if isinstance(key, int):
        return str(key)
    literal = json.dumps(key, ensure_ascii=False)
    if attr_quote == '"':
        inner = literal[1:-1].replace('\\"', '"').replace("'", "\\'").replace('"', "\\u0022")
        return f"'{inner}'"
    if attr_quote == "'":
        return literal.replace("'", "\\u0027")
    return literal


class TemplateRewriter:
    """Rewrites delimited text in a template block.

    Handles text nodes, static attributes and string literals inside
    mustaches and bound attributes.
    """

    def __init__(
        self,
        whole: SourceText,
        block: SfcBlock,
        file_path: str,
        options: CodemodOptions,
        state: RunState,
        call_name: str,
    ) -> None:
        self.whole = whole
        self.block = block
        self.content = block.content
        self.file_path = file_path
        self.options = options
        self.state = state
        self.call_name = call_name
        self.pattern = options.delimiter()
        self.edits: list[tuple[int, int, str]] = []

    def rewrite(self) -> tuple[str, list[Change]]:
        for kind, start, end in self._parts():
            if kind == "tag":
                self._visit_tag(start, end)
            else:
                self._visit_text(start, end)
        if not self.edits:
            return self.content, []

        out = self.content
        changes: list[Change] = []
        for start, end, replacement in sorted(self.edits, reverse=True):
            out = out[:start] + replacement + out[end:]
            changes.append(self._change(start, end, replacement))
        changes.reverse()
        return out, changes

    def _parts(self) -> list[tuple[str, int, int]]:
        parts: list[tuple[str, int, int]] = []
        text = self.content
        pos = 0
        n = len(text)
        while pos < n:
            lt = text.find("<", pos)
            if lt == -1:
                parts.append(("text", pos, n))
                break
            if lt > pos:
                parts.append(("text", pos, lt))
            if text.startswith("<!--", lt):
                close = text.find("-->", lt + 4)
                pos = n if close == -1 else close + 3
                continue
            end = lt + 1
            quote = ""
            while end < n:
                char = text[end]
                if quote:
                    if char == quote:
                        quote = ""
                elif char in "\"'":
                    quote = char
                elif char == ">":
                    break
                end += 1
            parts.append(("tag", lt, min(end + 1, n)))
            pos = end + 1
        return parts

    def _location(self, local: int) -> Location:
        line, column = self.whole.position(self.block.start + local)
        return Location(file_path=self.file_path, line=line, column=column)

    def _resolve(self, full: str, local: int) -> Key | None:
        return resolve_key(
            full,
            self._location(local),
            self.state.existing,
            self.state.generated,
            self.state.extracted,
            self.state.used,
            self.options,
            self.pattern,
        )

    def _call(self, key: Key, payload: str, attr_quote: str | None, args=None) -> str:
        canonical = canonicalize(payload)
        if args:
            call = f"{self.call_name}({attribute_literal(key, attr_quote)}, {format_args(args)})"
        else:
            call = f"{self.call_name}({attribute_literal(key, attr_quote)})"
        return call + build_comment(self.options, canonical, block_only=True)

    def _visit_text(self, start: int, end: int) -> None:
        text = self.content[start:end]
        cursor = 0
        for mustache in MUSTACHE_RE.finditer(text):
            self._visit_plain_text(start + cursor, start + mustache.start())
            expr_start = start + mustache.start(1)
            self._visit_expression(expr_start, expr_start + len(mustache.group(1)), None)
            cursor = mustache.end()
        self._visit_plain_text(start + cursor, end)

    def _visit_plain_text(self, start: int, end: int) -> None:
        text = self.content[start:end]
        for match in self.pattern.find_all(text):
            key = self._resolve(match.full, start + match.start)
            if key is None:
                continue
            args = informal_placeholders(match.payload)
            call = self._call(key, match.payload, None, args)
            self.edits.append((start + match.start, start + match.end, "{{ " + call + " }}"))

    def _visit_tag(self, start: int, end: int) -> None:
        tag = self.content[start:end]
        name_end = re.match(r"</?[^\s>/]*", tag)
        offset = name_end.end() if name_end else 1
        for attr in ATTR_RE.finditer(tag, offset):
            name = attr.group("name")
            quote = '"' if attr.group("dq") is not None else "'"
            group = "dq" if quote == '"' else "sq"
            value_start = start + attr.start(group)
            value_end = start + attr.end(group)
            if name.startswith((":", "@", "#", "v-")):
                self._visit_expression(value_start, value_end, quote)
            else:
                self._visit_static_attribute(
                    start + attr.start(), start + attr.end(), name, value_start, value_end, quote
                )

    def _visit_static_attribute(
        self,
        attr_start: int,
        attr_end: int,
        name: str,
        value_start: int,
        value_end: int,
        quote: str,
    ) -> None:
        value = self.content[value_start:value_end]
        matches = self.pattern.find_all(value)
        if not matches:
            return
        resolved = []
        for match in matches:
            key = self._resolve(match.full, value_start + match.start)
            if key is not None:
                resolved.append((match, key))
        if not resolved:
            return
        if _covers(matches, resolved, len(value)):
            expression = self._call(resolved[0][1], matches[0].payload, quote)
        else:
            pieces = ["`"]
            cursor = 0
            for match, key in resolved:
                pieces.append(escape_template_text(value[cursor : match.start], literal=True))
                pieces.append("${" + self._call(key, match.payload, quote) + "}")
                cursor = match.end
            pieces.append(escape_template_text(value[cursor:], literal=True))
            pieces.append("`")
            expression = "".join(pieces)
        self.edits.append((attr_start, attr_end, f":{name}={quote}{expression}{quote}"))

    def _visit_expression(self, start: int, end: int, attr_quote: str | None) -> None:
        expression = self.content[start:end]
        for literal in JS_STRING_RE.finditer(expression):
            before = expression[: literal.start()].rstrip()
            if before.endswith(f"{self.call_name}(") or before.endswith("$t("):
                continue
            raw = literal.group(0)[1:-1]
            cooked, starts = decode_string(raw)
            matches = self.pattern.find_all(cooked)
            if not matches:
                continue
            lit_start = start + literal.start()
            resolved = []
            for match in matches:
                key = self._resolve(match.full, lit_start)
                if key is not None:
                    resolved.append((match, key))
            if not resolved:
                continue
            if _covers(matches, resolved, len(cooked)):
                replacement = self._call(resolved[0][1], matches[0].payload, attr_quote)
            else:
                pieces = ["`"]
                cursor = 0
                for match, key in resolved:
                    pieces.append(escape_template_text(raw[starts[cursor] : starts[match.start]]))
                    pieces.append("${" + self._call(key, match.payload, attr_quote) + "}")
                    cursor = match.end
                pieces.append(escape_template_text(raw[starts[cursor] : starts[len(cooked)]]))
                pieces.append("`")
                replacement = "".join(pieces)
            self.edits.append((lit_start, start + literal.end(), replacement))

    def _change(self, start: int, end: int, replacement: str) -> Change:
        offset = self.block.start
        return make_change(self.whole, self.file_path, offset + start, offset + end, replacement)


def make_change(
    whole: SourceText, file_path: str, start: int, end: int, replacement: str
) -> Change:
    text = whole.text
    line, column = whole.position(start)
    end_line, end_column = whole.position(end)
    before = text[max(0, start - CONTEXT_CHARS) : start]
    after = text[end : end + CONTEXT_CHARS]
    original = text[start:end]
    return Change(
        file_path=file_path,
        original=original,
        replacement=replacement,
        line=line,
        column=column,
        end_line=end_line,
        end_column=end_column,
        start=start,
        end=end,
        match_context=MatchContext(
            before=before, after=after, full_match=before + original + after
        ),
    )


def _rebase(whole: SourceText, change: Change, offset: int) -> Change:
    start = (change.start or 0) + offset
    end = (change.end or 0) + offset
    return make_change(whole, change.file_path, start, end, change.replacement)


def process_sfc(
    code: str,
    file_path: str,
    options: CodemodOptions,
    existing: Mapping[str, ExistingEntry],
) -> ProcessResult:
    """Process a ``.vue`` file with already-normalized options."""
    state = RunState(existing=existing)
    whole = SourceText(code)
    try:
        blocks = split_sfc(code)
        contents: dict[int, str] = {}
        changes: list[Change] = []

        setup_index = next((i for i, b in enumerate(blocks) if b.setup), None)
        use_setup = setup_index is not None and not options.accessor.no_import
        template_convention = convention_for(
            ContextInfo(scope=AccessorScope.COMPONENT), options
        )
        call_name = template_convention.call_name if use_setup else TEMPLATE_GLOBAL_CALL

        template_used = False
        for index, block in enumerate(blocks):
            if block.name != "template" or block.lang not in (None, "html"):
                continue
            rewritten, template_changes = TemplateRewriter(
                whole, block, file_path, options, state, call_name
            ).rewrite()
            if template_changes:
                contents[index] = rewritten
                changes.extend(template_changes)
                template_used = True
            break

        for index, block in enumerate(blocks):
            if block.name != "script":
                continue
            dialect = DIALECT_BY_LANG.get(block.lang or "js")
            if dialect is None:
                raise UnsupportedFileTypeError(
                    f"Unsupported script lang: {block.lang}", file_path=file_path
                )
            script_options = options
            script_function = options.accessor.script_function
            if not block.setup and script_function:
                accessor = replace(
                    options.accessor, no_import=True, global_function=script_function
                )
                script_options = replace(options, i18n_import=accessor)
            extra_imports = []
            extra_accessors = []
            if index == setup_index and template_used and use_setup:
                extra_imports = list(template_convention.imports)
                if template_convention.acquisition is not None:
                    extra_accessors = [template_convention.acquisition]
            output, script_changes = transform_script(
                block.content,
                file_path,
                dialect,
                script_options,
                state,
                module_scope=AccessorScope.COMPONENT if block.setup else AccessorScope.PLAIN,
                extra_imports=extra_imports,
                extra_accessors=extra_accessors,
            )
            if output != block.content:
                contents[index] = output
            changes.extend(_rebase(whole, change, block.start) for change in script_changes)
    except CodemodError as exc:
        return fallback(code, file_path, exc, [])
    except Exception as exc:  # noqa: BLE001
        error = TransformError(f"Unexpected failure: {exc}", file_path=file_path)
        error.__cause__ = exc
        return fallback(code, file_path, error, [])

    if not contents:
        return ProcessResult(code=code)
    return ProcessResult(
        code=assemble_sfc(code, blocks, contents),
        extracted_strings=state.extracted,
        used_existing_keys=state.used,
        changes=sorted(changes, key=lambda c: c.start or 0),
    )
