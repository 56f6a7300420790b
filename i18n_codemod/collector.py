"""Find extractable literals and build their replacement fragments.

The walk visits four kinds of site: quoted strings, JSX attribute strings,
JSX text and template literals. Each site that yields at least one key
becomes a pending edit anchored to the node's span in the original text.
Pending edits nested inside a template substitution are rendered into the
enclosing template's replacement, so the recorded Changes never overlap.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field

from tree_sitter import Node

from .config import CodemodOptions
from .context import (
    AccessorConvention,
    AccessorScope,
    ContextDetector,
    accessor_call_names,
    convention_for,
)
from .keys import ExistingMap, canonicalize, resolve_key
from .models import (
    AccessorRequirement,
    Change,
    ExtractedString,
    ImportRequirement,
    Key,
    Location,
    MatchContext,
    UsedExistingKey,
)
from .pattern import PatternMatch
from .source import (
    SourceText,
    decode_string,
    escape_template_text,
    named_children,
    same_node,
    walk,
)

logger = logging.getLogger(__name__)

CONTEXT_CHARS = 20
SKIP_PARENT_TYPES = {
    "import_statement",
    "export_statement",
    "import_require_clause",
    "module",
    "literal_type",
    "enum_assignment",
}
MODULE_LOADERS = {"require", "import"}
BLOCK_COMMENT_ANCESTORS = {
    "jsx_expression",
    "jsx_attribute",
    "template_substitution",
}
EMBEDDED_EXPR_RE = re.compile(r"\$\{([^}]+)\}")
INFORMAL_PLACEHOLDER_RE = re.compile(r"(?<!\$)\{([A-Za-z_$][\w$]*)\}")

Renderer = Callable[[int, int], str]


@dataclass
class _Pending:
    start: int
    end: int
    build: Callable[[Renderer], str]


@dataclass
class CollectResult:
    changes: list[Change] = field(default_factory=list)
    imports: list[ImportRequirement] = field(default_factory=list)
    accessors: list[AccessorRequirement] = field(default_factory=list)


def key_literal(key: Key) -> str:
    if isinstance(key, int):
        return str(key)
    return json.dumps(key, ensure_ascii=False)


def format_args(args: list[tuple[str, str]]) -> str:
    parts = [name if name == expr else f"{name}: {expr}" for name, expr in args]
    return "{ " + ", ".join(parts) + " }"


def build_call(
    options: CodemodOptions,
    call_name: str,
    key: Key,
    canonical: str,
    args: list[tuple[str, str]] | None = None,
) -> str:
    if options.call_factory is not None:
        return options.call_factory(call_name, key, canonical)
    if args:
        return f"{call_name}({key_literal(key)}, {format_args(args)})"
    return f"{call_name}({key_literal(key)})"


def build_comment(options: CodemodOptions, canonical: str, *, block_only: bool) -> str:
    if not options.append_extracted_comment:
        return ""
    if block_only or options.extracted_comment_type == "block":
        return f" /* {canonical.replace('*/', '* /')} */"
    text = canonical.replace("\r", "\\r").replace("\n", "\\n")
    return f" // {text}"


def informal_placeholders(payload: str) -> list[tuple[str, str]]:
    """Bindings for placeholders written inside plain text.

    ``${expr}`` becomes a positional ``argN`` argument and ``{name}`` binds to
    the identifier of the same name.
    """
    found: list[tuple[int, str, str]] = []
    for index, match in enumerate(EMBEDDED_EXPR_RE.finditer(payload), start=1):
        found.append((match.start(), f"arg{index}", match.group(1).strip()))
    for match in INFORMAL_PLACEHOLDER_RE.finditer(payload):
        found.append((match.start(), match.group(1), match.group(1)))
    found.sort()
    args: list[tuple[str, str]] = []
    for _, name, expr in found:
        if all(name != seen for seen, _ in args):
            args.append((name, expr))
    return args


class ReplacementCollector:
    def __init__(
        self,
        source: SourceText,
        file_path: str,
        options: CodemodOptions,
        existing: ExistingMap,
        generated: dict[str, Key],
        extracted_out: list[ExtractedString],
        used_out: list[UsedExistingKey],
        *,
        module_scope: AccessorScope = AccessorScope.PLAIN,
    ) -> None:
        self.source = source
        self.text = source.text
        self.file_path = file_path
        self.options = options
        self.existing = existing
        self.generated = generated
        self.extracted_out = extracted_out
        self.used_out = used_out
        self.pattern = options.delimiter()
        self.detector = ContextDetector(source, options, module_scope=module_scope)
        self.call_names = accessor_call_names(options)
        self._pending: list[_Pending] = []
        self._imports: dict[ImportRequirement, None] = {}
        self._accessors: dict[int | None, AccessorRequirement] = {}

    def collect(self, root: Node) -> CollectResult:
        for node in walk(root):
            if node.type == "string":
                if self._skip(node):
                    continue
                parent = node.parent
                if parent is not None and parent.type == "jsx_attribute":
                    self._visit_attribute(node)
                else:
                    self._visit_string(node)
            elif node.type == "template_string":
                if self._skip(node):
                    continue
                self._visit_template(node)
            elif node.type == "jsx_text":
                self._visit_jsx_text(node)

        changes = [self._to_change(p) for p in self._top_level(self._pending)]
        return CollectResult(
            changes=changes,
            imports=list(self._imports),
            accessors=list(self._accessors.values()),
        )

    # -- filtering -------------------------------------------------------

    def _skip(self, node: Node) -> bool:
        parent = node.parent
        if parent is None:
            return False
        if parent.type in SKIP_PARENT_TYPES:
            return True
        if parent.type == "pair" and same_node(parent.child_by_field_name("key"), node):
            return True
        if parent.type == "call_expression":
            # Tagged template: the template is the call's argument list.
            if same_node(parent.child_by_field_name("arguments"), node):
                logger.debug("%s: skipping tagged template", self.file_path)
                return True
            return False
        if parent.type == "arguments" and parent.parent is not None:
            callee = parent.parent.child_by_field_name("function")
            if callee is not None:
                name = self.source.slice(callee)
                if name in self.call_names or name in MODULE_LOADERS:
                    return True
        return False

    def _line_comment_ok(self, node: Node) -> bool:
        current = node.parent
        while current is not None:
            if current.type in BLOCK_COMMENT_ANCESTORS:
                return False
            current = current.parent
        return True

    # -- site visitors ---------------------------------------------------

    def _visit_string(self, node: Node) -> None:
        start, end = self.source.span(node)
        raw = self.text[start + 1 : end - 1]
        cooked, starts = decode_string(raw)
        matches = self.pattern.find_all(cooked)
        if not matches:
            return

        location = self._location(start)
        resolved = self._resolve_all(matches, location)
        if not resolved:
            return
        convention = self._convention(node)
        bare = self._line_comment_ok(node)

        if self._is_full(matches, resolved, len(cooked)):
            canonical = canonicalize(matches[0].payload)
            key = resolved[0][1]
            replacement = build_call(self.options, convention.call_name, key, canonical)
            replacement += build_comment(self.options, canonical, block_only=not bare)
            self._add(start, end, lambda render: replacement)
            return

        pieces = ["`"]
        cursor = 0
        for match, key in resolved:
            pieces.append(escape_template_text(raw[starts[cursor] : starts[match.start]]))
            pieces.append(self._embedded_call(convention, key, match.payload))
            cursor = match.end
        pieces.append(escape_template_text(raw[starts[cursor] : starts[len(cooked)]]))
        pieces.append("`")
        replacement = "".join(pieces)
        self._add(start, end, lambda render: replacement)

    def _visit_attribute(self, node: Node) -> None:
        start, end = self.source.span(node)
        raw = self.text[start + 1 : end - 1]
        matches = self.pattern.find_all(raw)
        if not matches:
            return

        location = self._location(start)
        resolved = self._resolve_all(matches, location)
        if not resolved:
            return
        convention = self._convention(node)

        if self._is_full(matches, resolved, len(raw)):
            canonical = canonicalize(matches[0].payload)
            call = build_call(self.options, convention.call_name, resolved[0][1], canonical)
            call += build_comment(self.options, canonical, block_only=True)
            replacement = "{" + call + "}"
        else:
            pieces = ["{`"]
            cursor = 0
            for match, key in resolved:
                pieces.append(escape_template_text(raw[cursor : match.start], literal=True))
                pieces.append(self._embedded_call(convention, key, match.payload))
                cursor = match.end
            pieces.append(escape_template_text(raw[cursor:], literal=True))
            pieces.append("`}")
            replacement = "".join(pieces)
        self._add(start, end, lambda render: replacement)

    def _visit_jsx_text(self, node: Node) -> None:
        start, end = self.source.span(node)
        raw = self.text[start:end]
        matches = self.pattern.find_all(raw)
        if not matches:
            return

        location = self._location(start)
        resolved = self._resolve_all(matches, location)
        if not resolved:
            return
        convention = self._convention(node)

        pieces: list[str] = []
        cursor = 0
        for match, key in resolved:
            canonical = canonicalize(match.payload)
            args = informal_placeholders(match.payload)
            call = build_call(self.options, convention.call_name, key, canonical, args)
            call += build_comment(self.options, canonical, block_only=True)
            pieces.append(raw[cursor : match.start])
            pieces.append("{" + call + "}")
            cursor = match.end
        pieces.append(raw[cursor:])
        replacement = "".join(pieces)
        self._add(start, end, lambda render: replacement)

    def _visit_template(self, node: Node) -> None:
        start, end = self.source.span(node)
        combined_parts: list[str] = []
        # (combined start, combined end, expression start, expression end)
        markers: list[tuple[int, int, int, int]] = []
        size = 0
        cursor = start + 1
        for sub in node.named_children:
            if sub.type != "template_substitution":
                continue
            sub_start, sub_end = self.source.span(sub)
            inner = named_children(sub)
            if not inner:
                return
            expr_start = self.source.span(inner[0])[0]
            expr_end = self.source.span(inner[-1])[1]
            chunk = self.text[cursor:sub_start]
            combined_parts.append(chunk)
            size += len(chunk)
            marker = "${" + str(len(markers)) + "}"
            markers.append((size, size + len(marker), expr_start, expr_end))
            combined_parts.append(marker)
            size += len(marker)
            cursor = sub_end
        combined_parts.append(self.text[cursor : end - 1])
        combined = "".join(combined_parts)

        matches = [
            m
            for m in self.pattern.find_all(combined)
            if not any(
                m.start < c_end and c_start < m.end and not (m.start <= c_start and c_end <= m.end)
                for c_start, c_end, _, _ in markers
            )
        ]
        if not matches:
            return

        location = self._location(start)
        resolved = self._resolve_all(matches, location)
        if not resolved:
            return
        convention = self._convention(node)
        bare = self._line_comment_ok(node)
        full = self._is_full(matches, resolved, len(combined))

        def inside(match: PatternMatch) -> list[tuple[int, int]]:
            return [
                (e_start, e_end)
                for c_start, c_end, e_start, e_end in markers
                if match.start <= c_start and c_end <= match.end
            ]

        def outside(render: Renderer, lo: int, hi: int) -> str:
            out: list[str] = []
            pos = lo
            for c_start, c_end, e_start, e_end in markers:
                if c_start < lo or c_end > hi:
                    continue
                out.append(combined[pos:c_start])
                out.append("${" + render(e_start, e_end) + "}")
                pos = c_end
            out.append(combined[pos:hi])
            return "".join(out)

        def build(render: Renderer) -> str:
            if full:
                match, key = resolved[0]
                canonical = canonicalize(match.payload)
                args = [
                    (f"arg{index}", render(e_start, e_end))
                    for index, (e_start, e_end) in enumerate(inside(match), start=1)
                ]
                call = build_call(self.options, convention.call_name, key, canonical, args)
                return call + build_comment(self.options, canonical, block_only=not bare)
            pieces = ["`"]
            pos = 0
            for match, key in resolved:
                pieces.append(outside(render, pos, match.start))
                canonical = canonicalize(match.payload)
                args = [
                    (f"arg{index}", render(e_start, e_end))
                    for index, (e_start, e_end) in enumerate(inside(match), start=1)
                ]
                call = build_call(self.options, convention.call_name, key, canonical, args)
                call += build_comment(self.options, canonical, block_only=True)
                pieces.append("${" + call + "}")
                pos = match.end
            pieces.append(outside(render, pos, len(combined)))
            pieces.append("`")
            return "".join(pieces)

        self._add(start, end, build)

    # -- helpers ---------------------------------------------------------

    def _location(self, offset: int) -> Location:
        line, column = self.source.position(offset)
        return Location(file_path=self.file_path, line=line, column=column)

    def _resolve_all(
        self, matches: list[PatternMatch], location: Location
    ) -> list[tuple[PatternMatch, Key]]:
        resolved: list[tuple[PatternMatch, Key]] = []
        for match in matches:
            key = resolve_key(
                match.full,
                location,
                self.existing,
                self.generated,
                self.extracted_out,
                self.used_out,
                self.options,
                self.pattern,
            )
            if key is not None:
                resolved.append((match, key))
        return resolved

    @staticmethod
    def _is_full(
        matches: list[PatternMatch],
        resolved: list[tuple[PatternMatch, Key]],
        length: int,
    ) -> bool:
        if len(matches) != 1 or len(resolved) != 1:
            return False
        match = matches[0]
        return match.start == 0 and match.end == length

    def _convention(self, node: Node) -> AccessorConvention:
        info = self.detector.classify(node)
        convention = convention_for(info, self.options)
        for requirement in convention.imports:
            self._imports.setdefault(requirement, None)
        if convention.acquisition is not None:
            self._accessors.setdefault(convention.acquisition.owner_start, convention.acquisition)
        return convention

    def _embedded_call(self, convention: AccessorConvention, key: Key, payload: str) -> str:
        canonical = canonicalize(payload)
        call = build_call(self.options, convention.call_name, key, canonical)
        call += build_comment(self.options, canonical, block_only=True)
        return "${" + call + "}"

    def _add(self, start: int, end: int, build: Callable[[Renderer], str]) -> None:
        self._pending.append(_Pending(start=start, end=end, build=build))

    # -- nesting ---------------------------------------------------------

    @staticmethod
    def _top_level(pending: list[_Pending]) -> list[_Pending]:
        ordered = sorted(pending, key=lambda p: (p.start, -p.end))
        top: list[_Pending] = []
        for item in ordered:
            if top and item.start >= top[-1].start and item.end <= top[-1].end:
                continue
            top.append(item)
        return top

    def _render(self, start: int, end: int) -> str:
        inner = [p for p in self._pending if start <= p.start and p.end <= end]
        out: list[str] = []
        cursor = start
        for item in self._top_level(inner):
            out.append(self.text[cursor : item.start])
            out.append(item.build(self._render))
            cursor = item.end
        out.append(self.text[cursor:end])
        return "".join(out)

    def _to_change(self, item: _Pending) -> Change:
        line, column = self.source.position(item.start)
        end_line, end_column = self.source.position(item.end)
        before = self.text[max(0, item.start - CONTEXT_CHARS) : item.start]
        after = self.text[item.end : item.end + CONTEXT_CHARS]
        original = self.text[item.start : item.end]
        return Change(
            file_path=self.file_path,
            original=original,
            replacement=item.build(self._render),
            line=line,
            column=column,
            end_line=end_line,
            end_column=end_column,
            start=item.start,
            end=item.end,
            match_context=MatchContext(
                before=before,
                after=after,
                full_match=before + original + after,
            ),
        )
