"""Add missing imports and accessor acquisitions to patched code.

The patched text is parsed again because insertion points depend on its
final shape. Existing imports count irrespective of their local alias; a
missing name is merged into an existing import from the same source when
there is one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from tree_sitter import Node

from .errors import ReplacementPositionError
from .models import AccessorRequirement, ImportRequirement
from .patcher import Insertion, apply_insertions, detect_newline
from .source import FUNCTION_TYPES, SourceText, named_children, parse_source, unwrap_parens, walk

logger = logging.getLogger(__name__)

DECLARATION_TYPES = {"lexical_declaration", "variable_declaration"}
MODULE_ACQUISITION_ORDER = 1000


@dataclass
class ImportInfo:
    node: Node
    source: str
    quote: str
    semicolon: bool
    type_only: bool = False
    clause: Node | None = None
    default: str | None = None
    namespace: str | None = None
    named: dict[str, str] = field(default_factory=dict)
    named_node: Node | None = None
    last_specifier: Node | None = None


def _text(source: SourceText, node: Node) -> str:
    return source.slice(node)


def scan_imports(source: SourceText, root: Node) -> list[ImportInfo]:
    infos: list[ImportInfo] = []
    for node in root.children:
        if node.type != "import_statement":
            continue
        source_node = node.child_by_field_name("source")
        if source_node is None:
            continue
        literal = _text(source, source_node)
        info = ImportInfo(
            node=node,
            source=literal[1:-1],
            quote=literal[0],
            semicolon=_text(source, node).rstrip().endswith(";"),
            type_only=any(child.type == "type" for child in node.children),
        )
        for child in node.children:
            if child.type == "import_clause":
                info.clause = child
        if info.clause is not None:
            for part in info.clause.children:
                if part.type == "identifier":
                    info.default = _text(source, part)
                elif part.type == "namespace_import":
                    names = [c for c in part.named_children if c.type == "identifier"]
                    if names:
                        info.namespace = _text(source, names[-1])
                elif part.type == "named_imports":
                    info.named_node = part
                    for specifier in part.named_children:
                        if specifier.type != "import_specifier":
                            continue
                        if any(c.type == "type" for c in specifier.children):
                            continue
                        name = specifier.child_by_field_name("name")
                        alias = specifier.child_by_field_name("alias")
                        if name is None:
                            continue
                        imported = _text(source, name).strip("'\"")
                        info.named[imported] = _text(source, alias) if alias else imported
                        info.last_specifier = specifier
        infos.append(info)
    return infos


def _binds_local(info: ImportInfo, requirement: ImportRequirement) -> bool:
    local = requirement.local_name
    if requirement.kind == "default":
        return info.default == local
    if requirement.kind == "namespace":
        return info.namespace == local
    return info.named.get(requirement.name) == local


def has_import(infos: list[ImportInfo], requirement: ImportRequirement) -> bool:
    for info in infos:
        if info.source != requirement.source or info.type_only:
            continue
        # A verbatim statement is only present when it binds the same name.
        if requirement.statement is not None:
            if _binds_local(info, requirement):
                return True
            continue
        if requirement.kind == "default" and info.default is not None:
            return True
        if requirement.kind == "namespace" and info.namespace is not None:
            return True
        if requirement.kind == "named" and requirement.name in info.named:
            return True
    return False


def local_binding(infos: list[ImportInfo], source: str, name: str, alias: str | None) -> str:
    for info in infos:
        if info.source == source and not info.type_only and name in info.named:
            return info.named[name]
    return alias or name


def leading_insertion_point(source: SourceText, root: Node) -> int:
    """Offset just past the last leading directive or import, else 0."""
    position = 0
    for node in root.children:
        if node.type == "comment":
            continue
        if node.type in {"hash_bang_line", "import_statement"} or _is_directive(node):
            position = source.span(node)[1]
            continue
        break
    return position


def _is_directive(node: Node) -> bool:
    if node.type != "expression_statement":
        return False
    inner = named_children(node)
    return len(inner) == 1 and inner[0].type == "string"


def _specifier(requirement: ImportRequirement) -> str:
    if requirement.alias and requirement.alias != requirement.name:
        return f"{requirement.name} as {requirement.alias}"
    return requirement.name


def _import_statements(
    source_name: str,
    requirements: list[ImportRequirement],
    quote: str,
    semicolon: str,
) -> list[str]:
    default = next((r for r in requirements if r.kind == "default"), None)
    named = [r for r in requirements if r.kind == "named"]
    namespaces = [r for r in requirements if r.kind == "namespace"]
    literal = f"{quote}{source_name}{quote}"
    statements: list[str] = []
    bindings: list[str] = []
    if default is not None:
        bindings.append(default.local_name)
    if named:
        bindings.append("{ " + ", ".join(_specifier(r) for r in named) + " }")
    if bindings:
        statements.append(f"import {', '.join(bindings)} from {literal}{semicolon}")
    for requirement in namespaces:
        statements.append(f"import * as {requirement.local_name} from {literal}{semicolon}")
    return statements


def acquisition_statement(requirement: AccessorRequirement, hook_local: str) -> str:
    if requirement.destructured:
        return f"const {{ {requirement.accessor_name} }} = {hook_local}();"
    return f"const {requirement.accessor_name} = {hook_local}();"


def has_acquisition(source: SourceText, block: Node, hook_local: str) -> bool:
    for statement in named_children(block):
        if statement.type not in DECLARATION_TYPES:
            continue
        for declarator in statement.named_children:
            if declarator.type != "variable_declarator":
                continue
            value = unwrap_parens(declarator.child_by_field_name("value"))
            if value is None or value.type != "call_expression":
                continue
            callee = value.child_by_field_name("function")
            if callee is not None and _text(source, callee) == hook_local:
                return True
    return False


def _find_function(source: SourceText, root: Node, offset: int) -> Node | None:
    for node in walk(root):
        if node.type in FUNCTION_TYPES and source.span(node)[0] == offset:
            return node
    return None


class _Planner:
    def __init__(self, source: SourceText, root: Node) -> None:
        self.source = source
        self.text = source.text
        self.root = root
        self.newline = detect_newline(source.text)
        self.infos = scan_imports(source, root)
        self.insertions: list[Insertion] = []
        self._order = 0

    def _add(self, position: int, text: str, order: int | None = None) -> None:
        self._order += 1
        self.insertions.append(
            Insertion(position=position, text=text, order=self._order if order is None else order)
        )

    def _top_insertion(self, statement: str, order: int | None = None) -> None:
        nl = self.newline
        position = leading_insertion_point(self.source, self.root)
        if position > 0:
            self._add(position, nl + statement, order)
        elif self.text.startswith(nl):
            self._add(len(nl), statement + nl, order)
        else:
            self._add(0, statement + nl, order)

    def _style(self) -> tuple[str, str]:
        quote = '"'
        semicolon = ";"
        real = [info for info in self.infos if info.quote in "'\""]
        if real:
            last = real[-1]
            quote = last.quote
            semicolon = ";" if last.semicolon else ""
        return quote, semicolon

    def plan_imports(self, requirements: list[ImportRequirement]) -> None:
        missing: dict[str, list[ImportRequirement]] = {}
        verbatim: list[str] = []
        for requirement in requirements:
            if has_import(self.infos, requirement):
                continue
            if requirement.statement is not None:
                if requirement.statement not in verbatim:
                    verbatim.append(requirement.statement)
                continue
            bucket = missing.setdefault(requirement.source, [])
            if requirement not in bucket:
                bucket.append(requirement)

        for statement in verbatim:
            self._top_insertion(statement)
        quote, semicolon = self._style()
        for source_name, wanted in missing.items():
            wanted = self._merge_into_existing(source_name, wanted)
            for statement in _import_statements(source_name, wanted, quote, semicolon):
                self._top_insertion(statement)

    def _merge_into_existing(
        self, source_name: str, wanted: list[ImportRequirement]
    ) -> list[ImportRequirement]:
        target = next(
            (
                info
                for info in self.infos
                if info.source == source_name
                and not info.type_only
                and info.namespace is None
                and info.clause is not None
            ),
            None,
        )
        if target is None:
            return wanted

        remaining = list(wanted)
        named = [r for r in remaining if r.kind == "named"]
        if named:
            specs = ", ".join(_specifier(r) for r in named)
            if target.last_specifier is not None:
                self._add(self.source.span(target.last_specifier)[1], f", {specs}")
            elif target.named_node is not None:
                self._add(self.source.span(target.named_node)[0] + 1, f" {specs} ")
            elif target.default is not None:
                self._add(self.source.span(target.clause)[1], f", {{ {specs} }}")
            else:
                named = []
            remaining = [r for r in remaining if r not in named]

        default = next((r for r in remaining if r.kind == "default"), None)
        if default is not None and target.default is None:
            self._add(self.source.span(target.clause)[0], f"{default.local_name}, ")
            remaining.remove(default)
        return remaining

    def plan_accessors(self, requirements: list[AccessorRequirement]) -> None:
        for requirement in requirements:
            hook_local = local_binding(
                self.infos,
                requirement.hook_source,
                requirement.hook_name,
                requirement.hook_alias,
            )
            statement = acquisition_statement(requirement, hook_local)
            if requirement.owner_start is None:
                if not has_acquisition(self.source, self.root, hook_local):
                    self._top_insertion(statement, order=MODULE_ACQUISITION_ORDER)
                continue

            fn = _find_function(self.source, self.root, requirement.owner_start)
            if fn is None:
                line, column = self.source.position(requirement.owner_start)
                raise ReplacementPositionError(
                    "Function for accessor acquisition not found in patched code",
                    line=line,
                    column=column,
                )
            self._plan_function(fn, statement, hook_local)

    def _plan_function(self, fn: Node, statement: str, hook_local: str) -> None:
        nl = self.newline
        fn_start = self.source.span(fn)[0]
        base = self.source.line_indent(fn_start)
        unit = "\t" if "\t" in base else "  "
        body = fn.child_by_field_name("body")
        if body is None:
            return

        if body.type != "statement_block":
            body_start, body_end = self.source.span(body)
            inner = base + unit
            self._add(body_start, f"{{{nl}{inner}{statement}{nl}{inner}return ")
            self._add(body_end, f";{nl}{base}}}")
            return

        if has_acquisition(self.source, body, hook_local):
            return
        body_start, body_end = self.source.span(body)
        statements = named_children(body)
        if statements:
            first_start = self.source.span(statements[0])[0]
            same_line = "\n" not in self.text[body_start:first_start]
            indent = base + unit if same_line else self.source.line_indent(first_start)
            self._add(body_start + 1, f"{nl}{indent}{statement}")
            return
        between = self.text[body_start + 1 : body_end - 1]
        if "\n" in between:
            self._add(body_start + 1, f"{nl}{base}{unit}{statement}")
        else:
            self._add(body_start + 1, f"{nl}{base}{unit}{statement}{nl}{base}")


def ensure_imports(
    text: str,
    imports: list[ImportRequirement],
    accessors: list[AccessorRequirement],
    dialect: str,
    file_path: str = "<memory>",
) -> str:
    if not imports and not accessors:
        return text
    source, tree = parse_source(text, dialect, file_path)
    planner = _Planner(source, tree.root_node)
    planner.plan_imports(imports)
    planner.plan_accessors(accessors)
    if not planner.insertions:
        return text
    logger.debug("%s: %d insertion(s)", file_path, len(planner.insertions))
    return apply_insertions(text, planner.insertions)
