from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from tree_sitter import Node

from .config import CodemodOptions, parse_custom_import
from .models import AccessorRequirement, ImportRequirement
from .source import (
    FUNCTION_TYPES,
    MARKUP_TYPES,
    SourceText,
    named_children,
    node_key,
    unwrap_parens,
)

# Wrappers a function literal may sit in before it gets a name, as in
# `const Card = memo((props) => ...)`.
NAME_CARRIER_TYPES = {
    "parenthesized_expression",
    "arguments",
    "call_expression",
    "as_expression",
    "satisfies_expression",
}


class AccessorScope(str, Enum):
    COMPONENT = "component"
    HOOK = "hook"
    PLAIN = "plain"


@dataclass(frozen=True)
class ContextInfo:
    scope: AccessorScope
    owner: Node | None = None
    owner_start: int | None = None
    function_name: str | None = None


@dataclass(frozen=True)
class AccessorConvention:
    call_name: str
    imports: tuple[ImportRequirement, ...] = ()
    acquisition: AccessorRequirement | None = None


def function_name(fn: Node, source: SourceText) -> str | None:
    name = fn.child_by_field_name("name")
    if name is not None:
        return source.slice(name)

    parent = fn.parent
    hops = 0
    while parent is not None and parent.type in NAME_CARRIER_TYPES and hops < 4:
        parent = parent.parent
        hops += 1
    if parent is None:
        return None
    if parent.type == "variable_declarator":
        target = parent.child_by_field_name("name")
    elif parent.type == "pair":
        target = parent.child_by_field_name("key")
    elif parent.type == "assignment_expression":
        target = parent.child_by_field_name("left")
        if target is not None and target.type == "member_expression":
            target = target.child_by_field_name("property")
    elif parent.type in {"field_definition", "public_field_definition"}:
        target = parent.child_by_field_name("property") or parent.child_by_field_name("name")
    else:
        return None
    if target is None or target.type not in {
        "identifier",
        "property_identifier",
        "shorthand_property_identifier",
    }:
        return None
    return source.slice(target)


def contains_markup(node: Node | None) -> bool:
    if node is None:
        return False
    stack = [node]
    while stack:
        current = stack.pop()
        if current.type in MARKUP_TYPES:
            return True
        if current is not node and current.type in FUNCTION_TYPES:
            continue
        stack.extend(current.children)
    return False


def returns_markup(fn: Node) -> bool:
    body = fn.child_by_field_name("body")
    if body is None:
        return False
    if body.type != "statement_block":
        return contains_markup(unwrap_parens(body))
    stack = list(body.children)
    while stack:
        current = stack.pop()
        if current.type in FUNCTION_TYPES or current.type in {"class", "class_declaration"}:
            continue
        if current.type == "return_statement":
            argument = named_children(current)
            if argument and contains_markup(argument[0]):
                return True
            continue
        stack.extend(current.children)
    return False


class ContextDetector:
    """Classifies extraction sites by the role of their enclosing function.

    Results are memoized per enclosing function for the lifetime of the
    detector, which is one file.
    """

    def __init__(
        self,
        source: SourceText,
        options: CodemodOptions,
        module_scope: AccessorScope = AccessorScope.PLAIN,
    ) -> None:
        self.source = source
        self.options = options
        self.module_scope = module_scope
        self._hook_re = re.compile(rf"^{re.escape(options.hook_prefix)}[A-Z0-9_]")
        self._cache: dict[tuple[int, int, str], ContextInfo] = {}

    def classify(self, node: Node) -> ContextInfo:
        fn = self._enclosing_function(node)
        if fn is None:
            return ContextInfo(scope=self.module_scope)

        key = node_key(fn)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        info = self._classify_function(fn)
        if info.scope is AccessorScope.PLAIN:
            outer = self.classify(fn)
            if outer.scope is not AccessorScope.PLAIN:
                info = outer
        self._cache[key] = info
        return info

    def _enclosing_function(self, node: Node) -> Node | None:
        current = node.parent
        while current is not None:
            if current.type in FUNCTION_TYPES:
                return current
            current = current.parent
        return None

    def _classify_function(self, fn: Node) -> ContextInfo:
        name = function_name(fn, self.source)
        start, _ = self.source.span(fn)
        # Vue's options API calls composition hooks from setup().
        if (
            self.options.framework == "vue"
            and self.module_scope is AccessorScope.PLAIN
            and name == "setup"
        ):
            return ContextInfo(
                scope=AccessorScope.HOOK,
                owner=fn,
                owner_start=start,
                function_name=name,
            )
        # Hooks cannot be called from class methods.
        if fn.type == "method_definition":
            return ContextInfo(scope=AccessorScope.PLAIN, function_name=name)
        if returns_markup(fn):
            return ContextInfo(
                scope=AccessorScope.COMPONENT,
                owner=fn,
                owner_start=start,
                function_name=name,
            )
        # A site inside this function is about to call the accessor, so the
        # hook only needs the naming convention to qualify.
        if name and self._hook_re.match(name):
            return ContextInfo(
                scope=AccessorScope.HOOK,
                owner=fn,
                owner_start=start,
                function_name=name,
            )
        return ContextInfo(scope=AccessorScope.PLAIN, function_name=name)


def _hook_convention(options: CodemodOptions, owner_start: int | None) -> AccessorConvention:
    accessor = options.accessor
    return AccessorConvention(
        call_name=accessor.name,
        imports=(
            ImportRequirement(
                source=accessor.source,
                name=accessor.import_name,
                alias=accessor.alias,
            ),
        ),
        acquisition=AccessorRequirement(
            owner_start=owner_start,
            accessor_name=accessor.name,
            hook_source=accessor.source,
            hook_name=accessor.import_name,
            hook_alias=accessor.alias,
            destructured=accessor.destructured,
        ),
    )


def convention_for(info: ContextInfo, options: CodemodOptions) -> AccessorConvention:
    accessor = options.accessor
    if accessor.no_import:
        return AccessorConvention(call_name=accessor.global_function or accessor.name)

    if info.scope in (AccessorScope.COMPONENT, AccessorScope.HOOK):
        return _hook_convention(options, info.owner_start)

    plain = options.plain_import
    name = plain.function_name or accessor.name
    custom = parse_custom_import(plain.custom_import) if plain.custom_import else None
    if custom is not None:
        call_name = custom.local_name
        if custom.kind == "namespace":
            call_name = f"{custom.local_name}.{name}"
        return AccessorConvention(
            call_name=call_name,
            imports=(
                ImportRequirement(
                    source=custom.source,
                    name=custom.name,
                    kind=custom.kind,
                    alias=custom.alias,
                    statement=custom.statement,
                ),
            ),
        )
    if plain.source is None:
        # One module-scope acquisition from the hook.
        return _hook_convention(options, info.owner_start)

    source = plain.source
    if plain.import_type == "namespace":
        return AccessorConvention(
            call_name=f"{plain.namespace}.{name}",
            imports=(ImportRequirement(source=source, name=plain.namespace, kind="namespace"),),
        )
    kind = "default" if plain.import_type == "default" else "named"
    return AccessorConvention(
        call_name=name,
        imports=(ImportRequirement(source=source, name=name, kind=kind),),
    )


def accessor_call_names(options: CodemodOptions) -> set[str]:
    """Every callee name the codemod may emit for these options."""
    names = set()
    for scope in AccessorScope:
        names.add(convention_for(ContextInfo(scope=scope), options).call_name)
    names.add(options.accessor.name)
    if options.accessor.global_function:
        names.add(options.accessor.global_function)
    return names
