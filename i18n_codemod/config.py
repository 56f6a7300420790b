"""Options record and option normalization.

``normalize_options`` never fails on recoverable problems: it resolves them
to documented defaults and reports each one as a ``ConfigWarning``.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any, Union

from .errors import ConfigurationError, ConfigWarning
from .models import ConflictContext, Key
from .pattern import DEFAULT_PATTERN, DelimiterPattern

logger = logging.getLogger(__name__)

CallFactory = Callable[[str, Key, str], str]
KeyGenerator = Callable[[str, str], Key]
KeyConflictResolver = Callable[[Key, str, ConflictContext], Union[Key, None]]

FRAMEWORK_DEFAULTS = {
    "react": ("t", "useTranslation", "react-i18next"),
    "vue": ("t", "useI18n", "vue-i18n"),
}
COMMENT_TYPES = {"block", "line"}
IMPORT_TYPES = {"named", "default", "namespace"}
IDENTIFIER_RE = re.compile(r"^[A-Za-z_$][\w$]*$")
# Packages that export a module-level accessor. Vue has none, so plain Vue
# code acquires the accessor from the hook instead.
PLAIN_DEFAULT_SOURCES = {"react": "i18next"}
CUSTOM_IMPORT_RE = re.compile(
    r"^\s*import\s+(?P<clause>[^'\"]+?)\s+"
    r"from\s+(?P<quote>['\"])(?P<source>[^'\"]+)(?P=quote)\s*;?\s*$"
)
NAMED_CLAUSE_RE = re.compile(
    r"^\{\s*(?P<name>[A-Za-z_$][\w$]*)(?:\s+as\s+(?P<alias>[A-Za-z_$][\w$]*))?\s*,?\s*\}$"
)
NAMESPACE_CLAUSE_RE = re.compile(r"^\*\s*as\s+(?P<name>[A-Za-z_$][\w$]*)$")


@dataclass(frozen=True)
class I18nImport:
    name: str = "t"
    import_name: str = "useTranslation"
    source: str = "react-i18next"
    alias: str | None = None
    destructured: bool = True
    no_import: bool = False
    global_function: str | None = None
    # Call used by Vue scripts without `<script setup>`, e.g. `this.$t`.
    script_function: str | None = None


@dataclass(frozen=True)
class PlainImport:
    """How module-level code outside any component gets the accessor."""

    function_name: str | None = None
    import_type: str = "named"
    source: str | None = None
    namespace: str = "i18n"
    custom_import: str | None = None


@dataclass(frozen=True)
class CodemodOptions:
    pattern: str = DEFAULT_PATTERN
    framework: str = "react"
    i18n_import: I18nImport | None = None
    plain_import: PlainImport = field(default_factory=PlainImport)
    call_factory: CallFactory | None = None
    key_conflict_resolver: KeyConflictResolver | bool | None = None
    generate_key: KeyGenerator | None = None
    append_extracted_comment: bool = False
    extracted_comment_type: str = "block"
    hook_prefix: str = "use"
    # Deprecated spellings of i18n_import fields.
    translation_method: str | None = None
    hook_name: str | None = None
    hook_import: str | None = None

    @property
    def accessor(self) -> I18nImport:
        return self.i18n_import or I18nImport()

    def delimiter(self) -> DelimiterPattern:
        return DelimiterPattern(self.pattern)


@dataclass(frozen=True)
class CustomImport:
    statement: str
    source: str
    kind: str
    name: str
    alias: str | None = None

    @property
    def local_name(self) -> str:
        return self.alias or self.name


def parse_custom_import(statement: str) -> CustomImport | None:
    """Read the single binding a caller-supplied import statement introduces.

    Supports ``import t from "x"``, ``import { translate as t } from "x"`` and
    ``import * as i18n from "x"``. Anything else returns None.
    """
    match = CUSTOM_IMPORT_RE.match(statement)
    if match is None:
        return None
    clause = match.group("clause").strip()
    source = match.group("source")
    statement = statement.strip()
    named = NAMED_CLAUSE_RE.match(clause)
    if named:
        return CustomImport(
            statement, source, "named", named.group("name"), named.group("alias")
        )
    namespace = NAMESPACE_CLAUSE_RE.match(clause)
    if namespace:
        return CustomImport(statement, source, "namespace", namespace.group("name"))
    if IDENTIFIER_RE.match(clause):
        return CustomImport(statement, source, "default", clause)
    return None


DEPRECATED_FIELDS = (
    ("translation_method", "name"),
    ("hook_name", "import_name"),
    ("hook_import", "source"),
)


def _warn(warnings: list[ConfigWarning], code: str, option: str, message: str) -> None:
    warning = ConfigWarning(code=code, option=option, message=message)
    logger.warning("%s", warning)
    warnings.append(warning)


def normalize_options(
    options: CodemodOptions | None = None,
) -> tuple[CodemodOptions, list[ConfigWarning]]:
    options = options or CodemodOptions()
    warnings: list[ConfigWarning] = []

    framework = options.framework
    if framework not in FRAMEWORK_DEFAULTS:
        _warn(
            warnings,
            "CONFIG005",
            "framework",
            f"unknown framework {framework!r}; using 'react'",
        )
        framework = "react"
    name, import_name, source = FRAMEWORK_DEFAULTS[framework]

    explicit = options.i18n_import
    accessor = explicit or I18nImport(name=name, import_name=import_name, source=source)
    for old_field, new_field in DEPRECATED_FIELDS:
        old_value = getattr(options, old_field)
        if old_value is None:
            continue
        if explicit is None:
            _warn(
                warnings,
                "CONFIG004",
                old_field,
                f"deprecated; use i18n_import.{new_field} instead",
            )
            accessor = replace(accessor, **{new_field: old_value})
        elif getattr(explicit, new_field) != old_value:
            _warn(
                warnings,
                "CONFIG002",
                old_field,
                f"conflicts with i18n_import.{new_field}="
                f"{getattr(explicit, new_field)!r}; i18n_import wins",
            )

    if accessor.no_import and accessor.global_function is None:
        accessor = replace(accessor, global_function=accessor.name)

    pattern = options.pattern
    try:
        DelimiterPattern(pattern)
    except re.error as exc:
        _warn(
            warnings,
            "CONFIG003",
            "pattern",
            f"invalid delimiter pattern ({exc}); using {DEFAULT_PATTERN!r}",
        )
        pattern = DEFAULT_PATTERN

    comment_type = options.extracted_comment_type
    if comment_type not in COMMENT_TYPES:
        _warn(
            warnings,
            "CONFIG005",
            "extracted_comment_type",
            f"unknown comment type {comment_type!r}; using 'block'",
        )
        comment_type = "block"

    plain = options.plain_import
    if plain.import_type not in IMPORT_TYPES:
        _warn(
            warnings,
            "CONFIG005",
            "plain_import.import_type",
            f"unknown import type {plain.import_type!r}; using 'named'",
        )
        plain = replace(plain, import_type="named")
    if plain.import_type == "namespace" and not IDENTIFIER_RE.match(plain.namespace):
        raise ConfigurationError(
            f"plain_import.namespace is not an identifier: {plain.namespace!r}"
        )
    if plain.custom_import is not None and parse_custom_import(plain.custom_import) is None:
        _warn(
            warnings,
            "CONFIG005",
            "plain_import.custom_import",
            f"unsupported import statement {plain.custom_import!r}; ignoring it",
        )
        plain = replace(plain, custom_import=None)
    if plain.source is None and framework in PLAIN_DEFAULT_SOURCES:
        plain = replace(plain, source=PLAIN_DEFAULT_SOURCES[framework])

    normalized = replace(
        options,
        framework=framework,
        i18n_import=accessor,
        plain_import=plain,
        pattern=pattern,
        extracted_comment_type=comment_type,
    )
    return normalized, warnings


def _camel_to_snake(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def _pick(section: Mapping[str, Any], allowed: dict[str, type], where: str) -> dict[str, Any]:
    picked: dict[str, Any] = {}
    for raw_key, value in section.items():
        key = _camel_to_snake(raw_key)
        if key not in allowed:
            raise ConfigurationError(f"Unknown option `{raw_key}` in {where}.")
        if value is None:
            continue
        expected = allowed[key]
        if not isinstance(value, expected):
            raise ConfigurationError(
                f"Option `{raw_key}` in {where} must be {expected.__name__}."
            )
        picked[key] = value
    return picked


def options_from_mapping(data: Mapping[str, Any]) -> CodemodOptions:
    """Build options from a JSON-style mapping with camelCase keys."""
    if not isinstance(data, Mapping):
        raise ConfigurationError("Config must be a JSON object.")

    top = dict(data)
    i18n_raw = top.pop("i18nImport", None)
    plain_raw = top.pop("plainImport", None)
    values = _pick(
        top,
        {
            "pattern": str,
            "framework": str,
            "append_extracted_comment": bool,
            "extracted_comment_type": str,
            "hook_prefix": str,
            "translation_method": str,
            "hook_name": str,
            "hook_import": str,
        },
        "config",
    )

    if i18n_raw is not None:
        if not isinstance(i18n_raw, Mapping):
            raise ConfigurationError("`i18nImport` must be an object.")
        i18n_values = _pick(
            i18n_raw,
            {
                "name": str,
                "import_name": str,
                "source": str,
                "alias": str,
                "destructured": bool,
                "no_import": bool,
                "global_function": str,
                "script_function": str,
            },
            "i18nImport",
        )
        framework = values.get("framework", "react")
        name, import_name, source = FRAMEWORK_DEFAULTS.get(
            framework, FRAMEWORK_DEFAULTS["react"]
        )
        base = I18nImport(name=name, import_name=import_name, source=source)
        values["i18n_import"] = replace(base, **i18n_values)

    if plain_raw is not None:
        if not isinstance(plain_raw, Mapping):
            raise ConfigurationError("`plainImport` must be an object.")
        values["plain_import"] = PlainImport(
            **_pick(
                plain_raw,
                {
                    "function_name": str,
                    "import_type": str,
                    "source": str,
                    "namespace": str,
                    "custom_import": str,
                },
                "plainImport",
            )
        )

    return CodemodOptions(**values)
