"""The three-phase pipeline: collect, patch, then insert imports.

``process_code`` never raises for a bad input file. Parse failures and
anchoring failures leave the text untouched and come back as
``ProcessResult.error``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import PurePath

from .collector import ReplacementCollector
from .config import CodemodOptions, normalize_options
from .context import AccessorScope
from .errors import CodemodError, TransformError
from .inserter import ensure_imports
from .keys import ExistingEntry
from .models import (
    AccessorRequirement,
    Change,
    ExtractedString,
    ImportRequirement,
    Key,
    ProcessResult,
    UsedExistingKey,
)
from .patcher import apply_changes_mapped
from .source import dialect_for_path, parse_source

logger = logging.getLogger(__name__)


@dataclass
class RunState:
    """Mutable bookkeeping for one file; never shared between files."""

    existing: Mapping[str, ExistingEntry]
    generated: dict[str, Key] = field(default_factory=dict)
    extracted: list[ExtractedString] = field(default_factory=list)
    used: list[UsedExistingKey] = field(default_factory=list)


def transform_script(
    code: str,
    file_path: str,
    dialect: str,
    options: CodemodOptions,
    state: RunState,
    *,
    module_scope: AccessorScope = AccessorScope.PLAIN,
    extra_imports: list[ImportRequirement] | None = None,
    extra_accessors: list[AccessorRequirement] | None = None,
) -> tuple[str, list[Change]]:
    source, tree = parse_source(code, dialect, file_path)
    collector = ReplacementCollector(
        source,
        file_path,
        options,
        state.existing,
        state.generated,
        state.extracted,
        state.used,
        module_scope=module_scope,
    )
    collected = collector.collect(tree.root_node)
    imports = list(collected.imports)
    accessors = list(collected.accessors)
    for requirement in extra_imports or []:
        if requirement not in imports:
            imports.append(requirement)
    for accessor in extra_accessors or []:
        if all(a.owner_start != accessor.owner_start for a in accessors):
            accessors.append(accessor)
    if not collected.changes and not imports and not accessors:
        return code, []

    owners = [a.owner_start for a in accessors if a.owner_start is not None]
    patched, mapped = apply_changes_mapped(code, collected.changes, owners)
    moved = dict(zip(owners, mapped))
    accessors = [
        replace(a, owner_start=moved[a.owner_start]) if a.owner_start is not None else a
        for a in accessors
    ]
    final = ensure_imports(patched, imports, accessors, dialect, file_path)
    return final, collected.changes


def process_code(
    code: str,
    file_path: str,
    options: CodemodOptions | None = None,
    existing: Mapping[str, ExistingEntry] | None = None,
    *,
    dialect: str | None = None,
) -> ProcessResult:
    """Extract delimited strings from one file's text.

    ``existing`` maps canonical values to known keys. It is only read; build
    it once per batch and do not mutate it while files are being processed.

    Raises ``ConfigurationError`` (CONFIG001) for options that cannot be
    normalized; every other problem is reported on the result.
    """
    is_sfc = dialect is None and PurePath(file_path).suffix.lower() == ".vue"
    options = options or CodemodOptions()
    if is_sfc and options.i18n_import is None and options.framework == "react":
        # Single-file components default to the vue-i18n conventions.
        options = replace(options, framework="vue")
    options, warnings = normalize_options(options)
    existing = existing if existing is not None else {}

    if is_sfc:
        from .sfc import process_sfc

        result = process_sfc(code, file_path, options, existing)
        result.warnings[:0] = warnings
        return result

    state = RunState(existing=existing)
    try:
        dialect = dialect or dialect_for_path(file_path)
        output, changes = transform_script(code, file_path, dialect, options, state)
    except CodemodError as exc:
        return fallback(code, file_path, exc, warnings)
    except Exception as exc:  # noqa: BLE001
        error = TransformError(f"Unexpected failure: {exc}", file_path=file_path)
        error.__cause__ = exc
        return fallback(code, file_path, error, warnings)

    return ProcessResult(
        code=output,
        extracted_strings=state.extracted,
        used_existing_keys=state.used,
        changes=sorted(changes, key=lambda c: c.start or 0),
        warnings=warnings,
    )


def fallback(code: str, file_path: str, error: CodemodError, warnings: list) -> ProcessResult:
    if error.file_path is None:
        error.file_path = file_path
    logger.warning("%s; leaving %s untouched", error, file_path)
    return ProcessResult(code=code, error=error, warnings=list(warnings))
