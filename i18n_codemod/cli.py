"""Rewrite delimited strings in a source tree into translation calls.

Usage:
    i18n-codemod --root src
    i18n-codemod --root src --existing locales/en.json --output locales/extracted.json
    i18n-codemod --root src --framework vue --append-comment --comment-type line
    i18n-codemod --root src --no-import --global-function i18n.t --dry-run
"""

from __future__ import annotations

import argparse
import concurrent.futures
import json
import logging
import re
from dataclasses import dataclass, replace
from pathlib import Path

from .config import (
    FRAMEWORK_DEFAULTS,
    CodemodOptions,
    I18nImport,
    normalize_options,
    options_from_mapping,
)
from .errors import ConfigurationError
from .keys import ExistingEntry, build_value_index, flatten_translations
from .models import ProcessResult
from .processor import process_code

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS = {
    ".js",
    ".jsx",
    ".mjs",
    ".cjs",
    ".ts",
    ".tsx",
    ".mts",
    ".cts",
    ".vue",
}
IGNORED_DIRS = {
    ".git",
    ".hg",
    ".svn",
    ".idea",
    ".vscode",
    ".next",
    ".nuxt",
    "coverage",
    "build",
    "dist",
    "node_modules",
}


@dataclass(frozen=True)
class FileOutcome:
    path: Path
    changed: bool
    message: str
    result: ProcessResult | None = None


def is_ignored_path(path: Path) -> bool:
    return any(part in IGNORED_DIRS for part in path.parts)


def parse_extensions(raw: str) -> set[str]:
    extensions: set[str] = set()
    for part in re.split(r"[,;\s]+", raw.strip()):
        if not part:
            continue
        ext = part.strip().lower()
        if not ext.startswith("."):
            ext = f".{ext}"
        extensions.add(ext)
    return extensions


def iter_source_files(roots: list[Path], extensions: set[str]) -> list[Path]:
    files: list[Path] = []
    seen: set[Path] = set()
    for root in roots:
        if root.is_file():
            real = root.resolve()
            if root.suffix.lower() in extensions and real not in seen:
                files.append(root)
                seen.add(real)
            continue
        if not root.exists():
            continue
        for path in sorted(root.rglob("*")):
            if not path.is_file() or path.suffix.lower() not in extensions:
                continue
            if is_ignored_path(path.relative_to(root)):
                continue
            if path.name.endswith((".min.js", ".d.ts")):
                continue
            real = path.resolve()
            if real in seen:
                continue
            seen.add(real)
            files.append(path)
    return files


def load_existing_translations(path: Path) -> dict[str, ExistingEntry]:
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise SystemExit(f"Translations file not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise SystemExit(f"Translations file is not valid JSON: {path} ({exc})") from exc
    if not isinstance(raw, dict):
        raise SystemExit(f"Translations file must be a JSON object: {path}")
    return build_value_index(flatten_translations(raw))


def load_config(path: Path) -> CodemodOptions:
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise SystemExit(f"Config file not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise SystemExit(f"Config file is not valid JSON: {path} ({exc})") from exc
    try:
        return options_from_mapping(raw)
    except ConfigurationError as exc:
        raise SystemExit(f"Invalid config {path}: {exc.message}") from exc


def build_options(args: argparse.Namespace) -> CodemodOptions:
    options = load_config(args.config) if args.config else CodemodOptions()

    updates: dict[str, object] = {}
    if args.pattern is not None:
        updates["pattern"] = args.pattern
    if args.framework is not None:
        updates["framework"] = args.framework
    if args.append_comment:
        updates["append_extracted_comment"] = True
    if args.comment_type is not None:
        updates["extracted_comment_type"] = args.comment_type

    accessor_flags = {
        "name": args.accessor,
        "import_name": args.hook,
        "source": args.source,
        "global_function": args.global_function,
    }
    accessor_flags = {k: v for k, v in accessor_flags.items() if v is not None}
    if args.no_import:
        accessor_flags["no_import"] = True
    if accessor_flags:
        base = options.i18n_import
        if base is None:
            framework = updates.get("framework", options.framework)
            name, import_name, source = FRAMEWORK_DEFAULTS.get(
                str(framework), FRAMEWORK_DEFAULTS["react"]
            )
            base = I18nImport(name=name, import_name=import_name, source=source)
        updates["i18n_import"] = replace(base, **accessor_flags)

    options = replace(options, **updates) if updates else options
    try:
        normalize_options(options)
    except ConfigurationError as exc:
        raise SystemExit(f"Invalid options: {exc.message}") from exc
    return options


def process_file(
    path: Path,
    *,
    options: CodemodOptions,
    existing: dict[str, ExistingEntry],
    dry_run: bool,
) -> FileOutcome:
    try:
        with path.open(encoding="utf-8", newline="") as handle:
            original = handle.read()
    except UnicodeDecodeError:
        return FileOutcome(path, False, "skip: non-utf8")
    except OSError as exc:
        return FileOutcome(path, False, f"skip: read error ({exc})")

    result = process_code(original, str(path), options, existing)
    if result.error is not None:
        return FileOutcome(
            path, False, f"skip: {result.error.code} ({result.error.message})", result
        )
    if not result.changes or result.code == original:
        return FileOutcome(path, False, "skip: no change", result)

    if not dry_run:
        try:
            with path.open("w", encoding="utf-8", newline="") as handle:
                handle.write(result.code)
        except OSError as exc:
            return FileOutcome(path, False, f"skip: write error ({exc})", result)
    return FileOutcome(path, True, f"updated ({len(result.changes)} change(s))", result)


def merge_extracted(outcomes: list[FileOutcome], into: dict[str, str]) -> int:
    added = 0
    for outcome in outcomes:
        if outcome.result is None or outcome.result.error is not None:
            continue
        for item in outcome.result.extracted_strings:
            key = str(item.key)
            if key in into:
                continue
            into[key] = item.value
            added += 1
    return added


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description=(
            "Extract `___text___` strings from JS/TS/JSX/Vue sources and rewrite "
            "them into translation calls."
        )
    )
    parser.add_argument(
        "--root",
        action="append",
        required=True,
        help="Root directory or source file to scan. Repeatable.",
    )
    parser.add_argument(
        "--extensions",
        default=",".join(sorted(DEFAULT_EXTENSIONS)),
        help="Comma-separated file extensions to process.",
    )
    parser.add_argument(
        "--existing",
        type=Path,
        default=None,
        help="Existing locale JSON (key -> text, nested allowed) used to reuse keys.",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Write extracted strings as a flat JSON object (key -> text).",
    )
    parser.add_argument("--config", type=Path, default=None, help="JSON options file.")
    parser.add_argument("--pattern", default=None, help="Delimiter regex with one group.")
    parser.add_argument("--framework", choices=sorted(FRAMEWORK_DEFAULTS), default=None)
    parser.add_argument("--accessor", default=None, help="Translation function name (default: t).")
    parser.add_argument("--hook", default=None, help="Hook that returns the accessor.")
    parser.add_argument("--source", default=None, help="Module the hook is imported from.")
    parser.add_argument(
        "--no-import",
        action="store_true",
        help="Call a global function instead of importing anything.",
    )
    parser.add_argument("--global-function", default=None)
    parser.add_argument(
        "--append-comment",
        action="store_true",
        help="Append the extracted text as a comment after each call.",
    )
    parser.add_argument("--comment-type", choices=["block", "line"], default=None)
    parser.add_argument("--concurrency", type=int, default=8)
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only report files that would be updated.",
    )
    parser.add_argument(
        "--write-list",
        default="",
        help="Optional path to write updated file list (one per line).",
    )
    parser.add_argument(
        "--report-json",
        type=Path,
        default=None,
        help="Optional report output path.",
    )
    parser.add_argument(
        "--fail-on-change",
        action="store_true",
        help="Return exit code 1 if any file would be/was updated.",
    )
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    if args.concurrency <= 0:
        raise SystemExit("--concurrency must be > 0")

    options = build_options(args)
    existing = load_existing_translations(args.existing) if args.existing else {}
    extensions = parse_extensions(args.extensions)
    roots = [Path(r).resolve() for r in args.root]
    files = iter_source_files(roots, extensions)

    outcomes: list[FileOutcome] = []
    with concurrent.futures.ThreadPoolExecutor(max_workers=args.concurrency) as executor:
        futures = [
            executor.submit(
                process_file,
                path,
                options=options,
                existing=existing,
                dry_run=args.dry_run,
            )
            for path in files
        ]
        for future in concurrent.futures.as_completed(futures):
            outcomes.append(future.result())
    outcomes.sort(key=lambda o: o.path.as_posix())

    updated_files = [o.path for o in outcomes if o.changed]
    for outcome in outcomes:
        if outcome.changed:
            print(f"[{'would update' if args.dry_run else 'updated'}] {outcome.path}")
        elif outcome.message != "skip: no change":
            print(f"[{outcome.message}] {outcome.path}")

    print(
        f"Scanned {len(files)} file(s); "
        f"{'would update' if args.dry_run else 'updated'} {len(updated_files)} file(s); "
        f"skipped {len(outcomes) - len(updated_files)} file(s)."
    )

    if args.output:
        out_path = args.output.resolve()
        merged: dict[str, str] = {}
        if out_path.is_file():
            raw = out_path.read_text(encoding="utf-8").strip()
            data = json.loads(raw) if raw else {}
            if not isinstance(data, dict):
                raise SystemExit(f"Output file must be a JSON object: {out_path}")
            merged.update(flatten_translations(data))
        added = merge_extracted(outcomes, merged)
        if not args.dry_run:
            out_path.parent.mkdir(parents=True, exist_ok=True)
            out_path.write_text(
                json.dumps(merged, ensure_ascii=False, indent=2) + "\n",
                encoding="utf-8",
            )
        print(f"Extracted strings: {added} new; {len(merged)} total ({out_path})")

    if args.write_list:
        list_path = Path(args.write_list)
        list_path.parent.mkdir(parents=True, exist_ok=True)
        list_path.write_text(
            "".join(f"{path}\n" for path in updated_files),
            encoding="utf-8",
        )
        print(f"Wrote updated file list: {list_path}")

    if args.report_json:
        report = {
            "scanned": len(files),
            "updated": len(updated_files),
            "files": [
                {
                    "file": o.path.as_posix(),
                    "changed": o.changed,
                    "message": o.message,
                    "changes": len(o.result.changes) if o.result else 0,
                    "used_existing_keys": [
                        {"key": u.key, "value": u.value, "line": u.line}
                        for u in (o.result.used_existing_keys if o.result else [])
                    ],
                    "error": o.result.error.to_dict() if o.result and o.result.error else None,
                    "warnings": [str(w) for w in (o.result.warnings if o.result else [])],
                }
                for o in outcomes
            ],
        }
        report_path = args.report_json.resolve()
        report_path.parent.mkdir(parents=True, exist_ok=True)
        report_path.write_text(
            json.dumps(report, ensure_ascii=False, indent=2) + "\n",
            encoding="utf-8",
        )
        print(f"Report: {report_path}")

    if args.fail_on_change and updated_files:
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
