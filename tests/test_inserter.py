from __future__ import annotations

import pytest

from i18n_codemod.errors import ReplacementPositionError
from i18n_codemod.inserter import ensure_imports, leading_insertion_point, scan_imports
from i18n_codemod.models import AccessorRequirement, ImportRequirement

HOOK = ImportRequirement(source="react-i18next", name="useTranslation")


def _acquire(code: str, marker: str) -> AccessorRequirement:
    return AccessorRequirement(
        owner_start=code.index(marker),
        accessor_name="t",
        hook_source="react-i18next",
        hook_name="useTranslation",
    )


def test_new_import_goes_to_top_of_file() -> None:
    code = "const a = 1;\n"
    out = ensure_imports(code, [ImportRequirement(source="i18next", name="t")], [], "javascript")
    assert out == 'import { t } from "i18next";\nconst a = 1;\n'


def test_new_import_follows_existing_style() -> None:
    code = "import React from 'react'\nconst a = 1\n"
    out = ensure_imports(code, [ImportRequirement(source="i18next", name="t")], [], "javascript")
    assert out == "import React from 'react'\nimport { t } from 'i18next'\nconst a = 1\n"


def test_missing_name_merges_into_existing_import() -> None:
    code = 'import { Trans } from "react-i18next";\nconst a = 1;\n'
    out = ensure_imports(code, [HOOK], [], "javascript")
    assert out == 'import { Trans, useTranslation } from "react-i18next";\nconst a = 1;\n'


def test_present_import_is_not_duplicated() -> None:
    code = 'import { useTranslation } from "react-i18next";\nconst a = 1;\n'
    assert ensure_imports(code, [HOOK, HOOK], [], "javascript") == code


def test_type_only_import_does_not_count() -> None:
    code = 'import type { TFunction } from "i18next";\nconst a = 1;\n'
    requirement = ImportRequirement(source="i18next", name="TFunction")
    out = ensure_imports(code, [requirement], [], "typescript")
    assert out.count("import") == 2


def test_import_goes_after_directives() -> None:
    code = '"use client";\nexport default function A() {\n  return <p>{t("x")}</p>;\n}\n'
    out = ensure_imports(code, [HOOK], [_acquire(code, "function")], "javascript")
    assert out == (
        '"use client";\n'
        'import { useTranslation } from "react-i18next";\n'
        "export default function A() {\n"
        "  const { t } = useTranslation();\n"
        '  return <p>{t("x")}</p>;\n'
        "}\n"
    )


def test_acquisition_uses_existing_alias() -> None:
    code = (
        'import { useTranslation as useT } from "react-i18next";\n'
        "function A() {\n"
        '  return <p>{t("x")}</p>;\n'
        "}\n"
    )
    out = ensure_imports(code, [HOOK], [_acquire(code, "function")], "javascript")
    assert "  const { t } = useT();\n" in out
    assert out.count("import") == 1


def test_existing_acquisition_is_kept() -> None:
    code = (
        'import { useTranslation } from "react-i18next";\n'
        "function A() {\n"
        "  const { t } = useTranslation();\n"
        '  return <p>{t("x")}</p>;\n'
        "}\n"
    )
    assert ensure_imports(code, [HOOK], [_acquire(code, "function")], "javascript") == code


def test_expression_bodied_arrow_gets_a_block() -> None:
    code = 'const A = () => <p>{t("x")}</p>;\n'
    out = ensure_imports(code, [HOOK], [_acquire(code, "()")], "javascript")
    assert out == (
        'import { useTranslation } from "react-i18next";\n'
        "const A = () => {\n"
        "  const { t } = useTranslation();\n"
        '  return <p>{t("x")}</p>;\n'
        "};\n"
    )


def test_acquisition_matches_body_indentation() -> None:
    code = "function A() {\n    const x = 1;\n    return <p>{x}</p>;\n}\n"
    out = ensure_imports(code, [], [_acquire(code, "function")], "javascript")
    assert out == (
        "function A() {\n"
        "    const { t } = useTranslation();\n"
        "    const x = 1;\n"
        "    return <p>{x}</p>;\n"
        "}\n"
    )


def test_unknown_owner_is_an_error() -> None:
    code = "const a = 1;\n"
    requirement = AccessorRequirement(
        owner_start=3,
        accessor_name="t",
        hook_source="react-i18next",
        hook_name="useTranslation",
    )
    with pytest.raises(ReplacementPositionError):
        ensure_imports(code, [], [requirement], "javascript")


def test_scan_imports_reads_bindings(parse) -> None:
    source, root = parse(
        'import React, { useState as useS } from "react";\nimport * as i18n from "./i18n";\n'
    )
    react, local = scan_imports(source, root)
    assert react.default == "React"
    assert react.named == {"useState": "useS"}
    assert local.namespace == "i18n"
    assert leading_insertion_point(source, root) == len(source.text) - 1
