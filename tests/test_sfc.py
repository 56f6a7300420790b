from __future__ import annotations

import pytest

from i18n_codemod.config import CodemodOptions, I18nImport
from i18n_codemod.errors import SfcError
from i18n_codemod.processor import process_code
from i18n_codemod.sfc import assemble_sfc, attribute_literal, split_sfc

SETUP_SFC = """<template>
  <div title="___Hello___">___Welcome___</div>
</template>


<script setup>
const msg = "___Hi___";
</script>

<style scoped>
.a { color: red; }
</style>
"""


def test_split_finds_blocks_and_nested_templates() -> None:
    code = (
        '<template>\n  <div><template v-if="a">x</template></div>\n</template>\n'
        '<script setup lang="ts">\nconst a = 1\n</script>\n'
    )
    template, script = split_sfc(code)
    assert template.name == "template"
    assert template.content == '\n  <div><template v-if="a">x</template></div>\n'
    assert script.setup
    assert script.lang == "ts"
    assert script.content == "\nconst a = 1\n"


def test_unclosed_block_is_an_error() -> None:
    with pytest.raises(SfcError):
        split_sfc("<template>\n  <div></div>\n")


def test_assemble_without_edits_is_identity() -> None:
    blocks = split_sfc(SETUP_SFC)
    assert assemble_sfc(SETUP_SFC, blocks, {}) == SETUP_SFC
    assert assemble_sfc(SETUP_SFC, blocks, {2: "\n"}).endswith("<style scoped>\n</style>\n")


def test_attribute_literal_cannot_close_attribute() -> None:
    assert attribute_literal("Hello", '"') == "'Hello'"
    assert attribute_literal('Say "hi"', '"') == "'Say \\u0022hi\\u0022'"
    assert attribute_literal("It's", "'") == '"It\\u0027s"'
    assert attribute_literal(3, '"') == "3"


def test_setup_component_uses_composition_api() -> None:
    result = process_code(SETUP_SFC, "Hello.vue")
    assert result.error is None
    assert result.code == (
        "<template>\n"
        '  <div :title="t(\'Hello\')">{{ t("Welcome") }}</div>\n'
        "</template>\n"
        "\n"
        "\n"
        "<script setup>\n"
        'import { useI18n } from "vue-i18n";\n'
        "const { t } = useI18n();\n"
        'const msg = t("Hi");\n'
        "</script>\n"
        "\n"
        "<style scoped>\n"
        ".a { color: red; }\n"
        "</style>\n"
    )
    assert [e.value for e in result.extracted_strings] == ["Hello", "Welcome", "Hi"]
    assert [c.line for c in result.changes] == [2, 2, 7]


def test_template_without_setup_uses_global_accessor() -> None:
    code = (
        "<template>\n"
        "  <p>___Hi {name}___</p>\n"
        "</template>\n"
        "<script>\n"
        'export default { name: "A" }\n'
        "</script>\n"
    )
    result = process_code(code, "A.vue")
    assert '<p>{{ $t("Hi {name}", { name }) }}</p>' in result.code
    assert 'export default { name: "A" }' in result.code
    assert "import" not in result.code


def test_bound_attributes_and_mustache_strings() -> None:
    code = (
        "<template>\n"
        "  <btn :label=\"'___Save___'\">{{ ok ? \"___Yes___\" : t(\"no\") }}</btn>\n"
        "</template>\n"
        "<script setup>\n"
        "const ok = true\n"
        "</script>\n"
    )
    result = process_code(code, "B.vue")
    assert "<btn :label=\"t('Save')\">{{ ok ? t(\"Yes\") : t(\"no\") }}</btn>" in result.code
    assert "const { t } = useI18n()" in result.code


def test_typescript_setup_script() -> None:
    code = '<script setup lang="ts">\nconst s: string = "___Hi___"\n</script>\n'
    result = process_code(code, "C.vue")
    assert 'const s: string = t("Hi")' in result.code


def test_broken_script_leaves_file_untouched() -> None:
    code = "<template>\n  <p>___Hi___</p>\n</template>\n<script setup>\nconst = 1\n</script>\n"
    result = process_code(code, "D.vue")
    assert result.code == code
    assert result.error is not None
    assert result.error.code == "PARSING001"


def test_options_api_script_acquires_accessor_from_hook() -> None:
    code = '<script>\nexport default { data() { return { m: "___M___" } } }\n</script>\n'
    result = process_code(code, "C.vue")
    assert result.error is None
    assert result.code == (
        "<script>\n"
        'import { useI18n } from "vue-i18n";\n'
        "const { t } = useI18n();\n"
        'export default { data() { return { m: t("M") } } }\n'
        "</script>\n"
    )


def test_options_api_setup_gets_the_acquisition() -> None:
    code = (
        "<script>\n"
        "export default {\n"
        "  setup() {\n"
        '    return { m: "___M___" };\n'
        "  },\n"
        "};\n"
        "</script>\n"
    )
    result = process_code(code, "C.vue")
    assert result.code == (
        "<script>\n"
        'import { useI18n } from "vue-i18n";\n'
        "export default {\n"
        "  setup() {\n"
        "    const { t } = useI18n();\n"
        '    return { m: t("M") };\n'
        "  },\n"
        "};\n"
        "</script>\n"
    )


def test_script_function_override_for_options_api() -> None:
    options = CodemodOptions(
        framework="vue",
        i18n_import=I18nImport(
            name="t", import_name="useI18n", source="vue-i18n", script_function="this.$t"
        ),
    )
    code = '<script>\nexport default { data() { return { m: "___M___" } } }\n</script>\n'
    result = process_code(code, "C.vue", options)
    assert 'm: this.$t("M")' in result.code
    assert "import" not in result.code
