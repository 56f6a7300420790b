from __future__ import annotations

from i18n_codemod.config import CodemodOptions, I18nImport, PlainImport, normalize_options
from i18n_codemod.context import AccessorScope, ContextDetector, ContextInfo, convention_for
from i18n_codemod.models import ImportRequirement


def _options(**kwargs) -> CodemodOptions:
    return normalize_options(CodemodOptions(**kwargs))[0]


def _classify(parse, find_node, code: str, literal: str, dialect: str = "javascript"):
    source, root = parse(code, dialect)
    node = find_node(source, root, "string", literal)
    return ContextDetector(source, _options()).classify(node), source


def test_function_returning_markup_is_a_component(parse, find_node) -> None:
    code = 'function Card() {\n  const title = "___A___";\n  return <h1>{title}</h1>;\n}\n'
    info, _ = _classify(parse, find_node, code, "___A___")
    assert info.scope is AccessorScope.COMPONENT
    assert info.function_name == "Card"
    assert info.owner_start == 0


def test_expression_bodied_arrow_component(parse, find_node) -> None:
    code = 'const Badge = memo(() => <span title={"___B___"} />);\n'
    info, _ = _classify(parse, find_node, code, "___B___")
    assert info.scope is AccessorScope.COMPONENT
    assert info.function_name == "Badge"
    assert info.owner_start == code.index("()")


def test_use_prefixed_function_is_a_hook(parse, find_node) -> None:
    code = 'function useTitle() {\n  return "___T___";\n}\n'
    info, _ = _classify(parse, find_node, code, "___T___")
    assert info.scope is AccessorScope.HOOK
    assert info.function_name == "useTitle"


def test_lowercase_after_prefix_is_not_a_hook(parse, find_node) -> None:
    code = 'function user() {\n  return "___T___";\n}\n'
    info, _ = _classify(parse, find_node, code, "___T___")
    assert info.scope is AccessorScope.PLAIN


def test_module_level_site_is_plain(parse, find_node) -> None:
    info, _ = _classify(parse, find_node, 'export const LABEL = "___L___";\n', "___L___")
    assert info == ContextInfo(scope=AccessorScope.PLAIN)


def test_nested_helper_inherits_component_owner(parse, find_node) -> None:
    code = (
        "function List() {\n"
        '  const label = () => "___Item___";\n'
        "  return <ul>{label()}</ul>;\n"
        "}\n"
    )
    info, _ = _classify(parse, find_node, code, "___Item___")
    assert info.scope is AccessorScope.COMPONENT
    assert info.function_name == "List"
    assert info.owner_start == 0


def test_class_methods_stay_plain(parse, find_node) -> None:
    code = 'class A {\n  render() { return <p>{"___x___"}</p>; }\n}\n'
    info, _ = _classify(parse, find_node, code, "___x___")
    assert info.scope is AccessorScope.PLAIN


def test_component_convention_requires_hook_and_acquisition() -> None:
    options = _options()
    info = ContextInfo(scope=AccessorScope.COMPONENT, owner_start=7)
    convention = convention_for(info, options)
    assert convention.call_name == "t"
    hook = ImportRequirement(source="react-i18next", name="useTranslation")
    assert convention.imports == (hook,)
    assert convention.acquisition is not None
    assert convention.acquisition.owner_start == 7
    assert convention.acquisition.hook_name == "useTranslation"


def test_plain_namespace_convention() -> None:
    options = _options(plain_import=PlainImport(import_type="namespace", source="@/i18n"))
    convention = convention_for(ContextInfo(scope=AccessorScope.PLAIN), options)
    assert convention.call_name == "i18n.t"
    assert convention.imports == (
        ImportRequirement(source="@/i18n", name="i18n", kind="namespace"),
    )
    assert convention.acquisition is None


def test_no_import_convention_uses_global_function() -> None:
    options = _options(i18n_import=I18nImport(no_import=True, global_function="$t"))
    for scope in AccessorScope:
        convention = convention_for(ContextInfo(scope=scope, owner_start=0), options)
        assert convention.call_name == "$t"
        assert convention.imports == ()
        assert convention.acquisition is None


def test_vue_setup_method_owns_the_acquisition(parse, find_node) -> None:
    code = 'export default {\n  setup() {\n    return { m: "___M___" };\n  },\n};\n'
    source, root = parse(code)
    node = find_node(source, root, "string", "___M___")
    info = ContextDetector(source, _options(framework="vue")).classify(node)
    assert info.scope is AccessorScope.HOOK
    assert info.owner_start == code.index("setup")


def test_plain_vue_code_uses_module_hook_acquisition() -> None:
    convention = convention_for(ContextInfo(scope=AccessorScope.PLAIN), _options(framework="vue"))
    assert convention.imports == (ImportRequirement(source="vue-i18n", name="useI18n"),)
    assert convention.acquisition is not None
    assert convention.acquisition.owner_start is None


def test_custom_namespace_import_convention() -> None:
    options = _options(
        plain_import=PlainImport(
            function_name="translate", custom_import='import * as i18n from "global-i18n";'
        )
    )
    convention = convention_for(ContextInfo(scope=AccessorScope.PLAIN), options)
    assert convention.call_name == "i18n.translate"
    (requirement,) = convention.imports
    assert requirement.kind == "namespace"
    assert requirement.statement == 'import * as i18n from "global-i18n";'
