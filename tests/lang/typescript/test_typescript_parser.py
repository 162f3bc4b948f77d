import pytest

from tsapi.errors import MalformedModuleError
from tsapi.lang.typescript import ExportAccumulator, parse_typescript_file
from tsapi.models import (
    BarrelExport,
    DefaultImport,
    ModuleExport,
    ModuleImport,
    NamedExport,
    NamedImport,
    Namespace,
    NamespaceExport,
    NamespaceImport,
    Symbol,
    SymbolKind,
)


# --------------------------------------------------------------------------- #
# Helpers
# --------------------------------------------------------------------------- #
def _only(symbols):
    assert len(symbols) == 1
    return symbols[0]


def _kinds(symbols):
    return [s.kind for s in symbols]


# --------------------------------------------------------------------------- #
# Module
# --------------------------------------------------------------------------- #
def test_empty_file():
    module = parse_typescript_file("", "/test/empty.ts")

    assert module.path == "/test/empty.ts"
    assert module.jsdoc is None
    assert module.symbols == []
    assert module.default_export_name is None


def test_malformed_file():
    with pytest.raises(MalformedModuleError) as exc:
        parse_typescript_file("class {")

    assert str(exc.value).startswith("Failed to parse source file")
    assert "line 1" in str(exc.value)


def test_file_path_is_preserved():
    module = parse_typescript_file("const foo = 42;", "/test/file/path.ts")
    assert module.path == "/test/file/path.ts"


def test_parsing_is_idempotent():
    content = (
        "/** @module api */\n"
        "import { A } from './a';\n"
        "/** Doc */\n"
        "export declare function f(a: A): void;\n"
        "export { A as B } from './a';\n"
        "export namespace N { export declare const v: string; }\n"
    )
    assert parse_typescript_file(content, "x.d.ts") == parse_typescript_file(
        content, "x.d.ts"
    )


@pytest.mark.parametrize("tag", ["@file", "@fileoverview", "@module"])
def test_module_jsdoc_tags(tag):
    comment = f"/** {tag} Description of the file */"
    module = parse_typescript_file(f"{comment}\ndeclare const foo = 42;")
    assert module.jsdoc == comment


@pytest.mark.parametrize(
    "content",
    [
        "/** Just a comment */\ndeclare const foo = 42;",
        "/* @module Just a comment */\ndeclare const foo = 42;",
        "// @module Just a comment\ndeclare const foo = 42;",
    ],
)
def test_no_module_jsdoc(content):
    assert parse_typescript_file(content).jsdoc is None


# --------------------------------------------------------------------------- #
# Declarations
# --------------------------------------------------------------------------- #
@pytest.mark.parametrize(
    "content, name",
    [
        ("declare class Foo { bar(): void; }", "Foo"),
        ("declare abstract class Foo { bar(): void; }", "Foo"),
        ("type Bar = string;", "Bar"),
        ("interface Baz { qux: number; }", "Baz"),
        ("enum Status { Active, Inactive }", "Status"),
        ("declare function greet(name: string): void;", "greet"),
        ("declare const VERSION: string;", "VERSION"),
        ("declare let counter: number;", "counter"),
        ("declare var legacy: number;", "legacy"),
    ],
)
def test_declaration(content, name):
    sym = _only(parse_typescript_file(content).symbols)

    assert isinstance(sym, Symbol)
    assert sym.name == name
    assert sym.source_code == content
    assert sym.is_exported is False


def test_exported_interface():
    content = "export interface Person { name: string; }"
    sym = _only(parse_typescript_file(content).symbols)

    assert sym.name == "Person"
    assert sym.is_exported is True
    assert sym.source_code == content


def test_symbol_with_jsdoc():
    content = "/** The version number */\ndeclare const VERSION: string;"
    sym = _only(parse_typescript_file(content).symbols)
    assert sym.source_code == content


def test_symbol_with_preceding_module_jsdoc():
    content = "/** @module The module description */\ndeclare const VERSION: string;"
    sym = _only(parse_typescript_file(content).symbols)
    assert sym.source_code == "declare const VERSION: string;"


def test_symbol_with_preceding_non_jsdoc_comment():
    content = "// The comment\ndeclare const VERSION: string;"
    sym = _only(parse_typescript_file(content).symbols)
    assert sym.source_code == "declare const VERSION: string;"


def test_export_and_declaration():
    content = "export declare function greet(name: string): void;"
    sym = _only(parse_typescript_file(content).symbols)

    assert sym.name == "greet"
    assert sym.is_exported is True
    assert sym.source_code == content


def test_default_export_and_declaration():
    content = "export default declare function greet(name: string): void;"
    module = parse_typescript_file(content)

    assert module.default_export_name == "greet"
    sym = _only(module.symbols)
    assert sym.name == "greet"
    assert sym.is_exported is True
    assert sym.source_code == content


def test_multiple_declarators_share_source():
    content = "declare const a: number, b: string;"
    symbols = parse_typescript_file(content).symbols

    assert [s.name for s in symbols] == ["a", "b"]
    assert all(s.source_code == content for s in symbols)


def test_source_code_is_substring_with_unicode():
    content = "// héllo wörld\n/** Grüße */\nexport declare const greeting: 'ünïcode';\n"
    sym = _only(parse_typescript_file(content).symbols)

    assert sym.source_code == "/** Grüße */\nexport declare const greeting: 'ünïcode';"
    assert sym.source_code in content


def test_function_body_locals_are_not_symbols():
    content = (
        "export function greet(name: string): string {\n"
        "  const prefix = 'Hello ';\n"
        "  return prefix + name;\n"
        "}"
    )
    sym = _only(parse_typescript_file(content, "impl.ts").symbols)

    assert sym.name == "greet"
    assert sym.is_exported is True
    assert sym.source_code == content



def test_for_loop_variables_are_not_symbols():
    content = (
        "for (let i = 0; i < 3; i++) {\n"
        "  const doubled = i * 2;\n"
        "}\n"
        "export const total = 3;\n"
    )
    symbols = parse_typescript_file(content, "impl.ts").symbols

    assert [s.name for s in symbols] == ["total"]


def test_global_augmentation_declarations_are_kept():
    content = (
        "declare global {\n"
        "  interface Window { foo: string }\n"
        "  const APP_VERSION: string;\n"
        "}\n"
        "export {};\n"
    )
    symbols = parse_typescript_file(content, "globals.d.ts").symbols

    assert [s.name for s in symbols] == ["Window", "APP_VERSION"]
    window = symbols[0]
    assert isinstance(window, Symbol)
    assert window.source_code == "interface Window { foo: string }"
    assert window.is_exported is False

# --------------------------------------------------------------------------- #
# Namespaces
# --------------------------------------------------------------------------- #
def test_empty_namespace():
    ns = _only(parse_typescript_file("namespace Foo {}").symbols)

    assert isinstance(ns, Namespace)
    assert ns.name == "Foo"
    assert ns.content == []
    assert ns.is_exported is False
    assert ns.jsdoc is None


def test_namespace_with_symbols():
    content = "namespace Foo { declare const VERSION: string; declare function greet(): void; }"
    ns = _only(parse_typescript_file(content).symbols)

    assert [s.name for s in ns.content] == ["VERSION", "greet"]


def test_exported_namespace():
    ns = _only(
        parse_typescript_file(
            "export namespace Foo { declare const VERSION: string; }"
        ).symbols
    )
    assert ns.name == "Foo"
    assert ns.is_exported is True


def test_namespace_with_inner_namespace():
    content = "namespace Foo { namespace Bar { export declare const V: string; } }"
    outer = _only(parse_typescript_file(content).symbols)

    assert isinstance(outer, Namespace)
    assert outer.name == "Foo"
    assert outer.is_exported is False

    inner = _only(outer.content)
    assert isinstance(inner, Namespace)
    assert inner.name == "Bar"
    assert inner.is_exported is False

    sym = _only(inner.content)
    assert isinstance(sym, Symbol)
    assert sym.name == "V"
    assert sym.is_exported is True
    assert sym.source_code == "export declare const V: string;"


def test_namespace_with_jsdoc():
    content = "/** Utility functions */\nnamespace Foo { declare const VERSION: string; }"
    ns = _only(parse_typescript_file(content).symbols)
    assert ns.jsdoc == "/** Utility functions */"


def test_namespace_body_stays_out_of_top_level():
    content = (
        "namespace Foo {\n"
        "  import { A } from './a';\n"
        "  declare const C: string;\n"
        "  export { C };\n"
        "}\n"
    )
    module = parse_typescript_file(content)

    ns = _only(module.symbols)
    assert isinstance(ns, Namespace)
    assert _kinds(ns.content) == [
        SymbolKind.MODULE_IMPORT,
        SymbolKind.SYMBOL,
        SymbolKind.MODULE_EXPORT,
    ]
    assert ns.content[0].source_module == "./a"
    assert ns.content[2].source_module is None


# --------------------------------------------------------------------------- #
# Imports
# --------------------------------------------------------------------------- #
def test_default_import():
    imp = _only(parse_typescript_file("import foo from './foo.js';").symbols)

    assert isinstance(imp, ModuleImport)
    assert imp.source_module == "./foo.js"
    assert imp.target == DefaultImport(name="foo")


def test_namespace_import():
    imp = _only(parse_typescript_file("import * as foo from './foo.js';").symbols)
    assert imp.target == NamespaceImport(name="foo")


def test_named_import_with_alias():
    imp = _only(parse_typescript_file("import { foo, bar as baz } from './foo.js';").symbols)
    assert imp.target == NamedImport(names=["foo", "bar"], aliases={"bar": "baz"})


def test_mixed_import():
    symbols = parse_typescript_file("import foo, { bar } from './foo.js';").symbols

    assert len(symbols) == 2
    assert symbols[0] == ModuleImport(
        source_module="./foo.js", target=DefaultImport(name="foo")
    )
    assert symbols[1] == ModuleImport(
        source_module="./foo.js", target=NamedImport(names=["bar"], aliases={})
    )


def test_import_then_declaration():
    content = "import { Bar } from './bar';\nexport const foo: string;"
    symbols = parse_typescript_file(content).symbols

    assert symbols[0] == ModuleImport(
        source_module="./bar", target=NamedImport(names=["Bar"], aliases={})
    )
    assert isinstance(symbols[1], Symbol)
    assert symbols[1].name == "foo"
    assert symbols[1].is_exported is True
    assert len(symbols) == 2


# --------------------------------------------------------------------------- #
# Exports
# --------------------------------------------------------------------------- #
def test_namespace_export_from_another_module():
    exp = _only(parse_typescript_file("export * as foo from './foo.js';").symbols)

    assert isinstance(exp, ModuleExport)
    assert exp.source_module == "./foo.js"
    assert exp.target == NamespaceExport(name="foo")


def test_barrel_export_from_another_module():
    exp = _only(parse_typescript_file("export * from './foo.js';").symbols)

    assert exp.source_module == "./foo.js"
    assert exp.target == BarrelExport()


def test_named_export_from_another_module():
    exp = _only(
        parse_typescript_file("export { foo, bar as baz } from './module.js';").symbols
    )
    assert exp.source_module == "./module.js"
    assert exp.target == NamedExport(names=["foo", "bar"], aliases={"bar": "baz"})


def test_symbol_export():
    exp = _only(parse_typescript_file("\nexport { VERSION };").symbols)

    assert exp.source_module is None
    assert exp.target == NamedExport(names=["VERSION"], aliases={})


def test_commonjs_export():
    exp = _only(parse_typescript_file("export = myFunction;").symbols)

    assert exp.source_module is None
    assert exp.target == NamedExport(names=["myFunction"], aliases={})


def test_default_export():
    module = parse_typescript_file("export default VERSION;")

    assert module.default_export_name == "VERSION"
    assert module.symbols == []


def test_exports_from_multiple_modules():
    content = "export { foo } from './foo.js';\nexport { bar } from './bar.js';"
    symbols = parse_typescript_file(content).symbols

    assert symbols == [
        ModuleExport(source_module="./foo.js", target=NamedExport(names=["foo"])),
        ModuleExport(source_module="./bar.js", target=NamedExport(names=["bar"])),
    ]


def test_consecutive_local_export_statements_stay_separate():
    content = "export { a, b };\nexport { c };"
    symbols = parse_typescript_file(content).symbols

    assert [s.target.names for s in symbols] == [["a", "b"], ["c"]]



def test_comment_after_last_specifier_ends_statement():
    content = "export { a /* first */ };\nexport { b };"
    symbols = parse_typescript_file(content).symbols

    assert [s.target.names for s in symbols] == [["a"], ["b"]]

# --------------------------------------------------------------------------- #
# Ordering
# --------------------------------------------------------------------------- #
def test_symbols_are_grouped_by_category():
    content = (
        "export { a };\n"
        "declare const a: number;\n"
        "import { y } from './y';\n"
        "export * from './z';\n"
        "interface I {}\n"
        "import x from './x';\n"
        "namespace N {}\n"
    )
    symbols = parse_typescript_file(content).symbols

    assert _kinds(symbols) == [
        SymbolKind.MODULE_IMPORT,
        SymbolKind.MODULE_IMPORT,
        SymbolKind.SYMBOL,
        SymbolKind.SYMBOL,
        SymbolKind.NAMESPACE,
        SymbolKind.MODULE_EXPORT,
        SymbolKind.MODULE_EXPORT,
    ]
    # source order within each category
    assert [s.source_module for s in symbols[:2]] == ["./y", "./x"]
    assert [s.name for s in symbols[2:4]] == ["a", "I"]
    assert symbols[5].source_module is None
    assert symbols[6].target == BarrelExport()


# --------------------------------------------------------------------------- #
# Export accumulator
# --------------------------------------------------------------------------- #
def test_accumulator_groups_names_until_statement_ends():
    acc = ExportAccumulator()
    acc.add("foo", None, "./m")
    acc.add("bar", "baz", "./m")
    acc.end_statement()

    assert acc.finish() == [
        ModuleExport(
            source_module="./m",
            target=NamedExport(names=["foo", "bar"], aliases={"bar": "baz"}),
        )
    ]


def test_accumulator_flushes_on_source_change():
    acc = ExportAccumulator()
    acc.add("foo", None, "./a")
    acc.add("bar", None, "./b")

    exports = acc.finish()
    assert [(e.source_module, e.target.names) for e in exports] == [
        ("./a", ["foo"]),
        ("./b", ["bar"]),
    ]


def test_accumulator_empty_flush_is_noop():
    acc = ExportAccumulator()
    acc.flush()
    acc.end_statement()

    assert acc.finish() == []
    assert acc.current_source is None
