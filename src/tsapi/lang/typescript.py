from typing import Dict, List, Optional

import tree_sitter as ts

from tsapi.errors import MalformedModuleError
from tsapi.logger import logger
from tsapi.models import (
    BarrelExport,
    DefaultImport,
    Module,
    ModuleExport,
    ModuleImport,
    NamedExport,
    NamedImport,
    Namespace,
    NamespaceExport,
    NamespaceImport,
    Symbol,
    TypeScriptSymbol,
)
from tsapi.parsers import (
    ParsedSource,
    QueryMatch,
    first_capture,
    make_query,
    parse_source,
    run_query,
)

DEFAULT_EXPORT_QUERY = r"""
; Default export of an identifier
(export_statement
  "default"
  value: (identifier) @name)

; Default export of an ambient declaration
(export_statement
  "default"
  (ambient_declaration
    "declare"
    (_
      name: (_) @name)))
"""

SYMBOLS_QUERY = r"""
(class_declaration
  name: (type_identifier) @name) @declaration

(abstract_class_declaration
  name: (type_identifier) @name) @declaration

(interface_declaration
  name: (type_identifier) @name) @declaration

(function_signature
  name: (identifier) @name) @declaration

(function_declaration
  name: (identifier) @name) @declaration

(type_alias_declaration
  name: (type_identifier) @name) @declaration

(enum_declaration
  name: (identifier) @name) @declaration

(lexical_declaration
  (variable_declarator
    name: (identifier) @name)) @declaration

(variable_declaration
  (variable_declarator
    name: (identifier) @name)) @declaration
"""

NAMESPACES_QUERY = r"""
(internal_module
  name: [(identifier) (nested_identifier) (string)] @name
  body: (statement_block) @body)

(module
  name: [(identifier) (nested_identifier) (string)] @name
  body: (statement_block) @body)
"""

IMPORTS_QUERY = r"""
(import_statement
  (import_clause) @target
  source: (string
    (string_fragment) @source))
"""

EXPORTS_QUERY = r"""
; Named exports, with or without source
(export_statement
  (export_clause
    (export_specifier
      name: (identifier) @name
      alias: (identifier)? @alias))
  source: (string
    (string_fragment) @source)?)

; CommonJS
(export_statement
  "="
  (identifier) @name)

; Namespace re-export
(export_statement
  (namespace_export
    "*"
    "as"
    (identifier) @name)
  source: (string (string_fragment) @source))

; Barrel re-export
(export_statement
  "*"
  source: (string (string_fragment) @source)) @barrel_export
"""

MODULE_DOC_TAGS = ("@file", "@fileoverview", "@module")

_NAMESPACE_NODES = ("internal_module", "module")
_LOOP_NODES = ("for_statement", "for_in_statement")


def is_module_jsdoc(comment: str) -> bool:
    return any(tag in comment for tag in MODULE_DOC_TAGS)


def get_jsdoc(node: Optional[ts.Node], parsed: ParsedSource) -> Optional[str]:
    """Return the text of *node* if it is a `/** ... */` comment."""
    if node is None or node.type != "comment":
        return None
    text = parsed.render_node(node)
    if not text.startswith("/**"):
        return None
    return text


def _in_source_order(matches: List[QueryMatch]) -> List[QueryMatch]:
    def _start(match: QueryMatch) -> int:
        return min(n.start_byte for nodes in match[1].values() for n in nodes)

    return sorted(matches, key=_start)


def _unquote(text: str) -> str:
    if len(text) >= 2 and text[0] == text[-1] and text[0] in ("'", '"', "`"):
        return text[1:-1]
    return text


def _is_global_block(node: ts.Node) -> bool:
    return node.parent is not None and node.parent.type == "ambient_declaration"


def _next_specifier(node: ts.Node) -> Optional[ts.Node]:
    sibling = node.next_named_sibling
    while sibling is not None and sibling.type != "export_specifier":
        sibling = sibling.next_named_sibling
    return sibling


class ExportAccumulator:
    """
    Collects named-export specifiers into `ModuleExport` entries.

    The query layer reports one match per specifier, so names are buffered
    together with their aliases and source module and flushed into a single
    `NamedExport` when the source module changes, on a CommonJS `export =`,
    or after the last specifier of a statement.
    """

    def __init__(self) -> None:
        self.current_names: List[str] = []
        self.current_aliases: Dict[str, str] = {}
        self.current_source: Optional[str] = None
        self.exports: List[ModuleExport] = []

    def emit(self, export: ModuleExport) -> None:
        self.exports.append(export)

    def add(self, name: str, alias: Optional[str], source: Optional[str]) -> None:
        if source != self.current_source:
            self.flush()
            self.current_source = source
        self.current_names.append(name)
        if alias is not None:
            self.current_aliases[name] = alias

    def flush(self) -> None:
        if not self.current_names:
            return
        self.exports.append(
            ModuleExport(
                source_module=self.current_source,
                target=NamedExport(
                    names=self.current_names, aliases=self.current_aliases
                ),
            )
        )
        self.current_names = []
        self.current_aliases = {}

    def end_statement(self) -> None:
        self.flush()
        self.current_source = None

    def finish(self) -> List[ModuleExport]:
        self.end_statement()
        return self.exports


class SymbolExtractor:
    """
    Maps one syntax tree (a file or a namespace body) to its imports,
    declarations, namespaces and exports.
    """

    def __init__(self, parsed: ParsedSource) -> None:
        self.parsed = parsed
        self._symbols_query = make_query(SYMBOLS_QUERY)
        self._namespaces_query = make_query(NAMESPACES_QUERY)
        self._imports_query = make_query(IMPORTS_QUERY)
        self._exports_query = make_query(EXPORTS_QUERY)
        self._default_export_query = make_query(DEFAULT_EXPORT_QUERY)

    def extract(self, root: ts.Node) -> List[TypeScriptSymbol]:
        symbols: List[TypeScriptSymbol] = []
        symbols.extend(self.extract_imports(root))
        symbols.extend(self.extract_declarations(root))
        symbols.extend(self.extract_namespaces(root))
        symbols.extend(self.extract_exports(root))
        return symbols

    # --- helpers ----------------------------------------------------
    def _is_nested(self, node: ts.Node, root: ts.Node) -> bool:
        """
        True when *node* lives inside a namespace, a local block or a loop
        header below *root*. Namespace bodies are collected by recursion. The
        body of `declare global { ... }` is not a local block.
        """
        cur = node.parent
        while cur is not None and cur.id != root.id:
            if cur.type in _NAMESPACE_NODES or cur.type in _LOOP_NODES:
                return True
            if cur.type == "statement_block" and not _is_global_block(cur):
                return True
            cur = cur.parent
        return False

    def _enclosing_statement(self, node: ts.Node, root: ts.Node) -> ts.Node:
        cur = node
        while cur.parent is not None and cur.parent.id != root.id:
            cur = cur.parent
        return cur

    def _widen(self, node: ts.Node) -> tuple[ts.Node, bool]:
        """
        Widen a declaration node to its `declare` wrapper and then to its
        `export` statement. Returns the widened node and whether it is exported.
        """
        parent = node.parent
        if parent is not None and parent.type == "ambient_declaration":
            node = parent
        parent = node.parent
        if parent is not None and parent.type == "export_statement":
            return parent, True
        return node, False

    def _require(self, match: QueryMatch, capture: str, context: str) -> ts.Node:
        node = first_capture(match, capture)
        if node is None:
            raise MalformedModuleError(f"Missing {capture} node in {context}")
        return node

    def _identifier_text(self, node: Optional[ts.Node], context: str) -> str:
        if node is None:
            raise MalformedModuleError(f"Failed to get identifier in {context}")
        text = self.parsed.render_node(node)
        if node.type == "string":
            text = _unquote(text)
        if not text:
            raise MalformedModuleError(f"Empty identifier in {context}")
        return text

    # --- declarations -----------------------------------------------
    def extract_declarations(self, root: ts.Node) -> List[Symbol]:
        symbols: List[Symbol] = []
        matches = _in_source_order(run_query(self._symbols_query, root))
        for match in matches:
            name_node = self._require(match, "name", "symbol declaration")
            definition = self._require(match, "declaration", "symbol declaration")

            if self._is_nested(definition, root):
                continue

            name = self._identifier_text(name_node, "symbol declaration")
            definition, is_exported = self._widen(definition)

            # Include an immediately preceding JSDoc unless it documents the file.
            start_byte = definition.start_byte
            previous = definition.prev_sibling
            jsdoc = get_jsdoc(previous, self.parsed)
            if previous is not None and jsdoc and not is_module_jsdoc(jsdoc):
                start_byte = previous.start_byte

            symbols.append(
                Symbol(
                    name=name,
                    source_code=self.parsed.render(start_byte, definition.end_byte),
                    is_exported=is_exported,
                )
            )
        return symbols

    # --- namespaces -------------------------------------------------
    def extract_namespaces(self, root: ts.Node) -> List[Namespace]:
        namespaces: List[Namespace] = []
        matches = _in_source_order(run_query(self._namespaces_query, root))
        for match in matches:
            name_node = self._require(match, "name", "namespace")
            body = self._require(match, "body", "namespace")
            namespace_node = name_node.parent
            if namespace_node is None:
                raise MalformedModuleError("Namespace name has no parent node")

            if self._is_nested(namespace_node, root):
                continue

            name = self._identifier_text(name_node, "namespace")
            content = self.extract(body)
            _, is_exported = self._widen(namespace_node)

            statement = self._enclosing_statement(namespace_node, root)
            jsdoc = get_jsdoc(statement.prev_sibling, self.parsed)

            namespaces.append(
                Namespace(
                    name=name,
                    jsdoc=jsdoc,
                    content=content,
                    is_exported=is_exported,
                )
            )
        return namespaces

    # --- imports ----------------------------------------------------
    def extract_imports(self, root: ts.Node) -> List[ModuleImport]:
        imports: List[ModuleImport] = []
        matches = _in_source_order(run_query(self._imports_query, root))
        for match in matches:
            source_node = self._require(match, "source", "import")
            clause = self._require(match, "target", "import")
            if clause.parent is not None and self._is_nested(clause.parent, root):
                continue

            source_module = self.parsed.render_node(source_node)
            for child in clause.children:
                if child.type == "identifier":
                    target = DefaultImport(
                        name=self._identifier_text(child, "default import")
                    )
                elif child.type == "namespace_import":
                    ident = next(
                        (c for c in child.children if c.type == "identifier"), None
                    )
                    target = NamespaceImport(
                        name=self._identifier_text(ident, "namespace import")
                    )
                elif child.type == "named_imports":
                    target = self._named_imports(child)
                else:
                    continue
                imports.append(ModuleImport(source_module=source_module, target=target))
        return imports

    def _named_imports(self, node: ts.Node) -> NamedImport:
        names: List[str] = []
        aliases: Dict[str, str] = {}
        for spec in node.named_children:
            if spec.type != "import_specifier":
                continue
            name = self._identifier_text(
                spec.child_by_field_name("name"), "named import"
            )
            names.append(name)
            alias_node = spec.child_by_field_name("alias")
            if alias_node is not None:
                aliases[name] = self._identifier_text(alias_node, "named import")
        return NamedImport(names=names, aliases=aliases)

    # --- exports ----------------------------------------------------
    def extract_exports(self, root: ts.Node) -> List[ModuleExport]:
        acc = ExportAccumulator()
        matches = _in_source_order(run_query(self._exports_query, root))
        for match in matches:
            source_node = first_capture(match, "source")
            source_module = (
                self.parsed.render_node(source_node) if source_node is not None else None
            )

            barrel = first_capture(match, "barrel_export")
            if barrel is not None:
                if self._is_nested(barrel, root):
                    continue
                acc.emit(ModuleExport(source_module=source_module, target=BarrelExport()))
                continue

            name_node = self._require(match, "name", "export")
            export_node = name_node.parent
            if export_node is None:
                raise MalformedModuleError("Export name has no parent node")
            statement = export_node
            while statement.type != "export_statement" and statement.parent is not None:
                statement = statement.parent
            if self._is_nested(statement, root):
                continue

            name = self._identifier_text(name_node, "export")

            if export_node.type == "namespace_export":
                acc.emit(
                    ModuleExport(
                        source_module=source_module,
                        target=NamespaceExport(name=name),
                    )
                )
                continue

            alias_node = first_capture(match, "alias")
            alias = (
                self._identifier_text(alias_node, "export")
                if alias_node is not None
                else None
            )
            acc.add(name, alias, source_module)

            # CommonJS: `export = name`
            if export_node.type == "export_statement":
                acc.end_statement()
                continue

            if _next_specifier(export_node) is None:
                acc.end_statement()
        return acc.finish()

    # --- default export ---------------------------------------------
    def extract_default_export_name(self, root: ts.Node) -> Optional[str]:
        matches = _in_source_order(run_query(self._default_export_query, root))
        for match in matches:
            name_node = first_capture(match, "name")
            if name_node is not None:
                return self.parsed.render_node(name_node)
        return None


def parse_typescript_file(content: str, path: str = "") -> Module:
    """
    Parse the TypeScript source *content* of the file at *path* into a Module.

    Symbols are grouped by category (imports, declarations, namespaces,
    exports), each category in source order.
    """
    parsed = parse_source(content)
    root = parsed.root_node

    jsdoc = get_jsdoc(root.children[0] if root.children else None, parsed)
    if jsdoc is not None and not is_module_jsdoc(jsdoc):
        jsdoc = None

    extractor = SymbolExtractor(parsed)
    symbols = extractor.extract(root)
    default_export_name = extractor.extract_default_export_name(root)

    logger.debug(
        "Parsed TypeScript module",
        path=path,
        symbols=len(symbols),
        default_export=default_export_name,
    )
    return Module(
        path=path,
        jsdoc=jsdoc,
        symbols=symbols,
        default_export_name=default_export_name,
    )
