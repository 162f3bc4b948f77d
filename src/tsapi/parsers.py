from typing import Dict, Iterator, List, Optional, Tuple

import tree_sitter as ts
import tree_sitter_typescript as tsts

from tsapi.errors import MalformedModuleError

TS_LANGUAGE = ts.Language(tsts.language_typescript())
_parser: Optional[ts.Parser] = None
_queries: Dict[str, ts.Query] = {}

# (pattern index, capture name -> captured nodes)
QueryMatch = Tuple[int, Dict[str, List[ts.Node]]]


def _get_parser() -> ts.Parser:
    global _parser
    if _parser is None:
        _parser = ts.Parser(TS_LANGUAGE)
    return _parser


def make_query(source: str) -> ts.Query:
    """
    Compile a tree-sitter query against the TypeScript grammar. Compiled
    queries are cached by their source text.
    """
    query = _queries.get(source)
    if query is None:
        query = ts.Query(TS_LANGUAGE, source)
        _queries[source] = query
    return query


def run_query(query: ts.Query, node: ts.Node) -> List[QueryMatch]:
    """
    Run *query* against the subtree rooted at *node* and return the matches
    in the order tree-sitter reports them.
    """
    cursor = ts.QueryCursor(query)
    return cursor.matches(node)


def first_capture(match: QueryMatch, name: str) -> Optional[ts.Node]:
    nodes = match[1].get(name)
    if not nodes:
        return None
    return nodes[0]


class ParsedSource:
    """
    A syntax tree together with the text it was parsed from. Node ranges are
    byte offsets into the UTF-8 encoding of the text.
    """

    def __init__(self, content: str, tree: ts.Tree) -> None:
        self.content = content
        self.source_bytes = content.encode("utf-8")
        self.tree = tree

    @property
    def root_node(self) -> ts.Node:
        return self.tree.root_node

    def render(self, start_byte: int, end_byte: int) -> str:
        return self.source_bytes[start_byte:end_byte].decode("utf-8")

    def render_node(self, node: ts.Node) -> str:
        return self.render(node.start_byte, node.end_byte)


def parse_source(content: str) -> ParsedSource:
    """
    Parse TypeScript *content* into a syntax tree.

    Raises MalformedModuleError if the tree contains syntax errors: partial
    trees are never handed to the extractor.
    """
    tree = _get_parser().parse(content.encode("utf-8"))
    root = tree.root_node
    if root.has_error:
        raise MalformedModuleError(
            f"Failed to parse source file: {describe_syntax_error(root)}"
        )
    return ParsedSource(content, tree)


def describe_syntax_error(root: ts.Node) -> str:
    for node in _walk(root):
        if node.is_missing:
            line, col = node.start_point
            return f"missing {node.type!r} at line {line + 1}, column {col + 1}"
        if node.type == "ERROR":
            line, col = node.start_point
            return f"syntax error at line {line + 1}, column {col + 1}"
    return "syntax error"


def _walk(node: ts.Node) -> Iterator[ts.Node]:
    stack = [node]
    while stack:
        cur = stack.pop()
        yield cur
        stack.extend(reversed(cur.children))

