"""
uiforge Preview — TSX Syntax

Uses tree-sitter's TSX grammar to answer the structural questions the
normalizer and extractor ask about generated component source: which
top-level declarations exist, whether they are callable, whether their
bodies produce output, and whether the source is itself a bare function body.

tree-sitter never raises on malformed input. Broken regions come back as
ERROR nodes and the rest of the tree stays usable.
"""

from __future__ import annotations

from collections.abc import Iterator

import tree_sitter_typescript as _ts_mod
from tree_sitter import Language, Node, Parser

_LANG = Language(_ts_mod.language_tsx())
_PARSER = Parser(_LANG)


# ---------------------------------------------------------------------------
# Node classes
# ---------------------------------------------------------------------------

# "function" is the pre-0.23 grammar name of function_expression.
FUNCTION_VALUES = frozenset({"arrow_function", "function_expression", "function", "generator_function"})
FUNCTION_DECLARATIONS = frozenset({"function_declaration", "generator_function_declaration"})
CLASS_DECLARATIONS = frozenset({"class_declaration", "abstract_class_declaration"})
VARIABLE_DECLARATIONS = frozenset({"lexical_declaration", "variable_declaration"})

# Bodies whose return statements belong to somebody else.
_SCOPES = FUNCTION_VALUES | FUNCTION_DECLARATIONS | CLASS_DECLARATIONS | {"method_definition", "class"}

# Expression wrappers that don't change what a value is.
_TRANSPARENT = frozenset(
    {"parenthesized_expression", "as_expression", "satisfies_expression", "non_null_expression", "type_assertion"}
)

_COMPONENT_WRAPPERS = frozenset({"memo", "forwardRef"})

# Nodes reported as a single token.
_ATOMIC = frozenset({"string", "template_string", "regex", "comment", "jsx_text", "number"})

# Token kinds
NAME = "name"
PUNCT = "punct"
STRING = "string"
TEMPLATE = "template"
REGEX = "regex"
NUMBER = "number"
TEXT = "text"
COMMENT = "comment"

_TOKEN_KINDS = {
    "comment": COMMENT,
    "string": STRING,
    "template_string": TEMPLATE,
    "regex": REGEX,
    "jsx_text": TEXT,
    "number": NUMBER,
}


def is_named(node: Node | None, *types: str) -> bool:
    """True for a named node of one of the given types (keywords share some type names)."""
    return node is not None and node.is_named and node.type in types


# ---------------------------------------------------------------------------
# Public types
# ---------------------------------------------------------------------------


class ParsedSource:
    """Source text and its syntax tree. Node spans are converted to str offsets."""

    __slots__ = ("text", "data", "tree")

    def __init__(self, text: str) -> None:
        self.text = text
        self.data = text.encode("utf-8", "surrogatepass")
        self.tree = _PARSER.parse(self.data)

    @property
    def root(self) -> Node:
        return self.tree.root_node

    def offset(self, byte: int) -> int:
        """str offset of a byte offset."""
        if len(self.data) == len(self.text):
            return byte
        return len(self.data[:byte].decode("utf-8", "surrogatepass"))

    def span(self, node: Node) -> tuple[int, int]:
        return self.offset(node.start_byte), self.offset(node.end_byte)

    def node_text(self, node: Node) -> str:
        return self.data[node.start_byte : node.end_byte].decode("utf-8", "surrogatepass")

    def __repr__(self) -> str:
        return f"ParsedSource(len={len(self.text)}, has_error={self.root.has_error})"


class Token:
    """One leaf of the tree, with strings, templates and JSX text kept whole."""

    __slots__ = ("kind", "value", "start", "end")

    def __init__(self, kind: str, value: str, start: int, end: int) -> None:
        self.kind = kind
        self.value = value
        self.start = start
        self.end = end

    def __repr__(self) -> str:
        return f"Token({self.kind!r}, {self.value!r}, {self.start})"


class Declaration:
    """A top-level function, variable or class declaration."""

    __slots__ = ("name", "kind", "node", "callable", "has_output")

    def __init__(self, name: str, kind: str, node: Node, callable: bool, has_output: bool) -> None:
        self.name = name
        self.kind = kind  # "function", "variable" or "class"
        self.node = node
        self.callable = callable
        self.has_output = has_output

    def __repr__(self) -> str:
        return f"Declaration({self.name!r}, kind={self.kind!r}, callable={self.callable}, has_output={self.has_output})"


# ---------------------------------------------------------------------------
# Parsing and traversal
# ---------------------------------------------------------------------------


def parse(text: str) -> ParsedSource:
    return ParsedSource(text)


def walk(node: Node, skip: frozenset[str] = frozenset()) -> Iterator[Node]:
    """Pre-order traversal. Nodes whose type is in skip are yielded but not entered."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        if current.type not in skip:
            stack.extend(reversed(current.children))


def top_level(parsed: ParsedSource) -> list[Node]:
    """Top-level statements in order. ERROR wrappers are flattened and comments skipped."""
    found: list[Node] = []
    stack = list(reversed(parsed.root.children))
    while stack:
        node = stack.pop()
        if node.type == "ERROR":
            stack.extend(reversed(node.children))
        elif node.is_named and node.type != "comment":
            found.append(node)
    return found


def tokens(parsed: ParsedSource, *, keep_comments: bool = False) -> list[Token]:
    """Leaf tokens in source order. Zero-width recovery nodes and blank JSX text are dropped."""
    found: list[Token] = []
    stack = list(reversed(parsed.root.children))
    while stack:
        node = stack.pop()
        if node.child_count and not is_named(node, *_ATOMIC):
            stack.extend(reversed(node.children))
            continue
        if node.start_byte == node.end_byte:
            continue
        start, end = parsed.span(node)
        value = parsed.text[start:end]
        kind = _token_kind(node, value)
        if (kind == COMMENT and not keep_comments) or not value.strip():
            continue
        found.append(Token(kind, value, start, end))
    return found


def _token_kind(node: Node, value: str) -> str:
    if node.is_named and node.type in _TOKEN_KINDS:
        return _TOKEN_KINDS[node.type]
    if value[:1].isalpha() or value[:1] in "_$":
        return NAME
    return PUNCT


# ---------------------------------------------------------------------------
# Declarations
# ---------------------------------------------------------------------------


def scan_declarations(parsed: ParsedSource) -> list[Declaration]:
    """Find top-level function, variable and class declarations in order, exported or not."""
    found: list[Declaration] = []
    for node in top_level(parsed):
        if node.type == "export_statement":
            declaration = node.child_by_field_name("declaration")
            node = declaration if declaration is not None else node.child_by_field_name("value")
            if node is None:
                continue
        found.extend(_declarations(parsed, node))
    return found


def _declarations(parsed: ParsedSource, node: Node) -> Iterator[Declaration]:
    # Named function and class expressions appear as `export default` values.
    if node.type in FUNCTION_DECLARATIONS or (is_named(node, *FUNCTION_VALUES) and node.type != "arrow_function"):
        name = node.child_by_field_name("name")
        if name is not None:
            yield Declaration(parsed.node_text(name), "function", node, True, function_has_output(node))

    elif node.type in CLASS_DECLARATIONS or is_named(node, "class"):
        name = node.child_by_field_name("name")
        if name is not None:
            yield Declaration(parsed.node_text(name), "class", node, True, class_has_output(node))

    elif node.type in VARIABLE_DECLARATIONS:
        for declarator in node.named_children:
            if declarator.type != "variable_declarator":
                continue
            name = declarator.child_by_field_name("name")
            # Destructuring patterns don't declare a component
            if name is None or name.type != "identifier":
                continue
            callable_, has_output = classify_value(declarator.child_by_field_name("value"))
            yield Declaration(parsed.node_text(name), "variable", node, callable_, has_output)


def classify_value(node: Node | None) -> tuple[bool, bool]:
    """Decide whether an initializer is a component: (callable, produces output)."""
    node = unwrap(node)
    if node is None:
        return False, False

    if is_named(node, *FUNCTION_VALUES):
        return True, function_has_output(node)

    if is_named(node, "class"):
        return True, class_has_output(node)

    # React.memo(...), forwardRef<...>(...) and friends wrap a component.
    if node.type == "call_expression" and _is_component_wrapper(node.child_by_field_name("function")):
        arguments = node.child_by_field_name("arguments")
        inner = _first_named(arguments) if arguments is not None else None
        if inner is None:
            return True, False
        if inner.type == "identifier":
            return True, True
        return True, classify_value(inner)[1]

    return False, False


def unwrap(node: Node | None) -> Node | None:
    """Strip parentheses and type assertions around an expression."""
    while node is not None and node.type in _TRANSPARENT:
        node = _first_named(node)
    return node


def _first_named(node: Node) -> Node | None:
    return next((child for child in node.named_children if child.type != "comment"), None)


def _is_component_wrapper(node: Node | None) -> bool:
    if node is None:
        return False
    if node.type == "identifier":
        return node.text.decode() in _COMPONENT_WRAPPERS
    if node.type == "member_expression":
        prop = node.child_by_field_name("property")
        return prop is not None and prop.text.decode() in _COMPONENT_WRAPPERS
    return False


# ---------------------------------------------------------------------------
# Output detection
# ---------------------------------------------------------------------------


def function_has_output(node: Node) -> bool:
    """True when a function's own body returns something. Expression-bodied arrows always do."""
    body = node.child_by_field_name("body")
    if body is None:
        return False
    if body.type != "statement_block":
        return True
    return contains_return(body)


def class_has_output(node: Node) -> bool:
    """True when any method or function-valued field of the class returns something."""
    body = node.child_by_field_name("body")
    if body is None:
        return False
    for member in body.named_children:
        if member.type == "method_definition" and function_has_output(member):
            return True
        if member.type in ("public_field_definition", "field_definition"):
            if classify_value(member.child_by_field_name("value"))[1]:
                return True
    return False


def contains_return(block: Node) -> bool:
    """Look for a return statement inside a block, skipping nested function and class bodies."""
    stack = list(block.children)
    while stack:
        node = stack.pop()
        if node.type == "return_statement":
            return True
        if node.is_named and node.type in _SCOPES:
            continue
        stack.extend(node.children)
    return False


def has_top_level_return(parsed: ParsedSource) -> bool:
    """True when the source is a function body: it returns at the top level."""
    return any(node.type == "return_statement" for node in top_level(parsed))


def is_parenthesized_expression(statement: Node) -> bool:
    """True for a statement that starts with a parenthesized, non-function expression."""
    if statement.type != "expression_statement":
        return False
    expr = _first_named(statement)
    while expr is not None and expr.type != "parenthesized_expression":
        first = _first_named(expr)
        if first is None or first.start_byte != expr.start_byte:
            return False
        expr = first
    if expr is None:
        return False
    inner = _first_named(expr)
    return not is_named(inner, *FUNCTION_VALUES)
