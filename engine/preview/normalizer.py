"""
uiforge Preview — Source Normalizer

Turns arbitrary generated component source into source with exactly one
top-level entry component named App, callable with no arguments.

Passes, in order:
  exports     — strip export keywords, remember the default export target
  imports     — drop import statements, side-effect imports and require() calls
  hooks       — qualify bare React hook references as React.<hook>
  url schemes — neutralize javascript: URLs and stray "javascript" tokens
  entry       — keep an existing App, or synthesize one from the source shape

Every pass works on the TSX syntax tree, so strings, comments, regex literals,
JSX text and type annotations are never mistaken for code. Normalizing
normalized output is a no-op.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from tree_sitter import Node

from engine.preview.syntax import (
    FUNCTION_VALUES,
    VARIABLE_DECLARATIONS,
    Declaration,
    ParsedSource,
    has_top_level_return,
    is_named,
    is_parenthesized_expression,
    parse,
    scan_declarations,
    top_level,
    walk,
)

logger = logging.getLogger(__name__)

ENTRY_NAME = "App"

REACT_HOOKS = frozenset(
    {
        "useState",
        "useEffect",
        "useCallback",
        "useMemo",
        "useRef",
        "useContext",
        "useReducer",
        "useLayoutEffect",
    }
)

# Normalizer warnings, surfaced in the harness diagnostic panel.
WARNING_MISSING_RETURN = "entry-missing-return"
WARNING_NOT_CALLABLE = "entry-not-callable"

# Entry shapes
SHAPE_EXISTING = "existing"
SHAPE_RETURN_BODY = "return-body"
SHAPE_EXPRESSION = "expression"
SHAPE_COMPONENT = "component"
SHAPE_FRAGMENT = "fragment"
SHAPE_EMPTY = "empty"

_SCHEME_IN_STRING = re.compile(r"javascript\s*:[^'\"`]*", re.IGNORECASE)
_LITERALS = frozenset({"string", "template_string", "regex", "comment", "jsx_text"})

# Parent node type → field holding a name that is being bound, not referenced.
_BINDING_FIELDS = {
    "function_declaration": "name",
    "generator_function_declaration": "name",
    "function_expression": "name",
    "function": "name",
    "class_declaration": "name",
    "variable_declarator": "name",
    "required_parameter": "pattern",
    "optional_parameter": "pattern",
    "arrow_function": "parameter",
    "assignment_pattern": "left",
}
_BINDING_PARENTS = frozenset({"formal_parameters", "array_pattern", "import_clause", "import_specifier"})

# Leaves named "javascript" in these positions are property names, not code.
_PROPERTY_NAMES = frozenset(
    {"property_identifier", "shorthand_property_identifier", "shorthand_property_identifier_pattern"}
)
_LABEL_SAFE_PARENTS = frozenset({"pair", "ternary_expression", "switch_case"})


@dataclass
class NormalizedSource:
    code: str
    entry_name: str = ENTRY_NAME
    shape: str = SHAPE_EXISTING
    wrapped_component: str | None = None
    warnings: list[str] = field(default_factory=list)


def normalize_source(source: str) -> NormalizedSource:
    """Run every pass and guarantee a top-level App entry component."""
    code, default_target = strip_exports(source)
    code = strip_imports(code)
    code = qualify_hooks(code)
    code = neutralize_script_urls(code)
    result = ensure_entry(code.strip(), default_target)
    logger.debug(
        "normalizer: shape=%s wrapped=%s warnings=%s",
        result.shape,
        result.wrapped_component,
        result.warnings,
    )
    return result


# ---------------------------------------------------------------------------
# Edit helpers
# ---------------------------------------------------------------------------


def _apply_edits(source: str, edits: list[tuple[int, int, str]]) -> str:
    out: list[str] = []
    cursor = 0
    for start, end, replacement in sorted(edits, key=lambda e: e[0]):
        if start < cursor:
            continue
        out.append(source[cursor:start])
        out.append(replacement)
        cursor = end
    out.append(source[cursor:])
    return "".join(out)


def _removal(source: str, start: int, end: int) -> tuple[int, int, str]:
    """Remove [start, end), taking the whole line with it when nothing else is on it."""
    line_start = source.rfind("\n", 0, start) + 1
    line_end = _line_end(source, end)
    if not source[line_start:start].strip() and not source[end:line_end].strip():
        return line_start, min(line_end + 1, len(source)), ""
    return start, end, ""


def _line_end(source: str, index: int) -> int:
    end = source.find("\n", index)
    return len(source) if end == -1 else end


def _statement_removal(parsed: ParsedSource, node: Node) -> tuple[int, int, str]:
    start, end = parsed.span(node)
    return _removal(parsed.text, start, end)


def _is_call_to(node: Node | None, *names: str) -> bool:
    if node is None or node.type != "call_expression":
        return False
    fn = node.child_by_field_name("function")
    return fn is not None and (fn.type in names or (fn.type == "identifier" and fn.text.decode() in names))


# ---------------------------------------------------------------------------
# Pass 0: exports
# ---------------------------------------------------------------------------


def strip_exports(source: str) -> tuple[str, str | None]:
    """Remove export syntax. Returns the new source and the default export target, if named."""
    parsed = parse(source)
    has_entry = any(d.name == ENTRY_NAME for d in scan_declarations(parsed))
    edits: list[tuple[int, int, str]] = []
    target: str | None = None

    for node in top_level(parsed):
        if node.type != "export_statement":
            continue
        start = parsed.offset(node.start_byte)
        is_default = any(child.type == "default" and not child.is_named for child in node.children)
        declaration = node.child_by_field_name("declaration")
        value = node.child_by_field_name("value")

        if declaration is not None:
            edits.append((start, parsed.offset(declaration.start_byte), ""))
            name = declaration.child_by_field_name("name")
            if is_default and name is not None:
                target = parsed.node_text(name)
        elif value is not None and is_default:
            value_edits, name = _default_export(parsed, node, value, has_entry)
            edits.extend(value_edits)
            target = name or target
        else:
            # export { A, B }, export * from "x", export = ...
            edits.append(_statement_removal(parsed, node))

    return _apply_edits(source, edits), target


def _default_export(
    parsed: ParsedSource, node: Node, value: Node, has_entry: bool
) -> tuple[list[tuple[int, int, str]], str | None]:
    start = parsed.offset(node.start_byte)
    prefix = (start, parsed.offset(value.start_byte), "")

    if value.type == "identifier":
        return [_statement_removal(parsed, node)], parsed.node_text(value)

    if is_named(value, *FUNCTION_VALUES, "class") and value.type != "arrow_function":
        name = value.child_by_field_name("name")
        if name is not None:
            return [prefix], parsed.node_text(name)
        # Anonymous function or class: name it after its keyword (or generator star).
        keyword_end = None
        for child in value.children:
            if child.is_named:
                continue
            if child.type in ("function", "class", "*"):
                keyword_end = parsed.offset(child.end_byte)
            elif keyword_end is not None:
                break
        if keyword_end is not None:
            return [prefix, (keyword_end, keyword_end, f" {ENTRY_NAME}")], ENTRY_NAME

    if has_entry:
        return [prefix], None
    return [(prefix[0], prefix[1], f"const {ENTRY_NAME} = ")], ENTRY_NAME


# ---------------------------------------------------------------------------
# Pass 1: imports
# ---------------------------------------------------------------------------


def strip_imports(source: str) -> str:
    """Drop static imports, statement-level dynamic imports and require() bindings."""
    parsed = parse(source)
    edits = [_statement_removal(parsed, node) for node in top_level(parsed) if _is_import(node)]
    return _apply_edits(source, edits)


def _is_import(node: Node) -> bool:
    if node.type == "import_statement":
        return True
    if node.type == "expression_statement":
        return _is_call_to(node.named_children[0] if node.named_children else None, "import", "require")
    if node.type in VARIABLE_DECLARATIONS:
        declarators = [child for child in node.named_children if child.type == "variable_declarator"]
        return bool(declarators) and all(
            _is_call_to(declarator.child_by_field_name("value"), "require") for declarator in declarators
        )
    return False


# ---------------------------------------------------------------------------
# Pass 2: hooks
# ---------------------------------------------------------------------------


def qualify_hooks(source: str) -> str:
    """Rewrite bare hook references (useState) as React.useState."""
    parsed = parse(source)
    edits: list[tuple[int, int, str]] = []

    for node in walk(parsed.root, skip=_LITERALS):
        if node.type != "identifier" or parsed.node_text(node) not in REACT_HOOKS:
            continue
        if _is_binding(node):
            continue
        start = parsed.offset(node.start_byte)
        edits.append((start, start, "React."))

    return _apply_edits(source, edits)


def _is_binding(node: Node) -> bool:
    parent = node.parent
    if parent is None:
        return False
    if parent.type in _BINDING_PARENTS:
        return True
    field_name = _BINDING_FIELDS.get(parent.type)
    if field_name is None:
        return False
    bound = parent.child_by_field_name(field_name)
    return bound is not None and bound.start_byte == node.start_byte


# ---------------------------------------------------------------------------
# Pass 3: javascript: URLs
# ---------------------------------------------------------------------------


def neutralize_script_urls(source: str) -> str:
    """
    Neutralize javascript: URLs.

    Inside string and template literals the scheme and its payload become "#".
    In code the scheme runs to the end of the statement or line and becomes
    void(0);. Bare "javascript" tokens left over from a language tag are removed.
    """
    parsed = parse(source)
    edits: list[tuple[int, int, str]] = []

    for node in walk(parsed.root, skip=_LITERALS):
        if is_named(node, "string", "template_string"):
            start, end = parsed.span(node)
            text = source[start:end]
            cleaned = _SCHEME_IN_STRING.sub("#", text)
            if cleaned != text:
                edits.append((start, end, cleaned))
            continue
        if node.child_count or node.type in _PROPERTY_NAMES or node.type in _LITERALS:
            continue
        text = parsed.node_text(node)
        if text.lower() != "javascript":
            continue

        start, end = parsed.span(node)
        before = source[:start].rstrip()
        if before.endswith("."):
            continue  # member access
        line_end = _line_end(source, end)
        rest = source[end:line_end]

        if rest.lstrip().startswith(":"):
            if node.parent is not None and node.parent.type in _LABEL_SAFE_PARENTS:
                continue
            colon = source.index(":", end)
            semi = source.find(";", colon, line_end)
            edits.append((start, semi + 1 if semi != -1 else line_end, "void(0);"))
        elif text == "javascript" and (before.endswith("(") or not rest.strip()):
            edits.append(_removal(source, start, end))

    return _apply_edits(source, edits)


# ---------------------------------------------------------------------------
# Pass 4/5: entry component
# ---------------------------------------------------------------------------


def ensure_entry(source: str, default_target: str | None = None) -> NormalizedSource:
    """Keep an existing App or synthesize one around the source."""
    if not source.strip():
        return NormalizedSource(code=f"function {ENTRY_NAME}() {{\n  return null;\n}}", shape=SHAPE_EMPTY)

    parsed = parse(source)
    declarations = scan_declarations(parsed)

    entry = next((d for d in declarations if d.name == ENTRY_NAME), None)
    if entry is not None:
        warnings = []
        if not entry.callable:
            warnings.append(WARNING_NOT_CALLABLE)
        elif not entry.has_output:
            warnings.append(WARNING_MISSING_RETURN)
        if warnings:
            logger.warning("normalizer: entry component has no output warnings=%s", warnings)
        return NormalizedSource(code=source, shape=SHAPE_EXISTING, warnings=warnings)

    if has_top_level_return(parsed):
        return NormalizedSource(code=f"function {ENTRY_NAME}() {{\n{source}\n}}", shape=SHAPE_RETURN_BODY)

    statements = top_level(parsed)
    if statements and is_parenthesized_expression(statements[0]):
        return NormalizedSource(
            code=f"function {ENTRY_NAME}() {{\n  return {source}\n}}",
            shape=SHAPE_EXPRESSION,
        )

    callables = [d for d in declarations if d.callable]
    if callables:
        target = _pick_component(callables, default_target)
        return NormalizedSource(
            code=f"{source}\n\n{_entry_wrapper(target)}",
            shape=SHAPE_COMPONENT,
            wrapped_component=target,
        )

    return NormalizedSource(
        code=f"function {ENTRY_NAME}() {{\n  return (\n{source}\n  );\n}}",
        shape=SHAPE_FRAGMENT,
    )


def _pick_component(callables: list[Declaration], default_target: str | None) -> str:
    names = [d.name for d in callables]
    if default_target in names:
        return default_target
    capitalized = [name for name in names if name[:1].isupper()]
    if capitalized:
        return capitalized[-1]
    return names[0]


def _entry_wrapper(target: str) -> str:
    return (
        f"function {ENTRY_NAME}() {{\n"
        f'  if (typeof {target} === "undefined") {{\n'
        f'    console.error("Component {target} is not defined");\n'
        f"    return React.createElement(\n"
        f'      "div",\n'
        f'      {{ style: {{ padding: "20px", color: "#b91c1c", fontFamily: "monospace" }} }},\n'
        f'      "Error: Component {target} not found"\n'
        f"    );\n"
        f"  }}\n"
        f"  return React.createElement({target});\n"
        f"}}"
    )
