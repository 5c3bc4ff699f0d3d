"""
Tests for engine/preview/normalizer.py
"""

from __future__ import annotations

import logging

import pytest

from engine.preview.extractor import extract_source
from engine.preview.normalizer import (
    SHAPE_COMPONENT,
    SHAPE_EMPTY,
    SHAPE_EXISTING,
    SHAPE_EXPRESSION,
    SHAPE_FRAGMENT,
    SHAPE_RETURN_BODY,
    WARNING_MISSING_RETURN,
    WARNING_NOT_CALLABLE,
    neutralize_script_urls,
    normalize_source,
    qualify_hooks,
    strip_exports,
    strip_imports,
)
from engine.preview.syntax import parse, scan_declarations


def entry_declarations(code: str):
    return [d for d in scan_declarations(parse(code)) if d.name == "App"]


# ============================================================================
# Scenarios
# ============================================================================


class TestScenarios:
    def test_bare_return_is_wrapped(self):
        result = normalize_source("return (<div>Hi</div>);")
        assert result.shape == SHAPE_RETURN_BODY
        assert result.code == "function App() {\nreturn (<div>Hi</div>);\n}"
        (entry,) = entry_declarations(result.code)
        assert entry.has_output

    def test_named_component_gets_entry_wrapper(self):
        result = normalize_source("function Widget(){ return <span/>; }")
        assert result.shape == SHAPE_COMPONENT
        assert result.wrapped_component == "Widget"
        assert result.code.startswith("function Widget(){ return <span/>; }")
        assert 'typeof Widget === "undefined"' in result.code
        assert "Error: Component Widget not found" in result.code
        assert result.code.endswith("return React.createElement(Widget);\n}")
        assert len(entry_declarations(result.code)) == 1

    def test_entry_without_return_is_flagged_not_repaired(self, caplog):
        source = "function App(){ console.log('x'); }"
        with caplog.at_level(logging.WARNING, logger="engine.preview.normalizer"):
            result = normalize_source(source)
        assert result.shape == SHAPE_EXISTING
        assert result.code == source
        assert result.warnings == [WARNING_MISSING_RETURN]
        assert "no output" in caplog.text

    def test_empty_completion_falls_back_to_placeholder(self):
        result = normalize_source(extract_source("").source)
        assert result.shape == SHAPE_EXISTING
        assert result.warnings == []
        assert "Generated App" in result.code


# ============================================================================
# Entry shapes
# ============================================================================


class TestEntryShapes:
    def test_parenthesized_expression(self):
        result = normalize_source("(<div>Hi</div>)")
        assert result.shape == SHAPE_EXPRESSION
        assert result.code == "function App() {\n  return (<div>Hi</div>)\n}"

    def test_bare_jsx_fragment(self):
        result = normalize_source('<div className="card">Hello</div>')
        assert result.shape == SHAPE_FRAGMENT
        assert result.code == 'function App() {\n  return (\n<div className="card">Hello</div>\n  );\n}'

    def test_return_shape_beats_function_shape(self):
        source = "const [n, setN] = useState(0);\nfunction helper() { return 1; }\nreturn <div>{n}</div>;"
        result = normalize_source(source)
        assert result.shape == SHAPE_RETURN_BODY
        assert result.wrapped_component is None

    def test_last_capitalized_callable_is_wrapped(self):
        source = "const formatDate = d => d.toString();\nconst Header = () => <h1/>;\nconst Page = () => <Header/>;"
        result = normalize_source(source)
        assert result.wrapped_component == "Page"

    def test_first_callable_when_none_capitalized(self):
        source = "function render() { return <div/>; }\nfunction helper() { return 1; }"
        result = normalize_source(source)
        assert result.wrapped_component == "render"

    def test_default_export_target_is_preferred(self):
        source = "const Foo = () => <div/>;\nconst Bar = () => <p/>;\nexport default Foo;"
        result = normalize_source(source)
        assert result.wrapped_component == "Foo"
        assert "export" not in result.code

    def test_non_callable_entry_is_flagged(self):
        result = normalize_source("const App = 42;")
        assert result.warnings == [WARNING_NOT_CALLABLE]

    def test_arrow_entry_with_expression_body(self):
        result = normalize_source("const App = () => <main>Hi</main>;")
        assert result.shape == SHAPE_EXISTING
        assert result.warnings == []

    def test_class_entry(self):
        source = "class App extends React.Component {\n  render() { return <div/>; }\n}"
        result = normalize_source(source)
        assert result.shape == SHAPE_EXISTING
        assert result.warnings == []

    def test_whitespace_only_source(self):
        result = normalize_source("   \n ")
        assert result.shape == SHAPE_EMPTY
        assert "return null" in result.code


class TestTypeScriptComponents:
    def test_typed_arrow_entry_is_kept(self):
        source = 'const App: React.FC = () => { return <div className="p-4">Hello typed world</div>; };'
        result = normalize_source(source)
        assert result.shape == SHAPE_EXISTING
        assert result.code == source
        assert result.warnings == []

    def test_return_type_annotation_is_not_missing_return(self):
        result = normalize_source('function App(): JSX.Element { return <div className="p-4">typed</div>; }')
        assert result.shape == SHAPE_EXISTING
        assert result.warnings == []

    def test_typed_arrow_with_return_type(self):
        result = normalize_source("const App = ({ title }: { title?: string }): JSX.Element => <h1>{title}</h1>;")
        assert result.shape == SHAPE_EXISTING
        assert result.warnings == []

    def test_typed_named_component_gets_entry_wrapper(self):
        result = normalize_source("const Widget: React.FC<{}> = () => <span>widget</span>;\nexport default Widget;")
        assert result.shape == SHAPE_COMPONENT
        assert result.wrapped_component == "Widget"
        assert result.code.startswith("const Widget: React.FC<{}> = () => <span>widget</span>;")
        assert "export" not in result.code

    def test_typed_default_export_function(self):
        source = (
            "interface User { name: string }\n"
            "export default function Dashboard({ user }: { user: User }): JSX.Element {\n"
            "  return <div>{user.name}</div>;\n"
            "}"
        )
        result = normalize_source(source)
        assert result.wrapped_component == "Dashboard"
        assert "interface User" in result.code

    def test_props_interface_is_not_a_component(self):
        source = (
            "interface CardProps { title: string }\n"
            "const Card = ({ title }: CardProps): JSX.Element => <h2>{title}</h2>;\n"
            'const Page: React.FC = () => <Card title="Hi" />;'
        )
        assert normalize_source(source).wrapped_component == "Page"

    def test_generic_hook_call_is_qualified(self):
        assert qualify_hooks("const [items, setItems] = useState<string[]>([]);") == (
            "const [items, setItems] = React.useState<string[]>([]);"
        )

    def test_typed_return_body(self):
        result = normalize_source("const [n, setN] = useState<number>(0);\nreturn <div>{n}</div>;")
        assert result.shape == SHAPE_RETURN_BODY
        assert "React.useState<number>(0)" in result.code

    def test_typed_entry_normalizes_once(self):
        source = (
            "import React, { useState } from 'react';\n"
            "type Props = { start?: number };\n"
            "const Counter: React.FC<Props> = ({ start = 0 }) => {\n"
            "  const [n, setN] = useState<number>(start);\n"
            "  return <button onClick={() => setN(n + 1)}>{n}</button>;\n"
            "};\n"
            "export default Counter;"
        )
        once = normalize_source(source)
        twice = normalize_source(once.code)
        assert once.wrapped_component == "Counter"
        assert twice.code == once.code
        assert twice.shape == SHAPE_EXISTING


class TestIdempotence:
    @pytest.mark.parametrize(
        "source",
        [
            "return (<div>Hi</div>);",
            "function Widget(){ return <span/>; }",
            "(<div>Hi</div>)",
            '<div className="card">Hello</div>',
            "export default () => <div>Hi</div>;",
            "import React, { useState } from 'react';\n"
            "export default function Counter() {\n"
            "  const [n, setN] = useState(0);\n"
            '  return <button onClick={() => setN(n + 1)} title="javascript:x">{n}</button>;\n'
            "}",
        ],
    )
    def test_normalizing_twice_is_a_no_op(self, source):
        once = normalize_source(source)
        twice = normalize_source(once.code)
        assert twice.code == once.code
        assert twice.shape == SHAPE_EXISTING
        assert len(entry_declarations(twice.code)) == 1


# ============================================================================
# Passes
# ============================================================================


class TestExports:
    def test_named_default_function(self):
        code, target = strip_exports("export default function Counter() { return <div/>; }")
        assert code == "function Counter() { return <div/>; }"
        assert target == "Counter"

    def test_anonymous_default_function_becomes_app(self):
        code, target = strip_exports("export default function () { return <div/>; }")
        assert code == "function App () { return <div/>; }"
        assert target == "App"

    def test_anonymous_default_class_becomes_app(self):
        code, _ = strip_exports("export default class extends React.Component { render() { return null; } }")
        assert code.startswith("class App extends React.Component")

    def test_default_expression_becomes_app_constant(self):
        code, target = strip_exports("export default () => <div>Hi</div>;")
        assert code == "const App = () => <div>Hi</div>;"
        assert target == "App"

    def test_default_expression_kept_when_app_exists(self):
        code, target = strip_exports("function App() { return <div/>; }\nexport default React.memo(App);")
        assert code == "function App() { return <div/>; }\nReact.memo(App);"
        assert target is None

    def test_named_exports_and_reexports(self):
        source = "export const Button = () => <button/>;\nexport { Button };\nexport * from './x';\n"
        code, target = strip_exports(source)
        assert code == "const Button = () => <button/>;\n"
        assert target is None

    def test_export_inside_string_untouched(self):
        source = "const s = 'export default Foo';"
        assert strip_exports(source) == (source, None)


class TestImports:
    def test_all_import_forms_removed(self):
        source = (
            "import React, { useState } from 'react';\n"
            "import './styles.css';\n"
            "import('./lazy');\n"
            "const _ = require('lodash');\n"
            "function App() { return <div/>; }"
        )
        assert strip_imports(source) == "function App() { return <div/>; }"

    def test_multiline_import(self):
        source = "import {\n  Camera,\n  Heart,\n} from 'lucide-react';\nconst a = 1;"
        assert strip_imports(source) == "const a = 1;"

    def test_expression_imports_kept(self):
        source = "const mod = await import('./x');\nconst url = import.meta.url;"
        assert strip_imports(source) == source

    def test_import_text_in_jsx_string_untouched(self):
        source = "const note = \"import x from 'y'\";"
        assert strip_imports(source) == source


class TestHooks:
    def test_bare_hooks_are_qualified(self):
        source = "const [a, setA] = useState(0);\nuseEffect(() => {}, []);"
        assert qualify_hooks(source) == "const [a, setA] = React.useState(0);\nReact.useEffect(() => {}, []);"

    @pytest.mark.parametrize(
        "source",
        [
            "const [a, setA] = React.useState(0);",
            "const { useState, useEffect } = React;",
            "const s = 'useState';",
            "// call useState here\nconst a = 1;",
            "const o = { useMemo: 1 };",
            "function useRef() { return 1; }",
        ],
    )
    def test_non_references_untouched(self, source):
        assert qualify_hooks(source) == source

    def test_qualifying_twice_is_stable(self):
        source = "const ref = useRef(null);\nconst v = useMemo(() => 1, []);"
        once = qualify_hooks(source)
        assert qualify_hooks(once) == once


class TestScriptUrls:
    def test_scheme_in_attribute_string(self):
        assert neutralize_script_urls('<a href="javascript:alert(1)">x</a>') == '<a href="#">x</a>'

    def test_scheme_is_case_insensitive(self):
        assert neutralize_script_urls('<a href="JavaScript:void(0)">x</a>') == '<a href="#">x</a>'

    def test_scheme_as_label_in_code(self):
        source = "function f() {\n  javascript:alert(document.cookie);\n  return 1;\n}"
        assert neutralize_script_urls(source) == "function f() {\n  void(0);\n  return 1;\n}"

    def test_object_key_untouched(self):
        source = "const langs = { javascript: 1, python: 2 };"
        assert neutralize_script_urls(source) == source

    def test_dangling_language_tag_line_removed(self):
        source = "javascript\nfunction App() { return <div/>; }"
        assert neutralize_script_urls(source) == "function App() { return <div/>; }"

    def test_dangling_token_after_paren_removed(self):
        assert neutralize_script_urls("return (javascript\n<div/>)") == "return (\n<div/>)"
