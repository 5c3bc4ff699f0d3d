"""
Tests for engine/preview/escaping.py
"""

from __future__ import annotations

import re

import pytest

from engine.preview.escaping import escape_embedded, is_embeddable, unescape_embedded
from engine.preview.harness import build_harness

SAMPLES = [
    "function App() { return <div>plain</div>; }",
    'const html = "<script>alert(1)</script>";',
    "const s = '</SCRIPT>' + '<Script src=x>';",
    "// <!-- legacy comment -->\nconst a = b-->c;",
    "const arrow = x => x--> 0;",
]


class TestEscape:
    def test_markers_get_backslash(self):
        assert escape_embedded("<script>") == "<\\script>"
        assert escape_embedded("</script>") == "<\\/script>"
        assert escape_embedded("<!-- x -->") == "<\\!-- x --\\>"

    def test_case_insensitive(self):
        assert escape_embedded("</ScRiPt>") == "<\\/ScRiPt>"

    def test_other_characters_unchanged(self):
        source = "const a = x < y && y > z; // <div>"
        assert escape_embedded(source) == source

    @pytest.mark.parametrize("source", SAMPLES)
    def test_idempotent(self, source):
        once = escape_embedded(source)
        assert escape_embedded(once) == once

    @pytest.mark.parametrize("source", SAMPLES)
    def test_escaped_text_is_embeddable(self, source):
        assert is_embeddable(escape_embedded(source))

    def test_is_embeddable_detects_markers(self):
        assert not is_embeddable("</script>")
        assert not is_embeddable("<!--")
        assert not is_embeddable("-->")
        assert is_embeddable("a < b")


class TestRoundTrip:
    @pytest.mark.parametrize("source", SAMPLES)
    def test_unescape_restores_source(self, source):
        assert unescape_embedded(escape_embedded(source)) == source

    @pytest.mark.parametrize("source", SAMPLES)
    def test_round_trip_through_harness_document(self, source):
        html = build_harness(escape_embedded(source))
        match = re.search(r'<script type="text/plain" id="component-source">(.*?)</script>', html, re.DOTALL)
        assert match is not None
        assert unescape_embedded(match.group(1)) == source
