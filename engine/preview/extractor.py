"""
uiforge Preview — Source Extractor

Pulls component source out of a model completion. Models usually wrap the
component in a fenced code block, sometimes with prose around it, sometimes
minified onto a single line, and occasionally return nothing usable at all.
The extractor always hands back something the normalizer can work with.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from engine.preview.syntax import COMMENT, NAME, PUNCT, parse, tokens

logger = logging.getLogger(__name__)

MIN_VIABLE_LENGTH = 50

SOURCE_HINTS = ("jsx", "tsx", "js", "javascript", "ts", "typescript", "react")

PLACEHOLDER_COMPONENT = """function App() {
  return (
    <div className="p-8 text-center">
      <h1 className="text-2xl font-bold mb-4">Generated App</h1>
      <p>Code generation completed successfully!</p>
    </div>
  );
}"""

_FENCE = re.compile(r"```([A-Za-z0-9_+-]*)[^\S\n]*\n?(.*?)```", re.DOTALL)
_DANGLING_FENCE = re.compile(r"^\s*```[A-Za-z0-9_+-]*[^\S\n]*\n?")


@dataclass
class ExtractionResult:
    source: str
    matched: bool  # a fenced block was found
    fallback: bool  # the placeholder was substituted


def extract_source(text: str) -> ExtractionResult:
    """Return the component source contained in a completion."""
    source, matched = _find_fenced(text)
    if not matched:
        source = _DANGLING_FENCE.sub("", text, count=1)
        if source.rstrip().endswith("```"):
            source = source.rstrip()[:-3]
    source = source.strip()

    if looks_minified(source):
        source = reflow_minified(source)

    if len(source) < MIN_VIABLE_LENGTH:
        logger.info("extractor: fallback to placeholder length=%d matched=%s", len(source), matched)
        return ExtractionResult(source=PLACEHOLDER_COMPONENT, matched=matched, fallback=True)

    return ExtractionResult(source=source, matched=matched, fallback=False)


def _find_fenced(text: str) -> tuple[str, bool]:
    untagged: str | None = None
    for match in _FENCE.finditer(text):
        tag = match.group(1).lower()
        if tag in SOURCE_HINTS:
            return match.group(2), True
        if not tag and untagged is None:
            untagged = match.group(2)
    if untagged is not None:
        return untagged, True
    return text, False


# ---------------------------------------------------------------------------
# Minified reflow
# ---------------------------------------------------------------------------


def looks_minified(source: str) -> bool:
    return len(source) > 100 and source.count("\n") < 3


def reflow_minified(source: str) -> str:
    """
    Break single-line code into lines at braces and statement ends.

    Works on syntax tree leaves, so braces and semicolons inside strings, templates,
    regexes and comments are left alone. Semicolons inside parentheses
    (for-loop headers) do not break lines.
    """
    leaves = tokens(parse(source), keep_comments=True)
    if not leaves:
        return source

    lines: list[str] = []
    current = ""
    indent = 0
    stack: list[str] = []
    cursor = 0

    def flush() -> None:
        nonlocal current
        if current.strip():
            lines.append("  " * indent + current.strip())
        current = ""

    for tok in leaves:
        gap = source[cursor : tok.start]
        cursor = tok.end
        if current and gap:
            current += " "

        if tok.kind == PUNCT and tok.value == "}":
            while stack and stack.pop() != "{":
                pass
            flush()
            indent = max(indent - 1, 0)
            current = "}"
            continue

        # "} else" and "});" stay on the closing line, a new statement starts fresh.
        if current.strip() == "}" and tok.kind != PUNCT:
            if not (tok.kind == NAME and tok.value in ("else", "catch", "finally", "while")):
                flush()

        current += tok.value

        if tok.kind == COMMENT and tok.value.startswith("//"):
            flush()
            continue
        if tok.kind != PUNCT:
            continue
        if tok.value in ("(", "["):
            stack.append(tok.value)
        elif tok.value in (")", "]"):
            if stack and stack[-1] != "{":
                stack.pop()
        elif tok.value == "{":
            stack.append("{")
            flush()
            indent += 1
        elif tok.value == ";" and (not stack or stack[-1] == "{"):
            flush()

    flush()
    return "\n".join(lines)
