"""
uiforge Preview — Embedding escapes

Component source is embedded verbatim inside an inert <script> block of the
harness document. The only sequences that can break out of that block are
script tag openers/closers and HTML comment markers, so those get a backslash
inserted. The harness reverses the transformation before compiling.

escape_embedded is idempotent: an already escaped marker is no longer a
marker. unescape_embedded restores any source that did not itself contain
escaped marker forms such as a literal <\\script.
"""

from __future__ import annotations

import re

_SCRIPT_TAG = re.compile(r"<(?=/?script)", re.IGNORECASE)
_COMMENT_OPEN = re.compile(r"<(?=!--)")
_COMMENT_CLOSE = re.compile(r"--(?=>)")

_ESCAPED_TAG = re.compile(r"<\\(?=/?script|!--)", re.IGNORECASE)
_ESCAPED_CLOSE = re.compile(r"--\\>")


def escape_embedded(source: str) -> str:
    """Insert a backslash into every <script, </script, <!-- and --> marker."""
    source = _SCRIPT_TAG.sub(r"<\\", source)
    source = _COMMENT_OPEN.sub(r"<\\", source)
    return _COMMENT_CLOSE.sub(r"--\\", source)


def unescape_embedded(source: str) -> str:
    """Inverse of escape_embedded. Mirrored by unescapeSource() in the harness runtime."""
    source = _ESCAPED_TAG.sub("<", source)
    return _ESCAPED_CLOSE.sub("-->", source)


def is_embeddable(source: str) -> bool:
    """True when the text cannot terminate or comment out its enclosing script block."""
    return not (_SCRIPT_TAG.search(source) or _COMMENT_OPEN.search(source) or _COMMENT_CLOSE.search(source))
