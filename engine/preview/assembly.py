"""
uiforge Preview — Assembly

Coordinates normalizer + escaping + harness builder. Takes the component
source a client asks to preview and returns the displayable document.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from engine.preview.escaping import escape_embedded, is_embeddable
from engine.preview.harness import build_harness
from engine.preview.normalizer import normalize_source

logger = logging.getLogger(__name__)

CSS_FILE = "src/index.css"


@dataclass
class PreviewDocument:
    html: str
    shape: str
    warnings: list[str] = field(default_factory=list)


def assemble_preview(
    code: str,
    device: str = "desktop",
    files: dict[str, str] | None = None,
    title: str | None = None,
) -> PreviewDocument:
    """
    Normalize, escape and wrap component source into a harness document.

    Raises:
        ValueError: The escaped source could still close its script block
    """
    normalized = normalize_source(code)
    escaped = escape_embedded(normalized.code)
    if not is_embeddable(escaped):
        raise ValueError("escaped component source still contains a script or comment marker")

    html = build_harness(
        escaped,
        device=device,
        warnings=normalized.warnings,
        title=title,
        css=(files or {}).get(CSS_FILE),
    )
    logger.info(
        "assembly: preview built shape=%s device=%s source_len=%d html_len=%d",
        normalized.shape,
        device,
        len(code),
        len(html),
    )
    return PreviewDocument(html=html, shape=normalized.shape, warnings=list(normalized.warnings))
