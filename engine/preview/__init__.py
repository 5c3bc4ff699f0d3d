"""
uiforge Preview — component source to sandboxed preview document.

Components:
  syntax      — tree-sitter TSX parsing: declarations, output and shape detection
  extractor   — completion text → component source (fences, reflow, fallback)
  normalizer  — component source → source with exactly one App entry
  escaping    — source → text safe inside an inert script block
  harness     — escaped source → self-diagnosing HTML document
  assembly    — normalizer + escaping + harness in one call
"""

from engine.preview.assembly import PreviewDocument, assemble_preview
from engine.preview.escaping import escape_embedded, unescape_embedded
from engine.preview.extractor import ExtractionResult, extract_source
from engine.preview.harness import build_harness
from engine.preview.normalizer import NormalizedSource, normalize_source

__all__ = [
    "assemble_preview",
    "PreviewDocument",
    "build_harness",
    "escape_embedded",
    "unescape_embedded",
    "extract_source",
    "ExtractionResult",
    "normalize_source",
    "NormalizedSource",
]
