"""
Project builder — turns a finished completion into the generated project.

The entry file stores the extracted source as-is; normalization only happens
when a preview is assembled.
"""

from __future__ import annotations

import json
import logging

from backend.models.generation import ENTRY_FILE, ProjectPayload
from backend.services.errors import ErrorKind
from engine.preview import extract_source

logger = logging.getLogger(__name__)

PROJECT_NAME = "streaming-app"

INDEX_CSS = """body {
  margin: 0;
  font-family: system-ui, -apple-system, sans-serif;
}

code {
  font-family: 'Monaco', 'Menlo', monospace;
}
"""

PACKAGE_JSON = {
    "name": "generated-app",
    "version": "0.1.0",
    "dependencies": {
        "react": "^18.2.0",
        "react-dom": "^18.2.0",
        "react-scripts": "5.0.1",
    },
}


def build_project(text: str) -> ProjectPayload:
    """Extract the component from the completion text and wrap it in a project."""
    result = extract_source(text)
    if result.fallback:
        logger.info(
            "project_builder: placeholder substituted kind=%s completion_len=%d",
            ErrorKind.EXTRACTION_FALLBACK.value,
            len(text),
        )
    return _project(result.source)


def build_modified_project(original_code: str, text: str) -> ProjectPayload:
    """
    Wrap a modification completion in a project.

    A completion with no usable code keeps the original code instead of the
    placeholder, so a failed rewrite never loses the user's component.
    """
    result = extract_source(text)
    if result.fallback:
        logger.info(
            "project_builder: modification kept original kind=%s completion_len=%d",
            ErrorKind.EXTRACTION_FALLBACK.value,
            len(text),
        )
        return _project(original_code)
    return _project(result.source)


def _project(source: str) -> ProjectPayload:
    files = {
        ENTRY_FILE: source,
        "src/index.css": INDEX_CSS,
        "package.json": json.dumps(PACKAGE_JSON, indent=2),
    }
    return ProjectPayload(files=files, project_name=PROJECT_NAME)
