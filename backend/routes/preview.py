"""Preview route — wraps component source in the sandbox harness."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException
from fastapi.responses import HTMLResponse

from backend.models.generation import PreviewRequest
from backend.services.errors import ErrorKind
from engine.preview import assemble_preview

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["preview"])

PREVIEW_HEADERS = {
    "Cache-Control": "no-store",
    "X-Content-Type-Options": "nosniff",
}


@router.post("/preview-code", response_class=HTMLResponse)
async def preview_code(req: PreviewRequest) -> HTMLResponse:
    """
    Build the preview document for a component.

    Always 200 for a valid request: compile and mount failures are reported
    inside the document by its diagnostic panel, not over HTTP.
    """
    try:
        document = assemble_preview(req.code, device=req.device, files=req.files)
    except Exception as exc:
        logger.exception("preview: harness build failed code_len=%d", len(req.code))
        raise HTTPException(status_code=500, detail=f"Failed to generate preview: {exc}") from exc

    if document.warnings:
        logger.warning(
            "preview: ambiguous entry kind=%s shape=%s warnings=%s",
            ErrorKind.NORMALIZATION_AMBIGUOUS.value,
            document.shape,
            ",".join(document.warnings),
        )
    return HTMLResponse(document.html, headers=PREVIEW_HEADERS)
