"""Generation routes — streaming and one-shot component generation, model list."""

from __future__ import annotations

import asyncio
import contextlib
import functools
import logging
from collections.abc import AsyncIterator

from fastapi import APIRouter, Header
from fastapi.responses import JSONResponse, StreamingResponse

from backend.models.generation import GenerationRequest, ModelInfo, ModificationRequest
from backend.services.errors import classify_upstream_error
from backend.services.llm_provider import get_llm
from backend.services.model_registry import AVAILABLE_MODELS, authorize, tiers_for
from backend.services.project_builder import build_modified_project, build_project
from backend.services.prompt_builder import build_modify_prompt, build_modify_system_prompt
from backend.services.token_relay import EventChannel, TokenRelay

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["generate"])

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


async def relay_frames(deltas: AsyncIterator[str], relay: TokenRelay | None = None) -> AsyncIterator[str]:
    """
    Run one TokenRelay and yield its wire frames.

    When the client disconnects the generator is closed early; the relay is
    then cancelled and the upstream stream released.
    """
    channel = EventChannel()
    cancel = asyncio.Event()
    relay = relay or TokenRelay()
    task = asyncio.create_task(relay.run(deltas, channel, cancel))
    # Readers must never wait on a relay that died unexpectedly
    task.add_done_callback(lambda _: channel.close())

    try:
        async for frame in channel.frames():
            yield frame
    finally:
        cancel.set()
        channel.close()
        if not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task


@router.post("/generate-stream")
async def generate_stream(
    req: GenerationRequest,
    x_subscription_tier: str | None = Header(default=None),
) -> StreamingResponse:
    """
    Stream a generated component as server-sent events.

    Request errors (bad model, tier denied) are raised before the stream
    starts; anything that goes wrong afterwards arrives as an error event.
    """
    spec = authorize(req.model, x_subscription_tier)
    logger.info("generate: stream start model=%s tier=%s prompt_len=%d", spec.id, x_subscription_tier, len(req.prompt))
    llm = get_llm(spec)
    return StreamingResponse(
        relay_frames(llm.stream(req.prompt)),
        media_type="text/event-stream",
        headers=STREAM_HEADERS,
    )


@router.post("/modify-code")
async def modify_code(
    req: ModificationRequest,
    x_subscription_tier: str | None = Header(default=None),
) -> StreamingResponse:
    """
    Stream a rewrite of existing code as server-sent events.

    Same delivery protocol as /generate-stream. The complete event's project
    keeps the original code when the completion has none to offer.
    """
    spec = authorize(req.model, x_subscription_tier)
    logger.info(
        "generate: modify start model=%s tier=%s code_len=%d instruction_len=%d",
        spec.id,
        x_subscription_tier,
        len(req.code),
        len(req.instruction),
    )
    llm = get_llm(spec)
    deltas = llm.stream(build_modify_prompt(req.code, req.instruction), system=build_modify_system_prompt())
    relay = TokenRelay(finalize=functools.partial(build_modified_project, req.code))
    return StreamingResponse(
        relay_frames(deltas, relay),
        media_type="text/event-stream",
        headers=STREAM_HEADERS,
    )


@router.post("/generate")
async def generate(
    req: GenerationRequest,
    x_subscription_tier: str | None = Header(default=None),
):
    """Generate a component and return the whole project at once."""
    spec = authorize(req.model, x_subscription_tier)
    logger.info("generate: start model=%s tier=%s prompt_len=%d", spec.id, x_subscription_tier, len(req.prompt))
    llm = get_llm(spec)

    try:
        text = "".join([delta async for delta in llm.stream(req.prompt)])
    except Exception as exc:
        error = classify_upstream_error(exc)
        logger.warning("generate: upstream failed kind=%s status=%d", error.kind.value, error.status_code)
        return JSONResponse(error.to_body(), status_code=error.status_code)

    project = build_project(text)
    return {"project": project.model_dump(by_alias=True)}


@router.get("/models")
async def list_models() -> list[ModelInfo]:
    """List every model with the subscription tiers allowed to use it."""
    return [
        ModelInfo(id=spec.id, name=spec.name, provider=spec.provider, tiers=tiers_for(spec.id))
        for spec in AVAILABLE_MODELS.values()
    ]
