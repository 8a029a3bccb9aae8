from __future__ import annotations

import json

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, StreamingResponse
from loguru import logger

from repo_health.api.deps import get_pipeline
from repo_health.core.errors import AnalysisError
from repo_health.schemas.analyze import AnalyzeRequest, ErrorResponse
from repo_health.services.pipeline.orchestrator import AnalysisPipeline

router = APIRouter(tags=["analyze"])

MISSING_TARGET = "Owner and Repo are required"


def _missing_target() -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": MISSING_TARGET})


@router.post("/analyze")
async def analyze(payload: AnalyzeRequest, pipeline: AnalysisPipeline = Depends(get_pipeline)):
    owner, repo = (payload.owner or "").strip(), (payload.repo or "").strip()
    if not owner or not repo:
        return _missing_target()

    try:
        result = await pipeline.run(owner, repo)
    except AnalysisError as e:
        body = ErrorResponse(error=e.message, details=e.details or repr(e))
        return JSONResponse(status_code=500, content=body.model_dump())
    except Exception as e:
        logger.exception(f"Analysis of {owner}/{repo} failed unexpectedly")
        body = ErrorResponse(error=str(e) or "Failed to analyze repository", details=repr(e))
        return JSONResponse(status_code=500, content=body.model_dump())

    return JSONResponse(content=result.model_dump(by_alias=True))


@router.post("/analyze-stream")
async def analyze_stream(
    payload: AnalyzeRequest,
    request: Request,
    pipeline: AnalysisPipeline = Depends(get_pipeline),
):
    owner, repo = (payload.owner or "").strip(), (payload.repo or "").strip()
    if not owner or not repo:
        return _missing_target()

    async def event_gen():
        events = pipeline.stream(owner, repo)
        try:
            async for event in events:
                if await request.is_disconnected():
                    # an in-flight LLM call is not interrupted, only further events
                    logger.info(f"Client left the stream for {owner}/{repo}")
                    break
                yield f"data: {json.dumps(event)}\n\n"
        finally:
            await events.aclose()

    return StreamingResponse(
        event_gen(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )
