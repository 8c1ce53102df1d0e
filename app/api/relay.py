from __future__ import annotations

import logging
from typing import Iterator

import requests
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response, StreamingResponse
from starlette.concurrency import run_in_threadpool

from app.core.config import RELAY_PATH
from app.models.chat import RelayRequest
from app.services import upstream
from app.services.errors import MemeMindError

logger = logging.getLogger("mememind.api.relay")
router = APIRouter()

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code, headers=CORS_HEADERS)


def _passthrough(resp: requests.Response) -> Iterator[bytes]:
    """Hand gateway bytes to the client as they arrive; never buffers the body."""
    sent = 0
    try:
        for chunk in resp.iter_content(chunk_size=None):
            if chunk:
                sent += len(chunk)
                yield chunk
    finally:
        resp.close()
        logger.info("relay stream closed bytes=%d", sent)


@router.options(RELAY_PATH, name="relay_preflight")
async def relay_preflight():
    return Response(status_code=200, headers=CORS_HEADERS)


@router.post(RELAY_PATH, name="relay")
async def relay(request: Request):
    try:
        body = await request.json()
        payload = RelayRequest.model_validate(body)
        messages = payload.upstream_messages()
        logger.info("POST %s messages=%d", RELAY_PATH, len(messages))

        resp = await run_in_threadpool(upstream.open_stream, messages)
    except MemeMindError as e:
        return _error(e.status_code, e.message)
    except Exception as e:
        logger.exception("relay error")
        return _error(500, str(e) or "Unknown error")

    return StreamingResponse(
        _passthrough(resp),
        media_type="text/event-stream",
        headers=CORS_HEADERS,
    )
