"""Screenshot API routes.

Both routes return the produced PNG as a download and delete the file once
the response has been sent. Chat captures hold the route's lock for their
whole duration; a concurrent request gets a 503 instead of waiting.
"""

import logging
from pathlib import Path

from fastapi import APIRouter, Depends, Request
from fastapi.responses import FileResponse
from starlette.background import BackgroundTask

from ...capture import ChatCaptureEngine, GenericCaptureEngine
from ...models.capture import ChatCaptureRequest, GenericCaptureRequest
from ...utils.locks import ConcurrencyGate
from ..dependencies import get_chat_engine, get_gate, get_generic_engine
from ..schemas import ErrorResponse

logger = logging.getLogger(__name__)

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Bad Request"},
    404: {"model": ErrorResponse, "description": "Not Found"},
    500: {"model": ErrorResponse, "description": "Internal Server Error"},
    503: {"model": ErrorResponse, "description": "Busy or Not Initialized"},
}

router = APIRouter(tags=["Screenshots"], responses=ERROR_RESPONSES)
chat_router = APIRouter(tags=["Chat"], responses=ERROR_RESPONSES)


def remove_file(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.error(f"Error occurred while removing response file {path}: {e}")


def file_response(path: Path) -> FileResponse:
    return FileResponse(
        path,
        media_type="image/png",
        filename=path.name,
        background=BackgroundTask(remove_file, path)
    )


@router.post(
    "/screenshot",
    response_class=FileResponse,
    summary="Capture a web page",
    description="Loads a page in an isolated document and returns a PNG of it, a clip or an element"
)
async def screenshot(
    body: GenericCaptureRequest,
    engine: GenericCaptureEngine = Depends(get_generic_engine)
):
    path = await engine.capture(body)
    return file_response(path)


@chat_router.post(
    "/messageScreenshot",
    response_class=FileResponse,
    summary="Capture chat messages",
    description=(
        "Captures one or more messages from the shared chat document. The PNG is "
        "followed by an 8-byte record: the profile picture x, y, width and height "
        "as big-endian int16 values."
    )
)
async def message_screenshot(
    request: Request,
    body: ChatCaptureRequest,
    engine: ChatCaptureEngine = Depends(get_chat_engine),
    gate: ConcurrencyGate = Depends(get_gate)
):
    with gate.hold(request.url.path, message_id=body.anchor_id):
        path = await engine.capture_messages(body)
    return file_response(path)
