"""
Render Routes
=============

FastAPI routes for submitting render requests and reading their results.
"""

from fastapi import APIRouter, HTTPException, Request, Response, status

from url2img.config.logging import get_logger
from url2img.core.queue.dispatcher import RequestDispatcher
from url2img.core.storage.result_store import ResultStore
from url2img.models.schemas import ResultResponse, SubmitResponse

router = APIRouter(prefix="/api/v1", tags=["Rendering"])

logger = get_logger(__name__)


def get_dispatcher(request: Request) -> RequestDispatcher:
    return request.app.state.dispatcher


def get_result_store(request: Request) -> ResultStore:
    return request.app.state.store


@router.post("/render", status_code=status.HTTP_202_ACCEPTED, response_model=SubmitResponse)
async def submit_render(request: Request) -> SubmitResponse:
    """
    Submit a render request.

    The body is the serialized request record. Malformed requests are accepted
    and dropped, so no result will ever appear for them.
    """
    body = await request.body()
    get_dispatcher(request).submit(body)
    return SubmitResponse()


@router.get("/render/{request_id}", response_model=ResultResponse)
async def get_render_result(request_id: str, request: Request) -> ResultResponse:
    """
    Get the hex-encoded result of a render request.

    An empty data string means the requested format is not supported.
    """
    data = await get_result_store(request).get(request_id)
    if data is None:
        raise HTTPException(status_code=404, detail="Result not found")

    return ResultResponse(id=request_id, data=data, size=len(data) // 2)


@router.delete("/render/{request_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_render_result(request_id: str, request: Request) -> Response:
    """Remove a stored result."""
    deleted = await get_result_store(request).delete(request_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Result not found")

    logger.info("Result deleted", request_id=request_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
