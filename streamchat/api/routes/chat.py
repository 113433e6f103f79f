"""
streamchat - Chat API

POST /api/chat, streaming (Server-Sent Events) or one-shot.
"""

import time

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, StreamingResponse

from ...core.errors import ChatError
from ...core.models import get_model_config
from ...core.normalizer import normalize_request
from ...observability.logging import LogContext, get_logger
from ...routing.router import ModelRouter
from ...streaming.framer import StreamFramer

from ..models import ChatRequest, ErrorResponse
from ..dependencies import get_metrics, get_router, stream_headers


router = APIRouter(prefix="/api", tags=["chat"])
logger = get_logger(__name__)


@router.post(
    "/chat",
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def create_chat(
    request: Request,
    body: ChatRequest,
    router_instance: ModelRouter = Depends(get_router),
):
    """
    Chat with the selected model.

    **Streaming** (default): ``text/event-stream`` of
    ``chat.completion.chunk`` frames ending with ``data: [DONE]``. Failures,
    including a missing key or an unknown model, arrive as an error frame
    followed by ``[DONE]``.

    **Non-streaming** (``stream: false``): one ``chat.completion`` object,
    or ``{error, type, timestamp}`` with a status matching the error type.
    """
    # Raises InvalidRequestError -> 400 {error}
    conversation, model_id = normalize_request(body.messages, body.model)

    ctx = LogContext.get_current()
    if ctx is not None:
        ctx.update(model=model_id)

    logger.debug(
        "Chat request",
        model=model_id,
        streaming=body.stream,
        turns=len(conversation),
    )

    if body.stream:
        metrics = get_metrics(request)
        fragments = router_instance.chat_stream(
            conversation,
            model_id,
            temperature=body.temperature,
            max_tokens=body.max_tokens,
            api_keys=body.userApiKeys,
        )
        config = get_model_config(model_id)
        framer = StreamFramer(
            fragments,
            model_id,
            provider=config.provider.value if config is not None else None,
            metrics=metrics,
        )
        return StreamingResponse(
            framer.events(),
            media_type="text/event-stream",
            headers=stream_headers(request),
        )

    try:
        result = await router_instance.chat(
            conversation,
            model_id,
            temperature=body.temperature,
            max_tokens=body.max_tokens,
            api_keys=body.userApiKeys,
        )
    except ChatError as e:
        return JSONResponse(status_code=e.status_code, content=e.to_dict())

    completion_id = f"chatcmpl-{int(time.time() * 1000)}"
    return JSONResponse(content=result.to_completion_dict(completion_id))
