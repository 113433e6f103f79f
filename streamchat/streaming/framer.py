"""
streamchat - Stream Framer

Turns the router's fragment sequence into the ordered frame sequence sent
to the client:

    START --role--> STREAMING --content*--> COMPLETED (completion, terminal)
                                       +--> FAULTED   (error, terminal)

Content already sent is never retracted. Exactly one terminal frame ends
every stream, whichever path it takes.
"""

from enum import Enum
from typing import AsyncIterator, Optional

from .frames import (
    CompletionFrame,
    ContentFrame,
    ErrorFrame,
    Frame,
    RoleFrame,
    StreamEnvelope,
    TerminalFrame,
    encode_frame,
)
from ..core.errors import ChatError
from ..observability.logging import get_logger
from ..observability.metrics import MetricsCollector


logger = get_logger(__name__)


class FramerState(str, Enum):
    START = "start"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAULTED = "faulted"


class StreamFramer:
    """
    Frames one stream. Single-use.

    Usage:
        framer = StreamFramer(router.chat_stream(conversation, model_id), model_id)
        return StreamingResponse(framer.events(), media_type="text/event-stream")
    """

    def __init__(
        self,
        fragments: AsyncIterator[str],
        model: str,
        provider: Optional[str] = None,
        metrics: Optional[MetricsCollector] = None,
        envelope: Optional[StreamEnvelope] = None,
    ):
        self.fragments = fragments
        self.model = model
        self.provider = provider
        self.metrics = metrics
        self.envelope = envelope or StreamEnvelope(model=model)
        self.state = FramerState.START
        self.fragment_count = 0
        self.error: Optional[ChatError] = None

    async def frames(self) -> AsyncIterator[Frame]:
        """Yield typed frames in wire order."""
        if self.state != FramerState.START:
            raise RuntimeError("StreamFramer can only be consumed once")

        self.state = FramerState.STREAMING

        try:
            yield RoleFrame()

            async for fragment in self.fragments:
                if not fragment:
                    continue
                self.fragment_count += 1
                if self.metrics is not None:
                    self.metrics.record_fragment(self.model)
                yield ContentFrame(fragment)
        except Exception as e:
            # Router failures arrive already classified; anything else is
            # classified here, once.
            self.error = ChatError.from_exception(e, self.provider, self.model)
        finally:
            await _release(self.fragments)

        if self.error is not None:
            self.state = FramerState.FAULTED
            self._finish("faulted", self.error.kind.value)
            yield ErrorFrame(
                kind=self.error.kind,
                message=self.error.message,
                timestamp=self.error.error.timestamp,
            )
        else:
            self.state = FramerState.COMPLETED
            self._finish("completed")
            yield CompletionFrame()

        yield TerminalFrame()

    async def events(self) -> AsyncIterator[str]:
        """Yield SSE event strings, ready for a StreamingResponse."""
        frames = self.frames()
        try:
            async for frame in frames:
                yield encode_frame(frame, self.envelope)
        finally:
            await frames.aclose()

    def _finish(self, outcome: str, error_kind: Optional[str] = None):
        if self.metrics is not None:
            self.metrics.record_stream(self.model, outcome, error_kind)

        if error_kind is None:
            logger.info(
                "Stream completed",
                model=self.model,
                provider=self.provider,
                fragments=self.fragment_count,
            )
        else:
            logger.warning(
                "Stream faulted",
                model=self.model,
                provider=self.provider,
                fragments=self.fragment_count,
                error_kind=error_kind,
            )


async def _release(iterator: AsyncIterator[str]):
    aclose = getattr(iterator, "aclose", None)
    if aclose is not None:
        await aclose()
