"""
streamchat - Stream Reader

Consumes the byte stream of a streaming chat response and dispatches the
decoded frames, in arrival order, to a FrameHandler.

Bytes arrive split at arbitrary points. Lines are cut on ``\\n`` before
decoding, so a multi-byte character split across reads is reassembled.
"""

from typing import AsyncIterable, Optional

from ..core.errors import ErrorKind, FrameDecodeError, StreamClosedError
from ..streaming.frames import (
    CompletionFrame,
    ContentFrame,
    ErrorFrame,
    Frame,
    RoleFrame,
    TerminalFrame,
    decode_frame,
)
from ..observability.logging import get_logger


logger = get_logger(__name__)

DATA_PREFIX = b"data:"


class FrameHandler:
    """Receives frames from a StreamReader. Override what you need."""

    def on_role(self, role: str):
        pass

    def on_content(self, text: str):
        pass

    def on_completion(self):
        pass

    def on_error(self, kind: ErrorKind, message: str, timestamp: Optional[str] = None):
        pass


class StreamReader:
    """
    Usage:
        async with http.stream("POST", url, json=payload) as response:
            await StreamReader(session).consume(response.aiter_bytes())
    """

    def __init__(self, handler: FrameHandler):
        self.handler = handler
        self.frames_read = 0

    async def consume(self, source: AsyncIterable[bytes]) -> None:
        """
        Read until the terminal frame.

        The source is released on every exit path.

        Raises:
            FrameDecodeError: A ``data:`` line did not decode
            StreamClosedError: The source ended before the terminal frame
        """
        buffer = b""
        try:
            async for chunk in source:
                buffer += chunk
                while True:
                    newline = buffer.find(b"\n")
                    if newline == -1:
                        break
                    line, buffer = buffer[:newline], buffer[newline + 1:]
                    if self._handle_line(line):
                        return

            # A final line without its newline still counts.
            if buffer and self._handle_line(buffer):
                return

            raise StreamClosedError()
        finally:
            await _release(source)

    def _handle_line(self, line: bytes) -> bool:
        """Process one line; True once the terminal frame is seen."""
        line = line.rstrip(b"\r")
        if not line.startswith(DATA_PREFIX):
            # Blank separators, ``:`` comments and other SSE fields
            return False

        try:
            payload = line[len(DATA_PREFIX):].decode("utf-8")
        except UnicodeDecodeError as e:
            raise FrameDecodeError(f"Frame is not valid UTF-8: {e}") from e

        frame = decode_frame(payload)
        self.frames_read += 1
        return self._dispatch(frame)

    def _dispatch(self, frame: Frame) -> bool:
        if isinstance(frame, TerminalFrame):
            logger.debug("Stream terminated", frames=self.frames_read)
            return True
        if isinstance(frame, RoleFrame):
            self.handler.on_role(frame.role)
        elif isinstance(frame, ContentFrame):
            self.handler.on_content(frame.text)
        elif isinstance(frame, CompletionFrame):
            self.handler.on_completion()
        elif isinstance(frame, ErrorFrame):
            self.handler.on_error(frame.kind, frame.message, frame.timestamp)
        return False


async def _release(source: AsyncIterable[bytes]):
    aclose = getattr(source, "aclose", None)
    if aclose is not None:
        await aclose()
