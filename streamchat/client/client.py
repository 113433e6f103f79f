"""
streamchat - Async Chat Client

Drives a ChatSession against a streamchat server over HTTP.
"""

from typing import Any, Dict, Mapping, Optional, Tuple

import httpx

from .reader import StreamReader
from .session import ChatEntry, ChatSession, EntryType
from ..core.errors import (
    ChatError,
    ErrorKind,
    FrameDecodeError,
    StreamClosedError,
    classify_error,
)
from ..core.models import get_default_model
from ..streaming.parser import ParsedContent
from ..observability.logging import get_logger


logger = get_logger(__name__)


class ChatClient:
    """
    streamchat client.

    Args:
        base_url: Server root, e.g. ``http://localhost:8000``
        model: Catalog model id. Defaults to the first catalog entry.
        api_keys: Per-request provider keys sent as ``userApiKeys``
        http_client: Pre-configured httpx.AsyncClient (not closed by us)
        timeout: Request timeout in seconds

    Example:
        >>> async with ChatClient("http://localhost:8000", "gpt-4o") as client:
        ...     entry = await client.send("Hello!")
        ...     print(entry.content.visible)
    """

    CHAT_PATH = "/api/chat"

    def __init__(
        self,
        base_url: str,
        model: Optional[str] = None,
        api_keys: Optional[Mapping[str, str]] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 60.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_keys = dict(api_keys) if api_keys else None
        self.session = ChatSession(model or get_default_model())
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=timeout,
            headers={"Content-Type": "application/json"},
        )

    @property
    def model(self) -> str:
        return self.session.model

    @model.setter
    def model(self, value: str):
        self.session.model = value

    # ============================================================
    # Chat API
    # ============================================================

    async def send(self, text: str) -> ChatEntry:
        """
        Send a user message and stream the reply into the session.

        Returns:
            The assistant entry, or the error entry that replaced it.
        """
        self.session.add_user(text)
        return await self._stream_reply()

    async def retry(self) -> ChatEntry:
        """Re-send the last user message after a failed reply."""
        if self.session.last_user_message() is None:
            raise ValueError("No user message to retry")
        self.session.drop_trailing_errors()
        return await self._stream_reply()

    async def complete(self, text: str) -> ParsedContent:
        """
        Non-streaming request.

        Raises:
            ChatError: The server answered with an error body, or the
                request never reached it
        """
        self.session.add_user(text)
        payload = self._payload(stream=False)

        try:
            response = await self._client.post(self._url(), json=payload)
        except httpx.TransportError as e:
            self.session.fail_locally(e)
            raise self._last_error() from e

        if response.status_code >= 400:
            kind, message = _error_from_body(response)
            self.session.on_error(kind, message)
            raise self._last_error()

        data = response.json()
        content = data["choices"][0]["message"]["content"] or ""
        return self.session.add_assistant(content).content

    # ============================================================
    # Helpers
    # ============================================================

    async def _stream_reply(self) -> ChatEntry:
        payload = self._payload(stream=True)
        self.session.begin_assistant()

        try:
            async with self._client.stream("POST", self._url(), json=payload) as response:
                if response.status_code >= 400:
                    await response.aread()
                    kind, message = _error_from_body(response)
                    self.session.on_error(kind, message)
                else:
                    await StreamReader(self.session).consume(response.aiter_bytes())
        except (httpx.TransportError, StreamClosedError) as e:
            self.session.fail_locally(e)
        except FrameDecodeError as e:
            logger.warning("Undecodable frame", model=self.model, payload=e.payload)
            self.session.on_error(ErrorKind.UNKNOWN, f"API error: {e.message}")

        if self.session.loading:
            # Terminal frame without a completion or error frame
            self.session.on_completion()

        return self.session.last_entry

    def _payload(self, stream: bool) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "messages": self.session.history().to_list(),
            "model": self.model,
            "stream": stream,
        }
        if self.api_keys:
            payload["userApiKeys"] = self.api_keys
        return payload

    def _url(self) -> str:
        return f"{self.base_url}{self.CHAT_PATH}"

    def _last_error(self) -> ChatError:
        entry = self.session.last_entry
        return ChatError(entry.kind, entry.text, provider=entry.provider, model=self.model)

    async def close(self):
        """Close the HTTP client if we created it."""
        if self._owns_client and not self._client.is_closed:
            await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.close()


def _error_from_body(response: httpx.Response) -> Tuple[ErrorKind, str]:
    """Read ``{error, type}`` from a non-2xx response."""
    try:
        data = response.json()
    except ValueError:
        data = None

    if not isinstance(data, dict) or not data.get("error"):
        message = response.text or f"HTTP {response.status_code}"
        return classify_error(message), message

    message = str(data["error"])
    try:
        kind = ErrorKind(data.get("type"))
    except ValueError:
        kind = classify_error(message)
    return kind, message
