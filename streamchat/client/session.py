"""
streamchat - Chat Session

Client-side conversation state, driven by a StreamReader.

The session holds three kinds of entries:
- user messages
- assistant messages, each parsed incrementally as content arrives
- error entries, kept distinct from assistant messages and never sent
  back to the server
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .reader import FrameHandler
from ..core.errors import ErrorKind, NETWORK_FAILURE_MESSAGE, classify_error, utc_timestamp
from ..core.models import Conversation, Message, Role, get_model_config
from ..streaming.parser import ParsedContent, ParserState
from ..observability.logging import get_logger


logger = get_logger(__name__)


class EntryType(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    ERROR = "error"


@dataclass
class ChatEntry:
    """One row of the client conversation."""
    type: EntryType
    text: str = ""

    # Assistant entries
    parser: Optional[ParserState] = None

    # Error entries
    kind: Optional[ErrorKind] = None
    provider: Optional[str] = None

    timestamp: str = field(default_factory=utc_timestamp)

    @property
    def content(self) -> Optional[ParsedContent]:
        return self.parser.content if self.parser is not None else None

    @property
    def complete(self) -> bool:
        return self.parser is None or self.parser.frozen


class ChatSession(FrameHandler):
    """
    Conversation state for one selected model.

    Usage:
        session = ChatSession("gpt-4o")
        session.add_user("hello")
        session.begin_assistant()
        await StreamReader(session).consume(source)
    """

    def __init__(self, model: str):
        self.model = model
        self.entries: List[ChatEntry] = []
        self.loading = False
        self.current: Optional[ChatEntry] = None

    @property
    def provider(self) -> Optional[str]:
        """Provider of the selected model, for error attribution."""
        config = get_model_config(self.model)
        return config.provider.value if config is not None else None

    def add_user(self, text: str) -> ChatEntry:
        entry = ChatEntry(EntryType.USER, text)
        self.entries.append(entry)
        return entry

    def begin_assistant(self) -> ChatEntry:
        """Add the in-progress assistant placeholder."""
        entry = ChatEntry(EntryType.ASSISTANT, parser=ParserState())
        self.entries.append(entry)
        self.current = entry
        self.loading = True
        return entry

    def add_assistant(self, text: str) -> ChatEntry:
        """Add a complete assistant message (non-streaming responses)."""
        entry = ChatEntry(EntryType.ASSISTANT, text, parser=ParserState())
        entry.parser.append(text)
        entry.parser.freeze()
        self.entries.append(entry)
        return entry

    # ============================================================
    # Frame handling
    # ============================================================

    def on_content(self, text: str):
        if self.current is None:
            self.begin_assistant()
        self.current.text += text
        self.current.parser.append(text)

    def on_completion(self):
        if self.current is not None:
            self.current.parser.freeze()
        self.current = None
        self.loading = False

    def on_error(self, kind: ErrorKind, message: str, timestamp: Optional[str] = None):
        if self.current is not None:
            self.entries.remove(self.current)
            self.current = None

        self.entries.append(ChatEntry(
            EntryType.ERROR,
            message,
            kind=kind,
            provider=self.provider,
            timestamp=timestamp or utc_timestamp(),
        ))
        self.loading = False

    def fail_locally(self, error: BaseException):
        """Handle a failure of the byte source itself."""
        logger.warning(
            "Chat stream failed locally",
            model=self.model,
            error=str(error) or type(error).__name__,
        )
        self.on_error(classify_error(NETWORK_FAILURE_MESSAGE), NETWORK_FAILURE_MESSAGE)

    # ============================================================
    # Queries
    # ============================================================

    @property
    def last_entry(self) -> Optional[ChatEntry]:
        return self.entries[-1] if self.entries else None

    def last_user_message(self) -> Optional[str]:
        for entry in reversed(self.entries):
            if entry.type == EntryType.USER:
                return entry.text
        return None

    def drop_trailing_errors(self):
        while self.entries and self.entries[-1].type == EntryType.ERROR:
            self.entries.pop()

    def history(self) -> Conversation:
        """Conversation to send: user and finished assistant messages."""
        messages = []
        for entry in self.entries:
            if entry.type == EntryType.USER:
                messages.append(Message(Role.USER, entry.text))
            elif entry.type == EntryType.ASSISTANT and entry.complete:
                visible = entry.parser.visible if entry.parser is not None else entry.text
                if visible:
                    messages.append(Message(Role.ASSISTANT, visible))
        return Conversation(tuple(messages))
