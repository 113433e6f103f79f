"""
streamchat Client Module

Stream reader, client-side chat session and the async HTTP client.
"""

from .reader import FrameHandler, StreamReader
from .session import ChatEntry, ChatSession, EntryType
from .client import ChatClient

__all__ = [
    "FrameHandler",
    "StreamReader",
    "ChatEntry",
    "ChatSession",
    "EntryType",
    "ChatClient",
]
