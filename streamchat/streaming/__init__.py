"""
streamchat Streaming Module

Wire frames, the server-side stream framer and the incremental content
parser.
"""

from .frames import (
    RoleFrame,
    ContentFrame,
    CompletionFrame,
    ErrorFrame,
    TerminalFrame,
    StreamEnvelope,
    encode_frame,
    decode_frame,
)
from .framer import StreamFramer, FramerState
from .parser import (
    ParsedContent,
    ParserState,
    Segment,
    SegmentKind,
    ToolCallRecord,
    parse_content,
)

__all__ = [
    # Frames
    "RoleFrame",
    "ContentFrame",
    "CompletionFrame",
    "ErrorFrame",
    "TerminalFrame",
    "StreamEnvelope",
    "encode_frame",
    "decode_frame",
    # Framer
    "StreamFramer",
    "FramerState",
    # Parser
    "ParsedContent",
    "ParserState",
    "Segment",
    "SegmentKind",
    "ToolCallRecord",
    "parse_content",
]
