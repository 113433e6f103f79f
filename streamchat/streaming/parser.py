"""
streamchat - Incremental Content Parser

Separates a model's cumulative raw output into three channels:

- the visible answer
- the reasoning trace, delimited by ``<think>...</think>``
- tool-call records, ``<tool_call name="..." args='...' result='...' success="true"/>``
  optionally grouped in ``<tool_calls>...</tool_calls>``

parse_content() is a pure function of the raw text accumulated so far and
is recomputed on every delta. While the stream is still running
(``final=False``) anything that could still turn into markup is withheld
from the visible text, so the visible answer only ever grows:

- an unclosed ``<think>`` region is exposed as partial reasoning
- an unclosed ``<tool_calls>`` container, an unterminated ``<tool_call``
  and a trailing tag prefix such as ``<thi`` are held back

With ``final=True`` an unclosed reasoning region is flushed into the
reasoning channel and held-back markup is released as visible text.

Tag matching is case-insensitive. Closed reasoning regions take precedence
over tool markup.
"""

import html
import json
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


THINK_OPEN = re.compile(r"<think>", re.IGNORECASE)
THINK_CLOSE = re.compile(r"</think>", re.IGNORECASE)
CONTAINER_OPEN = re.compile(r"<tool_calls\s*>", re.IGNORECASE)
CONTAINER_CLOSE = re.compile(r"</tool_calls\s*>", re.IGNORECASE)

_ATTRIBUTES = r"((?:\s+[\w-]+\s*=\s*(?:\"[^\"]*\"|'[^']*'))*)"

RECORD = re.compile(
    r"<tool_call" + _ATTRIBUTES + r"\s*/?>(?:\s*</tool_call\s*>)?",
    re.IGNORECASE,
)

# A record cut off by the end of the text: complete attributes, then at
# most one partial attribute.
PARTIAL_RECORD = re.compile(
    r"<tool_call(?:\s+[\w-]+\s*=\s*(?:\"[^\"]*\"|'[^']*'))*"
    r"(?:\s+[\w-]*(?:\s*=\s*(?:\"[^\"]*|'[^']*)?)?)?\s*/?\Z",
    re.IGNORECASE,
)

ATTRIBUTE = re.compile(r"([\w-]+)\s*=\s*(?:\"([^\"]*)\"|'([^']*)')")

TAG_PREFIXES = ("<think>", "<tool_calls>", "<tool_call ", "</tool_call>")
THINK_CLOSE_TAG = "</think>"


class SegmentKind(str, Enum):
    """What a span of raw text was classified as."""
    VISIBLE = "visible"
    REASONING = "reasoning"
    TOOL = "tool"
    PENDING = "pending"  # Withheld while the stream is running


@dataclass(frozen=True)
class Segment:
    kind: SegmentKind
    text: str


@dataclass(frozen=True)
class ToolCallRecord:
    """
    One external-capability invocation reported in the stream.

    ``fallback`` is set when ``args`` or ``result`` were not valid JSON;
    the undecoded string is kept in their place.
    """
    name: str
    args: Any = field(default_factory=dict)
    result: Any = None
    error: Any = None
    success: bool = False
    fallback: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.name,
            "args": self.args,
            "success": self.success,
        }
        if self.result is not None:
            data["result"] = self.result
        if self.error is not None:
            data["error"] = self.error
        if self.fallback:
            data["fallback"] = True
        return data


@dataclass(frozen=True)
class ParsedContent:
    """Result of parse_content()."""
    visible: str
    reasoning: str
    tool_calls: Tuple[ToolCallRecord, ...]
    has_reasoning: bool
    reasoning_open: bool
    segments: Tuple[Segment, ...]
    final: bool = False

    def reconstruct(self) -> str:
        """Concatenate all segments; always equals the parsed raw text."""
        return "".join(segment.text for segment in self.segments)

    def region(self, kind: SegmentKind) -> str:
        return "".join(segment.text for segment in self.segments if segment.kind == kind)


def parse_content(raw: str, final: bool = False) -> ParsedContent:
    """
    Split cumulative raw model output into visible, reasoning and tool channels.

    Args:
        raw: All text received for the message so far
        final: The stream has terminated; flush instead of withholding

    Returns:
        ParsedContent. Calling twice with the same arguments gives equal
        results.
    """
    builder = _Builder(raw)
    pos = 0
    open_match = None

    # Reasoning regions first: they take precedence over tool markup.
    while True:
        start = THINK_OPEN.search(raw, pos)
        if start is None:
            break
        close = THINK_CLOSE.search(raw, start.end())
        if close is None:
            open_match = start
            break

        builder.scan(pos, start.start(), withhold_tail=False)
        builder.reasoning(start.start(), close.end(), raw[start.end():close.start()])
        pos = close.end()

    if open_match is None:
        builder.scan(pos, len(raw), withhold_tail=not final)
        reasoning_open = False
    else:
        builder.scan(pos, open_match.start(), withhold_tail=False)
        inner = raw[open_match.end():]
        if not final:
            inner = _trim_close_prefix(inner)
        builder.reasoning(open_match.start(), len(raw), inner)
        reasoning_open = not final

    return ParsedContent(
        visible="".join(builder.visible_parts).strip(),
        reasoning="\n".join(p for p in (part.strip() for part in builder.reasoning_parts) if p),
        tool_calls=tuple(builder.records),
        has_reasoning=bool(builder.reasoning_parts),
        reasoning_open=reasoning_open,
        segments=tuple(builder.segments),
        final=final,
    )


class _Builder:
    """Accumulates segments for one parse_content() call."""

    def __init__(self, raw: str):
        self.raw = raw
        self.segments: List[Segment] = []
        self.visible_parts: List[str] = []
        self.reasoning_parts: List[str] = []
        self.records: List[ToolCallRecord] = []

    def emit(self, kind: SegmentKind, start: int, end: int):
        if end <= start:
            return
        text = self.raw[start:end]
        self.segments.append(Segment(kind, text))
        if kind == SegmentKind.VISIBLE:
            self.visible_parts.append(text)

    def reasoning(self, start: int, end: int, inner: str):
        self.emit(SegmentKind.REASONING, start, end)
        self.reasoning_parts.append(inner)

    def scan(self, start: int, end: int, withhold_tail: bool):
        """Classify raw[start:end], which lies outside any reasoning region."""
        raw = self.raw
        pos = visible_from = start

        while pos < end:
            lt = raw.find("<", pos, end)
            if lt == -1:
                break

            container = CONTAINER_OPEN.match(raw, lt, end)
            if container:
                close = CONTAINER_CLOSE.search(raw, container.end(), end)
                if close:
                    self.emit(SegmentKind.VISIBLE, visible_from, lt)
                    for match in RECORD.finditer(raw, container.end(), close.start()):
                        record = _build_record(match)
                        if record is not None:
                            self.records.append(record)
                    self.emit(SegmentKind.TOOL, lt, close.end())
                    pos = visible_from = close.end()
                    continue
                if withhold_tail:
                    self.emit(SegmentKind.VISIBLE, visible_from, lt)
                    self.emit(SegmentKind.PENDING, lt, end)
                    return
                pos = container.end()
                continue

            match = RECORD.match(raw, lt, end)
            if match:
                record = _build_record(match)
                if record is not None:
                    self.emit(SegmentKind.VISIBLE, visible_from, lt)
                    self.records.append(record)
                    self.emit(SegmentKind.TOOL, lt, match.end())
                    visible_from = match.end()
                pos = match.end()
                continue

            if withhold_tail and _could_become_markup(raw, lt, end):
                self.emit(SegmentKind.VISIBLE, visible_from, lt)
                self.emit(SegmentKind.PENDING, lt, end)
                return

            pos = lt + 1

        self.emit(SegmentKind.VISIBLE, visible_from, end)


def _could_become_markup(raw: str, start: int, end: int) -> bool:
    tail = raw[start:end].lower()
    if any(tag.startswith(tail) for tag in TAG_PREFIXES):
        return True
    return PARTIAL_RECORD.match(raw, start, end) is not None


def _trim_close_prefix(text: str) -> str:
    """Drop a trailing partial ``</think>`` from unclosed reasoning."""
    lowered = text.lower()
    for size in range(min(len(text), len(THINK_CLOSE_TAG) - 1), 0, -1):
        if THINK_CLOSE_TAG.startswith(lowered[-size:]):
            return text[:-size]
    return text


def _decode(value: Optional[str], default: Any = None) -> Tuple[Any, bool]:
    """JSON-decode an attribute value; returns (value, decoded_ok)."""
    if value is None or not value.strip():
        return default, True
    try:
        return json.loads(value), True
    except ValueError:
        return value, False


def _build_record(match: "re.Match") -> Optional[ToolCallRecord]:
    attrs: Dict[str, str] = {}
    for attr in ATTRIBUTE.finditer(match.group(1)):
        value = attr.group(2) if attr.group(2) is not None else attr.group(3)
        attrs[attr.group(1).lower()] = html.unescape(value)

    name = attrs.get("name", "").strip()
    if not name:
        return None

    args, args_ok = _decode(attrs.get("args"), default={})
    result, result_ok = _decode(attrs.get("result"))
    error, _ = _decode(attrs.get("error"))

    if "success" in attrs:
        success = attrs["success"].strip().lower() == "true"
    else:
        success = error is None

    return ToolCallRecord(
        name=name,
        args=args,
        result=result,
        error=error,
        success=success,
        fallback=not (args_ok and result_ok),
    )


class ParserState:
    """
    Parse state of one in-progress assistant message.

    Created with the message placeholder, recomputed on every delta and
    frozen when the stream completes or terminates.
    """

    def __init__(self):
        self.raw = ""
        self.frozen = False
        self.content = parse_content("")

    def append(self, delta: str) -> ParsedContent:
        """Append a content delta and recompute."""
        if self.frozen:
            raise RuntimeError("ParserState is frozen")
        self.raw += delta
        self.content = parse_content(self.raw)
        return self.content

    def freeze(self) -> ParsedContent:
        """Final parse; later appends are rejected."""
        if not self.frozen:
            self.content = parse_content(self.raw, final=True)
            self.frozen = True
        return self.content

    @property
    def visible(self) -> str:
        return self.content.visible

    @property
    def reasoning(self) -> str:
        return self.content.reasoning

    @property
    def tool_calls(self) -> Tuple[ToolCallRecord, ...]:
        return self.content.tool_calls
