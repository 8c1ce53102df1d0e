# app/services/stream_decoder.py
"""
Incremental decoder for the relay's server-sent-event stream.

The relay forwards the AI gateway body byte for byte, so chunk boundaries are
arbitrary: a chunk may end inside a UTF-8 sequence, inside a line, or inside a
JSON frame. `StreamDecoder` keeps a text buffer and only consumes a line once
it is complete and its JSON parses; a line that does not parse is put back at
the front of the buffer until more bytes arrive.

    decoder = StreamDecoder()
    for chunk in chunks:
        for delta in decoder.feed(chunk):
            render(delta)
    decoder.finish()
"""
from __future__ import annotations

import codecs
import json
import logging
from enum import Enum
from typing import Any, Callable, Iterable, Iterator, List, Optional, Tuple

from app.services.errors import TruncatedStreamError

logger = logging.getLogger("mememind.stream_decoder")

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"


class FrameKind(str, Enum):
    SKIP = "skip"            # blank line, comment/heartbeat, non-data field
    DONE = "done"            # data: [DONE]
    DELTA = "delta"          # parsed event (content may still be empty)
    MALFORMED = "malformed"  # data line whose JSON does not parse (yet)


def extract_content(event: Any) -> Optional[str]:
    """choices[0].delta.content, or None when any step of the path is missing."""
    if not isinstance(event, dict):
        return None
    choices = event.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0]
    if not isinstance(first, dict):
        return None
    delta = first.get("delta")
    if not isinstance(delta, dict):
        return None
    content = delta.get("content")
    return content if isinstance(content, str) else None


def classify_line(line: str) -> Tuple[FrameKind, Optional[str]]:
    if line.endswith("\r"):
        line = line[:-1]
    if line.startswith(":") or line.strip() == "":
        return FrameKind.SKIP, None
    if not line.startswith(DATA_PREFIX):
        return FrameKind.SKIP, None

    payload = line[len(DATA_PREFIX):].strip()
    if payload == DONE_SENTINEL:
        return FrameKind.DONE, None
    try:
        event = json.loads(payload)
    except json.JSONDecodeError:
        return FrameKind.MALFORMED, None
    return FrameKind.DELTA, extract_content(event)


class StreamDecoder:
    """One decoder per relay response; not restartable."""

    def __init__(self, encoding: str = "utf-8"):
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = ""
        self._parts: List[str] = []
        self.done = False
        self.finished = False
        self.unparsed: List[str] = []

    @property
    def text(self) -> str:
        """Everything decoded so far, in arrival order."""
        return "".join(self._parts)

    @property
    def pending(self) -> str:
        return self._buffer

    def feed(self, chunk: bytes) -> List[str]:
        if self.finished:
            raise RuntimeError("decoder already finished")
        text = self._decoder.decode(chunk)
        if self.done:
            # the round is over; bytes are read but not kept
            return []
        self._buffer += text
        return self._drain()

    def _emit(self, content: Optional[str], out: List[str]) -> None:
        if content:
            self._parts.append(content)
            out.append(content)

    def _drain(self) -> List[str]:
        out: List[str] = []
        while True:
            idx = self._buffer.find("\n")
            if idx == -1:
                break
            line = self._buffer[:idx]
            self._buffer = self._buffer[idx + 1:]

            kind, content = classify_line(line)
            if kind is FrameKind.SKIP:
                continue
            if kind is FrameKind.DONE:
                self.done = True
                self._buffer = ""
                break
            if kind is FrameKind.MALFORMED:
                # wait for the rest of the frame
                self._buffer = line + "\n" + self._buffer
                break
            self._emit(content, out)
        return out

    def finish(self) -> List[str]:
        """Flush at end of stream; whatever still fails to parse lands in `unparsed`."""
        if self.finished:
            return []
        self.finished = True

        self._buffer += self._decoder.decode(b"", final=True)
        rest, self._buffer = self._buffer, ""
        out: List[str] = []
        if self.done:
            if rest.strip():
                logger.debug("ignoring %d char(s) after [DONE]", len(rest))
            return out
        lines = rest.split("\n")
        for pos, line in enumerate(lines):
            kind, content = classify_line(line)
            if kind is FrameKind.DONE:
                self.done = True
                dropped = [l for l in lines[pos + 1:] if l.strip()]
                if dropped:
                    logger.debug("ignoring %d line(s) after [DONE]", len(dropped))
                break
            if kind is FrameKind.MALFORMED:
                self.unparsed.append(line.rstrip("\r"))
                continue
            if kind is FrameKind.DELTA:
                self._emit(content, out)

        if self.unparsed:
            logger.warning(
                "stream ended with %d undecodable frame(s) done=%s",
                len(self.unparsed), self.done,
            )
        return out


def iter_deltas(
    chunks: Iterable[bytes],
    should_stop: Optional[Callable[[], bool]] = None,
    decoder: Optional[StreamDecoder] = None,
) -> Iterator[str]:
    """
    Lazily yield text deltas from a relay byte stream.
    Stops early (without flushing) when `should_stop()` turns true between reads.
    Raises TruncatedStreamError after the last delta if the stream was cut
    mid-frame and never signalled [DONE].
    """
    dec = decoder or StreamDecoder()
    for chunk in chunks:
        if should_stop is not None and should_stop():
            logger.info("decode stopped by caller after %d chars", len(dec.text))
            return
        if not chunk:
            continue
        for delta in dec.feed(chunk):
            yield delta

    for delta in dec.finish():
        yield delta

    if dec.unparsed and not dec.done:
        raise TruncatedStreamError(tail="\n".join(dec.unparsed))


def decode_stream(chunks: Iterable[bytes]) -> str:
    return "".join(iter_deltas(chunks))
