"""Reassemble a chunked HTTP body into complete JSON records.

The upstream server writes one JSON object after another, but transport
chunk boundaries do not line up with object boundaries: one object may span
several chunks and one chunk may carry several objects. Chunks are decoded
and appended to a buffer; after every append all complete objects at the
front of the buffer are emitted and the unparsed tail is kept.
"""
from __future__ import annotations
import codecs
import json
import logging
import re
from contextlib import aclosing
from typing import Any, AsyncIterable, AsyncIterator, Callable, TypeVar

from pydantic import BaseModel, ValidationError

from ollama_relay.common.schema import GenerationResponseChunk

LOGGER = logging.getLogger("ollama_relay.relay.reassembler")

RecordT = TypeVar("RecordT", bound=BaseModel)

_DECODER = json.JSONDecoder()
_WS = re.compile(r"\s*")


def drain_objects(buffer: str) -> tuple[list[dict[str, Any]], str]:
    """
    Split every complete JSON object off the front of ``buffer``.

    Args:
        buffer: Accumulated text.

    Returns:
        The decoded objects in order, and the remaining unparsed text.
    """
    objects: list[dict[str, Any]] = []
    pos = _WS.match(buffer).end()
    while pos < len(buffer):
        try:
            value, pos = _DECODER.raw_decode(buffer, pos)
        except json.JSONDecodeError:
            # incomplete so far, or garbage that never completes
            return objects, buffer[pos:]
        if isinstance(value, dict):
            objects.append(value)
        else:
            LOGGER.warning("Skipping non-object JSON value in stream: %r", value)
        pos = _WS.match(buffer, pos).end()
    return objects, ""


async def iter_json_objects(chunks: AsyncIterable[bytes]) -> AsyncIterator[dict[str, Any]]:
    """
    Yield JSON objects from a stream of byte chunks, in arrival order.

    Bytes are decoded as UTF-8 with replacement of malformed sequences. A
    character split across two chunks is decoded once both halves arrive.
    Whatever is left in the buffer when ``chunks`` ends is discarded.
    Exceptions raised by ``chunks`` propagate unchanged.
    """
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    buffer = ""
    async for chunk in chunks:
        buffer += decoder.decode(chunk)
        objects, buffer = drain_objects(buffer)
        for obj in objects:
            yield obj
    buffer += decoder.decode(b"", final=True)
    if buffer.strip():
        LOGGER.debug("Discarding %d unparsed characters at end of stream", len(buffer))


def parse_record(obj: dict[str, Any], model: type[RecordT]) -> RecordT | None:
    """Validate ``obj`` as ``model``; log and return None when it does not fit."""
    try:
        return model.model_validate(obj)
    except ValidationError as e:
        LOGGER.warning("Dropping object that is not a %s: %s", model.__name__, e)
        return None


async def reassemble(
    chunks: AsyncIterable[bytes],
    model: type[RecordT] = GenerationResponseChunk,  # type: ignore[assignment]
    on_object: Callable[[dict[str, Any]], None] | None = None,
) -> AsyncIterator[RecordT]:
    """
    Turn a byte-chunk stream into validated records.

    Args:
        chunks: Response body chunks.
        model: Record type each object is validated against.
        on_object: Called with every raw object before validation; may raise
            to abort the stream (e.g. on a server-reported error).
    """
    async with aclosing(iter_json_objects(chunks)) as objects:
        async for obj in objects:
            if on_object is not None:
                on_object(obj)
            record = parse_record(obj, model)
            if record is not None:
                yield record
