from __future__ import annotations

import asyncio
from typing import AsyncIterator, Iterable

import httpx
import pytest

from ollama_relay.common.schema import GenerationResponseChunk, PullRequest
from ollama_relay.relay.reassembler import drain_objects, iter_json_objects, reassemble


async def _aiter(chunks: Iterable[bytes]) -> AsyncIterator[bytes]:
    for chunk in chunks:
        yield chunk


def _collect(chunks: Iterable[bytes]) -> list[GenerationResponseChunk]:
    async def run() -> list[GenerationResponseChunk]:
        return [r async for r in reassemble(_aiter(chunks))]

    return asyncio.run(run())


def test_object_split_across_two_chunks() -> None:
    out = _collect([b'{"respon', b'se":"hi"}'])
    assert [r.response for r in out] == ["hi"]


def test_split_object_emitted_only_after_last_fragment() -> None:
    events: list[tuple[str, object]] = []

    async def source() -> AsyncIterator[bytes]:
        for i, chunk in enumerate([b'{"resp', b'onse":"hel', b'lo"}']):
            events.append(("chunk", i))
            yield chunk

    async def run() -> None:
        async for r in reassemble(source()):
            events.append(("record", r.response))

    asyncio.run(run())
    assert events == [("chunk", 0), ("chunk", 1), ("chunk", 2), ("record", "hello")]


def test_one_object_per_chunk_keeps_order() -> None:
    chunks = [f'{{"response":"{w}"}}'.encode() for w in ["The", " sky", " is", " blue"]]
    out = _collect(chunks)
    assert [r.response for r in out] == ["The", " sky", " is", " blue"]


def test_two_objects_in_one_chunk_both_emitted() -> None:
    out = _collect([b'{"response":"a"}{"response":"b"}'])
    assert [r.response for r in out] == ["a", "b"]


def test_newline_delimited_with_split_tail() -> None:
    out = _collect([
        b'{"response":"a"}\n{"response":',
        b'"b"}\n{"response":"c","done":true}\n',
    ])
    assert [r.response for r in out] == ["a", "b", "c"]
    assert [r.done for r in out] == [False, False, True]


def test_incomplete_residue_is_dropped_without_error() -> None:
    out = _collect([b'{"response":"ok"}', b'{"response":"never fin'])
    assert [r.response for r in out] == ["ok"]


def test_read_error_keeps_already_emitted_records() -> None:
    async def source() -> AsyncIterator[bytes]:
        yield b'{"response":"one"}'
        yield b'{"response":"two"}'
        yield b'{"response":"th'
        raise httpx.ReadError("connection reset")

    seen: list[str] = []

    async def run() -> None:
        async for r in reassemble(source()):
            seen.append(r.response)

    with pytest.raises(httpx.ReadError):
        asyncio.run(run())
    assert seen == ["one", "two"]


def test_multibyte_character_split_between_chunks() -> None:
    out = _collect([b'{"response":"caf\xc3', b'\xa9"}'])
    assert out[0].response == "café"


def test_malformed_bytes_are_replaced() -> None:
    out = _collect([b'{"response":"a\xffb"}'])
    assert out[0].response == "a�b"


def test_object_of_wrong_shape_is_skipped() -> None:
    out = _collect([b'{"status":"loading"}{"response":"x","model":"llama3","eval_count":3}'])
    assert [r.response for r in out] == ["x"]


def test_empty_chunks_are_harmless() -> None:
    out = _collect([b"", b'{"response":', b"", b'"y"}', b""])
    assert [r.response for r in out] == ["y"]


def test_iter_json_objects_yields_raw_dicts() -> None:
    async def run() -> list[dict]:
        return [o async for o in iter_json_objects(_aiter([b'{"status":"pulling"}\n{"status":"success"}']))]

    assert asyncio.run(run()) == [{"status": "pulling"}, {"status": "success"}]


def test_drain_objects_keeps_unparsed_tail() -> None:
    objects, rest = drain_objects(' {"a": 1}\n{"b"')
    assert objects == [{"a": 1}]
    assert rest == '{"b"'


def test_drain_objects_retains_garbage() -> None:
    objects, rest = drain_objects('oops {"a": 1}')
    assert objects == []
    assert rest == 'oops {"a": 1}'


def test_drain_objects_whitespace_only_clears_buffer() -> None:
    assert drain_objects("\n  \n") == ([], "")


def test_on_object_hook_sees_raw_objects_and_can_abort() -> None:
    seen: list[dict] = []

    def check(obj: dict) -> None:
        seen.append(obj)
        if "error" in obj:
            raise RuntimeError(obj["error"])

    got: list[str] = []

    async def run() -> None:
        chunks = [b'{"response":"a","eval_count":1}\n{"error":"boom"}\n{"response":"b"}']
        async for r in reassemble(_aiter(chunks), on_object=check):
            got.append(r.response)

    with pytest.raises(RuntimeError, match="boom"):
        asyncio.run(run())
    assert got == ["a"]
    assert seen == [{"response": "a", "eval_count": 1}, {"error": "boom"}]


def test_reassemble_into_other_record_type() -> None:
    async def run() -> list[PullRequest]:
        return [r async for r in reassemble(_aiter([b'{"name":"llama3"}{"nam', b'e":"phi3"}']), PullRequest)]

    assert [r.name for r in asyncio.run(run())] == ["llama3", "phi3"]
