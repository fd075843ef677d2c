"""Async client for a local Ollama server.

Endpoints used:
- POST /api/generate  { "model": "...", "prompt": "..." }  (streamed)
- GET  /api/tags
- POST /api/pull      { "name": "..." }
"""
from __future__ import annotations
import logging
import os
import time
from contextlib import aclosing
from typing import Any, AsyncIterator

import httpx

from ollama_relay.common.errors import ModelPullError, RequestError
from ollama_relay.common.schema import GenerationRequest, GenerationResponseChunk, PullRequest
from ollama_relay.relay.reassembler import iter_json_objects, reassemble

LOGGER = logging.getLogger("ollama_relay.relay.ollama")

DEFAULT_BASE_URL = "http://localhost:11434"

def _env_timeout() -> float | None:
    raw = os.getenv("OLLAMA_TIMEOUT")
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        LOGGER.warning("Ignoring non-numeric OLLAMA_TIMEOUT=%r", raw)
        return None

def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in {"1", "true", "yes", "on"}

async def _raise_for_status(r: httpx.Response) -> None:
    if r.is_success:
        return
    body = (await r.aread()).decode("utf-8", errors="replace").strip()
    raise RequestError(f"Ollama {r.status_code}: {body}")

def _raise_for_error_object(obj: dict[str, Any]) -> None:
    if "error" in obj:
        raise RequestError(f"Ollama error: {obj['error']}")


class OllamaClient:
    """
    Thin async wrapper over the Ollama HTTP API.

    A fresh ``httpx.AsyncClient`` is opened per call, so one instance can be
    shared freely. No timeout is applied unless one is given or set through
    ``OLLAMA_TIMEOUT``. Transport failures surface as ``RequestError`` and
    are never retried.

    Args:
        base_url: Server root; defaults to $OLLAMA_BASE_URL or localhost:11434.
        timeout: Seconds per network operation, None for no limit.
        pull_before_send: Run the pull pre-flight in ``send_message``;
            defaults to $OLLAMA_PULL_BEFORE_SEND.
        transport: Optional httpx transport (tests pass a MockTransport).
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        pull_before_send: bool | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or os.getenv("OLLAMA_BASE_URL", DEFAULT_BASE_URL)).rstrip("/")
        self.timeout = timeout if timeout is not None else _env_timeout()
        if pull_before_send is None:
            pull_before_send = _env_flag("OLLAMA_PULL_BEFORE_SEND")
        self.pull_before_send = pull_before_send
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self._transport)

    async def _stream_body(self, path: str, body: dict[str, Any]) -> AsyncIterator[bytes]:
        try:
            async with self._client() as client:
                async with client.stream("POST", path, json=body) as r:
                    await _raise_for_status(r)
                    async for chunk in r.aiter_bytes():
                        yield chunk
        except httpx.HTTPError as e:
            LOGGER.error("Error reading chunk from %s: %s", path, e)
            raise RequestError(e) from e

    async def generate(self, model: str, prompt: str) -> AsyncIterator[GenerationResponseChunk]:
        """
        Stream a generation, yielding each record as soon as it is complete.

        Args:
            model: Ollama model name, e.g. "llama3".
            prompt: Prompt text.

        Raises:
            RequestError: connection, HTTP status or mid-stream read failure,
                or an ``{"error": ...}`` object sent by the server.
        """
        request = GenerationRequest(model=model, prompt=prompt)
        async with aclosing(self._stream_body("/api/generate", request.model_dump())) as body:
            async with aclosing(reassemble(body, GenerationResponseChunk, on_object=_raise_for_error_object)) as records:
                async for record in records:
                    yield record

    async def send_message(
        self,
        model: str,
        message: str,
        pull_first: bool | None = None,
    ) -> list[GenerationResponseChunk]:
        """Send one chat message and collect the full ordered list of records."""
        if pull_first is None:
            pull_first = self.pull_before_send
        if pull_first:
            await self.pull_model_if_needed(model)

        start = time.time()
        responses = [chunk async for chunk in self.generate(model, message)]
        latency_ms = int((time.time() - start) * 1000)
        LOGGER.info("Generated %d chunks with %s in %sms", len(responses), model, latency_ms)
        return responses

    async def list_models(self) -> list[str]:
        """Return the names of locally available models."""
        try:
            async with self._client() as client:
                r = await client.get("/api/tags")
                await _raise_for_status(r)
                data = r.json()
        except (httpx.HTTPError, ValueError) as e:
            LOGGER.error("Listing models failed: %s", e)
            raise RequestError(e) from e

        models = data.get("models") if isinstance(data, dict) else None
        names = []
        for m in models or []:
            name = m.get("name") if isinstance(m, dict) else None
            if isinstance(name, str):
                names.append(name)
        return names

    async def model_exists(self, model: str) -> bool:
        return model in await self.list_models()

    async def pull_model(self, model: str) -> None:
        """
        Ask the server to download ``model``.

        The server answers with one status object or a stream of them; the
        pull succeeded only if the last status is "success".
        """
        status = None
        LOGGER.info("Pulling model %s", model)
        async with aclosing(self._stream_body("/api/pull", PullRequest(name=model).model_dump())) as body:
            async for obj in iter_json_objects(body):
                if "error" in obj:
                    LOGGER.warning("Pull of %s reported: %s", model, obj["error"])
                    status = None
                elif "status" in obj:
                    status = obj["status"]
                    LOGGER.debug("Pull %s: %s", model, status)
        if status != "success":
            raise ModelPullError(model)

    async def pull_model_if_needed(self, model: str) -> None:
        if not await self.model_exists(model):
            await self.pull_model(model)
