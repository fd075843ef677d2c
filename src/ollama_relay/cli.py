"""Send one prompt to the local Ollama server from a terminal."""
from __future__ import annotations
import argparse
import asyncio
import logging
import sys

from ollama_relay.common.errors import RelayError
from ollama_relay.common.logging_setup import setup_logging
from ollama_relay.relay.ollama_client import OllamaClient

LOGGER = logging.getLogger("ollama_relay.cli")

async def run_send(client: OllamaClient, model: str, text: str, pull: bool = False) -> str:
    """
    Stream a reply to stdout as it arrives.

    Args:
        client: Configured Ollama client.
        model: Model name.
        text: Prompt text.
        pull: Pull the model first when it is not available locally.

    Returns:
        The full reply text.
    """
    if pull:
        await client.pull_model_if_needed(model)
    parts: list[str] = []
    async for chunk in client.generate(model, text):
        parts.append(chunk.response)
        sys.stdout.write(chunk.response)
        sys.stdout.flush()
    sys.stdout.write("\n")
    return "".join(parts)

def main(argv: list[str] | None = None) -> int:
    setup_logging(logging.WARNING)
    ap = argparse.ArgumentParser(description="Send a prompt to a local Ollama server")
    ap.add_argument("--model", required=True, help="Ollama model name")
    ap.add_argument("--text", required=True, help="Prompt text")
    ap.add_argument("--base-url", default=None, help="Ollama server root")
    ap.add_argument("--pull", action="store_true", help="Pull the model first if missing")
    args = ap.parse_args(argv)

    client = OllamaClient(base_url=args.base_url)
    try:
        asyncio.run(run_send(client, args.model, args.text, pull=args.pull))
    except RelayError as e:
        LOGGER.error("%s", e)
        return 1
    return 0

if __name__ == "__main__":
    sys.exit(main())
