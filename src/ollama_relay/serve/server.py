"""Launch the command service with uvicorn."""
from __future__ import annotations
import os

import uvicorn

def main() -> None:
    host = os.getenv("RELAY_HOST", "127.0.0.1")
    port = int(os.getenv("RELAY_PORT", "8765"))
    log_level = os.getenv("LOG_LEVEL", "info").lower()

    uvicorn.run(
        "ollama_relay.serve.fastapi_app:app",
        host=host,
        port=port,
        log_level=log_level,
    )

if __name__ == "__main__":
    main()
