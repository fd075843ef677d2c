"""FastAPI service exposing the desktop app's backend commands.

Endpoints:
- GET  /health
- GET  /config
- PUT  /config                     { "openai_api_key": "..." | null }
- POST /config/openai-api-key      { "api_key": "..." }
- POST /ollama/messages            { "model": "...", "message": "..." }
"""
from __future__ import annotations
import logging

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ollama_relay.common.errors import AppDirError, ConfigIOError, ConfigParseError, RelayError
from ollama_relay.common.logging_setup import setup_logging
from ollama_relay.common.schema import AppConfig, GenerationResponseChunk
from ollama_relay.config.store import ConfigStore, default_config_dir
from ollama_relay.relay.ollama_client import OllamaClient

LOGGER = logging.getLogger("ollama_relay.serve.app")
setup_logging()

class ApiKeyIn(BaseModel):
    api_key: str

class SendMessageIn(BaseModel):
    model: str
    message: str

app = FastAPI(title="ollama-relay")

def get_store() -> ConfigStore:
    return ConfigStore(default_config_dir())

def get_client() -> OllamaClient:
    return OllamaClient()

@app.exception_handler(RelayError)
async def _relay_error_handler(request: Request, e: RelayError) -> JSONResponse:
    """Collapse any relay error, dependencies included, into one message for the front end."""
    config_errors = (AppDirError, ConfigIOError, ConfigParseError)
    status = 500 if isinstance(e, config_errors) else 502
    LOGGER.error("%s %s: %s", request.method, request.url.path, e)
    return JSONResponse(status_code=status, content={"detail": str(e)})

@app.on_event("startup")
def _log_locations_on_startup() -> None:
    """Log where config lives and which Ollama server is used."""
    try:
        LOGGER.info("Config dir: %s", default_config_dir())
    except AppDirError as e:
        LOGGER.warning("%s", e)
    LOGGER.info("Ollama server: %s", OllamaClient().base_url)

@app.get("/health")
def health(client: OllamaClient = Depends(get_client)) -> dict[str, str]:
    return {"status": "ok", "ollama": client.base_url}

@app.get("/config", response_model=AppConfig)
def get_config(store: ConfigStore = Depends(get_store)) -> AppConfig:
    return store.load()

@app.put("/config")
def save_config(config: AppConfig, store: ConfigStore = Depends(get_store)) -> dict[str, str]:
    store.save(config)
    return {"status": "ok"}

@app.post("/config/openai-api-key")
def set_openai_api_key(body: ApiKeyIn, store: ConfigStore = Depends(get_store)) -> dict[str, str]:
    store.set_openai_api_key(body.api_key)
    return {"status": "ok"}

@app.post("/ollama/messages", response_model=list[GenerationResponseChunk])
async def send_ollama_message(
    body: SendMessageIn,
    client: OllamaClient = Depends(get_client),
) -> list[GenerationResponseChunk]:
    return await client.send_message(body.model, body.message)
