"""
Ollama Relay package.

Provides:
- Streamed generation against a local Ollama server, reassembled into records
- A JSON config store under the per-user config directory
- A local FastAPI service exposing the desktop app's backend commands
"""
