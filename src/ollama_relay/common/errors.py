"""Error types surfaced to command callers."""
from __future__ import annotations


class RelayError(Exception):
    """Base error; ``str(err)`` is the message shown to the user."""


class AppDirError(RelayError):
    def __init__(self) -> None:
        super().__init__("Failed to get app directory")


class ModelPullError(RelayError):
    def __init__(self, model: str) -> None:
        self.model = model
        super().__init__(f"Failed to download model: Failed to pull model: {model}")


class ConfigIOError(RelayError):
    def __init__(self, cause: Exception) -> None:
        super().__init__(f"Failed to read config file: {cause}")


class ConfigParseError(RelayError):
    def __init__(self, cause: Exception) -> None:
        super().__init__(f"Failed to parse config file: {cause}")


class RequestError(RelayError):
    def __init__(self, cause: Exception | str) -> None:
        super().__init__(f"Failed to send request: {cause}")
