"""Error kinds raised by the search bridge.

Every failure the bridge detects itself is raised as a SearchBridgeError
subclass carrying one of the closed ErrorKind values, so callers can tell
"misconfigured" from "remote failure" without inspecting messages.
"""

from enum import Enum


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    CONFIGURATION = "configuration"
    ENGINE_FAILURE = "engine_failure"
    VALIDATION = "validation"


class SearchBridgeError(Exception):
    kind: ErrorKind = ErrorKind.ENGINE_FAILURE

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(SearchBridgeError):
    """An entity definition or collection does not exist."""

    kind = ErrorKind.NOT_FOUND


class ConfigurationError(SearchBridgeError):
    """Required configuration (API key, provider) is missing. Raised before any network call."""

    kind = ErrorKind.CONFIGURATION


class EngineFailureError(SearchBridgeError):
    """A text engine, vector engine or embeddings backend request failed."""

    kind = ErrorKind.ENGINE_FAILURE

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class InvalidRequestError(SearchBridgeError):
    """The caller supplied arguments that cannot be processed."""

    kind = ErrorKind.VALIDATION
