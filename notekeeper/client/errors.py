"""
Client Errors.

Exception hierarchy of the notes client. Every error carries a
user-facing message and a machine-readable code, mirroring the
backend's ApplicationError.
"""

from enum import Enum


class ClientError(Exception):
    """Base exception for all client errors."""

    def __init__(self, message: str, code: str = "CLIENT_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(self.message)


class RemoteStoreError(ClientError):
    """Raised by the store client when a store call fails."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        code: str = "STORE_ERROR",
    ) -> None:
        self.status_code = status_code
        super().__init__(message, code=code)


class LoadError(ClientError):
    """Raised when the note list cannot be loaded."""

    def __init__(self, message: str = "Error loading notes") -> None:
        super().__init__(message, code="NOTES_LOAD_FAILED")


class CreateError(ClientError):
    """Raised when a note cannot be created."""

    def __init__(self, message: str = "Error creating note") -> None:
        super().__init__(message, code="NOTE_CREATE_FAILED")


class SaveError(ClientError):
    """Raised when a note cannot be saved. Local edits are kept."""

    def __init__(self, message: str = "Error saving note") -> None:
        super().__init__(message, code="NOTE_SAVE_FAILED")


class DeleteError(ClientError):
    """Raised when a note cannot be deleted."""

    def __init__(self, message: str = "Error deleting note") -> None:
        super().__init__(message, code="NOTE_DELETE_FAILED")


class ValidationError(ClientError):
    """Raised when input is rejected before any network call."""

    def __init__(self, message: str = "No text to improve") -> None:
        super().__init__(message, code="VAL_EMPTY_TEXT")


class AssistReason(str, Enum):
    """Why a text improvement failed."""

    NETWORK = "network"
    AUTH = "auth"
    RATE_LIMITED = "rate_limited"
    MODEL_LOADING = "model_loading"
    NOT_DEPLOYED = "not_deployed"
    SERVER = "server"
    BAD_REQUEST = "bad_request"
    EMPTY_RESPONSE = "empty_response"
    UPSTREAM = "upstream"


ASSIST_MESSAGES: dict[AssistReason, str] = {
    AssistReason.NETWORK: "Connection failed. Check internet connection.",
    AssistReason.AUTH: "API key invalid or quota exceeded.",
    AssistReason.RATE_LIMITED: "Rate limit exceeded. Wait a moment.",
    AssistReason.MODEL_LOADING: "AI model is loading. Please wait and try again.",
    AssistReason.NOT_DEPLOYED: "Text improvement service not found. Make sure the gateway is deployed.",
    AssistReason.SERVER: "Server error. Check the AI service configuration.",
    AssistReason.BAD_REQUEST: "The AI service rejected this text.",
    AssistReason.EMPTY_RESPONSE: "AI service returned empty response",
    AssistReason.UPSTREAM: "AI error",
}

STATUS_REASONS: dict[int, AssistReason] = {
    400: AssistReason.BAD_REQUEST,
    401: AssistReason.AUTH,
    403: AssistReason.AUTH,
    404: AssistReason.NOT_DEPLOYED,
    429: AssistReason.RATE_LIMITED,
    500: AssistReason.SERVER,
    503: AssistReason.MODEL_LOADING,
}


class AssistError(ClientError):
    """Raised when the text improvement service fails."""

    def __init__(
        self,
        reason: AssistReason,
        detail: str | None = None,
        status_code: int | None = None,
    ) -> None:
        self.reason = reason
        self.detail = detail
        self.status_code = status_code
        message = ASSIST_MESSAGES[reason]
        if reason is AssistReason.UPSTREAM and detail:
            message = f"{message}: {detail}"
        super().__init__(message, code=f"ASSIST_{reason.name}")

    @classmethod
    def from_status(cls, status_code: int, detail: str | None = None) -> "AssistError":
        """Map a gateway HTTP status onto a reason."""
        reason = STATUS_REASONS.get(status_code, AssistReason.UPSTREAM)
        if reason is AssistReason.UPSTREAM and not detail:
            detail = f"status {status_code}"
        return cls(reason, detail=detail, status_code=status_code)
