"""Error taxonomy shared by the recap engine and the HTTP adapters."""

from __future__ import annotations


class RecapError(Exception):
    """Base class. `code` is stable and safe to expose to clients."""

    code = "recap_error"
    status_code = 500

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message())

    def default_message(self) -> str:
        return "Recap generation failed"

    def to_payload(self) -> dict[str, str]:
        return {"error": self.code, "detail": str(self)}


class NotFoundError(RecapError):
    code = "not_found"
    status_code = 404

    def default_message(self) -> str:
        return "Stream not found"


class ValidationError(RecapError):
    code = "validation_error"
    status_code = 400

    def default_message(self) -> str:
        return "Invalid request"


class NoClipsError(RecapError):
    code = "no_clips"
    status_code = 404

    def default_message(self) -> str:
        return "No clips available"


class NoRelevantClipsError(RecapError):
    code = "no_relevant_clips"
    status_code = 404

    def default_message(self) -> str:
        return "No relevant clips"


class EncodingFailure(RecapError):
    code = "encoding_failed"
    status_code = 502

    def __init__(self, exit_code: int | None, message: str | None = None) -> None:
        self.exit_code = exit_code
        super().__init__(message)

    def default_message(self) -> str:
        return f"Encoder exited with code {self.exit_code}"


class MediaUnavailable(RecapError):
    code = "media_unavailable"
    status_code = 502

    def default_message(self) -> str:
        return "Clip media unavailable"


class GenerationTimeout(RecapError):
    code = "timeout"
    status_code = 504

    def default_message(self) -> str:
        return "Timed out waiting for recap generation"


class SignatureInvalid(RecapError):
    code = "signature_invalid"
    status_code = 403

    def default_message(self) -> str:
        return "Invalid signature"
