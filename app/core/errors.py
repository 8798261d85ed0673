"""Error hierarchy for the learning environment builder.

Every error carries a message that can be shown to the educator as-is plus a
list of concrete suggestions. The HTTP layer maps each class to a status code
(see ``app.apis.wizard.main.register_error_handlers``).
"""

from __future__ import annotations

from typing import Optional


RETRY_SUGGESTIONS = [
    "Check your internet connection",
    "Try making your text shorter",
    "Wait a minute and try again",
]


class LearningEnvError(Exception):
    """Base class; ``status_code`` is the HTTP status the API layer uses."""

    status_code: int = 500
    default_suggestions: list[str] = []

    def __init__(
        self, message: str, *, suggestions: Optional[list[str]] = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.suggestions = list(
            suggestions if suggestions is not None else self.default_suggestions
        )

    def to_payload(self) -> dict:
        return {"error": self.message, "suggestions": self.suggestions}


class ConfigurationError(LearningEnvError):
    status_code = 500
    default_suggestions = ["Set GEMINI_API_KEY in the server environment"]

    def __init__(self, message: str = "API configuration is missing") -> None:
        super().__init__(message)


class InputValidationError(LearningEnvError):
    status_code = 400
    default_suggestions = ["Fill in the required fields and try again"]


class TransientCallError(LearningEnvError):
    """A retryable failure of one completion attempt (429, 5xx or timeout)."""

    status_code = 503

    def __init__(
        self, message: str, *, status: Optional[int] = None, timed_out: bool = False
    ) -> None:
        super().__init__(message)
        self.status = status
        self.timed_out = timed_out

    @property
    def rate_limited(self) -> bool:
        return self.status == 429


class GenerationFailedError(LearningEnvError):
    """Raised by the call site once every attempt has failed."""

    status_code = 502
    default_suggestions = RETRY_SUGGESTIONS

    def __init__(
        self, action: str, attempts: int, cause: Optional[BaseException] = None
    ) -> None:
        detail = getattr(cause, "message", None) or (str(cause) if cause else "")
        message = f"{action} failed after {attempts} attempts."
        if detail:
            message = f"{message} Error: {detail}"
        super().__init__(message)
        self.action = action
        self.attempts = attempts


class EmptyGenerationError(LearningEnvError):
    """Both parser tiers produced nothing usable."""

    status_code = 502
    default_suggestions = ["Try again", "Try making your text shorter"]

    def __init__(self, kind: str) -> None:
        super().__init__(
            f"The AI could not produce valid {kind}. Please try again."
        )
        self.kind = kind


class UnsupportedDocumentError(LearningEnvError):
    status_code = 400
    default_suggestions = ["Upload a .docx or .pdf file"]

    def __init__(
        self, message: str = "Only .pdf and .docx files are supported"
    ) -> None:
        super().__init__(message)


class DocumentTooLargeError(LearningEnvError):
    status_code = 400
    default_suggestions = ["Split the document or paste the relevant text"]

    def __init__(self, max_bytes: int) -> None:
        super().__init__(
            f"File is too large (max {max_bytes // (1024 * 1024)}MB)"
        )
        self.max_bytes = max_bytes


class DocumentExtractionError(LearningEnvError):
    status_code = 500
    default_suggestions = [
        "Check that the file is not damaged and try again",
        "Copy the text into the text field manually",
    ]


class GenerationInProgressError(LearningEnvError):
    status_code = 409
    default_suggestions = ["Wait for the running generation to finish"]

    def __init__(self, kind: str) -> None:
        super().__init__(f"Generation of {kind} is already in progress")
        self.kind = kind
