"""
Error taxonomy for GraphMentor.

Every failure the chat flow can report derives from TutorError so the API
layer can render it as ``{"error": ..., "details": ...}`` with a matching
status code.
"""

from typing import Any, Dict, Optional


class TutorError(Exception):
    """Base exception carrying an HTTP status and optional details."""

    status_code = 500

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Any] = None
    ):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


# ---------- 400: user-correctable ----------
class ValidationError(TutorError):
    status_code = 400


class FileTooLarge(ValidationError):
    pass


class UnsupportedType(ValidationError):
    pass


class FileReadError(ValidationError):
    pass


class InvalidSequence(ValidationError):
    """History replay does not alternate user/model starting with user."""

    def __init__(self, position: int, expected: str, got: str):
        self.position = position
        self.expected = expected
        self.got = got
        super().__init__(
            f"Invalid message sequence at position {position}. Expected {expected}, got {got}",
            details={"position": position, "expected": expected, "got": got},
        )


# ---------- auth / lookup ----------
class Unauthorized(TutorError):
    status_code = 401


class ChatNotFound(TutorError):
    status_code = 404


# ---------- 500: upstream ----------
class ModelError(TutorError):
    """Hosted model call failed; ``details`` carries the upstream message."""

    def __init__(self, upstream_message: str):
        super().__init__("Processing failed", details=upstream_message)


class DocumentProcessingError(TutorError):
    def __init__(self, upstream_message: str):
        super().__init__("Document processing failed", details=upstream_message)


# ---------- client-side soft blocks ----------
class CanvasNotReady(TutorError):
    status_code = 409


class LibraryLoadTimeout(TutorError):
    status_code = 504


class ChatRequestError(TutorError):
    """The chat route answered with an error or a non-JSON body."""

    status_code = 502
