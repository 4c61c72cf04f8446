"""Tagged error type raised by collaborators and mapped to HTTP responses."""

from enum import Enum
from typing import Optional

from pydantic import ValidationError


class ErrorKind(str, Enum):
    """Category of a collaborator failure."""

    VALIDATION = "validation"          # Input rejected by a model validator
    NOT_FOUND = "not_found"            # Referenced record does not exist
    REJECTED = "rejected"              # Domain rule refused the operation
    AUTHENTICATION = "authentication"  # Credentials or session invalid
    INTERNAL = "internal"              # Collaborator-side failure


class ServiceError(Exception):
    """Failure of a collaborator operation.

    ``status`` is the HTTP status the collaborator wants surfaced; when it is
    None the web layer picks its own default. For VALIDATION errors the
    effective message is the first entry of ``field_messages``.
    """

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.REJECTED,
        status: Optional[int] = None,
        field_messages: Optional[list[str]] = None,
    ):
        self.kind = kind
        self.status = status
        self.field_messages = list(field_messages or [])
        self._message = message
        super().__init__(self.message)

    @property
    def message(self) -> str:
        if self.kind == ErrorKind.VALIDATION and self.field_messages:
            return self.field_messages[0]
        return self._message

    def __repr__(self) -> str:
        return f"ServiceError(kind={self.kind.value!r}, status={self.status!r}, message={self.message!r})"

    @classmethod
    def validation(cls, field_messages: list[str], status: Optional[int] = None) -> "ServiceError":
        return cls(
            "Validation error",
            kind=ErrorKind.VALIDATION,
            status=status,
            field_messages=field_messages,
        )

    @classmethod
    def from_validation_error(cls, exc: ValidationError) -> "ServiceError":
        """Wrap a pydantic ValidationError, keeping each nested message."""
        return cls.validation([err["msg"] for err in exc.errors()])

    @classmethod
    def not_found(cls, message: str, status: Optional[int] = None) -> "ServiceError":
        return cls(message, kind=ErrorKind.NOT_FOUND, status=status)

    @classmethod
    def rejected(cls, message: str, status: Optional[int] = None) -> "ServiceError":
        return cls(message, kind=ErrorKind.REJECTED, status=status)

    @classmethod
    def unauthorized(cls, message: str, status: Optional[int] = 401) -> "ServiceError":
        return cls(message, kind=ErrorKind.AUTHENTICATION, status=status)

    @classmethod
    def internal(cls, message: str, status: Optional[int] = 500) -> "ServiceError":
        return cls(message, kind=ErrorKind.INTERNAL, status=status)
