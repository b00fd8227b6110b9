"""
Use case results - Uniform success/failure shape.

Every use case returns an OperationResult instead of raising for
business rule failures. The HTTP layer translates the error kind
into a status code.
"""

from dataclasses import dataclass
from typing import Any

from .exceptions import ErrorKind, RegistrationError


@dataclass(frozen=True)
class OperationResult:
    """Outcome of a use case: {success, data?, error?}."""

    success: bool
    data: Any = None
    error: str | None = None
    kind: ErrorKind | None = None
    message: str | None = None

    @classmethod
    def ok(cls, data: Any = None, message: str | None = None) -> "OperationResult":
        return cls(success=True, data=data, message=message)

    @classmethod
    def fail(cls, error: RegistrationError) -> "OperationResult":
        return cls(success=False, error=error.message, kind=error.kind)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"success": self.success}
        if self.data is not None:
            result["data"] = self.data
        if self.message is not None:
            result["message"] = self.message
        if self.error is not None:
            result["error"] = self.error
        return result
