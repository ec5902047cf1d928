"""
Typed outcomes for expected, non-exceptional results of access-control operations.

Operations return either their value or a `Failure`; the HTTP layer turns a
`Failure` into a response (see app.api.errors). Collaborator faults are NOT
failures: they raise `AuthProviderError` or a SQLAlchemy error.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Dict


class FailureReason(str, enum.Enum):
    FORBIDDEN = "FORBIDDEN"
    PREREQUISITE_MISSING = "PREREQUISITE_MISSING"
    NOT_FOUND = "NOT_FOUND"
    EXPIRED = "EXPIRED"
    ALREADY_CONSUMED = "ALREADY_CONSUMED"
    ALREADY_EXISTS = "ALREADY_EXISTS"
    ACCOUNT_INACTIVE = "ACCOUNT_INACTIVE"
    UNAUTHENTICATED = "UNAUTHENTICATED"
    INVALID_INPUT = "INVALID_INPUT"


@dataclass(frozen=True)
class Failure:
    reason: FailureReason
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.reason.value, "message": self.message, **self.details}


class AuthProviderError(Exception):
    """Identity-provider collaborator failed (network, provider-side validation, ...)."""

    def __init__(self, message: str, *, code: str = "AUTH_PROVIDER_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)
