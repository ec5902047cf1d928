from __future__ import annotations

from typing import NoReturn

from fastapi import HTTPException, status

from app.core.outcomes import Failure, FailureReason

INVALID_INVITATION = "INVALID_INVITATION"
INVALID_INVITATION_MESSAGE = "Invalid or expired invitation code"

_STATUS_BY_REASON = {
    FailureReason.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    FailureReason.PREREQUISITE_MISSING: status.HTTP_403_FORBIDDEN,
    FailureReason.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    FailureReason.EXPIRED: status.HTTP_409_CONFLICT,
    FailureReason.ALREADY_CONSUMED: status.HTTP_409_CONFLICT,
    FailureReason.ALREADY_EXISTS: status.HTTP_409_CONFLICT,
    FailureReason.ACCOUNT_INACTIVE: status.HTTP_403_FORBIDDEN,
    FailureReason.UNAUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    FailureReason.INVALID_INPUT: status.HTTP_400_BAD_REQUEST,
}


def raise_for_failure(failure: Failure, *, invitation_code: bool = False) -> NoReturn:
    """
    Translate a typed Failure into an HTTPException.

    invitation_code=True: unknown and expired codes get one identical response,
    so callers cannot tell which codes ever existed.
    """
    if invitation_code and failure.reason in {FailureReason.NOT_FOUND, FailureReason.EXPIRED}:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": INVALID_INVITATION, "message": INVALID_INVITATION_MESSAGE},
        )

    headers = None
    if failure.reason == FailureReason.UNAUTHENTICATED:
        headers = {"WWW-Authenticate": "Bearer"}

    raise HTTPException(
        status_code=_STATUS_BY_REASON.get(failure.reason, status.HTTP_400_BAD_REQUEST),
        detail=failure.to_dict(),
        headers=headers,
    )
