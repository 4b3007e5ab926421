"""Typed, recoverable error kinds raised by the care circle services.

Every error has a stable machine ``code`` and a distinct human message so
clients can react precisely (for example telling "expired" apart from
"exhausted"). Routers never catch these; a single exception handler in
``carecircle.main`` renders them.
"""

from fastapi import status


class CareCircleError(Exception):
    """Base class for all domain errors."""

    code: str = "CareCircleError"
    message: str = "Request could not be completed"
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str | None = None):
        self.message = message or self.message
        super().__init__(self.message)

    def to_dict(self) -> dict[str, str]:
        return {"error": self.code, "detail": self.message}


# -- Family codes -------------------------------------------------------------

class CodeNotFound(CareCircleError):
    code = "CodeNotFound"
    message = "This family code does not exist"
    status_code = status.HTTP_404_NOT_FOUND


class CodeRevoked(CareCircleError):
    code = "CodeRevoked"
    message = "This family code has been deactivated"
    status_code = status.HTTP_410_GONE


class CodeExpired(CareCircleError):
    code = "CodeExpired"
    message = "This family code has expired"
    status_code = status.HTTP_410_GONE


class CodeExhausted(CareCircleError):
    code = "CodeExhausted"
    message = "This family code has reached its usage limit"
    status_code = status.HTTP_409_CONFLICT


class GenerationExhausted(CareCircleError):
    code = "GenerationExhausted"
    message = "Could not generate a unique family code, please try again"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


# -- Memberships --------------------------------------------------------------

class AlreadyMember(CareCircleError):
    code = "AlreadyMember"
    message = "You already belong to this senior's care circle"
    status_code = status.HTTP_409_CONFLICT


class PrimaryAlreadyAssigned(CareCircleError):
    code = "PrimaryAlreadyAssigned"
    message = "This senior already has a primary contact; transfer it instead"
    status_code = status.HTTP_409_CONFLICT


class CannotRemovePrimary(CareCircleError):
    code = "CannotRemovePrimary"
    message = "The primary contact cannot be removed without nominating a replacement"
    status_code = status.HTTP_409_CONFLICT


class InvalidPrimaryTransfer(CareCircleError):
    code = "InvalidPrimaryTransfer"
    message = "Primary contact can only move from the current primary to another member of the same senior"
    status_code = status.HTTP_400_BAD_REQUEST


class NoPrimaryContact(CareCircleError):
    code = "NoPrimaryContact"
    message = "This care circle has no primary contact yet and cannot be joined with a code"
    status_code = status.HTTP_409_CONFLICT


# -- Alerts -------------------------------------------------------------------

class InvalidTransition(CareCircleError):
    code = "InvalidTransition"
    message = "This alert cannot move to the requested state"
    status_code = status.HTTP_409_CONFLICT


class AlreadyAcknowledged(CareCircleError):
    code = "AlreadyAcknowledged"
    message = "This alert was already acknowledged by another caregiver"
    status_code = status.HTTP_409_CONFLICT


class NotesRequired(CareCircleError):
    code = "NotesRequired"
    message = "Closing a high or critical alert requires notes"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


# -- Access and lookups -------------------------------------------------------

class Unauthorized(CareCircleError):
    code = "Unauthorized"
    message = "You are not allowed to perform this action"
    status_code = status.HTTP_403_FORBIDDEN


class SeniorNotFound(CareCircleError):
    code = "SeniorNotFound"
    message = "Senior not found"
    status_code = status.HTTP_404_NOT_FOUND


class MembershipNotFound(CareCircleError):
    code = "MembershipNotFound"
    message = "Family member not found"
    status_code = status.HTTP_404_NOT_FOUND


class AlertNotFound(CareCircleError):
    code = "AlertNotFound"
    message = "Alert not found"
    status_code = status.HTTP_404_NOT_FOUND


class UserNotFound(CareCircleError):
    code = "UserNotFound"
    message = "User not found"
    status_code = status.HTTP_404_NOT_FOUND
