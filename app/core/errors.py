"""Error taxonomy for the claim filing service."""

from typing import Any, Dict, Optional


class ClaimsError(Exception):
    """
    Base exception for claim filing errors.

    Attributes:
        message: User-facing message
        recoverable: Whether the user can act on the error and retry
        details: Optional extra context for logging
    """

    code = "CLAIMS_ERROR"
    status_code = 400

    def __init__(
        self,
        message: str,
        recoverable: bool = True,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.recoverable = recoverable
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.code,
            "detail": self.message,
            "recoverable": self.recoverable,
            "details": self.details,
        }


class ValidationError(ClaimsError):
    """Local input or policy violation. Nothing is mutated when raised."""

    code = "VALIDATION_ERROR"


class CapacityError(ValidationError):
    """Too many documents attached to a single filing."""

    code = "CAPACITY_EXCEEDED"


class AuthenticationError(ValidationError):
    code = "AUTHENTICATION_FAILED"
    status_code = 401


class TransitionError(ValidationError):
    """A status change that the claim lifecycle does not allow."""

    code = "INVALID_TRANSITION"
    status_code = 409


class ClaimNotFound(ClaimsError):
    code = "CLAIM_NOT_FOUND"
    status_code = 404

    @classmethod
    def for_id(cls, claim_id: str) -> "ClaimNotFound":
        return cls(f"Claim '{claim_id}' does not exist.", details={"claim_id": claim_id})


class ExtractionFailure(ClaimsError):
    """The evaluation service returned nothing usable. The claim is not created."""

    code = "EXTRACTION_FAILED"
    status_code = 502

    DEFAULT_MESSAGE = "Neural extraction failed. Document clarity insufficient."

    @classmethod
    def insufficient_clarity(cls, reason: str) -> "ExtractionFailure":
        return cls(cls.DEFAULT_MESSAGE, details={"reason": reason})


class StorageCorruption(ClaimsError):
    """
    A persisted entry could not be decoded.

    Readers treat the entry as absent; this never reaches the user.
    """

    code = "STORAGE_CORRUPTION"
    status_code = 500

    @classmethod
    def for_key(cls, key: str, error: Exception) -> "StorageCorruption":
        return cls(
            f"Stored entry '{key}' is unreadable: {error}",
            details={"key": key},
        )
