"""
OpenShelf - Error Taxonomy

Every failure the catalog core can report is a subclass of CatalogError.
Each error carries a stable machine-readable tag (``code``), a category,
and the HTTP status the API boundary should answer with.

All errors are terminal: the core never retries, and an operation that
raises leaves GlobalState and every record unchanged.

Usage:
    from errors import CatalogError, RateLimitExceeded

    try:
        service.add_catalog_entry(...)
    except RateLimitExceeded as e:
        print(e.code, e.reason, e.retry_after)
    except CatalogError as e:
        print(e.to_dict())
"""

from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Categories for error classification."""

    VALIDATION = "validation"  # Malformed input
    AUTHORIZATION = "authorization"  # Caller lacks the role
    LIFECYCLE = "lifecycle"  # Record exists / missing
    AVAILABILITY = "availability"  # Program paused
    RATE = "rate"  # Cooldown or daily cap
    PROTOCOL = "protocol"  # Transfer / recovery state machine
    SYSTEM = "system"  # Clock, configuration, storage


class CatalogError(Exception):
    """Base exception for all catalog core errors."""

    code = "CatalogError"
    category = ErrorCategory.SYSTEM
    http_status = 500
    default_message = "Catalog operation failed"

    def __init__(self, message: str | None = None, **details: Any):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        result: dict[str, Any] = {
            "error": self.message,
            "code": self.code,
            "category": self.category.value,
        }
        if self.details:
            result["details"] = {k: _jsonable(v) for k, v in self.details.items()}
        return result


def _jsonable(value: Any) -> Any:
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)


# =============================================================================
# Validation
# =============================================================================


class ValidationError(CatalogError):
    """Raised when an input fails structural validation."""

    code = "ValidationError"
    category = ErrorCategory.VALIDATION
    http_status = 400
    default_message = "Invalid input"


class FieldValidationError(ValidationError):
    """Validation failure attributable to a single named text field."""

    def __init__(self, field: str, message: str | None = None, **details: Any):
        self.field = field
        super().__init__(message, field=field, **details)


class FieldTooLong(FieldValidationError):
    code = "FieldTooLong"
    default_message = "Field exceeds maximum length"


class FieldEmpty(FieldValidationError):
    code = "FieldEmpty"
    default_message = "Field is empty or below minimum length"


class InvalidCharacter(FieldValidationError):
    code = "InvalidCharacter"
    default_message = "Field contains a non-printable or non-ASCII character"


class InvalidIdentifier(ValidationError):
    code = "InvalidIdentifier"
    default_message = "Catalog identifier must be a valid UUID v4"


class InvalidContentPointer(ValidationError):
    code = "InvalidContentPointer"
    default_message = "Content pointer must be a CIDv0 (Qm...) or CIDv1 (baf...) string"


class InvalidPrincipal(ValidationError):
    code = "InvalidPrincipal"
    default_message = "Principal must be a non-zero 32-byte identity"


class InvalidPublicationYear(ValidationError):
    code = "InvalidPublicationYear"
    default_message = "Publication year must be between 1 and 9999"


# =============================================================================
# Authorization
# =============================================================================


class AuthorizationError(CatalogError):
    """Raised when the caller does not hold the required role."""

    code = "AuthorizationError"
    category = ErrorCategory.AUTHORIZATION
    http_status = 403
    default_message = "Access denied"


class OnlySuperAdmin(AuthorizationError):
    code = "OnlySuperAdmin"
    default_message = "Access denied: only the super admin can perform this action"


class InsufficientPermissions(AuthorizationError):
    code = "InsufficientPermissions"
    default_message = "Access denied: insufficient permissions for this action"


class RoleLimitExceeded(AuthorizationError):
    code = "RoleLimitExceeded"
    http_status = 409
    default_message = "Role limit reached"


# =============================================================================
# Lifecycle
# =============================================================================


class LifecycleError(CatalogError):
    """Raised when a record's existence contradicts the operation."""

    code = "LifecycleError"
    category = ErrorCategory.LIFECYCLE
    http_status = 409
    default_message = "Record lifecycle conflict"


class DuplicateCredential(LifecycleError):
    code = "DuplicateCredential"
    default_message = "Access credential already exists for this principal"


class DuplicateIdentifier(LifecycleError):
    code = "DuplicateIdentifier"
    default_message = "Catalog entry with this identifier already exists"


class AdminAlreadyExists(LifecycleError):
    code = "AdminAlreadyExists"
    default_message = "Admin already exists"


class CuratorAlreadyExists(LifecycleError):
    code = "CuratorAlreadyExists"
    default_message = "Curator already exists"


class NotFound(LifecycleError):
    code = "NotFound"
    http_status = 404
    default_message = "Record not found"


class AdminNotFound(NotFound):
    code = "AdminNotFound"
    default_message = "Admin not found"


class CuratorNotFound(NotFound):
    code = "CuratorNotFound"
    default_message = "Curator not found"


class NotInitialized(LifecycleError):
    code = "NotInitialized"
    http_status = 503
    default_message = "Catalog state has not been initialized"


class AlreadyInitialized(LifecycleError):
    code = "AlreadyInitialized"
    default_message = "Catalog state is already initialized"


# =============================================================================
# Availability & Rate
# =============================================================================


class ProgramPaused(CatalogError):
    code = "ProgramPaused"
    category = ErrorCategory.AVAILABILITY
    http_status = 503
    default_message = "Catalog is currently paused by the super admin"


class RateLimitExceeded(CatalogError):
    """Raised when a catalog addition hits the cooldown or the daily cap."""

    code = "RateLimitExceeded"
    category = ErrorCategory.RATE
    http_status = 429
    default_message = "Rate limit exceeded"

    COOLDOWN = "cooldown"
    DAILY_CAP = "daily_cap"

    def __init__(self, reason: str, retry_after: int = 0, message: str | None = None):
        self.reason = reason
        self.retry_after = retry_after
        super().__init__(message, reason=reason, retry_after=retry_after)


# =============================================================================
# Protocol (super admin transfer / emergency recovery)
# =============================================================================


class ProtocolError(CatalogError):
    """Raised when a recovery protocol is driven from the wrong state."""

    code = "ProtocolError"
    category = ErrorCategory.PROTOCOL
    http_status = 409
    default_message = "Protocol state conflict"


class TransferAlreadyPending(ProtocolError):
    code = "TransferAlreadyPending"
    default_message = "Transfer already pending: cancel the existing transfer first"


class NoPendingTransfer(ProtocolError):
    code = "NoPendingTransfer"
    default_message = "No pending transfer: initiate a transfer first"


class TimelockNotExpired(ProtocolError):
    code = "TimelockNotExpired"
    default_message = "Timelock not expired: transfer confirmation not yet available"


class SelfTransferNotAllowed(ProtocolError):
    code = "SelfTransferNotAllowed"
    http_status = 400
    default_message = "Cannot transfer to the current super admin"


class InvalidSuperAdmin(ProtocolError):
    code = "InvalidSuperAdmin"
    http_status = 400
    default_message = "Invalid super admin candidate"


class AlreadyVotedForRecovery(ProtocolError):
    code = "AlreadyVotedForRecovery"
    default_message = "Admin has already voted for this recovery"


class RecoveryAlreadyPending(ProtocolError):
    code = "RecoveryAlreadyPending"
    default_message = "Emergency recovery already in progress"


class NoPendingRecovery(ProtocolError):
    code = "NoPendingRecovery"
    default_message = "No emergency recovery in progress"


class InsufficientAdminsForRecovery(ProtocolError):
    code = "InsufficientAdminsForRecovery"
    default_message = "Not enough admins to reach the recovery threshold"


# =============================================================================
# System
# =============================================================================


class ClockUnavailable(CatalogError):
    code = "ClockUnavailable"
    http_status = 503
    default_message = "Trusted time source unavailable"


class NotConfigured(CatalogError):
    code = "NotConfigured"
    http_status = 503
    default_message = "Catalog core is not configured"
