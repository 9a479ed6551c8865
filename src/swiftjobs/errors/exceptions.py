"""Custom exception classes for the Swift Jobs API."""


class SwiftJobsError(Exception):
    """Base exception for Swift Jobs."""

    def __init__(self, code: str, message: str, details=None, status_code: int = 500):
        self.code = code
        self.message = message
        self.details = details
        self.status_code = status_code
        super().__init__(message)


class ValidationError(SwiftJobsError):
    """Schema or request validation failure."""

    def __init__(self, message: str, details=None):
        super().__init__("VALIDATION_ERROR", message, details, status_code=400)


class NotFoundError(SwiftJobsError):
    """Resource not found."""

    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            "NOT_FOUND",
            f"{resource} '{resource_id}' not found",
            status_code=404,
        )


class AuthenticationError(SwiftJobsError):
    """Authentication required or token invalid."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__("AUTHENTICATION_ERROR", message, status_code=401)


class AuthorizationError(SwiftJobsError):
    """Insufficient permissions."""

    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__("AUTHORIZATION_ERROR", message, status_code=403)


class ConflictError(SwiftJobsError):
    """Resource state conflict."""

    def __init__(self, message: str, details=None):
        super().__init__("CONFLICT", message, details, status_code=409)


# ── Domain errors ──────────────────────────────────────────────────────────────
# Each of these has a user-facing recovery path and is never retried automatically.


class InvalidTransitionError(SwiftJobsError):
    """Job status change requested outside the transition table."""

    def __init__(self, current_status: str, requested_status: str, reason: str | None = None):
        message = f"Cannot move job from '{current_status}' to '{requested_status}'"
        if reason:
            message = f"{message}: {reason}"
        self.current_status = current_status
        self.requested_status = requested_status
        super().__init__(
            "INVALID_TRANSITION",
            message,
            {"current_status": current_status, "requested_status": requested_status},
            status_code=409,
        )


class MatchAlreadyResolvedError(SwiftJobsError):
    """The offer was already accepted, declined or expired."""

    def __init__(self, match_id: str, match_status: str):
        super().__init__(
            "MATCH_ALREADY_RESOLVED",
            "This offer is no longer available",
            {"match_id": match_id, "match_status": match_status},
            status_code=409,
        )


class NoEligibleFreelancersError(SwiftJobsError):
    """Matching produced zero candidates for the job."""

    def __init__(self, job_id: str):
        super().__init__(
            "NO_ELIGIBLE_FREELANCERS",
            "No freelancers are available for this job right now",
            {"job_id": job_id, "recovery": "manual_assignment_or_refund"},
            status_code=409,
        )


class RevisionLimitExceededError(SwiftJobsError):
    """A rejection was submitted after every allowed revision was used."""

    def __init__(self, job_id: str, max_revisions: int):
        super().__init__(
            "REVISION_LIMIT_EXCEEDED",
            f"Maximum revisions reached ({max_revisions}). Please contact support.",
            {"job_id": job_id, "max_revisions": max_revisions, "outcome": "contact_support"},
            status_code=409,
        )


class PaymentNotVerifiedError(SwiftJobsError):
    """The job's escrow payment has not been verified by an admin yet."""

    def __init__(self, job_id: str, transaction_status: str | None):
        super().__init__(
            "PAYMENT_NOT_VERIFIED",
            "Payment has not been verified yet",
            {"job_id": job_id, "transaction_status": transaction_status, "retryable": True},
            status_code=402,
        )


class TransientError(SwiftJobsError):
    """Collaborator failure (network, storage) that is safe to retry."""

    def __init__(self, message: str, details=None):
        super().__init__("TRANSIENT_ERROR", message, details, status_code=503)
