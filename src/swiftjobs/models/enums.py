"""String enums for the job, match and escrow lifecycles."""

from enum import StrEnum


class UserRole(StrEnum):
    CLIENT = "client"
    FREELANCER = "freelancer"


class DeliverableType(StrEnum):
    LANDING_PAGE = "landing_page"
    AD_1MIN = "ad_1min"
    BUG_FIX = "bug_fix"
    DESIGN = "design"
    OTHER = "other"


class JobPriority(StrEnum):
    NORMAL = "normal"
    FAST = "fast"


class JobStatus(StrEnum):
    DRAFT = "draft"
    BRIEF_COMPLETE = "brief_complete"
    PAYMENT_PENDING = "payment_pending"
    MATCHED = "matched"
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"
    ACCEPTED = "accepted"
    REVISION_REQUESTED = "revision_requested"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class MatchStatus(StrEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    EXPIRED = "expired"
    AUTO_ASSIGNED = "auto_assigned"


class TransactionStatus(StrEnum):
    PENDING = "pending"
    PAID = "paid"
    RELEASED = "released"
    REFUNDED = "refunded"


class PaymentMethod(StrEnum):
    PAYPAL = "paypal"
    MOBILE_MONEY = "mobile_money"
    BANK_TRANSFER = "bank_transfer"


class Escalation(StrEnum):
    MANUAL_ASSIGNMENT = "manual_assignment"
    SUPPORT = "support"


TERMINAL_JOB_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.CANCELLED})

# Statuses that lock a freelancer onto a job
ACTIVE_MATCH_STATUSES = frozenset({MatchStatus.ACCEPTED, MatchStatus.AUTO_ASSIGNED})

TERMINAL_TRANSACTION_STATUSES = frozenset({TransactionStatus.RELEASED, TransactionStatus.REFUNDED})
