"""SQLAlchemy ORM models - import all to register with Base.metadata."""

from swiftjobs.db.models.user import UserRow
from swiftjobs.db.models.job import JobChecklistItemRow, JobDeliverableRow, JobRow
from swiftjobs.db.models.match import JobMatchRow
from swiftjobs.db.models.transaction import TransactionRow
from swiftjobs.db.models.review import JobReviewRow

__all__ = [
    "UserRow",
    "JobRow",
    "JobChecklistItemRow",
    "JobDeliverableRow",
    "JobMatchRow",
    "TransactionRow",
    "JobReviewRow",
]
