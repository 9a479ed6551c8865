"""Job review table. One current decision per (job, client)."""

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from swiftjobs.db.base import Base, TimestampMixin


class JobReviewRow(Base, TimestampMixin):
    __tablename__ = "job_reviews"
    __table_args__ = (UniqueConstraint("job_id", "client_id", name="uq_job_reviews_job_client"),)

    review_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    job_id: Mapped[str] = mapped_column(String(128), ForeignKey("jobs.job_id"), nullable=False, index=True)
    client_id: Mapped[str] = mapped_column(String(128), nullable=False)
    freelancer_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    met_criteria: Mapped[bool] = mapped_column(Boolean, nullable=False)
    feedback: Mapped[str | None] = mapped_column(Text, nullable=True)
    rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
