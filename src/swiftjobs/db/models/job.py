"""Job, checklist and deliverable tables."""

from datetime import datetime

from sqlalchemy import JSON, Boolean, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from swiftjobs.db.base import Base, TimestampMixin, UTCDateTime


class JobRow(Base, TimestampMixin):
    __tablename__ = "jobs"

    job_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    client_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    one_line_request: Mapped[str] = mapped_column(String(500), nullable=False)
    objective: Mapped[str] = mapped_column(Text, nullable=False)
    deliverable_type: Mapped[str] = mapped_column(String(50), nullable=False)
    acceptance_criteria: Mapped[list] = mapped_column(JSON, nullable=False)
    budget: Mapped[float | None] = mapped_column(Numeric(12, 2, asdecimal=False), nullable=True)
    deadline: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    priority: Mapped[str] = mapped_column(String(20), nullable=False, default="normal")
    status: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    estimated_price: Mapped[int | None] = mapped_column(Integer, nullable=True)
    final_price: Mapped[float | None] = mapped_column(Numeric(12, 2, asdecimal=False), nullable=True)
    revision_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_revisions: Mapped[int] = mapped_column(Integer, nullable=False, default=2)
    match_batches: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    escalation: Mapped[str | None] = mapped_column(String(50), nullable=True, index=True)


class JobChecklistItemRow(Base, TimestampMixin):
    __tablename__ = "job_checklist_items"

    item_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    job_id: Mapped[str] = mapped_column(String(128), ForeignKey("jobs.job_id"), nullable=False, index=True)
    item: Mapped[str] = mapped_column(String(500), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed_by: Mapped[str | None] = mapped_column(String(128), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)


class JobDeliverableRow(Base, TimestampMixin):
    __tablename__ = "job_deliverables"
    __table_args__ = (UniqueConstraint("job_id", "version", name="uq_job_deliverables_version"),)

    deliverable_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    job_id: Mapped[str] = mapped_column(String(128), ForeignKey("jobs.job_id"), nullable=False, index=True)
    uploaded_by: Mapped[str] = mapped_column(String(128), nullable=False)
    file_url: Mapped[str] = mapped_column(String(2000), nullable=False)
    file_name: Mapped[str] = mapped_column(String(500), nullable=False)
    file_size: Mapped[int | None] = mapped_column(Integer, nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    is_final: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
