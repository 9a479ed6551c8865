"""Workroom API routes: start, checklist, deliverables, submission."""

from fastapi import APIRouter

from swiftjobs.dependencies import Broker, CurrentIdentity, DBSession, FreelancerIdentity
from swiftjobs.logging_config import bind_job_context
from swiftjobs.models.job import JobResponse
from swiftjobs.models.workroom import (
    ChecklistItemResponse,
    DeliverableCreate,
    DeliverableResponse,
    SubmitRequest,
)
from swiftjobs.services import workroom

router = APIRouter(tags=["Workroom"])


@router.post("/jobs/{job_id}/start", response_model=JobResponse)
async def start_work(job_id: str, identity: FreelancerIdentity, db: DBSession, broker: Broker):
    bind_job_context(job_id)
    job = await workroom.start_work(db, broker, identity, job_id)
    return JobResponse.model_validate(job)


@router.get("/jobs/{job_id}/checklist", response_model=list[ChecklistItemResponse])
async def get_checklist(job_id: str, identity: CurrentIdentity, db: DBSession):
    items = await workroom.list_checklist(db, identity, job_id)
    return [ChecklistItemResponse.model_validate(i) for i in items]


@router.post("/jobs/{job_id}/checklist/{item_id}/toggle", response_model=ChecklistItemResponse)
async def toggle_checklist_item(job_id: str, item_id: str, identity: CurrentIdentity, db: DBSession):
    bind_job_context(job_id)
    item = await workroom.toggle_item(db, identity, job_id, item_id)
    return ChecklistItemResponse.model_validate(item)


@router.post("/jobs/{job_id}/deliverables", status_code=201, response_model=DeliverableResponse)
async def add_deliverable(job_id: str, body: DeliverableCreate, identity: FreelancerIdentity, db: DBSession):
    bind_job_context(job_id)
    deliverable = await workroom.add_deliverable(
        db, identity, job_id, body.file_url, body.file_name, body.file_size
    )
    return DeliverableResponse.model_validate(deliverable)


@router.get("/jobs/{job_id}/deliverables", response_model=list[DeliverableResponse])
async def list_deliverables(job_id: str, identity: CurrentIdentity, db: DBSession):
    deliverables = await workroom.list_deliverables(db, identity, job_id)
    return [DeliverableResponse.model_validate(d) for d in deliverables]


@router.post("/jobs/{job_id}/submit", response_model=DeliverableResponse)
async def submit_final(
    job_id: str,
    identity: FreelancerIdentity,
    db: DBSession,
    broker: Broker,
    body: SubmitRequest | None = None,
):
    """Flag the final deliverable and hand the job to the client for review."""
    bind_job_context(job_id)
    deliverable = await workroom.submit_final(
        db, broker, identity, job_id, deliverable_id=body.deliverable_id if body else None
    )
    return DeliverableResponse.model_validate(deliverable)
