"""Job API routes."""

import logging

from fastapi import APIRouter

from swiftjobs.dependencies import Broker, ClientIdentity, CurrentIdentity, DBSession, Oracle
from swiftjobs.logging_config import bind_job_context
from swiftjobs.models.job import CancelRequest, JobCreate, JobResponse, JobUpdate
from swiftjobs.services import jobs as job_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Jobs"])


@router.post("/jobs", status_code=201, response_model=JobResponse)
async def create_job(body: JobCreate, identity: ClientIdentity, db: DBSession, oracle: Oracle):
    job = await job_service.create_job(db, identity, oracle, body)
    return JobResponse.model_validate(job)


@router.get("/jobs", response_model=list[JobResponse])
async def list_jobs(identity: CurrentIdentity, db: DBSession):
    """The caller's jobs: a client's own, or those a freelancer was offered."""
    jobs = await job_service.list_jobs(db, identity)
    return [JobResponse.model_validate(j) for j in jobs]


@router.get("/jobs/{job_id}", response_model=JobResponse)
async def get_job(job_id: str, identity: CurrentIdentity, db: DBSession):
    bind_job_context(job_id)
    job = await job_service.get_job(db, identity, job_id)
    return JobResponse.model_validate(job)


@router.patch("/jobs/{job_id}", response_model=JobResponse)
async def update_job(job_id: str, body: JobUpdate, identity: ClientIdentity, db: DBSession, broker: Broker):
    bind_job_context(job_id)
    job = await job_service.update_brief(db, broker, identity, job_id, body)
    return JobResponse.model_validate(job)


@router.post("/jobs/{job_id}/cancel", response_model=JobResponse)
async def cancel_job(job_id: str, identity: CurrentIdentity, db: DBSession, broker: Broker, body: CancelRequest | None = None):
    bind_job_context(job_id)
    job = await job_service.cancel_job(db, broker, identity, job_id, reason=body.reason if body else None)
    return JobResponse.model_validate(job)
