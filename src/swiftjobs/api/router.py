"""Master API router mounted at /api/v1."""

from fastapi import APIRouter

from swiftjobs.api.routes import (
    admin,
    briefs,
    health,
    jobs,
    matches,
    payments,
    pricing,
    reviews,
    stream,
    users,
    workroom,
)

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(health.router)
api_router.include_router(users.router)
api_router.include_router(briefs.router)
api_router.include_router(pricing.router)
api_router.include_router(jobs.router)
api_router.include_router(payments.router)
api_router.include_router(matches.router)
api_router.include_router(workroom.router)
api_router.include_router(reviews.router)
api_router.include_router(admin.router)
api_router.include_router(stream.router)
