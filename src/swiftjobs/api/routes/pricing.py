"""Price estimate API route."""

from fastapi import APIRouter, Query

from swiftjobs.models.enums import DeliverableType, JobPriority
from swiftjobs.models.job import PriceEstimateResponse
from swiftjobs.services.pricing import calculate_price_estimate, format_price

router = APIRouter(tags=["Pricing"])


@router.get("/pricing/estimate", response_model=PriceEstimateResponse)
async def estimate_price(
    deliverable_type: DeliverableType,
    deadline_hours: int = Query(..., gt=0, le=24 * 90),
    priority: JobPriority = JobPriority.NORMAL,
):
    estimate = calculate_price_estimate(deliverable_type, deadline_hours, priority)
    return PriceEstimateResponse(
        base_price=estimate.base_price,
        deadline_multiplier=estimate.deadline_multiplier,
        priority_multiplier=estimate.priority_multiplier,
        estimated_price=estimate.estimated_price,
        fast_price=estimate.fast_price,
        deadline_label=estimate.deadline_label,
        formatted_price=format_price(estimate.estimated_price),
    )
