"""Match scoring: a deterministic 0-1 score for a (job, freelancer) pair.

score = 0.4 * skills + 0.3 * completion rate + 0.2 * response + availability

The availability term is already weighted (0.1 when free, 0.05 when busy).
"""

from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from swiftjobs.models.enums import DeliverableType
from swiftjobs.repositories.match_repo import JobMatchRepository

SKILLS_WEIGHT = 0.4
COMPLETION_WEIGHT = 0.3
RESPONSE_WEIGHT = 0.2
AVAILABLE_SCORE = 0.1
BUSY_SCORE = 0.05

NEUTRAL_SKILLS_SCORE = 0.5
NEW_FREELANCER_COMPLETION_RATE = 0.8
NEW_FREELANCER_RESPONSE_HOURS = 2.0
RESPONSE_WINDOW_HOURS = 24.0

REQUIRED_SKILLS: dict[DeliverableType, list[str]] = {
    DeliverableType.LANDING_PAGE: ["web development", "html", "css", "javascript", "react", "next.js"],
    DeliverableType.AD_1MIN: ["video editing", "animation", "motion graphics", "adobe premiere", "after effects"],
    DeliverableType.BUG_FIX: ["debugging", "programming", "code review", "testing"],
    DeliverableType.DESIGN: ["ui design", "ux design", "figma", "adobe xd", "graphic design"],
    DeliverableType.OTHER: [],
}


@dataclass(frozen=True)
class FreelancerHistory:
    """Historical aggregates for one freelancer. Empty history means a newcomer."""

    reviews: int = 0
    met_reviews: int = 0
    acceptance_hours: tuple[float, ...] = ()
    active_elsewhere: int = 0


@dataclass(frozen=True)
class ScoreBreakdown:
    freelancer_id: str
    skills: float
    completion_rate: float
    response_hours: float
    available: bool
    score: float = field(compare=False)


def required_skills(deliverable_type: DeliverableType | str) -> list[str]:
    return REQUIRED_SKILLS.get(DeliverableType(deliverable_type), [])


def skills_match(required: list[str], freelancer_skills: list[str]) -> float:
    """Fraction of required skills found in the freelancer's skills.

    Containment is case-insensitive and checked in both directions, so
    "react" matches "React Native" and "web development" matches "web".
    """
    if not required:
        return NEUTRAL_SKILLS_SCORE
    have = [s.lower().strip() for s in freelancer_skills if s and s.strip()]
    if not have:
        return 0.0
    matched = 0
    for skill in required:
        wanted = skill.lower()
        if any(wanted in mine or mine in wanted for mine in have):
            matched += 1
    return matched / len(required)


def completion_rate(history: FreelancerHistory) -> float:
    if history.reviews == 0:
        return NEW_FREELANCER_COMPLETION_RATE
    return history.met_reviews / history.reviews


def average_response_hours(history: FreelancerHistory) -> float:
    if not history.acceptance_hours:
        return NEW_FREELANCER_RESPONSE_HOURS
    return sum(history.acceptance_hours) / len(history.acceptance_hours)


def response_score(avg_hours: float) -> float:
    return max(0.0, (RESPONSE_WINDOW_HOURS - avg_hours) / RESPONSE_WINDOW_HOURS)


def score_breakdown(
    deliverable_type: DeliverableType | str,
    freelancer_id: str,
    freelancer_skills: list[str],
    history: FreelancerHistory,
) -> ScoreBreakdown:
    skills = skills_match(required_skills(deliverable_type), freelancer_skills)
    rate = completion_rate(history)
    hours = average_response_hours(history)
    available = history.active_elsewhere == 0

    total = (
        skills * SKILLS_WEIGHT
        + rate * COMPLETION_WEIGHT
        + response_score(hours) * RESPONSE_WEIGHT
        + (AVAILABLE_SCORE if available else BUSY_SCORE)
    )
    return ScoreBreakdown(
        freelancer_id=freelancer_id,
        skills=skills,
        completion_rate=rate,
        response_hours=hours,
        available=available,
        score=min(1.0, max(0.0, total)),
    )


def score(
    deliverable_type: DeliverableType | str,
    freelancer_skills: list[str],
    history: FreelancerHistory,
) -> float:
    """Pure scoring function; identical inputs always give the identical float."""
    return score_breakdown(deliverable_type, "", freelancer_skills, history).score


async def load_histories(
    session: AsyncSession,
    job_id: str,
    freelancer_ids: list[str],
) -> dict[str, FreelancerHistory]:
    """Read every candidate's aggregates in three batched queries."""
    repo = JobMatchRepository(session)
    outcomes = await repo.review_outcomes(freelancer_ids)
    latencies = await repo.acceptance_latencies(freelancer_ids)
    engagements = await repo.active_engagements(freelancer_ids, exclude_job_id=job_id)

    histories = {}
    for freelancer_id in freelancer_ids:
        reviews, met = outcomes.get(freelancer_id, (0, 0))
        histories[freelancer_id] = FreelancerHistory(
            reviews=reviews,
            met_reviews=met,
            acceptance_hours=tuple(latencies.get(freelancer_id, ())),
            active_elsewhere=engagements.get(freelancer_id, 0),
        )
    return histories
