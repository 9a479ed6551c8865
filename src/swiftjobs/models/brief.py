"""Brief generation models."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from swiftjobs.models.enums import DeliverableType


class BriefRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    one_line_request: str = Field(..., min_length=1, max_length=500)


class BriefSuggestion(BaseModel):
    objective: str
    deliverable_type: DeliverableType
    acceptance_criteria: list[str] = Field(..., min_length=1, max_length=5)
    source: Literal["oracle", "fallback"] = "fallback"
