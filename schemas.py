"""
schemas.py — Pydantic v2 models for the itinerary job service.

Two groups:
  - HTTP I/O: CreateJobRequest, CreateJobResponse, JobStatusResponse
  - Generated itinerary: Activity, Day, ItineraryDocument

Itinerary models are strict (no coercion, no extra keys) because they gate
what the model produced before it is written to the job record: a day number
of "1" or an activity missing its location rejects the whole itinerary.
"""

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr


# ── Job creation ──────────────────────────────────────────────────────────────

class CreateJobRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # stored exactly as sent; blank-only values are rejected by the orchestrator
    destination:   str = Field(..., min_length=1)
    duration_days: int = Field(..., alias='durationDays', gt=0, strict=True)


class CreateJobResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    job_id: str = Field(..., alias='jobId')


# ── Generated itinerary ───────────────────────────────────────────────────────

class Activity(BaseModel):
    model_config = ConfigDict(extra='forbid')

    time:        StrictStr
    description: StrictStr
    location:    StrictStr


class Day(BaseModel):
    model_config = ConfigDict(extra='forbid')

    day:        StrictInt = Field(..., gt=0)
    theme:      StrictStr
    activities: list[Activity]


class ItineraryDocument(BaseModel):
    itinerary: list[Day]


# ── Job status ────────────────────────────────────────────────────────────────

class JobStatusResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    destination:   str
    duration_days: int        = Field(..., alias='durationDays')
    status:        str
    created_at:    str        = Field(..., alias='createdAt')
    completed_at:  str | None = Field(default=None, alias='completedAt')
    itinerary:     list[Day]  = Field(default_factory=list)
    error:         str | None = None
