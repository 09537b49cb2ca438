from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from jobgraph.models.enums import ExperienceLevel, MatchStatus, RemotePreference


class SkillBreakdownItem(BaseModel):
    skill_id: int
    skill_name: str
    required: bool
    candidate_score: float
    minimum_score: float
    weight: float
    meets_threshold: bool


class Location(BaseModel):
    city: str | None = None
    state: str | None = None


class Salary(BaseModel):
    min: int | None = None
    max: int | None = None


class CompanySummary(BaseModel):
    company_id: int | None = None
    name: str | None = None
    industry: str | None = None


class CandidateSummary(BaseModel):
    headline: str | None = None
    years_experience: int | None = None
    city: str | None = None
    state: str | None = None
    remote_preference: RemotePreference | None = None
    willing_to_relocate: bool = False


# ---- calculate ----


class CalculatedMatch(BaseModel):
    user_id: int
    email: str
    first_name: str | None = None
    last_name: str | None = None
    profile_id: int | None = None
    rank: int
    overall_score: float = Field(ge=0, le=100)
    profile: CandidateSummary
    skill_breakdown: list[SkillBreakdownItem]


class CalculateMatchesResponse(BaseModel):
    job_id: int
    total_matches: int
    top_matches: list[CalculatedMatch]


# ---- employer view ----


class RankedCandidateOut(BaseModel):
    match_id: int
    user_id: int
    first_name: str | None = None
    last_name: str | None = None
    email: str
    profile_id: int | None = None
    overall_score: float = Field(ge=0, le=100)
    rank: int
    status: MatchStatus
    contacted_at: datetime | None = None
    profile: CandidateSummary
    skill_breakdown: list[SkillBreakdownItem]
    created_at: datetime | None = None
    source: Literal["matched"] = "matched"


class JobCandidatesResponse(BaseModel):
    job_id: int
    job_title: str
    total_matches: int
    candidates: list[RankedCandidateOut]


# ---- candidate views ----


class CandidateMatchOut(BaseModel):
    match_id: int
    job_id: int
    job_title: str
    job_description: str | None = None
    location: Location
    remote_option: RemotePreference | None = None
    salary: Salary
    employment_type: str | None = None
    experience_level: ExperienceLevel | None = None
    company: CompanySummary
    overall_score: float = Field(ge=0, le=100)
    rank: int
    skill_breakdown: list[SkillBreakdownItem]
    status: MatchStatus
    contacted_at: datetime | None = None
    matched_at: datetime | None = None


class CandidateMatchesResponse(BaseModel):
    total_matches: int
    matches: list[CandidateMatchOut]


class BonusPoints(BaseModel):
    experience: float = 0.0
    location: float = 0.0
    education: float = 0.0
    work_experience: float = 0.0


class BrowseJobOut(BaseModel):
    job_id: int
    job_title: str
    job_description: str | None = None
    location: Location
    remote_option: RemotePreference | None = None
    salary: Salary
    employment_type: str | None = None
    experience_level: ExperienceLevel | None = None
    company: CompanySummary
    overall_score: float = Field(ge=0, le=100)
    is_fully_qualified: bool
    required_skills_met: int
    total_required_skills: int
    skill_breakdown: list[SkillBreakdownItem]
    bonus_points: BonusPoints
    posted_at: datetime | None = None


class BrowseJobsResponse(BaseModel):
    total_jobs: int
    jobs: list[BrowseJobOut]
    message: str | None = None


# ---- status transitions ----


class MatchStatusUpdateRequest(BaseModel):
    status: MatchStatus


class MatchStatusResponse(BaseModel):
    match_id: int
    status: MatchStatus
    contacted_at: datetime | None = None
    updated_at: datetime | None = None
    message: str | None = None

    model_config = ConfigDict(from_attributes=True)
