"""Relaxed, non-eliminating job scoring for the candidate-facing browse view.

Every active job gets a score. Missing required skills never exclude a job;
they cap the skill component instead, and a handful of profile heuristics add
bonus points on top. Nothing here touches the database.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from functools import partial
from typing import Mapping, Sequence

from jobgraph.models.enums import DegreeLevel, ExperienceLevel, RemotePreference
from jobgraph.services.parallel import parallel_map
from jobgraph.services.requirements import SkillRequirement
from jobgraph.services.strict_scorer import ScoreAccumulator, SkillBreakdownEntry


MAX_SCORE = 100.0

# Cap applied when required skills are missing: ratio * SLOPE + FLOOR.
# 0 of N met caps at 25, half met at 50.
PENALTY_CAP_SLOPE = 50.0
PENALTY_CAP_FLOOR = 25.0

EXPERIENCE_FULL_POINTS = 5.0
EXPERIENCE_PARTIAL_POINTS = 2.0

# (min_years, max_years) with None meaning unbounded.
YearsBand = tuple[int | None, int | None]

EXPERIENCE_BANDS: dict[ExperienceLevel, tuple[YearsBand, YearsBand | None]] = {
    ExperienceLevel.ENTRY: ((0, 3), (0, 5)),
    ExperienceLevel.MID: ((2, 6), (1, 8)),
    ExperienceLevel.SENIOR: ((5, 10), (3, None)),
    ExperienceLevel.LEAD: ((8, None), None),
    ExperienceLevel.EXECUTIVE: ((10, None), None),
}

REMOTE_PREFERENCE_POINTS: dict[RemotePreference, float] = {
    RemotePreference.REMOTE: 5.0,
    RemotePreference.FLEXIBLE: 5.0,
    RemotePreference.HYBRID: 3.0,
}

SAME_CITY_POINTS = 5.0
SAME_STATE_RELOCATE_POINTS = 3.0
SAME_STATE_POINTS = 1.0
OTHER_STATE_RELOCATE_POINTS = 2.0

RELEVANT_FIELD_POINTS = 3.0
DEGREE_ONLY_POINTS = 1.0
RECOGNISED_DEGREES = frozenset({DegreeLevel.BACHELORS.value, DegreeLevel.MASTERS.value, DegreeLevel.PHD.value})

RELEVANT_TITLE_POINTS = 2.0

# Words of this length or shorter ("sr", "of", "and") are too generic to match on.
MIN_SIGNIFICANT_LENGTH = 3


@dataclass(frozen=True)
class EducationInput:
    degree: str | None = None
    field_of_study: str | None = None


@dataclass(frozen=True)
class WorkExperienceInput:
    title: str | None = None
    company: str | None = None


@dataclass(frozen=True)
class ProfileBonusInputs:
    years_experience: int | None = None
    city: str | None = None
    state: str | None = None
    remote_preference: RemotePreference | None = None
    willing_to_relocate: bool = False
    education: tuple[EducationInput, ...] = ()
    work_experience: tuple[WorkExperienceInput, ...] = ()


@dataclass(frozen=True)
class ActiveJob:
    job_id: int
    title: str
    description: str = ""
    city: str | None = None
    state: str | None = None
    remote_option: RemotePreference | None = None
    experience_level: ExperienceLevel | None = None
    requirements: tuple[SkillRequirement, ...] = ()
    employment_type: str | None = None
    salary_min: int | None = None
    salary_max: int | None = None
    company_id: int | None = None
    company_name: str | None = None
    industry: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class BonusBreakdown:
    experience: float = 0.0
    location: float = 0.0
    education: float = 0.0
    work_experience: float = 0.0

    @property
    def total(self) -> float:
        return self.experience + self.location + self.education + self.work_experience


@dataclass(frozen=True)
class BrowseScore:
    job: ActiveJob
    overall_score: float
    skill_score: float
    is_fully_qualified: bool
    required_skills_met: int
    total_required_skills: int
    skill_breakdown: tuple[SkillBreakdownEntry, ...]
    bonus: BonusBreakdown = field(default_factory=BonusBreakdown)


def _in_band(years: int, band: YearsBand) -> bool:
    low, high = band
    if low is not None and years < low:
        return False
    if high is not None and years > high:
        return False
    return True


def experience_bonus(years_experience: int | None, level: ExperienceLevel | None) -> float:
    if years_experience is None or level is None:
        return 0.0
    full, partial_band = EXPERIENCE_BANDS[level]
    if _in_band(years_experience, full):
        return EXPERIENCE_FULL_POINTS
    if partial_band is not None and _in_band(years_experience, partial_band):
        return EXPERIENCE_PARTIAL_POINTS
    return 0.0


def _norm(value: str | None) -> str:
    return (value or "").strip().lower()


def is_remote_job(remote_option: RemotePreference | None) -> bool:
    return remote_option is not None and remote_option != RemotePreference.ONSITE


def location_bonus(job: ActiveJob, profile: ProfileBonusInputs) -> float:
    if is_remote_job(job.remote_option):
        if profile.remote_preference is None:
            return 0.0
        return REMOTE_PREFERENCE_POINTS.get(profile.remote_preference, 0.0)

    job_city, job_state = _norm(job.city), _norm(job.state)
    cand_city, cand_state = _norm(profile.city), _norm(profile.state)
    if not (job_city and job_state and cand_city and cand_state):
        return 0.0
    if job_city == cand_city and job_state == cand_state:
        return SAME_CITY_POINTS
    if job_state == cand_state:
        return SAME_STATE_RELOCATE_POINTS if profile.willing_to_relocate else SAME_STATE_POINTS
    if profile.willing_to_relocate:
        return OTHER_STATE_RELOCATE_POINTS
    return 0.0


def education_bonus(job: ActiveJob, education: Sequence[EducationInput]) -> float:
    if not education:
        return 0.0
    title, description = _norm(job.title), _norm(job.description)
    for edu in education:
        field_of_study = _norm(edu.field_of_study)
        if len(field_of_study) > MIN_SIGNIFICANT_LENGTH and (field_of_study in description or field_of_study in title):
            return RELEVANT_FIELD_POINTS
    if any(_norm(edu.degree) in RECOGNISED_DEGREES for edu in education):
        return DEGREE_ONLY_POINTS
    return 0.0


def title_keywords(title: str | None) -> list[str]:
    return [word for word in _norm(title).split() if len(word) > MIN_SIGNIFICANT_LENGTH]


def work_experience_bonus(job: ActiveJob, work_experience: Sequence[WorkExperienceInput]) -> float:
    keywords = title_keywords(job.title)
    if not keywords:
        return 0.0
    for exp in work_experience:
        previous = _norm(exp.title)
        if previous and any(keyword in previous for keyword in keywords):
            return RELEVANT_TITLE_POINTS
    return 0.0


def bonus_points(job: ActiveJob, profile: ProfileBonusInputs) -> BonusBreakdown:
    return BonusBreakdown(
        experience=experience_bonus(profile.years_experience, job.experience_level),
        location=location_bonus(job, profile),
        education=education_bonus(job, profile.education),
        work_experience=work_experience_bonus(job, profile.work_experience),
    )


def required_skills_cap(required_met: int, total_required: int) -> float | None:
    """Upper bound on the skill score, or None when every required skill is met."""

    if required_met >= total_required:
        return None
    ratio = required_met / total_required
    return ratio * PENALTY_CAP_SLOPE + PENALTY_CAP_FLOOR


def score_job_for_candidate(
    job: ActiveJob,
    skill_map: Mapping[int, float],
    profile: ProfileBonusInputs,
) -> BrowseScore:
    acc = ScoreAccumulator()
    breakdown: list[SkillBreakdownEntry] = []
    required_met = 0
    total_required = 0

    for req in job.requirements:
        candidate_score = float(skill_map.get(req.skill_id, 0.0))
        entry = SkillBreakdownEntry(
            skill_id=req.skill_id,
            skill_name=req.skill_name,
            required=req.required,
            candidate_score=candidate_score,
            minimum_score=req.minimum_score,
            weight=req.weight,
            meets_threshold=candidate_score >= req.minimum_score,
        )
        breakdown.append(entry)

        if req.required:
            total_required += 1
            if candidate_score > 0 and entry.meets_threshold:
                required_met += 1

        # Skills the candidate lacks are left out rather than averaged in as zero.
        if candidate_score > 0:
            acc = acc.add(entry)

    skill_score = acc.weighted_average()
    cap = required_skills_cap(required_met, total_required)
    if cap is not None:
        skill_score = min(skill_score, cap)

    bonus = bonus_points(job, profile)
    overall = min(max(skill_score + bonus.total, 0.0), MAX_SCORE)

    return BrowseScore(
        job=job,
        overall_score=overall,
        skill_score=skill_score,
        is_fully_qualified=total_required > 0 and required_met == total_required,
        required_skills_met=required_met,
        total_required_skills=total_required,
        skill_breakdown=tuple(breakdown),
        bonus=bonus,
    )


def score_jobs_for_candidate(
    jobs: Sequence[ActiveJob],
    skill_map: Mapping[int, float],
    profile: ProfileBonusInputs,
    *,
    max_workers: int = 1,
    parallel_threshold: int = 200,
    timeout: float | None = None,
) -> list[BrowseScore]:
    """Score every job, best first (ties by job id ascending)."""

    # Frozen copy shared read-only by every worker for this one call.
    frozen_skills = dict(skill_map)
    scored = parallel_map(
        partial(_score_one, frozen_skills, profile),
        list(jobs),
        max_workers=max_workers,
        threshold=parallel_threshold,
        timeout=timeout,
    )
    scored.sort(key=lambda item: (-item.overall_score, item.job.job_id))
    return scored


def _score_one(skill_map: Mapping[int, float], profile: ProfileBonusInputs, job: ActiveJob) -> BrowseScore:
    return score_job_for_candidate(job, skill_map, profile)
