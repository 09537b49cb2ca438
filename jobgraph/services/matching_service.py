from __future__ import annotations

import logging
import time
from concurrent.futures import TimeoutError as FuturesTimeout
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from jobgraph.config import Settings, settings as app_settings
from jobgraph.models.company import Company, CompanyUser
from jobgraph.models.enums import JobStatus, MatchStatus
from jobgraph.models.job_match import JobMatch
from jobgraph.models.job_skill import JobSkillRequirement
from jobgraph.models.jobs import Job
from jobgraph.models.profile import CandidateProfile
from jobgraph.models.skills import Skill
from jobgraph.models.user import User
from jobgraph.schemas.matching import (
    BonusPoints,
    BrowseJobOut,
    BrowseJobsResponse,
    CalculatedMatch,
    CalculateMatchesResponse,
    CandidateMatchesResponse,
    CandidateMatchOut,
    CandidateSummary,
    CompanySummary,
    JobCandidatesResponse,
    Location,
    MatchStatusResponse,
    RankedCandidateOut,
    Salary,
    SkillBreakdownItem,
)
from jobgraph.services import match_store
from jobgraph.services.browse_scorer import (
    ActiveJob,
    BrowseScore,
    EducationInput,
    ProfileBonusInputs,
    WorkExperienceInput,
    score_jobs_for_candidate,
)
from jobgraph.services.errors import CalculationTimeout, JobNotFound, MatchDataUnavailable, MatchNotFound
from jobgraph.services.ranker import SCORE_DECIMALS, RankedCandidate, rank_candidates
from jobgraph.services.requirements import SkillRequirement, required_skill_ids, resolve_strict_requirements
from jobgraph.services.skill_index import load_candidate_skill_map, load_qualifying_candidates, utc_now
from jobgraph.services.strict_scorer import score_candidates


logger = logging.getLogger(__name__)

NO_SKILLS_MESSAGE = "Add skills to your profile to see job matches"


@dataclass(frozen=True)
class MatchingOptions:
    timeout_seconds: float = 30.0
    lock_timeout_seconds: float = 10.0
    max_workers: int = 4
    parallel_threshold: int = 200
    top_matches_preview: int = 10

    @classmethod
    def from_settings(cls, s: Settings) -> "MatchingOptions":
        return cls(
            timeout_seconds=s.matching_timeout_seconds,
            lock_timeout_seconds=s.matching_lock_timeout_seconds,
            max_workers=s.matching_max_workers,
            parallel_threshold=s.matching_parallel_threshold,
            top_matches_preview=s.matching_top_matches_preview,
        )


def _options(options: MatchingOptions | None) -> MatchingOptions:
    return options or MatchingOptions.from_settings(app_settings)


# ---- ownership ----


def get_job_for_employer(db: Session, job_id: int, employer_id: int | None) -> Job:
    """Load a job the employer may act on; absent and foreign jobs look the same.

    ``employer_id=None`` is for trusted internal callers (scripts) and only
    checks existence.
    """

    stmt = select(Job).where(Job.id == job_id)
    if employer_id is not None:
        stmt = stmt.join(CompanyUser, CompanyUser.company_id == Job.company_id).where(
            CompanyUser.user_id == employer_id
        )
    job = db.execute(stmt).scalars().first()
    if job is None:
        raise JobNotFound(job_id)
    return job


def get_match_for_employer(db: Session, match_id: int, employer_id: int) -> JobMatch:
    match = db.execute(
        select(JobMatch)
        .join(Job, Job.id == JobMatch.job_id)
        .join(CompanyUser, CompanyUser.company_id == Job.company_id)
        .where(JobMatch.id == match_id)
        .where(CompanyUser.user_id == employer_id)
    ).scalars().first()
    if match is None:
        raise MatchNotFound(match_id)
    return match


# ---- strict matching ----


def _breakdown(entries) -> list[SkillBreakdownItem]:
    return [SkillBreakdownItem(**entry.as_dict()) for entry in entries]


def _calculated_match(item: RankedCandidate) -> CalculatedMatch:
    identity = item.score.candidate.identity
    return CalculatedMatch(
        user_id=identity.user_id,
        email=identity.email,
        first_name=identity.first_name,
        last_name=identity.last_name,
        profile_id=identity.profile_id,
        rank=item.rank,
        overall_score=round(item.overall_score, SCORE_DECIMALS),
        profile=CandidateSummary(
            headline=identity.headline,
            years_experience=identity.years_experience,
            city=identity.city,
            state=identity.state,
            remote_preference=identity.remote_preference,
            willing_to_relocate=identity.willing_to_relocate,
        ),
        skill_breakdown=_breakdown(item.score.skill_breakdown),
    )


def calculate_matches(
    db: Session,
    job_id: int,
    *,
    employer_id: int | None = None,
    options: MatchingOptions | None = None,
    now: datetime | None = None,
) -> CalculateMatchesResponse:
    """Recompute, rank and persist the strictly qualified candidates of a job.

    Runs under the job's lock so concurrent requests for the same job queue
    up. The persisted set is replaced only once every step has succeeded; any
    failure before or during the write leaves the previous matches in place.
    """

    opts = _options(options)
    now = now or utc_now()
    get_job_for_employer(db, job_id, employer_id)

    with match_store.job_locks.hold(job_id, timeout=opts.lock_timeout_seconds):
        deadline = time.monotonic() + opts.timeout_seconds
        started = time.monotonic()

        try:
            requirements = resolve_strict_requirements(db, job_id)
        except SQLAlchemyError as exc:
            db.rollback()
            raise MatchDataUnavailable(job_id, "requirement lookup") from exc
        try:
            candidates = load_qualifying_candidates(
                db,
                [req.skill_id for req in requirements],
                required_skill_ids(requirements),
                now=now,
            )
        except SQLAlchemyError as exc:
            db.rollback()
            raise MatchDataUnavailable(job_id, "candidate lookup") from exc

        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise CalculationTimeout(job_id, "candidate lookup")
        try:
            scored = score_candidates(
                requirements,
                list(candidates.values()),
                max_workers=opts.max_workers,
                parallel_threshold=opts.parallel_threshold,
                timeout=remaining,
            )
        except FuturesTimeout as exc:
            raise CalculationTimeout(job_id, "scoring") from exc

        ranked = rank_candidates(scored)
        if time.monotonic() > deadline:
            raise CalculationTimeout(job_id, "ranking")

        match_store.replace_job_matches(db, job_id, ranked, now=now)

    logger.info(
        "matching.calculate job_id=%s requirements=%s pool=%s matched=%s elapsed_ms=%d",
        job_id,
        len(requirements),
        len(candidates),
        len(ranked),
        (time.monotonic() - started) * 1000,
    )
    return CalculateMatchesResponse(
        job_id=job_id,
        total_matches=len(ranked),
        top_matches=[_calculated_match(item) for item in ranked[: opts.top_matches_preview]],
    )


def get_ranked_candidates(db: Session, job_id: int, *, employer_id: int | None = None) -> JobCandidatesResponse:
    job = get_job_for_employer(db, job_id, employer_id)
    rows = db.execute(
        select(JobMatch, User, CandidateProfile)
        .join(User, User.id == JobMatch.user_id)
        .outerjoin(CandidateProfile, CandidateProfile.user_id == User.id)
        .where(JobMatch.job_id == job_id)
        .order_by(JobMatch.match_rank.asc())
    ).all()

    candidates = []
    for match, user, profile in rows:
        candidates.append(
            RankedCandidateOut(
                match_id=match.id,
                user_id=user.id,
                first_name=user.first_name,
                last_name=user.last_name,
                email=user.email,
                profile_id=profile.id if profile else None,
                overall_score=float(match.overall_score),
                rank=match.match_rank,
                status=match.status,
                contacted_at=match.contacted_at,
                profile=CandidateSummary(
                    headline=profile.headline if profile else None,
                    years_experience=profile.years_experience if profile else None,
                    city=profile.city if profile else None,
                    state=profile.state if profile else None,
                    remote_preference=profile.remote_preference if profile else None,
                    willing_to_relocate=bool(profile.willing_to_relocate) if profile else False,
                ),
                skill_breakdown=[SkillBreakdownItem(**entry) for entry in (match.skill_breakdown or [])],
                created_at=match.created_at,
            )
        )

    return JobCandidatesResponse(
        job_id=job.id,
        job_title=job.title,
        total_matches=len(candidates),
        candidates=candidates,
    )


def get_candidate_matches(db: Session, user_id: int) -> CandidateMatchesResponse:
    rows = db.execute(
        select(JobMatch, Job, Company)
        .join(Job, Job.id == JobMatch.job_id)
        .join(Company, Company.id == Job.company_id)
        .where(JobMatch.user_id == user_id)
        .order_by(JobMatch.overall_score.desc(), JobMatch.job_id.asc())
    ).all()

    matches = [
        CandidateMatchOut(
            match_id=match.id,
            job_id=job.id,
            job_title=job.title,
            job_description=job.description,
            location=Location(city=job.city, state=job.state),
            remote_option=job.remote_option,
            salary=Salary(min=job.salary_min, max=job.salary_max),
            employment_type=job.employment_type,
            experience_level=job.experience_level,
            company=CompanySummary(company_id=company.id, name=company.name, industry=company.industry),
            overall_score=float(match.overall_score),
            rank=match.match_rank,
            skill_breakdown=[SkillBreakdownItem(**entry) for entry in (match.skill_breakdown or [])],
            status=match.status,
            contacted_at=match.contacted_at,
            matched_at=match.created_at,
        )
        for match, job, company in rows
    ]
    return CandidateMatchesResponse(total_matches=len(matches), matches=matches)


# ---- status transitions ----


def update_match_status(db: Session, match_id: int, status: MatchStatus, *, employer_id: int) -> MatchStatusResponse:
    match = get_match_for_employer(db, match_id, employer_id)
    match = match_store.set_match_status(db, match, status)
    logger.info("matching.status match_id=%s status=%s", match_id, status.value)
    return MatchStatusResponse(
        match_id=match.id,
        status=match.status,
        contacted_at=match.contacted_at,
        updated_at=match.updated_at,
    )


def contact_candidate(db: Session, match_id: int, *, employer_id: int) -> MatchStatusResponse:
    match = get_match_for_employer(db, match_id, employer_id)
    match = match_store.mark_contacted(db, match)
    logger.info("matching.contact match_id=%s", match_id)
    return MatchStatusResponse(
        match_id=match.id,
        status=match.status,
        contacted_at=match.contacted_at,
        updated_at=match.updated_at,
        message="Candidate has been marked as contacted",
    )


# ---- relaxed browsing ----


def load_active_jobs(db: Session) -> list[ActiveJob]:
    """Active jobs with at least one skill requirement, newest first."""

    jobs = db.execute(
        select(Job, Company)
        .join(Company, Company.id == Job.company_id)
        .where(Job.status == JobStatus.ACTIVE)
        .order_by(Job.created_at.desc(), Job.id.asc())
    ).all()
    if not jobs:
        return []

    req_rows = db.execute(
        select(
            JobSkillRequirement.job_id,
            JobSkillRequirement.skill_id,
            Skill.name,
            JobSkillRequirement.weight,
            JobSkillRequirement.minimum_score,
            JobSkillRequirement.required,
        )
        .join(Skill, Skill.id == JobSkillRequirement.skill_id)
        .join(Job, Job.id == JobSkillRequirement.job_id)
        .where(Job.status == JobStatus.ACTIVE)
        .order_by(JobSkillRequirement.job_id, JobSkillRequirement.skill_id)
    ).all()

    requirements: dict[int, list[SkillRequirement]] = {}
    for row in req_rows:
        requirements.setdefault(int(row.job_id), []).append(
            SkillRequirement(
                skill_id=int(row.skill_id),
                skill_name=row.name,
                weight=float(row.weight),
                minimum_score=float(row.minimum_score),
                required=bool(row.required),
            )
        )

    active: list[ActiveJob] = []
    for job, company in jobs:
        job_reqs = requirements.get(job.id)
        if not job_reqs:
            continue
        active.append(
            ActiveJob(
                job_id=job.id,
                title=job.title,
                description=job.description or "",
                city=job.city,
                state=job.state,
                remote_option=job.remote_option,
                experience_level=job.experience_level,
                requirements=tuple(job_reqs),
                employment_type=job.employment_type,
                salary_min=job.salary_min,
                salary_max=job.salary_max,
                company_id=company.id,
                company_name=company.name,
                industry=company.industry,
                created_at=job.created_at,
            )
        )
    return active


def load_profile_bonus_inputs(db: Session, user_id: int) -> ProfileBonusInputs:
    profile = db.execute(
        select(CandidateProfile)
        .options(selectinload(CandidateProfile.education), selectinload(CandidateProfile.work_experience))
        .where(CandidateProfile.user_id == user_id)
    ).scalars().first()
    if profile is None:
        return ProfileBonusInputs()

    return ProfileBonusInputs(
        years_experience=profile.years_experience,
        city=profile.city,
        state=profile.state,
        remote_preference=profile.remote_preference,
        willing_to_relocate=bool(profile.willing_to_relocate),
        education=tuple(EducationInput(degree=e.degree, field_of_study=e.field_of_study) for e in profile.education),
        work_experience=tuple(
            WorkExperienceInput(title=w.title, company=w.company) for w in profile.work_experience
        ),
    )


def _browse_job_out(item: BrowseScore) -> BrowseJobOut:
    job = item.job
    return BrowseJobOut(
        job_id=job.job_id,
        job_title=job.title,
        job_description=job.description,
        location=Location(city=job.city, state=job.state),
        remote_option=job.remote_option,
        salary=Salary(min=job.salary_min, max=job.salary_max),
        employment_type=job.employment_type,
        experience_level=job.experience_level,
        company=CompanySummary(company_id=job.company_id, name=job.company_name, industry=job.industry),
        overall_score=round(item.overall_score, SCORE_DECIMALS),
        is_fully_qualified=item.is_fully_qualified,
        required_skills_met=item.required_skills_met,
        total_required_skills=item.total_required_skills,
        skill_breakdown=_breakdown(item.skill_breakdown),
        bonus_points=BonusPoints(
            experience=item.bonus.experience,
            location=item.bonus.location,
            education=item.bonus.education,
            work_experience=item.bonus.work_experience,
        ),
        posted_at=job.created_at,
    )


def browse_jobs_for_candidate(
    db: Session,
    user_id: int,
    *,
    options: MatchingOptions | None = None,
    now: datetime | None = None,
) -> BrowseJobsResponse:
    opts = _options(options)
    skill_map = load_candidate_skill_map(db, user_id, now=now)
    if not skill_map:
        return BrowseJobsResponse(total_jobs=0, jobs=[], message=NO_SKILLS_MESSAGE)

    jobs = load_active_jobs(db)
    profile = load_profile_bonus_inputs(db, user_id)
    try:
        scored = score_jobs_for_candidate(
            jobs,
            skill_map,
            profile,
            max_workers=opts.max_workers,
            parallel_threshold=opts.parallel_threshold,
            timeout=opts.timeout_seconds,
        )
    except FuturesTimeout as exc:
        raise CalculationTimeout(None, "browse scoring") from exc

    logger.debug("matching.browse user_id=%s jobs=%s skills=%s", user_id, len(scored), len(skill_map))
    results = [_browse_job_out(item) for item in scored]
    return BrowseJobsResponse(total_jobs=len(results), jobs=results)
