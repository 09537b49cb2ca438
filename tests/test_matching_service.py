from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from jobgraph.models import CandidateSkillScore, Education, JobMatch, WorkExperience
from jobgraph.models.enums import ExperienceLevel, JobStatus, MatchStatus, ProfileVisibility, RemotePreference
from jobgraph.services import match_store, matching_service
from jobgraph.services.errors import CalculationTimeout, JobNotFound, MatchDataUnavailable, MatchNotFound
from jobgraph.services.matching_service import MatchingOptions
from jobgraph.services.skill_index import utc_now


@pytest.fixture()
def setup(seed):
    python = seed.skill("Python")
    sql = seed.skill("SQL")
    docker = seed.skill("Docker", category="devops")
    employer, company = seed.employer()
    job = seed.job(
        company,
        [(python, 60, 70, True), (sql, 40, 50, True), (docker, 20, 80, False)],
        title="Python Developer",
        city="Austin",
        state="TX",
        remote_option=RemotePreference.ONSITE,
        experience_level=ExperienceLevel.MID,
    )
    alice = seed.candidate("alice@example.com", {python: 80, sql: 60})
    bob = seed.candidate("bob@example.com", {python: 65, sql: 99})
    return {"python": python, "sql": sql, "docker": docker, "employer": employer, "company": company, "job": job,
            "alice": alice, "bob": bob}


def _persisted(db, job_id: int) -> list[tuple[int, int, float]]:
    rows = db.execute(
        select(JobMatch.match_rank, JobMatch.user_id, JobMatch.overall_score)
        .where(JobMatch.job_id == job_id)
        .order_by(JobMatch.match_rank)
    ).all()
    return [tuple(row) for row in rows]


def test_calculate_matches_only_the_qualified_candidate(db, setup) -> None:
    job, alice = setup["job"], setup["alice"]
    result = matching_service.calculate_matches(db, job.id, employer_id=setup["employer"].id)

    assert result.job_id == job.id
    assert result.total_matches == 1
    top = result.top_matches[0]
    assert (top.user_id, top.rank, top.overall_score) == (alice.id, 1, 72.0)
    assert top.email == "alice@example.com"
    assert [item.skill_name for item in top.skill_breakdown] == ["Python", "SQL"]
    assert _persisted(db, job.id) == [(1, alice.id, 72.0)]


def test_recalculation_is_idempotent_and_drops_stale_rows(db, seed, setup) -> None:
    job, alice, python, sql, docker = setup["job"], setup["alice"], setup["python"], setup["sql"], setup["docker"]
    carol = seed.candidate("carol@example.com", {python: 90, sql: 90, docker: 90})

    matching_service.calculate_matches(db, job.id)
    first = _persisted(db, job.id)
    assert first == [(1, carol.id, 90.0), (2, alice.id, 72.0)]

    matching_service.calculate_matches(db, job.id)
    assert _persisted(db, job.id) == first

    score = db.execute(
        select(CandidateSkillScore).where(CandidateSkillScore.user_id == carol.id, CandidateSkillScore.skill_id == sql.id)
    ).scalars().one()
    score.expires_at = utc_now() - timedelta(minutes=1)
    db.commit()

    matching_service.calculate_matches(db, job.id)
    assert _persisted(db, job.id) == [(1, alice.id, 72.0)]


def test_private_profiles_are_not_matched(db, seed, setup) -> None:
    python, sql = setup["python"], setup["sql"]
    seed.candidate("ghost@example.com", {python: 99, sql: 99}, profile_visibility=ProfileVisibility.PRIVATE)
    result = matching_service.calculate_matches(db, setup["job"].id)
    assert [m.user_id for m in result.top_matches] == [setup["alice"].id]


def test_foreign_employer_gets_not_found(db, seed, setup) -> None:
    stranger, _ = seed.employer(email="other@example.com", company_name="Globex")
    with pytest.raises(JobNotFound):
        matching_service.calculate_matches(db, setup["job"].id, employer_id=stranger.id)
    with pytest.raises(JobNotFound):
        matching_service.calculate_matches(db, 9999)
    assert _persisted(db, setup["job"].id) == []


def test_timeout_leaves_previous_matches(db, seed, setup) -> None:
    job = setup["job"]
    matching_service.calculate_matches(db, job.id)
    before = _persisted(db, job.id)

    seed.candidate("dave@example.com", {setup["python"]: 100, setup["sql"]: 100})
    with pytest.raises(CalculationTimeout):
        matching_service.calculate_matches(db, job.id, options=MatchingOptions(timeout_seconds=0))

    assert _persisted(db, job.id) == before


def test_top_matches_preview_is_limited(db, seed, setup) -> None:
    python, sql = setup["python"], setup["sql"]
    for i in range(4):
        seed.candidate(f"extra{i}@example.com", {python: 75 + i, sql: 75})
    result = matching_service.calculate_matches(db, setup["job"].id, options=MatchingOptions(top_matches_preview=2))
    assert result.total_matches == 5
    assert [m.rank for m in result.top_matches] == [1, 2]


def test_ranked_candidates_and_status_flow(db, seed, setup) -> None:
    job, employer, alice = setup["job"], setup["employer"], setup["alice"]
    matching_service.calculate_matches(db, job.id)

    listing = matching_service.get_ranked_candidates(db, job.id, employer_id=employer.id)
    assert listing.job_title == "Python Developer"
    assert listing.total_matches == 1
    entry = listing.candidates[0]
    assert (entry.user_id, entry.rank, entry.status, entry.source) == (alice.id, 1, MatchStatus.MATCHED, "matched")

    updated = matching_service.update_match_status(db, entry.match_id, MatchStatus.VIEWED, employer_id=employer.id)
    assert updated.status == MatchStatus.VIEWED
    assert updated.contacted_at is None

    contacted = matching_service.contact_candidate(db, entry.match_id, employer_id=employer.id)
    assert contacted.status == MatchStatus.CONTACTED
    assert contacted.contacted_at is not None

    stranger, _ = seed.employer(email="other@example.com", company_name="Globex")
    with pytest.raises(MatchNotFound):
        matching_service.update_match_status(db, entry.match_id, MatchStatus.REJECTED, employer_id=stranger.id)


def test_candidate_sees_own_matches(db, setup) -> None:
    matching_service.calculate_matches(db, setup["job"].id)
    mine = matching_service.get_candidate_matches(db, setup["alice"].id)
    assert mine.total_matches == 1
    assert mine.matches[0].job_title == "Python Developer"
    assert mine.matches[0].company.name == "Acme"
    assert matching_service.get_candidate_matches(db, setup["bob"].id).total_matches == 0


def test_browse_scores_every_active_job(db, seed, setup) -> None:
    python, sql = setup["python"], setup["sql"]
    company = setup["company"]
    remote_job = seed.job(
        company,
        [(sql, 100, 50, True)],
        title="SQL Analyst",
        remote_option=RemotePreference.REMOTE,
        experience_level=ExperienceLevel.MID,
    )
    seed.job(company, [], title="No Skills Listed")
    seed.job(company, [(python, 50, 50, True)], title="Closed Role", status=JobStatus.CLOSED)

    bob = setup["bob"]
    from jobgraph.models import CandidateProfile

    profile = db.execute(select(CandidateProfile).where(CandidateProfile.user_id == bob.id)).scalars().one()
    profile.years_experience = 4
    profile.remote_preference = RemotePreference.HYBRID
    db.add(Education(profile_id=profile.id, degree="bachelors", field_of_study="Finance"))
    db.add(WorkExperience(profile_id=profile.id, title="Data Analyst", company="Initech"))
    db.commit()

    result = matching_service.browse_jobs_for_candidate(db, bob.id)

    assert result.message is None
    assert [job.job_title for job in result.jobs] == ["SQL Analyst", "Python Developer"]
    top = result.jobs[0]
    assert top.job_id == remote_job.id
    assert top.is_fully_qualified is True
    # 99 skill + 5 experience + 3 hybrid + 1 degree + 2 title, clamped.
    assert top.overall_score == 100
    assert top.bonus_points.location == 3

    onsite = result.jobs[1]
    assert onsite.is_fully_qualified is False
    assert (onsite.required_skills_met, onsite.total_required_skills) == (1, 2)


def test_browse_without_skills_returns_message(db, seed) -> None:
    newcomer = seed.candidate("new@example.com")
    result = matching_service.browse_jobs_for_candidate(db, newcomer.id)
    assert result.total_jobs == 0
    assert result.jobs == []
    assert result.message == "Add skills to your profile to see job matches"


def test_calculation_waits_for_the_job_lock(db, setup) -> None:
    job = setup["job"]
    matching_service.calculate_matches(db, job.id)
    before = _persisted(db, job.id)

    with match_store.job_locks.hold(job.id, timeout=1):
        with pytest.raises(CalculationTimeout) as info:
            matching_service.calculate_matches(db, job.id, options=MatchingOptions(lock_timeout_seconds=0.01))

    assert info.value.context == {"job_id": job.id, "stage": "lock"}
    assert info.value.status_code == 503
    assert _persisted(db, job.id) == before


@pytest.mark.parametrize(
    ("target", "stage"),
    [
        ("resolve_strict_requirements", "requirement lookup"),
        ("load_qualifying_candidates", "candidate lookup"),
    ],
)
def test_read_failure_keeps_previous_matches(db, setup, monkeypatch, target, stage) -> None:
    job = setup["job"]
    matching_service.calculate_matches(db, job.id)
    before = _persisted(db, job.id)

    def _broken(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("connection lost"))

    monkeypatch.setattr(matching_service, target, _broken)
    with pytest.raises(MatchDataUnavailable) as info:
        matching_service.calculate_matches(db, job.id)

    assert info.value.code == "DATA_UNAVAILABLE"
    assert info.value.status_code == 503
    assert info.value.context == {"job_id": job.id, "stage": stage}
    assert _persisted(db, job.id) == before
    assert len(match_store.job_locks) == 0
