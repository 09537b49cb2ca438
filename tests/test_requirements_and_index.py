from __future__ import annotations

import pytest

from jobgraph.models.enums import ProfileVisibility, UserRole
from jobgraph.services.errors import NoRequiredSkills, NoSkillsConfigured
from jobgraph.services.requirements import (
    get_job_skill_requirements,
    required_skill_ids,
    resolve_strict_requirements,
)
from jobgraph.services.skill_index import load_candidate_skill_map, load_qualifying_candidates


@pytest.fixture()
def skills(seed):
    return {name: seed.skill(name) for name in ("python", "sql", "docker")}


@pytest.fixture()
def company(seed):
    _, company = seed.employer()
    return company


def test_job_without_requirements_raises_no_skills(seed, db, company) -> None:
    job = seed.job(company)
    with pytest.raises(NoSkillsConfigured) as info:
        resolve_strict_requirements(db, job.id)
    assert info.value.code == "NO_SKILLS"
    assert info.value.context["job_id"] == job.id


def test_job_with_only_optional_requirements_raises(seed, db, company, skills) -> None:
    job = seed.job(company, [(skills["python"], 50, 60, False)])
    with pytest.raises(NoRequiredSkills):
        resolve_strict_requirements(db, job.id)


def test_requirements_list_required_first(seed, db, company, skills) -> None:
    job = seed.job(
        company,
        [
            (skills["docker"], 20, 50, False),
            (skills["sql"], 40, 60, True),
            (skills["python"], 60, 70, True),
        ],
    )
    requirements = get_job_skill_requirements(db, job.id)
    assert [(r.skill_name, r.required) for r in requirements] == [
        ("python", True),
        ("sql", True),
        ("docker", False),
    ]
    assert required_skill_ids(requirements) == [skills["python"].id, skills["sql"].id]


def test_index_keeps_only_candidates_with_every_required_skill(seed, db, skills) -> None:
    full = seed.candidate("full@example.com", {skills["python"]: 80, skills["sql"]: 70, skills["docker"]: 40})
    partial = seed.candidate("partial@example.com", {skills["python"]: 95})
    stale = seed.candidate("stale@example.com", {skills["python"]: 90}, expired={skills["sql"]: 90})
    hidden = seed.candidate(
        "hidden@example.com",
        {skills["python"]: 90, skills["sql"]: 90},
        profile_visibility=ProfileVisibility.PRIVATE,
    )

    required = [skills["python"].id, skills["sql"].id]
    pool = load_qualifying_candidates(db, required + [skills["docker"].id], required)

    assert list(pool) == [full.id]
    assert partial.id not in pool and stale.id not in pool and hidden.id not in pool
    candidate = pool[full.id]
    assert candidate.identity.email == "full@example.com"
    assert candidate.scores == {skills["python"].id: 80.0, skills["sql"].id: 70.0, skills["docker"].id: 40.0}


def test_index_ignores_non_candidate_accounts(seed, db, skills) -> None:
    user = seed.candidate("admin@example.com", {skills["python"]: 99})
    user.role = UserRole.ADMIN
    db.add(user)
    db.commit()

    assert load_qualifying_candidates(db, [skills["python"].id], [skills["python"].id]) == {}


def test_index_without_required_skills_is_empty(db) -> None:
    assert load_qualifying_candidates(db, [1, 2], []) == {}


def test_candidate_skill_map_excludes_expired_scores(seed, db, skills) -> None:
    user = seed.candidate("mixed@example.com", {skills["python"]: 72.5}, expired={skills["sql"]: 88})
    assert load_candidate_skill_map(db, user.id) == {skills["python"].id: 72.5}
