from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from jobgraph.models.job_skill import JobSkillRequirement
from jobgraph.models.skills import Skill
from jobgraph.services.errors import NoRequiredSkills, NoSkillsConfigured


@dataclass(frozen=True)
class SkillRequirement:
    skill_id: int
    skill_name: str
    weight: float
    minimum_score: float
    required: bool


def _requirement_order(req: SkillRequirement) -> tuple[int, int]:
    # Required skills first so the strict walk can short-circuit on them.
    return (0 if req.required else 1, req.skill_id)


def get_job_skill_requirements(db: Session, job_id: int) -> list[SkillRequirement]:
    rows = db.execute(
        select(
            JobSkillRequirement.skill_id,
            Skill.name,
            JobSkillRequirement.weight,
            JobSkillRequirement.minimum_score,
            JobSkillRequirement.required,
        )
        .join(Skill, Skill.id == JobSkillRequirement.skill_id)
        .where(JobSkillRequirement.job_id == job_id)
    ).all()

    requirements = [
        SkillRequirement(
            skill_id=int(row.skill_id),
            skill_name=row.name,
            weight=float(row.weight),
            minimum_score=float(row.minimum_score),
            required=bool(row.required),
        )
        for row in rows
    ]
    requirements.sort(key=_requirement_order)
    return requirements


def resolve_strict_requirements(db: Session, job_id: int) -> list[SkillRequirement]:
    """Load requirements for strict matching, enforcing its preconditions.

    Raises NoSkillsConfigured when the job has no requirements at all and
    NoRequiredSkills when none of them is marked required.
    """

    requirements = get_job_skill_requirements(db, job_id)
    if not requirements:
        raise NoSkillsConfigured(job_id)
    if not any(req.required for req in requirements):
        raise NoRequiredSkills(job_id)
    return requirements


def required_skill_ids(requirements: list[SkillRequirement]) -> list[int]:
    return [req.skill_id for req in requirements if req.required]
