from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable

from sqlalchemy import distinct, func, select
from sqlalchemy.orm import Session

from jobgraph.models.enums import ProfileVisibility, RemotePreference, UserRole
from jobgraph.models.profile import CandidateProfile
from jobgraph.models.skill_score import CandidateSkillScore
from jobgraph.models.user import User


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CandidateIdentity:
    """Display fields carried alongside a candidate's scores."""

    user_id: int
    email: str
    first_name: str | None = None
    last_name: str | None = None
    profile_id: int | None = None
    headline: str | None = None
    years_experience: int | None = None
    city: str | None = None
    state: str | None = None
    willing_to_relocate: bool = False
    remote_preference: RemotePreference | None = None


@dataclass(frozen=True)
class CandidateSkills:
    identity: CandidateIdentity
    # skill id -> valid score
    scores: dict[int, float] = field(default_factory=dict)

    @property
    def user_id(self) -> int:
        return self.identity.user_id


def _qualifying_users_stmt(required_ids: list[int], now: datetime):
    # Exact-count match: a candidate holding 2 of 3 required skills drops out here.
    return (
        select(CandidateSkillScore.user_id)
        .join(User, User.id == CandidateSkillScore.user_id)
        .join(CandidateProfile, CandidateProfile.user_id == User.id)
        .where(User.role == UserRole.CANDIDATE)
        .where(CandidateProfile.profile_visibility != ProfileVisibility.PRIVATE)
        .where(CandidateSkillScore.expires_at > now)
        .where(CandidateSkillScore.skill_id.in_(required_ids))
        .group_by(CandidateSkillScore.user_id)
        .having(func.count(distinct(CandidateSkillScore.skill_id)) == len(required_ids))
    )


def load_qualifying_candidates(
    db: Session,
    skill_ids: Iterable[int],
    required_skill_ids: Iterable[int],
    *,
    now: datetime | None = None,
) -> dict[int, CandidateSkills]:
    """Return every candidate holding a valid score for all required skills.

    Each returned candidate carries its valid scores for all ``skill_ids``
    (required and optional), keyed by skill id. Expired scores are never seen.
    """

    now = now or utc_now()
    required_ids = sorted(set(required_skill_ids))
    all_ids = sorted(set(skill_ids) | set(required_ids))
    if not required_ids:
        return {}

    qualifying = _qualifying_users_stmt(required_ids, now)

    identity_rows = db.execute(
        select(
            User.id,
            User.email,
            User.first_name,
            User.last_name,
            CandidateProfile.id.label("profile_id"),
            CandidateProfile.headline,
            CandidateProfile.years_experience,
            CandidateProfile.city,
            CandidateProfile.state,
            CandidateProfile.willing_to_relocate,
            CandidateProfile.remote_preference,
        )
        .join(CandidateProfile, CandidateProfile.user_id == User.id)
        .where(User.id.in_(qualifying))
        .order_by(User.id)
    ).all()
    if not identity_rows:
        return {}

    score_rows = db.execute(
        select(CandidateSkillScore.user_id, CandidateSkillScore.skill_id, CandidateSkillScore.score)
        .where(CandidateSkillScore.user_id.in_(qualifying))
        .where(CandidateSkillScore.skill_id.in_(all_ids))
        .where(CandidateSkillScore.expires_at > now)
    ).all()

    scores_by_user: dict[int, dict[int, float]] = {}
    for row in score_rows:
        scores_by_user.setdefault(int(row.user_id), {})[int(row.skill_id)] = float(row.score)

    candidates: dict[int, CandidateSkills] = {}
    for row in identity_rows:
        identity = CandidateIdentity(
            user_id=int(row.id),
            email=row.email,
            first_name=row.first_name,
            last_name=row.last_name,
            profile_id=row.profile_id,
            headline=row.headline,
            years_experience=row.years_experience,
            city=row.city,
            state=row.state,
            willing_to_relocate=bool(row.willing_to_relocate),
            remote_preference=row.remote_preference,
        )
        candidates[identity.user_id] = CandidateSkills(
            identity=identity,
            scores=scores_by_user.get(identity.user_id, {}),
        )
    return candidates


def load_candidate_skill_map(db: Session, user_id: int, *, now: datetime | None = None) -> dict[int, float]:
    now = now or utc_now()
    rows = db.execute(
        select(CandidateSkillScore.skill_id, CandidateSkillScore.score)
        .where(CandidateSkillScore.user_id == user_id)
        .where(CandidateSkillScore.expires_at > now)
    ).all()
    return {int(row.skill_id): float(row.score) for row in rows}
