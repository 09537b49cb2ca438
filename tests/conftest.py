from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
from fastapi.testclient import TestClient


def pytest_configure() -> None:
    # Ensure the SQLAlchemy engine is created against sqlite for tests.
    os.environ["DB_URL"] = "sqlite:///./test.db"
    os.environ["ENVIRONMENT"] = "test"
    os.environ.setdefault("JWT_SECRET", "test-secret")


def reset_database() -> None:
    from jobgraph.database import Base, engine
    import jobgraph.models  # noqa: F401

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)


class Seeder:
    """Small builder for the rows the matching engine reads."""

    def __init__(self, db) -> None:
        self.db = db

    def _save(self, obj):
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def skill(self, name: str, category: str = "programming"):
        from jobgraph.models import Skill

        return self._save(Skill(name=name, category=category))

    def employer(self, email: str = "employer@example.com", company_name: str = "Acme"):
        from jobgraph.models import Company, CompanyUser, User
        from jobgraph.models.enums import UserRole

        user = self._save(User(email=email, first_name="Erin", last_name="Boss", role=UserRole.EMPLOYER))
        company = self._save(Company(name=company_name, industry="Software"))
        self._save(CompanyUser(user_id=user.id, company_id=company.id, role="owner"))
        return user, company

    def job(self, company, requirements: list[tuple[Any, float, float, bool]] = (), **fields):
        from jobgraph.models import Job, JobSkillRequirement
        from jobgraph.models.enums import JobStatus

        values = {"title": "Backend Engineer", "description": "Build services", "status": JobStatus.ACTIVE}
        values.update(fields)
        job = self._save(Job(company_id=company.id, **values))
        for skill, weight, minimum, required in requirements:
            self.db.add(
                JobSkillRequirement(
                    job_id=job.id,
                    skill_id=skill.id,
                    weight=weight,
                    minimum_score=minimum,
                    required=required,
                )
            )
        self.db.commit()
        return job

    def candidate(self, email: str, scores: dict[Any, float] | None = None, *, expired: dict[Any, float] | None = None, **profile_fields):
        from jobgraph.models import CandidateProfile, CandidateSkillScore, User
        from jobgraph.models.enums import UserRole
        from jobgraph.services.skill_index import utc_now

        user = self._save(User(email=email, first_name=email.split("@")[0].title(), role=UserRole.CANDIDATE))
        self._save(CandidateProfile(user_id=user.id, **profile_fields))
        now = utc_now()
        for skill, score in (scores or {}).items():
            self.db.add(
                CandidateSkillScore(user_id=user.id, skill_id=skill.id, score=score, expires_at=now + timedelta(days=90))
            )
        for skill, score in (expired or {}).items():
            self.db.add(
                CandidateSkillScore(user_id=user.id, skill_id=skill.id, score=score, expires_at=now - timedelta(days=1))
            )
        self.db.commit()
        return user


@pytest.fixture()
def db() -> Any:
    from jobgraph.database import SessionLocal

    reset_database()
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def seed(db) -> Seeder:
    return Seeder(db)


@pytest.fixture()
def client(db) -> Any:
    from jobgraph.main import create_app

    app = create_app()
    with TestClient(app) as c:
        yield c


def mint_token(claims: dict[str, Any], expires_in: timedelta = timedelta(minutes=30)) -> str:
    # Same shape as the auth service's tokens.
    from jose import jwt

    from jobgraph.config import settings

    payload = {**claims, "exp": datetime.now(timezone.utc) + expires_in}
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


@pytest.fixture()
def auth_headers():
    def _headers(user) -> dict[str, str]:
        return {"Authorization": f"Bearer {mint_token({'sub': str(user.id)})}"}

    return _headers


@pytest.fixture()
def token_factory():
    return mint_token
