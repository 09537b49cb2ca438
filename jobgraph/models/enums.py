from __future__ import annotations

import enum


class UserRole(str, enum.Enum):
    CANDIDATE = "candidate"
    EMPLOYER = "employer"
    ADMIN = "admin"


class MatchStatus(str, enum.Enum):
    MATCHED = "matched"
    VIEWED = "viewed"
    CONTACTED = "contacted"
    SHORTLISTED = "shortlisted"
    REJECTED = "rejected"
    HIRED = "hired"


class RemotePreference(str, enum.Enum):
    """Candidate work-arrangement preference; also a job's remote option."""

    REMOTE = "remote"
    HYBRID = "hybrid"
    ONSITE = "onsite"
    FLEXIBLE = "flexible"


class ExperienceLevel(str, enum.Enum):
    ENTRY = "entry"
    MID = "mid"
    SENIOR = "senior"
    LEAD = "lead"
    EXECUTIVE = "executive"


class JobStatus(str, enum.Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    CLOSED = "closed"
    CANCELLED = "cancelled"


class ProfileVisibility(str, enum.Enum):
    PUBLIC = "public"
    PRIVATE = "private"
    ANONYMOUS = "anonymous"


class DegreeLevel(str, enum.Enum):
    HIGH_SCHOOL = "high_school"
    ASSOCIATES = "associates"
    BACHELORS = "bachelors"
    MASTERS = "masters"
    PHD = "phd"
    OTHER = "other"


def enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    # Persist enum *values* (lowercase strings) rather than member names.
    return [member.value for member in enum_cls]
