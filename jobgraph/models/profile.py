# profile.py
from sqlalchemy import Boolean, Column, DateTime, Enum, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import relationship

from jobgraph.database import Base
from jobgraph.models.enums import ProfileVisibility, RemotePreference, enum_values


class CandidateProfile(Base):
    __tablename__ = "candidate_profiles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    headline = Column(String(200), nullable=True)
    summary = Column(Text, nullable=True)
    years_experience = Column(Integer, nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(100), nullable=True)
    willing_to_relocate = Column(Boolean, nullable=False, default=False)
    remote_preference = Column(
        Enum(RemotePreference, values_callable=enum_values, native_enum=False, length=20),
        nullable=True,
    )
    profile_visibility = Column(
        Enum(ProfileVisibility, values_callable=enum_values, native_enum=False, length=20),
        nullable=False,
        default=ProfileVisibility.PUBLIC,
    )
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", backref="candidate_profile")
    education = relationship("Education", cascade="all, delete-orphan")
    work_experience = relationship("WorkExperience", cascade="all, delete-orphan")


class Education(Base):
    __tablename__ = "education"

    id = Column(Integer, primary_key=True, index=True)
    profile_id = Column(Integer, ForeignKey("candidate_profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    # Free text; values matching DegreeLevel ("bachelors", "masters", ...) are recognised by scoring.
    degree = Column(String(100), nullable=False)
    field_of_study = Column(String(100), nullable=True)
    institution = Column(String(200), nullable=True)


class WorkExperience(Base):
    __tablename__ = "work_experience"

    id = Column(Integer, primary_key=True, index=True)
    profile_id = Column(Integer, ForeignKey("candidate_profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    company = Column(String(200), nullable=False)
