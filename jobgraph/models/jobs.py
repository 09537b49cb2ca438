# jobs.py
from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from jobgraph.database import Base
from jobgraph.models.enums import ExperienceLevel, JobStatus, RemotePreference, enum_values


class Job(Base):
    __tablename__ = "jobs"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(200), index=True, nullable=False)
    description = Column(Text, nullable=False)
    city = Column(String(100), nullable=True)
    state = Column(String(100), nullable=True)
    remote_option = Column(
        Enum(RemotePreference, values_callable=enum_values, native_enum=False, length=20),
        nullable=True,
    )
    employment_type = Column(String(50), nullable=True)
    experience_level = Column(
        Enum(ExperienceLevel, values_callable=enum_values, native_enum=False, length=20),
        nullable=True,
    )
    status = Column(
        Enum(JobStatus, values_callable=enum_values, native_enum=False, length=20),
        nullable=False,
        default=JobStatus.DRAFT,
        index=True,
    )
    salary_min = Column(Integer, nullable=True)
    salary_max = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    company = relationship("Company")
    skill_requirements = relationship(
        "JobSkillRequirement",
        back_populates="job",
        cascade="all, delete-orphan",
    )
