from __future__ import annotations

from sqlalchemy import Boolean, CheckConstraint, Column, Float, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import relationship

from jobgraph.database import Base


class JobSkillRequirement(Base):
    __tablename__ = "job_skills"

    id = Column(Integer, primary_key=True, index=True)
    job_id = Column(Integer, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True)
    skill_id = Column(Integer, ForeignKey("skills.id", ondelete="CASCADE"), nullable=False, index=True)

    # Relative importance 0..100 and qualifying threshold 0..100.
    weight = Column(Float, nullable=False, default=50.0)
    minimum_score = Column(Float, nullable=False, default=60.0)
    required = Column(Boolean, nullable=False, default=True)

    job = relationship("Job", back_populates="skill_requirements")
    skill = relationship("Skill")

    __table_args__ = (
        UniqueConstraint("job_id", "skill_id", name="uq_job_skills_job_skill"),
        CheckConstraint("weight >= 0 AND weight <= 100", name="ck_job_skills_weight_range"),
        CheckConstraint("minimum_score >= 0 AND minimum_score <= 100", name="ck_job_skills_minimum_range"),
    )
