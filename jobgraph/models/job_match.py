from __future__ import annotations

from sqlalchemy import Column, DateTime, Enum, Float, ForeignKey, Integer, JSON, UniqueConstraint
from sqlalchemy.sql import func

from jobgraph.database import Base
from jobgraph.models.enums import MatchStatus, enum_values


class JobMatch(Base):
    """A strictly qualified candidate for a job. Rows for a job are replaced wholesale on recalculation."""

    __tablename__ = "job_matches"

    id = Column(Integer, primary_key=True, index=True)
    job_id = Column(Integer, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    overall_score = Column(Float, nullable=False)
    match_rank = Column(Integer, nullable=False)
    # JSON list of per-skill entries, stored exactly as the scorer produced them.
    skill_breakdown = Column(JSON, nullable=False, default=list)

    status = Column(
        Enum(MatchStatus, values_callable=enum_values, native_enum=False, length=20),
        nullable=False,
        default=MatchStatus.MATCHED,
    )
    contacted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("job_id", "user_id", name="uq_job_matches_job_user"),
        UniqueConstraint("job_id", "match_rank", name="uq_job_matches_job_rank"),
    )
