from __future__ import annotations

from sqlalchemy import CheckConstraint, Column, DateTime, Float, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.sql import func

from jobgraph.database import Base


class CandidateSkillScore(Base):
    """Interview-derived score for one skill. Only rows with expires_at in the future are valid."""

    __tablename__ = "user_skill_scores"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    skill_id = Column(Integer, ForeignKey("skills.id", ondelete="CASCADE"), nullable=False, index=True)
    score = Column(Float, nullable=False)
    percentile = Column(Float, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)

    __table_args__ = (
        UniqueConstraint("user_id", "skill_id", name="uq_user_skill_scores_user_skill"),
        CheckConstraint("score >= 0 AND score <= 100", name="ck_user_skill_scores_score_range"),
    )
