from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterator, Sequence

from sqlalchemy import delete, insert, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from jobgraph.models.enums import MatchStatus
from jobgraph.models.job_match import JobMatch
from jobgraph.models.jobs import Job
from jobgraph.services.errors import CalculationTimeout, MatchPersistenceError
from jobgraph.services.ranker import SCORE_DECIMALS, RankedCandidate
from jobgraph.services.skill_index import utc_now


logger = logging.getLogger(__name__)


class JobLockRegistry:
    """One mutex per job id so recalculations of the same job never interleave."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        # job id -> [lock, holders + waiters]; an entry is dropped when the count reaches 0.
        self._locks: dict[int, list] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    def _checkout(self, job_id: int) -> threading.Lock:
        with self._guard:
            entry = self._locks.setdefault(job_id, [threading.Lock(), 0])
            entry[1] += 1
            return entry[0]

    def _checkin(self, job_id: int) -> None:
        with self._guard:
            entry = self._locks[job_id]
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[job_id]

    @contextmanager
    def hold(self, job_id: int, *, timeout: float) -> Iterator[None]:
        lock = self._checkout(job_id)
        try:
            if not lock.acquire(timeout=timeout):
                raise CalculationTimeout(job_id, "lock")
            try:
                yield
            finally:
                lock.release()
        finally:
            self._checkin(job_id)


job_locks = JobLockRegistry()


def build_match_rows(job_id: int, ranked: Sequence[RankedCandidate], now: datetime) -> list[dict[str, Any]]:
    return [
        {
            "job_id": job_id,
            "user_id": item.user_id,
            "overall_score": round(item.overall_score, SCORE_DECIMALS),
            "match_rank": item.rank,
            "skill_breakdown": [entry.as_dict() for entry in item.score.skill_breakdown],
            "status": MatchStatus.MATCHED,
            "contacted_at": None,
            "created_at": now,
            "updated_at": now,
        }
        for item in ranked
    ]


def write_match_rows(db: Session, job_id: int, rows: list[dict[str, Any]]) -> None:
    """Delete then bulk-insert inside the session's open transaction. Does not commit."""

    # Row lock on the job serialises writers across processes; sqlite ignores it.
    db.execute(select(Job.id).where(Job.id == job_id).with_for_update())
    db.execute(
        delete(JobMatch).where(JobMatch.job_id == job_id).execution_options(synchronize_session=False)
    )
    if rows:
        db.execute(insert(JobMatch), rows)


def replace_job_matches(
    db: Session,
    job_id: int,
    ranked: Sequence[RankedCandidate],
    *,
    now: datetime | None = None,
) -> int:
    """Atomically swap the persisted match set of a job for ``ranked``.

    Either every old row is gone and every new row is present, or (on any
    database error) the transaction is rolled back and MatchPersistenceError is
    raised with the previous rows untouched.
    """

    rows = build_match_rows(job_id, ranked, now or utc_now())
    try:
        write_match_rows(db, job_id, rows)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("matching.persist_failed job_id=%s rows=%s error=%s", job_id, len(rows), type(exc).__name__)
        raise MatchPersistenceError(job_id) from exc

    logger.info("matching.persisted job_id=%s rows=%s", job_id, len(rows))
    return len(rows)


def set_match_status(db: Session, match: JobMatch, status: MatchStatus, *, now: datetime | None = None) -> JobMatch:
    now = now or utc_now()
    match.status = status
    match.updated_at = now
    db.add(match)
    db.commit()
    db.refresh(match)
    return match


def mark_contacted(db: Session, match: JobMatch, *, now: datetime | None = None) -> JobMatch:
    now = now or utc_now()
    match.status = MatchStatus.CONTACTED
    match.contacted_at = now
    match.updated_at = now
    db.add(match)
    db.commit()
    db.refresh(match)
    return match
