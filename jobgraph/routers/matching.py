from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from jobgraph.database import get_db
from jobgraph.models.enums import UserRole
from jobgraph.models.user import User
from jobgraph.routers.dependencies import require_role
from jobgraph.schemas.matching import (
    BrowseJobsResponse,
    CalculateMatchesResponse,
    CandidateMatchesResponse,
    JobCandidatesResponse,
    MatchStatusResponse,
    MatchStatusUpdateRequest,
)
from jobgraph.services import matching_service
from jobgraph.services.errors import MatchingError


router = APIRouter(prefix="/matching", tags=["matching"])

logger = logging.getLogger(__name__)

require_employer = require_role(UserRole.EMPLOYER)
require_candidate = require_role(UserRole.CANDIDATE)


def _http_error(exc: MatchingError) -> HTTPException:
    if exc.status_code >= 500:
        logger.error("matching.error code=%s context=%s", exc.code, exc.context)
    else:
        logger.info("matching.rejected code=%s context=%s", exc.code, exc.context)
    return HTTPException(status_code=exc.status_code, detail=exc.to_detail())


@router.post("/jobs/{job_id}/calculate", response_model=CalculateMatchesResponse)
def calculate_job_matches(
    job_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_employer),
) -> CalculateMatchesResponse:
    try:
        return matching_service.calculate_matches(db, job_id, employer_id=current_user.id)
    except MatchingError as exc:
        raise _http_error(exc) from exc


@router.get("/jobs/{job_id}/candidates", response_model=JobCandidatesResponse)
def get_job_candidates(
    job_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_employer),
) -> JobCandidatesResponse:
    try:
        return matching_service.get_ranked_candidates(db, job_id, employer_id=current_user.id)
    except MatchingError as exc:
        raise _http_error(exc) from exc


@router.get("/candidate/matches", response_model=CandidateMatchesResponse)
def get_candidate_matches(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_candidate),
) -> CandidateMatchesResponse:
    return matching_service.get_candidate_matches(db, current_user.id)


@router.get("/candidate/browse-jobs", response_model=BrowseJobsResponse)
def browse_jobs_with_scores(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_candidate),
) -> BrowseJobsResponse:
    try:
        return matching_service.browse_jobs_for_candidate(db, current_user.id)
    except MatchingError as exc:
        raise _http_error(exc) from exc


@router.put("/matches/{match_id}/status", response_model=MatchStatusResponse)
def update_match_status(
    match_id: int,
    payload: MatchStatusUpdateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_employer),
) -> MatchStatusResponse:
    try:
        return matching_service.update_match_status(db, match_id, payload.status, employer_id=current_user.id)
    except MatchingError as exc:
        raise _http_error(exc) from exc


@router.post("/matches/{match_id}/contact", response_model=MatchStatusResponse)
def contact_candidate(
    match_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_employer),
) -> MatchStatusResponse:
    # Notification delivery is handled by the notification service.
    try:
        return matching_service.contact_candidate(db, match_id, employer_id=current_user.id)
    except MatchingError as exc:
        raise _http_error(exc) from exc
