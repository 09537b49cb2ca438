# __init__.py
from jobgraph.schemas.matching import (
	BrowseJobOut,
	BrowseJobsResponse,
	CalculatedMatch,
	CalculateMatchesResponse,
	CandidateMatchesResponse,
	CandidateMatchOut,
	JobCandidatesResponse,
	MatchStatusResponse,
	MatchStatusUpdateRequest,
	RankedCandidateOut,
	SkillBreakdownItem,
)
from jobgraph.schemas.user import TokenData

__all__ = [
	"BrowseJobOut",
	"BrowseJobsResponse",
	"CalculatedMatch",
	"CalculateMatchesResponse",
	"CandidateMatchesResponse",
	"CandidateMatchOut",
	"JobCandidatesResponse",
	"MatchStatusResponse",
	"MatchStatusUpdateRequest",
	"RankedCandidateOut",
	"SkillBreakdownItem",
	"TokenData",
]
