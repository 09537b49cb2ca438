from __future__ import annotations

from typing import Any


class MatchingError(RuntimeError):
    """Base for every failure the matching engine reports to its caller.

    Carries a stable machine-readable ``code`` plus whatever context (job id,
    match id) the caller needs to render a useful message.
    """

    code = "MATCHING_ERROR"
    status_code = 500

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def to_detail(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, **self.context}


class JobNotFound(MatchingError):
    # Also raised when the caller does not own the job, so existence is not leaked.
    code = "JOB_NOT_FOUND"
    status_code = 404

    def __init__(self, job_id: int) -> None:
        super().__init__("Job not found or you do not have permission", job_id=job_id)


class MatchNotFound(MatchingError):
    code = "MATCH_NOT_FOUND"
    status_code = 404

    def __init__(self, match_id: int) -> None:
        super().__init__("Match not found or you do not have permission", match_id=match_id)


class NoSkillsConfigured(MatchingError):
    code = "NO_SKILLS"
    status_code = 400

    def __init__(self, job_id: int) -> None:
        super().__init__("Job must have at least one skill requirement", job_id=job_id)


class NoRequiredSkills(MatchingError):
    code = "NO_REQUIRED_SKILLS"
    status_code = 400

    def __init__(self, job_id: int) -> None:
        super().__init__("Job must have at least one required skill", job_id=job_id)


class CalculationTimeout(MatchingError):
    code = "CALCULATION_TIMEOUT"
    status_code = 503

    def __init__(self, job_id: int | None, stage: str) -> None:
        super().__init__(f"Match calculation timed out during {stage}", job_id=job_id, stage=stage)


class MatchDataUnavailable(MatchingError):
    code = "DATA_UNAVAILABLE"
    status_code = 503

    def __init__(self, job_id: int | None, stage: str) -> None:
        super().__init__(f"Could not read matching inputs during {stage}", job_id=job_id, stage=stage)


class MatchPersistenceError(MatchingError):
    code = "MATCH_PERSISTENCE_FAILED"
    status_code = 500

    def __init__(self, job_id: int) -> None:
        super().__init__("Failed to store matches; previous matches were kept", job_id=job_id)
