from __future__ import annotations

from dataclasses import dataclass, replace
from functools import partial
from typing import Any, Mapping, Sequence

from jobgraph.services.parallel import parallel_map
from jobgraph.services.requirements import SkillRequirement
from jobgraph.services.skill_index import CandidateSkills


@dataclass(frozen=True)
class SkillBreakdownEntry:
    skill_id: int
    skill_name: str
    required: bool
    candidate_score: float
    minimum_score: float
    weight: float
    meets_threshold: bool

    def as_dict(self) -> dict[str, Any]:
        return {
            "skill_id": self.skill_id,
            "skill_name": self.skill_name,
            "required": self.required,
            "candidate_score": self.candidate_score,
            "minimum_score": self.minimum_score,
            "weight": self.weight,
            "meets_threshold": self.meets_threshold,
        }


@dataclass(frozen=True)
class ScoreAccumulator:
    weighted_sum: float = 0.0
    total_weight: float = 0.0
    breakdown: tuple[SkillBreakdownEntry, ...] = ()

    def add(self, entry: SkillBreakdownEntry) -> "ScoreAccumulator":
        return replace(
            self,
            weighted_sum=self.weighted_sum + entry.candidate_score * entry.weight,
            total_weight=self.total_weight + entry.weight,
            breakdown=self.breakdown + (entry,),
        )

    def weighted_average(self) -> float:
        return self.weighted_sum / self.total_weight if self.total_weight > 0 else 0.0


@dataclass(frozen=True)
class StrictScore:
    candidate: CandidateSkills
    overall_score: float
    skill_breakdown: tuple[SkillBreakdownEntry, ...]

    @property
    def user_id(self) -> int:
        return self.candidate.user_id


def _entry(req: SkillRequirement, score: float) -> SkillBreakdownEntry:
    return SkillBreakdownEntry(
        skill_id=req.skill_id,
        skill_name=req.skill_name,
        required=req.required,
        candidate_score=score,
        minimum_score=req.minimum_score,
        weight=req.weight,
        meets_threshold=score >= req.minimum_score,
    )


def accumulate_strict(
    requirements: Sequence[SkillRequirement],
    skill_scores: Mapping[int, float],
) -> ScoreAccumulator | None:
    """Walk required skills, then optional ones, for one candidate.

    Returns None as soon as a required skill is missing or below its minimum;
    skills after the failing one are never evaluated. Optional skills count
    whenever the candidate holds them, whatever their own threshold says.
    """

    acc = ScoreAccumulator()
    for req in requirements:
        if not req.required:
            continue
        score = skill_scores.get(req.skill_id)
        if score is None or score < req.minimum_score:
            return None
        acc = acc.add(_entry(req, score))

    for req in requirements:
        if req.required:
            continue
        score = skill_scores.get(req.skill_id)
        if score is not None:
            acc = acc.add(_entry(req, score))
    return acc


def score_candidate(requirements: Sequence[SkillRequirement], candidate: CandidateSkills) -> StrictScore | None:
    acc = accumulate_strict(requirements, candidate.scores)
    if acc is None or acc.total_weight <= 0:
        return None
    overall = min(max(acc.weighted_average(), 0.0), 100.0)
    return StrictScore(candidate=candidate, overall_score=overall, skill_breakdown=acc.breakdown)


def score_candidates(
    requirements: Sequence[SkillRequirement],
    candidates: Sequence[CandidateSkills],
    *,
    max_workers: int = 1,
    parallel_threshold: int = 200,
    timeout: float | None = None,
) -> list[StrictScore]:
    """Score every candidate and keep only the qualified ones, in input order."""

    results = parallel_map(
        partial(score_candidate, requirements),
        list(candidates),
        max_workers=max_workers,
        threshold=parallel_threshold,
        timeout=timeout,
    )
    return [result for result in results if result is not None]
