from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from jobgraph.services.strict_scorer import StrictScore


@dataclass(frozen=True)
class RankedCandidate:
    rank: int
    score: StrictScore

    @property
    def user_id(self) -> int:
        return self.score.user_id

    @property
    def overall_score(self) -> float:
        return self.score.overall_score


# Persisted and displayed scores carry this many decimals; ranking compares at the same precision.
SCORE_DECIMALS = 2


def rank_candidates(scored: Iterable[StrictScore]) -> list[RankedCandidate]:
    # Equal scores fall back to user id ascending so reruns rank identically.
    ordered = sorted(scored, key=lambda s: (-round(s.overall_score, SCORE_DECIMALS), s.user_id))
    return [RankedCandidate(rank=idx, score=s) for idx, s in enumerate(ordered, start=1)]
