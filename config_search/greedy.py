"""
config_search.greedy
====================
Backward elimination over a subset space.

Starting from the full configuration, every step scores each configuration
obtained by dropping exactly one of the still-included dimensions and moves
to the lowest-scoring one, whether or not that improves on the previous
step.  The descent stops when ``min_size`` dimensions remain (one by
default), i.e. after ``d - min_size`` steps.  The returned configuration is
the best one seen anywhere along the path, since scores are not monotonic
in the subset size.

Ties inside a step go to the removal of the lowest-indexed dimension.  No
randomness is involved, so two runs on the same data are identical.

Cost is ``O(d²)`` scorer calls.  Only one path through the subset lattice
is explored, so the exhaustive optimum is not guaranteed.
"""

from __future__ import annotations

import logging
import math

from .evaluation import SearchResult, SearchTrace, TraceEntry, evaluate_batch, first_best
from .exceptions import EmptySearchSpace, ScorerFitFailure, SearchSpaceError
from .scoring import ScoredConfiguration, Scorer
from .space import ConfigurationSpace


__all__ = ["GreedySearch"]

logger = logging.getLogger(__name__)


class GreedySearch:
    """Backward elimination (sequential backward selection).

    Parameters
    ----------
    min_size : int, default=1
        Number of dimensions left when the descent stops.
    n_jobs : int, default=1
        joblib worker count for the removals scored at each step.
    backend : str, default="threading"
    """

    name = "greedy"

    def __init__(self, min_size: int = 1, *, n_jobs: int | None = 1,
                 backend: str = "threading"):
        if min_size < 1:
            raise ValueError("min_size must be >= 1.")
        self.min_size = min_size
        self.n_jobs   = n_jobs
        self.backend  = backend

    def __repr__(self) -> str:
        return f"GreedySearch(min_size={self.min_size})"

    def search(self, space: ConfigurationSpace, scorer: Scorer) -> SearchResult:
        """Run the elimination.

        Returns
        -------
        SearchResult
            ``path[0]`` is the full configuration; ``path[s]`` is the winner
            of step ``s`` and has exactly one dimension fewer than
            ``path[s - 1]``.
        """
        if space.n_dims == 0:
            raise EmptySearchSpace("Configuration space declares zero dimensions.")
        if not space.is_subset:
            raise SearchSpaceError(
                "Backward elimination requires a subset space.", {"kind": space.kind}
            )
        min_size = min(self.min_size, space.n_dims)

        current = space.full()
        try:
            start, n_fail = scorer.scored(current), 0
        except ScorerFitFailure as exc:
            logger.warning("Scoring the full configuration failed: %s", exc)
            start, n_fail = ScoredConfiguration(current, math.inf), 1

        start_score = start.score
        trace = SearchTrace([TraceEntry(0, start_score, start_score, start_score, 1, n_fail)])
        path  = [start]
        best  = start
        logger.info("Backward elimination from %d dimensions (score=%.6g)",
                    space.n_dims, start_score)

        step = 0
        while len(space.included(current)) > min_size:
            step += 1
            included   = space.included(current)
            candidates = []
            for i in included:
                mask = list(current)
                mask[i] = False
                candidates.append(tuple(mask))

            batch = evaluate_batch(scorer, candidates, step=step,
                                   n_jobs=self.n_jobs, backend=self.backend)
            winner_i = first_best(batch.scores)
            winner   = ScoredConfiguration(candidates[winner_i], batch.scores[winner_i])
            trace.append(batch.summary(step))
            path.append(winner)
            current = winner.configuration

            logger.debug(
                "step %d: removed %s -> %d dims, score=%.6g",
                step, space.names[included[winner_i]],
                len(included) - 1, winner.score,
            )
            if winner.score < best.score:
                best = winner

        result = SearchResult(best=best, space=space, strategy=self.name,
                              trace=trace, path=path)
        logger.info(
            "Backward elimination done after %d steps: %s score=%.6g",
            step, result.identifiers, best.score,
        )
        return result
