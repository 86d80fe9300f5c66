"""
config_search.evaluation
========================
Batch evaluation shared by every search strategy, and the result types
they return.

One *batch* is the set of pending scorer calls of one step: all subsets of
one size (exhaustive), all single-dimension removals (greedy), or one
generation (population).  Calls inside a batch are independent and may be
dispatched to a joblib worker pool; the caller only sees the scores once the
whole batch has completed, in input order.

Failure policy
--------------
* ``ScorerFitFailure`` is absorbed: the candidate gets ``+inf`` and a
  warning is logged.
* every candidate of the batch failed: raise :class:`AllCandidatesFailed`.
* anything else (``InvalidConfiguration`` included) propagates.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Iterable, Sequence

import numpy as np
from joblib import Parallel, delayed

from .exceptions import AllCandidatesFailed, ScorerFitFailure
from .scoring import ScoredConfiguration, Scorer
from .space import Configuration, ConfigurationSpace


__all__ = [
    "BatchResult",
    "TraceEntry",
    "SearchTrace",
    "SearchResult",
    "evaluate_batch",
    "first_best",
]

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Trace
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TraceEntry:
    """Summary of one step / generation.  Failed candidates are excluded
    from ``best``, ``mean`` and ``worst``."""

    step: Any
    best: float
    mean: float
    worst: float
    n_evaluations: int
    n_failures: int = 0


class SearchTrace:
    """Ordered per-step summaries, for diagnostics and plotting."""

    def __init__(self, entries: Iterable[TraceEntry] = ()):
        self.entries: list[TraceEntry] = list(entries)

    def append(self, entry: TraceEntry):
        self.entries.append(entry)

    def __iter__(self):
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __getitem__(self, idx):
        return self.entries[idx]

    @property
    def n_evaluations(self) -> int:
        return sum(e.n_evaluations for e in self.entries)

    @property
    def n_failures(self) -> int:
        return sum(e.n_failures for e in self.entries)

    def best_so_far(self) -> list[float]:
        """Running minimum of the per-step best scores."""
        out, current = [], math.inf
        for e in self.entries:
            current = min(current, e.best)
            out.append(current)
        return out

    def as_records(self) -> list[dict[str, Any]]:
        """One dict per step, ready for ``pandas.DataFrame``."""
        return [
            {
                "step": e.step,
                "best": e.best,
                "mean": e.mean,
                "worst": e.worst,
                "n_evaluations": e.n_evaluations,
                "n_failures": e.n_failures,
            }
            for e in self.entries
        ]


# ---------------------------------------------------------------------------
# Batch evaluation
# ---------------------------------------------------------------------------

@dataclass
class BatchResult:
    configurations: list[Configuration]
    scores: list[float]
    n_failures: int = 0

    def summary(self, step: Any) -> TraceEntry:
        finite = np.array([s for s in self.scores if math.isfinite(s)])
        return TraceEntry(
            step=step,
            best=float(finite.min()),
            mean=float(finite.mean()),
            worst=float(finite.max()),
            n_evaluations=len(self.scores),
            n_failures=self.n_failures,
        )

    def best(self) -> ScoredConfiguration:
        i = first_best(self.scores)
        return ScoredConfiguration(self.configurations[i], self.scores[i])


def _safe_evaluate(scorer: Scorer, configuration: Configuration):
    try:
        return scorer.evaluate(configuration), None
    except ScorerFitFailure as exc:
        return math.inf, exc


def evaluate_batch(
    scorer: Scorer,
    configurations: Sequence[Configuration],
    *,
    step: Any = None,
    n_jobs: int | None = 1,
    backend: str = "threading",
    raise_if_all_failed: bool = True,
) -> BatchResult:
    """Score every configuration of one batch.

    Parameters
    ----------
    scorer : Scorer
    configurations : sequence of Configuration
    step : any, optional
        Label used in log messages and in AllCandidatesFailed.
    n_jobs : int, default=1
        joblib worker count; ``1`` runs in-process, ``-1`` uses all cores.
    backend : str, default="threading"
        joblib backend.  Use ``"loky"`` for estimators that hold the GIL.
    raise_if_all_failed : bool, default=True
        Raise AllCandidatesFailed when no candidate scored.  Callers that
        split one step into several batches pass ``False`` and apply the
        check to the whole step.

    Returns
    -------
    BatchResult
        Scores in input order (``+inf`` for absorbed failures).
    """
    configurations = list(configurations)
    if n_jobs == 1 or len(configurations) <= 1:
        outcomes = [_safe_evaluate(scorer, c) for c in configurations]
    else:
        outcomes = Parallel(n_jobs=n_jobs, backend=backend)(
            delayed(_safe_evaluate)(scorer, c) for c in configurations
        )

    scores, n_failures = [], 0
    for config, (score, error) in zip(configurations, outcomes):
        if error is not None:
            n_failures += 1
            logger.warning("Scoring failed at step %r for %s: %s", step, config, error)
        scores.append(score)

    if raise_if_all_failed and configurations and n_failures == len(configurations):
        raise AllCandidatesFailed(step, len(configurations))
    return BatchResult(configurations, scores, n_failures)


def first_best(scores: Sequence[float]) -> int:
    """Index of the lowest score; ties go to the first occurrence."""
    best_i, best = 0, math.inf
    for i, s in enumerate(scores):
        if s < best:
            best_i, best = i, s
    return best_i


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------

@dataclass
class SearchResult:
    """Outcome of one search run.

    Attributes
    ----------
    best : ScoredConfiguration
        Best configuration seen anywhere during the run.
    space : ConfigurationSpace
    strategy : str
    trace : SearchTrace
    path : list of ScoredConfiguration
        Per-step winners (greedy), per-generation global best (population),
        per-size best (exhaustive).
    seed : int or None
        Seed of a stochastic run.
    """

    best: ScoredConfiguration
    space: ConfigurationSpace
    strategy: str
    trace: SearchTrace = field(default_factory=SearchTrace)
    path: list[ScoredConfiguration] = field(default_factory=list)
    seed: Any = None

    @property
    def configuration(self) -> Configuration:
        return self.best.configuration

    @property
    def score(self) -> float:
        return self.best.score

    @property
    def n_evaluations(self) -> int:
        return self.trace.n_evaluations

    @property
    def identifiers(self):
        return self.space.to_identifiers(self.best.configuration)

    def summary(self) -> str:
        """Return a human-readable summary of the run."""
        lines = [
            f"{self.strategy} – search summary",
            f"  space                  : {self.space.kind}, {self.space.n_dims} dims",
            f"  steps                  : {len(self.trace)}",
            f"  evaluations            : {self.n_evaluations}",
            f"  failed evaluations     : {self.trace.n_failures}",
            f"  selected               : {self.identifiers}",
            f"  score                  : {self.score:.6g}",
        ]
        if self.seed is not None:
            lines.append(f"  seed                   : {self.seed}")
        return "\n".join(lines)
