"""
config_search.harness
=====================
Run search strategies under a fixed protocol and compare them fairly.

The harness splits the dataset once into a *training* part and a held-out
*comparison* part, builds one scorer bound to the training part (and, for
cross-validated selection, one fold partition built once and reused for
every configuration and every strategy), runs each strategy, and then
refits the selected configuration on the whole training part to report:

* the selection score the strategy optimised (BIC or mean CV loss);
* the training loss of the refitted model;
* the comparison loss of the same refitted model.

The comparison part is never seen by a scorer.  ``overfit_gap`` is the
comparison loss minus the training loss.

Example
-------
>>> harness = EvaluationHarness(X, y, selection="bic", shuffle=False)
>>> report = harness.compare({
...     "best subset": ExhaustiveSearch(max_size=4),
...     "backward":    GreedySearch(),
...     "genetic":     GeneticSearch(GeneticSettings(generations=30)),
... }, seeds={"genetic": 5})
>>> print(report.summary())
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

import numpy as np
from sklearn.base import clone
from sklearn.linear_model import LinearRegression
from sklearn.metrics import get_scorer
from sklearn.model_selection import (
    KFold,
    StratifiedKFold,
    TimeSeriesSplit,
    train_test_split,
)
from sklearn.utils._param_validation import InvalidParameterError

from .evaluation import SearchResult
from .exceptions import SearchSpaceError
from .population import PopulationSearch, best_of_runs
from .scoring import CrossValidatedScorer, InformationCriterionScorer, Scorer
from .space import Configuration, ConfigurationSpace


__all__ = [
    "make_fold_partition",
    "split_comparison",
    "HarnessResult",
    "ComparisonReport",
    "EvaluationHarness",
]

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Splitting
# ---------------------------------------------------------------------------

def make_fold_partition(
    n_samples: int,
    n_splits: int = 5,
    *,
    y: np.ndarray | None = None,
    stratify: bool = False,
    shuffle: bool = True,
    time_series: bool = False,
    random_state: int | None = 0,
) -> tuple[tuple[np.ndarray, np.ndarray], ...]:
    """Materialised ``(train_idx, val_idx)`` pairs, built once per study.

    Parameters
    ----------
    n_samples : int
    n_splits : int, default=5
    y : array-like, optional
        Required when ``stratify=True``.
    stratify : bool, default=False
        Use ``StratifiedKFold`` (classification targets).
    shuffle : bool, default=True
        Shuffle rows before assigning folds (ignored for ``time_series``).
    time_series : bool, default=False
        Use expanding-window ``TimeSeriesSplit`` so validation rows always
        follow training rows (autoregressive lags).
    random_state : int, default=0
    """
    if n_splits < 2:
        raise ValueError("n_splits must be >= 2.")
    if time_series:
        splitter = TimeSeriesSplit(n_splits=n_splits)
    elif stratify:
        if y is None:
            raise ValueError("stratify=True requires y.")
        splitter = StratifiedKFold(n_splits=n_splits, shuffle=shuffle,
                                   random_state=random_state if shuffle else None)
    else:
        splitter = KFold(n_splits=n_splits, shuffle=shuffle,
                         random_state=random_state if shuffle else None)
    dummy = np.zeros((n_samples, 1))
    return tuple(
        (np.asarray(tr), np.asarray(va)) for tr, va in splitter.split(dummy, y)
    )


def split_comparison(
    X: np.ndarray,
    y: np.ndarray,
    *,
    test_size: float = 0.25,
    shuffle: bool = True,
    stratify: bool = False,
    random_state: int | None = 0,
):
    """Split into ``(X_train, X_cmp, y_train, y_cmp)``.

    With ``shuffle=False`` the comparison part is the last ``test_size`` of
    the rows, which keeps time order for autoregressive data.
    """
    return train_test_split(
        X, y,
        test_size=test_size,
        shuffle=shuffle,
        stratify=y if (stratify and shuffle) else None,
        random_state=random_state if shuffle else None,
    )


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass
class HarnessResult:
    """One strategy's outcome under the harness protocol."""

    name: str
    search: SearchResult
    selection_score: float
    train_score: float
    comparison_score: float
    runs: list[SearchResult] = field(default_factory=list)

    @property
    def configuration(self) -> Configuration:
        return self.search.configuration

    @property
    def identifiers(self):
        return self.search.identifiers

    @property
    def overfit_gap(self) -> float:
        return self.comparison_score - self.train_score


@dataclass
class ComparisonReport:
    """Results of several strategies run on the same splits."""

    results: dict[str, HarnessResult]
    metric: str

    def __getitem__(self, name: str) -> HarnessResult:
        return self.results[name]

    def best(self) -> HarnessResult:
        """Lowest comparison score; ties go to the first strategy listed."""
        best = None
        for r in self.results.values():
            if best is None or r.comparison_score < best.comparison_score:
                best = r
        return best

    def as_records(self) -> list[dict[str, Any]]:
        return [
            {
                "strategy": r.name,
                "selected": r.identifiers,
                "selection_score": r.selection_score,
                "train_score": r.train_score,
                "comparison_score": r.comparison_score,
                "overfit_gap": r.overfit_gap,
                "n_evaluations": r.search.n_evaluations,
            }
            for r in self.results.values()
        ]

    def summary(self) -> str:
        """Return a plain-text comparison table."""
        header = (f"{'strategy':<16}{'selection':>12}{'train':>12}"
                  f"{'comparison':>12}{'gap':>10}{'evals':>8}  selected")
        lines = [f"Comparison ({self.metric})", header, "-" * len(header)]
        for r in self.results.values():
            lines.append(
                f"{r.name:<16}{r.selection_score:>12.5g}{r.train_score:>12.5g}"
                f"{r.comparison_score:>12.5g}{r.overfit_gap:>10.3g}"
                f"{r.search.n_evaluations:>8d}  {r.identifiers}"
            )
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Harness
# ---------------------------------------------------------------------------

class EvaluationHarness:
    """Train/comparison protocol around one dataset and one space.

    Parameters
    ----------
    X : array-like, shape (n_samples, n_features)
    y : array-like, shape (n_samples,)
    space : ConfigurationSpace, optional
        Defaults to a subset space over the columns of ``X``.
    selection : {"cv", "bic", "aic"}, default="cv"
        Score used during search: mean cross-validated loss of
        ``estimator`` or an information criterion of an OLS fit.
    estimator : sklearn estimator, optional
        Model refitted for the reported losses (and scored during CV
        selection).  Defaults to ``LinearRegression``.
    scoring : str, default="neg_mean_squared_error"
        scikit-learn scorer name for CV selection and for the reported
        losses; negated so lower is better.
    n_splits : int, default=5
    test_size : float, default=0.25
        Fraction held out as the comparison part.
    comparison : (X_cmp, y_cmp), optional
        Explicit comparison set; ``X``/``y`` are then used whole for
        training.
    shuffle : bool, default=True
        ``False`` keeps time order for the split and uses expanding-window
        folds.
    stratify : bool, default=False
    random_state : int, default=0
        Seed of the split and of the fold partition.
    """

    def __init__(
        self,
        X: np.ndarray,
        y: np.ndarray,
        space: ConfigurationSpace | None = None,
        *,
        selection: str = "cv",
        estimator: Any = None,
        scoring: str = "neg_mean_squared_error",
        n_splits: int = 5,
        test_size: float = 0.25,
        comparison: tuple[np.ndarray, np.ndarray] | None = None,
        shuffle: bool = True,
        stratify: bool = False,
        random_state: int | None = 0,
    ):
        if selection not in ("cv", "bic", "aic"):
            raise ValueError(f"selection must be 'cv', 'bic' or 'aic', got {selection!r}.")
        X_arr = np.asarray(X, dtype=float)
        y_arr = np.asarray(y)

        if comparison is None:
            self.X_train, self.X_cmp, self.y_train, self.y_cmp = split_comparison(
                X_arr, y_arr, test_size=test_size, shuffle=shuffle,
                stratify=stratify, random_state=random_state,
            )
        else:
            self.X_train, self.y_train = X_arr, y_arr
            self.X_cmp = np.asarray(comparison[0], dtype=float)
            self.y_cmp = np.asarray(comparison[1])
        if self.X_cmp.shape[1] != self.X_train.shape[1]:
            raise SearchSpaceError(
                "Comparison set has a different number of columns than the "
                "training set.",
                {"train": self.X_train.shape[1], "comparison": self.X_cmp.shape[1]},
            )

        self.space        = space if space is not None else ConfigurationSpace.subset(X_arr.shape[1])
        self.selection    = selection
        self.estimator    = estimator if estimator is not None else LinearRegression()
        self.scoring      = scoring
        self.n_splits     = n_splits
        self.shuffle      = shuffle
        self.stratify     = stratify
        self.random_state = random_state
        self._metric      = get_scorer(scoring)

        self.folds = None
        if selection == "cv":
            self.folds = make_fold_partition(
                len(self.X_train), n_splits,
                y=self.y_train, stratify=stratify, shuffle=shuffle,
                time_series=not shuffle, random_state=random_state,
            )
        self.scorer = self.make_scorer()

    def make_scorer(self) -> Scorer:
        """Scorer bound to the training part only."""
        if self.selection == "cv":
            return CrossValidatedScorer(
                self.space, self.X_train, self.y_train, self.estimator, self.folds,
                scoring=self.scoring,
            )
        return InformationCriterionScorer(
            self.space, self.X_train, self.y_train, criterion=self.selection,
        )

    def refit(self, configuration: Sequence):
        """Fit the selected configuration on the whole training part.

        Returns ``(fitted_estimator, column_indices)``; ``column_indices`` is
        ``None`` for hyperparameter spaces.
        """
        config = self.space.validate(configuration)
        est = clone(self.estimator)
        cols, params = None, {}
        if self.space.is_subset:
            cols = list(self.space.included(config))
            X_fit = self.X_train[:, cols]
        else:
            params = self.space.decode(config)
            try:
                est.set_params(**params)
            except ValueError as exc:
                raise SearchSpaceError(
                    f"Estimator rejected hyperparameters: {exc}", {"params": params}
                ) from exc
            X_fit = self.X_train
        try:
            est.fit(X_fit, self.y_train)
        except InvalidParameterError as exc:
            raise SearchSpaceError(
                f"Estimator rejected hyperparameters: {exc}", {"params": params}
            ) from exc
        return est, cols

    def losses(self, configuration: Sequence) -> tuple[float, float]:
        """``(train_loss, comparison_loss)`` of one refitted configuration."""
        est, cols = self.refit(configuration)
        X_tr  = self.X_train if cols is None else self.X_train[:, cols]
        X_cmp = self.X_cmp if cols is None else self.X_cmp[:, cols]
        train = -float(self._metric(est, X_tr, self.y_train))
        cmp_  = -float(self._metric(est, X_cmp, self.y_cmp))
        return train, cmp_

    def run(self, strategy, *, name: str | None = None,
            seeds: Sequence[Any] | int | None = None) -> HarnessResult:
        """Search with ``strategy`` and score its pick on the comparison part.

        ``seeds`` repeats a population search and keeps the best run.
        """
        name = name or getattr(strategy, "name", type(strategy).__name__)
        runs: list[SearchResult] = []
        if seeds is not None:
            if not isinstance(strategy, PopulationSearch):
                raise ValueError(f"seeds only apply to population searches, not {name!r}.")
            outcome = best_of_runs(strategy, self.space, self.scorer, seeds)
            search, runs = outcome.best, outcome.runs
        else:
            search = strategy.search(self.space, self.scorer)

        train, cmp_ = self.losses(search.configuration)
        logger.info(
            "%s: selected %s selection=%.6g train=%.6g comparison=%.6g",
            name, search.identifiers, search.score, train, cmp_,
        )
        return HarnessResult(
            name=name,
            search=search,
            selection_score=search.score,
            train_score=train,
            comparison_score=cmp_,
            runs=runs,
        )

    def compare(
        self,
        strategies: Mapping[str, Any],
        *,
        seeds: Mapping[str, Sequence[Any] | int] | None = None,
    ) -> ComparisonReport:
        """Run every strategy on the same split, folds and scorer."""
        seeds = seeds or {}
        results = {
            name: self.run(strategy, name=name, seeds=seeds.get(name))
            for name, strategy in strategies.items()
        }
        return ComparisonReport(results=results, metric=self.scoring)
