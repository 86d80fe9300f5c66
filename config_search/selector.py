"""
config_search.selector
======================
Scikit-learn compatible feature selector driven by any subset search.

The estimator follows the standard sklearn API:

    selector = SubsetSelector(
        strategy=GreedySearch(),
        selection="cv",
        estimator=Ridge(alpha=1.0),
        cv=5,
    )
    selector.fit(X_train, y_train)
    X_reduced = selector.transform(X_train)

so a subset search can sit inside a ``Pipeline``.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any

import numpy as np
from sklearn.base import BaseEstimator, TransformerMixin
from sklearn.linear_model import LinearRegression
from sklearn.utils.validation import check_is_fitted

from .greedy import GreedySearch
from .harness import make_fold_partition
from .population import PopulationSearch, best_of_runs
from .scoring import CrossValidatedScorer, InformationCriterionScorer
from .space import ConfigurationSpace


__all__ = ["SubsetSelector"]

logger = logging.getLogger(__name__)


@contextmanager
def _verbosity(verbose: int):
    pkg = logging.getLogger("config_search")
    previous = pkg.level
    if verbose >= 2:
        pkg.setLevel(logging.DEBUG)
    elif verbose >= 1:
        pkg.setLevel(logging.INFO)
    try:
        yield
    finally:
        pkg.setLevel(previous)


class SubsetSelector(TransformerMixin, BaseEstimator):
    """Select a feature subset with a pluggable search strategy.

    Parameters
    ----------
    strategy : search object, optional
        ``ExhaustiveSearch``, ``GreedySearch`` or ``GeneticSearch``
        instance.  Defaults to ``GreedySearch()``.
    selection : {"bic", "aic", "cv"}, default="bic"
        Information criterion of an OLS fit, or mean cross-validated loss
        of ``estimator``.
    estimator : sklearn estimator, optional
        Model scored during CV selection.  Defaults to ``LinearRegression``.
    cv : int, default=5
        Number of folds for CV selection.  The partition is built once per
        ``fit`` and shared by every candidate subset.
    scoring : str, default="neg_mean_squared_error"
        scikit-learn scorer name for CV selection.
    n_runs : int, default=1
        Independent seeds for a population strategy; the best run is kept.
    random_state : int, default=0
        Seed of the fold partition and of population strategies.
    verbose : int, default=0
        0 = silent, 1 = INFO progress, 2 = DEBUG detail, logged through the
        ``config_search`` logger.

    Attributes
    ----------
    selected_features_ : tuple of int
        Indices of the selected features after fitting.
    score_ : float
        Selection score of the selected subset (lower is better).
    search_result_ : SearchResult
        Full result of the search, including its trace.
    n_features_in_ : int
        Total number of features seen during fit.

    Examples
    --------
    >>> from sklearn.datasets import load_diabetes
    >>> from config_search import SubsetSelector, ExhaustiveSearch
    >>> X, y = load_diabetes(return_X_y=True)
    >>> selector = SubsetSelector(strategy=ExhaustiveSearch(max_size=3))
    >>> selector.fit(X, y)
    SubsetSelector(...)
    >>> selector.transform(X).shape[1] <= 3
    True
    """

    def __init__(
        self,
        strategy: Any = None,
        selection: str = "bic",
        estimator: Any = None,
        cv: int = 5,
        scoring: str = "neg_mean_squared_error",
        n_runs: int = 1,
        random_state: int | None = 0,
        verbose: int = 0,
    ):
        self.strategy     = strategy
        self.selection    = selection
        self.estimator    = estimator
        self.cv           = cv
        self.scoring      = scoring
        self.n_runs       = n_runs
        self.random_state = random_state
        self.verbose      = verbose

    # ------------------------------------------------------------------
    # sklearn API
    # ------------------------------------------------------------------

    def fit(self, X: np.ndarray, y: np.ndarray) -> "SubsetSelector":
        """Run the subset search on ``(X, y)``.

        Returns
        -------
        self
        """
        X_arr = np.asarray(X, dtype=float)
        y_arr = np.asarray(y)
        self.n_features_in_ = X_arr.shape[1]
        self._validate_params()

        space    = ConfigurationSpace.subset(self.n_features_in_)
        strategy = self.strategy if self.strategy is not None else GreedySearch()

        with _verbosity(self.verbose):
            if self.selection == "cv":
                folds = make_fold_partition(
                    len(X_arr), self.cv, random_state=self.random_state,
                )
                estimator = self.estimator if self.estimator is not None else LinearRegression()
                scorer = CrossValidatedScorer(
                    space, X_arr, y_arr, estimator, folds, scoring=self.scoring,
                )
            else:
                scorer = InformationCriterionScorer(
                    space, X_arr, y_arr, criterion=self.selection,
                )

            if isinstance(strategy, PopulationSearch):
                seeds = [
                    None if self.random_state is None else self.random_state + i
                    for i in range(self.n_runs)
                ]
                result = best_of_runs(strategy, space, scorer, seeds).best
            else:
                result = strategy.search(space, scorer)

        self.search_result_     = result
        self.selected_features_ = space.included(result.configuration)
        self.score_             = result.score
        logger.info("Selected features %s (score=%.6g)", self.selected_features_, self.score_)
        return self

    def transform(self, X: np.ndarray) -> np.ndarray:
        """Project X onto the selected feature subset."""
        check_is_fitted(self, "selected_features_")
        X_arr = np.asarray(X, dtype=float)
        return X_arr[:, list(self.selected_features_)]

    def get_support(self, indices: bool = False):
        """Return a mask or indices of the selected features.

        Parameters
        ----------
        indices : bool, default=False
            If ``True``, return indices; otherwise return a boolean mask.
        """
        check_is_fitted(self, "selected_features_")
        mask = np.zeros(self.n_features_in_, dtype=bool)
        mask[list(self.selected_features_)] = True
        if indices:
            return np.where(mask)[0]
        return mask

    def get_feature_names_out(self, input_features=None):
        """Get feature names for the selected features.

        If ``input_features`` is ``None``, uses ``x0``, ``x1``, etc.
        """
        check_is_fitted(self, "selected_features_")
        if input_features is None:
            input_features = [f"x{i}" for i in range(self.n_features_in_)]
        return np.array([input_features[i] for i in self.selected_features_])

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _validate_params(self):
        if self.selection not in ("bic", "aic", "cv"):
            raise ValueError(
                f"selection must be 'bic', 'aic' or 'cv', got {self.selection!r}."
            )
        if self.selection == "cv" and self.cv < 2:
            raise ValueError("cv must be >= 2.")
        if self.n_runs < 1:
            raise ValueError("n_runs must be >= 1.")

    def summary(self) -> str:
        """Return a human-readable summary of the fitted selector."""
        check_is_fitted(self, "selected_features_")
        result = self.search_result_
        lines = [
            "SubsetSelector – fit summary",
            f"  strategy               : {result.strategy}",
            f"  selection              : {self.selection}",
            f"  n_features_in          : {self.n_features_in_}",
            f"  evaluations            : {result.n_evaluations}",
            f"  selected features      : {self.selected_features_}",
            f"  score                  : {self.score_:.6g}",
        ]
        return "\n".join(lines)
