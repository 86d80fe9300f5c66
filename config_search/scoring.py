"""
config_search.scoring
=====================
Score functions: ``evaluate(configuration) -> float``, lower is better.

Two model-backed scorers are provided:

``InformationCriterionScorer``
    Fits one Gaussian linear model (ordinary least squares) to the whole
    dataset restricted to the included columns and returns BIC (or AIC)::

        logLik = -n/2 * (ln(2π) + ln(RSS / n) + 1)
        BIC    = -2 * logLik + k * ln(n)
        AIC    = -2 * logLik + 2 * k

    where ``k`` counts the slope coefficients, the intercept and the error
    variance.  The penalty is what makes subsets of different sizes
    comparable without a held-out set.

``CrossValidatedScorer``
    Fits a scikit-learn estimator once per fold of a *fixed* fold partition
    and returns the mean validation loss.  Any scikit-learn scorer name is
    accepted; its "greater is better" output is negated, so
    ``neg_mean_squared_error`` yields the MSE and ``roc_auc`` yields -AUC.

A third, :class:`CallableScorer`, wraps an arbitrary function of the
decoded configuration and is handy for custom objectives.

All scorers validate the configuration before fitting (an empty subset
raises :class:`~config_search.exceptions.InvalidConfiguration`), memoise
results per distinct fitted configuration, and convert numerical failures
into :class:`~config_search.exceptions.ScorerFitFailure`.
"""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass
from typing import Any, Callable, Sequence

import numpy as np
from scipy import linalg
from sklearn.base import clone
from sklearn.metrics import get_scorer
from sklearn.utils._param_validation import InvalidParameterError

from .exceptions import InvalidConfiguration, ScorerFitFailure, SearchSpaceError
from .space import Configuration, ConfigurationSpace


__all__ = [
    "ScoredConfiguration",
    "Scorer",
    "InformationCriterionScorer",
    "CrossValidatedScorer",
    "CallableScorer",
]

logger = logging.getLogger(__name__)

_FIT_ERRORS = (ValueError, ArithmeticError, linalg.LinAlgError)


@dataclass(frozen=True)
class ScoredConfiguration:
    """A configuration together with its (lower-is-better) score."""

    configuration: Configuration
    score: float

    @property
    def n_included(self) -> int:
        return sum(1 for v in self.configuration if v is True)

    @property
    def failed(self) -> bool:
        return not math.isfinite(self.score)


# ---------------------------------------------------------------------------
# Base class
# ---------------------------------------------------------------------------

class Scorer:
    """Base class for score functions bound to one space.

    Subclasses implement :meth:`_score`, which receives an already validated
    configuration and returns a float.

    Parameters
    ----------
    space : ConfigurationSpace
        Space the configurations belong to.
    cache : bool, default=True
        Memoise scores by :meth:`ConfigurationSpace.cache_key`.
    """

    allow_empty = False

    def __init__(self, space: ConfigurationSpace, *, cache: bool = True):
        self.space  = space
        self.cache  = cache
        self.n_fits = 0
        self._memo: dict[tuple, float] = {}
        self._lock  = threading.Lock()

    def evaluate(self, configuration: Sequence) -> float:
        """Score one configuration; lower is better."""
        config, key = self._prepare(configuration)
        if self.cache:
            with self._lock:
                if key in self._memo:
                    return self._memo[key]

        score = float(self._score(config))
        with self._lock:
            self.n_fits += 1
        if not math.isfinite(score):
            raise ScorerFitFailure(
                f"Non-finite score {score!r}.", configuration=config
            )
        if self.cache:
            with self._lock:
                self._memo[key] = score
        return score

    __call__ = evaluate

    def scored(self, configuration: Sequence) -> ScoredConfiguration:
        config, _ = self._prepare(configuration)
        return ScoredConfiguration(config, self.evaluate(config))

    def clear_cache(self):
        with self._lock:
            self._memo.clear()

    def __getstate__(self):
        state = self.__dict__.copy()
        del state["_lock"]
        return state

    def __setstate__(self, state):
        self.__dict__.update(state)
        self._lock = threading.Lock()

    def _prepare(self, configuration: Sequence) -> tuple[Configuration, tuple]:
        config = tuple(configuration)
        if (
            self.allow_empty
            and self.space.is_subset
            and len(config) == self.space.n_dims
            and all(v in (0, 1) for v in config)
            and not any(config)
        ):
            return (False,) * self.space.n_dims, ()
        config = self.space.validate(config)
        return config, self.space.cache_key(config)

    def _score(self, configuration: Configuration) -> float:  # pragma: no cover
        raise NotImplementedError

    def _check_columns(self, X: np.ndarray):
        if self.space.is_subset and X.shape[1] != self.space.n_dims:
            raise SearchSpaceError(
                f"Space declares {self.space.n_dims} dimensions but the dataset "
                f"has {X.shape[1]} columns.",
                {"n_dims": self.space.n_dims, "n_columns": X.shape[1]},
            )


def _as_arrays(X, y) -> tuple[np.ndarray, np.ndarray]:
    X_arr = np.asarray(X, dtype=float)
    y_arr = np.asarray(y)
    if X_arr.ndim != 2:
        raise SearchSpaceError(
            f"X must be 2-dimensional, got shape {X_arr.shape}.",
            {"shape": X_arr.shape},
        )
    if len(X_arr) != len(y_arr):
        raise SearchSpaceError(
            f"X has {len(X_arr)} rows but y has {len(y_arr)}.",
            {"n_rows_X": len(X_arr), "n_rows_y": len(y_arr)},
        )
    return X_arr, y_arr


# ---------------------------------------------------------------------------
# Information criterion
# ---------------------------------------------------------------------------

class InformationCriterionScorer(Scorer):
    """Penalized-likelihood score of an OLS fit on the included columns.

    Parameters
    ----------
    space : ConfigurationSpace
        Subset space whose dimensions are the columns of ``X``.
    X : array-like, shape (n_samples, n_features)
    y : array-like, shape (n_samples,)
    criterion : {"bic", "aic"}, default="bic"
    fit_intercept : bool, default=True
    empty_policy : {"raise", "intercept"}, default="raise"
        What to do with a configuration that includes no column.
        ``"raise"`` rejects it with InvalidConfiguration; ``"intercept"``
        scores the intercept-only model.
    cache : bool, default=True
    """

    def __init__(
        self,
        space: ConfigurationSpace,
        X: np.ndarray,
        y: np.ndarray,
        *,
        criterion: str = "bic",
        fit_intercept: bool = True,
        empty_policy: str = "raise",
        cache: bool = True,
    ):
        super().__init__(space, cache=cache)
        if not space.is_subset:
            raise SearchSpaceError(
                "InformationCriterionScorer requires a subset space.",
                {"kind": space.kind},
            )
        if criterion not in ("bic", "aic"):
            raise ValueError(f"criterion must be 'bic' or 'aic', got {criterion!r}.")
        if empty_policy not in ("raise", "intercept"):
            raise ValueError(
                f"empty_policy must be 'raise' or 'intercept', got {empty_policy!r}."
            )
        if empty_policy == "intercept" and not fit_intercept:
            raise ValueError("empty_policy='intercept' requires fit_intercept=True.")

        self.X, self.y = _as_arrays(X, y)
        self.y = self.y.astype(float)
        self._check_columns(self.X)
        self.criterion     = criterion
        self.fit_intercept = fit_intercept
        self.empty_policy  = empty_policy
        self.allow_empty   = empty_policy == "intercept"

    def log_likelihood(self, configuration: Sequence) -> tuple[float, int]:
        """Return ``(logLik, k)`` of the Gaussian OLS fit."""
        config, _ = self._prepare(configuration)
        cols   = [i for i, v in enumerate(config) if v]
        n      = len(self.y)
        design = self.X[:, cols]
        if self.fit_intercept:
            design = np.column_stack([np.ones(n), design])
        n_coef = design.shape[1]
        if n <= n_coef + 1:
            raise ScorerFitFailure(
                f"{n} samples cannot support {n_coef} coefficients.",
                configuration=config,
            )

        cond = np.finfo(float).eps * max(design.shape)
        try:
            coef, _, rank, _ = linalg.lstsq(design, self.y, cond=cond)
        except _FIT_ERRORS as exc:
            raise ScorerFitFailure(
                f"Least-squares fit failed: {exc}", configuration=config, cause=exc
            ) from exc
        if rank < n_coef:
            raise ScorerFitFailure(
                f"Design matrix is rank deficient (rank {rank} < {n_coef}).",
                configuration=config,
            )

        resid = self.y - design @ coef
        rss   = float(resid @ resid)
        if not rss > 0.0 or not math.isfinite(rss):
            raise ScorerFitFailure(
                f"Degenerate residual sum of squares {rss!r}.", configuration=config
            )
        loglik = -0.5 * n * (math.log(2.0 * math.pi) + math.log(rss / n) + 1.0)
        return loglik, n_coef + 1

    def _score(self, configuration: Configuration) -> float:
        loglik, k = self.log_likelihood(configuration)
        n = len(self.y)
        penalty = k * math.log(n) if self.criterion == "bic" else 2.0 * k
        return -2.0 * loglik + penalty


# ---------------------------------------------------------------------------
# Cross-validation
# ---------------------------------------------------------------------------

class CrossValidatedScorer(Scorer):
    """Mean validation loss of an estimator over a fixed fold partition.

    Parameters
    ----------
    space : ConfigurationSpace
        Subset space (columns of ``X``) or hyperparameter space (estimator
        parameters applied with ``set_params``).
    X : array-like, shape (n_samples, n_features)
    y : array-like, shape (n_samples,)
    estimator : sklearn estimator
        Cloned for every fit; never fitted in place.
    folds : sequence of (train_indices, validation_indices)
        Built once per study (see ``harness.make_fold_partition``) and
        reused verbatim for every configuration and every algorithm.
    scoring : str, default="neg_mean_squared_error"
        scikit-learn scorer name.  Its output is negated.
    cache : bool, default=True
    """

    def __init__(
        self,
        space: ConfigurationSpace,
        X: np.ndarray,
        y: np.ndarray,
        estimator: Any,
        folds: Sequence[tuple[np.ndarray, np.ndarray]],
        *,
        scoring: str = "neg_mean_squared_error",
        cache: bool = True,
    ):
        super().__init__(space, cache=cache)
        self.X, self.y = _as_arrays(X, y)
        self._check_columns(self.X)
        self.estimator = estimator
        self.folds     = tuple(
            (np.asarray(tr, dtype=int), np.asarray(va, dtype=int)) for tr, va in folds
        )
        if not self.folds:
            raise SearchSpaceError("CrossValidatedScorer requires at least one fold.")
        n = len(self.X)
        for k, (tr, va) in enumerate(self.folds):
            if len(tr) == 0 or len(va) == 0:
                raise SearchSpaceError(f"Fold {k} has an empty side.", {"fold": k})
            if tr.max() >= n or va.max() >= n or tr.min() < 0 or va.min() < 0:
                raise SearchSpaceError(
                    f"Fold {k} indexes rows outside the dataset.", {"fold": k}
                )
        self.scoring = scoring
        self._scorer = get_scorer(scoring)

    def build_estimator(self, configuration: Configuration):
        """Unfitted estimator and design matrix for ``configuration``."""
        est = clone(self.estimator)
        if self.space.is_subset:
            return est, self.X[:, list(self.space.included(configuration))]
        params = self.space.decode(configuration)
        try:
            est.set_params(**params)
        except ValueError as exc:
            raise SearchSpaceError(
                f"Estimator rejected hyperparameters {params}: {exc}",
                {"params": params},
            ) from exc
        return est, self.X

    def fold_scores(self, configuration: Sequence) -> np.ndarray:
        """Validation loss of every fold (lower is better)."""
        config, _ = self._prepare(configuration)
        est_template, X_cfg = self.build_estimator(config)
        losses = np.empty(len(self.folds))
        for k, (tr, va) in enumerate(self.folds):
            est = clone(est_template)
            try:
                est.fit(X_cfg[tr], self.y[tr])
                losses[k] = -float(self._scorer(est, X_cfg[va], self.y[va]))
            except InvalidParameterError as exc:
                raise SearchSpaceError(
                    f"Estimator rejected the configuration on fold {k}: {exc}",
                    {"params": self._params_of(config)},
                ) from exc
            except _FIT_ERRORS as exc:
                raise ScorerFitFailure(
                    f"Fit failed on fold {k}: {exc}", configuration=config, cause=exc
                ) from exc
        return losses

    def _params_of(self, configuration: Configuration):
        if self.space.is_subset:
            return {"columns": self.space.included(configuration)}
        return self.space.decode(configuration)

    def _score(self, configuration: Configuration) -> float:
        return float(self.fold_scores(configuration).mean())


# ---------------------------------------------------------------------------
# Arbitrary objective
# ---------------------------------------------------------------------------

class CallableScorer(Scorer):
    """Score with ``func(decoded)`` where ``decoded`` is
    ``space.decode(configuration)``.

    Exceptions listed in ``failures`` are reported as ScorerFitFailure.
    """

    def __init__(
        self,
        space: ConfigurationSpace,
        func: Callable[[Any], float],
        *,
        failures: tuple[type[BaseException], ...] = _FIT_ERRORS,
        cache: bool = True,
    ):
        super().__init__(space, cache=cache)
        self.func     = func
        self.failures = failures

    def _score(self, configuration: Configuration) -> float:
        decoded = self.space.decode(configuration)
        try:
            return float(self.func(decoded))
        except InvalidConfiguration:
            raise
        except self.failures as exc:
            raise ScorerFitFailure(
                f"Objective failed: {exc}", configuration=configuration, cause=exc
            ) from exc
