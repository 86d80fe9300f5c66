"""
Tests for config_search: spaces, scorers, batch evaluation, exhaustive and
greedy search, the harness and the sklearn selector.
"""

from itertools import combinations

import numpy as np
import pytest
from sklearn.datasets import load_breast_cancer, load_diabetes, make_regression
from sklearn.ensemble import RandomForestRegressor
from sklearn.linear_model import LinearRegression, LogisticRegression, Ridge
from sklearn.metrics import mean_squared_error
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import StandardScaler
from sklearn.tree import DecisionTreeRegressor

from config_search import (
    AllCandidatesFailed,
    CallableScorer,
    Categorical,
    ConfigurationSpace,
    CrossValidatedScorer,
    DiscreteLinear,
    DiscreteLog,
    EmptySearchSpace,
    EvaluationHarness,
    ExhaustiveSearch,
    GeneticSearch,
    GeneticSettings,
    GreedySearch,
    InformationCriterionScorer,
    InvalidConfiguration,
    ScorerFitFailure,
    SearchSpaceError,
    SubsetSelector,
    evaluate_batch,
    make_fold_partition,
)
from config_search.exhaustive import n_candidates


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

INFORMATIVE = (0, 1, 2)


def make_linear(n=200, n_features=10, rng=None):
    """Columns 0-2 drive y; the remaining columns are noise."""
    if rng is None:
        rng = np.random.default_rng(0)
    X = rng.normal(size=(n, n_features))
    y = 3.0 * X[:, 0] - 2.0 * X[:, 1] + 1.5 * X[:, 2] + rng.normal(0, 0.5, n)
    return X, y


def make_collinear(n=100, rng=None):
    """Column 2 is an exact copy of column 1."""
    if rng is None:
        rng = np.random.default_rng(3)
    X = rng.normal(size=(n, 3))
    X[:, 2] = X[:, 1]
    y = X[:, 0] + rng.normal(0, 0.1, n)
    return X, y


def bic_scorer(X, y, **kwargs):
    space = ConfigurationSpace.subset(X.shape[1])
    return space, InformationCriterionScorer(space, X, y, **kwargs)


# ---------------------------------------------------------------------------
# Tests: domains
# ---------------------------------------------------------------------------

class TestDomains:
    def test_categorical_map(self):
        d = Categorical("max_depth", (2, 5))
        assert d.map(0.0) == 2
        assert d.map(0.49) == 2
        assert d.map(0.7) == 5
        assert d.map(1.0) == 5

    def test_discrete_linear_map(self):
        d = DiscreteLinear("n_lags", 1, 12)
        assert d.map(0.0) == 1
        assert d.map(0.5) == 7
        assert d.map(1.0) == 12

    def test_discrete_log_map(self):
        d = DiscreteLog("n_estimators", 1, 1000)
        assert d.map(0.0) == 1
        assert d.map(0.5) == 31
        assert d.map(1.0) == 1000

    def test_discrete_log_monotonic(self):
        d = DiscreteLog("n_estimators", 5, 500)
        values = [d.map(u) for u in np.linspace(0, 1, 201)]
        assert values == sorted(values)
        assert values[0] == 5 and values[-1] == 500

    @pytest.mark.parametrize("domain", [
        Categorical("c", ("gini", "entropy", "log_loss")),
        DiscreteLinear("l", 3, 9),
        DiscreteLog("g", 1, 200),
        DiscreteLog("h", 5, 10),
        DiscreteLog("single", 4, 4),
    ])
    def test_coordinate_inverts_map(self, domain):
        for value in domain.values():
            assert domain.map(domain.coordinate(value)) == value

    def test_coordinate_outside_domain_raises(self):
        with pytest.raises(InvalidConfiguration):
            DiscreteLinear("l", 3, 9).coordinate(10)
        with pytest.raises(InvalidConfiguration):
            Categorical("c", (1, 2)).coordinate(3)

    @pytest.mark.parametrize("u", [-0.1, 1.5, float("nan")])
    def test_map_rejects_out_of_range(self, u):
        with pytest.raises(InvalidConfiguration):
            DiscreteLinear("l", 0, 5).map(u)

    def test_malformed_domains(self):
        with pytest.raises(SearchSpaceError, match="'c'"):
            Categorical("c", ())
        with pytest.raises(SearchSpaceError, match="high >= low"):
            DiscreteLinear("l", 5, 2)
        with pytest.raises(SearchSpaceError, match="low >= 1"):
            DiscreteLog("g", 0, 10)

    def test_domains_are_immutable(self):
        d = DiscreteLinear("l", 1, 3)
        with pytest.raises(AttributeError):
            d.low = 0


# ---------------------------------------------------------------------------
# Tests: ConfigurationSpace
# ---------------------------------------------------------------------------

class TestConfigurationSpace:
    def test_zero_dimensions(self):
        with pytest.raises(EmptySearchSpace):
            ConfigurationSpace.subset(0)
        with pytest.raises(EmptySearchSpace):
            ConfigurationSpace.hyperparameters([])

    def test_duplicate_names(self):
        with pytest.raises(SearchSpaceError, match="Duplicate"):
            ConfigurationSpace.subset(["a", "b", "a"])

    def test_validate_rejects_empty(self):
        space = ConfigurationSpace.subset(3)
        with pytest.raises(InvalidConfiguration, match="no dimensions"):
            space.validate((False, False, False))

    def test_validate_rejects_wrong_length(self):
        space = ConfigurationSpace.subset(3)
        with pytest.raises(InvalidConfiguration):
            space.validate((True, False))

    def test_validate_rejects_non_boolean(self):
        space = ConfigurationSpace.subset(2)
        with pytest.raises(InvalidConfiguration):
            space.validate((0.5, 1))

    def test_validate_canonicalises(self):
        space = ConfigurationSpace.subset(3)
        assert space.validate(np.array([1, 0, 1])) == (True, False, True)

    def test_subset_identifiers_round_trip(self):
        space = ConfigurationSpace.subset(["lag1", "lag2", "lag3", "lag4"])
        config = (False, True, False, True)
        ids = space.to_identifiers(config)
        assert ids == ["lag2", "lag4"]
        assert space.from_identifiers(ids) == config
        assert space.from_identifiers([1, 3]) == config

    def test_unknown_identifier(self):
        space = ConfigurationSpace.subset(["a", "b"])
        with pytest.raises(InvalidConfiguration):
            space.from_identifiers(["c"])

    def test_hyperparameter_identifiers_round_trip(self):
        space = ConfigurationSpace.hyperparameters([
            Categorical("n_estimators", (10, 50, 100)),
            DiscreteLog("min_samples_leaf", 1, 64),
        ])
        config = (0.9, 0.37)
        params = space.to_identifiers(config)
        rebuilt = space.from_identifiers(params)
        assert space.decode(rebuilt) == params

    def test_iter_subsets_order(self):
        space = ConfigurationSpace.subset(4)
        subsets = [space.included(c) for c in space.iter_subsets(2)]
        assert subsets[:4] == [(0,), (1,), (2,), (3,)]
        assert subsets[4:] == list(combinations(range(4), 2))

    def test_grid(self):
        space = ConfigurationSpace.hyperparameters([
            Categorical("n_estimators", (10, 50, 100)),
            Categorical("max_depth", (2, 5)),
        ])
        decoded = [space.decode(c) for c in space.grid()]
        assert len(decoded) == 6
        assert {(d["n_estimators"], d["max_depth"]) for d in decoded} == {
            (n, m) for n in (10, 50, 100) for m in (2, 5)
        }

    def test_random_subset_never_empty(self):
        space = ConfigurationSpace.subset(3)
        rng = np.random.default_rng(0)
        for _ in range(50):
            assert any(space.random(rng, init_prob=0.01))

    def test_greedy_helpers_need_subset_space(self):
        space = ConfigurationSpace.hyperparameters([DiscreteLinear("l", 1, 3)])
        with pytest.raises(SearchSpaceError):
            space.full()


# ---------------------------------------------------------------------------
# Tests: scorers
# ---------------------------------------------------------------------------

class TestInformationCriterionScorer:
    def test_deterministic(self):
        X, y = make_linear()
        space, scorer = bic_scorer(X, y, cache=False)
        config = space.from_indices([0, 3, 5])
        assert scorer.evaluate(config) == scorer.evaluate(config)

    def test_matches_formula(self):
        X, y = make_linear()
        space, scorer = bic_scorer(X, y)
        cols = [0, 1]
        design = np.column_stack([np.ones(len(y)), X[:, cols]])
        coef = np.linalg.lstsq(design, y, rcond=None)[0]
        rss = float(((y - design @ coef) ** 2).sum())
        n = len(y)
        loglik = -n / 2 * (np.log(2 * np.pi) + np.log(rss / n) + 1)
        expected = -2 * loglik + 4 * np.log(n)
        assert scorer.evaluate(space.from_indices(cols)) == pytest.approx(expected)

    def test_aic_penalty_is_smaller(self):
        X, y = make_linear()
        space, bic = bic_scorer(X, y)
        _, aic = bic_scorer(X, y, criterion="aic")
        config = space.from_indices([0, 1, 2])
        assert aic.evaluate(config) < bic.evaluate(config)

    def test_empty_configuration_raises(self):
        X, y = make_linear()
        space, scorer = bic_scorer(X, y)
        with pytest.raises(InvalidConfiguration):
            scorer.evaluate((False,) * space.n_dims)

    def test_intercept_fallback_policy(self):
        X, y = make_linear()
        space, scorer = bic_scorer(X, y, empty_policy="intercept")
        empty = scorer.evaluate((False,) * space.n_dims)
        assert np.isfinite(empty)
        assert empty > scorer.evaluate(space.from_indices(INFORMATIVE))

    def test_rank_deficient_raises_fit_failure(self):
        X, y = make_collinear()
        space, scorer = bic_scorer(X, y)
        with pytest.raises(ScorerFitFailure, match="rank"):
            scorer.evaluate((False, True, True))

    def test_column_mismatch(self):
        X, y = make_linear()
        with pytest.raises(SearchSpaceError):
            InformationCriterionScorer(ConfigurationSpace.subset(4), X, y)

    def test_identifier_round_trip_scores_identically(self):
        X, y = make_linear()
        space, scorer = bic_scorer(X, y, cache=False)
        config = space.from_indices([1, 4, 7])
        rebuilt = space.from_identifiers(space.to_identifiers(config))
        assert scorer.evaluate(rebuilt) == scorer.evaluate(config)

    def test_cache_avoids_refits(self):
        X, y = make_linear()
        space, scorer = bic_scorer(X, y)
        config = space.from_indices([0])
        scorer.evaluate(config)
        scorer.evaluate(config)
        assert scorer.n_fits == 1

    def test_clear_cache_forces_refit(self):
        X, y = make_linear()
        space, scorer = bic_scorer(X, y)
        config = space.from_indices([0, 1])
        first = scorer.scored(config)
        scorer.clear_cache()
        assert scorer.scored(config) == first
        assert first.n_included == 2
        assert scorer.n_fits == 2


class TestCrossValidatedScorer:
    def test_mean_validation_mse(self):
        X, y = make_linear(n=120)
        space = ConfigurationSpace.subset(X.shape[1])
        folds = make_fold_partition(len(X), 4, random_state=1)
        scorer = CrossValidatedScorer(space, X, y, LinearRegression(), folds)
        cols = [0, 2]
        expected = np.mean([
            mean_squared_error(
                y[va], LinearRegression().fit(X[tr][:, cols], y[tr]).predict(X[va][:, cols])
            )
            for tr, va in folds
        ])
        assert scorer.evaluate(space.from_indices(cols)) == pytest.approx(expected)

    def test_higher_is_better_metric_is_negated(self):
        X, y = load_breast_cancer(return_X_y=True)
        X = StandardScaler().fit_transform(X)
        space = ConfigurationSpace.subset(X.shape[1])
        folds = make_fold_partition(len(X), 3, y=y, stratify=True)
        scorer = CrossValidatedScorer(
            space, X, y, LogisticRegression(max_iter=1000), folds, scoring="roc_auc",
        )
        score = scorer.evaluate(space.from_indices([0, 1]))
        assert -1.0 <= score < -0.5

    def test_empty_configuration_raises(self):
        X, y = make_linear(n=60)
        space = ConfigurationSpace.subset(X.shape[1])
        folds = make_fold_partition(len(X), 3)
        scorer = CrossValidatedScorer(space, X, y, LinearRegression(), folds)
        with pytest.raises(InvalidConfiguration):
            scorer.evaluate((False,) * space.n_dims)

    def test_hyperparameters_are_applied(self):
        X, y = make_regression(n_samples=80, n_features=5, noise=5.0, random_state=0)
        space = ConfigurationSpace.hyperparameters([Categorical("alpha", (0.01, 1000.0))])
        folds = make_fold_partition(len(X), 3)
        scorer = CrossValidatedScorer(space, X, y, Ridge(), folds)
        low  = scorer.evaluate(space.from_identifiers({"alpha": 0.01}))
        high = scorer.evaluate(space.from_identifiers({"alpha": 1000.0}))
        assert low < high

    def test_unknown_hyperparameter_is_a_space_error(self):
        X, y = make_regression(n_samples=40, n_features=3, random_state=0)
        space = ConfigurationSpace.hyperparameters([Categorical("not_a_param", (1, 2))])
        folds = make_fold_partition(len(X), 3)
        scorer = CrossValidatedScorer(space, X, y, Ridge(), folds)
        with pytest.raises(SearchSpaceError):
            scorer.evaluate((0.25,))

    def test_fold_partition_is_reproducible(self):
        a = make_fold_partition(50, 5, random_state=7)
        b = make_fold_partition(50, 5, random_state=7)
        for (tr_a, va_a), (tr_b, va_b) in zip(a, b):
            np.testing.assert_array_equal(tr_a, tr_b)
            np.testing.assert_array_equal(va_a, va_b)

    def test_deterministic_without_cache(self):
        X, y = make_regression(n_samples=80, n_features=4, noise=5.0, random_state=0)
        space = ConfigurationSpace.subset(X.shape[1])
        folds = make_fold_partition(len(X), 3)
        scorer = CrossValidatedScorer(
            space, X, y, RandomForestRegressor(n_estimators=10, random_state=0), folds,
            cache=False,
        )
        config = space.from_indices([0, 2, 3])
        assert scorer.evaluate(config) == scorer.evaluate(config)
        assert scorer.n_fits == 2

    def test_rejected_hyperparameter_value_is_a_space_error(self):
        X, y = make_regression(n_samples=60, n_features=3, random_state=0)
        space = ConfigurationSpace.hyperparameters([Categorical("max_depth", (-3, 4))])
        folds = make_fold_partition(len(X), 3)
        scorer = CrossValidatedScorer(space, X, y, DecisionTreeRegressor(), folds)
        with pytest.raises(SearchSpaceError) as info:
            ExhaustiveSearch().search(space, scorer)
        assert info.value.details["params"] == {"max_depth": -3}

    def test_time_series_folds_keep_order(self):
        for tr, va in make_fold_partition(60, 4, time_series=True):
            assert tr.max() < va.min()


# ---------------------------------------------------------------------------
# Tests: batch evaluation
# ---------------------------------------------------------------------------

class TestEvaluateBatch:
    def test_failures_are_absorbed(self):
        X, y = make_collinear()
        space, scorer = bic_scorer(X, y)
        batch = evaluate_batch(scorer, [(True, False, False), (False, True, True)])
        assert batch.n_failures == 1
        assert np.isfinite(batch.scores[0])
        assert batch.scores[1] == np.inf
        assert batch.best().configuration == (True, False, False)

    def test_all_failed_is_fatal(self):
        space = ConfigurationSpace.subset(3)

        def broken(indices):
            raise FloatingPointError("diverged")

        scorer = CallableScorer(space, broken)
        with pytest.raises(AllCandidatesFailed):
            evaluate_batch(scorer, list(space.iter_subsets(1)), step="size 1")

    def test_invalid_configuration_propagates(self):
        X, y = make_linear()
        space, scorer = bic_scorer(X, y)
        with pytest.raises(InvalidConfiguration):
            evaluate_batch(scorer, [space.from_indices([0]), (False,) * space.n_dims])

    def test_parallel_matches_sequential(self):
        X, y = make_linear()
        space, scorer = bic_scorer(X, y, cache=False)
        configs = list(space.iter_subsets(2))
        seq = evaluate_batch(scorer, configs, n_jobs=1)
        par = evaluate_batch(scorer, configs, n_jobs=2)
        assert seq.scores == par.scores

    def test_summary_excludes_failures(self):
        X, y = make_collinear()
        space, scorer = bic_scorer(X, y)
        batch = evaluate_batch(scorer, [(True, False, False), (False, True, True)])
        entry = batch.summary(step=0)
        assert entry.best == entry.worst == batch.scores[0]
        assert entry.n_evaluations == 2 and entry.n_failures == 1


# ---------------------------------------------------------------------------
# Tests: ExhaustiveSearch
# ---------------------------------------------------------------------------

class TestExhaustiveSearch:
    def test_selects_informative_subset(self):
        X, y = make_linear()
        space, scorer = bic_scorer(X, y)
        result = ExhaustiveSearch(max_size=3).search(space, scorer)
        assert space.included(result.configuration) == INFORMATIVE
        assert result.identifiers == ["x0", "x1", "x2"]

        others = [
            scorer.evaluate(space.from_indices(c))
            for c in combinations(range(space.n_dims), 3) if c != INFORMATIVE
        ]
        assert result.score < min(others)

    def test_evaluation_count(self):
        X, y = make_linear()
        space, scorer = bic_scorer(X, y)
        result = ExhaustiveSearch(max_size=2).search(space, scorer)
        assert result.n_evaluations == 10 + 45 == n_candidates(space, 2)
        assert [e.step for e in result.trace] == [1, 2]
        assert [p.n_included for p in result.path] == [1, 2]

    def test_ties_go_to_first_enumerated(self):
        space = ConfigurationSpace.subset(4)
        scorer = CallableScorer(space, lambda indices: 1.0)
        result = ExhaustiveSearch(max_size=3).search(space, scorer)
        assert result.configuration == (True, False, False, False)

    def test_chunking_does_not_change_result(self):
        X, y = make_linear()
        space, scorer = bic_scorer(X, y)
        a = ExhaustiveSearch(max_size=3).search(space, scorer)
        b = ExhaustiveSearch(max_size=3, batch_size=7).search(space, scorer)
        assert a.best == b.best

    def test_failing_candidate_in_last_chunk_is_absorbed(self):
        X, y = make_linear()
        X[:, 9] = 1.0
        space, scorer = bic_scorer(X, y)
        chunked = ExhaustiveSearch(max_size=1, batch_size=3).search(space, scorer)
        whole = ExhaustiveSearch(max_size=1).search(space, scorer)
        assert chunked.identifiers == whole.identifiers == ["x0"]
        assert chunked.trace[0].n_evaluations == 10
        assert chunked.trace[0].n_failures == 1

    def test_step_where_every_chunk_fails_is_fatal(self):
        space = ConfigurationSpace.subset(5)

        def broken(indices):
            raise FloatingPointError("diverged")

        scorer = CallableScorer(space, broken)
        with pytest.raises(AllCandidatesFailed) as info:
            ExhaustiveSearch(max_size=1, batch_size=2).search(space, scorer)
        assert info.value.details == {"step": 1, "n_candidates": 5}

    def test_invalid_max_size(self):
        X, y = make_linear()
        space, scorer = bic_scorer(X, y)
        with pytest.raises(EmptySearchSpace):
            ExhaustiveSearch(max_size=0).search(space, scorer)

    def test_grid_search(self):
        space = ConfigurationSpace.hyperparameters([
            DiscreteLinear("a", 0, 4),
            Categorical("b", ("x", "y")),
        ])
        scorer = CallableScorer(space, lambda p: (p["a"] - 3) ** 2 + (p["b"] == "x"))
        result = ExhaustiveSearch().search(space, scorer)
        assert result.identifiers == {"a": 3, "b": "y"}
        assert result.n_evaluations == 10


# ---------------------------------------------------------------------------
# Tests: GreedySearch
# ---------------------------------------------------------------------------

class TestGreedySearch:
    def test_path_shape(self):
        X, y = make_linear()
        space, scorer = bic_scorer(X, y)
        result = GreedySearch().search(space, scorer)
        d = space.n_dims
        assert len(result.path) - 1 == d - 1
        sizes = [p.n_included for p in result.path]
        assert sizes == list(range(d, 0, -1))
        for prev, cur in zip(result.path, result.path[1:]):
            assert set(space.included(cur.configuration)) < set(space.included(prev.configuration))

    def test_best_seen_along_path(self):
        X, y = make_linear()
        space, scorer = bic_scorer(X, y)
        result = GreedySearch().search(space, scorer)
        assert result.score == min(p.score for p in result.path)
        assert set(INFORMATIVE) <= set(space.included(result.configuration))

    def test_ties_remove_lowest_index(self):
        space = ConfigurationSpace.subset(4)
        scorer = CallableScorer(space, lambda indices: 1.0)
        result = GreedySearch().search(space, scorer)
        assert result.path[1].configuration == (False, True, True, True)
        assert result.path[-1].configuration == (False, False, False, True)
        assert result.configuration == (True, True, True, True)

    def test_repeatable(self):
        X, y = make_linear()
        space, scorer = bic_scorer(X, y, cache=False)
        a = GreedySearch().search(space, scorer)
        b = GreedySearch().search(space, scorer)
        assert a.configuration == b.configuration
        assert a.score == b.score
        assert [p.configuration for p in a.path] == [p.configuration for p in b.path]

    def test_min_size(self):
        X, y = make_linear()
        space, scorer = bic_scorer(X, y)
        result = GreedySearch(min_size=3).search(space, scorer)
        assert result.path[-1].n_included == 3
        assert len(result.trace) == space.n_dims - 2

    def test_requires_subset_space(self):
        space = ConfigurationSpace.hyperparameters([DiscreteLinear("a", 0, 3)])
        scorer = CallableScorer(space, lambda p: float(p["a"]))
        with pytest.raises(SearchSpaceError):
            GreedySearch().search(space, scorer)

    def test_failed_candidates_are_skipped(self):
        X, y = make_collinear()
        space, scorer = bic_scorer(X, y)
        result = GreedySearch().search(space, scorer)
        assert result.path[0].score == np.inf
        assert np.isfinite(result.score)
        assert 0 in space.included(result.configuration)


class TestExhaustiveDominates:
    def test_exhaustive_not_worse_than_other_strategies(self):
        X, y = make_linear(n=150, n_features=6, rng=np.random.default_rng(11))
        space, scorer = bic_scorer(X, y)
        exhaustive = ExhaustiveSearch(max_size=space.n_dims).search(space, scorer)
        greedy = GreedySearch().search(space, scorer)
        genetic = GeneticSearch(
            GeneticSettings(population_size=12, generations=8), random_state=4,
        ).search(space, scorer)
        assert exhaustive.score <= greedy.score
        assert exhaustive.score <= genetic.score


# ---------------------------------------------------------------------------
# Tests: EvaluationHarness
# ---------------------------------------------------------------------------

class TestEvaluationHarness:
    def test_scorer_never_sees_comparison_rows(self):
        X, y = make_linear()
        harness = EvaluationHarness(X, y, selection="bic", test_size=0.25, shuffle=False)
        assert len(harness.scorer.y) == len(harness.y_train) == 150
        assert len(harness.y_cmp) == 50
        np.testing.assert_array_equal(harness.X_cmp, X[150:])

    def test_run_reports_both_losses(self):
        X, y = make_linear()
        harness = EvaluationHarness(X, y, selection="bic", shuffle=False)
        result = harness.run(ExhaustiveSearch(max_size=3))
        assert result.identifiers == ["x0", "x1", "x2"]
        assert result.selection_score == result.search.score
        assert result.overfit_gap == pytest.approx(result.comparison_score - result.train_score)
        assert 0.1 < result.comparison_score < 0.5

    def test_compare_uses_shared_folds(self):
        X, y = make_linear(n=120, n_features=6)
        harness = EvaluationHarness(X, y, selection="cv", n_splits=4)
        folds_before = harness.scorer.folds
        report = harness.compare({
            "exhaustive": ExhaustiveSearch(max_size=3),
            "greedy": GreedySearch(),
            "genetic": GeneticSearch(GeneticSettings(population_size=10, generations=5)),
        }, seeds={"genetic": 2})
        assert harness.scorer.folds is folds_before
        assert list(report.results) == ["exhaustive", "greedy", "genetic"]
        assert len(report["genetic"].runs) == 2
        best = report.best()
        assert best.comparison_score == min(r.comparison_score for r in report.results.values())
        assert "exhaustive" in report.summary()
        assert len(report.as_records()) == 3

    def test_explicit_comparison_set(self):
        X, y = make_linear(n=200)
        harness = EvaluationHarness(X[:150], y[:150], selection="aic",
                                    comparison=(X[150:], y[150:]))
        assert len(harness.y_train) == 150
        result = harness.run(GreedySearch())
        assert np.isfinite(result.comparison_score)

    def test_hyperparameter_space(self):
        X, y = make_regression(n_samples=100, n_features=4, noise=10.0, random_state=2)
        space = ConfigurationSpace.hyperparameters([
            Categorical("alpha", (0.01, 1.0, 100.0)),
        ])
        harness = EvaluationHarness(X, y, space, estimator=Ridge(), n_splits=3)
        result = harness.run(ExhaustiveSearch())
        assert result.identifiers["alpha"] in (0.01, 1.0, 100.0)

    def test_seeds_require_population_search(self):
        X, y = make_linear()
        harness = EvaluationHarness(X, y, selection="bic")
        with pytest.raises(ValueError, match="seeds"):
            harness.run(GreedySearch(), seeds=3)

    def test_mismatched_space(self):
        X, y = make_linear()
        with pytest.raises(SearchSpaceError):
            EvaluationHarness(X, y, ConfigurationSpace.subset(3), selection="bic")

    def test_refit_rejects_invalid_hyperparameter_value(self):
        X, y = make_regression(n_samples=60, n_features=3, random_state=0)
        space = ConfigurationSpace.hyperparameters([Categorical("max_depth", (-3, 4))])
        harness = EvaluationHarness(X, y, space, estimator=DecisionTreeRegressor(),
                                    n_splits=3)
        with pytest.raises(SearchSpaceError) as info:
            harness.refit(space.from_identifiers({"max_depth": -3}))
        assert info.value.details["params"] == {"max_depth": -3}
        est, cols = harness.refit(space.from_identifiers({"max_depth": 4}))
        assert cols is None and est.get_depth() <= 4


# ---------------------------------------------------------------------------
# Tests: SubsetSelector
# ---------------------------------------------------------------------------

class TestSubsetSelector:
    def test_fit_returns_self(self):
        X, y = load_diabetes(return_X_y=True)
        sel = SubsetSelector()
        assert sel.fit(X, y) is sel

    def test_transform_shape(self):
        X, y = load_diabetes(return_X_y=True)
        sel = SubsetSelector(strategy=ExhaustiveSearch(max_size=2))
        sel.fit(X, y)
        assert sel.transform(X).shape == (len(X), len(sel.selected_features_))
        assert 1 <= len(sel.selected_features_) <= 2

    def test_recovers_informative(self):
        X, y = make_linear()
        sel = SubsetSelector(strategy=ExhaustiveSearch(max_size=3)).fit(X, y)
        assert sel.selected_features_ == INFORMATIVE

    def test_get_support(self):
        X, y = make_linear()
        sel = SubsetSelector().fit(X, y)
        mask = sel.get_support()
        assert mask.shape == (X.shape[1],)
        assert set(sel.get_support(indices=True)) == set(sel.selected_features_)

    def test_get_feature_names_out(self):
        X, y = make_linear()
        names = [f"lag{i}" for i in range(X.shape[1])]
        sel = SubsetSelector(strategy=ExhaustiveSearch(max_size=3)).fit(X, y)
        assert list(sel.get_feature_names_out(names)) == ["lag0", "lag1", "lag2"]

    def test_cv_selection_with_genetic_runs(self):
        X, y = make_linear(n=120, n_features=6)
        sel = SubsetSelector(
            strategy=GeneticSearch(GeneticSettings(population_size=16, generations=8)),
            selection="cv", estimator=Ridge(alpha=0.1), cv=3, n_runs=2,
        )
        sel.fit(X, y)
        assert set(INFORMATIVE) <= set(sel.selected_features_)

    def test_sklearn_pipeline_compatible(self):
        X, y = load_diabetes(return_X_y=True)
        pipe = Pipeline([
            ("scale", StandardScaler()),
            ("sel",   SubsetSelector(strategy=GreedySearch())),
            ("reg",   Ridge()),
        ])
        pipe.fit(X, y)
        assert len(pipe.predict(X)) == len(y)

    def test_invalid_selection_raises(self):
        X, y = make_linear()
        with pytest.raises(ValueError, match="selection"):
            SubsetSelector(selection="pvalue").fit(X, y)

    def test_summary_is_string(self):
        X, y = make_linear()
        sel = SubsetSelector().fit(X, y)
        assert isinstance(sel.summary(), str)

    def test_not_fitted_raises(self):
        from sklearn.exceptions import NotFittedError
        with pytest.raises(NotFittedError):
            SubsetSelector().transform(np.zeros((5, 4)))
