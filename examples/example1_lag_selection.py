"""
Example 1 – Lag Selection for an Autoregressive Model
=====================================================
Which of the last 20 lags of a series belong in a linear AR model?

Dataset : simulated AR process driven by lags 1, 2 and 12 (1 000 points)
Task    : select the lag subset minimising BIC on the first 75 % of the
          series, then compare strategies on the last 25 %
Search  : best subset (up to 4 lags), backward elimination, genetic
          algorithm (best of 5 seeds)
"""

import logging

import numpy as np

from config_search import (
    ConfigurationSpace,
    EvaluationHarness,
    ExhaustiveSearch,
    GeneticSearch,
    GeneticSettings,
    GreedySearch,
)

logging.basicConfig(level=logging.INFO, format="%(name)s: %(message)s")

# ---------------------------------------------------------------------------
# 1. Simulate the series and build the lag matrix
# ---------------------------------------------------------------------------
rng = np.random.default_rng(0)
n, n_lags = 1000, 20

series = np.zeros(n + n_lags)
for t in range(12, len(series)):
    series[t] = (0.5 * series[t - 1] - 0.3 * series[t - 2]
                 + 0.4 * series[t - 12] + rng.normal())

X = np.column_stack([series[n_lags - k: len(series) - k] for k in range(1, n_lags + 1)])
y = series[n_lags:]
lag_names = [f"lag{k}" for k in range(1, n_lags + 1)]

print(f"Dataset: {X.shape[0]} observations, {X.shape[1]} candidate lags")

# ---------------------------------------------------------------------------
# 2. Compare strategies on a time-ordered split
# ---------------------------------------------------------------------------
harness = EvaluationHarness(
    X, y,
    ConfigurationSpace.subset(lag_names),
    selection="bic",
    test_size=0.25,
    shuffle=False,
)

report = harness.compare(
    {
        "best subset": ExhaustiveSearch(max_size=4),
        "backward":    GreedySearch(),
        "genetic":     GeneticSearch(GeneticSettings(population_size=40, generations=30)),
    },
    seeds={"genetic": 5},
)

print()
print(report.summary())
print(f"\nLowest comparison MSE: {report.best().name} -> {report.best().identifiers}")
