"""
Example 2 – Random Forest Hyperparameters by Particle Swarm
===========================================================
Tune ``n_estimators`` (1..500, logarithmic), ``max_depth`` (1..12) and
``max_features`` of a random forest with a particle swarm, and compare it
against a coarse grid search under the same 5-fold partition.

Dataset : scikit-learn diabetes (442 samples, 10 features)
Metric  : mean cross-validated MSE (lower is better)
"""

import numpy as np
from sklearn.datasets import load_diabetes
from sklearn.ensemble import RandomForestRegressor

from config_search import (
    Categorical,
    ConfigurationSpace,
    DiscreteLinear,
    DiscreteLog,
    EvaluationHarness,
    ExhaustiveSearch,
    SwarmSearch,
    SwarmSettings,
)

X, y = load_diabetes(return_X_y=True)
forest = RandomForestRegressor(random_state=0, n_jobs=1)

# ---------------------------------------------------------------------------
# 1. Swarm over the full space
# ---------------------------------------------------------------------------
space = ConfigurationSpace.hyperparameters([
    DiscreteLog("n_estimators", 1, 500),
    DiscreteLinear("max_depth", 1, 12),
    Categorical("max_features", (0.3, 0.6, 1.0)),
])

harness = EvaluationHarness(X, y, space, estimator=forest, n_splits=5, random_state=0)
swarm = harness.run(
    SwarmSearch(SwarmSettings(n_particles=12, generations=10), n_jobs=-1),
    seeds=3,
)

# ---------------------------------------------------------------------------
# 2. Coarse grid over the same estimator, split and folds
# ---------------------------------------------------------------------------
grid_space = ConfigurationSpace.hyperparameters([
    Categorical("n_estimators", (10, 50, 100)),
    Categorical("max_depth", (2, 5)),
    Categorical("max_features", (0.3, 1.0)),
])
grid_harness = EvaluationHarness(X, y, grid_space, estimator=forest, n_splits=5,
                                 random_state=0)
grid = grid_harness.run(ExhaustiveSearch(n_jobs=-1))

for result in (swarm, grid):
    print(f"{result.name:<12} {result.identifiers}")
    print(f"{'':<12} CV MSE={result.selection_score:.1f}  "
          f"train MSE={result.train_score:.1f}  "
          f"held-out MSE={result.comparison_score:.1f}  "
          f"gap={result.overfit_gap:.1f}")

print("\nSwarm runs:", np.round([r.score for r in swarm.runs], 1))
print("\nPer-generation best of the winning swarm run:")
for entry in swarm.search.trace:
    print(f"  gen {entry.step:>2}: best={entry.best:.1f} mean={entry.mean:.1f}")
