"""
Example 3 – Using Scorers Directly
==================================
Sometimes you just want a score for a given subset, without running a
search.  This example shows the low-level API: a subset space, the BIC
scorer, and backward elimination's path.
"""

import numpy as np
from config_search import ConfigurationSpace, GreedySearch, InformationCriterionScorer

# ---------------------------------------------------------------------------
# Synthetic dataset: 2 informative features + 3 noise features
# ---------------------------------------------------------------------------
rng = np.random.default_rng(0)
n   = 200

X = rng.normal(size=(n, 5))
y = 2.0 * X[:, 0] - 1.0 * X[:, 1] + rng.normal(0, 0.5, n)

space  = ConfigurationSpace.subset(["a", "b", "noise1", "noise2", "noise3"])
scorer = InformationCriterionScorer(space, X, y)

print("Features a, b = informative | noise1..3 = noise\n")

# ---------------------------------------------------------------------------
# Score specific subsets
# ---------------------------------------------------------------------------
for names in (["a", "b"], ["noise1", "noise2"], ["a"], ["a", "b", "noise1"]):
    config = space.from_identifiers(names)
    print(f"  BIC{tuple(names)} = {scorer.evaluate(config):.2f}")

# ---------------------------------------------------------------------------
# Backward elimination path
# ---------------------------------------------------------------------------
print("\nBackward elimination:")
result = GreedySearch().search(space, scorer)
for step, scored in enumerate(result.path):
    print(f"  step {step}  {space.to_identifiers(scored.configuration)}  "
          f"BIC={scored.score:.2f}")
print(f"\nSelected: {result.identifiers}")
