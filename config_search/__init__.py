"""
config_search
=============
Budgeted search over feature subsets and hyperparameter grids.

Two everyday model-selection tasks share one abstract problem:

* choosing which lagged predictors enter an autoregressive model, and
* choosing the hyperparameters of an ensemble model.

Both amount to finding a low-scoring point of a configuration space that is
too large to enumerate, under a fixed number of model fits.  The package
keeps the three ingredients separate and pluggable:

**Spaces**
    ``ConfigurationSpace.subset`` (binary inclusion masks) and
    ``ConfigurationSpace.hyperparameters`` (normalized coordinates decoded
    through ``Categorical``, ``DiscreteLinear`` and ``DiscreteLog`` domains).

**Scorers** (lower is better)
    ``InformationCriterionScorer`` (BIC/AIC of an OLS fit) and
    ``CrossValidatedScorer`` (mean validation loss of any scikit-learn
    estimator over a fixed fold partition).

**Strategies**
    ``ExhaustiveSearch`` (best subset / grid), ``GreedySearch`` (backward
    elimination), ``GeneticSearch`` and ``SwarmSearch`` (population-based).

``EvaluationHarness`` runs strategies on the same split and folds and
reports the selection, training and held-out comparison losses of each
pick, so strategies can be compared fairly.  ``SubsetSelector`` wraps a
subset search as a scikit-learn transformer.

Public API
----------
ConfigurationSpace, Categorical, DiscreteLinear, DiscreteLog
InformationCriterionScorer, CrossValidatedScorer, CallableScorer
ExhaustiveSearch, GreedySearch, GeneticSearch, SwarmSearch, best_of_runs
EvaluationHarness, make_fold_partition, split_comparison
SubsetSelector
"""

import logging

from .exceptions import (
    AllCandidatesFailed,
    ConfigSearchError,
    EmptySearchSpace,
    InvalidConfiguration,
    ScorerFitFailure,
    SearchSpaceError,
)
from .space      import Categorical, ConfigurationSpace, DiscreteLinear, DiscreteLog, Domain
from .scoring    import (
    CallableScorer,
    CrossValidatedScorer,
    InformationCriterionScorer,
    ScoredConfiguration,
    Scorer,
)
from .evaluation import SearchResult, SearchTrace, TraceEntry, evaluate_batch
from .exhaustive import ExhaustiveSearch
from .greedy     import GreedySearch
from .population import (
    GeneticSearch,
    GeneticSettings,
    Population,
    PopulationSearch,
    SwarmSearch,
    SwarmSettings,
    best_of_runs,
)
from .harness    import EvaluationHarness, make_fold_partition, split_comparison
from .selector   import SubsetSelector

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "AllCandidatesFailed",
    "Categorical",
    "CallableScorer",
    "ConfigSearchError",
    "ConfigurationSpace",
    "CrossValidatedScorer",
    "DiscreteLinear",
    "DiscreteLog",
    "Domain",
    "EmptySearchSpace",
    "EvaluationHarness",
    "ExhaustiveSearch",
    "GeneticSearch",
    "GeneticSettings",
    "GreedySearch",
    "InformationCriterionScorer",
    "InvalidConfiguration",
    "Population",
    "PopulationSearch",
    "ScoredConfiguration",
    "Scorer",
    "ScorerFitFailure",
    "SearchResult",
    "SearchSpaceError",
    "SearchTrace",
    "SubsetSelector",
    "SwarmSearch",
    "SwarmSettings",
    "TraceEntry",
    "best_of_runs",
    "evaluate_batch",
    "make_fold_partition",
    "split_comparison",
]

__version__ = "0.1.0"
