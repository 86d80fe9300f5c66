"""
config_search.population
========================
Population-based stochastic search: a genetic algorithm over inclusion
masks and a particle swarm over normalized hyperparameter coordinates.

Both share one generational loop::

    population = initialize(space, rng)
    for generation in range(G):
        evaluate every individual                      (one batch)
        update personal bests (swarm) and the global best
        population = vary(population, space, rng)      (skipped after the last)
    return global best

The global best is replaced only by a strictly lower score, so the recorded
best is monotonically non-increasing over generations.

All state lives in an explicit :class:`Population` value handed to and
returned from each step, and every random draw comes from the
``numpy.random.Generator`` passed in, so independent runs with different
seeds can execute side by side.  Single runs vary from seed to seed; use
:func:`best_of_runs` to keep the best of several (five or more is a
sensible default for feature-selection problems).

Genetic algorithm
-----------------
* **selection** – tournament of size ``T``: draw ``T`` individuals
  uniformly with replacement, keep the lowest score; repeat ``P`` times.
* **crossover** – consecutive pairs of the mating pool swap the tail after
  a random cut point with probability ``cxpb``.
* **mutation** – every bit flips independently with probability
  ``mutpb`` (``1 / d`` when unset).
* an offspring with no bit set gets one random bit switched on, so the
  empty configuration is never scored.

Particle swarm
--------------
Per dimension::

    v' = v + U(0, φ1)·(personal_best − x) + U(0, φ2)·(global_best − x)
    v' = sign(v') · min(|v'|, vmax)
    x' = clip(x + v', 0, 1)

and ``vmax`` is multiplied by ``vmax_decay`` after every generation so the
swarm settles.  Positions are decoded through each domain's ``map``.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Sequence

import numpy as np

from .evaluation import BatchResult, SearchResult, SearchTrace, evaluate_batch, first_best
from .exceptions import EmptySearchSpace, SearchSpaceError
from .scoring import ScoredConfiguration, Scorer
from .space import Configuration, ConfigurationSpace


__all__ = [
    "GeneticSettings",
    "SwarmSettings",
    "Individual",
    "Population",
    "PopulationSearch",
    "GeneticSearch",
    "SwarmSearch",
    "RunsResult",
    "best_of_runs",
    "tournament_select",
    "one_point_crossover",
    "flip_bit_mutation",
    "update_particle",
]

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class GeneticSettings:
    """Genetic algorithm parameters.

    Attributes:
        population_size: Individuals per generation (P).
        generations: Number of evaluated generations (G).
        tournament_size: Individuals drawn per tournament (T).
        cxpb: Probability that a pair of parents is crossed over.
        mutpb: Per-bit flip probability; ``None`` means ``1 / d``.
        init_prob: Probability that a bit is set in the initial population.
    """
    population_size: int = 50
    generations: int = 40
    tournament_size: int = 3
    cxpb: float = 0.6
    mutpb: float | None = None
    init_prob: float = 0.5

    def __post_init__(self):
        if self.population_size < 2:
            raise ValueError("population_size must be >= 2")
        if self.generations < 1:
            raise ValueError("generations must be >= 1")
        if self.tournament_size < 1:
            raise ValueError("tournament_size must be >= 1")
        if not 0.0 <= self.cxpb <= 1.0:
            raise ValueError("cxpb must lie in [0, 1]")
        if self.mutpb is not None and not 0.0 <= self.mutpb <= 1.0:
            raise ValueError("mutpb must lie in [0, 1]")
        if not 0.0 < self.init_prob <= 1.0:
            raise ValueError("init_prob must lie in (0, 1]")


@dataclass(frozen=True)
class SwarmSettings:
    """Particle swarm parameters.

    Attributes:
        n_particles: Swarm size (P).
        generations: Number of evaluated generations (G).
        phi1: Upper bound of the cognitive (personal-best) coefficient.
        phi2: Upper bound of the social (global-best) coefficient.
        vmax: Initial velocity magnitude cap, in normalized units.
        vmax_decay: Factor applied to ``vmax`` after every generation.
    """
    n_particles: int = 20
    generations: int = 20
    phi1: float = 2.0
    phi2: float = 2.0
    vmax: float = 0.5
    vmax_decay: float = 0.95

    def __post_init__(self):
        if self.n_particles < 1:
            raise ValueError("n_particles must be >= 1")
        if self.generations < 1:
            raise ValueError("generations must be >= 1")
        if self.phi1 < 0 or self.phi2 < 0:
            raise ValueError("phi1 and phi2 must be non-negative")
        if self.vmax <= 0:
            raise ValueError("vmax must be positive")
        if not 0.0 < self.vmax_decay <= 1.0:
            raise ValueError("vmax_decay must lie in (0, 1]")


# ---------------------------------------------------------------------------
# Population state
# ---------------------------------------------------------------------------

@dataclass
class Individual:
    """One candidate.  Particles additionally carry a velocity and their
    personal best."""

    configuration: Configuration
    score: float = math.inf
    velocity: np.ndarray | None = None
    best_configuration: Configuration | None = None
    best_score: float = math.inf

    def update_personal_best(self) -> bool:
        if self.score < self.best_score:
            self.best_score = self.score
            self.best_configuration = self.configuration
            return True
        return False


@dataclass
class Population:
    """Candidates of the current generation plus the run's global best."""

    individuals: list[Individual]
    generation: int = 0
    best: ScoredConfiguration | None = None
    vmax: float | None = None

    def __len__(self) -> int:
        return len(self.individuals)

    @property
    def configurations(self) -> list[Configuration]:
        return [ind.configuration for ind in self.individuals]

    @property
    def scores(self) -> list[float]:
        return [ind.score for ind in self.individuals]

    def assign(self, batch: BatchResult):
        for ind, score in zip(self.individuals, batch.scores):
            ind.score = score

    def update_best(self) -> bool:
        """Replace the global best only on a strictly lower score."""
        i = first_best(self.scores)
        candidate = self.individuals[i]
        if self.best is None or candidate.score < self.best.score:
            self.best = ScoredConfiguration(candidate.configuration, candidate.score)
            return True
        return False


# ---------------------------------------------------------------------------
# Variation operators
# ---------------------------------------------------------------------------

def tournament_select(
    scores: Sequence[float],
    k: int,
    tournament_size: int,
    rng: np.random.Generator,
) -> list[int]:
    """Indices of ``k`` tournament winners, drawn with replacement."""
    scores = np.asarray(scores, dtype=float)
    winners = []
    for _ in range(k):
        aspirants = rng.integers(len(scores), size=tournament_size)
        winners.append(int(aspirants[first_best(scores[aspirants])]))
    return winners


def one_point_crossover(
    a: list, b: list, rng: np.random.Generator
) -> tuple[list, list]:
    """Swap the tails of ``a`` and ``b`` after a random cut in ``1..n-1``."""
    n = len(a)
    if n < 2:
        return a, b
    cut = int(rng.integers(1, n))
    return a[:cut] + b[cut:], b[:cut] + a[cut:]


def flip_bit_mutation(bits: list, indpb: float, rng: np.random.Generator) -> list:
    flips = rng.random(len(bits)) < indpb
    return [bool(v) != bool(f) for v, f in zip(bits, flips)]


def update_particle(
    particle: Individual,
    global_best: Configuration,
    phi1: float,
    phi2: float,
    vmax: float,
    rng: np.random.Generator,
):
    """Apply one velocity/position update to ``particle`` in place."""
    x = np.asarray(particle.configuration, dtype=float)
    p = (
        np.asarray(particle.best_configuration, dtype=float)
        if particle.best_configuration is not None else x
    )
    g = np.asarray(global_best, dtype=float)
    u1 = rng.uniform(0.0, phi1, x.size)
    u2 = rng.uniform(0.0, phi2, x.size)
    v = particle.velocity + u1 * (p - x) + u2 * (g - x)
    speed = np.abs(v)
    too_fast = speed > vmax
    v[too_fast] = np.copysign(vmax, v[too_fast])
    particle.velocity = v
    particle.configuration = tuple(float(u) for u in np.clip(x + v, 0.0, 1.0))
    particle.score = math.inf


# ---------------------------------------------------------------------------
# Generational loop
# ---------------------------------------------------------------------------

class PopulationSearch:
    """Shared generational control loop.

    Subclasses implement :meth:`initialize` and :meth:`vary`, and may
    override :meth:`after_evaluation`.

    Parameters
    ----------
    settings : GeneticSettings or SwarmSettings
    random_state : int, Generator or None
        Default seed of :meth:`search`.
    n_jobs : int, default=1
        joblib worker count for evaluating one generation.
    backend : str, default="threading"
    """

    name = "population"
    space_kind = ConfigurationSpace.SUBSET

    def __init__(self, settings, *, random_state=None, n_jobs: int | None = 1,
                 backend: str = "threading"):
        self.settings     = settings
        self.random_state = random_state
        self.n_jobs       = n_jobs
        self.backend      = backend

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.settings!r})"

    @property
    def generations(self) -> int:
        return self.settings.generations

    def initialize(self, space: ConfigurationSpace,
                   rng: np.random.Generator) -> Population:  # pragma: no cover
        raise NotImplementedError

    def vary(self, population: Population, space: ConfigurationSpace,
             rng: np.random.Generator) -> Population:  # pragma: no cover
        raise NotImplementedError

    def after_evaluation(self, population: Population):
        pass

    def evaluate(self, population: Population, scorer: Scorer) -> BatchResult:
        batch = evaluate_batch(
            scorer, population.configurations, step=population.generation,
            n_jobs=self.n_jobs, backend=self.backend,
        )
        population.assign(batch)
        self.after_evaluation(population)
        population.update_best()
        return batch

    def search(self, space: ConfigurationSpace, scorer: Scorer,
               random_state=None) -> SearchResult:
        """Run ``generations`` generations and return the global best.

        Parameters
        ----------
        space : ConfigurationSpace
        scorer : Scorer
        random_state : int, Generator or None
            Overrides the constructor seed for this run.
        """
        if space.n_dims == 0:
            raise EmptySearchSpace("Configuration space declares zero dimensions.")
        if space.kind != self.space_kind:
            raise SearchSpaceError(
                f"{type(self).__name__} requires a {self.space_kind} space, "
                f"got {space.kind}.",
                {"kind": space.kind},
            )
        seed = self.random_state if random_state is None else random_state
        rng  = np.random.default_rng(seed)

        population = self.initialize(space, rng)
        trace = SearchTrace()
        path: list[ScoredConfiguration] = []
        logger.info("%s: %d individuals x %d generations over %d dims",
                    self.name, len(population), self.generations, space.n_dims)

        for generation in range(self.generations):
            population.generation = generation
            batch = self.evaluate(population, scorer)
            trace.append(batch.summary(generation))
            path.append(population.best)
            logger.debug("generation %d: best=%.6g mean=%.6g global=%.6g",
                         generation, trace[-1].best, trace[-1].mean,
                         population.best.score)
            if generation < self.generations - 1:
                population = self.vary(population, space, rng)

        result = SearchResult(best=population.best, space=space, strategy=self.name,
                              trace=trace, path=path,
                              seed=seed if not isinstance(seed, np.random.Generator) else None)
        logger.info("%s done: %s score=%.6g (%d evaluations)",
                    self.name, result.identifiers, result.score, result.n_evaluations)
        return result


class GeneticSearch(PopulationSearch):
    """Genetic algorithm over inclusion masks (subset spaces)."""

    name = "genetic"
    space_kind = ConfigurationSpace.SUBSET

    def __init__(self, settings: GeneticSettings | None = None, **kwargs):
        super().__init__(settings or GeneticSettings(), **kwargs)

    def initialize(self, space, rng):
        return Population([
            Individual(space.random(rng, self.settings.init_prob))
            for _ in range(self.settings.population_size)
        ])

    def vary(self, population, space, rng):
        s = self.settings
        n = len(population)
        indpb = s.mutpb if s.mutpb is not None else 1.0 / space.n_dims

        pool = [
            list(population.individuals[i].configuration)
            for i in tournament_select(population.scores, n, s.tournament_size, rng)
        ]
        for i in range(0, n - 1, 2):
            if rng.random() < s.cxpb:
                pool[i], pool[i + 1] = one_point_crossover(pool[i], pool[i + 1], rng)

        offspring = []
        for bits in pool:
            bits = flip_bit_mutation(bits, indpb, rng)
            if not any(bits):
                bits[int(rng.integers(len(bits)))] = True
            offspring.append(Individual(tuple(bits)))

        return Population(offspring, generation=population.generation + 1,
                          best=population.best)


class SwarmSearch(PopulationSearch):
    """Particle swarm over normalized coordinates (hyperparameter spaces)."""

    name = "swarm"
    space_kind = ConfigurationSpace.HYPERPARAMETER

    def __init__(self, settings: SwarmSettings | None = None, **kwargs):
        super().__init__(settings or SwarmSettings(), **kwargs)

    def initialize(self, space, rng):
        s = self.settings
        particles = [
            Individual(
                space.random(rng),
                velocity=rng.uniform(-s.vmax, s.vmax, space.n_dims),
            )
            for _ in range(s.n_particles)
        ]
        return Population(particles, vmax=s.vmax)

    def after_evaluation(self, population):
        for particle in population.individuals:
            particle.update_personal_best()

    def vary(self, population, space, rng):
        s = self.settings
        for particle in population.individuals:
            update_particle(particle, population.best.configuration,
                            s.phi1, s.phi2, population.vmax, rng)
        population.vmax *= s.vmax_decay
        population.generation += 1
        return population


# ---------------------------------------------------------------------------
# Independent restarts
# ---------------------------------------------------------------------------

@dataclass
class RunsResult:
    """Best run of several independent seeds, plus every run."""

    best: SearchResult
    runs: list[SearchResult] = field(default_factory=list)

    @property
    def scores(self) -> list[float]:
        return [r.score for r in self.runs]


def best_of_runs(
    search: PopulationSearch,
    space: ConfigurationSpace,
    scorer: Scorer,
    seeds: Sequence[Any] | int = 5,
) -> RunsResult:
    """Repeat a stochastic search with independent seeds; keep the best.

    ``seeds`` is either an explicit list or a run count, in which case the
    seeds are ``0..seeds-1``.
    """
    if isinstance(seeds, int):
        seeds = list(range(seeds))
    if not seeds:
        raise ValueError("best_of_runs needs at least one seed.")
    runs = [search.search(space, scorer, random_state=seed) for seed in seeds]
    best = runs[first_best([r.score for r in runs])]
    logger.info("best of %d runs: seed=%s score=%.6g (run scores %s)",
                len(runs), best.seed, best.score,
                ", ".join(f"{r.score:.4g}" for r in runs))
    return RunsResult(best=best, runs=runs)
