"""
config_search.space
===================
Configuration spaces and the per-dimension domains they are built from.

Two kinds of space are supported:

* **subset** spaces, where a configuration is a boolean inclusion mask over
  feature indices (best-subset, backward elimination, GA feature selection);
* **hyperparameter** spaces, where a configuration is a vector of normalized
  coordinates in ``[0, 1]``, one per :class:`Domain`, decoded into actual
  values with :meth:`Domain.map` (grid search, particle swarm).

Configurations are plain tuples, so they are immutable and hashable and can
be handed to concurrent workers without copying.

Domains
-------
Each domain maps a normalized coordinate to a legal value::

    Categorical("max_depth", (2, 5)).map(0.7)        -> 5
    DiscreteLinear("n_lags", 1, 12).map(0.5)         -> 7
    DiscreteLog("n_estimators", 1, 1000).map(0.5)    -> 31

``DiscreteLog`` rescales with ``(high - low + 1) ** u + low - 1`` before
flooring, which spreads a bounded-precision coordinate over several orders
of magnitude.  ``coordinate(value)`` is the inverse used for grid
enumeration: it returns the centre of the value's cell, so
``map(coordinate(v)) == v`` for every legal ``v``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from itertools import combinations, product
from numbers import Integral
from typing import Any, Iterator, Mapping, Sequence

import numpy as np

from .exceptions import EmptySearchSpace, InvalidConfiguration, SearchSpaceError


__all__ = [
    "Configuration",
    "Domain",
    "Categorical",
    "DiscreteLinear",
    "DiscreteLog",
    "ConfigurationSpace",
]


Configuration = tuple


# ---------------------------------------------------------------------------
# Domains
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Domain:
    """Legal values of one hyperparameter dimension."""

    name: str

    def map(self, u: float) -> Any:  # pragma: no cover - interface
        raise NotImplementedError

    def values(self) -> tuple:  # pragma: no cover - interface
        raise NotImplementedError

    def coordinate(self, value: Any) -> float:  # pragma: no cover - interface
        raise NotImplementedError

    @property
    def size(self) -> int:
        return len(self.values())

    @staticmethod
    def _check_unit(u: float) -> float:
        u = float(u)
        if not math.isfinite(u) or u < 0.0 or u > 1.0:
            raise InvalidConfiguration(
                f"Normalized coordinate must lie in [0, 1], got {u!r}.",
                {"coordinate": u},
            )
        return u

    def _not_in_domain(self, value: Any) -> InvalidConfiguration:
        return InvalidConfiguration(
            f"Value {value!r} is outside domain {self!r}.",
            {"domain": self.name, "value": value},
        )


@dataclass(frozen=True)
class Categorical(Domain):
    """An ordered set of arbitrary values (e.g. candidate tree depths)."""

    choices: tuple = ()

    def __post_init__(self):
        object.__setattr__(self, "choices", tuple(self.choices))
        if not self.choices:
            raise SearchSpaceError(
                f"Categorical domain {self.name!r} requires at least one choice.",
                {"domain": self.name},
            )
        if len(set(map(repr, self.choices))) != len(self.choices):
            raise SearchSpaceError(
                f"Categorical domain {self.name!r} has duplicate choices.",
                {"domain": self.name, "choices": self.choices},
            )

    def map(self, u: float) -> Any:
        u = self._check_unit(u)
        n = len(self.choices)
        return self.choices[min(int(math.floor(u * n)), n - 1)]

    def values(self) -> tuple:
        return self.choices

    def coordinate(self, value: Any) -> float:
        if value not in self.choices:
            raise self._not_in_domain(value)
        return (self.choices.index(value) + 0.5) / len(self.choices)

    def __contains__(self, value: Any) -> bool:
        return value in self.choices


@dataclass(frozen=True)
class _IntegerRange(Domain):
    low: int = 0
    high: int = 0

    def __post_init__(self):
        if not isinstance(self.low, Integral) or not isinstance(self.high, Integral):
            raise SearchSpaceError(
                f"Domain {self.name!r} bounds must be integers, "
                f"got low={self.low!r}, high={self.high!r}.",
                {"domain": self.name},
            )
        if self.high < self.low:
            raise SearchSpaceError(
                f"Domain {self.name!r} requires high >= low, "
                f"got low={self.low}, high={self.high}.",
                {"domain": self.name},
            )

    @property
    def span(self) -> int:
        return int(self.high - self.low + 1)

    def values(self) -> tuple:
        return tuple(range(int(self.low), int(self.high) + 1))

    @property
    def size(self) -> int:
        return self.span

    def __contains__(self, value: Any) -> bool:
        return (
            isinstance(value, Integral)
            and not isinstance(value, bool)
            and self.low <= value <= self.high
        )


@dataclass(frozen=True)
class DiscreteLinear(_IntegerRange):
    """Integers ``low..high`` spread uniformly over ``[0, 1]``."""

    def map(self, u: float) -> int:
        u = self._check_unit(u)
        raw = int(self.low) + int(math.floor(u * self.span))
        return min(int(self.high), raw)

    def coordinate(self, value: Any) -> float:
        if value not in self:
            raise self._not_in_domain(value)
        return (value - self.low + 0.5) / self.span


@dataclass(frozen=True)
class DiscreteLog(_IntegerRange):
    """Integers ``low..high`` spread logarithmically over ``[0, 1]``."""

    low: int = 1

    def __post_init__(self):
        super().__post_init__()
        if self.low < 1:
            raise SearchSpaceError(
                f"Logarithmic domain {self.name!r} requires low >= 1, got {self.low}.",
                {"domain": self.name},
            )

    def map(self, u: float) -> int:
        u = self._check_unit(u)
        if self.span == 1:
            return int(self.low)
        raw = int(math.floor(self.span ** u + self.low - 1))
        return max(int(self.low), min(int(self.high), raw))

    def coordinate(self, value: Any) -> float:
        if value not in self:
            raise self._not_in_domain(value)
        if self.span == 1:
            return 0.5
        # centre of the cell [value, value + 1) on the log scale
        return min(1.0, math.log(value - self.low + 1.5) / math.log(self.span))


# ---------------------------------------------------------------------------
# Configuration space
# ---------------------------------------------------------------------------

class ConfigurationSpace:
    """The searchable dimensions of one study.

    Use the factory constructors rather than ``__init__``:

    >>> space = ConfigurationSpace.subset(["lag1", "lag2", "lag3"])
    >>> space.to_identifiers((True, False, True))
    ['lag1', 'lag3']
    >>> grid = ConfigurationSpace.hyperparameters([
    ...     Categorical("n_estimators", (10, 50, 100)),
    ...     Categorical("max_depth", (2, 5)),
    ... ])
    >>> len(list(grid.grid()))
    6
    """

    SUBSET = "subset"
    HYPERPARAMETER = "hyperparameter"

    def __init__(
        self,
        kind: str,
        names: Sequence[str],
        domains: Sequence[Domain] | None = None,
    ):
        if kind not in (self.SUBSET, self.HYPERPARAMETER):
            raise SearchSpaceError(f"Unknown space kind {kind!r}.", {"kind": kind})
        names = tuple(str(n) for n in names)
        if not names:
            raise EmptySearchSpace("Configuration space declares zero dimensions.")
        if len(set(names)) != len(names):
            dupes = sorted({n for n in names if names.count(n) > 1})
            raise SearchSpaceError(
                f"Duplicate dimension names: {dupes}.", {"names": dupes}
            )
        self.kind    = kind
        self.names   = names
        self.domains = tuple(domains) if domains is not None else None
        self._index  = {n: i for i, n in enumerate(names)}

    @classmethod
    def subset(cls, features: int | Sequence[str]) -> "ConfigurationSpace":
        """Binary-inclusion space over ``features`` (a count or a list of names)."""
        if isinstance(features, Integral):
            names = [f"x{i}" for i in range(int(features))]
        else:
            names = list(features)
        return cls(cls.SUBSET, names)

    @classmethod
    def hyperparameters(cls, domains: Sequence[Domain]) -> "ConfigurationSpace":
        """Normalized-coordinate space, one dimension per domain."""
        domains = list(domains)
        for d in domains:
            if not isinstance(d, Domain):
                raise SearchSpaceError(
                    f"Expected a Domain, got {d!r}.", {"domain": repr(d)}
                )
        return cls(cls.HYPERPARAMETER, [d.name for d in domains], domains)

    # ------------------------------------------------------------------
    # Basic properties
    # ------------------------------------------------------------------

    @property
    def n_dims(self) -> int:
        return len(self.names)

    @property
    def is_subset(self) -> bool:
        return self.kind == self.SUBSET

    def __len__(self) -> int:
        return self.n_dims

    def __repr__(self) -> str:
        return f"ConfigurationSpace(kind={self.kind!r}, n_dims={self.n_dims})"

    def _require_subset(self, what: str):
        if not self.is_subset:
            raise SearchSpaceError(
                f"{what} is only defined for subset spaces.", {"kind": self.kind}
            )

    # ------------------------------------------------------------------
    # Validation and conversion
    # ------------------------------------------------------------------

    def validate(self, configuration: Sequence) -> Configuration:
        """Return ``configuration`` as a canonical tuple or raise
        :class:`InvalidConfiguration`."""
        config = tuple(configuration)
        if len(config) != self.n_dims:
            raise InvalidConfiguration(
                f"Configuration has {len(config)} elements, "
                f"space declares {self.n_dims}.",
                {"configuration": config},
            )
        if self.is_subset:
            if any(v not in (0, 1) for v in config):
                raise InvalidConfiguration(
                    "Subset configurations must be boolean masks.",
                    {"configuration": config},
                )
            mask = tuple(bool(v) for v in config)
            if not any(mask):
                raise InvalidConfiguration(
                    "Configuration includes no dimensions.",
                    {"configuration": mask},
                )
            return mask
        return tuple(Domain._check_unit(u) for u in config)

    def included(self, configuration: Sequence) -> tuple[int, ...]:
        """Indices of the included dimensions of a subset configuration."""
        self._require_subset("included()")
        return tuple(i for i, v in enumerate(configuration) if v)

    def decode(self, configuration: Sequence) -> tuple[int, ...] | dict[str, Any]:
        """Included indices (subset) or ``{name: value}`` (hyperparameter)."""
        config = self.validate(configuration)
        if self.is_subset:
            return self.included(config)
        return {d.name: d.map(u) for d, u in zip(self.domains, config)}

    def from_indices(self, indices: Sequence[int]) -> Configuration:
        """Inclusion mask with exactly ``indices`` switched on."""
        self._require_subset("from_indices()")
        mask = [False] * self.n_dims
        for i in indices:
            if not 0 <= int(i) < self.n_dims:
                raise InvalidConfiguration(
                    f"Dimension index {i} out of range for {self.n_dims} dimensions.",
                    {"index": i},
                )
            mask[int(i)] = True
        return self.validate(mask)

    def full(self) -> Configuration:
        """Every dimension included."""
        self._require_subset("full()")
        return (True,) * self.n_dims

    def to_identifiers(self, configuration: Sequence) -> list[str] | dict[str, Any]:
        """Selected dimension names (subset) or decoded values (hyperparameter)."""
        decoded = self.decode(configuration)
        if self.is_subset:
            return [self.names[i] for i in decoded]
        return decoded

    def from_identifiers(
        self, identifiers: Sequence[str | int] | Mapping[str, Any]
    ) -> Configuration:
        """Rebuild a configuration from :meth:`to_identifiers` output."""
        if self.is_subset:
            indices = []
            for ident in identifiers:
                if isinstance(ident, Integral) and not isinstance(ident, bool):
                    indices.append(int(ident))
                elif ident in self._index:
                    indices.append(self._index[ident])
                else:
                    raise InvalidConfiguration(
                        f"Unknown dimension {ident!r}.", {"identifier": ident}
                    )
            return self.from_indices(indices)

        missing = [d.name for d in self.domains if d.name not in identifiers]
        if missing:
            raise InvalidConfiguration(
                f"Missing values for dimensions {missing}.", {"missing": missing}
            )
        return tuple(d.coordinate(identifiers[d.name]) for d in self.domains)

    def cache_key(self, configuration: Sequence) -> tuple:
        """Hashable key identifying what a scorer actually fits."""
        decoded = self.decode(configuration)
        if self.is_subset:
            return decoded
        return tuple(decoded[d.name] for d in self.domains)

    # ------------------------------------------------------------------
    # Enumeration and sampling
    # ------------------------------------------------------------------

    def iter_subsets(self, max_size: int, min_size: int = 1) -> Iterator[Configuration]:
        """All masks of size ``min_size..max_size``, smallest first, each
        size in lexicographic index order."""
        self._require_subset("iter_subsets()")
        max_size = min(int(max_size), self.n_dims)
        for size in range(max(1, int(min_size)), max_size + 1):
            for combo in combinations(range(self.n_dims), size):
                yield self.from_indices(combo)

    def grid(self) -> Iterator[Configuration]:
        """Cartesian product of every domain's values, as coordinates."""
        if self.is_subset:
            raise SearchSpaceError(
                "grid() is only defined for hyperparameter spaces; "
                "use iter_subsets() for subset spaces.",
                {"kind": self.kind},
            )
        axes = [[d.coordinate(v) for v in d.values()] for d in self.domains]
        for point in product(*axes):
            yield tuple(point)

    def random(self, rng: np.random.Generator, init_prob: float = 0.5) -> Configuration:
        """Draw one valid configuration.

        Subset masks include each dimension with probability ``init_prob``;
        an empty draw gets one uniformly chosen dimension switched on.
        """
        if self.is_subset:
            mask = rng.random(self.n_dims) < init_prob
            if not mask.any():
                mask[rng.integers(self.n_dims)] = True
            return tuple(bool(v) for v in mask)
        return tuple(float(u) for u in rng.random(self.n_dims))
