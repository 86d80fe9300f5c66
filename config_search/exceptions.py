"""
config_search.exceptions
========================
Exception hierarchy for configuration search.

Every error raised on purpose by the package derives from
:class:`ConfigSearchError`, so callers can catch the whole family at once::

    try:
        result = harness.run(GreedySearch())
    except ConfigSearchError as exc:
        print(f"search failed: {exc}")
        print(exc.details)

Per-evaluation failures (:class:`ScorerFitFailure`) are absorbed by the
batch evaluator; everything else propagates to the caller.
"""

from __future__ import annotations

from typing import Any


__all__ = [
    "ConfigSearchError",
    "InvalidConfiguration",
    "ScorerFitFailure",
    "SearchSpaceError",
    "EmptySearchSpace",
    "AllCandidatesFailed",
]


class ConfigSearchError(Exception):
    """Base class for all configuration-search errors.

    Attributes
    ----------
    message : str
        Human-readable description.
    details : dict
        Extra context identifying the offending input.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class InvalidConfiguration(ConfigSearchError, ValueError):
    """A configuration that must never be scored (empty, wrong length,
    coordinate outside its domain)."""


class ScorerFitFailure(ConfigSearchError, RuntimeError):
    """The underlying model could not be fitted for one configuration."""

    def __init__(
        self,
        message: str,
        configuration: tuple | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(
            message, {"configuration": configuration, "cause": repr(cause)}
        )
        self.configuration = configuration
        self.cause = cause


class SearchSpaceError(ConfigSearchError, ValueError):
    """Malformed domain, or a space that does not match the dataset."""


class EmptySearchSpace(SearchSpaceError):
    """The space declares no dimensions, or yields no candidates."""


class AllCandidatesFailed(ConfigSearchError, RuntimeError):
    """Every candidate of one evaluation batch failed to score."""

    def __init__(self, step: Any, n_candidates: int):
        super().__init__(
            f"All {n_candidates} candidates failed to score at step {step!r}.",
            {"step": step, "n_candidates": n_candidates},
        )
