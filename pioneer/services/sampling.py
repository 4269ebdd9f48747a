"""Deterministic weighted branch selection.

A user is bucketed by hashing a stable key (``"{study_name}/{pioneer_id}"``)
into a fraction in [0, 1), scaling it onto the summed branch weights and
walking the branches in order. No randomness involved: the same key and the
same branch list always yield the same branch.

Conceptually:

    options = [A (weight 1), B (weight 2), C (weight 3)]
    total_weight = 6
    pointer = hash_fraction(key) * 6 = 1.5

    0   1   2   3   4   5    6
    | A |   B   |     C      |
          ^
           \\_ pointer = 1.5, so B is chosen
"""

from __future__ import annotations

import hashlib
import math
from collections.abc import Mapping, Sequence
from typing import Annotated, Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from pioneer.core.exceptions import EmptyOptionsError, InvalidWeightError, SelectionAssertionError

# Meaningful precision of a 64-bit float. Changing it reassigns existing users.
HASH_BITS = 48

T = TypeVar("T")

BranchWeight = Annotated[float, Field(gt=0, allow_inf_nan=False)]


class Branch(BaseModel):
    """One arm of an experiment. Extra fields are kept and returned as-is."""

    model_config = ConfigDict(extra="allow", frozen=True)

    name: str
    weight: BranchWeight | None = None


def sha256(message: str) -> str:
    """Return the lowercase hex SHA-256 digest of ``message`` encoded as UTF-8."""
    return hashlib.sha256(message.encode("utf-8")).hexdigest()


def hash_fraction(value: str) -> float:
    """Map ``value`` to a float in [0, 1) using the top 48 bits of its SHA-256."""
    digest = sha256(value)
    return int(digest[: HASH_BITS // 4], 16) / 2**HASH_BITS


def _effective_weight(option: Any) -> float:
    if isinstance(option, Mapping):
        weight = option.get("weight")
    else:
        weight = getattr(option, "weight", None)

    if weight is None:
        return 1.0
    if isinstance(weight, bool) or not isinstance(weight, (int, float)):
        raise InvalidWeightError(f"Branch weight must be a number, got {weight!r}")
    if not math.isfinite(weight) or weight <= 0:
        raise InvalidWeightError(f"Branch weight must be positive and finite, got {weight!r}")
    return float(weight)


def choose_weighted(options: Sequence[T], hash_key: str) -> T:
    """Deterministically choose one of ``options`` based on ``hash_key``.

    Each option is a ``Branch`` (or any object / mapping exposing an optional
    ``weight``). A missing weight counts as 1. The caller's objects are never
    modified; the chosen object itself is returned.

    Raises ``EmptyOptionsError`` for an empty sequence and
    ``InvalidWeightError`` for a zero, negative or non-finite weight.
    """
    if len(options) == 0:
        raise EmptyOptionsError("Cannot choose from an empty set of options")

    weights = [_effective_weight(option) for option in options]
    total_weight = sum(weights)

    pointer = hash_fraction(hash_key) * total_weight
    for option, weight in zip(options, weights):
        pointer -= weight
        if pointer <= 0:
            return option

    raise SelectionAssertionError("Assertion error, did not choose a value")
