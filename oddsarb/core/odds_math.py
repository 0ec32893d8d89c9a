"""Fundamental odds mathematics — the single source of truth.

Every function here is **pure**: no I/O, no logging, no side effects.
Import from this module; never reimplement a conversion locally in a
service or in the HTTP layer.

The four supported representations of one win probability are:

1. **American** — signed integer-style odds (``-110``, ``+150``).
2. **Decimal** — total payout per unit staked, stake included (``1.91``).
3. **Fractional** — profit-to-stake ratio ``n/d`` (``10/11``).
4. **Percentage** — implied probability times 100 (``52.38``).

Design decisions
----------------
* Every conversion pivots through a single canonical probability in the open
  interval ``(0, 1)``.  Representations are never converted directly into
  each other, and rounded display values are never fed back into further
  conversions, so rounding error cannot compound across fields.
* Out-of-domain inputs raise :class:`~oddsarb.core.errors.InvalidInputError`
  (a ``ValueError``).  The service layer turns those into validity flags;
  nothing here decides whether a form field is cleared or retained.
* American odds with magnitude below 100 (e.g. ``-50``) are accepted and
  mapped through the same formula.  Only ``0`` is rejected, because it has
  no defined probability.
* Fractional odds are derived with a continued-fraction expansion that is
  capped at :data:`FRACTION_MAX_ITER` terms and stops as soon as the
  convergent is within a relative :data:`FRACTION_TOLERANCE`, so irrational
  or noisy inputs still terminate with the best small rational.

Run tests with::

    pytest tests/test_odds_math.py -v
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Final, Union

from oddsarb.core.errors import InvalidInputError

# ---------------------------------------------------------------------------
# Module-level constants
# ---------------------------------------------------------------------------

#: Relative convergence tolerance for the continued-fraction expansion.
FRACTION_TOLERANCE: Final[float] = 1e-9

#: Maximum number of continued-fraction terms evaluated.
FRACTION_MAX_ITER: Final[int] = 100

#: American odds at exactly even money.  ``p = 0.5`` maps to ``-100``.
_EVEN_MONEY: Final[float] = 100.0


# ---------------------------------------------------------------------------
# Quote types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AmericanOdds:
    value: float


@dataclass(frozen=True)
class DecimalOdds:
    value: float


@dataclass(frozen=True)
class FractionalOdds:
    numerator: float
    denominator: float

    def __str__(self) -> str:
        return f"{_trim(self.numerator)}/{_trim(self.denominator)}"


@dataclass(frozen=True)
class PercentageOdds:
    value: float


#: Tagged union of every accepted odds representation.
OddsQuote = Union[AmericanOdds, DecimalOdds, FractionalOdds, PercentageOdds]


@dataclass(frozen=True)
class OddsSet:
    """All four representations regenerated from one canonical probability.

    Values are raw floats (fractional parts are ints).  Rounding for display
    is the caller's concern and must be applied to each field independently.
    """

    probability: float
    percentage: float
    american: float
    decimal: float
    fractional: tuple[int, int]

    @classmethod
    def from_probability(
        cls,
        prob: float,
        *,
        tolerance: float = FRACTION_TOLERANCE,
        max_iter: int = FRACTION_MAX_ITER,
    ) -> "OddsSet":
        require_probability(prob)
        return cls(
            probability=prob,
            percentage=probability_to_percentage(prob),
            american=probability_to_american(prob),
            decimal=probability_to_decimal(prob),
            fractional=probability_to_fractional(
                prob, tolerance=tolerance, max_iter=max_iter
            ),
        )


def _trim(x: float) -> str:
    return str(int(x)) if float(x).is_integer() else repr(float(x))


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def is_valid_probability(prob: float) -> bool:
    """True when ``prob`` is a finite number strictly inside ``(0, 1)``."""
    try:
        return 0.0 < prob < 1.0
    except TypeError:
        return False


def require_probability(prob: float) -> float:
    if not is_valid_probability(prob):
        raise InvalidInputError(
            f"Probability {prob!r} must lie strictly inside (0, 1).",
            field="probability",
            value=prob,
        )
    return prob


def _require_finite(value: float, field: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidInputError(
            f"{field} odds must be numeric, got {value!r}.", field=field, value=value
        )
    if not math.isfinite(value):
        raise InvalidInputError(
            f"{field} odds must be finite, got {value!r}.", field=field, value=value
        )
    return float(value)


# ---------------------------------------------------------------------------
# Representation → probability
# ---------------------------------------------------------------------------


def american_to_probability(odds: float) -> float:
    """Implied probability from American odds.

    Examples::

        american_to_probability(-110) → 0.5238
        american_to_probability(+150) → 0.4000
        american_to_probability(-100) → 0.5000

    Raises:
        InvalidInputError: If ``odds`` is zero or not a finite number.
    """
    odds = _require_finite(odds, "american")
    if odds == 0:
        raise InvalidInputError(
            "American odds of 0 have no implied probability.",
            field="american",
            value=odds,
        )
    if odds > 0:
        return _EVEN_MONEY / (odds + _EVEN_MONEY)
    return abs(odds) / (abs(odds) + _EVEN_MONEY)


def decimal_to_probability(decimal_odds: float) -> float:
    """Implied probability from decimal odds (``1 / decimal``).

    Decimal odds of exactly ``1.0`` are accepted here and return ``1.0``;
    callers validating the canonical probability will then reject it.

    Raises:
        InvalidInputError: If ``decimal_odds < 1`` or not finite.
    """
    decimal_odds = _require_finite(decimal_odds, "decimal")
    if decimal_odds < 1.0:
        raise InvalidInputError(
            f"Decimal odds {decimal_odds!r} must be ≥ 1.0.",
            field="decimal",
            value=decimal_odds,
        )
    return 1.0 / decimal_odds


def fractional_to_probability(numerator: float, denominator: float) -> float:
    """Implied probability from fractional odds ``n/d`` (``d / (n + d)``).

    Raises:
        InvalidInputError: Unless both parts are finite and strictly positive.
    """
    numerator = _require_finite(numerator, "fractional")
    denominator = _require_finite(denominator, "fractional")
    if numerator <= 0 or denominator <= 0:
        raise InvalidInputError(
            f"Fractional odds {numerator!r}/{denominator!r} need both parts > 0.",
            field="fractional",
            value=(numerator, denominator),
        )
    return denominator / (numerator + denominator)


def percentage_to_probability(pct: float) -> float:
    """Probability from a percentage strictly inside ``(0, 100)``."""
    pct = _require_finite(pct, "percentage")
    if not 0.0 < pct < 100.0:
        raise InvalidInputError(
            f"Percentage {pct!r} must lie strictly inside (0, 100).",
            field="percentage",
            value=pct,
        )
    return pct / 100.0


def to_probability(quote: OddsQuote) -> float:
    """Dispatch any :data:`OddsQuote` variant to its implied probability."""
    if isinstance(quote, AmericanOdds):
        return american_to_probability(quote.value)
    if isinstance(quote, DecimalOdds):
        return decimal_to_probability(quote.value)
    if isinstance(quote, FractionalOdds):
        return fractional_to_probability(quote.numerator, quote.denominator)
    if isinstance(quote, PercentageOdds):
        return percentage_to_probability(quote.value)
    raise TypeError(f"Unsupported odds quote type: {type(quote).__name__}")


# ---------------------------------------------------------------------------
# Probability → representation
# ---------------------------------------------------------------------------


def probability_to_american(prob: float) -> float:
    """American odds for a probability in ``(0, 1)``.

    Favourites (``p ≥ 0.5``) return negative odds, underdogs positive.
    The result is a raw float; round to an integer for display only.

    Examples::

        probability_to_american(0.5)    → -100.0
        probability_to_american(0.5238) → -109.99
        probability_to_american(0.4)    →  150.0
    """
    require_probability(prob)
    if prob >= 0.5:
        return -(prob * _EVEN_MONEY) / (1.0 - prob)
    return _EVEN_MONEY * (1.0 - prob) / prob


def probability_to_decimal(prob: float) -> float:
    """Decimal odds (``1 / p``) for a probability in ``(0, 1)``."""
    require_probability(prob)
    return 1.0 / prob


def probability_to_percentage(prob: float) -> float:
    require_probability(prob)
    return prob * 100.0


def probability_to_fractional(
    prob: float,
    *,
    tolerance: float = FRACTION_TOLERANCE,
    max_iter: int = FRACTION_MAX_ITER,
) -> tuple[int, int]:
    """Best small rational ``(n, d)`` for the fractional odds of ``prob``.

    Algorithm
    ---------
    The target is ``x = 1/p − 1`` (profit per unit staked).  ``x`` is
    expanded as a simple continued fraction ``[a0; a1, a2, ...]`` using the
    Euclidean recurrence on convergents::

        h_k = a_k · h_{k−1} + h_{k−2}        h_{−1} = 1, h_{−2} = 0
        k_k = a_k · k_{k−1} + k_{k−2}        k_{−1} = 0, k_{−2} = 1

    and stops at the first convergent ``h/k`` with ``|x − h/k| ≤ x · tol``,
    when the remainder is exactly zero, or after ``max_iter`` terms.  The
    result is therefore a best rational approximation, not an exact equality
    test.

    Examples::

        probability_to_fractional(110 / 210) → (10, 11)
        probability_to_fractional(0.4)       → (3, 2)
        probability_to_fractional(0.5)       → (1, 1)
    """
    require_probability(prob)
    target = 1.0 / prob - 1.0
    if not math.isfinite(target):
        raise InvalidInputError(
            f"Probability {prob!r} is too small to express as fractional odds.",
            field="fractional",
            value=prob,
        )

    h1, h2 = 1, 0
    k1, k2 = 0, 1
    remainder = target
    for _ in range(max_iter):
        a = math.floor(remainder)
        h1, h2 = a * h1 + h2, h1
        k1, k2 = a * k1 + k2, k1
        if abs(target - h1 / k1) <= target * tolerance:
            break
        if remainder - a == 0:
            break
        remainder = 1.0 / (remainder - a)
    return h1, k1


# ---------------------------------------------------------------------------
# Direct helpers
# ---------------------------------------------------------------------------


def american_to_decimal(odds: float) -> float:
    """Decimal odds for American odds, pivoting through probability.

    Examples::

        american_to_decimal(-110) → 1.9091
        american_to_decimal(+150) → 2.5000
    """
    return probability_to_decimal(require_probability(american_to_probability(odds)))


def decimal_to_american(decimal_odds: float) -> float:
    """American odds for decimal odds strictly greater than 1."""
    return probability_to_american(
        require_probability(decimal_to_probability(decimal_odds))
    )


def to_decimal(quote: OddsQuote) -> float:
    """Decimal odds for any quote variant.

    This is how the arbitrage engine prices a sportsbook leg regardless of
    the format the caller typed.
    """
    return probability_to_decimal(require_probability(to_probability(quote)))
