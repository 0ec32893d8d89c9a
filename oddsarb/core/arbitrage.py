"""Two-venue arbitrage math — costing, detection and dutching sizing.

All functions here are **pure**: no I/O, no logging, no clocks.
Import from this module; never reimplement leg costing in services.

The engine compares one sportsbook price against one side of a binary
prediction-market orderbook.  A single fixed strategy is modelled:

* **Side A** — buy NO on the prediction market.
* **Side not-A** — bet YES on the sportsbook.

Callers wanting the mirror strategy (YES on the market, NO on the book)
call :func:`evaluate` again with the sides swapped.

Cost model
----------
Every leg is normalised to *cost per $1 of payout*.  If both costs sum to
less than one dollar, buying $K of payout on each side locks in
``K · (1 − Σcost)`` whichever outcome resolves.

* Sportsbook: ``cost = 1 / decimal_odds``.
* Prediction market, fee-adjusted::

      cost = p · (1 + f_n) / (1 − f_p · (1 − p))                    (1)

  where ``p`` is the contract price, ``f_n`` a notional fee charged on the
  purchase amount and ``f_p`` a profit fee charged on winnings
  ``(1 − p)`` per contract.  The numerator is cash out per contract, the
  denominator is net payout per contract.

A leg that cannot be priced (non-positive price, non-positive denominator,
missing odds) is costed at ``inf``.  That disqualifies it without raising:
the edge becomes ``−inf`` and no arbitrage is reported.

Run tests with::

    pytest tests/test_arbitrage.py -v
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Final, Optional

from oddsarb.core.errors import Issue

#: Basis points per unit of payout.
BPS_PER_UNIT: Final[float] = 10_000.0

#: Venue labels carried on each :class:`Leg`.
VENUE_PREDICTION_MARKET: Final[str] = "Pred. Market"
VENUE_SPORTSBOOK: Final[str] = "Sportsbook"

#: Outcome labels used by :func:`payoff_matrix`.
OUTCOME_YES: Final[str] = "YES"
OUTCOME_NO: Final[str] = "NO"


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FeeSchedule:
    """Prediction-market fees, expressed as fractions.

    Attributes:
        notional_fee: Fee on the purchase amount, ``≥ 0`` (0.01 = 1 %).
        profit_fee: Fee on winnings, in ``[0, 1)`` (0.02 = 2 %).
    """

    notional_fee: float = 0.0
    profit_fee: float = 0.0


@dataclass(frozen=True)
class MarketSide:
    """Best price and resting quantity on one side of a binary market."""

    price: float
    quantity: float


@dataclass(frozen=True)
class Leg:
    """One side of the position, normalised to cost per $1 of payout."""

    venue: str
    cost: float
    max_payout: float


@dataclass(frozen=True)
class ArbitrageQuote:
    side_a: Leg
    side_not_a: Leg

    @property
    def sum_costs(self) -> float:
        return self.side_a.cost + self.side_not_a.cost


@dataclass(frozen=True)
class ArbitrageResult:
    """Outcome of one full recomputation.

    ``k`` is the guaranteed payout bought on each side; all sizing fields
    are zero unless ``is_arb`` is true.  Instances are never mutated; every
    input change produces a new result.
    """

    is_arb: bool
    edge: float
    sum_costs: float
    k: float
    stake_a: float
    stake_not_a: float
    total_cash: float
    profit: float
    quote: ArbitrageQuote
    issues: tuple[Issue, ...] = field(default_factory=tuple)

    @property
    def state(self) -> str:
        return "arb_found" if self.is_arb else "no_arb"


@dataclass(frozen=True)
class Payoff:
    """Settlement of a sized position for one resolved outcome."""

    outcome: str
    winning_venue: str
    payout: float
    total_cash: float
    net_profit: float


# ---------------------------------------------------------------------------
# Leg costing
# ---------------------------------------------------------------------------


def sportsbook_cost(decimal_odds: Optional[float]) -> float:
    """Cost per $1 payout of a sportsbook bet: ``1 / decimal_odds``.

    Returns ``inf`` for missing, non-finite or non-positive odds.

    Examples::

        sportsbook_cost(1.91) → 0.5236
        sportsbook_cost(2.20) → 0.4545
        sportsbook_cost(0.0)  → inf
    """
    if decimal_odds is None or not math.isfinite(decimal_odds) or decimal_odds <= 0:
        return math.inf
    return 1.0 / decimal_odds


def prediction_market_cost(price: Optional[float], fees: FeeSchedule = FeeSchedule()) -> float:
    """Fee-adjusted cost per $1 payout of a prediction-market contract.

    Implements equation (1) of the module docstring.

    Args:
        price: Contract price in ``(0, 1]``.
        fees: Notional and profit fee fractions.

    Returns:
        Cost per dollar of net payout, or ``inf`` when ``price ≤ 0`` (or
        missing) or when ``1 − f_p · (1 − p) ≤ 0``.

    Examples::

        prediction_market_cost(0.48, FeeSchedule(0.0, 0.02)) → 0.4850
        prediction_market_cost(0.40)                         → 0.4000
    """
    if price is None or not math.isfinite(price) or price <= 0:
        return math.inf
    numerator = price * (1.0 + fees.notional_fee)
    denominator = 1.0 - fees.profit_fee * (1.0 - price)
    if not denominator > 0:
        return math.inf
    return numerator / denominator


def contracts_for_payout(payout: float, price: float, fees: FeeSchedule = FeeSchedule()) -> float:
    """Number of contracts whose net (post profit-fee) payout equals ``payout``."""
    net_per_contract = 1.0 - fees.profit_fee * (1.0 - price)
    if not net_per_contract > 0:
        return 0.0
    return payout / net_per_contract


# ---------------------------------------------------------------------------
# Quote construction
# ---------------------------------------------------------------------------


def build_quote(
    sportsbook_decimal: Optional[float],
    max_stake: float,
    no_side: MarketSide,
    fees: FeeSchedule = FeeSchedule(),
) -> ArbitrageQuote:
    """Assemble the two legs of the NO-on-market / YES-on-book strategy.

    Payout capacity is measured at the best quoted price: the market leg can
    pay out at most the resting NO quantity, the sportsbook leg at most
    ``max_stake / cost``.  Unbounded capacities are passed through as
    ``inf`` and resolved in :func:`dutch_payout`.
    """
    cost_sb = sportsbook_cost(sportsbook_decimal)
    cost_no = prediction_market_cost(no_side.price, fees)
    return ArbitrageQuote(
        side_a=Leg(
            venue=VENUE_PREDICTION_MARKET,
            cost=cost_no,
            max_payout=no_side.quantity,
        ),
        side_not_a=Leg(
            venue=VENUE_SPORTSBOOK,
            cost=cost_sb,
            max_payout=_capacity(max_stake, cost_sb),
        ),
    )


def _capacity(max_stake: float, cost: float) -> float:
    if math.isinf(cost):
        return 0.0
    return max_stake / cost


# ---------------------------------------------------------------------------
# Detection and sizing
# ---------------------------------------------------------------------------


def detect(quote: ArbitrageQuote, buffer_bps: float) -> tuple[bool, float, float]:
    """Return ``(is_arb, edge, sum_costs)`` for a quote.

    ``edge = 1 − Σcost``.  An arbitrage is declared only when the edge
    strictly exceeds ``buffer_bps / 10000``; edges inside the buffer are
    treated as noise.  A NaN edge never qualifies.
    """
    sum_costs = quote.sum_costs
    edge = 1.0 - sum_costs
    is_arb = bool(edge > buffer_bps / BPS_PER_UNIT)
    return is_arb, edge, sum_costs


def dutch_payout(quote: ArbitrageQuote) -> float:
    """Largest payout ``K`` fillable on both legs at their quoted prices.

    ``K = min(max_payout_a, max_payout_not_a)``.  When only one side is
    unbounded the other side's cap wins.  A negative, NaN or infinite ``K``
    is clamped to 0 so a missing limit never produces unbounded exposure.
    """
    caps = (quote.side_a.max_payout, quote.side_not_a.max_payout)
    # min() silently drops a NaN that is not in first position
    if any(math.isnan(cap) for cap in caps):
        return 0.0
    k = min(caps)
    if math.isinf(k) or k < 0:
        return 0.0
    return k


def evaluate(quote: ArbitrageQuote, buffer_bps: float) -> ArbitrageResult:
    """Full recomputation: Idle → Computing → {ArbFound | NoArb}.

    Sizing (dutching) equalises payout across both outcomes::

        stake_a      = K · cost_a
        stake_not_a  = K · cost_not_a
        total_cash   = stake_a + stake_not_a
        profit       = K · edge                                      (2)

    Whichever outcome resolves, the winning leg returns exactly ``K`` and
    the position nets ``K − total_cash = K · (1 − Σcost) = K · edge``.

    Examples::

        # SB 2.20, NO 0.40, no fees, 20 bps buffer
        q = build_quote(2.20, 2500, MarketSide(0.40, 8000))
        evaluate(q, 20).edge    → 0.1455
        evaluate(q, 20).k       → 5500.0   (SB cap: 2500 / 0.4545)
        evaluate(q, 20).profit  → 800.0
    """
    is_arb, edge, sum_costs = detect(quote, buffer_bps)
    issues = _diagnose(quote)

    k = stake_a = stake_not_a = total_cash = profit = 0.0
    if is_arb and edge > 0:
        k = dutch_payout(quote)
        stake_a = k * quote.side_a.cost
        stake_not_a = k * quote.side_not_a.cost
        total_cash = stake_a + stake_not_a
        profit = k * edge

    return ArbitrageResult(
        is_arb=is_arb,
        edge=edge,
        sum_costs=sum_costs,
        k=k,
        stake_a=stake_a,
        stake_not_a=stake_not_a,
        total_cash=total_cash,
        profit=profit,
        quote=quote,
        issues=issues,
    )


def _diagnose(quote: ArbitrageQuote) -> tuple[Issue, ...]:
    issues = []
    legs = (quote.side_a, quote.side_not_a)
    if any(not math.isfinite(leg.cost) for leg in legs):
        issues.append(Issue.UNUSABLE_PRICE)
    if any(not math.isfinite(leg.max_payout) for leg in legs):
        issues.append(Issue.UNBOUNDED_CAPACITY)
    return tuple(issues)


def payoff_matrix(result: ArbitrageResult) -> tuple[Payoff, Payoff]:
    """Settle a sized position under both outcomes.

    The first entry is outcome NO (the prediction-market leg pays), the
    second outcome YES (the sportsbook leg pays).  For a correctly dutched
    position both ``net_profit`` values equal ``result.profit`` up to
    floating-point rounding.
    """
    return (
        _settle(OUTCOME_NO, result.quote.side_a, result.stake_a, result.total_cash),
        _settle(OUTCOME_YES, result.quote.side_not_a, result.stake_not_a, result.total_cash),
    )


def _settle(outcome: str, winner: Leg, stake: float, total_cash: float) -> Payoff:
    payout = stake / winner.cost if stake > 0 and math.isfinite(winner.cost) else 0.0
    return Payoff(
        outcome=outcome,
        winning_venue=winner.venue,
        payout=payout,
        total_cash=total_cash,
        net_profit=payout - total_cash,
    )
