"""
Arbitrage finder service — raw form inputs in, full report out.

The presentation layer calls :func:`recompute` after every input change.
Each call parses the raw form, builds the two legs, and hands them to
:func:`oddsarb.core.arbitrage.evaluate`; nothing is cached between calls,
so identical inputs always give identical reports.

Parsing is lenient, matching how the calculator page treats half-typed
values:

    - unparseable buffer or fee → 0
    - unparseable quantity or max stake → unbounded (``inf``), which the
      sizing step resolves to the other side's cap
    - unparseable price or sportsbook odds → leg costed at ``inf``
    - a fee or price that parses but is out of range → both market legs
      (or that leg, for a price) costed at ``inf``; the field is flagged
      invalid and no arbitrage is reported on it

Helpers for the two linked-field behaviours of the page live here too:
YES/NO complementary pricing and American/decimal sportsbook odds sync.
"""

import logging
import math
from dataclasses import dataclass, field, fields as dc_fields, replace
from typing import Dict, Optional, Tuple, Union

from oddsarb.core.arbitrage import (
    ArbitrageResult,
    FeeSchedule,
    MarketSide,
    Payoff,
    build_quote,
    contracts_for_payout,
    evaluate,
    payoff_matrix,
    prediction_market_cost,
)
from oddsarb.core.calc_config import CalculatorConfig
from oddsarb.core.errors import InvalidInputError, Issue
from oddsarb.core.odds_math import to_decimal
from oddsarb.services.converter import (
    FIELD_AMERICAN,
    FIELD_DECIMAL,
    ClearPolicy,
    OddsConverter,
    parse_number,
    parse_quote,
)

logger = logging.getLogger(__name__)

RawValue = Union[str, float, int, None]

#: Sportsbook odds formats accepted by :class:`ArbInputs`.
SPORTSBOOK_FORMATS = ("american", "decimal", "fractional", "probability")


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ArbInputs:
    """Raw form values exactly as typed.  Fees are fractions (0.02 = 2 %)."""

    buffer_bps: RawValue = "20"
    sb_odds: RawValue = "1.91"
    sb_format: str = "decimal"
    sb_max_stake: RawValue = "2500"
    notional_fee: RawValue = "0"
    profit_fee: RawValue = "0.02"
    yes_price: RawValue = "0.52"
    yes_qty: RawValue = "6000"
    no_price: RawValue = "0.48"
    no_qty: RawValue = "8000"

    @classmethod
    def from_config(cls, config: CalculatorConfig) -> "ArbInputs":
        return cls(
            buffer_bps=_trim_number(config.buffer_bps),
            sb_odds=config.default_sb_decimal,
            sb_format="decimal",
            sb_max_stake=config.default_max_stake,
            notional_fee=config.default_notional_fee,
            profit_fee=config.default_profit_fee,
            yes_price=config.default_yes_price,
            yes_qty=config.default_yes_qty,
            no_price=config.default_no_price,
            no_qty=config.default_no_qty,
        )

    def with_changes(self, **changes) -> "ArbInputs":
        return replace(self, **changes)


@dataclass(frozen=True)
class ArbReport:
    """Everything the arbitrage page displays for one set of inputs."""

    result: ArbitrageResult
    payoffs: Tuple[Payoff, Payoff]
    sportsbook_decimal: Optional[float]
    yes_cost: float
    no_contracts: float
    valid: Dict[str, bool] = field(default_factory=dict)
    issues: Tuple[Issue, ...] = ()

    @property
    def is_arb(self) -> bool:
        return self.result.is_arb


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def _trim_number(x: float) -> str:
    return str(int(x)) if float(x).is_integer() else str(x)


def sportsbook_decimal(odds: RawValue, fmt: str) -> Optional[float]:
    """Decimal odds for the sportsbook leg in whichever format was typed.

    Returns ``None`` when the odds do not describe a probability in (0, 1).
    """
    source = "probability" if fmt == "percentage" else fmt
    if source not in SPORTSBOOK_FORMATS:
        logger.debug("Unknown sportsbook odds format %r", fmt)
        return None
    try:
        return to_decimal(parse_quote(source, odds))
    except InvalidInputError as exc:
        logger.debug("Sportsbook odds %r (%s) unusable: %s", odds, fmt, exc)
        return None


# ---------------------------------------------------------------------------
# Recompute
# ---------------------------------------------------------------------------

def recompute(inputs: ArbInputs) -> ArbReport:
    """Rebuild the whole report from scratch for the current inputs."""
    valid = {f.name: True for f in dc_fields(inputs) if f.name != "sb_format"}

    def number(name: str, fallback: float) -> float:
        parsed = parse_number(getattr(inputs, name))
        if parsed is None:
            valid[name] = False
            return fallback
        return parsed

    buffer_bps = number("buffer_bps", 0.0)
    max_stake = number("sb_max_stake", math.inf)
    fees = FeeSchedule(
        notional_fee=number("notional_fee", 0.0),
        profit_fee=number("profit_fee", 0.0),
    )
    fees_in_range = fees.notional_fee >= 0 and 0.0 <= fees.profit_fee < 1.0
    if fees.notional_fee < 0:
        valid["notional_fee"] = False
    if not 0.0 <= fees.profit_fee < 1.0:
        valid["profit_fee"] = False

    yes_side = MarketSide(
        price=number("yes_price", 0.0), quantity=number("yes_qty", math.inf)
    )
    no_side = MarketSide(
        price=number("no_price", 0.0), quantity=number("no_qty", math.inf)
    )
    for name, side in (("yes_price", yes_side), ("no_price", no_side)):
        if not 0.0 < side.price <= 1.0:
            valid[name] = False

    # an out-of-range fee or price leaves that market leg unpriced (cost inf)
    if not (fees_in_range and valid["yes_price"]):
        yes_side = replace(yes_side, price=0.0)
    if not (fees_in_range and valid["no_price"]):
        no_side = replace(no_side, price=0.0)

    sb_decimal = sportsbook_decimal(inputs.sb_odds, inputs.sb_format)
    if sb_decimal is None:
        valid["sb_odds"] = False

    quote = build_quote(sb_decimal, max_stake, no_side, fees)
    result = evaluate(quote, buffer_bps)

    issues = list(result.issues)
    if not all(valid.values()) and Issue.INVALID_INPUT not in issues:
        issues.insert(0, Issue.INVALID_INPUT)

    if result.is_arb:
        logger.info(
            "Arbitrage found: edge=%.4f sum_costs=%.4f K=%.2f profit=%.2f",
            result.edge, result.sum_costs, result.k, result.profit,
        )
    else:
        logger.debug("No arbitrage: edge=%.4f buffer=%.1fbps", result.edge, buffer_bps)

    return ArbReport(
        result=result,
        payoffs=payoff_matrix(result),
        sportsbook_decimal=sb_decimal,
        yes_cost=prediction_market_cost(yes_side.price, fees),
        no_contracts=contracts_for_payout(result.k, no_side.price, fees),
        valid=valid,
        issues=tuple(issues),
    )


# ---------------------------------------------------------------------------
# Linked fields
# ---------------------------------------------------------------------------

def complement_price(raw: RawValue) -> Optional[str]:
    """Opposite-side price for a binary market, as display text.

    ``"0.52"`` → ``"0.48"``.  The result keeps as many decimal places as the
    typed value.  Returns ``None`` (leave the other side alone) unless the
    input parses to a price in ``[0, 1]``.
    """
    price = parse_number(raw)
    if price is None or not 0.0 <= price <= 1.0:
        return None
    text = str(raw).strip()
    places = len(text.split(".", 1)[1]) if "." in text else 0
    return f"{1.0 - price:.{places}f}"


def sportsbook_odds_form(config: CalculatorConfig = CalculatorConfig()) -> OddsConverter:
    """Linked American/decimal fields of the arbitrage page.

    Unlike the standalone converter, an invalid implied probability blanks
    the sibling field.
    """
    return OddsConverter(
        fields=(FIELD_AMERICAN, FIELD_DECIMAL),
        policy=ClearPolicy.CLEAR,
        config=config,
        text={
            FIELD_AMERICAN: config.default_sb_american,
            FIELD_DECIMAL: config.default_sb_decimal,
        },
    )
