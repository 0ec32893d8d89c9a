"""
Pydantic request/response schemas for the odds converter and arb finder API.

Inputs stay as raw strings where the form sends raw strings; parsing and
validation belong to the service layer so half-typed values are reported
through validity flags instead of 422 errors.  Non-finite floats (an
unusable leg costed at ``inf``) are serialised as ``null``.
"""

from __future__ import annotations

from typing import Literal, Optional, Union

from pydantic import BaseModel, Field

RawField = Union[str, float, None]


# ---------------------------------------------------------------------------
# Odds converter
# ---------------------------------------------------------------------------

class OddsConvertRequest(BaseModel):
    """
    Payload for POST /api/odds/convert.

    ``value`` is the text of the edited field.  For ``probability`` it is a
    percentage (``"52.38"``); for ``fractional`` it is ``"n/d"``.
    """

    field: Literal["probability", "american", "decimal", "fractional"]
    value: RawField = Field(..., description="Raw text of the edited field")
    policy: Literal["retain", "clear"] = Field(
        "retain", description="Sibling handling when the implied probability is invalid"
    )
    current: Optional[dict[str, str]] = Field(
        None, description="Current text of every field, echoed back when rejected"
    )

    model_config = {
        "json_schema_extra": {
            "example": {"field": "american", "value": "-110", "policy": "retain"}
        }
    }


class ConverterFormRequest(BaseModel):
    """Payload for POST /api/odds/form: one keystroke in a linked field."""
    field: Literal["probability", "american", "decimal", "fractional"]
    value: RawField


class ConverterFormResponse(BaseModel):
    """Text of the server-held converter form; ``pending`` while a recompute waits."""
    display: dict[str, str]
    pending: bool


class OddsValues(BaseModel):
    """Raw converted values (unrounded)."""
    probability: Optional[float] = None
    percentage: Optional[float] = None
    american: Optional[float] = None
    decimal: Optional[float] = None
    fractional_numerator: Optional[int] = None
    fractional_denominator: Optional[int] = None


class OddsConvertResponse(BaseModel):
    source: str
    accepted: bool
    values: OddsValues
    valid: dict[str, bool]
    display: dict[str, str]
    issues: list[str]
    message: Optional[str] = None


# ---------------------------------------------------------------------------
# Arbitrage finder
# ---------------------------------------------------------------------------

class ArbitrageRequest(BaseModel):
    """
    Payload for POST /api/arbitrage.

    Omitted fields fall back to the configured defaults; an omitted
    ``sb_odds`` is the default price written in ``sb_format``.  An explicit
    ``null`` counts as an unparseable value and takes the same fallback as
    other bad text (see :func:`oddsarb.services.arb_finder.recompute`).
    Fees are fractions (0.02 = 2 % of winnings).
    """

    buffer_bps: RawField = None
    sb_odds: RawField = None
    sb_format: Literal["american", "decimal", "fractional", "probability"] = "decimal"
    sb_max_stake: RawField = None
    notional_fee: RawField = None
    profit_fee: RawField = None
    yes_price: RawField = None
    yes_qty: RawField = None
    no_price: RawField = None
    no_qty: RawField = None

    model_config = {
        "json_schema_extra": {
            "example": {
                "buffer_bps": "20",
                "sb_odds": "2.20",
                "sb_format": "decimal",
                "sb_max_stake": "2500",
                "notional_fee": "0",
                "profit_fee": "0",
                "no_price": "0.40",
                "no_qty": "8000",
            }
        }
    }


class LegResponse(BaseModel):
    venue: str
    cost: Optional[float]
    max_payout: Optional[float]


class PayoffResponse(BaseModel):
    outcome: str
    winning_venue: str
    payout: float
    total_cash: float
    net_profit: float


class ArbitrageResponse(BaseModel):
    """Structure for the /api/arbitrage endpoint."""
    is_arb: bool
    state: str
    edge: Optional[float]
    sum_costs: Optional[float]
    k: float
    stake_a: float
    stake_not_a: float
    total_cash: float
    profit: float
    side_a: LegResponse
    side_not_a: LegResponse
    sportsbook_decimal: Optional[float]
    yes_cost: Optional[float]
    no_contracts: float
    payoffs: list[PayoffResponse]
    valid: dict[str, bool]
    issues: list[str]


class SportsbookOddsRequest(BaseModel):
    """Payload for POST /api/arbitrage/sportsbook-odds."""
    field: Literal["american", "decimal"]
    value: RawField
    current: Optional[dict[str, str]] = None


class SportsbookOddsResponse(BaseModel):
    accepted: bool
    american: str
    decimal: str
    valid: dict[str, bool]


class ComplementRequest(BaseModel):
    """Payload for POST /api/market/complement."""
    price: RawField


class ComplementResponse(BaseModel):
    price: Optional[str]
    complement: Optional[str]


class DefaultsResponse(BaseModel):
    converter: dict[str, str]
    arbitrage: dict[str, str]
    buffer_bps: float
    debounce_ms: float
