"""Calculator configuration — every tunable constant in one place.

This module is the **registry** for buffers, numeric tolerances, display
precisions and default form values.  Nowhere else in the codebase should
the 20 bps safety buffer or the 300 ms debounce be hard-coded.

Architecture
------------
:class:`CalculatorConfig` is a frozen dataclass.  :meth:`CalculatorConfig.from_env`
returns an instance with environment overrides applied; the plain
constructor returns the built-in defaults, which mirror the values the
calculator pages open with.

Typical usage::

    from oddsarb.core.calc_config import CalculatorConfig

    cfg = CalculatorConfig.from_env()

    # Override a single constant for a tighter execution venue:
    from dataclasses import replace
    tight_cfg = replace(cfg, buffer_bps=5.0)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Final

from dotenv import load_dotenv

from oddsarb.core.odds_math import FRACTION_MAX_ITER, FRACTION_TOLERANCE

#: Environment variable names honoured by :meth:`CalculatorConfig.from_env`.
ENV_BUFFER_BPS: Final[str] = "ARB_BUFFER_BPS"
ENV_DEBOUNCE_MS: Final[str] = "DEBOUNCE_MS"
ENV_MAX_STAKE: Final[str] = "DEFAULT_MAX_STAKE"
ENV_NOTIONAL_FEE: Final[str] = "PM_NOTIONAL_FEE"
ENV_PROFIT_FEE: Final[str] = "PM_PROFIT_FEE"


@dataclass(frozen=True)
class CalculatorConfig:
    """Immutable configuration bundle for both calculators.

    Attributes:
        buffer_bps: Minimum edge, in basis points, before an arbitrage is
            declared.  Absorbs execution slippage and price noise.
        debounce_seconds: Idle period after the last keystroke before a
            deferred conversion runs.
        fraction_tolerance: Relative tolerance of the continued-fraction
            expansion used for fractional odds.
        fraction_max_iter: Cap on continued-fraction terms.

        --- Display precision (presentation hint only) ---
        percentage_places: Decimal places for implied probability (%).
        american_places: Decimal places for American odds.
        decimal_places: Decimal places for decimal odds.

        --- Odds converter defaults ---
        default_percentage / default_american / default_decimal /
        default_fractional: Initial converter field values (−110 market).

        --- Arbitrage finder defaults ---
        default_sb_american / default_sb_decimal: Sportsbook YES price.
        default_max_stake: Sportsbook stake limit in dollars.
        default_notional_fee / default_profit_fee: Prediction-market fees as
            fractions (0.02 = 2 % of winnings).
        default_yes_price / default_yes_qty / default_no_price /
        default_no_qty: Top of the prediction-market book.
    """

    buffer_bps: float = 20.0
    debounce_seconds: float = 0.3
    fraction_tolerance: float = FRACTION_TOLERANCE
    fraction_max_iter: int = FRACTION_MAX_ITER

    percentage_places: int = 2
    american_places: int = 0
    decimal_places: int = 2

    default_percentage: str = "52.38"
    default_american: str = "-110"
    default_decimal: str = "1.91"
    default_fractional: str = "10/11"

    default_sb_american: str = "-110"
    default_sb_decimal: str = "1.91"
    default_max_stake: str = "2500"
    default_notional_fee: str = "0"
    default_profit_fee: str = "0.02"
    default_yes_price: str = "0.52"
    default_yes_qty: str = "6000"
    default_no_price: str = "0.48"
    default_no_qty: str = "8000"

    def __post_init__(self) -> None:
        if self.buffer_bps < 0:
            raise ValueError(f"buffer_bps must be ≥ 0, got {self.buffer_bps!r}")
        if self.debounce_seconds < 0:
            raise ValueError(
                f"debounce_seconds must be ≥ 0, got {self.debounce_seconds!r}"
            )
        if self.fraction_max_iter < 1:
            raise ValueError(
                f"fraction_max_iter must be ≥ 1, got {self.fraction_max_iter!r}"
            )

    @classmethod
    def from_env(cls) -> "CalculatorConfig":
        """Defaults with ``.env`` / environment overrides applied."""
        load_dotenv()
        defaults = cls()
        return cls(
            buffer_bps=float(os.getenv(ENV_BUFFER_BPS, str(defaults.buffer_bps))),
            debounce_seconds=float(
                os.getenv(ENV_DEBOUNCE_MS, str(defaults.debounce_seconds * 1000))
            )
            / 1000.0,
            default_max_stake=os.getenv(ENV_MAX_STAKE, defaults.default_max_stake),
            default_notional_fee=os.getenv(
                ENV_NOTIONAL_FEE, defaults.default_notional_fee
            ),
            default_profit_fee=os.getenv(ENV_PROFIT_FEE, defaults.default_profit_fee),
        )
