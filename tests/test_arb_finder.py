"""
Tests for services/arb_finder.py raw-form recompute
Run with: pytest tests/test_arb_finder.py -v
"""

import logging
import math

import pytest

from oddsarb.core.calc_config import CalculatorConfig
from oddsarb.core.errors import Issue
from oddsarb.services.arb_finder import (
    ArbInputs,
    complement_price,
    recompute,
    sportsbook_decimal,
    sportsbook_odds_form,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _scenario_b(**changes):
    base = ArbInputs(
        buffer_bps="20",
        sb_odds="2.20",
        sb_format="decimal",
        sb_max_stake="2500",
        notional_fee="0",
        profit_fee="0",
        yes_price="0.60",
        yes_qty="6000",
        no_price="0.40",
        no_qty="8000",
    )
    return base.with_changes(**changes)


class TestRecompute:
    """Full recompute from raw strings."""

    def test_defaults_report_no_arb(self):
        report = recompute(ArbInputs())
        assert not report.is_arb
        assert report.result.sum_costs == pytest.approx(1.0086, abs=1e-4)
        assert report.result.edge == pytest.approx(-0.0086, abs=1e-4)
        assert report.result.profit == 0.0
        assert all(report.valid.values())
        assert report.issues == ()

    def test_defaults_from_config_match(self):
        assert ArbInputs.from_config(CalculatorConfig()) == ArbInputs()

    def test_scenario_b(self):
        report = recompute(_scenario_b())
        r = report.result
        assert report.is_arb
        assert r.edge == pytest.approx(0.1455, abs=1e-4)
        assert r.k == pytest.approx(5500.0)
        assert r.profit == pytest.approx(800.0)
        assert report.sportsbook_decimal == pytest.approx(2.2)
        assert report.yes_cost == pytest.approx(0.60)
        assert report.no_contracts == pytest.approx(5500.0)

    def test_profit_identical_in_both_outcomes(self):
        report = recompute(_scenario_b(profit_fee="0.02", notional_fee="0.01"))
        pm_wins, sb_wins = report.payoffs
        assert pm_wins.net_profit == pytest.approx(report.result.profit)
        assert sb_wins.net_profit == pytest.approx(report.result.profit)

    @pytest.mark.parametrize(
        "fmt,odds",
        [("american", "+120"), ("american", "120"), ("fractional", "6/5"), ("probability", "45.4545454545")],
    )
    def test_sportsbook_formats_agree(self, fmt, odds):
        report = recompute(_scenario_b(sb_format=fmt, sb_odds=odds))
        assert report.sportsbook_decimal == pytest.approx(2.2, abs=1e-6)
        assert report.result.profit == pytest.approx(800.0, abs=1e-3)

    def test_idempotent(self):
        inputs = _scenario_b(profit_fee="0.02")
        assert recompute(inputs) == recompute(inputs)

    def test_buffer_blocks_small_edge(self):
        # edge ≈ 0.1455; a 1500 bps buffer rejects it
        assert not recompute(_scenario_b(buffer_bps="1500")).is_arb

    def test_numeric_inputs_accepted(self):
        report = recompute(_scenario_b(sb_odds=2.2, no_price=0.4, no_qty=8000, buffer_bps=20))
        assert report.result.profit == pytest.approx(800.0)


class TestLenientParsing:
    """Half-typed values fall back instead of raising."""

    def test_bad_buffer_falls_back_to_zero(self):
        report = recompute(_scenario_b(buffer_bps="abc"))
        assert report.valid["buffer_bps"] is False
        assert report.is_arb
        assert Issue.INVALID_INPUT in report.issues

    def test_blank_quantity_is_unbounded(self):
        report = recompute(_scenario_b(no_qty=""))
        assert report.valid["no_qty"] is False
        assert Issue.UNBOUNDED_CAPACITY in report.issues
        # falls back to the sportsbook cap
        assert report.result.k == pytest.approx(5500.0)

    def test_both_caps_missing_sizes_nothing(self):
        report = recompute(_scenario_b(no_qty="", sb_max_stake=""))
        assert report.is_arb
        assert report.result.k == 0.0
        assert report.result.total_cash == 0.0

    def test_bad_sportsbook_odds(self):
        report = recompute(_scenario_b(sb_odds="0", sb_format="american"))
        assert report.sportsbook_decimal is None
        assert report.valid["sb_odds"] is False
        assert not report.is_arb
        assert math.isinf(report.result.quote.side_not_a.cost)
        assert Issue.UNUSABLE_PRICE in report.issues

    def test_bad_no_price(self):
        report = recompute(_scenario_b(no_price="x"))
        assert report.valid["no_price"] is False
        assert not report.is_arb
        assert Issue.UNUSABLE_PRICE in report.issues

    def test_profit_fee_out_of_range_flagged(self):
        report = recompute(_scenario_b(profit_fee="1.5"))
        assert report.valid["profit_fee"] is False

    @pytest.mark.parametrize(
        "changes",
        [{"notional_fee": "-0.5"}, {"profit_fee": "1.5"}, {"no_price": "1.5"}],
    )
    def test_out_of_range_market_input_never_arb(self, changes):
        report = recompute(_scenario_b(**changes))
        assert not all(report.valid.values())
        assert not report.is_arb
        assert math.isinf(report.result.quote.side_a.cost)
        assert report.result.profit == 0.0

    def test_unknown_format(self):
        assert sportsbook_decimal("2.2", "moneyline") is None

    def test_percentage_alias(self):
        assert sportsbook_decimal("50", "percentage") == pytest.approx(2.0)


class TestLogging:
    def test_arb_found_logged_at_info(self, caplog):
        with caplog.at_level(logging.INFO, logger="oddsarb.services.arb_finder"):
            recompute(_scenario_b())
        assert any("Arbitrage found" in rec.message for rec in caplog.records)

    def test_no_arb_not_logged_at_info(self, caplog):
        with caplog.at_level(logging.INFO, logger="oddsarb.services.arb_finder"):
            recompute(ArbInputs())
        assert not any("Arbitrage found" in rec.message for rec in caplog.records)


class TestComplementPrice:
    """YES/NO price sync keeps the typed precision."""

    @pytest.mark.parametrize(
        "raw,expected",
        [("0.52", "0.48"), ("0.5", "0.5"), ("0.525", "0.475"), ("1", "0"), ("0", "1"), (".3", "0.7")],
    )
    def test_complement(self, raw, expected):
        assert complement_price(raw) == expected

    @pytest.mark.parametrize("raw", ["", "abc", "1.2", "-0.1", None])
    def test_out_of_range_ignored(self, raw):
        assert complement_price(raw) is None


class TestSportsbookOddsForm:
    """American/decimal sync on the arbitrage page clears on bad probability."""

    def test_defaults(self):
        form = sportsbook_odds_form()
        assert form.snapshot() == {"american": "-110", "decimal": "1.91"}

    def test_american_updates_decimal(self):
        form = sportsbook_odds_form()
        form.set_field("american", "+120")
        assert form.text["decimal"] == "2.20"

    def test_decimal_updates_american(self):
        form = sportsbook_odds_form()
        form.set_field("decimal", "2.5")
        assert form.text["american"] == "150"

    def test_decimal_one_clears_american(self):
        form = sportsbook_odds_form()
        form.set_field("decimal", "1")
        assert form.text["american"] == ""

    def test_american_zero_keeps_decimal(self):
        form = sportsbook_odds_form()
        form.set_field("american", "0")
        assert form.text["decimal"] == "1.91"
