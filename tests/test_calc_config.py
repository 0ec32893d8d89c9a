"""
Tests for core/calc_config.py
Run with: pytest tests/test_calc_config.py -v
"""

from dataclasses import replace

import pytest

from oddsarb.core.calc_config import CalculatorConfig


class TestDefaults:
    def test_default_buffer(self):
        assert CalculatorConfig().buffer_bps == 20.0

    def test_replace_single_constant(self):
        cfg = replace(CalculatorConfig(), buffer_bps=5.0)
        assert cfg.buffer_bps == 5.0
        assert cfg.debounce_seconds == 0.3

    @pytest.mark.parametrize(
        "kwargs",
        [{"buffer_bps": -1}, {"debounce_seconds": -0.1}, {"fraction_max_iter": 0}],
    )
    def test_rejects_nonsense(self, kwargs):
        with pytest.raises(ValueError):
            CalculatorConfig(**kwargs)


class TestFromEnv:
    def test_no_overrides(self, monkeypatch):
        for name in ("ARB_BUFFER_BPS", "DEBOUNCE_MS", "DEFAULT_MAX_STAKE", "PM_NOTIONAL_FEE", "PM_PROFIT_FEE"):
            monkeypatch.delenv(name, raising=False)
        monkeypatch.setattr("oddsarb.core.calc_config.load_dotenv", lambda: False)
        assert CalculatorConfig.from_env() == CalculatorConfig()

    def test_overrides(self, monkeypatch):
        monkeypatch.setattr("oddsarb.core.calc_config.load_dotenv", lambda: False)
        monkeypatch.setenv("ARB_BUFFER_BPS", "50")
        monkeypatch.setenv("DEBOUNCE_MS", "150")
        monkeypatch.setenv("DEFAULT_MAX_STAKE", "1000")
        monkeypatch.setenv("PM_NOTIONAL_FEE", "0.01")
        monkeypatch.setenv("PM_PROFIT_FEE", "0.07")

        cfg = CalculatorConfig.from_env()
        assert cfg.buffer_bps == 50.0
        assert cfg.debounce_seconds == pytest.approx(0.15)
        assert cfg.default_max_stake == "1000"
        assert cfg.default_notional_fee == "0.01"
        assert cfg.default_profit_fee == "0.07"
