"""Odds format converter and sportsbook vs prediction-market arbitrage finder."""

__version__ = "1.0.0"
