"""Core mathematics and configuration for the odds converter and arb finder.

This package contains pure, venue-agnostic building blocks:

- ``odds_math``   — American / decimal / fractional / percentage conversion
- ``arbitrage``   — leg costing, edge detection and dutching position sizing
- ``calc_config`` — default form values, buffers and numeric tolerances
- ``errors``      — the recoverable error taxonomy shared by both engines

Nothing in this package imports from ``oddsarb.services`` or ``oddsarb.main``.
All modules are side-effect-free and unit-testable in isolation.
"""
