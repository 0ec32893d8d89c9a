"""Recoverable error taxonomy for the conversion and arbitrage engines.

None of these conditions is ever fatal.  Core conversion functions raise
:class:`InvalidInputError` for out-of-domain values; the service layer
catches it and turns it into a per-field validity flag.  Pricing problems
never raise at all: the affected leg is costed at ``inf`` and the matching
:class:`Issue` is attached to the result so the caller can explain why no
opportunity was reported.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class Issue(str, Enum):
    """Diagnostic codes attached to converter and arbitrage results."""

    #: Non-numeric, zero, or out-of-domain input (American 0, decimal < 1,
    #: probability outside (0, 1), fractional part ≤ 0).
    INVALID_INPUT = "invalid_input"

    #: Leg price or fee denominator would divide by zero or by a negative
    #: amount.  The leg's cost becomes ``inf``.
    UNUSABLE_PRICE = "unusable_price"

    #: A side has no finite payout cap.  Sizing falls back to the other
    #: side's cap, or to zero when neither side is bounded.
    UNBOUNDED_CAPACITY = "unbounded_capacity"


class InvalidInputError(ValueError):
    """Raised by the pure conversion functions for out-of-domain values.

    Attributes:
        field: Name of the offending representation (``"american"``,
            ``"decimal"``...) when known, else ``None``.
        value: The rejected value, as received.
    """

    issue = Issue.INVALID_INPUT

    def __init__(self, message: str, *, field: Optional[str] = None, value=None):
        super().__init__(message)
        self.field = field
        self.value = value
