"""
Odds converter service — keeps four odds fields consistent.

Wraps :mod:`oddsarb.core.odds_math` for a presentation layer that hands us
raw text as the user types:

    1. Parse the edited field into an :data:`~oddsarb.core.odds_math.OddsQuote`.
    2. Pivot to one canonical probability and check it lies in (0, 1).
    3. Regenerate every sibling field from that probability, each rounded
       independently for display.

Rejections follow two rules:

    - A field that fails to parse (non-numeric, American 0, decimal < 1,
      fractional part ≤ 0, malformed ``n/d``) is ignored and every sibling
      keeps its previous value.
    - A field that parses but yields a probability outside (0, 1) (decimal
      ``1.0``) is handled by the :class:`ClearPolicy`: ``RETAIN`` leaves the
      siblings alone, ``CLEAR`` blanks them.  A single derived conversion
      that fails is skipped without touching the others.
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterable, Optional, Tuple

from oddsarb.core.calc_config import CalculatorConfig
from oddsarb.core.errors import InvalidInputError, Issue
from oddsarb.core.odds_math import (
    AmericanOdds,
    DecimalOdds,
    FractionalOdds,
    OddsQuote,
    PercentageOdds,
    is_valid_probability,
    probability_to_american,
    probability_to_decimal,
    probability_to_fractional,
    probability_to_percentage,
    to_probability,
)
from oddsarb.services.debounce import Debouncer

logger = logging.getLogger(__name__)

FIELD_PROBABILITY = "probability"
FIELD_AMERICAN = "american"
FIELD_DECIMAL = "decimal"
FIELD_FRACTIONAL = "fractional"

ALL_FIELDS: Tuple[str, ...] = (
    FIELD_PROBABILITY,
    FIELD_AMERICAN,
    FIELD_DECIMAL,
    FIELD_FRACTIONAL,
)


class ClearPolicy(str, Enum):
    """What happens to sibling fields when the canonical probability is invalid."""

    RETAIN = "retain"
    CLEAR = "clear"


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ConvertedFields:
    """Raw (unrounded) values for each representation.

    A ``None`` entry means that representation could not be derived; the
    caller should leave its display untouched.
    """

    probability: Optional[float] = None
    percentage: Optional[float] = None
    american: Optional[float] = None
    decimal: Optional[float] = None
    fractional: Optional[Tuple[int, int]] = None


@dataclass(frozen=True)
class ConversionResult:
    """Outcome of converting one edited field."""

    source: str
    accepted: bool
    fields: ConvertedFields
    valid: Dict[str, bool]
    issues: Tuple[Issue, ...] = ()
    message: Optional[str] = None
    probability_invalid: bool = False


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def parse_number(raw) -> Optional[float]:
    """Finite float from user input, or ``None``.

    Accepts ints/floats directly; strings are stripped and may carry a
    leading ``+`` (``"+150"``).
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        value = float(raw)
    else:
        text = str(raw).strip()
        if not text:
            return None
        try:
            value = float(text)
        except ValueError:
            return None
    return value if math.isfinite(value) else None


def parse_quote(field_name: str, raw) -> OddsQuote:
    """Build the quote for one form field.

    Raises:
        InvalidInputError: When the text is not a number (or not ``n/d`` for
            the fractional field).  Domain checks happen later, in
            :func:`~oddsarb.core.odds_math.to_probability`.
    """
    if field_name == FIELD_FRACTIONAL:
        parts = str(raw).split("/")
        if len(parts) != 2:
            raise InvalidInputError(
                f"Fractional odds must look like 'n/d', got {raw!r}.",
                field=field_name,
                value=raw,
            )
        numerator, denominator = parse_number(parts[0]), parse_number(parts[1])
        if numerator is None or denominator is None:
            raise InvalidInputError(
                f"Fractional odds parts must be numeric, got {raw!r}.",
                field=field_name,
                value=raw,
            )
        return FractionalOdds(numerator, denominator)

    value = parse_number(raw)
    if value is None:
        raise InvalidInputError(
            f"{field_name} must be numeric, got {raw!r}.", field=field_name, value=raw
        )
    if field_name == FIELD_PROBABILITY:
        return PercentageOdds(value)
    if field_name == FIELD_AMERICAN:
        return AmericanOdds(value)
    if field_name == FIELD_DECIMAL:
        return DecimalOdds(value)
    raise InvalidInputError(f"Unknown odds field {field_name!r}.", field=field_name, value=raw)


# ---------------------------------------------------------------------------
# Conversion
# ---------------------------------------------------------------------------

def derive_fields(
    prob: float,
    targets: Iterable[str] = ALL_FIELDS,
    config: CalculatorConfig = CalculatorConfig(),
) -> Tuple[ConvertedFields, Dict[str, bool]]:
    """Regenerate each requested representation from ``prob`` independently.

    A representation whose conversion fails is left as ``None`` and flagged
    invalid; the others are unaffected.
    """
    derivers: Dict[str, Callable[[float], object]] = {
        FIELD_PROBABILITY: probability_to_percentage,
        FIELD_AMERICAN: probability_to_american,
        FIELD_DECIMAL: probability_to_decimal,
        FIELD_FRACTIONAL: lambda p: probability_to_fractional(
            p,
            tolerance=config.fraction_tolerance,
            max_iter=config.fraction_max_iter,
        ),
    }
    values: Dict[str, object] = {}
    valid: Dict[str, bool] = {}
    for name in targets:
        try:
            value = derivers[name](prob)
        except InvalidInputError as exc:
            logger.debug("Skipping derived %s for p=%r: %s", name, prob, exc)
            valid[name] = False
            continue
        if isinstance(value, float) and not math.isfinite(value):
            logger.debug("Skipping derived %s for p=%r: overflowed to %r", name, prob, value)
            valid[name] = False
            continue
        values[name] = value
        valid[name] = True

    fields = ConvertedFields(
        probability=prob,
        percentage=values.get(FIELD_PROBABILITY),
        american=values.get(FIELD_AMERICAN),
        decimal=values.get(FIELD_DECIMAL),
        fractional=values.get(FIELD_FRACTIONAL),
    )
    return fields, valid


def convert(
    source: str,
    raw,
    *,
    targets: Iterable[str] = ALL_FIELDS,
    config: CalculatorConfig = CalculatorConfig(),
) -> ConversionResult:
    """Convert one edited field into every other representation.

    Never raises for bad input: the result carries ``accepted=False``, the
    source field flagged invalid and :attr:`Issue.INVALID_INPUT`.
    """
    targets = tuple(targets)
    try:
        prob = to_probability(parse_quote(source, raw))
    except InvalidInputError as exc:
        logger.debug("Rejected %s=%r: %s", source, raw, exc)
        return ConversionResult(
            source=source,
            accepted=False,
            fields=ConvertedFields(),
            valid={source: False},
            issues=(Issue.INVALID_INPUT,),
            message=str(exc),
        )

    if not is_valid_probability(prob):
        logger.debug("Rejected %s=%r: probability %r outside (0, 1)", source, raw, prob)
        return ConversionResult(
            source=source,
            accepted=False,
            fields=ConvertedFields(),
            valid={source: False},
            issues=(Issue.INVALID_INPUT,),
            message=f"Implied probability {prob!r} must lie strictly inside (0, 1).",
            probability_invalid=True,
        )

    fields, valid = derive_fields(prob, targets, config)
    valid[source] = True
    issues = () if all(valid.values()) else (Issue.INVALID_INPUT,)
    return ConversionResult(
        source=source, accepted=True, fields=fields, valid=valid, issues=issues
    )


def format_field(name: str, fields: ConvertedFields, config: CalculatorConfig) -> Optional[str]:
    """Round one representation for display, straight from the raw value."""
    if name == FIELD_PROBABILITY and fields.percentage is not None:
        return f"{fields.percentage:.{config.percentage_places}f}"
    if name == FIELD_AMERICAN and fields.american is not None:
        return f"{fields.american:.{config.american_places}f}"
    if name == FIELD_DECIMAL and fields.decimal is not None:
        return f"{fields.decimal:.{config.decimal_places}f}"
    if name == FIELD_FRACTIONAL and fields.fractional is not None:
        numerator, denominator = fields.fractional
        if denominator == 0:
            return None
        return str(FractionalOdds(numerator, denominator))
    return None


# ---------------------------------------------------------------------------
# Form state
# ---------------------------------------------------------------------------

@dataclass
class OddsConverter:
    """Text state of a set of linked odds fields.

    ``set_field`` is the synchronous recompute; ``request`` stores the
    typed text immediately and defers the recompute through a
    :class:`~oddsarb.services.debounce.Debouncer` when one is attached.
    """

    fields: Tuple[str, ...] = ALL_FIELDS
    policy: ClearPolicy = ClearPolicy.RETAIN
    config: CalculatorConfig = field(default_factory=CalculatorConfig)
    debouncer: Optional[Debouncer] = None
    text: Dict[str, str] = field(default_factory=dict)
    last_result: Optional[ConversionResult] = None

    def __post_init__(self):
        defaults = {
            FIELD_PROBABILITY: self.config.default_percentage,
            FIELD_AMERICAN: self.config.default_american,
            FIELD_DECIMAL: self.config.default_decimal,
            FIELD_FRACTIONAL: self.config.default_fractional,
        }
        for name in self.fields:
            self.text.setdefault(name, defaults[name])

    def set_field(self, name: str, raw: str) -> ConversionResult:
        """Store ``raw`` for ``name`` and resync every sibling field."""
        if name not in self.fields:
            raise KeyError(f"{name!r} is not one of {self.fields}")
        self.text[name] = raw
        result = convert(name, raw, targets=self.fields, config=self.config)
        self.last_result = result

        if not result.accepted:
            if result.probability_invalid and self.policy is ClearPolicy.CLEAR:
                for other in self.fields:
                    if other != name:
                        self.text[other] = ""
            return result

        for other in self.fields:
            if other == name:
                continue
            shown = format_field(other, result.fields, self.config)
            if shown is not None:
                self.text[other] = shown
        return result

    def request(self, name: str, raw: str) -> None:
        """Record the keystroke now and schedule the recompute."""
        if self.debouncer is None:
            self.set_field(name, raw)
            return
        if name not in self.fields:
            raise KeyError(f"{name!r} is not one of {self.fields}")
        self.text[name] = raw
        self.debouncer.submit(self.debounce_key, self.set_field, name, raw)

    @property
    def debounce_key(self) -> str:
        return f"odds-converter-{id(self)}"

    def pending(self) -> bool:
        """True while a deferred recompute is waiting to run."""
        return self.debouncer is not None and self.debouncer.pending(self.debounce_key)

    def snapshot(self) -> Dict[str, str]:
        return dict(self.text)


def debounced_converter(
    config: CalculatorConfig = CalculatorConfig(),
    debouncer: Optional[Debouncer] = None,
    **kwargs,
) -> OddsConverter:
    """Converter whose recomputes wait ``config.debounce_seconds`` of idle.

    Pass a shared ``debouncer`` (the app owns one for its lifetime) or a
    private one is created with the configured delay.
    """
    if debouncer is None:
        debouncer = Debouncer(delay_seconds=config.debounce_seconds)
    return OddsConverter(config=config, debouncer=debouncer, **kwargs)
