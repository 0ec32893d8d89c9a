"""
FastAPI application for the odds converter and arbitrage finder
Thin JSON surface over the service layer for a browser front-end
"""

from fastapi import FastAPI, Depends, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from functools import lru_cache
from typing import Optional
import logging
import math

from oddsarb import __version__
from oddsarb.core.calc_config import CalculatorConfig
from oddsarb.services.arb_finder import (
    ArbInputs,
    complement_price,
    recompute,
    sportsbook_odds_form,
)
from oddsarb.services.converter import ClearPolicy, OddsConverter, debounced_converter
from oddsarb.services.debounce import Debouncer
from oddsarb.schemas import (
    ArbitrageRequest,
    ArbitrageResponse,
    ComplementRequest,
    ComplementResponse,
    ConverterFormRequest,
    ConverterFormResponse,
    DefaultsResponse,
    LegResponse,
    OddsConvertRequest,
    OddsConvertResponse,
    OddsValues,
    PayoffResponse,
    SportsbookOddsRequest,
    SportsbookOddsResponse,
)

# Logging setup
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_config() -> CalculatorConfig:
    return CalculatorConfig.from_env()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    cfg = get_config()
    logger.info(
        "Starting odds/arb calculator (buffer=%.1fbps, debounce=%dms)",
        cfg.buffer_bps, round(cfg.debounce_seconds * 1000),
    )
    app.state.debouncer = Debouncer(delay_seconds=cfg.debounce_seconds)
    app.state.debouncer.start()
    app.state.odds_form = debounced_converter(cfg, app.state.debouncer)
    yield
    app.state.debouncer.shutdown(wait=False)
    logger.info("Shutting down odds/arb calculator")


app = FastAPI(
    title="Odds Converter & Arb Finder",
    description="Odds format conversion and sportsbook vs prediction-market arbitrage sizing",
    version=__version__,
    lifespan=lifespan,
)

# CORS (adjust origins for production)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _finite(x: Optional[float]) -> Optional[float]:
    """JSON has no Infinity/NaN; report unusable values as null."""
    if x is None or not math.isfinite(x):
        return None
    return x


def _default_sb_odds(cfg: CalculatorConfig, fmt: str) -> str:
    """Configured sportsbook price written in the requested format."""
    return {
        "american": cfg.default_sb_american,
        "decimal": cfg.default_sb_decimal,
        "fractional": cfg.default_fractional,
        "probability": cfg.default_percentage,
    }[fmt]


# ============================================================================
# PUBLIC ENDPOINTS
# ============================================================================

@app.get("/")
async def root():
    """Health check"""
    return {
        "app": "Odds Converter & Arb Finder",
        "version": __version__,
        "status": "operational",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


@app.get("/api/defaults", response_model=DefaultsResponse)
async def get_defaults(cfg: CalculatorConfig = Depends(get_config)):
    """Initial values for both calculator pages."""
    converter = OddsConverter(config=cfg)
    arb = ArbInputs.from_config(cfg)
    return DefaultsResponse(
        converter=converter.snapshot(),
        arbitrage={
            "buffer_bps": str(arb.buffer_bps),
            "sb_american": cfg.default_sb_american,
            "sb_decimal": cfg.default_sb_decimal,
            "sb_max_stake": str(arb.sb_max_stake),
            "notional_fee": str(arb.notional_fee),
            "profit_fee": str(arb.profit_fee),
            "yes_price": str(arb.yes_price),
            "yes_qty": str(arb.yes_qty),
            "no_price": str(arb.no_price),
            "no_qty": str(arb.no_qty),
        },
        buffer_bps=cfg.buffer_bps,
        debounce_ms=cfg.debounce_seconds * 1000,
    )


# ============================================================================
# ODDS CONVERTER
# ============================================================================

@app.post("/api/odds/convert", response_model=OddsConvertResponse)
async def convert_odds(
    body: OddsConvertRequest,
    cfg: CalculatorConfig = Depends(get_config),
):
    """Convert one edited field into the other three representations."""
    form = OddsConverter(
        policy=ClearPolicy(body.policy),
        config=cfg,
        text=dict(body.current or {}),
    )
    result = form.set_field(body.field, "" if body.value is None else str(body.value))
    fields = result.fields
    numerator, denominator = fields.fractional or (None, None)

    return OddsConvertResponse(
        source=result.source,
        accepted=result.accepted,
        values=OddsValues(
            probability=fields.probability,
            percentage=fields.percentage,
            american=fields.american,
            decimal=fields.decimal,
            fractional_numerator=numerator,
            fractional_denominator=denominator,
        ),
        valid=result.valid,
        display=form.snapshot(),
        issues=[issue.value for issue in result.issues],
        message=result.message,
    )


@app.post("/api/odds/form", response_model=ConverterFormResponse)
async def type_in_converter(body: ConverterFormRequest, request: Request):
    """Record a keystroke; the sibling fields catch up after the debounce delay."""
    form: OddsConverter = request.app.state.odds_form
    form.request(body.field, "" if body.value is None else str(body.value))
    return ConverterFormResponse(display=form.snapshot(), pending=form.pending())


@app.get("/api/odds/form", response_model=ConverterFormResponse)
async def read_converter(request: Request):
    """Current text of the server-held converter form."""
    form: OddsConverter = request.app.state.odds_form
    return ConverterFormResponse(display=form.snapshot(), pending=form.pending())


# ============================================================================
# ARBITRAGE FINDER
# ============================================================================

@app.post("/api/arbitrage", response_model=ArbitrageResponse)
async def find_arbitrage(
    body: ArbitrageRequest,
    cfg: CalculatorConfig = Depends(get_config),
):
    """Recompute the arbitrage report for the submitted form."""
    # omitted fields take the configured default; an explicit null is
    # passed through and takes the unparseable-value fallback instead
    supplied = body.model_dump(exclude_unset=True)
    if "sb_odds" not in supplied:
        supplied["sb_odds"] = _default_sb_odds(cfg, body.sb_format)
    inputs = ArbInputs.from_config(cfg).with_changes(**supplied)
    report = recompute(inputs)
    res = report.result

    return ArbitrageResponse(
        is_arb=res.is_arb,
        state=res.state,
        edge=_finite(res.edge),
        sum_costs=_finite(res.sum_costs),
        k=res.k,
        stake_a=res.stake_a,
        stake_not_a=res.stake_not_a,
        total_cash=res.total_cash,
        profit=res.profit,
        side_a=LegResponse(
            venue=res.quote.side_a.venue,
            cost=_finite(res.quote.side_a.cost),
            max_payout=_finite(res.quote.side_a.max_payout),
        ),
        side_not_a=LegResponse(
            venue=res.quote.side_not_a.venue,
            cost=_finite(res.quote.side_not_a.cost),
            max_payout=_finite(res.quote.side_not_a.max_payout),
        ),
        sportsbook_decimal=report.sportsbook_decimal,
        yes_cost=_finite(report.yes_cost),
        no_contracts=report.no_contracts,
        payoffs=[
            PayoffResponse(
                outcome=p.outcome,
                winning_venue=p.winning_venue,
                payout=p.payout,
                total_cash=p.total_cash,
                net_profit=p.net_profit,
            )
            for p in report.payoffs
        ],
        valid=report.valid,
        issues=[issue.value for issue in report.issues],
    )


@app.post("/api/arbitrage/sportsbook-odds", response_model=SportsbookOddsResponse)
async def sync_sportsbook_odds(
    body: SportsbookOddsRequest,
    cfg: CalculatorConfig = Depends(get_config),
):
    """Keep the sportsbook American and decimal fields in step."""
    form = sportsbook_odds_form(cfg)
    if body.current:
        form.text.update({k: v for k, v in body.current.items() if k in form.fields})
    result = form.set_field(body.field, "" if body.value is None else str(body.value))
    return SportsbookOddsResponse(
        accepted=result.accepted,
        american=form.text["american"],
        decimal=form.text["decimal"],
        valid=result.valid,
    )


@app.post("/api/market/complement", response_model=ComplementResponse)
async def market_complement(body: ComplementRequest):
    """Opposite-side price of a binary market (YES ↔ NO)."""
    price = None if body.price is None else str(body.price)
    return ComplementResponse(price=price, complement=complement_price(price))


# ============================================================================
# ERROR HANDLERS
# ============================================================================

@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Catch-all exception handler"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "type": type(exc).__name__}
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
