"""
PICK LEAGUE — FastAPI Application
Price lookups, portfolio valuation, leaderboard and pick endpoints.
"""
import uuid
from datetime import date
from typing import Any, Dict, Optional
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from pickleague.config.settings import AppSettings, get_settings
from pickleague.data.errors import PickLeagueError, InvalidInput, NotConfigured
from pickleague.data.models import CompetitionContext, PriceProvider
from pickleague.services.container import Services, init_services
from pickleague.utils.logger import get_logger, setup_logging
from pickleague.utils.helpers import utc_timestamp

logger = get_logger("api")


# ─── Request bodies ─────────────────────────────────────────────

class CompetitionRequest(BaseModel):
    name: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    entry_price_date: date
    price_provider: PriceProvider = PriceProvider.ALPHA_VANTAGE
    refresh_interval: int = Field(default=60, ge=5, le=300)


class ParticipantRequest(BaseModel):
    display_name: str


class PickRequest(BaseModel):
    participant_id: int
    ticker: str


class ManualPriceRequest(BaseModel):
    ticker: str
    price: float


class ManualPriceUpdate(BaseModel):
    price: float


def create_app(settings: Optional[AppSettings] = None, adapters=None, logos=None) -> FastAPI:
    """Application factory. `adapters` / `logos` replace the live upstream clients."""
    settings = settings or get_settings()
    app_state: Dict[str, Any] = {
        "instance_id": str(uuid.uuid4())[:8],
        "started_at": None,
        "errors": 0,
    }

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Build services on startup, close upstream sessions on shutdown."""
        setup_logging()
        app_state["started_at"] = utc_timestamp()
        logger.info("pickleague_starting", version=settings.version, instance=app_state["instance_id"])

        app.state.services = await init_services(settings, adapters, logos)
        logger.info("pickleague_ready")

        yield

        logger.info("pickleague_shutting_down")
        await app.state.services.close()

    app = FastAPI(
        title=settings.app_name,
        description="Stock-picking competition price resolution and leaderboard service",
        version=settings.version,
        lifespan=lifespan,
    )

    @app.exception_handler(PickLeagueError)
    async def pickleague_error_handler(request: Request, exc: PickLeagueError):
        if exc.status_code >= 500:
            app_state["errors"] += 1
            logger.error("request_failed", path=request.url.path, error=exc.message)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    def services(request: Request) -> Services:
        return request.app.state.services

    async def competition(svc: Services = Depends(services)) -> CompetitionContext:
        return await svc.repository.get_current_competition()

    # ─── Health & Metrics ───────────────────────────────────────

    @app.get("/healthz", tags=["System"])
    async def health_check():
        """Fast health check endpoint for load balancers and monitoring."""
        return {
            "status": "healthy",
            "instance": app_state["instance_id"],
            "uptime_since": app_state["started_at"],
            "timestamp": utc_timestamp(),
        }

    @app.get("/metrics", tags=["System"])
    async def metrics(svc: Services = Depends(services)):
        throttles = [a.throttle.stats for a in svc.adapters.values() if a.throttle is not None]
        return {
            "app": {
                "name": settings.app_name,
                "version": settings.version,
                "instance_id": app_state["instance_id"],
                "started_at": app_state["started_at"],
                "errors": app_state["errors"],
            },
            "prices": {
                "provider_calls": svc.resolver.provider_calls,
                "cache_stats": svc.cache.stats,
                "throttles": throttles,
            },
            "logos": svc.logos.stats,
            "timestamp": utc_timestamp(),
        }

    # ─── Prices ─────────────────────────────────────────────────

    @app.get("/api/current-price", tags=["Prices"])
    async def current_price(
        ticker: Optional[str] = Query(None),
        svc: Services = Depends(services),
    ):
        if not ticker or not ticker.strip():
            raise InvalidInput("", "Ticker is required")
        ctx = await svc.repository.get_current_competition()
        quote = await svc.resolver.resolve_current(ticker, ctx)
        return quote.to_payload()

    @app.get("/api/stock-price", tags=["Prices"])
    async def stock_price(
        ticker: Optional[str] = Query(None),
        target: Optional[str] = Query(None, alias="date"),
        svc: Services = Depends(services),
    ):
        """Price on or before `date` (defaults to the competition's entry-price date)."""
        if not ticker or not ticker.strip():
            raise InvalidInput("", "Ticker is required")
        ctx = await svc.repository.get_current_competition()
        quote = await svc.resolver.resolve_as_of(ticker, target or ctx.entry_price_date, ctx)
        return quote.to_payload()

    # ─── Competition ────────────────────────────────────────────

    @app.get("/api/competition", tags=["Competition"])
    async def get_competition(ctx: CompetitionContext = Depends(competition)):
        return ctx.model_dump(mode="json")

    @app.put("/api/admin/competition", tags=["Admin"])
    async def save_competition(body: CompetitionRequest, svc: Services = Depends(services)):
        try:
            existing_id = (await svc.repository.get_current_competition()).id
        except NotConfigured:
            existing_id = 0
        ctx = await svc.repository.save_competition(
            CompetitionContext(id=existing_id, **body.model_dump())
        )
        return ctx.model_dump(mode="json")

    @app.post("/api/admin/participants", status_code=201, tags=["Admin"])
    async def add_participant(
        body: ParticipantRequest,
        ctx: CompetitionContext = Depends(competition),
        svc: Services = Depends(services),
    ):
        participant = await svc.repository.add_participant(ctx.id, body.display_name)
        return participant.model_dump()

    # ─── Manual prices ──────────────────────────────────────────

    @app.get("/api/admin/manual-prices", tags=["Admin"])
    async def list_manual_prices(
        ctx: CompetitionContext = Depends(competition),
        svc: Services = Depends(services),
    ):
        prices = await svc.overrides.list(ctx.id)
        return {"prices": [p.model_dump() for p in prices]}

    @app.post("/api/admin/manual-prices", status_code=201, tags=["Admin"])
    async def add_manual_price(
        body: ManualPriceRequest,
        ctx: CompetitionContext = Depends(competition),
        svc: Services = Depends(services),
    ):
        price = await svc.overrides.add(ctx.id, body.ticker, body.price)
        return price.model_dump()

    @app.put("/api/admin/manual-prices/{price_id}", tags=["Admin"])
    async def update_manual_price(price_id: int, body: ManualPriceUpdate, svc: Services = Depends(services)):
        price = await svc.overrides.update(price_id, body.price)
        return price.model_dump()

    @app.delete("/api/admin/manual-prices/{price_id}", status_code=204, tags=["Admin"])
    async def delete_manual_price(price_id: int, svc: Services = Depends(services)):
        await svc.overrides.delete(price_id)
        return Response(status_code=204)

    # ─── Picks ──────────────────────────────────────────────────

    @app.post("/api/picks", status_code=201, tags=["Picks"])
    async def add_pick(
        body: PickRequest,
        ctx: CompetitionContext = Depends(competition),
        svc: Services = Depends(services),
    ):
        holding, quote = await svc.picks.add_pick(ctx, body.participant_id, body.ticker)
        return {**holding.model_dump(), "source": quote.source, "price_date": quote.to_payload().get("date")}

    @app.delete("/api/picks/{pick_id}", status_code=204, tags=["Picks"])
    async def remove_pick(pick_id: int, svc: Services = Depends(services)):
        await svc.picks.remove_pick(pick_id)
        return Response(status_code=204)

    # ─── Valuation ──────────────────────────────────────────────

    @app.get("/api/portfolio/{participant_id}", tags=["Valuation"])
    async def portfolio(
        participant_id: int,
        ctx: CompetitionContext = Depends(competition),
        svc: Services = Depends(services),
    ):
        participant = await svc.repository.get_participant(participant_id)
        valuation = await svc.valuator.value(
            participant.holdings, lambda t: svc.resolver.resolve_current(t, ctx)
        )
        return {
            "participant_id": participant.id,
            "display_name": participant.display_name,
            **valuation.model_dump(),
            "is_complete": valuation.is_complete,
            "refresh_interval": ctx.refresh_interval,
        }

    @app.get("/api/leaderboard", tags=["Valuation"])
    async def leaderboard(
        cached: bool = Query(False, description="Return the last published pass without recomputing"),
        ctx: CompetitionContext = Depends(competition),
        svc: Services = Depends(services),
    ):
        snapshot = svc.leaderboard.current(ctx.id) if cached else None
        if snapshot is None:
            snapshot = await svc.leaderboard.rank(ctx)
        return {**snapshot.model_dump(mode="json"), "refresh_interval": ctx.refresh_interval}

    @app.get("/api/leaderboard/{participant_id}", tags=["Valuation"])
    async def user_rank(
        participant_id: int,
        ctx: CompetitionContext = Depends(competition),
        svc: Services = Depends(services),
    ):
        if svc.leaderboard.current(ctx.id) is None:
            await svc.leaderboard.rank(ctx)
        entry = svc.leaderboard.get_user_rank(ctx.id, participant_id)
        if entry is None:
            return JSONResponse(status_code=404, content={"error": f"participant {participant_id} is not ranked"})
        return entry.model_dump()

    # ─── Logos ──────────────────────────────────────────────────

    @app.get("/api/logo/{ticker}", tags=["Assets"])
    async def logo(ticker: str, svc: Services = Depends(services)):
        body, content_type = await svc.logos.get_logo(ticker)
        return Response(
            content=body,
            media_type=content_type,
            headers={
                "Cache-Control": "public, max-age=86400, s-maxage=86400, immutable",
                "Access-Control-Allow-Origin": "*",
            },
        )

    return app


app = create_app()
