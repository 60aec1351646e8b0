from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Query, Request

from .analytics.aggregator import compute_analytics, popular_searches
from .engine import SearchEngine, build_engine
from .geo.distance import distance, format_distance, is_within_radius
from .search.errors import NetworkFailure
from .search.models import (
    HistoryItem,
    RadiusRequest,
    SearchRequest,
    SearchResponse,
    SearchSuggestion,
    SuggestionRequest,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await app.state.engine.aclose()


app = FastAPI(title="Business Search API", version="1.0.0", lifespan=lifespan)
app.state.engine = build_engine()


def get_engine(request: Request) -> SearchEngine:
    return request.app.state.engine


# ── Public endpoints ─────────────────────────────────────────────────────


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/metadata")
async def metadata(engine: SearchEngine = Depends(get_engine)) -> dict:
    return {"categories": await engine.directory.categories()}


# ── Search endpoints ─────────────────────────────────────────────────────


@app.post("/search", response_model=SearchResponse)
async def search(
    body: SearchRequest,
    engine: SearchEngine = Depends(get_engine),
) -> SearchResponse:
    try:
        results = await engine.service.search(body.query, body.filters, body.location)
    except NetworkFailure as exc:
        raise HTTPException(status_code=502, detail=exc.user_message) from exc
    return SearchResponse(results=results, total=len(results))


@app.post("/suggestions", response_model=list[SearchSuggestion])
async def suggestions(
    body: SuggestionRequest,
    engine: SearchEngine = Depends(get_engine),
) -> list[SearchSuggestion]:
    return await engine.suggestions.suggest(body.input, body.location)


@app.get("/history", response_model=list[HistoryItem])
async def history(
    limit: int = Query(default=50, ge=1, le=50),
    engine: SearchEngine = Depends(get_engine),
) -> list[HistoryItem]:
    return await engine.history.recent(limit)


@app.delete("/history")
async def clear_history(engine: SearchEngine = Depends(get_engine)) -> dict:
    await engine.history.clear()
    return {"status": "cleared"}


@app.delete("/cache")
async def clear_cache(engine: SearchEngine = Depends(get_engine)) -> dict:
    await engine.cache.clear()
    engine.suggestions.clear()
    return {"status": "cleared"}


@app.get("/cache/stats")
def cache_stats(engine: SearchEngine = Depends(get_engine)) -> dict:
    return engine.cache.stats()


# ── Distance helpers ─────────────────────────────────────────────────────


@app.get("/distance/format")
def distance_format(meters: float = Query(..., ge=0.0)) -> dict:
    return {"meters": meters, "formatted": format_distance(meters)}


@app.post("/distance/within-radius")
def within_radius(body: RadiusRequest) -> dict:
    meters = distance(body.center, body.point)
    return {
        "within": is_within_radius(body.center, body.point, body.radius_m),
        "distance_m": round(meters, 1),
    }


# ── Analytics ────────────────────────────────────────────────────────────


@app.get("/analytics")
def analytics(engine: SearchEngine = Depends(get_engine)) -> dict:
    return compute_analytics(engine.events.get_events())


@app.get("/analytics/popular")
def popular(
    limit: int = Query(default=10, ge=1, le=50),
    engine: SearchEngine = Depends(get_engine),
) -> dict:
    return {"queries": popular_searches(engine.events.get_events(), limit)}
