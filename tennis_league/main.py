"""
Main FastAPI application for the Tennis League Ranking API.
"""
from contextlib import asynccontextmanager
from typing import AsyncGenerator
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator

# Load environment variables from .env file
from dotenv import load_dotenv
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

from tennis_league.core.config import settings
from tennis_league.core.database import SessionLocal, init_db
from tennis_league.core.errors import LeagueError
from tennis_league.core.logging import configure_logging, get_logger
from tennis_league.core.middleware import CorrelationIdMiddleware
from tennis_league.core import metrics
from tennis_league.api.routes import players, seasons, matches, rankings, export
from tennis_league.services.ranking.cache import RankingCache
from tennis_league.services.ranking.warmup import CacheWarmer

# Configure structured logging (JSON in deployed environments, colored locally)
configure_logging(
    level=settings.LOG_LEVEL,
    json_output=settings.LOG_JSON
)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan events."""
    # Startup
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    init_db()

    cache = RankingCache(default_ttl=settings.RANKING_CACHE_DEFAULT_TTL)
    warmer = CacheWarmer(
        cache,
        session_factory=SessionLocal,
        delay_seconds=settings.RANKING_WARMUP_DELAY_SECONDS,
        enabled=settings.RANKING_WARMUP_ENABLED,
    )
    app.state.ranking_cache = cache
    app.state.cache_warmer = warmer

    if settings.SCHEDULER_ENABLED:
        from tennis_league.core.scheduler import start_scheduler
        await start_scheduler(cache, warmer, SessionLocal)
        logger.info("League scheduler started")
    metrics.update_scheduler_metrics()

    # Have the common tables ready for the first visitors
    warmer.schedule()
    logger.info("Application started")

    yield

    # Shutdown
    if settings.SCHEDULER_ENABLED:
        from tennis_league.core.scheduler import stop_scheduler
        await stop_scheduler()
        logger.info("League scheduler stopped")
    await warmer.shutdown()
    logger.info("Shutting down application")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Doubles tennis league: players, seasons, matches, cached rankings and Excel export",
    lifespan=lifespan
)

# Add correlation ID middleware (must be added before CORS for proper header handling)
app.add_middleware(CorrelationIdMiddleware)

# Initialize Prometheus metrics BEFORE including routes
instrumentator = Instrumentator()
instrumentator.instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)
logger.info("Prometheus metrics initialized at /metrics")

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Cache", "X-Cache-Key", "X-Correlation-ID"],
)

# API v1 - All routes use /api/v1/ prefix for versioning
app.include_router(players.router, prefix="/api/v1")
app.include_router(seasons.router, prefix="/api/v1")
app.include_router(matches.router, prefix="/api/v1")
app.include_router(rankings.router, prefix="/api/v1")
app.include_router(export.router, prefix="/api/v1")


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
        "endpoints": {
            "api_version": "v1",
            "players": "/api/v1/players",
            "seasons": "/api/v1/seasons",
            "matches": "/api/v1/matches",
            "rankings": {
                "lifetime": "/api/v1/rankings/lifetime",
                "season": "/api/v1/rankings/season/{season_id}",
                "date": "/api/v1/rankings/date/{YYYY-MM-DD}",
                "cache_stats": "/api/v1/rankings/cache/stats"
            },
            "export": "/api/v1/export",
            "docs": "/docs",
            "health": "/health",
            "metrics": "/metrics"
        }
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": settings.APP_VERSION
    }


@app.get("/api/health")
async def api_health(request: Request):
    """Detailed API health check with component-level status."""
    health_status = {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "components": {}
    }

    all_healthy = True

    # 1. Database Health Check
    try:
        from tennis_league.models import Player, Season, Match

        db = SessionLocal()
        try:
            health_status["components"]["database"] = {
                "status": "connected",
                "counts": {
                    "players": db.query(Player).count(),
                    "seasons": db.query(Season).count(),
                    "matches": db.query(Match).count()
                }
            }
        finally:
            db.close()

    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        health_status["components"]["database"] = {
            "status": "unhealthy",
            "error": str(e)
        }
        all_healthy = False

    # 2. Scheduler Health Check
    if settings.SCHEDULER_ENABLED:
        from tennis_league.core.scheduler import get_scheduler

        scheduler = get_scheduler()
        if scheduler and scheduler.running:
            jobs = scheduler.scheduler.get_jobs() if scheduler.scheduler else []
            health_status["components"]["scheduler"] = {
                "status": "running",
                "jobs_count": len(jobs),
                "jobs": [{"id": j.id, "name": j.name} for j in jobs]
            }
        else:
            health_status["components"]["scheduler"] = {"status": "stopped"}
            all_healthy = False
        metrics.update_scheduler_metrics()
    else:
        health_status["components"]["scheduler"] = {"status": "disabled"}

    # 3. Ranking cache
    cache = getattr(request.app.state, "ranking_cache", None)
    if cache is not None:
        stats = cache.get_stats()
        health_status["components"]["ranking_cache"] = {
            "status": "ok",
            "entries": stats["current_entries"],
            "hit_rate": stats["hit_rate"]
        }

    if not all_healthy:
        health_status["status"] = "degraded"

    status_code = 200 if health_status["status"] == "healthy" else 503

    return JSONResponse(
        status_code=status_code,
        content=health_status
    )


# Exception handlers
@app.exception_handler(LeagueError)
async def league_error_handler(request: Request, exc: LeagueError):
    """Domain errors that escaped a route keep their status code."""
    logger.info(f"{exc.code} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.error(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "detail": str(exc)}
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "tennis_league.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG
    )
