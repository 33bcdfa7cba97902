"""
Reflection Insight Engine: API Server
=====================================

Read-only JSON surface over the engine. Clients post a reflection snapshot
and receive cards; the server keeps no reflections between requests.

Endpoints:
- GET  /health
- POST /api/v1/insights/{horizon}   -> Artifact
- POST /api/v1/distribution         -> DistributionResult
- POST /api/v1/topics               -> topic drift buckets + contrast pairs
- GET  /api/v1/audit                -> audit trail counts and metric aggregates

Usage:
    uvicorn insight_engine.api.server:app --reload
"""
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..config import EngineConfig
from ..contracts.artifact import Horizon
from ..engine import InsightEngine
from .mapper import map_now, map_reflections, map_topics_to_dto, map_window

# =============================================================================
# INFRASTRUCTURE SETUP
# =============================================================================

DEFAULT_WINDOW_DAYS = 90

# Global Engine Instance
engine_instance: Optional[InsightEngine] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize the engine on startup."""
    global engine_instance

    config = EngineConfig.from_env()
    print(f"[*] Initializing Insight Engine (timezone: {config.timezone})")
    engine_instance = InsightEngine(config)
    print("[*] Engine initialized successfully.")

    yield

    print("[*] Shutting down insight engine.")
    engine_instance = None


app = FastAPI(
    title="Reflection Insight Engine API",
    version="0.1.0",
    description="Descriptive, evidence-backed insights over journal reflections",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    return JSONResponse(status_code=422, content={"detail": str(exc)})


# =============================================================================
# REQUEST MODELS
# =============================================================================

class SnapshotRequest(BaseModel):
    reflections: List[Dict[str, Any]] = Field(default_factory=list)
    now: Optional[str] = None


class InsightRequest(SnapshotRequest):
    window: Optional[Dict[str, Any]] = None


def _engine() -> InsightEngine:
    if not engine_instance:
        raise HTTPException(status_code=503, detail="Engine not initialized")
    return engine_instance


# =============================================================================
# ENDPOINTS
# =============================================================================

@app.get("/health")
async def health_check():
    """System status."""
    engine = _engine()
    return {"status": "online", "timezone": engine.config.timezone}


@app.post("/api/v1/insights/{horizon}")
async def get_insights(horizon: str, body: InsightRequest):
    """
    Build an artifact for one horizon (timeline, summary, distributions).
    The window is `{start, end}` or `{windowDays}`; defaults to the last 90 days.
    """
    engine = _engine()
    try:
        selected = Horizon(horizon)
    except ValueError:
        raise HTTPException(status_code=404, detail=f"Unknown horizon: {horizon}")

    reflections = map_reflections(body.reflections)
    now = engine.resolve_now(map_now(body.now))
    window = map_window(body.window, now, DEFAULT_WINDOW_DAYS)
    artifact = engine.build_artifact(reflections, window, now, selected)
    return artifact.to_dict()


@app.post("/api/v1/distribution")
async def get_distribution(body: SnapshotRequest, window_days: int = Query(30, gt=0)):
    """Distribution shape of daily counts over the trailing window."""
    engine = _engine()
    reflections = map_reflections(body.reflections)
    result = engine.distribution(reflections, window_days, map_now(body.now))
    return result.to_dict()


@app.post("/api/v1/topics")
async def get_topics(body: SnapshotRequest):
    """Topic drift buckets and the contrast pairs derived from them."""
    engine = _engine()
    reflections = map_reflections(body.reflections)
    buckets, pairs = engine.topics(reflections, map_now(body.now))
    return map_topics_to_dto(buckets, pairs)


@app.get("/api/v1/audit")
async def get_audit():
    """Audit trail summary for this process: entries by layer and type, metric aggregates."""
    engine = _engine()
    return engine.observability.generate_audit_report()
