"""
CDP Lineage Dashboard API Server
--------------------------------
FastAPI backend serving the lineage graphs, filter options and statistics of
one dashboard session.

Endpoints:
- GET  /api/health             - Health check
- GET  /api/graph              - Overview graph (sources → hub → downstream)
- GET  /api/detail             - Drill-down flow of the selected node (409 on overview)
- POST /api/select/{node_id}   - Drill into a downstream node
- POST /api/back               - Return to the overview
- GET  /api/filters            - Current selection and every field's options
- GET  /api/options/{field}    - Options of one field
- POST /api/filters            - Change one field ({field, value})
- POST /api/filters/reset      - Clear every field
- GET  /api/stats              - KPI summary of the filtered records
- POST /api/refresh            - Reload the configured data file
"""

import logging
import os
import time
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .core.data_loader import ValidationError
from .core.logger import PACKAGE_LOGGER, route_server_logs
from .core.session import DashboardSession, SessionError
from .core.settings import PROJECT_ROOT, load_settings
from .models import FilterField, FilterUpdate

logger = logging.getLogger(__name__)


# Global session, created lazily so importing the module never reads config
_session: Optional[DashboardSession] = None
_loaded_at: Optional[datetime] = None


def get_session() -> DashboardSession:
    global _session
    if _session is None:
        _session = DashboardSession(load_settings())
    return _session


def set_session(session: DashboardSession) -> None:
    """Install a session (for programmatic use and tests)."""
    global _session, _loaded_at
    _session = session
    _loaded_at = datetime.now() if session.data_source else None


def _reload(session: DashboardSession) -> int:
    global _loaded_at
    start_time = time.time()
    count = session.reload()
    _loaded_at = datetime.now()
    logger.info(f"Loaded {count} records in {(time.time() - start_time) * 1000:.0f}ms")
    return count


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load the configured data file on startup."""
    logger.info("Starting CDP Lineage Dashboard")
    logger.info(f"Project root: {PROJECT_ROOT}")

    session = get_session()
    if session.data_source is None:
        try:
            _reload(session)
        except (SessionError, FileNotFoundError, ValidationError) as e:
            logger.warning(f"Could not pre-load data: {e}")

    yield

    logger.info("Shutting down CDP Lineage Dashboard")


app = FastAPI(
    title="CDP Lineage Dashboard",
    description="Source → CDP → downstream lineage flows with drill-down and filtering",
    version=__version__,
    lifespan=lifespan,
)

# Set CORS_ORIGINS to a comma-separated list of allowed origins
_cors_origins = os.getenv("CORS_ORIGINS", "http://localhost:8000,http://127.0.0.1:8000").split(",")
_cors_allow_all = os.getenv("CORS_ALLOW_ALL", "false").lower() == "true"

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if _cors_allow_all else _cors_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type"],
)


# Simple in-memory rate limiting for the reload endpoint
_rate_limit_store: dict = {}
_rate_limit_window = 60  # seconds
_rate_limit_max_requests = int(os.getenv("RATE_LIMIT_MAX", "30"))


def check_rate_limit(client_ip: str, endpoint: str) -> bool:
    """Returns True if the request should be allowed, False if rate limited."""
    key = f"{client_ip}:{endpoint}"
    now = time.time()

    requests = [t for t in _rate_limit_store.get(key, []) if now - t < _rate_limit_window]
    if len(requests) >= _rate_limit_max_requests:
        _rate_limit_store[key] = requests
        return False

    requests.append(now)
    _rate_limit_store[key] = requests
    return True


def _filters_payload(session: DashboardSession) -> dict:
    return {"state": session.filter_state.model_dump(), "options": session.all_options()}


# API Endpoints
@app.get("/api/health")
async def health_check():
    session = get_session()
    return {
        "status": "healthy",
        "version": __version__,
        "records": session.record_count,
        "loaded_at": _loaded_at.isoformat() if _loaded_at else None,
        "view": session.view.to_dict(),
    }


@app.get("/api/graph")
async def get_graph():
    """Overview graph for the current filters."""
    try:
        return get_session().overview().model_dump(mode='json')
    except Exception as e:
        logger.error(f"Error building graph: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error building graph")


@app.get("/api/detail")
async def get_detail():
    """Drill-down flow of the selected downstream application."""
    session = get_session()
    if not session.view.is_detail:
        raise HTTPException(status_code=409, detail="No node selected; select a downstream node first")
    try:
        flow = session.detail()
    except Exception as e:
        logger.error(f"Error building detail flow: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error building detail flow")
    if flow is None:
        raise HTTPException(status_code=409, detail="Selected node is no longer available")
    return flow.model_dump(mode='json')


@app.post("/api/select/{node_id:path}")
async def select_node(node_id: str):
    """Drill into a node of the overview; non-drillable nodes leave the view unchanged."""
    session = get_session()
    if session.overview().node(node_id) is None:
        raise HTTPException(status_code=404, detail=f"Node not found: {node_id}")
    before = session.view
    view = session.select(node_id)
    return {"view": view.to_dict(), "changed": view != before}


@app.post("/api/back")
async def back():
    return {"view": get_session().back().to_dict()}


@app.get("/api/filters")
async def get_filters():
    return _filters_payload(get_session())


@app.get("/api/options/{field}")
async def get_options(field: str):
    try:
        filter_field = FilterField(field)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unknown filter field: {field}")
    return {"field": filter_field.value, "options": get_session().options(filter_field)}


@app.post("/api/filters")
async def set_filter(update: FilterUpdate):
    """Change one filter field; other fields that no longer fit are reset to ALL."""
    session = get_session()
    try:
        change = session.set_filter(update.field, update.value)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {
        **_filters_payload(session),
        "reset_fields": [f.value for f in change.reset_fields],
        "view": session.view.to_dict(),
    }


@app.post("/api/filters/reset")
async def reset_filters():
    session = get_session()
    session.reset_filters()
    return {**_filters_payload(session), "view": session.view.to_dict()}


@app.get("/api/stats")
async def get_stats():
    try:
        return get_session().stats().model_dump()
    except Exception as e:
        logger.error(f"Error computing stats: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error computing statistics")


@app.post("/api/refresh")
async def refresh(request: Request):
    """Reload the data file. Rate limited."""
    client_ip = request.client.host if request.client else "unknown"
    if not check_rate_limit(client_ip, "refresh"):
        raise HTTPException(status_code=429, detail="Rate limit exceeded. Try again later.")

    session = get_session()
    try:
        count = _reload(session)
    except SessionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        logger.error(f"Error refreshing: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error refreshing data")
    return {"status": "refreshed", "records": count, "loaded_at": _loaded_at.isoformat()}


def run_server(session: Optional[DashboardSession] = None, host: str = "127.0.0.1", port: int = 8000):
    """
    Run the dashboard server.

    Args:
        session: Optional pre-built session; one is built from config/env if omitted
        host: Server host (default: 127.0.0.1)
        port: Server port (default: 8000)
    """
    import uvicorn

    if session is not None:
        set_session(session)

    options = {}
    if logging.getLogger(PACKAGE_LOGGER).handlers:
        # Logging already configured: keep uvicorn from installing its own
        route_server_logs()
        options["log_config"] = None
    uvicorn.run(app, host=host, port=port, **options)
