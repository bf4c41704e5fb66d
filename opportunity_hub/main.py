# opportunity_hub/main.py
import logging
import sys
import asyncio

from fastapi import FastAPI, Request
from starlette.responses import JSONResponse, PlainTextResponse

from opportunity_hub.core.db import refresh_backend
from opportunity_hub.core.errors import QueryError, StorageError
from opportunity_hub.core.settings import settings

logger = logging.getLogger(__name__)

# -------------------------------------------------------------------
# Windows event-loop quirk
# -------------------------------------------------------------------
if sys.platform.startswith("win"):
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# -------------------------------------------------------------------
# FastAPI app setup
# -------------------------------------------------------------------
app = FastAPI(title="Opportunity Hub", version="0.1")

from opportunity_hub.api import opportunities  # noqa: E402
from opportunity_hub.core.scheduler import start_scheduler  # noqa: E402

# -------------------------------------------------------------------
# Log every request
# -------------------------------------------------------------------
@app.middleware("http")
async def log_every_request(request: Request, call_next):
    logger.debug("[REQ] %s %s", request.method, request.url.path)
    response = await call_next(request)
    route = request.scope.get("route")
    logger.debug(
        "[RES] %s for %s (route=%s)",
        response.status_code, request.url.path, getattr(route, "path", None),
    )
    return response

# -------------------------------------------------------------------
# Error mapping
# -------------------------------------------------------------------
@app.exception_handler(StorageError)
async def handle_storage_error(request: Request, exc: StorageError):
    logger.error("Storage error on %s: %s", request.url.path, exc)
    return JSONResponse({"success": False, "error": "Storage unavailable"}, status_code=503)


@app.exception_handler(QueryError)
async def handle_query_error(request: Request, exc: QueryError):
    return JSONResponse({"success": False, "error": str(exc)}, status_code=400)

# -------------------------------------------------------------------
# Routers
# -------------------------------------------------------------------
app.include_router(opportunities.router)

# -------------------------------------------------------------------
# Health check
# -------------------------------------------------------------------
@app.get("/health", include_in_schema=False)
async def health():
    return PlainTextResponse("ok")

# -------------------------------------------------------------------
# Startup
# -------------------------------------------------------------------
@app.on_event("startup")
async def on_startup():
    await refresh_backend()
    if settings.START_SCHEDULER_WEB:
        start_scheduler()
