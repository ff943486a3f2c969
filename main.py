"""Application entry point for the Dish Matching API.

Defines FastAPI app, middleware, exception handlers and includes API
routers from the `api` package. The `lifespan` handler loads the catalogs
and builds the matching service before serving requests; invalid catalog
data aborts startup.
"""

import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from core.config import get_settings
from core.logger import get_logger
from core.error_handlers import register_exception_handlers
from services.matching_service import build_matching_service
from api.matching import router as matching_router

logger = get_logger("main")

REQUEST_ID_HEADER = "X-Request-ID"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Fastapi lifespan context: load catalogs and build services before serving requests."""
    settings = get_settings()
    app.state.matching = build_matching_service(settings)
    logger.info(
        "Matching service ready: %s dishes, %s stock items",
        app.state.matching.dishes.size(),
        app.state.matching.stock.size(),
    )
    yield


app = FastAPI(title="Dish Matching API", version="1.0.0", lifespan=lifespan)


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register exception handlers
register_exception_handlers(app)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Tag each request with a correlation id and log it with its outcome."""
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
    request.state.request_id = request_id
    logger.info("[%s] %s %s", request_id, request.method, request.url.path)
    try:
        response = await call_next(request)
    except Exception:
        logger.exception("[%s] Request error: %s %s", request_id, request.method, request.url.path)
        raise
    response.headers[REQUEST_ID_HEADER] = request_id
    logger.info("[%s] %s %s -> %s", request_id, request.method, request.url.path, response.status_code)
    return response


@app.get("/health")
def health(request: Request):
    """Return basic health status and catalog sizes."""
    service = request.app.state.matching
    return {
        "status": "healthy",
        "catalogs": {"dishes": service.dishes.size(), "stock": service.stock.size()},
        "cache_entries": len(service.cache),
    }


# include routers
app.include_router(matching_router)


if __name__ == "__main__":
    # Allow starting the app via `python ./main.py`
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
