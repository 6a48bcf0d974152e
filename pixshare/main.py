import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pixshare.cache import cache
from pixshare.config import settings
from pixshare.database import create_schema
from pixshare.errors import NotFoundError, StoreError, UnauthorizedError
from pixshare.logging_config import setup_logging
from pixshare.middleware import StoreCallsMiddleware
from pixshare.routers import posts, users

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    setup_logging(settings.LOG_LEVEL)
    if settings.CREATE_SCHEMA:
        await create_schema()
    try:
        await cache.connect()
    except Exception as exc:
        logger.warning("Cache unavailable, continuing without it: %s", exc)
    yield
    # Shutdown
    await cache.disconnect()

app = FastAPI(
    title="Pixshare API",
    description="Photo posts with comments and likes",
    version="1.0.0",
    lifespan=lifespan,
)

# Middleware
app.add_middleware(StoreCallsMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(posts.router)
app.include_router(users.router)

# Service errors -> HTTP
@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})

@app.exception_handler(UnauthorizedError)
async def unauthorized_handler(request: Request, exc: UnauthorizedError):
    return JSONResponse(status_code=403, content={"detail": str(exc)})

@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=502, content={"detail": "Storage backend unavailable"})

@app.get("/health")
async def health():
    return {"status": "healthy", "version": "1.0.0"}
