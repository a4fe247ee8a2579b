import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from conduit.cache import cache
from conduit.config import settings
from conduit.database import engine
from conduit.errors import install_exception_handlers
from conduit.logging_config import configure_logging
from conduit.middleware import RequestContextMiddleware
from conduit.routers import articles, profiles, tags, users

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    configure_logging(settings)
    logger.info("Starting Conduit API (env=%s)", settings.APP_ENV)
    try:
        await cache.connect()
    except Exception as exc:
        # App works without Redis
        logger.warning("Cache unavailable: %s", exc)
    yield
    # Shutdown
    await cache.disconnect()
    await engine.dispose()

app = FastAPI(
    title="Conduit API",
    description="RealWorld blogging backend built on a transactional session layer",
    version="1.0.0",
    lifespan=lifespan,
)

# Middleware
app.add_middleware(RequestContextMiddleware, request_timeout=settings.REQUEST_TIMEOUT_SECONDS)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

install_exception_handlers(app)

# Routers
app.include_router(users.router)
app.include_router(profiles.router)
app.include_router(articles.router)
app.include_router(tags.router)

@app.get("/health")
async def health():
    return {"status": "healthy", "version": "1.0.0"}
