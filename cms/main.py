import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cms.cache import cache
from cms.config import settings
from cms.errors import install_error_handlers
from cms.middleware import AccessLogMiddleware
from cms.routers import articles, auth, users

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup; the service runs without Redis, only article reads go uncached.
    await cache.connect()
    logger.info("CMS API started (env=%s)", settings.APP_ENV)
    yield
    # Shutdown
    await cache.disconnect()


app = FastAPI(
    title="Nanaket CMS",
    description="Headless CMS backend: users, articles, comments and token auth",
    version="1.0.0",
    lifespan=lifespan,
)

install_error_handlers(app)

# Middleware
app.add_middleware(AccessLogMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(auth.router)
app.include_router(articles.router)
app.include_router(users.router)


@app.get("/health")
async def health():
    return {
        "status": "healthy",
        "version": "1.0.0",
        "cache": "connected" if cache.enabled else "disabled",
    }
