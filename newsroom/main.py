import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from newsroom.config import settings
from newsroom.database import Database
from newsroom.errors import register_exception_handlers
from newsroom.logging_config import setup_logging
from newsroom.middleware import RequestLoggingMiddleware
from newsroom.rate_limit import setup_rate_limiting
from newsroom.routers import admin, articles, auth, bookmarks, categories, comments, news

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger("newsroom")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: tests attach their own Database before the app starts
    database = getattr(app.state, "database", None)
    if database is None:
        database = Database(settings.DATABASE_URL, echo=settings.DEBUG, pool_pre_ping=True)
        app.state.database = database
    database.open()
    logger.info("Newsroom API started (env=%s)", settings.APP_ENV)
    yield
    # Shutdown
    await database.close()
    logger.info("Newsroom API stopped")


app = FastAPI(
    title="Newsroom API",
    description="Content management backend: articles, categories, comments, bookmarks and news",
    version="1.0.0",
    lifespan=lifespan,
)

# Middleware (first added runs innermost)
setup_rate_limiting(app)
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

register_exception_handlers(app)

# Routers
app.include_router(auth.router)
app.include_router(admin.router)
app.include_router(articles.router)
app.include_router(categories.router)
app.include_router(comments.router)
app.include_router(bookmarks.router)
app.include_router(news.router)


@app.get("/health")
async def health():
    return {"status": "healthy", "version": "1.0.0"}
