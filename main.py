from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from shortlink_app.config import settings
from shortlink_app.logging_config import setup_logging
from shortlink_app.database.connection import engine, Base
from shortlink_app.api.errors import register_error_handlers
from shortlink_app.api.v1 import auth, urls, redirect, live
from shortlink_app.middleware import (
    LoggingMiddleware,
    RequestContextMiddleware,
    SecurityHeadersMiddleware,
)

# Import models to ensure they're registered with Base
from shortlink_app.models import User, URL, ClickEvent

logger = setup_logging(settings.log_level, json_format=settings.log_json)

# Create database tables
Base.metadata.create_all(bind=engine)

# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="URL shortener with click analytics and live click updates",
    debug=settings.debug
)

# Last added runs first: request context must wrap everything else
app.add_middleware(LoggingMiddleware)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)
app.add_middleware(RequestContextMiddleware)

register_error_handlers(app)


@app.get("/")
def read_root():
    """Root endpoint with API information"""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "api": settings.api_prefix,
        "live": settings.live_path,
        "docs": "/docs",
    }


@app.get("/health")
def health_check():
    """Health check endpoint, including database reachability"""
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        database = "connected"
    except Exception as e:
        logger.warning("Database health check failed: %s", e)
        database = "disconnected"

    return JSONResponse(
        status_code=200 if database == "connected" else 503,
        content={
            "status": "ok" if database == "connected" else "error",
            "database": database,
            "environment": settings.environment,
        },
    )


######## Include routers
app.include_router(auth.router, prefix=settings.api_prefix)
app.include_router(urls.router, prefix=settings.api_prefix)
app.include_router(live.router)
# Catch-all top-level route goes last so it never shadows the routes above
app.include_router(redirect.router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.host, port=settings.port)
