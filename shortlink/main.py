"""
FastAPI Application Entry Point

This module initializes the FastAPI application and configures:
- API routes and the catch-all redirect route
- Middleware (logging, CORS)
- Error mapping for the service exception taxonomy
- Startup/shutdown of the process-wide service resources

Design Decisions:
- Clean separation: Routes, middleware, and app config are separate
- Explicit wiring: connections are built once at startup and handed to
  handlers through app.state, never through module globals
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shortlink.api import endpoints
from shortlink.api.errors import add_exception_handlers
from shortlink.core.log_config import configure_logging
from shortlink.core.resources import build_resources
from shortlink.middleware.logging import add_logging_middleware

configure_logging()
logger = logging.getLogger(__name__)

# Title and description are used in auto-generated API documentation
app = FastAPI(
    title="Link Shortener Service",
    description="URL shortening with cached redirects and click analytics",
    version="1.0.0",
    docs_url="/docs",  # Swagger UI documentation
    redoc_url="/redoc",  # ReDoc documentation
)

add_exception_handlers(app)
add_logging_middleware(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Health endpoints defined before router to match before catch-all route
@app.get("/", tags=["Health"])
async def root():
    """Root endpoint for health checks."""
    return {
        "message": "Link Shortener Service",
        "version": "1.0.0",
        "docs": "/docs"
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for monitoring."""
    return {"status": "healthy"}


app.include_router(endpoints.router, tags=["Links"])
app.include_router(endpoints.redirect_router, tags=["Redirect"])


@app.on_event("startup")
async def startup_event():
    """Build the service resources unless they were provided already."""
    if getattr(app.state, "resources", None) is None:
        app.state.resources = await build_resources()
    logger.info("Link service started")


@app.on_event("shutdown")
async def shutdown_event():
    """Drain pending clicks and release connections."""
    resources = getattr(app.state, "resources", None)
    if resources is not None:
        await resources.close()
        app.state.resources = None
