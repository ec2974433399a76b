"""FastAPI application factory."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tokenswap import __version__
from tokenswap.config import get_settings


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Tokenswap API",
        description="Read-only balances, quotes and pool status",
        version=__version__,
        debug=settings.debug,
        docs_url=None if settings.is_production else "/docs",
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else [],
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    # Register routes
    from tokenswap.api.routes import balances, health, pools, quotes

    app.include_router(health.router, tags=["Health"])
    app.include_router(balances.router, tags=["Balances"])
    app.include_router(quotes.router, tags=["Quotes"])
    app.include_router(pools.router, tags=["Pools"])

    return app


# Default app instance
app = create_app()
