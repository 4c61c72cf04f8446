"""FastAPI application factory."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from accountkit.config import get_settings
from accountkit.services.notifications import wait_for_pending_sends
from accountkit.storage.database import close_db, init_db
from accountkit.web.responses import register_exception_handlers


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    await init_db()
    yield
    # Shutdown
    await wait_for_pending_sends()
    await close_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=f"{settings.api_name} account API",
        description="Exchange account, session and wallet endpoints",
        version="0.1.0",
        lifespan=lifespan,
        debug=settings.debug,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Register routes
    from accountkit.api.routes import health
    from accountkit.web.controllers import auth_router, tokens_router, user_router, wallet_router

    app.include_router(health.router, tags=["Health"])
    for router in (auth_router, user_router, tokens_router, wallet_router):
        app.include_router(router, prefix=settings.api_prefix)

    return app


# Default app instance
app = create_app()
