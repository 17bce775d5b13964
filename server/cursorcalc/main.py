from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cursorcalc.api.routes import calculator, events, history, sessions
from cursorcalc.core.config import get_settings
from cursorcalc.core.exceptions import register_exception_handlers
from cursorcalc.core.logging import configure_logging
from cursorcalc.core.middleware import RequestContextMiddleware
from cursorcalc.services.events import event_broker


def create_app() -> FastAPI:
    """
    Application factory for the cursor calculator backend.
    Routes are attached in their respective modules and imported here.
    """

    settings = get_settings()
    configure_logging(settings.log_level)
    event_broker.configure(settings.event_backlog_size)

    app = FastAPI(
        title=settings.api_title,
        description="Cursor-addressable expression editing and evaluation.",
        version=settings.api_version,
    )

    cors_origins = settings.resolved_cors_origins
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    register_exception_handlers(app)
    app.add_middleware(RequestContextMiddleware)

    app.include_router(calculator.router)
    app.include_router(sessions.router)
    app.include_router(history.router)
    if settings.enable_sse:
        app.include_router(events.router)

    @app.get("/health", tags=["health"])
    async def health_check() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()
