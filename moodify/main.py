"""
Moodify - Main FastAPI Application
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from moodify.api import auth, mood, music
from moodify.config import Settings, get_settings
from moodify.database import Base, build_engine, build_session_factory
from moodify.errors import MoodifyError
from moodify.services.spotify_client import SpotifyClient

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application. Fails fast on missing configuration."""
    settings = (settings or get_settings()).validate()

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Create database tables
    engine = build_engine(settings.database_url)
    Base.metadata.create_all(bind=engine)

    app = FastAPI(
        title="Moodify",
        description="Mood-based music recommendations from Spotify",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.settings = settings
    app.state.db_engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.spotify_client = SpotifyClient(settings)

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        session_cookie=settings.session_cookie,
        max_age=settings.session_max_age,
        same_site="lax",
        https_only=False,
    )

    @app.exception_handler(MoodifyError)
    async def moodify_error_handler(request: Request, exc: MoodifyError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={
                "error": "Validation error",
                "message": "Request parameters or body are malformed",
                "details": jsonable_encoder(exc.errors()),
            },
        )

    # Include API routers
    app.include_router(auth.router, tags=["authentication"])
    app.include_router(music.router, tags=["music"])
    app.include_router(music.router, prefix="/api/music", tags=["music"])
    app.include_router(mood.router, prefix="/api/mood", tags=["mood"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {"status": "healthy", "service": "moodify"}

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=get_settings().port)
