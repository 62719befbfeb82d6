"""
Shared FastAPI dependencies
"""

from typing import Callable

from fastapi import Depends, Request

from moodify.config import Settings
from moodify.services.oauth import epoch_ms
from moodify.services.recommendation_engine import RecommendationEngine
from moodify.services.spotify_client import SpotifyClient


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_spotify_client(request: Request) -> SpotifyClient:
    """The SpotifyClient built at startup. It holds no per-user state."""
    return request.app.state.spotify_client


def get_clock() -> Callable[[], int]:
    """Current time source in epoch milliseconds"""
    return epoch_ms


def get_recommendation_engine(
    spotify_client: SpotifyClient = Depends(get_spotify_client),
    settings: Settings = Depends(get_app_settings),
) -> RecommendationEngine:
    return RecommendationEngine(spotify_client, strategy=settings.recommendation_strategy)
