"""
Shared fixtures: test settings, in-memory database and a fake Spotify client
"""

import os

os.environ.setdefault("SPOTIFY_CLIENT_ID", "test_client_id")
os.environ.setdefault("SPOTIFY_CLIENT_SECRET", "test_client_secret")
os.environ.setdefault("SPOTIFY_REDIRECT_URI", "http://localhost:3555/callback")
os.environ.setdefault("SESSION_SECRET", "test_session_secret")
os.environ.setdefault("DATABASE_URL", "sqlite://")

import random
from typing import Dict, List, Optional
from urllib.parse import parse_qs, urlparse

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from moodify.api.dependencies import (
    get_clock,
    get_recommendation_engine,
    get_spotify_client,
)
from moodify.database import Base, get_db
from moodify.main import app
from moodify.schemas import (
    PlaylistOwner,
    PlaylistSummary,
    ProviderProfile,
    SpotifyTrack,
    TokenGrant,
)
from moodify.services.recommendation_engine import RecommendationEngine
from moodify.services.spotify_client import SpotifyAPIError

NOW_MS = 1_700_000_000_000


def make_track(track_id: str, name: Optional[str] = None, artists=("Test Artist",)) -> SpotifyTrack:
    return SpotifyTrack.model_validate(
        {
            "id": track_id,
            "name": name or f"Track {track_id}",
            "artists": [{"name": artist} for artist in artists],
            "album": {"name": f"Album {track_id}"},
            "preview_url": None,
            "external_urls": {"spotify": f"https://open.spotify.com/track/{track_id}"},
            "duration_ms": 200000,
            "popularity": 50,
        }
    )


def make_playlist(playlist_id: str, name: Optional[str] = "Playlist", owner=True) -> PlaylistSummary:
    return PlaylistSummary(
        id=playlist_id,
        name=name,
        owner=PlaylistOwner(id="owner", display_name="Owner") if owner else None,
    )


class FakeClock:
    def __init__(self, now: int = NOW_MS):
        self.now = now

    def __call__(self) -> int:
        return self.now


class FakeSpotifyClient:
    """Stands in for SpotifyClient; records calls and returns canned data"""

    def __init__(self):
        self.calls: List[tuple] = []
        self.token_grant = TokenGrant(
            access_token="test_access_token",
            refresh_token="test_refresh_token",
            expires_in=3600,
        )
        self.profile = ProviderProfile(id="user_a", display_name="User A")
        self.playlists: List[Optional[PlaylistSummary]] = []
        self.playlist_tracks: Dict[str, List[Optional[SpotifyTrack]]] = {}
        self.recommendations: List[SpotifyTrack] = []
        self.genres = ["pop", "dance", "funk"]
        self.errors: Dict[str, SpotifyAPIError] = {}

    def _record(self, name, *args, **kwargs):
        self.calls.append((name, args, kwargs))
        if name in self.errors:
            raise self.errors[name]

    def build_authorize_url(self, state: str) -> str:
        return f"https://accounts.spotify.com/authorize?client_id=test_client_id&state={state}"

    def exchange_code_for_tokens(self, code: str) -> TokenGrant:
        self._record("exchange_code_for_tokens", code)
        return self.token_grant

    def get_user_profile(self, access_token: str) -> ProviderProfile:
        self._record("get_user_profile", access_token)
        return self.profile

    def get_recommendations(self, access_token, seed_genres, target_features=None, limit=20):
        self._record(
            "get_recommendations",
            access_token,
            seed_genres=seed_genres,
            target_features=target_features,
            limit=limit,
        )
        return list(self.recommendations)

    def search_playlists(self, access_token, query, limit=10):
        self._record("search_playlists", access_token, query, limit=limit)
        return list(self.playlists)

    def get_playlist_tracks(self, access_token, playlist_id, limit=20):
        self._record("get_playlist_tracks", access_token, playlist_id, limit=limit)
        return list(self.playlist_tracks.get(playlist_id, []))[:limit]

    def get_available_genre_seeds(self, access_token):
        self._record("get_available_genre_seeds", access_token)
        return list(self.genres)

    def call_names(self) -> List[str]:
        return [name for name, _, _ in self.calls]


@pytest.fixture
def fake_spotify():
    return FakeSpotifyClient()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session(db_engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def strategy():
    return "search"


@pytest.fixture
def client(db_engine, fake_spotify, clock, strategy):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_spotify_client] = lambda: fake_spotify
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_recommendation_engine] = lambda: RecommendationEngine(
        fake_spotify, strategy=strategy, rng=random.Random(0)
    )

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def start_login(client: TestClient) -> str:
    """Hit /login and return the anti-forgery state from the redirect"""
    response = client.get("/login", follow_redirects=False)
    assert response.status_code == 302
    query = parse_qs(urlparse(response.headers["location"]).query)
    return query["state"][0]


@pytest.fixture
def login(client, fake_spotify):
    """Complete the OAuth flow for a user id, leaving the session cookie set"""

    def _login(user_id: str = "user_a"):
        fake_spotify.profile = ProviderProfile(id=user_id, display_name=user_id)
        state = start_login(client)
        response = client.get(
            "/callback", params={"code": "auth_code", "state": state}, follow_redirects=False
        )
        assert response.headers["location"] == "/?authenticated=true"
        return user_id

    return _login
