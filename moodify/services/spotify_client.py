"""
Spotify API client: OAuth 2.0 Authorization Code flow and Web API calls
"""

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import requests
import spotipy
from pydantic import BaseModel, ValidationError
from spotipy.exceptions import SpotifyException

from moodify.config import Settings, get_settings
from moodify.schemas import (
    ApiErrorBody,
    ApiErrorDetail,
    PlaylistSummary,
    ProviderProfile,
    SpotifyTrack,
    TokenErrorBody,
    TokenGrant,
    decode_token_response,
)

logger = logging.getLogger(__name__)

AUTHORIZE_URL = "https://accounts.spotify.com/authorize"
TOKEN_URL = "https://accounts.spotify.com/api/token"

OAUTH_SCOPES = [
    "user-read-private",
    "user-read-email",
    "user-top-read",
    "user-read-recently-played",
]

# Spotify API limits
MAX_SEEDS = 5
MAX_RECOMMENDATIONS = 100


class SpotifyAPIError(Exception):
    """A failed call to Spotify, with the upstream status and body when known"""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        body: Any = None,
        timeout: bool = False,
    ):
        super().__init__(message)
        self.status = status
        self.body = body
        self.timeout = timeout


def _decode(description: str, model, payload: Any) -> BaseModel:
    """Validate an upstream payload; a shape we do not understand is an upstream failure"""
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        logger.error(f"Unexpected Spotify {description} payload: {e}")
        raise SpotifyAPIError(f"Unexpected Spotify {description} payload", body=payload) from e


class SpotifyClient:
    """Spotify API client. Never retries; every call has a bounded timeout."""

    def __init__(self, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self.client_id = settings.spotify_client_id
        self.client_secret = settings.spotify_client_secret
        self.redirect_uri = settings.spotify_redirect_uri
        self.timeout = settings.spotify_timeout

        if not all([self.client_id, self.client_secret, self.redirect_uri]):
            raise ValueError("Missing required Spotify API credentials")

        self.scope = " ".join(OAUTH_SCOPES)

    def build_authorize_url(self, state: str) -> str:
        """Authorization URL the user is redirected to"""
        query = urlencode(
            {
                "response_type": "code",
                "client_id": self.client_id,
                "scope": self.scope,
                "redirect_uri": self.redirect_uri,
                "state": state,
            }
        )
        return f"{AUTHORIZE_URL}?{query}"

    def exchange_code_for_tokens(self, code: str) -> TokenGrant:
        """Exchange authorization code for access and refresh tokens"""
        data = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self.redirect_uri,
        }

        try:
            response = requests.post(
                TOKEN_URL,
                data=data,
                auth=(self.client_id, self.client_secret),
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            raise SpotifyAPIError(f"Token exchange timed out: {e}", timeout=True)
        except requests.exceptions.RequestException as e:
            raise SpotifyAPIError(f"Token exchange request failed: {e}")

        try:
            payload = response.json()
        except ValueError:
            payload = response.text

        try:
            decoded = decode_token_response(payload)
        except ValidationError as e:
            logger.error(f"Unexpected token endpoint payload: {e}")
            raise SpotifyAPIError(
                "Unexpected token endpoint payload", status=response.status_code, body=payload
            ) from e
        if response.status_code != 200 or not isinstance(decoded, TokenGrant):
            if isinstance(decoded, TokenErrorBody):
                payload = decoded.model_dump()
            logger.error(f"Token exchange failed ({response.status_code}): {payload}")
            raise SpotifyAPIError(
                "Failed to exchange code for tokens",
                status=response.status_code,
                body=payload,
            )

        return decoded

    def get_spotify_client(self, access_token: str) -> spotipy.Spotify:
        """Get authenticated Spotify client"""
        return spotipy.Spotify(
            auth=access_token,
            requests_timeout=self.timeout,
            retries=0,
            status_retries=0,
        )

    def _call(self, description: str, func, *args, **kwargs) -> Any:
        try:
            return func(*args, **kwargs)
        except SpotifyException as e:
            logger.error(f"Spotify {description} failed ({e.http_status}): {e.msg}")
            raise SpotifyAPIError(
                f"Spotify {description} failed",
                status=e.http_status,
                body=ApiErrorBody(
                    error=ApiErrorDetail(status=e.http_status, message=e.msg)
                ).model_dump(),
            )
        except requests.exceptions.Timeout as e:
            logger.error(f"Spotify {description} timed out: {e}")
            raise SpotifyAPIError(f"Spotify {description} timed out", timeout=True)
        except requests.exceptions.RequestException as e:
            logger.error(f"Spotify {description} request failed: {e}")
            raise SpotifyAPIError(f"Spotify {description} request failed", body=str(e))

    def get_user_profile(self, access_token: str) -> ProviderProfile:
        """Get user profile information"""
        sp = self.get_spotify_client(access_token)
        payload = self._call("profile fetch", sp.current_user)
        return _decode("profile", ProviderProfile, payload)

    def get_recommendations(
        self,
        access_token: str,
        seed_genres: List[str],
        target_features: Optional[Dict[str, float]] = None,
        limit: int = 20,
    ) -> List[SpotifyTrack]:
        """Get track recommendations for genre seeds and feature targets/ranges"""
        sp = self.get_spotify_client(access_token)

        kwargs = dict(target_features or {})
        payload = self._call(
            "recommendations",
            sp.recommendations,
            seed_genres=seed_genres[:MAX_SEEDS],
            limit=min(limit, MAX_RECOMMENDATIONS),
            **kwargs,
        )
        return [
            _decode("track", SpotifyTrack, track)
            for track in (payload or {}).get("tracks") or []
            if track
        ]

    def search_playlists(
        self, access_token: str, query: str, limit: int = 10
    ) -> List[Optional[PlaylistSummary]]:
        """Search public playlists. Spotify may return null items."""
        sp = self.get_spotify_client(access_token)
        payload = self._call("playlist search", sp.search, q=query, type="playlist", limit=limit)
        items = ((payload or {}).get("playlists") or {}).get("items") or []
        return [_decode("playlist", PlaylistSummary, item) if item else None for item in items]

    def get_playlist_tracks(
        self, access_token: str, playlist_id: str, limit: int = 20
    ) -> List[Optional[SpotifyTrack]]:
        """Tracks of a playlist. Removed or local tracks come back as None."""
        sp = self.get_spotify_client(access_token)
        payload = self._call(
            "playlist tracks",
            sp.playlist_items,
            playlist_id,
            limit=limit,
            additional_types=("track",),
        )
        tracks = []
        for item in (payload or {}).get("items") or []:
            track = (item or {}).get("track")
            tracks.append(_decode("track", SpotifyTrack, track) if track else None)
        return tracks

    def get_available_genre_seeds(self, access_token: str) -> List[str]:
        """Get available genre seeds for recommendations"""
        sp = self.get_spotify_client(access_token)
        payload = self._call("genre seeds", sp.recommendation_genre_seeds)
        return (payload or {}).get("genres", [])

