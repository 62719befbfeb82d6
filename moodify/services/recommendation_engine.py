"""
Recommendation engine: turns a mood into Spotify queries and a track list
"""

import logging
import random
from dataclasses import dataclass
from typing import Any, List, Optional

from moodify.errors import (
    NoResultsFound,
    RecommendationError,
    TokenExpired,
    UpstreamTimeout,
)
from moodify.schemas import SpotifyTrack, Track
from moodify.services import mood_mapper
from moodify.services.mood_mapper import MoodProfile
from moodify.services.spotify_client import SpotifyAPIError, SpotifyClient

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 20
MAX_LIMIT = 50  # Spotify hard cap

MAX_PLAYLISTS = 3
TRACKS_PER_PLAYLIST = 20
PLAYLIST_SEARCH_LIMIT = 10

SEARCH = "search"
FEATURES = "features"


def clamp_limit(raw: Any) -> int:
    """Non-numeric, missing or < 1 falls back to the default; capped at 50"""
    try:
        limit = int(raw)
    except (TypeError, ValueError):
        return DEFAULT_LIMIT
    if limit < 1:
        return DEFAULT_LIMIT
    return min(limit, MAX_LIMIT)


@dataclass
class TrackList:
    mood: str
    profile: MoodProfile
    tracks: List[Track]
    strategy: str
    playlist_used: Optional[str] = None

    @property
    def total(self) -> int:
        return len(self.tracks)


def dedupe_tracks(tracks: List[Optional[SpotifyTrack]]) -> List[SpotifyTrack]:
    """Drop null/incomplete tracks and repeated ids, keeping first sighting"""
    seen = set()
    unique = []
    for track in tracks:
        if track is None or not track.is_complete() or track.id in seen:
            continue
        seen.add(track.id)
        unique.append(track)
    return unique


class RecommendationEngine:
    """
    Builds the Spotify query for a mood and normalizes the results.

    Two strategies:
      search    search public playlists for the mood's first search phrase,
                pool their tracks, dedupe, shuffle and truncate (default)
      features  send the mood's feature targets/ranges and genre seeds to
                the /recommendations endpoint
    """

    def __init__(
        self,
        spotify_client: SpotifyClient,
        strategy: str = SEARCH,
        rng: Optional[random.Random] = None,
    ):
        if strategy not in (SEARCH, FEATURES):
            raise ValueError(f"Unknown recommendation strategy: {strategy}")
        self.spotify_client = spotify_client
        self.strategy = strategy
        self.rng = rng or random.Random()

    def build_and_execute(self, mood: str, limit: Any, access_token: str) -> TrackList:
        # UnsupportedMood propagates before any request is made
        profile = mood_mapper.resolve(mood)
        limit = clamp_limit(limit)

        try:
            if self.strategy == FEATURES:
                tracks, playlist_used = self._feature_seeded(profile, limit, access_token), None
            else:
                tracks, playlist_used = self._search_and_aggregate(profile, limit, access_token)
        except SpotifyAPIError as e:
            raise self._translate(e) from e

        logger.info(
            f"Built {len(tracks)} {profile.label} recommendations via {self.strategy}"
        )
        return TrackList(
            mood=profile.label,
            profile=profile,
            tracks=[Track.from_spotify(track) for track in tracks],
            strategy=self.strategy,
            playlist_used=playlist_used,
        )

    def _feature_seeded(
        self, profile: MoodProfile, limit: int, access_token: str
    ) -> List[SpotifyTrack]:
        seeds = mood_mapper.get_genre_seeds(profile.label)
        tracks = self.spotify_client.get_recommendations(
            access_token=access_token,
            seed_genres=seeds,
            target_features=profile.to_query_params(),
            limit=limit,
        )
        tracks = dedupe_tracks(tracks)[:limit]
        if not tracks:
            raise NoResultsFound(f"No {profile.label} recommendations found")
        return tracks

    def _search_and_aggregate(self, profile: MoodProfile, limit: int, access_token: str):
        phrase = mood_mapper.get_search_phrases(profile.label)[0]
        playlists = self.spotify_client.search_playlists(
            access_token, phrase, limit=PLAYLIST_SEARCH_LIMIT
        )
        playlists = [p for p in playlists if p is not None and p.is_valid()][:MAX_PLAYLISTS]

        if not playlists:
            raise NoResultsFound(f"No playlists found for '{phrase}'")

        pooled: List[Optional[SpotifyTrack]] = []
        for playlist in playlists:
            pooled.extend(
                self.spotify_client.get_playlist_tracks(
                    access_token, playlist.id, limit=TRACKS_PER_PLAYLIST
                )
            )

        tracks = dedupe_tracks(pooled)
        if not tracks:
            raise NoResultsFound(f"No tracks found in playlists for '{phrase}'")

        self.rng.shuffle(tracks)
        return tracks[:limit], ", ".join(p.name for p in playlists)

    def available_genre_seeds(self, access_token: str) -> List[str]:
        try:
            return self.spotify_client.get_available_genre_seeds(access_token)
        except SpotifyAPIError as e:
            raise self._translate(e) from e

    @staticmethod
    def _translate(error: SpotifyAPIError) -> Exception:
        if error.status == 401:
            return TokenExpired()
        if error.timeout:
            return UpstreamTimeout(str(error), upstream_status=None, upstream_body=None)
        return RecommendationError(
            str(error), upstream_status=error.status, upstream_body=error.body
        )
