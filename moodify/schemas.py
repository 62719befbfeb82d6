"""
Pydantic schemas for request/response models and Spotify payloads
"""

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# --- Spotify Accounts service -------------------------------------------------


class TokenGrant(BaseModel):
    """Successful response of the /api/token endpoint"""

    access_token: str
    refresh_token: Optional[str] = None
    expires_in: int = 3600
    token_type: str = "Bearer"
    scope: Optional[str] = None


class TokenErrorBody(BaseModel):
    """Error response of the /api/token endpoint"""

    error: str
    error_description: Optional[str] = None


def decode_token_response(payload: Any) -> Union[TokenGrant, TokenErrorBody, None]:
    """Decode a token endpoint body into its success or error variant"""
    if not isinstance(payload, dict):
        return None
    if "access_token" in payload:
        return TokenGrant.model_validate(payload)
    if isinstance(payload.get("error"), str):
        return TokenErrorBody.model_validate(payload)
    return None


# --- Spotify Web API ----------------------------------------------------------


class ApiErrorDetail(BaseModel):
    status: Optional[int] = None
    message: Optional[str] = None


class ApiErrorBody(BaseModel):
    """Error shape returned by the Web API: {"error": {"status", "message"}}"""

    error: ApiErrorDetail


class ProviderImage(BaseModel):
    url: str
    height: Optional[int] = None
    width: Optional[int] = None


class ProviderProfile(BaseModel):
    id: str
    display_name: Optional[str] = None
    email: Optional[str] = None
    country: Optional[str] = None
    images: List[ProviderImage] = []


class SpotifyArtist(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None


class SpotifyAlbum(BaseModel):
    name: Optional[str] = None


class SpotifyTrack(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None
    artists: List[SpotifyArtist] = []
    album: Optional[SpotifyAlbum] = None
    preview_url: Optional[str] = None
    external_urls: Dict[str, str] = {}
    duration_ms: Optional[int] = None
    popularity: Optional[int] = None

    def is_complete(self) -> bool:
        return bool(self.id and self.name and any(a.name for a in self.artists))


class PlaylistOwner(BaseModel):
    id: Optional[str] = None
    display_name: Optional[str] = None


class PlaylistSummary(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None
    owner: Optional[PlaylistOwner] = None

    def is_valid(self) -> bool:
        return bool(self.id and self.name and self.owner is not None)


# --- API responses ------------------------------------------------------------


class Track(BaseModel):
    """Normalized track returned by /recommendations"""

    id: str
    name: str
    artists: List[str]
    album: Optional[str] = None
    preview_url: Optional[str] = None
    external_url: Optional[str] = None
    duration_ms: Optional[int] = None
    popularity: Optional[int] = None

    @classmethod
    def from_spotify(cls, track: SpotifyTrack) -> "Track":
        return cls(
            id=track.id,
            name=track.name,
            artists=[artist.name for artist in track.artists if artist.name],
            album=track.album.name if track.album else None,
            preview_url=track.preview_url,
            external_url=track.external_urls.get("spotify"),
            duration_ms=track.duration_ms,
            popularity=track.popularity,
        )


class RecommendationResponse(BaseModel):
    mood: str
    moodFeatures: Dict[str, float]
    tracks: List[Track]
    total: int
    strategy: str
    playlistUsed: Optional[str] = None


class AuthStatusResponse(BaseModel):
    authenticated: bool
    user: Optional[ProviderProfile] = None


class MoodsResponse(BaseModel):
    moods: List[str]
    descriptions: Dict[str, str]


# --- Mood log -----------------------------------------------------------------


class RecommendedTrack(BaseModel):
    trackId: Optional[str] = None
    trackName: Optional[str] = None
    artistName: Optional[str] = None
    spotifyUrl: Optional[str] = None


class SessionData(BaseModel):
    """Client-reported session details. Unknown keys are kept but not stored."""

    model_config = ConfigDict(extra="allow")

    tracksClicked: Optional[int] = Field(default=None, ge=0)
    ipAddress: Optional[str] = None


class MoodLogRequest(BaseModel):
    # Optional here so a missing mood is a 400 ValidationError, not a 422
    mood: Optional[str] = None
    playlistUsed: Optional[str] = None
    recommendedTracks: Optional[List[RecommendedTrack]] = None
    sessionData: Optional[SessionData] = None


class MoodLogData(BaseModel):
    id: int
    mood: str
    timestamp: str
    description: str


class MoodLogResponse(BaseModel):
    success: bool
    message: str
    data: MoodLogData
