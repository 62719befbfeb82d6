"""
Music recommendation API endpoints
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from moodify.api.auth import require_auth
from moodify.api.dependencies import get_recommendation_engine
from moodify.database import get_db
from moodify.errors import MoodifyError
from moodify.services import mood_mapper
from moodify.services.mood_log_store import MoodLogStore
from moodify.services.oauth import AuthSession
from moodify.services.recommendation_engine import RecommendationEngine
from moodify.schemas import MoodsResponse, RecommendationResponse

router = APIRouter()

logger = logging.getLogger(__name__)


@router.get("/recommendations", response_model=RecommendationResponse)
def get_recommendations(
    request: Request,
    mood: Optional[str] = None,
    limit: Optional[str] = None,
    log: bool = False,
    auth: AuthSession = Depends(require_auth),
    engine: RecommendationEngine = Depends(get_recommendation_engine),
    db: Session = Depends(get_db),
):
    """
    Get mood-based track recommendations from Spotify.

    With ?log=true the selection is also written to the mood log. A failed
    write is reported to the log and never fails the recommendation.
    """
    if not mood or not mood.strip():
        return JSONResponse(
            status_code=400,
            content={
                "error": "Mood parameter is required",
                "message": "Pass one of the supported moods as ?mood=",
                "supportedMoods": mood_mapper.get_supported_moods(),
            },
        )

    result = engine.build_and_execute(mood, limit, auth.access_token)

    if log:
        try:
            MoodLogStore(db).append(
                user_id=auth.user_id,
                mood=result.mood,
                playlist_used=result.playlist_used,
                recommended_tracks=[
                    {
                        "trackId": track.id,
                        "trackName": track.name,
                        "artistName": ", ".join(track.artists),
                        "spotifyUrl": track.external_url,
                    }
                    for track in result.tracks
                ],
                user_agent=request.headers.get("user-agent"),
            )
        except (MoodifyError, SQLAlchemyError) as e:
            db.rollback()
            logger.error(f"Failed to log {result.mood} selection for {auth.user_id}: {e}")

    return {
        "mood": result.mood,
        "moodFeatures": result.profile.to_query_params(),
        "tracks": result.tracks,
        "total": result.total,
        "strategy": result.strategy,
        "playlistUsed": result.playlist_used,
    }


@router.get("/moods", response_model=MoodsResponse)
def get_moods():
    """Get available moods"""
    return {
        "moods": mood_mapper.get_supported_moods(),
        "descriptions": mood_mapper.MOOD_DESCRIPTIONS,
    }


@router.get("/genres")
def get_genres(
    auth: AuthSession = Depends(require_auth),
    engine: RecommendationEngine = Depends(get_recommendation_engine),
):
    """Get available genre seeds from Spotify"""
    genres = engine.available_genre_seeds(auth.access_token)
    return {"genres": genres, "total": len(genres)}
