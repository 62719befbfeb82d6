"""
Mood tracking API endpoints: logging, history and statistics
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from moodify.api.auth import require_auth
from moodify.database import get_db
from moodify.schemas import MoodLogRequest, MoodLogResponse
from moodify.services.mood_insights import generate_insights
from moodify.services.mood_log_store import MoodLogStore, ensure_owner
from moodify.services.oauth import AuthSession

router = APIRouter()

# Ten years of history is the widest window a query may ask for
MAX_DAYS = 3650

logger = logging.getLogger(__name__)


@router.post("/log", status_code=201, response_model=MoodLogResponse)
def log_mood(
    payload: MoodLogRequest,
    request: Request,
    auth: AuthSession = Depends(require_auth),
    db: Session = Depends(get_db),
):
    """Record a mood selection and the tracks recommended for it"""
    store = MoodLogStore(db)
    entry = store.append(
        user_id=auth.user_id,
        mood=payload.mood,
        playlist_used=payload.playlistUsed,
        recommended_tracks=[
            track.model_dump() for track in payload.recommendedTracks or []
        ],
        session_data=(
            payload.sessionData.model_dump(exclude_none=True) if payload.sessionData else None
        ),
        user_agent=request.headers.get("user-agent"),
    )

    return {
        "success": True,
        "message": "Mood logged successfully",
        "data": {
            "id": entry.id,
            "mood": entry.mood,
            "timestamp": entry.timestamp.isoformat(),
            "description": entry.get_description(),
        },
    }


@router.get("/history/{user_id}")
def get_mood_history(
    user_id: str,
    mood: Optional[str] = None,
    days: Optional[int] = Query(None, ge=1, le=MAX_DAYS),
    limit: int = 50,
    page: int = 1,
    auth: AuthSession = Depends(require_auth),
    db: Session = Depends(get_db),
):
    """Get user's mood history, most recent first"""
    history = MoodLogStore(db).history(
        user_id,
        requester_id=auth.user_id,
        mood=mood,
        since_days=days,
        page=page,
        page_size=limit,
    )

    return {
        "success": True,
        "data": {
            "history": [entry.to_dict() for entry in history.entries],
            "pagination": history.pagination(),
        },
    }


@router.get("/stats/{user_id}")
def get_mood_stats(
    user_id: str,
    days: int = Query(30, ge=1, le=MAX_DAYS),
    auth: AuthSession = Depends(require_auth),
    db: Session = Depends(get_db),
):
    """Get user's mood statistics, patterns and insights"""
    ensure_owner(user_id, auth.user_id, resource="mood statistics")

    store = MoodLogStore(db)
    mood_counts = store.aggregate_by_mood(user_id)
    day_of_week_stats = store.aggregate_by_day_of_week(user_id)
    hour_of_day_stats = store.aggregate_by_hour_of_day(user_id)

    return {
        "success": True,
        "data": {
            "summary": {
                "totalMoodLogs": store.count(user_id),
                "daysTracked": days,
                "mostCommonMood": mood_counts[0]["mood"] if mood_counts else None,
                "moodVariety": len(mood_counts),
            },
            "moodCounts": mood_counts,
            "trends": store.trends(user_id, days),
            "patterns": {
                "dayOfWeek": day_of_week_stats,
                "hourOfDay": hour_of_day_stats,
            },
            "insights": generate_insights(
                mood_counts, day_of_week_stats, hour_of_day_stats
            ),
        },
    }
