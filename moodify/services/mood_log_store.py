"""
Mood log store: append-only writes, history and aggregate queries
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from moodify.errors import AccessDenied, MoodLogValidationError
from moodify.models import MoodLog, utcnow
from moodify.services import mood_mapper

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50


@dataclass
class HistoryPage:
    entries: List[MoodLog]
    page: int
    limit: int
    total_count: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.limit) if self.limit else 0

    @property
    def has_next_page(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev_page(self) -> bool:
        return self.page > 1

    def pagination(self) -> Dict[str, Any]:
        return {
            "currentPage": self.page,
            "totalPages": self.total_pages,
            "totalCount": self.total_count,
            "hasNextPage": self.has_next_page,
            "hasPrevPage": self.has_prev_page,
            "limit": self.limit,
        }


class MoodLogStore:
    """Service for writing and querying mood logs"""

    def __init__(self, db: Session):
        self.db = db

    def append(
        self,
        user_id: Optional[str],
        mood: Optional[str],
        playlist_used: Optional[str] = None,
        recommended_tracks: Optional[List[Dict[str, Any]]] = None,
        session_data: Optional[Dict[str, Any]] = None,
        user_agent: Optional[str] = None,
        timestamp: Optional[datetime] = None,
    ) -> MoodLog:
        """Validate and persist a mood selection"""
        if not user_id:
            raise MoodLogValidationError(
                "User ID not available in session", {"userId": "required"}
            )
        if not mood:
            raise MoodLogValidationError("Mood is required", {"mood": "required"})
        if not mood_mapper.is_supported(mood):
            raise MoodLogValidationError(
                f"Unsupported mood: {mood}",
                {"mood": f"must be one of {', '.join(mood_mapper.get_supported_moods())}"},
            )

        tracks = list(recommended_tracks or [])
        extra = dict(session_data or {})
        tracks_clicked = extra.get("tracksClicked") or 0
        if (
            isinstance(tracks_clicked, bool)
            or not isinstance(tracks_clicked, int)
            or tracks_clicked < 0
        ):
            raise MoodLogValidationError(
                "tracksClicked must be a non-negative integer",
                {"sessionData.tracksClicked": "must be a non-negative integer"},
            )
        metrics = {
            "trackCount": len(tracks),
            "tracksClicked": tracks_clicked,
            "userAgent": user_agent,
        }
        if extra.get("ipAddress"):
            metrics["ipAddress"] = extra["ipAddress"]

        entry = MoodLog(
            user_id=user_id,
            mood=mood_mapper.normalize_mood(mood),
            playlist_used=(playlist_used or "").strip() or None,
            recommended_tracks=tracks,
            session_data=metrics,
            timestamp=timestamp,
        )
        self.db.add(entry)
        self.db.commit()
        self.db.refresh(entry)

        logger.info(f"Mood logged: {user_id} selected '{entry.mood}' at {entry.timestamp.isoformat()}")
        return entry

    def history(
        self,
        user_id: str,
        requester_id: Optional[str],
        mood: Optional[str] = None,
        since_days: Optional[int] = None,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> HistoryPage:
        """A user's mood logs, newest first. Only the owner may read them."""
        ensure_owner(user_id, requester_id)

        page = max(1, page)
        page_size = max(1, page_size)

        query = self.db.query(MoodLog).filter(MoodLog.user_id == user_id)
        if mood:
            query = query.filter(MoodLog.mood == mood_mapper.normalize_mood(mood))
        if since_days:
            query = query.filter(MoodLog.timestamp >= _window_start(since_days))

        total_count = query.count()
        entries = (
            query.order_by(MoodLog.timestamp.desc(), MoodLog.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return HistoryPage(entries=entries, page=page, limit=page_size, total_count=total_count)

    def aggregate_by_mood(self, user_id: str) -> List[Dict[str, Any]]:
        """(mood, count, last used) ordered by count descending"""
        rows = (
            self.db.query(
                MoodLog.mood,
                func.count(MoodLog.id).label("count"),
                func.max(MoodLog.timestamp).label("last_used"),
            )
            .filter(MoodLog.user_id == user_id)
            .group_by(MoodLog.mood)
            .order_by(func.count(MoodLog.id).desc(), MoodLog.mood)
            .all()
        )
        return [
            {"mood": mood, "count": count, "lastUsed": _isoformat(last_used)}
            for mood, count, last_used in rows
        ]

    def aggregate_by_day_of_week(self, user_id: str) -> List[Dict[str, int]]:
        return self._bucket_counts(user_id, MoodLog.day_of_week, "dayOfWeek")

    def aggregate_by_hour_of_day(self, user_id: str) -> List[Dict[str, int]]:
        return self._bucket_counts(user_id, MoodLog.hour_of_day, "hourOfDay")

    def trends(self, user_id: str, days: int = 30) -> List[Dict[str, Any]]:
        """Counts per (date, mood) over the last `days` days, oldest first"""
        since = _window_start(days)
        entries = (
            self.db.query(MoodLog.timestamp, MoodLog.mood)
            .filter(MoodLog.user_id == user_id, MoodLog.timestamp >= since)
            .all()
        )

        counts: Dict[tuple, int] = {}
        for timestamp, mood in entries:
            key = (timestamp.strftime("%Y-%m-%d"), mood)
            counts[key] = counts.get(key, 0) + 1

        return [
            {"date": date, "mood": mood, "count": count}
            for (date, mood), count in sorted(counts.items())
        ]

    def count(self, user_id: str) -> int:
        return self.db.query(MoodLog).filter(MoodLog.user_id == user_id).count()

    def _bucket_counts(self, user_id: str, column, key: str) -> List[Dict[str, int]]:
        # Grouped over the stored bucket, never recomputed from timestamp
        rows = (
            self.db.query(column, func.count(MoodLog.id))
            .filter(MoodLog.user_id == user_id)
            .group_by(column)
            .order_by(column)
            .all()
        )
        return [{key: bucket, "count": count} for bucket, count in rows]


def _window_start(days: int) -> datetime:
    """Start of a look-back window of `days` days ending now"""
    if days < 1:
        raise MoodLogValidationError("days must be a positive integer", {"days": "must be >= 1"})
    try:
        return utcnow() - timedelta(days=days)
    except OverflowError:
        raise MoodLogValidationError("days is out of range", {"days": "out of range"})


def _isoformat(value) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return value.isoformat()


def ensure_owner(user_id: str, requester_id: Optional[str], resource: str = "mood history") -> None:
    """Cross-user reads are an authorization failure, not an empty result"""
    if not requester_id or user_id != requester_id:
        logger.warning(f"User {requester_id} denied access to {resource} of {user_id}")
        raise AccessDenied(f"You can only access your own {resource}")
