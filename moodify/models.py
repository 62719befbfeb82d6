"""
Database models for the Moodify mood log
"""

from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Index, Integer, String

from moodify.database import Base


def utcnow() -> datetime:
    """Naive UTC timestamp, the form stored in the mood log"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def sunday_based_weekday(timestamp: datetime) -> int:
    """0 = Sunday ... 6 = Saturday"""
    return (timestamp.weekday() + 1) % 7


class MoodLog(Base):
    """One mood selection and the tracks recommended for it. Append-only."""

    __tablename__ = "mood_logs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, nullable=False, index=True)
    mood = Column(String, nullable=False)
    playlist_used = Column(String, nullable=True)

    # [{"trackId", "trackName", "artistName", "spotifyUrl"}]
    recommended_tracks = Column(JSON, nullable=False, default=list)
    # {"trackCount", "tracksClicked", "userAgent", "ipAddress"}
    session_data = Column(JSON, nullable=False, default=dict)

    timestamp = Column(DateTime, nullable=False, index=True)
    day_of_week = Column(Integer, nullable=False)
    hour_of_day = Column(Integer, nullable=False)

    __table_args__ = (
        Index("ix_mood_logs_user_timestamp", user_id, timestamp.desc()),
        Index("ix_mood_logs_user_mood", user_id, mood),
    )

    def __init__(self, **kwargs):
        kwargs.pop("day_of_week", None)
        kwargs.pop("hour_of_day", None)
        if kwargs.get("timestamp") is None:
            kwargs["timestamp"] = utcnow()
        super().__init__(**kwargs)
        # Bucketed once from the entry's own timestamp, never recomputed
        self.day_of_week = sunday_based_weekday(self.timestamp)
        self.hour_of_day = self.timestamp.hour

    def get_description(self) -> str:
        """Human-readable description of this mood log"""
        return (
            f"{self.mood} mood on {self.timestamp.strftime('%Y-%m-%d')} "
            f"at {self.timestamp.strftime('%H:%M:%S')}"
        )

    def is_today(self, now: datetime = None) -> bool:
        now = now or utcnow()
        return self.timestamp.date() == now.date()

    def to_dict(self):
        return {
            "id": self.id,
            "userId": self.user_id,
            "mood": self.mood,
            "playlistUsed": self.playlist_used,
            "recommendedTracks": self.recommended_tracks or [],
            "sessionData": self.session_data or {},
            "timestamp": self.timestamp.isoformat(),
            "dayOfWeek": self.day_of_week,
            "hourOfDay": self.hour_of_day,
        }
