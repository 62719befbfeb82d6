"""
Personalized insights derived from mood log aggregates
"""

from typing import Any, Dict, List

from moodify.services.mood_mapper import get_supported_moods

MOOD_ICONS = {
    "happy": "😊",
    "sad": "😢",
    "energetic": "⚡",
    "relaxed": "😌",
    "focused": "🎯",
    "romantic": "💕",
}

TIME_OF_DAY_ICONS = {
    "morning": "🌅",
    "afternoon": "☀️",
    "evening": "🌆",
    "night": "🌙",
}

DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


def time_of_day_label(hour: int) -> str:
    if 5 <= hour < 12:
        return "morning"
    if 12 <= hour < 17:
        return "afternoon"
    if 17 <= hour < 21:
        return "evening"
    return "night"


def format_hour(hour: int) -> str:
    """Hour of day in 12-hour format"""
    if hour == 0:
        return "12 AM"
    if hour == 12:
        return "12 PM"
    if hour < 12:
        return f"{hour} AM"
    return f"{hour - 12} PM"


def _insight(type_: str, title: str, message: str, icon: str) -> Dict[str, str]:
    return {"type": type_, "title": title, "message": message, "icon": icon}


def generate_insights(
    mood_counts: List[Dict[str, Any]],
    day_of_week_stats: List[Dict[str, int]],
    hour_of_day_stats: List[Dict[str, int]],
) -> List[Dict[str, str]]:
    """
    Analyze aggregate counts and describe the user's mood patterns.

    Args:
        mood_counts: [{"mood", "count", ...}] sorted by count descending
        day_of_week_stats: [{"dayOfWeek", "count"}]
        hour_of_day_stats: [{"hourOfDay", "count"}]

    Returns:
        List of {type, title, message, icon}
    """
    insights = []

    if mood_counts:
        top_mood = mood_counts[0]
        insights.append(
            _insight(
                "most_common_mood",
                "Your Go-To Mood",
                f"You listen to {top_mood['mood']} music most often ({top_mood['count']} times)",
                MOOD_ICONS.get(top_mood["mood"], "🎵"),
            )
        )

    if len(mood_counts) > 1:
        diversity = round(len(mood_counts) / len(get_supported_moods()) * 100)
        insights.append(
            _insight(
                "mood_diversity",
                "Musical Variety",
                f"You explore {len(mood_counts)} different moods - that's {diversity}% of all available moods!",
                "🌈",
            )
        )

    if day_of_week_stats:
        # First maximum wins on ties
        top_day = max(day_of_week_stats, key=lambda day: day["count"])
        is_weekend = top_day["dayOfWeek"] in (0, 6)
        insights.append(
            _insight(
                "favorite_day",
                "Weekend Vibes" if is_weekend else "Weekday Rhythm",
                f"You discover new music most on {DAY_NAMES[top_day['dayOfWeek']]}s",
                "🎉" if is_weekend else "📅",
            )
        )

    if hour_of_day_stats:
        top_hour = max(hour_of_day_stats, key=lambda hour: hour["count"])
        time_of_day = time_of_day_label(top_hour["hourOfDay"])
        insights.append(
            _insight(
                "peak_time",
                "Your Peak Music Time",
                f"You're most active finding music in the {time_of_day} "
                f"(around {format_hour(top_hour['hourOfDay'])})",
                TIME_OF_DAY_ICONS.get(time_of_day, "⏰"),
            )
        )

    if len(mood_counts) >= 2:
        first, second = mood_counts[0], mood_counts[1]
        ratio = round(first["count"] / second["count"], 2)
        if ratio > 3:
            insights.append(
                _insight(
                    "mood_consistency",
                    "Consistent Taste",
                    f"You have a strong preference for {first['mood']} music - "
                    f"{ratio}x more than your second choice",
                    "🎯",
                )
            )
        elif ratio < 1.5:
            insights.append(
                _insight(
                    "mood_balance",
                    "Balanced Listener",
                    f"You have a nice balance between {first['mood']} and {second['mood']} music",
                    "⚖️",
                )
            )

    total_sessions = sum(mood["count"] for mood in mood_counts)
    if total_sessions >= 10:
        insights.append(
            _insight(
                "activity_level",
                "Music Explorer",
                f"You've discovered music {total_sessions} times! You're building great listening habits",
                "🚀",
            )
        )
    elif total_sessions >= 5:
        insights.append(
            _insight(
                "getting_started",
                "Getting Started",
                f"You're off to a great start with {total_sessions} music discovery sessions",
                "🌱",
            )
        )

    return insights
