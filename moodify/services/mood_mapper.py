"""
Mood to Spotify Audio Features Mapping

Maps the supported mood labels to Spotify's audio features. Each profile has
target values plus (min, max) ranges which are passed to Spotify's
/recommendations API as target_*, min_* and max_* parameters.

Audio Features:
- valence: Musical positivity (0.0 = sad/angry, 1.0 = happy/cheerful)
- energy: Intensity and activity (0.0 = calm, 1.0 = energetic)
- danceability: How suitable for dancing (0.0 = least, 1.0 = most)
- tempo: Beats per minute (unbounded)
- acousticness, instrumentalness, speechiness: confidence values in [0, 1]
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, List, Mapping, Tuple

from moodify.errors import UnsupportedMood

FEATURE_NAMES = (
    "valence",
    "energy",
    "danceability",
    "tempo",
    "acousticness",
    "instrumentalness",
    "speechiness",
)


@dataclass(frozen=True)
class MoodProfile:
    """Audio feature targets and (min, max) bounds for one mood"""

    label: str
    targets: Mapping[str, float]
    bounds: Mapping[str, Tuple[float, float]]

    def to_query_params(self) -> Dict[str, float]:
        """Flatten into Spotify recommendation parameters"""
        params = {}
        for feature in FEATURE_NAMES:
            if feature in self.targets:
                params[f"target_{feature}"] = self.targets[feature]
            if feature in self.bounds:
                low, high = self.bounds[feature]
                if low is not None:
                    params[f"min_{feature}"] = low
                if high is not None:
                    params[f"max_{feature}"] = high
        return params


def _profile(label, targets, bounds=None) -> MoodProfile:
    return MoodProfile(
        label=label,
        targets=MappingProxyType(dict(targets)),
        bounds=MappingProxyType(dict(bounds or {})),
    )


# Bounds use None for an open side (e.g. energetic only sets a tempo floor)
_MOOD_PROFILES: Dict[str, MoodProfile] = {
    "happy": _profile(
        "happy",
        {"valence": 0.8, "energy": 0.8, "danceability": 0.7},
        {"valence": (0.6, 1.0), "energy": (0.6, 1.0)},
    ),
    "sad": _profile(
        "sad",
        {"valence": 0.2, "energy": 0.3, "danceability": 0.3},
        {"valence": (0.0, 0.4), "energy": (0.0, 0.5)},
    ),
    "energetic": _profile(
        "energetic",
        {"valence": 0.6, "energy": 0.9, "danceability": 0.8, "tempo": 120},
        {"energy": (0.7, 1.0), "tempo": (100, None)},
    ),
    "relaxed": _profile(
        "relaxed",
        {"valence": 0.5, "energy": 0.3, "tempo": 80, "acousticness": 0.6},
        {"energy": (0.0, 0.5), "tempo": (None, 100)},
    ),
    "focused": _profile(
        "focused",
        {
            "valence": 0.4,
            "energy": 0.5,
            "acousticness": 0.4,
            "instrumentalness": 0.7,
        },
        {"speechiness": (0.0, 0.1)},
    ),
    "romantic": _profile(
        "romantic",
        {"valence": 0.6, "energy": 0.4, "danceability": 0.5, "acousticness": 0.5},
        {"valence": (0.4, None), "energy": (None, 0.6)},
    ),
}

MOOD_DESCRIPTIONS: Dict[str, str] = {
    "happy": "High energy, positive vibes",
    "sad": "Low energy, melancholic tracks",
    "energetic": "High energy, danceable music",
    "relaxed": "Calm, low tempo tracks",
    "focused": "Instrumental, concentration music",
    "romantic": "Love songs and romantic ballads",
}

# Must come from Spotify's available-genre-seeds list, max 5 per request
MOOD_GENRE_SEEDS: Dict[str, List[str]] = {
    "happy": ["pop", "dance", "funk"],
    "sad": ["acoustic", "piano", "sad"],
    "energetic": ["edm", "work-out", "dance", "electronic"],
    "relaxed": ["chill", "ambient", "acoustic"],
    "focused": ["study", "classical", "ambient", "piano"],
    "romantic": ["romance", "r-n-b", "soul"],
}

MOOD_SEARCH_PHRASES: Dict[str, List[str]] = {
    "happy": ["happy music", "feel good songs", "upbeat hits"],
    "sad": ["sad songs", "heartbreak ballads", "melancholy music"],
    "energetic": ["workout music", "high energy hits", "pump up songs"],
    "relaxed": ["chill vibes", "relaxing music", "calm acoustic"],
    "focused": ["focus music", "deep concentration", "instrumental study"],
    "romantic": ["love songs", "romantic ballads", "date night music"],
}


def normalize_mood(mood: str) -> str:
    return (mood or "").strip().lower()


def get_supported_moods() -> List[str]:
    """All supported mood labels, in canonical order"""
    return list(_MOOD_PROFILES)


def is_supported(mood: str) -> bool:
    return normalize_mood(mood) in _MOOD_PROFILES


def resolve(mood: str) -> MoodProfile:
    """
    Get the audio feature profile for a mood label.

    Args:
        mood: Mood label, case and surrounding whitespace are ignored

    Returns:
        The MoodProfile for the label

    Raises:
        UnsupportedMood: label is not one of get_supported_moods()
    """
    profile = _MOOD_PROFILES.get(normalize_mood(mood))
    if profile is None:
        raise UnsupportedMood(mood, get_supported_moods())
    return profile


def get_genre_seeds(mood: str) -> List[str]:
    return list(MOOD_GENRE_SEEDS[resolve(mood).label][:5])


def get_search_phrases(mood: str) -> List[str]:
    return list(MOOD_SEARCH_PHRASES[resolve(mood).label])
