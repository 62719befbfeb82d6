"""
Configuration management - all environment variables in one place
"""

import os
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv

from moodify.errors import ConfigurationError

load_dotenv()

STRATEGIES = ("search", "features")


class Settings:
    """Centralized settings for Spotify credentials, sessions and storage"""

    def __init__(self, environ: Optional[dict] = None):
        env = os.environ if environ is None else environ

        # Spotify API
        self.spotify_client_id = env.get("SPOTIFY_CLIENT_ID")
        self.spotify_client_secret = env.get("SPOTIFY_CLIENT_SECRET")
        self.spotify_redirect_uri = env.get("SPOTIFY_REDIRECT_URI") or env.get(
            "REDIRECT_URI"
        )
        self.spotify_timeout = float(env.get("SPOTIFY_TIMEOUT", "10"))

        # Sessions
        self.session_secret = env.get("SESSION_SECRET")
        self.session_max_age = 24 * 60 * 60
        self.session_cookie = "moodify.sid"

        # Storage
        self.database_url = env.get("DATABASE_URL", "sqlite:///./moodify.db")

        # Server
        self.port = int(env.get("PORT", "3555"))
        self.log_level = env.get("LOG_LEVEL", "INFO").upper()
        self.allowed_origins: List[str] = [
            origin.strip()
            for origin in env.get("ALLOWED_ORIGINS", "http://localhost:3555").split(",")
            if origin.strip()
        ]

        self.recommendation_strategy = env.get("RECOMMENDATION_STRATEGY", "search")

    def validate(self) -> "Settings":
        """Ensure required credentials exist"""
        required = {
            "SPOTIFY_CLIENT_ID": self.spotify_client_id,
            "SPOTIFY_CLIENT_SECRET": self.spotify_client_secret,
            "SPOTIFY_REDIRECT_URI": self.spotify_redirect_uri,
            "SESSION_SECRET": self.session_secret,
        }
        missing = [name for name, value in required.items() if not value]
        if missing:
            raise ConfigurationError(missing)

        if self.recommendation_strategy not in STRATEGIES:
            raise ConfigurationError(
                ["RECOMMENDATION_STRATEGY"],
                f"Unknown recommendation strategy '{self.recommendation_strategy}'. "
                f"Expected one of: {', '.join(STRATEGIES)}",
            )
        return self


@lru_cache()
def get_settings() -> Settings:
    return Settings()
