"""
Error taxonomy for the Moodify backend
"""

from typing import Any, Dict, List, Optional

LOGIN_URL = "/login"


class ConfigurationError(RuntimeError):
    """Raised at startup when required settings are missing or invalid"""

    def __init__(self, missing: List[str], message: Optional[str] = None):
        self.missing = missing
        super().__init__(
            message or f"Missing required configuration: {', '.join(missing)}"
        )


class MoodifyError(Exception):
    """Base class for errors rendered as structured JSON responses"""

    status_code = 500
    error = "Internal server error"

    def __init__(self, message: str, **extra: Any):
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_dict(self) -> Dict[str, Any]:
        body = {"error": self.error, "message": self.message}
        body.update(self.extra)
        return body


class UnsupportedMood(MoodifyError):
    status_code = 400
    error = "Unsupported mood"

    def __init__(self, mood: str, supported_moods: List[str]):
        super().__init__(
            f"Unsupported mood: {mood}. Supported moods: {', '.join(supported_moods)}",
            supportedMoods=list(supported_moods),
        )
        self.mood = mood
        self.supported_moods = list(supported_moods)


class MoodLogValidationError(MoodifyError):
    status_code = 400
    error = "Validation error"

    def __init__(self, message: str, details: Optional[Dict[str, str]] = None):
        super().__init__(message, details=details or {})


class Unauthorized(MoodifyError):
    status_code = 401
    error = "Authentication required"

    def __init__(self, message: str = "Please login with Spotify first"):
        super().__init__(message, loginUrl=LOGIN_URL)


class TokenExpired(Unauthorized):
    error = "Token expired"

    def __init__(self, message: str = "Please login again"):
        super().__init__(message)


class AccessDenied(MoodifyError):
    status_code = 403
    error = "Access denied"


class NoResultsFound(MoodifyError):
    status_code = 404
    error = "No results found"


class RecommendationError(MoodifyError):
    """Upstream failure, carries the provider's status and body for diagnosis"""

    status_code = 502
    error = "Failed to fetch recommendations"

    def __init__(self, message: str, upstream_status: Optional[int], upstream_body: Any):
        super().__init__(
            message, upstreamStatus=upstream_status, upstreamBody=upstream_body
        )
        self.upstream_status = upstream_status
        self.upstream_body = upstream_body


class UpstreamTimeout(RecommendationError):
    status_code = 504
    error = "Spotify did not respond in time"


class OAuthError(Exception):
    """OAuth failure, rendered as a redirect carrying an error code fragment"""

    code = "invalid_token"


class StateMismatch(OAuthError):
    code = "state_mismatch"


class AuthorizationDenied(OAuthError):
    code = "access_denied"


class TokenExchangeFailed(OAuthError):
    code = "invalid_token"

    def __init__(self, message: str, upstream_status: Optional[int] = None):
        super().__init__(message)
        self.upstream_status = upstream_status
