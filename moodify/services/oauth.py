"""
OAuth 2.0 Authorization Code flow bound to a session handle.

The session is any mutable mapping owned by the caller; in the running app it
is ``request.session`` from the signed session cookie. Nothing here keeps
per-user state in process memory.

Session keys:
    oauth_state      anti-forgery token of the pending login (single slot)
    access_token     Spotify access token
    refresh_token    Spotify refresh token (stored, never used for renewal)
    expires_at       absolute expiry, epoch milliseconds
    user             ProviderProfile as a dict
"""

import logging
import secrets
import string
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, MutableMapping, Optional, Tuple

from moodify.errors import AuthorizationDenied, StateMismatch, TokenExchangeFailed
from moodify.schemas import ProviderProfile
from moodify.services.spotify_client import SpotifyAPIError, SpotifyClient

logger = logging.getLogger(__name__)

STATE_KEY = "oauth_state"
STATE_LENGTH = 16
STATE_ALPHABET = string.ascii_letters + string.digits

Session = MutableMapping[str, object]


def epoch_ms() -> int:
    return int(time.time() * 1000)


def generate_state(length: int = STATE_LENGTH) -> str:
    """Random alphanumeric anti-forgery token"""
    return "".join(secrets.choice(STATE_ALPHABET) for _ in range(length))


class AuthState(str, Enum):
    ANONYMOUS = "anonymous"
    PENDING_AUTHORIZATION = "pending_authorization"
    AUTHORIZED = "authorized"
    EXPIRED = "expired"


@dataclass
class AuthSession:
    access_token: str
    refresh_token: Optional[str]
    expires_at: int
    user: Optional[ProviderProfile]

    @property
    def user_id(self) -> Optional[str]:
        return self.user.id if self.user else None

    @classmethod
    def from_session(cls, session: Session) -> Optional["AuthSession"]:
        access_token = session.get("access_token")
        if not access_token:
            return None
        user = session.get("user")
        return cls(
            access_token=access_token,
            refresh_token=session.get("refresh_token"),
            expires_at=int(session.get("expires_at") or 0),
            user=ProviderProfile.model_validate(user) if user else None,
        )


class OAuthStateMachine:
    """Anonymous -> PendingAuthorization -> Authorized -> Expired -> Anonymous"""

    def __init__(
        self,
        session: Session,
        spotify_client: SpotifyClient,
        clock: Callable[[], int] = epoch_ms,
    ):
        self.session = session
        self.spotify_client = spotify_client
        self.clock = clock

    def state(self) -> AuthState:
        if self.session.get("access_token"):
            return AuthState.AUTHORIZED if self.is_authorized() else AuthState.EXPIRED
        if self.session.get(STATE_KEY):
            return AuthState.PENDING_AUTHORIZATION
        return AuthState.ANONYMOUS

    def begin_authorization(self) -> Tuple[str, str]:
        """
        Start a login. Overwrites any pending anti-forgery token, so only the
        most recent login attempt of a session can complete.

        Returns:
            (authorize URL, anti-forgery token)
        """
        state = generate_state()
        self.session[STATE_KEY] = state
        return self.spotify_client.build_authorize_url(state), state

    def complete_authorization(
        self, code: Optional[str], returned_state: Optional[str]
    ) -> AuthSession:
        """
        Finish a login from the callback parameters.

        Raises:
            StateMismatch: state missing or different from the stored token
            AuthorizationDenied: no code (the user declined)
            TokenExchangeFailed: token endpoint or profile fetch failed
        """
        # Cleared before any check so a state value can never be replayed
        stored_state = self.session.pop(STATE_KEY, None)

        if (
            not returned_state
            or not stored_state
            or not secrets.compare_digest(
                str(returned_state).encode("utf-8"), str(stored_state).encode("utf-8")
            )
        ):
            logger.warning("OAuth callback rejected: state mismatch")
            raise StateMismatch("State parameter does not match the login attempt")

        if not code:
            logger.warning("OAuth callback rejected: no authorization code")
            raise AuthorizationDenied("Authorization was not granted")

        try:
            grant = self.spotify_client.exchange_code_for_tokens(code)
            profile = self.spotify_client.get_user_profile(grant.access_token)
        except SpotifyAPIError as e:
            logger.warning(f"OAuth token exchange failed ({e.status}): {e.body}")
            raise TokenExchangeFailed(str(e), upstream_status=e.status) from e

        expires_at = self.clock() + grant.expires_in * 1000

        self.session["access_token"] = grant.access_token
        self.session["refresh_token"] = grant.refresh_token
        self.session["expires_at"] = expires_at
        self.session["user"] = profile.model_dump()

        logger.info(f"User {profile.id} authenticated")
        return AuthSession(
            access_token=grant.access_token,
            refresh_token=grant.refresh_token,
            expires_at=expires_at,
            user=profile,
        )

    def is_authorized(self, now_ms: Optional[int] = None) -> bool:
        """Access token present and not yet expired. Never refreshes."""
        if not self.session.get("access_token"):
            return False
        now = self.clock() if now_ms is None else now_ms
        return now < int(self.session.get("expires_at") or 0)

    def current(self) -> Optional[AuthSession]:
        return AuthSession.from_session(self.session)

    def end_session(self) -> None:
        self.session.clear()
