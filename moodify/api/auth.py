"""
Authentication API endpoints for Spotify OAuth
"""

import logging
from typing import Callable, Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse

from moodify.errors import OAuthError, Unauthorized
from moodify.api.dependencies import get_clock, get_spotify_client
from moodify.schemas import AuthStatusResponse
from moodify.services.oauth import AuthSession, OAuthStateMachine, Session, epoch_ms
from moodify.services.spotify_client import SpotifyClient

router = APIRouter()

logger = logging.getLogger(__name__)


def get_oauth(
    request: Request,
    spotify_client: SpotifyClient = Depends(get_spotify_client),
    clock: Callable[[], int] = Depends(get_clock),
) -> OAuthStateMachine:
    return OAuthStateMachine(request.session, spotify_client, clock=clock)


def guard(session: Session, clock: Callable[[], int] = epoch_ms) -> AuthSession:
    """Raise Unauthorized unless the session holds an unexpired access token"""
    auth_session = AuthSession.from_session(session)
    if auth_session is None or clock() >= auth_session.expires_at:
        raise Unauthorized()
    return auth_session


def require_auth(
    request: Request, clock: Callable[[], int] = Depends(get_clock)
) -> AuthSession:
    """Dependency for protected routes, evaluated on every request"""
    return guard(request.session, clock)


@router.get("/login")
def login(oauth: OAuthStateMachine = Depends(get_oauth)):
    """Initiate Spotify OAuth login"""
    auth_url, _ = oauth.begin_authorization()
    return RedirectResponse(url=auth_url, status_code=302)


@router.get("/callback")
def auth_callback(
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    oauth: OAuthStateMachine = Depends(get_oauth),
):
    """Handle Spotify OAuth callback"""
    if error:
        logger.warning(f"Spotify returned OAuth error: {error}")

    try:
        oauth.complete_authorization(code, state)
    except OAuthError as e:
        return RedirectResponse(url="/#" + urlencode({"error": e.code}), status_code=302)

    return RedirectResponse(url="/?authenticated=true", status_code=302)


@router.get("/logout")
def logout(oauth: OAuthStateMachine = Depends(get_oauth)):
    """Logout user and clear the session"""
    oauth.end_session()
    return RedirectResponse(url="/", status_code=302)


@router.get("/auth/status", response_model=AuthStatusResponse)
def auth_status(oauth: OAuthStateMachine = Depends(get_oauth)):
    """Check authentication status"""
    authenticated = oauth.is_authorized()
    current = oauth.current() if authenticated else None
    return {
        "authenticated": authenticated,
        "user": current.user if current else None,
    }
