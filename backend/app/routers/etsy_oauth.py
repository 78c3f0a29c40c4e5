import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import RedirectResponse

from app.auth.auth_handler import PKCESessionStore, build_authorization_url, get_pkce_store
from app.config import TOKEN_KEY, Settings, get_settings
from app.models.etsy_token import EtsyToken
from app.token_store import TokenStore, get_token_store
from app.utils.etsy_client import (
    EtsyAPIError,
    EtsyAuthRequired,
    EtsyClient,
    NoRefreshToken,
    get_etsy_client,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Etsy OAuth"])

INVALID_TOKEN_MARKERS = ("invalid_token", "expired")


@router.get("/auth/login")
def start_oauth(
    settings: Settings = Depends(get_settings),
    pkce_store: PKCESessionStore = Depends(get_pkce_store),
):
    """
    Start the Etsy OAuth (PKCE) flow by redirecting to Etsy's consent page.
    """
    state, code_challenge = pkce_store.create()
    logger.info("Starting Etsy OAuth flow, state=%s", state)
    return RedirectResponse(url=build_authorization_url(settings, state, code_challenge))


@router.get("/auth/callback")
def oauth_callback(
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    error_description: Optional[str] = None,
    pkce_store: PKCESessionStore = Depends(get_pkce_store),
    store: TokenStore = Depends(get_token_store),
    client: EtsyClient = Depends(get_etsy_client),
):
    """
    Exchange the authorization code and the stored code_verifier for tokens.
    """
    if error:
        logger.warning("Etsy returned an OAuth error: %s %s", error, error_description)
        raise HTTPException(status_code=400, detail=f"Auth error: {error} - {error_description or ''}")
    if not code or not state:
        raise HTTPException(status_code=400, detail="Missing code or state")

    code_verifier = pkce_store.pop(state)
    if code_verifier is None:
        logger.warning("No PKCE session for state %s", state)
        raise HTTPException(
            status_code=400,
            detail="Invalid session: missing PKCE verifier for this state. Try logging in again.",
        )

    tokens = client.exchange_code(code, code_verifier)
    store.set_token(tokens)

    return {
        "message": "OAuth success, tokens saved.",
        "scope": tokens.scope,
        "expires_in": tokens.expires_in,
    }


def refresh_etsy_token(store: TokenStore, client: EtsyClient) -> EtsyToken:
    """
    Trade the stored refresh token for a new token pair and persist it.
    """
    current = store.read().get(TOKEN_KEY) or {}
    refresh_token = current.get("refresh_token")
    if not refresh_token:
        raise NoRefreshToken("No refresh token stored. Re-authenticate.")

    tokens = client.refresh(refresh_token)
    if not tokens.refresh_token:
        # Keep the old refresh token when Etsy does not rotate it
        tokens.refresh_token = refresh_token
    store.set_token(tokens)
    logger.info("Refreshed Etsy access token")
    return tokens


def is_invalid_token_error(exc: EtsyAPIError) -> bool:
    if exc.status_code == 401:
        return True
    text = exc.text.lower()
    return any(marker in text for marker in INVALID_TOKEN_MARKERS)


def require_access_token(store: TokenStore = Depends(get_token_store)) -> str:
    token = store.get_token()
    if not token:
        raise EtsyAuthRequired("No access token available. Authenticate via /auth/login")
    return token.access_token


def get_valid_access_token(
    store: TokenStore = Depends(get_token_store),
    client: EtsyClient = Depends(get_etsy_client),
) -> str:
    """
    Probe the stored access token against users/me and refresh it when
    Etsy reports it invalid or expired. Returns a usable access token.
    """
    access_token = require_access_token(store)
    try:
        client.get_me(access_token)
    except EtsyAPIError as e:
        if not is_invalid_token_error(e):
            raise
        logger.info("Access token rejected by Etsy (status %s), refreshing", e.status_code)
        try:
            return refresh_etsy_token(store, client).access_token
        except NoRefreshToken as missing:
            raise EtsyAuthRequired(str(missing)) from missing
    return access_token


@router.post("/token/refresh")
def refresh_token(
    store: TokenStore = Depends(get_token_store),
    client: EtsyClient = Depends(get_etsy_client),
):
    """
    Refresh the Etsy access token using the stored refresh token.
    """
    try:
        tokens = refresh_etsy_token(store, client)
    except NoRefreshToken as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {"message": "Refreshed tokens saved", "expires_in": tokens.expires_in}


@router.get("/tokens")
def show_tokens(store: TokenStore = Depends(get_token_store)):
    """Raw token file contents, for debugging."""
    return store.read()
