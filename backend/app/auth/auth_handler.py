import base64
import hashlib
import logging
import secrets
import time
from typing import Dict, Optional, Tuple
from urllib.parse import urlencode

from app.config import ETSY_CONNECT_URL, ETSY_SCOPES, Settings, get_settings

logger = logging.getLogger(__name__)


def base64_url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def generate_code_verifier() -> str:
    return base64_url_encode(secrets.token_bytes(32))


def generate_code_challenge(verifier: str) -> str:
    """S256 challenge: base64url(sha256(verifier)) without padding."""
    return base64_url_encode(hashlib.sha256(verifier.encode("ascii")).digest())


def generate_state() -> str:
    return secrets.token_hex(8)


class PKCESessionStore:
    """In-memory state -> code_verifier map for in-flight logins.

    Entries older than ``ttl`` seconds are dropped on insert and ignored on
    lookup. A successful lookup consumes the entry.
    """

    def __init__(self, ttl: int = 600):
        self.ttl = ttl
        self._sessions: Dict[str, Dict] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def _expired(self, entry: Dict, now: float) -> bool:
        return self.ttl > 0 and now - entry["created_at"] > self.ttl

    def sweep(self) -> int:
        now = time.time()
        stale = [state for state, entry in list(self._sessions.items()) if self._expired(entry, now)]
        for state in stale:
            self._sessions.pop(state, None)
        if stale:
            logger.debug("Dropped %d expired PKCE sessions", len(stale))
        return len(stale)

    def create(self) -> Tuple[str, str]:
        """Start a session; returns (state, code_challenge)."""
        self.sweep()
        verifier = generate_code_verifier()
        state = generate_state()
        self._sessions[state] = {"code_verifier": verifier, "created_at": time.time()}
        return state, generate_code_challenge(verifier)

    def pop(self, state: str) -> Optional[str]:
        entry = self._sessions.pop(state, None)
        if entry is None:
            return None
        if self._expired(entry, time.time()):
            logger.info("PKCE session for state %s expired", state)
            return None
        return entry["code_verifier"]


def build_authorization_url(settings: Settings, state: str, code_challenge: str) -> str:
    params = {
        "response_type": "code",
        "client_id": settings.client_id,
        "redirect_uri": settings.redirect_uri,
        "scope": " ".join(ETSY_SCOPES),
        "state": state,
        "code_challenge": code_challenge,
        "code_challenge_method": "S256",
    }
    return f"{ETSY_CONNECT_URL}?{urlencode(params)}"


_pkce_store: Optional[PKCESessionStore] = None


def get_pkce_store() -> PKCESessionStore:
    global _pkce_store
    if _pkce_store is None:
        _pkce_store = PKCESessionStore(ttl=get_settings().pkce_session_ttl)
    return _pkce_store
