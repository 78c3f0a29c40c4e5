from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from app.auth.auth_handler import PKCESessionStore, get_pkce_store
from app.config import Settings, get_settings
from app.main import app
from app.models.etsy_token import EtsyToken
from app.token_store import TokenStore
from app.utils.etsy_client import EtsyClient, get_etsy_client


@pytest.fixture
def settings(tmp_path):
    return Settings(
        client_id="test_client_id",
        client_secret="test_client_secret",
        redirect_uri="http://localhost:3000/auth/callback",
        shop_id="12345",
        token_store=str(tmp_path / "tokens.json"),
        listing_video_path=str(tmp_path / "missing-video.mp4"),
        image_upload_max_attempts=3,
        image_upload_retry_delay=0,
    )


@pytest.fixture
def store(settings):
    return TokenStore(settings.token_store)


@pytest.fixture
def stored_token(store):
    token = EtsyToken(
        access_token="stored_access",
        refresh_token="stored_refresh",
        expires_in=3600,
        token_type="Bearer",
        scope="listings_w listings_r",
    )
    store.set_token(token)
    return token


@pytest.fixture
def pkce_store():
    return PKCESessionStore(ttl=600)


@pytest.fixture
def etsy():
    mock = MagicMock(spec=EtsyClient)
    mock.timeout = 5
    return mock


@pytest.fixture
def client(settings, pkce_store, etsy):
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_pkce_store] = lambda: pkce_store
    app.dependency_overrides[get_etsy_client] = lambda: etsy
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
