"""Tests for the upstream Etsy client."""

from unittest.mock import MagicMock, patch

import pytest
import requests

from app.utils.etsy_client import EtsyAPIError, EtsyClient


def make_response(status_code=200, json_data=None, text=""):
    response = MagicMock()
    response.status_code = status_code
    if json_data is None:
        response.json.side_effect = ValueError("no json")
    else:
        response.json.return_value = json_data
    response.text = text
    return response


@pytest.fixture
def etsy_client(settings):
    return EtsyClient(settings)


class TestTokenEndpoint:
    @patch("app.utils.etsy_client.requests.request")
    def test_exchange_code_sends_verifier(self, mock_request, etsy_client):
        mock_request.return_value = make_response(json_data={
            "access_token": "12345.access",
            "refresh_token": "12345.refresh",
            "expires_in": 3600,
            "token_type": "Bearer",
        })

        token = etsy_client.exchange_code("auth_code", "the_verifier")
        assert token.access_token == "12345.access"
        assert token.refresh_token == "12345.refresh"

        args, kwargs = mock_request.call_args
        assert args == ("POST", "https://openapi.etsy.com/v3/public/oauth/token")
        form = kwargs["data"]
        assert form["grant_type"] == "authorization_code"
        assert form["code"] == "auth_code"
        assert form["code_verifier"] == "the_verifier"
        assert form["client_id"] == "test_client_id"
        assert form["client_secret"] == "test_client_secret"
        assert form["redirect_uri"] == "http://localhost:3000/auth/callback"
        assert kwargs["headers"]["Content-Type"] == "application/x-www-form-urlencoded"

    @patch("app.utils.etsy_client.requests.request")
    def test_refresh(self, mock_request, etsy_client):
        mock_request.return_value = make_response(json_data={"access_token": "new", "expires_in": 3600})

        token = etsy_client.refresh("old_refresh")
        assert token.access_token == "new"
        form = mock_request.call_args.kwargs["data"]
        assert form["grant_type"] == "refresh_token"
        assert form["refresh_token"] == "old_refresh"

    @patch("app.utils.etsy_client.requests.request")
    def test_client_secret_omitted_when_unset(self, mock_request, settings):
        settings.client_secret = ""
        mock_request.return_value = make_response(json_data={"access_token": "new"})

        EtsyClient(settings).refresh("r")
        assert "client_secret" not in mock_request.call_args.kwargs["data"]

    @patch("app.utils.etsy_client.requests.request")
    def test_no_access_token_in_response(self, mock_request, etsy_client):
        mock_request.return_value = make_response(json_data={"error": "invalid_grant"})

        with pytest.raises(EtsyAPIError, match="No access_token"):
            etsy_client.refresh("r")


class TestRequests:
    @patch("app.utils.etsy_client.requests.request")
    def test_authenticated_headers(self, mock_request, etsy_client):
        mock_request.return_value = make_response(json_data={"user_id": 1, "shop_id": 12345})

        assert etsy_client.get_me("tok") == {"user_id": 1, "shop_id": 12345}
        args, kwargs = mock_request.call_args
        assert args == ("GET", "https://openapi.etsy.com/v3/application/users/me")
        assert kwargs["headers"]["Authorization"] == "Bearer tok"
        assert kwargs["headers"]["x-api-key"] == "test_client_id"
        assert kwargs["timeout"] == 30

    @patch("app.utils.etsy_client.requests.request")
    def test_taxonomy_is_public(self, mock_request, etsy_client):
        mock_request.return_value = make_response(json_data={"count": 0, "results": []})

        etsy_client.get_seller_taxonomy_nodes()
        headers = mock_request.call_args.kwargs["headers"]
        assert "Authorization" not in headers
        assert headers["x-api-key"] == "test_client_id"

    @patch("app.utils.etsy_client.requests.request")
    def test_error_keeps_status_and_body(self, mock_request, etsy_client):
        mock_request.return_value = make_response(status_code=403, json_data={"error": "Insufficient scope"})

        with pytest.raises(EtsyAPIError) as excinfo:
            etsy_client.get_shipping_profiles("tok")
        assert excinfo.value.status_code == 403
        assert excinfo.value.body == {"error": "Insufficient scope"}
        assert "/shops/12345/shipping-profiles" in mock_request.call_args.args[1]

    @patch("app.utils.etsy_client.requests.request")
    def test_error_with_text_body(self, mock_request, etsy_client):
        mock_request.return_value = make_response(status_code=502, text="Bad gateway")

        with pytest.raises(EtsyAPIError) as excinfo:
            etsy_client.get_return_policies("tok")
        assert excinfo.value.body == "Bad gateway"
        assert excinfo.value.text == "Bad gateway"

    @patch("app.utils.etsy_client.requests.request")
    def test_transport_error_has_no_status(self, mock_request, etsy_client):
        mock_request.side_effect = requests.exceptions.ConnectionError("refused")

        with pytest.raises(EtsyAPIError) as excinfo:
            etsy_client.get_me("tok")
        assert excinfo.value.status_code is None
        assert "refused" in excinfo.value.text

    @patch("app.utils.etsy_client.requests.request")
    def test_shop_listings_params(self, mock_request, etsy_client):
        mock_request.return_value = make_response(json_data={"count": 0, "results": []})

        params = [("state", "active"), ("includes", "Images")]
        etsy_client.get_shop_listings("tok", params)
        assert mock_request.call_args.kwargs["params"] == params


class TestUploads:
    @patch("app.utils.etsy_client.requests.request")
    def test_upload_image_is_multipart(self, mock_request, etsy_client, tmp_path):
        image = tmp_path / "photo.jpg"
        image.write_bytes(b"\xff\xd8\xff")
        mock_request.return_value = make_response(json_data={"listing_image_id": 77})

        result = etsy_client.upload_listing_image("tok", 555, str(image), rank=2)
        assert result == {"listing_image_id": 77}

        args, kwargs = mock_request.call_args
        assert args[1].endswith("/shops/12345/listings/555/images")
        assert "Content-Type" not in kwargs["headers"]
        assert kwargs["files"]["image"][0] == "photo.jpg"
        assert kwargs["data"] == {"rank": 2}

    @patch("app.utils.etsy_client.requests.request")
    def test_upload_video(self, mock_request, etsy_client, tmp_path):
        video = tmp_path / "clip.mp4"
        video.write_bytes(b"\x00\x00")
        mock_request.return_value = make_response(json_data={"video_id": 9})

        etsy_client.upload_listing_video("tok", 555, str(video))
        args, kwargs = mock_request.call_args
        assert args[1].endswith("/shops/12345/listings/555/videos")
        assert kwargs["files"]["video"][0] == "clip.mp4"
        assert kwargs["data"] == {"name": "clip.mp4"}

    @patch("app.utils.etsy_client.requests.request")
    def test_update_inventory(self, mock_request, etsy_client):
        mock_request.return_value = make_response(json_data={"products": []})

        etsy_client.update_listing_inventory("tok", 555, {"products": [{"sku": "A"}]})
        args, kwargs = mock_request.call_args
        assert args == ("PUT", "https://openapi.etsy.com/v3/application/listings/555/inventory")
        assert kwargs["json"] == {"products": [{"sku": "A"}]}
