import logging
import os
from typing import Any, Dict, Optional

import requests
from fastapi import Depends

from app.config import ETSY_API_BASE, ETSY_TOKEN_URL, Settings, get_settings
from app.models.etsy_token import EtsyToken

logger = logging.getLogger(__name__)


class EtsyAPIError(Exception):
    """An Etsy call failed.

    ``status_code`` is the upstream HTTP status, or None when the request
    never got a response. ``body`` is the decoded upstream body when there
    was one.
    """

    def __init__(self, message: str, status_code: Optional[int] = None, body: Any = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.body = body

    @property
    def text(self) -> str:
        if self.body is None:
            return self.message
        return self.body if isinstance(self.body, str) else str(self.body)


class EtsyAuthRequired(Exception):
    """No access token is stored."""


class NoRefreshToken(Exception):
    """A refresh was requested but no refresh token is stored."""


def _response_body(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


class EtsyClient:
    """Thin wrapper over the Etsy endpoints this backend forwards to."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.timeout = settings.http_timeout

    def _headers(self, access_token: Optional[str] = None, json_body: bool = True) -> Dict[str, str]:
        headers = {"x-api-key": self.settings.client_id}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        if json_body:
            headers["Content-Type"] = "application/json"
        return headers

    def _send(self, method: str, url: str, **kwargs) -> Any:
        try:
            response = requests.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            raise EtsyAPIError(f"Failed to reach Etsy: {e}") from e

        body = _response_body(response)
        if response.status_code >= 400:
            raise EtsyAPIError(
                f"{method} {url} failed with status {response.status_code}",
                status_code=response.status_code,
                body=body,
            )
        return body

    def _request(self, method: str, endpoint: str, access_token: Optional[str] = None, **kwargs) -> Any:
        url = f"{ETSY_API_BASE}{endpoint}"
        json_body = "files" not in kwargs
        logger.debug("%s %s", method, url)
        return self._send(method, url, headers=self._headers(access_token, json_body), **kwargs)

    def _shop_path(self, suffix: str = "") -> str:
        return f"/shops/{self.settings.shop_id}{suffix}"

    # OAuth token endpoint

    def _token_request(self, form: Dict[str, str]) -> EtsyToken:
        form = {"client_id": self.settings.client_id, **form}
        if self.settings.client_secret:
            form["client_secret"] = self.settings.client_secret
        data = self._send(
            "POST",
            ETSY_TOKEN_URL,
            data=form,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        if not isinstance(data, dict) or not data.get("access_token"):
            raise EtsyAPIError("No access_token in token response", status_code=502, body=data)
        return EtsyToken.model_validate(data)

    def exchange_code(self, code: str, code_verifier: str) -> EtsyToken:
        return self._token_request({
            "grant_type": "authorization_code",
            "redirect_uri": self.settings.redirect_uri,
            "code": code,
            "code_verifier": code_verifier,
        })

    def refresh(self, refresh_token: str) -> EtsyToken:
        return self._token_request({
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
        })

    # Read proxies

    def get_me(self, access_token: str) -> Any:
        return self._request("GET", "/users/me", access_token)

    def get_shop_listings(self, access_token: str, params: Optional[list] = None) -> Any:
        return self._request("GET", self._shop_path("/listings"), access_token, params=params)

    def get_shipping_profiles(self, access_token: str) -> Any:
        return self._request("GET", self._shop_path("/shipping-profiles"), access_token)

    def get_return_policies(self, access_token: str) -> Any:
        return self._request("GET", self._shop_path("/policies/return"), access_token)

    def get_seller_taxonomy_nodes(self) -> Any:
        return self._request("GET", "/seller-taxonomy/nodes")

    # Listing writes

    def create_draft_listing(self, access_token: str, payload: Dict[str, Any]) -> Any:
        result = self._request("POST", self._shop_path("/listings"), access_token, json=payload)
        logger.info("Created draft listing %s", result.get("listing_id") if isinstance(result, dict) else result)
        return result

    def upload_listing_image(self, access_token: str, listing_id: int, image_path: str, rank: int = 1) -> Any:
        endpoint = self._shop_path(f"/listings/{listing_id}/images")
        with open(image_path, "rb") as f:
            files = {"image": (os.path.basename(image_path), f)}
            return self._request("POST", endpoint, access_token, files=files, data={"rank": rank})

    def update_listing_inventory(self, access_token: str, listing_id: int, inventory: Dict[str, Any]) -> Any:
        return self._request("PUT", f"/listings/{listing_id}/inventory", access_token, json=inventory)

    def upload_listing_video(self, access_token: str, listing_id: int, video_path: str, name: Optional[str] = None) -> Any:
        endpoint = self._shop_path(f"/listings/{listing_id}/videos")
        video_name = name or os.path.basename(video_path)
        with open(video_path, "rb") as f:
            files = {"video": (video_name, f)}
            return self._request("POST", endpoint, access_token, files=files, data={"name": video_name})


def get_etsy_client(settings: Settings = Depends(get_settings)) -> EtsyClient:
    return EtsyClient(settings)
