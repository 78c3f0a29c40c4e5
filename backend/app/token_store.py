import json
import logging
import os
from typing import Optional

from fastapi import Depends
from pydantic import ValidationError

from app.config import Settings, TOKEN_KEY, get_settings
from app.models.etsy_token import EtsyToken

logger = logging.getLogger(__name__)


class TokenStore:
    """Single-tenant token file: {"etsy": {...token record...}}."""

    def __init__(self, path: str):
        self.path = os.path.abspath(path)

    def read(self) -> dict:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Unreadable token file %s: %s", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def save(self, data: dict) -> None:
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

    def get_token(self) -> Optional[EtsyToken]:
        record = self.read().get(TOKEN_KEY)
        if not record:
            return None
        try:
            return EtsyToken.model_validate(record)
        except ValidationError:
            logger.warning("Stored token record has no access_token")
            return None

    def set_token(self, token: EtsyToken) -> None:
        data = self.read()
        data[TOKEN_KEY] = token.model_dump(exclude_none=True)
        self.save(data)
        logger.info("Saved Etsy tokens to %s", self.path)


def get_token_store(settings: Settings = Depends(get_settings)) -> TokenStore:
    return TokenStore(settings.token_store)
