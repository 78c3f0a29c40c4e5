import logging
import os
from functools import lru_cache
from typing import List

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()

logger = logging.getLogger(__name__)

ETSY_CONNECT_URL = "https://www.etsy.com/oauth/connect"
ETSY_TOKEN_URL = "https://openapi.etsy.com/v3/public/oauth/token"
ETSY_API_BASE = "https://openapi.etsy.com/v3/application"

TOKEN_KEY = "etsy"

# Every scope Etsy offers; the demo asks for all of them
ETSY_SCOPES = [
    "address_r",
    "address_w",
    "billing_r",
    "cart_r",
    "cart_w",
    "email_r",
    "favorites_r",
    "favorites_w",
    "feedback_r",
    "listings_d",
    "listings_r",
    "listings_w",
    "profile_r",
    "profile_w",
    "recommend_r",
    "recommend_w",
    "shops_r",
    "shops_w",
    "transactions_r",
    "transactions_w",
]


class Settings(BaseModel):
    client_id: str = ""
    client_secret: str = ""
    redirect_uri: str = ""
    shop_id: str = ""
    base_url: str = "http://localhost:3000"
    token_store: str = "./tokens.json"
    port: int = 3000
    listing_video_path: str = "./assets/listing-video.mp4"
    image_upload_max_attempts: int = 3
    image_upload_retry_delay: float = 2.0
    pkce_session_ttl: int = 600
    http_timeout: float = 30
    log_level: str = "INFO"

    def missing(self) -> List[str]:
        required = {
            "CLIENT_ID": self.client_id,
            "REDIRECT_URI": self.redirect_uri,
            "SHOP_ID": self.shop_id,
        }
        return [name for name, value in required.items() if not value]


@lru_cache()
def get_settings() -> Settings:
    """Build settings from the process environment (and .env)."""
    return Settings(
        client_id=os.getenv("CLIENT_ID", ""),
        client_secret=os.getenv("CLIENT_SECRET", ""),
        redirect_uri=os.getenv("REDIRECT_URI", ""),
        shop_id=os.getenv("SHOP_ID", ""),
        base_url=os.getenv("BASE_URL", "http://localhost:3000"),
        token_store=os.getenv("TOKEN_STORE", "./tokens.json"),
        port=int(os.getenv("PORT", "3000")),
        listing_video_path=os.getenv("LISTING_VIDEO_PATH", "./assets/listing-video.mp4"),
        image_upload_max_attempts=int(os.getenv("IMAGE_UPLOAD_MAX_ATTEMPTS", "3")),
        image_upload_retry_delay=float(os.getenv("IMAGE_UPLOAD_RETRY_DELAY", "2.0")),
        pkce_session_ttl=int(os.getenv("PKCE_SESSION_TTL", "600")),
        http_timeout=float(os.getenv("HTTP_TIMEOUT", "30")),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
    )


def warn_missing(settings: Settings) -> None:
    missing = settings.missing()
    if missing:
        logger.warning(
            "Make sure %s are set in .env; Etsy calls will fail without them",
            ", ".join(missing),
        )
