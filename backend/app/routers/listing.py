import logging
import os
import time
from typing import Any, Dict, List, Optional

import requests
from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from app.config import Settings, get_settings
from app.models.listing import (
    ImageUploadResult,
    ListingCreationResult,
    StepResult,
    draft_payload,
    inventory_payload,
    validate_listing,
)
from app.routers.etsy_oauth import get_valid_access_token
from app.token_store import TokenStore, get_token_store
from app.utils.etsy_client import EtsyAPIError, EtsyClient, get_etsy_client
from app.utils.media import local_image

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Listing"])

# Etsy rejects concurrent edits to one listing with this message; it clears
# once the previous image has been processed
LISTING_LOCKED_ERROR = "listing is locked"


def is_listing_locked(exc: EtsyAPIError) -> bool:
    return LISTING_LOCKED_ERROR in exc.text.lower()


def upload_image_with_retry(
    client: EtsyClient,
    access_token: str,
    listing_id: int,
    image: str,
    rank: int,
    max_attempts: int,
    retry_delay: float,
) -> ImageUploadResult:
    """
    Upload one image, retrying with a fixed delay while Etsy reports the
    listing locked. Never raises; failures are reported in the result.
    """
    result = ImageUploadResult(image=image, rank=rank, ok=False)
    try:
        with local_image(image, timeout=client.timeout) as path:
            for attempt in range(1, max_attempts + 1):
                result.attempts = attempt
                try:
                    uploaded = client.upload_listing_image(access_token, listing_id, path, rank=rank)
                except EtsyAPIError as e:
                    result.error = e.body if e.body is not None else e.message
                    if is_listing_locked(e) and attempt < max_attempts:
                        logger.warning(
                            "Listing %s locked while uploading %s, retrying in %ss (attempt %d/%d)",
                            listing_id, image, retry_delay, attempt, max_attempts,
                        )
                        time.sleep(retry_delay)
                        continue
                    logger.error("Image upload failed for %s: %s", image, e.text)
                    return result
                result.ok = True
                result.error = None
                result.listing_image_id = uploaded.get("listing_image_id") if isinstance(uploaded, dict) else None
                return result
    except (OSError, requests.exceptions.RequestException) as e:
        logger.error("Could not read image %s: %s", image, e)
        result.error = str(e)
    return result


def upload_images(
    client: EtsyClient,
    access_token: str,
    listing_id: int,
    images: List[str],
    settings: Settings,
) -> List[ImageUploadResult]:
    # One at a time; Etsy locks the listing while an image is processed
    return [
        upload_image_with_retry(
            client,
            access_token,
            listing_id,
            image,
            rank,
            settings.image_upload_max_attempts,
            settings.image_upload_retry_delay,
        )
        for rank, image in enumerate(images, start=1)
    ]


def update_inventory(
    client: EtsyClient, access_token: str, listing_id: int, inventory: Dict[str, Any]
) -> StepResult:
    try:
        result = client.update_listing_inventory(access_token, listing_id, inventory)
    except EtsyAPIError as e:
        logger.error("Inventory update failed for listing %s: %s", listing_id, e.text)
        return StepResult(ok=False, error=e.body if e.body is not None else e.message)
    return StepResult(ok=True, result=result)


def upload_video(
    client: EtsyClient, access_token: str, listing_id: int, video_path: str
) -> Optional[StepResult]:
    if not os.path.isfile(video_path):
        logger.debug("No listing video at %s, skipping", video_path)
        return None
    try:
        result = client.upload_listing_video(access_token, listing_id, video_path)
    except EtsyAPIError as e:
        logger.error("Video upload failed for listing %s: %s", listing_id, e.text)
        return StepResult(ok=False, error=e.body if e.body is not None else e.message)
    except OSError as e:
        logger.error("Could not read video %s: %s", video_path, e)
        return StepResult(ok=False, error=str(e))
    return StepResult(ok=True, result=result)


def create_etsy_listing(
    data: Dict[str, Any], access_token: str, client: EtsyClient, settings: Settings
) -> ListingCreationResult:
    """
    Create a draft listing, then attach images, inventory and the video.

    The draft must succeed; later steps are recorded individually and a
    failing step does not undo the ones before it.
    """
    listing = client.create_draft_listing(access_token, draft_payload(data))
    if not isinstance(listing, dict) or not listing.get("listing_id"):
        raise EtsyAPIError("Draft listing response has no listing_id", status_code=502, body=listing)
    listing_id = listing["listing_id"]
    result = ListingCreationResult(listing=listing)

    if data.get("images"):
        result.images = upload_images(client, access_token, listing_id, data["images"], settings)

    inventory = inventory_payload(data)
    if inventory is not None:
        result.inventory = update_inventory(client, access_token, listing_id, inventory)

    result.video = upload_video(client, access_token, listing_id, settings.listing_video_path)
    return result


@router.post("/listings")
def create_listing(
    data: Dict[str, Any] = Body(...),
    store: TokenStore = Depends(get_token_store),
    client: EtsyClient = Depends(get_etsy_client),
    settings: Settings = Depends(get_settings),
):
    errors = validate_listing(data)
    if errors:
        logger.info("Rejected listing request: %s", "; ".join(errors))
        return JSONResponse(status_code=400, content={"errors": errors})

    access_token = get_valid_access_token(store, client)
    return create_etsy_listing(data, access_token, client, settings)
