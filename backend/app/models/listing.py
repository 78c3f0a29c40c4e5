import math

from pydantic import BaseModel
from typing import Any, Dict, List, Optional

WHO_MADE = ("i_did", "someone_else", "collective")

WHEN_MADE = (
    "made_to_order",
    "2020_2025",
    "2010_2019",
    "2006_2009",
    "before_2006",
    "2000_2005",
    "1990s",
    "1980s",
    "1970s",
    "1960s",
    "1950s",
    "1940s",
    "1930s",
    "1920s",
    "1910s",
    "1900s",
    "1800s",
    "1700s",
    "before_1700",
)

LISTING_TYPES = ("physical", "download", "both")
WEIGHT_UNITS = ("oz", "lb", "g", "kg")
DIMENSION_UNITS = ("in", "ft", "mm", "cm", "m", "yd", "inches")
PHYSICAL_DIMENSIONS = ("item_weight", "item_length", "item_width", "item_height")

# Request keys handled locally; everything else goes to Etsy as given
LOCAL_FIELDS = ("images", "sku", "inventory")


class ImageUploadResult(BaseModel):
    image: str
    rank: int
    ok: bool
    attempts: int = 0
    listing_image_id: Optional[int] = None
    error: Optional[Any] = None


class StepResult(BaseModel):
    ok: bool
    result: Optional[Any] = None
    error: Optional[Any] = None


class ListingCreationResult(BaseModel):
    ok: bool = True
    listing: Dict[str, Any]
    images: List[ImageUploadResult] = []
    inventory: Optional[StepResult] = None
    video: Optional[StepResult] = None


def _number(value: Any) -> Optional[float]:
    """Finite float for numbers and numeric strings, else None."""
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return None
    try:
        number = float(value.strip() if isinstance(value, str) else value)
    except (ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def _integer(value: Any) -> Optional[int]:
    number = _number(value)
    if number is None or not number.is_integer():
        return None
    return int(number)


def _positive_number(data: Dict[str, Any], field: str, errors: List[str]) -> None:
    number = _number(data.get(field))
    if number is None or number <= 0:
        errors.append(f"{field} must be a positive number")


def _positive_integer(data: Dict[str, Any], field: str, errors: List[str]) -> None:
    number = _integer(data.get(field))
    if number is None or number <= 0:
        errors.append(f"{field} must be a positive integer")


def _one_of(data: Dict[str, Any], field: str, allowed, errors: List[str], required: bool = True) -> None:
    value = data.get(field)
    if value is None and not required:
        return
    if value not in allowed:
        errors.append(f"{field} must be one of: {', '.join(allowed)}")


def validate_listing(data: Dict[str, Any]) -> List[str]:
    """
    Check a listing draft request and return every problem found.
    An empty list means the request can be sent to Etsy.
    """
    errors: List[str] = []

    for field in ("title", "description"):
        value = data.get(field)
        if not isinstance(value, str) or not value.strip():
            errors.append(f"{field} is required")

    _positive_number(data, "price", errors)
    _positive_integer(data, "quantity", errors)
    _one_of(data, "who_made", WHO_MADE, errors)
    _one_of(data, "when_made", WHEN_MADE, errors)
    _positive_integer(data, "taxonomy_id", errors)
    _one_of(data, "type", LISTING_TYPES, errors, required=False)

    if data.get("type") == "physical":
        for field in PHYSICAL_DIMENSIONS:
            _positive_number(data, field, errors)
        _one_of(data, "item_weight_unit", WEIGHT_UNITS, errors)
        _one_of(data, "item_dimensions_unit", DIMENSION_UNITS, errors)
        _positive_integer(data, "shipping_profile_id", errors)

    images = data.get("images")
    if images is not None and (
        not isinstance(images, list) or not all(isinstance(i, str) and i.strip() for i in images)
    ):
        errors.append("images must be a list of file paths or URLs")

    sku = data.get("sku")
    if sku is not None and (not isinstance(sku, str) or not sku.strip()):
        errors.append("sku must be a non-empty string")

    inventory = data.get("inventory")
    if inventory is not None and (not isinstance(inventory, dict) or not inventory.get("products")):
        errors.append("inventory must be an object with a products list")

    return errors


def draft_payload(data: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in data.items() if key not in LOCAL_FIELDS and value is not None}


def inventory_payload(data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Inventory body for the listing, or None when the request carries none."""
    if data.get("inventory"):
        return data["inventory"]
    if not data.get("sku"):
        return None
    return {
        "products": [
            {
                "sku": data["sku"],
                "property_values": [],
                "offerings": [
                    {
                        "price": _number(data["price"]),
                        "quantity": _integer(data["quantity"]),
                        "is_enabled": True,
                    }
                ],
            }
        ],
        "price_on_property": [],
        "quantity_on_property": [],
        "sku_on_property": [],
    }
