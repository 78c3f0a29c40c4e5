from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from app.routers.etsy_oauth import require_access_token
from app.utils.etsy_client import EtsyClient, get_etsy_client

router = APIRouter(tags=["Shop"])


@router.get("/me")
def get_me(
    access_token: str = Depends(require_access_token),
    client: EtsyClient = Depends(get_etsy_client),
):
    """Authenticated Etsy user."""
    return client.get_me(access_token)


def shop_listing_params(
    state: Optional[str],
    limit: Optional[int],
    offset: Optional[int],
    sort_on: Optional[str],
    sort_order: Optional[str],
    includes: Optional[List[str]],
    legacy: Optional[str],
) -> list:
    """Query pairs for getListingsByShop; includes may repeat or be comma separated."""
    params = []
    for name, value in (
        ("state", state),
        ("limit", limit),
        ("offset", offset),
        ("sort_on", sort_on),
        ("sort_order", sort_order),
    ):
        if value is not None and value != "":
            params.append((name, value))
    for entry in includes or []:
        for include in entry.split(","):
            if include.strip():
                params.append(("includes", include.strip()))
    if legacy is not None:
        params.append(("legacy", legacy))
    return params


@router.get("/shops/listings")
def get_shop_listings(
    state: Optional[str] = "active",
    limit: Optional[int] = 5,
    offset: Optional[int] = 0,
    sort_on: Optional[str] = "created",
    sort_order: Optional[str] = "desc",
    includes: Optional[List[str]] = Query(None),
    legacy: Optional[str] = None,
    access_token: str = Depends(require_access_token),
    client: EtsyClient = Depends(get_etsy_client),
):
    params = shop_listing_params(state, limit, offset, sort_on, sort_order, includes, legacy)
    return client.get_shop_listings(access_token, params)


@router.get("/shops/shipping-profiles")
def get_shipping_profiles(
    access_token: str = Depends(require_access_token),
    client: EtsyClient = Depends(get_etsy_client),
):
    return client.get_shipping_profiles(access_token)


@router.get("/return-policies")
def get_return_policies(
    access_token: str = Depends(require_access_token),
    client: EtsyClient = Depends(get_etsy_client),
):
    return client.get_return_policies(access_token)


@router.get("/etsy/seller-taxonomy/nodes")
def get_seller_taxonomy_nodes(client: EtsyClient = Depends(get_etsy_client)):
    """Seller taxonomy tree; needs only the API key."""
    return client.get_seller_taxonomy_nodes()
