from pydantic import BaseModel, ConfigDict
from typing import Optional


class EtsyToken(BaseModel):
    """Token pair as returned by Etsy's token endpoint.

    Extra fields Etsy sends back are kept so the stored file mirrors the
    upstream response.
    """

    model_config = ConfigDict(extra="allow")

    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    token_type: Optional[str] = None
    scope: Optional[str] = None
