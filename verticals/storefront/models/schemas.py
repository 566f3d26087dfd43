"""Pydantic schemas for API request/response validation."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from verticals.storefront.models.domain import Presentation


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------

class ShopSettingsUpdate(BaseModel):
    """Partial update: only fields sent by the client are written."""

    model_config = ConfigDict(extra="forbid")

    warranty_enabled: Optional[bool] = None
    warranty_default_presentation: Optional[Presentation] = None
    warranty_default_percentage: Optional[float] = Field(None, ge=0, le=100)
    warranty_global_description: Optional[str] = None
    warranty_product_id: Optional[str] = None


class SubscriptionCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_id: str = Field(..., min_length=1, alias="productId")
    email: str = Field(..., min_length=3, max_length=320)
    name: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=64)

