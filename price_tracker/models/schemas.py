from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Any, List, Optional


class ExtractedRecord(BaseModel):
    title: str = Field(..., description="Product title")
    price: float = Field(..., description="Current price")
    image_url: Optional[str] = Field(None, description="Product image URL")


class ProductRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., description="Opaque product id")
    url: str = Field(..., description="Product page URL")
    title: str = Field(..., description="Display title")
    current_price: float = Field(..., description="Latest observed price")
    image_url: Optional[str] = Field(None, description="Product image URL")
    last_checked: datetime = Field(..., description="Time of the last update")
    created_at: datetime = Field(..., description="Time tracking started")
    highest_price: Optional[float] = Field(None, description="Highest price seen")
    lowest_price: Optional[float] = Field(None, description="Lowest price seen")


class PriceObservation(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    product_id: str
    price: float
    timestamp: datetime


class ProductView(ProductRecord):
    price_change: Optional[float] = Field(
        None, description="Latest price minus the previous one, if there are two observations"
    )


class ProductDetail(BaseModel):
    product: ProductView
    price_history: List[PriceObservation]


class TrackRequest(BaseModel):
    # Any JSON value is accepted; validate_url rejects non-strings
    url: Any = Field(None, description="Product page URL to start tracking")
