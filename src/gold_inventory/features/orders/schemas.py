from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Any, List, Optional
import datetime
import enum


class OrderStatus(str, enum.Enum):
    RECEIVED = "RECEIVED"
    IN_PROCESS = "IN_PROCESS"
    DELIVERED = "DELIVERED"


class OrderCreate(BaseModel):
    party_name: str = Field(..., min_length=1, max_length=255, description="Customer / party placing the order")
    order_date: Optional[datetime.date] = Field(None, description="Defaults to today")
    delivery_date: Optional[datetime.date] = None
    karat: str = Field("22K", max_length=10)
    product_type: str = Field("", max_length=100)
    design_no: str = Field("", max_length=100)
    weight_required: Optional[float] = Field(None, ge=0, description="Required weight in grams")
    status: OrderStatus = OrderStatus.RECEIVED

    @field_validator("party_name", mode="after")
    @classmethod
    def _strip_party(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Party name required.")
        return value


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class Order(BaseModel):
    id: str
    party_name: str = ""
    order_date: str = ""
    delivery_date: str = ""
    karat: str = ""
    product_type: str = ""
    design_no: str = ""
    weight_required: str = ""
    status: OrderStatus = OrderStatus.RECEIVED
    photo_urls: List[str] = Field(default_factory=list)
    created_at: str = ""
    updated_at: str = ""

    model_config = ConfigDict(protected_namespaces=())

    @field_validator(
        "id", "party_name", "order_date", "delivery_date", "karat", "product_type",
        "design_no", "weight_required", "created_at", "updated_at", mode="before",
    )
    @classmethod
    def _none_as_empty(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("status", mode="before")
    @classmethod
    def _default_status(cls, value: Any) -> OrderStatus:
        try:
            return OrderStatus(value)
        except ValueError:
            return OrderStatus.RECEIVED

    @field_validator("photo_urls", mode="before")
    @classmethod
    def _clean_urls(cls, value: Any) -> List[str]:
        return [str(url) for url in value if url] if isinstance(value, list) else []

    @classmethod
    def from_remote_row(cls, row: dict[str, Any]) -> "Order":
        return cls.model_validate(row)


class WhatsAppLink(BaseModel):
    url: str
