from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Any, List, Optional
import enum

from .weights import format_weight, weight_to_number


class ItemStatus(str, enum.Enum):
    IN_STOCK = "IN_STOCK"
    SOLD = "SOLD"
    RETURNED = "RETURNED"


# Audit log action recorded for each status a piece is moved to
STATUS_EVENT_ACTIONS = {
    ItemStatus.SOLD: "SOLD",
    ItemStatus.RETURNED: "RETURN",
    ItemStatus.IN_STOCK: "IN",
}


class SyncOutcome(str, enum.Enum):
    SYNCED = "synced"
    PENDING = "pending"  # local only; the next successful pull reconciles it
    FAILED = "failed"  # informational; a pull will not repair it


# --- Item ---
class Item(BaseModel):
    item_id: str = Field(..., description="Item identifier, e.g. AG-26-000123")
    design_no: str = ""
    category: str = ""
    karat: str = "22K"
    gross_wt: str = ""
    less_wt: str = ""
    net_wt: str = ""
    notes: str = ""
    status: ItemStatus = ItemStatus.IN_STOCK
    image_urls: List[str] = Field(default_factory=list, description="Photos in upload order, first is the thumbnail")
    created_at: str = ""
    updated_at: str = ""

    model_config = ConfigDict(protected_namespaces=())

    @field_validator("design_no", "category", "karat", "notes", "created_at", "updated_at", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return "" if value is None else str(value)

    @field_validator("gross_wt", "less_wt", "net_wt", mode="before")
    @classmethod
    def _normalize_weight(cls, value: Any) -> str:
        return format_weight(value)

    @field_validator("status", mode="before")
    @classmethod
    def _default_status(cls, value: Any) -> ItemStatus:
        if isinstance(value, ItemStatus):
            return value
        try:
            return ItemStatus(str(value).strip().upper())
        except ValueError:
            return ItemStatus.IN_STOCK

    @field_validator("image_urls", mode="before")
    @classmethod
    def _clean_urls(cls, value: Any) -> List[str]:
        if not isinstance(value, (list, tuple)):
            return []
        return [str(url) for url in value if url]

    @property
    def primary_image_url(self) -> Optional[str]:
        return self.image_urls[0] if self.image_urls else None

    def to_remote_row(self) -> dict[str, Any]:
        """Row for the remote `items` table; `image_url` mirrors the first photo."""
        return {
            "item_id": self.item_id,
            "design_no": self.design_no,
            "category": self.category,
            "karat": self.karat,
            "gross_wt": weight_to_number(self.gross_wt),
            "less_wt": weight_to_number(self.less_wt),
            "net_wt": weight_to_number(self.net_wt),
            "notes": self.notes,
            "status": self.status.value,
            "image_url": self.primary_image_url,
            "image_urls": list(self.image_urls),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_remote_row(cls, row: dict[str, Any]) -> "Item":
        image_urls = row.get("image_urls")
        if not isinstance(image_urls, list):
            image_urls = [row["image_url"]] if row.get("image_url") else []
        updated_at = row.get("updated_at") or ""
        return cls(
            item_id=row["item_id"],
            design_no=row.get("design_no"),
            category=row.get("category"),
            karat=row.get("karat"),
            gross_wt=row.get("gross_wt"),
            less_wt=row.get("less_wt"),
            net_wt=row.get("net_wt"),
            notes=row.get("notes"),
            status=row.get("status"),
            image_urls=image_urls,
            created_at=row.get("created_at") or updated_at,
            updated_at=updated_at,
        )


class ItemCreate(BaseModel):
    design_no: str = Field("", max_length=100, description="Design number")
    category: str = Field("", max_length=100, description="Piece category, e.g. Ring")
    karat: str = Field("22K", max_length=10, description="Gold purity")
    gross_wt: str = Field("", description="Gross weight in grams")
    less_wt: str = Field("", description="Stone/less weight in grams")
    notes: str = Field("", max_length=1000)


class ItemUpdate(BaseModel):
    design_no: Optional[str] = Field(None, max_length=100)
    category: Optional[str] = Field(None, max_length=100)
    karat: Optional[str] = Field(None, max_length=10)
    gross_wt: Optional[str] = None
    less_wt: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=1000)


class StatusChangeRequest(BaseModel):
    status: ItemStatus
    actor: Optional[str] = Field(None, max_length=100, description="Who moved the piece (free text)")
    place: Optional[str] = Field(None, max_length=100, description="Where it happened (free text)")


# --- Responses ---
class SyncResult(BaseModel):
    outcome: SyncOutcome
    message: str
    item: Optional[Item] = None
    photos_uploaded: int = 0
    photos_failed: int = 0


class PullResult(BaseModel):
    outcome: SyncOutcome
    message: str
    items: List[Item]
    pulled: int = Field(0, description="Rows received from the remote store")


class ItemListResponse(BaseModel):
    items: List[Item]
    total: int
    counts: dict[str, int]


class NextIdResponse(BaseModel):
    item_id: str
