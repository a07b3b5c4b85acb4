"""Beluva API contract models.

Request bodies, response payloads and the shared success/error envelopes.
Row-shaped responses are built from ORM objects via ``from_attributes``.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, field_validator

T = TypeVar("T")

# === Envelopes ===


class SuccessResponse(BaseModel, Generic[T]):
    success: Literal[True] = True
    data: T


class ErrorDetail(BaseModel):
    message: str
    code: str | None = None


class ErrorResponse(BaseModel):
    error: ErrorDetail


# === Users ===


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    email: str
    is_admin: bool
    created_at: datetime | None = None


class AdminCheckResponse(BaseModel):
    is_admin: bool


# === Room Images ===


class RoomImageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    file_path: str
    uploaded_at: datetime | None = None
    url: str | None = None


class UploadRoomImageResponse(BaseModel):
    id: uuid.UUID
    path: str
    url: str


# === Furniture Catalog ===


class FurnitureCreate(BaseModel):
    name: str = Field(min_length=1)
    description: str = ""
    price: float = Field(ge=0)
    dimensions: str = ""
    material: str = ""
    tags: list[str] = []
    image_urls: list[HttpUrl] = []
    stock_status: bool = True
    category: str = ""
    purchase_link: HttpUrl | None = None


class FurnitureUpdate(BaseModel):
    """Partial update: only fields present in the body are written."""

    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    price: float | None = Field(default=None, ge=0)
    dimensions: str | None = None
    material: str | None = None
    tags: list[str] | None = None
    image_urls: list[HttpUrl] | None = None
    stock_status: bool | None = None
    category: str | None = None
    purchase_link: HttpUrl | None = None


class FurnitureItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    description: str
    price: float
    dimensions: str
    material: str
    tags: list[str]
    image_urls: list[str]
    stock_status: bool
    category: str
    purchase_link: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


class FurnitureSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    price: float
    image_urls: list[str]


# === Recommendation ===


class RecommendationRequest(BaseModel):
    room_image_id: uuid.UUID
    budget: float = Field(ge=0)
    style: str | None = None
    furniture_types: list[str] = Field(min_length=1)


class Recommendation(BaseModel):
    id: str
    name: str = Field(min_length=1)
    description: str = ""
    price: float = Field(ge=0)
    image_url: str | None = None
    purchase_link: str | None = None
    reason: str = ""
    score: float = Field(ge=0, le=1, default=0.5)
    in_catalog: bool = False

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("name must not be blank")
        return v.strip()


class RecommendationResponse(BaseModel):
    recommendations: list[Recommendation] = Field(min_length=1)
    session_id: uuid.UUID | None = None


# === Visualization ===


class VisualizationRequest(BaseModel):
    room_image_id: uuid.UUID
    furniture_item_ids: list[uuid.UUID] = Field(min_length=1)
    session_id: uuid.UUID | None = None


class VisualizationResponse(BaseModel):
    url: str
    session_id: uuid.UUID | None = None
    session_error: str | None = None


# === Placement Metadata ===


class PlacementBox(BaseModel):
    furniture_id: uuid.UUID
    x: float
    y: float
    width: float = Field(gt=0)
    height: float = Field(gt=0)


class PlacementCreate(PlacementBox):
    generated_image_id: uuid.UUID


class PlacementBatchCreate(BaseModel):
    generated_image_id: uuid.UUID
    placements: list[PlacementBox] = Field(min_length=1)


class PlacementUpdate(PlacementCreate):
    id: uuid.UUID


class PlacementOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    generated_image_id: uuid.UUID
    furniture_id: uuid.UUID
    x: float
    y: float
    width: float
    height: float
    created_at: datetime | None = None


# === History ===


class DesignSessionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    uploaded_image_id: uuid.UUID | None = None
    selected_furniture_ids: list[str] = []
    generated_image_url: str | None = None
    preferences: dict = {}
    created_at: datetime | None = None
    room_image: RoomImageOut | None = None
    furniture_items: list[FurnitureSummary] = []


class Pagination(BaseModel):
    total: int
    limit: int
    offset: int
    has_more: bool


class HistoryPage(BaseModel):
    sessions: list[DesignSessionOut]
    pagination: Pagination


# === Admin ===


class ActivityUser(BaseModel):
    id: uuid.UUID
    name: str


class ActivityEntry(BaseModel):
    id: str
    type: Literal["signup", "design", "upload"]
    user: ActivityUser
    timestamp: datetime


class AdminStats(BaseModel):
    user_count: int
    session_count: int
    furniture_count: int
    design_count: int
    recent_activity: list[ActivityEntry] = []
