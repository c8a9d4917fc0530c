"""Request models and enums shared by the HTTP and message surfaces."""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


class EntityStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    ARCHIVED = "archived"


class Gender(str, Enum):
    MEN = "men"
    WOMEN = "women"
    UNISEX = "unisex"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


# Columns a list may be sorted by
SORTABLE_FIELDS = ("name", "slug", "created_at", "updated_at", "sort_order", "status")

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100


def _check_image_url(value: Optional[str]) -> Optional[str]:
    if value and not value.lower().startswith(("http://", "https://")):
        raise ValueError("image_url must be an http(s) URL")
    return value


class CreateEntityRequest(BaseModel):
    """Request model for creating a taxonomy entity."""

    name: str = Field(..., min_length=2, max_length=100, description="Display name")
    description: Optional[str] = Field(default=None, max_length=500)
    status: EntityStatus = Field(default=EntityStatus.ACTIVE)
    applicable_genders: List[Gender] = Field(default_factory=list)
    has_subcategories: bool = Field(default=False)
    sort_order: int = Field(default=0, ge=0)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    image_url: Optional[str] = Field(default=None, description="Public http(s) image URL")
    icon: Optional[str] = Field(default=None, max_length=100)
    parent_id: Optional[str] = Field(default=None, description="Parent category id (subcategories)")

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 2:
            raise ValueError("name must be at least 2 characters")
        return value

    @field_validator("image_url")
    @classmethod
    def check_image_url(cls, value: Optional[str]) -> Optional[str]:
        return _check_image_url(value)


class UpdateEntityRequest(BaseModel):
    """Partial update; only fields that are set are written."""

    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    status: Optional[EntityStatus] = None
    applicable_genders: Optional[List[Gender]] = None
    has_subcategories: Optional[bool] = None
    sort_order: Optional[int] = Field(default=None, ge=0)
    metadata: Optional[Dict[str, Any]] = None
    image_url: Optional[str] = None
    icon: Optional[str] = Field(default=None, max_length=100)
    parent_id: Optional[str] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: Optional[str]) -> Optional[str]:
        return value.strip() if value is not None else value

    @field_validator("image_url")
    @classmethod
    def check_image_url(cls, value: Optional[str]) -> Optional[str]:
        return _check_image_url(value)


class UpdateStatusRequest(BaseModel):
    status: EntityStatus


class SortOrderItem(BaseModel):
    id: str
    sort_order: int = Field(..., ge=0)


class UpdateSortOrderRequest(BaseModel):
    updates: List[SortOrderItem] = Field(..., min_length=1)


class BulkCreateRequest(BaseModel):
    items: List[CreateEntityRequest] = Field(..., min_length=1, max_length=100)


class ValidateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    slug: Optional[str] = None
    exclude_id: Optional[str] = None
