"""Site schemas."""
from datetime import datetime

from pydantic import BaseModel, Field

from accessguard.models.user import PlanType


class SiteCreate(BaseModel):
    """Site registration request; the URL is validated by the service."""
    url: str | None = None
    name: str | None = Field(default=None, max_length=255)


class SiteDelete(BaseModel):
    site_id: int | None = None


class SiteResponse(BaseModel):
    """Registered site."""
    id: int
    url: str
    name: str | None
    last_scan_score: int | None
    last_scan_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}


class SiteListResponse(BaseModel):
    sites: list[SiteResponse]
    plan: PlanType
    site_limit: int


class SiteCreatedResponse(BaseModel):
    site: SiteResponse
