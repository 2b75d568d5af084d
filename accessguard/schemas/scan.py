"""Scan schemas for request/response validation."""
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from accessguard.models.scan import Impact


class ScanRequest(BaseModel):
    """Scan request; the URL is checked by the route so errors map to 400."""
    url: str | None = None


class ViolationNode(BaseModel):
    """One offending element."""
    html: str
    target: list[str] = Field(default_factory=list)
    failure_summary: str = ""
    fix_suggestion: str


class Violation(BaseModel):
    """One failed axe-core rule with its offending elements."""
    id: str
    impact: Impact
    description: str
    help: str
    help_url: str
    tags: list[str] = Field(default_factory=list)
    nodes: list[ViolationNode] = Field(default_factory=list)


class ScanResult(BaseModel):
    """Outcome of scanning one page."""
    url: str
    timestamp: datetime
    violations: list[Violation]
    passes: int
    incomplete: int
    score: int
    scan_duration: int  # milliseconds


class ScanLogResponse(BaseModel):
    """Scan history entry."""
    id: int
    url: str
    score: int | None
    violations_count: int
    scan_duration_ms: int | None
    passes: int | None
    incomplete: int | None
    site_id: int | None
    created_at: datetime

    model_config = {"from_attributes": True}


class ScanLogDetailResponse(ScanLogResponse):
    """Scan history entry with the stored violations."""
    violations: list[dict[str, Any]] | None

    model_config = {"from_attributes": True}


class ScanHistoryResponse(BaseModel):
    """Paginated scan history."""
    scans: list[ScanLogResponse]
    total: int


class DashboardStats(BaseModel):
    """Per-user dashboard figures."""
    sites_count: int
    scans_this_month: int
    average_score: int | None
