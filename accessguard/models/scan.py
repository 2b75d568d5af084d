"""Site and ScanLog models."""
import enum
from datetime import datetime

from sqlalchemy import (
    JSON,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from accessguard.models.user import Base


class Impact(str, enum.Enum):
    """axe-core impact levels, most severe first."""
    CRITICAL = "critical"
    SERIOUS = "serious"
    MODERATE = "moderate"
    MINOR = "minor"


class Site(Base):
    """A site registered by a paid user for weekly monitoring."""

    __tablename__ = "sites"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    url: Mapped[str] = mapped_column(String(2048), nullable=False)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    last_scan_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    last_scan_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
        server_default=func.now(),
        onupdate=datetime.utcnow,
    )

    user = relationship("User", back_populates="sites")

    __table_args__ = (
        UniqueConstraint("user_id", "url", name="uq_sites_user_url"),
    )


class ScanLog(Base):
    """One completed scan; drives rate limiting, history and analytics."""

    __tablename__ = "scan_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # User tracking (nullable for anonymous scans)
    user_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    ip_address: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    url: Mapped[str] = mapped_column(String(2048), nullable=False)
    score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    violations_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    scan_duration_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Full violation list as JSON
    violations: Mapped[list | None] = mapped_column(JSON, nullable=True)
    passes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    incomplete: Mapped[int | None] = mapped_column(Integer, nullable=True)

    site_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("sites.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
        server_default=func.now(),
        index=True,
    )

    __table_args__ = (
        # Rate-limit lookups filter on both
        Index("ix_scan_logs_ip_created", "ip_address", "created_at"),
    )
