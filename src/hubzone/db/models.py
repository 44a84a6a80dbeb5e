"""
SQLAlchemy ORM Models

Tables for HUBZone designations, the businesses whose standing depends on
them, and import-run bookkeeping.
"""
from datetime import date, datetime
from typing import Optional

from geoalchemy2 import Geometry
from sqlalchemy import (
    String, Integer, Numeric, Date, DateTime, Boolean, Text,
    ForeignKey, CheckConstraint, UniqueConstraint, Index,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.hubzone.db.base import Base, TimestampMixin, JSONType


class Hubzone(Base, TimestampMixin):
    """
    One HUBZone designation per census tract.

    Rows are created on first sighting, updated in place while a source
    reports them, and transitioned to 'expired' once no source does. Never
    deleted.
    """
    __tablename__ = "hubzones"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    geoid: Mapped[str] = mapped_column(
        String(11),
        nullable=False,
        unique=True,
        comment="11-digit census tract GEOID"
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Display name (Census Tract 4.01)"
    )
    hubzone_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="Qualifying-area category"
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="active",
        comment="active, expired, pending, redesignated"
    )

    state: Mapped[Optional[str]] = mapped_column(String(2), nullable=True, comment="State FIPS")
    county: Mapped[Optional[str]] = mapped_column(String(3), nullable=True, comment="County FIPS")
    tract_id: Mapped[Optional[str]] = mapped_column(String(6), nullable=True, comment="Tract code")

    designation_date: Mapped[date] = mapped_column(Date, nullable=False)
    expiration_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    is_redesignated: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    grace_period_end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    source_dataset: Mapped[Optional[str]] = mapped_column(
        String(30),
        nullable=True,
        comment="sba_api, public_dataset, census_acs"
    )

    # Spatial data (PostGIS); deferred so plain queries skip the WKB payload
    geometry: Mapped[Optional[str]] = mapped_column(
        Geometry(geometry_type="MULTIPOLYGON", srid=4326, spatial_index=False),
        nullable=True,
        deferred=True,
    )
    boundary: Mapped[Optional[dict]] = mapped_column(
        JSONType,
        nullable=True,
        comment="Tract boundary as GeoJSON"
    )

    last_import_id: Mapped[Optional[str]] = mapped_column(
        String(64),
        nullable=True,
        comment="Import that last wrote this row"
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('active', 'expired', 'pending', 'redesignated')",
            name="check_hubzone_status_valid"
        ),
        Index("idx_hubzones_status", "status"),
        Index("idx_hubzones_state", "state"),
        Index("idx_hubzones_geometry", "geometry", postgresql_using="gist"),
    )

    def __repr__(self) -> str:
        return f"<Hubzone(geoid={self.geoid}, type={self.hubzone_type}, status={self.status})>"


class Business(Base, TimestampMixin):
    """Certified or prospective HUBZone small business."""
    __tablename__ = "businesses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    principal_office_address: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    principal_office_lat: Mapped[Optional[float]] = mapped_column(
        Numeric(10, 7),
        nullable=True,
        comment="Principal office latitude"
    )
    principal_office_lon: Mapped[Optional[float]] = mapped_column(
        Numeric(10, 7),
        nullable=True,
        comment="Principal office longitude"
    )
    is_hubzone_certified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    alerts: Mapped[list["ComplianceAlert"]] = relationship(back_populates="business")

    def has_coordinates(self) -> bool:
        return self.principal_office_lat is not None and self.principal_office_lon is not None

    def __repr__(self) -> str:
        return f"<Business(id={self.id}, name={self.name})>"


class HubzoneMapUpdate(Base, TimestampMixin):
    """
    One row per import run.

    Created with status 'in_progress' before acquisition starts; updated
    exactly once at the end to 'completed' or 'failed'.
    """
    __tablename__ = "hubzone_map_updates"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    import_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    source_type: Mapped[str] = mapped_column(String(50), nullable=False, default="tiger_line")
    source_version: Mapped[Optional[str]] = mapped_column(String(20), nullable=True, comment="TIGER/Line vintage")
    status: Mapped[str] = mapped_column(String(20), nullable=False)

    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    statistics: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    affected_business_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    dry_run: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    triggered_by: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, comment="cli, airflow, manual")

    __table_args__ = (
        CheckConstraint(
            "status IN ('in_progress', 'completed', 'failed')",
            name="check_map_update_status_valid"
        ),
        Index("idx_hubzone_map_updates_started_at", "started_at", postgresql_ops={"started_at": "DESC"}),
    )

    def __repr__(self) -> str:
        return f"<HubzoneMapUpdate(import_id={self.import_id}, status={self.status})>"


class HubzoneImportLog(Base):
    """Counts written by the transactional importer, inside its transaction."""
    __tablename__ = "hubzone_import_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    import_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    completed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    total_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    new_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    updated_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    expired_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    redesignated_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


class HubzoneChangeNotification(Base):
    """
    Record of a business notified about a HUBZone change.

    The (business, import, geoid) key makes notification replays idempotent.
    """
    __tablename__ = "hubzone_change_notifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    business_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("businesses.id", ondelete="CASCADE"),
        nullable=False
    )
    import_id: Mapped[str] = mapped_column(String(64), nullable=False)
    change_type: Mapped[str] = mapped_column(String(20), nullable=False)
    affected_geoid: Mapped[str] = mapped_column(String(11), nullable=False)
    hubzone_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    grace_period_end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    notified_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint("business_id", "import_id", "affected_geoid", name="uq_change_notification"),
        CheckConstraint(
            "change_type IN ('gained', 'lost', 'redesignated')",
            name="check_change_type_valid"
        ),
    )


class ComplianceAlert(Base, TimestampMixin):
    """Alert shown to a business about its compliance standing."""
    __tablename__ = "compliance_alerts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    business_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("businesses.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    type: Mapped[str] = mapped_column(String(50), nullable=False, default="principal_office")
    severity: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    details: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    action_required: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    business: Mapped["Business"] = relationship(back_populates="alerts")

    __table_args__ = (
        CheckConstraint(
            "severity IN ('low', 'medium', 'high', 'critical')",
            name="check_alert_severity_valid"
        ),
    )

    def __repr__(self) -> str:
        return f"<ComplianceAlert(business_id={self.business_id}, severity={self.severity})>"
