"""
Repository Pattern for Data Access

Provides CRUD operations and domain-specific queries for all models.
"""
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Type, TypeVar

from shapely.geometry import Point, shape
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from src.hubzone.db.models import (
    Business,
    ComplianceAlert,
    Hubzone,
    HubzoneChangeNotification,
    HubzoneMapUpdate,
)
from src.hubzone.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar('T')


class BaseRepository:
    """
    Base repository with common CRUD operations.

    Generic repository that can be extended for specific models.
    """

    def __init__(self, model: Type[T]):
        """
        Initialize repository with model class.

        Args:
            model: SQLAlchemy model class
        """
        self.model = model
        logger.debug("repository_initialized", model=model.__name__)

    def get_by_id(self, session: Session, id_value: Any) -> Optional[T]:
        """
        Get single record by primary key.

        Args:
            session: Database session
            id_value: Primary key value

        Returns:
            Model instance or None
        """
        result = session.get(self.model, id_value)
        logger.debug(
            "repository_get_by_id",
            model=self.model.__name__,
            id=id_value,
            found=result is not None
        )
        return result

    def get_all(self, session: Session, limit: Optional[int] = None, offset: int = 0) -> List[T]:
        """
        Get all records with optional pagination.

        Args:
            session: Database session
            limit: Maximum number of records
            offset: Number of records to skip

        Returns:
            List of model instances
        """
        query = select(self.model).order_by(self.model.id).offset(offset)
        if limit:
            query = query.limit(limit)

        result = session.execute(query).scalars().all()
        logger.debug(
            "repository_get_all",
            model=self.model.__name__,
            count=len(result),
            limit=limit,
            offset=offset
        )
        return result

    def create(self, session: Session, **kwargs) -> T:
        """
        Create new record.

        Args:
            session: Database session
            **kwargs: Model field values

        Returns:
            Created model instance
        """
        instance = self.model(**kwargs)
        session.add(instance)
        session.flush()
        logger.debug("repository_created", model=self.model.__name__, id=getattr(instance, 'id', None))
        return instance

    def count(self, session: Session) -> int:
        """Count total records."""
        count = session.scalar(select(func.count()).select_from(self.model))
        logger.debug("repository_count", model=self.model.__name__, count=count)
        return count


class HubzoneRepository(BaseRepository):
    """Repository for Hubzone designations with spatial lookups."""

    def __init__(self):
        super().__init__(Hubzone)

    def get_by_geoid(self, session: Session, geoid: str) -> Optional[Hubzone]:
        return session.execute(
            select(Hubzone).where(Hubzone.geoid == geoid)
        ).scalar_one_or_none()

    def get_all_by_geoid(self, session: Session) -> Dict[str, Hubzone]:
        """
        Load every stored designation keyed by GEOID.

        Returns:
            Dictionary of geoid -> Hubzone
        """
        rows = session.execute(select(Hubzone)).scalars().all()
        return {row.geoid: row for row in rows}

    def get_by_status(self, session: Session, status: str) -> List[Hubzone]:
        """
        Get designations with a given status.

        Args:
            session: Database session
            status: active, expired, pending or redesignated

        Returns:
            List of Hubzone instances ordered by GEOID
        """
        return session.execute(
            select(Hubzone).where(Hubzone.status == status).order_by(Hubzone.geoid)
        ).scalars().all()

    def count_by_status(self, session: Session) -> Dict[str, int]:
        """Count designations grouped by status."""
        rows = session.execute(
            select(Hubzone.status, func.count()).group_by(Hubzone.status)
        ).all()
        return {status: count for status, count in rows}

    def find_containing(self, session: Session, latitude: float, longitude: float) -> List[Hubzone]:
        """
        Find every designation whose boundary contains a point, any status.

        Uses PostGIS ST_Covers on PostgreSQL and shapely over the GeoJSON
        boundary column elsewhere.

        Args:
            session: Database session
            latitude: Point latitude
            longitude: Point longitude

        Returns:
            List of containing Hubzone rows ordered by GEOID
        """
        if session.get_bind().dialect.name == "postgresql":
            point = func.ST_SetSRID(func.ST_MakePoint(longitude, latitude), 4326)
            return session.execute(
                select(Hubzone)
                .where(func.ST_Covers(Hubzone.geometry, point))
                .order_by(Hubzone.geoid)
            ).scalars().all()

        candidates = session.execute(
            select(Hubzone).where(Hubzone.boundary.is_not(None)).order_by(Hubzone.geoid)
        ).scalars().all()
        point = Point(longitude, latitude)
        return [
            hubzone for hubzone in candidates
            if hubzone.boundary and shape(hubzone.boundary).covers(point)
        ]


class BusinessRepository(BaseRepository):
    """Repository for Business model."""

    def __init__(self):
        super().__init__(Business)

    def get_with_coordinates(self, session: Session) -> List[Business]:
        """Businesses with a geocoded principal office, ordered by id."""
        return session.execute(
            select(Business)
            .where(Business.principal_office_lat.is_not(None))
            .where(Business.principal_office_lon.is_not(None))
            .order_by(Business.id)
        ).scalars().all()


class HubzoneMapUpdateRepository(BaseRepository):
    """Repository for import run records."""

    def __init__(self):
        super().__init__(HubzoneMapUpdate)

    def get_by_import_id(self, session: Session, import_id: str) -> Optional[HubzoneMapUpdate]:
        return session.execute(
            select(HubzoneMapUpdate).where(HubzoneMapUpdate.import_id == import_id)
        ).scalar_one_or_none()

    def create_run(
        self,
        session: Session,
        import_id: str,
        source_version: Optional[str] = None,
        dry_run: bool = False,
        triggered_by: Optional[str] = None,
        started_at: Optional[datetime] = None
    ) -> HubzoneMapUpdate:
        """
        Create the run record with status 'in_progress'.

        Args:
            session: Database session
            import_id: Unique import identifier
            source_version: TIGER/Line vintage
            dry_run: Whether the run writes designations
            triggered_by: cli, airflow, manual
            started_at: Start timestamp (defaults to now)

        Returns:
            HubzoneMapUpdate instance
        """
        run = HubzoneMapUpdate(
            import_id=import_id,
            source_type="tiger_line",
            source_version=source_version,
            status="in_progress",
            started_at=started_at or datetime.now(),
            dry_run=dry_run,
            triggered_by=triggered_by,
        )

        session.add(run)
        session.flush()

        logger.info("map_update_run_created", import_id=import_id, source_version=source_version)
        return run

    def complete_run(
        self,
        session: Session,
        import_id: str,
        status: str,
        statistics: Optional[Dict[str, Any]] = None,
        affected_business_count: int = 0,
        error_message: Optional[str] = None,
        completed_at: Optional[datetime] = None
    ) -> HubzoneMapUpdate:
        """
        Mark a run completed or failed.

        Args:
            session: Database session
            import_id: Import identifier
            status: completed or failed
            statistics: ImportStatistics as a dict
            affected_business_count: Businesses notified
            error_message: Error message if failed

        Returns:
            Updated HubzoneMapUpdate instance

        Raises:
            ValueError: If the run does not exist
        """
        run = self.get_by_import_id(session, import_id)
        if not run:
            raise ValueError(f"HubzoneMapUpdate {import_id} not found")

        run.status = status
        run.statistics = statistics
        run.affected_business_count = affected_business_count
        run.error_message = error_message
        run.completed_at = completed_at or datetime.now()

        session.flush()

        logger.info(
            "map_update_run_completed",
            import_id=import_id,
            status=status,
            affected_businesses=affected_business_count
        )
        return run

    def get_latest(self, session: Session, status: Optional[str] = None) -> Optional[HubzoneMapUpdate]:
        """Most recently started run, optionally filtered by status."""
        query = select(HubzoneMapUpdate)
        if status:
            query = query.where(HubzoneMapUpdate.status == status)
        query = query.order_by(HubzoneMapUpdate.started_at.desc(), HubzoneMapUpdate.id.desc()).limit(1)
        return session.execute(query).scalar_one_or_none()


class ChangeNotificationRepository(BaseRepository):
    """Repository for business change notifications."""

    def __init__(self):
        super().__init__(HubzoneChangeNotification)

    def exists(self, session: Session, business_id: int, import_id: str, affected_geoid: str) -> bool:
        """Check whether this change was already recorded for the import."""
        found = session.execute(
            select(HubzoneChangeNotification.id)
            .where(HubzoneChangeNotification.business_id == business_id)
            .where(HubzoneChangeNotification.import_id == import_id)
            .where(HubzoneChangeNotification.affected_geoid == affected_geoid)
        ).first()
        return found is not None

    def record(
        self,
        session: Session,
        business_id: int,
        import_id: str,
        change_type: str,
        affected_geoid: str,
        hubzone_name: Optional[str] = None,
        grace_period_end_date: Optional[date] = None
    ) -> HubzoneChangeNotification:
        return self.create(
            session,
            business_id=business_id,
            import_id=import_id,
            change_type=change_type,
            affected_geoid=affected_geoid,
            hubzone_name=hubzone_name,
            grace_period_end_date=grace_period_end_date,
            notified_at=datetime.now(),
        )

    def get_by_import_id(self, session: Session, import_id: str) -> List[HubzoneChangeNotification]:
        return session.execute(
            select(HubzoneChangeNotification)
            .where(HubzoneChangeNotification.import_id == import_id)
            .order_by(HubzoneChangeNotification.id)
        ).scalars().all()


class ComplianceAlertRepository(BaseRepository):
    """Repository for compliance alerts."""

    def __init__(self):
        super().__init__(ComplianceAlert)

    def get_for_business(self, session: Session, business_id: int) -> List[ComplianceAlert]:
        return session.execute(
            select(ComplianceAlert)
            .where(ComplianceAlert.business_id == business_id)
            .order_by(ComplianceAlert.id)
        ).scalars().all()
