"""
Database Package

Database models, connection management, and data persistence layer.
"""
from src.hubzone.db.base import Base
from src.hubzone.db.session import (
    engine,
    SessionLocal,
    get_db_session,
    health_check,
    create_all_tables,
    with_retry,
)
from src.hubzone.db.models import (
    Hubzone,
    Business,
    HubzoneMapUpdate,
    HubzoneImportLog,
    HubzoneChangeNotification,
    ComplianceAlert,
)
from src.hubzone.db.repository import (
    BaseRepository,
    HubzoneRepository,
    BusinessRepository,
    HubzoneMapUpdateRepository,
    ChangeNotificationRepository,
    ComplianceAlertRepository,
)

__all__ = [
    # Base
    "Base",
    # Session management
    "engine",
    "SessionLocal",
    "get_db_session",
    "health_check",
    "create_all_tables",
    "with_retry",
    # Models
    "Hubzone",
    "Business",
    "HubzoneMapUpdate",
    "HubzoneImportLog",
    "HubzoneChangeNotification",
    "ComplianceAlert",
    # Repositories
    "BaseRepository",
    "HubzoneRepository",
    "BusinessRepository",
    "HubzoneMapUpdateRepository",
    "ChangeNotificationRepository",
    "ComplianceAlertRepository",
]
