"""
Business notification fanout after a HUBZone map import.
"""
from __future__ import annotations

from datetime import date
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from src.hubzone.db.models import Business, Hubzone
from src.hubzone.db.repository import (
    BusinessRepository,
    ChangeNotificationRepository,
    ComplianceAlertRepository,
    HubzoneRepository,
)
from src.hubzone.db.session import get_db_session
from src.hubzone.models.designation import DesignationStatus, IN_ZONE_STATUSES
from src.hubzone.models.import_result import AffectedBusinessChange, ChangeType
from src.hubzone.utils.logger import get_logger

logger = get_logger(__name__)

REDESIGNATION_URGENT_DAYS = 180


class AlertSink:
    """Destination for business-facing alerts."""

    def send_alert(
        self,
        session: Session,
        business_id: int,
        severity: str,
        title: str,
        message: str,
        details: Dict[str, Any],
        action_required: Optional[str] = None,
    ) -> None:
        raise NotImplementedError


class ComplianceAlertSink(AlertSink):
    """Writes alerts to the compliance_alerts table."""

    def __init__(self):
        self.repository = ComplianceAlertRepository()

    def send_alert(self, session, business_id, severity, title, message, details, action_required=None):
        self.repository.create(
            session,
            business_id=business_id,
            type="principal_office",
            severity=severity,
            status="active",
            title=title,
            message=message,
            details=details,
            action_required=action_required,
        )


def classify_change(
    containing: List[Hubzone],
    prior_statuses: Dict[str, str],
) -> Optional[Tuple[ChangeType, Hubzone]]:
    """
    Decide how an import changed a location's HUBZone standing.

    Args:
        containing: Zones whose boundary contains the location
        prior_statuses: geoid -> status before the import wrote anything

    Returns:
        (change type, affected zone) or None when nothing changed
    """
    before = [zone for zone in containing if prior_statuses.get(zone.geoid) in IN_ZONE_STATUSES]
    after = [zone for zone in containing if zone.status in IN_ZONE_STATUSES]

    if before and not after:
        return ChangeType.LOST, before[0]
    if after and not before:
        return ChangeType.GAINED, after[0]
    if after and all(zone.status == DesignationStatus.REDESIGNATED.value for zone in after):
        return ChangeType.REDESIGNATED, after[0]
    return None


def build_alert(change: AffectedBusinessChange, today: date) -> Dict[str, Any]:
    """Severity, title, message and action text for a change."""
    zone = change.hubzone_name or change.affected_geoid

    if change.change_type == ChangeType.LOST:
        alert = {
            "severity": "critical",
            "title": "CRITICAL: Principal Office No Longer in HUBZone",
            "message": (
                f"Your principal office location is no longer within a designated HUBZone ({zone}). "
                "This affects your HUBZone certification status."
            ),
            "action_required": (
                "Review your HUBZone certification status immediately. You may need to relocate "
                "your principal office to maintain certification."
            ),
        }
    elif change.change_type == ChangeType.GAINED:
        alert = {
            "severity": "low",
            "title": "Good News: Location Now in HUBZone",
            "message": (
                f"Your principal office location is now within a designated HUBZone ({zone}). "
                "You may be eligible for HUBZone benefits."
            ),
            "action_required": "Review your eligibility for HUBZone certification if you are not already certified.",
        }
    else:
        grace_end = change.grace_period_end_date
        days_remaining = (grace_end - today).days if grace_end else 0
        alert = {
            "severity": "high" if days_remaining <= REDESIGNATION_URGENT_DAYS else "medium",
            "title": "HUBZone Redesignated - Grace Period Active",
            "message": (
                f"The HUBZone ({zone}) where your principal office is located has been redesignated. "
                f"You have a grace period of {days_remaining} days to maintain compliance."
            ),
            "action_required": (
                "Plan for potential relocation before the grace period ends on "
                f"{grace_end.isoformat() if grace_end else 'unknown date'}."
            ),
        }

    alert["details"] = {
        "hubzone_name": change.hubzone_name,
        "affected_geoid": change.affected_geoid,
        "change_type": change.change_type.value,
        "grace_period_end_date": change.grace_period_end_date.isoformat() if change.grace_period_end_date else None,
    }
    return alert


class BusinessNotificationService:
    """
    Notifies businesses whose principal office gained, lost or had its
    HUBZone redesignated by an import.

    Each business is processed in its own transaction; a change already
    recorded for (business, import, geoid) is not sent again.
    """

    def __init__(
        self,
        session_factory: Optional[Callable[[], Session]] = None,
        alert_sink: Optional[AlertSink] = None,
        clock: Callable[[], date] = date.today,
    ):
        self.session_factory = session_factory
        self.alert_sink = alert_sink or ComplianceAlertSink()
        self.businesses = BusinessRepository()
        self.hubzones = HubzoneRepository()
        self.notifications = ChangeNotificationRepository()
        self._today = clock

    def notify_affected_businesses(self, import_id: str, prior_statuses: Dict[str, str]) -> int:
        """
        Send alerts for every affected business.

        Args:
            import_id: Import that produced the current hubzones state
            prior_statuses: geoid -> status snapshot taken before the import wrote

        Returns:
            Number of businesses notified by this call
        """
        with get_db_session(self.session_factory) as session:
            business_ids = [business.id for business in self.businesses.get_with_coordinates(session)]

        notified = 0
        for business_id in business_ids:
            try:
                with get_db_session(self.session_factory) as session:
                    if self._notify_business(session, business_id, import_id, prior_statuses):
                        notified += 1
            except Exception as e:
                logger.error(
                    "business_notification_failed",
                    business_id=business_id,
                    import_id=import_id,
                    error=str(e),
                    error_type=type(e).__name__
                )

        logger.info("affected_businesses_notified", import_id=import_id, candidates=len(business_ids), notified=notified)
        return notified

    def _notify_business(
        self,
        session: Session,
        business_id: int,
        import_id: str,
        prior_statuses: Dict[str, str],
    ) -> bool:
        business: Business = self.businesses.get_by_id(session, business_id)
        containing = self.hubzones.find_containing(
            session,
            float(business.principal_office_lat),
            float(business.principal_office_lon),
        )

        classified = classify_change(containing, prior_statuses)
        if classified is None:
            return False

        change_type, zone = classified
        if self.notifications.exists(session, business.id, import_id, zone.geoid):
            logger.debug("business_change_already_notified", business_id=business.id, geoid=zone.geoid)
            return False

        change = AffectedBusinessChange(
            business_id=business.id,
            business_name=business.name,
            change_type=change_type,
            affected_geoid=zone.geoid,
            hubzone_name=zone.name,
            grace_period_end_date=zone.grace_period_end_date,
        )
        alert = build_alert(change, self._today())

        self.alert_sink.send_alert(
            session,
            business_id=business.id,
            severity=alert["severity"],
            title=alert["title"],
            message=alert["message"],
            details=alert["details"],
            action_required=alert["action_required"],
        )
        self.notifications.record(
            session,
            business_id=business.id,
            import_id=import_id,
            change_type=change.change_type.value,
            affected_geoid=change.affected_geoid,
            hubzone_name=change.hubzone_name,
            grace_period_end_date=change.grace_period_end_date,
        )

        logger.info(
            "business_notified",
            business_id=business.id,
            change_type=change.change_type.value,
            geoid=change.affected_geoid,
            severity=alert["severity"]
        )
        return True
