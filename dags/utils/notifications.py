"""
Notification Utilities

Admin alerts for map import runs via Slack and email.
"""
from typing import Any, Dict, List, Optional
import requests
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart

from config.settings import settings
from src.hubzone.utils.logger import get_logger

logger = get_logger(__name__)


def send_slack_notification(message: str, webhook_url: Optional[str] = None) -> bool:
    """
    Send notification to Slack via webhook.

    Args:
        message: Message to send
        webhook_url: Slack webhook URL (defaults to settings.alert_slack_webhook)

    Returns:
        True if successful, False otherwise
    """
    if not settings.alert_enable_slack:
        logger.info("slack_notifications_disabled")
        return False

    webhook_url = webhook_url or settings.alert_slack_webhook
    if not webhook_url:
        logger.warning("slack_webhook_url_not_configured")
        return False

    try:
        response = requests.post(webhook_url, json={"text": message}, timeout=10)
    except requests.RequestException as e:
        logger.error("slack_notification_error", error=str(e))
        return False

    if response.status_code == 200:
        logger.info("slack_notification_sent")
        return True

    logger.error("slack_notification_failed",
                 status_code=response.status_code,
                 response=response.text)
    return False


def send_email_notification(
    subject: str,
    body: str,
    to_emails: Optional[List[str]] = None,
    html: bool = False
) -> bool:
    """
    Send email notification over SMTP.

    Args:
        subject: Email subject
        body: Email body (plain text or HTML)
        to_emails: Recipients (defaults to settings.hubzone_admin_emails,
            then settings.alert_email)
        html: Whether body is HTML

    Returns:
        True if successful, False otherwise
    """
    if not settings.alert_enable_email:
        logger.info("email_notifications_disabled")
        return False

    recipients = to_emails or settings.hubzone_admin_emails or (
        [settings.alert_email] if settings.alert_email else []
    )
    if not recipients:
        logger.warning("alert_email_not_configured")
        return False

    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = settings.smtp_from_email or settings.smtp_user or "hubzone-map-loader@localhost"
    msg["To"] = ", ".join(recipients)
    msg.attach(MIMEText(body, "html" if html else "plain"))

    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=30) as server:
            if settings.smtp_use_tls:
                server.starttls()
            if settings.smtp_user and settings.smtp_password:
                server.login(settings.smtp_user, settings.smtp_password)
            server.sendmail(msg["From"], recipients, msg.as_string())
    except (smtplib.SMTPException, OSError) as e:
        logger.error("email_notification_error", error=str(e))
        return False

    logger.info("email_notification_sent", to=recipients, subject=subject)
    return True


def format_map_import_summary(result: Dict[str, Any]) -> str:
    """
    Format a MapImportResult (as a dict) into an admin notification message.

    Args:
        result: MapImportResult.model_dump(mode="json")

    Returns:
        Formatted message string
    """
    stats = result.get('statistics') or {}
    succeeded = result.get('success', False)

    message_lines = [
        f"*HUBZone Map Import {'Completed' if succeeded else 'Failed'}*",
        "",
        f"Import ID: {result.get('import_id', 'unknown')}",
        f"Total Tracts: {stats.get('total_tracts', 0):,}",
        f"New Designations: {stats.get('new_designations', 0):,}",
        f"Updated Designations: {stats.get('updated_designations', 0):,}",
        f"Expired Designations: {stats.get('expired_designations', 0):,}",
        f"Redesignated Areas: {stats.get('redesignated_areas', 0):,}",
        f"Active HUBZones: {stats.get('active_hubzones', 0):,}",
        f"Businesses Notified: {result.get('affected_business_count', 0):,}",
        f"Processing Time: {stats.get('processing_time_ms', 0) / 1000:.1f}s",
        "",
    ]

    warnings = result.get('warnings') or []
    if warnings:
        message_lines.append(f"*Warnings ({len(warnings)}):*")
        for warning in warnings[:10]:
            message_lines.append(f"- [{warning.get('code')}] {warning.get('message')}")
        if len(warnings) > 10:
            message_lines.append(f"... and {len(warnings) - 10} more")
        message_lines.append("")

    errors = result.get('errors') or []
    if errors:
        message_lines.append("*Errors:*")
        for error in errors:
            message_lines.append(f"- [{error.get('code')}] {error.get('message')}")
        message_lines.append("")

    return "\n".join(message_lines)
