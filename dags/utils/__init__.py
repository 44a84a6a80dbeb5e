"""
Airflow DAG Utilities

Helper functions for DAGs including admin notifications.
"""
from dags.utils.notifications import (
    send_slack_notification,
    send_email_notification,
    format_map_import_summary,
)

__all__ = [
    "send_slack_notification",
    "send_email_notification",
    "format_map_import_summary",
]
