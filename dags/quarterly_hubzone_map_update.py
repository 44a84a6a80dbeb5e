"""
Quarterly HUBZone Map Update DAG

Downloads tract boundaries, SBA designations and ACS data, refreshes the
hubzones table, notifies affected businesses and reports to administrators.

Schedule: Midnight on the first day of each quarter (Jan, Apr, Jul, Oct)
"""
from datetime import datetime, timedelta
from airflow import DAG
from airflow.exceptions import AirflowException
from airflow.operators.python import PythonOperator

from config.settings import settings
from src.hubzone.models.config import LoaderConfig
from src.hubzone.pipelines.map_import import MapImportPipeline
from src.hubzone.utils.logger import get_logger
from dags.utils.notifications import (
    send_slack_notification,
    send_email_notification,
    format_map_import_summary,
)

logger = get_logger(__name__)

# The pipeline retries individual downloads itself
default_args = {
    'owner': 'hubzone',
    'depends_on_past': False,
    'email_on_failure': False,
    'email_on_retry': False,
    'retries': 1,
    'retry_delay': timedelta(minutes=30),
    'execution_timeout': timedelta(hours=6),
}


def run_map_import(**context):
    """
    Run the full map import and push the result to XCom.

    Raises:
        AirflowException: If the import did not succeed
    """
    logger.info("quarterly_map_update_started")

    config = LoaderConfig.from_settings(settings, triggered_by="airflow")
    result = MapImportPipeline(config).run_import()
    result_dict = result.model_dump(mode="json")

    context['task_instance'].xcom_push(key='map_import_result', value=result_dict)

    if not result.success:
        logger.error("quarterly_map_update_failed", import_id=result.import_id)
        raise AirflowException(f"HUBZone map import {result.import_id} failed")

    logger.info("quarterly_map_update_completed",
                import_id=result.import_id,
                statistics=result_dict['statistics'])
    return result_dict


def notify_admins(**context):
    """
    Send the import summary to administrators via Slack and email.

    Runs whether or not the import succeeded.
    """
    result = context['task_instance'].xcom_pull(
        task_ids='run_map_import',
        key='map_import_result'
    )
    if not result:
        message = "*HUBZone Map Import Failed*\n\nNo import result was produced."
        succeeded = False
    else:
        message = format_map_import_summary(result)
        succeeded = result.get('success', False)

    send_slack_notification(message)
    send_email_notification(
        subject=f"HUBZone Map Update {'Completed' if succeeded else 'Failed'}",
        body=message,
    )

    logger.info("map_update_admins_notified", success=succeeded)
    return {'notified': True, 'success': succeeded}


with DAG(
    'quarterly_hubzone_map_update',
    default_args=default_args,
    description='Quarterly refresh of HUBZone designations from Census TIGER/Line, SBA and ACS data',
    schedule='0 0 1 1,4,7,10 *',  # Midnight, first day of each quarter
    start_date=datetime(2024, 1, 1),
    catchup=False,
    max_active_runs=1,
    tags=['hubzone', 'ingestion', 'etl'],
) as dag:

    run_map_import_task = PythonOperator(
        task_id='run_map_import',
        python_callable=run_map_import,
    )

    notify_admins_task = PythonOperator(
        task_id='notify_admins',
        python_callable=notify_admins,
        trigger_rule='all_done',
    )

    run_map_import_task >> notify_admins_task
