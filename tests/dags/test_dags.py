"""
Tests for DAG Validation

Tests that the map update DAG imports and is configured correctly. Skipped
when Airflow is not installed.
"""
import pytest
from datetime import timedelta
from unittest.mock import MagicMock, patch

pytest.importorskip("airflow")

from src.hubzone.models.import_result import MapImportResult  # noqa: E402


class TestDAGImports:
    """Tests for DAG import validation."""

    def test_import_quarterly_hubzone_map_update(self):
        """Test that quarterly_hubzone_map_update DAG imports without errors."""
        try:
            from dags import quarterly_hubzone_map_update
            assert hasattr(quarterly_hubzone_map_update, 'dag')
        except ImportError as e:
            pytest.fail(f"Failed to import quarterly_hubzone_map_update DAG: {e}")


class TestDAGConfigurations:
    """Tests for DAG configuration validation."""

    def test_map_update_dag_config(self):
        """Test quarterly_hubzone_map_update DAG configuration."""
        from dags.quarterly_hubzone_map_update import dag

        assert dag.dag_id == 'quarterly_hubzone_map_update'
        assert dag.catchup is False
        assert dag.max_active_runs == 1
        assert dag.default_args['retry_delay'] == timedelta(minutes=30)

    def test_map_update_dag_tasks(self):
        """Test task order: import then admin notification."""
        from dags.quarterly_hubzone_map_update import dag

        assert {task.task_id for task in dag.tasks} == {'run_map_import', 'notify_admins'}
        run_task = dag.get_task('run_map_import')
        notify_task = dag.get_task('notify_admins')
        assert 'notify_admins' in run_task.downstream_task_ids
        assert notify_task.trigger_rule == 'all_done'


class TestDAGTasks:
    """Tests for the task callables."""

    def _result(self, success):
        return MapImportResult(success=success, import_id="imp_test_abc123", imported_at="2025-04-01T00:00:00")

    @patch('dags.quarterly_hubzone_map_update.MapImportPipeline')
    def test_run_map_import_pushes_result(self, mock_pipeline):
        from dags.quarterly_hubzone_map_update import run_map_import

        mock_pipeline.return_value.run_import.return_value = self._result(True)
        task_instance = MagicMock()

        result = run_map_import(task_instance=task_instance)

        assert result['import_id'] == "imp_test_abc123"
        assert mock_pipeline.call_args.args[0].triggered_by == "airflow"
        task_instance.xcom_push.assert_called_once()
        assert task_instance.xcom_push.call_args.kwargs['key'] == 'map_import_result'

    @patch('dags.quarterly_hubzone_map_update.MapImportPipeline')
    def test_run_map_import_raises_on_failure(self, mock_pipeline):
        from airflow.exceptions import AirflowException
        from dags.quarterly_hubzone_map_update import run_map_import

        mock_pipeline.return_value.run_import.return_value = self._result(False)
        task_instance = MagicMock()

        with pytest.raises(AirflowException):
            run_map_import(task_instance=task_instance)

        task_instance.xcom_push.assert_called_once()

    @patch('dags.quarterly_hubzone_map_update.send_email_notification')
    @patch('dags.quarterly_hubzone_map_update.send_slack_notification')
    def test_notify_admins(self, mock_slack, mock_email):
        from dags.quarterly_hubzone_map_update import notify_admins

        task_instance = MagicMock()
        task_instance.xcom_pull.return_value = self._result(True).model_dump(mode="json")

        result = notify_admins(task_instance=task_instance)

        assert result == {'notified': True, 'success': True}
        assert "Completed" in mock_slack.call_args.args[0]
        assert mock_email.call_args.kwargs['subject'] == "HUBZone Map Update Completed"

    @patch('dags.quarterly_hubzone_map_update.send_email_notification')
    @patch('dags.quarterly_hubzone_map_update.send_slack_notification')
    def test_notify_admins_without_result(self, mock_slack, mock_email):
        from dags.quarterly_hubzone_map_update import notify_admins

        task_instance = MagicMock()
        task_instance.xcom_pull.return_value = None

        result = notify_admins(task_instance=task_instance)

        assert result['success'] is False
        assert "No import result" in mock_slack.call_args.args[0]
