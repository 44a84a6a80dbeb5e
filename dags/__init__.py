"""
Airflow DAGs Package

Contains the DAG definitions for the HUBZone map loader.

DAGs:
- quarterly_hubzone_map_update: Refresh the HUBZone map (00:00 UTC on Jan 1, Apr 1, Jul 1, Oct 1)
"""
