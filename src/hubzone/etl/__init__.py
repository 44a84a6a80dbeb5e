"""
ETL Package

Loads merged HUBZone designations into the database.
"""
from src.hubzone.etl.designation_importer import DesignationImporter

__all__ = ["DesignationImporter"]
