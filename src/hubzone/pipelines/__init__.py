"""
Pipelines Package

Designation processing steps and the map import orchestrator.
"""
from src.hubzone.pipelines.deduplication import DesignationDeduplicator
from src.hubzone.pipelines.eligibility import EligibilityCalculator
from src.hubzone.pipelines.merge import DesignationMerger
from src.hubzone.pipelines.redesignation import RedesignationDetector

__all__ = [
    "DesignationDeduplicator",
    "EligibilityCalculator",
    "DesignationMerger",
    "RedesignationDetector",
]
