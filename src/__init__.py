"""
HUBZone Map Loader - Core Package

This package contains the HUBZone map import pipeline: boundary, designation
and census acquisition, eligibility evaluation, transactional import and
business notification.
"""

__version__ = "0.1.0"
