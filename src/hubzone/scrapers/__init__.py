"""
Scrapers Package

Data acquisition for census tract boundaries, HUBZone designations and
ACS demographics.
"""

from .boundary_scraper import GeometryConverter, TractBoundaryScraper
from .census_scraper import CensusACSScraper
from .designation_scraper import DesignationScraper

__all__ = [
    "GeometryConverter",
    "TractBoundaryScraper",
    "CensusACSScraper",
    "DesignationScraper",
]
