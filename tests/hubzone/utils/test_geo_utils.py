"""
Tests for Geographic Utility Functions
"""
from src.hubzone.utils.geo_utils import to_multipolygon


SQUARE = [[0, 0], [10, 0], [10, 10], [0, 10], [0, 0]]


class TestToMultiPolygon:
    """Tests for Polygon promotion."""

    def test_polygon_promoted(self):
        polygon = {"type": "Polygon", "coordinates": [SQUARE]}

        assert to_multipolygon(polygon) == {"type": "MultiPolygon", "coordinates": [[SQUARE]]}

    def test_multipolygon_unchanged(self):
        multipolygon = {"type": "MultiPolygon", "coordinates": [[SQUARE]]}

        assert to_multipolygon(multipolygon) is multipolygon
        assert to_multipolygon(None) is None
