"""
Geographic Utility Functions

GeoJSON helpers for boundaries written by the importer.
"""
from typing import Any, Dict, Optional


def to_multipolygon(geometry: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Promote a Polygon to a single-part MultiPolygon; other types pass through."""
    if geometry and geometry.get("type") == "Polygon":
        return {"type": "MultiPolygon", "coordinates": [geometry.get("coordinates") or []]}
    return geometry
