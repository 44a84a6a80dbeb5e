"""
Census Tract Geometry Models

Tract boundary features parsed from TIGER/Line GeoJSON.
"""
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class RegionGeometry(BaseModel):
    """
    Census tract boundary for a given TIGER/Line vintage.

    Immutable once acquired; keyed by geoid + vintage.

    Attributes:
        geoid: 11-digit tract GEOID
        state_fips: 2-digit state FIPS code
        county_fips: 3-digit county FIPS code
        tract_code: 6-digit tract code
        name: Tract name (e.g. "Census Tract 4.01")
        geometry: GeoJSON geometry (Polygon or MultiPolygon)
        properties: Remaining descriptive attributes (ALAND, AWATER, ...)
        vintage: TIGER/Line year
    """

    geoid: str = Field(..., min_length=1)
    state_fips: str = ""
    county_fips: str = ""
    tract_code: str = ""
    name: Optional[str] = None
    geometry: Optional[Dict[str, Any]] = None
    properties: Dict[str, Any] = Field(default_factory=dict)
    vintage: int

    model_config = {"frozen": True}

    @classmethod
    def from_feature(cls, feature: Dict[str, Any], vintage: int) -> "RegionGeometry":
        """
        Build a RegionGeometry from a GeoJSON feature.

        Args:
            feature: GeoJSON Feature with TIGER/Line tract properties
            vintage: TIGER/Line year

        Returns:
            RegionGeometry instance

        Raises:
            pydantic.ValidationError: If the feature has no GEOID
        """
        props = dict(feature.get("properties") or {})
        geoid = str(props.pop("GEOID", "") or "")
        return cls(
            geoid=geoid,
            state_fips=str(props.pop("STATEFP", "") or geoid[:2]),
            county_fips=str(props.pop("COUNTYFP", "") or geoid[2:5]),
            tract_code=str(props.pop("TRACTCE", "") or geoid[5:]),
            name=props.pop("NAMELSAD", None) or props.get("NAME"),
            geometry=feature.get("geometry"),
            properties=props,
            vintage=vintage,
        )
