"""
Shared pytest fixtures.

Database tests run against an in-memory SQLite database; geometry columns
are stored as text there and containment falls back to shapely over the GeoJSON boundary.
"""
from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from src.hubzone.db.base import Base, import_all_models
from src.hubzone.db.models import Business, Hubzone


@pytest.fixture(scope="function")
def engine():
    """In-memory SQLite engine shared by every session of one test."""
    import_all_models()
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)

    yield engine

    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    """Session factory injected into components in place of SessionLocal."""
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture(scope="function")
def test_db(session_factory):
    """Plain session for arranging and asserting database state."""
    session = session_factory()
    yield session
    session.close()


def square(lon: float, lat: float, size: float = 1.0) -> dict:
    """GeoJSON Polygon with its south-west corner at (lon, lat)."""
    return {
        "type": "Polygon",
        "coordinates": [[
            [lon, lat],
            [lon + size, lat],
            [lon + size, lat + size],
            [lon, lat + size],
            [lon, lat],
        ]],
    }


def make_hubzone(geoid: str, status: str = "active", boundary: dict = None, **overrides) -> Hubzone:
    """Unsaved Hubzone row with sensible defaults."""
    values = {
        "geoid": geoid,
        "name": f"Census Tract {geoid[-6:]}",
        "hubzone_type": "qualified_census_tract",
        "status": status,
        "state": geoid[:2],
        "county": geoid[2:5],
        "tract_id": geoid[5:],
        "designation_date": date(2020, 1, 1),
        "is_redesignated": status == "redesignated",
        "source_dataset": "sba_api",
        "boundary": boundary,
    }
    values.update(overrides)
    return Hubzone(**values)


def make_business(name: str, lat: float, lon: float) -> Business:
    return Business(
        name=name,
        contact_email=f"{name.lower().replace(' ', '.')}@example.com",
        principal_office_lat=lat,
        principal_office_lon=lon,
        is_hubzone_certified=True,
    )
