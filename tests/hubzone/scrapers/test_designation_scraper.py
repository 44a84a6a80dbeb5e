"""
Tests for DesignationScraper

Tests SBA API paging, fallback to public CSV datasets, permissive CSV
parsing and deduplication.
"""
from datetime import date
from unittest.mock import Mock

import pytest

from src.hubzone.models.config import LoaderConfig
from src.hubzone.models.designation import DesignationSource, DesignationStatus, HubzoneType
from src.hubzone.scrapers.designation_scraper import DesignationScraper
from src.hubzone.utils.errors import FetchCancelled, FetchExhausted

API_URL = "https://sba.example.com/designations"
CSV_A = "https://data.example.com/qct.csv"
CSV_B = "https://data.example.com/qnmc.csv"


def json_response(body, status_code=200):
    response = Mock()
    response.ok = status_code < 400
    response.status_code = status_code
    response.reason = "OK" if response.ok else "Service Unavailable"
    response.json.return_value = body
    return response


def text_response(text, status_code=200):
    response = Mock()
    response.ok = status_code < 400
    response.status_code = status_code
    response.reason = "OK" if response.ok else "Not Found"
    response.text = text
    return response


@pytest.fixture
def config():
    return LoaderConfig(
        sba_api_endpoint="https://sba.example.com/",
        sba_page_size=2,
        public_dataset_urls=[CSV_A, CSV_B],
    )


class TestSbaApi:
    """Tests for the primary SBA API path."""

    def test_pages_until_has_more_false(self, config):
        fetcher = Mock()
        fetcher.fetch.side_effect = [
            json_response({"records": [
                {"geoid": "06001400100", "type": "qct", "status": "active", "designation_date": "2023-01-01"},
                {"geoid": "06001400200", "type": "qnmc", "status": "active", "designation_date": "2023-01-01"},
            ], "hasMore": True}),
            json_response({"records": [
                {"geoid": "36061000100", "type": "indian_lands", "status": "pending"},
            ], "hasMore": False}),
        ]
        scraper = DesignationScraper(config, fetcher)

        result = scraper.download_designations()

        assert [d.geoid for d in result.items] == ["06001400100", "06001400200", "36061000100"]
        assert result.warnings == []
        assert all(d.source_dataset == DesignationSource.SBA_API for d in result.items)
        assert result.items[1].designation_type == HubzoneType.QUALIFIED_NON_METRO_COUNTY
        assert result.items[2].status == DesignationStatus.PENDING
        assert fetcher.fetch.call_args_list[0].kwargs["params"] == {"page": 1, "pageSize": 2}
        assert fetcher.fetch.call_args_list[1].kwargs["params"] == {"page": 2, "pageSize": 2}
        assert fetcher.fetch.call_args_list[0].args[0] == API_URL

    def test_nested_pagination_flag(self, config):
        fetcher = Mock()
        fetcher.fetch.side_effect = [
            json_response({"designations": [{"geoid": "06001400100"}], "pagination": {"hasMore": True}}),
            json_response({"designations": [], "pagination": {"hasMore": False}}),
        ]

        records = DesignationScraper(config, fetcher).fetch_from_sba_api()

        assert [d.geoid for d in records] == ["06001400100"]
        assert records[0].state == "06"
        assert records[0].county == "001"
        assert records[0].tract_id == "400100"

    def test_empty_result_is_not_an_error(self, config):
        fetcher = Mock()
        fetcher.fetch.return_value = json_response({"records": [], "hasMore": False})

        result = DesignationScraper(config, fetcher).download_designations()

        assert result.items == []
        assert result.warnings == []


class TestFallback:
    """Tests for falling back to the public datasets."""

    def test_api_error_status_falls_back(self, config):
        """Test that partial API pages are discarded on failure."""
        def fetch(url, params=None, cancel=None):
            if url == API_URL:
                if params["page"] == 1:
                    return json_response({"records": [{"geoid": "99999999999"}], "hasMore": True})
                return json_response({}, status_code=503)
            if url == CSV_A:
                return text_response(
                    "geoid,state,county,type,status,designation_date\n"
                    "06001400100,06,001,qct,active,2023-01-01\n"
                )
            return text_response(
                "geoid,state,county,type,status,designation_date\n"
                "06075010100,06,075,qnmc,active,2022-06-30\n"
            )

        fetcher = Mock()
        fetcher.fetch.side_effect = fetch

        result = DesignationScraper(config, fetcher).download_designations()

        assert [d.geoid for d in result.items] == ["06001400100", "06075010100"]
        assert [w.code for w in result.warnings] == ["SBA_API_UNAVAILABLE"]
        assert all(d.source_dataset == DesignationSource.PUBLIC_DATASET for d in result.items)

    def test_malformed_body_falls_back(self, config):
        fetcher = Mock()
        fetcher.fetch.side_effect = lambda url, params=None, cancel=None: (
            json_response(["not", "a", "page"]) if url == API_URL
            else text_response("geoid,state,county,type,status,designation_date\n")
        )

        result = DesignationScraper(config, fetcher).download_designations()

        assert result.items == []
        assert [w.code for w in result.warnings] == ["SBA_API_UNAVAILABLE"]

    def test_failed_source_skipped(self, config):
        """Test that one failing CSV source does not stop the next."""
        def fetch(url, params=None, cancel=None):
            if url == API_URL:
                raise FetchExhausted(url, 3, ConnectionError("down"))
            if url == CSV_A:
                return text_response("", status_code=404)
            return text_response(
                "geoid,state,county,type,status,designation_date\n"
                "06075010100,06,075,qnmc,active,2022-06-30\n"
            )

        fetcher = Mock()
        fetcher.fetch.side_effect = fetch

        result = DesignationScraper(config, fetcher).download_designations()

        assert [d.geoid for d in result.items] == ["06075010100"]
        assert [w.code for w in result.warnings] == ["SBA_API_UNAVAILABLE", "PUBLIC_DATASET_FAILED"]

    def test_cancellation_not_swallowed(self, config):
        fetcher = Mock()
        fetcher.fetch.side_effect = FetchCancelled("Fetch cancelled", url=API_URL)

        with pytest.raises(FetchCancelled):
            DesignationScraper(config, fetcher).download_designations()

    def test_primary_beats_flat_file_on_dedup(self, config):
        """Test that deduplication keeps the SBA API record."""
        fetcher = Mock()
        fetcher.fetch.return_value = json_response({"records": [
            {"geoid": "06001400100", "designation_date": "2020-01-01"},
            {"geoid": "06001400100", "designation_date": "2021-01-01"},
        ], "hasMore": False})

        result = DesignationScraper(config, fetcher).download_designations()

        assert len(result.items) == 1
        assert result.items[0].designation_date == date(2021, 1, 1)


class TestCsvParsing:
    """Tests for permissive CSV parsing."""

    def test_rows_without_geoid_and_bad_lines_skipped(self, config):
        csv_text = (
            "GEOID, State, County, Type, Status, Designation_Date\n"
            "06001400100,06,001,qct,active,2023-01-01\n"
            ",06,001,qct,active,2023-01-01\n"
            "06001400200,06,001,qct,active,2023-01-01,extra,columns\n"
            "06001400300,06,001,brac,expired,2021-05-05\n"
        )

        designations, skipped = DesignationScraper(config, Mock()).parse_csv_designations(csv_text)

        assert [d.geoid for d in designations] == ["06001400100", "06001400300"]
        assert skipped == 2
        assert designations[1].designation_type == HubzoneType.BASE_CLOSURE_AREA
        assert designations[1].status == DesignationStatus.EXPIRED

    def test_missing_columns_default(self, config):
        designations, skipped = DesignationScraper(config, Mock()).parse_csv_designations(
            "geoid\n36061000100\n"
        )

        assert skipped == 0
        assert designations[0].state == "36"
        assert designations[0].designation_type == HubzoneType.QUALIFIED_CENSUS_TRACT
        assert designations[0].status == DesignationStatus.ACTIVE

    def test_empty_text(self, config):
        assert DesignationScraper(config, Mock()).parse_csv_designations("  \n") == ([], 0)

    def test_skipped_rows_reported_as_warning(self, config):
        config = config.model_copy(update={"public_dataset_urls": [CSV_A]})
        fetcher = Mock()
        fetcher.fetch.side_effect = lambda url, params=None, cancel=None: (
            json_response({}, status_code=500) if url == API_URL
            else text_response("geoid,state\n06001400100,06\n,06\n")
        )

        result = DesignationScraper(config, fetcher).download_designations()

        assert [w.code for w in result.warnings] == ["SBA_API_UNAVAILABLE", "MALFORMED_ROWS_SKIPPED"]
        assert len(result.items) == 1
