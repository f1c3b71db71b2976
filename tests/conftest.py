# ABOUTME: Pytest fixtures and configuration for the noaa-fetch test suite.
# ABOUTME: Provides canned NOAA service payloads, mocked HTTP sessions and isolated settings.

import pytest
from unittest.mock import Mock

import requests

from noaa_fetch.core import config_loader
from noaa_fetch.external_apis.erddap_info import info_from_json


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    """Keep tests away from the user's cache, config file and token."""
    for var in ("NOAA_KEY", "ERDDAP_URL", config_loader.CONFIG_ENV_VAR):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("NOAA_FETCH_CACHE_DIR", str(tmp_path / "cache"))
    config_loader.reset_options()
    yield
    config_loader.reset_options()


def make_response(status_code=200, content=b"", text=None, json_data=None, content_type="text/csv"):
    """Mock of a requests.Response with the attributes the clients read."""
    response = Mock()
    response.status_code = status_code
    response.content = content
    response.text = text if text is not None else content.decode("utf-8", errors="replace")
    response.headers = {"content-type": content_type}
    response.iter_content.return_value = [content]
    response.json.return_value = json_data
    return response


@pytest.fixture
def response():
    """Factory for mocked responses, see ``make_response``."""
    return make_response


@pytest.fixture
def interrupted_response(response):
    """A 200 response whose body stream breaks after the first chunk."""
    def broken_stream(chunk_size=None):
        yield b"time,latitude,longitude,air\nUTC,deg"
        raise requests.exceptions.ChunkedEncodingError("Connection broken: IncompleteRead")

    interrupted = response(content=b"")
    interrupted.iter_content.side_effect = broken_stream
    return interrupted


@pytest.fixture
def mock_session():
    """A stand-in requests.Session; set ``.get.return_value`` per test."""
    return Mock()


@pytest.fixture
def erddap_info_payload():
    """info/<id>/index.json for a small three-dimensional gridded dataset."""
    return {
        "table": {
            "columnNames": ["Row Type", "Variable Name", "Attribute Name", "Data Type", "Value"],
            "rows": [
                ["attribute", "NC_GLOBAL", "time_coverage_start", "String", "2012-01-01T00:00:00Z"],
                ["attribute", "NC_GLOBAL", "time_coverage_end", "String", "2012-12-31T00:00:00Z"],
                ["attribute", "NC_GLOBAL", "title", "String", "Air temperature, daily mean"],
                ["dimension", "time", "", "double", "nValues=366, evenlySpaced=true"],
                ["attribute", "time", "actual_range", "double", "1.325376E9, 1.3569984E9"],
                ["dimension", "latitude", "", "float", "nValues=180, evenlySpaced=true"],
                ["attribute", "latitude", "actual_range", "float", "-89.5, 89.5"],
                ["dimension", "longitude", "", "float", "nValues=360, evenlySpaced=true"],
                ["attribute", "longitude", "actual_range", "float", "0.5, 359.5"],
                ["variable", "air", "", "float", "time, latitude, longitude"],
                ["attribute", "air", "actual_range", "float", "-73.78, 42.14"],
                ["attribute", "air", "units", "String", "degC"],
                ["variable", "rhum", "", "float", "time, latitude, longitude"],
                ["attribute", "rhum", "units", "String", "%"],
            ],
        }
    }


@pytest.fixture
def erddap_info(erddap_info_payload):
    return info_from_json(erddap_info_payload, "air_daily")


@pytest.fixture
def erddap_search_payload():
    """search/index.json with two griddap hits and one tabledap hit."""
    return {
        "table": {
            "columnNames": ["griddap", "Subset", "tabledap", "Title", "Dataset ID"],
            "rows": [
                ["https://example.org/erddap/griddap/sst_a", "", "", "SST Grid A", "sst_a"],
                ["", "https://example.org/erddap/tabledap/buoys_b.subset",
                 "https://example.org/erddap/tabledap/buoys_b", "Buoy SST B", "buoys_b"],
                ["https://example.org/erddap/griddap/sst_c", "", "", "SST Grid C", "sst_c"],
            ],
        }
    }


@pytest.fixture
def erddap_csv():
    """ERDDAP CSV reply: header row, units row, data."""
    return (
        "time,latitude,longitude,air\n"
        "UTC,degrees_north,degrees_east,degC\n"
        "2012-01-01T00:00:00Z,21.0,-80.0,24.5\n"
        "2012-01-01T00:00:00Z,20.0,-80.0,25.1\n"
    )


def dly_line(stationid, year, month, element, values, mflag=" ", qflag=" ", sflag=" "):
    """One fixed-width GHCND .dly record with the same flags on every day."""
    days = "".join(f"{value:5d}{mflag}{qflag}{sflag}" for value in values)
    return f"{stationid:<11}{year:4d}{month:02d}{element:<4}{days}"


@pytest.fixture
def dly_text():
    """Two TMAX months (Jan and Feb 2019) and one PRCP month for a single station."""
    jan = list(range(100, 131))
    feb = list(range(200, 228)) + [-9999, -9999, -9999]
    prcp = [0] * 30 + [15]
    lines = [
        dly_line("USW00000001", 2019, 1, "TMAX", jan, sflag="S"),
        dly_line("USW00000001", 2019, 2, "TMAX", feb, sflag="S"),
        dly_line("USW00000001", 2019, 1, "PRCP", prcp),
    ]
    return "\n".join(lines) + "\n"


def isd_record(temperature="-0021", ceiling="99999", time="0000"):
    """ISD control and mandatory data sections, followed by an additional-data section."""
    return (
        "0165" "010010" "99999" "20190101" + time + "4"
        "+70933" "-008667" "FM-12" "+0009" "99999" "V020"
        "320" "1" "N" "0149" "1"
        + ceiling + "9" "9" "N"
        "999999" "9" "9" "9"
        + temperature + "1" "-0053" "1" "10126" "1"
        "ADDMA1100000999999"
    )


@pytest.fixture
def isd_text():
    return isd_record() + "\n" + isd_record(temperature="+9999", ceiling="22000", time="0600") + "\n"


# Markers for test categorization
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as integration test")
    config.addinivalue_line("markers", "api: mark test as requiring external API")
