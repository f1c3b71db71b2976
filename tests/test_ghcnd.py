# ABOUTME: Tests for the GHCND daily client: .dly decoding, per-element splitting and search filters.
# ABOUTME: Station files come from a fixture; downloads are mocked.

import logging

import pytest
import pandas as pd

from noaa_fetch.external_apis.ghcnd import DLY_COLUMNS, GHCNDClient, GhcndData, ghcnd_splitvars, read_dly

STATION = "USW00000001"


@pytest.fixture
def client(mock_session, tmp_path):
    return GHCNDClient(path=tmp_path, session=mock_session, min_request_interval=0)


class TestDlyDecoding:
    """Tests for the fixed-width .dly format"""

    @pytest.mark.unit
    def test_column_layout(self, dly_text):
        df = read_dly(dly_text)

        assert df.shape == (3, 128)
        assert list(df.columns) == DLY_COLUMNS
        assert list(df.columns[:8]) == ["id", "year", "month", "element", "VALUE1", "MFLAG1", "QFLAG1", "SFLAG1"]
        assert df.columns[-1] == "SFLAG31"

    @pytest.mark.unit
    def test_values(self, dly_text):
        df = read_dly(dly_text)

        assert df["id"].tolist() == [STATION] * 3
        assert df["element"].tolist() == ["TMAX", "TMAX", "PRCP"]
        assert df.loc[0, "VALUE1"] == 100
        assert df.loc[1, "VALUE31"] == -9999
        assert df.loc[0, "SFLAG5"] == "S"
        assert pd.isna(df.loc[2, "SFLAG5"])


class TestSplitVars:
    """Tests for the per-element long tables"""

    @pytest.mark.unit
    def test_one_table_per_element(self, dly_text):
        tables = ghcnd_splitvars(read_dly(dly_text))

        assert list(tables) == ["tmax", "prcp"]
        assert list(tables["tmax"].columns) == ["id", "tmax", "date", "mflag", "qflag", "sflag"]

    @pytest.mark.unit
    def test_impossible_dates_dropped(self, dly_text):
        tmax = ghcnd_splitvars(read_dly(dly_text))["tmax"]

        # 31 January days + 28 February days
        assert len(tmax) == 59
        assert not ((tmax["date"].dt.month == 2) & (tmax["date"].dt.day > 28)).any()
        assert -9999 not in tmax["tmax"].tolist()

    @pytest.mark.unit
    def test_flags_line_up_with_values(self, dly_text):
        tables = ghcnd_splitvars(read_dly(dly_text))
        tmax = tables["tmax"].set_index("date")
        prcp = tables["prcp"].set_index("date")

        assert tmax.loc[pd.Timestamp("2019-01-05"), "tmax"] == 104
        assert tmax.loc[pd.Timestamp("2019-02-28"), "tmax"] == 227
        assert (tmax["sflag"] == "S").all()
        assert prcp.loc[pd.Timestamp("2019-01-31"), "prcp"] == 15
        assert prcp["sflag"].isna().all()

    @pytest.mark.unit
    def test_rows_without_id_dropped(self, dly_text):
        df = read_dly(dly_text)
        df.loc[2, "id"] = None

        assert list(ghcnd_splitvars(df)) == ["tmax"]

    @pytest.mark.unit
    def test_rows_without_element_dropped(self, dly_text):
        df = read_dly(dly_text)
        df.loc[0, "element"] = None

        tables = ghcnd_splitvars(df)

        assert list(tables) == ["tmax", "prcp"]
        # Only the February TMAX row remains
        assert len(tables["tmax"]) == 28

    @pytest.mark.unit
    def test_accepts_ghcnd_data(self, dly_text):
        data = GhcndData(data=read_dly(dly_text), source="x.dly")
        assert list(ghcnd_splitvars(data)) == ["tmax", "prcp"]
        assert "Size: 3 X 128" in repr(data)


class TestGHCNDClient:
    """Tests for station downloads and search"""

    @pytest.mark.unit
    def test_get_downloads_once(self, client, mock_session, response, dly_text, tmp_path):
        mock_session.get.return_value = response(content=dly_text.encode())

        first = client.get(STATION)
        second = client.get(STATION)

        assert mock_session.get.call_count == 1
        assert mock_session.get.call_args[0][0] == (
            f"https://www.ncei.noaa.gov/pub/data/ghcn/daily/all/{STATION}.dly"
        )
        assert (tmp_path / f"{STATION}.dly").exists()
        assert first.source == second.source == str(tmp_path / f"{STATION}.dly")
        assert first.data.shape == (3, 128)

    @pytest.mark.unit
    def test_search_filters(self, client, mock_session, response, dly_text, caplog):
        mock_session.get.return_value = response(content=dly_text.encode())

        with caplog.at_level(logging.WARNING):
            result = client.search(STATION, date_min="2019-01-15", date_max="2019-02-10", var=["TMAX", "snow"])

        assert list(result) == ["tmax"]
        assert "snow not in the dataset" in caplog.text
        dates = result["tmax"]["date"]
        # Bounds are exclusive
        assert dates.min() == pd.Timestamp("2019-01-16")
        assert dates.max() == pd.Timestamp("2019-02-09")
        assert len(dates) == 25

    @pytest.mark.unit
    def test_search_all(self, client, mock_session, response, dly_text):
        mock_session.get.return_value = response(content=dly_text.encode())
        assert list(client.search(STATION)) == ["tmax", "prcp"]

    @pytest.mark.unit
    def test_states_and_countries(self, client, mock_session, response):
        mock_session.get.return_value = response(text="AB ALBERTA\nAK ALASKA\n")
        states = client.states()
        assert states["code"].tolist() == ["AB", "AK"]
        assert states["name"].tolist() == ["ALBERTA", "ALASKA"]
        assert mock_session.get.call_args[0][0].endswith("ghcnd-states.txt")

        mock_session.get.return_value = response(text="AC Antigua and Barbuda\nAE United Arab Emirates\n")
        assert client.countries()["name"].tolist() == ["Antigua and Barbuda", "United Arab Emirates"]

    @pytest.mark.unit
    def test_stations_merged_with_inventory(self, client, mock_session, response):
        def station_line(sid, lat, lon, elev, name, gsn="", wmo=""):
            return f"{sid:<11} {lat:8.4f} {lon:9.4f} {elev:6.1f} {'':2} {name:<30} {gsn:<3} {'':3} {wmo:<5}"

        def inventory_line(sid, lat, lon, element, first, last):
            return f"{sid:<11} {lat:8.4f} {lon:9.4f} {element:<4} {first:4d} {last:4d}"

        stations = "\n".join([
            station_line("ACW00011604", 17.1167, -61.7833, 10.1, "ST JOHNS COOLIDGE FLD"),
            station_line("AE000041196", 25.3330, 55.5170, 34.0, "SHARJAH INTER. AIRP", gsn="GSN", wmo="41196"),
        ]) + "\n"
        inventory = "\n".join([
            inventory_line("ACW00011604", 17.1167, -61.7833, "TMAX", 1949, 1949),
            inventory_line("ACW00011604", 17.1167, -61.7833, "PRCP", 1949, 1949),
            inventory_line("AE000041196", 25.3330, 55.5170, "TMAX", 1944, 2024),
        ]) + "\n"
        mock_session.get.side_effect = [response(text=stations), response(text=inventory)]

        df = client.stations()

        assert len(df) == 3
        assert df.loc[df["id"] == "ACW00011604", "element"].tolist() == ["TMAX", "PRCP"]
        assert df.loc[df["id"] == "AE000041196", "name"].iloc[0] == "SHARJAH INTER. AIRP"
        assert df.loc[df["id"] == "AE000041196", "last_year"].iloc[0] == 2024

    @pytest.mark.unit
    def test_version(self, client, mock_session, response):
        mock_session.get.return_value = response(text="GHCN Daily Version 3.32-upd-2024010517\n")
        assert client.version().startswith("GHCN Daily Version")
