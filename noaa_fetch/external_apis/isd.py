# ABOUTME: ISD (Integrated Surface Database) client for hourly station observations
# ABOUTME: Decodes the fixed-width control and mandatory data sections of gzipped yearly files

from pathlib import Path
from typing import Optional

import numpy as np
import pandas as pd

from noaa_fetch.core.config_loader import get_cache_dir
from noaa_fetch.core.http_client import NOAAHTTPClient
from noaa_fetch.utils.geo_utils import get_bounding_box, haversine_distance

ISD_BASE_URL = "https://www.ncei.noaa.gov/pub/data/noaa/"

# (name, 0-based start, end exclusive) for the control and mandatory data sections
ISD_FIELDS = [
    ("total_chars", 0, 4),
    ("usaf_station", 4, 10),
    ("wban_station", 10, 15),
    ("date", 15, 23),
    ("time", 23, 27),
    ("data_source", 27, 28),
    ("latitude", 28, 34),
    ("longitude", 34, 41),
    ("type_code", 41, 46),
    ("elevation", 46, 51),
    ("call_letter", 51, 56),
    ("quality", 56, 60),
    ("wind_direction", 60, 63),
    ("wind_direction_quality", 63, 64),
    ("wind_code", 64, 65),
    ("wind_speed", 65, 69),
    ("wind_speed_quality", 69, 70),
    ("ceiling_height", 70, 75),
    ("ceiling_height_quality", 75, 76),
    ("ceiling_height_determination", 76, 77),
    ("ceiling_height_cavok", 77, 78),
    ("visibility_distance", 78, 84),
    ("visibility_distance_quality", 84, 85),
    ("visibility_code", 85, 86),
    ("visibility_code_quality", 86, 87),
    ("temperature", 87, 92),
    ("temperature_quality", 92, 93),
    ("temperature_dewpoint", 93, 98),
    ("temperature_dewpoint_quality", 98, 99),
    ("air_pressure", 99, 104),
    ("air_pressure_quality", 104, 105),
]

NUMERIC_FIELDS = {
    "total_chars", "latitude", "longitude", "elevation", "wind_direction", "wind_speed",
    "ceiling_height", "visibility_distance", "temperature", "temperature_dewpoint", "air_pressure",
}

# field -> (missing sentinel, divisor)
SCALED_FIELDS = {
    "latitude": (99999, 1000),
    "longitude": (999999, 1000),
    "elevation": (9999, 1),
    "wind_direction": (999, 1),
    "wind_speed": (9999, 10),
    "ceiling_height": (99999, 1),
    "visibility_distance": (999999, 1),
    "temperature": (9999, 10),
    "temperature_dewpoint": (9999, 10),
    "air_pressure": (99999, 10),
}

STATION_COLUMNS = {
    "USAF": "usaf",
    "WBAN": "wban",
    "STATION NAME": "station_name",
    "CTRY": "ctry",
    "STATE": "state",
    "ICAO": "icao",
    "LAT": "lat",
    "LON": "lon",
    "ELEV(M)": "elev_m",
    "BEGIN": "begin",
    "END": "end",
}


def read_isd(source) -> pd.DataFrame:
    """
    Decode ISD records (plain or gzipped file, or a buffer) into a DataFrame.

    Scaled fields are converted to physical units and ISD missing codes become NaN.
    Additional-data sections past column 105 are ignored.
    """
    colspecs = [(start, end) for _, start, end in ISD_FIELDS]
    names = [name for name, _, _ in ISD_FIELDS]
    dtypes = {name: str for name in names if name not in NUMERIC_FIELDS}

    compression = "gzip" if isinstance(source, (str, Path)) and str(source).endswith(".gz") else None
    df = pd.read_fwf(source, colspecs=colspecs, header=None, names=names, dtype=dtypes, compression=compression)

    for name, (missing, divisor) in SCALED_FIELDS.items():
        values = pd.to_numeric(df[name], errors="coerce")
        df[name] = values.where(values.abs() != missing) / divisor

    df["datetime"] = pd.to_datetime(df["date"] + df["time"], format="%Y%m%d%H%M", errors="coerce")
    return df


class ISDClient(NOAAHTTPClient):
    """Client for yearly ISD station files and the ISD station history."""

    def __init__(self, base_url: str = ISD_BASE_URL, path=None, **kwargs):
        super().__init__(**kwargs)
        self.base_url = base_url
        self.path = get_cache_dir("isd", path)

    def remote_path(self, usaf: str, wban: str, year: int) -> str:
        return f"{self.base_url}{year}/{usaf}-{wban}-{year}.gz"

    def local_path(self, usaf: str, wban: str, year: int):
        return self.path / f"{usaf}-{wban}-{year}.gz"

    def get(self, usaf: str, wban: str, year: int, overwrite: bool = False, **request_kwargs) -> pd.DataFrame:
        """
        Get one station-year of ISD observations.

        Args:
            usaf: USAF station code (6 characters)
            wban: WBAN station code (5 characters)
            year: Year of data
            overwrite: Download again even when a cached file exists
        """
        self.logger.info(f"Fetching ISD data for {usaf}-{wban} ({year})")
        target = self._cached_download(
            self.remote_path(usaf, wban, year), self.local_path(usaf, wban, year), overwrite=overwrite, **request_kwargs
        )
        df = read_isd(target)
        self.logger.info(f"Retrieved {len(df)} ISD records for {usaf}-{wban} ({year})")
        return df

    def stations(self, overwrite: bool = False, **request_kwargs) -> pd.DataFrame:
        """ISD station history (isd-history.csv) with lowercase column names."""
        target = self._cached_download(
            f"{self.base_url}isd-history.csv", self.path / "isd-history.csv", overwrite=overwrite, **request_kwargs
        )
        df = pd.read_csv(target, dtype={"USAF": str, "WBAN": str, "BEGIN": str, "END": str})
        return df.rename(columns=STATION_COLUMNS)

    def stations_search(
        self,
        lat: float,
        lon: float,
        radius_km: float = 10,
        stations: Optional[pd.DataFrame] = None,
        **request_kwargs,
    ) -> pd.DataFrame:
        """
        ISD stations within ``radius_km`` of a point, nearest first.

        Args:
            lat: Latitude in decimal degrees
            lon: Longitude in decimal degrees
            radius_km: Search radius in kilometers
            stations: Station table to search (default: ``stations()``)
        """
        if stations is None:
            stations = self.stations(**request_kwargs)
        stations = stations.dropna(subset=["lat", "lon"])

        # Box filter first, then exact great-circle distances
        min_lat, max_lat, min_lon, max_lon = get_bounding_box(lat, lon, radius_km)
        box = stations[stations["lat"].between(min_lat, max_lat) & stations["lon"].between(min_lon, max_lon)].copy()

        box["distance_km"] = np.round(haversine_distance(lat, lon, box["lat"], box["lon"]), 2)
        nearby = box[box["distance_km"] <= radius_km].sort_values("distance_km")

        self.logger.info(f"Found {len(nearby)} ISD stations within {radius_km} km")
        return nearby.reset_index(drop=True)
