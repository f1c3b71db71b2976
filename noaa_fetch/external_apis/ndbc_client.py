#!/usr/bin/env python3
"""
NDBC Buoy Data Client
=====================

Client for NOAA National Data Buoy Center (NDBC) data.

Features:
- Station discovery from the NDBC THREDDS catalog
- Historical NetCDF files per buoy, dataset and year
- Realtime standard meteorological observations (last 45 days)

Data Access: https://dods.ndbc.noaa.gov/thredds/ and
https://www.ndbc.noaa.gov/data/realtime2/
"""

import re
from typing import List, Optional

import pandas as pd
import xarray as xr

from noaa_fetch.core.config_loader import get_cache_dir
from noaa_fetch.core.http_client import NOAAHTTPClient

THREDDS_URL = "https://dods.ndbc.noaa.gov/thredds/"
REALTIME_URL = "https://www.ndbc.noaa.gov/data/realtime2/"

# dataset -> single-letter code used in NetCDF file names (e.g. 41001h2010.nc)
DATASET_CODES = {
    "adcp": "a",
    "adcp2": "b",
    "cwind": "c",
    "dart": "t",
    "mmbcur": "m",
    "ocean": "o",
    "pwind": "p",
    "stdmet": "h",
    "swden": "w",
    "wlevel": "l",
}

STANDARD_MET_COLUMNS = [
    "wind_direction_deg",
    "wind_speed_ms",
    "wind_gust_ms",
    "wave_height_m",
    "dominant_wave_period_s",
    "average_wave_period_s",
    "mean_wave_direction_deg",
    "pressure_hpa",
    "air_temp_c",
    "water_temp_c",
    "dewpoint_c",
    "visibility_km",
    "pressure_tendency_hpa",
    "tide_m",
]

MISSING_CODES = {"MM", "999", "999.0", "9999", "99.0", "999.00", "99.00"}


def check_dataset(dataset: str) -> str:
    if dataset not in DATASET_CODES:
        raise ValueError(f"dataset must be one of {sorted(DATASET_CODES)}, got {dataset!r}")
    return dataset


class NDBCClient(NOAAHTTPClient):
    """
    Client for NDBC buoy data.

    Provides methods to list buoys, fetch historical NetCDF files and parse
    realtime meteorological observations from buoys and coastal stations.
    """

    def __init__(self, thredds_url: str = THREDDS_URL, realtime_url: str = REALTIME_URL, path=None, **kwargs):
        """
        Initialize the NDBC client.

        Args:
            thredds_url: Root of the NDBC THREDDS server
            realtime_url: Base URL for NDBC real-time text data
            path: Directory for cached NetCDF files (default: <cache root>/buoy)
        """
        kwargs.setdefault("min_request_interval", 0.2)
        super().__init__(**kwargs)
        self.thredds_url = thredds_url
        self.realtime_url = realtime_url
        self.path = get_cache_dir("buoy", path)

    def _catalog_entries(self, url: str, pattern: str, **request_kwargs) -> List[str]:
        html = self._get_text(url, **request_kwargs)
        return sorted(set(re.findall(pattern, html)))

    def buoys(self, dataset: str = "stdmet", **request_kwargs) -> List[str]:
        """
        Station ids with data in a dataset.

        Args:
            dataset: One of DATASET_CODES (default: "stdmet")
        """
        check_dataset(dataset)
        url = f"{self.thredds_url}catalog/data/{dataset}/catalog.html"
        buoys = self._catalog_entries(url, r"href=['\"]([\w-]+)/catalog\.html['\"]", **request_kwargs)
        self.logger.info(f"Found {len(buoys)} NDBC buoys with {dataset} data")
        return buoys

    def buoy_files(self, dataset: str, buoyid: str, **request_kwargs) -> List[str]:
        """NetCDF file names available for one buoy in a dataset."""
        check_dataset(dataset)
        url = f"{self.thredds_url}catalog/data/{dataset}/{buoyid}/catalog.html"
        return self._catalog_entries(url, r"([\w-]+\.nc)", **request_kwargs)

    def buoy(
        self,
        buoyid: str,
        year: int,
        dataset: str = "stdmet",
        datatype: Optional[str] = None,
        overwrite: bool = False,
        **request_kwargs,
    ) -> pd.DataFrame:
        """
        Historical buoy data for one year, flattened to a table.

        Args:
            buoyid: NDBC station id (e.g. "41001")
            year: Year of data (9999 for the most recent file NDBC publishes)
            dataset: One of DATASET_CODES
            datatype: File-name code; defaults to the dataset's own code
            overwrite: Download again even when a cached file exists

        Returns:
            DataFrame with one row per (time, latitude, longitude) and a column per variable
        """
        check_dataset(dataset)
        code = datatype or DATASET_CODES[dataset]
        buoyid = buoyid.lower()
        name = f"{buoyid}{code}{year}.nc"

        self.logger.info(f"Fetching NDBC {dataset} data for buoy {buoyid} ({year})")
        url = f"{self.thredds_url}fileServer/data/{dataset}/{buoyid}/{name}"
        target = self._cached_download(url, self.path / dataset / name, overwrite=overwrite, **request_kwargs)

        with xr.open_dataset(target) as ds:
            df = ds.to_dataframe().reset_index()

        df["station_id"] = buoyid
        self.logger.info(f"Retrieved {len(df)} observations for buoy {buoyid}")
        return df

    def realtime(self, buoyid: str, **request_kwargs) -> pd.DataFrame:
        """
        Realtime standard meteorological data (last 45 days) from a buoy or coastal station.

        Args:
            buoyid: NDBC station id (e.g. '44025')

        Returns:
            DataFrame with meteorological observations, oldest first
        """
        self.logger.info(f"Fetching realtime meteorological data for station {buoyid}")
        content = self._get_text(f"{self.realtime_url}{buoyid.upper()}.txt", **request_kwargs)
        df = self._parse_ndbc_standard_met(content, buoyid)
        self.logger.info(f"Retrieved {len(df)} meteorological observations for station {buoyid}")
        return df

    def _parse_ndbc_standard_met(self, content: str, station_id: str) -> pd.DataFrame:
        """
        Parse NDBC standard meteorological data format.

        Format: YY MM DD hh mm WDIR WSPD GST WVHT DPD APD MWD PRES ATMP WTMP DEWP VIS PTDY TIDE
        """
        data_lines = [line for line in content.strip().split("\n") if line.strip() and not line.startswith("#")]

        data = []
        for line in data_lines:
            parts = line.split()
            if len(parts) < 13:
                continue
            try:
                # Handle 2-digit vs 4-digit years
                year = int(parts[0])
                if year < 50:
                    year += 2000
                elif year < 100:
                    year += 1900

                record = {
                    "year": year,
                    "month": int(parts[1]),
                    "day": int(parts[2]),
                    "hour": int(parts[3]),
                    "minute": int(parts[4]),
                }
            except ValueError:
                continue

            for column, value in zip(STANDARD_MET_COLUMNS, parts[5:]):
                record[column] = self._safe_float(value)
            data.append(record)

        if not data:
            return pd.DataFrame()

        df = pd.DataFrame(data)
        df["datetime"] = pd.to_datetime(df[["year", "month", "day", "hour", "minute"]], errors="coerce")
        df["station_id"] = station_id
        df["data_type"] = "meteorological"

        # Remove rows with invalid dates
        df = df.dropna(subset=["datetime"])
        return df.sort_values("datetime").reset_index(drop=True)

    def _safe_float(self, value: str) -> Optional[float]:
        """Convert a field to float, handling NDBC missing data codes."""
        if value in MISSING_CODES:
            return None
        try:
            return float(value)
        except (ValueError, TypeError):
            return None
