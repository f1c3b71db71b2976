# ABOUTME: IBTrACS storm track client
# ABOUTME: Downloads per-basin best-track CSV files and filters them by season or storm id

from typing import Optional

import pandas as pd

from noaa_fetch.core.config_loader import get_cache_dir
from noaa_fetch.core.http_client import NOAAHTTPClient

IBTRACS_VERSION = "v04r01"
IBTRACS_BASE_URL = (
    "https://www.ncei.noaa.gov/data/international-best-track-archive-for-climate-stewardship-ibtracs/"
    f"{IBTRACS_VERSION}/access/csv/"
)

BASINS = ("ALL", "ACTIVE", "last3years", "since1980", "EP", "NA", "NI", "SA", "SI", "SP", "WP")


class StormsClient(NOAAHTTPClient):
    """Client for IBTrACS best-track data."""

    def __init__(self, base_url: str = IBTRACS_BASE_URL, path=None, **kwargs):
        super().__init__(**kwargs)
        self.base_url = base_url
        self.path = get_cache_dir("storms", path)

    @staticmethod
    def filename(basin: str) -> str:
        if basin not in BASINS:
            raise ValueError(f"basin must be one of {BASINS}, got {basin!r}")
        return f"ibtracs.{basin}.list.{IBTRACS_VERSION}.csv"

    def storm_data(
        self,
        basin: str = "ALL",
        year: Optional[int] = None,
        storm: Optional[str] = None,
        overwrite: bool = False,
        **request_kwargs,
    ) -> pd.DataFrame:
        """
        Best-track records for a basin.

        Args:
            basin: Basin code or one of the rolling subsets (see BASINS)
            year: Keep only this season
            storm: Keep only this storm id (SID, e.g. "2005236N23285")
            overwrite: Download again even when a cached file exists

        Returns:
            DataFrame, one row per track point, with ISO_TIME parsed
        """
        name = self.filename(basin)
        target = self._cached_download(f"{self.base_url}{name}", self.path / name, overwrite=overwrite, **request_kwargs)

        # Second header row holds units
        df = pd.read_csv(target, skiprows=[1], low_memory=False, keep_default_na=False, na_values=[" ", ""])
        df["ISO_TIME"] = pd.to_datetime(df["ISO_TIME"], errors="coerce")

        if year is not None:
            df = df[df["SEASON"] == int(year)]
        if storm is not None:
            df = df[df["SID"] == storm]

        self.logger.info(f"Retrieved {len(df)} track points from {name}")
        return df.reset_index(drop=True)

    def storm_names(self, basin: str = "ALL", **request_kwargs) -> pd.DataFrame:
        """One row per storm: SID, SEASON, BASIN, NAME."""
        df = self.storm_data(basin, **request_kwargs)
        return df[["SID", "SEASON", "BASIN", "NAME"]].drop_duplicates("SID").reset_index(drop=True)
