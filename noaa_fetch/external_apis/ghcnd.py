# ABOUTME: GHCND (Global Historical Climatology Network - Daily) client
# ABOUTME: Downloads fixed-width .dly station files and reshapes them into per-element tables

from dataclasses import dataclass
from io import StringIO
from typing import Dict, List, Optional, Union

import pandas as pd

from noaa_fetch.core.config_loader import get_cache_dir
from noaa_fetch.core.http_client import NOAAHTTPClient

GHCND_BASE_URL = "https://www.ncei.noaa.gov/pub/data/ghcn/daily/"

FLAG_KINDS = ("MFLAG", "QFLAG", "SFLAG")
DAYS = range(1, 32)

# id, year, month, element, then VALUE/MFLAG/QFLAG/SFLAG for each of 31 days
DLY_WIDTHS = [11, 4, 2, 4] + [5, 1, 1, 1] * 31
DLY_COLUMNS = ["id", "year", "month", "element"] + [
    f"{kind}{day}" for day in DAYS for kind in ("VALUE",) + FLAG_KINDS
]

# ghcnd-stations.txt and ghcnd-inventory.txt column positions (0-based, end exclusive)
STATION_COLSPECS = [(0, 11), (12, 20), (21, 30), (31, 37), (38, 40), (41, 71), (72, 75), (76, 79), (80, 85)]
STATION_COLUMNS = ["id", "latitude", "longitude", "elevation", "state", "name", "gsn_flag", "hcn_crn_flag", "wmo_id"]
INVENTORY_COLSPECS = [(0, 11), (12, 20), (21, 30), (31, 35), (36, 40), (41, 45)]
INVENTORY_COLUMNS = ["id", "latitude", "longitude", "element", "first_year", "last_year"]


@dataclass
class GhcndData:
    """Raw station-month table (128 columns) and the file it came from."""

    data: pd.DataFrame
    source: str

    def __repr__(self, n: int = 10):
        return (
            "<GHCND Data>\n"
            f"Size: {self.data.shape[0]} X {self.data.shape[1]}\n"
            f"Source: {self.source}\n\n"
            f"{self.data.head(n)}"
        )


def read_dly(text: str) -> pd.DataFrame:
    """
    Decode the fixed-width .dly format into one row per station-month.

    Flags stay as strings (NaN when blank); values keep the -9999 missing code.
    """
    flag_dtypes = {col: str for col in DLY_COLUMNS if col[:5] in FLAG_KINDS}
    return pd.read_fwf(
        StringIO(text),
        widths=DLY_WIDTHS,
        header=None,
        names=DLY_COLUMNS,
        dtype={"id": str, "element": str, **flag_dtypes},
    )


def _melt_days(data: pd.DataFrame, kind: str) -> pd.DataFrame:
    """One row per station-month-day for the VALUE or one flag column family."""
    long = data.melt(
        id_vars=["id", "year", "month"],
        value_vars=[f"{kind}{day}" for day in DAYS],
        var_name="var",
        value_name="value",
    )
    long["day"] = long["var"].str.extract(r"(\d+)", expand=False).astype(int)
    long["date"] = pd.to_datetime(long[["year", "month", "day"]], errors="coerce")
    return long


def ghcnd_splitvars(data: Union[GhcndData, pd.DataFrame]) -> Dict[str, pd.DataFrame]:
    """
    Split a GHCND station table into one long table per element.

    Args:
        data: Output of ``GHCNDClient.get`` (or its ``data`` frame)

    Returns:
        dict mapping lowercase element code (e.g. "tmax") to a DataFrame with
        columns id, <element>, date, mflag, qflag, sflag; non-existent dates
        (e.g. Feb 30) are dropped.
    """
    frame = data.data if isinstance(data, GhcndData) else data
    frame = frame[frame["id"].notna() & frame["element"].notna()]

    out = {}
    for element in frame["element"].unique():
        subset = frame[frame["element"] == element]
        name = element.lower()

        values = _melt_days(subset, "VALUE")
        valid = values["date"].notna()

        result = pd.DataFrame(
            {
                "id": values.loc[valid, "id"].to_numpy(),
                name: values.loc[valid, "value"].to_numpy(),
                "date": values.loc[valid, "date"].to_numpy(),
            }
        )
        # Flag families melt in the same order as the values, so rows line up by position
        for kind in FLAG_KINDS:
            flags = _melt_days(subset, kind)
            result[kind.lower()] = flags.loc[valid, "value"].to_numpy()

        out[name] = result
    return out


class GHCNDClient(NOAAHTTPClient):
    """Client for the GHCND daily archive and its metadata files."""

    def __init__(self, base_url: str = GHCND_BASE_URL, path=None, **kwargs):
        """
        Args:
            base_url: Root of the GHCND daily tree
            path: Directory for cached .dly files (default: <cache root>/ghcnd)
        """
        super().__init__(**kwargs)
        self.base_url = base_url
        self.path = get_cache_dir("ghcnd", path)

    def remote_path(self, stationid: str) -> str:
        return f"{self.base_url}all/{stationid}.dly"

    def local_path(self, stationid: str):
        return self.path / f"{stationid}.dly"

    def ghcnd_get(self, stationid: str, overwrite: bool = False, **request_kwargs) -> pd.DataFrame:
        """Download (or reuse) a station's .dly file and decode it."""
        target = self._cached_download(
            self.remote_path(stationid), self.local_path(stationid), overwrite=overwrite, **request_kwargs
        )
        with open(target, "r") as f:
            return read_dly(f.read())

    def get(self, stationid: str, overwrite: bool = False, **request_kwargs) -> GhcndData:
        """
        Get all daily records for a station.

        Args:
            stationid: GHCND station id (e.g. "AGE00147704")
            overwrite: Download again even when a cached file exists

        Returns:
            GhcndData
        """
        self.logger.info(f"Fetching GHCND data for station {stationid}")
        data = self.ghcnd_get(stationid, overwrite=overwrite, **request_kwargs)
        self.logger.info(f"Retrieved {len(data)} station-months for {stationid}")
        return GhcndData(data=data, source=str(self.local_path(stationid)))

    def search(
        self,
        stationid: str,
        date_min: Optional[str] = None,
        date_max: Optional[str] = None,
        var: Union[str, List[str]] = "all",
        overwrite: bool = False,
        **request_kwargs,
    ) -> Dict[str, pd.DataFrame]:
        """
        Per-element tables for a station, optionally narrowed by element and date.

        Args:
            stationid: GHCND station id
            date_min: Keep dates strictly after this date
            date_max: Keep dates strictly before this date
            var: "all" or element codes, case-insensitive (e.g. ["PRCP", "tmin"])
        """
        dat = ghcnd_splitvars(self.get(stationid, overwrite=overwrite, **request_kwargs))
        available = ", ".join(dat)

        wanted = [var] if isinstance(var, str) else list(var)
        if wanted != ["all"]:
            wanted = [v.lower() for v in wanted]
            missing = [v for v in wanted if v not in dat]
            if missing:
                self.logger.warning(
                    f"{', '.join(missing)} not in the dataset. Available variables: {available}"
                )
            dat = {v: dat[v] for v in wanted if v in dat}

        if date_min is not None:
            dat = {k: df[df["date"] > pd.Timestamp(date_min)] for k, df in dat.items()}
        if date_max is not None:
            dat = {k: df[df["date"] < pd.Timestamp(date_max)] for k, df in dat.items()}
        return dat

    # ------------------------------------------------------------------
    # Metadata files
    # ------------------------------------------------------------------

    def _read_fixed(self, filename: str, colspecs, names, **request_kwargs) -> pd.DataFrame:
        text = self._get_text(f"{self.base_url}{filename}", **request_kwargs)
        return pd.read_fwf(StringIO(text), colspecs=colspecs, header=None, names=names, dtype={"id": str})

    def stations(self, **request_kwargs) -> pd.DataFrame:
        """Station list merged with the element inventory (one row per station-element)."""
        sta = self._read_fixed("ghcnd-stations.txt", STATION_COLSPECS, STATION_COLUMNS, **request_kwargs)
        inv = self._read_fixed("ghcnd-inventory.txt", INVENTORY_COLSPECS, INVENTORY_COLUMNS, **request_kwargs)
        return sta.merge(inv.drop(columns=["latitude", "longitude"]), on="id")

    def states(self, **request_kwargs) -> pd.DataFrame:
        df = self._read_fixed("ghcnd-states.txt", [(0, 2), (3, 50)], ["code", "name"], **request_kwargs)
        return df.dropna(subset=["code"]).reset_index(drop=True)

    def countries(self, **request_kwargs) -> pd.DataFrame:
        df = self._read_fixed("ghcnd-countries.txt", [(0, 2), (3, 64)], ["code", "name"], **request_kwargs)
        return df.dropna(subset=["code"]).reset_index(drop=True)

    def version(self, **request_kwargs) -> str:
        return self._get_text(f"{self.base_url}ghcnd-version.txt", **request_kwargs)
