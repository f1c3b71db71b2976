# ABOUTME: HOMR (Historical Observing Metadata Repository) station metadata client
# ABOUTME: Searches stations and splits each station record into small metadata tables

from typing import Dict, Optional

import pandas as pd

from noaa_fetch.core.http_client import NOAAHTTPClient

HOMR_BASE_URL = "https://www.ncei.noaa.gov/access/homr/services/station/"

# station record key -> name of the table we expose
SECTION_KEYS = {
    "namez": "names",
    "identifiers": "identifiers",
    "platforms": "platforms",
    "remarks": "remarks",
    "updates": "updates",
    "elements": "elements",
    "relocations": "relocations",
}


def parse_station(station: Dict) -> Dict:
    """
    Split one HOMR station record into tables.

    Returns:
        dict with ``id``, ``head`` and one DataFrame per section present
        (names, identifiers, platforms, location, remarks, updates, ...)
    """
    parsed = {
        "id": station.get("ncdcStnId"),
        "head": pd.json_normalize(station.get("header") or {}),
    }
    for key, name in SECTION_KEYS.items():
        parsed[name] = pd.json_normalize(station.get(key) or [])

    location = station.get("location") or {}
    parsed["location"] = {
        part: pd.json_normalize(value) for part, value in location.items() if value and isinstance(value, (list, dict))
    }
    return parsed


class HOMRClient(NOAAHTTPClient):
    """Client for NCEI's station history (HOMR) web services."""

    def __init__(self, base_url: str = HOMR_BASE_URL, **kwargs):
        super().__init__(**kwargs)
        self.base_url = base_url

    def homr(
        self,
        qid: Optional[str] = None,
        qid_mod: Optional[str] = None,
        station: Optional[str] = None,
        state: Optional[str] = None,
        county: Optional[str] = None,
        country: Optional[str] = None,
        name: Optional[str] = None,
        name_mod: Optional[str] = None,
        platform: Optional[str] = None,
        date: Optional[str] = None,
        begindate: Optional[str] = None,
        enddate: Optional[str] = None,
        headers_only: bool = False,
        phr_data: Optional[bool] = None,
        **request_kwargs,
    ) -> Dict[str, Dict]:
        """
        Search HOMR stations, or fetch one station by its NCDC station id.

        Args:
            qid: Qualified id, e.g. "COOP:046742" or "GHCND:USC00046742"
            qid_mod: How qid matches ("is", "starts", "ends", "contains")
            station: NCDC station id; when given, search arguments are ignored
            state, county, country: Location filters
            name, name_mod: Station name filter and its match mode
            platform: Platform code (e.g. "COOP", "ASOS")
            date, begindate, enddate: Dates as YYYY-MM-DD
            headers_only: Return only station headers
            phr_data: Include period-of-record data

        Returns:
            dict keyed by station id of parsed station records
        """
        if station is not None:
            url = f"{self.base_url}{station}"
            params = {}
        else:
            url = f"{self.base_url}search"
            params = {
                "qid": qid,
                "qidMod": qid_mod,
                "state": state,
                "county": county,
                "country": country,
                "name": name,
                "nameMod": name_mod,
                "platform": platform,
                "date": date,
                "begindate": begindate,
                "enddate": enddate,
                "headersOnly": "true" if headers_only else None,
            }
        if phr_data is not None:
            params["phrData"] = "true" if phr_data else "false"
        params = {k: v for k, v in params.items() if v is not None}

        self.logger.info(f"Querying HOMR {url} with {params}")
        payload = self._make_request(url, params, **request_kwargs).json()
        stations = (payload.get("stationCollection") or {}).get("stations") or []

        result = {}
        for record in stations:
            parsed = parse_station(record)
            result[parsed["id"]] = parsed
        self.logger.info(f"Found {len(result)} HOMR stations")
        return result

    def homr_definitions(self, **request_kwargs) -> pd.DataFrame:
        """Code definitions used across HOMR records."""
        payload = self._make_request(
            f"{self.base_url}search", {"definitions": "true", "phrData": "false"}, **request_kwargs
        ).json()
        return pd.json_normalize(payload.get("definitions") or [])
