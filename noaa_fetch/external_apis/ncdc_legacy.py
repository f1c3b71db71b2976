# ABOUTME: NCDC Legacy REST API client (sites, variables, station info, values)
# ABOUTME: Requires an API token from the argument, a session option or the NOAA_KEY variable

from typing import Dict, Optional

import pandas as pd

from noaa_fetch.core.config_loader import get_settings
from noaa_fetch.core.exceptions import ConfigurationError, NCDCLegacyError
from noaa_fetch.core.http_client import NOAAHTTPClient

LEGACY_BASE_URL = "https://www7.ncdc.noaa.gov/rest/services/"


def resolve_token(token: Optional[str] = None) -> str:
    """Explicit token, else session option ``noaa_key``, else ``NOAA_KEY`` from the environment."""
    token = token or get_settings().get("noaa_key")
    if not token:
        raise ConfigurationError(
            "An NCDC API token is required: pass token=, call set_option('noaa_key', ...) "
            "or set the NOAA_KEY environment variable"
        )
    return token


def records_frame(payload: Dict, key: str) -> pd.DataFrame:
    """The list stored under ``key`` as a flat DataFrame (empty when absent)."""
    records = payload.get(key) or []
    if isinstance(records, dict):
        records = [records]
    return pd.json_normalize(records)


class NCDCLegacyClient(NOAAHTTPClient):
    """
    Client for the NCDC Legacy web services.

    Paths follow ``<service>/<dataset>/<station>/...``; every request carries
    ``output=json`` and the token.
    """

    def __init__(self, token: Optional[str] = None, base_url: str = LEGACY_BASE_URL, **kwargs):
        super().__init__(**kwargs)
        self.token = resolve_token(token)
        self.base_url = base_url

    def _legacy_get(self, path: str, params: Optional[Dict] = None, **request_kwargs) -> Dict:
        params = dict(params or {})
        params.update({"output": "json", "token": self.token})

        response = self._make_request(f"{self.base_url}{path}", params, **request_kwargs)
        # The service reports bad tokens and unknown stations as text containing "Error"
        if "Error" in response.text:
            self.logger.error(f"NCDC Legacy API error for {path}: {response.text[:200]}")
            raise NCDCLegacyError(response.text.strip())
        return response.json()

    def sites(self, dataset: str = "isd", state: Optional[str] = None, **request_kwargs) -> pd.DataFrame:
        """Stations available for a dataset, optionally limited to one state."""
        params = {"state": state} if state else None
        payload = self._legacy_get(f"sites/{dataset}", params, **request_kwargs)
        return records_frame(payload, "site")

    def variables(self, dataset: str = "isd", stationid: Optional[str] = None, **request_kwargs) -> pd.DataFrame:
        """Variables recorded for a dataset (or one station of it)."""
        path = f"variables/{dataset}/{stationid}" if stationid else f"variables/{dataset}"
        payload = self._legacy_get(path, **request_kwargs)
        return records_frame(payload, "variable")

    def station_info(self, dataset: str, stationid: str, **request_kwargs) -> pd.DataFrame:
        """Metadata for one station."""
        payload = self._legacy_get(f"sites/{dataset}/{stationid}", **request_kwargs)
        return records_frame(payload, "site")

    def data(
        self,
        dataset: str,
        stationid: str,
        varid: str,
        startdate: str,
        enddate: str,
        **request_kwargs,
    ) -> pd.DataFrame:
        """
        Observed values for one station variable.

        Args:
            dataset: Legacy dataset code (e.g. "isd")
            stationid: Station id (e.g. "030750-99999")
            varid: Variable id (e.g. "TMP")
            startdate: Start date, YYYYMMDDhhmm
            enddate: End date, YYYYMMDDhhmm
        """
        self.logger.info(f"Fetching NCDC Legacy {dataset}/{varid} for {stationid} ({startdate}-{enddate})")
        payload = self._legacy_get(f"values/{dataset}/{stationid}/{varid}/{startdate}/{enddate}", **request_kwargs)
        df = records_frame(payload, "values")
        self.logger.info(f"Retrieved {len(df)} values for {stationid}")
        return df
