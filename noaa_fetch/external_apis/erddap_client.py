# ABOUTME: ERDDAP client for dataset search, info, griddap and tabledap retrieval
# ABOUTME: Responses are cached on disk by request fingerprint unless a memory store is used

from typing import Dict, Optional, Union
from urllib.parse import quote

import pandas as pd
import requests

from noaa_fetch.core import cache
from noaa_fetch.core.cache import Store
from noaa_fetch.core.config_loader import get_erddap_url
from noaa_fetch.core.exceptions import ERDDAPRequestError
from noaa_fetch.core.http_client import NOAAHTTPClient
from noaa_fetch.external_apis.erddap_grid import (
    ErddapGrid,
    build_grid_query,
    check_response_erddap,
    read_erddap_csv,
    read_upwell,
)
from noaa_fetch.external_apis.erddap_info import ErddapInfo, info_from_json
from noaa_fetch.external_apis.erddap_search import (
    ErddapSearch,
    check_which,
    index_to_frame,
    search_from_json,
)
from noaa_fetch.external_apis.erddap_table import ErddapTable, build_table_query

# Characters ERDDAP needs to see literally; brackets, quotes and comparison operators get escaped
QUERY_SAFE_CHARS = "&=,():"


def encode_query(args: str) -> str:
    return quote(args, safe=QUERY_SAFE_CHARS)


class ERDDAPClient(NOAAHTTPClient):
    """
    Client for an ERDDAP server.

    Dimensions are things like time, latitude, longitude and altitude;
    variables are the measured quantities (temperature, salinity, ...).
    Ranges can only be set per dimension, shared by every selected variable.
    Pass ``(start, stop)`` pairs for the dimensions you want to narrow and
    leave the rest at the dataset's full range.

    Griddap requests can easily return hundreds of MB. With the default
    ``disk()`` store each distinct request is cached as its own file, so
    refining a query caches a new file; ``disk(overwrite=True)`` forces a
    fresh download and ``memory()`` keeps nothing on disk.
    """

    def __init__(self, base_url: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self.base_url = base_url if base_url is not None else get_erddap_url()
        if not self.base_url.endswith("/"):
            self.base_url += "/"

    def _get_json(self, url: str, params: Optional[Dict] = None, **request_kwargs) -> Dict:
        """GET a JSON endpoint, refusing anything the server did not label as JSON."""
        response = self._make_request(url, params, **request_kwargs)
        content_type = response.headers.get("content-type", "")
        if not content_type.startswith("application/json"):
            raise ERDDAPRequestError(
                f"Expected JSON from {url}, got content-type {content_type!r}",
                status_code=response.status_code,
                url=url,
            )
        return response.json()

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def search(
        self,
        query: str,
        page: Optional[int] = None,
        page_size: Optional[int] = None,
        which: str = "griddap",
        **request_kwargs,
    ) -> ErddapSearch:
        """
        Search for griddap or tabledap datasets.

        Args:
            query: Search terms
            page: Page number
            page_size: Results per page
            which: "griddap" (default) or "tabledap"

        Returns:
            ErddapSearch with hits of the requested kind
        """
        check_which(which)
        params = {"searchFor": query, "page": page, "itemsPerPage": page_size}
        params = {k: v for k, v in params.items() if v is not None}

        self.logger.info(f"Searching ERDDAP for '{query}' ({which})")
        payload = self._get_json(f"{self.base_url}search/index.json", params, **request_kwargs)
        result = search_from_json(payload, which)
        self.logger.info(f"Found {len(result.info)} {which} datasets")
        return result

    def datasets(self, which: str = "tabledap", **request_kwargs) -> pd.DataFrame:
        """List every dataset of one kind."""
        check_which(which)
        payload = self._get_json(
            f"{self.base_url}{which}/index.json", {"page": 1, "itemsPerPage": 10000}, **request_kwargs
        )
        return index_to_frame(payload)

    def table_or_grid(self, datasetid: str, **request_kwargs) -> str:
        """"tabledap" if the dataset is in the tabledap index, else "griddap"."""
        tables = self.datasets("tabledap", **request_kwargs)
        return "tabledap" if datasetid in set(tables["Dataset ID"]) else "griddap"

    def info(self, datasetid: str, **request_kwargs) -> ErddapInfo:
        """Fetch the descriptor (dimensions, variables, attributes) of a dataset."""
        self.logger.info(f"Fetching ERDDAP info for {datasetid}")
        payload = self._get_json(f"{self.base_url}info/{datasetid}/index.json", **request_kwargs)
        return info_from_json(payload, datasetid)

    def _as_info(self, x: Union[str, ErddapInfo], **request_kwargs) -> ErddapInfo:
        if isinstance(x, ErddapInfo):
            return x
        return self.info(x, **request_kwargs)

    # ------------------------------------------------------------------
    # Data
    # ------------------------------------------------------------------

    def erd_up_get(
        self, url: str, args: str, store: Store, fmt: str, **request_kwargs
    ) -> Union[str, requests.Response]:
        """
        Fetch ``url?args`` through a store.

        Disk store: return the cached file path when present (no request),
        otherwise download to it. A failed request deletes the partial file.
        Memory store: return the validated response.

        Raises:
            ERDDAPRequestError: Non-200 status or an ERDDAP error page
        """
        full_url = f"{url}?{encode_query(args)}" if args else url

        if store.store == "disk":
            cached = cache.cache_get(store.path, url, args, fmt)
            if cached is not None and not store.overwrite:
                return str(cached)

            target = cache.write_path(store.path, url, args, fmt)
            self.logger.info(f"Downloading {full_url} to {target}")
            response = self._download(full_url, target, **request_kwargs)
            with open(target, "rb") as f:
                head = f.read(2048).decode("utf-8", errors="replace")
            message = check_response_erddap(response.status_code, head)
            if message:
                target.unlink(missing_ok=True)
                self.logger.error(message)
                raise ERDDAPRequestError(message, status_code=response.status_code, url=full_url)
            return str(target)

        response = self._make_request(full_url, check=False, **request_kwargs)
        message = check_response_erddap(response.status_code, response.text[:2048])
        if message:
            self.logger.error(message)
            raise ERDDAPRequestError(message, status_code=response.status_code, url=full_url)
        return response

    def grid(
        self,
        x: Union[str, ErddapInfo],
        fields="all",
        stride=1,
        fmt: str = "csv",
        store: Optional[Store] = None,
        request_kwargs: Optional[Dict] = None,
        **dimargs,
    ) -> ErddapGrid:
        """
        Get griddap data.

        Args:
            x: ErddapInfo from ``info()`` or a dataset id
            fields: "all" (default), "none", or variable names
            stride: 1 = every value, 2 = every other value, ...; or one per dimension
            fmt: "csv" (default) or "nc"
            store: ``disk()`` (default) or ``memory()``
            request_kwargs: Passed through to requests (timeout, proxies, ...)
            **dimargs: (start, stop) per dimension, e.g. ``latitude=(21, 18)``

        Returns:
            ErddapGrid
        """
        request_kwargs = request_kwargs or {}
        store = store if store is not None else cache.disk()
        info = self._as_info(x, **request_kwargs)

        args = build_grid_query(info, dimargs, fields=fields, stride=stride)
        url = f"{self.base_url}griddap/{info.datasetid}.{cache.normalize_fmt(fmt)}"

        resp = self.erd_up_get(url, args, store, fmt, **request_kwargs)
        location = resp if store.store == "disk" else "memory"
        data = read_upwell(resp, fmt)
        self.logger.info(f"Retrieved {len(data)} griddap rows for {info.datasetid}")
        return ErddapGrid(data=data, datasetid=info.datasetid, path=location)

    def table(
        self,
        x: Union[str, ErddapInfo],
        fields=None,
        constraints=None,
        distinct: bool = False,
        orderby=None,
        orderbymax=None,
        orderbymin=None,
        orderbyminmax=None,
        units: Optional[str] = None,
        store: Optional[Store] = None,
        request_kwargs: Optional[Dict] = None,
    ) -> ErddapTable:
        """
        Get tabledap data.

        Args:
            x: ErddapInfo or dataset id
            fields: Columns to return (default: all)
            constraints: Mapping of "<column><operator>" to value,
                e.g. ``{"time>=": "2001-07-07", "latitude<": 40}``
            distinct: Return only distinct rows
            orderby, orderbymax, orderbymin, orderbyminmax: Column names for
                ERDDAP's orderBy functions
            units: "UCUM" or "UDUNITS"
            store: ``disk()`` (default) or ``memory()``
            request_kwargs: Passed through to requests
        """
        request_kwargs = request_kwargs or {}
        store = store if store is not None else cache.disk()
        datasetid = x.datasetid if isinstance(x, ErddapInfo) else x

        args = build_table_query(
            fields=fields,
            constraints=constraints,
            distinct=distinct,
            orderby=orderby,
            orderbymax=orderbymax,
            orderbymin=orderbymin,
            orderbyminmax=orderbyminmax,
            units=units,
        )
        url = f"{self.base_url}tabledap/{datasetid}.csv"

        resp = self.erd_up_get(url, args, store, "csv", **request_kwargs)
        if store.store == "disk":
            data, location = read_erddap_csv(resp), resp
        else:
            data, location = read_upwell(resp, "csv"), "memory"
        self.logger.info(f"Retrieved {len(data)} tabledap rows for {datasetid}")
        return ErddapTable(data=data, datasetid=datasetid, path=location)

    def clear_cache(self, path=None) -> int:
        """Remove every cached ERDDAP file."""
        return cache.clear_cache(path)
