"""
noaa_fetch - NOAA climate and ocean data as pandas tables
=========================================================

Fetches data from NOAA web services (ERDDAP, GHCND, ISD, the NCDC Legacy
API, IBTrACS storm tracks, NDBC buoys, HOMR) and reshapes the responses
into DataFrames. Large responses are cached on disk under ``~/.noaa_fetch``
(override with NOAA_FETCH_CACHE_DIR).

Example usage:
    from noaa_fetch import ERDDAPClient, disk

    client = ERDDAPClient()
    info = client.info("noaa_esrl_027d_0fb5_5d38")
    res = client.grid(
        info,
        time=("2012-01-01", "2012-06-12"),
        latitude=(21, 18),
        longitude=(-80, -75),
        store=disk(),
    )
"""

__version__ = "0.1.0"

from noaa_fetch.core.cache import clear_cache, disk, memory
from noaa_fetch.core.config_loader import get_settings, set_option
from noaa_fetch.core.exceptions import (
    ConfigurationError,
    ERDDAPRequestError,
    NCDCLegacyError,
    NOAAFetchError,
)
from noaa_fetch.external_apis import (
    ERDDAPClient,
    GHCNDClient,
    HOMRClient,
    ISDClient,
    NCDCLegacyClient,
    NDBCClient,
    StormsClient,
    ghcnd_splitvars,
)

__all__ = [
    "__version__",
    # Config and cache
    "get_settings",
    "set_option",
    "disk",
    "memory",
    "clear_cache",
    # Errors
    "NOAAFetchError",
    "ConfigurationError",
    "ERDDAPRequestError",
    "NCDCLegacyError",
    # Clients
    "ERDDAPClient",
    "GHCNDClient",
    "ghcnd_splitvars",
    "HOMRClient",
    "ISDClient",
    "NCDCLegacyClient",
    "NDBCClient",
    "StormsClient",
]
