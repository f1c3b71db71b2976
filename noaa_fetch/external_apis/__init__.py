"""
External APIs Module for NOAA data retrieval

Clients for the NOAA services this package reads from:

- ERDDAP: dataset search, info, griddap and tabledap
- GHCND: daily station records from the GHCN-Daily archive
- ISD: hourly Integrated Surface Database observations
- NCDC Legacy API: sites, variables and values (token required)
- IBTrACS: storm best tracks
- NDBC: buoy data
- HOMR: station history metadata
"""

from .erddap_client import ERDDAPClient
from .ghcnd import GHCNDClient, ghcnd_splitvars
from .homr import HOMRClient
from .isd import ISDClient
from .ncdc_legacy import NCDCLegacyClient
from .ndbc_client import NDBCClient
from .storms import StormsClient

__all__ = [
    'ERDDAPClient',
    'GHCNDClient',
    'ghcnd_splitvars',
    'HOMRClient',
    'ISDClient',
    'NCDCLegacyClient',
    'NDBCClient',
    'StormsClient',
]
