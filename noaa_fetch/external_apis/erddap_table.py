# ABOUTME: ERDDAP tabledap query construction and result container
# ABOUTME: Builds fields, constraints and server-side functions (distinct, orderBy, units)

from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

import pandas as pd

from noaa_fetch.core.cache import file_info

UNIT_SYSTEMS = ("UCUM", "UDUNITS")


@dataclass
class ErddapTable:
    """Decoded tabledap response. ``path`` is the cache file or "memory"."""

    data: pd.DataFrame
    datasetid: str
    path: str

    def __repr__(self, n: int = 10):
        lines = [f"<ERDDAP tabledap> {self.datasetid}", f"   Path: [{self.path}]"]
        if self.path != "memory":
            finfo = file_info(self.path)
            lines.append(f"   Last updated: [{finfo['mtime']}]")
            lines.append(f"   File size:    [{finfo['size']}]")
        lines.append(f"   Dimensions:   [{self.data.shape[0]} X {self.data.shape[1]}]\n")
        lines.append(str(self.data.head(n)))
        return "\n".join(lines)


def _as_list(value) -> list:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return list(value)


def _server_function(name: str, columns) -> Optional[str]:
    columns = _as_list(columns)
    if not columns:
        return None
    return f'{name}("{",".join(columns)}")'


def build_table_query(
    fields: Optional[Sequence[str]] = None,
    constraints: Optional[Mapping[str, object]] = None,
    distinct: bool = False,
    orderby=None,
    orderbymax=None,
    orderbymin=None,
    orderbyminmax=None,
    units: Optional[str] = None,
) -> str:
    """
    Unencoded tabledap query string.

    Constraint keys carry their operator, so ``{"time>=": "2001-07-07"}``
    becomes ``time>=2001-07-07``.
    """
    field_part = ",".join(_as_list(fields))

    extras = [f"{key}{value}" for key, value in (constraints or {}).items()]
    if distinct:
        extras.append("distinct()")
    for name, columns in (
        ("orderBy", orderby),
        ("orderByMax", orderbymax),
        ("orderByMin", orderbymin),
        ("orderByMinMax", orderbyminmax),
    ):
        function = _server_function(name, columns)
        if function:
            extras.append(function)
    if units is not None:
        unit_system = units.upper()
        if unit_system not in UNIT_SYSTEMS:
            raise ValueError(f"units must be one of {UNIT_SYSTEMS}, got {units!r}")
        extras.append(f'units("{unit_system}")')

    if extras:
        return f"{field_part}&{'&'.join(extras)}"
    return field_part
